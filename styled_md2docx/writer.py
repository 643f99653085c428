"""Render a :class:`DocumentModel` into a python-docx ``Document``."""

from __future__ import annotations

import logging
import os
import struct
from io import BytesIO

from docx import Document
from docx.enum.section import WD_ORIENT
from docx.enum.table import WD_TABLE_ALIGNMENT
from docx.enum.text import WD_ALIGN_PARAGRAPH
from docx.image.exceptions import (
    InvalidImageStreamError,
    UnexpectedEndOfFileError,
    UnrecognizedImageError,
)
from docx.opc.constants import RELATIONSHIP_TYPE as RT
from docx.oxml import parse_xml
from docx.oxml.ns import nsdecls, qn
from docx.shared import Pt, RGBColor, Twips

from styled_md2docx.model import (
    Border,
    DocumentModel,
    NumberingScheme,
    ParagraphNode,
    StyledRun,
    TableNode,
)

LOGGER = logging.getLogger(__name__)

ALIGNMENT = {
    "left": WD_ALIGN_PARAGRAPH.LEFT,
    "center": WD_ALIGN_PARAGRAPH.CENTER,
    "right": WD_ALIGN_PARAGRAPH.RIGHT,
    "justified": WD_ALIGN_PARAGRAPH.JUSTIFY,
}
TABLE_ALIGNMENT = {
    "left": WD_TABLE_ALIGNMENT.LEFT,
    "center": WD_TABLE_ALIGNMENT.CENTER,
    "right": WD_TABLE_ALIGNMENT.RIGHT,
}

# Elements that follow w:pBdr / w:shd inside w:pPr and w:tblBorders inside w:tblPr.
_PPR_AFTER_PBDR = (
    "w:shd", "w:tabs", "w:suppressAutoHyphens", "w:kinsoku", "w:wordWrap", "w:overflowPunct",
    "w:topLinePunct", "w:autoSpaceDE", "w:autoSpaceDN", "w:bidi", "w:adjustRightInd",
    "w:snapToGrid", "w:spacing", "w:ind", "w:contextualSpacing", "w:mirrorIndents",
    "w:suppressOverlap", "w:jc", "w:textDirection", "w:textAlignment", "w:textboxTightWrap",
    "w:outlineLvl", "w:divId", "w:cnfStyle", "w:rPr", "w:sectPr", "w:pPrChange",
)
_PPR_AFTER_SHD = _PPR_AFTER_PBDR[1:]
_TBLPR_AFTER_BORDERS = ("w:shd", "w:tblLayout", "w:tblCellMar", "w:tblLook", "w:tblCaption",
                        "w:tblDescription", "w:tblPrChange")
_TCPR_AFTER_SHD = ("w:noWrap", "w:tcMar", "w:textDirection", "w:tcFitText", "w:vAlign",
                   "w:hideMark", "w:headers", "w:cellIns", "w:cellDel", "w:cellMerge", "w:tcPrChange")


def _escape_xml(text: str) -> str:
    return text.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;").replace('"', "&quot;")


def _border_xml(side: str, border: Border) -> str:
    return (f'<w:{side} w:val="{border.style}" w:sz="{border.size}" '
            f'w:space="{border.space}" w:color="{border.color}"/>')


def _shading(color: str):
    return parse_xml(f'<w:shd {nsdecls("w")} w:val="clear" w:color="auto" w:fill="{color}"/>')


class DocxWriter:
    """Serializes a document model with python-docx."""

    def __init__(self, model: DocumentModel):
        self.model = model
        self.doc = None
        self._abstract_ids: dict[str, int] = {}
        self._num_ids: dict[tuple[str, int, int], int] = {}

    # -- public API ----------------------------------------------------------
    def build(self):
        """Return a new python-docx ``Document`` holding the model."""
        self.doc = Document()
        self._abstract_ids = {}
        self._num_ids = {}
        self._setup_section()
        self._register_numbering()
        for node in self.model.nodes:
            if isinstance(node, TableNode):
                self._add_table(node)
            else:
                self._write_paragraph(self.doc.add_paragraph(), node)
        return self.doc

    def save(self, output_path) -> None:
        doc = self.build()
        output_path = os.path.abspath(output_path)
        os.makedirs(os.path.dirname(output_path) or ".", exist_ok=True)
        doc.save(output_path)
        LOGGER.info("Wrote %s", output_path)

    # -- section & page ------------------------------------------------------
    def _setup_section(self):
        page = self.model.page
        section = self.doc.sections[0]
        section.orientation = WD_ORIENT.LANDSCAPE if page.orientation == "landscape" else WD_ORIENT.PORTRAIT
        section.page_width = Twips(page.width)
        section.page_height = Twips(page.height)
        section.top_margin = Twips(page.margins.top)
        section.bottom_margin = Twips(page.margins.bottom)
        section.left_margin = Twips(page.margins.left)
        section.right_margin = Twips(page.margins.right)

        if page.grid is None:
            return
        sect_pr = section._sectPr
        doc_grid = sect_pr.find(qn("w:docGrid"))
        if doc_grid is None:
            doc_grid = parse_xml(f'<w:docGrid {nsdecls("w")}/>')
            sect_pr.append(doc_grid)
        doc_grid.set(qn("w:type"), "linesAndChars")
        doc_grid.set(qn("w:linePitch"), str(page.grid.line_pitch))
        doc_grid.set(qn("w:charSpace"), str(page.grid.char_pitch))

    # -- numbering -----------------------------------------------------------
    def _register_numbering(self):
        numbering = self.doc.part.numbering_part.element
        existing = [int(el.get(qn("w:abstractNumId"))) for el in numbering.findall(qn("w:abstractNum"))]
        next_id = max(existing, default=-1) + 1
        for name, scheme in self.model.numbering.items():
            abstract = parse_xml(self._abstract_num_xml(next_id, scheme))
            numbering.insert_element_before(abstract, "w:num", "w:numIdMacAtCleanup")
            self._abstract_ids[name] = next_id
            next_id += 1

    @staticmethod
    def _abstract_num_xml(abstract_id: int, scheme: NumberingScheme) -> str:
        levels = []
        for level in scheme.levels:
            font = _escape_xml(level.font)
            levels.append(
                f'<w:lvl w:ilvl="{level.level}">'
                f'<w:start w:val="{level.start}"/>'
                f'<w:numFmt w:val="{level.format}"/>'
                f'<w:lvlText w:val="{_escape_xml(level.text)}"/>'
                f'<w:lvlJc w:val="{level.alignment}"/>'
                f'<w:pPr><w:ind w:left="{level.indent}" w:hanging="{level.hanging}"/></w:pPr>'
                f'<w:rPr><w:rFonts w:ascii="{font}" w:hAnsi="{font}" w:eastAsia="{font}"/></w:rPr>'
                f'</w:lvl>'
            )
        return (f'<w:abstractNum {nsdecls("w")} w:abstractNumId="{abstract_id}">'
                f'<w:multiLevelType w:val="hybridMultilevel"/>{"".join(levels)}</w:abstractNum>')

    def _num_id(self, scheme: str, instance: int, start: int) -> int:
        """One ``w:num`` per list instance, restarting level 0 at *start*."""
        key = (scheme, instance, start)
        if key not in self._num_ids:
            numbering = self.doc.part.numbering_part.element
            num = numbering.add_num(self._abstract_ids[scheme])
            num.add_lvlOverride(ilvl=0).add_startOverride(start)
            self._num_ids[key] = num.numId
        return self._num_ids[key]

    # -- paragraphs ----------------------------------------------------------
    def _write_paragraph(self, paragraph, node: ParagraphNode):
        if node.style_name:
            try:
                paragraph.style = self.doc.styles[node.style_name]
            except KeyError:
                LOGGER.debug("Style %s not in template", node.style_name)

        p_pr = paragraph._p.get_or_add_pPr()
        if node.borders:
            sides = "".join(_border_xml(side, node.borders[side])
                            for side in ("top", "left", "bottom", "right") if side in node.borders)
            p_pr.insert_element_before(parse_xml(f'<w:pBdr {nsdecls("w")}>{sides}</w:pBdr>'), *_PPR_AFTER_PBDR)
        if node.shading:
            p_pr.insert_element_before(_shading(node.shading), *_PPR_AFTER_SHD)

        if node.numbering is not None and node.numbering.scheme in self._abstract_ids:
            ref = node.numbering
            num_pr = p_pr.get_or_add_numPr()
            num_pr.get_or_add_ilvl().val = ref.level
            num_pr.get_or_add_numId().val = self._num_id(ref.scheme, ref.instance, ref.start)

        pf = paragraph.paragraph_format
        pf.alignment = ALIGNMENT.get(node.alignment, WD_ALIGN_PARAGRAPH.LEFT)
        pf.space_before = Twips(node.spacing.before)
        pf.space_after = Twips(node.spacing.after)
        if node.spacing.line:
            if node.spacing.line_rule == "exact":
                pf.line_spacing = Twips(node.spacing.line)
            else:
                pf.line_spacing = node.spacing.line / 240
        if node.indent.left:
            pf.left_indent = Twips(node.indent.left)
        if node.indent.right:
            pf.right_indent = Twips(node.indent.right)
        if node.indent.hanging:
            pf.first_line_indent = Twips(-node.indent.hanging)
        elif node.indent.first_line:
            pf.first_line_indent = Twips(node.indent.first_line)

        for run in node.runs:
            self._write_run(paragraph, run)

    def _write_run(self, paragraph, styled: StyledRun):
        if styled.picture is not None:
            self._add_picture(paragraph, styled)
            return
        run = paragraph.add_run(styled.text)
        self._format_run(run, styled)
        if styled.url:
            self._wrap_hyperlink(paragraph, run, styled.url)

    @staticmethod
    def _format_run(run, styled: StyledRun):
        font = run.font
        font.name = styled.font
        run._element.get_or_add_rPr().get_or_add_rFonts().set(qn("w:eastAsia"), styled.font)
        font.size = Pt(styled.size)
        font.color.rgb = RGBColor.from_string(styled.color)
        if styled.bold:
            font.bold = True
        if styled.italic:
            font.italic = True
        if styled.strike:
            font.strike = True
        if styled.underline:
            font.underline = True
        if styled.superscript:
            font.superscript = True

    @staticmethod
    def _wrap_hyperlink(paragraph, run, url: str):
        r_id = paragraph.part.relate_to(url, RT.HYPERLINK, is_external=True)
        hyperlink = parse_xml(
            f'<w:hyperlink {nsdecls("w", "r")} r:id="{r_id}" w:history="1"/>'
        )
        run._r.addprevious(hyperlink)
        hyperlink.append(run._r)

    def _add_picture(self, paragraph, styled: StyledRun):
        picture = styled.picture
        try:
            paragraph.add_run().add_picture(
                BytesIO(picture.image.data),
                width=Twips(picture.width),
                height=Twips(picture.height),
            )
        except (UnrecognizedImageError, UnexpectedEndOfFileError, InvalidImageStreamError,
                struct.error, OSError, ValueError):
            LOGGER.warning("Cannot embed %s image %r", picture.image.mime_type, picture.image.alt_text)
            label = picture.image.alt_text or picture.image.mime_type
            fallback = paragraph.add_run(f"Image: {label} (cannot embed {picture.image.mime_type})")
            self._format_run(fallback, styled)
            fallback.font.italic = True

    # -- tables --------------------------------------------------------------
    def _add_table(self, node: TableNode):
        columns = len(node.column_widths)
        table = self.doc.add_table(rows=1 + len(node.data_rows), cols=columns)
        table.alignment = TABLE_ALIGNMENT.get(node.alignment, WD_TABLE_ALIGNMENT.CENTER)
        table.autofit = False

        tbl_pr = table._tbl.tblPr
        if node.borders:
            sides = "".join(_border_xml(side, border) for side, border in node.borders.items())
            tbl_pr.insert_element_before(parse_xml(f'<w:tblBorders {nsdecls("w")}>{sides}</w:tblBorders>'),
                                         *_TBLPR_AFTER_BORDERS)

        for index, width in enumerate(node.column_widths):
            table.columns[index].width = Twips(width)

        for row_index, cells in enumerate([node.header_row] + node.data_rows):
            row = table.rows[row_index]
            for col_index, cell_node in enumerate(cells[:columns]):
                cell = row.cells[col_index]
                cell.width = Twips(node.column_widths[col_index])
                if cell_node.shading:
                    tc_pr = cell._tc.get_or_add_tcPr()
                    tc_pr.insert_element_before(_shading(cell_node.shading), *_TCPR_AFTER_SHD)
                self._write_paragraph(cell.paragraphs[0], cell_node.paragraph)
