"""Element builders: one per structural token type.

Each builder turns a token mapping plus the resolved style tree into one or
more document-model nodes. :meth:`ElementBuilders.build` is total: whatever
goes wrong inside a builder ends up as a one-line diagnostic paragraph, so a
single bad element never aborts the document.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass, replace
from typing import Any, Callable

from styled_md2docx.errors import RecoverableElementError
from styled_md2docx.images import (
    DEFAULT_MAX_HEIGHT,
    DEFAULT_MAX_WIDTH,
    decode_data_url,
    fit_box,
    is_data_url,
)
from styled_md2docx.inline import tokenize
from styled_md2docx.model import (
    Border,
    DocumentNode,
    ImageData,
    Indent,
    NumberingRef,
    ParagraphNode,
    Picture,
    Spacing,
    StyledRun,
    TableCell,
    TableNode,
)
from styled_md2docx.numbering import BULLET_LIST, ORDERED_LIST, NumberingRegistry, clamp_level
from styled_md2docx.styles import StyleResolver

LOGGER = logging.getLogger(__name__)

BODY_FONT = "仿宋_GB2312"
BODY_SIZE = 16
BODY_COLOR = "000000"
HEADING_FONT = "方正小标宋简体"
HEADING_SIZES = {1: 22, 2: 16, 3: 16, 4: 16, 5: 16, 6: 10.5}
FIRST_LINE_INDENT = 800
TABLE_WIDTH = 8000
MAX_LIST_LEVEL = 3
ORDERED_LEVEL_FONTS = ("黑体", "楷体", "仿宋_GB2312", "仿宋_GB2312")
ORDERED_LEVEL_BOLD = (True, False, False, False)
ERROR_COLOR = "FF0000"

ALIGNMENTS = {
    "left": "left",
    "start": "left",
    "center": "center",
    "centre": "center",
    "right": "right",
    "end": "right",
    "justified": "justified",
    "justify": "justified",
    "both": "justified",
}

SOLE_IMAGE_RE = re.compile(r"^!\[(.*?)\]\((.*?)\)$", re.DOTALL)
_ALT_IN_MARKDOWN_RE = re.compile(r"!\[(.+?)\]")
_ORDERED_MARKER_RE = re.compile(r"^(?:\d+[.)）]\s+|[一二三四五六七八九十]+[、.．]\s*|[(（][一二三四五六七八九十\d]+[)）]\s*)")
_BULLET_MARKER_RE = re.compile(r"^[●○■•◦▪▫□▹▻➢➣➤◆◇◈⦿⦾⚫⚪✦✧\t]+\s*")
_TASK_RE = re.compile(r"^\[([ xX])\]\s*")
_QUOTE_MARKER_RE = re.compile(r"^[ \t]*(?:>[ \t]?)+", re.MULTILINE)
_HTML_TAG_RE = re.compile(r"<[^>]*>")
_TABLE_DELIMITER_CELL_RE = re.compile(r"^\s*:?-{1,}:?\s*$")


@dataclass
class RunStyle:
    """Base character formatting inline runs inherit from their block."""

    font: str
    size: float
    color: str
    bold: bool = False
    italic: bool = False


# ---------------------------------------------------------------------------
# Table ingestion
# ---------------------------------------------------------------------------
@dataclass
class TableData:
    header: list[str]
    rows: list[list[str]]
    alignments: list[str | None]


def normalize_cell(cell: Any) -> str:
    """Reduce any of the cell shapes tokenizers emit to plain text.

    Accepted shapes: plain string, JSON string ``{"text": ...}``, mapping with
    a ``text`` key, ``None`` and scalars.
    """
    if cell is None:
        return ""
    if isinstance(cell, str):
        stripped = cell.strip()
        if stripped.startswith("{") and '"text"' in stripped:
            try:
                parsed = json.loads(stripped)
            except ValueError:
                return cell
            if isinstance(parsed, Mapping):
                return normalize_cell(parsed.get("text"))
        return cell
    if isinstance(cell, Mapping):
        return normalize_cell(cell.get("text"))
    if isinstance(cell, (list, tuple)):
        return " ".join(normalize_cell(part) for part in cell)
    return str(cell)


def split_row(line: str) -> list[str]:
    """Split one raw table line on tabs or pipes."""
    if "\t" in line:
        return line.split("\t")
    if "|" in line:
        stripped = line.strip()
        if stripped.startswith("|"):
            stripped = stripped[1:]
        if stripped.endswith("|") and not stripped.endswith("\\|"):
            stripped = stripped[:-1]
        return [cell.strip() for cell in stripped.split("|")]
    return [line]


def _is_delimiter_row(cells: list[str]) -> bool:
    return bool(cells) and all(_TABLE_DELIMITER_CELL_RE.match(cell) for cell in cells)


def _normalize_row(row: Any) -> list[str]:
    if isinstance(row, (list, tuple)):
        return [normalize_cell(cell) for cell in row]
    if isinstance(row, Mapping) and isinstance(row.get("cells"), (list, tuple)):
        return [normalize_cell(cell) for cell in row["cells"]]
    if isinstance(row, str):
        return [normalize_cell(cell) for cell in split_row(row)]
    return [normalize_cell(row)]


def ingest_table(token: Mapping[str, Any]) -> TableData:
    """Normalise a table token's header and rows once, up front."""
    header: list[str] = []
    rows: list[list[str]] = []

    raw_header = token.get("header")
    if raw_header:
        header = _normalize_row(raw_header)

    raw_rows = token.get("rows")
    if isinstance(raw_rows, str):
        rows = [_normalize_row(line) for line in raw_rows.split("\n") if line.strip()]
    elif isinstance(raw_rows, (list, tuple)):
        rows = [_normalize_row(row) for row in raw_rows]

    if not header:
        text = token.get("text") or token.get("raw") or ""
        lines = [line for line in str(text).strip().split("\n") if line.strip()]
        parsed = [split_row(line) for line in lines]
        parsed = [cells for cells in parsed if not _is_delimiter_row(cells)]
        if parsed:
            header = [normalize_cell(cell) for cell in parsed[0]]
            rows = [[normalize_cell(cell) for cell in cells] for cells in parsed[1:]]

    alignments = [a if isinstance(a, str) else None for a in (token.get("align") or [])]
    return TableData(header=header, rows=rows, alignments=alignments)


# ---------------------------------------------------------------------------
# Token helpers
# ---------------------------------------------------------------------------
def token_text(token: Mapping[str, Any]) -> str:
    for key in ("text", "content", "raw"):
        value = token.get(key)
        if value is not None:
            return value if isinstance(value, str) else str(value)
    return ""


def is_task_list(items: list[Any]) -> bool:
    if not items:
        return False
    first = items[0]
    text = first if isinstance(first, str) else (first.get("text") if isinstance(first, Mapping) else "")
    return isinstance(text, str) and (text.startswith("[x]") or text.startswith("[X]") or text.startswith("[ ]"))


def repair_code_lines(code: str) -> str:
    """Re-insert line breaks into code that was pasted as a single line."""
    code = re.sub(r"\{(?!\s*\n)", "{\n", code)
    code = re.sub(r";(?!\s*\n)", ";\n", code)
    lines = []
    for line in code.split("\n"):
        trimmed = line.lstrip()
        if trimmed.startswith(("}", "else", "catch")):
            trimmed = "  " + trimmed
        lines.append(trimmed)
    while lines and not lines[-1].strip():
        lines.pop()
    return "\n".join(lines)


def strip_quote_markers(text: str) -> str:
    return _QUOTE_MARKER_RE.sub("", text)


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------
class ElementBuilders:
    """Builds document nodes from structural tokens."""

    def __init__(self, styles: StyleResolver,
                 images: Mapping[str, ImageData | None] | None = None,
                 numbering: NumberingRegistry | None = None):
        self.styles = styles
        self.images = dict(images or {})
        self.numbering = numbering or NumberingRegistry(styles)
        self._handlers: dict[str, Callable[[Mapping[str, Any]], list[DocumentNode]]] = {
            "heading": self.build_heading,
            "paragraph": self.build_paragraph,
            "text": self.build_paragraph,
            "list": self.build_list,
            "table": self.build_table,
            "blockquote": self.build_blockquote,
            "code": self.build_code,
            "image": self.build_image,
            "footnote": self.build_footnote,
            "footnoteDefinition": self.build_footnote,
            "hr": self.build_horizontal_rule,
            "space": self.build_space,
            "link": self.build_link,
            "html": self.build_html,
        }

    # -- dispatch ------------------------------------------------------------
    def build(self, token: Any) -> list[DocumentNode]:
        """Build the nodes for *token*; never raises."""
        if not isinstance(token, Mapping):
            LOGGER.warning("Skipping invalid token %r", token)
            return [self.error_paragraph("unknown", "invalid token")]
        token_type = str(token.get("type") or "unknown")
        handler = self._handlers.get(token_type, self.build_unknown)
        try:
            return handler(token)
        except Exception as exc:  # builders are total: any failure becomes a diagnostic line
            LOGGER.warning("Failed to build %s token: %s", token_type, exc, exc_info=True)
            return [self.error_paragraph(token_type, str(exc) or exc.__class__.__name__)]

    # -- shared style helpers ------------------------------------------------
    def body_style(self) -> RunStyle:
        return RunStyle(
            font=self.styles.text("paragraph.font", BODY_FONT),
            size=self.styles.number("paragraph.size", BODY_SIZE),
            color=self.styles.color("paragraph.color", BODY_COLOR),
        )

    def alignment(self, path: str, fallback: str) -> str:
        value = self.styles.text(path, fallback)
        return ALIGNMENTS.get(value.strip().lower(), fallback)

    def line_spacing(self) -> tuple[int, str]:
        """Return ``(line, rule)`` in WordprocessingML terms.

        An ``exact`` rule takes the value in points (x20 to twips); anything
        else is a multiplier of single spacing (x240).
        """
        value = self.styles.number("paragraph.lineSpacing", 1.5)
        if self.styles.text("paragraph.lineSpacingRule", "auto") == "exact":
            return int(round(value * 20)), "exact"
        return int(round(value * 240)), "auto"

    def footnote_size(self, base_size: float) -> float:
        return self.styles.number("footnote.size", max(1, base_size - 3))

    def styled_runs(self, text: Any, base: RunStyle) -> list[StyledRun]:
        """Tokenize inline *text* and resolve every run against *base*."""
        runs = []
        for inline in tokenize(text):
            run = StyledRun(text=inline.content, font=base.font, size=base.size,
                            color=base.color, bold=base.bold, italic=base.italic)
            kind = inline.kind
            if kind == "bold":
                run.bold = True
            elif kind == "italic":
                run.italic = True
            elif kind == "bold_italic":
                run.bold = run.italic = True
            elif kind == "strike":
                run.strike = True
            elif kind == "underline":
                run.underline = True
            elif kind == "code":
                run.font = self.styles.text("code.font", "Courier New")
                run.size = self.styles.number("code.size", 10)
                run.color = self.styles.color("code.color", "333333")
            elif kind == "link":
                run.color = self.styles.color("link.color", "0066CC")
                run.underline = self.styles.flag("link.underline", True)
                run.url = inline.url
            elif kind == "footnote_ref":
                run.text = f"[{inline.label}]"
                run.size = self.footnote_size(base.size)
                run.color = self.styles.color("footnote.color", base.color)
                run.superscript = True
            runs.append(run)
        return runs

    def error_paragraph(self, token_type: str, message: str) -> ParagraphNode:
        base = self.body_style()
        return ParagraphNode(
            kind="error",
            runs=[StyledRun(text=f"Conversion error ({token_type}): {message}",
                            font=base.font, size=base.size, color=ERROR_COLOR)],
        )

    # -- headings ------------------------------------------------------------
    def build_heading(self, token: Mapping[str, Any], use_prefix: bool = True) -> list[DocumentNode]:
        try:
            level = int(token.get("depth") or token.get("level") or 1)
        except (TypeError, ValueError):
            level = 1
        level = max(1, min(level, 6))
        key = f"h{level}"
        styles = self.styles

        font = styles.text(f"heading.fonts.{key}", styles.text("heading.font", HEADING_FONT))
        size = styles.number(f"heading.sizes.{key}", styles.number("heading.size", HEADING_SIZES[level]))
        color = styles.color(f"heading.colors.{key}", styles.color("heading.color", BODY_COLOR))
        bold = styles.resolve(f"heading.bold.{key}")
        if not isinstance(bold, bool):
            generic = styles.resolve("heading.bold")
            bold = generic if isinstance(generic, bool) else level == 1

        text = token_text(token)
        if use_prefix and styles.flag(f"heading.usePrefix.{key}", False):
            text = styles.text(f"heading.prefix.{key}", "") + text

        return [ParagraphNode(
            kind="heading",
            style_name=f"Heading {level}",
            runs=self.styled_runs(text, RunStyle(font=font, size=size, color=color, bold=bold)),
            alignment=self.alignment(f"heading.alignment.{key}", "left"),
            spacing=Spacing(before=240 if level == 1 else 120, after=120),
            indent=Indent(left=int(styles.number(f"heading.indent.{key}", 0))),
        )]

    # -- paragraphs ----------------------------------------------------------
    def build_paragraph(self, token: Mapping[str, Any]) -> list[DocumentNode]:
        text = token_text(token)
        match = SOLE_IMAGE_RE.match(text.strip())
        if match:
            return self.build_image({"type": "image", "text": match.group(1), "href": match.group(2)})

        line, rule = self.line_spacing()
        return [ParagraphNode(
            kind="paragraph",
            runs=self.styled_runs(text, self.body_style()),
            alignment=self.alignment("paragraph.alignment", "justified"),
            spacing=Spacing(after=int(self.styles.number("paragraph.spacing", 0)), line=line, line_rule=rule),
            indent=Indent(first_line=int(self.styles.number("paragraph.firstLineIndent", FIRST_LINE_INDENT))),
        )]

    def build_link(self, token: Mapping[str, Any]) -> list[DocumentNode]:
        href = token.get("href") or token.get("url") or ""
        text = token_text(token) or href
        return self.build_paragraph({"type": "paragraph", "text": f"[{text}]({href})" if href else text})

    def build_html(self, token: Mapping[str, Any]) -> list[DocumentNode]:
        text = _HTML_TAG_RE.sub("", token_text(token)).strip()
        if not text:
            return []
        return self.build_paragraph({"type": "paragraph", "text": text})

    def build_space(self, token: Mapping[str, Any]) -> list[DocumentNode]:
        return []

    def build_unknown(self, token: Mapping[str, Any]) -> list[DocumentNode]:
        LOGGER.warning("Unhandled token type %r", token.get("type"))
        text = token_text(token)
        if not text.strip():
            return []
        return self.build_paragraph({"type": "paragraph", "text": text})

    # -- lists ---------------------------------------------------------------
    def build_list(self, token: Mapping[str, Any], level: int = 0) -> list[DocumentNode]:
        items = list(token.get("items") or [])
        if is_task_list(items):
            return self.build_task_list(token, level)

        ordered = bool(token.get("ordered"))
        kind = "ordered" if ordered else "unordered"
        scheme = ORDERED_LIST if ordered else BULLET_LIST
        level = min(max(level, 0), MAX_LIST_LEVEL)
        body = self.body_style()
        size = self.styles.number(f"list.{kind}.size", body.size)
        if ordered:
            fonts = self.styles.sequence("list.ordered.levelFonts", list(ORDERED_LEVEL_FONTS))
            bolds = self.styles.sequence("list.ordered.levelBold", list(ORDERED_LEVEL_BOLD))
            font = str(fonts[min(level, len(fonts) - 1)]) if fonts else ORDERED_LEVEL_FONTS[level]
            bold = bool(bolds[min(level, len(bolds) - 1)]) if bolds else ORDERED_LEVEL_BOLD[level]
        else:
            font = self.styles.text("list.unordered.font", body.font)
            bold = False
        numbering_level = self.numbering.level(scheme, level)
        line, rule = self.line_spacing()

        nodes: list[DocumentNode] = []
        for item in items:
            text, children = self._split_item(item)
            marker_re = _ORDERED_MARKER_RE if ordered else _BULLET_MARKER_RE
            text = marker_re.sub("", text, count=1)
            nodes.append(ParagraphNode(
                kind="list_item",
                runs=self.styled_runs(text, RunStyle(font=font, size=size, color=body.color, bold=bold)),
                alignment="justified",
                spacing=Spacing(before=120, after=120, line=line, line_rule=rule),
                indent=Indent(left=numbering_level.indent, hanging=numbering_level.hanging),
                numbering=NumberingRef(scheme=scheme, level=clamp_level(level)),
            ))
            if children:
                nested = {"type": "list", "ordered": self._child_ordered(item, ordered), "items": children}
                nodes.extend(self.build_list(nested, min(level + 1, MAX_LIST_LEVEL)))
        return nodes

    @staticmethod
    def _child_ordered(item: Any, default: bool) -> bool:
        if isinstance(item, Mapping) and item.get("ordered") is not None:
            return bool(item["ordered"])
        return default

    @staticmethod
    def _split_item(item: Any) -> tuple[str, list[Any]]:
        if isinstance(item, Mapping):
            text = item.get("text")
            text = "" if text is None else str(text)
            children = list(item.get("items") or [])
        else:
            text = "" if item is None else str(item)
            children = []
        if " * " in text:
            parts = text.split(" * ")
            text = parts[0]
            children = [{"text": part, "items": []} for part in parts[1:]] + children
        return text, children

    def build_task_list(self, token: Mapping[str, Any], level: int = 0) -> list[DocumentNode]:
        level = min(max(level, 0), MAX_LIST_LEVEL)
        body = self.body_style()
        done = self.styles.text("list.task.completedChar", "☑")
        todo = self.styles.text("list.task.uncompletedChar", "☐")
        indent = int(self.styles.number("list.task.indentLevel", 720)) * (level + 1)

        nodes: list[DocumentNode] = []
        for item in token.get("items") or []:
            text, children = self._split_item(item)
            match = _TASK_RE.match(text)
            checked = bool(match and match.group(1) in "xX")
            if match:
                text = text[match.end():]
            glyph = StyledRun(text=done if checked else todo, font=body.font, size=body.size, color=body.color)
            nodes.append(ParagraphNode(
                kind="task_item",
                runs=[glyph] + self.styled_runs(" " + text, body),
                alignment="left",
                spacing=Spacing(before=120, after=120),
                indent=Indent(left=indent),
            ))
            if children:
                nested = {"type": "list", "ordered": self._child_ordered(item, bool(token.get("ordered"))),
                          "items": children}
                nodes.extend(self.build_list(nested, min(level + 1, MAX_LIST_LEVEL)))
        return nodes

    # -- tables --------------------------------------------------------------
    def build_table(self, token: Mapping[str, Any]) -> list[DocumentNode]:
        data = ingest_table(token)
        if not data.header:
            raise RecoverableElementError("Invalid table data", "table")

        styles = self.styles
        body = self.body_style()
        columns = len(data.header)
        total_width = int(styles.number("table.width", TABLE_WIDTH))
        column_width = total_width // columns
        font_size = styles.number("table.fontSize", body.size)
        header_bg = styles.color("table.headerBackground", "E6E6E6")
        border = Border(style="single", size=int(styles.number("table.borderWidth", 4)),
                        color=styles.color("table.borderColor", "000000"))
        default_alignment = self.alignment("table.alignment", "center")

        header_style = RunStyle(font=styles.text("table.headerFont", body.font), size=font_size,
                                color=body.color, bold=True)
        cell_style = RunStyle(font=body.font, size=font_size, color=body.color)

        def cell(text: str, style: RunStyle, column: int) -> ParagraphNode:
            alignment = default_alignment
            if column < len(data.alignments) and data.alignments[column]:
                alignment = ALIGNMENTS.get(data.alignments[column].lower(), default_alignment)
            return ParagraphNode(kind="table_cell", runs=self.styled_runs(text, style),
                                 alignment=alignment, spacing=Spacing(before=60, after=60))

        header_row = [TableCell(paragraph=cell(text, header_style, i), shading=header_bg)
                      for i, text in enumerate(data.header)]
        data_rows = []
        for row in data.rows:
            padded = (list(row) + [""] * columns)[:columns]
            data_rows.append([TableCell(paragraph=cell(text, cell_style, i)) for i, text in enumerate(padded)])

        return [TableNode(
            header_row=header_row,
            data_rows=data_rows,
            column_widths=[column_width] * columns,
            borders={side: replace(border) for side in
                     ("top", "bottom", "left", "right", "insideH", "insideV")},
            width=total_width,
            alignment=default_alignment,
        )]

    # -- block quotes --------------------------------------------------------
    def build_blockquote(self, token: Mapping[str, Any]) -> list[DocumentNode]:
        styles = self.styles
        body = self.body_style()
        text = "\n".join(line.lstrip() for line in strip_quote_markers(token_text(token)).split("\n"))
        chunks = [chunk.strip("\n") for chunk in re.split(r"\n\s*\n", text) if chunk.strip()] or [""]

        quote_style = RunStyle(
            font=styles.text("blockquote.font", body.font),
            size=styles.number("blockquote.size", body.size),
            color=styles.color("blockquote.color", body.color),
        )
        line, rule = self.line_spacing()
        border = Border(style="single", size=12, space=15,
                        color=styles.color("blockquote.borderColor", "000000"))
        return [ParagraphNode(
            kind="blockquote",
            runs=self.styled_runs(chunk, quote_style),
            alignment="justified",
            spacing=Spacing(before=120, after=120, line=line, line_rule=rule),
            indent=Indent(left=int(styles.number("blockquote.leftIndent", 800)),
                          first_line=int(styles.number("blockquote.firstLineIndent", 800))),
            borders={"left": border},
        ) for chunk in chunks]

    # -- code ----------------------------------------------------------------
    def build_code(self, token: Mapping[str, Any]) -> list[DocumentNode]:
        code = token_text(token).replace("\r\n", "\n")
        if "\n" not in code and ("{" in code or ";" in code):
            code = repair_code_lines(code)
        code = code.rstrip("\n")

        styles = self.styles
        border_color = styles.color("code.borderColor", "000000")
        return [ParagraphNode(
            kind="code",
            runs=[StyledRun(
                text=code,
                font=styles.text("code.font", "Courier New"),
                size=styles.number("code.size", 10),
                color=styles.color("code.color", "333333"),
            )],
            alignment="left",
            spacing=Spacing(before=240, after=240, line=360, line_rule="auto"),
            indent=Indent(left=600, right=600),
            shading=styles.color("code.backgroundColor", "F5F5F5"),
            borders={side: Border(style="single", size=4, color=border_color)
                     for side in ("top", "bottom", "left", "right")},
        )]

    # -- images --------------------------------------------------------------
    def build_image(self, token: Mapping[str, Any]) -> list[DocumentNode]:
        alt = str(token.get("text") or token.get("alt") or token.get("title") or "")
        match = _ALT_IN_MARKDOWN_RE.search(alt)
        if match:
            alt = match.group(1)
        href = str(token.get("href") or token.get("src") or "").strip()
        alignment = self.alignment("image.alignment", "center")

        try:
            if is_data_url(href):
                image = decode_data_url(href, alt)
            else:
                image = self.images.get(href)
        except RecoverableElementError as exc:
            LOGGER.warning("Image %r replaced by placeholder: %s", alt or href[:30], exc)
            return [self.image_placeholder(alt, str(exc), alignment)]

        if image is None:
            short = href if len(href) <= 30 else href[:30] + "..."
            return [self.image_placeholder(alt, f"image not available: {short}", alignment)]

        width, height = fit_box(
            image,
            int(self.styles.number("image.maxWidth", DEFAULT_MAX_WIDTH)),
            int(self.styles.number("image.maxHeight", DEFAULT_MAX_HEIGHT)),
        )
        body = self.body_style()
        return [ParagraphNode(
            kind="image",
            runs=[StyledRun(text="", font=body.font, size=body.size, color=body.color,
                            picture=Picture(image=replace(image, alt_text=alt or image.alt_text),
                                            width=width, height=height))],
            alignment=alignment,
            spacing=Spacing(before=200, after=200),
        )]

    def image_placeholder(self, alt: str, reason: str, alignment: str = "center") -> ParagraphNode:
        body = self.body_style()
        label = f"Image: {alt} ({reason})" if alt else f"Image ({reason})"
        return ParagraphNode(
            kind="image_placeholder",
            runs=[StyledRun(text=label, font=body.font, size=body.size, color=body.color, italic=True)],
            alignment=alignment,
            spacing=Spacing(before=200, after=200),
            borders={side: Border(style="dashed", size=4, color="AAAAAA")
                     for side in ("top", "bottom", "left", "right")},
            shading="F5F5F5",
        )

    # -- footnotes & rules ---------------------------------------------------
    def build_footnote(self, token: Mapping[str, Any]) -> list[DocumentNode]:
        body = self.body_style()
        label = token.get("label")
        label = "" if label is None else str(label)
        style = RunStyle(
            font=self.styles.text("footnote.font", body.font),
            size=self.footnote_size(body.size),
            color=self.styles.color("footnote.color", body.color),
        )
        marker = StyledRun(text=f"[{label}] ", font=style.font, size=style.size,
                           color=style.color, superscript=True)
        return [ParagraphNode(
            kind="footnote",
            runs=[marker] + self.styled_runs(token_text(token), style),
            alignment="left",
            spacing=Spacing(before=120, after=120,
                            line=int(round(self.styles.number("paragraph.lineSpacing", 1.5) * 240)),
                            line_rule="auto"),
        )]

    def build_horizontal_rule(self, token: Mapping[str, Any] | None = None) -> list[DocumentNode]:
        return [ParagraphNode(
            kind="hr",
            borders={"bottom": Border(style="single", size=6, color="AAAAAA")},
            spacing=Spacing(before=240, after=240),
        )]
