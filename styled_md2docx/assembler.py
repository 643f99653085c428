"""Document assembly: token stream in, :class:`DocumentModel` out."""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

from styled_md2docx.builders import SOLE_IMAGE_RE, ElementBuilders, token_text
from styled_md2docx.errors import FatalAssemblyError
from styled_md2docx.images import ImagePipeline, is_data_url
from styled_md2docx.model import DocumentGrid, DocumentModel, DocumentNode, Margins, PageGeometry, ParagraphNode
from styled_md2docx.numbering import NumberingRegistry
from styled_md2docx.styles import StyleResolver, merge, parse_inline_style, strip_inline_style
from styled_md2docx.tokens import lex, strip_front_matter
from styled_md2docx.writer import DocxWriter

LOGGER = logging.getLogger(__name__)

PAGE_SIZES = {
    "A4": (11906, 16838),
    "LETTER": (12240, 15840),
    "LEGAL": (12240, 20160),
}
DEFAULT_MARGINS = {"top": 2099, "bottom": 1984, "left": 1587, "right": 1474}
FOOTNOTE_TITLE_LEVEL = 3


def extract_footnotes(tokens: list[Any]) -> tuple[dict[str, str], list[Any]]:
    """Split footnote definitions from the body tokens.

    Returns ``(footnotes, body)``; a later definition of the same label wins.
    """
    footnotes: dict[str, str] = {}
    body = []
    for token in tokens:
        if isinstance(token, Mapping) and token.get("type") == "footnoteDefinition":
            label = token.get("label")
            if label is None or str(label) == "":
                LOGGER.warning("Dropping footnote definition without a label")
                continue
            footnotes[str(label)] = token_text(token)
        else:
            body.append(token)
    return footnotes, body


def image_references(tokens: Iterable[Any]) -> list[str]:
    """Collect the non-inline image sources the builders will ask for."""
    refs = []
    for token in tokens:
        if not isinstance(token, Mapping):
            continue
        href = None
        if token.get("type") == "image":
            href = token.get("href") or token.get("src")
        elif token.get("type") == "paragraph":
            match = SOLE_IMAGE_RE.match(token_text(token).strip())
            if match:
                href = match.group(2)
        if href and not is_data_url(str(href)):
            refs.append(str(href).strip())
    return refs


def page_geometry(styles: StyleResolver) -> PageGeometry:
    size_name = styles.text("document.pageSize", "A4").strip().upper()
    if size_name not in PAGE_SIZES:
        LOGGER.warning("Unknown page size %r, using A4", size_name)
        size_name = "A4"
    width, height = PAGE_SIZES[size_name]
    orientation = styles.text("document.pageOrientation", "portrait").strip().lower()
    if orientation == "landscape":
        width, height = height, width
    else:
        orientation = "portrait"

    margins = Margins(**{
        side: int(styles.number(f"document.margins.{side}", default))
        for side, default in DEFAULT_MARGINS.items()
    })
    geometry = PageGeometry(width=width, height=height, orientation=orientation, margins=margins)

    chars = int(styles.number("document.grid.charPerLine", 0))
    lines = int(styles.number("document.grid.linePerPage", 0))
    if chars > 0 and lines > 0:
        geometry.grid = DocumentGrid(
            chars_per_line=chars,
            lines_per_page=lines,
            char_pitch=geometry.content_width // chars,
            line_pitch=geometry.content_height // lines,
        )
    return geometry


class DocumentAssembler:
    """Turns a token stream into a :class:`DocumentModel`.

    ``styles`` may be a :class:`StyleResolver` or a plain override mapping.
    Without an ``image_pipeline`` only ``data:`` images are embedded; every
    other image becomes a placeholder.
    """

    def __init__(self, styles: StyleResolver | Mapping[str, Any] | None = None,
                 image_pipeline: ImagePipeline | None = None):
        if isinstance(styles, StyleResolver):
            self.styles = styles
        else:
            self.styles = StyleResolver(styles)
        self.image_pipeline = image_pipeline

    @staticmethod
    def _validate(tokens: Any) -> list[Any]:
        if tokens is None:
            raise FatalAssemblyError("token stream is missing")
        if isinstance(tokens, (str, bytes, Mapping)):
            raise FatalAssemblyError(f"token stream must be a sequence of tokens, not {type(tokens).__name__}")
        try:
            return list(tokens)
        except TypeError as exc:
            raise FatalAssemblyError(f"token stream is not iterable: {type(tokens).__name__}") from exc

    def convert(self, tokens: Iterable[Any]) -> DocumentModel:
        tokens = self._validate(tokens)
        footnotes, body = extract_footnotes(tokens)

        images = {}
        if self.image_pipeline is not None:
            refs = image_references(body)
            if refs:
                LOGGER.info("Fetching %d image(s)", len(set(refs)))
                images = self.image_pipeline.fetch_all(refs)

        numbering = NumberingRegistry(self.styles)
        builders = ElementBuilders(self.styles, images, numbering)

        nodes: list[DocumentNode] = []
        list_instance = 0
        for token in body:
            built = builders.build(token)
            if isinstance(token, Mapping) and token.get("type") == "list":
                list_instance += 1
                start = token.get("start") or 1
                for node in built:
                    if isinstance(node, ParagraphNode) and node.numbering is not None:
                        node.numbering.instance = list_instance
                        node.numbering.start = int(start) if str(start).isdigit() else 1
            nodes.extend(built)

        nodes.extend(self._footnote_section(builders, footnotes))
        LOGGER.debug("Assembled %d node(s), %d footnote(s)", len(nodes), len(footnotes))
        return DocumentModel(
            nodes=nodes,
            numbering=numbering.schemes(),
            page=page_geometry(self.styles),
            footnotes=footnotes,
        )

    def _footnote_section(self, builders: ElementBuilders, footnotes: dict[str, str]) -> list[DocumentNode]:
        if not footnotes:
            return []
        title = self.styles.text("footnote.title", "Footnotes")
        nodes: list[DocumentNode] = []
        nodes.extend(builders.build_horizontal_rule())
        nodes.extend(builders.build_heading({"type": "heading", "depth": FOOTNOTE_TITLE_LEVEL, "text": title},
                                            use_prefix=False))
        for label in sorted(footnotes):
            nodes.extend(builders.build({"type": "footnote", "label": label, "text": footnotes[label]}))
        return nodes


def convert_markdown(markdown: str, styles: StyleResolver | Mapping[str, Any] | None = None,
                     image_pipeline: ImagePipeline | None = None,
                     overrides: Mapping[str, Any] | None = None) -> DocumentModel:
    """Lex *markdown* and assemble it.

    Style layers, lowest first: *styles* (a resolver or an override mapping),
    the document's own ``<!-- docx-style ... -->`` comment, then *overrides*.
    """
    content = strip_front_matter(markdown or "")
    inline = parse_inline_style(content)
    content = strip_inline_style(content)
    if inline:
        LOGGER.info("Inline style applied: %s", ", ".join(sorted(inline)))
    if inline or overrides:
        layered = merge(inline, overrides)
        if isinstance(styles, StyleResolver):
            styles = StyleResolver(layered, defaults=styles.as_dict())
        else:
            styles = merge(styles or {}, layered)
    return DocumentAssembler(styles, image_pipeline).convert(lex(content))


def markdown_to_docx(input_path: str | Path, output_path: str | Path,
                     styles: StyleResolver | Mapping[str, Any] | None = None,
                     overrides: Mapping[str, Any] | None = None,
                     allow_remote_images: bool = True) -> DocumentModel:
    """Convert a Markdown file into a ``.docx`` file and return the model.

    Relative image paths resolve against the input file's directory.
    """
    input_path = os.path.abspath(input_path)
    content = Path(input_path).read_text(encoding="utf-8")
    with ImagePipeline(base_dir=os.path.dirname(input_path), allow_remote=allow_remote_images) as pipeline:
        model = convert_markdown(content, styles, pipeline, overrides)
    DocxWriter(model).save(output_path)
    return model
