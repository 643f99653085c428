"""In-memory document model produced by the builders and consumed by the writer.

The model is a flat, ordered sequence of paragraph and table nodes. Nesting
(list levels, quote depth) is expressed through indent and numbering fields,
never through parent/child links.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Union


@dataclass
class InlineRun:
    """A span of inline Markdown sharing one style combination."""

    kind: str
    content: str
    url: str | None = None
    label: str | None = None
    start: int = 0
    end: int = 0


@dataclass
class ImageData:
    """Image bytes plus what is known about them.

    ``width`` and ``height`` are pixel dimensions; ``None`` when the pipeline
    could not read them.
    """

    mime_type: str
    data: bytes
    width: int | None = None
    height: int | None = None
    alt_text: str = ""


@dataclass
class Picture:
    """An image laid out at a concrete size (twips)."""

    image: ImageData
    width: int
    height: int


@dataclass
class StyledRun:
    """An inline run with every style attribute resolved to a concrete value."""

    text: str
    font: str
    size: float
    color: str
    bold: bool = False
    italic: bool = False
    strike: bool = False
    underline: bool = False
    superscript: bool = False
    url: str | None = None
    picture: Picture | None = None


@dataclass
class Spacing:
    before: int = 0
    after: int = 0
    line: int | None = None
    line_rule: str = "auto"


@dataclass
class Indent:
    left: int = 0
    right: int = 0
    first_line: int = 0
    hanging: int = 0


@dataclass
class Border:
    style: str = "single"
    size: int = 4
    color: str = "000000"
    space: int = 0


@dataclass
class NumberingRef:
    """Points a paragraph at a numbering scheme level.

    ``instance`` separates independent lists that share a scheme so that
    ordered numbering restarts for each of them at ``start``.
    """

    scheme: str
    level: int
    instance: int = 0
    start: int = 1


@dataclass
class ParagraphNode:
    runs: list[StyledRun] = field(default_factory=list)
    alignment: str = "left"
    spacing: Spacing = field(default_factory=Spacing)
    indent: Indent = field(default_factory=Indent)
    numbering: NumberingRef | None = None
    borders: dict[str, Border] = field(default_factory=dict)
    shading: str | None = None
    style_name: str | None = None
    kind: str = "paragraph"

    @property
    def text(self) -> str:
        return "".join(run.text for run in self.runs)


@dataclass
class TableCell:
    paragraph: ParagraphNode
    shading: str | None = None


@dataclass
class TableNode:
    header_row: list[TableCell]
    data_rows: list[list[TableCell]]
    column_widths: list[int]
    borders: dict[str, Border] = field(default_factory=dict)
    width: int = 8000
    alignment: str = "center"
    kind: str = "table"


DocumentNode = Union[ParagraphNode, TableNode]


@dataclass
class NumberingLevel:
    level: int
    format: str
    text: str
    indent: int
    hanging: int
    font: str
    alignment: str = "left"
    start: int = 1


@dataclass
class NumberingScheme:
    name: str
    levels: list[NumberingLevel]


@dataclass
class Margins:
    top: int
    bottom: int
    left: int
    right: int


@dataclass
class DocumentGrid:
    """Character grid; pitches are twips derived from the page geometry."""

    chars_per_line: int
    lines_per_page: int
    char_pitch: int
    line_pitch: int


@dataclass
class PageGeometry:
    width: int
    height: int
    orientation: str
    margins: Margins
    grid: DocumentGrid | None = None

    @property
    def content_width(self) -> int:
        return self.width - self.margins.left - self.margins.right

    @property
    def content_height(self) -> int:
        return self.height - self.margins.top - self.margins.bottom


@dataclass
class DocumentModel:
    nodes: list[DocumentNode]
    numbering: dict[str, NumberingScheme]
    page: PageGeometry
    footnotes: dict[str, str] = field(default_factory=dict)

    @property
    def paragraphs(self) -> list[ParagraphNode]:
        return [node for node in self.nodes if isinstance(node, ParagraphNode)]

    @property
    def tables(self) -> list[TableNode]:
        return [node for node in self.nodes if isinstance(node, TableNode)]
