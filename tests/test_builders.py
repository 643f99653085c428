from __future__ import annotations

import pytest

from styled_md2docx.builders import ElementBuilders, ingest_table, normalize_cell, repair_code_lines
from styled_md2docx.model import ImageData, ParagraphNode, TableNode
from styled_md2docx.styles import StyleResolver


def _only(nodes):
    assert len(nodes) == 1
    return nodes[0]


# -- headings -----------------------------------------------------------------
def test_heading_with_prefix(builders: ElementBuilders) -> None:
    node = _only(builders.build({"type": "heading", "depth": 2, "text": "Overview"}))

    assert node.kind == "heading"
    assert node.style_name == "Heading 2"
    assert node.runs[0].text == "一、Overview"
    assert node.runs[0].font == "黑体"
    assert node.runs[0].size == 16
    assert node.runs[0].bold is True
    assert node.alignment == "left"


def test_heading_level_one_defaults(builders: ElementBuilders) -> None:
    node = _only(builders.build({"type": "heading", "depth": 1, "text": "Report"}))

    assert node.text == "Report"
    assert node.runs[0].font == "方正小标宋简体"
    assert node.runs[0].size == 22
    assert node.alignment == "center"
    assert node.spacing.before == 240


def test_heading_indent_and_inline_styles(builders: ElementBuilders) -> None:
    node = _only(builders.build({"type": "heading", "depth": 4, "text": "Use **this**"}))

    assert node.indent.left == 800
    assert node.text == "1.Use this"
    assert [run.bold for run in node.runs] == [False, True]


def test_heading_cascades_to_generic_then_constant() -> None:
    builders = ElementBuilders(StyleResolver(defaults={"heading": {"font": "Arial", "bold": True}}))

    node = _only(builders.build({"type": "heading", "depth": 3, "text": "T"}))

    assert node.runs[0].font == "Arial"
    assert node.runs[0].bold is True
    assert node.runs[0].size == 16
    assert node.text == "T"


def test_heading_bold_constant_is_level_one_only() -> None:
    builders = ElementBuilders(StyleResolver(defaults={}))

    h1 = _only(builders.build({"type": "heading", "depth": 1, "text": "A"}))
    h2 = _only(builders.build({"type": "heading", "depth": 2, "text": "B"}))

    assert h1.runs[0].bold is True
    assert h2.runs[0].bold is False
    assert h2.text == "B"


def test_heading_depth_is_clamped(builders: ElementBuilders) -> None:
    node = _only(builders.build({"type": "heading", "depth": 9, "text": "deep"}))
    assert node.style_name == "Heading 6"


# -- paragraphs ---------------------------------------------------------------
def test_paragraph_defaults(builders: ElementBuilders) -> None:
    node = _only(builders.build({"type": "paragraph", "text": "Hello **world**"}))

    assert [(run.text, run.bold) for run in node.runs] == [("Hello ", False), ("world", True)]
    assert node.runs[0].font == "仿宋_GB2312"
    assert node.runs[0].color == "000000"
    assert node.indent.first_line == 800
    assert node.alignment == "justified"
    assert (node.spacing.line, node.spacing.line_rule) == (360, "auto")


def test_paragraph_exact_line_spacing() -> None:
    builders = ElementBuilders(StyleResolver({"paragraph": {"lineSpacingRule": "exact", "lineSpacing": 28}}))

    node = _only(builders.build({"type": "paragraph", "text": "x"}))

    assert (node.spacing.line, node.spacing.line_rule) == (560, "exact")


def test_paragraph_link_and_code_runs(builders: ElementBuilders) -> None:
    node = _only(builders.build({"type": "paragraph", "text": "Go to [site](https://x.io) or run `ls`"}))

    link = node.runs[1]
    assert (link.text, link.url, link.color, link.underline) == ("site", "https://x.io", "0066CC", True)
    code = node.runs[3]
    assert (code.text, code.font, code.size, code.color) == ("ls", "Courier New", 10, "333333")


def test_footnote_reference_is_superscript(builders: ElementBuilders) -> None:
    node = _only(builders.build({"type": "paragraph", "text": "fact[^1]"}))

    ref = node.runs[1]
    assert ref.text == "[1]"
    assert ref.superscript is True
    assert ref.size == 13


def test_paragraph_holding_only_an_image_is_an_image(builders: ElementBuilders, png_data_url: str) -> None:
    node = _only(builders.build({"type": "paragraph", "text": f"![logo]({png_data_url})"}))
    assert node.kind == "image"


# -- lists --------------------------------------------------------------------
def test_list_nesting_is_capped(builders: ElementBuilders, list_token) -> None:
    item = {"text": "l4", "items": []}
    for name in ("l3", "l2", "l1", "l0"):
        item = {"text": name, "items": [item]}

    nodes = builders.build(list_token(item))

    assert [node.text for node in nodes] == ["l0", "l1", "l2", "l3", "l4"]
    assert [node.numbering.level for node in nodes] == [0, 1, 2, 2, 2]
    assert [node.indent.left for node in nodes] == [720, 1440, 2160, 2160, 2160]
    assert all(node.numbering.scheme == "bulletList" for node in nodes)
    assert all(node.indent.hanging == 360 for node in nodes)


def test_ordered_list_level_fonts(builders: ElementBuilders, list_token) -> None:
    nodes = builders.build(list_token({"text": "top", "items": [{"text": "sub", "items": []}]}, ordered=True))

    top, sub = nodes
    assert top.numbering.scheme == "orderedList"
    assert (top.runs[0].font, top.runs[0].bold) == ("黑体", True)
    assert (sub.runs[0].font, sub.runs[0].bold) == ("楷体", False)


def test_manual_numbers_and_bullets_are_stripped(builders: ElementBuilders, list_token) -> None:
    ordered = builders.build(list_token("1. First", "一、甲", "2) Second", ordered=True))
    bullets = builders.build(list_token("● dot", "• dot"))

    assert [node.text for node in ordered] == ["First", "甲", "Second"]
    assert [node.text for node in bullets] == ["dot", "dot"]


def test_decimal_text_keeps_its_number(builders: ElementBuilders, list_token) -> None:
    nodes = builders.build(list_token("1.5 million users", ordered=True))
    assert nodes[0].text == "1.5 million users"


def test_pasted_star_splits_into_sub_items(builders: ElementBuilders, list_token) -> None:
    nodes = builders.build(list_token("alpha * beta"))

    assert [(node.text, node.numbering.level) for node in nodes] == [("alpha", 0), ("beta", 1)]


def test_task_list(builders: ElementBuilders, list_token) -> None:
    nodes = builders.build(list_token("[x] done", "[ ] todo"))

    assert [node.kind for node in nodes] == ["task_item", "task_item"]
    assert [node.runs[0].text for node in nodes] == ["☑", "☐"]
    assert nodes[0].text == "☑ done"
    assert all(node.numbering is None for node in nodes)
    assert nodes[0].indent.left == 720


# -- tables -------------------------------------------------------------------
@pytest.mark.parametrize(
    "cell, expected",
    [
        ("plain", "plain"),
        ('{"text": "json"}', "json"),
        ({"text": "map"}, "map"),
        (None, ""),
        (5, "5"),
        ('{"text": broken', '{"text": broken'),
        (["a", {"text": "b"}], "a b"),
    ],
)
def test_normalize_cell(cell, expected) -> None:
    assert normalize_cell(cell) == expected


def test_table_rows_are_padded_and_truncated(builders: ElementBuilders) -> None:
    table = _only(builders.build({"type": "table", "header": ["A", "B"], "rows": [["1"], ["x", "y", "z"]]}))

    assert isinstance(table, TableNode)
    assert table.column_widths == [4000, 4000]
    assert [[cell.paragraph.text for cell in row] for row in table.data_rows] == [["1", ""], ["x", "y"]]
    header = table.header_row[0]
    assert header.shading == "E6E6E6"
    assert header.paragraph.runs[0].bold is True
    assert header.paragraph.runs[0].size == 14
    assert set(table.borders) == {"top", "bottom", "left", "right", "insideH", "insideV"}


def test_table_cells_accept_mixed_shapes(builders: ElementBuilders) -> None:
    table = _only(builders.build({
        "type": "table",
        "header": [{"text": "Name"}, '{"text": "Value"}'],
        "rows": [[None, 3]],
    }))

    assert [cell.paragraph.text for cell in table.header_row] == ["Name", "Value"]
    assert [cell.paragraph.text for cell in table.data_rows[0]] == ["", "3"]


def test_table_parsed_from_raw_text() -> None:
    data = ingest_table({"type": "table", "text": "| H1 | H2 |\n|---|:---:|\n| a | b |\n"})

    assert data.header == ["H1", "H2"]
    assert data.rows == [["a", "b"]]


def test_table_column_alignment(builders: ElementBuilders) -> None:
    table = _only(builders.build({"type": "table", "header": ["A", "B"], "rows": [["1", "2"]],
                                  "align": ["right", None]}))

    assert [cell.paragraph.alignment for cell in table.data_rows[0]] == ["right", "center"]


def test_empty_table_becomes_error_line(builders: ElementBuilders) -> None:
    node = _only(builders.build({"type": "table", "header": [], "rows": []}))

    assert node.kind == "error"
    assert node.text == "Conversion error (table): Invalid table data"
    assert node.runs[0].color == "FF0000"


# -- blockquote & code --------------------------------------------------------
def test_blockquote_splits_on_blank_lines(builders: ElementBuilders) -> None:
    nodes = builders.build({"type": "blockquote", "text": "> first\n>\n> second"})

    assert [node.text for node in nodes] == ["first", "second"]
    quote = nodes[0]
    assert quote.borders["left"].color == "CCCCCC"
    assert quote.borders["left"].size == 12
    assert quote.runs[0].color == "666666"
    assert (quote.indent.left, quote.indent.first_line) == (800, 800)


def test_code_block(builders: ElementBuilders) -> None:
    node = _only(builders.build({"type": "code", "text": "x = 1\ny = 2\n", "lang": "python"}))

    assert node.kind == "code"
    assert node.text == "x = 1\ny = 2"
    assert node.runs[0].font == "Courier New"
    assert node.shading == "F5F5F5"
    assert set(node.borders) == {"top", "bottom", "left", "right"}


def test_single_line_code_gets_line_breaks_back(builders: ElementBuilders) -> None:
    node = _only(builders.build({"type": "code", "text": "int a = 1; int b = 2;"}))
    assert node.text == "int a = 1;\nint b = 2;"


def test_repair_code_lines_indents_closing_braces() -> None:
    assert repair_code_lines("if (x) { y(); }") == "if (x) {\ny();\n  }"


# -- images -------------------------------------------------------------------
def test_data_url_image(builders: ElementBuilders, png_data_url: str) -> None:
    node = _only(builders.build({"type": "image", "text": "chart", "href": png_data_url}))

    picture = node.runs[0].picture
    assert node.kind == "image"
    assert node.alignment == "center"
    assert (picture.width, picture.height) == (600, 450)
    assert picture.image.alt_text == "chart"


def test_webp_image_becomes_placeholder(builders: ElementBuilders, webp_data_url: str) -> None:
    node = _only(builders.build({"type": "image", "text": "pic", "href": webp_data_url}))

    assert node.kind == "image_placeholder"
    assert node.text == "Image: pic (unsupported image format image/webp)"
    assert node.runs[0].italic is True
    assert node.shading == "F5F5F5"
    assert node.borders["top"].style == "dashed"


def test_missing_image_becomes_placeholder(builders: ElementBuilders) -> None:
    node = _only(builders.build({"type": "image", "text": "chart", "href": "https://example.com/c.png"}))

    assert node.kind == "image_placeholder"
    assert node.text == "Image: chart (image not available: https://example.com/c.png)"


def test_image_without_dimensions_uses_fallback_box(styles: StyleResolver) -> None:
    image = ImageData(mime_type="image/png", data=b"\x89PNG", width=None, height=None)
    builders = ElementBuilders(styles, images={"a.png": image})

    node = _only(builders.build({"type": "image", "text": "a", "href": "a.png"}))

    assert (node.runs[0].picture.width, node.runs[0].picture.height) == (6000, 4500)


def test_large_image_is_scaled_to_fit(styles: StyleResolver) -> None:
    image = ImageData(mime_type="image/png", data=b"\x89PNG", width=1000, height=500)
    builders = ElementBuilders(styles, images={"big.png": image})

    node = _only(builders.build({"type": "image", "text": "big", "href": "big.png"}))

    assert (node.runs[0].picture.width, node.runs[0].picture.height) == (6000, 3000)


# -- footnotes, rules, misc ---------------------------------------------------
def test_footnote_paragraph(builders: ElementBuilders) -> None:
    node = _only(builders.build({"type": "footnote", "label": "1", "text": "Source"}))

    assert node.runs[0].text == "[1] "
    assert node.runs[0].superscript is True
    assert node.runs[0].size == 13
    assert node.text == "[1] Source"


def test_horizontal_rule(builders: ElementBuilders) -> None:
    node = _only(builders.build({"type": "hr"}))

    assert node.kind == "hr"
    assert node.runs == []
    assert node.borders["bottom"].style == "single"


def test_space_produces_nothing(builders: ElementBuilders) -> None:
    assert builders.build({"type": "space"}) == []


def test_html_is_stripped_to_text(builders: ElementBuilders) -> None:
    assert _only(builders.build({"type": "html", "text": "<div>hi</div>"})).text == "hi"
    assert builders.build({"type": "html", "text": "<br/>"}) == []


def test_unknown_token_with_text_is_a_paragraph(builders: ElementBuilders) -> None:
    node = _only(builders.build({"type": "mystery", "text": "keep me"}))
    assert isinstance(node, ParagraphNode)
    assert node.text == "keep me"


def test_non_mapping_token_is_reported(builders: ElementBuilders) -> None:
    node = _only(builders.build("not a token"))
    assert node.kind == "error"


def test_builder_failure_becomes_error_line(builders: ElementBuilders) -> None:
    class Exploding:
        def __str__(self) -> str:
            raise RuntimeError("boom")

    node = _only(builders.build({"type": "heading", "depth": 1, "text": Exploding()}))

    assert node.text == "Conversion error (heading): boom"
