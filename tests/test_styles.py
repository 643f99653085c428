from __future__ import annotations

import json
from pathlib import Path

import pytest

from styled_md2docx.styles import (
    DEFAULT_STYLES,
    StyleResolver,
    load_style_file,
    merge,
    normalize_color,
    overrides_from_pairs,
    parse_inline_style,
    parse_style_lines,
    strip_inline_style,
)
from styled_md2docx.units import mm_to_twip, pixels_to_twips, twip_to_mm


def test_resolve_returns_configured_value(styles: StyleResolver) -> None:
    assert styles.resolve("heading.sizes.h2") == 16
    assert styles.resolve("heading.fonts.h3") == "楷体"


def test_resolve_missing_path_returns_fallback(styles: StyleResolver) -> None:
    assert styles.resolve("heading.sizes.h9", 99) == 99
    assert styles.resolve("nothing.here") is None
    assert styles.resolve("paragraph.size.deeper", "x") == "x"


def test_resolve_indexes_into_lists(styles: StyleResolver) -> None:
    assert styles.resolve("list.unordered.bulletChars.1") == "○"
    assert styles.resolve("list.unordered.bulletChars.7", "-") == "-"


def test_merge_is_recursive_for_mappings_and_replaces_lists() -> None:
    base = {"a": {"b": 1, "c": 2}, "arr": [1, 2, 3]}
    override = {"a": {"b": 3}, "arr": [9]}

    merged = merge(base, override)

    assert merged == {"a": {"b": 3, "c": 2}, "arr": [9]}
    assert base == {"a": {"b": 1, "c": 2}, "arr": [1, 2, 3]}
    assert override == {"a": {"b": 3}, "arr": [9]}


def test_overrides_do_not_leak_into_defaults() -> None:
    resolver = StyleResolver({"heading": {"sizes": {"h2": 30}}})

    assert resolver.number("heading.sizes.h2", 0) == 30
    assert resolver.number("heading.sizes.h1", 0) == 22
    assert DEFAULT_STYLES["heading"]["sizes"]["h2"] == 16


def test_update_returns_new_resolver(styles: StyleResolver) -> None:
    updated = styles.update("paragraph.size", 12)

    assert updated.number("paragraph.size", 0) == 12
    assert styles.number("paragraph.size", 0) == 16
    assert updated.text("paragraph.font", "") == "仿宋_GB2312"


def test_as_dict_is_a_copy(styles: StyleResolver) -> None:
    tree = styles.as_dict()
    tree["paragraph"]["size"] = 99
    assert styles.number("paragraph.size", 0) == 16


@pytest.mark.parametrize(
    "value, expected",
    [("#0066cc", "0066CC"), ("abc", "AABBCC"), ("#FFF", "FFFFFF"), ("red", None), (None, None), (0, "000000"), (1234567, None)],
)
def test_normalize_color(value, expected) -> None:
    assert normalize_color(value) == expected


def test_typed_accessors_fall_back_on_wrong_types() -> None:
    resolver = StyleResolver({"paragraph": {"color": "red", "size": "big", "font": 7}})

    assert resolver.color("paragraph.color", "#123456") == "123456"
    assert resolver.number("paragraph.size", 16) == 16
    assert resolver.text("paragraph.font", "SimSun") == "SimSun"


def test_number_and_flag_accept_strings() -> None:
    resolver = StyleResolver({"paragraph": {"size": "14", "lineSpacing": "1.25"}, "link": {"underline": "no"}})

    assert resolver.number("paragraph.size", 0) == 14
    assert resolver.number("paragraph.lineSpacing", 0) == 1.25
    assert resolver.flag("link.underline", True) is False


def test_parse_style_lines_coerces_values() -> None:
    overrides = parse_style_lines([
        "# comment",
        "heading.sizes.h2: 18",
        "paragraph.lineSpacing: 1.25",
        "link.underline: false",
        "paragraph.font: 'SimSun'",
        'list.unordered.bulletChars: ["-", "+"]',
        "not a setting",
    ])

    assert overrides == {
        "heading": {"sizes": {"h2": 18}},
        "paragraph": {"lineSpacing": 1.25, "font": "SimSun"},
        "link": {"underline": False},
        "list": {"unordered": {"bulletChars": ["-", "+"]}},
    }


def test_inline_style_comment_is_parsed_and_stripped() -> None:
    markdown = "<!-- docx-style\nparagraph.size: 12\ntable.headerBackground: CCCCCC\n-->\n\nBody"

    assert parse_inline_style(markdown) == {
        "paragraph": {"size": 12},
        "table": {"headerBackground": "CCCCCC"},
    }
    assert strip_inline_style(markdown).strip() == "Body"
    assert parse_inline_style("no comment here") == {}


def test_load_style_file_json(tmp_path: Path) -> None:
    path = tmp_path / "styles.json"
    path.write_text(json.dumps({"heading": {"fonts": {"h1": "Arial"}}}), encoding="utf-8")

    assert load_style_file(path) == {"heading": {"fonts": {"h1": "Arial"}}}


def test_load_style_file_rejects_json_array(tmp_path: Path) -> None:
    path = tmp_path / "styles.json"
    path.write_text("[1, 2]", encoding="utf-8")

    with pytest.raises(ValueError):
        load_style_file(path)


def test_load_style_file_key_value(tmp_path: Path) -> None:
    path = tmp_path / "house.style"
    path.write_text("document.pageSize: Letter\ndocument.margins.top: 1440\n", encoding="utf-8")

    assert load_style_file(path) == {"document": {"pageSize": "Letter", "margins": {"top": 1440}}}


def test_overrides_from_pairs() -> None:
    assert overrides_from_pairs(["heading.sizes.h2=18", "code.font=Consolas"]) == {
        "heading": {"sizes": {"h2": 18}},
        "code": {"font": "Consolas"},
    }


def test_mm_to_twip_known_values() -> None:
    assert mm_to_twip(10) == 567
    assert mm_to_twip(0) == 0
    assert twip_to_mm(567) == 10.0
    assert pixels_to_twips(100) == 1500


@pytest.mark.parametrize("mm", [0, 1, 10, 25.4, 37, 210, 297])
def test_mm_twip_round_trip_within_rounding(mm: float) -> None:
    assert abs(twip_to_mm(mm_to_twip(mm)) - mm) <= 0.015
