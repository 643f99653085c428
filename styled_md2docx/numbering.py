"""Bullet and ordered list numbering schemes."""

from __future__ import annotations

from styled_md2docx.model import NumberingLevel, NumberingScheme
from styled_md2docx.styles import StyleResolver

BULLET_LIST = "bulletList"
ORDERED_LIST = "orderedList"

LEVEL_COUNT = 3
HANGING_INDENT = 360
DEFAULT_INDENT = 720
DEFAULT_BULLETS = ("●", "○", "■")
DEFAULT_FORMATS = ("%1.", "%2.", "%3.")


def clamp_level(level: int) -> int:
    """Map any nesting depth onto the defined levels; deeper lists reuse the last one."""
    return max(0, min(int(level), LEVEL_COUNT - 1))


class NumberingRegistry:
    """Builds the ``bulletList`` and ``orderedList`` schemes from list styles.

    Level *n* is indented ``indentLevel * (n + 1)`` twips with a fixed
    hanging indent.
    """

    def __init__(self, styles: StyleResolver):
        self.styles = styles
        self._schemes = {
            BULLET_LIST: self._build(BULLET_LIST, "unordered", "bullet", DEFAULT_BULLETS,
                                     "list.unordered.bulletChars"),
            ORDERED_LIST: self._build(ORDERED_LIST, "ordered", "decimal", DEFAULT_FORMATS,
                                      "list.ordered.numberFormats"),
        }

    def _build(self, name: str, kind: str, num_format: str,
               defaults: tuple[str, ...], glyph_path: str) -> NumberingScheme:
        base_indent = int(self.styles.number(f"list.{kind}.indentLevel", DEFAULT_INDENT)) or DEFAULT_INDENT
        font = self.styles.first(
            (f"list.{kind}.font", "paragraph.font"), "仿宋_GB2312"
        )
        glyphs = self.styles.sequence(glyph_path, list(defaults))
        levels = []
        for level in range(LEVEL_COUNT):
            glyph = glyphs[level] if level < len(glyphs) and glyphs[level] else defaults[level]
            levels.append(NumberingLevel(
                level=level,
                format=num_format,
                text=str(glyph),
                indent=base_indent * (level + 1),
                hanging=HANGING_INDENT,
                font=str(font),
            ))
        return NumberingScheme(name=name, levels=levels)

    def scheme(self, name: str) -> NumberingScheme:
        return self._schemes[name]

    def level(self, name: str, level: int) -> NumberingLevel:
        return self._schemes[name].levels[clamp_level(level)]

    def schemes(self) -> dict[str, NumberingScheme]:
        return dict(self._schemes)
