"""Style tree defaults, deep merge and dotted-path resolution.

Style configuration is a nested mapping such as::

    {"heading": {"sizes": {"h2": 16}}, "paragraph": {"font": "SimSun"}}

User overrides are deep-merged over :data:`DEFAULT_STYLES` once per
conversion. Builders read the merged tree through :class:`StyleResolver`,
always passing a local fallback so a missing path never reaches rendering.
"""

from __future__ import annotations

import copy
import json
import logging
import re
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Iterable

LOGGER = logging.getLogger(__name__)

_MISSING = object()

DEFAULT_STYLES: dict[str, Any] = {
    "document": {
        "pageSize": "A4",
        "pageOrientation": "portrait",
        "margins": {"top": 2099, "bottom": 1984, "left": 1587, "right": 1474},
        "grid": {"charPerLine": 28, "linePerPage": 22},
    },
    "heading": {
        "font": "方正小标宋简体",
        "color": "#000000",
        "fonts": {
            "h1": "方正小标宋简体",
            "h2": "黑体",
            "h3": "楷体",
            "h4": "仿宋_GB2312",
            "h5": "仿宋_GB2312",
            "h6": "仿宋_GB2312",
        },
        "sizes": {"h1": 22, "h2": 16, "h3": 16, "h4": 16, "h5": 16, "h6": 10.5},
        "colors": {
            "h1": "#000000",
            "h2": "#000000",
            "h3": "#000000",
            "h4": "#000000",
            "h5": "#000000",
            "h6": "#000000",
        },
        "bold": {"h1": False, "h2": True, "h3": False, "h4": False, "h5": False, "h6": False},
        "alignment": {
            "h1": "center",
            "h2": "left",
            "h3": "left",
            "h4": "left",
            "h5": "left",
            "h6": "left",
        },
        "indent": {"h1": 0, "h2": 0, "h3": 0, "h4": 800, "h5": 800, "h6": 0},
        "prefix": {"h1": "", "h2": "一、", "h3": "(一)", "h4": "1.", "h5": "(1)", "h6": ""},
        "usePrefix": {"h1": False, "h2": True, "h3": True, "h4": True, "h5": True, "h6": False},
    },
    "paragraph": {
        "font": "仿宋_GB2312",
        "size": 16,
        "color": "#000000",
        "firstLineIndent": 800,
        "alignment": "justified",
        "lineSpacingRule": "auto",
        "lineSpacing": 1.5,
        "spacing": 0,
    },
    "list": {
        "unordered": {
            "font": "仿宋_GB2312",
            "size": 16,
            "bulletChars": ["●", "○", "■"],
            "indentLevel": 720,
        },
        "ordered": {
            "font": "仿宋_GB2312",
            "size": 16,
            "numberFormats": ["%1.", "%2.", "%3."],
            "indentLevel": 720,
        },
        "task": {"completedChar": "☑", "uncompletedChar": "☐", "indentLevel": 720},
    },
    "table": {
        "borderColor": "#000000",
        "borderWidth": 4,
        "headerBackground": "#E6E6E6",
        "headerFont": "仿宋_GB2312",
        "fontSize": 14,
        "alignment": "center",
    },
    "code": {
        "font": "Courier New",
        "size": 10,
        "color": "#333333",
        "backgroundColor": "#F5F5F5",
    },
    "blockquote": {
        "font": "仿宋_GB2312",
        "size": 16,
        "color": "#666666",
        "borderColor": "#CCCCCC",
        "leftIndent": 800,
        "firstLineIndent": 800,
    },
    "image": {"alignment": "center", "maxWidth": 6000, "maxHeight": 8000},
    "link": {"color": "#0066CC", "underline": True},
    "footnote": {"title": "Footnotes"},
}

_HEX_RE = re.compile(r"^[0-9A-Fa-f]{6}$")


def merge(base: Mapping[str, Any], override: Mapping[str, Any] | None) -> dict[str, Any]:
    """Deep-merge *override* over *base* without mutating either.

    Nested mappings merge key by key; any other value (arrays included)
    replaces the base value wholesale.
    """
    result = copy.deepcopy(dict(base))
    if not override:
        return result
    for key, value in override.items():
        current = result.get(key)
        if isinstance(value, Mapping) and isinstance(current, Mapping):
            result[key] = merge(current, value)
        else:
            result[key] = copy.deepcopy(value)
    return result


def normalize_color(value: Any) -> str | None:
    """Return ``RRGGBB`` (upper case, no ``#``) or ``None`` if *value* is not a hex color."""
    if isinstance(value, int) and not isinstance(value, bool) and 0 <= value <= 999999:
        # all-digit colors such as 000000 arrive as ints from style files
        value = f"{value:06d}"
    if not isinstance(value, str):
        return None
    candidate = value.strip().lstrip("#")
    if len(candidate) == 3:
        candidate = "".join(ch * 2 for ch in candidate)
    if not _HEX_RE.match(candidate):
        return None
    return candidate.upper()


class StyleResolver:
    """Read-only view over the merged style tree."""

    def __init__(self, overrides: Mapping[str, Any] | None = None,
                 defaults: Mapping[str, Any] | None = None):
        self._tree = merge(DEFAULT_STYLES if defaults is None else defaults, overrides)

    # -- lookup --------------------------------------------------------------
    def resolve(self, path: str, fallback: Any = None) -> Any:
        """Walk *path* (``"heading.sizes.h2"``); return *fallback* if any segment is missing."""
        node: Any = self._tree
        for part in path.split("."):
            if isinstance(node, Mapping) and part in node:
                node = node[part]
            elif isinstance(node, (list, tuple)) and part.isdigit() and int(part) < len(node):
                node = node[int(part)]
            else:
                LOGGER.debug("Style path %s not set, using fallback %r", path, fallback)
                return fallback
        if node is None:
            LOGGER.debug("Style path %s is null, using fallback %r", path, fallback)
            return fallback
        return node

    def has(self, path: str) -> bool:
        return self.resolve(path, _MISSING) is not _MISSING

    def first(self, paths: Iterable[str], fallback: Any = None) -> Any:
        """Return the value of the first path that is set."""
        for path in paths:
            value = self.resolve(path, _MISSING)
            if value is not _MISSING:
                return value
        return fallback

    # -- typed accessors -----------------------------------------------------
    def text(self, path: str, fallback: str) -> str:
        value = self.resolve(path, fallback)
        return value if isinstance(value, str) else fallback

    def number(self, path: str, fallback: float) -> float:
        value = self.resolve(path, fallback)
        if isinstance(value, bool):
            return fallback
        if isinstance(value, (int, float)):
            return value
        if isinstance(value, str):
            try:
                return float(value) if "." in value else int(value)
            except ValueError:
                LOGGER.debug("Style path %s has non-numeric value %r", path, value)
        return fallback

    def flag(self, path: str, fallback: bool) -> bool:
        value = self.resolve(path, fallback)
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            return value.strip().lower() in ("true", "yes", "1")
        if isinstance(value, (int, float)):
            return bool(value)
        return fallback

    def color(self, path: str, fallback: str) -> str:
        color = normalize_color(self.resolve(path, fallback))
        if color is None:
            return normalize_color(fallback) or "000000"
        return color

    def sequence(self, path: str, fallback: list[Any]) -> list[Any]:
        value = self.resolve(path, fallback)
        if isinstance(value, (list, tuple)):
            return list(value)
        return list(fallback)

    # -- editor update path --------------------------------------------------
    def update(self, path: str, value: Any) -> "StyleResolver":
        """Return a new resolver with *path* set to *value*; this one is untouched."""
        return StyleResolver(path_to_override(path, value), defaults=self._tree)

    def as_dict(self) -> dict[str, Any]:
        return copy.deepcopy(self._tree)


def path_to_override(path: str, value: Any) -> dict[str, Any]:
    """Expand ``"a.b.c", 1`` into ``{"a": {"b": {"c": 1}}}``."""
    override: dict[str, Any] = {}
    node = override
    parts = path.split(".")
    for part in parts[:-1]:
        node = node.setdefault(part, {})
    node[parts[-1]] = value
    return override


# ---------------------------------------------------------------------------
# Style files & inline style comments
# ---------------------------------------------------------------------------
_DOCX_STYLE_RE = re.compile(r"<!--\s*docx-style\s*\n(.*?)-->", re.DOTALL)


def coerce_value(raw: str) -> Any:
    """Turn a ``key: value`` style value into a bool, number, list or string."""
    value = raw.strip().strip('"').strip("'")
    lowered = value.lower()
    if lowered in ("true", "yes"):
        return True
    if lowered in ("false", "no"):
        return False
    if value[:1] in ("[", "{"):
        try:
            return json.loads(value)
        except ValueError:
            return value
    try:
        return int(value)
    except ValueError:
        pass
    try:
        return float(value)
    except ValueError:
        return value


def parse_style_lines(lines: Iterable[str], separator: str = ":") -> dict[str, Any]:
    """Parse ``dotted.path: value`` lines into a nested override mapping."""
    overrides: dict[str, Any] = {}
    for line in lines:
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        if separator not in line:
            continue
        key, value = line.split(separator, 1)
        key = key.strip()
        if not key:
            continue
        overrides = merge(overrides, path_to_override(key, coerce_value(value)))
    return overrides


def parse_inline_style(text: str) -> dict[str, Any]:
    """Extract a ``<!-- docx-style ... -->`` configuration comment from Markdown."""
    match = _DOCX_STYLE_RE.search(text)
    if not match:
        return {}
    return parse_style_lines(match.group(1).strip().split("\n"))


def strip_inline_style(text: str) -> str:
    """Remove the docx-style comment from Markdown content."""
    return _DOCX_STYLE_RE.sub("", text)


def load_style_file(path: str | Path) -> dict[str, Any]:
    """Load overrides from a ``.json`` file or a ``key: value`` style file."""
    path = Path(path)
    content = path.read_text(encoding="utf-8")
    if path.suffix.lower() == ".json":
        data = json.loads(content)
        if not isinstance(data, Mapping):
            raise ValueError(f"Style file {path} must contain a JSON object")
        return dict(data)
    return parse_style_lines(content.strip().split("\n"))


def overrides_from_pairs(pairs: Iterable[str]) -> dict[str, Any]:
    """Parse CLI ``path=value`` pairs."""
    return parse_style_lines(pairs, separator="=")
