"""Markdown lexing: mistune AST flattened into the engine's token shapes.

The builders work on flat token mappings whose text fields still carry inline
Markdown (``**bold**``, ``[link](url)``, ``[^1]``) because inline styling is
resolved later by :mod:`styled_md2docx.inline`. mistune's inline children are
therefore turned back into Markdown source here.
"""

from __future__ import annotations

import re
from typing import Any, Callable

import mistune

# ---------------------------------------------------------------------------
# Text normalisation
# ---------------------------------------------------------------------------
_FRONT_MATTER_RE = re.compile(r"^---\s*\n.*?\n---\s*\n", re.DOTALL)
_ZERO_WIDTH_RE = re.compile("[\u200b\u200c\u200d\u2060\ufeff]")
_HEADING_NO_SPACE_RE = re.compile(r"^(#{1,6})([^#\s])", re.MULTILINE)
_FOOTNOTE_DEF_RE = re.compile(
    r"^\[\^([^\]\n]+)\]:[ \t]*(.*(?:\n(?:[ \t]{2,}|\t)\S.*)*)\n?", re.MULTILINE
)
_FENCE_RE = re.compile(r"^ {0,3}(`{3,}|~{3,})")


def strip_front_matter(text: str) -> str:
    return _FRONT_MATTER_RE.sub("", text, count=1)


def outside_fences(text: str, func: Callable[[str], str]) -> str:
    """Apply *func* to every stretch of *text* that is not fenced code.

    Fenced blocks (```` ``` ```` or ``~~~``) pass through untouched. A fence
    closes on a line of the same character at least as long as the opener; an
    unclosed fence runs to the end of the text.
    """
    parts: list[str] = []
    prose: list[str] = []
    fence = None
    for line in text.splitlines(keepends=True):
        match = _FENCE_RE.match(line)
        if fence is None:
            if match and not (match.group(1)[0] == "`" and "`" in line[match.end():]):
                parts.append(func("".join(prose)))
                prose = []
                fence = match.group(1)
                parts.append(line)
            else:
                prose.append(line)
            continue
        parts.append(line)
        if (match and match.group(1)[0] == fence[0] and len(match.group(1)) >= len(fence)
                and not line[match.end():].strip()):
            fence = None
    parts.append(func("".join(prose)))
    return "".join(parts)


def normalize_markdown(text: str) -> str:
    """Clean up pasted Markdown before parsing.

    Line endings become ``\\n``, zero-width characters and the BOM are
    dropped, and ``#Title`` gets the space ATX headings require
    outside fenced code.
    """
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    text = _ZERO_WIDTH_RE.sub("", text)
    return outside_fences(text, lambda prose: _HEADING_NO_SPACE_RE.sub(r"\1 \2", prose))


def extract_footnote_definitions(text: str) -> tuple[str, list[tuple[str, str]]]:
    """Pull ``[^label]: body`` definitions out of the Markdown source.

    Removing them before parsing keeps mistune from reading them as link
    reference definitions, so ``[^label]`` references survive as literal text.
    Lines inside fenced code are left alone.
    """
    definitions: list[tuple[str, str]] = []

    def collect(match: re.Match) -> str:
        body = "\n".join(line.strip() for line in match.group(2).split("\n"))
        definitions.append((match.group(1).strip(), body.strip()))
        return ""

    return outside_fences(text, lambda prose: _FOOTNOTE_DEF_RE.sub(collect, prose)), definitions


# ---------------------------------------------------------------------------
# Inline children -> Markdown source
# ---------------------------------------------------------------------------
_INLINE_WRAPPERS = {"strong": "**", "emphasis": "*", "strikethrough": "~~"}


def inline_markdown(tokens: Any) -> str:
    """Recursively turn mistune inline tokens back into Markdown text."""
    if tokens is None:
        return ""
    if isinstance(tokens, str):
        return tokens
    if isinstance(tokens, dict):
        tokens = [tokens]
    parts = []
    for tok in tokens:
        tp = tok.get("type", "")
        children = tok.get("children")
        attrs = tok.get("attrs") or {}
        if tp in ("text", "inline_html"):
            parts.append(tok.get("raw", ""))
        elif tp in _INLINE_WRAPPERS:
            marker = _INLINE_WRAPPERS[tp]
            parts.append(f"{marker}{inline_markdown(children)}{marker}")
        elif tp == "codespan":
            parts.append(f"`{tok.get('raw', '')}`")
        elif tp == "link":
            parts.append(f"[{inline_markdown(children)}]({attrs.get('url', '')})")
        elif tp == "image":
            parts.append(f"![{inline_markdown(children)}]({attrs.get('url', '')})")
        elif tp in ("softbreak", "linebreak"):
            parts.append("\n")
        elif children is not None:
            parts.append(inline_markdown(children))
        else:
            parts.append(tok.get("raw", tok.get("text", "")))
    return "".join(parts)


def block_markdown(tok: dict) -> str:
    """Text of a block token as it appears inside a quote or list item."""
    tp = tok.get("type", "")
    if tp in ("paragraph", "block_text", "heading"):
        return inline_markdown(tok.get("children"))
    if tp == "block_code":
        return tok.get("raw", "").rstrip("\n")
    if tp == "block_quote":
        return "\n\n".join(block_markdown(child) for child in tok.get("children", [])
                           if child.get("type") != "blank_line")
    if tp == "list":
        return "\n".join(block_markdown(item) for item in tok.get("children", []))
    if tp in ("list_item", "task_list_item"):
        return "\n".join(block_markdown(child) for child in tok.get("children", []))
    if tp == "blank_line":
        return ""
    return inline_markdown(tok.get("children")) if tok.get("children") else tok.get("raw", "")


# ---------------------------------------------------------------------------
# Block tokens -> engine tokens
# ---------------------------------------------------------------------------
def _list_items(tok: dict) -> list[dict]:
    items = []
    for item in tok.get("children", []):
        if item.get("type") not in ("list_item", "task_list_item"):
            continue
        lines: list[str] = []
        nested: list[dict] = []
        nested_ordered = None
        for child in item.get("children", []):
            if child.get("type") == "list":
                nested.extend(_list_items(child))
                nested_ordered = bool((child.get("attrs") or {}).get("ordered"))
            elif child.get("type") != "blank_line":
                lines.append(block_markdown(child))
        text = "\n".join(line for line in lines if line)
        if item.get("type") == "task_list_item":
            checked = (item.get("attrs") or {}).get("checked")
            text = ("[x] " if checked else "[ ] ") + text
        entry: dict[str, Any] = {"text": text, "items": nested}
        if nested_ordered is not None:
            entry["ordered"] = nested_ordered
        items.append(entry)
    return items


def _table(tok: dict) -> dict:
    header: list[str] = []
    rows: list[list[str]] = []
    align: list[str | None] = []
    for child in tok.get("children", []):
        ctype = child.get("type", "")
        if ctype == "table_head":
            cells = []
            for item in child.get("children", []):
                if item.get("type") == "table_row":
                    cells.extend(item.get("children", []))
                else:
                    cells.append(item)
            header = [inline_markdown(cell.get("children")) for cell in cells]
            align = [(cell.get("attrs") or {}).get("align") for cell in cells]
        elif ctype == "table_body":
            for row in child.get("children", []):
                if row.get("type") == "table_row":
                    rows.append([inline_markdown(cell.get("children")) for cell in row.get("children", [])])
    return {"type": "table", "header": header, "rows": rows, "align": align}


def _convert(tok: dict) -> dict | None:
    tp = tok.get("type", "")
    attrs = tok.get("attrs") or {}
    if tp == "heading":
        return {"type": "heading", "depth": attrs.get("level", 1), "text": inline_markdown(tok.get("children"))}
    if tp == "paragraph":
        children = tok.get("children") or []
        if len(children) == 1 and children[0].get("type") == "image":
            image = children[0]
            image_attrs = image.get("attrs") or {}
            return {"type": "image", "text": inline_markdown(image.get("children")),
                    "href": image_attrs.get("url", ""), "title": image_attrs.get("title")}
        return {"type": "paragraph", "text": inline_markdown(children)}
    if tp == "block_code":
        return {"type": "code", "text": tok.get("raw", ""), "lang": (attrs.get("info") or "").strip()}
    if tp == "block_quote":
        return {"type": "blockquote", "text": block_markdown(tok)}
    if tp == "list":
        return {"type": "list", "ordered": bool(attrs.get("ordered")), "start": attrs.get("start") or 1,
                "items": _list_items(tok)}
    if tp == "table":
        return _table(tok)
    if tp == "thematic_break":
        return {"type": "hr"}
    if tp == "block_html":
        return {"type": "html", "text": tok.get("raw", "")}
    if tp == "blank_line":
        return None
    return {"type": tp or "unknown", "text": block_markdown(tok)}


def create_parser() -> mistune.Markdown:
    return mistune.create_markdown(renderer="ast", plugins=["table", "strikethrough", "task_lists"])


def lex(markdown: str) -> list[dict[str, Any]]:
    """Parse Markdown into the flat token stream the assembler consumes.

    Footnote definitions are appended as ``footnoteDefinition`` tokens after
    the body tokens.
    """
    text = normalize_markdown(markdown or "")
    text, definitions = extract_footnote_definitions(text)
    ast = create_parser()(text)
    tokens = [converted for converted in (_convert(tok) for tok in ast) if converted is not None]
    tokens.extend({"type": "footnoteDefinition", "label": label, "text": body} for label, body in definitions)
    return tokens
