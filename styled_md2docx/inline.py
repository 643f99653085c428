"""Inline Markdown tokenizer.

Splits a run of inline text into :class:`~styled_md2docx.model.InlineRun`
objects with a single left-to-right scan. :data:`PRECEDENCE` lists the span
kinds; at each delimiter character the kinds that can start there are tried
in table order, so spans sharing a start offset come out in precedence order.

Emphasis kinds are *exclusive*: a match lying entirely inside a span of a
higher-ranked emphasis kind is dropped, so ``***x***`` is one bold-italic run
and never also bold or italic. The remaining kinds are independent and can
overlap emphasis spans; both runs are then emitted.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

from styled_md2docx.model import InlineRun


@dataclass(frozen=True)
class InlinePass:
    kind: str
    lead: str
    pattern: re.Pattern
    exclusive: bool = False


PRECEDENCE: tuple[InlinePass, ...] = (
    InlinePass("bold_italic", "*", re.compile(r"\*\*\*(.*?)\*\*\*"), exclusive=True),
    InlinePass("bold", "*", re.compile(r"\*\*(.*?)\*\*"), exclusive=True),
    InlinePass("italic", "*", re.compile(r"(?<!\*)\*(.*?)\*(?!\*)"), exclusive=True),
    InlinePass("strike", "~", re.compile(r"~~(.*?)~~")),
    InlinePass("underline", "<", re.compile(r"<u>(.*?)</u>")),
    InlinePass("code", "`", re.compile(r"`(.*?)`")),
    InlinePass("link", "[", re.compile(r"\[(.*?)\]\((.*?)\)")),
    InlinePass("footnote_ref", "[", re.compile(r"\[\^(.*?)\]")),
)


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        value = str(value)
    return value.replace("\r\n", "\n")


def _span(kind: str, match: re.Match) -> InlineRun:
    run = InlineRun(kind=kind, content=match.group(1), start=match.start(), end=match.end())
    if kind == "link":
        run.url = match.group(2).strip()
    elif kind == "footnote_ref":
        run.label = match.group(1)
    return run


class InlineLexer:
    """One scan over one string.

    ``resume[rank]`` is the offset where the next match of that kind may
    start; every match moves it past its end, accepted or not. ``open_emphasis``
    holds the accepted emphasis spans that still reach past the scan position,
    the only ones that can contain a later match.
    """

    def __init__(self, text: str, table: tuple[InlinePass, ...] = PRECEDENCE):
        self.text = text
        self.table = table
        self.resume = [0] * len(table)
        self.open_emphasis: list[tuple[int, InlineRun]] = []
        self.spans: list[InlineRun] = []
        leads = "".join(sorted({inline_pass.lead for inline_pass in table}))
        self._delimiters = re.compile(f"[{re.escape(leads)}]")

    def scan(self) -> list[InlineRun]:
        """Return every claimed span, ordered by start offset."""
        for delimiter in self._delimiters.finditer(self.text):
            self._scan_at(delimiter.start())
        return self.spans

    def _scan_at(self, pos: int) -> None:
        lead = self.text[pos]
        self.open_emphasis = [(rank, span) for rank, span in self.open_emphasis if span.end > pos]
        for rank, inline_pass in enumerate(self.table):
            if inline_pass.lead != lead or self.resume[rank] > pos:
                continue
            match = inline_pass.pattern.match(self.text, pos)
            if match is None:
                continue
            self.resume[rank] = match.end()
            if inline_pass.exclusive and self._outranked(rank, match.end()):
                continue
            span = _span(inline_pass.kind, match)
            self.spans.append(span)
            if inline_pass.exclusive:
                self.open_emphasis.append((rank, span))

    def _outranked(self, rank: int, end: int) -> bool:
        return any(other < rank and span.end >= end for other, span in self.open_emphasis)

    def tokenize(self) -> list[InlineRun]:
        spans = self.scan()
        text = self.text
        if not spans:
            return [InlineRun(kind="text", content=text, start=0, end=len(text))]

        runs: list[InlineRun] = []
        last_end = 0
        for span in spans:
            if span.start > last_end:
                runs.append(InlineRun(kind="text", content=text[last_end:span.start],
                                      start=last_end, end=span.start))
            runs.append(span)
            last_end = max(last_end, span.end)
        if last_end < len(text):
            runs.append(InlineRun(kind="text", content=text[last_end:], start=last_end, end=len(text)))
        return runs


def tokenize(text: Any) -> list[InlineRun]:
    """Tokenize *text* into ordered inline runs.

    Plain text comes back as a single ``text`` run, an empty string as a
    single empty ``text`` run. Unmatched delimiters are left as literal text.
    """
    return InlineLexer(_as_text(text)).tokenize()
