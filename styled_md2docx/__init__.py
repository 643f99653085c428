"""Markdown to styled DOCX conversion."""

import logging

from styled_md2docx.assembler import DocumentAssembler, convert_markdown, markdown_to_docx
from styled_md2docx.builders import ElementBuilders
from styled_md2docx.errors import (
    FatalAssemblyError,
    RecoverableElementError,
    StyledDocxError,
    UnsupportedFormatError,
)
from styled_md2docx.images import ImagePipeline
from styled_md2docx.inline import tokenize
from styled_md2docx.numbering import NumberingRegistry
from styled_md2docx.styles import DEFAULT_STYLES, StyleResolver, merge
from styled_md2docx.tokens import lex
from styled_md2docx.writer import DocxWriter

logging.getLogger(__name__).addHandler(logging.NullHandler())

__version__ = "0.1.0"

__all__ = [
    "DEFAULT_STYLES",
    "DocumentAssembler",
    "DocxWriter",
    "ElementBuilders",
    "FatalAssemblyError",
    "ImagePipeline",
    "NumberingRegistry",
    "RecoverableElementError",
    "StyleResolver",
    "StyledDocxError",
    "UnsupportedFormatError",
    "convert_markdown",
    "lex",
    "markdown_to_docx",
    "merge",
    "tokenize",
]
