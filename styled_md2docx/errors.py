"""Exception hierarchy for the Markdown to DOCX conversion engine."""

from __future__ import annotations


class StyledDocxError(Exception):
    """Base class for conversion errors."""


class RecoverableElementError(StyledDocxError):
    """A single element could not be built; the document carries on without it."""

    def __init__(self, message: str, token_type: str | None = None):
        super().__init__(message)
        self.token_type = token_type


class UnsupportedFormatError(RecoverableElementError):
    """Raised for inputs the output format cannot embed (e.g. WebP images)."""


class FatalAssemblyError(StyledDocxError):
    """The token stream itself is unusable, so no partial document exists."""
