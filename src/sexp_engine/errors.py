"""Exception types raised across the engine.

Everything derives from ``SexpEngineError`` so the format pipeline can catch
engine failures without also swallowing programming errors.
"""

from __future__ import annotations

from typing import Optional


class SexpEngineError(RuntimeError):
    """Base class for all engine failures."""


class StaleModelError(SexpEngineError):
    """Raised when the line model and the live document disagree on version."""

    def __init__(
        self,
        message: str,
        *,
        model_version: Optional[int] = None,
        document_version: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.model_version = model_version
        self.document_version = document_version


class ModelRangeError(SexpEngineError):
    """Raised for offsets or edits outside the document."""

    def __init__(self, message: str, *, offset: Optional[int] = None) -> None:
        super().__init__(message)
        self.offset = offset


class BracketHealingError(SexpEngineError):
    """Raised when a selection cannot be balanced by adding delimiters."""


class AlignmentError(SexpEngineError):
    """Raised when formatted text differs from the original beyond separators."""

    def __init__(self, message: str, *, original: str = "", formatted: str = "") -> None:
        super().__init__(message)
        self.original = original
        self.formatted = formatted


class FormatterError(SexpEngineError):
    """Raised when the external formatting engine reports an error."""


class MissingDocumentError(SexpEngineError, KeyError):
    """Raised when no session is registered for a document id."""

    def __init__(self, document_id: str) -> None:
        super().__init__(f"No session for document '{document_id}'")
        self.document_id = document_id

    def __str__(self) -> str:
        return str(self.args[0])


__all__ = [
    "AlignmentError",
    "BracketHealingError",
    "FormatterError",
    "MissingDocumentError",
    "ModelRangeError",
    "SexpEngineError",
    "StaleModelError",
]
