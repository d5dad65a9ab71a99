"""Incremental Lisp document model and whitespace-preserving format engine."""

__all__ = [
    "adapters",
    "cursor",
    "document",
    "errors",
    "formatting",
    "runtime",
    "session",
]

__version__ = "0.1.0"
