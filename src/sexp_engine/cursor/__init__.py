"""Token cursor, bracket healing, and cursor contexts."""

from .brackets import HealedText, MissingBrackets, get_missing_brackets, heal_brackets
from .contexts import ALL_CURSOR_CONTEXTS, CursorContext, determine_contexts
from .indent import get_indent
from .token_cursor import LispTokenCursor, Range, cursor_at, top_level_ranges

__all__ = [
    "ALL_CURSOR_CONTEXTS",
    "CursorContext",
    "HealedText",
    "LispTokenCursor",
    "MissingBrackets",
    "Range",
    "cursor_at",
    "determine_contexts",
    "get_indent",
    "get_missing_brackets",
    "heal_brackets",
    "top_level_ranges",
]
