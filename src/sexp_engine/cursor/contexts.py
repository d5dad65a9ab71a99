"""Cursor contexts a host can use to enable or disable commands."""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, FrozenSet

from sexp_engine.document.lexer import TokenKind

from .token_cursor import cursor_at

if TYPE_CHECKING:  # pragma: no cover
    from sexp_engine.document.lines import LineModel


class CursorContext(str, Enum):
    IN_STRING = "cursor_in_string"
    IN_COMMENT = "cursor_in_comment"
    AT_START_OF_LINE = "cursor_at_start_of_line"
    AT_END_OF_LINE = "cursor_at_end_of_line"
    BEFORE_COMMENT = "cursor_before_comment"
    AFTER_COMMENT = "cursor_after_comment"


ALL_CURSOR_CONTEXTS = tuple(CursorContext)


def determine_contexts(model: "LineModel", offset: int) -> FrozenSet[CursorContext]:
    cursor = cursor_at(model, offset)
    contexts = set()
    if cursor.within_string():
        contexts.add(CursorContext.IN_STRING)
    elif cursor.within_comment():
        contexts.add(CursorContext.IN_COMMENT)

    row, col = model.get_row_col(offset)
    text = model.get_line_text(row)
    if not text[:col].strip(" \t,"):
        contexts.add(CursorContext.AT_START_OF_LINE)
    if not text[col:].strip(" \t,"):
        contexts.add(CursorContext.AT_END_OF_LINE)

    ahead = cursor.clone()
    ahead.forward_whitespace(include_comments=False)
    if ahead.get_token().kind is TokenKind.COMMENT and CursorContext.IN_COMMENT not in contexts:
        contexts.add(CursorContext.BEFORE_COMMENT)

    between_tokens = (
        cursor.get_token().kind in (TokenKind.WS, TokenKind.EOL)
        or cursor.offset == cursor.offset_start
    )
    if between_tokens and CursorContext.IN_COMMENT not in contexts:
        behind = cursor.clone()
        behind.backward_whitespace(include_comments=False)
        prev = behind.get_prev_token()
        if prev is not None and prev.kind is TokenKind.COMMENT:
            contexts.add(CursorContext.AFTER_COMMENT)
    return frozenset(contexts)


__all__ = ["ALL_CURSOR_CONTEXTS", "CursorContext", "determine_contexts"]
