"""Indentation for a fresh line, from the list enclosing it.

Follows cljfmt's default rules: calls whose head is a word symbol get body
indentation (two columns past the bracket), other calls align with their
first argument when it sits on the head's line, and everything else lines up
one column past the opening bracket.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from sexp_engine.document.lexer import TokenKind

from .token_cursor import cursor_at

if TYPE_CHECKING:  # pragma: no cover
    from sexp_engine.document.lines import LineModel

BODY_HEAD = re.compile(r"^\w")


def get_indent(model: "LineModel", offset: int) -> int:
    """Column that a line starting at ``offset`` should be indented to."""

    row, _col = model.get_row_col(offset)
    line_start = model.get_offset_for_line(row)
    cursor = cursor_at(model, offset)
    if not cursor.backward_list():
        return 0
    opening = cursor.get_prev_token()
    if opening is None:
        return 0
    inside = opening.end
    if not opening.raw.endswith("("):
        return inside

    head = cursor.clone()
    head.forward_whitespace()
    token = head.get_token()
    if token.kind in (TokenKind.CLOSE, TokenKind.EOL) or head.offset_start >= line_start:
        return inside
    if token.kind is TokenKind.ATOM and BODY_HEAD.match(token.raw):
        return inside + 1

    head_row = head.row
    if not head.forward_sexp():
        return inside
    head.forward_whitespace(include_comments=False)
    argument = head.get_token()
    if (
        head.row == head_row
        and argument.kind not in (TokenKind.CLOSE, TokenKind.EOL, TokenKind.COMMENT)
        and head.offset_start < line_start
    ):
        return argument.col
    return inside


__all__ = ["BODY_HEAD", "get_indent"]
