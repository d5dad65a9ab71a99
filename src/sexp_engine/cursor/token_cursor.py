"""Structural navigation over a ``LineModel``'s token stream.

A ``LispTokenCursor`` is a (line, token index) position plus a probe offset,
pointing into the model's per-line token tuples. Navigation mutates only the
cursor itself; ``clone()`` copies those three small fields, so speculative
moves never disturb the caller's cursor or the model.
"""

from __future__ import annotations

from bisect import bisect_right
from typing import TYPE_CHECKING, List, Optional, Tuple

from sexp_engine.document.lexer import Token, TokenKind

if TYPE_CHECKING:  # pragma: no cover
    from sexp_engine.document.lines import LineModel, TextLine

Range = Tuple[int, int]

_WHITESPACE = frozenset({TokenKind.WS, TokenKind.EOL})
_WHITESPACE_AND_COMMENTS = _WHITESPACE | {TokenKind.COMMENT}


class LispTokenCursor:
    __slots__ = ("model", "row", "index", "_probe")

    def __init__(
        self, model: "LineModel", row: int, index: int, probe: Optional[int] = None
    ) -> None:
        self.model = model
        self.row = row
        self.index = index
        self._probe = probe

    def clone(self) -> "LispTokenCursor":
        return LispTokenCursor(self.model, self.row, self.index, self._probe)

    def set(self, other: "LispTokenCursor") -> None:
        self.row = other.row
        self.index = other.index
        self._probe = other._probe

    def __repr__(self) -> str:
        return f"LispTokenCursor(row={self.row}, index={self.index}, token={self.get_token()!r})"

    # -- position ----------------------------------------------------------

    @property
    def line(self) -> "TextLine":
        return self.model.lines[self.row]

    def get_token(self) -> Token:
        return self.model.lines[self.row].tokens[self.index]

    def get_prev_token(self) -> Optional[Token]:
        if self.index > 0:
            return self.line.tokens[self.index - 1]
        if self.row > 0:
            return self.model.lines[self.row - 1].tokens[-1]
        return None

    @property
    def offset_start(self) -> int:
        return self.model.get_offset_for_line(self.row) + self.get_token().col

    @property
    def offset_end(self) -> int:
        return self.offset_start + len(self.get_token().raw)

    @property
    def offset(self) -> int:
        """The probed offset, or the token start once the cursor has moved."""

        return self._probe if self._probe is not None else self.offset_start

    @property
    def row_col(self) -> Tuple[int, int]:
        return self.row, self.get_token().col

    def at_start(self) -> bool:
        return self.row == 0 and self.index == 0

    def at_end(self) -> bool:
        return (
            self.row == len(self.model.lines) - 1
            and self.get_token().kind is TokenKind.EOL
        )

    def next(self) -> bool:
        if self.at_end():
            return False
        self._probe = None
        if self.index < len(self.line.tokens) - 1:
            self.index += 1
        else:
            self.row += 1
            self.index = 0
        return True

    def previous(self) -> bool:
        if self.at_start():
            return False
        self._probe = None
        if self.index > 0:
            self.index -= 1
        else:
            self.row -= 1
            self.index = len(self.line.tokens) - 1
        return True

    # -- classification ----------------------------------------------------

    def within_string(self) -> bool:
        token = self.get_token()
        probe = self.offset
        start = self.offset_start
        if token.kind in (TokenKind.STR_INSIDE, TokenKind.STR_END):
            return True
        if token.kind in (TokenKind.STR, TokenKind.STR_START):
            return probe > start
        if token.kind is TokenKind.EOL:
            return self.line.end_state.in_string
        return False

    def within_comment(self) -> bool:
        token = self.get_token()
        probe = self.offset
        start = self.offset_start
        if token.kind is TokenKind.COMMENT:
            continued = self.index == 0 and self.line.start_state.comment_depth > 0
            return continued or probe > start
        if token.kind is TokenKind.EOL:
            if self.line.end_state.comment_depth > 0:
                return True
            prev = self.line.tokens[self.index - 1] if self.index else None
            return prev is not None and prev.kind is TokenKind.COMMENT and prev.raw.startswith(";")
        return False

    # -- movement ----------------------------------------------------------

    def forward_whitespace(self, include_comments: bool = True) -> None:
        skip = _WHITESPACE_AND_COMMENTS if include_comments else _WHITESPACE
        while not self.at_end() and self.get_token().kind in skip:
            self.next()

    def backward_whitespace(self, include_comments: bool = True) -> None:
        skip = _WHITESPACE_AND_COMMENTS if include_comments else _WHITESPACE
        while not self.at_start():
            prev = self.get_prev_token()
            if prev is None or prev.kind not in skip:
                break
            self.previous()

    def forward_sexp(self) -> bool:
        """Move past the next form; ``False`` (and no move) if there is none."""

        cursor = self.clone()
        cursor.forward_whitespace()
        while cursor.get_token().kind is TokenKind.PUNCT:
            cursor.next()
            cursor.forward_whitespace()
        kind = cursor.get_token().kind
        if kind in (TokenKind.CLOSE, TokenKind.EOL):
            return False
        if kind is TokenKind.OPEN:
            depth = 0
            while True:
                kind = cursor.get_token().kind
                if kind is TokenKind.OPEN:
                    depth += 1
                elif kind is TokenKind.CLOSE:
                    depth -= 1
                    if depth == 0:
                        cursor.next()
                        break
                if not cursor.next():
                    return False
        elif kind is TokenKind.STR_START:
            while cursor.get_token().kind is not TokenKind.STR_END:
                if not cursor.next():
                    return False
            cursor.next()
        else:
            cursor.next()
        self.set(cursor)
        return True

    def backward_sexp(self) -> bool:
        """Move to the start of the previous form, reader punctuation included."""

        cursor = self.clone()
        cursor.backward_whitespace()
        prev = cursor.get_prev_token()
        if prev is None or prev.kind is TokenKind.OPEN:
            return False
        if prev.kind is TokenKind.CLOSE:
            depth = 0
            while cursor.previous():
                kind = cursor.get_token().kind
                if kind is TokenKind.CLOSE:
                    depth += 1
                elif kind is TokenKind.OPEN:
                    depth -= 1
                    if depth == 0:
                        break
            else:
                return False
        elif prev.kind is TokenKind.STR_END:
            while cursor.previous():
                if cursor.get_token().kind is TokenKind.STR_START:
                    break
            else:
                return False
        else:
            cursor.previous()
        while True:
            prev = cursor.get_prev_token()
            if prev is None or prev.kind is not TokenKind.PUNCT:
                break
            cursor.previous()
        self.set(cursor)
        return True

    def forward_list(self) -> bool:
        """Move to the closing delimiter of the enclosing list."""

        cursor = self.clone()
        while cursor.forward_sexp():
            pass
        cursor.forward_whitespace()
        if cursor.get_token().kind is TokenKind.CLOSE:
            self.set(cursor)
            return True
        return False

    def backward_list(self) -> bool:
        """Move to just inside the opening delimiter of the enclosing list."""

        cursor = self.clone()
        while cursor.backward_sexp():
            pass
        cursor.backward_whitespace()
        prev = cursor.get_prev_token()
        if prev is not None and prev.kind is TokenKind.OPEN:
            self.set(cursor)
            return True
        return False

    def up_list(self) -> bool:
        cursor = self.clone()
        if cursor.forward_list() and cursor.next():
            self.set(cursor)
            return True
        return False

    def backward_up_list(self) -> bool:
        cursor = self.clone()
        if cursor.backward_list() and cursor.previous():
            self.set(cursor)
            return True
        return False

    def backward_list_of_type(self, opening: str) -> bool:
        cursor = self.clone()
        while cursor.backward_list():
            prev = cursor.get_prev_token()
            if prev is not None and prev.raw.endswith(opening):
                self.set(cursor)
                return True
            if not cursor.backward_up_list():
                return False
        return False

    def backward_function(self, levels: int = 0) -> bool:
        """Move inside the call form ``levels`` functions out from here."""

        cursor = self.clone()
        for _ in range(levels):
            if not (cursor.backward_list_of_type("(") and cursor.backward_up_list()):
                return False
        if cursor.backward_list_of_type("("):
            self.set(cursor)
            return True
        return False

    # -- structural queries ------------------------------------------------

    def get_function_name(self) -> Optional[str]:
        cursor = self.clone()
        if not cursor.backward_list_of_type("("):
            return None
        cursor.forward_whitespace()
        token = cursor.get_token()
        if token.kind is TokenKind.ATOM:
            return token.raw
        return None

    def range_for_list(self, depth: int) -> Optional[Range]:
        """Range of the list ``depth`` levels out (1 = innermost enclosing).

        When fewer levels exist, the outermost list reached is returned.
        """

        cursor = self.clone()
        found: Optional[Range] = None
        for _ in range(depth):
            if not cursor.up_list():
                break
            end = cursor.offset_start
            start = cursor.clone()
            if not start.backward_sexp():
                break
            found = (start.offset_start, end)
        return found

    def range_for_current_form(self, offset: int) -> Optional[Range]:
        """Smallest form containing or touching ``offset``."""

        cursor = cursor_at(self.model, offset)
        form = _form_under(cursor)
        if form is not None:
            return form
        form = _form_ending_at(cursor)
        if form is not None:
            return form
        return cursor.range_for_list(1)

    def range_for_defun(self, offset: int, use_cache: bool = True) -> Optional[Range]:
        """Widest enclosing top-level form for ``offset``, touching edges included."""

        if use_cache:
            return _cached_top_level_range(self.model, offset)
        cursor = cursor_at(self.model, offset)
        top = cursor.clone()
        climbed = False
        while top.backward_up_list():
            climbed = True
        if climbed:
            return _form_starting_at(top)
        return _top_level_form_touching(cursor)


def _form_starting_at(cursor: LispTokenCursor) -> Optional[Range]:
    """Range of the form whose first token is under ``cursor``."""

    start = cursor.clone()
    while True:
        prev = start.get_prev_token()
        if prev is None or prev.kind is not TokenKind.PUNCT:
            break
        start.previous()
    end = start.clone()
    if not end.forward_sexp():
        return None
    return start.offset_start, end.offset_start


def _form_under(cursor: LispTokenCursor) -> Optional[Range]:
    """Form whose tokens include the one under ``cursor`` (strings span lines)."""

    kind = cursor.get_token().kind
    if kind in _WHITESPACE_AND_COMMENTS or kind is TokenKind.CLOSE:
        return None
    start = cursor.clone()
    if kind in (TokenKind.STR_INSIDE, TokenKind.STR_END):
        while start.get_token().kind is not TokenKind.STR_START:
            if not start.previous():
                return None
    return _form_starting_at(start)


def _form_ending_at(cursor: LispTokenCursor) -> Optional[Range]:
    """Form that ends exactly at the cursor's probe offset."""

    if cursor.offset != cursor.offset_start:
        return None
    prev = cursor.get_prev_token()
    if prev is None or prev.kind in _WHITESPACE_AND_COMMENTS or prev.kind is TokenKind.OPEN:
        return None
    end = cursor.offset_start
    start = cursor.clone()
    if start.backward_sexp():
        return start.offset_start, end
    return None


def _top_level_form_touching(cursor: LispTokenCursor) -> Optional[Range]:
    form = _form_under(cursor)
    if form is not None:
        return form
    return _form_ending_at(cursor)


def top_level_ranges(model: "LineModel") -> List[Range]:
    """Ranges of every balanced top-level form, in document order."""

    ranges: List[Range] = []
    cursor = cursor_at(model, 0)
    while True:
        cursor.forward_whitespace()
        if cursor.at_end():
            break
        if cursor.get_token().kind is TokenKind.CLOSE:
            cursor.next()
            continue
        start = cursor.offset_start
        if not cursor.forward_sexp():
            break
        ranges.append((start, cursor.offset_start))
    return ranges


def _cached_top_level_range(model: "LineModel", offset: int) -> Optional[Range]:
    ranges: List[Range] = model.cached("top_level_ranges", top_level_ranges)
    starts = [start for start, _ in ranges]
    index = bisect_right(starts, offset) - 1
    if index >= 0:
        start, end = ranges[index]
        if start <= offset < end:
            return start, end
        if offset == end:
            following = ranges[index + 1] if index + 1 < len(ranges) else None
            if following is not None and following[0] == offset:
                return following
            return start, end
    return None


def cursor_at(model: "LineModel", offset: int, *, previous: bool = False) -> LispTokenCursor:
    """Cursor on the token containing ``offset`` (or ending at it, if ``previous``)."""

    offset = min(max(offset, 0), model.max_offset)
    row, col = model.get_row_col(offset)
    tokens = model.lines[row].tokens
    cols = [token.col for token in tokens]
    index = max(bisect_right(cols, col) - 1, 0)
    cursor = LispTokenCursor(model, row, index, offset)
    if previous and tokens[index].col == col and not cursor.at_start():
        cursor.previous()
        cursor._probe = offset
    return cursor


__all__ = ["LispTokenCursor", "Range", "cursor_at", "top_level_ranges"]
