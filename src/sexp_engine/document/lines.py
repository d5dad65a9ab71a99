"""Incremental line model mirroring a live editor document.

Text is stored per line (without terminators) together with each line's
tokens and the scanner state at its boundaries. Edits re-scan only the lines
they touch plus any following lines whose carried scanner state changed, and
line-start offsets are recomputed lazily from the first touched line.
"""

from __future__ import annotations

from bisect import bisect_right
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Dict, Iterable, List, Optional, Set, Tuple

from sexp_engine.errors import ModelRangeError, StaleModelError
from sexp_engine.runtime import telemetry

from .edits import ModelEdit
from .lexer import INITIAL_STATE, ScanState, Token, scan_line

if TYPE_CHECKING:  # pragma: no cover
    from sexp_engine.cursor.token_cursor import LispTokenCursor


@dataclass(slots=True)
class TextLine:
    text: str
    tokens: Tuple[Token, ...]
    start_state: ScanState
    end_state: ScanState


@dataclass(frozen=True, slots=True)
class DirtyLines:
    """Lines touched since the last flush, for incremental consumers."""

    dirty: frozenset[int] = frozenset()
    inserted: frozenset[int] = frozenset()
    deleted: frozenset[int] = frozenset()


def _scanned(text: str, state: ScanState) -> TextLine:
    tokens, end = scan_line(text, state)
    return TextLine(text=text, tokens=tokens, start_state=state, end_state=end)


@dataclass(slots=True)
class _PendingLine:
    text: str


class LineModel:
    """Line-indexed document text with version and staleness tracking."""

    def __init__(self, *, eol: str = "\n", version: int = 0) -> None:
        if eol not in ("\n", "\r\n"):
            raise ValueError(f"Unsupported line ending {eol!r}")
        self.eol = eol
        self.lines: List[TextLine] = [_scanned("", INITIAL_STATE)]
        self.version = version
        self.stale_since: Optional[int] = None
        self.revision = 0
        self.dirty_lines: Set[int] = set()
        self.inserted_lines: Set[int] = set()
        self.deleted_lines: Set[int] = set()
        self._starts: List[int] = [0]
        self._valid_starts = 1
        self._derived: Dict[str, Tuple[int, Any]] = {}
        self.logger = telemetry.get_logger("sexp_engine.document")

    @classmethod
    def from_text(cls, text: str, *, eol: str = "\n", version: int = 0) -> "LineModel":
        model = cls(eol=eol, version=version)
        model._splice(0, 0, text)
        model.flush_changes()
        return model

    # -- reading -----------------------------------------------------------

    @property
    def line_count(self) -> int:
        return len(self.lines)

    @property
    def text(self) -> str:
        return self.eol.join(line.text for line in self.lines)

    @property
    def max_offset(self) -> int:
        last = len(self.lines) - 1
        return self.get_offset_for_line(last) + len(self.lines[last].text)

    def get_line_text(self, line: int) -> str:
        return self.lines[line].text

    def _refresh_starts(self) -> None:
        if self._valid_starts >= len(self.lines):
            return
        step = len(self.eol)
        starts = self._starts
        for i in range(max(self._valid_starts, 1), len(self.lines)):
            starts[i] = starts[i - 1] + len(self.lines[i - 1].text) + step
        self._valid_starts = len(self.lines)

    def get_offset_for_line(self, line: int) -> int:
        if line < 0:
            raise ModelRangeError(f"Line {line} out of range")
        if line >= len(self.lines):
            return self.max_offset
        self._refresh_starts()
        return self._starts[line]

    def get_line_for_offset(self, offset: int) -> int:
        self._refresh_starts()
        return max(bisect_right(self._starts, offset) - 1, 0)

    def get_row_col(self, offset: int) -> Tuple[int, int]:
        row = self.get_line_for_offset(offset)
        col = offset - self._starts[row]
        return row, min(col, len(self.lines[row].text))

    def get_offset(self, row: int, col: int) -> int:
        row = min(max(row, 0), len(self.lines) - 1)
        col = min(max(col, 0), len(self.lines[row].text))
        return self.get_offset_for_line(row) + col

    def get_text(self, start: int, end: int, must_be_within: bool = False) -> str:
        if start > end:
            start, end = end, start
        limit = self.max_offset
        if must_be_within and (start < 0 or end > limit):
            raise ModelRangeError(f"Range [{start}, {end}) outside document", offset=end)
        start = max(start, 0)
        end = min(end, limit)
        return self.text[start:end]

    def get_token_cursor(self, offset: int, previous: bool = False) -> "LispTokenCursor":
        from sexp_engine.cursor.token_cursor import cursor_at

        return cursor_at(self, offset, previous=previous)

    def cached(self, key: str, build: Callable[["LineModel"], Any]) -> Any:
        """Memoize ``build(self)`` until the next text mutation."""

        hit = self._derived.get(key)
        if hit is not None and hit[0] == self.revision:
            return hit[1]
        value = build(self)
        self._derived[key] = (self.revision, value)
        return value

    # -- versioning --------------------------------------------------------

    def mark_stale(self) -> None:
        """Record that edits were sent to the host but not yet confirmed."""

        self.stale_since = self.version

    def confirm(self, version: int) -> None:
        self.version = version
        self.stale_since = None

    def stale(self, editor_version: int) -> Optional[str]:
        """Loggable reason when the model cannot be trusted, else ``None``."""

        if self.version != editor_version:
            return f"model={self.version} vs document={editor_version}"
        if self.stale_since is not None and self.stale_since == self.version:
            return f"edited since {self.version}"
        return None

    def ensure_fresh(self, editor_version: int) -> None:
        reason = self.stale(editor_version)
        if reason is not None:
            raise StaleModelError(
                f"Line model is out of sync: {reason}",
                model_version=self.version,
                document_version=editor_version,
            )

    # -- editing -----------------------------------------------------------

    def apply_edits(
        self,
        edits: Iterable[ModelEdit],
        *,
        base_version: Optional[int] = None,
        new_version: Optional[int] = None,
    ) -> None:
        """Apply ``edits``, all expressed against the pre-batch text.

        Raises ``StaleModelError`` (and changes nothing) when ``base_version``
        is not the version this model reflects.
        """

        if base_version is not None and base_version != self.version:
            telemetry.record_event(
                "document.stale_edit",
                level="warning",
                data={"model": self.version, "base": base_version},
            )
            raise StaleModelError(
                f"Edits target version {base_version}, model reflects {self.version}",
                model_version=self.version,
                document_version=base_version,
            )

        pending = list(edits)
        limit = self.max_offset
        for edit in pending:
            start, end, _text = edit.span()
            if not 0 <= start <= end <= limit:
                raise ModelRangeError(
                    f"Edit [{start}, {end}) outside document of length {limit}",
                    offset=start,
                )
        with telemetry.span(
            "document::apply_edits",
            logger_name="sexp_engine.document",
            component="document",
            metadata={"edits": len(pending), "version": self.version},
        ):
            for start, end, text in self._rebase(pending):
                self._splice(start, end, text)
        self.version = new_version if new_version is not None else self.version + 1
        self.stale_since = None

    def insert_string(self, offset: int, text: str) -> None:
        self._splice(offset, offset, text)

    def delete_range(self, offset: int, count: int) -> None:
        self._splice(offset, offset + count, "")

    def change_range(self, start: int, end: int, text: str) -> None:
        self._splice(start, end, text)

    def flush_changes(self) -> DirtyLines:
        """Return and clear the dirty-line bookkeeping."""

        flushed = DirtyLines(
            dirty=frozenset(self.dirty_lines),
            inserted=frozenset(self.inserted_lines),
            deleted=frozenset(self.deleted_lines),
        )
        self.dirty_lines.clear()
        self.inserted_lines.clear()
        self.deleted_lines.clear()
        return flushed

    @staticmethod
    def _rebase(edits: List[ModelEdit]) -> List[Tuple[int, int, str]]:
        """Translate pre-batch spans into the coordinates current at each step."""

        applied: List[Tuple[int, int, int]] = []
        rebased: List[Tuple[int, int, str]] = []
        for edit in edits:
            start, end, text = edit.span()
            delta = 0
            for a_start, a_end, a_len in applied:
                if end <= a_start:
                    continue
                if start >= a_end:
                    delta += a_len - (a_end - a_start)
                    continue
                raise ModelRangeError(
                    f"Edit [{start}, {end}) overlaps an earlier edit in the batch",
                    offset=start,
                )
            rebased.append((start + delta, end + delta, text))
            applied.append((start, end, len(text)))
        return rebased

    def _splice(self, start: int, end: int, text: str) -> None:
        limit = self.max_offset
        if not 0 <= start <= end <= limit:
            raise ModelRangeError(
                f"Edit [{start}, {end}) outside document of length {limit}",
                offset=start,
            )
        first_row, first_col = self.get_row_col(start)
        last_row, last_col = self.get_row_col(end)
        head = self.lines[first_row].text[:first_col]
        tail = self.lines[last_row].text[last_col:]
        replacement = (head + text.replace("\r\n", "\n") + tail).split("\n")

        removed = last_row - first_row + 1
        added = len(replacement)
        for row in range(first_row + added, first_row + removed):
            self.deleted_lines.add(row)
        for row in range(first_row + removed, first_row + added):
            self.inserted_lines.add(row)

        placeholders = [_PendingLine(value) for value in replacement]
        self.lines[first_row : last_row + 1] = placeholders  # type: ignore[assignment]
        self._starts[first_row + 1 : last_row + 1] = [0] * (added - 1)
        self._valid_starts = min(self._valid_starts, first_row + 1)
        self._rescan(first_row, added)
        self.revision += 1

    def _rescan(self, first: int, count: int) -> None:
        state = self.lines[first - 1].end_state if first > 0 else INITIAL_STATE
        row = first
        while row < len(self.lines):
            current = self.lines[row]
            if row >= first + count and current.start_state == state:
                break
            scanned = _scanned(current.text, state)
            self.lines[row] = scanned
            self.dirty_lines.add(row)
            state = scanned.end_state
            row += 1


__all__ = ["DirtyLines", "LineModel", "TextLine"]
