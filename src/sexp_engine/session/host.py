"""The editor-facing boundary: what a host must offer and a reference host."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, List, Optional, Protocol, Sequence, Tuple

from sexp_engine.document.edits import Selection, map_offset
from sexp_engine.document.sync import TextChange, TextChangeEvent
from sexp_engine.errors import ModelRangeError
from sexp_engine.formatting.reconcile import ReformatChange, is_descending
from sexp_engine.runtime import telemetry

ChangeListener = Callable[["EditorHost", TextChangeEvent], None]


@dataclass(frozen=True, slots=True)
class EditBatch:
    """Whitespace changes to apply atomically against ``version``.

    ``changes`` are in descending ``start`` order and do not overlap, so each
    can be applied with offsets taken from the pre-batch text.
    """

    changes: Tuple[ReformatChange, ...]
    version: int
    cursor: Optional[int] = None

    def __post_init__(self) -> None:
        if not is_descending(self.changes):
            raise ValueError("EditBatch changes must be descending and non-overlapping")


class EditorHost(Protocol):
    document_id: str
    language_id: str
    eol: str

    @property
    def version(self) -> int:
        ...

    @property
    def text(self) -> str:
        ...

    @property
    def selections(self) -> Sequence[Selection]:
        ...

    def apply_edits(self, batch: EditBatch) -> bool:
        """Apply ``batch`` in one transaction; ``False`` if it was rejected."""
        ...

    def is_active(self) -> bool:
        ...


def _position_at(text: str, offset: int, eol: str) -> Tuple[int, int]:
    line_start = text.rfind(eol, 0, offset)
    if line_start == -1:
        return 0, offset
    return text.count(eol, 0, offset), offset - line_start - len(eol)


class InMemoryEditor:
    """A plain-string host used by tests and the Textual demo."""

    def __init__(
        self,
        document_id: str,
        text: str = "",
        *,
        language_id: str = "clojure",
        version: int = 1,
        eol: str = "\n",
        selections: Sequence[Selection] = (),
    ) -> None:
        self.document_id = document_id
        self.language_id = language_id
        self.eol = eol
        self._text = text
        self._version = version
        self._selections: List[Selection] = list(selections) or [Selection.caret(0)]
        self._listeners: List[ChangeListener] = []
        self.active = True
        self.applied_batches: List[EditBatch] = []

    @property
    def version(self) -> int:
        return self._version

    @property
    def text(self) -> str:
        return self._text

    @property
    def selections(self) -> Sequence[Selection]:
        return tuple(self._selections)

    @selections.setter
    def selections(self, value: Sequence[Selection]) -> None:
        self._selections = list(value)

    def set_cursor(self, offset: int) -> None:
        self._selections = [Selection.caret(offset)]

    def is_active(self) -> bool:
        return self.active

    def subscribe(self, listener: ChangeListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # -- user edits --------------------------------------------------------

    def replace(self, start: int, end: int, text: str) -> TextChangeEvent:
        """Simulate the user replacing ``[start, end)``; the caret follows the text."""

        event = self._commit([(start, end, text)])
        self.set_cursor(start + len(text))
        return event

    def type_text(self, offset: int, text: str) -> TextChangeEvent:
        return self.replace(offset, offset, text)

    def delete(self, start: int, end: int) -> TextChangeEvent:
        return self.replace(start, end, "")

    # -- programmatic edits ------------------------------------------------

    def apply_edits(self, batch: EditBatch) -> bool:
        if batch.version != self._version:
            telemetry.record_event(
                "host.batch_rejected",
                level="warning",
                data={
                    "document": self.document_id,
                    "batch_version": batch.version,
                    "version": self._version,
                },
                logger_name="sexp_engine.session",
            )
            return False
        if not batch.changes:
            return True
        spans = [(change.start, change.end, change.text) for change in batch.changes]
        previous = list(self._selections)
        self._commit(spans)
        if batch.cursor is not None:
            self.set_cursor(batch.cursor)
        else:
            self._selections = [
                Selection(
                    self._map(sel.anchor, spans),
                    self._map(sel.active, spans),
                )
                for sel in previous
            ]
        self.applied_batches.append(batch)
        return True

    @staticmethod
    def _map(offset: int, spans: Sequence[Tuple[int, int, str]]) -> int:
        for start, end, text in spans:
            offset = map_offset(offset, start, end, len(text))
        return offset

    def _commit(self, spans: Sequence[Tuple[int, int, str]]) -> TextChangeEvent:
        """Apply descending ``spans`` and notify listeners with one event."""

        limit = len(self._text)
        changes = []
        text = self._text
        for start, end, replacement in spans:
            if not 0 <= start <= end <= limit:
                raise ModelRangeError(
                    f"Edit [{start}, {end}) outside document of length {limit}",
                    offset=start,
                )
            start_line, start_col = _position_at(self._text, start, self.eol)
            end_line, end_col = _position_at(self._text, end, self.eol)
            changes.append(TextChange(start_line, start_col, end_line, end_col, replacement))
            text = text[:start] + replacement + text[end:]
        previous_version = self._version
        self._text = text
        self._version += 1
        event = TextChangeEvent(
            document_id=self.document_id,
            version=self._version,
            changes=tuple(changes),
            previous_version=previous_version,
        )
        for listener in list(self._listeners):
            listener(self, event)
        return event


__all__ = ["ChangeListener", "EditBatch", "EditorHost", "InMemoryEditor"]
