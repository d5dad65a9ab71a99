"""Boundary types describing host editor change notifications."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from .edits import ReplaceEdit
from .lines import LineModel


@dataclass(frozen=True, slots=True)
class TextChange:
    """One changed span, in line/column coordinates of the pre-edit text."""

    start_line: int
    start_col: int
    end_line: int
    end_col: int
    text: str

    def to_edit(self, model: LineModel) -> ReplaceEdit:
        start = model.get_offset_for_line(self.start_line) + self.start_col
        end = model.get_offset_for_line(self.end_line) + self.end_col
        return ReplaceEdit(start, end, self.text.replace("\r\n", "\n"))


@dataclass(frozen=True, slots=True)
class TextChangeEvent:
    """Host notification that ``document_id`` moved to ``version``."""

    document_id: str
    version: int
    changes: Tuple[TextChange, ...] = ()
    previous_version: Optional[int] = None

    @property
    def base_version(self) -> int:
        if self.previous_version is not None:
            return self.previous_version
        return self.version - 1

    def edits(self, model: LineModel) -> List[ReplaceEdit]:
        return [change.to_edit(model) for change in self.changes]


def changes_from_offsets(
    model: LineModel, spans: Sequence[Tuple[int, int, str]]
) -> Tuple[TextChange, ...]:
    """Express offset spans as line/column ``TextChange`` values."""

    changes = []
    for start, end, text in spans:
        start_line, start_col = model.get_row_col(start)
        end_line, end_col = model.get_row_col(end)
        changes.append(TextChange(start_line, start_col, end_line, end_col, text))
    return tuple(changes)


__all__ = ["TextChange", "TextChangeEvent", "changes_from_offsets"]
