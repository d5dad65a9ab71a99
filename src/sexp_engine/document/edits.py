"""Edit operations accepted by the line model, plus selection mapping."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Sequence, Tuple, Union


@dataclass(frozen=True, slots=True)
class InsertEdit:
    offset: int
    text: str

    def span(self) -> Tuple[int, int, str]:
        return self.offset, self.offset, self.text


@dataclass(frozen=True, slots=True)
class DeleteEdit:
    offset: int
    length: int

    def __post_init__(self) -> None:
        if self.length < 0:
            raise ValueError("DeleteEdit length cannot be negative")

    def span(self) -> Tuple[int, int, str]:
        return self.offset, self.offset + self.length, ""


@dataclass(frozen=True, slots=True)
class ReplaceEdit:
    start: int
    end: int
    text: str

    def __post_init__(self) -> None:
        if self.start > self.end:
            raise ValueError(f"Invalid range: start ({self.start}) > end ({self.end})")

    def span(self) -> Tuple[int, int, str]:
        return self.start, self.end, self.text


ModelEdit = Union[InsertEdit, DeleteEdit, ReplaceEdit]


def new_content_points(edit: ModelEdit) -> Tuple[int, int]:
    """Outer bounds ``[start, end]`` of the content an edit leaves behind."""

    match edit:
        case InsertEdit(offset=offset, text=text):
            return offset, offset + len(text)
        case DeleteEdit(offset=offset):
            return offset, offset
        case ReplaceEdit(start=start, end=end):
            return start, end
    raise TypeError(f"Unsupported edit {edit!r}")


@dataclass(frozen=True, slots=True)
class Selection:
    anchor: int
    active: int

    @classmethod
    def caret(cls, offset: int) -> "Selection":
        return cls(offset, offset)

    @property
    def start(self) -> int:
        return min(self.anchor, self.active)

    @property
    def end(self) -> int:
        return max(self.anchor, self.active)

    @property
    def is_empty(self) -> bool:
        return self.anchor == self.active


def map_offset(offset: int, start: int, end: int, inserted: int) -> int:
    """Where ``offset`` lands after ``[start, end)`` is replaced by ``inserted`` chars."""

    if offset <= start:
        return offset
    if offset >= end:
        return offset + inserted - (end - start)
    return start + min(offset - start, inserted)


def selections_after_edits(
    edits: Iterable[ModelEdit], selections: Sequence[Selection]
) -> List[Selection]:
    """Map ``selections`` through ``edits`` applied in order."""

    mapped = list(selections)
    for edit in edits:
        start, end, text = edit.span()
        mapped = [
            Selection(
                map_offset(sel.anchor, start, end, len(text)),
                map_offset(sel.active, start, end, len(text)),
            )
            for sel in mapped
        ]
    return mapped


__all__ = [
    "DeleteEdit",
    "InsertEdit",
    "ModelEdit",
    "ReplaceEdit",
    "Selection",
    "map_offset",
    "new_content_points",
    "selections_after_edits",
]
