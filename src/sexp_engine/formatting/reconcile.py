"""Whitespace-only edits that turn a text span into its formatted version.

Both texts are cut into ``SpacedUnit`` pairs of (separators, substance). After
aligning the substance runs, every position whose separators differ yields one
``ReformatChange``. Substance is never touched, so host cursors and undo
entries survive the reformat.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, List, Sequence, Tuple

from sexp_engine.document.edits import map_offset
from sexp_engine.errors import AlignmentError
from sexp_engine.runtime import telemetry

SpacedUnit = Tuple[str, str]

_FRAGMENT = re.compile(r"[\s,]+|[^\s,]+")
_SEPARATOR = re.compile(r"[\s,]+")


@dataclass(frozen=True, slots=True)
class ReformatChange:
    start: int
    end: int
    text: str


def spaced_units(text: str) -> List[SpacedUnit]:
    """``(separators, substance)`` pairs whose concatenation equals ``text``.

    The first separator and the last substance run may be empty.
    """

    fragments = _FRAGMENT.findall(text)
    if not fragments or not _SEPARATOR.fullmatch(fragments[0]):
        fragments.insert(0, "")
    if len(fragments) % 2:
        fragments.append("")
    return [(fragments[i], fragments[i + 1]) for i in range(0, len(fragments), 2)]


def align_spaced_units(
    a: Sequence[SpacedUnit], b: Sequence[SpacedUnit]
) -> Tuple[List[SpacedUnit], List[SpacedUnit]]:
    """Split substance runs so both sides have the same granularity.

    When one run is a prefix of the other, the longer run is cut after that
    prefix and its remainder carries on with empty separators. Any other
    difference in substance raises ``AlignmentError``.
    """

    left = list(a)
    right = list(b)
    aligned_a: List[SpacedUnit] = []
    aligned_b: List[SpacedUnit] = []
    i = j = 0
    while i < len(left) and j < len(right):
        a_space, a_stuff = left[i]
        b_space, b_stuff = right[j]
        if a_stuff == b_stuff:
            aligned_a.append(left[i])
            aligned_b.append(right[j])
            i += 1
            j += 1
        elif len(a_stuff) < len(b_stuff):
            if not a_stuff or not b_stuff.startswith(a_stuff):
                raise AlignmentError(
                    f"'{a_stuff}' does not align with '{b_stuff}'",
                    original=a_stuff,
                    formatted=b_stuff,
                )
            aligned_a.append(left[i])
            aligned_b.append((b_space, a_stuff))
            right[j] = ("", b_stuff[len(a_stuff) :])
            i += 1
        else:
            if not b_stuff or not a_stuff.startswith(b_stuff):
                raise AlignmentError(
                    f"'{a_stuff}' does not align with '{b_stuff}'",
                    original=a_stuff,
                    formatted=b_stuff,
                )
            aligned_b.append(right[j])
            aligned_a.append((a_space, b_stuff))
            left[i] = ("", a_stuff[len(b_stuff) :])
            j += 1

    # A side may end with a separator-only unit (trailing whitespace) that
    # the other side lacks; pair it with an empty unit.
    for unit in left[i:]:
        if unit[1]:
            raise AlignmentError(
                f"Formatted text lost '{unit[1]}'", original=unit[1], formatted=""
            )
        aligned_a.append(unit)
        aligned_b.append(("", ""))
    for unit in right[j:]:
        if unit[1]:
            raise AlignmentError(
                f"Formatted text added '{unit[1]}'", original="", formatted=unit[1]
            )
        aligned_a.append(("", ""))
        aligned_b.append(unit)
    return aligned_a, aligned_b


def reformat_changes(offset: int, previous: str, formatted: str) -> List[ReformatChange]:
    """Changes turning ``previous`` (located at ``offset``) into ``formatted``.

    Changes come back in descending ``start`` order. If the two texts differ in
    anything but separators, the mismatch is reported and no change is made.
    """

    if previous == formatted:
        return []
    try:
        aligned_a, aligned_b = align_spaced_units(
            spaced_units(previous), spaced_units(formatted)
        )
    except AlignmentError as exc:
        telemetry.record_event(
            "format.alignment_failed",
            level="warning",
            data={"offset": offset, "reason": str(exc)},
            logger_name="sexp_engine.formatting",
        )
        return []

    changes: List[ReformatChange] = []
    position = offset
    for (a_space, a_stuff), (b_space, _b_stuff) in zip(aligned_a, aligned_b):
        if a_space != b_space:
            changes.append(ReformatChange(position, position + len(a_space), b_space))
        position += len(a_space) + len(a_stuff)
    changes.reverse()
    return changes


def apply_changes(text: str, changes: Iterable[ReformatChange], *, offset: int = 0) -> str:
    """Apply descending, non-overlapping ``changes`` to ``text`` starting at ``offset``."""

    result = text
    for change in changes:
        start = change.start - offset
        end = change.end - offset
        result = result[:start] + change.text + result[end:]
    return result


def offset_after_changes(index: int, changes: Iterable[ReformatChange]) -> int:
    """Where a cursor at ``index`` ends up once descending ``changes`` are applied.

    A cursor inside a replaced separator run keeps its distance from the run's
    start, clamped to the new run.
    """

    for change in changes:
        index = map_offset(index, change.start, change.end, len(change.text))
    return index


def is_descending(changes: Sequence[ReformatChange]) -> bool:
    """True when no change overlaps or follows the one before it."""

    return all(
        later.end <= earlier.start for earlier, later in zip(changes, changes[1:])
    )


__all__ = [
    "ReformatChange",
    "SpacedUnit",
    "align_spaced_units",
    "apply_changes",
    "is_descending",
    "offset_after_changes",
    "reformat_changes",
    "spaced_units",
]
