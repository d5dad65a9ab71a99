"""Choosing which span around a cursor gets reformatted."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence

from sexp_engine.cursor.token_cursor import LispTokenCursor, Range, cursor_at
from sexp_engine.document.edits import ModelEdit, new_content_points
from sexp_engine.runtime import telemetry

from .config import FormatterConfig

if TYPE_CHECKING:  # pragma: no cover
    from sexp_engine.document.lines import LineModel

# Multi-clause definitional forms format one level further out by default.
FORMAT_DEPTH_DEFAULTS: Mapping[str, int] = {
    "deftype": 2,
    "defprotocol": 2,
    "defrecord": 2,
    "reify": 2,
    "extend-type": 2,
    "extend-protocol": 2,
    "proxy": 2,
}

STOP_INFORMING_KEY = "sexp_engine.format.stop_informing_about_top_level_alignment"
MISALIGNMENT_MESSAGE = (
    "You are formatting a top level form that is not aligned with the left margin. "
    "It will not be re-aligned, only the content of the form is formatted. "
    "Align the opening bracket with the left margin and format again, or place "
    "the cursor outside of the form to format the whole document."
)
CHOICE_OK = "OK"
CHOICE_DONT_SHOW_AGAIN = "Don't show again"


class GlobalState:
    """Process-scoped flags that outlive any single document session."""

    def __init__(self) -> None:
        self._values: Dict[str, Any] = {}

    def get(self, key: str, default: Any = None) -> Any:
        return self._values.get(key, default)

    def update(self, key: str, value: Any) -> None:
        self._values[key] = value

    def clear(self) -> None:
        self._values.clear()


GLOBAL_STATE = GlobalState()

# (message, choices) -> chosen label, or None when the host answers later.
Notifier = Callable[[str, Sequence[str]], Optional[str]]


class MisalignmentAdvisor:
    """Tells the user, until told to stop, that an indented top-level form stays put."""

    def __init__(self, notifier: Optional[Notifier] = None, state: Optional[GlobalState] = None) -> None:
        self.notifier = notifier
        self.state = state if state is not None else GLOBAL_STATE

    @property
    def silenced(self) -> bool:
        return bool(self.state.get(STOP_INFORMING_KEY, False))

    def inform(self) -> bool:
        """Show the advisory unless silenced; returns whether it was shown."""

        if self.silenced:
            return False
        telemetry.record_event(
            "format.misaligned_top_level",
            data={"silenced": False},
            logger_name="sexp_engine.formatting",
        )
        if self.notifier is None:
            return False
        choice = self.notifier(MISALIGNMENT_MESSAGE, (CHOICE_OK, CHOICE_DONT_SHOW_AGAIN))
        self.answer(choice)
        return True

    def answer(self, choice: Optional[str]) -> None:
        if choice == CHOICE_DONT_SHOW_AGAIN:
            self.stop_informing()

    def stop_informing(self) -> None:
        self.state.update(STOP_INFORMING_KEY, True)


def format_depth(cursor: LispTokenCursor) -> int:
    probe = cursor.clone()
    probe.backward_function(1)
    name = probe.get_function_name()
    return FORMAT_DEPTH_DEFAULTS.get(name, 1) if name else 1


def calculate_format_range(
    config: FormatterConfig,
    cursor: LispTokenCursor,
    index: int,
    advisor: Optional[MisalignmentAdvisor] = None,
) -> Optional[Range]:
    """Range to reformat around ``index``, or ``None`` when there is none.

    A list range that turns out to be an indented top-level form is still
    returned, after advising the user. A current-form range in that situation
    is refused.
    """

    depth = config.format_depth if config.format_depth is not None else format_depth(cursor)
    top_level = cursor.range_for_defun(index, use_cache=False)
    if top_level is None:
        return None
    _row, top_level_col = cursor.model.get_row_col(top_level[0])

    list_range = cursor.range_for_list(depth)
    if list_range is not None:
        if list_range[0] == top_level[0] and top_level_col != 0 and advisor is not None:
            advisor.inform()
        return list_range

    current = cursor.range_for_current_form(index)
    if current is not None:
        if current[0] == top_level[0] and top_level_col != 0:
            return None
        if current[0] <= index <= current[1]:
            return current
    return None


def list_around_point(model: "LineModel", offset: int) -> Optional[Range]:
    cursor = cursor_at(model, offset)
    if not cursor.forward_list():
        return None
    end = cursor.offset_start
    if not cursor.backward_list():
        return None
    return cursor.offset_start, end


def _drop_embedded(ranges: Iterable[Range]) -> List[Range]:
    by_length = sorted(set(ranges), key=lambda r: r[1] - r[0], reverse=True)
    kept: List[Range] = []
    for candidate in by_length:
        if not any(outer[0] <= candidate[0] and candidate[1] <= outer[1] for outer in kept):
            kept.append(candidate)
    return kept


def non_overlapping_ranges_for_lists_around_offsets(
    model: "LineModel", offsets: Iterable[int]
) -> List[Range]:
    """Disjoint list interiors around ``offsets``, in document order."""

    found = (list_around_point(model, offset) for offset in offsets)
    return sorted(_drop_embedded(r for r in found if r is not None))


def reformat_list_ranges_for_edits(
    model: "LineModel", edits: Iterable[ModelEdit]
) -> List[Range]:
    """List interiors touched by the new content of ``edits``, longest first.

    Positions are taken against ``model`` before the edits are applied.
    """

    points = [point for edit in edits for point in new_content_points(edit)]
    found = (list_around_point(model, point) for point in points)
    return _drop_embedded(r for r in found if r is not None)


__all__ = [
    "CHOICE_DONT_SHOW_AGAIN",
    "CHOICE_OK",
    "FORMAT_DEPTH_DEFAULTS",
    "GLOBAL_STATE",
    "GlobalState",
    "MISALIGNMENT_MESSAGE",
    "MisalignmentAdvisor",
    "Notifier",
    "STOP_INFORMING_KEY",
    "calculate_format_range",
    "format_depth",
    "list_around_point",
    "non_overlapping_ranges_for_lists_around_offsets",
    "reformat_list_ranges_for_edits",
]
