from __future__ import annotations

from typing import List, Optional, Sequence, Tuple

from sexp_engine.cursor import cursor_at
from sexp_engine.document import InsertEdit, LineModel
from sexp_engine.formatting import (
    CHOICE_DONT_SHOW_AGAIN,
    CHOICE_OK,
    GLOBAL_STATE,
    MISALIGNMENT_MESSAGE,
    FormatterConfig,
    GlobalState,
    MisalignmentAdvisor,
    calculate_format_range,
    list_around_point,
    non_overlapping_ranges_for_lists_around_offsets,
    reformat_list_ranges_for_edits,
)

DEFN = "(defn f [x]\n  (+ x 1))"
INDENTED = "  (defn f [x]\n    (+   x 1))"
DEFTYPE = "(deftype P [x]\n  Object\n  (toString [_] x))"


class RecordingNotifier:
    def __init__(self, answer: Optional[str] = None) -> None:
        self.answer = answer
        self.shown: List[Tuple[str, Sequence[str]]] = []

    def __call__(self, message: str, choices: Sequence[str]) -> Optional[str]:
        self.shown.append((message, tuple(choices)))
        return self.answer


def select(text: str, index: int, config: FormatterConfig | None = None, advisor=None):
    model = LineModel.from_text(text)
    return calculate_format_range(config or FormatterConfig(), cursor_at(model, index), index, advisor)


def test_innermost_list_at_default_depth() -> None:
    assert select(DEFN, DEFN.index("+")) == (14, 21)


def test_configured_depth_widens_the_range() -> None:
    assert select(DEFN, DEFN.index("+"), FormatterConfig(format_depth=2)) == (0, len(DEFN))


def test_multi_clause_forms_use_depth_two() -> None:
    assert select(DEFTYPE, DEFTYPE.rindex("x")) == (0, len(DEFTYPE))


def test_outside_any_form_there_is_no_range() -> None:
    assert select("(a)\n\n(b)", 4) is None


def test_current_form_when_no_enclosing_list() -> None:
    assert select("(a)\n\n(b)", 3) == (0, 3)


def test_indented_top_level_list_is_returned_with_advice() -> None:
    notifier = RecordingNotifier()
    advisor = MisalignmentAdvisor(notifier=notifier, state=GlobalState())
    assert select(INDENTED, INDENTED.index("f"), advisor=advisor) == (2, len(INDENTED))
    assert notifier.shown == [(MISALIGNMENT_MESSAGE, (CHOICE_OK, CHOICE_DONT_SHOW_AGAIN))]


def test_indented_top_level_current_form_is_refused() -> None:
    notifier = RecordingNotifier()
    advisor = MisalignmentAdvisor(notifier=notifier, state=GlobalState())
    assert select(INDENTED, 2, advisor=advisor) is None
    assert notifier.shown == []


def test_dont_show_again_silences_the_advisor() -> None:
    notifier = RecordingNotifier(answer=CHOICE_DONT_SHOW_AGAIN)
    advisor = MisalignmentAdvisor(notifier=notifier)
    index = INDENTED.index("f")
    assert select(INDENTED, index, advisor=advisor) == (2, len(INDENTED))
    assert select(INDENTED, index, advisor=advisor) == (2, len(INDENTED))
    assert len(notifier.shown) == 1
    assert advisor.silenced
    assert MisalignmentAdvisor(notifier=notifier, state=GLOBAL_STATE).silenced


def test_late_answer_from_host() -> None:
    advisor = MisalignmentAdvisor(notifier=RecordingNotifier(answer=None), state=GlobalState())
    assert advisor.inform()
    assert not advisor.silenced
    advisor.answer(CHOICE_OK)
    assert not advisor.silenced
    advisor.answer(CHOICE_DONT_SHOW_AGAIN)
    assert not advisor.inform()


def test_advisor_without_notifier_shows_nothing() -> None:
    assert not MisalignmentAdvisor(state=GlobalState()).inform()


def test_list_around_point_is_the_interior() -> None:
    model = LineModel.from_text("(a (b c) d)")
    assert list_around_point(model, 5) == (4, 7)
    assert list_around_point(model, 1) == (1, 10)
    assert list_around_point(LineModel.from_text("a b"), 1) is None


def test_ranges_around_offsets_drop_embedded_ones() -> None:
    nested = LineModel.from_text("(a (b c) d)")
    assert non_overlapping_ranges_for_lists_around_offsets(nested, [5, 6]) == [(4, 7)]
    assert non_overlapping_ranges_for_lists_around_offsets(nested, [5, 1]) == [(1, 10)]
    siblings = LineModel.from_text("(a b) (c d)")
    assert non_overlapping_ranges_for_lists_around_offsets(siblings, [7, 1]) == [(1, 4), (7, 10)]


def test_ranges_for_edits_use_new_content_points() -> None:
    model = LineModel.from_text("(a (b c) d)")
    assert reformat_list_ranges_for_edits(model, [InsertEdit(5, " ")]) == [(4, 7)]
    edits = [InsertEdit(5, " "), InsertEdit(9, "z")]
    assert reformat_list_ranges_for_edits(model, edits) == [(1, 10)]
    siblings = LineModel.from_text("(a b) (c d)")
    found = reformat_list_ranges_for_edits(siblings, [InsertEdit(8, " x"), InsertEdit(2, "y ")])
    assert sorted(found) == [(1, 4), (7, 10)]
