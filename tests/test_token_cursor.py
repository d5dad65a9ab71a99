from __future__ import annotations

from sexp_engine.cursor import (
    CursorContext,
    cursor_at,
    determine_contexts,
    top_level_ranges,
)
from sexp_engine.document import LineModel
from sexp_engine.formatting import format_depth

DEFN = "(defn f [x]\n  (+ x 1))"
DEFTYPE = "(deftype P [x]\n  Object\n  (toString [_] x))"


def make_cursor(text: str, offset: int):
    return cursor_at(LineModel.from_text(text), offset)


def test_range_for_list_from_inside_defn_body() -> None:
    cursor = make_cursor(DEFN, DEFN.index("+"))
    assert cursor.range_for_list(1) == (14, 21)
    assert DEFN[14:21] == "(+ x 1)"
    assert cursor.range_for_list(2) == (0, len(DEFN))
    assert cursor.range_for_list(9) == (0, len(DEFN))


def test_function_name_and_backing_up_one_function() -> None:
    cursor = make_cursor(DEFN, DEFN.index("+"))
    assert cursor.get_function_name() == "+"
    outer = cursor.clone()
    assert outer.backward_function(1)
    assert outer.get_function_name() == "defn"
    assert cursor.get_function_name() == "+"
    assert format_depth(cursor) == 1


def test_multi_clause_forms_default_to_depth_two() -> None:
    cursor = make_cursor(DEFTYPE, DEFTYPE.rindex("x"))
    assert cursor.get_function_name() == "toString"
    assert format_depth(cursor) == 2
    assert cursor.range_for_list(2) == (0, len(DEFTYPE))


def test_forward_and_backward_sexp_cross_whole_forms() -> None:
    text = "(a #'b (c [d]) \"e f\")"
    cursor = make_cursor(text, 1)
    assert cursor.forward_sexp()
    assert cursor.offset_start == 2
    assert cursor.forward_sexp()
    assert text[cursor.offset_start - 3 : cursor.offset_start] == "#'b"
    assert cursor.forward_sexp()
    assert cursor.forward_sexp()
    assert cursor.get_token().raw == ")"
    assert not cursor.forward_sexp()
    assert cursor.backward_sexp()
    assert cursor.offset_start == text.index('"')
    assert cursor.backward_sexp()
    assert cursor.backward_sexp()
    assert cursor.offset_start == text.index("#'")


def test_forward_and_backward_list() -> None:
    text = "(a (b c) d)"
    cursor = make_cursor(text, 5)
    assert cursor.forward_list()
    assert cursor.offset_start == 7
    assert cursor.backward_list()
    assert cursor.offset_start == 4
    assert cursor.backward_up_list()
    assert cursor.offset_start == 3
    assert cursor.up_list()
    assert cursor.offset_start == len(text)


def test_string_and_comment_membership() -> None:
    text = '(a "s t") ; c'
    model = LineModel.from_text(text)
    assert cursor_at(model, 5).within_string()
    assert not cursor_at(model, 3).within_string()
    assert cursor_at(model, 11).within_comment()
    assert cursor_at(model, len(text)).within_comment()
    assert not cursor_at(model, 9).within_comment()


def test_multi_line_string_membership() -> None:
    model = LineModel.from_text('(str "one\ntwo" x)')
    assert cursor_at(model, 12).within_string()
    assert not cursor_at(model, 16).within_string()


def test_range_for_current_form() -> None:
    text = "(a (b c) d)"
    cursor = make_cursor(text, 0)
    assert cursor.range_for_current_form(4) == (4, 5)
    assert cursor.range_for_current_form(8) == (3, 8)
    assert cursor.range_for_current_form(3) == (3, 8)


def test_range_for_defun_cached_and_navigated_agree() -> None:
    text = "(a)\n(b c)\n\n  (d)"
    model = LineModel.from_text(text)
    cursor = cursor_at(model, 0)
    for offset, expected in [(1, (0, 3)), (3, (0, 3)), (6, (4, 9)), (14, (13, 16)), (16, (13, 16))]:
        assert cursor.range_for_defun(offset) == expected
        assert cursor.range_for_defun(offset, use_cache=False) == expected
    assert cursor.range_for_defun(10) is None
    assert cursor.range_for_defun(10, use_cache=False) is None


def test_top_level_ranges_skip_stray_closers() -> None:
    model = LineModel.from_text('(a) x "s"\n(b)')
    assert top_level_ranges(model) == [(0, 3), (4, 5), (6, 9), (10, 13)]
    assert top_level_ranges(LineModel.from_text(") (a)")) == [(2, 5)]


def test_cursor_contexts() -> None:
    text = '(a "s") ; c\n(b)'
    model = LineModel.from_text(text)
    assert CursorContext.IN_STRING in determine_contexts(model, 4)
    start = determine_contexts(model, 0)
    assert CursorContext.AT_START_OF_LINE in start
    assert CursorContext.AT_END_OF_LINE not in start
    assert CursorContext.BEFORE_COMMENT in determine_contexts(model, 7)
    end = determine_contexts(model, 11)
    assert {CursorContext.IN_COMMENT, CursorContext.AT_END_OF_LINE} <= end
    after = determine_contexts(model, 12)
    assert {CursorContext.AFTER_COMMENT, CursorContext.AT_START_OF_LINE} <= after
