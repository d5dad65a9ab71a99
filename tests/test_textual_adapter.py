from __future__ import annotations

from typing import List, Optional, Sequence

import pytest

from sexp_engine.adapters.textual import TextualFormatAdapter, TextualUIHooks
from sexp_engine.cursor import CursorContext
from sexp_engine.formatting import CHOICE_DONT_SHOW_AGAIN, CallableFormatter, FormatterConfig
from sexp_engine.session import EditBatch, InMemoryEditor


class Recorder:
    def __init__(self, answer: Optional[str] = None) -> None:
        self.answer = answer
        self.batches: List[EditBatch] = []
        self.statuses: List[str] = []
        self.advisories: List[str] = []
        self.lines: List[str] = []

    def hooks(self) -> TextualUIHooks:
        return TextualUIHooks(
            apply_batch=self.batches.append,
            update_status=self.statuses.append,
            show_advisory=self.advise,
            log=self.lines.append,
        )

    def advise(self, message: str, choices: Sequence[str]) -> Optional[str]:
        self.advisories.append(message)
        return self.answer


def make_adapter(text: str, formatter, clock, *, recorder: Recorder | None = None, **config):
    recorder = recorder or Recorder()
    editor = InMemoryEditor("demo.clj", text)
    adapter = TextualFormatAdapter(
        editor,
        recorder.hooks(),
        config=FormatterConfig().merged(config),
        formatter=formatter,
        clock=clock,
    )
    return adapter, recorder


def test_typing_formats_after_the_delay(formatter, clock) -> None:
    adapter, recorder = make_adapter("(foo 1   2)", formatter, clock)
    adapter.handle_edit(4, 4, " ")
    assert adapter.process_timeouts() is None
    clock.advance(300)
    assert adapter.process_timeouts() is True
    assert adapter.editor.text == "(foo 1 2)"
    assert len(recorder.batches) == 1
    assert recorder.batches[0].cursor == 5
    assert any(line.startswith("timeout ->") for line in recorder.lines)


def test_commands_report_status_and_push_batches(formatter, clock) -> None:
    adapter, recorder = make_adapter("(a)\n(b   c)", formatter, clock)
    adapter.set_cursor(5)
    assert adapter.format_position()
    assert adapter.editor.text == "(a)\n(b c)"
    assert recorder.statuses[-1] == "format: ok"
    assert len(recorder.batches) == 1

    adapter.trim_whitespace()
    assert recorder.statuses[-1] == "trim: ok"
    assert len(recorder.batches) == 1


def test_command_cancels_pending_format(formatter, clock) -> None:
    adapter, _recorder = make_adapter("(a  b)", formatter, clock)
    adapter.handle_edit(0, 0, " ")
    assert adapter.session.scheduler.pending is not None
    adapter.align_position()
    assert adapter.session.scheduler.pending is None


def test_engine_errors_stay_visible(clock) -> None:
    def boom(text, options):
        raise RuntimeError("kaput")

    adapter, recorder = make_adapter("(a)\n(b   c)", CallableFormatter(boom), clock)
    adapter.set_cursor(5)
    adapter.format_position()
    assert recorder.statuses[-1] == "format error: boom: kaput"
    assert adapter.editor.text == "(a)\n(b   c)"


def test_misaligned_form_shows_advisory_once(formatter, clock) -> None:
    recorder = Recorder(answer=CHOICE_DONT_SHOW_AGAIN)
    text = "  (defn f [x]\n    (+   x 1))"
    adapter, _ = make_adapter(text, formatter, clock, recorder=recorder)
    adapter.set_cursor(text.index("f"))
    adapter.format_position()
    adapter.format_position()
    assert len(recorder.advisories) == 1
    assert adapter.editor.text == "  (defn f [x]\n    (+ x 1))"


def test_format_document_and_contexts(formatter, clock) -> None:
    adapter, recorder = make_adapter('(str  "a b")\n(c   d)', formatter, clock)
    assert adapter.format_document()
    assert adapter.editor.text == '(str "a b")\n(c d)'
    assert recorder.statuses[-1] == "format document: ok"
    adapter.set_cursor(7)
    assert CursorContext.IN_STRING in adapter.cursor_contexts()


def test_format_as_you_type_disabled(formatter, clock) -> None:
    adapter, recorder = make_adapter("(a  b)", formatter, clock, format_as_you_type=False)
    adapter.handle_edit(0, 0, " ")
    clock.advance(300)
    assert adapter.process_timeouts() is None
    assert recorder.batches == []


def test_unsupported_language_is_rejected(formatter, clock) -> None:
    editor = InMemoryEditor("notes.md", "# hi", language_id="markdown")
    with pytest.raises(ValueError):
        TextualFormatAdapter(editor, Recorder().hooks(), config=FormatterConfig(), formatter=formatter)


def test_close_releases_the_session(formatter, clock) -> None:
    adapter, _ = make_adapter("(a)", formatter, clock)
    adapter.close()
    assert "demo.clj" not in adapter.registry


def test_typed_newline_indents_the_new_line(formatter, clock) -> None:
    adapter, recorder = make_adapter("(defn f [x])", formatter, clock)
    adapter.handle_edit(11, 11, "\n")
    assert adapter.editor.text == "(defn f [x]\n  )"
    assert adapter.session.scheduler.pending is None
    assert len(recorder.batches) == 1
    assert recorder.batches[0].cursor == 14
