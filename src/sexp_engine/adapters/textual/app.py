"""Executable Textual app that formats a Clojure buffer as you type."""

from __future__ import annotations

import argparse
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence

try:  # pragma: no cover - imported only when demo is run
    from textual.app import App, ComposeResult
    from textual.widgets import Footer, Header, Static, TextArea
except ModuleNotFoundError as exc:  # pragma: no cover - friendly error for missing dep
    raise RuntimeError(
        "Install the 'textual' package to use sexp_engine.adapters.textual.app"
    ) from exc

from sexp_engine.formatting.config import FormatterConfig
from sexp_engine.formatting.engine import ExternalCommandFormatter, default_formatter
from sexp_engine.runtime import telemetry
from sexp_engine.session.host import EditBatch, InMemoryEditor

from .controller import TextualFormatAdapter, TextualUIHooks

SAMPLE = """(ns demo.core)

(defn greet [name]
  (str   "Hello, "   name))

(deftype Point [x y]
  Object
  (toString [_]   (str x "," y)))
"""


@dataclass
class UIState:
    status_text: str = ""
    contexts_text: str = ""


class SexpFormatApp(App[None]):
    """Minimal Textual UI embedding the format engine."""

    CSS = """
	Screen {
		layout: vertical;
	}

	#editor {
		height: 1fr;
		border: round $accent;
	}

	#status-line {
		height: 1;
		background: $surface-darken-1;
		padding: 0 1;
	}

	#context-line {
		height: 1;
		background: $surface-darken-2;
		padding: 0 1;
	}
	"""

    BINDINGS = [
        ("ctrl+q", "quit", "Quit"),
        ("ctrl+f", "format_position", "Format form"),
        ("ctrl+g", "align_position", "Align form"),
        ("ctrl+t", "trim_whitespace", "Trim spaces"),
        ("ctrl+d", "format_document", "Format file"),
    ]

    def __init__(
        self,
        *,
        text: str = SAMPLE,
        document_id: str = "untitled.clj",
        config: Optional[FormatterConfig] = None,
        formatter_command: Optional[str] = None,
    ) -> None:
        super().__init__()
        self._state = UIState()
        self._text = text
        self._document_id = document_id
        self._config = config
        self._formatter_command = formatter_command
        self.adapter: TextualFormatAdapter | None = None
        self._editor_widget: TextArea | None = None
        self._status_widget: Static | None = None
        self._context_widget: Static | None = None

    def compose(self) -> ComposeResult:
        yield Header(show_clock=True)
        self._editor_widget = TextArea(self._text, id="editor")
        yield self._editor_widget
        self._status_widget = Static("", id="status-line")
        yield self._status_widget
        self._context_widget = Static("", id="context-line")
        yield self._context_widget
        yield Footer()

    async def on_mount(self) -> None:
        if self._formatter_command:
            formatter = ExternalCommandFormatter.from_command_line(self._formatter_command)
        else:
            formatter = default_formatter()
        editor = InMemoryEditor(self._document_id, self._text)
        hooks = TextualUIHooks(
            apply_batch=self._apply_batch,
            update_status=self._update_status,
            show_advisory=self._show_advisory,
            log=self._log_line,
        )
        self.adapter = TextualFormatAdapter(
            editor, hooks, config=self._config, formatter=formatter
        )
        self.set_interval(0.1, self._process_timeouts)

    async def on_unmount(self) -> None:
        if self.adapter:
            self.adapter.close()
            self.adapter = None

    def _process_timeouts(self) -> None:
        if self.adapter:
            self.adapter.process_timeouts()

    def on_text_area_changed(self, event: TextArea.Changed) -> None:
        if not self.adapter:
            return
        new_text = event.text_area.text
        old_text = self.adapter.editor.text
        if new_text == old_text:
            return
        start = 0
        limit = min(len(old_text), len(new_text))
        while start < limit and old_text[start] == new_text[start]:
            start += 1
        old_end, new_end = len(old_text), len(new_text)
        while (
            old_end > start
            and new_end > start
            and old_text[old_end - 1] == new_text[new_end - 1]
        ):
            old_end -= 1
            new_end -= 1
        self.adapter.handle_edit(start, old_end, new_text[start:new_end])
        self._sync_cursor()

    def on_text_area_selection_changed(self, event: TextArea.SelectionChanged) -> None:
        self._sync_cursor()

    def _sync_cursor(self) -> None:
        if not (self.adapter and self._editor_widget):
            return
        widget = self._editor_widget
        offset = widget.document.get_index_from_location(widget.cursor_location)
        self.adapter.set_cursor(offset)
        contexts = sorted(context.value for context in self.adapter.cursor_contexts())
        self._state.contexts_text = " ".join(contexts)
        if self._context_widget:
            self._context_widget.update(self._state.contexts_text)

    def action_format_position(self) -> None:
        if self.adapter:
            self.adapter.format_position()

    def action_align_position(self) -> None:
        if self.adapter:
            self.adapter.align_position()

    def action_trim_whitespace(self) -> None:
        if self.adapter:
            self.adapter.trim_whitespace()

    def action_format_document(self) -> None:
        if self.adapter:
            self.adapter.format_document()

    def _apply_batch(self, batch: EditBatch) -> None:
        widget = self._editor_widget
        if widget is None:
            return
        document = widget.document
        # Batches are descending, so earlier locations stay valid.
        for change in batch.changes:
            widget.replace(
                change.text,
                document.get_location_from_index(change.start),
                document.get_location_from_index(change.end),
            )
        if batch.cursor is not None:
            widget.cursor_location = document.get_location_from_index(batch.cursor)

    def _update_status(self, status: str) -> None:
        self._state.status_text = status
        if self._status_widget:
            self._status_widget.update(status)

    def _show_advisory(self, message: str, choices: Sequence[str]) -> Optional[str]:
        self.notify(message, severity="information", timeout=8)
        return None

    def _log_line(self, line: str) -> None:
        telemetry.record_event("textual.adapter", level="debug", data={"line": line})


def _parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run the sexp engine Textual demo.")
    parser.add_argument("path", nargs="?", help="Clojure file to open (default: sample)")
    parser.add_argument(
        "--formatter",
        default=os.environ.get("SEXP_ENGINE_FORMATTER_COMMAND"),
        help="Formatter command reading stdin and writing stdout (default: cljfmt fix -)",
    )
    parser.add_argument(
        "--no-format-as-you-type",
        action="store_true",
        help="Only format on explicit commands",
    )
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> None:
    args = _parse_args(argv)
    text = Path(args.path).read_text(encoding="utf-8") if args.path else SAMPLE
    config = FormatterConfig.from_env()
    if args.no_format_as_you_type:
        config = config.merged({"format-as-you-type": False})
    app = SexpFormatApp(
        text=text,
        document_id=args.path or "untitled.clj",
        config=config,
        formatter_command=args.formatter,
    )
    app.run()


if __name__ == "__main__":  # pragma: no cover - manual demo
    main()
