"""Minimal Textual adapter that wires a document session into UI callbacks."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, FrozenSet, Optional, Sequence

from sexp_engine.cursor.contexts import CursorContext, determine_contexts
from sexp_engine.document.sync import TextChangeEvent
from sexp_engine.formatting.config import FormatterConfig
from sexp_engine.formatting.engine import Formatter
from sexp_engine.formatting.pipeline import (
    align_position_command,
    format_document,
    format_position_command,
    indent_position,
    trim_whitespace_position_command,
)
from sexp_engine.formatting.ranges import MisalignmentAdvisor
from sexp_engine.session.host import EditBatch, InMemoryEditor
from sexp_engine.session.session import DocumentSession, SessionRegistry


def _noop(*_args, **_kwargs) -> None:  # pragma: no cover - default hook
    return None


@dataclass(slots=True)
class TextualUIHooks:
    """Callbacks invoked by the adapter to update Textual widgets."""

    apply_batch: Callable[[EditBatch], None]
    update_status: Callable[[str], None] = _noop
    # (message, choices) -> chosen label, or None if the UI answers later
    show_advisory: Callable[[str, Sequence[str]], Optional[str]] = _noop
    log: Callable[[str], None] = _noop


class TextualFormatAdapter:
    """Bridges widget edits and commands to a ``DocumentSession``."""

    def __init__(
        self,
        editor: InMemoryEditor,
        hooks: TextualUIHooks,
        *,
        config: Optional[FormatterConfig] = None,
        formatter: Optional[Formatter] = None,
        clock: Optional[Callable[[], float]] = None,
    ) -> None:
        self.editor = editor
        self.hooks = hooks
        self.advisor = MisalignmentAdvisor(notifier=hooks.show_advisory)
        self.registry = SessionRegistry(
            config,
            formatter=formatter,
            advisor=self.advisor,
            on_error=self._report_error,
            clock=clock,
        )
        session = self.registry.attach(editor)
        if session is None:
            raise ValueError(f"Language '{editor.language_id}' is not formatted")
        self.session: DocumentSession = session
        self._seen_batches = len(editor.applied_batches)
        self._errors = 0

    def handle_edit(self, start: int, end: int, text: str) -> TextChangeEvent:
        """Mirror a widget edit and queue a format-as-you-type pass.

        A typed newline indents the new line at once instead.
        """

        newline = text == self.editor.eol
        if not newline:
            self.session.scheduler.schedule(self.editor)
        event = self.editor.replace(start, end, text)
        if newline:
            indent_position(self.session, self.editor, start + len(text))
            self._flush_batches()
        self._log_state("edit ->", start=start, end=end, inserted=len(text))
        return event

    def set_cursor(self, offset: int) -> None:
        self.editor.set_cursor(offset)

    def process_timeouts(self) -> Optional[bool]:
        """Fire a due format request and surface its edits to the UI."""

        outcome = self.session.scheduler.process_timeouts()
        if outcome is not None:
            self._log_state("timeout ->", applied=outcome)
            self._flush_batches()
        return outcome

    def format_position(self) -> bool:
        return self._run("format", format_position_command)

    def align_position(self) -> bool:
        return self._run("align", align_position_command)

    def trim_whitespace(self) -> bool:
        return self._run("trim", trim_whitespace_position_command)

    def format_document(self) -> bool:
        return self._run("format document", format_document)

    def cursor_contexts(self) -> FrozenSet[CursorContext]:
        selections = self.editor.selections
        offset = selections[0].active if selections else 0
        return determine_contexts(self.session.model, offset)

    def close(self) -> None:
        self.registry.close(self.editor.document_id)

    def _run(
        self, label: str, command: Callable[[DocumentSession, InMemoryEditor], bool]
    ) -> bool:
        self.session.scheduler.cancel()
        errors = self._errors
        applied = command(self.session, self.editor)
        self._flush_batches()
        if self._errors == errors:
            self.hooks.update_status(f"{label}: {'ok' if applied else 'skipped'}")
        self._log_state("command ->", command=label, applied=applied)
        return applied

    def _flush_batches(self) -> None:
        batches = self.editor.applied_batches[self._seen_batches :]
        self._seen_batches = len(self.editor.applied_batches)
        for batch in batches:
            self.hooks.apply_batch(batch)

    def _report_error(self, message: str) -> None:
        self._errors += 1
        self.hooks.update_status(f"format error: {message}")
        self._log_state("error ->", message=message)

    def _log_state(self, prefix: str, **fields: object) -> None:
        snapshot = self._state_metadata()
        snapshot.update({k: v for k, v in fields.items() if v is not None})
        parts = [prefix]
        for key, value in snapshot.items():
            parts.append(f"{key}={value!r}")
        self.hooks.log(" ".join(parts))

    def _state_metadata(self) -> Dict[str, object]:
        model = self.session.model
        pending = self.session.scheduler.pending
        return {
            "document": self.editor.document_id,
            "version": self.editor.version,
            "model_version": model.version,
            "pending_format": pending.expected_version if pending else None,
        }


__all__ = ["TextualFormatAdapter", "TextualUIHooks"]
