"""Debounced format-as-you-type for one document session."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Dict, Optional

from sexp_engine.runtime import telemetry

from .pipeline import format_position

if TYPE_CHECKING:  # pragma: no cover
    from sexp_engine.session.host import EditorHost
    from sexp_engine.session.session import DocumentSession


@dataclass
class ScheduledFormatRequest:
    editor: "EditorHost"
    document_id: str
    expected_version: int
    deadline: float
    generation: int
    extra: Dict[str, Any] = field(default_factory=dict)


class FormatScheduler:
    """Holds at most one pending request; a newer one replaces it.

    Requests are fired by ``process_timeouts`` (polled by the host) or
    ``force``. At fire time the editor must still be active and at the version
    expected when the request was made, otherwise the request is dropped.
    """

    def __init__(
        self,
        session: "DocumentSession",
        *,
        delay_ms: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.session = session
        self.delay_ms = delay_ms if delay_ms is not None else session.config.format_delay_ms
        self.clock = clock
        self.pending: Optional[ScheduledFormatRequest] = None
        self._generation = 0

    def schedule(
        self, editor: "EditorHost", extra: Optional[Dict[str, Any]] = None
    ) -> Optional[ScheduledFormatRequest]:
        """Ask for a format once the edit in flight has landed."""

        if not self.session.config.format_as_you_type:
            return None
        expected = editor.version + 1
        current = self.pending
        if current is not None and current.expected_version == expected:
            return current
        self._generation += 1
        self.pending = ScheduledFormatRequest(
            editor=editor,
            document_id=editor.document_id,
            expected_version=expected,
            deadline=self.clock() + self.delay_ms / 1000.0,
            generation=self._generation,
            extra=dict(extra or {}),
        )
        return self.pending

    def cancel(self) -> None:
        self.pending = None

    def process_timeouts(self, now: Optional[float] = None) -> Optional[bool]:
        """Fire the pending request if its deadline passed.

        Returns ``None`` when nothing fired, else whether a format was applied.
        """

        request = self.pending
        if request is None:
            return None
        if now is None:
            now = self.clock()
        if request.deadline > now:
            return None
        return self._fire(request.generation)

    def force(self) -> Optional[bool]:
        request = self.pending
        if request is None:
            return None
        return self._fire(request.generation)

    def _fire(self, generation: int) -> Optional[bool]:
        request = self.pending
        if request is None or request.generation != generation:
            return None
        self.pending = None
        editor = request.editor
        reason = self._drop_reason(request)
        if reason is not None:
            telemetry.record_event(
                "format.schedule.dropped",
                data={
                    "document": request.document_id,
                    "expected": request.expected_version,
                    "reason": reason,
                },
                logger_name="sexp_engine.formatting",
            )
            return False
        with telemetry.span(
            "format::as_you_type",
            logger_name="sexp_engine.formatting",
            component="scheduler",
            metadata={"document": request.document_id, "version": editor.version},
        ):
            return format_position(self.session, editor, on_type=True, extra=request.extra)

    @staticmethod
    def _drop_reason(request: ScheduledFormatRequest) -> Optional[str]:
        editor = request.editor
        if not editor.is_active():
            return "editor inactive"
        if editor.document_id != request.document_id:
            return "document changed"
        if editor.version != request.expected_version:
            return f"version {editor.version} != {request.expected_version}"
        return None


__all__ = ["FormatScheduler", "ScheduledFormatRequest"]
