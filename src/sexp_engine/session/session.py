"""Per-document sessions and the registry that routes host notifications."""

from __future__ import annotations

import time
from typing import Callable, Dict, Iterator, List, Optional

from sexp_engine.document.lines import DirtyLines, LineModel
from sexp_engine.document.sync import TextChangeEvent
from sexp_engine.errors import MissingDocumentError, StaleModelError
from sexp_engine.formatting.config import FormatterConfig
from sexp_engine.formatting.engine import Formatter, default_formatter
from sexp_engine.formatting.ranges import MisalignmentAdvisor
from sexp_engine.formatting.scheduler import FormatScheduler
from sexp_engine.runtime import telemetry

from .host import EditorHost


def _noop(*_args, **_kwargs) -> None:  # pragma: no cover - default hook
    return None


class DocumentSession:
    """Everything the engine knows about one open document."""

    def __init__(
        self,
        document_id: str,
        text: str = "",
        *,
        version: int = 0,
        eol: str = "\n",
        language_id: str = "clojure",
        config: Optional[FormatterConfig] = None,
        formatter: Optional[Formatter] = None,
        advisor: Optional[MisalignmentAdvisor] = None,
        on_error: Callable[[str], None] = _noop,
        clock: Optional[Callable[[], float]] = None,
    ) -> None:
        self.document_id = document_id
        self.language_id = language_id
        self.config = config or FormatterConfig()
        self.formatter = formatter if formatter is not None else default_formatter()
        self.advisor = advisor or MisalignmentAdvisor()
        self.on_error = on_error
        self.model = LineModel.from_text(text, eol=eol, version=version)
        self.last_flush = DirtyLines(frozenset(), frozenset(), frozenset())
        self.scheduler = FormatScheduler(self, clock=clock or time.monotonic)

    def __repr__(self) -> str:
        return f"DocumentSession({self.document_id!r}, version={self.model.version})"

    def handle_change(self, event: TextChangeEvent) -> DirtyLines:
        """Mirror a host change into the model.

        Raises ``StaleModelError`` when ``event`` does not follow the version
        the model reflects.
        """

        edits = event.edits(self.model)
        self.model.apply_edits(
            edits, base_version=event.base_version, new_version=event.version
        )
        self.last_flush = self.model.flush_changes()
        return self.last_flush

    def reload(self, text: str, version: int) -> None:
        """Throw the model away and rebuild it from the host's text."""

        telemetry.record_event(
            "session.reload",
            level="warning",
            data={"document": self.document_id, "from": self.model.version, "to": version},
            logger_name="sexp_engine.session",
        )
        self.model = LineModel.from_text(text, eol=self.model.eol, version=version)
        self.scheduler.cancel()

    def report_error(self, message: str) -> None:
        self.on_error(message)


class SessionRegistry:
    """Open sessions keyed by document id, limited to configured languages."""

    def __init__(
        self,
        config: Optional[FormatterConfig] = None,
        *,
        formatter: Optional[Formatter] = None,
        advisor: Optional[MisalignmentAdvisor] = None,
        on_error: Callable[[str], None] = _noop,
        clock: Optional[Callable[[], float]] = None,
    ) -> None:
        self.config = config or FormatterConfig.from_env()
        self.formatter = formatter
        self.advisor = advisor or MisalignmentAdvisor()
        self.on_error = on_error
        self.clock = clock
        self._sessions: Dict[str, DocumentSession] = {}
        self._unsubscribe: Dict[str, Callable[[], None]] = {}

    def __contains__(self, document_id: object) -> bool:
        return document_id in self._sessions

    def __iter__(self) -> Iterator[DocumentSession]:
        return iter(list(self._sessions.values()))

    def __len__(self) -> int:
        return len(self._sessions)

    def accepts(self, language_id: str) -> bool:
        return language_id in self.config.language_ids

    def open(
        self,
        document_id: str,
        text: str,
        *,
        language_id: str = "clojure",
        version: int = 0,
        eol: str = "\n",
    ) -> Optional[DocumentSession]:
        if not self.accepts(language_id):
            return None
        session = DocumentSession(
            document_id,
            text,
            version=version,
            eol=eol,
            language_id=language_id,
            config=self.config,
            formatter=self.formatter,
            advisor=self.advisor,
            on_error=self.on_error,
            clock=self.clock,
        )
        self._sessions[document_id] = session
        telemetry.record_event(
            "session.open",
            data={"document": document_id, "version": version, "language": language_id},
            logger_name="sexp_engine.session",
        )
        return session

    def attach(self, editor: EditorHost) -> Optional[DocumentSession]:
        """Open a session for ``editor`` and follow its change notifications."""

        session = self.open(
            editor.document_id,
            editor.text,
            language_id=editor.language_id,
            version=editor.version,
            eol=editor.eol,
        )
        if session is None:
            return None
        subscribe = getattr(editor, "subscribe", None)
        if subscribe is not None:
            self._unsubscribe[editor.document_id] = subscribe(self.on_editor_change)
        return session

    def close(self, document_id: str) -> None:
        session = self._sessions.pop(document_id, None)
        unsubscribe = self._unsubscribe.pop(document_id, None)
        if unsubscribe is not None:
            unsubscribe()
        if session is not None:
            session.scheduler.cancel()
            telemetry.record_event(
                "session.close",
                data={"document": document_id},
                logger_name="sexp_engine.session",
            )

    def get(self, document_id: str) -> DocumentSession:
        try:
            return self._sessions[document_id]
        except KeyError:
            raise MissingDocumentError(document_id) from None

    def handle_change(
        self, event: TextChangeEvent, editor: Optional[EditorHost] = None
    ) -> Optional[DirtyLines]:
        """Route ``event`` to its session; resync from ``editor`` when stale."""

        session = self._sessions.get(event.document_id)
        if session is None:
            return None
        try:
            return session.handle_change(event)
        except StaleModelError as exc:
            self._report_stale(session, str(exc))
            if editor is None:
                raise
            session.reload(editor.text, editor.version)
            return None

    def on_editor_change(self, editor: EditorHost, event: TextChangeEvent) -> None:
        self.handle_change(event, editor)

    def _report_stale(self, session: DocumentSession, reason: str) -> None:
        telemetry.record_event(
            "session.stale_change",
            level="warning",
            data={"document": session.document_id, "reason": reason},
            logger_name="sexp_engine.session",
        )

    def process_timeouts(self, now: Optional[float] = None) -> List[bool]:
        """Poll every session's scheduler; results of requests that fired."""

        fired = []
        for session in self:
            outcome = session.scheduler.process_timeouts(now)
            if outcome is not None:
                fired.append(outcome)
        return fired


__all__ = ["DocumentSession", "SessionRegistry"]
