from __future__ import annotations

import re
from typing import Any, Callable, Dict, List, Mapping

import pytest

from sexp_engine.document.lexer import INITIAL_STATE, TokenKind, scan_line
from sexp_engine.formatting import CallableFormatter, FormatterConfig, GLOBAL_STATE
from sexp_engine.session import InMemoryEditor, SessionRegistry

_RUNS = re.compile(r"[ \t,]+")
_AFTER_OPEN = re.compile(r"([(\[{]) ")
_BEFORE_CLOSE = re.compile(r" ([)\]}])")


def tidy(text: str, options: Mapping[str, Any] | None = None) -> str:
    """Deterministic stand-in for a structural formatter.

    Collapses separator runs, trims spaces inside brackets and trailing
    whitespace, and indents continuation lines two spaces per open bracket.
    Lines that start inside a string are kept as they are.
    """

    out: List[str] = []
    depth = 0
    state = INITIAL_STATE
    for number, line in enumerate(text.split("\n")):
        if state.in_string:
            body = line
        else:
            body = _RUNS.sub(" ", line.strip(" \t,"))
            body = _BEFORE_CLOSE.sub(r"\1", _AFTER_OPEN.sub(r"\1", body))
            if number and body:
                body = "  " * depth + body
        tokens, state = scan_line(body, state)
        out.append(body)
        depth += sum(1 for t in tokens if t.kind is TokenKind.OPEN)
        depth -= sum(1 for t in tokens if t.kind is TokenKind.CLOSE)
        depth = max(depth, 0)
    return "\n".join(out)


class RecordingFormatter(CallableFormatter):
    """``tidy`` plus a log of the options each call received."""

    def __init__(self) -> None:
        self.calls: List[Dict[str, Any]] = []
        super().__init__(self._format, name="tidy")

    def _format(self, text: str, options: Mapping[str, Any]) -> str:
        self.calls.append({"text": text, **options})
        return tidy(text, options)


class FakeClock:
    def __init__(self, start: float = 100.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms / 1000.0


@pytest.fixture(autouse=True)
def reset_global_state() -> None:
    GLOBAL_STATE.clear()


@pytest.fixture
def formatter() -> RecordingFormatter:
    return RecordingFormatter()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_registry(formatter: RecordingFormatter, clock: FakeClock) -> Callable[..., SessionRegistry]:
    def factory(**overrides: Any) -> SessionRegistry:
        config = FormatterConfig().merged(overrides) if overrides else FormatterConfig()
        return SessionRegistry(config, formatter=formatter, clock=clock)

    return factory


@pytest.fixture
def make_editor(make_registry: Callable[..., SessionRegistry]):
    """Build an attached editor: ``make_editor(text, cursor=...) -> (editor, session)``."""

    def factory(text: str, *, cursor: int = 0, registry: SessionRegistry | None = None, **config: Any):
        registry = registry or make_registry(**config)
        editor = InMemoryEditor("doc.clj", text)
        editor.set_cursor(cursor)
        session = registry.attach(editor)
        assert session is not None
        return editor, session

    return factory
