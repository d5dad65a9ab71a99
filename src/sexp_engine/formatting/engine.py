"""Boundary to the external structural formatting engine.

The engine is a pure function from ``(range_text, options)`` to formatted text
or an error message. The engine never edits documents; callers reconcile its
output against the live text.
"""

from __future__ import annotations

import shlex
import subprocess
from dataclasses import dataclass
from typing import Any, Callable, List, Mapping, Optional, Protocol, Sequence, Union

from sexp_engine.runtime import telemetry
from sexp_engine.runtime.telemetry import env

from .config import FormatterConfig


@dataclass(frozen=True, slots=True)
class Formatted:
    text: str


@dataclass(frozen=True, slots=True)
class FormatFailure:
    error: str


FormatResult = Union[Formatted, FormatFailure]


class Formatter(Protocol):
    """Anything that can format a span of Lisp source."""

    def format(self, range_text: str, options: Mapping[str, Any]) -> FormatResult:
        ...


class CallableFormatter:
    """Adapts a plain ``(text, options) -> str`` function to ``Formatter``."""

    def __init__(self, fn: Callable[[str, Mapping[str, Any]], str], *, name: str = "") -> None:
        self._fn = fn
        self.name = name or getattr(fn, "__name__", "formatter")

    def format(self, range_text: str, options: Mapping[str, Any]) -> FormatResult:
        try:
            return Formatted(self._fn(range_text, options))
        except Exception as exc:
            return FormatFailure(f"{self.name}: {exc}")


# Engine option -> command-line flag added when the option is true.
CLJFMT_OPTION_FLAGS: Mapping[str, str] = {
    "remove-multiple-non-indenting-spaces?": "--remove-multiple-non-indenting-spaces",
}


class ExternalCommandFormatter:
    """Pipes text through a formatter executable, e.g. ``cljfmt fix -``.

    Boolean options listed in ``flags`` are appended to the command line when
    they are true. Other options, the cljfmt options map included, are
    expected to come from the tool's own configuration.
    """

    def __init__(
        self,
        argv: Sequence[str],
        *,
        timeout: float = 10.0,
        cwd: Optional[str] = None,
        flags: Optional[Mapping[str, str]] = None,
    ) -> None:
        if not argv:
            raise ValueError("argv cannot be empty")
        self.argv = list(argv)
        self.timeout = timeout
        self.cwd = cwd
        self.flags = dict(CLJFMT_OPTION_FLAGS if flags is None else flags)

    @classmethod
    def from_command_line(cls, command: str, **kwargs: Any) -> "ExternalCommandFormatter":
        return cls(shlex.split(command), **kwargs)

    def command_for(self, options: Mapping[str, Any]) -> List[str]:
        return self.argv + [flag for key, flag in self.flags.items() if options.get(key) is True]

    def format(self, range_text: str, options: Mapping[str, Any]) -> FormatResult:
        argv = self.command_for(options)
        command = " ".join(shlex.quote(part) for part in argv)
        try:
            completed = subprocess.run(
                argv,
                input=range_text,
                capture_output=True,
                text=True,
                encoding="utf-8",
                timeout=self.timeout,
                cwd=self.cwd,
                check=False,
            )
        except FileNotFoundError:
            return FormatFailure(f"Executable not found: '{self.argv[0]}'")
        except subprocess.TimeoutExpired:
            return FormatFailure(f"'{command}' timed out after {self.timeout}s")
        if completed.returncode != 0:
            detail = completed.stderr.strip() or f"exit code {completed.returncode}"
            return FormatFailure(f"'{command}' failed: {detail}")
        return Formatted(completed.stdout)


DEFAULT_FORMATTER_COMMAND = "cljfmt fix -"


def default_formatter() -> ExternalCommandFormatter:
    """The command from ``SEXP_ENGINE_FORMATTER_COMMAND``, else ``cljfmt fix -``."""

    command = env("FORMATTER_COMMAND") or DEFAULT_FORMATTER_COMMAND
    timeout = env("FORMATTER_TIMEOUT")
    return ExternalCommandFormatter.from_command_line(
        command, timeout=float(timeout) if timeout else 10.0
    )


def run_formatter(
    formatter: Formatter,
    text: str,
    config: FormatterConfig,
    *,
    eol: str = "\n",
    on_type: bool = False,
) -> FormatResult:
    """Call the engine with ``text``, translating line endings both ways."""

    options = dict(config.to_engine_options())
    options["eol"] = eol
    options["on-type?"] = on_type
    with telemetry.span(
        "format::engine",
        logger_name="sexp_engine.formatting",
        component="formatting",
        metadata={"length": len(text)},
    ) as handle:
        result = formatter.format(text.replace(eol, "\n") if eol != "\n" else text, options)
        if isinstance(result, FormatFailure):
            handle.add_metadata("error", result.error)
            return result
        formatted = result.text
        if eol != "\n":
            formatted = formatted.replace("\r\n", "\n").replace("\n", eol)
        return Formatted(formatted)


def format_code(
    formatter: Formatter,
    code: str,
    config: FormatterConfig,
    *,
    eol: str = "\n",
    on_type: bool = False,
) -> str:
    """Formatted ``code``, or ``code`` unchanged when the engine fails."""

    result = run_formatter(formatter, code, config, eol=eol, on_type=on_type)
    if isinstance(result, FormatFailure):
        telemetry.record_event(
            "format.engine_error",
            level="error",
            data={"error": result.error},
            logger_name="sexp_engine.formatting",
        )
        return code
    return result.text


__all__ = [
    "CallableFormatter",
    "CLJFMT_OPTION_FLAGS",
    "DEFAULT_FORMATTER_COMMAND",
    "ExternalCommandFormatter",
    "FormatFailure",
    "FormatResult",
    "Formatted",
    "Formatter",
    "default_formatter",
    "format_code",
    "run_formatter",
]
