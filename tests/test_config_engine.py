from __future__ import annotations

import sys

import pytest

from sexp_engine.formatting import (
    CallableFormatter,
    ExternalCommandFormatter,
    FormatFailure,
    Formatted,
    FormatterConfig,
    default_formatter,
    format_code,
    run_formatter,
)


def boom(text, options):
    raise RuntimeError("kaput")


def test_merged_accepts_engine_keys_and_field_names() -> None:
    config = FormatterConfig().merged({"format-depth": 3, "align_associative": True})
    assert config.format_depth == 3
    assert config.align_associative
    assert FormatterConfig().merged(None) == FormatterConfig()
    with pytest.raises(KeyError):
        FormatterConfig().merged({"indent-everything?": True})


def test_invalid_values_are_rejected() -> None:
    with pytest.raises(ValueError):
        FormatterConfig(format_depth=0)
    with pytest.raises(ValueError):
        FormatterConfig(format_delay_ms=-1)


def test_engine_options_only_carry_depth_when_set() -> None:
    options = FormatterConfig().to_engine_options()
    assert "format-depth" not in options
    assert options["align-associative?"] is False
    assert options["keep-comment-forms-trail-paren-on-own-line?"] is True
    assert FormatterConfig(format_depth=2).to_engine_options()["format-depth"] == 2


def test_from_env_reads_prefixed_variables(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SEXP_ENGINE_FORMAT_DEPTH", "2")
    monkeypatch.setenv("SEXP_ENGINE_ALIGN_ASSOCIATIVE", "yes")
    monkeypatch.setenv("SEXP_ENGINE_FORMAT_AS_YOU_TYPE", "0")
    monkeypatch.setenv("SEXP_ENGINE_FORMAT_DELAY_MS", "50")
    monkeypatch.setenv("SEXP_ENGINE_LANGUAGE_IDS", "clojure, clojurescript")
    config = FormatterConfig.from_env()
    assert config.format_depth == 2
    assert config.align_associative
    assert not config.format_as_you_type
    assert config.format_delay_ms == 50
    assert config.language_ids == ("clojure", "clojurescript")


def test_callable_formatter_reports_exceptions() -> None:
    result = CallableFormatter(boom).format("(a)", {})
    assert result == FormatFailure("boom: kaput")


def test_external_command_requires_argv() -> None:
    with pytest.raises(ValueError):
        ExternalCommandFormatter([])
    assert ExternalCommandFormatter.from_command_line("cljfmt fix -").argv == ["cljfmt", "fix", "-"]


def test_missing_executable_is_a_failure() -> None:
    result = ExternalCommandFormatter(["sexp-engine-no-such-formatter"]).format("(a)", {})
    assert result == FormatFailure("Executable not found: 'sexp-engine-no-such-formatter'")


def test_external_command_pipes_stdin_to_stdout() -> None:
    upper = ExternalCommandFormatter(
        [sys.executable, "-c", "import sys; sys.stdout.write(sys.stdin.read().upper())"]
    )
    assert upper.format("(a b)", {}) == Formatted("(A B)")
    failing = ExternalCommandFormatter(
        [sys.executable, "-c", "import sys; sys.stderr.write('bad input'); sys.exit(3)"]
    )
    result = failing.format("(a)", {})
    assert isinstance(result, FormatFailure)
    assert result.error.endswith("failed: bad input")


def test_external_command_forwards_true_boolean_options() -> None:
    echo_args = ExternalCommandFormatter(
        [sys.executable, "-c", "import sys; sys.stdout.write(' '.join(sys.argv[1:]))"]
    )
    trim = {"remove-multiple-non-indenting-spaces?": True, "align-associative?": True}
    assert echo_args.format("(a)", trim) == Formatted("--remove-multiple-non-indenting-spaces")
    assert echo_args.format("(a)", {"remove-multiple-non-indenting-spaces?": False}) == Formatted("")

    custom = ExternalCommandFormatter(["fmt"], flags={"align-associative?": "--align"})
    assert custom.command_for(trim) == ["fmt", "--align"]


def test_default_formatter_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("SEXP_ENGINE_FORMATTER_COMMAND", raising=False)
    assert default_formatter().argv == ["cljfmt", "fix", "-"]
    monkeypatch.setenv("SEXP_ENGINE_FORMATTER_COMMAND", "zprint '{:style :community}'")
    monkeypatch.setenv("SEXP_ENGINE_FORMATTER_TIMEOUT", "3")
    formatter = default_formatter()
    assert formatter.argv == ["zprint", "{:style :community}"]
    assert formatter.timeout == 3.0


def test_run_formatter_translates_line_endings(formatter) -> None:
    result = run_formatter(formatter, "(a\r\n b)", FormatterConfig(), eol="\r\n", on_type=True)
    assert result == Formatted("(a\r\n  b)")
    call = formatter.calls[-1]
    assert call["text"] == "(a\n b)"
    assert call["eol"] == "\r\n"
    assert call["on-type?"] is True


def test_format_code_falls_back_to_input(formatter) -> None:
    assert format_code(CallableFormatter(boom), "(a  b)", FormatterConfig()) == "(a  b)"
    assert format_code(formatter, "(a  b)", FormatterConfig()) == "(a b)"
