"""Formatter configuration and per-call overrides."""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from typing import Any, Dict, Mapping, Optional, Tuple

from sexp_engine.runtime.telemetry import env, env_flag

DEFAULT_CLJFMT_OPTIONS = (
    "{:remove-surrounding-whitespace? true\n"
    " :remove-trailing-whitespace? true\n"
    " :remove-consecutive-blank-lines? false\n"
    " :insert-missing-whitespace? true\n"
    " :align-associative? false}"
)

DEFAULT_FORMAT_DELAY_MS = 250

# Override keys as the formatting engine spells them, mapped to field names.
ENGINE_KEYS: Mapping[str, str] = {
    "format-depth": "format_depth",
    "align-associative?": "align_associative",
    "remove-multiple-non-indenting-spaces?": "remove_multiple_non_indenting_spaces",
    "format-as-you-type": "format_as_you_type",
    "keep-comment-forms-trail-paren-on-own-line?": "keep_comment_forms_trail_paren_on_own_line",
    "comment-form?": "comment_form",
    "cljfmt-options-string": "cljfmt_options_string",
}


@dataclass(frozen=True, slots=True)
class FormatterConfig:
    format_depth: Optional[int] = None
    align_associative: bool = False
    remove_multiple_non_indenting_spaces: bool = False
    format_as_you_type: bool = True
    keep_comment_forms_trail_paren_on_own_line: bool = True
    comment_form: bool = False
    cljfmt_options_string: str = DEFAULT_CLJFMT_OPTIONS
    format_delay_ms: int = DEFAULT_FORMAT_DELAY_MS
    language_ids: Tuple[str, ...] = ("clojure",)

    def __post_init__(self) -> None:
        if self.format_depth is not None and self.format_depth < 1:
            raise ValueError("format_depth must be at least 1")
        if self.format_delay_ms < 0:
            raise ValueError("format_delay_ms cannot be negative")

    @classmethod
    def from_env(cls) -> "FormatterConfig":
        """Defaults overridden by ``SEXP_ENGINE_*`` environment variables."""

        defaults = cls()
        depth = env("FORMAT_DEPTH")
        delay = env("FORMAT_DELAY_MS")
        languages = env("LANGUAGE_IDS")
        return cls(
            format_depth=int(depth) if depth else None,
            align_associative=env_flag("ALIGN_ASSOCIATIVE", defaults.align_associative),
            remove_multiple_non_indenting_spaces=env_flag(
                "REMOVE_MULTIPLE_NON_INDENTING_SPACES",
                defaults.remove_multiple_non_indenting_spaces,
            ),
            format_as_you_type=env_flag("FORMAT_AS_YOU_TYPE", defaults.format_as_you_type),
            keep_comment_forms_trail_paren_on_own_line=env_flag(
                "KEEP_COMMENT_TRAIL_PAREN_ON_OWN_LINE",
                defaults.keep_comment_forms_trail_paren_on_own_line,
            ),
            cljfmt_options_string=env("CLJFMT_OPTIONS") or defaults.cljfmt_options_string,
            format_delay_ms=int(delay) if delay else defaults.format_delay_ms,
            language_ids=tuple(
                part.strip() for part in languages.split(",") if part.strip()
            )
            if languages
            else defaults.language_ids,
        )

    def merged(self, extra: Optional[Mapping[str, Any]] = None) -> "FormatterConfig":
        """Apply overrides given either as field names or engine keys."""

        if not extra:
            return self
        known = {f.name for f in fields(self)}
        changes: Dict[str, Any] = {}
        for key, value in extra.items():
            name = ENGINE_KEYS.get(key, key)
            if name not in known:
                raise KeyError(f"Unknown formatter option '{key}'")
            changes[name] = value
        return replace(self, **changes)

    def to_engine_options(self) -> Dict[str, Any]:
        """The mapping handed to the formatting engine alongside the text."""

        options: Dict[str, Any] = {
            engine_key: getattr(self, name)
            for engine_key, name in ENGINE_KEYS.items()
            if name != "format_depth"
        }
        if self.format_depth is not None:
            options["format-depth"] = self.format_depth
        return options


__all__ = [
    "DEFAULT_CLJFMT_OPTIONS",
    "DEFAULT_FORMAT_DELAY_MS",
    "ENGINE_KEYS",
    "FormatterConfig",
]
