"""Format-range selection, the engine boundary, and whitespace reconciliation."""

from .config import DEFAULT_CLJFMT_OPTIONS, DEFAULT_FORMAT_DELAY_MS, ENGINE_KEYS, FormatterConfig
from .engine import (
    CLJFMT_OPTION_FLAGS,
    DEFAULT_FORMATTER_COMMAND,
    CallableFormatter,
    ExternalCommandFormatter,
    FormatFailure,
    Formatted,
    Formatter,
    FormatResult,
    default_formatter,
    format_code,
    run_formatter,
)
from .pipeline import (
    FormatInfo,
    align_position_command,
    apply_reformat,
    format_doc_index_info,
    format_doc_index_range,
    format_document,
    format_position,
    format_position_command,
    format_range,
    indent_position,
    range_reformat_changes,
    trim_whitespace_position_command,
)
from .ranges import (
    CHOICE_DONT_SHOW_AGAIN,
    CHOICE_OK,
    FORMAT_DEPTH_DEFAULTS,
    GLOBAL_STATE,
    MISALIGNMENT_MESSAGE,
    STOP_INFORMING_KEY,
    GlobalState,
    MisalignmentAdvisor,
    Notifier,
    calculate_format_range,
    format_depth,
    list_around_point,
    non_overlapping_ranges_for_lists_around_offsets,
    reformat_list_ranges_for_edits,
)
from .reconcile import (
    ReformatChange,
    SpacedUnit,
    align_spaced_units,
    apply_changes,
    is_descending,
    offset_after_changes,
    reformat_changes,
    spaced_units,
)
from .scheduler import FormatScheduler, ScheduledFormatRequest

__all__ = [
    "CHOICE_DONT_SHOW_AGAIN",
    "CHOICE_OK",
    "CLJFMT_OPTION_FLAGS",
    "CallableFormatter",
    "DEFAULT_CLJFMT_OPTIONS",
    "DEFAULT_FORMAT_DELAY_MS",
    "DEFAULT_FORMATTER_COMMAND",
    "ENGINE_KEYS",
    "ExternalCommandFormatter",
    "FORMAT_DEPTH_DEFAULTS",
    "FormatFailure",
    "FormatInfo",
    "FormatResult",
    "FormatScheduler",
    "Formatted",
    "Formatter",
    "FormatterConfig",
    "GLOBAL_STATE",
    "GlobalState",
    "MISALIGNMENT_MESSAGE",
    "MisalignmentAdvisor",
    "Notifier",
    "ReformatChange",
    "STOP_INFORMING_KEY",
    "ScheduledFormatRequest",
    "SpacedUnit",
    "align_position_command",
    "align_spaced_units",
    "apply_changes",
    "apply_reformat",
    "calculate_format_range",
    "default_formatter",
    "format_code",
    "format_depth",
    "format_doc_index_info",
    "format_doc_index_range",
    "format_document",
    "format_position",
    "format_position_command",
    "format_range",
    "indent_position",
    "is_descending",
    "list_around_point",
    "non_overlapping_ranges_for_lists_around_offsets",
    "offset_after_changes",
    "range_reformat_changes",
    "reformat_changes",
    "reformat_list_ranges_for_edits",
    "run_formatter",
    "spaced_units",
    "trim_whitespace_position_command",
]
