"""From a cursor or selection to one atomic batch of whitespace edits.

Every entry point leaves the document untouched on failure: engine errors,
stale models, healing and alignment problems are reported and swallowed here
so nothing propagates into the host's event loop.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Iterable, List, Mapping, Optional, Sequence, Tuple

from sexp_engine.cursor.brackets import heal_brackets
from sexp_engine.cursor.indent import get_indent
from sexp_engine.cursor.token_cursor import Range
from sexp_engine.document.lexer import INITIAL_STATE, scan_line
from sexp_engine.errors import BracketHealingError, SexpEngineError
from sexp_engine.runtime import telemetry

from .config import FormatterConfig
from .engine import FormatFailure, run_formatter
from .ranges import calculate_format_range
from .reconcile import ReformatChange, offset_after_changes, reformat_changes

if TYPE_CHECKING:  # pragma: no cover
    from sexp_engine.session.host import EditorHost
    from sexp_engine.session.session import DocumentSession

LOGGER_NAME = "sexp_engine.formatting"


@dataclass(frozen=True, slots=True)
class FormatInfo:
    formatted_text: str
    range: Range
    previous_text: str
    previous_index: int
    new_index: int
    changes: List[ReformatChange] = field(default_factory=list)


def _check_fresh(session: "DocumentSession", editor: "EditorHost") -> bool:
    reason = session.model.stale(editor.version)
    if reason is None:
        return True
    telemetry.record_event(
        "format.stale_model",
        level="warning",
        data={"document": session.document_id, "reason": reason},
        logger_name=LOGGER_NAME,
    )
    return False


def _code_lines(text: str, eol: str) -> List[bool]:
    """Per line of ``text``: ``True`` unless the line starts inside a string."""

    flags: List[bool] = []
    state = INITIAL_STATE
    for line in text.split(eol):
        flags.append(not state.in_string)
        _tokens, state = scan_line(line, state)
    return flags


def _dedent_continuation(text: str, indent: int, eol: str) -> str:
    if not indent:
        return text
    lines = text.split(eol)
    flags = _code_lines(text, eol)
    for number in range(1, len(lines)):
        if flags[number]:
            line = lines[number]
            margin = len(line) - len(line.lstrip(" \t"))
            lines[number] = line[min(margin, indent) :]
    return eol.join(lines)


def _indent_continuation(text: str, indent: int, eol: str) -> str:
    if not indent:
        return text
    pad = " " * indent
    lines = text.split(eol)
    flags = _code_lines(text, eol)
    for number in range(1, len(lines)):
        if flags[number] and lines[number]:
            lines[number] = pad + lines[number]
    return eol.join(lines)


def _run_engine(
    session: "DocumentSession", text: str, config: FormatterConfig, *, on_type: bool = False
) -> Optional[str]:
    result = run_formatter(
        session.formatter, text, config, eol=session.model.eol, on_type=on_type
    )
    if isinstance(result, FormatFailure):
        telemetry.record_event(
            "format.engine_error",
            level="error",
            data={"document": session.document_id, "error": result.error},
            logger_name=LOGGER_NAME,
        )
        session.report_error(result.error)
        return None
    return result.text


def format_doc_index_range(
    session: "DocumentSession",
    editor: "EditorHost",
    index: int,
    extra: Optional[Mapping[str, Any]] = None,
) -> Optional[Range]:
    """Range to reformat for ``index``; the whole document when no form is chosen.

    ``None`` means the model is out of sync with ``editor``.
    """

    if not _check_fresh(session, editor):
        return None
    model = session.model
    config = session.config.merged(extra)
    cursor = model.get_token_cursor(index)
    chosen = calculate_format_range(config, cursor, index, session.advisor)
    if chosen is None:
        return 0, model.max_offset
    return chosen


def format_doc_index_info(
    session: "DocumentSession",
    editor: "EditorHost",
    index: int,
    extra: Optional[Mapping[str, Any]] = None,
    on_type: bool = False,
    *,
    chosen: Optional[Range] = None,
) -> Optional[FormatInfo]:
    """Format the range around ``index`` without touching the document.

    ``chosen`` skips range selection when the caller already made it.
    """

    if chosen is not None and not _check_fresh(session, editor):
        return None
    format_range_ = chosen or format_doc_index_range(session, editor, index, extra)
    if format_range_ is None:
        return None
    model = session.model
    version = editor.version
    cursor = model.get_token_cursor(index)
    config = session.config.merged(extra).merged(
        {"comment-form?": cursor.get_function_name() == "comment"}
    )
    start, end = format_range_
    previous = model.get_text(start, end)
    column = model.get_row_col(start)[1]
    formatted = _run_engine(
        session, _dedent_continuation(previous, column, model.eol), config, on_type=on_type
    )
    if formatted is None:
        return None
    formatted = _indent_continuation(formatted, column, model.eol)
    if editor.version != version or model.version != version:
        telemetry.record_event(
            "format.discarded",
            level="warning",
            data={"document": session.document_id, "version": version},
            logger_name=LOGGER_NAME,
        )
        return None
    changes = reformat_changes(start, previous, formatted)
    return FormatInfo(
        formatted_text=formatted,
        range=format_range_,
        previous_text=previous,
        previous_index=index,
        new_index=offset_after_changes(index, changes),
        changes=changes,
    )


def range_reformat_changes(
    session: "DocumentSession",
    start: int,
    end: int,
    extra: Optional[Mapping[str, Any]] = None,
) -> Optional[List[ReformatChange]]:
    """Changes formatting an arbitrary selection ``[start, end)``.

    Returns ``None`` when the selection starts inside a string or comment and
    ``[]`` when there is nothing to do or formatting failed.
    """

    model = session.model
    cursor = model.get_token_cursor(start)
    if cursor.within_string() or cursor.within_comment():
        return None
    original = model.get_text(start, end)
    body = original.strip()
    if not body:
        return []
    leading = original[: len(original) - len(original.lstrip())]
    trailing = original[len(original.rstrip()) :]
    eol = model.eol
    start_indent = model.get_row_col(start + len(leading))[1]
    try:
        healed = heal_brackets(_dedent_continuation(body, start_indent, eol))
        formatted = _run_engine(session, healed.healed, session.config.merged(extra))
        if formatted is None:
            return []
        formatted = healed.strip(formatted)
    except BracketHealingError as exc:
        telemetry.record_event(
            "format.healing_failed",
            level="warning",
            data={"document": session.document_id, "reason": str(exc)},
            logger_name=LOGGER_NAME,
        )
        session.report_error(str(exc))
        return []

    formatted = _indent_continuation(formatted, start_indent, eol)
    new_text = "".join(
        (
            "" if formatted.startswith(leading) else leading,
            formatted,
            "" if formatted.endswith(trailing) else trailing,
        )
    )
    if new_text == original:
        return []
    return reformat_changes(start, original, new_text)


def _drop_embedded(located: Iterable[Tuple[int, Range]]) -> List[Tuple[int, Range]]:
    by_length = sorted(located, key=lambda item: item[1][1] - item[1][0], reverse=True)
    kept: List[Tuple[int, Range]] = []
    for index, rng in by_length:
        if not any(o[0] <= rng[0] and rng[1] <= o[1] for _i, o in kept):
            kept.append((index, rng))
    return kept


def _non_overlapping(changes: Sequence[ReformatChange]) -> List[ReformatChange]:
    """Drop changes that overlap an already kept, later one."""

    kept: List[ReformatChange] = []
    floor: Optional[int] = None
    for change in sorted(changes, key=lambda c: c.start, reverse=True):
        if floor is None or change.end < floor:
            kept.append(change)
            floor = change.start
    return kept


def apply_reformat(
    session: "DocumentSession",
    editor: "EditorHost",
    changes: Sequence[ReformatChange],
    *,
    version: int,
    index: Optional[int] = None,
    cursor: Optional[int] = None,
) -> bool:
    """Send ``changes`` to ``editor`` as one batch valid against ``version``.

    The batch places the cursor at ``cursor`` when given, else where ``index``
    maps to.
    """

    kept = _non_overlapping(changes)
    if not kept:
        return True
    if editor.version != version:
        telemetry.record_event(
            "format.discarded",
            level="warning",
            data={"document": session.document_id, "version": version},
            logger_name=LOGGER_NAME,
        )
        return False
    from sexp_engine.session.host import EditBatch

    if cursor is None and index is not None:
        cursor = offset_after_changes(index, kept)
    batch = EditBatch(tuple(kept), version, cursor)
    session.model.mark_stale()
    applied = editor.apply_edits(batch)
    if not applied:
        session.model.confirm(session.model.version)
    telemetry.record_event(
        "format.applied" if applied else "format.rejected",
        level="info" if applied else "warning",
        data={"document": session.document_id, "changes": len(kept), "version": version},
        logger_name=LOGGER_NAME,
    )
    return applied


def format_position(
    session: "DocumentSession",
    editor: "EditorHost",
    on_type: bool = False,
    extra: Optional[Mapping[str, Any]] = None,
) -> bool:
    """Reformat around every cursor of ``editor`` in one batch."""

    try:
        with telemetry.span(
            "format::position",
            logger_name=LOGGER_NAME,
            component="pipeline",
            metadata={"document": session.document_id, "on_type": on_type},
        ):
            version = editor.version
            indices = [selection.active for selection in editor.selections] or [0]
            located = []
            for index in indices:
                found = format_doc_index_range(session, editor, index, extra)
                if found is not None:
                    located.append((index, found))
            if not located:
                return False
            whole_doc = (0, session.model.max_offset)
            if any(found == whole_doc for _index, found in located):
                changes = range_reformat_changes(session, *whole_doc, extra=extra) or []
            else:
                changes = []
                for index, found in _drop_embedded(located):
                    info = format_doc_index_info(
                        session, editor, index, extra, on_type, chosen=found
                    )
                    if info is not None:
                        changes.extend(info.changes)
            # Several cursors are mapped by the host; a single one is placed here.
            index = indices[0] if len(indices) == 1 else None
            return apply_reformat(session, editor, changes, version=version, index=index)
    except SexpEngineError as exc:
        telemetry.record_event(
            "format.failed",
            level="warning",
            data={"document": session.document_id, "reason": str(exc)},
            logger_name=LOGGER_NAME,
        )
        return False


def format_range(
    session: "DocumentSession",
    editor: "EditorHost",
    start: int,
    end: int,
    extra: Optional[Mapping[str, Any]] = None,
) -> bool:
    try:
        if not _check_fresh(session, editor):
            return False
        version = editor.version
        changes = range_reformat_changes(session, start, end, extra)
        if changes is None:
            return False
        selections = editor.selections
        index = selections[0].active if selections else None
        return apply_reformat(session, editor, changes, version=version, index=index)
    except SexpEngineError as exc:
        telemetry.record_event(
            "format.failed",
            level="warning",
            data={"document": session.document_id, "reason": str(exc)},
            logger_name=LOGGER_NAME,
        )
        return False


def format_document(
    session: "DocumentSession",
    editor: "EditorHost",
    extra: Optional[Mapping[str, Any]] = None,
) -> bool:
    return format_range(session, editor, 0, session.model.max_offset, extra)


def indent_position(session: "DocumentSession", editor: "EditorHost", offset: int) -> bool:
    """Re-indent the line holding ``offset`` and put the cursor at its first column.

    Lines that start inside a string are left alone.
    """

    if not _check_fresh(session, editor):
        return False
    model = session.model
    version = editor.version
    row, _col = model.get_row_col(offset)
    if model.lines[row].start_state.in_string:
        return False
    line_start = model.get_offset_for_line(row)
    line = model.get_line_text(row)
    margin = len(line) - len(line.lstrip(" \t"))
    indent = get_indent(model, line_start + margin)
    if line[:margin] == " " * indent:
        return True
    change = ReformatChange(line_start, line_start + margin, " " * indent)
    return apply_reformat(
        session, editor, [change], version=version, cursor=line_start + indent
    )


def format_position_command(session: "DocumentSession", editor: "EditorHost") -> bool:
    return format_position(session, editor)


def align_position_command(session: "DocumentSession", editor: "EditorHost") -> bool:
    # cljfmt's command line has no alignment flag; ExternalCommandFormatter
    # only forwards options listed in its ``flags``.
    return format_position(session, editor, True, {"align-associative?": True})


def trim_whitespace_position_command(session: "DocumentSession", editor: "EditorHost") -> bool:
    return format_position(
        session, editor, False, {"remove-multiple-non-indenting-spaces?": True}
    )


__all__ = [
    "FormatInfo",
    "align_position_command",
    "apply_reformat",
    "format_doc_index_info",
    "format_doc_index_range",
    "format_document",
    "format_position",
    "format_position_command",
    "format_range",
    "indent_position",
    "range_reformat_changes",
    "trim_whitespace_position_command",
]
