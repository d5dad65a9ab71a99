"""Incremental document model: lexer, edits, and the line model."""

from .edits import (
    DeleteEdit,
    InsertEdit,
    ModelEdit,
    ReplaceEdit,
    Selection,
    map_offset,
    new_content_points,
    selections_after_edits,
)
from .lexer import ScanState, Token, TokenKind, scan_line, scan_text
from .lines import DirtyLines, LineModel, TextLine
from .sync import TextChange, TextChangeEvent, changes_from_offsets

__all__ = [
    "DeleteEdit",
    "DirtyLines",
    "InsertEdit",
    "LineModel",
    "ModelEdit",
    "ReplaceEdit",
    "ScanState",
    "Selection",
    "TextChange",
    "TextChangeEvent",
    "TextLine",
    "Token",
    "TokenKind",
    "changes_from_offsets",
    "map_offset",
    "new_content_points",
    "scan_line",
    "scan_text",
    "selections_after_edits",
]
