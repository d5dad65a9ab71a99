"""Line-at-a-time scanner for Clojure-flavoured Lisp source.

Each line is scanned independently given the ``ScanState`` left by the line
before it, so a multi-line string or block comment only forces re-scanning
until the carried state settles again.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import List, Tuple

WHITESPACE = frozenset(" \t,")
DELIMITERS = frozenset(" \t,;\"()[]{}")
OPENERS = ("#?@(", "#?(", "#(", "#{", "(", "[", "{")
CLOSERS = frozenset(")]}")
READER_PUNCTUATION = ("~@", "#'", "#_", "#=", "#^", "'", "`", "~", "@", "^")
MATCHING = {"(": ")", "[": "]", "{": "}"}
OPENER_FOR = {close: open_ for open_, close in MATCHING.items()}


class TokenKind(str, Enum):
    WS = "ws"
    COMMENT = "comment"
    OPEN = "open"
    CLOSE = "close"
    STR = "str"
    STR_START = "str-start"
    STR_INSIDE = "str-inside"
    STR_END = "str-end"
    PUNCT = "punct"
    ATOM = "atom"
    EOL = "eol"


STRING_KINDS = frozenset(
    {TokenKind.STR, TokenKind.STR_START, TokenKind.STR_INSIDE, TokenKind.STR_END}
)


@dataclass(frozen=True, slots=True)
class Token:
    kind: TokenKind
    raw: str
    col: int

    @property
    def end(self) -> int:
        return self.col + len(self.raw)


@dataclass(frozen=True, slots=True)
class ScanState:
    """Lexical state carried from the end of one line to the next."""

    in_string: bool = False
    comment_depth: int = 0


INITIAL_STATE = ScanState()


def _string_body_end(line: str, i: int) -> int:
    """Index just past the closing quote, or ``-1`` if the line ends first."""

    n = len(line)
    while i < n:
        ch = line[i]
        if ch == "\\":
            i += 2
            continue
        if ch == '"':
            return i + 1
        i += 1
    return -1


def _block_comment_end(line: str, i: int, depth: int) -> Tuple[int, int]:
    n = len(line)
    while i < n:
        if line.startswith("|#", i):
            depth -= 1
            i += 2
            if depth == 0:
                return i, 0
        elif line.startswith("#|", i):
            depth += 1
            i += 2
        else:
            i += 1
    return n, depth


def _char_literal_end(line: str, i: int) -> int:
    # ``i`` points at the backslash
    n = len(line)
    j = i + 1
    if j >= n:
        return n
    j += 1
    if line[j - 1].isalnum():
        while j < n and line[j].isalnum():
            j += 1
    return j


def _atom_end(line: str, i: int) -> int:
    n = len(line)
    j = i + 1
    while j < n and line[j] not in DELIMITERS:
        j += 1
    return j


def scan_line(line: str, state: ScanState = INITIAL_STATE) -> Tuple[Tuple[Token, ...], ScanState]:
    """Tokenize ``line`` starting in ``state``; returns tokens and end state.

    The token list always ends with a zero-width ``EOL`` token.
    """

    tokens: List[Token] = []
    n = len(line)
    i = 0
    in_string = state.in_string
    depth = state.comment_depth

    if in_string:
        end = _string_body_end(line, 0)
        if end < 0:
            if n:
                tokens.append(Token(TokenKind.STR_INSIDE, line, 0))
            tokens.append(Token(TokenKind.EOL, "", n))
            return tuple(tokens), state
        tokens.append(Token(TokenKind.STR_END, line[:end], 0))
        in_string = False
        i = end
    elif depth:
        end, depth = _block_comment_end(line, 0, depth)
        if end:
            tokens.append(Token(TokenKind.COMMENT, line[:end], 0))
        i = end

    while i < n:
        ch = line[i]
        if ch in WHITESPACE:
            j = i + 1
            while j < n and line[j] in WHITESPACE:
                j += 1
            tokens.append(Token(TokenKind.WS, line[i:j], i))
            i = j
        elif ch == ";":
            tokens.append(Token(TokenKind.COMMENT, line[i:], i))
            i = n
        elif line.startswith("#|", i):
            j, depth = _block_comment_end(line, i + 2, 1)
            tokens.append(Token(TokenKind.COMMENT, line[i:j], i))
            i = j
        elif ch == '"' or line.startswith('#"', i):
            body = i + (2 if ch == "#" else 1)
            j = _string_body_end(line, body)
            if j < 0:
                tokens.append(Token(TokenKind.STR_START, line[i:], i))
                in_string = True
                i = n
            else:
                tokens.append(Token(TokenKind.STR, line[i:j], i))
                i = j
        elif ch == "\\":
            j = _char_literal_end(line, i)
            tokens.append(Token(TokenKind.ATOM, line[i:j], i))
            i = j
        elif ch in CLOSERS:
            tokens.append(Token(TokenKind.CLOSE, ch, i))
            i += 1
        else:
            opener = next((o for o in OPENERS if line.startswith(o, i)), None)
            if opener is not None:
                tokens.append(Token(TokenKind.OPEN, opener, i))
                i += len(opener)
                continue
            punct = next((p for p in READER_PUNCTUATION if line.startswith(p, i)), None)
            if punct is not None:
                tokens.append(Token(TokenKind.PUNCT, punct, i))
                i += len(punct)
                continue
            j = _atom_end(line, i)
            tokens.append(Token(TokenKind.ATOM, line[i:j], i))
            i = j

    tokens.append(Token(TokenKind.EOL, "", n))
    return tuple(tokens), ScanState(in_string=in_string, comment_depth=depth)


def scan_text(text: str) -> Tuple[Tuple[Token, ...], ...]:
    """Tokenize a whole text, one tuple of tokens per line."""

    state = INITIAL_STATE
    lines = []
    for line in text.replace("\r\n", "\n").split("\n"):
        tokens, state = scan_line(line, state)
        lines.append(tokens)
    return tuple(lines)


__all__ = [
    "CLOSERS",
    "INITIAL_STATE",
    "MATCHING",
    "OPENER_FOR",
    "STRING_KINDS",
    "ScanState",
    "Token",
    "TokenKind",
    "scan_line",
    "scan_text",
]
