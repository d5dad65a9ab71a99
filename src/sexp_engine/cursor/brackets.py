"""Bracket healing for partial selections.

A selection such as ``1 2)`` cannot be handed to a structural formatter as
is. ``heal_brackets`` wraps it in the fewest synthetic delimiters that balance
it, and ``HealedText.strip`` removes exactly those characters again from the
formatter's output.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List

from sexp_engine.document.lexer import (
    INITIAL_STATE,
    MATCHING,
    OPENER_FOR,
    TokenKind,
    scan_line,
)
from sexp_engine.errors import BracketHealingError


@dataclass(frozen=True, slots=True)
class MissingBrackets:
    prepend: str = ""
    append: str = ""


@dataclass(frozen=True, slots=True)
class HealedText:
    prefix: str
    text: str
    suffix: str

    @property
    def healed(self) -> str:
        return f"{self.prefix}{self.text}{self.suffix}"

    def strip(self, formatted: str) -> str:
        """Remove the synthetic delimiters from a formatting of ``healed``."""

        end = len(formatted) - len(self.suffix)
        if end < len(self.prefix):
            raise BracketHealingError("Formatted text is shorter than the healing delimiters")
        return formatted[len(self.prefix) : end]


def get_missing_brackets(text: str) -> MissingBrackets:
    """Delimiters to prepend/append so that ``text`` is balanced.

    Brackets inside strings, comments, and character literals are ignored.
    Mismatched pairs such as ``(]`` and unterminated strings raise
    ``BracketHealingError``.
    """

    open_stack: List[str] = []
    missing_openers: List[str] = []
    state = INITIAL_STATE
    for line in text.replace("\r\n", "\n").split("\n"):
        tokens, state = scan_line(line, state)
        for token in tokens:
            if token.kind is TokenKind.OPEN:
                open_stack.append(token.raw[-1])
            elif token.kind is TokenKind.CLOSE:
                if not open_stack:
                    missing_openers.append(OPENER_FOR[token.raw])
                    continue
                opener = open_stack.pop()
                if MATCHING[opener] != token.raw:
                    raise BracketHealingError(
                        f"'{opener}' is closed by '{token.raw}' at column {token.col}"
                    )
    if state.in_string:
        raise BracketHealingError("Selection ends inside a string")
    if state.comment_depth:
        raise BracketHealingError("Selection ends inside a block comment")
    return MissingBrackets(
        prepend="".join(reversed(missing_openers)),
        append="".join(MATCHING[opener] for opener in reversed(open_stack)),
    )


def heal_brackets(text: str) -> HealedText:
    missing = get_missing_brackets(text)
    return HealedText(prefix=missing.prepend, text=text, suffix=missing.append)


__all__ = ["HealedText", "MissingBrackets", "get_missing_brackets", "heal_brackets"]
