from __future__ import annotations

from sexp_engine.document import ScanState, Token, TokenKind, scan_line, scan_text


def kinds(line: str, state: ScanState = ScanState()):
    tokens, _ = scan_line(line, state)
    return [(token.kind, token.raw) for token in tokens]


def test_lists_atoms_and_commas() -> None:
    assert kinds("(a, [b])") == [
        (TokenKind.OPEN, "("),
        (TokenKind.ATOM, "a"),
        (TokenKind.WS, ", "),
        (TokenKind.OPEN, "["),
        (TokenKind.ATOM, "b"),
        (TokenKind.CLOSE, "]"),
        (TokenKind.CLOSE, ")"),
        (TokenKind.EOL, ""),
    ]


def test_reader_macros_and_dispatch_openers() -> None:
    assert kinds("#(f %) #{1} #?(:clj x) @a 'b #_c") == [
        (TokenKind.OPEN, "#("),
        (TokenKind.ATOM, "f"),
        (TokenKind.WS, " "),
        (TokenKind.ATOM, "%"),
        (TokenKind.CLOSE, ")"),
        (TokenKind.WS, " "),
        (TokenKind.OPEN, "#{"),
        (TokenKind.ATOM, "1"),
        (TokenKind.CLOSE, "}"),
        (TokenKind.WS, " "),
        (TokenKind.OPEN, "#?("),
        (TokenKind.ATOM, ":clj"),
        (TokenKind.WS, " "),
        (TokenKind.ATOM, "x"),
        (TokenKind.CLOSE, ")"),
        (TokenKind.WS, " "),
        (TokenKind.PUNCT, "@"),
        (TokenKind.ATOM, "a"),
        (TokenKind.WS, " "),
        (TokenKind.PUNCT, "'"),
        (TokenKind.ATOM, "b"),
        (TokenKind.WS, " "),
        (TokenKind.PUNCT, "#_"),
        (TokenKind.ATOM, "c"),
        (TokenKind.EOL, ""),
    ]


def test_brackets_inside_strings_chars_and_comments_are_not_delimiters() -> None:
    assert kinds('("(" \\) ; )') == [
        (TokenKind.OPEN, "("),
        (TokenKind.STR, '"("'),
        (TokenKind.WS, " "),
        (TokenKind.ATOM, "\\)"),
        (TokenKind.WS, " "),
        (TokenKind.COMMENT, "; )"),
        (TokenKind.EOL, ""),
    ]


def test_escaped_quote_stays_in_string() -> None:
    tokens, state = scan_line('"a\\"b" c')
    assert tokens[0].raw == '"a\\"b"'
    assert not state.in_string


def test_multi_line_string_carries_state() -> None:
    lines = scan_text('(str "one\ntwo\nthree" x)')
    assert [t.kind for t in lines[0]][-2:] == [TokenKind.STR_START, TokenKind.EOL]
    assert lines[1][0].kind is TokenKind.STR_INSIDE
    assert lines[2][0] == Token(TokenKind.STR_END, 'three"', 0)
    assert lines[2][-2].kind is TokenKind.CLOSE


def test_block_comments_nest_across_lines() -> None:
    first, state = scan_line("(a) #| outer #| inner |#")
    assert first[-2].kind is TokenKind.COMMENT
    assert state.comment_depth == 1
    second, state = scan_line("still |# (b)", state)
    assert second[0] == Token(TokenKind.COMMENT, "still |#", 0)
    assert state.comment_depth == 0
    assert second[2].kind is TokenKind.OPEN


def test_eol_token_sits_at_line_length() -> None:
    tokens, _ = scan_line("(a)")
    assert tokens[-1].kind is TokenKind.EOL
    assert tokens[-1].col == 3
    empty, _ = scan_line("")
    assert [t.kind for t in empty] == [TokenKind.EOL]
