from __future__ import annotations

import pytest

from lexer import Lexer, StrParseError, Token, TokenStream, UnexpectedTokenKind


def _tokenize(src: str) -> list[Token]:
    return Lexer(src, "<test>").tokenize()


def _kinds(src: str) -> list[tuple[str, str]]:
    return [(t.type, t.value) for t in _tokenize(src)]


def test_tokens_basic():
    assert _kinds('VAR x = "cat" + y\n') == [
        ("KEYWORD", "VAR"),
        ("IDENT", "x"),
        ("OPERATOR", "="),
        ("STRING", '"cat"'),
        ("OPERATOR", "+"),
        ("IDENT", "y"),
        ("NEWLINE", "\n"),
        ("EOF", ""),
    ]


def test_string_lexeme_keeps_quotes():
    toks = _kinds("PRINT 'it' + \"a'b\"")
    assert toks[1] == ("STRING", "'it'")
    assert toks[3] == ("STRING", "\"a'b\"")


def test_two_character_operators_win():
    values = [value for kind, value in _kinds("== != <= >= = < > ! ?") if kind == "OPERATOR"]
    assert values == ["==", "!=", "<=", ">=", "=", "<", ">", "!", "?"]


def test_reserved_keywords_are_keywords():
    assert [t.type for t in _tokenize("IF ELSE WHILE iffy")][:4] == ["KEYWORD", "KEYWORD", "KEYWORD", "IDENT"]


def test_comments_are_skipped():
    assert _kinds("PRINT x # trailing words\n") == [
        ("KEYWORD", "PRINT"),
        ("IDENT", "x"),
        ("NEWLINE", "\n"),
        ("EOF", ""),
    ]


def test_comment_marker_inside_string_is_text():
    assert _kinds('"a # b"')[0] == ("STRING", '"a # b"')


def test_token_locations():
    toks = _tokenize('VAR a = "x"\n\n  PRINT a\n')
    kw_print = next(t for t in toks if t.value == "PRINT")
    assert (kw_print.line, kw_print.column) == (3, 3)


def test_unknown_char_raises():
    with pytest.raises(StrParseError) as e:
        _tokenize('PRINT "a"\nPRINT @')
    assert e.value.line == 2
    assert "line 2" in str(e.value)


def test_unterminated_string_raises():
    with pytest.raises(StrParseError) as e:
        _tokenize('PRINT "abc\nPRINT x')
    assert e.value.line == 1
    assert "Unterminated" in e.value.message


def test_stream_peek_and_consume():
    stream = TokenStream(_tokenize("a + b"))
    assert stream.has_next()
    assert stream.peek().value == "a"
    assert stream.peek(2).value == "b"
    assert stream.peek(10).type == "EOF"
    assert stream.consume("IDENT").value == "a"
    assert stream.consume().value == "+"
    assert stream.consume("IDENT").value == "b"
    assert not stream.has_next()
    # Consuming at the end keeps returning EOF.
    assert stream.consume().type == "EOF"
    assert stream.consume("EOF").type == "EOF"


def test_stream_consume_wrong_kind():
    stream = TokenStream(_tokenize('\n\n"a"'))
    stream.consume("NEWLINE")
    stream.consume("NEWLINE")
    with pytest.raises(UnexpectedTokenKind) as e:
        stream.consume("IDENT")
    assert e.value.line == 3
    assert "Expected token IDENT" in e.value.message
    # A failed consume does not advance.
    assert stream.peek().type == "STRING"


def test_stream_match():
    stream = TokenStream(_tokenize("x = y"))
    assert not stream.match("OPERATOR")
    assert stream.match("IDENT", "x")
    assert not stream.match("OPERATOR", "==")
    assert stream.match("OPERATOR", "=")
    assert stream.peek().value == "y"


def test_stream_requires_eof():
    with pytest.raises(ValueError):
        TokenStream([Token("IDENT", "x", 1, 1)])
