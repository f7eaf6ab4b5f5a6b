from __future__ import annotations
from dataclasses import dataclass
from typing import List, Optional


class StrError(Exception):
    """Base class for interpreter errors."""

    def __init__(self, message: str, *, line: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.line = line

    def __str__(self) -> str:
        if self.line is None:
            return self.message
        return f"{self.message} (line {self.line})"


class StrParseError(StrError):
    """Raised when lexing or parsing fails."""


class UnexpectedToken(StrParseError):
    pass


class UnexpectedOperator(StrParseError):
    pass


class UnexpectedTokenKind(StrParseError):
    pass


@dataclass(frozen=True)
class Token:
    type: str
    value: str
    line: int
    column: int


KEYWORDS = {
    "VAR",
    "PRINT",
    # Reserved; rejected by the parser.
    "IF",
    "ELSE",
    "WHILE",
}

OPERATORS_2 = {"==", "!=", "<=", ">="}

OPERATORS_1 = {"=", "<", ">", "!", "?", "+", "-", "/", "%", "(", ")", "{", "}", ","}


class Lexer:
    def __init__(self, text: str, filename: str) -> None:
        self.text = text
        self.filename = filename
        self.index = 0
        self.line = 1
        self.column = 1

    def tokenize(self) -> List[Token]:
        tokens: List[Token] = []
        tokens_append = tokens.append
        _advance = self._advance
        text = self.text
        n = len(text)

        while self.index < n:
            ch: str = text[self.index]
            if ch == " " or ch == "\t" or ch == "\r":
                _advance()
                continue
            if ch == "\n":
                tokens_append(Token("NEWLINE", "\n", self.line, self.column))
                _advance()
                continue
            if ch == "#":
                self._consume_comment()
                continue
            if ch in ('"', "'"):
                tokens_append(self._consume_string())
                continue
            pair = text[self.index:self.index + 2]
            if pair in OPERATORS_2:
                tokens_append(Token("OPERATOR", pair, self.line, self.column))
                _advance()
                _advance()
                continue
            if ch in OPERATORS_1:
                tokens_append(Token("OPERATOR", ch, self.line, self.column))
                _advance()
                continue
            if self._is_identifier_start(ch):
                tokens_append(self._consume_identifier())
                continue
            raise StrParseError(
                f"Unexpected character '{ch}' at {self.filename}:{self.line}:{self.column}",
                line=self.line,
            )
        tokens_append(Token("EOF", "", self.line, self.column))
        return tokens

    def _consume_comment(self) -> None:
        text = self.text
        n = len(text)
        _advance = self._advance
        while self.index < n and text[self.index] != "\n":
            _advance()

    def _consume_string(self) -> Token:
        # The lexeme keeps its quotes; the parser strips them.
        line, col = self.line, self.column
        start = self.index
        opening = self._peek()
        self._advance()
        while not self._eof:
            ch = self._peek()
            if ch == "\n":
                break
            self._advance()
            if ch == opening:
                return Token("STRING", self.text[start:self.index], line, col)
        raise StrParseError(
            f"Unterminated string literal at {self.filename}:{line}:{col}",
            line=line,
        )

    def _consume_identifier(self) -> Token:
        line, col = self.line, self.column
        start = self.index
        text = self.text
        n = len(text)
        while self.index < n and self._is_identifier_part(text[self.index]):
            self._advance()
        value = text[start:self.index]
        token_type: str = "KEYWORD" if value in KEYWORDS else "IDENT"
        return Token(token_type, value, line, col)

    def _is_identifier_start(self, ch: str) -> bool:
        return ch == "_" or ("a" <= ch <= "z") or ("A" <= ch <= "Z")

    def _is_identifier_part(self, ch: str) -> bool:
        return self._is_identifier_start(ch) or ("0" <= ch <= "9")

    @property
    def _eof(self) -> bool:
        return self.index >= len(self.text)

    def _peek(self) -> str:
        return self.text[self.index]

    def _advance(self) -> None:
        if self.text[self.index] == "\n":
            self.line += 1
            self.column = 1
        else:
            self.column += 1
        self.index += 1


class TokenStream:
    """Cursor over a token list ending in a single EOF token."""

    def __init__(self, tokens: List[Token]) -> None:
        if not tokens or tokens[-1].type != "EOF":
            raise ValueError("token list must end with an EOF token")
        self.tokens = tokens
        self.index = 0

    def has_next(self) -> bool:
        return self.tokens[self.index].type != "EOF"

    def peek(self, offset: int = 0) -> Token:
        position = self.index + offset
        if position >= len(self.tokens):
            return self.tokens[-1]
        return self.tokens[position]

    def consume(self, expected: Optional[str] = None) -> Token:
        token = self.tokens[self.index]
        if expected is not None and token.type != expected:
            found = f"{token.type} '{token.value}'" if token.value.strip() else token.type
            raise UnexpectedTokenKind(
                f"Expected token {expected} but found {found}",
                line=token.line,
            )
        if token.type != "EOF":
            self.index += 1
        return token

    def match(self, token_type: str, value: Optional[str] = None) -> bool:
        token = self.tokens[self.index]
        if token.type != token_type or (value is not None and token.value != value):
            return False
        self.consume()
        return True
