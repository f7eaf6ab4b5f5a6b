from __future__ import annotations
from dataclasses import dataclass
from typing import List, Optional

from lexer import StrParseError, Token, TokenStream, UnexpectedOperator, UnexpectedToken


@dataclass
class SourceLocation:
    file: str
    line: int
    column: int
    statement: str


@dataclass
class Node:
    location: SourceLocation


@dataclass
class Program(Node):
    statements: List["Statement"]


class Statement(Node):
    pass


@dataclass
class VarStatement(Statement):
    name: str
    expression: Optional["Expression"]


@dataclass
class Assignment(Statement):
    target: str
    expression: "Expression"


@dataclass
class PrintStatement(Statement):
    expression: "Expression"


class Expression(Node):
    pass


@dataclass
class Literal(Expression):
    value: str


@dataclass
class Identifier(Expression):
    name: str


@dataclass
class BinaryOperation(Expression):
    operator: str
    left: Expression
    right: Expression


HIGH_PRECEDENCE_OPERATORS = {"/", "%"}
LOW_PRECEDENCE_OPERATORS = {"+", "-"}

# Reserved for statements or unimplemented constructs; never legal between terms.
RESERVED_OPERATORS = {"=", "==", "!=", "<", "<=", ">", ">=", "?", "!"}


def strip_quotes(lexeme: str) -> str:
    if len(lexeme) >= 2 and lexeme[0] in ('"', "'") and lexeme[-1] == lexeme[0]:
        return lexeme[1:-1]
    return lexeme


class Parser:
    def __init__(self, tokens: List[Token], filename: str, source_lines: List[str]):
        self.stream = TokenStream(tokens)
        self.filename = filename
        self.source_lines = source_lines

    def parse(self) -> Program:
        statements: List[Statement] = []
        stream = self.stream
        while stream.has_next():
            if stream.match("NEWLINE"):
                continue
            # The newline after a statement is optional; whatever follows is
            # dispatched as the next statement.
            statements.append(self._parse_statement())
        eof_token: Token = stream.peek()
        return Program(location=self._location_from_token(eof_token), statements=statements)

    def parse_expression(self) -> Expression:
        """Parse a single expression and require the input to end after it."""
        expr = self._parse_expression()
        while self.stream.match("NEWLINE"):
            continue
        if self.stream.has_next():
            raise self._unexpected(self.stream.peek())
        return expr

    def _parse_statement(self) -> Statement:
        token = self.stream.peek()
        if token.type == "KEYWORD":
            if token.value == "VAR":
                return self._parse_var()
            if token.value == "PRINT":
                return self._parse_print()
            raise UnexpectedToken(f"Unexpected keyword: {token.value}", line=token.line)
        if token.type == "IDENT":
            following = self.stream.peek(1)
            if following.type == "OPERATOR" and following.value == "=":
                return self._parse_assignment()
        raise self._unexpected(token)

    def _parse_var(self) -> VarStatement:
        keyword = self.stream.consume("KEYWORD")
        name = self.stream.consume("IDENT")
        expr: Optional[Expression] = None
        if self.stream.match("OPERATOR", "="):
            expr = self._parse_expression()
        return VarStatement(location=self._location_from_token(keyword), name=name.value, expression=expr)

    def _parse_print(self) -> PrintStatement:
        keyword = self.stream.consume("KEYWORD")
        expr = self._parse_expression()
        return PrintStatement(location=self._location_from_token(keyword), expression=expr)

    def _parse_assignment(self) -> Assignment:
        target = self.stream.consume("IDENT")
        self.stream.consume("OPERATOR")
        expr = self._parse_expression()
        return Assignment(location=self._location_from_token(target), target=target.value, expression=expr)

    # Expression grammar, lowest precedence first:
    #   expression := high (("+" | "-") high)*
    #   high       := term (("/" | "%") term)*
    #   term       := STRING | IDENT

    def _parse_expression(self) -> Expression:
        stream = self.stream
        expr = self._parse_high_precedence()
        while stream.peek().type == "OPERATOR":
            op = stream.peek()
            if op.value in LOW_PRECEDENCE_OPERATORS:
                stream.consume()
                right = self._parse_high_precedence()
                expr = BinaryOperation(location=self._location_from_token(op), operator=op.value, left=expr, right=right)
                continue
            if op.value in RESERVED_OPERATORS:
                raise UnexpectedOperator(f"Unexpected operator in expression: {op.value}", line=op.line)
            break
        return expr

    def _parse_high_precedence(self) -> Expression:
        stream = self.stream
        expr = self._parse_term()
        while stream.peek().type == "OPERATOR" and stream.peek().value in HIGH_PRECEDENCE_OPERATORS:
            op = stream.consume()
            right = self._parse_term()
            expr = BinaryOperation(location=self._location_from_token(op), operator=op.value, left=expr, right=right)
        return expr

    def _parse_term(self) -> Expression:
        token = self.stream.consume()
        if token.type == "STRING":
            return Literal(location=self._location_from_token(token), value=strip_quotes(token.value))
        if token.type == "IDENT":
            return Identifier(location=self._location_from_token(token), name=token.value)
        raise self._unexpected(token)

    def _unexpected(self, token: Token) -> StrParseError:
        if token.type == "NEWLINE":
            return UnexpectedToken("Unexpected end of line", line=token.line)
        if token.type == "EOF":
            return UnexpectedToken("Unexpected end of input", line=token.line)
        return UnexpectedToken(f"Unexpected token: {token.value}", line=token.line)

    def _location_from_token(self, token: Token) -> SourceLocation:
        line_index = token.line - 1
        statement = ""
        if 0 <= line_index < len(self.source_lines):
            statement = self.source_lines[line_index].strip()
        return SourceLocation(file=self.filename, line=token.line, column=token.column, statement=statement)
