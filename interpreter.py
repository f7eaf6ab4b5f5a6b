from __future__ import annotations
import json
import os
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from lexer import StrError, Lexer
from parser import (
    Assignment,
    BinaryOperation,
    Expression,
    Identifier,
    Literal,
    Parser,
    PrintStatement,
    Program,
    SourceLocation,
    Statement,
    VarStatement,
)


class StrRuntimeError(StrError):
    """Raised for runtime faults."""

    def __init__(
        self,
        message: str,
        *,
        location: Optional[SourceLocation] = None,
        rewrite_rule: Optional[str] = None,
    ) -> None:
        super().__init__(message, line=location.line if location else None)
        self.location = location
        self.rewrite_rule = rewrite_rule
        self.step_index: Optional[int] = None

    def attach_location(self, location: SourceLocation) -> None:
        # Keep the innermost location if one was already recorded.
        if self.location is None:
            self.location = location
            self.line = location.line


class UndefinedVariable(StrRuntimeError):
    pass


class DuplicateDeclaration(StrRuntimeError):
    pass


# ---- String operators ----
#
# All operators look for the first occurrence of the right operand inside the
# left one. On a miss "-" and "/" leave the left operand unchanged while "%"
# yields the empty string.


def concatenate(left: str, right: str) -> str:
    return left + right


def remove_first(left: str, right: str) -> str:
    pos = left.find(right)
    if pos == -1:
        return left
    return left[:pos] + left[pos + len(right):]


def prefix_before(left: str, right: str) -> str:
    pos = left.find(right)
    if pos == -1:
        return left
    return left[:pos]


def suffix_after(left: str, right: str) -> str:
    pos = left.find(right)
    if pos == -1:
        return ""
    return left[pos + len(right):]


STRING_OPERATORS: Dict[str, Callable[[str, str], str]] = {
    "+": concatenate,
    "-": remove_first,
    "/": prefix_before,
    "%": suffix_after,
}


@dataclass
class Variable:
    value: str
    declared_line: Optional[int]


@dataclass
class SymbolTable:
    values: Dict[str, Variable] = field(default_factory=dict)

    def declare(self, name: str, line: Optional[int], value: str = "") -> None:
        existing = self.values.get(name)
        if existing is not None:
            raise DuplicateDeclaration(
                f"Redeclaration of variable '{name}' (originally defined on line {existing.declared_line}).",
                rewrite_rule="VAR",
            )
        self.values[name] = Variable(value=value, declared_line=line)

    def get(self, name: str) -> str:
        try:
            return self.values[name].value
        except KeyError:
            raise UndefinedVariable(f"Unknown variable '{name}'", rewrite_rule="IDENT") from None

    def set(self, name: str, value: str) -> None:
        variable = self.values.get(name)
        if variable is None:
            raise UndefinedVariable(f"Unknown variable '{name}'", rewrite_rule="ASSIGN")
        variable.value = value

    def has(self, name: str) -> bool:
        return name in self.values

    def declared_line(self, name: str) -> Optional[int]:
        variable = self.values.get(name)
        return variable.declared_line if variable else None

    def snapshot(self) -> Dict[str, str]:
        def _render(text: str) -> str:
            rendered = repr(text)
            if len(rendered) > 80:
                rendered = rendered[:77] + "..."
            return rendered

        return {k: _render(v.value) for k, v in self.values.items()}


@dataclass
class StateEntry:
    step_index: int
    state_id: str
    source_location: Optional[SourceLocation]
    statement: Optional[str]
    env_snapshot: Optional[Dict[str, str]]
    rewrite_record: Optional[Dict[str, Any]]


class StateLogger:
    def __init__(self) -> None:
        self.entries: List[StateEntry] = []
        self.next_state_index = 0
        self.last_state_id = "seed"

    def record(
        self,
        *,
        location: Optional[SourceLocation],
        statement: Optional[str],
        rewrite_record: Optional[Dict[str, Any]] = None,
        env_snapshot: Optional[Dict[str, str]] = None,
    ) -> StateEntry:
        rewrite = {} if rewrite_record is None else rewrite_record
        if "from_state_id" not in rewrite:
            rewrite["from_state_id"] = self.last_state_id
        step_index = self.next_state_index
        state_id = f"s_{step_index:06d}"
        rewrite["to_state_id"] = state_id
        entry = StateEntry(
            step_index=step_index,
            state_id=state_id,
            source_location=location,
            statement=statement,
            env_snapshot=env_snapshot,
            rewrite_record=rewrite,
        )
        self.entries.append(entry)
        self.last_state_id = state_id
        self.next_state_index += 1
        return entry

    @property
    def last_entry(self) -> Optional[StateEntry]:
        return self.entries[-1] if self.entries else None


class Interpreter:
    def __init__(
        self,
        *,
        source: str,
        filename: str,
        verbose: bool = False,
        output_sink: Optional[Callable[[str], None]] = None,
    ) -> None:
        self.source = source
        self._source_lines = source.splitlines()
        normalized_filename = filename if filename.startswith("<") else os.path.abspath(filename)
        self.filename = normalized_filename
        self.verbose = verbose
        self.output_sink = output_sink or (lambda text: print(text))
        self.symbols = SymbolTable()
        self.logger = StateLogger()
        self.logger.record(location=None, statement="<seed>", rewrite_record={"rule": "SEED"})

    def parse(self) -> Program:
        lexer = Lexer(self.source, self.filename)
        tokens = lexer.tokenize()
        parser = Parser(tokens, self.filename, self._source_lines)
        return parser.parse()

    def run(self) -> None:
        program = self.parse()
        self.execute(program.statements)

    def execute(self, statements: List[Statement]) -> None:
        try:
            for statement in statements:
                self._log_step(rule=statement.__class__.__name__, location=statement.location)
                self._execute_statement(statement)
        except StrRuntimeError as error:
            if self.logger.entries:
                error.step_index = self.logger.entries[-1].step_index
            raise

    def evaluate_source(self, text: str) -> str:
        """Evaluate a standalone expression against the current variables."""
        lexer = Lexer(text, "<expression>")
        parser = Parser(lexer.tokenize(), "<expression>", text.splitlines())
        return self.evaluate(parser.parse_expression())

    def _execute_statement(self, statement: Statement) -> None:
        try:
            if isinstance(statement, VarStatement):
                value = "" if statement.expression is None else self.evaluate(statement.expression)
                self.symbols.declare(statement.name, statement.location.line, value)
                return
            if isinstance(statement, Assignment):
                value = self.evaluate(statement.expression)
                self.symbols.set(statement.target, value)
                return
            if isinstance(statement, PrintStatement):
                value = self.evaluate(statement.expression)
                self.output_sink(value)
                return
        except StrRuntimeError as error:
            error.attach_location(statement.location)
            raise
        raise StrRuntimeError(
            f"Unsupported statement {statement.__class__.__name__}",
            location=statement.location,
            rewrite_rule="internal",
        )

    def evaluate(self, expression: Expression) -> str:
        # Operator chains lean left, so walk the left spine in a loop and fold
        # from the innermost operation outwards. Right operands are at most one
        # precedence tier deep.
        chain: List[BinaryOperation] = []
        node = expression
        while isinstance(node, BinaryOperation):
            chain.append(node)
            node = node.left
        result = self._evaluate_term(node)
        for operation in reversed(chain):
            right = self.evaluate(operation.right)
            try:
                operator = STRING_OPERATORS[operation.operator]
            except KeyError:
                raise StrRuntimeError(
                    f"Unknown binary operator '{operation.operator}'",
                    location=operation.location,
                    rewrite_rule="internal",
                ) from None
            result = operator(result, right)
        return result

    def _evaluate_term(self, expression: Expression) -> str:
        if isinstance(expression, Literal):
            return expression.value
        if isinstance(expression, Identifier):
            try:
                return self.symbols.get(expression.name)
            except StrRuntimeError as error:
                error.attach_location(expression.location)
                raise
        raise StrRuntimeError(
            f"Unsupported expression {expression.__class__.__name__}",
            location=expression.location,
            rewrite_rule="internal",
        )

    def _log_step(
        self,
        *,
        rule: str,
        location: Optional[SourceLocation],
    ) -> StateEntry:
        env_snapshot = self.symbols.snapshot() if self.verbose else None
        statement = location.statement if location else None
        rewrite: Dict[str, Any] = {"rule": rule}
        return self.logger.record(
            location=location,
            statement=statement,
            env_snapshot=env_snapshot,
            rewrite_record=rewrite,
        )


class TracebackFormatter:
    def __init__(self, interpreter: Interpreter) -> None:
        self.interpreter = interpreter

    def _failing_entry(self, error: StrRuntimeError) -> Optional[StateEntry]:
        entries = self.interpreter.logger.entries
        if error.step_index is not None and 0 <= error.step_index < len(entries):
            return entries[error.step_index]
        return self.interpreter.logger.last_entry

    def format_text(self, error: StrRuntimeError, verbose: bool) -> str:
        lines = ["Traceback (most recent call last):"]
        entry = self._failing_entry(error)
        location = error.location or (entry.source_location if entry else None)
        if location:
            lines.append(f"  File \"{location.file}\", line {location.line}, in <top-level>")
            if location.statement:
                lines.append(f"    {location.statement}")
        else:
            lines.append("  <unknown location> in <top-level>")
        if entry:
            lines.append(f"    State log index: {entry.step_index}  State id: {entry.state_id}")
            if verbose and entry.env_snapshot is not None:
                snapshot = ", ".join(f"{k}={v}" for k, v in entry.env_snapshot.items())
                lines.append(f"    Env snapshot: {snapshot}")
        rule = error.rewrite_rule or "runtime"
        lines.append(f"{error.__class__.__name__}: {error} (rewrite: {rule})")
        return "\n".join(lines)

    def to_json(self, error: StrRuntimeError) -> str:
        frame: Dict[str, Any] = {"frame_index": 0, "name": "<top-level>"}
        if error.location:
            frame["source_location"] = {
                "file": error.location.file,
                "line": error.location.line,
                "statement": error.location.statement,
            }
        entry = self._failing_entry(error)
        if entry:
            frame["state_id"] = entry.state_id
            frame["step_index"] = entry.step_index
            if entry.env_snapshot is not None:
                frame["env_snapshot"] = entry.env_snapshot
            if entry.rewrite_record is not None:
                frame["rewrite_record"] = entry.rewrite_record
        data = {
            "error": {
                "type": error.__class__.__name__,
                "message": error.message,
                "line": error.line,
                "rewrite_rule": error.rewrite_rule,
                "failing_step_index": error.step_index,
            },
            "traceback": [frame],
        }
        return json.dumps(data, indent=2)
