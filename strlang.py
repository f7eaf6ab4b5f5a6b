"""StrLang entry point and REPL wiring."""

from __future__ import annotations
import argparse
import sys
from typing import List, Optional, Tuple

from interpreter import Interpreter, StrRuntimeError, TracebackFormatter
from lexer import Lexer, StrParseError
from parser import Parser, Statement


def _parse_statements_from_source(text: str, filename: str) -> List[Statement]:
    lexer = Lexer(text, filename)
    tokens = lexer.tokenize()
    parser = Parser(tokens, filename, text.splitlines())
    program = parser.parse()
    return program.statements


def run_repl(verbose: bool) -> int:
    print("\x1b[38;2;153;221;255mStrLang\033[0m REPL. Enter statements, Ctrl-D to exit.")
    interpreter = Interpreter(source="", filename="<repl>", verbose=verbose)

    while True:
        try:
            line = input("\x1b[38;2;153;221;255m>>>\033[0m ")
        except EOFError:
            print()
            break

        if line.strip() == "":
            continue
        try:
            statements = _parse_statements_from_source(line, "<repl>")
            interpreter.execute(statements)
        except StrParseError as error:
            print(f"ParseError: {error}", file=sys.stderr)
        except StrRuntimeError as error:
            _report_runtime_error(interpreter, error, verbose=interpreter.verbose, as_json=False)

    return 0


def _build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="strlang", description="StrLang string-only script interpreter")
    parser.add_argument("program", nargs="?", help="Script path, or literal source text with -source")
    parser.add_argument("-source", "--source", dest="source_mode", action="store_true", help="Treat program argument as literal source text")
    parser.add_argument("-verbose", "--verbose", dest="verbose", action="store_true", help="Emit variable snapshots in tracebacks")
    parser.add_argument("--traceback-json", action="store_true", help="Also emit JSON traceback")
    return parser


def _load_program(args: argparse.Namespace) -> Tuple[str, str]:
    """Return (source text, filename) for the requested program."""
    if args.source_mode:
        return args.program, "<string>"
    with open(args.program, "r", encoding="utf-8") as handle:
        return handle.read(), args.program


def _report_runtime_error(interpreter: Interpreter, error: StrRuntimeError, *, verbose: bool, as_json: bool) -> None:
    formatter = TracebackFormatter(interpreter)
    print(formatter.format_text(error, verbose=verbose), file=sys.stderr)
    if as_json:
        print(formatter.to_json(error), file=sys.stderr)


def run_cli(argv: Optional[List[str]] = None) -> int:
    arg_parser = _build_arg_parser()
    args = arg_parser.parse_args(argv)

    if args.program is None:
        if args.source_mode:
            print("-source requires a program string", file=sys.stderr)
            return 1
        # The REPL only makes sense with someone at the keyboard.
        if not sys.stdin.isatty():
            print(f"Format: {arg_parser.prog} [filename]", file=sys.stderr)
            return 1
        return run_repl(verbose=args.verbose)

    try:
        source_text, filename = _load_program(args)
    except OSError as exc:
        print(f"Failed to read {args.program}: {exc}", file=sys.stderr)
        return 1

    interpreter = Interpreter(source=source_text, filename=filename, verbose=args.verbose)
    try:
        interpreter.run()
    except StrParseError as error:
        print(f"ParseError: {error}", file=sys.stderr)
        return 1
    except StrRuntimeError as error:
        _report_runtime_error(interpreter, error, verbose=args.verbose, as_json=args.traceback_json)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(run_cli())
