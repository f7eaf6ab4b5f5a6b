from __future__ import annotations

import io
import json
from pathlib import Path

import pytest

from strlang import run_cli


class _Terminal(io.StringIO):
    def isatty(self) -> bool:
        return True


def test_cli_run_file(tmp_path: Path, capsys: pytest.CaptureFixture[str]):
    p = tmp_path / "prog.str"
    p.write_text('VAR x = "cat" + "dog"\nPRINT x\n', encoding="utf-8")

    assert run_cli([str(p)]) == 0
    captured = capsys.readouterr()
    assert captured.out.splitlines() == ["catdog"]
    assert captured.err == ""


def test_cli_source_mode(capsys: pytest.CaptureFixture[str]):
    assert run_cli(["-source", 'PRINT "hello world" - "world" + "|"']) == 0
    assert capsys.readouterr().out == "hello |\n"


def test_cli_missing_file(tmp_path: Path, capsys: pytest.CaptureFixture[str]):
    missing = tmp_path / "nope.str"
    assert run_cli([str(missing)]) == 1
    assert f"Failed to read {missing}" in capsys.readouterr().err


def test_cli_parse_error(capsys: pytest.CaptureFixture[str]):
    assert run_cli(["-source", 'PRINT "a"\nPRINT "a" < "b"']) == 1
    captured = capsys.readouterr()
    assert captured.out == ""
    assert captured.err.strip() == "ParseError: Unexpected operator in expression: < (line 2)"


def test_cli_runtime_error(capsys: pytest.CaptureFixture[str]):
    assert run_cli(["-source", 'PRINT "a"\nVAR b = c']) == 1
    captured = capsys.readouterr()
    assert captured.out == "a\n"
    err_lines = captured.err.strip().splitlines()
    assert err_lines[0] == "Traceback (most recent call last):"
    assert err_lines[-1] == "UndefinedVariable: Unknown variable 'c' (line 2) (rewrite: IDENT)"


def test_cli_traceback_json(capsys: pytest.CaptureFixture[str]):
    assert run_cli(["-source", "--traceback-json", 'VAR a\nVAR a']) == 1
    err = capsys.readouterr().err
    payload = json.loads(err[err.index("{"):])
    assert payload["error"]["type"] == "DuplicateDeclaration"
    assert "originally defined on line 1" in payload["error"]["message"]


def test_cli_source_requires_program(capsys: pytest.CaptureFixture[str]):
    assert run_cli(["-source"]) == 1
    assert "-source requires a program string" in capsys.readouterr().err


def test_repl_keeps_state_across_errors(monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]):
    monkeypatch.setattr("sys.stdin", _Terminal())
    lines = iter(['VAR a = "x"', "PRINT missing", "", 'PRINT a + "y"', "PRINT ==", 'VAR a = "z"'])

    def fake_input(prompt: str = "") -> str:
        try:
            return next(lines)
        except StopIteration:
            raise EOFError from None

    monkeypatch.setattr("builtins.input", fake_input)
    assert run_cli([]) == 0
    captured = capsys.readouterr()
    assert "xy" in captured.out.splitlines()
    assert "Unknown variable 'missing'" in captured.err
    assert "ParseError: Unexpected token: ==" in captured.err
    assert "Redeclaration of variable 'a'" in captured.err


def test_cli_without_program_on_pipe_prints_usage(monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]):
    monkeypatch.setattr("sys.stdin", io.StringIO('PRINT "a"\n'))
    assert run_cli([]) == 1
    captured = capsys.readouterr()
    assert captured.out == ""
    assert captured.err.strip() == "Format: strlang [filename]"


def test_cli_long_expression(capsys: pytest.CaptureFixture[str]):
    src = "PRINT " + " + ".join(['"a"'] * 1500)
    assert run_cli(["-source", src]) == 0
    assert capsys.readouterr().out == "a" * 1500 + "\n"
