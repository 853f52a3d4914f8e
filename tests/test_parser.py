"""Tests for the script parser: grammar coverage, precedence and errors."""

from __future__ import annotations

import dataclasses

import pytest

from sheetscript import ast
from sheetscript.errors import ScriptParseError
from sheetscript.parser import parse


def _expr(source: str) -> ast.Expression:
    """Parse ``x = <source>`` and return the right-hand side."""
    stmt = parse(f"x = {source}").statements[0]
    assert isinstance(stmt, ast.Assign)
    return stmt.value


# ---------------------------------------------------------------------------
# Literals
# ---------------------------------------------------------------------------


class TestLiterals:
    def test_int_and_float(self) -> None:
        assert _expr("42") == ast.Literal(42, 1)
        assert _expr("2.5") == ast.Literal(2.5, 1)
        assert _expr("1e3") == ast.Literal(1000.0, 1)

    def test_keywords_literals(self) -> None:
        assert _expr("true").value is True
        assert _expr("FALSE").value is False
        assert _expr("null").value is None

    def test_empty_string_is_not_null(self) -> None:
        lit = _expr('""')
        assert lit.value == ""
        assert lit.value is not None

    def test_string_escapes(self) -> None:
        assert _expr(r'"a\tb\nc"').value == "a\tb\nc"
        assert _expr(r'"say \"hi\""').value == 'say "hi"'
        assert _expr(r'"back\\slash"').value == "back\\slash"

    def test_nested_array_literal(self) -> None:
        arr = _expr("[[1, 2], [3, 4]]")
        assert isinstance(arr, ast.ArrayLiteral)
        assert len(arr.items) == 2
        assert all(isinstance(row, ast.ArrayLiteral) for row in arr.items)
        assert arr.items[1].items[0].value == 3

    def test_empty_array(self) -> None:
        assert _expr("[]").items == ()

    def test_integer_literal_out_of_range(self) -> None:
        with pytest.raises(ScriptParseError, match="out of range"):
            parse("x = 9223372036854775808")


# ---------------------------------------------------------------------------
# Precedence
# ---------------------------------------------------------------------------


class TestPrecedence:
    def test_unary_minus_below_power(self) -> None:
        node = _expr("-2^2")
        assert isinstance(node, ast.Unary) and node.op == "-"
        assert isinstance(node.operand, ast.Binary) and node.operand.op == "^"

    def test_power_is_right_associative(self) -> None:
        node = _expr("2^3^2")
        assert node.op == "^"
        assert isinstance(node.right, ast.Binary) and node.right.op == "^"

    def test_multiplication_before_addition(self) -> None:
        node = _expr("2 + 3 * 4")
        assert node.op == "+"
        assert node.right.op == "*"

    def test_concat_shares_additive_level(self) -> None:
        node = _expr('"a" & 1 + 2')
        assert node.op == "+"
        assert node.left.op == "&"

    def test_comparison_below_arithmetic(self) -> None:
        node = _expr("1 + 1 = 2")
        assert node.op == "="
        assert node.left.op == "+"

    def test_and_binds_tighter_than_or(self) -> None:
        node = _expr("a or b and c")
        assert node.op == "or"
        assert node.right.op == "and"

    def test_mod_and_percent_alias(self) -> None:
        assert _expr("7 mod 3").op == "mod"
        assert _expr("7 % 3").op == "mod"

    def test_comparison_aliases(self) -> None:
        assert _expr("a == b").op == "="
        assert _expr("a != b").op == "<>"

    def test_index_binds_tighter_than_power(self) -> None:
        node = _expr("xs[0]^2")
        assert node.op == "^"
        assert isinstance(node.left, ast.Index)


# ---------------------------------------------------------------------------
# Statements
# ---------------------------------------------------------------------------


class TestStatements:
    def test_dim_with_and_without_value(self) -> None:
        program = parse("dim a\ndim b = 2\n")
        assert program.statements[0] == ast.Dim("a", None, 1)
        assert program.statements[1].value == ast.Literal(2, 2)

    def test_indexed_assignment_target(self) -> None:
        stmt = parse("m[1][0] = 9").statements[0]
        assert isinstance(stmt.target, ast.Index)
        assert isinstance(stmt.target.target, ast.Index)
        assert stmt.target.target.target == ast.Variable("m", 1)

    def test_if_elseif_else(self) -> None:
        program = parse(
            "if x > 1 then\n"
            "    y = 1\n"
            "elseif x > 0 then\n"
            "    y = 2\n"
            "else\n"
            "    y = 3\n"
            "end if\n"
        )
        stmt = program.statements[0]
        assert isinstance(stmt, ast.If)
        assert len(stmt.branches) == 2
        assert stmt.else_body is not None and len(stmt.else_body) == 1

    def test_single_line_if(self) -> None:
        stmt = parse("if x then y = 1").statements[0]
        assert isinstance(stmt, ast.If)
        assert stmt.else_body is None
        assert isinstance(stmt.branches[0][1][0], ast.Assign)

    def test_for_with_step_and_next_name(self) -> None:
        stmt = parse("for i = 10 to 1 step -1\n  print(i)\nnext i\n").statements[0]
        assert isinstance(stmt, ast.ForRange)
        assert stmt.var == "i"
        assert isinstance(stmt.step, ast.Unary)
        assert len(stmt.body) == 1

    def test_for_each(self) -> None:
        stmt = parse("for each v in [1, 2]\nnext\n").statements[0]
        assert isinstance(stmt, ast.ForEach)
        assert stmt.body == ()

    def test_while_wend_and_end_while(self) -> None:
        a = parse("while x < 3\n  x = x + 1\nwend\n").statements[0]
        b = parse("while x < 3\n  x = x + 1\nend while\n").statements[0]
        assert isinstance(a, ast.While) and isinstance(b, ast.While)
        assert a.body == b.body

    def test_function_definition_params(self) -> None:
        stmt = parse(
            "function f(a, byval b, byref c, optional d = 1, paramarray rest)\n"
            "  return a\n"
            "end function\n"
        ).statements[0]
        assert isinstance(stmt, ast.FunctionDef)
        modes = [p.mode for p in stmt.params]
        assert modes == ["byval", "byval", "byref", "optional", "paramarray"]
        assert stmt.params[3].default == ast.Literal(1, 1)
        assert stmt.params[4].is_rest

    def test_sub_is_function_synonym(self) -> None:
        stmt = parse("sub go()\n  exit sub\nend sub\n").statements[0]
        assert isinstance(stmt, ast.FunctionDef)
        assert stmt.body[0] == ast.Exit("function", 2)

    def test_exit_kinds(self) -> None:
        program = parse("exit for\nexit while\nexit function\n")
        assert [s.kind for s in program.statements] == ["for", "while", "function"]

    def test_call_statement_forms(self) -> None:
        program = parse('print("a")\ncall print("b")\ncall go\n')
        calls = [s.expr for s in program.statements]
        assert [c.name for c in calls] == ["print", "print", "go"]
        assert calls[2].args == ()

    def test_keywords_are_case_insensitive(self) -> None:
        program = parse("DIM X = 1\nIF X = 1 THEN\n  Y = 2\nEND IF\n")
        assert isinstance(program.statements[0], ast.Dim)
        assert isinstance(program.statements[1], ast.If)

    def test_comments_and_blank_lines(self) -> None:
        program = parse(
            "' leading comment\n"
            "\n"
            "dim x = 1  ' trailing\n"
            "   // slash comment\n"
            "x = 2 // another\n"
        )
        assert len(program.statements) == 2
        assert program.statements[1].line == 5

    def test_line_numbers(self) -> None:
        program = parse("dim a = 1\n\n\ndim b = 2\n")
        assert [s.line for s in program.statements] == [1, 4]

    def test_program_functions_keyed_lowercase(self) -> None:
        program = parse("function Twice(n)\n  return n * 2\nend function\n")
        assert list(program.functions()) == ["twice"]

    def test_program_is_immutable(self) -> None:
        program = parse("dim a = 1")
        with pytest.raises(dataclasses.FrozenInstanceError):
            program.statements[0].name = "b"


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class TestParseErrors:
    def test_error_carries_line_and_column(self) -> None:
        with pytest.raises(ScriptParseError) as exc_info:
            parse("dim a = 1\ndim b = * 2\n")
        err = exc_info.value
        assert err.line == 2
        assert err.column is not None
        assert str(err).startswith("line 2:")

    def test_expected_tokens_are_listed(self) -> None:
        with pytest.raises(ScriptParseError) as exc_info:
            parse("x = (1 + 2\n")
        assert exc_info.value.expected

    def test_unterminated_block_reports_end_of_input(self) -> None:
        with pytest.raises(ScriptParseError) as exc_info:
            parse("if x then\n  y = 1\n")
        assert exc_info.value.message.startswith("Unexpected end of input")

    def test_mismatched_next_name(self) -> None:
        with pytest.raises(ScriptParseError, match="does not match"):
            parse("for i = 1 to 2\nnext j\n")

    def test_duplicate_parameter(self) -> None:
        with pytest.raises(ScriptParseError, match="Duplicate parameter"):
            parse("function f(a, A)\nend function\n")

    def test_paramarray_must_be_last(self) -> None:
        with pytest.raises(ScriptParseError, match="paramarray"):
            parse("function f(paramarray a, b)\nend function\n")

    def test_all_or_nothing(self) -> None:
        # A valid first statement does not produce a partial program.
        with pytest.raises(ScriptParseError):
            parse("dim ok = 1\ndim = 2\n")

    def test_bare_expression_is_not_a_statement(self) -> None:
        with pytest.raises(ScriptParseError):
            parse("1 + 2\n")
