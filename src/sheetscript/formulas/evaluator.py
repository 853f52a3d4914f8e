"""Tree-walking evaluator for parsed formula expressions.

Supports:
- Scalar names from a context mapping
- Cell and range references via a resolver callback
- Operators with the same coercions as the script language; blank cells
  count as ``0`` in arithmetic and ``""`` in text operations
"""

from __future__ import annotations

from typing import Any, Mapping, Protocol

from sheetscript.errors import ScriptError, ScriptRuntimeError
from sheetscript.formulas.errors import (
    FormulaError,
    FormulaEvalError,
    FormulaFunctionError,
    FormulaRefError,
)
from sheetscript.formulas.fn_error import ERROR_FUNCTIONS, ERROR_LAZY_FUNCTIONS
from sheetscript.formulas.fn_logical import LOGICAL_FUNCTIONS
from sheetscript.formulas.fn_lookup import LOOKUP_FUNCTIONS
from sheetscript.formulas.fn_text import TEXT_FUNCTIONS
from sheetscript.formulas.nodes import (
    BinaryOp,
    CellRef,
    FormulaExpr,
    FunctionCall,
    Literal,
    NameRef,
    RangeRef,
    UnaryOp,
)
from sheetscript.formulas.parser import parse_formula
from sheetscript.tabular.errors import SheetError
from sheetscript.values import apply_binary, apply_unary, is_number, is_truthy, round_half_away


# ---------------------------------------------------------------------------
# Resolver protocol
# ---------------------------------------------------------------------------


class CellResolver(Protocol):
    """Protocol for resolving cell and range references."""

    def resolve_cell(self, sheet: str | None, addr: str) -> Any:
        """Resolve one cell; ``sheet`` is ``None`` for the current sheet."""
        ...

    def resolve_range(self, sheet: str | None, start: str, end: str) -> list[list[Any]]:
        """Resolve a rectangular range to a row-major 2-D list."""
        ...


def evaluate_formula(
    expr: FormulaExpr | str,
    resolver: CellResolver | None = None,
    context: Mapping[str, Any] | None = None,
) -> Any:
    """Evaluate a formula against a resolver and a scalar context.

    Args:
        expr: Parsed expression, or formula text to parse first.
        resolver: Resolver for cell and range references.
        context: Mapping of scalar names to values.

    Returns:
        The computed value.

    Raises:
        FormulaParseError: If *expr* is text that does not parse.
        FormulaEvalError: If evaluation fails (unknown names, bad operands,
            resolver failures, function errors).
    """
    if isinstance(expr, str):
        expr = parse_formula(expr)
    return _eval(expr, dict(context or {}), resolver)


def _eval(node: FormulaExpr, ctx: dict[str, Any], resolver: CellResolver | None) -> Any:
    """Recursively evaluate an expression node."""
    if isinstance(node, Literal):
        return node.value

    if isinstance(node, BinaryOp):
        left = _eval(node.left, ctx, resolver)
        right = _eval(node.right, ctx, resolver)
        return _binary(node.op, left, right)

    if isinstance(node, UnaryOp):
        value = _eval(node.operand, ctx, resolver)
        if value is None:
            value = 0
        if not is_number(value):
            raise FormulaEvalError(f"Cannot apply unary {node.op!r} to {value!r}")
        if node.op == "-":
            return _guard(apply_unary, "-", value)
        if node.op == "%":
            return _guard(apply_binary, "/", value, 100.0)
        return value

    if isinstance(node, NameRef):
        if node.name in ctx:
            return ctx[node.name]
        raise FormulaRefError(node.name, available=sorted(ctx.keys()))

    if isinstance(node, CellRef):
        if resolver is None:
            raise FormulaRefError(str(node), available=sorted(ctx.keys()))
        return _resolve(resolver.resolve_cell, node, node.sheet, node.address)

    if isinstance(node, RangeRef):
        if resolver is None:
            raise FormulaRefError(str(node), available=sorted(ctx.keys()))
        return _resolve(resolver.resolve_range, node, node.sheet, node.start, node.end)

    if isinstance(node, FunctionCall):
        return _eval_func(node, ctx, resolver)

    raise FormulaError(f"Unknown node type: {type(node).__name__}")


def _resolve(method: Any, node: FormulaExpr, *args: Any) -> Any:
    try:
        return method(*args)
    except FormulaError:
        raise
    except (SheetError, ScriptError) as exc:
        raise FormulaEvalError(f"Cannot resolve {node}: {exc}", tag="#REF!") from exc


def _guard(fn: Any, *args: Any) -> Any:
    """Run a value-model operator, mapping its failures to formula errors."""
    try:
        return fn(*args)
    except ScriptError as exc:
        tag = "#NUM!" if isinstance(exc, ScriptRuntimeError) else "#VALUE!"
        raise FormulaEvalError(exc.message, tag=tag) from exc


def _blank_as(value: Any, other: Any) -> Any:
    """Stand-in for a blank operand: ``""`` next to text, else ``0``."""
    if value is not None:
        return value
    return "" if isinstance(other, str) else 0


def _binary(op: str, left: Any, right: Any) -> Any:
    if isinstance(left, list) or isinstance(right, list):
        raise FormulaEvalError(f"A range cannot be used with operator {op!r}")
    if op == "&":
        left = "" if left is None else left
        right = "" if right is None else right
        return _guard(apply_binary, "&", left, right)
    left, right = _blank_as(left, right), _blank_as(right, left)
    if op == "/" and is_number(right) and right == 0:
        raise FormulaEvalError("Division by zero in formula", tag="#DIV/0!")
    return _guard(apply_binary, op, left, right)


# ---------- Function dispatch ----------

_LAZY_FUNCTIONS = {"IF"} | ERROR_LAZY_FUNCTIONS
_AGGREGATE_FUNCTIONS = {"SUM", "AVERAGE", "MIN", "MAX", "COUNT", "COUNTA"}


def _flatten_args(args: list) -> list:
    """Flatten range arguments (2-D lists) into one list of values."""
    result = []
    for a in args:
        if isinstance(a, list):
            result.extend(_flatten_args(a))
        else:
            result.append(a)
    return result


def _eval_func(node: FunctionCall, ctx: dict[str, Any], resolver: CellResolver | None) -> Any:
    """Evaluate a function call node."""
    func_name = node.name
    raw_args = list(node.args)

    if func_name not in _FUNC_TABLE:
        raise FormulaFunctionError(func_name)

    # Lazy functions receive unevaluated nodes
    if func_name in _LAZY_FUNCTIONS:
        return _FUNC_TABLE[func_name](raw_args, ctx, resolver)

    evaluated_args = [_eval(arg, ctx, resolver) for arg in raw_args]
    if func_name in _AGGREGATE_FUNCTIONS:
        evaluated_args = _flatten_args(evaluated_args)
    return _FUNC_TABLE[func_name](evaluated_args, ctx, resolver)


def _numbers(args: list) -> list:
    return [a for a in args if is_number(a)]


def _fn_sum(args: list, ctx: dict, resolver) -> Any:
    if len(args) < 1:
        raise FormulaFunctionError("SUM", "SUM requires at least 1 argument")
    total: Any = 0
    for value in _numbers(args):
        total = _guard(apply_binary, "+", total, value)
    return total


def _fn_average(args: list, ctx: dict, resolver) -> float:
    if len(args) < 1:
        raise FormulaFunctionError("AVERAGE", "AVERAGE requires at least 1 argument")
    nums = _numbers(args)
    if not nums:
        raise FormulaFunctionError("AVERAGE", "AVERAGE of no numbers", tag="#DIV/0!")
    return sum(float(n) for n in nums) / len(nums)


def _fn_min(args: list, ctx: dict, resolver) -> Any:
    if len(args) < 1:
        raise FormulaFunctionError("MIN", "MIN requires at least 1 argument")
    nums = _numbers(args)
    return min(nums) if nums else 0


def _fn_max(args: list, ctx: dict, resolver) -> Any:
    if len(args) < 1:
        raise FormulaFunctionError("MAX", "MAX requires at least 1 argument")
    nums = _numbers(args)
    return max(nums) if nums else 0


def _fn_count(args: list, ctx: dict, resolver) -> int:
    """COUNT(values...) counts numbers."""
    return len(_numbers(args))


def _fn_counta(args: list, ctx: dict, resolver) -> int:
    """COUNTA(values...) counts non-blank values."""
    return sum(1 for a in args if a is not None and a != "")


def _fn_abs(args: list, ctx: dict, resolver) -> Any:
    if len(args) != 1:
        raise FormulaFunctionError("ABS", "ABS requires exactly 1 argument")
    if not is_number(args[0]):
        raise FormulaFunctionError("ABS", f"ABS requires a number, got {args[0]!r}")
    return abs(args[0])


def _fn_round(args: list, ctx: dict, resolver) -> Any:
    if len(args) < 1 or len(args) > 2:
        raise FormulaFunctionError("ROUND", "ROUND requires 1-2 arguments")
    if not all(is_number(a) for a in args):
        raise FormulaFunctionError("ROUND", "ROUND requires numeric arguments")
    digits = int(args[1]) if len(args) == 2 else 0
    return round_half_away(args[0], digits)


def _fn_if(raw_args: list, ctx: dict, resolver) -> Any:
    """IF(condition, then_value [, else_value]) with lazy branches."""
    if len(raw_args) < 2 or len(raw_args) > 3:
        raise FormulaFunctionError("IF", "IF requires 2-3 arguments")
    condition = _eval(raw_args[0], ctx, resolver)
    if is_truthy(condition):
        return _eval(raw_args[1], ctx, resolver)
    if len(raw_args) == 3:
        return _eval(raw_args[2], ctx, resolver)
    return False


_FUNC_TABLE: dict[str, Any] = {
    "SUM": _fn_sum,
    "AVERAGE": _fn_average,
    "MIN": _fn_min,
    "MAX": _fn_max,
    "COUNT": _fn_count,
    "COUNTA": _fn_counta,
    "ABS": _fn_abs,
    "ROUND": _fn_round,
    "IF": _fn_if,
    **LOGICAL_FUNCTIONS,
    **ERROR_FUNCTIONS,
    **TEXT_FUNCTIONS,
    **LOOKUP_FUNCTIONS,
}


def function_names() -> list[str]:
    """Sorted names of the functions formulas can call."""
    return sorted(_FUNC_TABLE)
