"""Logical formula functions: AND, OR, NOT."""

from __future__ import annotations

from typing import Any

from sheetscript.formulas.errors import FormulaFunctionError
from sheetscript.values import is_truthy


def _present(args: list) -> list:
    """Range arguments expand; blank cells are skipped."""
    out = []
    for a in args:
        if isinstance(a, list):
            out.extend(_present(a))
        elif a is not None:
            out.append(a)
    return out


def _fn_and(args: list, ctx: dict, resolver: Any) -> bool:
    """AND(val1, val2, ...) is TRUE if all arguments are truthy."""
    if len(args) < 1:
        raise FormulaFunctionError("AND", "AND requires at least 1 argument")
    return all(is_truthy(a) for a in _present(args))


def _fn_or(args: list, ctx: dict, resolver: Any) -> bool:
    """OR(val1, val2, ...) is TRUE if any argument is truthy."""
    if len(args) < 1:
        raise FormulaFunctionError("OR", "OR requires at least 1 argument")
    return any(is_truthy(a) for a in _present(args))


def _fn_not(args: list, ctx: dict, resolver: Any) -> bool:
    """NOT(val) inverts a boolean value."""
    if len(args) != 1:
        raise FormulaFunctionError("NOT", "NOT requires exactly 1 argument")
    return not is_truthy(args[0])


LOGICAL_FUNCTIONS: dict[str, Any] = {
    "AND": _fn_and,
    "OR": _fn_or,
    "NOT": _fn_not,
}
