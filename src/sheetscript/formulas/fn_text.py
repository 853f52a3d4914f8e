"""Text formula functions: CONCAT, CONCATENATE, LEN, UPPER, LOWER, LEFT, RIGHT."""

from __future__ import annotations

from typing import Any

from sheetscript.formulas.errors import FormulaFunctionError
from sheetscript.values import display, is_number


def _text(value: Any) -> str:
    """Display text of a value; a blank cell is the empty string."""
    if value is None:
        return ""
    if isinstance(value, list):
        return "".join(_text(v) for v in value)
    return display(value)


def _count(func_name: str, value: Any) -> int:
    if not is_number(value) or value < 0:
        raise FormulaFunctionError(
            func_name, f"{func_name} requires a non-negative character count"
        )
    return int(value)


def _fn_concat(args: list, ctx: dict, resolver: Any) -> str:
    """CONCAT(val1, val2, ...) joins the display text of its arguments."""
    return "".join(_text(a) for a in args)


def _fn_len(args: list, ctx: dict, resolver: Any) -> int:
    if len(args) != 1:
        raise FormulaFunctionError("LEN", "LEN requires exactly 1 argument")
    return len(_text(args[0]))


def _fn_upper(args: list, ctx: dict, resolver: Any) -> str:
    if len(args) != 1:
        raise FormulaFunctionError("UPPER", "UPPER requires exactly 1 argument")
    return _text(args[0]).upper()


def _fn_lower(args: list, ctx: dict, resolver: Any) -> str:
    if len(args) != 1:
        raise FormulaFunctionError("LOWER", "LOWER requires exactly 1 argument")
    return _text(args[0]).lower()


def _fn_left(args: list, ctx: dict, resolver: Any) -> str:
    """LEFT(text [, n]) returns the first n characters (default 1)."""
    if len(args) < 1 or len(args) > 2:
        raise FormulaFunctionError("LEFT", "LEFT requires 1-2 arguments")
    n = _count("LEFT", args[1]) if len(args) == 2 else 1
    return _text(args[0])[:n]


def _fn_right(args: list, ctx: dict, resolver: Any) -> str:
    """RIGHT(text [, n]) returns the last n characters (default 1)."""
    if len(args) < 1 or len(args) > 2:
        raise FormulaFunctionError("RIGHT", "RIGHT requires 1-2 arguments")
    n = _count("RIGHT", args[1]) if len(args) == 2 else 1
    text = _text(args[0])
    return text[len(text) - n:] if n else ""


TEXT_FUNCTIONS: dict[str, Any] = {
    "CONCAT": _fn_concat,
    "CONCATENATE": _fn_concat,
    "LEN": _fn_len,
    "UPPER": _fn_upper,
    "LOWER": _fn_lower,
    "LEFT": _fn_left,
    "RIGHT": _fn_right,
}
