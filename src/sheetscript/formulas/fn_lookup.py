"""Lookup formula functions: VLOOKUP, HLOOKUP, INDEX, MATCH, XLOOKUP.

Range arguments arrive as row-major 2-D lists.  The search itself is
shared with the script built-ins (:mod:`sheetscript.lookups`); failures
come back as :class:`FormulaFunctionError` tagged like a spreadsheet
would show them.
"""

from __future__ import annotations

from typing import Any

from sheetscript import lookups
from sheetscript.errors import BoundsError, NotFoundError, ScriptError
from sheetscript.formulas.errors import FormulaFunctionError
from sheetscript.values import is_truthy


def _call(func_name: str, fn: Any, *args: Any) -> Any:
    try:
        return fn(*args)
    except BoundsError as exc:
        raise FormulaFunctionError(func_name, f"{func_name}: {exc.message}", tag="#REF!") from exc
    except NotFoundError as exc:
        raise FormulaFunctionError(func_name, f"{func_name}: {exc.message}", tag="#N/A") from exc
    except ScriptError as exc:
        raise FormulaFunctionError(func_name, f"{func_name}: {exc.message}") from exc


def _vector(value: Any) -> Any:
    """Collapse a single-row or single-column range to a 1-D list."""
    if isinstance(value, list) and value and all(isinstance(r, list) for r in value):
        if len(value) == 1:
            return list(value[0])
        if all(len(r) == 1 for r in value):
            return [r[0] for r in value]
    return value


def _fn_vlookup(args: list, ctx: dict, resolver: Any) -> Any:
    """VLOOKUP(key, range, col_index [, range_lookup]); range_lookup FALSE is exact."""
    if len(args) < 3 or len(args) > 4:
        raise FormulaFunctionError("VLOOKUP", "VLOOKUP requires 3-4 arguments")
    exact = not is_truthy(args[3]) if len(args) == 4 else False
    return _call("VLOOKUP", lookups.vlookup, args[0], args[1], args[2], exact)


def _fn_hlookup(args: list, ctx: dict, resolver: Any) -> Any:
    """HLOOKUP(key, range, row_index [, range_lookup]); range_lookup FALSE is exact."""
    if len(args) < 3 or len(args) > 4:
        raise FormulaFunctionError("HLOOKUP", "HLOOKUP requires 3-4 arguments")
    exact = not is_truthy(args[3]) if len(args) == 4 else False
    return _call("HLOOKUP", lookups.hlookup, args[0], args[1], args[2], exact)


def _fn_index(args: list, ctx: dict, resolver: Any) -> Any:
    """INDEX(range, row [, col]) returns the value at a 1-based position."""
    if len(args) < 2 or len(args) > 3:
        raise FormulaFunctionError("INDEX", "INDEX requires 2-3 arguments (range, row [, col])")
    return _call("INDEX", lookups.index, *args)


def _fn_match(args: list, ctx: dict, resolver: Any) -> int:
    """MATCH(value, range [, match_type]) returns the 1-based position of a match."""
    if len(args) < 2 or len(args) > 3:
        raise FormulaFunctionError("MATCH", "MATCH requires 2-3 arguments (value, range [, type])")
    match_type = args[2] if len(args) == 3 else 1
    return _call("MATCH", lookups.match, args[0], _vector(args[1]), match_type)


def _fn_xlookup(args: list, ctx: dict, resolver: Any) -> Any:
    """XLOOKUP(value, lookup_range, return_range [, if_not_found]).

    Searches lookup_range for value and returns the aligned value from
    return_range.  The optional 4th argument is returned when no match is
    found.
    """
    if len(args) < 3 or len(args) > 4:
        raise FormulaFunctionError(
            "XLOOKUP",
            "XLOOKUP requires 3-4 arguments (value, lookup_range, return_range [, if_not_found])",
        )
    rest = args[3:]
    return _call(
        "XLOOKUP", lookups.xlookup, args[0], _vector(args[1]), _vector(args[2]), *rest
    )


LOOKUP_FUNCTIONS: dict[str, Any] = {
    "VLOOKUP": _fn_vlookup,
    "HLOOKUP": _fn_hlookup,
    "INDEX": _fn_index,
    "MATCH": _fn_match,
    "XLOOKUP": _fn_xlookup,
}
