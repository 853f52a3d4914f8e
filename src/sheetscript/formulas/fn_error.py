"""Formula functions that inspect or recover from error values.

A cell holding an error tag (``#N/A``, ``#REF!``, ...) or a failing
subexpression surfaces as a :class:`FormulaEvalError` carrying that tag.
The functions here evaluate their first argument themselves, so they
are registered as lazy and receive parse nodes rather than values.
"""

from __future__ import annotations

from typing import Any

from sheetscript.formulas.errors import ENGINE_ERRORS, FormulaEvalError, FormulaFunctionError


def _evaluate(node: Any, ctx: dict, resolver: Any) -> Any:
    # Deferred: the evaluator imports this module for its function table.
    from sheetscript.formulas.evaluator import _eval

    return _eval(node, ctx, resolver)


def _attempt(node: Any, ctx: dict, resolver: Any) -> tuple[Any, FormulaEvalError | None]:
    """Evaluate *node*, returning ``(value, None)`` or ``(None, error)``."""
    try:
        return _evaluate(node, ctx, resolver), None
    except ENGINE_ERRORS as exc:
        return None, exc


def _is_na(error: FormulaEvalError | None) -> bool:
    return error is not None and error.tag == "#N/A"


def _fn_iserror(raw_args: list, ctx: dict, resolver: Any) -> bool:
    """ISERROR(expr): TRUE when *expr* yields any error tag."""
    if len(raw_args) != 1:
        raise FormulaFunctionError("ISERROR", "ISERROR requires exactly 1 argument")
    return _attempt(raw_args[0], ctx, resolver)[1] is not None


def _fn_isna(raw_args: list, ctx: dict, resolver: Any) -> bool:
    """ISNA(expr): TRUE only for ``#N/A``, as left by a failed lookup."""
    if len(raw_args) != 1:
        raise FormulaFunctionError("ISNA", "ISNA requires exactly 1 argument")
    return _is_na(_attempt(raw_args[0], ctx, resolver)[1])


def _fn_iferror(raw_args: list, ctx: dict, resolver: Any) -> Any:
    if len(raw_args) != 2:
        raise FormulaFunctionError("IFERROR", "IFERROR requires exactly 2 arguments")
    value, error = _attempt(raw_args[0], ctx, resolver)
    if error is None:
        return value
    return _evaluate(raw_args[1], ctx, resolver)


def _fn_ifna(raw_args: list, ctx: dict, resolver: Any) -> Any:
    """IFNA(value, fallback): like IFERROR but other error tags still propagate."""
    if len(raw_args) != 2:
        raise FormulaFunctionError("IFNA", "IFNA requires exactly 2 arguments")
    value, error = _attempt(raw_args[0], ctx, resolver)
    if error is None:
        return value
    if not _is_na(error):
        raise error
    return _evaluate(raw_args[1], ctx, resolver)


ERROR_FUNCTIONS: dict[str, Any] = {
    "ISERROR": _fn_iserror,
    "ISNA": _fn_isna,
    "IFERROR": _fn_iferror,
    "IFNA": _fn_ifna,
}

ERROR_LAZY_FUNCTIONS: set[str] = set(ERROR_FUNCTIONS)
