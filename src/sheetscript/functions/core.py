"""Core built-ins: output, introspection, ranges, formatting and formulas."""

from __future__ import annotations

from typing import Any

from sheetscript.errors import InvalidArgumentsError, UnsupportedFeatureError
from sheetscript.formatting import format_value
from sheetscript.formulas import SheetResolver, evaluate_formula
from sheetscript.functions.registry import (
    BuiltinContext,
    check_arity,
    int_arg,
    register_builtin,
    str_arg,
)
from sheetscript.functions.sheet import resolve_sheet
from sheetscript.logging import EventType, emit_warning
from sheetscript.logging.events import UNSUPPORTED_FEATURE
from sheetscript.tabular.errors import ColumnsNotNamedError
from sheetscript.values import SheetRef, display, type_name

_MAX_RANGE = 10_000_000


@register_builtin("print", "core")
def _print(ctx: BuiltinContext, args: list[Any]) -> None:
    """print(values...) writes the display strings separated by spaces."""
    ctx.write(" ".join(display(a) for a in args) + "\n")


@register_builtin("len", "core", aliases=("length",))
def _len(ctx: BuiltinContext, args: list[Any]) -> int:
    check_arity("len", args, 1)
    value = args[0]
    if isinstance(value, (str, list)):
        return len(value)
    if isinstance(value, SheetRef):
        return resolve_sheet(ctx, value, "len").row_count()
    raise InvalidArgumentsError("len", "a string, array or sheet", detail=f"got {type_name(value)}")


@register_builtin("type", "core", aliases=("typeof",))
def _type(ctx: BuiltinContext, args: list[Any]) -> str:
    check_arity("type", args, 1)
    return type_name(args[0])


@register_builtin("isnull", "core")
def _isnull(ctx: BuiltinContext, args: list[Any]) -> bool:
    check_arity("isnull", args, 1)
    return args[0] is None


@register_builtin("isarray", "core")
def _isarray(ctx: BuiltinContext, args: list[Any]) -> bool:
    check_arity("isarray", args, 1)
    return isinstance(args[0], list)


@register_builtin("keys", "core")
def _keys(ctx: BuiltinContext, args: list[Any]) -> list[Any]:
    """keys(array) gives its indices; keys(sheet) its column names."""
    check_arity("keys", args, 1)
    value = args[0]
    if isinstance(value, list):
        return list(range(len(value)))
    if isinstance(value, (SheetRef, str)):
        names = resolve_sheet(ctx, value, "keys").column_names
        if names is None:
            raise ColumnsNotNamedError()
        return names
    raise InvalidArgumentsError("keys", "an array or sheet", detail=f"got {type_name(value)}")


@register_builtin("values", "core")
def _values(ctx: BuiltinContext, args: list[Any]) -> list[Any]:
    """values(array) copies it; values(sheet) gives its data rows."""
    check_arity("values", args, 1)
    value = args[0]
    if isinstance(value, list):
        return list(value)
    if isinstance(value, (SheetRef, str)):
        return resolve_sheet(ctx, value, "values").to_values()
    raise InvalidArgumentsError("values", "an array or sheet", detail=f"got {type_name(value)}")


@register_builtin("range", "core")
def _range(ctx: BuiltinContext, args: list[Any]) -> list[int]:
    """range(stop) or range(start, stop[, step]); *stop* is exclusive."""
    check_arity("range", args, 1, 3)
    ints = [int_arg("range", a, "bound") for a in args]
    if len(ints) == 1:
        start, stop, step = 0, ints[0], 1
    else:
        start, stop = ints[0], ints[1]
        step = ints[2] if len(ints) == 3 else 1
    if step == 0:
        raise InvalidArgumentsError("range", "a nonzero step")
    result = range(start, stop, step)
    if len(result) > _MAX_RANGE:
        raise InvalidArgumentsError("range", f"at most {_MAX_RANGE} elements")
    return list(result)


@register_builtin("format", "core")
def _format(ctx: BuiltinContext, args: list[Any]) -> str:
    """format(value, code) renders *value* with a spreadsheet format code."""
    check_arity("format", args, 2)
    return format_value(args[0], str_arg("format", args[1], "format code"))


@register_builtin("eval_formula", "core")
def _eval_formula(ctx: BuiltinContext, args: list[Any]) -> Any:
    """eval_formula(text[, sheet]) evaluates a formula, optionally against a sheet."""
    check_arity("eval_formula", args, 1, 2)
    text = str_arg("eval_formula", args[0], "formula")
    resolver = None
    if len(args) == 2:
        resolver = SheetResolver(resolve_sheet(ctx, args[1], "eval_formula"), ctx.book)
    return evaluate_formula(text, resolver)


def _unsupported(feature: str):
    def builtin(ctx: BuiltinContext, args: list[Any]) -> Any:
        emit_warning(
            EventType.unsupported_feature,
            f"{feature}() is not supported",
            {"feature": feature, "line": ctx.line},
            error_code=UNSUPPORTED_FEATURE,
            run_id=ctx.run_id,
        )
        raise UnsupportedFeatureError(feature)

    builtin.__name__ = f"_{feature}"
    builtin.__doc__ = f"{feature}() always raises UnsupportedFeatureError."
    return builtin


for _feature in ("fetch", "query", "py", "ocr"):
    register_builtin(_feature, "core")(_unsupported(_feature))
