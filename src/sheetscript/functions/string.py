"""String and conversion built-ins.

Character positions are 1-based, as in spreadsheet text functions.
"""

from __future__ import annotations

import math
from typing import Any

from sheetscript.errors import InvalidArgumentsError
from sheetscript.functions.registry import (
    BuiltinContext,
    check_arity,
    int_arg,
    register_builtin,
    str_arg,
)
from sheetscript.values import check_int, display, type_name, values_equal


def _count_arg(name: str, value: Any, what: str) -> int:
    n = int_arg(name, value, what)
    if n < 0:
        raise InvalidArgumentsError(name, f"a non-negative {what}", detail=f"got {n}")
    return n


@register_builtin("str", "string")
def _str(ctx: BuiltinContext, args: list[Any]) -> str:
    check_arity("str", args, 1)
    return display(args[0])


@register_builtin("int", "string")
def _int(ctx: BuiltinContext, args: list[Any]) -> int:
    """int(x) converts numbers (truncating), booleans and numeric text."""
    check_arity("int", args, 1)
    value = args[0]
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            return check_int(int(text))
        except ValueError:
            try:
                value = float(text)
            except ValueError:
                raise InvalidArgumentsError(
                    "int", "numeric text", detail=f"cannot convert {value!r}"
                ) from None
    if isinstance(value, float):
        if not math.isfinite(value):
            raise InvalidArgumentsError("int", "a finite number", detail=f"got {value}")
        return check_int(math.trunc(value))
    raise InvalidArgumentsError("int", "a number, bool or string", detail=f"got {type_name(value)}")


@register_builtin("float", "string")
def _float(ctx: BuiltinContext, args: list[Any]) -> float:
    check_arity("float", args, 1)
    value = args[0]
    if isinstance(value, (bool, int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            raise InvalidArgumentsError(
                "float", "numeric text", detail=f"cannot convert {value!r}"
            ) from None
    raise InvalidArgumentsError("float", "a number, bool or string", detail=f"got {type_name(value)}")


@register_builtin("upper", "string")
def _upper(ctx: BuiltinContext, args: list[Any]) -> str:
    check_arity("upper", args, 1)
    return str_arg("upper", args[0], "argument").upper()


@register_builtin("lower", "string")
def _lower(ctx: BuiltinContext, args: list[Any]) -> str:
    check_arity("lower", args, 1)
    return str_arg("lower", args[0], "argument").lower()


@register_builtin("trim", "string")
def _trim(ctx: BuiltinContext, args: list[Any]) -> str:
    check_arity("trim", args, 1)
    return str_arg("trim", args[0], "argument").strip()


@register_builtin("left", "string")
def _left(ctx: BuiltinContext, args: list[Any]) -> str:
    check_arity("left", args, 2)
    text = str_arg("left", args[0], "text")
    return text[: _count_arg("left", args[1], "length")]


@register_builtin("right", "string")
def _right(ctx: BuiltinContext, args: list[Any]) -> str:
    check_arity("right", args, 2)
    text = str_arg("right", args[0], "text")
    n = _count_arg("right", args[1], "length")
    return text[max(len(text) - n, 0):]


@register_builtin("mid", "string")
def _mid(ctx: BuiltinContext, args: list[Any]) -> str:
    """mid(text, start[, length]) with a 1-based *start*."""
    check_arity("mid", args, 2, 3)
    text = str_arg("mid", args[0], "text")
    start = int_arg("mid", args[1], "start")
    if start < 1:
        raise InvalidArgumentsError("mid", "a start position of at least 1", detail=f"got {start}")
    if len(args) == 3:
        return text[start - 1: start - 1 + _count_arg("mid", args[2], "length")]
    return text[start - 1:]


@register_builtin("concat", "string")
def _concat(ctx: BuiltinContext, args: list[Any]) -> str:
    return "".join(display(a) for a in args)


@register_builtin("replace", "string")
def _replace(ctx: BuiltinContext, args: list[Any]) -> str:
    """replace(text, old, new) replaces every occurrence of *old*."""
    check_arity("replace", args, 3)
    text = str_arg("replace", args[0], "text")
    old = str_arg("replace", args[1], "search text")
    new = str_arg("replace", args[2], "replacement")
    if not old:
        raise InvalidArgumentsError("replace", "a non-empty search text")
    return text.replace(old, new)


@register_builtin("split", "string")
def _split(ctx: BuiltinContext, args: list[Any]) -> list[str]:
    """split(text, sep); an empty separator splits into characters."""
    check_arity("split", args, 2)
    text = str_arg("split", args[0], "text")
    sep = str_arg("split", args[1], "separator")
    if not sep:
        return list(text)
    return text.split(sep)


@register_builtin("join", "string")
def _join(ctx: BuiltinContext, args: list[Any]) -> str:
    """join(array[, sep]) joins the display strings of the elements."""
    check_arity("join", args, 1, 2)
    items = args[0]
    if not isinstance(items, list):
        raise InvalidArgumentsError("join", "an array", detail=f"got {type_name(items)}")
    sep = str_arg("join", args[1], "separator") if len(args) == 2 else ""
    return sep.join(display(v) for v in items)


@register_builtin("contains", "string")
def _contains(ctx: BuiltinContext, args: list[Any]) -> bool:
    """contains(text, sub) for substrings, contains(array, value) for membership."""
    check_arity("contains", args, 2)
    haystack, needle = args
    if isinstance(haystack, list):
        return any(values_equal(v, needle) for v in haystack)
    text = str_arg("contains", haystack, "text or array")
    return str_arg("contains", needle, "search text") in text


@register_builtin("instr", "string")
def _instr(ctx: BuiltinContext, args: list[Any]) -> int:
    """instr(text, sub[, start]) is the 1-based position of *sub*, or 0."""
    check_arity("instr", args, 2, 3)
    text = str_arg("instr", args[0], "text")
    sub = str_arg("instr", args[1], "search text")
    start = int_arg("instr", args[2], "start") if len(args) == 3 else 1
    if start < 1:
        raise InvalidArgumentsError("instr", "a start position of at least 1", detail=f"got {start}")
    return text.find(sub, start - 1) + 1
