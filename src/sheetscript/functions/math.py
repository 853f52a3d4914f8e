"""Math built-ins.

Aggregates (``sum``, ``avg``, ``min``, ``max``, ``count``, ``product``)
accept either several values or arrays, which are flattened; nulls are
skipped and any other non-number is an error.
"""

from __future__ import annotations

import math
from typing import Any

from sheetscript.errors import InvalidArgumentsError, ScriptRuntimeError
from sheetscript.functions.registry import (
    BuiltinContext,
    check_arity,
    int_arg,
    number_arg,
    register_builtin,
)
from sheetscript.values import (
    apply_binary,
    check_int,
    compare_values,
    is_number,
    round_half_away,
    type_name,
)


def _flatten(values: list[Any]) -> list[Any]:
    out: list[Any] = []
    for v in values:
        if isinstance(v, list):
            out.extend(_flatten(v))
        else:
            out.append(v)
    return out


def _numbers(name: str, args: list[Any]) -> list[int | float]:
    nums = []
    for v in _flatten(args):
        if v is None:
            continue
        if not is_number(v):
            raise InvalidArgumentsError(name, "numbers", detail=f"got {type_name(v)}")
        nums.append(v)
    return nums


@register_builtin("abs", "math")
def _abs(ctx: BuiltinContext, args: list[Any]) -> int | float:
    check_arity("abs", args, 1)
    value = number_arg("abs", args[0], "argument")
    if isinstance(value, int):
        return check_int(abs(value))
    return abs(value)


@register_builtin("sum", "math")
def _sum(ctx: BuiltinContext, args: list[Any]) -> int | float:
    check_arity("sum", args, 1, None)
    total: int | float = 0
    for value in _numbers("sum", args):
        total = apply_binary("+", total, value)
    return total


@register_builtin("avg", "math", aliases=("average",))
def _avg(ctx: BuiltinContext, args: list[Any]) -> float | None:
    """avg(values...) is the mean as a float, or null when there are no numbers."""
    check_arity("avg", args, 1, None)
    nums = _numbers("avg", args)
    if not nums:
        return None
    return math.fsum(float(n) for n in nums) / len(nums)


@register_builtin("min", "math")
def _min(ctx: BuiltinContext, args: list[Any]) -> int | float | None:
    check_arity("min", args, 1, None)
    nums = _numbers("min", args)
    if not nums:
        return None
    best = nums[0]
    for n in nums[1:]:
        if compare_values(n, best) < 0:
            best = n
    return best


@register_builtin("max", "math")
def _max(ctx: BuiltinContext, args: list[Any]) -> int | float | None:
    check_arity("max", args, 1, None)
    nums = _numbers("max", args)
    if not nums:
        return None
    best = nums[0]
    for n in nums[1:]:
        if compare_values(n, best) > 0:
            best = n
    return best


@register_builtin("count", "math")
def _count(ctx: BuiltinContext, args: list[Any]) -> int:
    """count(values...) counts the numbers, ignoring everything else."""
    return sum(1 for v in _flatten(args) if is_number(v))


@register_builtin("product", "math")
def _product(ctx: BuiltinContext, args: list[Any]) -> int | float:
    check_arity("product", args, 1, None)
    result: int | float = 1
    for value in _numbers("product", args):
        result = apply_binary("*", result, value)
    return result


@register_builtin("round", "math")
def _round(ctx: BuiltinContext, args: list[Any]) -> int | float:
    """round(x[, digits]) rounds half away from zero."""
    check_arity("round", args, 1, 2)
    value = number_arg("round", args[0], "value")
    digits = int_arg("round", args[1], "digit count") if len(args) == 2 else 0
    return round_half_away(value, digits)


@register_builtin("floor", "math")
def _floor(ctx: BuiltinContext, args: list[Any]) -> int:
    check_arity("floor", args, 1)
    value = number_arg("floor", args[0], "argument")
    if isinstance(value, float) and not math.isfinite(value):
        raise ScriptRuntimeError(f"floor() of {value}")
    return check_int(math.floor(value))


@register_builtin("ceil", "math")
def _ceil(ctx: BuiltinContext, args: list[Any]) -> int:
    check_arity("ceil", args, 1)
    value = number_arg("ceil", args[0], "argument")
    if isinstance(value, float) and not math.isfinite(value):
        raise ScriptRuntimeError(f"ceil() of {value}")
    return check_int(math.ceil(value))


@register_builtin("sqrt", "math")
def _sqrt(ctx: BuiltinContext, args: list[Any]) -> float:
    check_arity("sqrt", args, 1)
    value = number_arg("sqrt", args[0], "argument")
    if value < 0:
        raise ScriptRuntimeError(f"sqrt() of negative number {value}")
    return math.sqrt(value)


@register_builtin("pow", "math")
def _pow(ctx: BuiltinContext, args: list[Any]) -> int | float:
    check_arity("pow", args, 2)
    base = number_arg("pow", args[0], "base")
    exponent = number_arg("pow", args[1], "exponent")
    return apply_binary("^", base, exponent)
