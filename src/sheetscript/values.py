"""Runtime value model and operator semantics.

Script values are plain Python objects:

=========  ==========================
Kind       Python representation
=========  ==========================
Null       ``None``
Bool       ``bool``
Int        ``int`` (signed 64-bit range)
Float      ``float``
String     ``str``
Array      ``list`` of values
SheetRef   :class:`SheetRef`
=========  ==========================

The binary and unary operator rules live here so that the script
interpreter and the formula evaluator share one set of coercions.
"""

from __future__ import annotations

import decimal
import math
from dataclasses import dataclass
from typing import Any

from sheetscript.errors import ScriptRuntimeError, TypeMismatchError

INT_MIN = -(2**63)
INT_MAX = 2**63 - 1


@dataclass(frozen=True)
class SheetRef:
    """Name-plus-identity handle to a Sheet owned by a Book.

    A ref never owns the Sheet; it is resolved against its Book on every
    use, so a removed Sheet fails to resolve instead of going stale.
    """

    book_id: str
    name: str

    def __str__(self) -> str:
        return f"<sheet {self.name}>"


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------


def type_name(value: Any) -> str:
    """Return the script-level type name of *value*."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "bool"
    if isinstance(value, int):
        return "int"
    if isinstance(value, float):
        return "float"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "array"
    if isinstance(value, SheetRef):
        return "sheet"
    raise TypeMismatchError(f"Unsupported value of Python type {type(value).__name__}")


def is_number(value: Any) -> bool:
    """True for Int and Float values (Bool excluded)."""
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def is_truthy(value: Any) -> bool:
    """Truthiness: null, false, zero, empty string and empty array are false."""
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, (str, list)):
        return len(value) > 0
    return True


def check_int(value: int) -> int:
    """Return *value* if it fits in a signed 64-bit integer.

    Raises:
        ScriptRuntimeError: On overflow.
    """
    if value < INT_MIN or value > INT_MAX:
        raise ScriptRuntimeError("Integer overflow")
    return value


# ---------------------------------------------------------------------------
# Display strings
# ---------------------------------------------------------------------------


def format_float(value: float) -> str:
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "inf" if value > 0 else "-inf"
    if value.is_integer() and abs(value) < 1e16:
        return str(int(value))
    return repr(value)


def display(value: Any) -> str:
    """Return the display string used by ``print``, ``str`` and concatenation."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return format_float(value)
    if isinstance(value, str):
        return value
    if isinstance(value, list):
        return "[" + ", ".join(_display_item(v) for v in value) + "]"
    return str(value)


def _display_item(value: Any) -> str:
    if isinstance(value, str):
        escaped = value.replace("\\", "\\\\").replace('"', '\\"')
        return f'"{escaped}"'
    return display(value)


# ---------------------------------------------------------------------------
# Equality and ordering
# ---------------------------------------------------------------------------


def values_equal(left: Any, right: Any) -> bool:
    """Lenient equality used by lookups: mismatched kinds are simply unequal."""
    if left is None or right is None:
        return left is None and right is None
    if isinstance(left, bool) or isinstance(right, bool):
        return isinstance(left, bool) and isinstance(right, bool) and left == right
    if is_number(left) and is_number(right):
        return left == right
    if isinstance(left, str) and isinstance(right, str):
        return left == right
    if isinstance(left, list) and isinstance(right, list):
        return len(left) == len(right) and all(
            values_equal(a, b) for a, b in zip(left, right)
        )
    if isinstance(left, SheetRef) and isinstance(right, SheetRef):
        return left == right
    return False


def _comparable_kind(value: Any) -> str:
    if is_number(value):
        return "number"
    return type_name(value)


def strict_equal(left: Any, right: Any) -> bool:
    """Equality for the ``=`` operator.

    Null compares (unequal) with anything; other mismatched kinds raise.

    Raises:
        TypeMismatchError: If the operands are of incompatible kinds.
    """
    if left is None or right is None:
        return left is None and right is None
    lk, rk = _comparable_kind(left), _comparable_kind(right)
    if lk != rk:
        raise TypeMismatchError(f"Cannot compare {type_name(left)} with {type_name(right)}")
    return values_equal(left, right)


def compare_values(left: Any, right: Any) -> int:
    """Three-way comparison for ordering operators and approximate lookups.

    Numbers compare numerically, strings lexicographically, bools with
    false < true.

    Returns:
        -1, 0 or 1.

    Raises:
        TypeMismatchError: If the operands cannot be ordered against each other.
    """
    lk = _comparable_kind(left)
    rk = _comparable_kind(right)
    if lk != rk or lk not in ("number", "string", "bool"):
        raise TypeMismatchError(f"Cannot order {type_name(left)} against {type_name(right)}")
    if left < right:
        return -1
    if left > right:
        return 1
    return 0


# ---------------------------------------------------------------------------
# Arithmetic
# ---------------------------------------------------------------------------


def _trunc_divmod(a: int, b: int) -> tuple[int, int]:
    """Integer division truncating toward zero, with matching remainder."""
    q = abs(a) // abs(b)
    if (a < 0) != (b < 0):
        q = -q
    return q, a - b * q


def _require_numbers(op: str, left: Any, right: Any) -> None:
    if not (is_number(left) and is_number(right)):
        raise TypeMismatchError(
            f"Cannot apply '{op}' to {type_name(left)} and {type_name(right)}"
        )


def _add(left: Any, right: Any) -> Any:
    if isinstance(left, str) or isinstance(right, str):
        return display(left) + display(right)
    if isinstance(left, list) and isinstance(right, list):
        return left + right
    _require_numbers("+", left, right)
    if isinstance(left, int) and isinstance(right, int):
        return check_int(left + right)
    return float(left) + float(right)


def _sub(left: Any, right: Any) -> Any:
    _require_numbers("-", left, right)
    if isinstance(left, int) and isinstance(right, int):
        return check_int(left - right)
    return float(left) - float(right)


def _mul(left: Any, right: Any) -> Any:
    _require_numbers("*", left, right)
    if isinstance(left, int) and isinstance(right, int):
        return check_int(left * right)
    return float(left) * float(right)


def _div(left: Any, right: Any) -> Any:
    _require_numbers("/", left, right)
    if right == 0:
        raise ScriptRuntimeError("Division by zero")
    if isinstance(left, int) and isinstance(right, int):
        return check_int(_trunc_divmod(left, right)[0])
    return float(left) / float(right)


def _mod(left: Any, right: Any) -> Any:
    if not (isinstance(left, int) and isinstance(right, int)) or isinstance(
        left, bool
    ) or isinstance(right, bool):
        raise TypeMismatchError(
            f"Modulo requires integer operands, got {type_name(left)} and {type_name(right)}"
        )
    if right == 0:
        raise ScriptRuntimeError("Modulo by zero")
    return _trunc_divmod(left, right)[1]


def _pow(left: Any, right: Any) -> Any:
    _require_numbers("^", left, right)
    if isinstance(left, int) and isinstance(right, int) and right >= 0:
        if abs(left) > 1 and right > 64:
            raise ScriptRuntimeError("Integer overflow")
        return check_int(left**right)
    try:
        result = math.pow(float(left), float(right))
    except (OverflowError, ValueError, ZeroDivisionError) as exc:
        raise ScriptRuntimeError(f"Invalid power {display(left)}^{display(right)}: {exc}") from exc
    return result


def _concat(left: Any, right: Any) -> str:
    return display(left) + display(right)


_ARITHMETIC = {
    "+": _add,
    "-": _sub,
    "*": _mul,
    "/": _div,
    "mod": _mod,
    "^": _pow,
    "&": _concat,
}

_ORDERING = {
    "<": lambda c: c < 0,
    "<=": lambda c: c <= 0,
    ">": lambda c: c > 0,
    ">=": lambda c: c >= 0,
}


def apply_binary(op: str, left: Any, right: Any) -> Any:
    """Apply a non-short-circuit binary operator.

    Args:
        op: One of ``+ - * / mod ^ & = <> < <= > >=``.
        left: Left operand value.
        right: Right operand value.

    Returns:
        The resulting value.

    Raises:
        TypeMismatchError: On incompatible operand kinds.
        ScriptRuntimeError: On overflow or division by zero.
    """
    fn = _ARITHMETIC.get(op)
    if fn is not None:
        return fn(left, right)
    if op == "=":
        return strict_equal(left, right)
    if op == "<>":
        return not strict_equal(left, right)
    check = _ORDERING.get(op)
    if check is not None:
        if left is None or right is None:
            raise TypeMismatchError(f"Cannot order {type_name(left)} against {type_name(right)}")
        return check(compare_values(left, right))
    raise ValueError(f"Unknown binary operator: {op!r}")


def apply_unary(op: str, operand: Any) -> Any:
    """Apply unary ``-`` or ``not``."""
    if op == "not":
        return not is_truthy(operand)
    if op == "-":
        if isinstance(operand, bool) or not is_number(operand):
            raise TypeMismatchError(f"Cannot negate {type_name(operand)}")
        if isinstance(operand, int):
            return check_int(-operand)
        return -operand
    raise ValueError(f"Unknown unary operator: {op!r}")


# ---------------------------------------------------------------------------
# Shape helpers
# ---------------------------------------------------------------------------


def is_table(value: Any) -> bool:
    """True if *value* is a non-empty rectangular 2-D array."""
    if not isinstance(value, list) or not value:
        return False
    if not all(isinstance(row, list) for row in value):
        return False
    width = len(value[0])
    return all(len(row) == width for row in value)


def to_number(value: Any) -> float | int | None:
    """Return *value* as a number if it is one, else ``None``."""
    if is_number(value):
        return value
    return None


def round_half_away(value: int | float, digits: int = 0) -> int | float:
    """Round half away from zero, the spreadsheet convention.

    ``round_half_away(2.5) == 3.0`` and ``round_half_away(2.675, 2) == 2.68``
    where the built-in :func:`round` gives ``2`` and ``2.67``.  Ints rounded
    to zero or more digits are returned unchanged.
    """
    if isinstance(value, int) and digits >= 0:
        return value
    if not math.isfinite(value):
        return value
    try:
        quantum = decimal.Decimal(1).scaleb(-digits)
        rounded = decimal.Decimal(repr(float(value))).quantize(
            quantum, rounding=decimal.ROUND_HALF_UP
        )
    except decimal.InvalidOperation:
        return float(value)
    return float(rounded)
