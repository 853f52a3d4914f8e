"""Spreadsheet lookup algorithms over script values.

Shared by the script built-ins (``vlookup`` and friends) and the formula
functions (``VLOOKUP`` and friends).  Tables are rectangular 2-D arrays
(lists of equal-length lists); positions are 1-based.

Approximate matching returns the nearest qualifying value wherever it
sits, taking the first occurrence on ties.  On data sorted the way the
spreadsheet convention expects (ascending for ``<=``, descending for
``>=``) this is the classic result; on unsorted data the answer is
still the true nearest value rather than an artefact of scan order.
"""

from __future__ import annotations

from typing import Any, Callable

from sheetscript.errors import (
    BoundsError,
    InvalidArgumentsError,
    NotFoundError,
    TypeMismatchError,
)
from sheetscript.values import compare_values, display, is_table, is_truthy, values_equal

_MISSING = object()


def require_table(function: str, value: Any) -> list[list[Any]]:
    if not is_table(value):
        raise InvalidArgumentsError(function, "a rectangular 2-D array as table")
    return value


def require_vector(function: str, value: Any, what: str = "array") -> list[Any]:
    if not isinstance(value, list) or any(isinstance(v, list) for v in value):
        raise InvalidArgumentsError(function, f"a 1-D array as {what}")
    return value


def require_position(function: str, value: Any, what: str) -> int:
    """Accept ints and integral floats as 1-based positions."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidArgumentsError(function, f"an integer {what}")
    if isinstance(value, float):
        if not value.is_integer():
            raise InvalidArgumentsError(function, f"an integer {what}")
        value = int(value)
    return value


def _order(candidate: Any, key: Any) -> int | None:
    """compare_values, or None when the two cannot be ordered."""
    if candidate is None or key is None:
        return None
    try:
        return compare_values(candidate, key)
    except TypeMismatchError:
        return None


def _nearest(values: list[Any], key: Any, below: bool) -> int | None:
    """Index of the greatest value <= key (below) or least value >= key."""
    best: int | None = None
    for i, v in enumerate(values):
        c = _order(v, key)
        if c is None or (below and c > 0) or (not below and c < 0):
            continue
        if best is None:
            best = i
            continue
        better = compare_values(v, values[best])
        if (below and better > 0) or (not below and better < 0):
            best = i
    return best


def _first_equal(values: list[Any], key: Any) -> int | None:
    for i, v in enumerate(values):
        if values_equal(v, key):
            return i
    return None


def _find(values: list[Any], key: Any, exact: bool) -> int | None:
    if exact:
        return _first_equal(values, key)
    return _nearest(values, key, below=True)


def vlookup(key: Any, table: Any, col: Any, exact: Any = False) -> Any:
    """Find *key* in the first column of *table* and return column *col*.

    Args:
        key: Value to look for.
        table: Rectangular 2-D array.
        col: 1-based column of the value to return.
        exact: Truthy for exact matching; otherwise the row holding the
            greatest first-column value ``<= key`` is used.

    Raises:
        InvalidArgumentsError: If *table* is not rectangular or *col* is
            not an integer.
        BoundsError: If *col* is outside ``[1, width]``.
        NotFoundError: If no row qualifies.
    """
    rows = require_table("vlookup", table)
    col = require_position("vlookup", col, "column")
    width = len(rows[0])
    if not 1 <= col <= width:
        raise BoundsError(f"vlookup column {col} is outside 1..{width}")
    hit = _find([r[0] for r in rows], key, is_truthy(exact))
    if hit is None:
        raise NotFoundError(f"vlookup: {display(key)!r} not found")
    return rows[hit][col - 1]


def hlookup(key: Any, table: Any, row: Any, exact: Any = False) -> Any:
    """Find *key* in the first row of *table* and return row *row* of that column."""
    rows = require_table("hlookup", table)
    row = require_position("hlookup", row, "row")
    if not 1 <= row <= len(rows):
        raise BoundsError(f"hlookup row {row} is outside 1..{len(rows)}")
    hit = _find(list(rows[0]), key, is_truthy(exact))
    if hit is None:
        raise NotFoundError(f"hlookup: {display(key)!r} not found")
    return rows[row - 1][hit]


def index(array: Any, row: Any, col: Any = _MISSING) -> Any:
    """1-based access into a 2-D table, or into a 1-D array when *col* is omitted.

    Raises:
        BoundsError: If a position is outside ``[1, extent]``.
    """
    if isinstance(array, list) and array and all(isinstance(r, list) for r in array):
        rows = require_table("index", array)
        row = require_position("index", row, "row")
        if not 1 <= row <= len(rows):
            raise BoundsError(f"index row {row} is outside 1..{len(rows)}")
        if col is _MISSING:
            selected = rows[row - 1]
            return selected[0] if len(selected) == 1 else list(selected)
        col = require_position("index", col, "column")
        width = len(rows[0])
        if not 1 <= col <= width:
            raise BoundsError(f"index column {col} is outside 1..{width}")
        return rows[row - 1][col - 1]
    values = require_vector("index", array)
    pos = require_position("index", row, "position")
    if col is not _MISSING:
        col = require_position("index", col, "column")
        if col != 1:
            raise BoundsError(f"index column {col} is outside 1..1")
    if not 1 <= pos <= len(values):
        raise BoundsError(f"index position {pos} is outside 1..{len(values)}")
    return values[pos - 1]


def match(key: Any, array: Any, match_type: Any = 1) -> int:
    """Return the 1-based position of *key* in a 1-D array.

    ``match_type`` 0 finds the first equal element; 1 the greatest element
    ``<= key`` (ascending data); -1 the least element ``>= key``
    (descending data).

    Raises:
        InvalidArgumentsError: On a non 1-D array or an unknown match type.
        NotFoundError: If no element qualifies.
    """
    values = require_vector("match", array)
    mode = require_position("match", match_type, "match_type")
    if mode == 0:
        hit = _first_equal(values, key)
    elif mode == 1:
        hit = _nearest(values, key, below=True)
    elif mode == -1:
        hit = _nearest(values, key, below=False)
    else:
        raise InvalidArgumentsError("match", "match_type 0, 1 or -1", detail=f"got {mode}")
    if hit is None:
        raise NotFoundError(f"match: {display(key)!r} not found")
    return hit + 1


def xlookup(key: Any, lookup_array: Any, return_array: Any, if_not_found: Any = _MISSING) -> Any:
    """Exact lookup of *key* in one array, returning the aligned element of another.

    *return_array* may be 1-D (an element is returned) or a 2-D table with
    one row per lookup element (the whole row is returned).
    """
    keys = require_vector("xlookup", lookup_array, "lookup_array")
    if not isinstance(return_array, list) or len(return_array) != len(keys):
        raise InvalidArgumentsError(
            "xlookup", "return_array with the same length as lookup_array"
        )
    hit = _first_equal(keys, key)
    if hit is None:
        if if_not_found is not _MISSING:
            return if_not_found
        raise NotFoundError(f"xlookup: {display(key)!r} not found")
    found = return_array[hit]
    return list(found) if isinstance(found, list) else found


LOOKUPS: dict[str, Callable[..., Any]] = {
    "vlookup": vlookup,
    "hlookup": hlookup,
    "index": index,
    "match": match,
    "xlookup": xlookup,
}
