"""Cell values stored inside a Sheet.

A cell holds ``None`` (empty), ``bool``, ``float`` (the single numeric
kind), ``str`` or a :class:`CellError`.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Union

from sheetscript.tabular.errors import InvalidCellValueError
from sheetscript.values import INT_MAX, INT_MIN, format_float

ERROR_TAGS = ("#N/A", "#REF!", "#VALUE!", "#DIV/0!", "#NUM!", "#NAME?", "#NULL!")


@dataclass(frozen=True)
class CellError:
    """An error value occupying a cell, e.g. ``#N/A``."""

    tag: str

    def __post_init__(self) -> None:
        if self.tag not in ERROR_TAGS:
            raise ValueError(f"Unknown cell error tag: {self.tag!r}")

    def __str__(self) -> str:
        return self.tag


CellValue = Union[None, bool, float, str, CellError]

_TRUE_WORDS = frozenset({"true", "yes"})
_FALSE_WORDS = frozenset({"false", "no"})


def to_cell(value: Any) -> CellValue:
    """Convert a script value into a cell value.

    Raises:
        InvalidCellValueError: For arrays, sheet refs and other non-scalars.
    """
    if value is None or isinstance(value, (bool, str, CellError)):
        return value
    if isinstance(value, (int, float)):
        return float(value)
    raise InvalidCellValueError(type(value).__name__)


def from_cell(cell: CellValue) -> Any:
    """Convert a cell value into a script value.

    Integral numbers within the 64-bit range come back as ``int``; error
    cells come back as their tag string.
    """
    if isinstance(cell, float):
        if cell.is_integer() and INT_MIN <= cell <= INT_MAX:
            return int(cell)
        return cell
    if isinstance(cell, CellError):
        return cell.tag
    return cell


def is_empty(cell: CellValue) -> bool:
    return cell is None or cell == ""


def cell_display(cell: CellValue) -> str:
    """Display text of a cell: empty is ``""``, numbers drop a ``.0``."""
    if cell is None:
        return ""
    if isinstance(cell, bool):
        return "true" if cell else "false"
    if isinstance(cell, float):
        return format_float(cell)
    return str(cell)


def parse_cell(text: str | None) -> CellValue:
    """Infer a cell value from raw text (CSV fields, markdown cells).

    Empty text is empty; ``true/false/yes/no`` are booleans (any case);
    numeric text is a number; error tags become :class:`CellError`;
    anything else stays a string.
    """
    if text is None:
        return None
    stripped = text.strip()
    if not stripped:
        return None
    lowered = stripped.lower()
    if lowered in _TRUE_WORDS:
        return True
    if lowered in _FALSE_WORDS:
        return False
    if stripped in ERROR_TAGS:
        return CellError(stripped)
    try:
        number = float(stripped) if _looks_numeric(stripped) else None
    except ValueError:
        number = None
    if number is not None and not math.isnan(number):
        return number
    return text


def _looks_numeric(text: str) -> bool:
    body = text.lstrip("+-")
    return bool(body) and (body[0].isdigit() or (body[0] == "." and body[1:2].isdigit()))
