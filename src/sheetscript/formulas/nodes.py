"""Formula expression tree.

Nodes are immutable; a parsed formula can be evaluated any number of
times against different resolvers.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Union


@dataclass(frozen=True)
class Literal:
    value: Any


@dataclass(frozen=True)
class CellRef:
    """Single-cell reference; ``sheet`` is ``None`` for the current sheet."""

    sheet: str | None
    address: str

    def __str__(self) -> str:
        return f"{_sheet_prefix(self.sheet)}{self.address}"


@dataclass(frozen=True)
class RangeRef:
    """Rectangular ``start:end`` range; ``sheet`` is ``None`` for the current sheet."""

    sheet: str | None
    start: str
    end: str

    def __str__(self) -> str:
        return f"{_sheet_prefix(self.sheet)}{self.start}:{self.end}"


@dataclass(frozen=True)
class NameRef:
    """Scalar name looked up in the evaluation context."""

    name: str


@dataclass(frozen=True)
class UnaryOp:
    op: str  # "-", "+" or "%"
    operand: FormulaExpr


@dataclass(frozen=True)
class BinaryOp:
    op: str
    left: FormulaExpr
    right: FormulaExpr


@dataclass(frozen=True)
class FunctionCall:
    name: str  # upper-cased
    args: tuple[FormulaExpr, ...]


FormulaExpr = Union[Literal, CellRef, RangeRef, NameRef, UnaryOp, BinaryOp, FunctionCall]


def _sheet_prefix(sheet: str | None) -> str:
    if sheet is None:
        return ""
    if sheet.replace("_", "a").isalnum() and not sheet[0].isdigit():
        return f"{sheet}!"
    return f"'{sheet}'!"
