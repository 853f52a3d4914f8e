"""Immutable syntax tree produced by :mod:`sheetscript.parser`.

Every node is a frozen dataclass carrying the 1-based source ``line`` it
was parsed from.  Child sequences are tuples so a parsed ``Program`` can
be executed any number of times.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Union


# ---------------------------------------------------------------------------
# Expressions
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Literal:
    value: Any
    line: int = 0


@dataclass(frozen=True)
class Variable:
    name: str
    line: int = 0


@dataclass(frozen=True)
class Unary:
    op: str
    operand: Expression
    line: int = 0


@dataclass(frozen=True)
class Binary:
    """Binary operation.  ``and``/``or`` short-circuit; the rest are eager."""

    op: str
    left: Expression
    right: Expression
    line: int = 0


@dataclass(frozen=True)
class Call:
    name: str
    args: tuple[Expression, ...] = ()
    line: int = 0


@dataclass(frozen=True)
class Index:
    target: Expression
    index: Expression
    line: int = 0


@dataclass(frozen=True)
class ArrayLiteral:
    items: tuple[Expression, ...] = ()
    line: int = 0


Expression = Union[Literal, Variable, Unary, Binary, Call, Index, ArrayLiteral]


# ---------------------------------------------------------------------------
# Statements
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Dim:
    """``dim name [= value]``: declare in the current scope."""

    name: str
    value: Expression | None = None
    line: int = 0


@dataclass(frozen=True)
class Assign:
    """``target = value`` where target is a Variable or an Index chain."""

    target: Variable | Index
    value: Expression
    line: int = 0


@dataclass(frozen=True)
class If:
    branches: tuple[tuple[Expression, tuple[Statement, ...]], ...]
    else_body: tuple[Statement, ...] | None = None
    line: int = 0


@dataclass(frozen=True)
class ForRange:
    var: str
    start: Expression
    end: Expression
    step: Expression | None
    body: tuple[Statement, ...]
    line: int = 0


@dataclass(frozen=True)
class ForEach:
    var: str
    iterable: Expression
    body: tuple[Statement, ...]
    line: int = 0


@dataclass(frozen=True)
class While:
    condition: Expression
    body: tuple[Statement, ...]
    line: int = 0


@dataclass(frozen=True)
class Param:
    name: str
    mode: str = "byval"
    default: Expression | None = None
    line: int = 0

    @property
    def is_optional(self) -> bool:
        return self.mode == "optional"

    @property
    def is_rest(self) -> bool:
        return self.mode == "paramarray"


@dataclass(frozen=True)
class FunctionDef:
    name: str
    params: tuple[Param, ...]
    body: tuple[Statement, ...]
    line: int = 0


@dataclass(frozen=True)
class Return:
    value: Expression | None = None
    line: int = 0


@dataclass(frozen=True)
class Exit:
    """``exit for``, ``exit while`` or ``exit function``."""

    kind: str
    line: int = 0


@dataclass(frozen=True)
class ExprStatement:
    expr: Expression
    line: int = 0


Statement = Union[Dim, Assign, If, ForRange, ForEach, While, FunctionDef, Return, Exit, ExprStatement]


@dataclass(frozen=True)
class Program:
    statements: tuple[Statement, ...] = ()

    def functions(self) -> dict[str, FunctionDef]:
        """Top-level function definitions keyed by lowercase name."""
        return {
            stmt.name.lower(): stmt
            for stmt in self.statements
            if isinstance(stmt, FunctionDef)
        }
