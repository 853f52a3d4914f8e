"""Lark-based parser for spreadsheet-style formulas.

Supports:
- Scalar references: ``name`` or ``$name``
- In-sheet cell references: ``F2``, ``$AA$10`` (A1-style, uppercase)
- Ranges: ``A1:B3``, ``Sheet1!A1:B3``, ``'My Sheet'!A1:B3``
- Cross-sheet cell references: ``Sheet1!A1`` or ``'My Sheet'!A1``
- Arithmetic, ``&`` concatenation, comparisons, functions, postfix percent
"""

from __future__ import annotations

from typing import Iterator

from lark import Lark, Token, Transformer
from lark.exceptions import UnexpectedInput

from sheetscript.formulas.errors import FormulaParseError
from sheetscript.formulas.nodes import (
    BinaryOp,
    CellRef,
    FormulaExpr,
    FunctionCall,
    Literal,
    NameRef,
    RangeRef,
    UnaryOp,
)

# LALR(1) grammar.
# Operator precedence (lowest to highest):
#   1. Comparison: > < >= <= = <>
#   2. Concatenation: &
#   3. Addition/subtraction: + -
#   4. Multiplication/division: * /
#   5. Unary plus/minus: + -
#   6. Exponentiation: ^ (right-associative)
#   7. Postfix percent: %  (3% = 0.03)
#   8. Atoms: number, bool, string, function call, reference, parenthesized expr
GRAMMAR = r"""
start: expr

?expr: comparison

?comparison: concat
    | comparison ">" concat   -> gt
    | comparison "<" concat   -> lt
    | comparison ">=" concat  -> gte
    | comparison "<=" concat  -> lte
    | comparison "=" concat   -> eq
    | comparison "<>" concat  -> neq

?concat: addition
    | concat "&" addition  -> concat_op

?addition: multiplication
    | addition "+" multiplication  -> add
    | addition "-" multiplication  -> sub

?multiplication: unary
    | multiplication "*" unary  -> mul
    | multiplication "/" unary  -> div

?unary: exponentiation
    | "-" unary  -> neg
    | "+" unary  -> pos

?exponentiation: postfix
    | postfix "^" unary  -> pow

?postfix: atom
    | postfix "%"  -> percent

?atom: NUMBER                   -> number
    | BOOL                      -> boolean
    | ESCAPED_STRING            -> string
    | NAME "(" args ")"         -> func_call
    | QUOTED_SHEET_RANGE        -> sheet_range_ref
    | SHEET_RANGE               -> sheet_range_ref
    | QUOTED_SHEET_REF          -> sheet_cell_ref
    | SHEET_REF                 -> sheet_cell_ref
    | CELL_RANGE                -> range_ref
    | CELL_REF                  -> cell_ref
    | "$" NAME                  -> ref_dollar
    | NAME                      -> ref_bare
    | "(" expr ")"

args: expr ("," expr)*
    |

BOOL.2: /(TRUE|FALSE)(?![A-Za-z0-9_])/i

// Sheet1!A1:B3 and 'My Sheet'!A1:B3
SHEET_RANGE.4: /[A-Za-z_][A-Za-z0-9_]*!\$?[A-Z]{1,3}\$?[0-9]+:\$?[A-Z]{1,3}\$?[0-9]+/
QUOTED_SHEET_RANGE.4: /'[^']+'!\$?[A-Z]{1,3}\$?[0-9]+:\$?[A-Z]{1,3}\$?[0-9]+/

// Sheet1!A1 (no spaces in unquoted form) and 'My Sheet'!A1
SHEET_REF.3: /[A-Za-z_][A-Za-z0-9_]*!\$?[A-Z]{1,3}\$?[0-9]+/
QUOTED_SHEET_REF.3: /'[^']+'!\$?[A-Z]{1,3}\$?[0-9]+/

// A1:B3
CELL_RANGE.3: /\$?[A-Z]{1,3}\$?[0-9]+:\$?[A-Z]{1,3}\$?[0-9]+/

// A1, F2, $AA$10 (uppercase only, so lowercase names stay names)
CELL_REF.2: /\$?[A-Z]{1,3}\$?[0-9]+/

NAME.1: /[A-Za-z_][A-Za-z0-9_]*/

%import common.NUMBER
%import common.ESCAPED_STRING
%import common.WS
%ignore WS
"""


def _norm_addr(addr: str) -> str:
    return addr.replace("$", "").upper()


def parse_sheet_ref(token_str: str) -> tuple[str, str]:
    """Split a sheet-qualified token into ``(sheet_name, rest)``.

    Examples:
        ``"Sheet1!A1"`` -> ``("Sheet1", "A1")``
        ``"'My Sheet'!B2:C4"`` -> ``("My Sheet", "B2:C4")``
    """
    s = token_str.strip()
    if s.startswith("'"):
        close_quote = s.index("'", 1)
        sheet_name = s[1:close_quote]
        rest = s[close_quote + 2:]  # skip '!
    else:
        bang = s.index("!")
        sheet_name = s[:bang]
        rest = s[bang + 1:]
    return sheet_name, _norm_addr(rest)


def _parse_number(token: Token) -> int | float:
    s = str(token)
    if any(c in s for c in ".eE"):
        return float(s)
    return int(s)


def _binary(op: str):
    def build(self, children):
        return BinaryOp(op, children[0], children[1])

    return build


class _FormulaBuilder(Transformer):
    """Turns the parse tree into :mod:`~sheetscript.formulas.nodes` objects."""

    def start(self, children):
        return children[0]

    def number(self, children):
        return Literal(_parse_number(children[0]))

    def boolean(self, children):
        return Literal(str(children[0]).upper() == "TRUE")

    def string(self, children):
        raw = str(children[0])
        return Literal(raw[1:-1].replace('\\"', '"').replace("\\\\", "\\"))

    def func_call(self, children):
        name, args = children
        return FunctionCall(str(name).upper(), tuple(args))

    def args(self, children):
        return list(children)

    def cell_ref(self, children):
        return CellRef(None, _norm_addr(str(children[0])))

    def sheet_cell_ref(self, children):
        sheet, addr = parse_sheet_ref(str(children[0]))
        return CellRef(sheet, addr)

    def range_ref(self, children):
        start, end = _norm_addr(str(children[0])).split(":")
        return RangeRef(None, start, end)

    def sheet_range_ref(self, children):
        sheet, rng = parse_sheet_ref(str(children[0]))
        start, end = rng.split(":")
        return RangeRef(sheet, start, end)

    def ref_bare(self, children):
        return NameRef(str(children[0]))

    ref_dollar = ref_bare

    def neg(self, children):
        return UnaryOp("-", children[0])

    def pos(self, children):
        return UnaryOp("+", children[0])

    def percent(self, children):
        return UnaryOp("%", children[0])

    gt = _binary(">")
    lt = _binary("<")
    gte = _binary(">=")
    lte = _binary("<=")
    eq = _binary("=")
    neq = _binary("<>")
    concat_op = _binary("&")
    add = _binary("+")
    sub = _binary("-")
    mul = _binary("*")
    div = _binary("/")
    pow = _binary("^")


_parser = Lark(GRAMMAR, parser="lalr", start="start", transformer=_FormulaBuilder())


def parse_formula(text: str) -> FormulaExpr:
    """Parse formula text into an expression tree.

    Surrounding whitespace and one leading ``=`` are stripped.

    Args:
        text: The formula text, e.g. ``"=SUM(A1:A3) * (1 - tax_rate)"``.

    Returns:
        The root :data:`~sheetscript.formulas.nodes.FormulaExpr` node.

    Raises:
        FormulaParseError: If the formula is empty or has invalid syntax.
    """
    stripped = text.strip()
    offset = len(text) - len(text.lstrip())
    if stripped.startswith("="):
        stripped = stripped[1:]
        offset += 1
    if not stripped.strip():
        raise FormulaParseError("empty formula", position=0)
    try:
        return _parser.parse(stripped)
    except UnexpectedInput as exc:
        pos = getattr(exc, "pos_in_stream", None)
        if pos is None or pos < 0:
            pos = len(stripped)
        raise FormulaParseError(str(exc).splitlines()[0], position=offset + pos) from exc


def walk(expr: FormulaExpr) -> Iterator[FormulaExpr]:
    """Yield *expr* and every node below it, depth first, left to right."""
    yield expr
    if isinstance(expr, UnaryOp):
        yield from walk(expr.operand)
    elif isinstance(expr, BinaryOp):
        yield from walk(expr.left)
        yield from walk(expr.right)
    elif isinstance(expr, FunctionCall):
        for arg in expr.args:
            yield from walk(arg)


def extract_refs(expr: FormulaExpr) -> list[str]:
    """List the cell and range references in *expr*.

    Returns:
        Unique references in source order, e.g. ``["A1", "Data!B2:B9"]``.
    """
    seen: dict[str, None] = {}
    for node in walk(expr):
        if isinstance(node, (CellRef, RangeRef)):
            seen.setdefault(str(node))
    return list(seen)


def extract_names(expr: FormulaExpr) -> set[str]:
    """Return the scalar names referenced by *expr* (without ``$`` prefix)."""
    return {node.name for node in walk(expr) if isinstance(node, NameRef)}
