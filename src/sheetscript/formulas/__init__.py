"""Spreadsheet-style formula parsing and evaluation.

Public API::

    from sheetscript.formulas import parse_formula, evaluate_formula, SheetResolver
"""

from sheetscript.formulas.errors import (
    ENGINE_ERRORS,
    FormulaError,
    FormulaEvalError,
    FormulaFunctionError,
    FormulaParseError,
    FormulaRefError,
)
from sheetscript.formulas.evaluator import CellResolver, evaluate_formula, function_names
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
from sheetscript.formulas.parser import (
    extract_names,
    extract_refs,
    parse_formula,
    parse_sheet_ref,
)
from sheetscript.formulas.resolver import SheetResolver

__all__ = [
    "ENGINE_ERRORS",
    "BinaryOp",
    "CellRef",
    "CellResolver",
    "FormulaError",
    "FormulaEvalError",
    "FormulaExpr",
    "FormulaFunctionError",
    "FormulaParseError",
    "FormulaRefError",
    "FunctionCall",
    "Literal",
    "NameRef",
    "RangeRef",
    "SheetResolver",
    "UnaryOp",
    "evaluate_formula",
    "extract_names",
    "extract_refs",
    "function_names",
    "parse_formula",
    "parse_sheet_ref",
]
