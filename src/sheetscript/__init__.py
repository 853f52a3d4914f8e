"""sheetscript -- a scripting engine for tabular data.

Public API::

    from sheetscript import parse, run_script, Interpreter, Book
"""

__version__ = "0.1.0"

from sheetscript.environment import Environment
from sheetscript.errors import (
    BoundsError,
    FormulaOperationError,
    InvalidArgumentsError,
    NotFoundError,
    ScriptError,
    ScriptParseError,
    ScriptRuntimeError,
    SheetOperationError,
    TypeMismatchError,
    UnknownIdentifierError,
    UnsupportedFeatureError,
)
from sheetscript.formatting import NumberFormat, format_value
from sheetscript.interpreter import ExecutionResult, Interpreter, execute, run_script
from sheetscript.parser import parse
from sheetscript.tabular import Book, Sheet
from sheetscript.values import SheetRef

__all__ = [
    "Book",
    "BoundsError",
    "Environment",
    "ExecutionResult",
    "FormulaOperationError",
    "Interpreter",
    "InvalidArgumentsError",
    "NotFoundError",
    "NumberFormat",
    "ScriptError",
    "ScriptParseError",
    "ScriptRuntimeError",
    "Sheet",
    "SheetOperationError",
    "SheetRef",
    "TypeMismatchError",
    "UnknownIdentifierError",
    "UnsupportedFeatureError",
    "__version__",
    "execute",
    "format_value",
    "parse",
    "run_script",
]
