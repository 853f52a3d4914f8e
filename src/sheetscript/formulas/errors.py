"""Error types for formula parsing and evaluation."""

from __future__ import annotations


class FormulaError(Exception):
    """Base class for all formula-related errors."""


class FormulaParseError(FormulaError):
    """Syntax error in a formula expression.

    Attributes:
        position: Character position where the error was detected.
        message: Human-readable description.
    """

    def __init__(self, message: str, position: int | None = None) -> None:
        self.position = position
        self.message = message
        full = f"Formula parse error: {message}"
        if position is not None:
            full += f" (at position {position})"
        super().__init__(full)


class FormulaEvalError(FormulaError):
    """A formula failed while being evaluated.

    Attributes:
        tag: Spreadsheet error tag (``#VALUE!``, ``#N/A``, ...) that a cell
            holding this formula would display.
    """

    def __init__(self, message: str, tag: str = "#VALUE!") -> None:
        self.tag = tag
        super().__init__(message)


class FormulaRefError(FormulaEvalError):
    """Reference to an unknown name or an unresolvable cell.

    Attributes:
        ref_name: The unresolved reference.
        available: Names that are currently available.
    """

    def __init__(self, ref_name: str, available: list[str] | None = None) -> None:
        self.ref_name = ref_name
        self.available = available or []
        msg = f"Unknown reference: {ref_name!r}"
        if self.available:
            msg += f". Available: {self.available}"
        super().__init__(msg, tag="#REF!")


class FormulaFunctionError(FormulaEvalError):
    """Unknown function, wrong number of arguments, or a failing function body.

    Attributes:
        func_name: The function that caused the error.
    """

    def __init__(self, func_name: str, message: str | None = None, tag: str = "#VALUE!") -> None:
        self.func_name = func_name
        if message is None:
            message = f"Unknown function: {func_name!r}"
            tag = "#NAME?"
        super().__init__(message, tag=tag)


# Errors that IFERROR and ISERROR treat as an error result.
ENGINE_ERRORS: tuple[type[Exception], ...] = (FormulaEvalError,)
