"""Script-level error taxonomy.

Every failure raised while parsing or executing a script is a
:class:`ScriptError`.  Errors carry the 1-based source line of the node
that failed when it is known.  Failures from the tabular layer are
wrapped in :class:`SheetOperationError` so the original kind survives.
"""

from __future__ import annotations

from typing import Any


class ScriptError(Exception):
    """Base class for all script parse and execution errors."""

    def __init__(self, message: str, line: int | None = None) -> None:
        self.message = message
        self.line = line
        if line is not None:
            super().__init__(f"line {line}: {message}")
        else:
            super().__init__(message)

    def with_line(self, line: int | None) -> ScriptError:
        """Attach *line* if the error does not already carry one."""
        if self.line is None and line is not None:
            self.line = line
            self.args = (f"line {line}: {self.message}",)
        return self


class ScriptParseError(ScriptError):
    """Raised when script text does not match the grammar."""

    def __init__(
        self,
        message: str,
        line: int | None = None,
        column: int | None = None,
        expected: list[str] | None = None,
    ) -> None:
        self.column = column
        self.expected = sorted(expected or [])
        detail = message
        if column is not None:
            detail = f"{message} (column {column})"
        if self.expected:
            detail += f"; expected one of: {', '.join(self.expected)}"
        super().__init__(detail, line)


class UnknownIdentifierError(ScriptError):
    """Raised when a variable or function name cannot be resolved."""

    def __init__(self, name: str, line: int | None = None, *, kind: str = "identifier") -> None:
        self.name = name
        self.kind = kind
        super().__init__(f"Unknown {kind}: {name!r}", line)


class TypeMismatchError(ScriptError):
    """Raised when an operation receives operands of incompatible kinds."""


class InvalidArgumentsError(ScriptError):
    """Raised when a function is called with the wrong arity or argument types."""

    def __init__(
        self,
        function: str,
        expected: str,
        line: int | None = None,
        *,
        detail: str | None = None,
    ) -> None:
        self.function = function
        self.expected = expected
        message = f"{function}() expects {expected}"
        if detail:
            message += f": {detail}"
        super().__init__(message, line)


class NotFoundError(ScriptError):
    """Raised when a lookup finds no qualifying element."""


class BoundsError(NotFoundError):
    """Raised when a 1-based index or column falls outside its extent."""


class UnsupportedFeatureError(ScriptError):
    """Raised by capabilities that are not available in this environment."""

    def __init__(self, feature: str, line: int | None = None) -> None:
        self.feature = feature
        super().__init__(f"{feature} is not supported in this environment", line)


class ScriptRuntimeError(ScriptError):
    """Raised for runtime failures such as overflow or division by zero."""


class SheetOperationError(ScriptError):
    """Wraps a tabular-layer error raised while a built-in ran.

    The original exception is kept on :attr:`cause` and chained as
    ``__cause__``; :attr:`kind` is its class name.
    """

    def __init__(self, cause: Exception, line: int | None = None) -> None:
        self.cause = cause
        self.kind = type(cause).__name__
        super().__init__(f"{self.kind}: {cause}", line)


class FormulaOperationError(ScriptError):
    """Wraps a formula parse or evaluation error raised while a built-in ran.

    Mirrors :class:`SheetOperationError`: the formula exception is on
    :attr:`cause` and :attr:`kind` is its class name.
    """

    def __init__(self, cause: Exception, line: int | None = None) -> None:
        self.cause = cause
        self.kind = type(cause).__name__
        super().__init__(f"{self.kind}: {cause}", line)


def describe(exc: BaseException) -> dict[str, Any]:
    """Return a JSON-safe summary of *exc* for event logging."""
    info: dict[str, Any] = {"error_type": type(exc).__name__, "error": str(exc)}
    line = getattr(exc, "line", None)
    if line is not None:
        info["line"] = line
    return info
