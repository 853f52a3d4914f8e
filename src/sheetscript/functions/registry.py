"""Central registry for built-in script functions.

Built-ins are plain callables taking ``(ctx, args)`` where *ctx* is a
:class:`BuiltinContext` and *args* the evaluated argument values.  A
built-in may be a coroutine function; the interpreter awaits it.  Names
are case-insensitive and unique across categories.
"""

from __future__ import annotations

import inspect
from dataclasses import dataclass, field
from typing import Any, Callable

from sheetscript.errors import InvalidArgumentsError
from sheetscript.tabular.book import Book, BookRegistry
from sheetscript.values import is_number, type_name

CATEGORIES = ("core", "math", "string", "lookup", "sheet", "book", "io")


@dataclass(frozen=True)
class Builtin:
    """A registered built-in function."""

    name: str
    category: str
    func: Callable[..., Any]
    is_async: bool


@dataclass
class BuiltinContext:
    """What a built-in may touch while it runs.

    Attributes:
        book: The interpreter's Book.
        config: Merged engine configuration.
        write: Sink for ``print`` output (one call per line, newline included).
        run_id: Id of the running script, for event attribution.
        line: Source line of the call being evaluated.
        registry: Shared books other scripts may register, if any.
    """

    book: Book
    config: dict[str, Any] = field(default_factory=dict)
    write: Callable[[str], Any] = print
    run_id: str | None = None
    line: int | None = None
    registry: BookRegistry | None = None


_BUILTINS: dict[str, Builtin] = {}


def register_builtin(name: str, category: str, *, aliases: tuple[str, ...] = ()) -> Callable:
    """Decorator that registers a built-in under *name* and its aliases.

    Args:
        name: The lookup name for this function.
        category: One of :data:`CATEGORIES`.
        aliases: Extra names that resolve to the same function.

    Returns:
        The original function, unmodified.

    Raises:
        ValueError: If a name is already registered or the category is unknown.
    """
    if category not in CATEGORIES:
        raise ValueError(f"Unknown builtin category: {category!r}")

    def decorator(fn: Callable) -> Callable:
        is_async = inspect.iscoroutinefunction(fn)
        for key in (name, *aliases):
            key = key.lower()
            if key in _BUILTINS:
                raise ValueError(
                    f"Builtin {key!r} already registered in category "
                    f"{_BUILTINS[key].category!r}"
                )
            _BUILTINS[key] = Builtin(key, category, fn, is_async)
        return fn

    return decorator


def get_builtin(name: str) -> Builtin | None:
    """Look up a built-in by case-insensitive name; ``None`` if unknown."""
    return _BUILTINS.get(name.lower())


def builtin_names(category: str | None = None) -> list[str]:
    """Sorted registered names, optionally limited to one category."""
    return sorted(
        key for key, b in _BUILTINS.items() if category is None or b.category == category
    )


# ---------------------------------------------------------------------------
# Argument helpers shared by the category modules
# ---------------------------------------------------------------------------


def check_arity(name: str, args: list[Any], low: int, high: int | None = -1) -> None:
    """Validate the argument count.

    ``high=-1`` means exactly *low*; ``high=None`` means no upper bound.

    Raises:
        InvalidArgumentsError: On a wrong count.
    """
    if high == -1:
        high = low
    if len(args) >= low and (high is None or len(args) <= high):
        return
    if high == low:
        expected = f"{low} argument{'s' if low != 1 else ''}"
    elif high is None:
        expected = f"at least {low} argument{'s' if low != 1 else ''}"
    else:
        expected = f"{low} to {high} arguments"
    raise InvalidArgumentsError(name, expected, detail=f"got {len(args)}")


def int_arg(name: str, value: Any, what: str) -> int:
    """Accept an int (or integral float) argument."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidArgumentsError(name, f"an integer {what}", detail=f"got {type_name(value)}")
    if isinstance(value, float):
        if not value.is_integer():
            raise InvalidArgumentsError(name, f"an integer {what}", detail=f"got {value}")
        return int(value)
    return value


def number_arg(name: str, value: Any, what: str) -> int | float:
    if not is_number(value):
        raise InvalidArgumentsError(name, f"a number {what}", detail=f"got {type_name(value)}")
    return value


def str_arg(name: str, value: Any, what: str) -> str:
    if not isinstance(value, str):
        raise InvalidArgumentsError(name, f"a string {what}", detail=f"got {type_name(value)}")
    return value
