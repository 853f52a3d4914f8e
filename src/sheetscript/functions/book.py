"""Book built-ins: the sheets of the script's Book as a whole.

``book_merge`` pulls sheets from another Book registered in the
interpreter's :class:`~sheetscript.tabular.book.BookRegistry`.
"""

from __future__ import annotations

from typing import Any

from sheetscript.errors import NotFoundError, ScriptRuntimeError
from sheetscript.functions.registry import (
    BuiltinContext,
    check_arity,
    int_arg,
    register_builtin,
    str_arg,
)
from sheetscript.values import SheetRef


@register_builtin("book_sheet_names", "book")
def _book_sheet_names(ctx: BuiltinContext, args: list[Any]) -> list[str]:
    check_arity("book_sheet_names", args, 0)
    return ctx.book.sheet_names()


@register_builtin("book_sheet_count", "book")
def _book_sheet_count(ctx: BuiltinContext, args: list[Any]) -> int:
    check_arity("book_sheet_count", args, 0)
    return ctx.book.sheet_count()


@register_builtin("book_has_sheet", "book")
def _book_has_sheet(ctx: BuiltinContext, args: list[Any]) -> bool:
    check_arity("book_has_sheet", args, 1)
    return ctx.book.has_sheet(str_arg("book_has_sheet", args[0], "name"))


@register_builtin("book_get_sheet", "book")
def _book_get_sheet(ctx: BuiltinContext, args: list[Any]) -> SheetRef:
    """book_get_sheet(name) returns a ref to an existing sheet."""
    check_arity("book_get_sheet", args, 1)
    return ctx.book.ref(str_arg("book_get_sheet", args[0], "name"))


@register_builtin("book_remove_sheet", "book")
async def _book_remove_sheet(ctx: BuiltinContext, args: list[Any]) -> None:
    """Remove a sheet; refs to it fail on their next use."""
    check_arity("book_remove_sheet", args, 1)
    name = str_arg("book_remove_sheet", args[0], "name")
    async with ctx.book.writing() as book:
        book.remove_sheet(name)


@register_builtin("book_rename_sheet", "book")
async def _book_rename_sheet(ctx: BuiltinContext, args: list[Any]) -> SheetRef:
    """book_rename_sheet(old, new) returns a ref under the new name.

    Refs taken under the old name stop resolving.
    """
    check_arity("book_rename_sheet", args, 2)
    old = str_arg("book_rename_sheet", args[0], "old name")
    new = str_arg("book_rename_sheet", args[1], "new name")
    async with ctx.book.writing() as book:
        return book.rename_sheet(old, new)


@register_builtin("book_get_sheet_by_index", "book")
def _book_get_sheet_by_index(ctx: BuiltinContext, args: list[Any]) -> SheetRef:
    """0-based position in sheet order; -1 is the last sheet."""
    check_arity("book_get_sheet_by_index", args, 1)
    index = int_arg("book_get_sheet_by_index", args[0], "index")
    return ctx.book.ref(ctx.book.get_sheet_by_index(index).name)


@register_builtin("book_active_sheet", "book")
def _book_active_sheet(ctx: BuiltinContext, args: list[Any]) -> SheetRef | None:
    """Ref to the active sheet, or null for an empty Book."""
    check_arity("book_active_sheet", args, 0)
    sheet = ctx.book.active_sheet
    return ctx.book.ref(sheet.name) if sheet is not None else None


@register_builtin("book_set_active_sheet", "book")
async def _book_set_active_sheet(ctx: BuiltinContext, args: list[Any]) -> None:
    check_arity("book_set_active_sheet", args, 1)
    name = str_arg("book_set_active_sheet", args[0], "name")
    async with ctx.book.writing() as book:
        book.set_active_sheet(name)


@register_builtin("book_add_empty_sheet", "book")
async def _book_add_empty_sheet(ctx: BuiltinContext, args: list[Any]) -> SheetRef:
    check_arity("book_add_empty_sheet", args, 1)
    name = str_arg("book_add_empty_sheet", args[0], "name")
    async with ctx.book.writing() as book:
        return book.add_empty_sheet(name)


@register_builtin("book_consolidate", "book")
async def _book_consolidate(ctx: BuiltinContext, args: list[Any]) -> SheetRef:
    """book_consolidate([name]) stacks every sheet into a new sheet.

    The result is added to the Book under *name* (default
    ``"Consolidated"``) and a ref to it is returned.
    """
    check_arity("book_consolidate", args, 0, 1)
    name = str_arg("book_consolidate", args[0], "name") if args else "Consolidated"
    async with ctx.book.writing() as book:
        return book.add_sheet(name, book.consolidate(name))


@register_builtin("book_merge", "book")
async def _book_merge(ctx: BuiltinContext, args: list[Any]) -> int:
    """book_merge(name) copies every sheet of a registered Book into this one.

    Returns the number of sheets copied.  A name clash aborts the merge
    before anything is added.
    """
    check_arity("book_merge", args, 1)
    name = str_arg("book_merge", args[0], "book name")
    if ctx.registry is None:
        raise ScriptRuntimeError("book_merge needs a book registry")
    try:
        other = ctx.registry.get(name)
    except KeyError:
        raise NotFoundError(f"Book not found: {name!r}") from None
    async with ctx.book.writing() as book:
        book.merge(other)
    return other.sheet_count()
