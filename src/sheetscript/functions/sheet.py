"""Sheet built-ins.

A sheet argument is either a sheet ref (as returned by ``sheet_new``,
``book_get_sheet`` or ``import_csv``) or the sheet's name in the
script's Book.  Row and column indexes are 0-based, matching the Sheet
API; a column may also be given by name once columns are named.

Mutating built-ins hold :meth:`Book.writing` while they resolve and
change the sheet.  Each change is a single validated Sheet call with no
await in between, so a cancelled script never leaves a half-applied
edit.
"""

from __future__ import annotations

from typing import Any, Callable

from sheetscript.errors import InvalidArgumentsError
from sheetscript.formulas import SheetResolver, evaluate_formula
from sheetscript.functions.registry import (
    BuiltinContext,
    check_arity,
    int_arg,
    register_builtin,
    str_arg,
)
from sheetscript.tabular.cells import from_cell
from sheetscript.tabular.sheet import Sheet
from sheetscript.values import SheetRef, type_name


def resolve_sheet(ctx: BuiltinContext, value: Any, function: str) -> Sheet:
    """Resolve a sheet ref or sheet name against the script's Book.

    Raises:
        InvalidArgumentsError: If *value* is neither.
        SheetNotFoundError: If the sheet is gone (stale ref or unknown name).
    """
    if isinstance(value, SheetRef):
        return ctx.book.resolve(value)
    if isinstance(value, str):
        return ctx.book.get_sheet(value)
    raise InvalidArgumentsError(function, "a sheet or sheet name", detail=f"got {type_name(value)}")


def _values(cells: list[Any]) -> list[Any]:
    return [from_cell(c) for c in cells]


def _grid(function: str, value: Any) -> list[list[Any]]:
    if not isinstance(value, list) or not all(isinstance(r, list) for r in value):
        raise InvalidArgumentsError(function, "a 2-D array", detail=f"got {type_name(value)}")
    return value


def _row_arg(sheet: Sheet, function: str, value: Any) -> int:
    if isinstance(value, str):
        return sheet.row_position(value)
    return int_arg(function, value, "row")


def _col_arg(sheet: Sheet, function: str, value: Any) -> int:
    if isinstance(value, str):
        return sheet.column_position(value)
    return int_arg(function, value, "column")


async def _mutate(
    ctx: BuiltinContext, target: Any, function: str, change: Callable[[Sheet], Any]
) -> Any:
    async with ctx.book.writing():
        sheet = resolve_sheet(ctx, target, function)
        return change(sheet)


async def _reshape(
    ctx: BuiltinContext,
    target: Any,
    rest: list[Any],
    function: str,
    build: Callable[[Sheet], Sheet],
) -> SheetRef:
    """Replace *target* with ``build(sheet)``, or add the result under ``rest[0]``."""
    new_name = str_arg(function, rest[0], "name") if rest else None
    async with ctx.book.writing() as book:
        sheet = resolve_sheet(ctx, target, function)
        result = build(sheet)
        if new_name is None:
            book.replace_sheet(sheet.name, result)
            return book.ref(sheet.name)
        return book.add_sheet(new_name, result)


def _names(function: str, value: Any) -> list[str]:
    if not isinstance(value, list) or not all(isinstance(n, str) for n in value):
        raise InvalidArgumentsError(
            function, "an array of column names", detail=f"got {type_name(value)}"
        )
    return value


# ---------------------------------------------------------------------------
# Creation and shape
# ---------------------------------------------------------------------------


@register_builtin("sheet_new", "sheet")
async def _sheet_new(ctx: BuiltinContext, args: list[Any]) -> SheetRef:
    """sheet_new(name[, grid[, header]]) adds a sheet to the Book.

    With *header* true the first grid row becomes the column names.
    """
    check_arity("sheet_new", args, 1, 3)
    name = str_arg("sheet_new", args[0], "name")
    grid = _grid("sheet_new", args[1]) if len(args) >= 2 else []
    header = len(args) == 3 and bool(args[2])
    sheet = Sheet.from_grid(grid, name, header=header)
    async with ctx.book.writing() as book:
        return book.add_sheet(name, sheet)


@register_builtin("sheet_rows", "sheet")
def _sheet_rows(ctx: BuiltinContext, args: list[Any]) -> int:
    check_arity("sheet_rows", args, 1)
    return resolve_sheet(ctx, args[0], "sheet_rows").row_count()


@register_builtin("sheet_cols", "sheet")
def _sheet_cols(ctx: BuiltinContext, args: list[Any]) -> int:
    check_arity("sheet_cols", args, 1)
    return resolve_sheet(ctx, args[0], "sheet_cols").col_count()


# ---------------------------------------------------------------------------
# Cell access
# ---------------------------------------------------------------------------


@register_builtin("sheet_get", "sheet")
def _sheet_get(ctx: BuiltinContext, args: list[Any]) -> Any:
    """sheet_get(sheet, row, col); *col* may be a column name."""
    check_arity("sheet_get", args, 3)
    sheet = resolve_sheet(ctx, args[0], "sheet_get")
    row = _row_arg(sheet, "sheet_get", args[1])
    return from_cell(sheet.get(row, _col_arg(sheet, "sheet_get", args[2])))


@register_builtin("sheet_set", "sheet")
async def _sheet_set(ctx: BuiltinContext, args: list[Any]) -> None:
    """sheet_set(sheet, row, col, value); *col* may be a column name."""
    check_arity("sheet_set", args, 4)

    def change(sheet: Sheet) -> None:
        row = _row_arg(sheet, "sheet_set", args[1])
        sheet.set(row, _col_arg(sheet, "sheet_set", args[2]), args[3])

    await _mutate(ctx, args[0], "sheet_set", change)


@register_builtin("sheet_get_a1", "sheet")
def _sheet_get_a1(ctx: BuiltinContext, args: list[Any]) -> Any:
    check_arity("sheet_get_a1", args, 2)
    sheet = resolve_sheet(ctx, args[0], "sheet_get_a1")
    return from_cell(sheet.get_a1(str_arg("sheet_get_a1", args[1], "address")))


@register_builtin("sheet_set_a1", "sheet")
async def _sheet_set_a1(ctx: BuiltinContext, args: list[Any]) -> None:
    check_arity("sheet_set_a1", args, 3)
    address = str_arg("sheet_set_a1", args[1], "address")
    await _mutate(ctx, args[0], "sheet_set_a1", lambda s: s.set_a1(address, args[2]))

@register_builtin("sheet_get_by_name", "sheet")
def _sheet_get_by_name(ctx: BuiltinContext, args: list[Any]) -> Any:
    """sheet_get_by_name(sheet, row, column_name) on a named-column sheet."""
    check_arity("sheet_get_by_name", args, 3)
    sheet = resolve_sheet(ctx, args[0], "sheet_get_by_name")
    row = _row_arg(sheet, "sheet_get_by_name", args[1])
    column = str_arg("sheet_get_by_name", args[2], "column name")
    return from_cell(sheet.get_by_name(row, column))


@register_builtin("sheet_set_by_name", "sheet")
async def _sheet_set_by_name(ctx: BuiltinContext, args: list[Any]) -> None:
    check_arity("sheet_set_by_name", args, 4)
    column = str_arg("sheet_set_by_name", args[2], "column name")

    def change(sheet: Sheet) -> None:
        sheet.set_by_name(_row_arg(sheet, "sheet_set_by_name", args[1]), column, args[3])

    await _mutate(ctx, args[0], "sheet_set_by_name", change)


@register_builtin("sheet_get_range", "sheet")
def _sheet_get_range(ctx: BuiltinContext, args: list[Any]) -> list[list[Any]]:
    """sheet_get_range(sheet, "A1:B2") as a 2-D array of values."""
    check_arity("sheet_get_range", args, 2)
    sheet = resolve_sheet(ctx, args[0], "sheet_get_range")
    block = sheet.get_range(str_arg("sheet_get_range", args[1], "range"))
    return [_values(row) for row in block]



# ---------------------------------------------------------------------------
# Naming
# ---------------------------------------------------------------------------


@register_builtin("sheet_name_columns_by_row", "sheet")
async def _sheet_name_columns_by_row(ctx: BuiltinContext, args: list[Any]) -> None:
    """Promote a row to column names; the row leaves the data."""
    check_arity("sheet_name_columns_by_row", args, 2)
    row = int_arg("sheet_name_columns_by_row", args[1], "row")
    await _mutate(
        ctx, args[0], "sheet_name_columns_by_row", lambda s: s.name_columns_by_row(row)
    )


@register_builtin("sheet_name_rows_by_column", "sheet")
async def _sheet_name_rows_by_column(ctx: BuiltinContext, args: list[Any]) -> None:
    check_arity("sheet_name_rows_by_column", args, 2)
    col = int_arg("sheet_name_rows_by_column", args[1], "column")
    await _mutate(
        ctx, args[0], "sheet_name_rows_by_column", lambda s: s.name_rows_by_column(col)
    )


@register_builtin("sheet_column_names", "sheet")
def _sheet_column_names(ctx: BuiltinContext, args: list[Any]) -> list[str] | None:
    """Column names, or null when columns are not named."""
    check_arity("sheet_column_names", args, 1)
    return resolve_sheet(ctx, args[0], "sheet_column_names").column_names


# ---------------------------------------------------------------------------
# Rows, columns and whole-sheet views
# ---------------------------------------------------------------------------


@register_builtin("sheet_column", "sheet")
def _sheet_column(ctx: BuiltinContext, args: list[Any]) -> list[Any]:
    check_arity("sheet_column", args, 2)
    sheet = resolve_sheet(ctx, args[0], "sheet_column")
    return _values(sheet.column(_col_arg(sheet, "sheet_column", args[1])))


@register_builtin("sheet_row", "sheet")
def _sheet_row(ctx: BuiltinContext, args: list[Any]) -> list[Any]:
    check_arity("sheet_row", args, 2)
    sheet = resolve_sheet(ctx, args[0], "sheet_row")
    return _values(sheet.row(_row_arg(sheet, "sheet_row", args[1])))


@register_builtin("sheet_to_array", "sheet")
def _sheet_to_array(ctx: BuiltinContext, args: list[Any]) -> list[list[Any]]:
    """sheet_to_array(sheet[, include_header]) as a 2-D array of values."""
    check_arity("sheet_to_array", args, 1, 2)
    sheet = resolve_sheet(ctx, args[0], "sheet_to_array")
    include_header = len(args) == 2 and bool(args[1])
    return sheet.to_values(include_header=include_header)


@register_builtin("sheet_append_row", "sheet")
async def _sheet_append_row(ctx: BuiltinContext, args: list[Any]) -> None:
    check_arity("sheet_append_row", args, 2)
    values = args[1]
    if not isinstance(values, list):
        raise InvalidArgumentsError("sheet_append_row", "an array of values")
    await _mutate(ctx, args[0], "sheet_append_row", lambda s: s.append_row(values))


@register_builtin("sheet_transpose", "sheet")
async def _sheet_transpose(ctx: BuiltinContext, args: list[Any]) -> SheetRef:
    """sheet_transpose(sheet[, new_name]).

    Without *new_name* the sheet is replaced by its transpose; with it the
    transpose is added as a new sheet.
    """
    check_arity("sheet_transpose", args, 1, 2)
    return await _reshape(ctx, args[0], args[1:], "sheet_transpose", lambda s: s.transpose())


@register_builtin("sheet_select_columns", "sheet")
async def _sheet_select_columns(ctx: BuiltinContext, args: list[Any]) -> SheetRef:
    """sheet_select_columns(sheet, names[, new_name]) keeps the named columns in order."""
    check_arity("sheet_select_columns", args, 2, 3)
    names = _names("sheet_select_columns", args[1])
    return await _reshape(
        ctx, args[0], args[2:], "sheet_select_columns", lambda s: s.select_columns(names)
    )


@register_builtin("sheet_remove_columns", "sheet")
async def _sheet_remove_columns(ctx: BuiltinContext, args: list[Any]) -> SheetRef:
    """sheet_remove_columns(sheet, names[, new_name]) drops the named columns."""
    check_arity("sheet_remove_columns", args, 2, 3)
    names = _names("sheet_remove_columns", args[1])
    return await _reshape(
        ctx, args[0], args[2:], "sheet_remove_columns", lambda s: s.remove_columns(names)
    )


@register_builtin("sheet_remove_empty_rows", "sheet")
async def _sheet_remove_empty_rows(ctx: BuiltinContext, args: list[Any]) -> int:
    """Drop rows whose cells are all empty; returns how many went."""
    check_arity("sheet_remove_empty_rows", args, 1)
    return await _mutate(ctx, args[0], "sheet_remove_empty_rows", lambda s: s.remove_empty_rows())


@register_builtin("sheet_eval", "sheet")
def _sheet_eval(ctx: BuiltinContext, args: list[Any]) -> Any:
    """sheet_eval(sheet, formula) evaluates a formula against the sheet."""
    check_arity("sheet_eval", args, 2)
    sheet = resolve_sheet(ctx, args[0], "sheet_eval")
    text = str_arg("sheet_eval", args[1], "formula")
    return evaluate_formula(text, SheetResolver(sheet, ctx.book))
