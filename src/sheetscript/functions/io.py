"""File import/export built-ins.

All of these are coroutines: blocking reads and writes run in a worker
thread via :func:`asyncio.to_thread`, so other scripts keep running.
Imports parse the whole file first and add the result to the Book in one
commit under :meth:`Book.writing` after the last await, so a cancelled
import leaves the Book as it was.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Callable

from sheetscript.functions.registry import BuiltinContext, check_arity, register_builtin, str_arg
from sheetscript.functions.sheet import resolve_sheet
from sheetscript.logging import EventType, emit_info
from sheetscript.tabular.errors import SheetAlreadyExistsError, SheetIOError
from sheetscript.tabular.frames import read_csv, read_parquet, write_csv, write_parquet
from sheetscript.tabular.markdown import read_markdown
from sheetscript.tabular.sheet import Sheet
from sheetscript.values import SheetRef


def _emit(ctx: BuiltinContext, event_type: EventType, verb: str, path: str, sheet: Sheet) -> None:
    preposition = "to" if event_type is EventType.sheet_exported else "from"
    emit_info(
        event_type,
        f"{verb} sheet {sheet.name!r} ({sheet.row_count()} rows) {preposition} {path}",
        {"path": path, "sheet": sheet.name, "rows": sheet.row_count(), "line": ctx.line},
        run_id=ctx.run_id,
    )


async def _add(ctx: BuiltinContext, sheet: Sheet, path: str) -> SheetRef:
    async with ctx.book.writing() as book:
        ref = book.add_sheet(sheet.name, sheet)
    _emit(ctx, EventType.sheet_imported, "Imported", path, sheet)
    return ref


async def _export(
    ctx: BuiltinContext, args: list[Any], name: str, writer: Callable[[Sheet, str], Path]
) -> None:
    check_arity(name, args, 2)
    path = str_arg(name, args[1], "path")
    # Snapshot before the first await so later writes cannot tear the file.
    snapshot = resolve_sheet(ctx, args[0], name).copy()
    await asyncio.to_thread(writer, snapshot, path)
    _emit(ctx, EventType.sheet_exported, "Exported", path, snapshot)


# ---------------------------------------------------------------------------
# CSV
# ---------------------------------------------------------------------------


@register_builtin("import_csv", "io")
async def _import_csv(ctx: BuiltinContext, args: list[Any]) -> SheetRef:
    """import_csv(path[, name[, has_headers]]) loads a CSV file as a new sheet.

    The sheet name defaults to the file stem; *has_headers* defaults to
    the ``csv_has_headers`` setting.
    """
    check_arity("import_csv", args, 1, 3)
    path = str_arg("import_csv", args[0], "path")
    name = str_arg("import_csv", args[1], "name") if len(args) >= 2 and args[1] is not None else None
    has_headers = bool(args[2]) if len(args) == 3 else bool(ctx.config.get("csv_has_headers", True))
    sheet = await asyncio.to_thread(read_csv, path, name, has_headers=has_headers)
    return await _add(ctx, sheet, path)


@register_builtin("export_csv", "io")
async def _export_csv(ctx: BuiltinContext, args: list[Any]) -> None:
    """export_csv(sheet, path); the header line is written for named columns."""
    await _export(ctx, args, "export_csv", write_csv)


# ---------------------------------------------------------------------------
# Parquet
# ---------------------------------------------------------------------------


@register_builtin("import_parquet", "io")
async def _import_parquet(ctx: BuiltinContext, args: list[Any]) -> SheetRef:
    check_arity("import_parquet", args, 1, 2)
    path = str_arg("import_parquet", args[0], "path")
    name = str_arg("import_parquet", args[1], "name") if len(args) == 2 else None
    sheet = await asyncio.to_thread(read_parquet, path, name)
    return await _add(ctx, sheet, path)


@register_builtin("export_parquet", "io")
async def _export_parquet(ctx: BuiltinContext, args: list[Any]) -> None:
    await _export(ctx, args, "export_parquet", write_parquet)


# ---------------------------------------------------------------------------
# Markdown
# ---------------------------------------------------------------------------


def _read_markdown(path: str) -> list[Sheet]:
    try:
        return read_markdown(path)
    except OSError as exc:
        raise SheetIOError(path, str(exc)) from exc


@register_builtin("import_markdown", "io")
async def _import_markdown(ctx: BuiltinContext, args: list[Any]) -> list[SheetRef]:
    """import_markdown(path[, prefix]) adds every pipe table in the file.

    Tables become sheets named ``<prefix>Table1``, ``<prefix>Table2``, ...
    in document order.  Either all of them are added or, when a name is
    already taken, none.

    Returns:
        Refs to the new sheets.
    """
    check_arity("import_markdown", args, 1, 2)
    path = str_arg("import_markdown", args[0], "path")
    prefix = str_arg("import_markdown", args[1], "prefix") if len(args) == 2 else ""
    sheets = await asyncio.to_thread(_read_markdown, path)
    for sheet in sheets:
        sheet.name = prefix + sheet.name
    async with ctx.book.writing() as book:
        for sheet in sheets:
            if book.has_sheet(sheet.name):
                raise SheetAlreadyExistsError(sheet.name)
        refs = [book.add_sheet(sheet.name, sheet) for sheet in sheets]
    for sheet in sheets:
        _emit(ctx, EventType.sheet_imported, "Imported", path, sheet)
    return refs
