"""Resolve formula references against Sheets."""

from __future__ import annotations

from typing import Any

from sheetscript.formulas.errors import FormulaEvalError, FormulaRefError
from sheetscript.tabular.a1 import parse_addr, parse_range
from sheetscript.tabular.book import Book
from sheetscript.tabular.cells import CellError, CellValue, from_cell
from sheetscript.tabular.sheet import Sheet


class SheetResolver:
    """CellResolver over a current Sheet and, optionally, its Book.

    Bare references (``B2``) read the current sheet; qualified references
    (``Data!B2``) need a Book.  Numbers come back as script values
    (integral numbers as ``int``).  A cell holding an error value raises
    :class:`FormulaEvalError` carrying that tag, so ``IFERROR`` can catch
    it.

    Args:
        sheet: Sheet that bare references read.
        book: Book for sheet-qualified references.
    """

    def __init__(self, sheet: Sheet, book: Book | None = None) -> None:
        self.sheet = sheet
        self.book = book

    def _target(self, name: str | None) -> Sheet:
        if name is None or name == self.sheet.name:
            return self.sheet
        if self.book is None:
            raise FormulaRefError(name, available=[self.sheet.name])
        if not self.book.has_sheet(name):
            raise FormulaRefError(name, available=self.book.sheet_names())
        return self.book.get_sheet(name)

    @staticmethod
    def _value(cell: CellValue, where: str) -> Any:
        if isinstance(cell, CellError):
            raise FormulaEvalError(f"{where} holds {cell.tag}", tag=cell.tag)
        return from_cell(cell)

    def resolve_cell(self, sheet: str | None, addr: str) -> Any:
        row, col = parse_addr(addr)
        return self._value(self._target(sheet).get(row, col), addr)

    def resolve_range(self, sheet: str | None, start: str, end: str) -> list[list[Any]]:
        target = self._target(sheet)
        top, left, bottom, right = parse_range(start, end)
        # Validate both corners so out-of-sheet ranges fail like single cells.
        target.get(top, left)
        target.get(bottom, right)
        return [
            [self._value(target.get(r, c), f"{start}:{end}") for c in range(left, right + 1)]
            for r in range(top, bottom + 1)
        ]
