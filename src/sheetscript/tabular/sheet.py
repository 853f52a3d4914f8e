"""Rectangular sheet of cells with optional named columns and rows."""

from __future__ import annotations

import copy
from typing import Any, Iterable, Iterator, Sequence

from sheetscript.tabular.a1 import parse_addr, parse_range
from sheetscript.tabular.cells import CellValue, cell_display, from_cell, is_empty, to_cell
from sheetscript.tabular.errors import (
    CellIndexOutOfBoundsError,
    ColumnCountMismatchError,
    ColumnIndexOutOfBoundsError,
    ColumnNotFoundError,
    ColumnsNotNamedError,
    DuplicateColumnNameError,
    JoinKeyNotFoundError,
    LengthMismatchError,
    RowIndexOutOfBoundsError,
    RowNotFoundError,
    RowsNotNamedError,
)


def _join_key(cell: CellValue) -> tuple[str, Any]:
    # bool and float hash alike (True == 1.0), so keys carry their kind.
    return (type(cell).__name__, cell)


class Sheet:
    """A rectangular grid of cell values.

    Row and column counts are read from storage on every call.  The column
    count is stored separately from the rows so a sheet with zero rows can
    still report its width.

    Column names are populated by promoting a data row to the header with
    :meth:`name_columns_by_row`; the promoted row leaves the data.  Row
    names map the display text of one column to row positions.
    """

    def __init__(self, name: str = "Sheet1") -> None:
        self.name = name
        self._rows: list[list[CellValue]] = []
        self._width = 0
        self._column_names: list[str] | None = None
        self._column_index: dict[str, int] | None = None
        self._row_index: dict[str, int] | None = None

    @classmethod
    def from_grid(
        cls,
        grid: Sequence[Sequence[Any]],
        name: str = "Sheet1",
        *,
        header: bool = False,
        columns: int | None = None,
    ) -> Sheet:
        """Build a sheet from a rectangular 2-D sequence.

        Args:
            grid: Rows of scalar values; all rows must have equal length.
            name: Sheet name.
            header: Promote the first row to column names.
            columns: Column count to keep when *grid* has no rows.

        Returns:
            A new Sheet whose dimensions are those of *grid*.

        Raises:
            LengthMismatchError: If the rows are not all the same length.
            InvalidCellValueError: If a value cannot be stored in a cell.
        """
        sheet = cls(name)
        rows = [[to_cell(v) for v in row] for row in grid]
        width = len(rows[0]) if rows else (columns or 0)
        for row in rows:
            if len(row) != width:
                raise LengthMismatchError(width, len(row))
        sheet._rows = rows
        sheet._width = width
        if header and rows:
            sheet.name_columns_by_row(0)
        return sheet

    @classmethod
    def from_records(cls, records: Sequence[dict[str, Any]], name: str = "Sheet1") -> Sheet:
        """Build a named-column sheet from dicts; keys of the first record set the order."""
        names: list[str] = []
        for record in records:
            for key in record:
                if key not in names:
                    names.append(key)
        sheet = cls.from_grid([names] + [[r.get(n) for n in names] for r in records], name)
        sheet.name_columns_by_row(0)
        return sheet

    # ------------------------------------------------------------------
    # Dimensions and raw access
    # ------------------------------------------------------------------

    def row_count(self) -> int:
        return len(self._rows)

    def col_count(self) -> int:
        return self._width

    def is_empty(self) -> bool:
        return not self._rows

    def _check_cell(self, row: int, col: int) -> None:
        if not (0 <= row < len(self._rows) and 0 <= col < self._width):
            raise CellIndexOutOfBoundsError(row, col, len(self._rows), self._width)

    def _check_row(self, row: int) -> None:
        if not 0 <= row < len(self._rows):
            raise RowIndexOutOfBoundsError(row, len(self._rows))

    def _check_col(self, col: int) -> None:
        if not 0 <= col < self._width:
            raise ColumnIndexOutOfBoundsError(col, self._width)

    def get(self, row: int, col: int) -> CellValue:
        """Return the cell at 0-based (*row*, *col*)."""
        self._check_cell(row, col)
        return self._rows[row][col]

    def set(self, row: int, col: int, value: Any) -> None:
        self._check_cell(row, col)
        self._rows[row][col] = to_cell(value)

    def get_a1(self, address: str) -> CellValue:
        """Return the cell at an A1 address such as ``"B2"``."""
        return self.get(*parse_addr(address))

    def set_a1(self, address: str, value: Any) -> None:
        self.set(*parse_addr(address), value)

    def get_range(self, address: str) -> list[list[CellValue]]:
        """Return the cells of an A1 range such as ``"A1:B2"`` as rows.

        A single address yields a 1x1 block.  Both corners must lie inside
        the grid.
        """
        start, _, end = address.partition(":")
        top, left, bottom, right = parse_range(start, end or start)
        self._check_cell(top, left)
        self._check_cell(bottom, right)
        return [row[left : right + 1] for row in self._rows[top : bottom + 1]]

    def row(self, index: int) -> list[CellValue]:
        self._check_row(index)
        return list(self._rows[index])

    def column(self, index: int) -> list[CellValue]:
        self._check_col(index)
        return [row[index] for row in self._rows]

    def iter_rows(self) -> Iterator[list[CellValue]]:
        for row in self._rows:
            yield list(row)

    # ------------------------------------------------------------------
    # Named access
    # ------------------------------------------------------------------

    @property
    def column_names(self) -> list[str] | None:
        return list(self._column_names) if self._column_names is not None else None

    @property
    def row_names(self) -> list[str] | None:
        if self._row_index is None:
            return None
        return sorted(self._row_index, key=self._row_index.__getitem__)

    def name_columns_by_row(self, index: int) -> None:
        """Promote row *index* to the column header and remove it from the data.

        Raises:
            RowIndexOutOfBoundsError: If *index* is not a data row.
            DuplicateColumnNameError: If two header cells have the same text.
        """
        header = self.row(index)
        names = [cell_display(c) for c in header]
        positions: dict[str, int] = {}
        for i, col_name in enumerate(names):
            if col_name in positions:
                raise DuplicateColumnNameError(col_name)
            positions[col_name] = i
        del self._rows[index]
        self._column_names = names
        self._column_index = positions
        # Row positions shifted.
        self._row_index = None

    def set_column_names(self, names: Sequence[str]) -> None:
        """Name the columns directly, without consuming a data row."""
        names = [str(n) for n in names]
        if len(names) != self._width:
            raise LengthMismatchError(self._width, len(names), "header")
        positions: dict[str, int] = {}
        for i, col_name in enumerate(names):
            if col_name in positions:
                raise DuplicateColumnNameError(col_name)
            positions[col_name] = i
        self._column_names = names
        self._column_index = positions

    def name_rows_by_column(self, index: int) -> None:
        """Name rows by the display text of column *index*.

        When several rows share a name the first one wins.
        """
        positions: dict[str, int] = {}
        for i, cell in enumerate(self.column(index)):
            positions.setdefault(cell_display(cell), i)
        self._row_index = positions

    def column_position(self, name: str) -> int:
        if self._column_index is None:
            raise ColumnsNotNamedError()
        if name not in self._column_index:
            raise ColumnNotFoundError(name)
        return self._column_index[name]

    def row_position(self, name: str) -> int:
        if self._row_index is None:
            raise RowsNotNamedError()
        if name not in self._row_index:
            raise RowNotFoundError(name)
        return self._row_index[name]

    def column_by_name(self, name: str) -> list[CellValue]:
        return self.column(self.column_position(name))

    def row_by_name(self, name: str) -> list[CellValue]:
        return self.row(self.row_position(name))

    def get_by_name(self, row: int, column: str) -> CellValue:
        return self.get(row, self.column_position(column))

    def set_by_name(self, row: int, column: str, value: Any) -> None:
        self.set(row, self.column_position(column), value)

    # ------------------------------------------------------------------
    # Row / column edits (in place)
    # ------------------------------------------------------------------

    def _coerce_row(self, values: Iterable[Any]) -> list[CellValue]:
        cells = [to_cell(v) for v in values]
        if not self._rows and self._width == 0 and self._column_names is None:
            self._width = len(cells)
        elif len(cells) != self._width:
            raise LengthMismatchError(self._width, len(cells))
        return cells

    def append_row(self, values: Iterable[Any]) -> None:
        self._rows.append(self._coerce_row(values))

    def insert_row(self, index: int, values: Iterable[Any]) -> None:
        if not 0 <= index <= len(self._rows):
            raise RowIndexOutOfBoundsError(index, len(self._rows))
        self._rows.insert(index, self._coerce_row(values))
        self._row_index = None

    def delete_row(self, index: int) -> list[CellValue]:
        self._check_row(index)
        self._row_index = None
        return self._rows.pop(index)

    def append_column(self, values: Iterable[Any], name: str | None = None) -> None:
        cells = [to_cell(v) for v in values]
        if len(cells) != len(self._rows):
            raise LengthMismatchError(len(self._rows), len(cells), "column")
        if self._column_names is not None:
            col_name = name if name is not None else f"column_{self._width + 1}"
            if col_name in self._column_index:
                raise DuplicateColumnNameError(col_name)
            self._column_names.append(col_name)
            self._column_index[col_name] = self._width
        for row, cell in zip(self._rows, cells):
            row.append(cell)
        self._width += 1

    def delete_column(self, index: int) -> list[CellValue]:
        self._check_col(index)
        removed = [row.pop(index) for row in self._rows]
        self._width -= 1
        if self._column_names is not None:
            del self._column_names[index]
            self._column_index = {n: i for i, n in enumerate(self._column_names)}
        return removed

    def remove_empty_rows(self) -> int:
        """Drop rows whose every cell is empty.  Returns the number removed."""
        kept = [row for row in self._rows if not all(is_empty(c) for c in row)]
        removed = len(self._rows) - len(kept)
        if removed:
            self._rows = kept
            self._row_index = None
        return removed

    def append(self, other: Sheet) -> None:
        """Stack the rows of *other* below this sheet.

        When both sheets have named columns the rows are aligned by name;
        otherwise the column counts must match.

        Raises:
            ColumnCountMismatchError: If unnamed sheets differ in width.
            ColumnNotFoundError: If *other* has a column this sheet lacks.
        """
        if self._column_names is not None and other._column_names is not None:
            for col_name in other._column_names:
                self.column_position(col_name)
            for row in other._rows:
                by_name = dict(zip(other._column_names, row))
                self._rows.append([by_name.get(n) for n in self._column_names])
        else:
            sized = bool(self._rows) or self._column_names is not None
            if other._width != self._width and sized:
                raise ColumnCountMismatchError(self._width, other._width)
            if not sized:
                self._width = other._width
            self._rows.extend(list(row) for row in other._rows)
        self._row_index = None

    # ------------------------------------------------------------------
    # Derived sheets
    # ------------------------------------------------------------------

    def copy(self, name: str | None = None) -> Sheet:
        clone = copy.deepcopy(self)
        if name is not None:
            clone.name = name
        return clone

    def transpose(self) -> Sheet:
        """Return a new sheet with rows and columns swapped; names are dropped."""
        grid: list[list[CellValue]] = []
        if self._column_names is not None:
            grid = [[n] + [row[j] for row in self._rows] for j, n in enumerate(self._column_names)]
        else:
            grid = [[row[j] for row in self._rows] for j in range(self._width)]
        # A named sheet gains a leading column holding the old column names.
        width = len(self._rows) + (1 if self._column_names is not None else 0)
        return Sheet.from_grid(grid, self.name, columns=width)

    def select_columns(self, names: Sequence[str]) -> Sheet:
        """Return a new sheet holding only the named columns, in the given order."""
        positions = [self.column_position(n) for n in names]
        result = Sheet.from_grid(
            [[row[p] for p in positions] for row in self._rows], self.name, columns=len(positions)
        )
        result.set_column_names(list(names))
        return result

    def remove_columns(self, names: Sequence[str]) -> Sheet:
        drop = {self.column_position(n) for n in names}
        keep = [n for i, n in enumerate(self._column_names or []) if i not in drop]
        return self.select_columns(keep)

    def join(
        self,
        other: Sheet,
        on: str,
        *,
        right_on: str | None = None,
        how: str = "inner",
    ) -> Sheet:
        """Join two named-column sheets on a key column.

        Args:
            other: Right-hand sheet.
            on: Key column of this sheet.
            right_on: Key column of *other*; defaults to *on*.
            how: ``"inner"`` or ``"left"``.

        Returns:
            A new sheet with this sheet's columns followed by the right
            sheet's non-key columns (suffixed ``_right`` on a clash).

        Raises:
            ColumnsNotNamedError: If either sheet has no column names.
            JoinKeyNotFoundError: If a key column is missing.
        """
        if how not in ("inner", "left"):
            raise ValueError(f"Unsupported join type: {how!r}")
        right_on = right_on or on
        if self._column_names is None or other._column_names is None:
            raise ColumnsNotNamedError()
        if on not in self._column_index:
            raise JoinKeyNotFoundError(on, "left")
        if right_on not in other._column_index:
            raise JoinKeyNotFoundError(right_on, "right")
        left_key = self._column_index[on]
        right_key = other._column_index[right_on]

        right_cols = [i for i in range(other._width) if i != right_key]
        names = list(self._column_names)
        for i in right_cols:
            col_name = other._column_names[i]
            while col_name in names:
                col_name = f"{col_name}_right"
            names.append(col_name)

        index: dict[tuple[str, Any], list[list[CellValue]]] = {}
        for row in other._rows:
            index.setdefault(_join_key(row[right_key]), []).append(row)

        grid: list[list[CellValue]] = []
        for row in self._rows:
            matches = index.get(_join_key(row[left_key]), [])
            if not matches and how == "left":
                grid.append(list(row) + [None] * len(right_cols))
            for match in matches:
                grid.append(list(row) + [match[i] for i in right_cols])
        result = Sheet.from_grid(grid, self.name, columns=len(names))
        result.set_column_names(names)
        return result

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------

    def to_grid(self, *, include_header: bool = False) -> list[list[CellValue]]:
        grid = [list(row) for row in self._rows]
        if include_header and self._column_names is not None:
            grid.insert(0, list(self._column_names))
        return grid

    def to_values(self, *, include_header: bool = False) -> list[list[Any]]:
        """The grid as script values (integral numbers become ints)."""
        return [[from_cell(c) for c in row] for row in self.to_grid(include_header=include_header)]

    def to_records(self) -> list[dict[str, CellValue]]:
        if self._column_names is None:
            raise ColumnsNotNamedError()
        return [dict(zip(self._column_names, row)) for row in self._rows]

    def __repr__(self) -> str:
        return f"Sheet(name={self.name!r}, rows={self.row_count()}, cols={self.col_count()})"
