"""Error types for the Sheet/Book data model."""

from __future__ import annotations


class SheetError(Exception):
    """Base class for all Sheet and Book errors."""


class CellIndexOutOfBoundsError(SheetError):
    """A (row, col) pair falls outside the grid.

    Attributes:
        row: Requested 0-based row.
        col: Requested 0-based column.
        rows: Current row count.
        cols: Current column count.
    """

    def __init__(self, row: int, col: int, rows: int, cols: int) -> None:
        self.row = row
        self.col = col
        self.rows = rows
        self.cols = cols
        super().__init__(
            f"Cell ({row}, {col}) is out of bounds for a {rows}x{cols} sheet"
        )


class RowIndexOutOfBoundsError(SheetError):
    def __init__(self, row: int, rows: int) -> None:
        self.row = row
        self.rows = rows
        super().__init__(f"Row index {row} is out of bounds (row count {rows})")


class ColumnIndexOutOfBoundsError(SheetError):
    def __init__(self, col: int, cols: int) -> None:
        self.col = col
        self.cols = cols
        super().__init__(f"Column index {col} is out of bounds (column count {cols})")


class ColumnNotFoundError(SheetError):
    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Column not found: {name!r}")


class RowNotFoundError(SheetError):
    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Row not found: {name!r}")


class SheetNotFoundError(SheetError):
    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Sheet not found: {name!r}")


class SheetAlreadyExistsError(SheetError):
    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Sheet already exists: {name!r}")


class ColumnsNotNamedError(SheetError):
    def __init__(self) -> None:
        super().__init__("Columns are not named; call name_columns_by_row first")


class RowsNotNamedError(SheetError):
    def __init__(self) -> None:
        super().__init__("Rows are not named; call name_rows_by_column first")


class DuplicateColumnNameError(SheetError):
    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Duplicate column name: {name!r}")


class LengthMismatchError(SheetError):
    """A row or column does not have the expected number of cells."""

    def __init__(self, expected: int, actual: int, what: str = "row") -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(f"{what.capitalize()} length mismatch: expected {expected}, got {actual}")


class ColumnCountMismatchError(SheetError):
    def __init__(self, expected: int, actual: int) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(f"Column count mismatch: expected {expected}, got {actual}")


class JoinKeyNotFoundError(SheetError):
    def __init__(self, key: str, side: str) -> None:
        self.key = key
        self.side = side
        super().__init__(f"Join key {key!r} not found in {side} sheet")


class InvalidAddressError(SheetError):
    def __init__(self, address: str) -> None:
        self.address = address
        super().__init__(f"Invalid cell address: {address!r}")


class InvalidCellValueError(SheetError):
    def __init__(self, type_name: str) -> None:
        self.type_name = type_name
        super().__init__(f"A {type_name} value cannot be stored in a cell")


class SheetIOError(SheetError):
    """An import/export codec failed.  The codec's exception is the cause."""

    def __init__(self, path: str, message: str) -> None:
        self.path = path
        super().__init__(f"{path}: {message}")
