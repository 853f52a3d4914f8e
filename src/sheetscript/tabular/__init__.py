"""In-memory tabular model: cells, sheets, books and their codecs.

Public API::

    from sheetscript.tabular import Book, Sheet, read_csv, extract_tables
"""

from sheetscript.tabular.a1 import make_addr, parse_addr
from sheetscript.tabular.book import Book, BookRegistry
from sheetscript.tabular.cells import CellError, CellValue, parse_cell
from sheetscript.tabular.errors import (
    CellIndexOutOfBoundsError,
    ColumnCountMismatchError,
    ColumnIndexOutOfBoundsError,
    ColumnNotFoundError,
    ColumnsNotNamedError,
    DuplicateColumnNameError,
    InvalidAddressError,
    InvalidCellValueError,
    JoinKeyNotFoundError,
    LengthMismatchError,
    RowIndexOutOfBoundsError,
    RowNotFoundError,
    RowsNotNamedError,
    SheetAlreadyExistsError,
    SheetError,
    SheetIOError,
    SheetNotFoundError,
)
from sheetscript.tabular.frames import (
    read_csv,
    read_parquet,
    sheet_from_frame,
    sheet_to_frame,
    write_csv,
    write_parquet,
)
from sheetscript.tabular.markdown import (
    InvalidTableError,
    MarkdownError,
    MarkdownParseError,
    MarkdownSheetError,
    NoTablesFoundError,
    extract_tables,
    read_markdown,
)
from sheetscript.tabular.sheet import Sheet

__all__ = [
    "Book",
    "BookRegistry",
    "CellError",
    "CellIndexOutOfBoundsError",
    "CellValue",
    "ColumnCountMismatchError",
    "ColumnIndexOutOfBoundsError",
    "ColumnNotFoundError",
    "ColumnsNotNamedError",
    "DuplicateColumnNameError",
    "InvalidAddressError",
    "InvalidCellValueError",
    "InvalidTableError",
    "JoinKeyNotFoundError",
    "LengthMismatchError",
    "MarkdownError",
    "MarkdownParseError",
    "MarkdownSheetError",
    "NoTablesFoundError",
    "RowIndexOutOfBoundsError",
    "RowNotFoundError",
    "RowsNotNamedError",
    "Sheet",
    "SheetAlreadyExistsError",
    "SheetError",
    "SheetIOError",
    "SheetNotFoundError",
    "extract_tables",
    "make_addr",
    "parse_addr",
    "parse_cell",
    "read_csv",
    "read_markdown",
    "read_parquet",
    "sheet_from_frame",
    "sheet_to_frame",
    "write_csv",
    "write_parquet",
]
