"""Bridge between Sheets and polars DataFrames, plus CSV/Parquet codecs.

Codecs only produce or consume the Sheet grid; any polars or filesystem
failure is re-raised as :class:`SheetIOError` with the original cause.
"""

from __future__ import annotations

from datetime import date, datetime, time
from pathlib import Path
from typing import Any

import polars as pl

from sheetscript.tabular.cells import cell_display, parse_cell
from sheetscript.tabular.errors import SheetIOError
from sheetscript.tabular.sheet import Sheet


def _frame_names(sheet: Sheet) -> list[str]:
    names = sheet.column_names
    if names is not None:
        return names
    return [f"column_{i + 1}" for i in range(sheet.col_count())]


def _column_series(name: str, cells: list[Any]) -> pl.Series:
    present = [c for c in cells if c is not None]
    if present and all(isinstance(c, bool) for c in present):
        return pl.Series(name, cells, dtype=pl.Boolean)
    if present and all(isinstance(c, float) and not isinstance(c, bool) for c in present):
        return pl.Series(name, cells, dtype=pl.Float64)
    return pl.Series(
        name,
        [None if c is None else cell_display(c) for c in cells],
        dtype=pl.Utf8,
    )


def sheet_to_frame(sheet: Sheet) -> pl.DataFrame:
    """Convert *sheet* to a DataFrame, one typed column per sheet column.

    Columns holding only numbers become ``Float64``, only booleans become
    ``Boolean``; anything mixed becomes ``Utf8`` display text.  Unnamed
    sheets get ``column_1``, ``column_2``, ... headers.
    """
    names = _frame_names(sheet)
    return pl.DataFrame(
        [_column_series(name, sheet.column(j)) for j, name in enumerate(names)]
    )


def _from_frame_value(value: Any) -> Any:
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, (date, datetime, time)):
        return value.isoformat()
    return str(value)


def sheet_from_frame(df: pl.DataFrame, name: str = "Sheet1") -> Sheet:
    """Build a named-column Sheet from a DataFrame."""
    grid: list[list[Any]] = [list(df.columns)]
    grid.extend([_from_frame_value(v) for v in row] for row in df.rows())
    sheet = Sheet.from_grid(grid, name)
    sheet.name_columns_by_row(0)
    return sheet


def read_csv(path: str | Path, name: str | None = None, *, has_headers: bool = True) -> Sheet:
    """Load a CSV file into a Sheet, inferring each cell's kind from its text.

    Args:
        path: CSV file.
        name: Sheet name; defaults to the file stem.
        has_headers: Treat the first line as column names.

    Raises:
        SheetIOError: If the file cannot be read or parsed.
    """
    path = Path(path)
    try:
        df = pl.read_csv(path, has_header=has_headers, infer_schema_length=0)
    except (OSError, pl.exceptions.PolarsError) as exc:
        raise SheetIOError(str(path), str(exc)) from exc
    rows = [[parse_cell(v) for v in row] for row in df.rows()]
    sheet = Sheet.from_grid(rows, name or path.stem, columns=df.width)
    if has_headers:
        sheet.set_column_names(df.columns)
    return sheet


def write_csv(sheet: Sheet, path: str | Path) -> Path:
    """Write *sheet* to CSV; the header line is written only for named sheets."""
    path = Path(path)
    names = _frame_names(sheet)
    df = pl.DataFrame(
        [
            pl.Series(
                col_name,
                [None if c is None else cell_display(c) for c in sheet.column(j)],
                dtype=pl.Utf8,
            )
            for j, col_name in enumerate(names)
        ]
    )
    try:
        df.write_csv(path, include_header=sheet.column_names is not None)
    except (OSError, pl.exceptions.PolarsError) as exc:
        raise SheetIOError(str(path), str(exc)) from exc
    return path


def read_parquet(path: str | Path, name: str | None = None) -> Sheet:
    path = Path(path)
    try:
        df = pl.read_parquet(path)
    except (OSError, pl.exceptions.PolarsError) as exc:
        raise SheetIOError(str(path), str(exc)) from exc
    return sheet_from_frame(df, name or path.stem)


def write_parquet(sheet: Sheet, path: str | Path) -> Path:
    path = Path(path)
    try:
        sheet_to_frame(sheet).write_parquet(path)
    except (OSError, pl.exceptions.PolarsError) as exc:
        raise SheetIOError(str(path), str(exc)) from exc
    return path
