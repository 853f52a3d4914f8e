"""Tests for the CSV/Parquet codecs and the io built-ins."""

from __future__ import annotations

from pathlib import Path

import polars as pl
import pytest

from sheetscript.errors import SheetOperationError
from sheetscript.interpreter import run_script
from sheetscript.tabular.book import Book
from sheetscript.tabular.errors import SheetAlreadyExistsError, SheetIOError
from sheetscript.tabular.frames import (
    read_csv,
    read_parquet,
    sheet_from_frame,
    sheet_to_frame,
    write_csv,
    write_parquet,
)
from sheetscript.tabular.sheet import Sheet


def _write(path: Path, text: str) -> Path:
    path.write_text(text, encoding="utf-8")
    return path


# ---------------------------------------------------------------------------
# Codecs
# ---------------------------------------------------------------------------


class TestCsv:
    def test_read_with_headers(self, tmp_path) -> None:
        path = _write(tmp_path / "prices.csv", "item,price,taxed\npen,1.5,yes\nink,,no\n")
        sheet = read_csv(path)
        assert sheet.name == "prices"
        assert sheet.column_names == ["item", "price", "taxed"]
        assert sheet.row(0) == ["pen", 1.5, True]
        assert sheet.row(1) == ["ink", None, False]

    def test_read_without_headers(self, tmp_path) -> None:
        path = _write(tmp_path / "raw.csv", "1,2\n3,4\n")
        sheet = read_csv(path, "Raw", has_headers=False)
        assert sheet.column_names is None
        assert sheet.to_values() == [[1, 2], [3, 4]]

    def test_missing_file(self, tmp_path) -> None:
        with pytest.raises(SheetIOError) as exc_info:
            read_csv(tmp_path / "missing.csv")
        assert exc_info.value.__cause__ is not None

    def test_write_named_sheet(self, tmp_path) -> None:
        sheet = Sheet.from_grid([["a", "b"], [1, "x"], [2.5, None]], header=True)
        path = write_csv(sheet, tmp_path / "out.csv")
        lines = path.read_text(encoding="utf-8").splitlines()
        assert lines[0] == "a,b"
        assert lines[1] == "1,x"
        assert lines[2] == "2.5,"

    def test_write_unnamed_sheet_has_no_header(self, tmp_path) -> None:
        path = write_csv(Sheet.from_grid([[1, 2]]), tmp_path / "out.csv")
        assert path.read_text(encoding="utf-8").splitlines() == ["1,2"]

    def test_written_csv_reads_back(self, tmp_path) -> None:
        sheet = Sheet.from_grid([["k", "v"], ["a", 1], ["b", True]], header=True)
        back = read_csv(write_csv(sheet, tmp_path / "kv.csv"))
        assert back.to_grid(include_header=True) == sheet.to_grid(include_header=True)


class TestFrames:
    def test_column_dtypes(self) -> None:
        sheet = Sheet.from_grid(
            [["n", "flag", "mixed"], [1, True, "a"], [None, False, 2]], header=True
        )
        df = sheet_to_frame(sheet)
        assert df.schema["n"] == pl.Float64
        assert df.schema["flag"] == pl.Boolean
        assert df.schema["mixed"] == pl.Utf8
        assert df["mixed"].to_list() == ["a", "2"]

    def test_unnamed_columns_get_placeholders(self) -> None:
        assert sheet_to_frame(Sheet.from_grid([[1, 2]])).columns == ["column_1", "column_2"]

    def test_from_frame(self) -> None:
        df = pl.DataFrame({"x": [1, 2], "y": ["a", None]})
        sheet = sheet_from_frame(df, "F")
        assert sheet.column_names == ["x", "y"]
        assert sheet.to_values() == [[1, "a"], [2, None]]

    def test_parquet_round_trip(self, tmp_path) -> None:
        sheet = Sheet.from_grid([["k", "v"], ["a", 1.5], ["b", None]], header=True)
        back = read_parquet(write_parquet(sheet, tmp_path / "t.parquet"), "T")
        assert back.name == "T"
        assert back.to_values(include_header=True) == [["k", "v"], ["a", 1.5], ["b", None]]

    def test_parquet_missing_file(self, tmp_path) -> None:
        with pytest.raises(SheetIOError):
            read_parquet(tmp_path / "missing.parquet")


# ---------------------------------------------------------------------------
# Built-ins
# ---------------------------------------------------------------------------


class TestIoBuiltins:
    def test_import_csv_adds_sheet(self, tmp_path) -> None:
        path = _write(tmp_path / "sales.csv", "region,total\neast,10\nwest,32\n")
        book = Book()
        source = (
            f's = import_csv("{path.as_posix()}")\n'
            "x = sheet_get(s, 1, \"total\")\n"
            "n = sheet_rows(s)\n"
        )
        env = run_script(source, book=book).raise_for_error().environment
        assert env.get("x") == 32
        assert env.get("n") == 2
        assert book.sheet_names() == ["sales"]

    def test_import_csv_headerless_by_config(self, tmp_path) -> None:
        path = _write(tmp_path / "raw.csv", "1,2\n3,4\n")
        source = f'x = sheet_to_array(import_csv("{path.as_posix()}", "Raw"))'
        env = run_script(source, config={"csv_has_headers": False}).raise_for_error().environment
        assert env.get("x") == [[1, 2], [3, 4]]

    def test_export_then_import(self, tmp_path) -> None:
        out = (tmp_path / "out.csv").as_posix()
        source = (
            's = sheet_new("Out", [["a", "b"], [1, 2]], true)\n'
            f'export_csv(s, "{out}")\n'
            f'back = import_csv("{out}", "Back")\n'
            "x = sheet_column_names(back)\n"
        )
        env = run_script(source).raise_for_error().environment
        assert env.get("x") == ["a", "b"]

    def test_parquet_builtins(self, tmp_path) -> None:
        out = (tmp_path / "t.parquet").as_posix()
        source = (
            's = sheet_new("T", [["k", "v"], ["a", 2]], true)\n'
            f'export_parquet(s, "{out}")\n'
            f'x = sheet_get(import_parquet("{out}", "T2"), 0, "v")\n'
        )
        assert run_script(source).raise_for_error().environment.get("x") == 2

    def test_import_markdown(self, tmp_path) -> None:
        path = _write(tmp_path / "doc.md", "| Name | Qty |\n|---|---|\n| a | 1 |\n| b | 2 |\n")
        book = Book()
        source = f'refs = import_markdown("{path.as_posix()}", "md_")\nx = sheet_cols(refs[0])\n'
        env = run_script(source, book=book).raise_for_error().environment
        assert env.get("x") == 2
        assert book.sheet_names() == ["md_Table1"]
        assert book.get_sheet("md_Table1").column_names == ["Name", "Qty"]

    def test_import_markdown_name_clash_adds_nothing(self, tmp_path) -> None:
        path = _write(tmp_path / "doc.md", "| a |\n|---|\n\n| b |\n|---|\n")
        book = Book()
        book.add_empty_sheet("Table2")
        result = run_script(f'import_markdown("{path.as_posix()}")', book=book)
        assert isinstance(result.error, SheetOperationError)
        assert isinstance(result.error.cause, SheetAlreadyExistsError)
        assert book.sheet_names() == ["Table2"]

    def test_missing_file_is_sheet_io_error(self, tmp_path) -> None:
        missing = (tmp_path / "nope.csv").as_posix()
        result = run_script(f'import_csv("{missing}")')
        assert isinstance(result.error, SheetOperationError)
        assert isinstance(result.error.cause, SheetIOError)

    def test_missing_markdown_file(self, tmp_path) -> None:
        missing = (tmp_path / "nope.md").as_posix()
        result = run_script(f'import_markdown("{missing}")')
        assert isinstance(result.error.cause, SheetIOError)
