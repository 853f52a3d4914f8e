"""Tests for markdown pipe-table extraction."""

from __future__ import annotations

import pytest

from sheetscript.tabular.markdown import (
    InvalidTableError,
    MarkdownParseError,
    MarkdownSheetError,
    NoTablesFoundError,
    extract_tables,
    read_markdown,
)
from sheetscript.tabular.errors import DuplicateColumnNameError

INVENTORY = """\
# Inventory

| Name | Qty |
|------|----:|
| Apples | 3 |
| Pears | 0.5 |

Some prose in between.

| Done | Note |
| :--- | :---: |
| yes | a \\| b |
"""


class TestExtractTables:
    def test_header_becomes_column_names(self) -> None:
        sheet = extract_tables(INVENTORY)[0]
        assert sheet.name == "Table1"
        assert sheet.column_names == ["Name", "Qty"]
        assert (sheet.row_count(), sheet.col_count()) == (2, 2)

    def test_cells_are_typed(self) -> None:
        sheet = extract_tables(INVENTORY)[0]
        assert sheet.to_values() == [["Apples", 3], ["Pears", 0.5]]

    def test_multiple_tables_in_order(self) -> None:
        sheets = extract_tables(INVENTORY)
        assert [s.name for s in sheets] == ["Table1", "Table2"]
        assert sheets[1].row(0) == [True, "a | b"]

    def test_headers_kept_verbatim(self) -> None:
        text = "| First Name | e-mail |\n|---|---|\n| a | b |\n"
        assert extract_tables(text)[0].column_names == ["First Name", "e-mail"]

    def test_header_only_table(self) -> None:
        sheet = extract_tables("| a | b |\n|---|---|\n")[0]
        assert sheet.row_count() == 0
        assert sheet.col_count() == 2

    def test_fenced_tables_ignored(self) -> None:
        text = "```\n| a | b |\n|---|---|\n| 1 | 2 |\n```\n"
        with pytest.raises(NoTablesFoundError):
            extract_tables(text)

    def test_no_tables(self) -> None:
        with pytest.raises(NoTablesFoundError):
            extract_tables("just | some text\n")

    def test_bytes_input(self) -> None:
        assert extract_tables("| a |\n|---|\n| 1 |\n".encode())[0].get(0, 0) == 1.0

    def test_invalid_utf8(self) -> None:
        with pytest.raises(MarkdownParseError):
            extract_tables(b"| a |\n|---|\n| \xff |\n")

    def test_ragged_row_reports_line(self) -> None:
        text = "intro\n| a | b |\n|---|---|\n| 1 |\n"
        with pytest.raises(InvalidTableError) as exc_info:
            extract_tables(text)
        assert exc_info.value.line == 4

    def test_duplicate_header_wraps_sheet_error(self) -> None:
        with pytest.raises(MarkdownSheetError) as exc_info:
            extract_tables("| a | a |\n|---|---|\n")
        assert isinstance(exc_info.value.cause, DuplicateColumnNameError)
        assert exc_info.value.table_index == 0

    def test_read_markdown_file(self, tmp_path) -> None:
        path = tmp_path / "doc.md"
        path.write_text(INVENTORY, encoding="utf-8")
        assert len(read_markdown(path)) == 2
