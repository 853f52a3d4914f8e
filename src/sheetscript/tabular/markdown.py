"""Extract GitHub-flavoured markdown pipe tables into Sheets.

Each table's header row becomes the sheet's column names verbatim
(order and case preserved); body cells are typed with
:func:`~sheetscript.tabular.cells.parse_cell`.  Tables inside fenced code
blocks are ignored.
"""

from __future__ import annotations

import re
from pathlib import Path

from sheetscript.tabular.cells import parse_cell
from sheetscript.tabular.errors import SheetError
from sheetscript.tabular.sheet import Sheet


class MarkdownError(Exception):
    """Base class for markdown table extraction errors."""


class MarkdownParseError(MarkdownError):
    """The input could not be read as markdown text."""


class NoTablesFoundError(MarkdownError):
    def __init__(self) -> None:
        super().__init__("No tables found in markdown input")


class InvalidTableError(MarkdownError):
    """A table's rows do not line up with its header.

    Attributes:
        line: 1-based line of the offending row.
    """

    def __init__(self, message: str, line: int) -> None:
        self.line = line
        super().__init__(f"line {line}: {message}")


class MarkdownSheetError(MarkdownError):
    """A Sheet error raised while building a table; the original is kept on :attr:`cause`."""

    def __init__(self, cause: SheetError, table_index: int) -> None:
        self.cause = cause
        self.kind = type(cause).__name__
        self.table_index = table_index
        super().__init__(f"Table {table_index + 1}: {self.kind}: {cause}")


_DELIMITER_CELL_RE = re.compile(r"^:?-+:?$")
_FENCE_RE = re.compile(r"^\s{0,3}(`{3,}|~{3,})")


def _split_row(line: str) -> list[str]:
    """Split a pipe-table row into trimmed cells, honouring ``\\|`` escapes."""
    body = line.strip()
    if body.startswith("|"):
        body = body[1:]
    if body.endswith("|") and not body.endswith("\\|"):
        body = body[:-1]
    cells: list[str] = []
    current: list[str] = []
    i = 0
    while i < len(body):
        ch = body[i]
        if ch == "\\" and i + 1 < len(body) and body[i + 1] == "|":
            current.append("|")
            i += 2
            continue
        if ch == "|":
            cells.append("".join(current).strip())
            current = []
        else:
            current.append(ch)
        i += 1
    cells.append("".join(current).strip())
    return cells


def _is_delimiter(line: str) -> bool:
    if "-" not in line:
        return False
    cells = _split_row(line)
    return bool(cells) and all(_DELIMITER_CELL_RE.match(c) for c in cells)


def _is_table_line(line: str) -> bool:
    return bool(line.strip()) and "|" in line


def extract_tables(text: str | bytes) -> list[Sheet]:
    """Return every pipe table in *text* as a named-column Sheet.

    Sheets are named ``Table1``, ``Table2``, ... in document order.

    Raises:
        MarkdownParseError: If *text* is bytes that are not UTF-8.
        NoTablesFoundError: If the document holds no table.
        InvalidTableError: If a row's cell count differs from the header's.
        MarkdownSheetError: If the header has duplicate column names.
    """
    if isinstance(text, bytes):
        try:
            text = text.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise MarkdownParseError(f"Input is not valid UTF-8: {exc}") from exc

    lines = text.splitlines()
    sheets: list[Sheet] = []
    fence: str | None = None
    i = 0
    while i < len(lines):
        line = lines[i]
        fence_match = _FENCE_RE.match(line)
        if fence_match:
            marker = fence_match.group(1)
            if fence is None:
                fence = marker[0]
            elif marker[0] == fence:
                fence = None
            i += 1
            continue
        if fence is not None:
            i += 1
            continue
        if _is_table_line(line) and i + 1 < len(lines) and _is_delimiter(lines[i + 1]):
            header = _split_row(line)
            delimiter = _split_row(lines[i + 1])
            if len(delimiter) != len(header):
                raise InvalidTableError(
                    f"delimiter row has {len(delimiter)} cells, header has {len(header)}",
                    i + 2,
                )
            grid: list[list[object]] = [list(header)]
            j = i + 2
            while j < len(lines) and _is_table_line(lines[j]):
                cells = _split_row(lines[j])
                if len(cells) != len(header):
                    raise InvalidTableError(
                        f"row has {len(cells)} cells, header has {len(header)}", j + 1
                    )
                grid.append([parse_cell(c) for c in cells])
                j += 1
            table_index = len(sheets)
            try:
                sheet = Sheet.from_grid(grid, f"Table{table_index + 1}")
                sheet.name_columns_by_row(0)
            except SheetError as exc:
                raise MarkdownSheetError(exc, table_index) from exc
            sheets.append(sheet)
            i = j
            continue
        i += 1

    if not sheets:
        raise NoTablesFoundError()
    return sheets


def read_markdown(path: str | Path) -> list[Sheet]:
    """Read a markdown file and extract its tables."""
    return extract_tables(Path(path).read_bytes())
