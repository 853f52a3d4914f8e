"""A1-style cell address helpers."""

from __future__ import annotations

import re

from sheetscript.tabular.errors import InvalidAddressError

_ADDR_RE = re.compile(r"^\$?([A-Z]{1,3})\$?(\d+)$")


def col_letter_to_index(letters: str) -> int:
    """Convert column letter(s) to 0-based index.  A=0, B=1, ..., Z=25, AA=26."""
    idx = 0
    for ch in letters.upper():
        idx = idx * 26 + (ord(ch) - ord("A") + 1)
    return idx - 1


def index_to_col_letter(idx: int) -> str:
    """Convert 0-based column index to letter(s).  0=A, 25=Z, 26=AA."""
    result = ""
    n = idx + 1
    while n > 0:
        n, rem = divmod(n - 1, 26)
        result = chr(65 + rem) + result
    return result


def parse_addr(addr: str) -> tuple[int, int]:
    """Parse 'A1' -> (row_0based, col_0based).  ``$`` anchors are ignored.

    Raises:
        InvalidAddressError: On a malformed address or row 0.
    """
    m = _ADDR_RE.match(addr.strip().upper())
    if not m or int(m.group(2)) == 0:
        raise InvalidAddressError(addr)
    col = col_letter_to_index(m.group(1))
    row = int(m.group(2)) - 1
    return row, col


def make_addr(row: int, col: int) -> str:
    """Build cell address from 0-based row/col."""
    return f"{index_to_col_letter(col)}{row + 1}"


def parse_range(start: str, end: str) -> tuple[int, int, int, int]:
    """Normalise an ``A1:B2`` range to inclusive 0-based bounds.

    Returns:
        ``(top, left, bottom, right)``.
    """
    r1, c1 = parse_addr(start)
    r2, c2 = parse_addr(end)
    return min(r1, r2), min(c1, c2), max(r1, r2), max(c1, c2)
