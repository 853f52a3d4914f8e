"""Books: named, insertion-ordered collections of Sheets."""

from __future__ import annotations

import asyncio
import uuid
from contextlib import asynccontextmanager
from typing import AsyncIterator, Iterator

from sheetscript.tabular.errors import (
    ColumnCountMismatchError,
    SheetAlreadyExistsError,
    SheetNotFoundError,
)
from sheetscript.tabular.sheet import Sheet
from sheetscript.values import SheetRef


class Book:
    """A name -> Sheet mapping that exclusively owns its sheets.

    Each book has a random :attr:`id`; :class:`~sheetscript.values.SheetRef`
    values carry that id plus a sheet name and are resolved through
    :meth:`resolve` on every use.

    Mutations from async code go through :meth:`writing`, which serializes
    writers.  A single validated Sheet call may be applied in place under
    the lock as long as nothing is awaited before it.  Anything longer is
    staged on a copy and committed with one :meth:`replace_sheet` /
    :meth:`add_sheet` call after the last await, so a task cancelled
    before the commit leaves the book untouched.
    """

    def __init__(self, name: str = "Book1") -> None:
        self.name = name
        self.id = uuid.uuid4().hex
        self._sheets: dict[str, Sheet] = {}
        self._active: str | None = None
        self._write_lock: asyncio.Lock | None = None

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def sheet_count(self) -> int:
        return len(self._sheets)

    def sheet_names(self) -> list[str]:
        return list(self._sheets)

    def has_sheet(self, name: str) -> bool:
        return name in self._sheets

    def get_sheet(self, name: str) -> Sheet:
        if name not in self._sheets:
            raise SheetNotFoundError(name)
        return self._sheets[name]

    def get_sheet_by_index(self, index: int) -> Sheet:
        """Sheet at *index* in insertion order; negative indexes count from the end."""
        names = list(self._sheets)
        if not -len(names) <= index < len(names):
            raise SheetNotFoundError(f"#{index}")
        return self._sheets[names[index]]

    def __iter__(self) -> Iterator[Sheet]:
        return iter(list(self._sheets.values()))

    def __len__(self) -> int:
        return len(self._sheets)

    @property
    def active_sheet(self) -> Sheet | None:
        if self._active is None:
            return None
        return self._sheets[self._active]

    def set_active_sheet(self, name: str) -> None:
        self.get_sheet(name)
        self._active = name

    # ------------------------------------------------------------------
    # References
    # ------------------------------------------------------------------

    def ref(self, name: str) -> SheetRef:
        """Return a weak reference to sheet *name*."""
        self.get_sheet(name)
        return SheetRef(self.id, name)

    def resolve(self, ref: SheetRef) -> Sheet:
        """Resolve *ref* against the current contents of this book.

        Raises:
            SheetNotFoundError: If the ref belongs to another book or its
                sheet has been removed or renamed.
        """
        if ref.book_id != self.id or ref.name not in self._sheets:
            raise SheetNotFoundError(ref.name)
        return self._sheets[ref.name]

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def add_sheet(self, name: str, sheet: Sheet) -> SheetRef:
        """Add *sheet* under *name*; the book takes ownership.

        Raises:
            SheetAlreadyExistsError: If *name* is taken.
        """
        if name in self._sheets:
            raise SheetAlreadyExistsError(name)
        sheet.name = name
        self._sheets[name] = sheet
        if self._active is None:
            self._active = name
        return SheetRef(self.id, name)

    def add_empty_sheet(self, name: str) -> SheetRef:
        return self.add_sheet(name, Sheet(name))

    def replace_sheet(self, name: str, sheet: Sheet) -> None:
        """Swap in *sheet* for the existing sheet *name* (the commit point)."""
        if name not in self._sheets:
            raise SheetNotFoundError(name)
        sheet.name = name
        self._sheets[name] = sheet

    def remove_sheet(self, name: str) -> Sheet:
        if name not in self._sheets:
            raise SheetNotFoundError(name)
        sheet = self._sheets.pop(name)
        if self._active == name:
            self._active = next(iter(self._sheets), None)
        return sheet

    def rename_sheet(self, old: str, new: str) -> SheetRef:
        if old not in self._sheets:
            raise SheetNotFoundError(old)
        if new in self._sheets and new != old:
            raise SheetAlreadyExistsError(new)
        # Rebuild to keep the sheet's position in iteration order.
        self._sheets = {(new if k == old else k): v for k, v in self._sheets.items()}
        self._sheets[new].name = new
        if self._active == old:
            self._active = new
        return SheetRef(self.id, new)

    def merge(self, other: Book) -> None:
        """Copy every sheet of *other* into this book.

        Raises:
            SheetAlreadyExistsError: On the first name clash; nothing is added.
        """
        for name in other._sheets:
            if name in self._sheets:
                raise SheetAlreadyExistsError(name)
        for name, sheet in other._sheets.items():
            self.add_sheet(name, sheet.copy())

    def consolidate(self, name: str = "Consolidated") -> Sheet:
        """Stack every sheet into one new sheet (not added to the book).

        Named sheets are aligned by the first sheet's column names;
        unnamed sheets must share a column count.
        """
        sheets = list(self._sheets.values())
        result = Sheet(name)
        if not sheets:
            return result
        first = sheets[0]
        if first.column_names is not None:
            result = Sheet.from_grid([first.column_names], name, header=True)
        for sheet in sheets:
            if first.column_names is None and sheet.col_count() != first.col_count():
                raise ColumnCountMismatchError(first.col_count(), sheet.col_count())
            result.append(sheet)
        return result

    @asynccontextmanager
    async def writing(self) -> AsyncIterator[Book]:
        """Hold the single-writer lock for the duration of the block."""
        if self._write_lock is None:
            self._write_lock = asyncio.Lock()
        async with self._write_lock:
            yield self

    def __repr__(self) -> str:
        return f"Book(name={self.name!r}, sheets={self.sheet_names()})"


class BookRegistry:
    """Named books shared between concurrently running scripts."""

    def __init__(self) -> None:
        self._books: dict[str, Book] = {}

    def register(self, book: Book, name: str | None = None) -> Book:
        key = name or book.name
        if key in self._books:
            raise ValueError(f"Book already registered: {key!r}")
        self._books[key] = book
        return book

    def get(self, name: str) -> Book:
        """Look up a registered book.

        Raises:
            KeyError: If no book is registered under *name*.
        """
        if name not in self._books:
            raise KeyError(f"Unknown book: {name!r}")
        return self._books[name]

    def get_or_create(self, name: str) -> Book:
        if name not in self._books:
            self._books[name] = Book(name)
        return self._books[name]

    def unregister(self, name: str) -> Book:
        return self._books.pop(name)

    def names(self) -> list[str]:
        return list(self._books)
