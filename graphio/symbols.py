"""
Process-scoped string interning.

Every ID in the game data model wraps a :class:`Symbol`, which is nothing more
than a small integer handed out by a :class:`SymbolTable`.  Equal text always
interns to the same symbol, so comparing or hashing symbols never touches the
underlying strings.  Entries are append-only and live as long as the table.

The decoding pipeline owns one table and passes it to whatever needs to
intern or resolve text; there is no module-level table.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Dict, Iterator, List

# Symbols are handed out as 1-based u32-style identifiers.
MAX_SYMBOLS = 2**32 - 1


class ReadWriteLock:
    """Many concurrent readers or a single writer; waiting writers go first."""

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    def acquire_read(self) -> None:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1

    def release_read(self) -> None:
        with self._cond:
            self._readers -= 1
            if self._readers == 0:
                self._cond.notify_all()

    def acquire_write(self) -> None:
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True

    def release_write(self) -> None:
        with self._cond:
            self._writer = False
            self._cond.notify_all()

    def read(self) -> "_Guard":
        return _Guard(self.acquire_read, self.release_read)

    def write(self) -> "_Guard":
        return _Guard(self.acquire_write, self.release_write)


class _Guard:
    def __init__(self, acquire, release) -> None:
        self._acquire = acquire
        self._release = release

    def __enter__(self) -> None:
        self._acquire()

    def __exit__(self, *exc_info) -> None:
        self._release()


@dataclass(frozen=True, eq=False)
class Symbol:
    index: int
    table: "SymbolTable" = field(repr=False)

    @property
    def text(self) -> str:
        return self.table.resolve(self)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Symbol):
            return NotImplemented
        return self.index == other.index and self.table is other.table

    def __hash__(self) -> int:
        return hash(self.index)

    def __str__(self) -> str:
        return self.text


class SymbolTable:
    def __init__(self) -> None:
        self._lock = ReadWriteLock()
        self._strings: List[str] = []
        self._lookup: Dict[str, int] = {}

    def intern(self, text: str) -> Symbol:
        with self._lock.read():
            index = self._lookup.get(text)
        if index is not None:
            return Symbol(index, self)
        with self._lock.write():
            # Another writer may have interned the same text in between.
            index = self._lookup.get(text)
            if index is None:
                if len(self._strings) >= MAX_SYMBOLS:
                    raise OverflowError("symbol table exhausted its identifier space")
                self._strings.append(text)
                index = len(self._strings)
                self._lookup[text] = index
        return Symbol(index, self)

    def resolve(self, symbol: Symbol) -> str:
        if symbol.table is not self:
            raise ValueError(f"symbol #{symbol.index} belongs to a different table")
        with self._lock.read():
            return self._strings[symbol.index - 1]

    def __len__(self) -> int:
        with self._lock.read():
            return len(self._strings)

    def __contains__(self, text: object) -> bool:
        with self._lock.read():
            return text in self._lookup

    def __iter__(self) -> Iterator[str]:
        with self._lock.read():
            snapshot = list(self._strings)
        return iter(snapshot)
