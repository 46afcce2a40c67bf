"""Fixed-width range index over the CEP data file.

The index is a flat, headerless sequence of 8-byte entries::

    range_start  uint32 big-endian   first CEP of a city range
    data_offset  uint32 big-endian   byte offset of the row in the data file

Entries are sorted ascending by ``range_start`` with no duplicates.  Each
entry's ``range_start`` is the inclusive lower bound of its range; the next
entry's ``range_start`` is the exclusive upper bound.  The file carries no
explicit range ends, so a lookup is a floor search over sorted breakpoints.
"""
from __future__ import annotations

import logging
import os
import struct
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO

log = logging.getLogger(__name__)

ENTRY_STRUCT = struct.Struct(">II")
INDEX_ENTRY_SIZE = ENTRY_STRUCT.size
U32_MAX = 0xFFFFFFFF


class IndexFormatError(ValueError):
    """Raised when an index file or entry list violates the on-disk format."""


@dataclass(frozen=True, slots=True)
class IndexEntry:
    """One breakpoint of the range index."""

    range_start: int
    data_offset: int

    def pack(self) -> bytes:
        return ENTRY_STRUCT.pack(self.range_start, self.data_offset)

    @classmethod
    def unpack(cls, buf: bytes) -> IndexEntry:
        range_start, data_offset = ENTRY_STRUCT.unpack(buf)
        return cls(range_start=range_start, data_offset=data_offset)


class RangeIndex:
    """Read-only handle on a range index file.

    Opening validates that the file size is a positive multiple of
    ``INDEX_ENTRY_SIZE``; anything else raises ``IndexFormatError`` and the
    handle is released.  Entries are read on demand, one seek per entry.
    """

    def __init__(self, path: Path) -> None:
        self._path = Path(path)
        self._fh: BinaryIO = open(self._path, "rb")
        try:
            size = os.fstat(self._fh.fileno()).st_size
            if size <= 0 or size % INDEX_ENTRY_SIZE:
                raise IndexFormatError(
                    f"Inconsistent index size in {self._path}: {size} bytes "
                    f"is not a positive multiple of {INDEX_ENTRY_SIZE}"
                )
        except Exception:
            self._fh.close()
            raise
        self._length = size // INDEX_ENTRY_SIZE
        log.debug("Opened range index %s (%d entries)", self._path, self._length)

    @property
    def path(self) -> Path:
        return self._path

    def __len__(self) -> int:
        return self._length

    def close(self) -> None:
        """Close the index file handle."""
        self._fh.close()

    @property
    def closed(self) -> bool:
        return self._fh.closed

    def __enter__(self) -> RangeIndex:
        return self

    def __exit__(self, *_args: object) -> None:
        self.close()

    def entry_at(self, n: int) -> IndexEntry:
        """Read entry ``n``.

        Raises IndexError outside ``[0, len)`` and OSError when the
        underlying seek or read fails or comes back short.
        """
        if n < 0 or n >= self._length:
            raise IndexError(f"Index entry {n} out of range (0..{self._length - 1})")
        self._fh.seek(n * INDEX_ENTRY_SIZE, os.SEEK_SET)
        buf = self._fh.read(INDEX_ENTRY_SIZE)
        if len(buf) != INDEX_ENTRY_SIZE:
            raise OSError(
                f"Short read at entry {n} of {self._path}: "
                f"got {len(buf)} of {INDEX_ENTRY_SIZE} bytes"
            )
        return IndexEntry.unpack(buf)

    def locate(self, target: int, hi: int | None = None) -> int | None:
        """Data offset of the entry with the largest ``range_start <= target``.

        Targets below the first breakpoint or above the breakpoint at ``hi``
        (the last entry by default) are rejected up front and return None.
        Note that this rejects a target past the last breakpoint even when
        it still falls inside the last record's own ``cep_final``.
        """
        if hi is None:
            hi = self._length - 1
        lo = 0
        if self.entry_at(lo).range_start > target or self.entry_at(hi).range_start < target:
            return None

        mid = 0
        start = 0
        while lo <= hi:
            mid = (lo + hi) // 2
            start = self.entry_at(mid).range_start
            if target < start:
                hi = mid - 1
            elif target > start:
                lo = mid + 1
            else:
                break

        # loop ended past the target: the floor is the previous breakpoint
        if start > target:
            mid -= 1
        return self.entry_at(mid).data_offset

    def __iter__(self) -> Iterator[IndexEntry]:
        """Rewind and yield every entry in file order."""
        self._fh.seek(0, os.SEEK_SET)
        for n in range(self._length):
            buf = self._fh.read(INDEX_ENTRY_SIZE)
            if len(buf) != INDEX_ENTRY_SIZE:
                raise OSError(f"Short read at entry {n} of {self._path}")
            yield IndexEntry.unpack(buf)

    def __repr__(self) -> str:
        return f"RangeIndex({str(self._path)!r}, {self._length} entries)"
