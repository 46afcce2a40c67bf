"""Build and check the range index for a CEP data file.

The data file itself comes from an external pipeline.  The index is a pure
function of it: one ``(cep_initial, byte offset)`` entry per row, sorted by
``cep_initial``.
"""
from __future__ import annotations

import logging
import os
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

from geo_cep.range_index import (
    INDEX_ENTRY_SIZE,
    U32_MAX,
    IndexEntry,
    IndexFormatError,
    RangeIndex,
)
from geo_cep.record_store import (
    DEFAULT_ENCODING,
    MalformedRecordError,
    RecordStore,
    check_encoding,
    is_cep_number,
    split_line,
)

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class BuildReport:
    """Summary of one index build."""

    data_path: str
    index_path: str
    encoding: str
    entries: int
    skipped_lines: int
    data_bytes: int
    index_bytes: int


def scan_data_file(
    path: Path, *, encoding: str = DEFAULT_ENCODING
) -> tuple[list[IndexEntry], int]:
    """Collect one IndexEntry per data row.

    Blank lines and lines whose first column is not a number (a header,
    typically) are skipped.  Returns ``(entries, skipped_line_count)`` with
    entries in file order.
    """
    encoding = check_encoding(encoding)
    entries: list[IndexEntry] = []
    skipped = 0
    offset = 0
    with open(path, "rb") as fh:
        for raw in fh:
            line_offset = offset
            offset += len(raw)
            line = raw.decode(encoding).rstrip("\r\n")
            fields = split_line(line) if line.strip() else []
            first = fields[0].strip() if fields else ""
            if not is_cep_number(first):
                skipped += 1
                continue
            entries.append(IndexEntry(range_start=int(first), data_offset=line_offset))
    return entries, skipped


def write_index(entries: Iterable[IndexEntry], path: Path) -> int:
    """Write entries in on-disk format and return how many were written.

    Entries must already be sorted by ``range_start`` without duplicates and
    fit in unsigned 32 bits; otherwise IndexFormatError is raised and
    nothing is written.
    """
    items = list(entries)
    if not items:
        raise IndexFormatError("Refusing to write an empty index")
    prev: IndexEntry | None = None
    for entry in items:
        if not (0 <= entry.range_start <= U32_MAX and 0 <= entry.data_offset <= U32_MAX):
            raise IndexFormatError(f"Entry does not fit in uint32: {entry}")
        if prev is not None and entry.range_start <= prev.range_start:
            kind = "Duplicate" if entry.range_start == prev.range_start else "Unsorted"
            raise IndexFormatError(
                f"{kind} breakpoint {entry.range_start} after {prev.range_start}"
            )
        prev = entry

    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_name(path.name + ".tmp")
    tmp.write_bytes(b"".join(entry.pack() for entry in items))
    os.replace(tmp, path)
    return len(items)


def build_index(
    data_path: Path,
    index_path: Path,
    *,
    encoding: str = DEFAULT_ENCODING,
) -> BuildReport:
    """Scan ``data_path`` and write its range index to ``index_path``.

    Rows are sorted by ``cep_initial`` before writing, so the data file
    does not need to be in CEP order.
    """
    entries, skipped = scan_data_file(data_path, encoding=encoding)
    entries.sort(key=lambda e: e.range_start)
    count = write_index(entries, index_path)
    report = BuildReport(
        data_path=str(data_path),
        index_path=str(index_path),
        encoding=check_encoding(encoding),
        entries=count,
        skipped_lines=skipped,
        data_bytes=data_path.stat().st_size,
        index_bytes=count * INDEX_ENTRY_SIZE,
    )
    log.info(
        "Indexed %d rows of %s into %s (%d lines skipped)",
        count, data_path, index_path, skipped,
    )
    return report


def verify_index(
    data_path: Path,
    index_path: Path,
    *,
    encoding: str = DEFAULT_ENCODING,
) -> list[str]:
    """Cross-check an index against its data file.

    Returns human-readable problems; an empty list means every entry points
    at a decodable row whose ``cep_initial`` equals the entry's breakpoint
    and breakpoints are strictly ascending.
    """
    problems: list[str] = []
    with RangeIndex(index_path) as index, RecordStore(data_path, encoding=encoding) as store:
        prev: int | None = None
        for n, entry in enumerate(index):
            if prev is not None and entry.range_start <= prev:
                problems.append(
                    f"entry {n}: breakpoint {entry.range_start} not above {prev}"
                )
            prev = entry.range_start
            try:
                record = store.read_record_at(entry.data_offset, strict=True)
            except MalformedRecordError as exc:
                problems.append(f"entry {n}: {exc}")
                continue
            if record is None:
                problems.append(f"entry {n}: offset {entry.data_offset} is past end of data")
            elif record.cep_initial != entry.range_start:
                problems.append(
                    f"entry {n}: breakpoint {entry.range_start} but record "
                    f"starts at {record.cep_initial}"
                )
    return problems
