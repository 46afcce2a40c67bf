"""Row-oriented CEP data file, read one record at a time by byte offset.

Each line is a comma-separated record::

    cep_initial,cep_final,state,city,ddd,lat,lon

``ddd``, ``lat`` and ``lon`` may be empty.  The file encoding is fixed by the
build that produced it (Latin-1 for the classic dataset, UTF-8 for newer
builds) and must be passed explicitly.
"""
from __future__ import annotations

import codecs
import csv
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO

log = logging.getLogger(__name__)

COLUMNS: tuple[str, ...] = ("cep_initial", "cep_final", "state", "city", "ddd", "lat", "lon")
DEFAULT_ENCODING = "latin-1"


class MalformedRecordError(ValueError):
    """Raised when the row at a given offset cannot be decoded."""

    def __init__(self, offset: int, reason: str) -> None:
        super().__init__(f"Malformed record at offset {offset}: {reason}")
        self.offset = offset
        self.reason = reason


@dataclass(frozen=True, slots=True)
class CityRecord:
    """A city's CEP range as stored in the data file."""

    cep_initial: int
    cep_final: int
    state: str
    city: str
    ddd: str | None
    lat: float | None
    lon: float | None


def _optional_float(value: str, column: str, offset: int) -> float | None:
    value = value.strip()
    if not value:
        return None
    try:
        return float(value)
    except ValueError:
        raise MalformedRecordError(offset, f"{column} is not numeric: {value!r}") from None


def is_cep_number(value: str) -> bool:
    """True for a non-empty run of ASCII digits (no superscripts or other scripts)."""
    return value.isascii() and value.isdigit()


def check_encoding(encoding: str) -> str:
    """Canonical codec name, or ValueError.

    Rows are located by byte offset and split with ``readline()``, so only
    encodings that write a newline as the single byte ``\\n`` are usable.
    """
    try:
        name = codecs.lookup(encoding).name
        newline = "\n".encode(name)
    except LookupError:
        raise ValueError(f"Unknown data file encoding: {encoding!r}") from None
    if newline != b"\n":
        raise ValueError(f"Unsupported data file encoding: {encoding!r} is not byte-line oriented")
    return name


def _required_int(value: str, column: str, offset: int) -> int:
    value = value.strip()
    if not is_cep_number(value):
        raise MalformedRecordError(offset, f"{column} is not a CEP number: {value!r}")
    return int(value)


def decode_row(fields: list[str], offset: int = 0) -> CityRecord:
    """Build a CityRecord from the split columns of one data row.

    Raises MalformedRecordError when a column is missing or unparsable.
    ``offset`` is only used for error messages.
    """
    if len(fields) < len(COLUMNS):
        raise MalformedRecordError(
            offset, f"expected {len(COLUMNS)} columns, got {len(fields)}"
        )
    cep_initial, cep_final, state, city, ddd, lat, lon = fields[: len(COLUMNS)]
    state = state.strip()
    if not state:
        raise MalformedRecordError(offset, "state is empty")
    return CityRecord(
        cep_initial=_required_int(cep_initial, "cep_initial", offset),
        cep_final=_required_int(cep_final, "cep_final", offset),
        state=state,
        city=city.strip(),
        ddd=ddd.strip() or None,
        lat=_optional_float(lat, "lat", offset),
        lon=_optional_float(lon, "lon", offset),
    )


def split_line(line: str) -> list[str]:
    """Split one decoded data line into columns (double-quote aware)."""
    return next(csv.reader([line]), [])


class RecordStore:
    """Read-only handle on the CEP data file."""

    def __init__(self, path: Path, *, encoding: str = DEFAULT_ENCODING) -> None:
        # fail on an unusable codec before touching the file
        self._encoding = check_encoding(encoding)
        self._path = Path(path)
        self._fh: BinaryIO = open(self._path, "rb")

    @property
    def path(self) -> Path:
        return self._path

    @property
    def encoding(self) -> str:
        return self._encoding

    def close(self) -> None:
        """Close the data file handle."""
        self._fh.close()

    @property
    def closed(self) -> bool:
        return self._fh.closed

    def __enter__(self) -> RecordStore:
        return self

    def __exit__(self, *_args: object) -> None:
        self.close()

    def read_raw_line_at(self, offset: int) -> bytes:
        """Raw bytes of the line starting at ``offset``; empty at EOF."""
        self._fh.seek(offset, os.SEEK_SET)
        return self._fh.readline()

    def read_record_at(self, offset: int, *, strict: bool = False) -> CityRecord | None:
        """Parse the record starting at ``offset``.

        Returns None at end of stream.  A malformed row also returns None
        unless ``strict`` is set, in which case MalformedRecordError is
        raised so callers can tell the two apart.
        """
        raw = self.read_raw_line_at(offset)
        if not raw:
            log.debug("End of data file reached at offset %d", offset)
            return None
        try:
            line = raw.decode(self._encoding).rstrip("\r\n")
            return decode_row(split_line(line), offset)
        except (MalformedRecordError, csv.Error, UnicodeDecodeError) as exc:
            if strict:
                if isinstance(exc, MalformedRecordError):
                    raise
                raise MalformedRecordError(offset, str(exc)) from exc
            log.debug("Skipping malformed record: %s", exc)
            return None

    def __repr__(self) -> str:
        return f"RecordStore({str(self._path)!r}, encoding={self._encoding!r})"
