"""Resolve a CEP to the city whose range contains it.

Typical use::

    with Resolver() as resolver:
        city = resolver.find("12420-010")
        # ResolvedCity(cep_initial=12400000, cep_final=12449999, state='SP',
        #              state_long='São Paulo', city='Pindamonhangaba',
        #              ddd='12', lat=-22.9166667, lon=-45.4666667)

A Resolver holds two open file handles and moves their seek positions on
every lookup, so it must not be shared between threads.  Open one per
thread instead.
"""
from __future__ import annotations

import logging
import re
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any

from geo_cep.config import DataFiles, resolve_data_files
from geo_cep.range_index import RangeIndex
from geo_cep.record_store import CityRecord, MalformedRecordError, RecordStore
from geo_cep.states import state_name

log = logging.getLogger(__name__)

CEP_DIGITS = 8
_NON_DIGIT_RE = re.compile(r"\D")


class MalformedDataError(RuntimeError):
    """Raised by a strict ``Resolver.list()`` after a scan hit malformed rows."""

    def __init__(self, offsets: list[int]) -> None:
        super().__init__(
            f"{len(offsets)} malformed record(s) in data file "
            f"(first at offset {offsets[0]})"
        )
        self.offsets = offsets


@dataclass(frozen=True, slots=True)
class ResolvedCity:
    """A city record enriched with the full state name."""

    cep_initial: int
    cep_final: int
    state: str
    state_long: str | None
    city: str
    ddd: str | None
    lat: float | None
    lon: float | None

    @classmethod
    def from_record(cls, record: CityRecord) -> ResolvedCity:
        return cls(
            cep_initial=record.cep_initial,
            cep_final=record.cep_final,
            state=record.state,
            state_long=state_name(record.state),
            city=record.city,
            ddd=record.ddd,
            lat=record.lat,
            lon=record.lon,
        )

    @property
    def key(self) -> str:
        """``"<city>/<state>"``, the key used by ``Resolver.list()``."""
        return f"{self.city}/{self.state}"

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def normalize_cep(raw: str | int) -> int | None:
    """Numeric CEP from free-form input.

    Every non-digit is dropped and only the first eight digits are kept, so
    ``"12420-010"`` and ``12420010123`` both give ``12420010``.  Returns None
    when the input has no digits at all.
    """
    digits = _NON_DIGIT_RE.sub("", str(raw))[:CEP_DIGITS]
    if not digits:
        return None
    return int(digits)


class Resolver:
    """CEP lookups over a range index and its data file.

    Args:
        data_path: Data file (``cep.csv``).  Defaults per ``geo_cep.config``.
        index_path: Range index (``cep.idx``).  Defaults next to the data file.
        encoding: Data file encoding.  Defaults to Latin-1.
        memoize: Cache lookups by normalized CEP and decoded records by
            offset.  Worth it when resolving large batches with repeats.

    Construction raises OSError when either file cannot be opened and
    IndexFormatError when the index size is inconsistent; nothing is left
    open in either case.
    """

    def __init__(
        self,
        data_path: Path | str | None = None,
        index_path: Path | str | None = None,
        *,
        encoding: str | None = None,
        memoize: bool = False,
    ) -> None:
        self._files: DataFiles = resolve_data_files(data_path, index_path, encoding)
        self._index = RangeIndex(self._files.index_path)
        try:
            self._store = RecordStore(self._files.data_path, encoding=self._files.encoding)
        except Exception:
            self._index.close()
            raise
        self._memoize = memoize
        self._find_cache: dict[int, ResolvedCity | None] = {}
        self._record_cache: dict[int, ResolvedCity | None] = {}

    @property
    def files(self) -> DataFiles:
        return self._files

    @property
    def length(self) -> int:
        """Number of entries in the range index."""
        return len(self._index)

    def close(self) -> None:
        """Release both file handles."""
        self._index.close()
        self._store.close()

    def __enter__(self) -> Resolver:
        return self

    def __exit__(self, *_args: object) -> None:
        self.close()

    def clear_cache(self) -> None:
        self._find_cache.clear()
        self._record_cache.clear()

    def _fetch(self, offset: int) -> ResolvedCity | None:
        if self._memoize and offset in self._record_cache:
            return self._record_cache[offset]
        record = self._store.read_record_at(offset)
        resolved = ResolvedCity.from_record(record) if record is not None else None
        if self._memoize:
            self._record_cache[offset] = resolved
        return resolved

    def _find(self, cep: int) -> ResolvedCity | None:
        offset = self._index.locate(cep, len(self._index) - 1)
        if offset is None:
            return None
        return self._fetch(offset)

    def find(self, cep: str | int) -> ResolvedCity | None:
        """City whose range contains ``cep``, or None.

        Accepts ``"12345-678"``, ``"12345678"`` or an int.  Non-digits are
        ignored and input longer than eight digits is truncated.
        """
        code = normalize_cep(cep)
        if code is None:
            return None
        if self._memoize and code in self._find_cache:
            return self._find_cache[code]
        result = self._find(code)
        if self._memoize:
            self._find_cache[code] = result
        return result

    def list(self, *, strict: bool = False) -> dict[str, ResolvedCity]:
        """Every city in the dataset keyed by ``"<city>/<state>"``.

        Walks the whole index in order; when a city/state pair appears more
        than once the last row wins.  Malformed rows are skipped and
        reported once the scan is over: as a warning, or as
        MalformedDataError when ``strict`` is set.
        """
        cities: dict[str, ResolvedCity] = {}
        malformed: list[int] = []
        for entry in self._index:
            try:
                record = self._store.read_record_at(entry.data_offset, strict=True)
            except MalformedRecordError as exc:
                log.debug("%s", exc)
                malformed.append(exc.offset)
                continue
            if record is None:
                malformed.append(entry.data_offset)
                continue
            city = ResolvedCity.from_record(record)
            cities[city.key] = city

        if malformed:
            if strict:
                raise MalformedDataError(malformed)
            log.warning(
                "Skipped %d malformed record(s) in %s (first at offset %d)",
                len(malformed), self._files.data_path, malformed[0],
            )
        return cities

    def __repr__(self) -> str:
        return (
            f"Resolver(data={str(self._files.data_path)!r}, "
            f"index={str(self._files.index_path)!r}, entries={len(self._index)})"
        )
