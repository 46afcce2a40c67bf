"""Offline resolution of Brazilian CEPs to city, state, DDD and coordinates."""

from geo_cep.config import DataFiles, resolve_data_files
from geo_cep.range_index import INDEX_ENTRY_SIZE, IndexEntry, IndexFormatError, RangeIndex
from geo_cep.record_store import CityRecord, MalformedRecordError, RecordStore
from geo_cep.resolver import MalformedDataError, ResolvedCity, Resolver, normalize_cep
from geo_cep.states import STATES, state_name

__version__ = "0.1.0"

__all__ = [
    "CityRecord",
    "DataFiles",
    "INDEX_ENTRY_SIZE",
    "IndexEntry",
    "IndexFormatError",
    "MalformedDataError",
    "MalformedRecordError",
    "RangeIndex",
    "RecordStore",
    "ResolvedCity",
    "Resolver",
    "STATES",
    "normalize_cep",
    "resolve_data_files",
    "state_name",
]
