"""Location and encoding of the CEP data files.

Resolution order for each setting: explicit argument, then environment
variable, then the default data directory shipped beside the package.

    GEO_CEP_DATA_DIR   directory holding cep.csv and cep.idx
    GEO_CEP_DATA       path to the data file
    GEO_CEP_INDEX      path to the index file
    GEO_CEP_ENCODING   data file encoding (default: latin-1)
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from geo_cep.record_store import DEFAULT_ENCODING, check_encoding

DATA_FILE_NAME = "cep.csv"
INDEX_FILE_NAME = "cep.idx"
INDEX_SUFFIX = ".idx"

ENV_DATA_DIR = "GEO_CEP_DATA_DIR"
ENV_DATA = "GEO_CEP_DATA"
ENV_INDEX = "GEO_CEP_INDEX"
ENV_ENCODING = "GEO_CEP_ENCODING"


@dataclass(frozen=True, slots=True)
class DataFiles:
    """Resolved paths and encoding for one data/index pair."""

    data_path: Path
    index_path: Path
    encoding: str


def default_data_dir() -> Path:
    """Directory searched when no explicit paths are configured."""
    env_dir = os.environ.get(ENV_DATA_DIR, "")
    if env_dir:
        return Path(env_dir)
    return Path(__file__).resolve().parent / "data"


def resolve_data_files(
    data_path: Path | str | None = None,
    index_path: Path | str | None = None,
    encoding: str | None = None,
    *,
    data_dir: Path | str | None = None,
) -> DataFiles:
    """Work out which data/index files to open.

    When only a data path is known, the index is expected next to it with
    the same stem and an ``.idx`` suffix.  Raises ValueError for an unknown
    or unusable encoding name.  File existence is not checked here; opening does that.
    """
    base = Path(data_dir) if data_dir is not None else default_data_dir()

    data = data_path if data_path is not None else os.environ.get(ENV_DATA) or None
    index = index_path if index_path is not None else os.environ.get(ENV_INDEX) or None
    enc = encoding or os.environ.get(ENV_ENCODING) or DEFAULT_ENCODING

    enc = check_encoding(enc)

    resolved_data = Path(data) if data is not None else base / DATA_FILE_NAME
    if index is not None:
        resolved_index = Path(index)
    elif data is not None:
        resolved_index = resolved_data.with_suffix(INDEX_SUFFIX)
    else:
        resolved_index = base / INDEX_FILE_NAME

    return DataFiles(data_path=resolved_data, index_path=resolved_index, encoding=enc)
