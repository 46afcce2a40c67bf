"""orjson-backed JSON output for lookup results and build reports."""
from __future__ import annotations

from pathlib import Path
from typing import Any

import orjson


def dumps_json(obj: Any, *, pretty: bool = True) -> bytes:
    """Serialize to JSON bytes with sorted keys (2-space indent when pretty)."""
    opts = orjson.OPT_INDENT_2 | orjson.OPT_SORT_KEYS if pretty else orjson.OPT_SORT_KEYS
    return orjson.dumps(obj, option=opts)


def save_json(obj: Any, path: Path, *, pretty: bool = True) -> None:
    """Write ``obj`` as JSON, creating parent directories."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(dumps_json(obj, pretty=pretty) + b"\n")


def load_json(path: Path) -> Any:
    return orjson.loads(path.read_bytes())
