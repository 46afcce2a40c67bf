"""Shared fixtures: a small CEP dataset written to tmp_path."""
from __future__ import annotations

import csv
import io
from pathlib import Path

import pytest

from geo_cep.index_builder import build_index

# cep_initial, cep_final, state, city, ddd, lat, lon
SAMPLE_ROWS: list[tuple[str, ...]] = [
    ("01000000", "05999999", "SP", "São Paulo", "11", "-23.5475000", "-46.6361100"),
    ("08000000", "08499999", "SP", "São Paulo", "11", "-23.5475000", "-46.6361100"),
    ("12400000", "12449999", "SP", "Pindamonhangaba", "12", "-22.9166667", "-45.4666667"),
    ("12450000", "12499999", "SP", "Santo Antônio do Pinhal", "12", "-22.8272222", "-45.6630556"),
    ("20000000", "23799999", "RJ", "Rio de Janeiro", "21", "-22.9027800", "-43.2075000"),
    ("30000000", "31999999", "MG", "Belo Horizonte", "31", "-19.9208300", "-43.9377800"),
    ("69900000", "69923999", "AC", "Rio Branco", "68", "-9.9747200", "-67.8100000"),
    ("70000000", "72799999", "DF", "Brasília", "61", "-15.7797200", "-47.9297200"),
    ("76800000", "76834999", "RO", "Porto Velho", "", "", ""),
    ("99700000", "99711999", "RS", "Erechim", "54", "-27.6336100", "-52.2738900"),
]

DISTINCT_CITIES = 9


def render_rows(rows: list[tuple[str, ...]], *, header: bool = False) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    if header:
        writer.writerow(["cep_initial", "cep_final", "state", "city", "ddd", "lat", "lon"])
    writer.writerows(rows)
    return buf.getvalue()


def write_dataset(
    directory: Path,
    rows: list[tuple[str, ...]] | None = None,
    *,
    encoding: str = "latin-1",
    header: bool = False,
) -> tuple[Path, Path]:
    """Write ``cep.csv`` and build ``cep.idx`` next to it."""
    data_path = directory / "cep.csv"
    index_path = directory / "cep.idx"
    text = render_rows(SAMPLE_ROWS if rows is None else rows, header=header)
    data_path.write_bytes(text.encode(encoding))
    build_index(data_path, index_path, encoding=encoding)
    return data_path, index_path


@pytest.fixture()
def dataset(tmp_path: Path) -> tuple[Path, Path]:
    return write_dataset(tmp_path)


@pytest.fixture()
def utf8_dataset(tmp_path: Path) -> tuple[Path, Path]:
    return write_dataset(tmp_path, encoding="utf-8")
