"""Tests for geo_cep.resolver — find/list over a synthetic dataset."""
from __future__ import annotations

import random
from pathlib import Path

import pytest
from conftest import DISTINCT_CITIES, SAMPLE_ROWS, write_dataset

from geo_cep.index_builder import write_index
from geo_cep.range_index import IndexEntry, IndexFormatError, RangeIndex
from geo_cep.resolver import MalformedDataError, ResolvedCity, Resolver, normalize_cep


@pytest.fixture()
def resolver(dataset: tuple[Path, Path]) -> Resolver:
    data_path, index_path = dataset
    r = Resolver(data_path, index_path)
    yield r  # type: ignore[misc]
    r.close()


class TestNormalizeCep:
    def test_strips_punctuation(self) -> None:
        assert normalize_cep("12420-010") == 12420010
        assert normalize_cep(" 12.420-010 ") == 12420010

    def test_truncates_to_eight_digits(self) -> None:
        assert normalize_cep("12420010999") == 12420010
        assert normalize_cep(999_999_999) == 99999999

    def test_int_input(self) -> None:
        assert normalize_cep(1000000) == 1000000
        assert normalize_cep(0) == 0

    def test_negative_loses_sign(self) -> None:
        assert normalize_cep(-1) == 1

    def test_no_digits(self) -> None:
        assert normalize_cep("") is None
        assert normalize_cep("abc-def") is None


class TestFind:
    def test_pindamonhangaba(self, resolver: Resolver) -> None:
        city = resolver.find("12420-010")
        assert city == ResolvedCity(
            cep_initial=12400000,
            cep_final=12449999,
            state="SP",
            state_long="São Paulo",
            city="Pindamonhangaba",
            ddd="12",
            lat=-22.9166667,
            lon=-45.4666667,
        )

    def test_punctuation_insensitive(self, resolver: Resolver) -> None:
        assert resolver.find("12420-010") == resolver.find("12420010")
        assert resolver.find("12420010") == resolver.find(12420010)

    def test_long_input_truncated(self, resolver: Resolver) -> None:
        assert resolver.find("124200109876") == resolver.find("12420010")
        assert resolver.find("12420-010-98") == resolver.find("12420010")

    def test_out_of_domain_is_none(self, resolver: Resolver) -> None:
        assert resolver.find(0) is None
        assert resolver.find(-1) is None
        assert resolver.find(999_999_999) is None
        assert resolver.find("") is None
        assert resolver.find("no digits") is None

    def test_last_range_only_reachable_at_its_breakpoint(self, resolver: Resolver) -> None:
        assert resolver.find("99700-000").city == "Erechim"  # type: ignore[union-attr]
        assert resolver.find("99700-001") is None
        assert resolver.find("99711-999") is None

    def test_accented_latin1_city(self, resolver: Resolver) -> None:
        city = resolver.find("70040-010")
        assert city is not None
        assert city.city == "Brasília"
        assert city.state_long == "Distrito Federal"

    def test_missing_optional_fields(self, resolver: Resolver) -> None:
        city = resolver.find("76801-000")
        assert city is not None
        assert city.city == "Porto Velho"
        assert city.ddd is None
        assert city.lat is None and city.lon is None

    def test_gap_resolves_to_previous_range(self, resolver: Resolver) -> None:
        # 06000000 lies between two São Paulo ranges; breakpoints have no gaps
        city = resolver.find("06000-000")
        assert city is not None
        assert city.cep_initial == 1000000

    def test_every_range_resolves_to_its_record(self, resolver: Resolver) -> None:
        rng = random.Random(1234)
        starts = [int(r[0]) for r in SAMPLE_ROWS]
        for i, row in enumerate(SAMPLE_ROWS[:-1]):
            upper = starts[i + 1] - 1
            for target in (starts[i], upper, rng.randint(starts[i], upper)):
                city = resolver.find(f"{target:08d}")
                assert city is not None, target
                assert (city.state, city.city, city.ddd or "") == (row[2], row[3], row[4])
                assert city.lat == (float(row[5]) if row[5] else None)
                assert city.lon == (float(row[6]) if row[6] else None)

    def test_idempotent(self, resolver: Resolver) -> None:
        assert resolver.find("20040-020") == resolver.find("20040-020")

    def test_unknown_state_has_no_long_name(self, tmp_path: Path) -> None:
        data_path, index_path = write_dataset(
            tmp_path, [("10000000", "19999999", "XX", "Atlantis", "", "", "")]
        )
        with Resolver(data_path, index_path) as r:
            city = r.find("10000000")
        assert city is not None
        assert city.state == "XX"
        assert city.state_long is None

    def test_utf8_dataset(self, utf8_dataset: tuple[Path, Path]) -> None:
        data_path, index_path = utf8_dataset
        with Resolver(data_path, index_path, encoding="utf-8") as r:
            city = r.find("12455-000")
        assert city is not None
        assert city.city == "Santo Antônio do Pinhal"

    def test_superscript_digit_in_cep_final(self, tmp_path: Path) -> None:
        data_path, index_path = write_dataset(tmp_path)
        raw = data_path.read_bytes()
        # same length, so every index offset stays valid
        data_path.write_bytes(raw.replace(b",12449999,", b",1244999\xb2,"))
        with Resolver(data_path, index_path) as r:
            assert r.find("12420-010") is None
            assert "Pindamonhangaba/SP" not in r.list()
            assert r.find("12455-000").city == "Santo Antônio do Pinhal"  # type: ignore[union-attr]


class TestMemoize:
    def test_same_results_as_uncached(self, dataset: tuple[Path, Path]) -> None:
        data_path, index_path = dataset
        codes = ["12420-010", "01310-200", "99999-999", "20040020", "12420010", "0"]
        with Resolver(data_path, index_path) as plain, \
                Resolver(data_path, index_path, memoize=True) as cached:
            for _ in range(2):
                for code in codes:
                    assert cached.find(code) == plain.find(code)

    def test_clear_cache(self, dataset: tuple[Path, Path]) -> None:
        data_path, index_path = dataset
        with Resolver(data_path, index_path, memoize=True) as r:
            first = r.find("12420-010")
            r.clear_cache()
            assert r.find("12420-010") == first


class TestList:
    def test_one_entry_per_city_state(self, resolver: Resolver) -> None:
        cities = resolver.list()
        assert len(cities) == DISTINCT_CITIES
        assert "Pindamonhangaba/SP" in cities
        assert cities["Brasília/DF"].state_long == "Distrito Federal"

    def test_last_duplicate_wins(self, resolver: Resolver) -> None:
        assert resolver.list()["São Paulo/SP"].cep_initial == 8000000

    def test_keys_match_values(self, resolver: Resolver) -> None:
        for key, city in resolver.list().items():
            assert key == city.key

    def test_idempotent(self, resolver: Resolver) -> None:
        assert resolver.list() == resolver.list()

    def test_list_then_find(self, resolver: Resolver) -> None:
        resolver.list()
        assert resolver.find("12420-010").city == "Pindamonhangaba"  # type: ignore[union-attr]

    def test_malformed_rows_reported_after_scan(
        self, tmp_path: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        data_path, index_path = write_dataset(tmp_path)
        lines = data_path.read_bytes().split(b"\n")
        # keep byte offsets intact: same-length corruption of the Rio row
        rio = next(i for i, line in enumerate(lines) if b"Rio de Janeiro" in line)
        lines[rio] = lines[rio].replace(b",RJ,", b",  ,")
        data_path.write_bytes(b"\n".join(lines))

        with Resolver(data_path, index_path) as r:
            with caplog.at_level("WARNING", logger="geo_cep.resolver"):
                cities = r.list()
            assert len(cities) == DISTINCT_CITIES - 1
            assert "Skipped 1 malformed record" in caplog.text
            assert r.find("20040-020") is None

            with pytest.raises(MalformedDataError) as exc_info:
                r.list(strict=True)
            assert len(exc_info.value.offsets) == 1

    def test_offset_past_end_of_data(
        self, tmp_path: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        data_path, index_path = write_dataset(tmp_path)
        with RangeIndex(index_path) as idx:
            entries = [
                IndexEntry(e.range_start, 10**6) if e.range_start == 20000000 else e
                for e in idx
            ]
        write_index(entries, index_path)

        with Resolver(data_path, index_path) as r:
            with caplog.at_level("WARNING", logger="geo_cep.resolver"):
                cities = r.list()
            assert len(cities) == DISTINCT_CITIES - 1
            assert "Rio de Janeiro/RJ" not in cities
            assert "Erechim/RS" in cities
            assert "Skipped 1 malformed record" in caplog.text
            assert "offset 1000000" in caplog.text

            with pytest.raises(MalformedDataError) as exc_info:
                r.list(strict=True)
            assert exc_info.value.offsets == [10**6]

    def test_undecodable_row(
        self, tmp_path: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        data_path, index_path = write_dataset(tmp_path, encoding="utf-8")
        raw = data_path.read_bytes()
        data_path.write_bytes(raw.replace("Brasília".encode("utf-8"), b"Bras\xff\xfflia"))

        with Resolver(data_path, index_path, encoding="utf-8") as r:
            with caplog.at_level("WARNING", logger="geo_cep.resolver"):
                cities = r.list()
            assert len(cities) == DISTINCT_CITIES - 1
            assert "Brasília/DF" not in cities
            assert "Skipped 1 malformed record" in caplog.text
            assert r.find("70040-010") is None

            with pytest.raises(MalformedDataError) as exc_info:
                r.list(strict=True)
            assert len(exc_info.value.offsets) == 1


class TestConstruction:
    def test_missing_data_file(self, dataset: tuple[Path, Path], tmp_path: Path) -> None:
        _, index_path = dataset
        with pytest.raises(FileNotFoundError):
            Resolver(tmp_path / "missing.csv", index_path)

    def test_missing_index_file(self, dataset: tuple[Path, Path], tmp_path: Path) -> None:
        data_path, _ = dataset
        with pytest.raises(FileNotFoundError):
            Resolver(data_path, tmp_path / "missing.idx")

    def test_inconsistent_index_size(self, dataset: tuple[Path, Path]) -> None:
        data_path, index_path = dataset
        index_path.write_bytes(index_path.read_bytes()[:-3])
        with pytest.raises(IndexFormatError):
            Resolver(data_path, index_path)

    def test_index_defaults_next_to_data(self, dataset: tuple[Path, Path]) -> None:
        data_path, index_path = dataset
        with Resolver(data_path) as r:
            assert r.files.index_path == index_path
            assert r.length == len(SAMPLE_ROWS)

    def test_unknown_encoding(self, dataset: tuple[Path, Path]) -> None:
        data_path, index_path = dataset
        with pytest.raises(ValueError, match="Unknown data file encoding"):
            Resolver(data_path, index_path, encoding="klingon")
