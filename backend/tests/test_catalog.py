"""Tests for kynos.services.catalog (ticker list loading and cleaning)."""

import json
from pathlib import Path

import pytest

from kynos.core.errors import CatalogLoadError
from kynos.core.settings import BACKEND_DIR
from kynos.services.catalog import load_catalog, parse_catalog


def _write(tmp_path: Path, data) -> Path:
    p = tmp_path / "ticker-list.json"
    p.write_text(json.dumps(data) if not isinstance(data, str) else data, encoding="utf-8")
    return p


def test_loads_sec_shape(tmp_path):
    p = _write(tmp_path, {
        "0": {"cik_str": 1045810, "ticker": "NVDA", "title": "NVIDIA Corporation"},
        "1": {"cik_str": 789019, "ticker": "MSFT", "title": "Microsoft Corp"},
    })
    catalog = load_catalog(p)

    assert [(r.symbol, r.name) for r in catalog] == [
        ("NVDA", "NVIDIA Corporation"),
        ("MSFT", "Microsoft Corp"),
    ]


def test_loads_list_shape():
    catalog = parse_catalog([{"ticker": "aapl ", "title": " Apple Inc. "}])

    assert catalog[0].symbol == "AAPL"
    assert catalog[0].name == "Apple Inc."


def test_blank_records_dropped():
    catalog = parse_catalog({
        "0": {"ticker": "", "title": "No Symbol Corp"},
        "1": {"ticker": "NONAME", "title": "   "},
        "2": {"ticker": "KO", "title": "Coca-Cola Company"},
    })

    assert [r.symbol for r in catalog] == ["KO"]


def test_duplicate_symbols_keep_first():
    catalog = parse_catalog([
        {"ticker": "GOOGL", "title": "Alphabet Inc. Class A"},
        {"ticker": "googl", "title": "Alphabet Duplicate"},
    ])

    assert len(catalog) == 1
    assert catalog[0].name == "Alphabet Inc. Class A"


def test_missing_file_raises(tmp_path):
    with pytest.raises(CatalogLoadError, match="not found"):
        load_catalog(tmp_path / "nope.json")


def test_invalid_json_raises(tmp_path):
    with pytest.raises(CatalogLoadError, match="not valid JSON"):
        load_catalog(_write(tmp_path, "{not json"))


def test_entry_missing_field_raises():
    with pytest.raises(CatalogLoadError, match="entry 0"):
        parse_catalog({"0": {"ticker": "AAPL"}})


def test_scalar_top_level_raises():
    with pytest.raises(CatalogLoadError):
        parse_catalog(42)


def test_empty_catalog_is_fine():
    assert parse_catalog({}) == ()


def test_bundled_ticker_list_loads():
    catalog = load_catalog(BACKEND_DIR / "ticker-list.json")
    symbols = {r.symbol for r in catalog}

    assert {"NVDA", "MSFT", "AAPL"} <= symbols
    assert len(symbols) == len(catalog)
