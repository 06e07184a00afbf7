# backend/kynos/services/catalog.py
from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Iterable, List, Union

from loguru import logger
from pydantic import ValidationError

from kynos.core.errors import CatalogLoadError
from kynos.models.records import Catalog, RawTicker, TickerRecord


def build_catalog(records: Iterable[TickerRecord]) -> Catalog:
    """
    Clean a sequence of records into a Catalog:
      - symbol stripped + uppercased, name stripped
      - blank symbol or name -> dropped
      - duplicate symbol      -> first one wins
    Dropped counts are logged, never raised.
    """
    out: List[TickerRecord] = []
    seen = set()
    blank = dupes = 0
    for r in records:
        sym = (r.symbol or "").strip().upper()
        nm = (r.name or "").strip()
        if not sym or not nm:
            blank += 1
            continue
        if sym in seen:
            dupes += 1
            continue
        seen.add(sym)
        out.append(TickerRecord(symbol=sym, name=nm))
    if blank:
        logger.warning(f"Dropped {blank} ticker record(s) with a blank symbol or name")
    if dupes:
        logger.warning(f"Dropped {dupes} duplicate ticker symbol(s)")
    return tuple(out)


def parse_catalog(raw: Union[Dict[str, Any], List[Any]]) -> Catalog:
    # SEC shape: {"0": {"cik_str": 320193, "ticker": "AAPL", "title": "Apple Inc."}, ...}
    if isinstance(raw, dict):
        entries = list(raw.values())
    elif isinstance(raw, list):
        entries = raw
    else:
        raise CatalogLoadError(f"Ticker list must be an object or array, got {type(raw).__name__}")

    records: List[TickerRecord] = []
    for i, entry in enumerate(entries):
        try:
            rt = RawTicker.model_validate(entry)
        except ValidationError as e:
            raise CatalogLoadError(f"Ticker list entry {i} is malformed: {e.errors()[0]['msg']}") from e
        records.append(TickerRecord.model_construct(symbol=rt.ticker, name=rt.title))
    return build_catalog(records)


def load_catalog(path: Union[str, Path]) -> Catalog:
    p = Path(path)
    try:
        with p.open("r", encoding="utf-8") as f:
            raw = json.load(f)
    except FileNotFoundError as e:
        raise CatalogLoadError(f"Ticker list not found at {p}") from e
    except json.JSONDecodeError as e:
        raise CatalogLoadError(f"Ticker list at {p} is not valid JSON: {e}") from e

    catalog = parse_catalog(raw)
    logger.info(f"Loaded ticker list: {p} with {len(catalog)} records.")
    return catalog
