from __future__ import annotations

from typing import Dict, Optional

from kynos.models.records import Catalog
from kynos.services.normalize import normalize_key


class ExactResolver:
    """
    Strict name <-> symbol lookup over a catalog snapshot.

    Names are compared case-insensitively after whitespace normalization and
    nothing else: the intent resolver is told to echo catalog names verbatim,
    so "Apple Inc" resolves but "Apple" or "appl" do not.
    A miss returns None.
    """

    def __init__(self, catalog: Catalog):
        self._by_name: Dict[str, str] = {}
        self._by_symbol: Dict[str, str] = {}
        for r in catalog:
            # first record wins when two companies share a display name
            self._by_name.setdefault(normalize_key(r.name), r.symbol)
            self._by_symbol[normalize_key(r.symbol)] = r.name

    def resolve_by_name(self, query: Optional[str]) -> Optional[str]:
        key = normalize_key(query)
        if not key:
            return None
        return self._by_name.get(key)

    def resolve_by_symbol(self, symbol: Optional[str]) -> Optional[str]:
        key = normalize_key(symbol)
        if not key:
            return None
        return self._by_symbol.get(key)
