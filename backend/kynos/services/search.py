from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from loguru import logger
from rapidfuzz import fuzz
from rapidfuzz.distance import Indel

from kynos.core.settings import settings
from kynos.models.records import Catalog, MatchCandidate, Span, TickerRecord
from kynos.services.normalize import fold, normalize_key, tokenize
from kynos.services.resolve import ExactResolver

FIELDS = ("symbol", "name")
DEFAULT_THRESHOLD = 0.3  # 0 = perfect, 1 = nothing in common

# =============================================================================
# Index
# =============================================================================
@dataclass(frozen=True)
class _Entry:
    record: TickerRecord
    texts: Tuple[str, str]  # folded (symbol, name), same lengths as the originals


@dataclass(frozen=True)
class FuzzyIndex:
    entries: Tuple[_Entry, ...]

    def __len__(self) -> int:
        return len(self.entries)


def build_index(catalog: Catalog) -> FuzzyIndex:
    return FuzzyIndex(tuple(_Entry(r, (fold(r.symbol), fold(r.name))) for r in catalog))


# =============================================================================
# Scoring helpers
# =============================================================================
def _align(needle: str, haystack: str) -> Tuple[float, int, int]:
    """
    Best alignment of needle inside haystack -> (similarity 0..1, start, end_exclusive).
    Position inside the haystack is not weighted, a hit at the end of a long
    name is as good as one at the start.
    """
    if not needle or not haystack:
        return 0.0, 0, 0
    if len(needle) <= len(haystack):
        al = fuzz.partial_ratio_alignment(needle, haystack)
        if al is None:
            return 0.0, 0, 0
        return al.score / 100.0, al.dest_start, al.dest_end
    # needle longer than the field: score against the whole field, never a slice of the needle
    return fuzz.ratio(needle, haystack) / 100.0, 0, len(haystack)


def _spans(needle: str, haystack: str, start: int, end: int) -> List[Span]:
    out: List[Span] = []
    for op in Indel.opcodes(needle, haystack[start:end]):
        if op.tag == "equal" and op.dest_end > op.dest_start:
            out.append((start + op.dest_start, start + op.dest_end - 1))
    return out


def merge_spans(spans: Sequence[Span]) -> List[Span]:
    """Sort and merge overlapping or adjacent inclusive ranges."""
    merged: List[Span] = []
    for s, e in sorted(spans):
        if merged and s <= merged[-1][1] + 1:
            if e > merged[-1][1]:
                merged[-1] = (merged[-1][0], e)
            continue
        merged.append((s, e))
    return merged


def score_field(query: str, tokens: Sequence[str], text: str, threshold: float = DEFAULT_THRESHOLD) -> Tuple[float, List[Span]]:
    """
    Dissimilarity of one field against the query, plus the spans that matched.
    Whole-query alignment first; for multi-token queries each token is also
    aligned on its own and the length-weighted mean competes with it.
    """
    sim, s, e = _align(query, text)
    best = 1.0 - sim
    spans = _spans(query, text, s, e) if sim > 0 else []

    if len(tokens) > 1:
        total = sum(len(t) for t in tokens)
        acc = 0.0
        tok_spans: List[Span] = []
        for t in tokens:
            ts, a, b = _align(t, text)
            acc += (1.0 - ts) * len(t)
            if ts > 0 and (1.0 - ts) <= threshold:
                tok_spans.extend(_spans(t, text, a, b))
        tok_score = acc / total
        if tok_score < best:
            best, spans = tok_score, tok_spans

    return round(best, 4), merge_spans(spans)


# =============================================================================
# Search
# =============================================================================
def _rank_key(c: MatchCandidate) -> Tuple[float, int, str]:
    # shorter tickers first on equal score; symbol last for a stable order
    return (c.score, len(c.record.symbol), c.record.symbol)


def search(index: FuzzyIndex, query: Optional[str], limit: int, threshold: float = DEFAULT_THRESHOLD) -> List[MatchCandidate]:
    q = fold(normalize_key(query))
    if not q or limit <= 0:
        return []
    tokens = tokenize(q)

    out: List[MatchCandidate] = []
    for entry in index.entries:
        best = 1.0
        spans: Dict[str, List[Span]] = {}
        for field, text in zip(FIELDS, entry.texts):
            sc, sp = score_field(q, tokens, text, threshold)
            if sc <= threshold:
                spans[field] = sp
            best = min(best, sc)
        if best <= threshold:
            out.append(MatchCandidate(record=entry.record, score=best, matched_spans=spans))

    out.sort(key=_rank_key)
    return out[:limit]


# =============================================================================
# Service
# =============================================================================
@dataclass(frozen=True)
class _Snapshot:
    catalog: Catalog
    index: FuzzyIndex
    resolver: ExactResolver


class SearchService:
    """
    Owns the catalog, its fuzzy index and the exact resolver.
    A rebuild prepares a fresh snapshot and swaps it in one assignment under a
    lock; readers grab the current snapshot once per call.
    """

    def __init__(self, catalog: Catalog, *, limit: Optional[int] = None, threshold: Optional[float] = None):
        self.default_limit = limit if limit is not None else settings.search_result_limit
        self.threshold = threshold if threshold is not None else settings.search_threshold
        self._lock = threading.Lock()
        self._snapshot = self._prepare(catalog)

    @staticmethod
    def _prepare(catalog: Catalog) -> _Snapshot:
        catalog = tuple(catalog)
        return _Snapshot(catalog=catalog, index=build_index(catalog), resolver=ExactResolver(catalog))

    @property
    def catalog(self) -> Catalog:
        return self._snapshot.catalog

    @property
    def resolver(self) -> ExactResolver:
        return self._snapshot.resolver

    def rebuild(self, catalog: Catalog) -> None:
        snap = self._prepare(catalog)
        with self._lock:
            self._snapshot = snap
        logger.info(f"Search index rebuilt with {len(snap.catalog)} records.")

    def search(self, query: Optional[str], limit: Optional[int] = None) -> List[MatchCandidate]:
        snap = self._snapshot
        n = self.default_limit if limit is None else limit
        return search(snap.index, query, n, self.threshold)

    def resolve_by_name(self, query: Optional[str]) -> Optional[str]:
        return self._snapshot.resolver.resolve_by_name(query)

    def resolve_by_symbol(self, symbol: Optional[str]) -> Optional[str]:
        return self._snapshot.resolver.resolve_by_symbol(symbol)
