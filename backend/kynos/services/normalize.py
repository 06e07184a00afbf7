import re
import unicodedata
from functools import lru_cache
from typing import Optional, Tuple

_WS_RE = re.compile(r"\s+")
_TOKEN_RE = re.compile(r"[a-z0-9]+")


@lru_cache(maxsize=16384)
def _unaccent(s: str) -> str:
    return unicodedata.normalize("NFKD", s or "").encode("ascii", "ignore").decode("ascii")


def normalize_key(value: Optional[str]) -> str:
    """
    Key used for exact lookups:
    - surrounding whitespace trimmed, inner runs collapsed to one space
    - lowercased
    Nothing else is stripped, so "Apple Inc" and "Apple" stay distinct.
    """
    if not value:
        return ""
    return _WS_RE.sub(" ", value.strip()).lower()


@lru_cache(maxsize=4096)
def _fold_char(c: str) -> str:
    base = _unaccent(c).lower()
    if len(base) == 1:
        return base
    low = c.lower()
    return low if len(low) == 1 else c


def fold(value: str) -> str:
    """
    Unaccent and lowercase without changing length, so offsets map back onto
    the original. Characters with no single-character fold are kept as-is.
    """
    return "".join(_fold_char(c) for c in value)


@lru_cache(maxsize=16384)
def tokenize(query: str) -> Tuple[str, ...]:
    """Alphanumeric tokens of a search query, unaccented and lowercased."""
    return tuple(_TOKEN_RE.findall(_unaccent(query).lower()))
