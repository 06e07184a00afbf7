import math
from io import BytesIO
from typing import List, Optional, Sequence

import pandas as pd

from kynos.models.records import PriceBar, SeriesSummary

CSV_COLUMNS = ["date", "open", "high", "low", "close", "volume"]
MAX_DAYS = 36500  # 100 years of calendar days


def normalize_days(days: Optional[float], default: int = 365) -> int:
    """
    Missing, null, non-numeric, infinite or non-positive day counts fall back
    to the default; anything above MAX_DAYS is capped.
    """
    try:
        n = int(days) if days is not None else 0
    except (TypeError, ValueError, OverflowError):
        return default
    if n <= 0:
        return default
    return min(n, MAX_DAYS)


def last_n(bars: Sequence[PriceBar], days: int) -> List[PriceBar]:
    if days <= 0:
        return []
    return list(bars[-days:])


def _frame(bars: Sequence[PriceBar]) -> pd.DataFrame:
    return pd.DataFrame([b.model_dump() for b in bars], columns=CSV_COLUMNS)


def summarize(bars: Sequence[PriceBar]) -> SeriesSummary:
    """
    Numbers shown next to the chart:
      - percent_change: first close -> last close, 0 with fewer than two bars
      - trend: up / down / unchanged
      - y_domain: min/max close padded by 10% of the range, floored/ceiled
    """
    if not bars:
        return SeriesSummary()
    closes = _frame(bars)["close"].astype(float)
    first, last = float(closes.iloc[0]), float(closes.iloc[-1])

    pct = 0.0
    if len(closes) >= 2 and first != 0:
        pct = (last - first) / first * 100.0
    trend = "up" if pct > 0 else "down" if pct < 0 else "unchanged"

    lo, hi = float(closes.min()), float(closes.max())
    pad = (hi - lo) * 0.1
    return SeriesSummary(
        first_close=first,
        last_close=last,
        percent_change=round(pct, 2),
        trend=trend,
        y_domain=(float(math.floor(lo - pad)), float(math.ceil(hi + pad))),
    )


def describe_change(summary: SeriesSummary) -> str:
    if summary.trend == "up":
        return f"Trending up by {summary.percent_change:.2f}% this period"
    if summary.trend == "down":
        return f"Trending down by {abs(summary.percent_change):.2f}% this period"
    return "Unchanged this period"


def to_csv_bytes(bars: Sequence[PriceBar]) -> bytes:
    df = _frame(bars)
    bio = BytesIO()
    df.to_csv(bio, index=False)
    return bio.getvalue()
