from typing import Dict, List, Optional, Tuple
from pydantic import BaseModel, Field, ConfigDict

Span = Tuple[int, int]  # (start, end) inclusive


class TickerRecord(BaseModel):
    symbol: str
    name: str

    model_config = ConfigDict(frozen=True)


# ordered, unique by symbol
Catalog = Tuple[TickerRecord, ...]


class RawTicker(BaseModel):
    # SEC company_tickers.json entry; cik_str is carried but unused
    ticker: str
    title: str
    cik_str: Optional[int] = None

    model_config = ConfigDict(extra="ignore")


class MatchCandidate(BaseModel):
    record: TickerRecord
    score: float = Field(ge=0.0, le=1.0)  # 0 = perfect
    matched_spans: Dict[str, List[Span]] = Field(default_factory=dict)


class ResolvedSelection(BaseModel):
    symbol: str
    name: str

    @property
    def label(self) -> str:
        return f"{self.name} ({self.symbol})"


class PriceBar(BaseModel):
    date: str  # YYYY-MM-DD
    open: float
    high: float
    low: float
    close: float
    volume: float


class SeriesSummary(BaseModel):
    first_close: Optional[float] = None
    last_close: Optional[float] = None
    percent_change: float = 0.0
    trend: str = "unchanged"  # up | down | unchanged
    y_domain: Tuple[float, float] = (0.0, 100.0)


class StockSeries(BaseModel):
    ticker: str
    companyName: str
    days: int
    chartData: List[PriceBar]
    summary: SeriesSummary


class StockRequest(BaseModel):
    symbol: str
    name: str = ""
    days: Optional[int] = None


class PromptRequest(BaseModel):
    prompt: str = ""
