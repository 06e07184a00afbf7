"""
Shared fixtures:
- a small catalog and the SearchService built from it
- a fake market data client returning synthetic daily bars
- a fake OpenAI client whose reply is set per test
"""

import json
from datetime import date, timedelta
from types import SimpleNamespace

import pytest

from kynos.models.records import PriceBar, TickerRecord
from kynos.services.search import SearchService

CATALOG_ROWS = [
    ("AAPL", "Apple Inc."),
    ("MSFT", "Microsoft Corp"),
    ("NVDA", "NVIDIA Corporation"),
    ("AMZN", "Amazon.com, Inc."),
    ("GOOGL", "Alphabet Inc. Class A"),
    ("GOOG", "Alphabet Inc. Class C"),
    ("JPM", "JPMorgan Chase & Co."),
    ("KO", "Coca-Cola Company"),
    ("T", "AT&T Inc."),
    ("TSLA", "Tesla, Inc."),
]


@pytest.fixture
def catalog():
    return tuple(TickerRecord(symbol=s, name=n) for s, n in CATALOG_ROWS)


@pytest.fixture
def service(catalog):
    return SearchService(catalog, limit=10, threshold=0.3)


def make_bars(n, start_close=100.0, step=1.0):
    start = date(2024, 1, 1)
    out = []
    for i in range(n):
        c = start_close + i * step
        out.append(PriceBar(date=(start + timedelta(days=i)).isoformat(),
                            open=c, high=c + 1, low=c - 1, close=c, volume=1000 + i))
    return out


class FakeMarket:
    def __init__(self, bars=None, error=None):
        self.bars = bars if bars is not None else make_bars(400)
        self.error = error
        self.calls = []

    def daily_bars(self, symbol, days, today=None):
        self.calls.append((symbol, days))
        if self.error is not None:
            raise self.error
        return list(self.bars)


@pytest.fixture
def market():
    return FakeMarket()


def tool_reply(company_name=None, days=None, *, name="get_stock_graph", arguments=None):
    """Chat completion whose first choice calls `name`; company_name=None and arguments=None -> prose reply."""
    if company_name is None and arguments is None:
        message = SimpleNamespace(content="I can only help with stock charts.", tool_calls=None)
    else:
        if arguments is None:
            args = {"companyName": company_name}
            if days is not None:
                args["days"] = days
            arguments = json.dumps(args)
        call = SimpleNamespace(id="call_1", type="function",
                               function=SimpleNamespace(name=name, arguments=arguments))
        message = SimpleNamespace(content=None, tool_calls=[call])
    return SimpleNamespace(choices=[SimpleNamespace(message=message)])


class FakeOpenAI:
    def __init__(self, reply=None, error=None):
        self.reply = reply
        self.error = error
        self.requests = []
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=self._create))

    def _create(self, **kwargs):
        self.requests.append(kwargs)
        if self.error is not None:
            raise self.error
        return self.reply


@pytest.fixture
def fake_openai():
    return FakeOpenAI()
