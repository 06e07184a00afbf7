"""Tests for kynos.services.intent (function-calling resolver + prompt flow)."""

import pytest
from openai import OpenAIError

from conftest import FakeMarket, FakeOpenAI, make_bars, tool_reply

from kynos.core.errors import CompanyNotFound, Unprocessable, UpstreamError
from kynos.services.intent import FUNCTION_NAME, IntentFlow, OpenAIIntentResolver


def _flow(service, openai_client, market=None):
    resolver = OpenAIIntentResolver(api_key="test", model="test-model", timeout_s=1.0, client=openai_client)
    return IntentFlow(service, resolver, market or FakeMarket(), default_days=365)


def test_prompt_resolves_to_symbol_and_days(service):
    client = FakeOpenAI(reply=tool_reply("Microsoft Corp", 90))
    market = FakeMarket(bars=make_bars(120))

    body, status = _flow(service, client, market).run("Microsoft last 90 days")

    assert status == 200
    assert body["ticker"] == "MSFT"
    assert body["companyName"] == "Microsoft Corp"
    assert body["days"] == 90
    assert len(body["chartData"]) == 90
    assert body["chartData"][-1]["date"] == make_bars(120)[-1].date
    assert market.calls == [("MSFT", 90)]


def test_request_carries_tool_schema_and_names(service):
    client = FakeOpenAI(reply=tool_reply("Microsoft Corp", 90))
    _flow(service, client).run("Microsoft last 90 days")

    req = client.requests[0]
    assert req["model"] == "test-model"
    assert req["tools"][0]["function"]["name"] == FUNCTION_NAME
    assert req["tools"][0]["function"]["parameters"]["required"] == ["companyName"]
    assert "Microsoft Corp" in req["messages"][0]["content"]
    assert req["messages"][1] == {"role": "user", "content": "Microsoft last 90 days"}


def test_unknown_company_is_reported_by_name(service):
    client = FakeOpenAI(reply=tool_reply("Not A Real Company", 30))

    body, status = _flow(service, client).run("Not A Real Company for a month")

    assert status == 400
    assert 'Company "Not A Real Company" not found' in body["error"]


def test_unknown_company_raises_from_resolve(service):
    client = FakeOpenAI(reply=tool_reply("Not A Real Company", 30))

    with pytest.raises(CompanyNotFound) as exc:
        _flow(service, client).resolve("Not A Real Company for a month")
    assert exc.value.company_name == "Not A Real Company"


def test_prose_reply_is_unprocessable(service):
    client = FakeOpenAI(reply=tool_reply())

    body, status = _flow(service, client).run("tell me a joke")

    assert status == 400
    assert body == {"error": "Unable to process the request"}


def test_other_function_is_unprocessable(service):
    client = FakeOpenAI(reply=tool_reply("Apple Inc.", name="get_weather"))

    with pytest.raises(Unprocessable):
        _flow(service, client).resolve("weather in Cupertino")


def test_blank_prompt_skips_the_model(service):
    client = FakeOpenAI(reply=tool_reply("Apple Inc.", 10))

    body, status = _flow(service, client).run("   ")

    assert status == 400
    assert client.requests == []


@pytest.mark.parametrize("days", [None, 0, -30])
def test_missing_or_non_positive_days_default_to_a_year(service, days):
    client = FakeOpenAI(reply=tool_reply("Apple Inc.", days))
    market = FakeMarket(bars=make_bars(400))

    body, status = _flow(service, client, market).run("Apple")

    assert status == 200
    assert body["days"] == 365
    assert len(body["chartData"]) == 365


def test_infinite_days_default_to_a_year(service):
    client = FakeOpenAI(reply=tool_reply(arguments='{"companyName": "Microsoft Corp", "days": Infinity}'))
    market = FakeMarket(bars=make_bars(400))

    body, status = _flow(service, client, market).run("Microsoft forever")

    assert status == 200
    assert body["ticker"] == "MSFT"
    assert body["days"] == 365


def test_case_insensitive_company_name(service):
    client = FakeOpenAI(reply=tool_reply("nvidia corporation", 5))

    symbol, company, days = _flow(service, client).resolve("nvidia this week")

    assert (symbol, company, days) == ("NVDA", "nvidia corporation", 5)


def test_malformed_arguments_are_upstream_errors(service):
    client = FakeOpenAI(reply=tool_reply(arguments="{not json"))

    with pytest.raises(UpstreamError):
        _flow(service, client).resolve("Apple")

    body, status = _flow(service, client).run("Apple")
    assert status == 500
    assert body["error"].startswith("Failed to process request:")


def test_arguments_without_company_are_upstream_errors(service):
    client = FakeOpenAI(reply=tool_reply(arguments='{"days": 10}'))

    with pytest.raises(UpstreamError):
        _flow(service, client).resolve("ten days of something")


def test_openai_failure_is_wrapped(service):
    client = FakeOpenAI(error=OpenAIError("service unavailable"))

    body, status = _flow(service, client).run("Apple")

    assert status == 500
    assert body == {"error": "Failed to process request: service unavailable"}


def test_market_failure_is_wrapped(service):
    client = FakeOpenAI(reply=tool_reply("Apple Inc.", 10))
    market = FakeMarket(error=UpstreamError("Polygon API returned HTTP 500"))

    body, status = _flow(service, client, market).run("Apple")

    assert status == 500
    assert "Polygon API returned HTTP 500" in body["error"]


def test_unexpected_error_is_wrapped(service):
    client = FakeOpenAI(reply=tool_reply("Apple Inc.", 10))
    market = FakeMarket(error=RuntimeError("boom"))

    body, status = _flow(service, client, market).run("Apple")

    assert status == 500
    assert body == {"error": "Failed to process request: boom"}


def test_missing_api_key():
    resolver = OpenAIIntentResolver(api_key="", model="m", timeout_s=1.0)

    with pytest.raises(UpstreamError, match="OPENAI_API_KEY"):
        resolver.extract("Apple", ["Apple Inc."])
