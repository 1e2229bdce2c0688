"""Tests for the exchange rate client and conversion helpers."""

from decimal import Decimal

import pytest
import requests

from app.core import exchange_rate
from app.core.exchange_rate import (
    ExchangeRateProvider,
    FALLBACK_REVERSE_RATE,
    calculate_estimated_result,
    calculate_reverse_rate,
)


class FakeResponse:
    def __init__(self, payload, status_code=200):
        self.payload = payload
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        return self.payload


class FakeMonotonic:
    def __init__(self):
        self.value = 1000.0

    def __call__(self):
        return self.value


@pytest.fixture
def monotonic():
    return FakeMonotonic()


@pytest.fixture
def provider(monotonic):
    return ExchangeRateProvider(
        url="https://prices.example.com/eth",
        ttl_seconds=300,
        timeout_seconds=5,
        fallback_rate=Decimal("2074"),
        monotonic=monotonic,
    )


def serve(monkeypatch, *responses):
    """Answer successive requests.get calls with the given responses."""
    calls = []
    queue = list(responses)

    def fake_get(url, timeout):
        calls.append((url, timeout))
        response = queue.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    monkeypatch.setattr(exchange_rate.requests, "get", fake_get)
    return calls


def test_reverse_rate():
    assert calculate_reverse_rate(Decimal("2000")) == Decimal("0.0005")
    assert calculate_reverse_rate(0) == FALLBACK_REVERSE_RATE


def test_estimated_result():
    assert calculate_estimated_result("2", Decimal("2074"), Decimal("0.000482"), "eth_to_usdt") == Decimal("4148")
    assert calculate_estimated_result("1000", Decimal("2074"), Decimal("0.000482"), "usdt_to_eth") == Decimal("0.482")


def test_estimated_result_for_empty_or_invalid_amount():
    assert calculate_estimated_result("", Decimal("2074"), Decimal("0.000482"), "eth_to_usdt") is None
    assert calculate_estimated_result(None, Decimal("2074"), Decimal("0.000482"), "eth_to_usdt") is None
    assert calculate_estimated_result("abc", Decimal("2074"), Decimal("0.000482"), "eth_to_usdt") is None


def test_live_rate_is_cached_for_ttl(provider, monotonic, monkeypatch):
    """A live quote is reused until the TTL passes."""
    calls = serve(
        monkeypatch,
        FakeResponse({"ethereum": {"usd": 3100.5}}),
        FakeResponse({"ethereum": {"usd": 3200}}),
    )

    first = provider.get_quote()
    assert first.rate == Decimal("3100.5")
    assert first.source == "live"

    monotonic.value += 299
    assert provider.get_quote().rate == Decimal("3100.5")
    assert len(calls) == 1

    monotonic.value += 2
    assert provider.get_quote().rate == Decimal("3200")
    assert len(calls) == 2
    assert calls[0] == ("https://prices.example.com/eth", 5)


def test_fallback_on_network_error(provider, monkeypatch):
    serve(monkeypatch, requests.ConnectionError("down"))

    quote = provider.get_quote()
    assert quote.rate == Decimal("2074")
    assert quote.source == "fallback"


def test_fallback_on_malformed_payload(provider, monkeypatch):
    serve(monkeypatch, FakeResponse({"bitcoin": {"usd": 1}}))
    assert provider.fetch_exchange_rate() == Decimal("2074")


def test_fallback_on_http_error(provider, monkeypatch):
    serve(monkeypatch, FakeResponse({}, status_code=503))
    assert provider.get_quote().source == "fallback"


def test_fallback_quote_is_not_cached(provider, monkeypatch):
    """After an outage the next call tries the API again."""
    calls = serve(
        monkeypatch,
        requests.Timeout("slow"),
        FakeResponse({"ethereum": {"usd": 2500}}),
    )

    assert provider.get_quote().source == "fallback"
    quote = provider.get_quote()
    assert quote.source == "live"
    assert quote.rate == Decimal("2500")
    assert len(calls) == 2
