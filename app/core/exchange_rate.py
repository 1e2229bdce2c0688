"""
ETH/USD exchange rate client
Fetches the spot price from CoinGecko, caches it, and falls back to a fixed
rate whenever the API is unreachable or answers with something unexpected.
"""

import logging
import threading
import time
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Callable, Optional, Union

import requests

from app.core.clock import utcnow
from app.core.config import settings
from app.models.transaction import ExchangeDirection

logger = logging.getLogger(__name__)

FALLBACK_REVERSE_RATE = Decimal("0.000482")

Number = Union[Decimal, int, float]


def calculate_reverse_rate(rate: Number) -> Decimal:
    """USDT -> ETH rate from an ETH -> USDT rate"""
    rate = Decimal(str(rate))
    return Decimal(1) / rate if rate > 0 else FALLBACK_REVERSE_RATE


def calculate_estimated_result(
    amount: Optional[str],
    exchange_rate: Number,
    reverse_exchange_rate: Number,
    direction: Union[ExchangeDirection, str],
) -> Optional[Decimal]:
    """
    Estimated output of an exchange.

    Returns None when amount is empty or not a number.
    """
    if amount is None or str(amount).strip() == "":
        return None

    try:
        value = Decimal(str(amount).strip())
    except InvalidOperation:
        return None

    if not value.is_finite():
        return None

    rate = exchange_rate if ExchangeDirection(direction) == ExchangeDirection.ETH_TO_USDT else reverse_exchange_rate
    return value * Decimal(str(rate))


@dataclass
class RateQuote:
    rate: Decimal
    source: str  # "live" or "fallback"
    fetched_at: datetime

    @property
    def reverse_rate(self) -> Decimal:
        return calculate_reverse_rate(self.rate)


class ExchangeRateProvider:
    """Caches live quotes for ``ttl_seconds``; fallback quotes are never cached"""

    def __init__(
        self,
        url: str,
        ttl_seconds: int,
        timeout_seconds: float,
        fallback_rate: Decimal,
        monotonic: Callable[[], float] = time.monotonic,
    ):
        self.url = url
        self.ttl_seconds = ttl_seconds
        self.timeout_seconds = timeout_seconds
        self.fallback_rate = fallback_rate
        self._monotonic = monotonic
        self._cached: Optional[RateQuote] = None
        self._cached_at: Optional[float] = None
        self._lock = threading.Lock()

    def fetch_exchange_rate(self) -> Decimal:
        """Current ETH/USD rate, the fallback rate when the API is unavailable"""
        return self.get_quote().rate

    def _request_rate(self) -> Optional[Decimal]:
        """One request to the price API; None on any failure"""
        try:
            response = requests.get(self.url, timeout=self.timeout_seconds)
            response.raise_for_status()
            data = response.json()
            rate = Decimal(str(data["ethereum"]["usd"]))
        except (requests.RequestException, ValueError, KeyError, TypeError, InvalidOperation) as e:
            logger.error(f"Error fetching exchange rate: {e}")
            return None

        if not rate.is_finite() or rate <= 0:
            logger.error(f"Exchange rate API returned an unusable rate: {rate}")
            return None
        return rate

    def get_quote(self) -> RateQuote:
        with self._lock:
            now = self._monotonic()
            if self._cached is not None and now - self._cached_at < self.ttl_seconds:
                return self._cached

            rate = self._request_rate()
            if rate is None:
                return RateQuote(rate=self.fallback_rate, source="fallback", fetched_at=utcnow())

            self._cached = RateQuote(rate=rate, source="live", fetched_at=utcnow())
            self._cached_at = now
            return self._cached

    def invalidate(self) -> None:
        with self._lock:
            self._cached = None
            self._cached_at = None


exchange_rate_provider = ExchangeRateProvider(
    url=settings.EXCHANGE_RATE_URL,
    ttl_seconds=settings.EXCHANGE_RATE_TTL_SECONDS,
    timeout_seconds=settings.EXCHANGE_RATE_TIMEOUT_SECONDS,
    fallback_rate=settings.FALLBACK_ETH_USD_RATE,
)


def get_exchange_rate_provider() -> ExchangeRateProvider:
    return exchange_rate_provider
