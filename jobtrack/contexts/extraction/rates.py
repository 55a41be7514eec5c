"""
Exchange-rate cache for salary normalization.

Read-through cache of "units of reference currency per one unit of X" with a
fixed TTL. A refresh asks the extraction service for current rates; any
failure (timeout, malformed response, no usable rate) falls back to the static
default table and is never raised to the caller. Failed fetches are not cached,
so the next call tries again.

Concurrent refreshes are allowed; the last successful one wins.
"""

import math
import time
from typing import Any, Callable, Mapping, Optional

from jobtrack.contexts.extraction.exceptions import EstimationFailure, ExtractionError
from jobtrack.contexts.extraction.logger import _log_debug, log_fallback_defaults
from jobtrack.contexts.extraction.service import ExtractionService
from jobtrack.contexts.extraction.settings import DEFAULT_EXCHANGE_RATES, ExtractionSettings
from jobtrack.utils.llm import parse_json_object
from jobtrack.utils.timestamp import iso_date, now

RateFetcher = Callable[[], Mapping[str, Any]]


def validate_rates(raw: Mapping[str, Any], max_rate: float = 10_000.0) -> dict[str, float]:
    """
    Keep only usable rates.

    A rate is usable when it is a finite number (or numeric string) strictly
    between 0 and max_rate. Currency codes are upper-cased.

    Args:
        raw: Mapping of currency code -> rate, as returned by the service
        max_rate: Sanity ceiling (exclusive)

    Returns:
        Validated rates (possibly empty)
    """
    rates = {}
    for code, value in raw.items():
        if not isinstance(code, str) or not code.strip():
            continue
        if isinstance(value, bool):
            continue
        if isinstance(value, (int, float)):
            rate = float(value)
        elif isinstance(value, str):
            try:
                rate = float(value.strip())
            except ValueError:
                continue
        else:
            continue
        if math.isfinite(rate) and 0 < rate < max_rate:
            rates[code.strip().upper()] = rate
    return rates


class ServiceRateFetcher:
    """Asks the extraction service for current exchange rates (single attempt)."""

    def __init__(
        self,
        service: ExtractionService,
        reference_currency: str = "INR",
        timeout_seconds: float = 5.0,
        clock: Callable = now,
    ):
        self.service = service
        self.reference_currency = reference_currency
        self.timeout_seconds = timeout_seconds
        self.clock = clock

    def __call__(self) -> Mapping[str, Any]:
        ref = self.reference_currency
        system_prompt = (
            f"Return ONLY valid JSON with current exchange rates to {ref}, as units of "
            f'{ref} per one unit of each currency. Format: {{"USD": 83.5, "EUR": 90.2, ...}}'
        )
        user_prompt = f"Current exchange rates to {ref} as of {iso_date(self.clock())}?"

        try:
            response = self.service.complete(
                system_prompt,
                user_prompt,
                max_tokens=200,
                temperature=0.1,
                timeout=self.timeout_seconds,
                timeout_message="Exchange rate fetch timeout",
            )
        except ExtractionError as e:
            raise EstimationFailure("Exchange rate fetch failed", e.message) from e

        if not response.content:
            raise EstimationFailure("Empty exchange rate response")
        try:
            return parse_json_object(response.content)
        except ValueError as e:
            raise EstimationFailure("Malformed exchange rate response", response.content) from e


class ExchangeRateCache:
    """
    Process-wide exchange-rate table with get-or-refresh access.

    Args:
        fetcher: Callable returning raw rates; None means "always use defaults"
        ttl_seconds: How long a successful fetch stays fresh
        defaults: Static fallback table
        max_rate: Sanity ceiling for fetched rates
        clock: Monotonic clock (injectable for tests)

    Example:
        cache = ExchangeRateCache(ServiceRateFetcher(service))
        rates = cache.get_rates()
        rates["USD"]  # 83.5 when the fetch failed
    """

    def __init__(
        self,
        fetcher: Optional[RateFetcher],
        ttl_seconds: float = 3600.0,
        defaults: Optional[Mapping[str, float]] = None,
        max_rate: float = 10_000.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.fetcher = fetcher
        self.ttl_seconds = ttl_seconds
        self.defaults = dict(DEFAULT_EXCHANGE_RATES if defaults is None else defaults)
        self.max_rate = max_rate
        self.clock = clock
        # (rates, fetched_at)
        self._entry: Optional[tuple[dict[str, float], float]] = None

    @classmethod
    def from_settings(
        cls, settings: ExtractionSettings, service: Optional[ExtractionService]
    ) -> "ExchangeRateCache":
        fetcher = None
        if service is not None:
            fetcher = ServiceRateFetcher(
                service,
                reference_currency=settings.reference_currency,
                timeout_seconds=settings.rate_timeout_seconds,
            )
        return cls(
            fetcher,
            ttl_seconds=settings.rate_ttl_seconds,
            defaults=settings.default_rates,
            max_rate=settings.rate_max_value,
        )

    def is_fresh(self) -> bool:
        entry = self._entry
        return entry is not None and self.clock() - entry[1] < self.ttl_seconds

    def get_rates(self) -> dict[str, float]:
        """
        Current rates, refreshing after TTL expiry.

        Fetched rates override the defaults currency by currency; currencies
        missing from a fetch keep their default rate. Never raises for fetch
        failures.
        """
        entry = self._entry
        if entry is not None and self.clock() - entry[1] < self.ttl_seconds:
            return {**self.defaults, **entry[0]}

        if self.fetcher is None:
            return dict(self.defaults)

        started = self.clock()
        try:
            rates = validate_rates(self.fetcher(), self.max_rate)
            if not rates:
                raise EstimationFailure("No valid exchange rates in response")
        except ExtractionError as e:
            log_fallback_defaults(f"exchange rate refresh failed ({e.message})")
            return dict(self.defaults)
        except Exception as e:
            log_fallback_defaults(f"exchange rate refresh failed ({type(e).__name__}: {e})")
            return dict(self.defaults)

        self._entry = (rates, started)
        _log_debug(f"Exchange rates refreshed: {len(rates)} currencies")
        return {**self.defaults, **rates}

    def invalidate(self):
        """Forget the cached table so the next call refreshes."""
        self._entry = None
