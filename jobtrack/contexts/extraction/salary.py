"""
Salary normalization for the Extraction context.

Converts a stated salary to the reference currency per year, or, when the
posting states no salary, asks the extraction service for a market estimate.
Exchange-rate and estimate failures degrade to defaults and nulls; nothing in
this module raises to the pipeline.

Paths, evaluated in order:
1. Stated with a known non-reference currency: convert at the cached rate,
   then annualize.
2. Stated without a currency (or already in the reference currency):
   annualize only.
3. Not stated: estimate when role, experience and location are all known.
"""

import math
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Optional

from jobtrack.contexts.extraction.exceptions import EstimationFailure, ExtractionError
from jobtrack.contexts.extraction.logger import _log_debug, _log_info, _log_warning
from jobtrack.contexts.extraction.rates import ExchangeRateCache
from jobtrack.contexts.extraction.sanitizer import MAX_NUMBER, sanitize_number
from jobtrack.contexts.extraction.service import ExtractionService
from jobtrack.contexts.extraction.settings import ExtractionSettings
from jobtrack.utils.llm import parse_json_object

# 40 hours/week x 52 weeks
HOURS_PER_YEAR = 2080

PERIOD_MULTIPLIERS = {
    "hourly": HOURS_PER_YEAR,
    "monthly": 12,
    "yearly": 1,
}

NOT_SPECIFIED = "Not specified"


@dataclass(frozen=True)
class SalaryResult:
    """Salary after normalization; currency and period are set iff an amount is."""

    min: Optional[int] = None
    max: Optional[int] = None
    currency: Optional[str] = None
    period: Optional[str] = None
    estimated: bool = False

    @property
    def has_salary(self) -> bool:
        return self.min is not None or self.max is not None


def _ordered(low: Optional[int], high: Optional[int]) -> tuple[Optional[int], Optional[int]]:
    if low is not None and high is not None and low > high:
        return high, low
    return low, high


def _scale(amount: Optional[float], factor: float) -> Optional[int]:
    """Multiply and round; None when the result is not finite or exceeds the bound."""
    if amount is None:
        return None
    value = amount * factor
    if not math.isfinite(value) or value < 0 or value > MAX_NUMBER:
        return None
    return int(math.floor(value + 0.5))


def convert_to_reference(
    salary_min: Optional[int],
    salary_max: Optional[int],
    rate: float,
    period: Optional[str],
) -> tuple[Optional[int], Optional[int]]:
    """
    Convert an amount pair to the reference currency per year.

    Args:
        salary_min: Lower bound in the source currency and period
        salary_max: Upper bound in the source currency and period
        rate: Units of reference currency per unit of source currency
        period: hourly / monthly / yearly (None means yearly)

    Returns:
        (min, max) as rounded integers; a bound that would exceed 1e9 is
        dropped to None
    """
    multiplier = PERIOD_MULTIPLIERS.get(period or "yearly", 1)
    low = _scale(salary_min, rate * multiplier)
    high = _scale(salary_max, rate * multiplier)
    return _ordered(low, high)


class SalaryEstimator:
    """
    Best-effort market salary range from the extraction service.

    One bounded-timeout, low-temperature request, no retries. Any failure,
    including an unexpected provider exception, returns (None, None).
    """

    def __init__(
        self,
        service: ExtractionService,
        reference_currency: str = "INR",
        timeout_seconds: float = 10.0,
        temperature: float = 0.3,
    ):
        self.service = service
        self.reference_currency = reference_currency
        self.timeout_seconds = timeout_seconds
        self.temperature = temperature

    def _request(self, role: str, experience: str, location: str) -> dict:
        ref = self.reference_currency
        system_prompt = (
            "You are a salary research assistant. Give current market salary ranges "
            f"for the role, experience level and location provided. Return ONLY valid JSON "
            f"with a yearly range in {ref}: "
            '{"min": number, "max": number}. Either bound may be null. '
            'If you have no reliable data, return {"min": null, "max": null}.'
        )
        user_prompt = (
            f"What is the typical yearly salary range in {ref} for a {role} position "
            f"requiring {experience} of experience in {location}?"
        )
        try:
            response = self.service.complete(
                system_prompt,
                user_prompt,
                max_tokens=150,
                temperature=self.temperature,
                timeout=self.timeout_seconds,
                timeout_message="Salary estimate timeout",
            )
        except ExtractionError as e:
            raise EstimationFailure("Salary estimate request failed", e.message) from e

        if not response.content:
            raise EstimationFailure("Empty salary estimate response")
        try:
            return parse_json_object(response.content)
        except ValueError as e:
            raise EstimationFailure("Malformed salary estimate response", response.content) from e

    def estimate(
        self, role: str, experience: str, location: str
    ) -> tuple[Optional[int], Optional[int]]:
        """
        Estimate a yearly range in the reference currency.

        Returns:
            (min, max), ordered; (None, None) when no usable estimate exists
        """
        try:
            payload = self._request(role, experience, location)
        except EstimationFailure as e:
            _log_warning(f"Salary estimation failed: {e.message}")
            return None, None
        except Exception as e:
            _log_warning(f"Salary estimation failed unexpectedly ({type(e).__name__}): {e}")
            return None, None
        return _ordered(sanitize_number(payload.get("min")), sanitize_number(payload.get("max")))


class SalaryNormalizer:
    """
    Applies the three salary paths and enforces the currency invariant.

    The exchange-rate lookup and the estimate are independent calls. Whichever
    are needed are issued on a small worker pool and awaited together.
    """

    def __init__(
        self,
        rate_cache: ExchangeRateCache,
        estimator: Optional[SalaryEstimator] = None,
        reference_currency: str = "INR",
    ):
        self.rate_cache = rate_cache
        self.estimator = estimator
        self.reference_currency = reference_currency.upper()

    @classmethod
    def from_settings(
        cls, settings: ExtractionSettings, service: Optional[ExtractionService]
    ) -> "SalaryNormalizer":
        estimator = None
        if service is not None:
            estimator = SalaryEstimator(
                service,
                reference_currency=settings.reference_currency,
                timeout_seconds=settings.estimate_timeout_seconds,
                temperature=settings.estimate_temperature,
            )
        return cls(
            ExchangeRateCache.from_settings(settings, service),
            estimator=estimator,
            reference_currency=settings.reference_currency,
        )

    def _should_estimate(self, role: str, experience: str, location: str) -> bool:
        if self.estimator is None:
            return False
        return bool(role and location and experience and experience != NOT_SPECIFIED)

    def _gather(
        self, need_rates: bool, need_estimate: bool, role: str, experience: str, location: str
    ) -> tuple[Optional[dict], tuple[Optional[int], Optional[int]]]:
        """Issue the needed lookups side by side and wait for both."""
        if not (need_rates or need_estimate):
            return None, (None, None)
        with ThreadPoolExecutor(max_workers=2, thread_name_prefix="jobtrack-salary") as pool:
            rates_future = pool.submit(self.rate_cache.get_rates) if need_rates else None
            estimate_future = (
                pool.submit(self.estimator.estimate, role, experience, location)
                if need_estimate
                else None
            )
            rates = rates_future.result() if rates_future else None
            estimate = estimate_future.result() if estimate_future else (None, None)
        return rates, estimate

    def normalize(
        self,
        salary_min: Optional[int],
        salary_max: Optional[int],
        currency: Optional[str],
        period: Optional[str],
        estimated: bool,
        role: str,
        experience: str,
        location: str,
    ) -> SalaryResult:
        """
        Normalize a salary to the reference currency per year.

        Args:
            salary_min: Sanitized lower bound in source units
            salary_max: Sanitized upper bound in source units
            currency: 3-letter code or None
            period: hourly / monthly / yearly or None (treated as yearly)
            estimated: Flag reported by the service; never trusted, only a
                       salary filled by the estimator is marked estimated
            role: Role used for estimation
            experience: Experience used for estimation
            location: Location used for estimation

        Returns:
            SalaryResult satisfying: min <= max, and currency/period set to the
            reference currency and "yearly" whenever an amount is present
        """
        ref = self.reference_currency
        salary_min, salary_max = _ordered(salary_min, salary_max)
        has_salary = SalaryResult(min=salary_min, max=salary_max).has_salary
        currency = currency.upper() if currency else None

        if estimated and has_salary:
            _log_debug("Ignoring service-reported salaryEstimated for a stated salary")

        need_rates = has_salary and currency is not None and currency != ref
        need_estimate = not has_salary and self._should_estimate(role, experience, location)
        rates, (est_min, est_max) = self._gather(
            need_rates, need_estimate, role, experience, location
        )

        if need_rates:
            rate = rates.get(currency)
            if rate is None:
                _log_warning(f"No exchange rate for {currency}; dropping stated salary")
                return SalaryResult()
            low, high = convert_to_reference(salary_min, salary_max, rate, period)
            return self._finish(low, high, estimated=False)

        if has_salary:
            low, high = convert_to_reference(salary_min, salary_max, 1.0, period)
            return self._finish(low, high, estimated=False)

        if est_min is not None or est_max is not None:
            _log_info(f"Estimated salary for '{role}': {est_min} - {est_max} {ref}")
            return self._finish(est_min, est_max, estimated=True)

        return SalaryResult()

    def _finish(self, low: Optional[int], high: Optional[int], estimated: bool) -> SalaryResult:
        low, high = _ordered(low, high)
        result = SalaryResult(
            min=low,
            max=high,
            currency=self.reference_currency,
            period="yearly",
            estimated=estimated,
        )
        return result if result.has_salary else SalaryResult()
