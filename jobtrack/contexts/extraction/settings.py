"""
Extraction settings for the Extraction context.

Tunables are read from configs/extraction.yaml with OmegaConf. The YAML uses
oc.env interpolations so every value can be overridden from the environment.
Credentials come from the environment only and are never stored in YAML.
"""

import dataclasses
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional

from dotenv import load_dotenv
from omegaconf import OmegaConf

load_dotenv()

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parents[2] / "configs" / "extraction.yaml"

DEFAULT_EXCHANGE_RATES = {
    "USD": 83.5,
    "EUR": 90.2,
    "GBP": 105.3,
    "CAD": 61.5,
    "AUD": 54.8,
    "SGD": 61.2,
    "JPY": 0.56,
    "CHF": 93.5,
}


@dataclass(frozen=True)
class ExtractionSettings:
    """
    Tunables for one extraction pipeline.

    Defaults match configs/extraction.yaml so tests can build settings
    directly without touching the filesystem.
    """

    api_key: Optional[str] = None

    # Upstream extraction service
    provider: str = "openai"
    model: str = "gpt-4o-mini"
    timeout_seconds: float = 45.0
    max_response_tokens: int = 4000
    temperature: float = 0.15

    # Primary extraction retry policy
    max_retries: int = 2
    base_delay_seconds: float = 1.0

    # Input budget (characters sent upstream)
    max_input_chars: int = 60_000

    # Exchange-rate cache
    rate_ttl_seconds: float = 3600.0
    rate_timeout_seconds: float = 5.0
    rate_max_value: float = 10_000.0
    default_rates: Mapping[str, float] = field(
        default_factory=lambda: dict(DEFAULT_EXCHANGE_RATES)
    )

    # Salary normalization
    reference_currency: str = "INR"
    estimate_timeout_seconds: float = 10.0
    estimate_temperature: float = 0.3

    # Technology fallback extraction thresholds
    tech_fallback_max_items: int = 80
    tech_skip_table_items: int = 50
    tech_skip_table_text_chars: int = 10_000

    @property
    def has_credentials(self) -> bool:
        return bool(self.api_key)


def load_settings(path: Optional[Path] = None, **overrides) -> ExtractionSettings:
    """
    Load extraction settings from YAML and the environment.

    Args:
        path: Config file (default: JOBTRACK_CONFIG_PATH or the packaged
              configs/extraction.yaml)
        **overrides: Field values that take precedence over the file

    Returns:
        ExtractionSettings instance
    """
    if path is None:
        path = Path(os.getenv("JOBTRACK_CONFIG_PATH", str(DEFAULT_CONFIG_PATH)))

    conf = OmegaConf.to_container(OmegaConf.load(path), resolve=True)

    service = conf.get("service", {})
    retry = conf.get("retry", {})
    rates = conf.get("rates", {})
    salary = conf.get("salary", {})
    tech = conf.get("tech", {})

    settings = ExtractionSettings(
        api_key=os.getenv("OPENAI_API_KEY") or None,
        provider=str(service.get("provider", "openai")),
        model=str(service.get("model", "gpt-4o-mini")),
        timeout_seconds=float(service.get("timeout_seconds", 45)),
        max_response_tokens=int(service.get("max_response_tokens", 4000)),
        temperature=float(service.get("temperature", 0.15)),
        max_retries=int(retry.get("max_retries", 2)),
        base_delay_seconds=float(retry.get("base_delay_seconds", 1.0)),
        max_input_chars=int(conf.get("input", {}).get("max_chars", 60_000)),
        rate_ttl_seconds=float(rates.get("ttl_seconds", 3600)),
        rate_timeout_seconds=float(rates.get("timeout_seconds", 5)),
        rate_max_value=float(rates.get("max_rate", 10_000)),
        default_rates={
            str(code).upper(): float(rate)
            for code, rate in (rates.get("defaults") or DEFAULT_EXCHANGE_RATES).items()
        },
        reference_currency=str(salary.get("reference_currency", "INR")).upper(),
        estimate_timeout_seconds=float(salary.get("estimate_timeout_seconds", 10)),
        estimate_temperature=float(salary.get("estimate_temperature", 0.3)),
        tech_fallback_max_items=int(tech.get("fallback_max_items", 80)),
        tech_skip_table_items=int(tech.get("skip_table_items", 50)),
        tech_skip_table_text_chars=int(tech.get("skip_table_text_chars", 10_000)),
    )

    if overrides:
        settings = dataclasses.replace(settings, **overrides)
    return settings
