"""
Shared utilities for JOBTRACK.

Common functionality used across contexts:
- LLM provider abstraction and JSON response parsing
- Logging setup
- Date helpers
"""

from jobtrack.utils.llm import LLMProvider, LLMResponse, parse_json_object, retry_with_backoff
from jobtrack.utils.timestamp import iso_date, now

__all__ = [
    "LLMProvider",
    "LLMResponse",
    "parse_json_object",
    "retry_with_backoff",
    "iso_date",
    "now",
]
