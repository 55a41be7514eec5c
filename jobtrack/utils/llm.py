"""
LLM provider abstraction and response parsing utilities.

Provides a provider-agnostic interface for single LLM API calls, a generic
exponential-backoff retry helper, and salvage parsing for JSON object responses.
"""

import json
import os
import re
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Optional, TypeVar

from dotenv import load_dotenv
from loguru import logger

load_dotenv()

# Retry configuration (callers normally pass values from settings)
MAX_RETRIES = 2
BASE_DELAY = 1.0

T = TypeVar("T")

_CODE_FENCE_OPEN = re.compile(r"^```[a-zA-Z]*\s*")
_CODE_FENCE_CLOSE = re.compile(r"\s*```$")


def retry_with_backoff(
    operation: Callable[[], T],
    is_retryable: Callable[[Exception], bool],
    max_retries: int = MAX_RETRIES,
    base_delay: float = BASE_DELAY,
    error_message: str = "Transient error",
    sleep: Callable[[float], None] = time.sleep,
    before_sleep: Optional[Callable[[int, float, Exception], None]] = None,
) -> T:
    """
    Execute operation with exponential backoff retry on retryable exceptions.

    The operation runs at most ``max_retries + 1`` times. Retry number ``n``
    (1-based) waits ``base_delay * 2 ** (n - 1)`` seconds first. Exceptions for
    which ``is_retryable`` returns False are re-raised immediately, and the last
    retryable exception is re-raised once retries are exhausted.

    Args:
        operation: Callable that performs the API request and returns result
        is_retryable: Predicate deciding whether an exception triggers a retry
        max_retries: Number of retries after the first attempt
        base_delay: Delay before the first retry, in seconds
        error_message: Message prefix for retry logging (e.g., "Rate limit hit")
        sleep: Sleep function (injectable for tests)
        before_sleep: Optional hook called as (attempt_number, delay, exception)
                      instead of the default warning log
    """
    attempts = max_retries + 1
    for attempt in range(attempts):
        try:
            return operation()
        except Exception as exc:
            if not is_retryable(exc) or attempt == attempts - 1:
                raise
            delay = base_delay * (2**attempt)
            if before_sleep is not None:
                before_sleep(attempt + 1, delay, exc)
            else:
                logger.warning(
                    f"{error_message}: {exc}. Retrying in {delay:.1f}s "
                    f"(attempt {attempt + 1}/{attempts})"
                )
            sleep(delay)
    raise RuntimeError("retry_with_backoff exited without a result")


# --- LLM Provider Classes ---


@dataclass
class LLMResponse:
    """Response from an LLM provider."""

    content: Optional[str]
    model: str
    input_tokens: int
    output_tokens: int
    finish_reason: Optional[str] = None


class LLMProvider(ABC):
    """
    Abstract base for LLM providers.

    Subclasses must:
    - Set _provider_prefix class attribute (e.g., "openai")
    - Implement _call_api() for the actual API call
    - Call update_model(model) in __init__ to set model and name

    generate() makes exactly one call. Retrying is the caller's decision, since
    only the caller knows which failures are worth another attempt.
    """

    _provider_prefix: str

    name: str
    model: str

    def update_model(self, model: str):
        """Update the model and refresh the provider name."""
        self.model = model
        self.name = f"{self._provider_prefix}/{model}"

    @abstractmethod
    def _call_api(
        self,
        system_prompt: str,
        user_prompt: str,
        max_tokens: int,
        temperature: float,
        timeout: Optional[float],
    ) -> LLMResponse:
        """Make a single API call (no retries). Implemented by subclasses."""
        pass

    def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        max_tokens: int = 2048,
        temperature: float = 0.2,
        timeout: Optional[float] = None,
    ) -> LLMResponse:
        """Generate a JSON-object response from the LLM (single attempt)."""
        response = self._call_api(system_prompt, user_prompt, max_tokens, temperature, timeout)
        logger.debug(
            f"{self.name}: {response.input_tokens} in / {response.output_tokens} out, "
            f"finish_reason={response.finish_reason}"
        )
        return response


class OpenAIProvider(LLMProvider):
    """OpenAI chat completions provider using JSON object response format."""

    _provider_prefix = "openai"

    def __init__(
        self,
        model: str = "gpt-4o-mini",
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        # Lazy import - openai SDK is heavy, only load if this provider is used
        import openai

        api_key = api_key or os.getenv("OPENAI_API_KEY")
        if not api_key:
            raise ValueError("OPENAI_API_KEY environment variable not set")

        client_kwargs = {"api_key": api_key, "max_retries": 0}
        if timeout is not None:
            client_kwargs["timeout"] = timeout
        self.client = openai.OpenAI(**client_kwargs)
        self.update_model(model)

    def _call_api(
        self,
        system_prompt: str,
        user_prompt: str,
        max_tokens: int,
        temperature: float,
        timeout: Optional[float],
    ) -> LLMResponse:
        request_kwargs = {}
        if timeout is not None:
            request_kwargs["timeout"] = timeout
        response = self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            response_format={"type": "json_object"},
            temperature=temperature,
            max_tokens=max_tokens,
            **request_kwargs,
        )
        if not response.choices:
            return LLMResponse(content=None, model=self.model, input_tokens=0, output_tokens=0)

        choice = response.choices[0]
        usage = response.usage
        return LLMResponse(
            content=choice.message.content if choice.message else None,
            model=self.model,
            input_tokens=usage.prompt_tokens if usage else 0,
            output_tokens=usage.completion_tokens if usage else 0,
            finish_reason=choice.finish_reason,
        )


# --- Provider Factory ---


def get_provider(
    provider_name: str = None,
    model: str = None,
    api_key: str = None,
    timeout: float = None,
) -> LLMProvider:
    """
    Get an LLM provider instance.

    Args:
        provider_name: Provider identifier (default: from LLM_PROVIDER env var)
        model: Model name (default: provider-specific default)
        api_key: API key (default: provider-specific env var)
        timeout: Client-level request timeout in seconds

    Returns:
        LLMProvider instance
    """
    if provider_name is None:
        provider_name = os.getenv("LLM_PROVIDER", "openai").lower()

    if provider_name == "openai":
        kwargs = {"api_key": api_key, "timeout": timeout}
        if model:
            kwargs["model"] = model
        return OpenAIProvider(**kwargs)
    raise ValueError(f"Unknown provider: {provider_name}. Use 'openai'")


# --- Response Parsing Utilities ---


def strip_code_fences(text: str) -> str:
    """Remove a leading ```lang fence and a trailing ``` fence, if present."""
    text = _CODE_FENCE_OPEN.sub("", text.strip())
    return _CODE_FENCE_CLOSE.sub("", text).strip()


def parse_json_object(text: str) -> dict:
    """
    Parse a JSON object from an LLM response with salvage fallbacks.

    Tries, in order: direct parse, parse after stripping markdown code fences,
    parse of the substring between the first "{" and the last "}".

    Args:
        text: LLM response text

    Returns:
        Parsed dict

    Raises:
        ValueError: If no attempt yields a JSON object
    """
    if not isinstance(text, str) or not text.strip():
        raise ValueError("Empty response text")

    text = text.strip()
    candidates = [text]

    unfenced = strip_code_fences(text)
    if unfenced != text:
        candidates.append(unfenced)

    start = unfenced.find("{")
    end = unfenced.rfind("}")
    if start != -1 and end > start:
        candidates.append(unfenced[start : end + 1])

    for candidate in candidates:
        try:
            result = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(result, dict):
            return result

    raise ValueError(f"No JSON object found in response: {text[:80]!r}")
