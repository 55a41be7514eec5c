"""
Upstream extraction service client for the Extraction context.

Wraps an LLMProvider with a hard wall-clock deadline per call and translates
provider/network exceptions into the extraction error taxonomy. Every external
call in the context (primary extraction, rate fetch, salary estimate) goes
through ExtractionService.complete().
"""

import concurrent.futures
from typing import Optional

import openai

from jobtrack.contexts.extraction.exceptions import (
    ConfigurationError,
    ExtractionError,
    UpstreamRejected,
    UpstreamTransient,
)
from jobtrack.contexts.extraction.settings import ExtractionSettings
from jobtrack.utils.llm import LLMProvider, LLMResponse, get_provider


def classify_service_error(exc: BaseException) -> Optional[ExtractionError]:
    """
    Map a provider or network exception onto the extraction error taxonomy.

    Args:
        exc: Exception raised while calling the provider

    Returns:
        Typed ExtractionError, or None when the exception did not come from the
        provider or the network (those are programming errors and propagate)
    """
    if isinstance(exc, ExtractionError):
        return exc

    detail = str(exc)

    # APITimeoutError subclasses APIConnectionError; check it first
    if isinstance(exc, openai.APITimeoutError):
        return UpstreamTransient("Request timeout - extraction took too long", detail)
    if isinstance(exc, openai.APIConnectionError):
        return UpstreamTransient("Network error contacting extraction service", detail)
    if isinstance(exc, openai.RateLimitError):
        return UpstreamTransient("Rate limit reached on extraction service", detail)
    if isinstance(exc, (openai.AuthenticationError, openai.PermissionDeniedError)):
        return ConfigurationError("Extraction service authentication failed", detail)
    if isinstance(exc, openai.APIStatusError):
        status = exc.status_code
        if status >= 500 or status == 408:
            return UpstreamTransient(f"Extraction service unavailable (HTTP {status})", detail)
        if "content" in detail.lower() and "polic" in detail.lower():
            return UpstreamRejected("Request rejected by content policy", detail)
        return UpstreamRejected(f"Extraction service rejected the request (HTTP {status})", detail)
    if isinstance(exc, openai.OpenAIError):
        return UpstreamRejected("Invalid response structure from extraction service", detail)
    if isinstance(exc, (ConnectionError, TimeoutError)):
        return UpstreamTransient("Network error contacting extraction service", detail)
    return None


class ExtractionService:
    """
    Deadline-enforcing, error-classifying facade over an LLMProvider.

    Each call runs the provider in a worker thread. When the deadline passes
    the call is abandoned (its future cancelled, the worker left to finish on
    the SDK-level timeout that is forwarded with the request) and
    UpstreamTransient is raised.
    """

    def __init__(self, provider: LLMProvider, timeout_seconds: float = 45.0):
        self.provider = provider
        self.timeout_seconds = timeout_seconds

    @classmethod
    def from_settings(
        cls, settings: ExtractionSettings, timeout_seconds: Optional[float] = None
    ) -> "ExtractionService":
        """
        Build a service for the configured provider.

        Raises:
            ConfigurationError: If credentials are missing or the provider is unknown
        """
        if not settings.has_credentials:
            raise ConfigurationError("OPENAI_API_KEY is not set")

        timeout = settings.timeout_seconds if timeout_seconds is None else timeout_seconds
        try:
            provider = get_provider(
                provider_name=settings.provider,
                model=settings.model,
                api_key=settings.api_key,
                timeout=timeout,
            )
        except ValueError as e:
            raise ConfigurationError(str(e)) from e
        return cls(provider, timeout_seconds=timeout)

    @classmethod
    def maybe_from_settings(
        cls, settings: ExtractionSettings, provider: Optional[LLMProvider] = None
    ) -> Optional["ExtractionService"]:
        """
        Wrap an explicit provider, or build the configured one.

        Returns None when no provider is given and no credentials are set.
        """
        if provider is not None:
            return cls(provider, timeout_seconds=settings.timeout_seconds)
        if settings.has_credentials:
            return cls.from_settings(settings)
        return None

    @property
    def model(self) -> str:
        return self.provider.model

    def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        max_tokens: int,
        temperature: float,
        timeout: Optional[float] = None,
        timeout_message: str = "Request timeout - extraction took too long",
    ) -> LLMResponse:
        """
        Issue one request with a hard deadline.

        Args:
            system_prompt: System instructions
            user_prompt: User document or question
            max_tokens: Upper bound on response size
            temperature: Sampling temperature
            timeout: Deadline in seconds (default: the service timeout)
            timeout_message: Error message used when the deadline passes

        Returns:
            LLMResponse from the provider

        Raises:
            UpstreamTransient: Deadline exceeded or transient provider failure
            UpstreamRejected: Provider refused the request
            ConfigurationError: Provider refused the credentials
        """
        deadline = self.timeout_seconds if timeout is None else timeout
        executor = concurrent.futures.ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="jobtrack-service"
        )
        future = executor.submit(
            self.provider.generate, system_prompt, user_prompt, max_tokens, temperature, deadline
        )
        try:
            return future.result(timeout=deadline)
        except concurrent.futures.TimeoutError:
            future.cancel()
            raise UpstreamTransient(timeout_message, f"no response within {deadline:.1f}s") from None
        except Exception as exc:
            classified = classify_service_error(exc)
            if classified is None:
                raise
            if classified is exc:
                raise
            raise classified from exc
        finally:
            # Never wait on an abandoned worker
            executor.shutdown(wait=False, cancel_futures=True)
