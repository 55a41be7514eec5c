"""
Extraction orchestrator.

Sends a job description to the extraction service and returns the raw
candidate record. Owns input truncation, response validation, JSON salvage,
error classification and the retry policy; every other external call in the
context is single-attempt.
"""

import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

from jobtrack.contexts.extraction.exceptions import (
    ConfigurationError,
    ExtractionError,
    InputError,
    UpstreamRejected,
    UpstreamTransient,
)
from jobtrack.contexts.extraction.instructions import InstructionRegistry
from jobtrack.contexts.extraction.logger import (
    _log_debug,
    _log_error,
    _log_info,
    log_retry,
    log_truncation,
)
from jobtrack.contexts.extraction.service import ExtractionService
from jobtrack.contexts.extraction.settings import ExtractionSettings
from jobtrack.utils.llm import LLMProvider, LLMResponse, parse_json_object, retry_with_backoff

# Shorter successful responses cannot hold a JSON candidate record
MIN_RESPONSE_CHARS = 10


@dataclass
class CandidateRecord:
    """
    Raw structured guess from the extraction service.

    Attributes:
        data: Parsed JSON object, untrusted until sanitized
        input_truncated: The document was cut to the input budget
        output_truncated: The service stopped at its length limit
        model: Model that produced the record
    """

    data: dict[str, Any]
    input_truncated: bool = False
    output_truncated: bool = False
    model: Optional[str] = None


def truncate_input(text: str, max_chars: int) -> tuple[str, bool]:
    """Cut text to max_chars; returns (text, was_truncated)."""
    if len(text) <= max_chars:
        return text, False
    return text[:max_chars], True


def is_retryable(error: Exception) -> bool:
    return isinstance(error, ExtractionError) and error.retryable


def interpret_response(response: LLMResponse, input_truncated: bool = False) -> CandidateRecord:
    """
    Validate one service response and parse its JSON object.

    Raises:
        UpstreamRejected: No choices, empty content, content-policy stop, or a
                          complete response too short to be valid
        UpstreamTransient: Content that no salvage attempt could parse
    """
    content = response.content
    finish_reason = response.finish_reason

    if finish_reason == "content_filter":
        raise UpstreamRejected("Response filtered by content policy", content)
    if content is None and finish_reason is None:
        raise UpstreamRejected("Invalid response structure from extraction service")
    if not content or not content.strip():
        raise UpstreamRejected("Empty response from extraction service")
    if finish_reason == "stop" and len(content) < MIN_RESPONSE_CHARS:
        raise UpstreamRejected("Response too short - likely incomplete", content)

    output_truncated = finish_reason == "length"
    if output_truncated:
        log_truncation("Response", f"stopped at length limit after {len(content)} chars")

    try:
        data = parse_json_object(content)
    except ValueError as e:
        raise UpstreamTransient("Invalid JSON in extraction response", content) from e

    return CandidateRecord(
        data=data,
        input_truncated=input_truncated,
        output_truncated=output_truncated,
        model=response.model,
    )


class ExtractionOrchestrator:
    """
    Runs the primary extraction request with retries.

    Example:
        orchestrator = ExtractionOrchestrator.from_settings(load_settings())
        candidate = orchestrator.extract(job_text)
        candidate.data["title"]
    """

    def __init__(
        self,
        service: Optional[ExtractionService],
        settings: ExtractionSettings,
        instructions: Optional[InstructionRegistry] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.service = service
        self.settings = settings
        self.instructions = instructions or InstructionRegistry(
            reference_currency=settings.reference_currency
        )
        self.sleep = sleep

    @classmethod
    def from_settings(
        cls,
        settings: ExtractionSettings,
        provider: Optional[LLMProvider] = None,
        instructions: Optional[InstructionRegistry] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> "ExtractionOrchestrator":
        """
        Build an orchestrator; without credentials (and no provider) the
        service is left unset and extract() fails with ConfigurationError.
        """
        service = ExtractionService.maybe_from_settings(settings, provider)
        return cls(service, settings, instructions=instructions, sleep=sleep)

    def _request_once(
        self, system_prompt: str, content: str, input_truncated: bool
    ) -> CandidateRecord:
        response = self.service.complete(
            system_prompt,
            content,
            max_tokens=self.settings.max_response_tokens,
            temperature=self.settings.temperature,
            timeout=self.settings.timeout_seconds,
            timeout_message="Request timeout - extraction took too long",
        )
        return interpret_response(response, input_truncated=input_truncated)

    def extract(self, text: Any) -> CandidateRecord:
        """
        Extract a candidate record from a job description.

        Args:
            text: Job description

        Returns:
            CandidateRecord with truncation flags

        Raises:
            ConfigurationError: Credentials are missing (before any network call)
            InputError: Text is not a string or is blank
            UpstreamRejected: Non-retryable service failure
            UpstreamTransient: Retryable failure that persisted through all retries
        """
        if self.service is None:
            raise ConfigurationError("OPENAI_API_KEY is not set")
        if not isinstance(text, str):
            raise InputError("Job description must be a string", type(text).__name__)
        if not text.strip():
            raise InputError("Job description text is empty")

        content, input_truncated = truncate_input(text, self.settings.max_input_chars)
        if input_truncated:
            log_truncation(
                "Input", f"{len(text)} chars cut to {self.settings.max_input_chars}"
            )

        system_prompt = self.instructions.get_instructions()
        max_retries = self.settings.max_retries

        def before_sleep(attempt: int, delay: float, error: Exception):
            log_retry(attempt, max_retries, delay, error)

        _log_debug(f"Requesting extraction ({len(content)} chars, model {self.service.model})")
        try:
            candidate = retry_with_backoff(
                lambda: self._request_once(system_prompt, content, input_truncated),
                is_retryable=is_retryable,
                max_retries=max_retries,
                base_delay=self.settings.base_delay_seconds,
                error_message="Extraction attempt failed",
                sleep=self.sleep,
                before_sleep=before_sleep,
            )
        except ExtractionError as e:
            _log_error(f"Extraction failed ({type(e).__name__}): {e.message}")
            raise
        _log_info(f"Extracted candidate record ({len(candidate.data)} fields)")
        return candidate
