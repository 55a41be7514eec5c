"""Exception taxonomy for the extraction context."""

from typing import Optional


class ExtractionError(Exception):
    """
    Base exception for job extraction failures.

    Attributes:
        message: Human-readable error description
        retryable: Whether repeating the same request may succeed
        detail: Optional supporting text (e.g., a response snippet)
    """

    retryable: bool = False

    def __init__(
        self,
        message: str,
        detail: Optional[str] = None,
        retryable: Optional[bool] = None,
    ):
        self.message = message
        self.detail = detail
        if retryable is not None:
            self.retryable = retryable

        parts = [message]
        if detail:
            # Truncate snippet if too long
            snippet = detail[:200] + "..." if len(detail) > 200 else detail
            parts.append(f"Detail: {snippet}")

        super().__init__("\n".join(parts))


class InputError(ExtractionError):
    """Job description is empty or not a string."""

    retryable = False


class ConfigurationError(ExtractionError):
    """Extraction service credentials are missing or were refused."""

    retryable = False


class UpstreamTransient(ExtractionError):
    """
    Temporary upstream failure worth retrying.

    Raised for timeouts, rate limiting, 5xx responses, network errors and
    responses whose JSON could not be parsed (a retry may return valid JSON).
    """

    retryable = True


class UpstreamRejected(ExtractionError):
    """
    Upstream refused or returned an unusable response.

    Raised for content-policy rejections and empty or too-short responses.
    Never retried.
    """

    retryable = False


class EstimationFailure(ExtractionError):
    """
    Exchange-rate fetch or salary estimate failed.

    Only raised inside the salary/rate subsystem, which absorbs it and
    degrades to defaults. Callers of extract_job() never see it.
    """

    retryable = False
