"""
Extraction context logger.

Provides logging interface for extraction context with automatic [extract] prefix.
All extraction modules should import from this module, not from utils.logger directly.
"""

import sys
from pathlib import Path
from typing import Optional

from loguru import logger

from jobtrack.contexts.extraction.settings import ExtractionSettings
from jobtrack.utils.logger import log_header, setup_session_sinks

CONTEXT_PREFIX = "[extract]"


def setup_extraction_logger(log_dir: Path, settings: Optional[ExtractionSettings] = None) -> Path:
    """
    Setup logger for an extraction session.

    Writes extract.log under log_dir and opens it with a header naming the
    command and the extraction settings in effect.

    Args:
        log_dir: Directory for this extraction session
        settings: Settings to record in the header (provider, model, limits)

    Returns:
        Path to log file

    Example:
        from jobtrack.contexts.extraction.logger import setup_extraction_logger, _log_info

        log_file = setup_extraction_logger(log_dir, load_settings())
        _log_info("Starting extraction...")
    """
    log_file = setup_session_sinks(Path(log_dir) / "extract.log")

    header = {"Command": " ".join(sys.argv)}
    if settings is not None:
        header.update(
            {
                "Provider": settings.provider,
                "Model": settings.model,
                "Reference currency": settings.reference_currency,
                "Max input chars": settings.max_input_chars,
                "Max retries": settings.max_retries,
            }
        )
    log_header(header)
    return log_file


# Wrapper functions with automatic [extract] prefix


def _log_info(message: str) -> None:
    """Log info message with [extract] prefix."""
    logger.info(f"{CONTEXT_PREFIX} {message}")


def _log_error(message: str) -> None:
    """Log error message with [extract] prefix."""
    logger.error(f"{CONTEXT_PREFIX} {message}")


def _log_warning(message: str) -> None:
    """Log warning message with [extract] prefix."""
    logger.warning(f"{CONTEXT_PREFIX} {message}")


def _log_debug(message: str) -> None:
    """Log debug message with [extract] prefix."""
    logger.debug(f"{CONTEXT_PREFIX} {message}")


# High-level extraction-specific logging helpers


def log_retry(attempt: int, max_retries: int, delay: float, error: Exception) -> None:
    """Log a failed attempt that will be retried."""
    _log_warning(
        f"Attempt {attempt}/{max_retries + 1} failed: {error}. Retrying in {delay:.1f}s"
    )


def log_truncation(kind: str, detail: str) -> None:
    """Log that input or output was cut by a length budget."""
    _log_warning(f"{kind} truncated: {detail}")


def log_fallback_defaults(reason: str) -> None:
    """Log that an advisory lookup degraded to defaults."""
    _log_warning(f"Using defaults: {reason}")


def log_tech_changes(stage: str, terms: list[str], limit: int = 10) -> None:
    """Log technology terms added or removed at a canonicalization stage."""
    if not terms:
        return
    shown = ", ".join(terms[:limit])
    more = f" (+{len(terms) - limit} more)" if len(terms) > limit else ""
    _log_debug(f"{stage}: {len(terms)} term(s): {shown}{more}")
