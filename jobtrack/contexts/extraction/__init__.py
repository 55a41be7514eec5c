"""
Extraction Context

Responsibilities:
- Sends job descriptions to the extraction service with retries and deadlines
- Sanitizes the returned candidate record into bounded, typed fields
- Normalizes salaries to the reference currency per year (rates, estimates)
- Canonicalizes technology stacks (aliases, false positives, text fallback)

Owns: The extract_job entry point and the NormalizedRecord it returns
Never: Persists records, authenticates users or renders output
"""

from jobtrack.contexts.extraction.exceptions import (
    ConfigurationError,
    EstimationFailure,
    ExtractionError,
    InputError,
    UpstreamRejected,
    UpstreamTransient,
)
from jobtrack.contexts.extraction.pipeline import JobExtractionPipeline, extract_job, get_pipeline
from jobtrack.contexts.extraction.record import ExtractionWarnings, NormalizedRecord, RecordStore

__all__ = [
    "ConfigurationError",
    "EstimationFailure",
    "ExtractionError",
    "ExtractionWarnings",
    "InputError",
    "JobExtractionPipeline",
    "NormalizedRecord",
    "RecordStore",
    "UpstreamRejected",
    "UpstreamTransient",
    "extract_job",
    "get_pipeline",
]
