"""
Normalization pipeline and the extract_job entry point.

extract_job(text) runs the orchestrator, then sanitizes the candidate record,
normalizes its salary and canonicalizes its technology stack. Callers receive
either a complete NormalizedRecord or a typed ExtractionError; partial records
are never returned.
"""

import re
import time
from functools import lru_cache
from typing import Any, Callable, Mapping, Optional, Union

from jobtrack.contexts.extraction.logger import _log_debug, _log_info
from jobtrack.contexts.extraction.orchestrator import CandidateRecord, ExtractionOrchestrator
from jobtrack.contexts.extraction.record import ExtractionWarnings, NormalizedRecord
from jobtrack.contexts.extraction.salary import NOT_SPECIFIED, SalaryNormalizer
from jobtrack.contexts.extraction.sanitizer import sanitize_candidate
from jobtrack.contexts.extraction.service import ExtractionService
from jobtrack.contexts.extraction.settings import ExtractionSettings, load_settings
from jobtrack.contexts.extraction.tech_stack import TechStackCanonicalizer
from jobtrack.utils.llm import LLMProvider

# Requirements section asks for "2+ years"
_REQUIREMENTS_2_PLUS = (
    re.compile(r"\brequirements?\b.*\b2\+?\s*years?\b", re.IGNORECASE),
    re.compile(r"\b2\+?\s*years?\s*(?:of\s+)?experience", re.IGNORECASE),
)
# Qualifications section says "0-2 years"
_QUALIFICATIONS_0_TO_2 = (
    re.compile(r"\bqualifications?\b.*\b0-2\s*years?\b", re.IGNORECASE),
    re.compile(r"\b0-2\s*years?\s*(?:relevant\s+)?(?:industry\s+)?experience", re.IGNORECASE),
)
_QUALIFICATIONS_SECTION = re.compile(r"qualifications?.*?0-2\s*years?", re.IGNORECASE | re.DOTALL)


def reconcile_experience(experience: str, source_text: Optional[str]) -> str:
    """
    Prefer "0-2 years" from Qualifications over "2+ years" from Requirements.

    Best-effort prose heuristic: applies only when the text matches both
    phrasings and the reported experience mentions "2+".
    """
    if not source_text or "2+" not in experience.lower():
        return experience
    asks_2_plus = any(p.search(source_text) for p in _REQUIREMENTS_2_PLUS)
    qualifies_0_to_2 = any(p.search(source_text) for p in _QUALIFICATIONS_0_TO_2)
    if asks_2_plus and qualifies_0_to_2 and _QUALIFICATIONS_SECTION.search(source_text):
        _log_debug("Experience: using Qualifications (0-2 years) over Requirements (2+ years)")
        return "0-2 years"
    return experience


class JobExtractionPipeline:
    """
    Composes orchestrator, sanitizer, salary normalizer and tech canonicalizer.

    Collaborators are injectable; from_settings() wires the production ones
    around a single shared ExtractionService.

    Example:
        pipeline = JobExtractionPipeline.from_settings(load_settings())
        record = pipeline.extract_job(job_text)
        record.to_dict()["salaryCurrency"]  # "INR" whenever a salary is present
    """

    def __init__(
        self,
        orchestrator: ExtractionOrchestrator,
        salary: SalaryNormalizer,
        tech: TechStackCanonicalizer,
    ):
        self.orchestrator = orchestrator
        self.salary = salary
        self.tech = tech

    @classmethod
    def from_settings(
        cls,
        settings: Optional[ExtractionSettings] = None,
        provider: Optional[LLMProvider] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> "JobExtractionPipeline":
        """
        Build a pipeline.

        Args:
            settings: Tunables (default: load_settings())
            provider: LLM provider to use instead of the configured one
            sleep: Sleep function for retry backoff (injectable for tests)

        Without credentials or a provider the pipeline still builds: extraction
        fails with ConfigurationError and salary lookups use defaults.
        """
        settings = settings or load_settings()
        service = ExtractionService.maybe_from_settings(settings, provider)
        return cls(
            orchestrator=ExtractionOrchestrator(service, settings, sleep=sleep),
            salary=SalaryNormalizer.from_settings(settings, service),
            tech=TechStackCanonicalizer.from_settings(settings),
        )

    def normalize(
        self,
        candidate: Union[CandidateRecord, Mapping[str, Any]],
        source_text: Optional[str] = None,
    ) -> NormalizedRecord:
        """
        Turn a candidate record into a NormalizedRecord.

        Args:
            candidate: CandidateRecord or a raw candidate mapping
            source_text: Original document, used for the experience heuristic
                         and fallback technology extraction

        Returns:
            NormalizedRecord
        """
        if isinstance(candidate, CandidateRecord):
            data = candidate.data
            warnings = ExtractionWarnings(
                jd_truncated=candidate.input_truncated,
                response_truncated=candidate.output_truncated,
            )
        else:
            data = candidate
            warnings = ExtractionWarnings()

        fields = sanitize_candidate(data)
        role = fields.role or fields.title
        experience = reconcile_experience(fields.experience or NOT_SPECIFIED, source_text)

        salary = self.salary.normalize(
            fields.salary_min,
            fields.salary_max,
            fields.salary_currency,
            fields.salary_period,
            fields.salary_estimated,
            role=role,
            experience=experience,
            location=fields.location,
        )
        tech = self.tech.canonicalize(
            fields.tech_stack, fields.tech_stack_normalized, source_text
        )

        return NormalizedRecord(
            title=fields.title,
            company=fields.company,
            location=fields.location,
            role=role,
            experience=experience,
            salary_min=salary.min,
            salary_max=salary.max,
            salary_currency=salary.currency,
            salary_period=salary.period,
            salary_estimated=salary.estimated,
            tech_stack=tech.tech_stack,
            tech_stack_normalized=tech.categories,
            company_publisher=fields.company_publisher,
            source=fields.source,
            job_type=fields.job_type,
            availability=fields.availability,
            product=fields.product,
            seniority=fields.seniority,
            collaboration_tools=fields.collaboration_tools,
            applicants_count=fields.applicants_count,
            education=fields.education,
            posted_at=fields.posted_at,
            warnings=warnings,
        )

    def extract_job(self, text: Any) -> NormalizedRecord:
        """
        Extract and normalize one job description.

        Raises:
            InputError: Text is not a string or is blank
            ConfigurationError: Credentials are missing
            UpstreamTransient: Retryable service failure after all retries
            UpstreamRejected: Non-retryable service failure
        """
        candidate = self.orchestrator.extract(text)
        record = self.normalize(candidate, text)

        if record.salary_estimated:
            salary_state = "estimated"
        elif record.salary_min is not None or record.salary_max is not None:
            salary_state = "stated"
        else:
            salary_state = "absent"
        _log_info(
            f"Normalized '{record.title or '(untitled)'}': "
            f"{len(record.tech_stack)} technologies, salary {salary_state}"
        )
        return record


@lru_cache(maxsize=1)
def get_pipeline() -> JobExtractionPipeline:
    """Process-wide pipeline (and rate cache), built from settings on first use."""
    return JobExtractionPipeline.from_settings(load_settings())


def extract_job(text: Any) -> NormalizedRecord:
    """Extract a NormalizedRecord from a job description with the default pipeline."""
    return get_pipeline().extract_job(text)
