"""
Normalized record: the only output of the extraction pipeline.

The storage collaborator consumes NormalizedRecord.to_dict() and owns
identifiers, timestamps and persistence; the pipeline keeps no records.
"""

from dataclasses import dataclass, field
from typing import Optional, Protocol


@dataclass
class ExtractionWarnings:
    """Observability flags that never block normalization."""

    jd_truncated: bool = False
    response_truncated: bool = False

    def any(self) -> bool:
        return self.jd_truncated or self.response_truncated

    def to_dict(self) -> dict:
        return {"jdTruncated": self.jd_truncated, "responseTruncated": self.response_truncated}


@dataclass
class NormalizedRecord:
    """
    Schema-valid, bounded job record.

    Invariants:
    - title, company, location, role, experience are strings (never None)
    - salary_currency is the reference currency and salary_period is "yearly"
      whenever salary_min or salary_max is set; all three are None otherwise
    - salary_min <= salary_max when both are set
    - tech_stack has no case-insensitive duplicates and contains every entry of
      tech_stack_normalized
    """

    title: str
    company: str
    location: str
    role: str
    experience: str
    salary_min: Optional[int] = None
    salary_max: Optional[int] = None
    salary_currency: Optional[str] = None
    salary_period: Optional[str] = None
    salary_estimated: bool = False
    tech_stack: list[str] = field(default_factory=list)
    tech_stack_normalized: Optional[dict[str, list[str]]] = None
    company_publisher: Optional[str] = None
    source: Optional[str] = None
    job_type: Optional[str] = None
    availability: Optional[str] = None
    product: Optional[str] = None
    seniority: Optional[str] = None
    collaboration_tools: Optional[list[str]] = None
    applicants_count: Optional[int] = None
    education: Optional[str] = None
    posted_at: Optional[str] = None
    warnings: ExtractionWarnings = field(default_factory=ExtractionWarnings)

    def to_dict(self) -> dict:
        """
        camelCase mapping handed to the storage collaborator.

        "_warnings" is included only when a warning flag is set.
        """
        result = {
            "title": self.title,
            "company": self.company,
            "companyPublisher": self.company_publisher,
            "location": self.location,
            "salaryMin": self.salary_min,
            "salaryMax": self.salary_max,
            "salaryCurrency": self.salary_currency,
            "salaryPeriod": self.salary_period,
            "salaryEstimated": self.salary_estimated,
            "techStack": list(self.tech_stack),
            "techStackNormalized": (
                {k: list(v) for k, v in self.tech_stack_normalized.items()}
                if self.tech_stack_normalized
                else None
            ),
            "role": self.role,
            "experience": self.experience,
            "jobType": self.job_type,
            "availability": self.availability,
            "product": self.product,
            "seniority": self.seniority,
            "collaborationTools": (
                list(self.collaboration_tools) if self.collaboration_tools else None
            ),
            "source": self.source,
            "applicantsCount": self.applicants_count,
            "education": self.education,
            "postedAt": self.posted_at,
        }
        if self.warnings.any():
            result["_warnings"] = self.warnings.to_dict()
        return result


class RecordStore(Protocol):
    """Storage collaborator interface; implementations live outside this package."""

    def persist(self, record: NormalizedRecord) -> dict:
        """Store a record, returning it with identifier and timestamps assigned."""
        ...
