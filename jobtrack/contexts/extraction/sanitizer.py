"""
Structured-output sanitizer for the Extraction context.

Pure, total functions that coerce every field of an untrusted candidate record
into a type- and length-safe value. Nothing here raises, and nothing here knows
about salary conversion or technology canonicalization; those run afterwards on
the sanitized values.

Sanitizing already-sanitized output returns it unchanged:

    once = sanitize_candidate(raw).to_dict()
    assert sanitize_candidate(once).to_dict() == once
"""

import math
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from jobtrack.contexts.extraction.tech_patterns import CATEGORY_KEYS

# =============================================================================
# BOUNDS
# =============================================================================

MAX_NUMBER = 1_000_000_000

# Field -> maximum length in characters
STRING_LIMITS = {
    "title": 256,
    "company": 256,
    "location": 256,
    "role": 256,
    "experience": 256,
    "source": 512,
    "companyPublisher": 256,
    "product": 256,
    "jobType": 64,
    "availability": 64,
    "seniority": 64,
    "education": 2000,
    "postedAt": 128,
}

TECH_ITEM_LIMIT = 128
COLLABORATION_ITEM_LIMIT = 64
MAX_LIST_ITEMS = 200

PLACEHOLDERS = frozenset({"null", "undefined", "none", "n/a", "na", "unknown", "nil", "-"})

PERIOD_SYNONYMS = {
    "hourly": "hourly",
    "hour": "hourly",
    "per hour": "hourly",
    "hr": "hourly",
    "/hr": "hourly",
    "ph": "hourly",
    "monthly": "monthly",
    "month": "monthly",
    "per month": "monthly",
    "mo": "monthly",
    "/mo": "monthly",
    "pm": "monthly",
    "yearly": "yearly",
    "year": "yearly",
    "annual": "yearly",
    "annually": "yearly",
    "per annum": "yearly",
    "per year": "yearly",
    "pa": "yearly",
    "p.a.": "yearly",
    "yr": "yearly",
    "/yr": "yearly",
    "lpa": "yearly",
}


# =============================================================================
# SCALAR COERCION
# =============================================================================


def _clean(value: Any) -> Optional[str]:
    """Trimmed string, or None for non-strings, blanks and placeholders."""
    if not isinstance(value, str):
        return None
    text = value.strip()
    if not text or text.lower() in PLACEHOLDERS:
        return None
    return text


def cap_string(text: Optional[str], max_len: int) -> Optional[str]:
    """Truncate to max_len and re-trim; None if nothing meaningful survives."""
    if text is None:
        return None
    if len(text) > max_len:
        text = text[:max_len].strip()
        if text.lower() in PLACEHOLDERS:
            return None
    return text or None


def sanitize_required_string(value: Any, max_len: int) -> str:
    """Bounded string; empty string when missing, wrong-typed or a placeholder."""
    return cap_string(_clean(value), max_len) or ""


def sanitize_optional_string(value: Any, max_len: int) -> Optional[str]:
    """Bounded string; None when missing, wrong-typed or a placeholder."""
    return cap_string(_clean(value), max_len)


def sanitize_number(value: Any) -> Optional[int]:
    """
    Non-negative integer in [0, 1e9], rounded half up.

    Accepts ints, floats and numeric strings ("120,000" included). Booleans,
    non-finite values, negatives and out-of-range values become None.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        text = value.strip().replace(",", "")
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
    else:
        return None

    if not math.isfinite(number) or number < 0 or number > MAX_NUMBER:
        return None
    return int(math.floor(number + 0.5))


def sanitize_currency(value: Any) -> Optional[str]:
    """Upper-cased 3-letter alphabetic code, or None."""
    text = _clean(value)
    if text is None or len(text) != 3 or not text.isascii() or not text.isalpha():
        return None
    return text.upper()


def sanitize_period(value: Any) -> Optional[str]:
    """One of hourly / monthly / yearly (synonyms accepted), or None."""
    text = _clean(value)
    if text is None:
        return None
    return PERIOD_SYNONYMS.get(" ".join(text.lower().split()))


def sanitize_bool(value: Any) -> bool:
    return value is True


# =============================================================================
# COLLECTIONS
# =============================================================================


def sanitize_string_list(
    value: Any, max_item_len: int = TECH_ITEM_LIMIT, max_items: int = MAX_LIST_ITEMS
) -> list[str]:
    """
    Ordered, case-insensitively distinct list of bounded strings.

    Non-list input yields an empty list; non-string and placeholder items
    are dropped. The first spelling of each item wins.
    """
    if not isinstance(value, (list, tuple)):
        return []
    seen = set()
    items = []
    for raw in value:
        item = cap_string(_clean(raw), max_item_len)
        if item is None:
            continue
        key = item.lower()
        if key in seen:
            continue
        seen.add(key)
        items.append(item)
        if len(items) >= max_items:
            break
    return items


def sanitize_categories(value: Any) -> Optional[dict[str, list[str]]]:
    """
    Category map restricted to the known category keys.

    Unknown keys and empty categories are dropped; an empty result is None.
    Keys keep the canonical CATEGORY_KEYS order.
    """
    if not isinstance(value, Mapping):
        return None
    result = {}
    for key in CATEGORY_KEYS:
        items = sanitize_string_list(value.get(key), TECH_ITEM_LIMIT)
        if items:
            result[key] = items
    return result or None


# =============================================================================
# CANDIDATE RECORD
# =============================================================================


@dataclass
class SanitizedCandidate:
    """
    Candidate record after type and bound coercion.

    Required strings are never None; optional fields are None when absent.
    Salary fields are still in the source currency and period.
    """

    title: str
    company: str
    location: str
    role: str
    experience: str
    salary_min: Optional[int]
    salary_max: Optional[int]
    salary_currency: Optional[str]
    salary_period: Optional[str]
    salary_estimated: bool
    tech_stack: list[str]
    tech_stack_normalized: Optional[dict[str, list[str]]]
    company_publisher: Optional[str]
    source: Optional[str]
    job_type: Optional[str]
    availability: Optional[str]
    product: Optional[str]
    seniority: Optional[str]
    collaboration_tools: Optional[list[str]]
    applicants_count: Optional[int]
    education: Optional[str]
    posted_at: Optional[str]

    def to_dict(self) -> dict:
        """camelCase mapping in the candidate record shape."""
        return {
            "title": self.title,
            "company": self.company,
            "location": self.location,
            "role": self.role,
            "experience": self.experience,
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
            "companyPublisher": self.company_publisher,
            "source": self.source,
            "jobType": self.job_type,
            "availability": self.availability,
            "product": self.product,
            "seniority": self.seniority,
            "collaborationTools": (
                list(self.collaboration_tools) if self.collaboration_tools else None
            ),
            "applicantsCount": self.applicants_count,
            "education": self.education,
            "postedAt": self.posted_at,
        }


def sanitize_candidate(raw: Any) -> SanitizedCandidate:
    """
    Coerce an untrusted candidate mapping into a SanitizedCandidate.

    Args:
        raw: Anything; non-mappings are treated as an empty record

    Returns:
        SanitizedCandidate with every field type- and length-safe
    """
    data = raw if isinstance(raw, Mapping) else {}

    def required(key: str) -> str:
        return sanitize_required_string(data.get(key), STRING_LIMITS[key])

    def optional(key: str) -> Optional[str]:
        return sanitize_optional_string(data.get(key), STRING_LIMITS[key])

    collaboration = sanitize_string_list(data.get("collaborationTools"), COLLABORATION_ITEM_LIMIT)

    return SanitizedCandidate(
        title=required("title"),
        company=required("company"),
        location=required("location"),
        role=required("role"),
        experience=required("experience"),
        salary_min=sanitize_number(data.get("salaryMin")),
        salary_max=sanitize_number(data.get("salaryMax")),
        salary_currency=sanitize_currency(data.get("salaryCurrency")),
        salary_period=sanitize_period(data.get("salaryPeriod")),
        salary_estimated=sanitize_bool(data.get("salaryEstimated")),
        tech_stack=sanitize_string_list(data.get("techStack"), TECH_ITEM_LIMIT),
        tech_stack_normalized=sanitize_categories(data.get("techStackNormalized")),
        company_publisher=optional("companyPublisher"),
        source=optional("source"),
        job_type=optional("jobType"),
        availability=optional("availability"),
        product=optional("product"),
        seniority=optional("seniority"),
        collaboration_tools=collaboration or None,
        applicants_count=sanitize_number(data.get("applicantsCount")),
        education=optional("education"),
        posted_at=optional("postedAt"),
    )
