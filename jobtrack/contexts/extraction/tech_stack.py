"""
Technology stack canonicalizer for the Extraction context.

Turns the service's flat technology list and category map into:
- a flat list that is deduplicated case-insensitively, free of known false
  positives, and supplemented by pattern matching on the source text when the
  service's list looks incomplete
- a category map whose every entry also appears in the flat list

Service terms are first rewritten to canonical names ("postgres" becomes
"PostgreSQL", "k8s" becomes "Kubernetes") so that synonyms merge.
"""

from dataclasses import dataclass
from typing import Iterable, Mapping, Optional

from jobtrack.contexts.extraction.logger import _log_debug, log_tech_changes
from jobtrack.contexts.extraction.sanitizer import TECH_ITEM_LIMIT
from jobtrack.contexts.extraction.settings import ExtractionSettings
from jobtrack.contexts.extraction.tech_patterns import (
    CANONICAL_NAMES,
    CATEGORY_KEYS,
    CLASSIFIER,
    CLOUD_PLATFORMS,
    COMPOUND_PATTERNS,
    CORE_CLOUD_PATTERNS,
    FALSE_POSITIVES,
    LIST_CONJUNCTION,
    LONG_NAME_ALLOWLIST,
    MAX_TERM_CHARS,
    MAX_TERM_WORDS,
    PAREN_PATTERNS,
    PROPER_NOUN,
    SIBLING_RULES,
    TECH_PATTERNS,
)

_LIST_FILLERS = frozenset({"etc", "etc.", "and more", "others", "more"})


def _key(term: str) -> str:
    return " ".join(term.lower().split())


def canonical_name(term: str) -> str:
    """Canonical display name for a known alias; unknown terms are returned unchanged."""
    return CANONICAL_NAMES.get(_key(term), term)


def dedupe_terms(terms: Iterable[str], max_len: int = TECH_ITEM_LIMIT) -> list[str]:
    """Trim, cap and drop case-insensitive duplicates, keeping first spellings."""
    seen = set()
    result = []
    for term in terms:
        if not isinstance(term, str):
            continue
        text = term.strip()[:max_len].strip()
        if not text:
            continue
        key = text.lower()
        if key in seen:
            continue
        seen.add(key)
        result.append(text)
    return result


def _is_implausibly_long(term: str) -> bool:
    if len(term) <= MAX_TERM_CHARS and len(term.split()) <= MAX_TERM_WORDS:
        return False
    lowered = term.lower()
    return not any(allowed in lowered for allowed in LONG_NAME_ALLOWLIST)


def filter_false_positives(terms: list[str]) -> list[str]:
    """
    Remove terms that are not technologies.

    Drops employment arrangements, compliance regimes and industry phrases;
    generic names when a specific sibling is present ("Apache" next to
    "Apache Kafka", "GitHub" next to "GitHub Actions"); and implausibly long
    phrases unless they contain a known long name.
    """
    present = {t.lower() for t in terms}
    suppressed = {rule.generic for rule in SIBLING_RULES if rule.applies(present)}

    kept = []
    removed = []
    for term in terms:
        lowered = term.lower()
        if lowered in FALSE_POSITIVES or lowered in suppressed or _is_implausibly_long(term):
            removed.append(term)
            continue
        kept.append(term)

    log_tech_changes("Filtered false positives", removed)
    return kept


def _resolve_listed_service(service: str) -> Optional[str]:
    """Canonical name for an item listed in parentheses, or None to skip it."""
    canonical = CANONICAL_NAMES.get(_key(service))
    if canonical:
        return canonical
    if PROPER_NOUN.match(service):
        return service
    return None


def extract_from_text(text: str, existing: Iterable[str], scan_table: bool = True) -> list[str]:
    """
    Find technologies in source text that are not already listed.

    Args:
        text: Source document
        existing: Terms already known (compared case-insensitively)
        scan_table: Scan the full single-term table; when False only the core
                    cloud services are scanned. Compound and parenthetical
                    patterns always run.

    Returns:
        Newly found canonical names, in discovery order
    """
    present = {t.lower() for t in existing}
    found: list[str] = []

    def add(name: str):
        key = name.lower()
        if key not in present:
            present.add(key)
            found.append(name)

    for pattern in TECH_PATTERNS if scan_table else CORE_CLOUD_PATTERNS:
        if pattern.name.lower() not in present and pattern.found_in(text):
            add(pattern.name)

    for compound in COMPOUND_PATTERNS:
        if compound.matcher.search(text):
            for name in compound.names:
                add(name)

    for pattern in PAREN_PATTERNS:
        for match in pattern.finditer(text):
            platform = CLOUD_PLATFORMS.get(match.group("platform").lower())
            if platform:
                add(platform)
            for item in match.group("services").split(","):
                service = LIST_CONJUNCTION.sub("", item.strip()).strip()
                if not service or service.lower() in _LIST_FILLERS:
                    continue
                name = _resolve_listed_service(service)
                if name:
                    add(name)

    return found


def classify_term(term: str) -> Optional[str]:
    """Best-effort category for a term from the lexical classifier."""
    return CLASSIFIER.classify(term)


def _ordered_categories(categories: Mapping[str, list[str]]) -> Optional[dict[str, list[str]]]:
    result = {key: categories[key] for key in CATEGORY_KEYS if categories.get(key)}
    return result or None


@dataclass
class TechStackResult:
    tech_stack: list[str]
    categories: Optional[dict[str, list[str]]]


class TechStackCanonicalizer:
    """
    Canonicalizes the service's technology list against the source text.

    Args:
        fallback_max_items: Pattern extraction runs only below this list size
        skip_table_items: With at least this many terms on a short document,
                          the single-term table scan is skipped
        skip_table_text_chars: Documents shorter than this count as short
    """

    def __init__(
        self,
        fallback_max_items: int = 80,
        skip_table_items: int = 50,
        skip_table_text_chars: int = 10_000,
    ):
        self.fallback_max_items = fallback_max_items
        self.skip_table_items = skip_table_items
        self.skip_table_text_chars = skip_table_text_chars

    @classmethod
    def from_settings(cls, settings: ExtractionSettings) -> "TechStackCanonicalizer":
        return cls(
            fallback_max_items=settings.tech_fallback_max_items,
            skip_table_items=settings.tech_skip_table_items,
            skip_table_text_chars=settings.tech_skip_table_text_chars,
        )

    def canonicalize(
        self,
        service_list: Iterable[str],
        categories: Optional[Mapping[str, Iterable[str]]],
        source_text: Optional[str],
    ) -> TechStackResult:
        """
        Produce the final flat list and category map.

        Args:
            service_list: Flat technology list from the service
            categories: Category map from the service (may be None)
            source_text: Original document used for fallback extraction

        Returns:
            TechStackResult where the flat list has no case-insensitive
            duplicates and contains every categorized entry
        """
        flat = dedupe_terms(canonical_name(t) for t in service_list if isinstance(t, str))

        category_map: dict[str, list[str]] = {}
        for key, terms in (categories or {}).items():
            if key not in CATEGORY_KEYS or not terms:
                continue
            cleaned = dedupe_terms(canonical_name(t) for t in terms if isinstance(t, str))
            if cleaned:
                category_map[key] = cleaned

        # Every categorized term must also be in the flat list
        present = {t.lower() for t in flat}
        missing = []
        for terms in category_map.values():
            for term in terms:
                if term.lower() not in present:
                    present.add(term.lower())
                    missing.append(term)
        log_tech_changes("Back-filled from categories", missing)
        flat = filter_false_positives(flat + missing)

        if source_text and len(flat) < self.fallback_max_items:
            scan_table = not (
                len(flat) >= self.skip_table_items
                and len(source_text) < self.skip_table_text_chars
            )
            if not scan_table:
                _log_debug(f"Skipping table scan ({len(flat)} terms already listed)")
            found = extract_from_text(source_text, flat, scan_table=scan_table)
            log_tech_changes("Found in source text", found)
            if found:
                flat = filter_false_positives(dedupe_terms(flat + found))

        # Keep only categorized entries that survived filtering
        final = {t.lower() for t in flat}
        for key in list(category_map):
            category_map[key] = [t for t in category_map[key] if t.lower() in final]

        categorized = {t.lower() for terms in category_map.values() for t in terms}
        classified = []
        for term in flat:
            if term.lower() in categorized:
                continue
            category = classify_term(term)
            if category:
                category_map.setdefault(category, []).append(term)
                categorized.add(term.lower())
                classified.append(term)
        log_tech_changes("Auto-categorized", classified)

        return TechStackResult(tech_stack=flat, categories=_ordered_categories(category_map))
