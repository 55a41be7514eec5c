"""Unit tests for candidate record sanitization."""

import math

import pytest

from jobtrack.contexts.extraction.sanitizer import (
    MAX_NUMBER,
    STRING_LIMITS,
    cap_string,
    sanitize_bool,
    sanitize_candidate,
    sanitize_categories,
    sanitize_currency,
    sanitize_number,
    sanitize_optional_string,
    sanitize_period,
    sanitize_required_string,
    sanitize_string_list,
)


@pytest.mark.unit
class TestSanitizeStrings:
    """Required and optional string coercion."""

    def test_required_string_trimmed(self):
        assert sanitize_required_string("  Backend Engineer  ", 256) == "Backend Engineer"

    @pytest.mark.parametrize("value", [None, 42, "", "   ", "null", "N/A", "undefined", "-"])
    def test_required_string_missing_becomes_empty(self, value):
        assert sanitize_required_string(value, 256) == ""

    @pytest.mark.parametrize("value", [None, 3.5, [], "none", "Unknown"])
    def test_optional_string_missing_becomes_none(self, value):
        assert sanitize_optional_string(value, 64) is None

    def test_string_truncated_to_limit(self):
        assert sanitize_required_string("x" * 300, 256) == "x" * 256

    def test_truncation_retrims_trailing_space(self):
        assert cap_string("abc   def", 5) == "abc"

    def test_truncation_to_placeholder_is_dropped(self):
        assert cap_string("- remote", 1) is None


@pytest.mark.unit
class TestSanitizeNumber:
    """Numeric coercion to bounded non-negative integers."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            (1200000, 1200000),
            (85000.4, 85000),
            (85000.5, 85001),
            ("120,000", 120000),
            (" 95000 ", 95000),
            (0, 0),
            (MAX_NUMBER, MAX_NUMBER),
        ],
    )
    def test_valid_numbers(self, value, expected):
        assert sanitize_number(value) == expected

    @pytest.mark.parametrize(
        "value",
        [None, True, False, -1, MAX_NUMBER + 1, math.inf, math.nan, "abc", "", [], {"min": 1}],
    )
    def test_invalid_numbers(self, value):
        assert sanitize_number(value) is None


@pytest.mark.unit
class TestSanitizeEnums:
    """Currency, period and boolean coercion."""

    @pytest.mark.parametrize("value,expected", [("usd", "USD"), (" Eur ", "EUR"), ("INR", "INR")])
    def test_currency_codes(self, value, expected):
        assert sanitize_currency(value) == expected

    @pytest.mark.parametrize("value", ["$", "US$", "rupees", "12A", None, 840])
    def test_invalid_currency(self, value):
        assert sanitize_currency(value) is None

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("yearly", "yearly"),
            ("Annual", "yearly"),
            ("per annum", "yearly"),
            ("LPA", "yearly"),
            ("Monthly", "monthly"),
            ("per  month", "monthly"),
            ("hourly", "hourly"),
            ("/hr", "hourly"),
        ],
    )
    def test_period_synonyms(self, value, expected):
        assert sanitize_period(value) == expected

    @pytest.mark.parametrize("value", ["weekly", "fortnightly", None, 12])
    def test_unknown_period(self, value):
        assert sanitize_period(value) is None

    def test_bool_requires_true(self):
        assert sanitize_bool(True) is True
        assert sanitize_bool("true") is False
        assert sanitize_bool(1) is False
        assert sanitize_bool(None) is False


@pytest.mark.unit
class TestSanitizeCollections:
    """List and category map coercion."""

    def test_list_dedupes_case_insensitively(self):
        assert sanitize_string_list(["Python", "python", " PYTHON ", "Go"]) == ["Python", "Go"]

    def test_list_drops_non_strings_and_placeholders(self):
        assert sanitize_string_list(["Docker", 7, None, "n/a", ""]) == ["Docker"]

    def test_non_list_becomes_empty(self):
        assert sanitize_string_list("Python, Go") == []

    def test_list_item_length_capped(self):
        assert sanitize_string_list(["y" * 200], max_item_len=128) == ["y" * 128]

    def test_list_item_count_capped(self):
        items = [f"tool{i}" for i in range(10)]
        assert sanitize_string_list(items, max_items=3) == ["tool0", "tool1", "tool2"]

    def test_categories_keep_known_keys_in_order(self):
        result = sanitize_categories(
            {"databases": ["Redis"], "languages": ["Python"], "bogus": ["X"]}
        )
        assert list(result) == ["languages", "databases"]

    def test_empty_categories_become_none(self):
        assert sanitize_categories({"languages": [], "frameworks": None}) is None
        assert sanitize_categories(["languages"]) is None


@pytest.mark.unit
class TestSanitizeCandidate:
    """Whole-record sanitization."""

    def test_non_mapping_yields_empty_record(self):
        candidate = sanitize_candidate("not a record")

        assert candidate.title == ""
        assert candidate.company == ""
        assert candidate.tech_stack == []
        assert candidate.salary_min is None
        assert candidate.salary_max is None

    def test_fields_coerced(self):
        candidate = sanitize_candidate(
            {
                "title": "  Data Engineer ",
                "company": "Acme",
                "location": "Bengaluru",
                "salaryMin": "1,200,000",
                "salaryMax": 1800000,
                "salaryCurrency": "inr",
                "salaryPeriod": "annual",
                "salaryEstimated": "yes",
                "techStack": ["Python", "python", "Spark"],
                "collaborationTools": [],
                "applicantsCount": "57",
                "jobType": "Full-time",
            }
        )

        assert candidate.title == "Data Engineer"
        assert candidate.salary_min == 1200000
        assert candidate.salary_max == 1800000
        assert candidate.salary_currency == "INR"
        assert candidate.salary_period == "yearly"
        assert candidate.salary_estimated is False
        assert candidate.tech_stack == ["Python", "Spark"]
        assert candidate.collaboration_tools is None
        assert candidate.applicants_count == 57
        assert candidate.job_type == "Full-time"
        assert candidate.source is None

    def test_long_title_bounded(self):
        candidate = sanitize_candidate({"title": "T" * 1000})
        assert len(candidate.title) == STRING_LIMITS["title"]

    def test_sanitizing_twice_changes_nothing(self):
        raw = {
            "title": "Senior   Platform Engineer " + "x" * 400,
            "company": "-",
            "salaryMin": 85000.5,
            "salaryCurrency": "usd",
            "salaryPeriod": "per year",
            "techStack": ["Go", "GO", "  Kubernetes ", 9],
            "techStackNormalized": {"languages": ["Go"], "devOps": ["Kubernetes"], "x": ["y"]},
            "collaborationTools": ["Slack", "slack"],
            "education": "B.Tech " * 500,
        }
        once = sanitize_candidate(raw).to_dict()
        assert sanitize_candidate(once).to_dict() == once
