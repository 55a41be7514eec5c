"""Unit tests for the normalization pipeline and the extract_job entry point."""

import dataclasses

import pytest

from conftest import ESTIMATE_ROUTE, RATES_ROUTE, FakeProvider, make_response
from jobtrack.contexts.extraction import (
    ConfigurationError,
    InputError,
    JobExtractionPipeline,
    UpstreamRejected,
    extract_job,
    get_pipeline,
)
from jobtrack.contexts.extraction.pipeline import reconcile_experience
from jobtrack.contexts.extraction.settings import ExtractionSettings

JOB_TEXT = """Senior Backend Engineer - Acme Payments (Bengaluru, hybrid)

We build payment rails in Python and Go on AWS (EC2, and S3).
Requirements: 2+ years of experience with PostgreSQL and Kubernetes.
Compensation: USD 100,000 - 150,000 per year.
"""

CANDIDATE = {
    "title": "Senior Backend Engineer",
    "company": "Acme Payments",
    "location": "Bengaluru",
    "role": "Backend Engineer",
    "experience": "2+ years",
    "salaryMin": 100000,
    "salaryMax": 150000,
    "salaryCurrency": "USD",
    "salaryPeriod": "yearly",
    "salaryEstimated": True,
    "techStack": ["python", "golang", "postgres", "Hybrid"],
    "techStackNormalized": {"languages": ["Python", "Go"], "devOps": ["k8s"]},
    "jobType": "Full-time",
    "seniority": "Senior",
}


def make_pipeline(settings, no_sleep, *responses, routes=None):
    provider = FakeProvider(*responses, routes=routes)
    pipeline = JobExtractionPipeline.from_settings(settings, provider=provider, sleep=no_sleep)
    return pipeline, provider


@pytest.mark.unit
class TestExtractJob:
    """Full extraction with a scripted service."""

    def test_stated_foreign_salary(self, settings, no_sleep):
        pipeline, provider = make_pipeline(
            settings, no_sleep, CANDIDATE, routes={RATES_ROUTE: [{"USD": 84.0}]}
        )

        record = pipeline.extract_job(JOB_TEXT)

        assert record.title == "Senior Backend Engineer"
        assert (record.salary_min, record.salary_max) == (8400000, 12600000)
        assert record.salary_currency == "INR"
        assert record.salary_period == "yearly"
        assert record.salary_estimated is False
        assert len(provider.calls_to(RATES_ROUTE)) == 1
        assert provider.calls_to(ESTIMATE_ROUTE) == []

    def test_tech_stack_canonicalized(self, settings, no_sleep):
        pipeline, _ = make_pipeline(
            settings, no_sleep, CANDIDATE, routes={RATES_ROUTE: [{"USD": 84.0}]}
        )

        record = pipeline.extract_job(JOB_TEXT)

        assert record.tech_stack[:3] == ["Python", "Go", "PostgreSQL"]
        assert "Hybrid" not in record.tech_stack
        assert {"Kubernetes", "AWS", "EC2", "S3"} <= set(record.tech_stack)
        flat = {t.lower() for t in record.tech_stack}
        for terms in record.tech_stack_normalized.values():
            assert all(t.lower() in flat for t in terms)

    def test_estimated_salary_when_absent(self, settings, no_sleep):
        candidate = {**CANDIDATE, "salaryMin": None, "salaryMax": None, "salaryCurrency": None}
        pipeline, provider = make_pipeline(
            settings,
            no_sleep,
            candidate,
            routes={ESTIMATE_ROUTE: [{"min": 1800000, "max": 2600000}]},
        )

        record = pipeline.extract_job(JOB_TEXT)

        assert (record.salary_min, record.salary_max) == (1800000, 2600000)
        assert record.salary_estimated is True
        assert record.salary_currency == "INR"
        assert provider.calls_to(RATES_ROUTE) == []

    def test_rate_failure_uses_defaults(self, settings, no_sleep):
        pipeline, _ = make_pipeline(
            settings,
            no_sleep,
            CANDIDATE,
            routes={RATES_ROUTE: [make_response("no rates today")]},
        )

        record = pipeline.extract_job(JOB_TEXT)

        assert record.salary_min == 8350000

    def test_unexpected_rate_error_uses_defaults(self, settings, no_sleep):
        pipeline, _ = make_pipeline(
            settings, no_sleep, CANDIDATE, routes={RATES_ROUTE: [RuntimeError("boom")]}
        )

        record = pipeline.extract_job(JOB_TEXT)

        assert (record.salary_min, record.salary_max) == (8350000, 12525000)
        assert record.salary_currency == "INR"

    def test_unexpected_estimate_error_leaves_salary_absent(self, settings, no_sleep):
        candidate = {**CANDIDATE, "salaryMin": None, "salaryMax": None, "salaryCurrency": None}
        pipeline, provider = make_pipeline(
            settings, no_sleep, candidate, routes={ESTIMATE_ROUTE: [RuntimeError("boom")]}
        )

        record = pipeline.extract_job(JOB_TEXT)

        assert record.title == "Senior Backend Engineer"
        assert (record.salary_min, record.salary_max, record.salary_currency) == (None, None, None)
        assert record.salary_estimated is False
        assert len(provider.calls_to(ESTIMATE_ROUTE)) == 1

    def test_role_falls_back_to_title(self, settings, no_sleep):
        candidate = {**CANDIDATE, "role": "", "salaryCurrency": "INR"}
        pipeline, _ = make_pipeline(settings, no_sleep, candidate)

        record = pipeline.extract_job(JOB_TEXT)

        assert record.role == "Senior Backend Engineer"

    def test_truncation_warnings(self, settings, no_sleep):
        settings = dataclasses.replace(settings, max_input_chars=40)
        candidate = {**CANDIDATE, "salaryCurrency": "INR"}
        pipeline, _ = make_pipeline(
            settings, no_sleep, make_response(candidate, finish_reason="length")
        )

        data = pipeline.extract_job(JOB_TEXT).to_dict()

        assert data["_warnings"] == {"jdTruncated": True, "responseTruncated": True}

    def test_no_warnings_key_when_clean(self, settings, no_sleep):
        candidate = {**CANDIDATE, "salaryCurrency": "INR"}
        pipeline, _ = make_pipeline(settings, no_sleep, candidate)

        assert "_warnings" not in pipeline.extract_job(JOB_TEXT).to_dict()

    def test_empty_record_still_valid(self, settings, no_sleep):
        pipeline, _ = make_pipeline(settings, no_sleep, {"unexpected": "shape"})

        record = pipeline.extract_job(JOB_TEXT)

        assert record.title == ""
        assert record.experience == "Not specified"
        assert record.salary_min is None
        assert record.salary_currency is None
        assert "Python" in record.tech_stack

    def test_errors_propagate(self, settings, no_sleep):
        pipeline, _ = make_pipeline(
            settings, no_sleep, make_response("{}", finish_reason="content_filter")
        )
        with pytest.raises(UpstreamRejected):
            pipeline.extract_job(JOB_TEXT)

    def test_blank_input(self, settings, no_sleep):
        pipeline, provider = make_pipeline(settings, no_sleep)
        with pytest.raises(InputError):
            pipeline.extract_job("  ")
        assert provider.calls == []


@pytest.mark.unit
class TestNormalize:
    """Normalization of an already-parsed candidate mapping."""

    def test_without_credentials_uses_default_rates(self):
        pipeline = JobExtractionPipeline.from_settings(ExtractionSettings(api_key=None))

        record = pipeline.normalize(
            {"title": "QA Engineer", "salaryMin": 50000, "salaryCurrency": "usd"}
        )

        assert record.salary_min == 4175000
        assert record.salary_max is None
        assert record.salary_currency == "INR"
        assert record.salary_period == "yearly"

    def test_reversed_salary_bounds(self):
        pipeline = JobExtractionPipeline.from_settings(ExtractionSettings(api_key=None))

        record = pipeline.normalize({"salaryMin": 2000000, "salaryMax": 1500000})

        assert (record.salary_min, record.salary_max) == (1500000, 2000000)

    def test_to_dict_shape(self):
        pipeline = JobExtractionPipeline.from_settings(ExtractionSettings(api_key=None))

        data = pipeline.normalize({"title": "SRE", "techStack": ["k8s"]}).to_dict()

        assert data["title"] == "SRE"
        assert data["techStack"] == ["Kubernetes"]
        assert data["techStackNormalized"] == {"devOps": ["Kubernetes"]}
        assert data["salaryEstimated"] is False
        assert "companyPublisher" in data
        assert "postedAt" in data


@pytest.mark.unit
class TestReconcileExperience:
    TEXT = (
        "Requirements: 2+ years of experience building APIs.\n"
        "Qualifications: 0-2 years relevant experience in backend work.\n"
    )

    def test_prefers_qualifications_range(self):
        assert reconcile_experience("2+ years", self.TEXT) == "0-2 years"

    def test_leaves_other_values(self):
        assert reconcile_experience("3-5 years", self.TEXT) == "3-5 years"

    def test_needs_both_phrasings(self):
        text = "Requirements: 2+ years of experience building APIs."
        assert reconcile_experience("2+ years", text) == "2+ years"

    def test_no_source_text(self):
        assert reconcile_experience("2+ years", None) == "2+ years"


@pytest.mark.unit
def test_module_extract_job_without_credentials(monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    get_pipeline.cache_clear()
    try:
        with pytest.raises(ConfigurationError):
            extract_job("Backend Engineer, Python")
    finally:
        get_pipeline.cache_clear()
