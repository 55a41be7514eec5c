"""Unit tests for the extraction orchestrator."""

import dataclasses

import httpx
import openai
import pytest

from conftest import FakeProvider, make_response
from jobtrack.contexts.extraction.exceptions import (
    ConfigurationError,
    InputError,
    UpstreamRejected,
    UpstreamTransient,
)
from jobtrack.contexts.extraction.orchestrator import (
    ExtractionOrchestrator,
    interpret_response,
    truncate_input,
)
from jobtrack.contexts.extraction.service import ExtractionService
from jobtrack.contexts.extraction.settings import ExtractionSettings

JOB_TEXT = "Backend Engineer at Acme. Python, PostgreSQL, Docker. 12-18 LPA."
CANDIDATE = {"title": "Backend Engineer", "company": "Acme", "techStack": ["Python"]}


def make_orchestrator(settings, provider, sleep):
    return ExtractionOrchestrator(ExtractionService(provider), settings, sleep=sleep)


@pytest.mark.unit
class TestInterpretResponse:
    """Validation of a single service response."""

    def test_valid_response(self):
        candidate = interpret_response(make_response(CANDIDATE))

        assert candidate.data == CANDIDATE
        assert not candidate.output_truncated
        assert candidate.model == "fake-model"

    def test_content_filter_rejected(self):
        with pytest.raises(UpstreamRejected, match="content policy"):
            interpret_response(make_response('{"title": "x"}', finish_reason="content_filter"))

    def test_missing_choices_rejected(self):
        with pytest.raises(UpstreamRejected, match="Invalid response structure"):
            interpret_response(make_response(None, finish_reason=None))

    @pytest.mark.parametrize("content", ["", "   "])
    def test_empty_content_rejected(self, content):
        with pytest.raises(UpstreamRejected, match="Empty response"):
            interpret_response(make_response(content))

    def test_short_complete_response_rejected(self):
        with pytest.raises(UpstreamRejected, match="too short"):
            interpret_response(make_response("{}"))

    def test_length_stop_flags_truncation(self):
        candidate = interpret_response(make_response(CANDIDATE, finish_reason="length"))
        assert candidate.output_truncated

    def test_unparseable_json_is_transient(self):
        with pytest.raises(UpstreamTransient, match="Invalid JSON"):
            interpret_response(make_response('{"title": "Backend Engineer", "comp'))

    def test_fenced_json_salvaged(self):
        candidate = interpret_response(make_response('```json\n{"title": "SRE"}\n```'))
        assert candidate.data == {"title": "SRE"}


@pytest.mark.unit
def test_truncate_input():
    assert truncate_input("abcdef", 10) == ("abcdef", False)
    assert truncate_input("abcdef", 4) == ("abcd", True)


@pytest.mark.unit
class TestExtract:
    """Primary extraction with retries."""

    def test_success(self, settings, no_sleep):
        provider = FakeProvider(CANDIDATE)
        candidate = make_orchestrator(settings, provider, no_sleep).extract(JOB_TEXT)

        assert candidate.data["title"] == "Backend Engineer"
        assert not candidate.input_truncated
        call = provider.calls[0]
        assert call["user_prompt"] == JOB_TEXT
        assert call["max_tokens"] == settings.max_response_tokens
        assert call["temperature"] == settings.temperature
        assert "JSON" in call["system_prompt"]

    def test_missing_credentials_fail_before_any_call(self, no_sleep):
        orchestrator = ExtractionOrchestrator.from_settings(
            ExtractionSettings(api_key=None), sleep=no_sleep
        )

        with pytest.raises(ConfigurationError, match="OPENAI_API_KEY"):
            orchestrator.extract(JOB_TEXT)

    @pytest.mark.parametrize("text", ["", "   \n\t", None, 42, ["job"]])
    def test_invalid_input(self, settings, no_sleep, text):
        provider = FakeProvider()
        with pytest.raises(InputError):
            make_orchestrator(settings, provider, no_sleep).extract(text)
        assert provider.calls == []

    def test_long_input_truncated(self, settings, no_sleep):
        settings = dataclasses.replace(settings, max_input_chars=20)
        provider = FakeProvider(CANDIDATE)

        candidate = make_orchestrator(settings, provider, no_sleep).extract(JOB_TEXT)

        assert candidate.input_truncated
        assert provider.calls[0]["user_prompt"] == JOB_TEXT[:20]

    def test_transient_failure_retried_with_backoff(self, settings, no_sleep):
        settings = dataclasses.replace(settings, base_delay_seconds=1.0)
        provider = FakeProvider(
            openai.APITimeoutError(request=httpx.Request("POST", "https://example.test")),
            "not json at all",
            CANDIDATE,
        )

        candidate = make_orchestrator(settings, provider, no_sleep).extract(JOB_TEXT)

        assert candidate.data == CANDIDATE
        assert len(provider.calls) == 3
        assert no_sleep.delays == [1.0, 2.0]

    def test_retries_exhausted(self, settings, no_sleep):
        provider = FakeProvider("garbage one", "garbage two", "garbage three")

        with pytest.raises(UpstreamTransient, match="Invalid JSON"):
            make_orchestrator(settings, provider, no_sleep).extract(JOB_TEXT)
        assert len(provider.calls) == settings.max_retries + 1

    def test_rejection_not_retried(self, settings, no_sleep):
        provider = FakeProvider(make_response("", finish_reason="stop"), CANDIDATE)

        with pytest.raises(UpstreamRejected):
            make_orchestrator(settings, provider, no_sleep).extract(JOB_TEXT)
        assert len(provider.calls) == 1
        assert no_sleep.delays == []

    def test_truncated_response_still_parsed(self, settings, no_sleep):
        provider = FakeProvider(make_response(CANDIDATE, finish_reason="length"))

        candidate = make_orchestrator(settings, provider, no_sleep).extract(JOB_TEXT)

        assert candidate.output_truncated
        assert candidate.data["company"] == "Acme"
