"""Shared fixtures: a scripted LLM provider, a manual clock and test settings."""

import json
import sys
import threading
from typing import Any, Optional

import pytest
from loguru import logger

from jobtrack.contexts.extraction.settings import ExtractionSettings
from jobtrack.utils.llm import LLMProvider, LLMResponse

# System-prompt fragments that identify each request kind
RATES_ROUTE = "exchange rates"
ESTIMATE_ROUTE = "salary research"


def make_response(
    content: Any, finish_reason: Optional[str] = "stop", model: str = "fake-model"
) -> LLMResponse:
    """LLMResponse from a dict (JSON-encoded), a string or None."""
    if isinstance(content, dict):
        content = json.dumps(content)
    return LLMResponse(
        content=content,
        model=model,
        input_tokens=10,
        output_tokens=10,
        finish_reason=finish_reason,
    )


class FakeProvider(LLMProvider):
    """
    Provider that replays scripted results.

    Each scripted item is an LLMResponse, a dict or string (wrapped in a
    "stop" response), or an exception instance (raised). Items are routed by a
    fragment of the system prompt; requests matching no route use the default
    queue.
    """

    _provider_prefix = "fake"

    def __init__(self, *responses, routes: Optional[dict] = None, model: str = "fake-model"):
        self.default = list(responses)
        self.routes = {key: list(items) for key, items in (routes or {}).items()}
        self.calls: list[dict] = []
        self._lock = threading.Lock()
        self.update_model(model)

    def queue_for(self, system_prompt: str) -> list:
        for fragment, items in self.routes.items():
            if fragment in system_prompt:
                return items
        return self.default

    def calls_to(self, fragment: str) -> list[dict]:
        return [c for c in self.calls if fragment in c["system_prompt"]]

    def _call_api(self, system_prompt, user_prompt, max_tokens, temperature, timeout):
        with self._lock:
            self.calls.append(
                {
                    "system_prompt": system_prompt,
                    "user_prompt": user_prompt,
                    "max_tokens": max_tokens,
                    "temperature": temperature,
                    "timeout": timeout,
                }
            )
            queue = self.queue_for(system_prompt)
            if not queue:
                raise AssertionError(f"Unscripted request: {system_prompt[:60]!r}")
            item = queue.pop(0)

        if isinstance(item, BaseException):
            raise item
        if isinstance(item, LLMResponse):
            return item
        return make_response(item, model=self.model)


class ManualClock:
    """Monotonic clock advanced by hand."""

    def __init__(self, start: float = 1000.0):
        self.value = start

    def __call__(self) -> float:
        return self.value

    def advance(self, seconds: float):
        self.value += seconds


@pytest.fixture
def settings():
    """Settings with credentials and no retry delay."""
    return ExtractionSettings(api_key="test-key", base_delay_seconds=0.0)


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def no_sleep():
    """Sleep replacement that records requested delays."""
    delays = []

    def sleep(seconds: float):
        delays.append(seconds)

    sleep.delays = delays
    return sleep


@pytest.fixture
def restore_logger():
    """Put loguru back on its default stderr handler after a test adds session sinks."""
    yield
    logger.remove()
    logger.add(sys.stderr)
