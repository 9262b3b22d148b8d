"""Shared fixtures for reflectly tests."""

from __future__ import annotations

import json

import pytest

from reflectly.engine.invoker import ModelInvoker
from reflectly.engine.llm import MockLLMClient
from reflectly.engine.session import InMemoryTranscriptStore
from reflectly.engine.summary import SummaryOrchestrator
from reflectly.engine.turn import TurnOrchestrator
from reflectly.tracing.jsonl_tracer import JSONLTraceCollector

CANDIDATES = ["model-a", "model-b", "model-c"]

STUCK_AT_WORK = {
    "paraphrase": "You feel stuck.",
    "actionSteps": ["List options", "Talk to a mentor", "Set one small goal"],
    "followUp": "What would moving forward look like?",
    "tags": ["Strategic Framing"],
}


def as_model_text(payload: dict) -> str:
    """What a model typically returns: fenced JSON with a bit of prose."""
    return "Here you go:\n```json\n" + json.dumps(payload) + "\n```"


@pytest.fixture
def candidates():
    return list(CANDIDATES)


@pytest.fixture
def trace_collector(tmp_path):
    return JSONLTraceCollector(trace_dir=str(tmp_path / "traces"))


@pytest.fixture
def store():
    return InMemoryTranscriptStore()


@pytest.fixture
def make_turns(trace_collector, candidates):
    def _make(llm: MockLLMClient, deadline_ms: int = 1000, **kwargs) -> TurnOrchestrator:
        invoker = ModelInvoker(llm, trace_collector, deadline_ms=deadline_ms)
        return TurnOrchestrator(invoker, candidates, trace_collector, **kwargs)
    return _make


@pytest.fixture
def make_summaries(trace_collector, candidates):
    def _make(llm: MockLLMClient, deadline_ms: int = 1000) -> SummaryOrchestrator:
        invoker = ModelInvoker(llm, trace_collector, deadline_ms=deadline_ms)
        return SummaryOrchestrator(invoker, candidates, trace_collector)
    return _make


@pytest.fixture
def model_text():
    return as_model_text


@pytest.fixture
def stuck_at_work():
    return dict(STUCK_AT_WORK)
