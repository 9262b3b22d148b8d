"""Tests for TurnOrchestrator — crisis screen, candidate loop, fallback, normalization."""

from __future__ import annotations

import asyncio
import json
import shutil

import pytest
from pydantic import ValidationError

from reflectly.engine.crisis import phrase_screen
from reflectly.engine.errors import InvocationTimeout, ProviderRejected
from reflectly.engine.invoker import ModelInvoker
from reflectly.engine.llm import LLMClient, MockLLMClient
from reflectly.engine.models import (
    ChatMessage,
    Intent,
    PromptContext,
    Role,
    Tone,
    TurnResult,
    normalize_turn,
)
from reflectly.engine.prompts import build_turn_prompt
from reflectly.engine.turn import FALLBACK_FOLLOW_UP, FALLBACK_PARAPHRASE, TurnOrchestrator
from reflectly.tracing.interface import TraceCollector

NOT_FOUND = ProviderRejected(
    "models/model-a is not found for API version v1beta, or is not supported for generateContent.",
    status=404,
)


class TestCrisisScreen:
    async def test_crisis_text_short_circuits(self, make_turns):
        llm = MockLLMClient([])
        result = await make_turns(llm).run_turn("I want to kill myself")

        assert llm.call_count == 0
        assert result.paraphrase == "It sounds like you're going through intense pain."
        assert result.follow_up == "Would you be willing to contact immediate support? I can share options."
        assert result.action_steps == []
        assert result.tags == ["Empathic Calibration", "Transparency"]
        assert result.model is None

    @pytest.mark.parametrize("text", ["Thinking about SUICIDE lately", "I might overdose", "I just want to end it all"])
    async def test_crisis_is_case_insensitive(self, make_turns, text):
        llm = MockLLMClient([])
        result = await make_turns(llm).run_turn(text)
        assert llm.call_count == 0
        assert "Empathic Calibration" in result.tags

    async def test_ordinary_text_reaches_the_model(self, make_turns, model_text):
        llm = MockLLMClient([model_text({"paraphrase": "You want a change."})])
        result = await make_turns(llm).run_turn("I want to quit my job")
        assert llm.call_count == 1
        assert result.paraphrase == "You want a change."

    @pytest.mark.parametrize("text", [
        "writing my_suicide_note tonight",
        "thinking of 2overdose",
        "#wanna_kill myself",
    ])
    async def test_phrase_matches_inside_words(self, make_turns, text):
        llm = MockLLMClient([])
        result = await make_turns(llm).run_turn(text)
        assert llm.call_count == 0
        assert result.tags == ["Empathic Calibration", "Transparency"]

    async def test_screen_is_pluggable(self, make_turns):
        llm = MockLLMClient([])
        turns = make_turns(llm, crisis_screen=phrase_screen(["hopeless"]))
        result = await turns.run_turn("Everything feels hopeless")
        assert llm.call_count == 0
        assert result.tags == ["Empathic Calibration", "Transparency"]


class TestCandidateLoop:
    async def test_end_to_end_stuck_at_work(self, make_turns, stuck_at_work):
        llm = MockLLMClient([json.dumps(stuck_at_work)])
        result = await make_turns(llm).run_turn(
            "I feel stuck at work", [], tone=Tone.CALM, intent=Intent.SOLVE
        )

        assert result.paraphrase == "You feel stuck."
        assert result.action_steps == ["List options", "Talk to a mentor", "Set one small goal"]
        assert result.follow_up == "What would moving forward look like?"
        assert result.tags == ["Strategic Framing"]
        assert result.model == "model-a"
        assert not result.is_fallback

    async def test_retryable_then_success(self, make_turns, model_text, stuck_at_work):
        llm = MockLLMClient([NOT_FOUND, model_text(stuck_at_work)])
        result = await make_turns(llm).run_turn("I feel stuck at work")

        assert llm.call_count == 2
        assert llm.models_called == ["model-a", "model-b"]
        assert result.model == "model-b"
        assert result.paraphrase == "You feel stuck."

    async def test_non_retryable_stops_after_one_attempt(self, make_turns, model_text):
        llm = MockLLMClient([
            ProviderRejected("Internal error encountered.", status=500),
            model_text({"paraphrase": "never reached"}),
        ])
        result = await make_turns(llm).run_turn("hello there")

        assert llm.call_count == 1
        assert result.is_fallback
        assert result.paraphrase == FALLBACK_PARAPHRASE
        assert result.follow_up == FALLBACK_FOLLOW_UP
        assert result.action_steps == []
        assert result.tags == ["Transparency"]
        assert result.provider == "gemini"
        assert result.provider_status == 500
        assert result.provider_status_text == "Internal Server Error"
        assert "Internal error" in result.provider_message

    async def test_invalid_json_is_fatal(self, make_turns, model_text):
        llm = MockLLMClient(['{"paraphrase": "oops",}', model_text({"paraphrase": "never reached"})])
        result = await make_turns(llm).run_turn("hello there")
        assert llm.call_count == 1
        assert result.is_fallback

    async def test_all_candidates_exhausted(self, make_turns):
        llm = MockLLMClient([
            NOT_FOUND,
            ProviderRejected("quota exceeded", status=429),
            "I'd rather answer in prose.",
        ])
        result = await make_turns(llm).run_turn("hello there")

        assert llm.call_count == 3
        assert result.is_fallback
        assert "NO_WORKING_GEMINI_MODEL" in result.provider_message
        # last failure was a parse miss, which carries no HTTP status
        assert result.provider_status is None

    async def test_exhausted_reports_last_provider_status(self, make_turns):
        llm = MockLLMClient([NOT_FOUND, NOT_FOUND, ProviderRejected("quota exceeded", status=429)])
        result = await make_turns(llm).run_turn("hello there")
        assert result.provider_status == 429
        assert result.provider_status_text == "Too Many Requests"

    async def test_timeout_moves_to_next_candidate(self, make_turns, model_text):
        class SlowFirst(LLMClient):
            def __init__(self):
                self.models: list[str] = []

            async def generate(self, model, prompt, schema=None):
                self.models.append(model)
                if len(self.models) == 1:
                    await asyncio.sleep(5)
                return model_text({"paraphrase": "Second time lucky."})

        llm = SlowFirst()
        result = await make_turns(llm, deadline_ms=50).run_turn("hello there")
        assert llm.models == ["model-a", "model-b"]
        assert result.paraphrase == "Second time lucky."

    async def test_scripted_timeout_is_retried(self, make_turns, model_text):
        llm = MockLLMClient([InvocationTimeout(12000), model_text({"paraphrase": "ok"})])
        result = await make_turns(llm).run_turn("hello there")
        assert llm.call_count == 2
        assert result.model == "model-b"

    async def test_empty_paraphrase_is_accepted(self, make_turns, model_text):
        llm = MockLLMClient([model_text({"followUp": "Tell me more?"}), model_text({"paraphrase": "unused"})])
        result = await make_turns(llm).run_turn("hmm")
        assert llm.call_count == 1
        assert result.paraphrase == ""
        assert result.follow_up == "Tell me more?"
        assert result.action_steps == []
        assert result.tags == []

    async def test_run_turn_strict_raises(self, make_turns):
        llm = MockLLMClient([ProviderRejected("Internal error", status=500)])
        with pytest.raises(ProviderRejected):
            await make_turns(llm).run_turn_strict("ping")


class TestPrompt:
    async def test_prompt_layout(self, make_turns, model_text):
        llm = MockLLMClient([model_text({"paraphrase": "ok"})])
        history = [
            ChatMessage(role=Role.USER, content="first"),
            ChatMessage(role=Role.AI, content="second"),
        ]
        await make_turns(llm).run_turn("third", history, tone=Tone.UPBEAT, intent=Intent.SOLVE)

        prompt = llm.calls[0][1]
        assert "Tone: upbeat\nIntent: solve\n---\nRECENT HISTORY (may be empty):\nUSER: first\nAI: second\n---\nUSER:\nthird\n---\n" in prompt
        assert prompt.startswith("You are Reflectly")
        assert '"paraphrase"' in prompt

    async def test_empty_history_renders_none(self, make_turns, model_text):
        llm = MockLLMClient([model_text({"paraphrase": "ok"})])
        await make_turns(llm).run_turn("alone")
        assert "RECENT HISTORY (may be empty):\n(none)\n---" in llm.calls[0][1]

    async def test_raw_tone_and_intent_are_validated(self, make_turns, model_text):
        llm = MockLLMClient([model_text({"paraphrase": "ok"})])
        await make_turns(llm).run_turn("hi", [{"role": "user", "content": "earlier"}], tone="calm", intent="solve")
        assert "Tone: calm\nIntent: solve\n---\nRECENT HISTORY (may be empty):\nUSER: earlier\n" in llm.calls[0][1]

    async def test_unknown_tone_is_rejected(self, make_turns):
        llm = MockLLMClient([])
        with pytest.raises(ValidationError):
            await make_turns(llm).run_turn("hi", tone="loud")
        assert llm.call_count == 0

    def test_context_defaults(self):
        prompt = build_turn_prompt(PromptContext(user_text="just checking in"))
        assert "Tone: neutral\nIntent: go_deep\n" in prompt
        assert "USER:\njust checking in\n---\n" in prompt


class TestNormalization:
    def test_clamps_and_keeps_order(self):
        steps = ["one", "two", "three", "four", "five"]
        result = normalize_turn({"paraphrase": "p", "actionSteps": steps, "tags": list("abcdef")})
        assert result.action_steps == ["one", "two", "three"]
        assert result.tags == ["a", "b", "c", "d"]

    def test_idempotent(self):
        first = normalize_turn({"paraphrase": "p", "actionSteps": [str(i) for i in range(5)]})
        second = normalize_turn(first.to_payload())
        assert second.action_steps == first.action_steps == ["0", "1", "2"]

    def test_non_list_and_missing_fields(self):
        result = normalize_turn({"paraphrase": None, "actionSteps": "do it", "followUp": ""})
        assert result.paraphrase == ""
        assert result.action_steps == []
        assert result.tags == []
        assert result.follow_up is None

    def test_non_text_items_are_coerced(self):
        result = normalize_turn({"paraphrase": 42, "tags": [1, None, "x"]})
        assert result.paraphrase == "42"
        assert result.tags == ["1", "x"]

    def test_payload_uses_wire_names(self):
        payload = TurnResult(paraphrase="p", follow_up="q", action_steps=["s"], tags=["t"]).to_payload()
        assert payload == {"paraphrase": "p", "followUp": "q", "actionSteps": ["s"], "tags": ["t"]}


class TestTraces:
    async def test_trace_records_attempts(self, make_turns, model_text, trace_collector):
        llm = MockLLMClient([NOT_FOUND, model_text({"paraphrase": "ok"})])
        await make_turns(llm).run_turn("hello", trace_id="trace-1")

        events = trace_collector.read("trace-1")
        kinds = [e["event"] for e in events]
        assert kinds == ["model_attempt", "model_attempt", "model_selected", "turn_done"]
        assert events[0]["status"] == "error"
        assert events[1]["status"] == "ok"
        assert events[2]["model"] == "model-b"
        assert events[3]["fallback"] is False

    async def test_crisis_trace(self, make_turns, trace_collector):
        await make_turns(MockLLMClient([])).run_turn("I might overdose", trace_id="trace-2")
        kinds = [e["event"] for e in trace_collector.read("trace-2")]
        assert kinds == ["crisis_screen", "turn_done"]

    async def test_removed_trace_dir_is_recreated(self, make_turns, model_text, trace_collector, tmp_path):
        shutil.rmtree(tmp_path / "traces")
        llm = MockLLMClient([model_text({"paraphrase": "ok"})])
        result = await make_turns(llm).run_turn("hello there", trace_id="trace-3")

        assert result.paraphrase == "ok"
        assert trace_collector.path_for("trace-3") == tmp_path / "traces" / "trace-3.jsonl"
        assert [e["event"] for e in trace_collector.read("trace-3")][-1] == "turn_done"


class BrokenTraceCollector(TraceCollector):
    def __init__(self, fail_emit: bool = False):
        self.fail_emit = fail_emit
        self.flushes = 0

    async def emit(self, trace_id, event_type, data):
        if self.fail_emit:
            raise OSError("No space left on device")

    async def flush(self, trace_id):
        self.flushes += 1
        raise FileNotFoundError(f"traces/{trace_id}.jsonl")


class TestTraceFailures:
    def _turns(self, llm, collector, candidates):
        return TurnOrchestrator(ModelInvoker(llm, collector, deadline_ms=1000), candidates, collector)

    async def test_failed_flush_still_answers(self, model_text, candidates):
        collector = BrokenTraceCollector()
        llm = MockLLMClient([model_text({"paraphrase": "Still here."})])
        result = await self._turns(llm, collector, candidates).run_turn("hello there")
        assert result.paraphrase == "Still here."
        assert collector.flushes == 1

    async def test_failed_emit_on_crisis_path(self, candidates):
        collector = BrokenTraceCollector(fail_emit=True)
        result = await self._turns(MockLLMClient([]), collector, candidates).run_turn("I want to end it")
        assert result.tags == ["Empathic Calibration", "Transparency"]

    async def test_failed_flush_on_fallback_path(self, candidates):
        collector = BrokenTraceCollector()
        llm = MockLLMClient([ProviderRejected("Internal error", status=500)])
        result = await self._turns(llm, collector, candidates).run_turn("hello there")
        assert result.is_fallback

    async def test_failed_emit_does_not_mask_model_answer(self, model_text, candidates):
        collector = BrokenTraceCollector(fail_emit=True)
        llm = MockLLMClient([NOT_FOUND, model_text({"paraphrase": "Second model."})])
        result = await self._turns(llm, collector, candidates).run_turn("hello there")
        assert result.model == "model-b"
        assert result.paraphrase == "Second model."
