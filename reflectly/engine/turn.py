"""TurnOrchestrator — one chat turn, always answered."""

from __future__ import annotations

import logging
import time
import uuid
from typing import Sequence

from reflectly.engine.crisis import CrisisPredicate, crisis_result, default_crisis_screen
from reflectly.engine.errors import ExhaustedCandidates, ProviderRejected
from reflectly.engine.invoker import ModelInvoker
from reflectly.engine.models import ChatMessage, Intent, PromptContext, Tone, TurnResult, normalize_turn
from reflectly.engine.prompts import TURN_SCHEMA, build_turn_prompt
from reflectly.tracing.interface import TraceCollector, emit_quietly, flush_quietly

logger = logging.getLogger(__name__)

FALLBACK_PARAPHRASE = "I might be having trouble responding right now."
FALLBACK_FOLLOW_UP = "Would you like to try again or share more in a different way?"


def fallback_result(exc: BaseException, provider: str) -> TurnResult:
    """The canned turn returned when no candidate produced a usable answer."""
    cause = exc.last_error if isinstance(exc, ExhaustedCandidates) and exc.last_error else exc
    status = cause.status if isinstance(cause, ProviderRejected) else None
    status_text = cause.status_text if isinstance(cause, ProviderRejected) else None
    return TurnResult(
        paraphrase=FALLBACK_PARAPHRASE,
        follow_up=FALLBACK_FOLLOW_UP,
        action_steps=[],
        tags=["Transparency"],
        error=True,
        provider=provider,
        provider_status=status,
        provider_status_text=status_text,
        provider_message=str(exc),
    )


class TurnOrchestrator:
    """Crisis screen, then the candidate loop, then normalization.

    ``run_turn`` never raises for runtime failures; they come back as
    :func:`fallback_result`. A missing credential fails earlier, when the
    LLM client is constructed. Trace write failures are logged and dropped.

    An empty or missing ``paraphrase`` from a model is accepted as ``""``;
    it does not move the loop to the next candidate.
    """

    def __init__(
        self,
        invoker: ModelInvoker,
        candidates: Sequence[str],
        trace_collector: TraceCollector,
        crisis_screen: CrisisPredicate = default_crisis_screen,
    ) -> None:
        if not candidates:
            raise ValueError("at least one model candidate is required")
        self._invoker = invoker
        self._candidates = list(candidates)
        self._trace = trace_collector
        self._crisis_screen = crisis_screen


    async def run_turn(
        self,
        user_text: str,
        history: Sequence[ChatMessage] = (),
        *,
        tone: Tone = Tone.NEUTRAL,
        intent: Intent = Intent.GO_DEEP,
        trace_id: str | None = None,
    ) -> TurnResult:
        trace_id = trace_id or str(uuid.uuid4())
        t_start = time.time()

        if self._crisis_screen(user_text):
            await emit_quietly(self._trace, trace_id, "crisis_screen", {"matched": True})
            result = crisis_result()
        else:
            context = PromptContext(user_text=user_text, history=list(history), tone=tone, intent=intent)
            result = await self._invoke(context, trace_id)

        await emit_quietly(self._trace, trace_id, "turn_done", {
            "model": result.model,
            "fallback": result.is_fallback,
            "total_latency_ms": round((time.time() - t_start) * 1000, 2),
        })
        await flush_quietly(self._trace, trace_id)
        return result

    async def run_turn_strict(
        self,
        user_text: str,
        history: Sequence[ChatMessage] = (),
        *,
        tone: Tone = Tone.NEUTRAL,
        intent: Intent = Intent.GO_DEEP,
        trace_id: str | None = None,
    ) -> TurnResult:
        """Like :meth:`run_turn` without the crisis screen or fallback; failures raise."""
        trace_id = trace_id or str(uuid.uuid4())
        context = PromptContext(user_text=user_text, history=list(history), tone=tone, intent=intent)
        try:
            raw, model = await self._invoker.invoke_first_available(
                self._candidates, build_turn_prompt(context), TURN_SCHEMA, trace_id
            )
        finally:
            await flush_quietly(self._trace, trace_id)
        return normalize_turn(raw, model)

    async def _invoke(self, context: PromptContext, trace_id: str) -> TurnResult:
        try:
            raw, model = await self._invoker.invoke_first_available(
                self._candidates, build_turn_prompt(context), TURN_SCHEMA, trace_id
            )
        except Exception as exc:
            logger.exception("turn failed, returning fallback (trace=%s)", trace_id)
            return fallback_result(exc, self._invoker.provider)
        return normalize_turn(raw, model)
