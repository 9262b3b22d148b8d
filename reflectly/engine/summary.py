"""SummaryOrchestrator — end-of-session recap. Failures propagate as SummaryError."""

from __future__ import annotations

import logging
import time
import uuid
from typing import Sequence

from reflectly.engine.errors import SummaryError
from reflectly.engine.invoker import ModelInvoker
from reflectly.engine.models import ChatMessage, SummaryResult, normalize_summary
from reflectly.engine.prompts import SUMMARY_SCHEMA, build_summary_prompt
from reflectly.tracing.interface import TraceCollector, emit_quietly, flush_quietly

logger = logging.getLogger(__name__)


class SummaryOrchestrator:
    def __init__(
        self,
        invoker: ModelInvoker,
        candidates: Sequence[str],
        trace_collector: TraceCollector,
    ) -> None:
        if not candidates:
            raise ValueError("at least one model candidate is required")
        self._invoker = invoker
        self._candidates = list(candidates)
        self._trace = trace_collector

    async def summarize(
        self,
        transcript: Sequence[ChatMessage],
        *,
        trace_id: str | None = None,
    ) -> SummaryResult:
        trace_id = trace_id or str(uuid.uuid4())
        t_start = time.time()
        prompt = build_summary_prompt(transcript)

        try:
            raw, model = await self._invoker.invoke_first_available(
                self._candidates, prompt, SUMMARY_SCHEMA, trace_id
            )
        except Exception as exc:
            logger.warning("summary failed (trace=%s): %s", trace_id, exc)
            await emit_quietly(self._trace, trace_id, "summary_done", {
                "status": "error",
                "error": str(exc),
                "total_latency_ms": round((time.time() - t_start) * 1000, 2),
            })
            await flush_quietly(self._trace, trace_id)
            raise SummaryError(exc) from exc

        await emit_quietly(self._trace, trace_id, "summary_done", {
            "status": "ok",
            "model": model,
            "total_latency_ms": round((time.time() - t_start) * 1000, 2),
        })
        await flush_quietly(self._trace, trace_id)
        return normalize_summary(raw, model)
