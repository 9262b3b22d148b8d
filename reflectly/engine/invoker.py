"""ModelInvoker — one call per candidate, and the sequential candidate loop."""

from __future__ import annotations

import logging
import time
from typing import Any, Sequence

from reflectly.engine.errors import ExhaustedCandidates
from reflectly.engine.extract import extract_json
from reflectly.engine.llm import LLMClient
from reflectly.engine.resilience import is_retryable, with_timeout
from reflectly.tracing.interface import TraceCollector, emit_quietly

logger = logging.getLogger(__name__)

DEFAULT_DEADLINE_MS = 12_000


class ModelInvoker:
    """Calls one candidate under the timeout guard and extracts its JSON.

    Errors are never swallowed here: :meth:`invoke` raises whatever the
    client, the guard or the extractor raised, and
    :meth:`invoke_first_available` only decides whether to move on.
    """

    def __init__(
        self,
        llm_client: LLMClient,
        trace_collector: TraceCollector,
        deadline_ms: int = DEFAULT_DEADLINE_MS,
    ) -> None:
        self._llm = llm_client
        self._trace = trace_collector
        self._deadline_ms = deadline_ms

    @property
    def provider(self) -> str:
        return self._llm.provider

    async def invoke(
        self,
        candidate: str,
        prompt: str,
        schema: dict[str, Any] | None,
        trace_id: str,
    ) -> dict[str, Any]:
        t0 = time.time()
        try:
            text = await with_timeout(self._llm.generate(candidate, prompt, schema), self._deadline_ms)
            parsed = extract_json(text)
        except Exception as exc:
            await emit_quietly(self._trace, trace_id, "model_attempt", {
                "model": candidate,
                "status": "error",
                "error_type": type(exc).__name__,
                "error": str(exc),
                "latency_ms": round((time.time() - t0) * 1000, 2),
            })
            raise

        latency = time.time() - t0
        logger.info("model=%s latency=%.3fs OK", candidate, latency)
        await emit_quietly(self._trace, trace_id, "model_attempt", {
            "model": candidate,
            "status": "ok",
            "latency_ms": round(latency * 1000, 2),
        })
        return parsed

    async def invoke_first_available(
        self,
        candidates: Sequence[str],
        prompt: str,
        schema: dict[str, Any] | None,
        trace_id: str,
    ) -> tuple[dict[str, Any], str]:
        """Try candidates strictly in order; return ``(parsed, model)`` of the first success."""
        attempted: list[str] = []
        last_exc: Exception | None = None

        for attempt, candidate in enumerate(candidates, start=1):
            attempted.append(candidate)
            try:
                parsed = await self.invoke(candidate, prompt, schema, trace_id)
            except Exception as exc:
                if not is_retryable(exc):
                    logger.warning("model=%s attempt=%d fatal error=%s", candidate, attempt, exc)
                    raise
                logger.warning("model=%s attempt=%d unavailable, trying next: %s", candidate, attempt, exc)
                last_exc = exc
                continue

            await emit_quietly(self._trace, trace_id, "model_selected", {"model": candidate, "attempts": attempt})
            return parsed, candidate

        raise ExhaustedCandidates(attempted, last_exc) from last_exc
