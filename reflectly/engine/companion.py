"""Companion — the caller-side flow shared by every adapter.

Orchestrators never touch storage; this class does the reads and writes
around them (history in, bubbles out, metrics at session end).
"""

from __future__ import annotations

import logging
import time
import uuid
from typing import Any

from reflectly.engine.models import (
    Intent,
    Role,
    SessionMetric,
    SessionStats,
    SummaryResult,
    Tone,
    TurnResult,
)
from reflectly.engine.session import TranscriptStore, render_bubble
from reflectly.engine.summary import SummaryOrchestrator
from reflectly.engine.turn import TurnOrchestrator

logger = logging.getLogger(__name__)

PING_TEXT = "Say 'ok' in JSON with keys paraphrase and followUp only."


class Companion:
    """Public API for adapters: ``await companion.chat(session_id, text)``."""

    def __init__(
        self,
        store: TranscriptStore,
        turns: TurnOrchestrator,
        summaries: SummaryOrchestrator,
        history_limit: int = 6,
        transcript_limit: int = 20,
        prune_on_end: bool = True,
    ) -> None:
        self._store = store
        self._turns = turns
        self._summaries = summaries
        self._history_limit = history_limit
        self._transcript_limit = transcript_limit
        self._prune_on_end = prune_on_end

    @property
    def store(self) -> TranscriptStore:
        return self._store

    async def chat(
        self,
        session_id: str,
        text: str,
        tone: Tone = Tone.NEUTRAL,
        intent: Intent = Intent.GO_DEEP,
    ) -> dict[str, Any]:
        t0 = time.time()
        trace_id = str(uuid.uuid4())

        history = await self._store.recent(session_id, self._history_limit)
        await self._store.append(session_id, Role.USER, text)

        result = await self._turns.run_turn(text, history, tone=tone, intent=intent, trace_id=trace_id)
        await self._store.append(session_id, Role.AI, render_bubble(result, intent))

        payload = result.to_payload()
        payload["latencyMs"] = int((time.time() - t0) * 1000)
        return payload

    async def summarize(self, session_id: str) -> SummaryResult:
        transcript = await self._store.transcript(session_id, self._transcript_limit)
        return await self._summaries.summarize(transcript)

    async def end_session(self, session_id: str, stats: SessionStats) -> None:
        await self._store.save_metric(SessionMetric(session_id=session_id, stats=stats))
        if self._prune_on_end:
            removed = await self._store.prune(session_id)
            logger.info("session=%s ended, pruned %d messages", session_id, removed)

    async def ping(self) -> TurnResult:
        """One real turn through the candidate loop; raises instead of falling back."""
        return await self._turns.run_turn_strict(PING_TEXT)
