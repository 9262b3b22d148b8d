"""Transcript store — ABC + in-memory implementation, and bubble rendering."""

from __future__ import annotations

from abc import ABC, abstractmethod

from reflectly.engine.models import ChatMessage, Intent, Role, SessionMetric, TurnResult

FALLBACK_BUBBLE = "[fallback] I had trouble responding. Want to try again?"


class TranscriptStore(ABC):
    """Async message log + end-of-session metrics.

    Best effort only: no ordering guarantee across concurrent writers.
    Swap to Mongo/Postgres by implementing this ABC.
    """

    @abstractmethod
    async def append(self, session_id: str, role: Role, content: str) -> ChatMessage: ...

    @abstractmethod
    async def recent(self, session_id: str, limit: int) -> list[ChatMessage]:
        """The ``limit`` newest messages, returned oldest first."""

    @abstractmethod
    async def transcript(self, session_id: str, limit: int) -> list[ChatMessage]:
        """The ``limit`` oldest messages, oldest first."""

    @abstractmethod
    async def save_metric(self, metric: SessionMetric) -> None: ...

    @abstractmethod
    async def get_metric(self, session_id: str) -> SessionMetric | None: ...

    @abstractmethod
    async def prune(self, session_id: str) -> int: ...


class InMemoryTranscriptStore(TranscriptStore):
    """Dict-backed store — suitable for single-process dev/test."""

    def __init__(self) -> None:
        self._messages: dict[str, list[ChatMessage]] = {}
        self._metrics: dict[str, SessionMetric] = {}

    async def append(self, session_id: str, role: Role, content: str) -> ChatMessage:
        message = ChatMessage(role=role, content=content)
        self._messages.setdefault(session_id, []).append(message)
        return message

    async def recent(self, session_id: str, limit: int) -> list[ChatMessage]:
        if limit <= 0:
            return []
        return list(self._messages.get(session_id, [])[-limit:])

    async def transcript(self, session_id: str, limit: int) -> list[ChatMessage]:
        return list(self._messages.get(session_id, [])[:limit])

    async def save_metric(self, metric: SessionMetric) -> None:
        self._metrics[metric.session_id] = metric

    async def get_metric(self, session_id: str) -> SessionMetric | None:
        return self._metrics.get(session_id)

    async def prune(self, session_id: str) -> int:
        return len(self._messages.pop(session_id, []))


def render_bubble(result: TurnResult, intent: Intent) -> str:
    """Flatten a turn into the text stored as the AI's transcript line."""
    if result.is_fallback:
        return FALLBACK_BUBBLE

    parts = [result.paraphrase]
    if intent is Intent.SOLVE and result.action_steps:
        parts += ["", "Next steps:", *(f"• {step}" for step in result.action_steps)]
    if result.follow_up:
        parts += ["", f"Q: {result.follow_up}"]
    if result.tags:
        parts += ["", "— " + " · ".join(result.tags)]
    return "\n".join(parts).strip()
