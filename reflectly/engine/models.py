"""Core data models — no internal dependencies, only Pydantic + stdlib."""

from __future__ import annotations

import time
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

MAX_ACTION_STEPS = 3
MAX_TAGS = 4
MAX_SUMMARY_POINTS = 5


# ---------------------------------------------------------------------------
# Prompt context (caller → orchestrator)
# ---------------------------------------------------------------------------

class Tone(str, Enum):
    CALM = "calm"
    NEUTRAL = "neutral"
    UPBEAT = "upbeat"


class Intent(str, Enum):
    GO_DEEP = "go_deep"
    SOLVE = "solve"


class Role(str, Enum):
    USER = "user"
    AI = "ai"


class ChatMessage(BaseModel):
    """One transcript line. Lists of these are always oldest-first."""
    role: Role
    content: str
    created_at: float = Field(default_factory=time.time)


class PromptContext(BaseModel):
    """Everything a turn prompt is rendered from; validates raw tone, intent and history."""
    tone: Tone = Tone.NEUTRAL
    intent: Intent = Intent.GO_DEEP
    history: list[ChatMessage] = Field(default_factory=list)
    user_text: str


# ---------------------------------------------------------------------------
# Results (orchestrator → caller)
# ---------------------------------------------------------------------------

class _Payload(BaseModel):
    """camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(populate_by_name=True)

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class TurnResult(_Payload):
    paraphrase: str = ""
    follow_up: str | None = Field(default=None, alias="followUp")
    action_steps: list[str] = Field(default_factory=list, alias="actionSteps")
    tags: list[str] = Field(default_factory=list)
    model: str | None = None

    # Diagnostic-only, set on the fallback result. Consumers must not rely on them.
    error: bool | None = None
    provider: str | None = None
    provider_status: int | None = Field(default=None, alias="providerStatus")
    provider_status_text: str | None = Field(default=None, alias="providerStatusText")
    provider_message: str | None = Field(default=None, alias="providerMessage")

    @property
    def is_fallback(self) -> bool:
        return bool(self.error)


class SummaryResult(_Payload):
    summary: list[str] = Field(default_factory=list)
    next_prompt: str | None = Field(default=None, alias="nextPrompt")
    action_steps: list[str] = Field(default_factory=list, alias="actionSteps")
    tags: list[str] = Field(default_factory=list)
    model: str | None = None


# ---------------------------------------------------------------------------
# Normalization
# ---------------------------------------------------------------------------

def clamp_list(value: Any, limit: int) -> list[str]:
    """Keep the first ``limit`` items of a list as text; anything else → []."""
    if not isinstance(value, list):
        return []
    return [item if isinstance(item, str) else str(item) for item in value[:limit] if item is not None]


def _optional_text(value: Any) -> str | None:
    if value is None:
        return None
    text = value if isinstance(value, str) else str(value)
    return text or None


def normalize_turn(raw: dict[str, Any], model: str | None = None) -> TurnResult:
    paraphrase = raw.get("paraphrase")
    return TurnResult(
        paraphrase="" if paraphrase is None else str(paraphrase),
        follow_up=_optional_text(raw.get("followUp")),
        action_steps=clamp_list(raw.get("actionSteps"), MAX_ACTION_STEPS),
        tags=clamp_list(raw.get("tags"), MAX_TAGS),
        model=model,
    )


def normalize_summary(raw: dict[str, Any], model: str | None = None) -> SummaryResult:
    return SummaryResult(
        summary=clamp_list(raw.get("summary"), MAX_SUMMARY_POINTS),
        next_prompt=_optional_text(raw.get("nextPrompt")),
        action_steps=clamp_list(raw.get("actionSteps"), MAX_ACTION_STEPS),
        tags=clamp_list(raw.get("tags"), MAX_TAGS),
        model=model,
    )


# ---------------------------------------------------------------------------
# Session metrics (written by the caller at session end)
# ---------------------------------------------------------------------------

class SessionStats(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    turns: int
    avg_latency_ms: float = Field(alias="avgLatencyMs")
    error_count: int = Field(default=0, alias="errorCount")
    mood_delta: float | None = Field(default=None, alias="moodDelta")

    @model_validator(mode="before")
    @classmethod
    def _legacy_errors_key(cls, data: Any) -> Any:
        # older clients send "errors" instead of "errorCount"
        if isinstance(data, dict) and "errors" in data and data.get("errorCount") is None:
            data = {**data, "errorCount": data["errors"]}
        return data


class SessionMetric(BaseModel):
    session_id: str
    stats: SessionStats
    ended_at: float = Field(default_factory=time.time)
