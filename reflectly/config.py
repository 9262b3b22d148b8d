"""Runtime configuration, read once from the environment."""

from __future__ import annotations

import os
from typing import Mapping

from pydantic import BaseModel, ConfigDict, Field

from reflectly.engine.candidates import FALLBACK_MODELS, build_candidates
from reflectly.engine.llm import GEMINI_OPENAI_BASE_URL


def _flag(value: str | None, default: bool) -> bool:
    if value is None or not value.strip():
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


class CompanionConfig(BaseModel):
    """Everything the companion reads from the environment.

    Environment variables (all optional):
      GEMINI_API_KEY    — required unless USE_MOCK_LLM=1
      GEMINI_MODEL      — preferred model, tried before the fallbacks
      GEMINI_BASE_URL   — OpenAI-compatible Gemini endpoint
      MODEL_TIMEOUT_MS  — per-candidate deadline, default 12000
      HISTORY_LIMIT / TRANSCRIPT_LIMIT — messages handed to turn / summary
      PRUNE_ON_END      — delete a session's messages when it ends
      TRACE_DIR         — JSONL trace directory; empty disables tracing
      USE_MOCK_LLM      — ``1`` to answer from the demo mock
    """

    model_config = ConfigDict(protected_namespaces=())

    api_key: str = ""
    model_preference: str | None = None
    fallback_models: list[str] = Field(default_factory=lambda: list(FALLBACK_MODELS))
    base_url: str = GEMINI_OPENAI_BASE_URL
    timeout_ms: int = Field(default=12_000, gt=0)
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    history_limit: int = Field(default=6, ge=0)
    transcript_limit: int = Field(default=20, ge=1)
    prune_on_end: bool = True
    trace_dir: str | None = "./traces"
    use_mock_llm: bool = False
    port: int = 8000

    @property
    def candidates(self) -> list[str]:
        return build_candidates(self.model_preference, self.fallback_models)

    @property
    def has_key(self) -> bool:
        return bool(self.api_key.strip())

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> "CompanionConfig":
        env = os.environ if env is None else env
        preference = (env.get("GEMINI_MODEL") or "").strip()
        trace_dir = env.get("TRACE_DIR", "./traces").strip()
        return cls(
            api_key=(env.get("GEMINI_API_KEY") or "").strip(),
            model_preference=preference or None,
            base_url=env.get("GEMINI_BASE_URL") or GEMINI_OPENAI_BASE_URL,
            timeout_ms=int(env.get("MODEL_TIMEOUT_MS") or 12_000),
            temperature=float(env.get("MODEL_TEMPERATURE") or 0.7),
            history_limit=int(env.get("HISTORY_LIMIT") or 6),
            transcript_limit=int(env.get("TRANSCRIPT_LIMIT") or 20),
            prune_on_end=_flag(env.get("PRUNE_ON_END"), True),
            trace_dir=trace_dir or None,
            use_mock_llm=_flag(env.get("USE_MOCK_LLM"), False),
            port=int(env.get("PORT") or 8000),
        )
