"""LLM client — ABC, Gemini implementation, and mocks."""

from __future__ import annotations

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from typing import Any

from reflectly.engine.errors import InvocationTimeout, MissingCredential, ProviderRejected

logger = logging.getLogger(__name__)

GEMINI_OPENAI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/openai/"

# Keys some Gemini model versions reject inside a response schema.
_UNSUPPORTED_SCHEMA_KEYS = frozenset({"additionalProperties"})


class LLMClient(ABC):
    """Abstract generation backend. One call, one complete text response."""

    provider: str = "gemini"

    @abstractmethod
    async def generate(
        self,
        model: str,
        prompt: str,
        schema: dict[str, Any] | None = None,
    ) -> str: ...


# ---------------------------------------------------------------------------
# Gemini implementation (OpenAI-compatible endpoint)
# ---------------------------------------------------------------------------

def _strip_schema(node: Any) -> Any:
    if isinstance(node, dict):
        return {k: _strip_schema(v) for k, v in node.items() if k not in _UNSUPPORTED_SCHEMA_KEYS}
    if isinstance(node, list):
        return [_strip_schema(v) for v in node]
    return node


class GeminiLLMClient(LLMClient):
    """Gemini through Google's OpenAI-compatible endpoint.

    SDK errors are mapped onto the invocation errors the candidate loop
    classifies. Connection failures carry no HTTP status and are fatal.
    ``http_client`` is handed to ``AsyncOpenAI`` as is (proxies, tests).
    """

    def __init__(
        self,
        api_key: str | None,
        base_url: str = GEMINI_OPENAI_BASE_URL,
        temperature: float = 0.7,
        request_timeout_s: float = 30.0,
        http_client: Any = None,
    ) -> None:
        key = (api_key or "").strip()
        if not key:
            raise MissingCredential()

        # Late import so the rest of the package works without openai installed
        from openai import AsyncOpenAI

        # Candidate fallback replaces SDK-level retries.
        self._client = AsyncOpenAI(
            api_key=key,
            base_url=base_url,
            max_retries=0,
            timeout=request_timeout_s,
            http_client=http_client,
        )
        self._temperature = temperature
        self._timeout_s = request_timeout_s

    async def generate(
        self,
        model: str,
        prompt: str,
        schema: dict[str, Any] | None = None,
    ) -> str:
        import openai

        kwargs: dict[str, Any] = {
            "model": model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": self._temperature,
        }
        if schema:
            kwargs["response_format"] = {
                "type": "json_schema",
                "json_schema": {
                    "name": schema.get("title", "reply"),
                    "schema": _strip_schema({k: v for k, v in schema.items() if k != "title"}),
                },
            }

        try:
            response = await self._client.chat.completions.create(**kwargs)
        except openai.APITimeoutError as exc:
            raise InvocationTimeout(int(self._timeout_s * 1000)) from exc
        except openai.APIStatusError as exc:
            raise ProviderRejected(exc.message, status=exc.status_code) from exc
        except openai.APIConnectionError as exc:
            raise ProviderRejected(f"connection error: {exc}") from exc

        if not response.choices:
            return ""
        return response.choices[0].message.content or ""


# ---------------------------------------------------------------------------
# Test mock — deterministic, pre-loaded responses
# ---------------------------------------------------------------------------

class MockLLMClient(LLMClient):
    """Returns (or raises) pre-configured responses in order. Used in unit tests."""

    def __init__(self, responses: list[str | BaseException], delay: float = 0.0) -> None:
        self._responses = list(responses)
        self._delay = delay
        self.calls: list[tuple[str, str]] = []

    async def generate(
        self,
        model: str,
        prompt: str,
        schema: dict[str, Any] | None = None,
    ) -> str:
        self.calls.append((model, prompt))
        if self._delay:
            await asyncio.sleep(self._delay)
        index = len(self.calls) - 1
        if index >= len(self._responses):
            return "[mock responses exhausted]"
        result = self._responses[index]
        if isinstance(result, BaseException):
            raise result
        return result

    @property
    def call_count(self) -> int:
        return len(self.calls)

    @property
    def models_called(self) -> list[str]:
        return [model for model, _ in self.calls]


# ---------------------------------------------------------------------------
# Demo mock — context-aware, for running without an API key
# ---------------------------------------------------------------------------

class DemoMockLLMClient(LLMClient):
    """Produces contract-shaped JSON from the prompt alone.

    Behaviour:
    1. Summary prompts (they carry a TRANSCRIPT block) → two-bullet summary.
    2. Turn prompts → echo the user's text back as the paraphrase; add steps
       when the intent is ``solve``.
    """

    provider = "demo"

    async def generate(
        self,
        model: str,
        prompt: str,
        schema: dict[str, Any] | None = None,
    ) -> str:
        if "TRANSCRIPT:" in prompt:
            return json.dumps({
                "summary": ["You talked through what is on your mind.", "Demo mode: no model was called."],
                "nextPrompt": "What feels most important to return to next time?",
                "actionSteps": [],
                "tags": ["Reflective Mirroring"],
            })

        user_text = prompt.split("USER:\n", 1)[-1].split("\n---", 1)[0].strip()
        out: dict[str, Any] = {
            "paraphrase": f"It sounds like you're saying: {user_text[:200]}",
            "tags": ["Reflective Mirroring", "Clarifying Extension"],
        }
        if "Intent: solve" in prompt:
            out["actionSteps"] = ["Name the smallest next step", "Set a time to try it"]
            out["tags"] = ["Reflective Mirroring", "Strategic Framing"]
        else:
            out["followUp"] = "What feels most important about that right now?"
        return "```json\n" + json.dumps(out) + "\n```"
