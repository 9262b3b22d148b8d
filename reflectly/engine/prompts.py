"""Prompt text and structured-output hints for turns and summaries."""

from __future__ import annotations

from typing import Any, Sequence

from reflectly.engine.models import (
    MAX_ACTION_STEPS,
    MAX_SUMMARY_POINTS,
    MAX_TAGS,
    ChatMessage,
    PromptContext,
)

SYSTEM_PROMPT = """
You are Reflectly, a calming, non-clinical companion.

Core listening criteria (use at least 2 each turn):
- Reflective Mirroring (paraphrase content in warm, plain language)
- Clarifying Extension (one gentle, non-interrogative question)
- Empathic Calibration (acknowledge feelings)
- Strategic Framing (organize briefly; simple next steps when asked)
- Trust-Preserving Transparency (avoid clinical/medical advice)

Rules:
- Never give medical, diagnostic, or legal advice.
- Be concise. Keep paraphrase 1-2 sentences.
- Tone is provided separately (calm | neutral | upbeat).
- Intent is provided separately:
  * go_deep: ask one open-ended question to invite reflection.
  * solve: give 2-3 short actionable steps + (optional) one gentle next question.
""".strip()

TURN_CONTRACT = f"""
Return ONLY one JSON object with these keys (omit fields that don't apply):

{{
  "paraphrase": "string",
  "followUp": "string",
  "actionSteps": ["step 1", "step 2"],
  "tags": ["Reflective Mirroring", "Empathic Calibration", "Clarifying Extension", "Strategic Framing", "Transparency"]
}}
"actionSteps" has at most {MAX_ACTION_STEPS} items and is only for solve; "tags" has at most {MAX_TAGS} items.
No prose before or after the JSON.
""".strip()

SUMMARY_CONTRACT = """
Return ONLY JSON:
{
  "summary": ["point1", "point2"],
  "nextPrompt": "string",
  "actionSteps": ["step1", "step2"],
  "tags": ["Reflective Mirroring", "Empathic Calibration"]
}
""".strip()


def _string_array(max_items: int) -> dict[str, Any]:
    return {"type": "array", "items": {"type": "string"}, "maxItems": max_items}


TURN_SCHEMA: dict[str, Any] = {
    "title": "turn",
    "type": "object",
    "properties": {
        "paraphrase": {"type": "string"},
        "followUp": {"type": "string"},
        "actionSteps": _string_array(MAX_ACTION_STEPS),
        "tags": _string_array(MAX_TAGS),
    },
    "required": ["paraphrase"],
    "additionalProperties": True,
}

SUMMARY_SCHEMA: dict[str, Any] = {
    "title": "summary",
    "type": "object",
    "properties": {
        "summary": _string_array(MAX_SUMMARY_POINTS),
        "nextPrompt": {"type": "string"},
        "actionSteps": _string_array(MAX_ACTION_STEPS),
        "tags": _string_array(MAX_TAGS),
    },
    "required": ["summary"],
    "additionalProperties": True,
}


def render_history(messages: Sequence[ChatMessage]) -> str:
    return "\n".join(f"{m.role.value.upper()}: {m.content}" for m in messages)


def build_turn_prompt(context: PromptContext) -> str:
    return "\n".join([
        SYSTEM_PROMPT,
        f"Tone: {context.tone.value}",
        f"Intent: {context.intent.value}",
        "---",
        "RECENT HISTORY (may be empty):",
        render_history(context.history) or "(none)",
        "---",
        "USER:",
        context.user_text,
        "---",
        TURN_CONTRACT,
    ])


def build_summary_prompt(transcript: Sequence[ChatMessage]) -> str:
    return "\n".join([
        f"Apply the listening criteria and produce at most {MAX_SUMMARY_POINTS} bullets capturing "
        "what was said and how it felt, plus 1 next reflective prompt; "
        f"optionally up to {MAX_ACTION_STEPS} action steps and up to {MAX_TAGS} tags naming the "
        "listening techniques used.",
        "",
        "TRANSCRIPT:",
        render_history(transcript) or "(empty)",
        "",
        SUMMARY_CONTRACT,
    ])
