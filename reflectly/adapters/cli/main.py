"""CLI JSON-lines adapter — reads text from argv/stdin, prints the turn as JSON."""

from __future__ import annotations

import asyncio
import json
import sys

from reflectly import create_companion
from reflectly.engine.errors import MissingCredential
from reflectly.engine.models import Intent, Tone


async def run_cli(
    text: str,
    tone: Tone = Tone.NEUTRAL,
    intent: Intent = Intent.GO_DEEP,
    session_id: str = "cli-default",
) -> None:
    companion = create_companion()
    payload = await companion.chat(session_id, text, tone=tone, intent=intent)
    print(json.dumps(payload, ensure_ascii=False), flush=True)


def main() -> None:
    tone, intent = Tone.NEUTRAL, Intent.GO_DEEP
    if len(sys.argv) > 1:
        text = " ".join(sys.argv[1:])
    else:
        raw = sys.stdin.read().strip()
        if not raw:
            print(
                "Usage: reflectly-cli <text>  OR  echo '{\"text\":\"...\",\"intent\":\"solve\"}' | reflectly-cli",
                file=sys.stderr,
            )
            sys.exit(1)
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            text = raw
        else:
            if not isinstance(data, dict):
                data = {"text": raw}
            text = data.get("text", raw)
            tone = Tone(data.get("tone", tone.value))
            intent = Intent(data.get("intent", intent.value))

    try:
        asyncio.run(run_cli(text, tone=tone, intent=intent))
    except MissingCredential as exc:
        print(f"{exc} (set GEMINI_API_KEY or USE_MOCK_LLM=1)", file=sys.stderr)
        sys.exit(2)


if __name__ == "__main__":
    main()
