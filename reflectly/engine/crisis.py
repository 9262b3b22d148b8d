"""Crisis screen — runs on raw user text before any model call."""

from __future__ import annotations

import re
from typing import Callable, Iterable

from reflectly.engine.models import TurnResult

CrisisPredicate = Callable[[str], bool]

DEFAULT_CRISIS_PHRASES: tuple[str, ...] = (
    "suicide",
    "kill myself",
    "harm myself",
    "overdose",
    "end it",
)


def phrase_screen(phrases: Iterable[str] = DEFAULT_CRISIS_PHRASES) -> CrisisPredicate:
    """Build a case-insensitive predicate matching any phrase anywhere in the text."""
    pattern = re.compile("(?:" + "|".join(re.escape(p) for p in phrases) + ")", flags=re.IGNORECASE)

    def screen(text: str) -> bool:
        return bool(pattern.search(text or ""))

    return screen


default_crisis_screen: CrisisPredicate = phrase_screen()


def crisis_result() -> TurnResult:
    return TurnResult(
        paraphrase="It sounds like you're going through intense pain.",
        follow_up="Would you be willing to contact immediate support? I can share options.",
        action_steps=[],
        tags=["Empathic Calibration", "Transparency"],
    )
