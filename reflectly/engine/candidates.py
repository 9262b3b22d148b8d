"""Model candidate list — configured preference first, then known-good fallbacks."""

from __future__ import annotations

from typing import Sequence

# Models that support generateContent; order is the order they are tried in.
FALLBACK_MODELS: tuple[str, ...] = (
    "gemini-2.5-flash",
    "gemini-2.5-pro",
    "gemini-2.0-flash",
    "gemini-2.0-flash-001",
    "gemini-flash-latest",
    "gemini-pro-latest",
)


def build_candidates(
    preference: str | None = None,
    fallbacks: Sequence[str] = FALLBACK_MODELS,
) -> list[str]:
    """Return a non-empty, duplicate-free list of model identifiers."""
    if not fallbacks:
        raise ValueError("fallback model list must not be empty")

    ordered: list[str] = []
    preferred = (preference or "").strip()
    if preferred:
        ordered.append(preferred)
    for name in fallbacks:
        if name not in ordered:
            ordered.append(name)
    return ordered
