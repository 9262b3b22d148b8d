"""Timeout guard and retry classification for model calls."""

from __future__ import annotations

import asyncio
import re
from typing import Awaitable, TypeVar

from reflectly.engine.errors import (
    InvalidModelJson,
    InvocationTimeout,
    MissingCredential,
    ParseNotFound,
)

T = TypeVar("T")

# Signals that this particular model is unavailable, not that the request is bad.
_UNAVAILABLE = re.compile(
    r"not found|not found for api version|not supported for generatecontent",
    flags=re.IGNORECASE,
)
_INVALID_MODEL = re.compile(r"invalid (model|argument)", flags=re.IGNORECASE)


async def with_timeout(operation: Awaitable[T], deadline_ms: int) -> T:
    """Await ``operation`` for at most ``deadline_ms``.

    On expiry the awaiting task is cancelled; the HTTP client may still hold
    the connection until its own timeout fires.
    """
    try:
        return await asyncio.wait_for(operation, timeout=deadline_ms / 1000.0)
    except asyncio.TimeoutError as exc:
        raise InvocationTimeout(deadline_ms) from exc


def is_retryable(exc: BaseException) -> bool:
    """True when the next candidate might succeed where this one failed."""
    if isinstance(exc, (MissingCredential, InvalidModelJson)):
        return False
    if isinstance(exc, (InvocationTimeout, ParseNotFound)):
        return True

    status = getattr(exc, "status", None)
    if status is None:
        status = getattr(exc, "status_code", None)
    message = str(exc)

    if _UNAVAILABLE.search(message):
        return True
    if status in (404, 429):
        return True
    if status == 400 and _INVALID_MODEL.search(message):
        return True
    return False
