"""TraceCollector ABC — no internal deps."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any

logger = logging.getLogger(__name__)


class TraceCollector(ABC):
    """Collects structured per-request events (model attempts, crisis hits, totals)."""

    @abstractmethod
    async def emit(self, trace_id: str, event_type: str, data: dict[str, Any]) -> None: ...

    @abstractmethod
    async def flush(self, trace_id: str) -> None: ...


class NullTraceCollector(TraceCollector):
    """Drops everything. Used when no trace directory is configured."""

    async def emit(self, trace_id: str, event_type: str, data: dict[str, Any]) -> None:
        return None

    async def flush(self, trace_id: str) -> None:
        return None


async def emit_quietly(collector: TraceCollector, trace_id: str, event_type: str, data: dict[str, Any]) -> None:
    """Emit, logging instead of raising when the collector fails."""
    try:
        await collector.emit(trace_id, event_type, data)
    except Exception:
        logger.exception("trace emit %s failed (trace=%s)", event_type, trace_id)


async def flush_quietly(collector: TraceCollector, trace_id: str) -> None:
    try:
        await collector.flush(trace_id)
    except Exception:
        logger.exception("trace flush failed (trace=%s)", trace_id)
