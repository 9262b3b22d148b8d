"""JSONL file-based trace collector."""

from __future__ import annotations

import json
import time
from pathlib import Path
from typing import Any

from reflectly.tracing.interface import TraceCollector


class JSONLTraceCollector(TraceCollector):
    """Appends one line per event to ``{trace_dir}/{trace_id}.jsonl``.

    Events are buffered per trace and written when the orchestrator that
    owns the trace finishes (turn, summary or diagnostic ping). A trace
    directory removed while the process runs is created again on flush.
    """

    def __init__(self, trace_dir: str = "./traces") -> None:
        self._dir = Path(trace_dir)
        self._dir.mkdir(parents=True, exist_ok=True)
        self._pending: dict[str, list[dict[str, Any]]] = {}

    def path_for(self, trace_id: str) -> Path:
        return self._dir / f"{trace_id}.jsonl"

    async def emit(self, trace_id: str, event_type: str, data: dict[str, Any]) -> None:
        self._pending.setdefault(trace_id, []).append(
            {"ts": time.time(), "trace_id": trace_id, "event": event_type, **data}
        )

    async def flush(self, trace_id: str) -> None:
        events = self._pending.pop(trace_id, None)
        if not events:
            return
        self._dir.mkdir(parents=True, exist_ok=True)
        with open(self.path_for(trace_id), "a", encoding="utf-8") as f:
            f.writelines(json.dumps(event, default=str) + "\n" for event in events)

    def read(self, trace_id: str) -> list[dict[str, Any]]:
        path = self.path_for(trace_id)
        if not path.exists():
            return []
        return [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines() if line]
