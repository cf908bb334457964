"""Per-request stage tracing and latency summaries."""

from __future__ import annotations

import time
import uuid
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone


@dataclass(slots=True)
class StageTrace:
    """Timing and outcome of one pipeline stage."""

    name: str
    latency_ms: float
    ok: bool = True
    detail: str = ""


@dataclass(slots=True)
class TraceRecord:
    trace_id: str
    timestamp_utc: str
    operation: str
    query: str
    intent: str | None
    stages: list[StageTrace]
    latency_ms: float
    error: str | None = None
    degraded: str | None = None


@dataclass(slots=True)
class TraceBuilder:
    """Collects stage timings for one request before it is stored."""

    operation: str
    query: str = ""
    intent: str | None = None
    stages: list[StageTrace] = field(default_factory=list)
    error: str | None = None
    degraded: str | None = None

    def add(self, name: str, timer: "Timer", *, ok: bool = True, detail: str = "") -> None:
        self.stages.append(
            StageTrace(name=name, latency_ms=timer.elapsed_ms, ok=ok, detail=detail)
        )


class TraceStore:
    """In-memory trace storage for API-level observability."""

    def __init__(self) -> None:
        self._records: dict[str, TraceRecord] = {}

    def save(self, builder: TraceBuilder) -> TraceRecord:
        record = TraceRecord(
            trace_id=str(uuid.uuid4()),
            timestamp_utc=datetime.now(timezone.utc).isoformat(),
            operation=builder.operation,
            query=builder.query,
            intent=builder.intent,
            stages=list(builder.stages),
            latency_ms=sum(stage.latency_ms for stage in builder.stages),
            error=builder.error,
            degraded=builder.degraded,
        )
        self._records[record.trace_id] = record
        return record

    def get(self, trace_id: str) -> TraceRecord:
        record = self._records.get(trace_id)
        if record is None:
            raise KeyError(f"Trace not found: {trace_id}")
        return record

    def list_recent(self, limit: int = 20) -> list[TraceRecord]:
        return list(self._records.values())[-limit:]

    def summary(self) -> dict[str, object]:
        """Aggregate request counts and latency for dashboard display."""
        records = list(self._records.values())
        total = len(records)
        if total == 0:
            return {
                "total_requests": 0,
                "failed_requests": 0,
                "degraded_requests": 0,
                "avg_latency_ms": 0.0,
                "p95_latency_ms": 0.0,
                "intents": {},
            }

        latencies = sorted(record.latency_ms for record in records)
        p95_index = max(0, int((len(latencies) * 0.95) - 1))
        intents = Counter(record.intent for record in records if record.intent)
        return {
            "total_requests": total,
            "failed_requests": sum(1 for record in records if record.error),
            "degraded_requests": sum(1 for record in records if record.degraded),
            "avg_latency_ms": sum(latencies) / total,
            "p95_latency_ms": latencies[p95_index],
            "intents": dict(intents),
        }


class Timer:
    """Simple context timer used by the pipeline."""

    def __init__(self) -> None:
        self._start = 0.0
        self.elapsed_ms = 0.0

    def __enter__(self) -> "Timer":
        self._start = time.perf_counter()
        return self

    def __exit__(self, exc_type: object, exc: object, tb: object) -> None:
        self.elapsed_ms = (time.perf_counter() - self._start) * 1000.0
