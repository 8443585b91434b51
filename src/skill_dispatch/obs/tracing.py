"""Dispatch tracing and aggregate metrics."""

from __future__ import annotations

import threading
import time
import uuid
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum


class Outcome(str, Enum):
    RENDERED = "rendered"
    NO_MATCH = "no_match"
    PROCESSING_FAILED = "processing_failed"
    PROCESSING_TIMED_OUT = "processing_timed_out"
    RENDERING_FAILED = "rendering_failed"


@dataclass(slots=True)
class DispatchTrace:
    trace_id: str
    timestamp_utc: str
    utterance: str
    outcome: Outcome
    latency_ms: float
    skill_id: str | None = None
    score: float = 0.0
    slots: dict[str, str] = field(default_factory=dict)
    error: str | None = None
    locale: str | None = None


class TraceStore:
    """Bounded in-memory trace storage for API-level observability."""

    def __init__(self, limit: int = 1000) -> None:
        self._records: OrderedDict[str, DispatchTrace] = OrderedDict()
        self._limit = limit
        self._lock = threading.Lock()

    def create_record(
        self,
        *,
        utterance: str,
        outcome: Outcome,
        latency_ms: float,
        skill_id: str | None = None,
        score: float = 0.0,
        slots: dict[str, str] | None = None,
        error: str | None = None,
        locale: str | None = None,
    ) -> DispatchTrace:
        record = DispatchTrace(
            trace_id=str(uuid.uuid4()),
            timestamp_utc=datetime.now(timezone.utc).isoformat(),
            utterance=utterance,
            outcome=outcome,
            latency_ms=latency_ms,
            skill_id=skill_id,
            score=score,
            slots=dict(slots or {}),
            error=error,
            locale=locale,
        )
        with self._lock:
            self._records[record.trace_id] = record
            while len(self._records) > self._limit:
                self._records.popitem(last=False)
        return record

    def get(self, trace_id: str) -> DispatchTrace:
        record = self._records.get(trace_id)
        if record is None:
            raise KeyError(f"Trace not found: {trace_id}")
        return record

    def list_recent(self, limit: int = 20) -> list[DispatchTrace]:
        with self._lock:
            records = list(self._records.values())
        return records[-limit:] if limit > 0 else []

    def summary(self) -> dict[str, float | int]:
        """Aggregate core dispatch metrics for dashboard display."""
        with self._lock:
            records = list(self._records.values())
        total = len(records)
        if total == 0:
            return {
                "total_requests": 0,
                "rendered": 0,
                "no_match": 0,
                "failed": 0,
                "timed_out": 0,
                "match_rate": 0.0,
                "avg_score": 0.0,
                "avg_latency_ms": 0.0,
                "p95_latency_ms": 0.0,
            }

        counts = {outcome: 0 for outcome in Outcome}
        for record in records:
            counts[record.outcome] += 1
        matched = [record for record in records if record.skill_id is not None]
        latencies = sorted(record.latency_ms for record in records)
        p95_index = max(0, int((len(latencies) * 0.95) - 1))

        return {
            "total_requests": total,
            "rendered": counts[Outcome.RENDERED],
            "no_match": counts[Outcome.NO_MATCH],
            "failed": counts[Outcome.PROCESSING_FAILED] + counts[Outcome.RENDERING_FAILED],
            "timed_out": counts[Outcome.PROCESSING_TIMED_OUT],
            "match_rate": len(matched) / total,
            "avg_score": (
                sum(record.score for record in matched) / len(matched) if matched else 0.0
            ),
            "avg_latency_ms": sum(latencies) / total,
            "p95_latency_ms": latencies[p95_index],
        }


class Timer:
    """Simple context timer used by the dispatcher."""

    def __init__(self) -> None:
        self._start = 0.0
        self.elapsed_ms = 0.0

    def __enter__(self) -> "Timer":
        self._start = time.perf_counter()
        return self

    def __exit__(self, exc_type: object, exc: object, tb: object) -> None:
        self.elapsed_ms = (time.perf_counter() - self._start) * 1000.0
