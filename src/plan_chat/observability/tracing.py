"""Per-request stage timing for the answer pipeline."""

from __future__ import annotations

import time
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from uuid import uuid4


@dataclass
class Span:
    name: str
    start_ms: float
    end_ms: float | None = None

    @property
    def duration_ms(self) -> float:
        return 0.0 if self.end_ms is None else self.end_ms - self.start_ms


class TraceContext:
    """Collects one span per pipeline stage.

    A stage can run more than once (the context is rebuilt after an automatic
    reindex); ``span_durations`` reports the summed time per stage name.
    """

    def __init__(self, trace_id: str | None = None) -> None:
        self.trace_id = trace_id or uuid4().hex
        self.spans: list[Span] = []
        self._origin = time.perf_counter()

    def _now_ms(self) -> float:
        return (time.perf_counter() - self._origin) * 1000

    @contextmanager
    def span(self, name: str) -> Iterator[Span]:
        current = Span(name=name, start_ms=self._now_ms())
        self.spans.append(current)
        try:
            yield current
        finally:
            current.end_ms = self._now_ms()

    @property
    def elapsed_ms(self) -> float:
        return self._now_ms()

    def span_durations(self) -> dict[str, float]:
        totals: dict[str, float] = {}
        for s in self.spans:
            totals[s.name] = totals.get(s.name, 0.0) + s.duration_ms
        return {name: round(ms, 2) for name, ms in totals.items()}
