"""Concurrency-safe aggregation of request outcomes.

Percentiles use linear interpolation between the closest ranks
(``numpy.percentile`` default) over the full recorded distribution at
snapshot time. No streaming approximation is involved.
"""
from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType

import numpy as np

from rampbench.metrics.models import (
    TREND_PERCENTILES,
    MetricKind,
    MetricSummary,
    RequestOutcome,
    RunSummary,
)


@dataclass(slots=True)
class MetricSeries:
    name: str
    kind: MetricKind
    values: list[float] = field(default_factory=list)
    trues: int = 0
    total: int = 0

    def add(self, value: float | bool) -> None:
        if self.kind is MetricKind.RATE:
            self.total += 1
            if value:
                self.trues += 1
        elif self.kind is MetricKind.COUNTER:
            self.total += 1
            self.trues += int(value)
        else:
            self.values.append(float(value))

    def summarize(self) -> MetricSummary:
        if self.kind is MetricKind.RATE:
            aggregates: dict[str, float] = {"count": float(self.trues)}
            # no samples, no rate
            if self.total:
                aggregates["rate"] = self.trues / self.total
            return MetricSummary(
                name=self.name,
                kind=self.kind,
                count=self.total,
                aggregates=MappingProxyType(aggregates),
            )
        if self.kind is MetricKind.COUNTER:
            return MetricSummary(
                name=self.name,
                kind=self.kind,
                count=self.trues,
                aggregates=MappingProxyType({"count": float(self.trues)}),
            )
        return _summarize_trend(self.name, self.values)


def _summarize_trend(name: str, values: list[float]) -> MetricSummary:
    data = np.sort(np.asarray(values, dtype=float))
    aggregates: dict[str, float] = {"count": float(data.size)}
    if data.size:
        aggregates["avg"] = float(data.mean())
        aggregates["min"] = float(data[0])
        aggregates["max"] = float(data[-1])
        for pct, value in zip(TREND_PERCENTILES, np.percentile(data, TREND_PERCENTILES)):
            aggregates[f"p({pct:g})"] = float(value)
        aggregates["med"] = aggregates["p(50)"]
    return MetricSummary(
        name=name,
        kind=MetricKind.TREND,
        count=int(data.size),
        aggregates=MappingProxyType(aggregates),
        values=tuple(data.tolist()),
    )


_SERIES = (
    ("http_reqs", MetricKind.COUNTER),
    ("http_req_duration", MetricKind.TREND),
    ("http_req_failed", MetricKind.RATE),
    ("api_duration_ms", MetricKind.TREND),
    ("api_ttfb_ms", MetricKind.TREND),
    ("api_ok", MetricKind.RATE),
    ("api_errors", MetricKind.COUNTER),
    ("iterations", MetricKind.COUNTER),
    ("vus_max", MetricKind.TREND),
)


class MetricsCollector:
    """Single shared sink for every virtual user.

    All mutation happens under one lock held only for list appends and
    integer increments, so writers never wait on a snapshot for longer than
    it takes to copy the raw series.
    """

    def __init__(self, success_statuses: frozenset[int] = frozenset({200, 201})) -> None:
        self._lock = threading.Lock()
        self._success_statuses = success_statuses
        self._series: dict[str, MetricSeries] = {
            name: MetricSeries(name, kind) for name, kind in _SERIES
        }
        self._started_mono = time.perf_counter()
        self._started_at = datetime.now(timezone.utc)
        self._stopped_mono: float | None = None

    def start(self) -> None:
        with self._lock:
            self._started_mono = time.perf_counter()
            self._started_at = datetime.now(timezone.utc)
            self._stopped_mono = None

    def stop(self) -> None:
        with self._lock:
            self._stopped_mono = time.perf_counter()

    def record(self, outcome: RequestOutcome) -> None:
        failed = not outcome.got_response or outcome.status_code not in self._success_statuses
        with self._lock:
            series = self._series
            series["http_reqs"].add(True)
            series["iterations"].add(True)
            series["api_duration_ms"].add(outcome.total_duration_ms)
            if outcome.got_response:
                series["http_req_duration"].add(outcome.total_duration_ms)
            if outcome.ttfb_ms is not None:
                series["api_ttfb_ms"].add(outcome.ttfb_ms)
            series["http_req_failed"].add(failed)
            series["api_ok"].add(outcome.success)
            if not outcome.success:
                series["api_errors"].add(True)

    def record_sample(self, name: str, value: float) -> None:
        with self._lock:
            series = self._series.get(name)
            if series is None:
                series = self._series[name] = MetricSeries(name, MetricKind.TREND)
            series.add(value)

    @property
    def count(self) -> int:
        with self._lock:
            return self._series["http_reqs"].trues

    def snapshot(self, target_label: str = "") -> RunSummary:
        with self._lock:
            frozen = [
                MetricSeries(s.name, s.kind, list(s.values), s.trues, s.total)
                for s in self._series.values()
            ]
            end = self._stopped_mono if self._stopped_mono is not None else time.perf_counter()
            elapsed = end - self._started_mono
            started_at = self._started_at
        # aggregation runs outside the lock
        metrics = {s.name: s.summarize() for s in frozen}
        return RunSummary(
            metrics=MappingProxyType(metrics),
            elapsed_sec=elapsed,
            started_at=started_at,
            target_label=target_label,
        )
