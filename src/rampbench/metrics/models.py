from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Mapping

import numpy as np

from rampbench.errors import EvaluationError

TREND_PERCENTILES = (50.0, 90.0, 95.0, 99.0)


class MetricKind(str, Enum):
    COUNTER = "counter"
    RATE = "rate"
    TREND = "trend"


@dataclass(frozen=True, slots=True)
class RequestOutcome:
    issued_at: float
    total_duration_ms: float
    ttfb_ms: float | None
    status_code: int | None
    success: bool
    error: str | None = None
    bytes_received: int = 0
    checks: Mapping[str, bool] = field(default_factory=dict)

    @property
    def got_response(self) -> bool:
        return self.status_code is not None


@dataclass(frozen=True, slots=True)
class MetricSummary:
    name: str
    kind: MetricKind
    count: int
    aggregates: Mapping[str, float]
    values: tuple[float, ...] = ()

    def resolve(self, key: str, percentile: float | None = None) -> float:
        if key in self.aggregates:
            return self.aggregates[key]
        if percentile is not None and self.kind is MetricKind.TREND and self.values:
            return float(np.percentile(self.values, percentile))
        msg = f"{self.kind.value} metric {self.name!r} has no {key!r} aggregate"
        raise EvaluationError(msg)


@dataclass(frozen=True, slots=True)
class RunSummary:
    metrics: Mapping[str, MetricSummary]
    elapsed_sec: float
    started_at: datetime | None = None
    target_label: str = ""

    def metric(self, name: str) -> MetricSummary:
        try:
            return self.metrics[name]
        except KeyError:
            msg = f"Unknown metric {name!r}"
            raise EvaluationError(msg) from None

    @property
    def count(self) -> int:
        reqs = self.metrics.get("http_reqs")
        return reqs.count if reqs is not None else 0
