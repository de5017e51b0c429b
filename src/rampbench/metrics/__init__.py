from __future__ import annotations

from rampbench.metrics.collector import MetricsCollector, MetricSeries
from rampbench.metrics.models import MetricKind, MetricSummary, RequestOutcome, RunSummary

__all__ = [
    "MetricKind",
    "MetricSeries",
    "MetricSummary",
    "MetricsCollector",
    "RequestOutcome",
    "RunSummary",
]
