from __future__ import annotations

import logging
from typing import Iterable

from rampbench.errors import EvaluationError
from rampbench.metrics import MetricKind, RunSummary
from rampbench.thresholds.models import RunVerdict, Selector, ThresholdResult, ThresholdSpec

logger = logging.getLogger(__name__)

_TREND_ONLY = {Selector.AVG, Selector.MIN, Selector.MAX, Selector.MED, Selector.PERCENTILE}


def resolve(summary: RunSummary, spec: ThresholdSpec) -> float:
    metric = summary.metric(spec.metric_name)
    if spec.selector is Selector.RATE and metric.kind is MetricKind.TREND:
        msg = f"rate is not defined for trend metric {metric.name!r}"
        raise EvaluationError(msg)
    if spec.selector in _TREND_ONLY and metric.kind is not MetricKind.TREND:
        msg = f"{spec.aggregate_key} is not defined for {metric.kind.value} metric {metric.name!r}"
        raise EvaluationError(msg)
    return metric.resolve(spec.aggregate_key, spec.percentile)


def evaluate_one(summary: RunSummary, spec: ThresholdSpec) -> ThresholdResult:
    try:
        observed = resolve(summary, spec)
    except EvaluationError as exc:
        return ThresholdResult(spec=spec, observed_value=None, passed=None, error=str(exc))
    return ThresholdResult(spec=spec, observed_value=observed, passed=spec.comparator.apply(observed, spec.bound))


def evaluate(summary: RunSummary, thresholds: Iterable[ThresholdSpec]) -> RunVerdict:
    """Judge one immutable summary. Pure: same inputs, same verdict."""
    results = tuple(evaluate_one(summary, spec) for spec in thresholds)
    overall = all(r.passed for r in results if r.passed is not None)
    verdict = RunVerdict(results=results, overall_passed=overall)
    for result in verdict.failures():
        logger.info("threshold violated: %s (observed %.4g)", result.spec, result.observed_value)
    for result in verdict.errors():
        logger.warning("threshold cannot be assessed: %s: %s", result.spec, result.error)
    return verdict
