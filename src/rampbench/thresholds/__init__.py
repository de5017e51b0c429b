from __future__ import annotations

from rampbench.thresholds.evaluator import evaluate
from rampbench.thresholds.models import (
    Comparator,
    RunVerdict,
    Selector,
    ThresholdResult,
    ThresholdSpec,
    VerdictStatus,
)
from rampbench.thresholds.parser import parse_expression, parse_threshold, parse_thresholds

__all__ = [
    "Comparator",
    "RunVerdict",
    "Selector",
    "ThresholdResult",
    "ThresholdSpec",
    "VerdictStatus",
    "evaluate",
    "parse_expression",
    "parse_threshold",
    "parse_thresholds",
]
