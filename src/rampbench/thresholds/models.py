from __future__ import annotations

import operator
from dataclasses import dataclass
from enum import Enum
from typing import Callable


class Selector(str, Enum):
    RATE = "rate"
    COUNT = "count"
    AVG = "avg"
    MIN = "min"
    MAX = "max"
    MED = "med"
    PERCENTILE = "p"


class Comparator(str, Enum):
    LT = "<"
    GT = ">"
    LE = "<="
    GE = ">="

    def apply(self, observed: float, bound: float) -> bool:
        return _OPERATORS[self](observed, bound)


_OPERATORS: dict[Comparator, Callable[[float, float], bool]] = {
    Comparator.LT: operator.lt,
    Comparator.GT: operator.gt,
    Comparator.LE: operator.le,
    Comparator.GE: operator.ge,
}


class VerdictStatus(str, Enum):
    PASSED = "passed"
    FAILED = "failed"
    INCONCLUSIVE = "inconclusive"


@dataclass(frozen=True, slots=True)
class ThresholdSpec:
    metric_name: str
    selector: Selector
    comparator: Comparator
    bound: float
    percentile: float | None = None

    @property
    def aggregate_key(self) -> str:
        if self.selector is Selector.PERCENTILE:
            return f"p({self.percentile:g})"
        return self.selector.value

    @property
    def expression(self) -> str:
        return f"{self.aggregate_key}{self.comparator.value}{self.bound:g}"

    def __str__(self) -> str:
        return f"{self.metric_name}: {self.expression}"


@dataclass(frozen=True, slots=True)
class ThresholdResult:
    spec: ThresholdSpec
    observed_value: float | None
    passed: bool | None
    error: str | None = None

    @property
    def status(self) -> VerdictStatus:
        if self.passed is None:
            return VerdictStatus.INCONCLUSIVE
        return VerdictStatus.PASSED if self.passed else VerdictStatus.FAILED


@dataclass(frozen=True, slots=True)
class RunVerdict:
    results: tuple[ThresholdResult, ...]
    overall_passed: bool

    @property
    def inconclusive(self) -> bool:
        return any(r.passed is None for r in self.results)

    @property
    def status(self) -> VerdictStatus:
        if self.inconclusive:
            return VerdictStatus.INCONCLUSIVE
        return VerdictStatus.PASSED if self.overall_passed else VerdictStatus.FAILED

    def failures(self) -> list[ThresholdResult]:
        return [r for r in self.results if r.passed is False]

    def errors(self) -> list[ThresholdResult]:
        return [r for r in self.results if r.passed is None]
