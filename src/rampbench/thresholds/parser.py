from __future__ import annotations

import re
from typing import Iterable, Mapping

from rampbench.errors import ConfigError
from rampbench.thresholds.models import Comparator, Selector, ThresholdSpec

_EXPRESSION = re.compile(
    r"""
    ^\s*
    (?P<selector>rate|count|avg|min|max|med|p\(\s*(?P<pct>\d+(?:\.\d+)?)\s*\))
    \s*(?P<op><=|>=|<|>)\s*
    (?P<bound>[-+]?\d+(?:\.\d+)?(?:[eE][-+]?\d+)?)
    \s*$
    """,
    re.VERBOSE,
)


def parse_expression(metric_name: str, expression: str) -> ThresholdSpec:
    """Parse ``"p(95)<500"`` style expressions for ``metric_name``."""
    if not metric_name or not metric_name.strip():
        msg = f"Threshold {expression!r} has no metric name"
        raise ConfigError(msg)
    match = _EXPRESSION.match(expression)
    if match is None:
        msg = f"Unparseable threshold expression for {metric_name}: {expression!r}"
        raise ConfigError(msg)
    raw_selector = match.group("selector")
    percentile: float | None = None
    if match.group("pct") is not None:
        selector = Selector.PERCENTILE
        percentile = float(match.group("pct"))
        if not 0.0 <= percentile <= 100.0:
            msg = f"Percentile out of range in {expression!r}"
            raise ConfigError(msg)
    else:
        selector = Selector(raw_selector)
    return ThresholdSpec(
        metric_name=metric_name.strip(),
        selector=selector,
        comparator=Comparator(match.group("op")),
        bound=float(match.group("bound")),
        percentile=percentile,
    )


def parse_threshold(text: str) -> ThresholdSpec:
    """Parse the CLI form ``metric=expression``, e.g. ``api_ok=rate>0.99``."""
    metric, sep, expression = text.partition("=")
    if not sep:
        msg = f"Threshold must look like metric=expression, got {text!r}"
        raise ConfigError(msg)
    return parse_expression(metric, expression)


def parse_thresholds(thresholds: Mapping[str, Iterable[str]]) -> tuple[ThresholdSpec, ...]:
    specs: list[ThresholdSpec] = []
    for metric_name, expressions in thresholds.items():
        if isinstance(expressions, str):
            expressions = [expressions]
        for expression in expressions:
            specs.append(parse_expression(metric_name, expression))
    return tuple(specs)
