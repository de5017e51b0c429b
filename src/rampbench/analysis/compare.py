from __future__ import annotations

from dataclasses import dataclass

import pandas as pd

from rampbench.metrics import RunSummary
from rampbench.report import counter_rates, summary_frame

_LATENCY_METRIC = "http_req_duration"
_ERROR_METRIC = "http_req_failed"
_THROUGHPUT_METRIC = "http_reqs"


@dataclass(frozen=True, slots=True)
class Regression:
    metric: str
    delta_pct: float
    message: str


def comparison_frame(base: RunSummary, candidate: RunSummary) -> pd.DataFrame:
    """Per-metric side-by-side table of two runs."""
    base_df = summary_frame(base)
    cand_df = summary_frame(candidate)
    if base_df.empty or cand_df.empty:
        return pd.DataFrame()
    return base_df.merge(cand_df, on=["metric", "kind"], suffixes=("_base", "_cand"))


def compare_runs(base: RunSummary, candidate: RunSummary) -> list[Regression]:
    regressions: list[Regression] = []
    merged = comparison_frame(base, candidate)
    if merged.empty:
        return regressions
    latency = merged[merged["metric"] == _LATENCY_METRIC]
    if not latency.empty:
        base_p99 = float(latency["p(99)_base"].iloc[0])
        cand_p99 = float(latency["p(99)_cand"].iloc[0])
        if base_p99 > 0:
            delta = (cand_p99 - base_p99) / base_p99
            if delta > 0.2:
                regressions.append(
                    Regression(
                        metric="p99_ms",
                        delta_pct=delta * 100,
                        message="p99 latency increased materially",
                    )
                )
    errors = merged[merged["metric"] == _ERROR_METRIC]
    if not errors.empty:
        base_err = float(errors["rate_base"].iloc[0])
        cand_err = float(errors["rate_cand"].iloc[0])
        if base_err > 0:
            delta = (cand_err - base_err) / base_err
            if delta > 0.3:
                regressions.append(
                    Regression(
                        metric="error_rate",
                        delta_pct=delta * 100,
                        message="error rate regression detected",
                    )
                )
        elif cand_err > 0:
            regressions.append(
                Regression(
                    metric="error_rate",
                    delta_pct=float("inf"),
                    message="errors appeared where the baseline had none",
                )
            )
    base_rps = counter_rates(base).get(_THROUGHPUT_METRIC, 0.0)
    cand_rps = counter_rates(candidate).get(_THROUGHPUT_METRIC, 0.0)
    if base_rps > 0:
        delta = (base_rps - cand_rps) / base_rps
        if delta > 0.2:
            regressions.append(
                Regression(
                    metric="achieved_rps",
                    delta_pct=delta * 100,
                    message="throughput regression detected",
                )
            )
    return regressions
