from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Mapping

import pandas as pd

from rampbench.metrics import MetricKind, RunSummary
from rampbench.thresholds import RunVerdict, VerdictStatus

logger = logging.getLogger(__name__)

EXIT_PASSED = 0
EXIT_CONFIG_ERROR = 2
EXIT_INCONCLUSIVE = 97
EXIT_FAILED = 99

_EXIT_CODES = {
    VerdictStatus.PASSED: EXIT_PASSED,
    VerdictStatus.FAILED: EXIT_FAILED,
    VerdictStatus.INCONCLUSIVE: EXIT_INCONCLUSIVE,
}

_COLUMNS = ["metric", "kind", "count", "rate", "avg", "min", "med", "max", "p(90)", "p(95)", "p(99)"]


def exit_code(verdict: RunVerdict) -> int:
    return _EXIT_CODES[verdict.status]


def summary_frame(summary: RunSummary) -> pd.DataFrame:
    rows = []
    for name in sorted(summary.metrics):
        metric = summary.metrics[name]
        row: dict[str, Any] = {"metric": name, "kind": metric.kind.value, "count": metric.count}
        for key, value in metric.aggregates.items():
            if key in _COLUMNS and key != "count":
                row[key] = value
        rows.append(row)
    return pd.DataFrame(rows, columns=_COLUMNS)


def verdict_frame(verdict: RunVerdict) -> pd.DataFrame:
    return pd.DataFrame(
        [
            {
                "metric": r.spec.metric_name,
                "threshold": r.spec.expression,
                "observed": r.observed_value,
                "status": r.status.value,
                "error": r.error or "",
            }
            for r in verdict.results
        ],
        columns=["metric", "threshold", "observed", "status", "error"],
    )


def build_document(summary: RunSummary, verdict: RunVerdict, metadata: Mapping[str, Any] | None = None) -> dict[str, Any]:
    """Structured, JSON-serialisable view of one run."""
    metrics: dict[str, Any] = {}
    throughput = counter_rates(summary)
    for name, metric in summary.metrics.items():
        entry: dict[str, Any] = {"type": metric.kind.value, "count": metric.count}
        if name in throughput:
            entry["per_sec"] = throughput[name]
        entry.update({k: v for k, v in metric.aggregates.items() if k != "count"})
        entry["thresholds"] = {
            r.spec.expression: {"ok": r.passed, "observed": r.observed_value}
            for r in verdict.results
            if r.spec.metric_name == name
        }
        metrics[name] = entry
    return {
        "target": summary.target_label,
        "started_at": summary.started_at.isoformat() if summary.started_at else None,
        "elapsed_sec": summary.elapsed_sec,
        "config": dict(metadata or {}),
        "metrics": metrics,
        "thresholds": [
            {
                "metric": r.spec.metric_name,
                "expression": r.spec.expression,
                "observed": r.observed_value,
                "status": r.status.value,
                "error": r.error,
            }
            for r in verdict.results
        ],
        "verdict": {
            "status": verdict.status.value,
            "overall_passed": verdict.overall_passed,
            "inconclusive": verdict.inconclusive,
            "exit_code": exit_code(verdict),
        },
    }


def render_text(summary: RunSummary, verdict: RunVerdict) -> str:
    lines = [
        f"target: {summary.target_label or '-'}  elapsed: {summary.elapsed_sec:.1f}s  requests: {summary.count}",
        "",
        summary_frame(summary).to_string(index=False, na_rep="-", float_format=lambda v: f"{v:.3f}"),
        "",
    ]
    if verdict.results:
        lines.append(verdict_frame(verdict).to_string(index=False, na_rep="-"))
        lines.append("")
    status = verdict.status
    if status is VerdictStatus.INCONCLUSIVE:
        lines.append(f"RESULT: INCONCLUSIVE ({len(verdict.errors())} threshold(s) could not be assessed)")
    elif status is VerdictStatus.FAILED:
        lines.append(f"RESULT: FAILED ({len(verdict.failures())} threshold(s) violated)")
    else:
        lines.append("RESULT: PASSED")
    return "\n".join(lines)


def export_json(document: Mapping[str, Any], path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(document, indent=2, default=str))
    logger.info("summary written to %s", path)


def export_csv(summary: RunSummary, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    summary_frame(summary).to_csv(path, index=False)
    logger.info("metric table written to %s", path)


def counter_rates(summary: RunSummary) -> dict[str, float]:
    """Per-second throughput of each counter over the run."""
    if summary.elapsed_sec <= 0:
        return {}
    return {
        name: metric.count / summary.elapsed_sec
        for name, metric in summary.metrics.items()
        if metric.kind is MetricKind.COUNTER
    }
