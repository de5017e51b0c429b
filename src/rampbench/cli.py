from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path
from typing import Mapping, Sequence

from rampbench.analysis import compare_runs, comparison_frame
from rampbench.config import (
    RunConfig,
    add_run_arguments,
    build_config,
    load_config,
    request_shape,
    resolve_target,
)
from rampbench.errors import ConfigError
from rampbench.loadgen import run_load
from rampbench.metrics import RunSummary
from rampbench.report import (
    EXIT_CONFIG_ERROR,
    build_document,
    exit_code,
    export_csv,
    export_json,
    render_text,
)
from rampbench.thresholds import RunVerdict, evaluate

logger = logging.getLogger("rampbench")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="rampbench", description="Staged load harness with SLO verdicts")
    parser.add_argument("--log-level", default=None, help="Logging level (env RAMPBENCH_LOG_LEVEL)")
    sub = parser.add_subparsers(dest="command", required=True)

    run = sub.add_parser("run", help="Ramp load against one backend and judge thresholds")
    add_run_arguments(run)
    run.add_argument("--summary-export", type=Path, help="Write the JSON summary document here")
    run.add_argument("--csv-export", type=Path, help="Write the per-metric table as CSV here")

    compare = sub.add_parser("compare", help="Run the same load against two backends")
    add_run_arguments(compare)
    compare.add_argument("--baseline", default="go")
    compare.add_argument("--candidate", default="ts")
    compare.add_argument("--summary-export", type=Path, help="Write both JSON documents here")
    return parser


def _configure_logging(level: str | None, environ: Mapping[str, str]) -> None:
    name = (level or environ.get("RAMPBENCH_LOG_LEVEL") or "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, name, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _judge(config: RunConfig) -> tuple[RunSummary, RunVerdict]:
    result = asyncio.run(run_load(config))
    verdict = evaluate(result.summary, config.thresholds)
    logger.info("%s verdict: %s", result.summary.target_label, verdict.status.value)
    return result.summary, verdict


def _run(args: argparse.Namespace, environ: Mapping[str, str]) -> int:
    config = load_config(args, environ)
    summary, verdict = _judge(config)
    print(render_text(summary, verdict))
    document = build_document(summary, verdict, config.to_metadata())
    if args.summary_export:
        export_json(document, args.summary_export)
    if args.csv_export:
        export_csv(summary, args.csv_export)
    return exit_code(verdict)


def _compare(args: argparse.Namespace, environ: Mapping[str, str]) -> int:
    stages, path, method = request_shape(args, environ)
    # both configs are fully validated before any load starts
    configs = [
        build_config(args, environ, stages, resolve_target(kind, environ, path, method))
        for kind in (args.baseline, args.candidate)
    ]
    outcomes = [_judge(config) for config in configs]
    documents = {}
    for role, config, (summary, verdict) in zip(("baseline", "candidate"), configs, outcomes):
        print(render_text(summary, verdict))
        print()
        documents[role] = build_document(summary, verdict, config.to_metadata())

    (base, _), (cand, _) = outcomes
    table = comparison_frame(base, cand)
    if not table.empty:
        cols = ["metric", "p(95)_base", "p(95)_cand", "rate_base", "rate_cand"]
        print(table[cols].to_string(index=False, na_rep="-"))
    regressions = compare_runs(base, cand)
    if not regressions:
        print(f"No regressions of {cand.target_label} against {base.target_label}")
    for reg in regressions:
        print(f"REGRESSION {reg.message} ({reg.delta_pct:.1f}% on {reg.metric})")
    if args.summary_export:
        export_json(
            {
                "runs": documents,
                "regressions": [
                    {"metric": r.metric, "delta_pct": r.delta_pct, "message": r.message} for r in regressions
                ],
            },
            args.summary_export,
        )
    return max(exit_code(verdict) for _, verdict in outcomes)


def main(argv: Sequence[str] | None = None, environ: Mapping[str, str] | None = None) -> int:
    environ = os.environ if environ is None else environ
    args = _build_parser().parse_args(argv)
    _configure_logging(args.log_level, environ)
    try:
        if args.command == "compare":
            return _compare(args, environ)
        return _run(args, environ)
    except ConfigError as exc:
        print(f"configuration error: {exc}", file=sys.stderr)
        return EXIT_CONFIG_ERROR


if __name__ == "__main__":
    sys.exit(main())
