from __future__ import annotations

from rampbench.report.reporter import (
    EXIT_CONFIG_ERROR,
    EXIT_FAILED,
    EXIT_INCONCLUSIVE,
    EXIT_PASSED,
    build_document,
    counter_rates,
    exit_code,
    export_csv,
    export_json,
    render_text,
    summary_frame,
    verdict_frame,
)

__all__ = [
    "EXIT_CONFIG_ERROR",
    "EXIT_FAILED",
    "EXIT_INCONCLUSIVE",
    "EXIT_PASSED",
    "build_document",
    "counter_rates",
    "exit_code",
    "export_csv",
    "export_json",
    "render_text",
    "summary_frame",
    "verdict_frame",
]
