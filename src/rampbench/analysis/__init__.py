from __future__ import annotations

from rampbench.analysis.compare import Regression, compare_runs, comparison_frame

__all__ = ["Regression", "compare_runs", "comparison_frame"]
