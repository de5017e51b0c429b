from __future__ import annotations

from rampbench.loadgen.client import HttpTarget, MockTarget, RequestExecutor, Target, TargetResponse
from rampbench.loadgen.runner import RampScheduler, RunResult, run_load
from rampbench.loadgen.vu import VirtualUser, VUState

__all__ = [
    "HttpTarget",
    "MockTarget",
    "RampScheduler",
    "RequestExecutor",
    "RunResult",
    "Target",
    "TargetResponse",
    "VUState",
    "VirtualUser",
    "run_load",
]
