from __future__ import annotations

from rampbench.config.loader import (
    DEFAULT_STAGES,
    DEFAULT_THRESHOLDS,
    add_run_arguments,
    build_config,
    load_config,
    parse_duration,
    parse_stage,
    request_shape,
    resolve_target,
)
from rampbench.config.models import MockConfig, PayloadSpec, RunConfig, Stage, TargetConfig, TargetKind

__all__ = [
    "DEFAULT_STAGES",
    "DEFAULT_THRESHOLDS",
    "MockConfig",
    "PayloadSpec",
    "RunConfig",
    "Stage",
    "TargetConfig",
    "TargetKind",
    "add_run_arguments",
    "build_config",
    "load_config",
    "parse_duration",
    "parse_stage",
    "request_shape",
    "resolve_target",
]
