from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping

from rampbench.errors import ConfigError
from rampbench.thresholds.models import ThresholdSpec

PAYLOAD_MIN = 1
PAYLOAD_MAX = 100_000


class TargetKind(str, Enum):
    GO = "go"
    TS = "ts"
    CUSTOM = "custom"
    MOCK = "mock"


@dataclass(frozen=True, slots=True)
class Stage:
    duration_sec: float
    target: int

    def __post_init__(self) -> None:
        if not math.isfinite(self.duration_sec) or self.duration_sec < 0:
            msg = f"Stage duration must be finite and >= 0, got {self.duration_sec}"
            raise ConfigError(msg)
        if self.target < 0:
            msg = f"Stage target concurrency must be >= 0, got {self.target}"
            raise ConfigError(msg)


@dataclass(frozen=True, slots=True)
class TargetConfig:
    kind: TargetKind
    base_url: str
    path: str = "/api/v1/data/all"
    method: str = "GET"
    headers: Mapping[str, str] = field(
        default_factory=lambda: {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
    )

    @property
    def url(self) -> str:
        return f"{self.base_url.rstrip('/')}/{self.path.lstrip('/')}"

    @property
    def label(self) -> str:
        return self.kind.value


@dataclass(frozen=True, slots=True)
class PayloadSpec:
    items: tuple[int, ...] = (12, 5, 8, 20, 3, 15)
    iterations: int = 4
    multiplier: int = 3

    def __post_init__(self) -> None:
        if not PAYLOAD_MIN <= len(self.items) <= PAYLOAD_MAX:
            msg = f"items length must be in range {PAYLOAD_MIN}..{PAYLOAD_MAX}"
            raise ConfigError(msg)
        for name in ("iterations", "multiplier"):
            value = getattr(self, name)
            if not PAYLOAD_MIN <= value <= PAYLOAD_MAX:
                msg = f"{name} must be in range {PAYLOAD_MIN}..{PAYLOAD_MAX}, got {value}"
                raise ConfigError(msg)

    def generate(self) -> dict[str, Any]:
        return {
            "items": list(self.items),
            "iterations": self.iterations,
            "multiplier": self.multiplier,
        }


@dataclass(frozen=True, slots=True)
class MockConfig:
    latency_sec: float = 0.01
    status_code: int = 200
    ttfb_fraction: float = 0.5


@dataclass(frozen=True, slots=True)
class RunConfig:
    stages: tuple[Stage, ...]
    target: TargetConfig
    payload: PayloadSpec = field(default_factory=PayloadSpec)
    per_request_timeout_sec: float = 30.0
    inter_iteration_sleep_sec: float = 1.0
    thresholds: tuple[ThresholdSpec, ...] = ()
    tick_interval_sec: float = 0.1
    start_concurrency: int = 0
    success_statuses: frozenset[int] = frozenset({200, 201})
    check_body: bool = True
    graceful_stop_sec: float | None = None
    mock: MockConfig = field(default_factory=MockConfig)

    def __post_init__(self) -> None:
        if not self.stages:
            msg = "At least one stage is required"
            raise ConfigError(msg)
        for name in ("per_request_timeout_sec", "inter_iteration_sleep_sec", "tick_interval_sec"):
            if not math.isfinite(getattr(self, name)):
                msg = f"{name} must be finite"
                raise ConfigError(msg)
        if self.graceful_stop_sec is not None and not (
            math.isfinite(self.graceful_stop_sec) and self.graceful_stop_sec >= 0
        ):
            msg = "Graceful stop must be finite and >= 0"
            raise ConfigError(msg)
        if self.per_request_timeout_sec <= 0:
            msg = "Per-request timeout must be positive"
            raise ConfigError(msg)
        if self.inter_iteration_sleep_sec < 0:
            msg = "Inter-iteration sleep must be >= 0"
            raise ConfigError(msg)
        if self.tick_interval_sec <= 0:
            msg = "Tick interval must be positive"
            raise ConfigError(msg)
        if self.start_concurrency < 0:
            msg = "Start concurrency must be >= 0"
            raise ConfigError(msg)

    @property
    def total_duration_sec(self) -> float:
        return sum(stage.duration_sec for stage in self.stages)

    @property
    def target_label(self) -> str:
        return self.target.label

    @property
    def stop_grace_sec(self) -> float:
        if self.graceful_stop_sec is not None:
            return self.graceful_stop_sec
        return self.per_request_timeout_sec + self.inter_iteration_sleep_sec

    def to_metadata(self) -> Mapping[str, Any]:
        return {
            "stages": [
                {"duration_sec": s.duration_sec, "target": s.target} for s in self.stages
            ],
            "target": {
                "kind": self.target.kind.value,
                "url": self.target.url,
                "method": self.target.method,
            },
            "payload": self.payload.generate(),
            "per_request_timeout_sec": self.per_request_timeout_sec,
            "inter_iteration_sleep_sec": self.inter_iteration_sleep_sec,
            "tick_interval_sec": self.tick_interval_sec,
            "success_statuses": sorted(self.success_statuses),
            "thresholds": [str(t) for t in self.thresholds],
        }
