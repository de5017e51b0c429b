from __future__ import annotations

import argparse
from typing import Callable

import pytest

from rampbench.config import add_run_arguments
from rampbench.metrics import MetricsCollector, RequestOutcome


def _outcome(
    duration_ms: float = 10.0,
    status_code: int | None = 200,
    success: bool = True,
    error: str | None = None,
    ttfb_ms: float | None = 5.0,
) -> RequestOutcome:
    return RequestOutcome(
        issued_at=0.0,
        total_duration_ms=duration_ms,
        ttfb_ms=ttfb_ms,
        status_code=status_code,
        success=success,
        error=error,
    )


@pytest.fixture
def make_outcome() -> Callable[..., RequestOutcome]:
    return _outcome


@pytest.fixture
def parse_run_args() -> Callable[..., argparse.Namespace]:
    def parse(*argv: str) -> argparse.Namespace:
        parser = argparse.ArgumentParser()
        add_run_arguments(parser)
        return parser.parse_args(list(argv))

    return parse


class RecordingCollector(MetricsCollector):
    """Keeps every recorded outcome so tests can inspect them."""

    def __init__(self) -> None:
        super().__init__()
        self.outcomes: list[RequestOutcome] = []

    def record(self, outcome: RequestOutcome) -> None:
        super().record(outcome)
        self.outcomes.append(outcome)


@pytest.fixture
def recording_collector() -> RecordingCollector:
    return RecordingCollector()
