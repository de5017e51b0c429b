from __future__ import annotations

import math
from bisect import bisect_right
from dataclasses import dataclass
from typing import Sequence

from rampbench.config import Stage


@dataclass(frozen=True, slots=True)
class RampSchedule:
    """Piecewise-linear target concurrency over an ordered stage list.

    Each stage contributes one boundary point ``(cumulative_end, target)``;
    the curve starts at ``(0, start)``. Where several boundaries share a
    timestamp (zero-duration stages) the last one wins, which makes the
    curve jump at that instant.
    """

    times: tuple[float, ...]
    targets: tuple[int, ...]

    @classmethod
    def from_stages(cls, stages: Sequence[Stage], start: int = 0) -> "RampSchedule":
        times = [0.0]
        targets = [start]
        elapsed = 0.0
        for stage in stages:
            elapsed += stage.duration_sec
            times.append(elapsed)
            targets.append(stage.target)
        return cls(tuple(times), tuple(targets))

    @property
    def total_duration_sec(self) -> float:
        return self.times[-1]

    def target_at(self, elapsed: float) -> float:
        if elapsed < 0:
            return float(self.targets[0])
        if elapsed > self.total_duration_sec:
            return 0.0
        idx = bisect_right(self.times, elapsed) - 1
        t0, v0 = self.times[idx], self.targets[idx]
        if elapsed == t0 or idx == len(self.times) - 1:
            return float(v0)
        t1, v1 = self.times[idx + 1], self.targets[idx + 1]
        return v0 + (v1 - v0) * ((elapsed - t0) / (t1 - t0))

    def population_at(self, elapsed: float) -> int:
        return int(math.floor(self.target_at(elapsed) + 0.5))

    def stage_index(self, elapsed: float) -> int | None:
        """Index of the stage running at ``elapsed``, None once the ramp is over."""
        if elapsed < 0 or elapsed >= self.total_duration_sec:
            return None
        return bisect_right(self.times, elapsed) - 1
