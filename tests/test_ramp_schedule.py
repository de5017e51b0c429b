from __future__ import annotations

from itertools import accumulate

from hypothesis import given, strategies as st

from rampbench.config import Stage
from rampbench.ramp import RampSchedule

stage_lists = st.lists(
    st.tuples(
        st.floats(min_value=0.01, max_value=600.0, allow_nan=False, allow_infinity=False),
        st.integers(min_value=0, max_value=500),
    ),
    min_size=1,
    max_size=8,
)


@given(raw=stage_lists, start=st.integers(min_value=0, max_value=50))
def test_boundaries_hit_declared_targets(raw: list[tuple[float, int]], start: int) -> None:
    stages = [Stage(duration, target) for duration, target in raw]
    schedule = RampSchedule.from_stages(stages, start=start)
    assert schedule.target_at(0.0) == start
    for boundary, stage in zip(accumulate(s.duration_sec for s in stages), stages):
        assert schedule.target_at(boundary) == stage.target


@given(raw=stage_lists)
def test_interpolation_stays_between_neighbouring_targets(raw: list[tuple[float, int]]) -> None:
    stages = [Stage(duration, target) for duration, target in raw]
    schedule = RampSchedule.from_stages(stages)
    prev_target = 0
    start = 0.0
    for stage in stages:
        mid = start + stage.duration_sec / 2
        low, high = sorted((prev_target, stage.target))
        assert low - 1e-9 <= schedule.target_at(mid) <= high + 1e-9
        start += stage.duration_sec
        prev_target = stage.target


def test_linear_ramp_midpoint() -> None:
    schedule = RampSchedule.from_stages([Stage(30, 10), Stage(30, 0)])
    assert schedule.target_at(15) == 5.0
    assert schedule.target_at(30) == 10.0
    assert schedule.target_at(45) == 5.0
    assert schedule.total_duration_sec == 60


def test_zero_duration_stage_jumps_at_boundary() -> None:
    schedule = RampSchedule.from_stages([Stage(10, 10), Stage(0, 50), Stage(10, 50)])
    assert schedule.target_at(9.999) < 10
    assert schedule.target_at(10) == 50
    assert schedule.target_at(15) == 50
    assert schedule.target_at(20) == 50


def test_leading_zero_duration_stage() -> None:
    schedule = RampSchedule.from_stages([Stage(0, 20), Stage(10, 20)])
    assert schedule.target_at(0) == 20
    assert schedule.target_at(5) == 20


def test_zero_after_last_stage() -> None:
    schedule = RampSchedule.from_stages([Stage(10, 40)])
    assert schedule.target_at(10) == 40
    assert schedule.target_at(10.001) == 0.0
    assert schedule.population_at(100) == 0


def test_population_rounds_half_up() -> None:
    schedule = RampSchedule.from_stages([Stage(10, 10)])
    assert schedule.population_at(0.4) == 0
    assert schedule.population_at(0.5) == 1
    assert schedule.population_at(2.5) == 3
    assert schedule.population_at(10) == 10


def test_stage_index_skips_zero_duration_stages() -> None:
    schedule = RampSchedule.from_stages([Stage(10, 10), Stage(0, 50), Stage(10, 50)])
    assert schedule.stage_index(0) == 0
    assert schedule.stage_index(10) == 2
    assert schedule.stage_index(20) is None
