from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Awaitable, Callable

import httpx

from rampbench.config import RunConfig, TargetKind
from rampbench.loadgen.client import HttpTarget, MockTarget, RequestExecutor, Target
from rampbench.loadgen.vu import VirtualUser, VUState
from rampbench.metrics import MetricsCollector, RunSummary
from rampbench.ramp import RampSchedule

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[float, float, int], Awaitable[None]]


@dataclass(frozen=True, slots=True)
class RunResult:
    summary: RunSummary
    peak_vus: int
    ticks: int


class RampScheduler:
    """Drives the live virtual-user population toward the ramp's target.

    The tick loop is the only clock that changes the population. It never
    waits for a virtual user to finish; retired users drain on their own.
    """

    def __init__(
        self,
        config: RunConfig,
        target: Target,
        collector: MetricsCollector,
        executor: RequestExecutor | None = None,
    ) -> None:
        self.config = config
        self.schedule = RampSchedule.from_stages(config.stages, config.start_concurrency)
        self._target = target
        self._collector = collector
        self._executor = executor or RequestExecutor(config.success_statuses, config.check_body)
        self._active: list[VirtualUser] = []
        self._retired: list[VirtualUser] = []
        self._next_id = 0
        self.peak_vus = 0
        self.crashed_vus = 0
        self.ticks = 0

    def tick(self, elapsed: float) -> int:
        """Converge the live population to the desired value at ``elapsed``."""
        desired = self.schedule.population_at(elapsed)
        live = len(self._active)
        if desired > live:
            for _ in range(desired - live):
                self._spawn()
        elif desired < live:
            # newest first, so long-lived users keep their place
            for _ in range(live - desired):
                vu = self._active.pop()
                vu.cancel()
                self._retired.append(vu)
        if desired != live:
            logger.debug("t=%.2fs population %d -> %d", elapsed, live, desired)
        self.ticks += 1
        self.peak_vus = max(self.peak_vus, len(self._active))
        self._collector.record_sample("vus_max", float(len(self._active)))
        return desired

    @property
    def live_vus(self) -> int:
        return len(self._active)

    def _spawn(self) -> None:
        vu = VirtualUser(self._next_id, self.config, self._target, self._executor, self._collector)
        self._next_id += 1
        vu.start()
        self._active.append(vu)

    async def run(self, progress: ProgressCallback | None = None) -> None:
        total = self.schedule.total_duration_sec
        interval = self.config.tick_interval_sec
        started = time.perf_counter()
        stage: int | None = -1
        logger.info(
            "starting ramp: %d stages over %.1fs against %s",
            len(self.config.stages),
            total,
            self._target.label,
        )
        n = 0
        while True:
            elapsed = time.perf_counter() - started
            if elapsed >= total:
                break
            current = self.schedule.stage_index(elapsed)
            if current != stage:
                stage = current
                if current is not None:
                    logger.info("stage %d: -> %d VUs", current + 1, self.config.stages[current].target)
            self.tick(elapsed)
            if progress:
                await progress(elapsed, total, len(self._active))
            n += 1
            await _sleep_until_time(started + min(total, n * interval))
        self.tick(total + interval)
        await self._drain()
        logger.info("ramp finished after %.1fs, peak %d VUs", time.perf_counter() - started, self.peak_vus)

    async def _drain(self) -> None:
        tasks = [vu.task for vu in self._retired if vu.task is not None]
        pending = [t for t in tasks if not t.done()]
        still_running: set[asyncio.Task[None]] = set()
        if pending:
            _, still_running = await asyncio.wait(pending, timeout=self.config.stop_grace_sec)
        if still_running:
            logger.warning("%d VUs did not stop within %.1fs", len(still_running), self.config.stop_grace_sec)
            for task in still_running:
                task.cancel()
            await asyncio.gather(*still_running, return_exceptions=True)
        for vu in self._retired:
            task = vu.task
            if task is None or task.cancelled() or task.exception() is None:
                continue
            self.crashed_vus += 1
            logger.error("vu %d died after %d iterations", vu.vu_id, vu.iterations, exc_info=task.exception())
        stopped = sum(1 for vu in self._retired if vu.state is VUState.STOPPED)
        logger.debug("%d/%d retired VUs stopped", stopped, len(self._retired))


async def run_load(
    config: RunConfig,
    collector: MetricsCollector | None = None,
    target: Target | None = None,
    progress: ProgressCallback | None = None,
) -> RunResult:
    collector = collector or MetricsCollector(config.success_statuses)
    if target is not None:
        return await _execute(config, target, collector, progress)
    if config.target.kind is TargetKind.MOCK:
        return await _execute(config, MockTarget(config.mock), collector, progress)
    limits = httpx.Limits(max_connections=None, max_keepalive_connections=None)
    timeout = httpx.Timeout(config.per_request_timeout_sec)
    async with httpx.AsyncClient(limits=limits, timeout=timeout) as client:
        return await _execute(config, HttpTarget(client, config.target), collector, progress)


async def _execute(
    config: RunConfig,
    target: Target,
    collector: MetricsCollector,
    progress: ProgressCallback | None,
) -> RunResult:
    scheduler = RampScheduler(config, target, collector)
    collector.start()
    try:
        await scheduler.run(progress)
    finally:
        collector.stop()
    summary = collector.snapshot(target_label=target.label)
    return RunResult(summary=summary, peak_vus=scheduler.peak_vus, ticks=scheduler.ticks)


async def _sleep_until_time(target: float) -> None:
    delay = max(0.0, target - time.perf_counter())
    if delay > 0:
        await asyncio.sleep(delay)
