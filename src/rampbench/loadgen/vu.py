from __future__ import annotations

import asyncio
import logging
from enum import Enum

from rampbench.config import RunConfig
from rampbench.loadgen.client import RequestExecutor, Target
from rampbench.metrics import MetricsCollector

logger = logging.getLogger(__name__)


class VUState(str, Enum):
    RUNNING = "running"
    CANCELLING = "cancelling"
    STOPPED = "stopped"


class VirtualUser:
    """One simulated client: request, record, sleep, repeat until cancelled.

    Strictly sequential; at most one request in flight. Cancellation only
    prevents the next iteration, it never interrupts a request.
    """

    def __init__(
        self,
        vu_id: int,
        config: RunConfig,
        target: Target,
        executor: RequestExecutor,
        collector: MetricsCollector,
    ) -> None:
        self.vu_id = vu_id
        self.state = VUState.RUNNING
        self.iterations = 0
        self._config = config
        self._target = target
        self._executor = executor
        self._collector = collector
        self._cancel = asyncio.Event()
        self._task: asyncio.Task[None] | None = None

    def start(self) -> asyncio.Task[None]:
        self._task = asyncio.create_task(self._loop(), name=f"vu-{self.vu_id}")
        return self._task

    def cancel(self) -> None:
        if self.state is VUState.RUNNING:
            self.state = VUState.CANCELLING
            self._cancel.set()

    @property
    def task(self) -> asyncio.Task[None] | None:
        return self._task

    async def _loop(self) -> None:
        config = self._config
        try:
            while not self._cancel.is_set():
                payload = config.payload.generate()
                outcome = await self._executor.send(self._target, payload, config.per_request_timeout_sec)
                self._collector.record(outcome)
                self.iterations += 1
                if config.inter_iteration_sleep_sec > 0:
                    await self._sleep(config.inter_iteration_sleep_sec)
                else:
                    await asyncio.sleep(0)
        finally:
            self.state = VUState.STOPPED
            logger.debug("vu %d stopped after %d iterations", self.vu_id, self.iterations)

    async def _sleep(self, seconds: float) -> None:
        try:
            await asyncio.wait_for(self._cancel.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            pass
