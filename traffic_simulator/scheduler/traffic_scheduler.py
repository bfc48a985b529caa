"""Continuous emission scheduling.

One asyncio task per registered topic. Jittered topics tick at a fixed rate
equal to the midpoint of their interval and offset each firing by a random
jitter, so consecutive gaps stay inside ``[min, max]`` without drifting. The
high-frequency lane ticks at a strict fixed rate.
"""

from __future__ import annotations

import asyncio
import random
from collections import Counter
from dataclasses import dataclass
from typing import Optional

from traffic_simulator.core.cancellation import StopToken
from traffic_simulator.core.errors import InvalidScheduleError
from traffic_simulator.core.logger import get_logger
from traffic_simulator.domain.models import (
    Codec,
    MessageFormat,
    RecordGenerator,
    TopicBinding,
)
from traffic_simulator.infrastructure.kafka.metrics import SCHEDULER_LIVE_TASKS
from traffic_simulator.infrastructure.kafka.producer_pool import CodecProducerPool
from traffic_simulator.utils.concurrency import run_blocking

logger = get_logger("scheduler")


@dataclass(frozen=True)
class EmissionTask:
    topic: str
    generator: RecordGenerator
    fmt: MessageFormat
    min_interval_ms: int = 0
    max_interval_ms: int = 0
    codec: Optional[Codec] = None
    high_frequency: bool = False
    fixed_interval_ms: Optional[int] = None

    @classmethod
    def from_binding(
        cls,
        binding: TopicBinding,
        min_interval_ms: int,
        max_interval_ms: int,
        high_frequency_interval_ms: int,
    ) -> "EmissionTask":
        if binding.high_frequency:
            return cls(
                topic=binding.topic,
                generator=binding.generator,
                fmt=binding.fmt,
                codec=binding.codec,
                high_frequency=True,
                fixed_interval_ms=high_frequency_interval_ms,
            )
        low, high = binding.interval_bounds(min_interval_ms, max_interval_ms)
        return cls(
            topic=binding.topic,
            generator=binding.generator,
            fmt=binding.fmt,
            codec=binding.codec,
            min_interval_ms=low,
            max_interval_ms=max(low, high),
        )

    @property
    def period_ms(self) -> float:
        if self.high_frequency:
            return float(self.fixed_interval_ms)
        return (self.min_interval_ms + self.max_interval_ms) / 2

    @property
    def jitter_bound_ms(self) -> int:
        """Exclusive upper bound of the per-firing jitter, in whole ms."""
        return max(1, (self.max_interval_ms - self.min_interval_ms) // 2)

    def validate(self) -> None:
        if not self.topic:
            raise InvalidScheduleError("emission task needs a topic")
        if not isinstance(self.fmt, MessageFormat):
            raise InvalidScheduleError(f"{self.topic}: unsupported format {self.fmt!r}")
        if not callable(self.generator):
            raise InvalidScheduleError(f"{self.topic}: generator is not callable")
        if self.high_frequency:
            if not isinstance(self.fixed_interval_ms, int) or self.fixed_interval_ms <= 0:
                raise InvalidScheduleError(
                    f"{self.topic}: fixed_interval_ms must be a positive int"
                )
            return
        for name in ("min_interval_ms", "max_interval_ms"):
            if not isinstance(getattr(self, name), int):
                raise InvalidScheduleError(f"{self.topic}: {name} must be an int")
        if not 0 <= self.min_interval_ms <= self.max_interval_ms:
            raise InvalidScheduleError(
                f"{self.topic}: invalid interval "
                f"[{self.min_interval_ms}, {self.max_interval_ms}]"
            )


class TrafficScheduler:
    def __init__(
        self,
        pool: CodecProducerPool,
        stop: Optional[StopToken] = None,
        rng: Optional[random.Random] = None,
        startup_spread_ms: int = 1000,
    ):
        self._pool = pool
        self._stop = stop or StopToken("scheduler")
        self._rng = rng or random.Random()
        self._startup_spread_ms = startup_spread_ms
        self._registered: dict[str, EmissionTask] = {}
        self._tasks: dict[str, asyncio.Task] = {}
        self._firings: Counter[str] = Counter()
        self._started = False

    def register(self, task: EmissionTask) -> None:
        if self._started:
            raise InvalidScheduleError("cannot register tasks after start()")
        task.validate()
        if task.topic in self._registered:
            raise InvalidScheduleError(f"topic {task.topic!r} already registered")
        self._registered[task.topic] = task

    @property
    def registered(self) -> list[EmissionTask]:
        return list(self._registered.values())

    async def start(self) -> None:
        if self._started:
            return
        self._started = True
        for topic, task in self._registered.items():
            runner = self._run_fixed if task.high_frequency else self._run_jittered
            t = asyncio.create_task(self._guard(task, runner), name=f"emit:{topic}")
            t.add_done_callback(self._on_task_done)
            self._tasks[topic] = t
        SCHEDULER_LIVE_TASKS.set(self.live_tasks())
        logger.info(
            "scheduler_started",
            extra={
                "tasks": len(self._tasks),
                "topics": sorted(self._tasks),
                "startup_spread_ms": self._startup_spread_ms,
            },
        )

    def _on_task_done(self, _task: asyncio.Task) -> None:
        SCHEDULER_LIVE_TASKS.set(self.live_tasks())

    async def _guard(self, task: EmissionTask, runner) -> None:
        try:
            await runner(task)
        except asyncio.CancelledError:
            logger.debug("emission_task_cancelled", extra={"topic": task.topic})
            raise
        except Exception as exc:  # noqa: BLE001
            logger.exception(
                "emission_task_crashed", extra={"topic": task.topic, "error": str(exc)}
            )

    def _fire(self, task: EmissionTask) -> None:
        try:
            msg = task.generator()
        except Exception as exc:  # noqa: BLE001
            logger.error(
                "generator_failed", extra={"topic": task.topic, "error": str(exc)}
            )
            return
        self._firings[task.topic] += 1
        self._pool.send(
            task.fmt,
            task.topic,
            msg.key,
            msg.value,
            headers=msg.headers,
            codec=task.codec,
        )

    async def _fire_once(self, task: EmissionTask) -> None:
        inflight = asyncio.ensure_future(run_blocking(self._fire, task))
        try:
            await asyncio.shield(inflight)
        except asyncio.CancelledError:
            # a send already handed to the thread runs to completion
            await asyncio.wait({inflight})
            raise
        except Exception as exc:  # noqa: BLE001
            logger.error("emission_failed", extra={"topic": task.topic, "error": str(exc)})

    async def _run_jittered(self, task: EmissionTask) -> None:
        loop = asyncio.get_running_loop()
        period = task.period_ms / 1000
        initial_delay = (
            self._rng.uniform(0, self._startup_spread_ms) / 1000
            if self._startup_spread_ms > 0
            else 0.0
        )
        if await self._stop.wait(initial_delay):
            return

        tick = loop.time()
        while not self._stop.is_set():
            await self._fire_once(task)
            tick += period
            now = loop.time()
            if now - tick > period:
                tick = now
            jitter = self._rng.randrange(task.jitter_bound_ms) / 1000
            if await self._stop.wait(max(0.0, tick + jitter - now)):
                return

    async def _run_fixed(self, task: EmissionTask) -> None:
        loop = asyncio.get_running_loop()
        interval = task.period_ms / 1000
        tick = loop.time()
        while not self._stop.is_set():
            await self._fire_once(task)
            tick += interval
            now = loop.time()
            if now - tick > interval:
                tick = now
            if await self._stop.wait(max(0.0, tick - now)):
                return

    def live_tasks(self) -> int:
        return sum(1 for t in self._tasks.values() if not t.done())

    def firings(self) -> dict[str, int]:
        return dict(self._firings)

    async def stop(self, grace: float = 5.0) -> int:
        """Stop every emission task; returns how many are still live after ``grace``."""
        self._stop.set()
        pending = [t for t in self._tasks.values() if not t.done()]
        for t in pending:
            t.cancel()
        if pending:
            await asyncio.wait(pending, timeout=grace)
        live = self.live_tasks()
        SCHEDULER_LIVE_TASKS.set(live)
        if live:
            logger.warning("scheduler_stop_incomplete", extra={"live_tasks": live})
        else:
            logger.info("scheduler_stopped", extra={"firings": sum(self._firings.values())})
        return live
