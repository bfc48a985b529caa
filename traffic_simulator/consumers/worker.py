from __future__ import annotations

import asyncio
import random
import time
from typing import Awaitable, Callable, Optional

from traffic_simulator.core.cancellation import StopToken
from traffic_simulator.core.config import Settings, settings as default_settings
from traffic_simulator.core.errors import SubscriptionSetupError, is_retriable_poll_error
from traffic_simulator.core.logger import get_logger
from traffic_simulator.domain.behaviors import (
    ConsumerSpec,
    Intermittent,
    Permanent,
    Temporary,
    WorkerState,
)
from traffic_simulator.infrastructure.kafka.metrics import CONSUMER_WORKERS, POLL_BATCH_RECORDS
from traffic_simulator.infrastructure.kafka.subscription import (
    Subscription,
    SubscriptionFactory,
)
from traffic_simulator.services.stats import StatsAggregator
from traffic_simulator.utils.concurrency import run_blocking, run_blocking_bounded

logger = get_logger("consumers.worker")

Dwell = Callable[[float], Awaitable[bool]]


class ConsumerWorker:
    """One simulated consumer process.

    ``run`` dispatches on the behaviour variant. Stop requests (the worker's
    own or the population-wide token) win over every time-based transition
    and wake a blocked poll.
    """

    def __init__(
        self,
        spec: ConsumerSpec,
        subscription_factory: SubscriptionFactory,
        stats: Optional[StatsAggregator] = None,
        cfg: Settings = default_settings,
        stop: Optional[StopToken] = None,
        rng: Optional[random.Random] = None,
        clock: Callable[[], float] = time.monotonic,
        dwell: Optional[Dwell] = None,
    ):
        self.spec = spec
        self._factory = subscription_factory
        self._stats = stats or StatsAggregator()
        self._cfg = cfg
        self._stop = (stop or StopToken("consumers")).child(spec.worker_id)
        self._rng = rng or random.Random()
        self._clock = clock
        self._dwell = dwell or self._stop.wait

        self.state = WorkerState.PENDING
        self.messages_consumed = 0
        self.online_seconds = 0.0
        self.started_at: Optional[float] = None
        self.closed_at: Optional[float] = None
        self._subscription: Optional[Subscription] = None
        self._task: Optional[asyncio.Task] = None
        CONSUMER_WORKERS.labels(state=self.state.value).inc()

    @property
    def worker_id(self) -> str:
        return self.spec.worker_id

    @property
    def task(self) -> Optional[asyncio.Task]:
        return self._task

    @property
    def stop_requested(self) -> bool:
        return self._stop.is_set()

    def _set_state(self, new: WorkerState) -> None:
        old = self.state
        if old == new:
            return
        self.state = new
        CONSUMER_WORKERS.labels(state=old.value).dec()
        CONSUMER_WORKERS.labels(state=new.value).inc()
        if new == WorkerState.CLOSED:
            self.closed_at = self._clock()
        logger.info(
            "worker_state_changed",
            extra={
                "worker_id": self.worker_id,
                "behavior": self.spec.behavior.kind,
                "from": old.value,
                "to": new.value,
            },
        )

    def start(self) -> Optional[asyncio.Task]:
        if self._task is not None or self.state != WorkerState.PENDING:
            return self._task
        self._task = asyncio.create_task(self.run(), name=f"consumer:{self.worker_id}")
        return self._task

    def request_stop(self) -> None:
        self._stop.set()
        sub = self._subscription
        if sub is not None:
            sub.wake()
        if self._task is None and self.state == WorkerState.PENDING:
            self._set_state(WorkerState.CLOSED)

    async def run(self) -> None:
        self.started_at = self._clock()
        behavior = self.spec.behavior
        try:
            if isinstance(behavior, Permanent):
                await self._run_permanent()
            elif isinstance(behavior, Temporary):
                await self._run_temporary(behavior)
            elif isinstance(behavior, Intermittent):
                await self._run_intermittent(behavior)
            else:
                raise TypeError(f"unknown consumer behavior {behavior!r}")
        except SubscriptionSetupError as exc:
            logger.error(
                "consumer_setup_failed",
                extra={"worker_id": self.worker_id, "error": str(exc.__cause__ or exc)},
            )
        except asyncio.CancelledError:
            logger.info("consumer_cancelled", extra={"worker_id": self.worker_id})
            raise
        except Exception as exc:  # noqa: BLE001
            logger.exception(
                "consumer_failed", extra={"worker_id": self.worker_id, "error": str(exc)}
            )
        finally:
            try:
                await self._close_subscription(self._cfg.consumer_close_timeout_seconds)
            finally:
                self._set_state(WorkerState.CLOSED)
                logger.info(
                    "consumer_closed",
                    extra={
                        "worker_id": self.worker_id,
                        "messages_consumed": self.messages_consumed,
                    },
                )

    # -- subscription plumbing ----------------------------------------------

    async def _open(self, client_id: str, session_timeout_ms: Optional[int] = None) -> Subscription:
        def open_subscription() -> Subscription:
            sub = self._factory(self.spec, client_id, session_timeout_ms)
            try:
                sub.subscribe(self.spec.topics)
            except Exception:
                sub.close()
                raise
            return sub

        try:
            sub = await run_blocking(open_subscription)
        except Exception as exc:
            raise SubscriptionSetupError(
                f"{self.worker_id}: cannot subscribe to {list(self.spec.topics)}"
            ) from exc
        self._subscription = sub
        if self._stop.is_set():
            sub.wake()
        return sub

    async def _poll(self, sub: Subscription, timeout: float) -> int:
        try:
            count = await run_blocking(sub.poll, timeout)
        except asyncio.CancelledError:
            sub.wake()
            raise
        if count:
            self.messages_consumed += count
            self._stats.record_consumed(self.worker_id, self.spec.group_id, count)
            POLL_BATCH_RECORDS.labels(group=self.spec.group_id).observe(count)
        return count

    async def _commit(self, sub: Subscription) -> None:
        try:
            await run_blocking(sub.commit)
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                "consumer_commit_failed", extra={"worker_id": self.worker_id, "error": str(exc)}
            )

    async def _close_subscription(self, timeout: float) -> None:
        sub, self._subscription = self._subscription, None
        if sub is None:
            return
        sub.wake()
        try:
            await run_blocking_bounded(timeout, sub.close)
        except asyncio.TimeoutError:
            logger.warning(
                "consumer_close_timeout",
                extra={"worker_id": self.worker_id, "timeout_seconds": timeout},
            )
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                "consumer_close_failed", extra={"worker_id": self.worker_id, "error": str(exc)}
            )

    async def _backoff_after_error(self, exc: Exception, limit: Optional[float] = None) -> bool:
        """Log a poll error and wait out the back-off, at most ``limit`` seconds."""
        logger.warning(
            "consumer_poll_error",
            extra={"worker_id": self.worker_id, "error": str(exc)},
        )
        backoff = self._cfg.consumer_error_backoff_seconds
        if limit is not None:
            backoff = max(0.0, min(backoff, limit))
        return await self._stop.wait(backoff)

    # -- behaviours ---------------------------------------------------------

    async def _run_permanent(self) -> None:
        self._set_state(WorkerState.RUNNING)
        sub = await self._open(self.worker_id)
        since_commit = 0
        while not self._stop.is_set():
            try:
                count = await self._poll(sub, self._cfg.consumer_poll_timeout_seconds)
            except Exception as exc:  # noqa: BLE001
                if await self._backoff_after_error(exc):
                    break
                continue
            if not count:
                continue
            since_commit += count
            if since_commit >= self._cfg.consumer_commit_every:
                await self._commit(sub)
                since_commit = 0
            if await self._stop.wait(min(10, count) / 1000):
                break
        self._set_state(WorkerState.DRAINING)

    async def _run_temporary(self, behavior: Temporary) -> None:
        deadline = self._clock() + behavior.duration_seconds
        self._set_state(WorkerState.RUNNING)
        logger.info(
            "temporary_consumer_started",
            extra={"worker_id": self.worker_id, "duration_seconds": behavior.duration_seconds},
        )
        sub = await self._open(self.worker_id)
        while not self._stop.is_set():
            remaining = deadline - self._clock()
            if remaining <= 0:
                logger.info(
                    "temporary_consumer_completed",
                    extra={"worker_id": self.worker_id, "messages_consumed": self.messages_consumed},
                )
                break
            try:
                await self._poll(sub, min(self._cfg.consumer_poll_timeout_seconds, remaining))
            except Exception as exc:  # noqa: BLE001
                if await self._backoff_after_error(exc, deadline - self._clock()):
                    break

    async def _run_intermittent(self, behavior: Intermittent) -> None:
        self._set_state(WorkerState.OFFLINE)
        cycle = 0
        while not self._stop.is_set():
            cycle += 1
            online_for = self._rng.uniform(behavior.on_min, behavior.on_max)
            await self._online_phase(online_for, cycle)
            if self._stop.is_set():
                break
            offline_for = self._rng.uniform(behavior.off_min, behavior.off_max)
            self._set_state(WorkerState.OFFLINE)
            logger.info(
                "intermittent_offline",
                extra={
                    "worker_id": self.worker_id,
                    "cycle": cycle,
                    "offline_seconds": round(offline_for, 3),
                },
            )
            if await self._dwell(offline_for):
                break

    async def _online_phase(self, duration: float, cycle: int) -> None:
        client_id = f"{self.worker_id}-{int(time.time() * 1000)}"
        phase_start = self._clock()
        self._set_state(WorkerState.ONLINE)
        logger.info(
            "intermittent_online",
            extra={
                "worker_id": self.worker_id,
                "client_id": client_id,
                "cycle": cycle,
                "online_seconds": round(duration, 3),
            },
        )
        try:
            try:
                sub = await self._open(client_id, self._cfg.intermittent_session_timeout_ms)
            except SubscriptionSetupError as exc:
                logger.warning(
                    "intermittent_subscribe_failed",
                    extra={"worker_id": self.worker_id, "error": str(exc.__cause__ or exc)},
                )
                await self._dwell(max(0.0, duration - (self._clock() - phase_start)))
                return

            while not self._stop.is_set():
                remaining = duration - (self._clock() - phase_start)
                if remaining <= 0:
                    break
                try:
                    await self._poll(
                        sub, min(self._cfg.intermittent_poll_timeout_seconds, remaining)
                    )
                except Exception as exc:  # noqa: BLE001
                    if is_retriable_poll_error(exc):
                        logger.debug(
                            "intermittent_poll_retry",
                            extra={"worker_id": self.worker_id, "error": str(exc)},
                        )
                        if await self._stop.wait(min(0.1, remaining)):
                            break
                        continue
                    logger.warning(
                        "intermittent_phase_aborted",
                        extra={"worker_id": self.worker_id, "error": str(exc)},
                    )
                    break
        finally:
            await self._close_subscription(self._cfg.intermittent_close_timeout_seconds)
            self.online_seconds += self._clock() - phase_start
