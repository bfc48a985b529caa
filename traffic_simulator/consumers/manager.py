from __future__ import annotations

import asyncio
import random
from typing import Iterable, Optional

from traffic_simulator.core.cancellation import StopToken
from traffic_simulator.core.config import Settings, settings as default_settings
from traffic_simulator.core.logger import get_logger
from traffic_simulator.domain.behaviors import ConsumerSpec, WorkerState
from traffic_simulator.infrastructure.kafka.subscription import SubscriptionFactory
from traffic_simulator.services.stats import StatsAggregator

from .worker import ConsumerWorker

logger = get_logger("consumers.manager")


class ConsumerLifecycleManager:
    """Owns the consumer population and its shutdown."""

    def __init__(
        self,
        roster: Iterable[ConsumerSpec],
        subscription_factory: SubscriptionFactory,
        stats: Optional[StatsAggregator] = None,
        cfg: Settings = default_settings,
        stop: Optional[StopToken] = None,
        rng: Optional[random.Random] = None,
    ):
        self._cfg = cfg
        self._stop = stop or StopToken("consumers")
        rng = rng or random.Random()
        self.stats_aggregator = stats or StatsAggregator()
        self.workers: list[ConsumerWorker] = [
            ConsumerWorker(
                spec,
                subscription_factory,
                stats=self.stats_aggregator,
                cfg=cfg,
                stop=self._stop,
                rng=random.Random(rng.getrandbits(64)),
            )
            for spec in roster
        ]
        self._shutdown: Optional[asyncio.Task] = None

    def worker(self, worker_id: str) -> ConsumerWorker:
        for w in self.workers:
            if w.worker_id == worker_id:
                return w
        raise KeyError(worker_id)

    async def start_all(self) -> None:
        if self._stop.is_set():
            logger.warning("consumers_start_after_stop")
            return
        for w in self.workers:
            w.start()
        kinds: dict[str, int] = {}
        for w in self.workers:
            kinds[w.spec.behavior.kind] = kinds.get(w.spec.behavior.kind, 0) + 1
        logger.info(
            "consumers_started", extra={"workers": len(self.workers), "by_behavior": kinds}
        )

    async def stop_all(self, grace: Optional[float] = None) -> None:
        """Stop every worker; concurrent and repeated calls share one shutdown."""
        if self._shutdown is None:
            if grace is None:
                grace = self._cfg.shutdown_grace_seconds
            self._shutdown = asyncio.create_task(self._shutdown_workers(grace))
        await asyncio.shield(self._shutdown)

    async def _shutdown_workers(self, grace: float) -> None:
        logger.info("consumers_stopping", extra={"grace_seconds": grace})
        self._stop.set()
        for w in self.workers:
            w.request_stop()

        tasks = [w.task for w in self.workers if w.task is not None and not w.task.done()]
        if tasks:
            _, pending = await asyncio.wait(tasks, timeout=grace)
            if pending:
                logger.warning(
                    "consumers_force_cancel",
                    extra={
                        "workers": sorted(t.get_name() for t in pending),
                        "grace_seconds": grace,
                    },
                )
                for t in pending:
                    t.cancel()
                await asyncio.wait(pending, timeout=self._cfg.shutdown_cancel_timeout_seconds)

        not_closed = [w.worker_id for w in self.workers if w.state != WorkerState.CLOSED]
        if not_closed:
            logger.error("consumers_not_closed", extra={"workers": not_closed})
        logger.info(
            "consumers_stopped",
            extra={"consumed_total": sum(w.messages_consumed for w in self.workers)},
        )

    def stats(self) -> dict[str, int]:
        return {w.worker_id: w.messages_consumed for w in self.workers}

    def states(self) -> dict[str, WorkerState]:
        return {w.worker_id: w.state for w in self.workers}
