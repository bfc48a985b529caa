"""Top-level wiring of producers, scheduler and consumers."""

from __future__ import annotations

import asyncio
import random
from typing import Iterable, Optional, Sequence

from traffic_simulator.consumers.manager import ConsumerLifecycleManager
from traffic_simulator.core.cancellation import StopToken
from traffic_simulator.core.config import Settings, settings as default_settings
from traffic_simulator.core.logger import get_logger
from traffic_simulator.domain.behaviors import ConsumerSpec
from traffic_simulator.domain.catalog import (
    DEFAULT_CATALOG,
    build_roster,
    continuous_bindings,
    seed_plan,
)
from traffic_simulator.domain.models import TopicBinding
from traffic_simulator.generators import records
from traffic_simulator.infrastructure.kafka.producer_pool import CodecProducerPool
from traffic_simulator.infrastructure.kafka.subscription import (
    SubscriptionFactory,
    kafka_subscription_factory,
)
from traffic_simulator.infrastructure.kafka.topic_waiter import wait_for_topics
from traffic_simulator.scheduler.traffic_scheduler import EmissionTask, TrafficScheduler
from traffic_simulator.services.seeder import InitialSeeder
from traffic_simulator.services.stats import StatsAggregator
from traffic_simulator.utils.concurrency import run_blocking

logger = get_logger("engine")


class TrafficEngine:
    """Runs one simulation: seed, emit continuously, drive the consumer population.

    ``stop`` is idempotent and safe to call concurrently. Producing units are
    always stopped before the producer pool is closed.
    """

    def __init__(
        self,
        cfg: Settings = default_settings,
        pool: Optional[CodecProducerPool] = None,
        subscription_factory: Optional[SubscriptionFactory] = None,
        rng: Optional[random.Random] = None,
        catalog: Sequence[TopicBinding] = DEFAULT_CATALOG,
        roster: Optional[Iterable[ConsumerSpec]] = None,
    ):
        self.cfg = cfg
        self._rng = rng or random.Random(cfg.random_seed)
        if cfg.random_seed is not None:
            records.seed(cfg.random_seed)
        self.stop_token = StopToken("engine")
        self.stats = pool.stats if pool is not None else StatsAggregator()
        self.pool = pool or CodecProducerPool(cfg, stats=self.stats)
        self.catalog = list(catalog)

        self.scheduler = TrafficScheduler(
            self.pool,
            stop=self.stop_token.child("scheduler"),
            rng=random.Random(self._rng.getrandbits(64)),
            startup_spread_ms=cfg.startup_spread_ms,
        )
        for binding in continuous_bindings(self.catalog):
            self.scheduler.register(
                EmissionTask.from_binding(
                    binding,
                    cfg.min_interval_ms,
                    cfg.max_interval_ms,
                    cfg.high_frequency_interval_ms,
                )
            )

        if roster is None:
            roster = build_roster(cfg.consumer_groups, cfg.builtin_consumers_enabled)
        self.consumers = ConsumerLifecycleManager(
            roster if cfg.consumer_groups_enabled else [],
            subscription_factory or kafka_subscription_factory(cfg),
            stats=self.stats,
            cfg=cfg,
            stop=self.stop_token.child("consumers"),
            rng=random.Random(self._rng.getrandbits(64)),
        )
        self._shutdown: Optional[asyncio.Task] = None

    async def start(self) -> None:
        cfg = self.cfg
        logger.info(
            "engine_starting",
            extra={
                "bootstrap_servers": cfg.kafka_bootstrap_servers,
                "topics": len(self.catalog),
                "workers": len(self.consumers.workers),
            },
        )
        if cfg.wait_for_topics:
            await run_blocking(
                wait_for_topics,
                [b.topic for b in self.catalog],
                cfg.kafka_bootstrap_servers,
                max_retries=cfg.topic_wait_retries,
                stop=self.stop_token,
                sleep=self.stop_token.wait_sync,
            )

        if cfg.seeding_enabled:
            plan = seed_plan(
                cfg.initial_message_count, self.catalog, cfg.large_message_count
            )
            if plan:
                await InitialSeeder(self.pool, plan, stop=self.stop_token).run()

        if self.stop_token.is_set():
            logger.info("engine_start_aborted")
            return

        if cfg.continuous_producer_enabled:
            await self.scheduler.start()
        if cfg.consumer_groups_enabled:
            await self.consumers.start_all()
        logger.info("engine_started")

    async def stop(self) -> None:
        if self._shutdown is None:
            self._shutdown = asyncio.create_task(self._stop_all())
        await asyncio.shield(self._shutdown)

    async def _stop_all(self) -> None:
        logger.info("engine_stopping")
        self.stop_token.set()
        grace = self.cfg.shutdown_grace_seconds
        live, _ = await asyncio.gather(
            self.scheduler.stop(grace), self.consumers.stop_all(grace)
        )
        if live:
            logger.warning("engine_emitters_still_live", extra={"live_tasks": live})
        await run_blocking(self.pool.close)
        logger.info("traffic_summary", extra=self.stats.summary())

    async def run_until_stopped(self) -> None:
        await self.stop_token.wait()
        await self.stop()
