from __future__ import annotations

from typing import Optional, Sequence

from traffic_simulator.core.cancellation import StopToken
from traffic_simulator.core.logger import get_logger
from traffic_simulator.domain.models import TopicBinding
from traffic_simulator.infrastructure.kafka.producer_pool import CodecProducerPool
from traffic_simulator.utils.concurrency import run_blocking

logger = get_logger("seeder")


class InitialSeeder:
    """Bulk-loads each catalog topic once before continuous production.

    Sends go through a random codec handle of the topic's format so the
    seeded backlog mixes compression codecs, unless the binding pins a
    ``seed_codec`` (gzip for large documents, lz4 for binary, snappy for CSV).
    """

    def __init__(
        self,
        pool: CodecProducerPool,
        plan: Sequence[tuple[TopicBinding, int]],
        stop: Optional[StopToken] = None,
    ):
        self._pool = pool
        self._plan = list(plan)
        self._stop = stop or StopToken("seeder")

    def seed(self) -> dict[str, int]:
        sent: dict[str, int] = {}
        logger.info(
            "seeding_started",
            extra={"topics": len(self._plan), "messages": sum(n for _, n in self._plan)},
        )
        for binding, count in self._plan:
            sent[binding.topic] = 0
            for _ in range(count):
                if self._stop.is_set():
                    logger.info("seeding_interrupted", extra={"topic": binding.topic})
                    return sent
                try:
                    msg = binding.generator()
                except Exception as exc:  # noqa: BLE001
                    logger.error(
                        "generator_failed", extra={"topic": binding.topic, "error": str(exc)}
                    )
                    continue
                self._pool.send(
                    binding.fmt,
                    binding.topic,
                    msg.key,
                    msg.value,
                    headers=msg.headers,
                    codec=binding.seed_codec,
                )
                sent[binding.topic] += 1
            logger.debug("topic_seeded", extra={"topic": binding.topic, "messages": sent[binding.topic]})

        remaining = self._pool.flush_all()
        logger.info(
            "seeding_completed",
            extra={"messages": sum(sent.values()), "unflushed": remaining},
        )
        return sent

    async def run(self) -> dict[str, int]:
        return await run_blocking(self.seed)
