from __future__ import annotations

import threading
import time
from typing import Any, Callable, Iterable, Optional, Protocol

from confluent_kafka import Consumer, KafkaError, KafkaException

from traffic_simulator.core.config import Settings
from traffic_simulator.core.logger import get_logger
from traffic_simulator.domain.behaviors import ConsumerSpec

logger = get_logger("kafka.subscription")


class Subscription(Protocol):
    """What a consumer worker needs from a broker subscription."""

    def subscribe(self, topics: Iterable[str]) -> None: ...

    def poll(self, timeout: float) -> int: ...

    def commit(self) -> None: ...

    def wake(self) -> None: ...

    def close(self) -> None: ...


SubscriptionFactory = Callable[[ConsumerSpec, str, Optional[int]], Subscription]


class KafkaSubscription:
    """Single-threaded consumer wrapper with an interruptible poll.

    ``poll`` consumes in short slices and checks the wake flag between them,
    so ``wake()`` from another thread returns a blocked poll within one slice.
    ``close`` waits for an in-flight poll slice before closing the client.
    """

    def __init__(
        self,
        config: dict[str, Any],
        max_poll_records: int = 500,
        poll_slice_seconds: float = 0.1,
        consumer_factory: Callable[[dict], Consumer] = Consumer,
    ):
        self.client_id = config.get("client.id")
        self._consumer = consumer_factory(config)
        self._max_poll_records = max_poll_records
        self._slice = poll_slice_seconds
        self._woken = threading.Event()
        self._poll_lock = threading.Lock()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def subscribe(self, topics: Iterable[str]) -> None:
        topics = list(topics)
        self._consumer.subscribe(topics)
        logger.debug(
            "consumer_subscribed", extra={"client_id": self.client_id, "topics": topics}
        )

    def poll(self, timeout: float) -> int:
        """Return the number of records received within ``timeout`` seconds."""
        deadline = time.monotonic() + max(0.0, timeout)
        with self._poll_lock:
            while not self._woken.is_set() and not self._closed:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return 0
                msgs = self._consumer.consume(
                    num_messages=self._max_poll_records,
                    timeout=min(self._slice, remaining),
                )
                count = 0
                for msg in msgs:
                    err = msg.error()
                    if err is None:
                        count += 1
                    elif err.code() != KafkaError._PARTITION_EOF:
                        raise KafkaException(err)
                if count:
                    return count
        return 0

    def commit(self) -> None:
        try:
            self._consumer.commit(asynchronous=True)
        except KafkaException as exc:
            err = exc.args[0] if exc.args else None
            if isinstance(err, KafkaError) and err.code() == KafkaError._NO_OFFSET:
                return
            raise

    def wake(self) -> None:
        self._woken.set()

    def close(self) -> None:
        self.wake()
        with self._poll_lock:
            if self._closed:
                return
            self._closed = True
            self._consumer.close()
        logger.debug("consumer_closed", extra={"client_id": self.client_id})


def consumer_config(
    cfg: Settings,
    spec: ConsumerSpec,
    client_id: str,
    session_timeout_ms: Optional[int] = None,
) -> dict[str, Any]:
    config = {
        "bootstrap.servers": cfg.kafka_bootstrap_servers,
        "group.id": spec.group_id,
        "client.id": client_id,
        "auto.offset.reset": "earliest",
        "enable.auto.commit": True,
        "auto.commit.interval.ms": 5000,
        "fetch.min.bytes": 1,
        "fetch.wait.max.ms": 500,
    }
    if session_timeout_ms is not None:
        config["session.timeout.ms"] = session_timeout_ms
    return config


def kafka_subscription_factory(cfg: Settings) -> SubscriptionFactory:
    def factory(
        spec: ConsumerSpec, client_id: str, session_timeout_ms: Optional[int] = None
    ) -> KafkaSubscription:
        return KafkaSubscription(
            consumer_config(cfg, spec, client_id, session_timeout_ms),
            max_poll_records=cfg.consumer_max_poll_records,
        )

    return factory
