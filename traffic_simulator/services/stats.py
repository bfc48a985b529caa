"""In-process traffic counters mirrored to Prometheus."""

from __future__ import annotations

import threading
from collections import Counter
from typing import Any

from traffic_simulator.infrastructure.kafka.metrics import (
    DELIVERY_FAILURES_TOTAL,
    MESSAGES_CONSUMED_TOTAL,
    MESSAGES_EMITTED_TOTAL,
    SEND_FAILURES_TOTAL,
)


class StatsAggregator:
    """Emission and consumption counters.

    Producers write from the event loop and from the seeding thread, so
    updates go through a lock. Reads return copies.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._emitted: Counter[str] = Counter()
        self._send_failures: Counter[str] = Counter()
        self._delivery_failures: Counter[str] = Counter()
        self._consumed: Counter[str] = Counter()

    def record_emitted(self, topic: str) -> None:
        with self._lock:
            self._emitted[topic] += 1
        MESSAGES_EMITTED_TOTAL.labels(topic=topic).inc()

    def record_send_failure(self, topic: str) -> None:
        with self._lock:
            self._send_failures[topic] += 1
        SEND_FAILURES_TOTAL.labels(topic=topic).inc()

    def record_delivery_failure(self, topic: str) -> None:
        with self._lock:
            self._delivery_failures[topic] += 1
        DELIVERY_FAILURES_TOTAL.labels(topic=topic).inc()

    def record_consumed(self, worker_id: str, group_id: str, count: int) -> None:
        if count <= 0:
            return
        with self._lock:
            self._consumed[worker_id] += count
        MESSAGES_CONSUMED_TOTAL.labels(group=group_id).inc(count)

    @property
    def emitted_total(self) -> int:
        with self._lock:
            return sum(self._emitted.values())

    @property
    def send_failures_total(self) -> int:
        with self._lock:
            return sum(self._send_failures.values())

    def emitted_by_topic(self) -> dict[str, int]:
        with self._lock:
            return dict(self._emitted)

    def send_failures_by_topic(self) -> dict[str, int]:
        with self._lock:
            return dict(self._send_failures)

    def consumed_by_worker(self) -> dict[str, int]:
        with self._lock:
            return dict(self._consumed)

    def summary(self) -> dict[str, Any]:
        with self._lock:
            return {
                "emitted_total": sum(self._emitted.values()),
                "send_failures_total": sum(self._send_failures.values()),
                "delivery_failures_total": sum(self._delivery_failures.values()),
                "consumed_total": sum(self._consumed.values()),
                "emitted_by_topic": dict(self._emitted),
                "consumed_by_worker": dict(self._consumed),
            }
