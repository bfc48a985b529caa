import threading
import time
from unittest.mock import MagicMock

import pytest
from confluent_kafka import KafkaError, KafkaException

from traffic_simulator.domain.behaviors import ConsumerSpec, Permanent
from traffic_simulator.infrastructure.kafka.subscription import (
    KafkaSubscription,
    consumer_config,
)


def _msg(error=None):
    msg = MagicMock()
    msg.error.return_value = error
    return msg


def _subscription(consumer, **kwargs):
    kwargs.setdefault("poll_slice_seconds", 0.01)
    return KafkaSubscription(
        {"client.id": "c-1"}, consumer_factory=lambda config: consumer, **kwargs
    )


def test_consumer_config(test_settings):
    spec = ConsumerSpec("w-1", "grp", ("t",), Permanent())

    config = consumer_config(test_settings, spec, "w-1-123", session_timeout_ms=10_000)

    assert config["group.id"] == "grp"
    assert config["client.id"] == "w-1-123"
    assert config["auto.offset.reset"] == "earliest"
    assert config["session.timeout.ms"] == 10_000
    assert "session.timeout.ms" not in consumer_config(test_settings, spec, "w-1")


def test_poll_counts_records_and_skips_partition_eof():
    consumer = MagicMock()
    consumer.consume.return_value = [
        _msg(),
        _msg(KafkaError(KafkaError._PARTITION_EOF)),
        _msg(),
    ]

    assert _subscription(consumer).poll(1.0) == 2


def test_poll_raises_on_record_error():
    consumer = MagicMock()
    consumer.consume.return_value = [_msg(KafkaError(KafkaError._TRANSPORT))]

    with pytest.raises(KafkaException):
        _subscription(consumer).poll(1.0)


def test_poll_returns_zero_after_timeout():
    consumer = MagicMock()
    consumer.consume.return_value = []

    started = time.monotonic()
    assert _subscription(consumer).poll(0.05) == 0
    assert time.monotonic() - started < 1.0


def test_wake_interrupts_blocked_poll():
    consumer = MagicMock()

    def slow_consume(num_messages, timeout):
        time.sleep(timeout)
        return []

    consumer.consume.side_effect = slow_consume
    sub = _subscription(consumer)
    threading.Timer(0.05, sub.wake).start()

    started = time.monotonic()
    assert sub.poll(10.0) == 0
    assert time.monotonic() - started < 1.0


def test_commit_ignores_no_offset():
    consumer = MagicMock()
    consumer.commit.side_effect = KafkaException(KafkaError(KafkaError._NO_OFFSET))

    _subscription(consumer).commit()


def test_commit_propagates_other_errors():
    consumer = MagicMock()
    consumer.commit.side_effect = KafkaException(KafkaError(KafkaError._TRANSPORT))

    with pytest.raises(KafkaException):
        _subscription(consumer).commit()


def test_close_is_idempotent():
    consumer = MagicMock()
    sub = _subscription(consumer)

    sub.close()
    sub.close()

    consumer.close.assert_called_once()
    assert sub.closed
    assert sub.poll(1.0) == 0
