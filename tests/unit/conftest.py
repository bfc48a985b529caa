import threading

import pytest

from traffic_simulator.core.config import Settings
from traffic_simulator.infrastructure.kafka.producer_pool import CodecProducerPool
from traffic_simulator.services.stats import StatsAggregator


class StubProducer:
    """In-memory stand-in for ``confluent_kafka.Producer``."""

    def __init__(self, config):
        self.config = config
        self.produced = []
        self.buffer_full = False
        self.produce_error = None
        self.pending = 0
        self.poll_calls = 0
        self.flush_calls = 0
        self.purged = False
        self._lock = threading.Lock()

    def produce(self, topic, key=None, value=None, headers=None, on_delivery=None):
        if self.buffer_full:
            raise BufferError("Local: Queue full")
        if self.produce_error is not None:
            raise self.produce_error
        with self._lock:
            self.produced.append(
                {"topic": topic, "key": key, "value": value, "headers": headers}
            )

    def poll(self, timeout=0):
        self.poll_calls += 1
        return 0

    def flush(self, timeout=None):
        self.flush_calls += 1
        return self.pending

    def purge(self, *args, **kwargs):
        self.purged = True


class StubProducerFactory:
    def __init__(self):
        self.producers = []

    def __call__(self, config):
        producer = StubProducer(config)
        self.producers.append(producer)
        return producer

    @property
    def produced(self):
        return [m for p in self.producers for m in p.produced]


class StubSerializer:
    def __init__(self):
        self.calls = []

    def encode(self, fmt, topic, value):
        self.calls.append((fmt, topic))
        if isinstance(value, bytes):
            return value
        return repr(value).encode("utf-8")


class StubSubscription:
    """Broker-free subscription: ``poll`` blocks up to ``timeout`` unless woken."""

    def __init__(self, spec, client_id, session_timeout_ms, poll_result=0, fail_subscribe=False):
        self.spec = spec
        self.client_id = client_id
        self.session_timeout_ms = session_timeout_ms
        self.poll_result = poll_result
        self.fail_subscribe = fail_subscribe
        self.errors = []
        self.topics = None
        self.polls = 0
        self.commits = 0
        self.close_calls = 0
        self._woken = threading.Event()
        self._lock = threading.Lock()

    def subscribe(self, topics):
        if self.fail_subscribe:
            raise ConnectionError("broker unreachable")
        self.topics = list(topics)

    def poll(self, timeout):
        self.polls += 1
        if self.errors:
            raise self.errors.pop(0)
        if self._woken.wait(timeout):
            return 0
        return self.poll_result

    def commit(self):
        self.commits += 1

    def wake(self):
        self._woken.set()

    def close(self):
        with self._lock:
            self.close_calls += 1


class StubSubscriptionFactory:
    def __init__(self, poll_result=0, fail_for=()):
        self.poll_result = poll_result
        self.fail_for = set(fail_for)
        self.created = []
        self._lock = threading.Lock()

    def __call__(self, spec, client_id, session_timeout_ms=None):
        sub = StubSubscription(
            spec,
            client_id,
            session_timeout_ms,
            poll_result=self.poll_result,
            fail_subscribe=spec.worker_id in self.fail_for,
        )
        with self._lock:
            self.created.append(sub)
        return sub

    def for_worker(self, worker_id):
        return [s for s in self.created if s.spec.worker_id == worker_id]


class FakeClock:
    def __init__(self, start=1000.0):
        self.now = start
        self._lock = threading.Lock()

    def __call__(self):
        return self.now

    def advance(self, seconds):
        with self._lock:
            self.now += seconds


@pytest.fixture
def make_settings():
    """Settings tuned for fast, broker-free tests."""

    def factory(**overrides):
        values = {
            "app_environment": "testing",
            "startup_spread_ms": 0,
            "wait_for_topics": False,
            "seeding_enabled": False,
            "producer_buffer_retries": 3,
            "producer_buffer_retry_wait_seconds": 0.001,
            "producer_flush_timeout_seconds": 0.1,
            "consumer_poll_timeout_seconds": 0.05,
            "intermittent_poll_timeout_seconds": 0.05,
            "consumer_error_backoff_seconds": 0.05,
            "consumer_close_timeout_seconds": 1.0,
            "intermittent_close_timeout_seconds": 1.0,
            "shutdown_grace_seconds": 2.0,
            "shutdown_cancel_timeout_seconds": 1.0,
        }
        values.update(overrides)
        return Settings(**values)

    return factory


@pytest.fixture
def test_settings(make_settings):
    return make_settings()


@pytest.fixture
def producer_factory():
    return StubProducerFactory()


@pytest.fixture
def make_pool(test_settings, producer_factory):
    def factory(cfg=None, **kwargs):
        kwargs.setdefault("stats", StatsAggregator())
        kwargs.setdefault("serializer", StubSerializer())
        return CodecProducerPool(
            cfg or test_settings, producer_factory=producer_factory, **kwargs
        )

    return factory


@pytest.fixture
def subscription_factory():
    return StubSubscriptionFactory()


@pytest.fixture
def failing_subscription_factory():
    def factory(fail_for, poll_result=0):
        return StubSubscriptionFactory(poll_result=poll_result, fail_for=fail_for)

    return factory


@pytest.fixture
def fake_clock():
    return FakeClock()
