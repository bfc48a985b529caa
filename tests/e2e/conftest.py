import os

import pytest
from confluent_kafka import KafkaException
from confluent_kafka.admin import AdminClient

KAFKA_BOOTSTRAP = os.getenv("E2E_KAFKA_BOOTSTRAP_SERVERS")


@pytest.fixture(scope="session")
def kafka_bootstrap() -> str:
    """Reachable broker address, or skip the e2e suite."""
    if not KAFKA_BOOTSTRAP:
        pytest.skip("E2E_KAFKA_BOOTSTRAP_SERVERS not set")
    admin = AdminClient({"bootstrap.servers": KAFKA_BOOTSTRAP})
    try:
        admin.list_topics(timeout=5)
    except KafkaException as e:  # pragma: no cover - infrastructure failure
        pytest.skip(f"Cannot reach Kafka at {KAFKA_BOOTSTRAP}: {e}")
    return KAFKA_BOOTSTRAP
