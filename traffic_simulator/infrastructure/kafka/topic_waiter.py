from typing import Callable, Iterable, Optional

from confluent_kafka import KafkaException
from confluent_kafka.admin import AdminClient

from shared.utils.retry import retry
from traffic_simulator.core.cancellation import StopToken
from traffic_simulator.core.logger import get_logger

logger = get_logger("topic_waiter")


class TopicsMissingError(Exception):
    def __init__(self, missing: set[str]):
        super().__init__(f"topics not available: {sorted(missing)}")
        self.missing = missing


def wait_for_topics(
    topics: Iterable[str],
    bootstrap_servers: str,
    max_retries: int = 10,
    initial_delay: float = 1.0,
    stop: Optional[StopToken] = None,
    admin_factory: Callable[[dict], AdminClient] = AdminClient,
    sleep: Optional[Callable[[float], None]] = None,
) -> set[str]:
    """Block until ``topics`` exist on the broker or retries run out.

    Returns the topics still missing. A missing topic is not fatal for the
    simulator (the broker may auto-create on first produce), so exhaustion is
    logged rather than raised.
    """
    topics = list(topics)
    admin_client = admin_factory({"bootstrap.servers": bootstrap_servers})
    missing = set(topics)

    def check() -> None:
        nonlocal missing
        metadata = admin_client.list_topics(timeout=10)
        missing = set(topics) - set(metadata.topics.keys())
        if missing:
            raise TopicsMissingError(missing)

    def on_retry(attempt: int, exc: BaseException, delay: float) -> None:
        logger.warning(
            "topics_missing",
            extra={
                "attempt": attempt,
                "max_retries": max_retries,
                "missing": sorted(missing),
                "error": str(exc),
                "retry_in_seconds": round(delay, 2),
            },
        )

    kwargs = {"sleep": sleep} if sleep is not None else {}
    try:
        retry(
            check,
            retries=max_retries,
            base_delay=initial_delay,
            max_delay=60.0,
            retry_on=(TopicsMissingError, KafkaException),
            on_retry=on_retry,
            should_abort=stop.is_set if stop is not None else None,
            **kwargs,
        )
    except (TopicsMissingError, KafkaException) as exc:
        logger.error(
            "topics_unavailable_final",
            extra={"required": topics, "missing": sorted(missing), "error": str(exc)},
        )
        return missing

    logger.info("topics_available", extra={"topics": topics})
    return set()
