from __future__ import annotations

import random
import threading
import time
from typing import Any, Callable, Iterable, Mapping, Optional

from confluent_kafka import KafkaError, KafkaException, Producer

from traffic_simulator.core.config import Settings, settings as default_settings
from traffic_simulator.core.logger import get_logger
from traffic_simulator.domain.models import Codec, MessageFormat
from traffic_simulator.services.stats import StatsAggregator

from .serializers import ValueSerializer, encode_headers, encode_key

logger = get_logger("kafka.producer_pool")


def producer_config(cfg: Settings, fmt: MessageFormat, codec: Codec) -> dict[str, Any]:
    return {
        "bootstrap.servers": cfg.kafka_bootstrap_servers,
        "client.id": f"{cfg.producer_client_id_prefix}-{fmt.value}-{codec.value}",
        "compression.type": codec.value,
        "acks": cfg.producer_acks,
        "retries": cfg.producer_retries,
        "linger.ms": cfg.producer_linger_ms,
        "message.max.bytes": cfg.producer_max_message_bytes,
    }


class ProducerHandle:
    """One broker client bound to a (format, codec) pair."""

    def __init__(self, fmt: MessageFormat, codec: Codec, producer: Producer):
        self.fmt = fmt
        self.codec = codec
        self.producer = producer
        self.closed = False

    @property
    def name(self) -> str:
        return f"{self.fmt.value}-{self.codec.value}"

    def __repr__(self) -> str:
        return f"ProducerHandle({self.name}, closed={self.closed})"


class CodecProducerPool:
    """Fixed inventory of producers, one per (format, codec) pair.

    ``send`` never raises for broker-side trouble: failures are logged, counted
    and the message is dropped. Only programming errors (unknown format,
    empty topic) raise ``ValueError``.
    """

    def __init__(
        self,
        cfg: Settings = default_settings,
        stats: Optional[StatsAggregator] = None,
        producer_factory: Callable[[dict], Producer] = Producer,
        serializer: Optional[ValueSerializer] = None,
        rng: Optional[random.Random] = None,
        formats: Iterable[MessageFormat] = tuple(MessageFormat),
        codecs: Iterable[Codec] = tuple(Codec),
    ):
        self._cfg = cfg
        self.stats = stats or StatsAggregator()
        self._serializer = serializer or ValueSerializer(cfg.schema_registry_url)
        self._rng = rng or random.Random()
        self._closed = False
        self._close_lock = threading.Lock()

        self._handles: dict[tuple[MessageFormat, Codec], ProducerHandle] = {}
        codecs = tuple(codecs)
        for fmt in formats:
            for codec in codecs:
                producer = producer_factory(producer_config(cfg, fmt, codec))
                self._handles[(fmt, codec)] = ProducerHandle(fmt, codec, producer)

        logger.info(
            "producer_pool_created",
            extra={"handles": sorted(h.name for h in self._handles.values())},
        )

    @property
    def closed(self) -> bool:
        return self._closed

    def handles(self, fmt: Optional[MessageFormat] = None) -> list[ProducerHandle]:
        return [h for (f, _), h in self._handles.items() if fmt is None or f == fmt]

    def formats(self) -> set[MessageFormat]:
        return {fmt for fmt, _ in self._handles}

    def _select(self, fmt: MessageFormat, codec: Optional[Codec]) -> ProducerHandle:
        if codec is not None:
            handle = self._handles.get((fmt, codec))
            if handle is None:
                raise ValueError(f"no producer for {fmt.value}/{codec.value}")
            return handle
        return self._rng.choice(self.handles(fmt))

    def _delivery_report(self, topic: str):
        def report(err, msg):
            if err:
                self.stats.record_delivery_failure(topic)
                logger.error(
                    "kafka_delivery_failed", extra={"topic": topic, "error": str(err)}
                )
            else:
                logger.debug(
                    "kafka_delivery_success",
                    extra={
                        "topic": msg.topic(),
                        "partition": msg.partition(),
                        "offset": msg.offset(),
                    },
                )

        return report

    def send(
        self,
        fmt: MessageFormat,
        topic: str,
        key: Optional[str],
        value: Any,
        headers: Optional[Mapping[str, str]] = None,
        codec: Optional[Codec] = None,
    ) -> bool:
        """Produce one message; returns whether it was handed to the client.

        Counted as emitted exactly once whatever the outcome.
        """
        if not isinstance(fmt, MessageFormat) or fmt not in self.formats():
            raise ValueError(f"unsupported message format: {fmt!r}")
        if not topic:
            raise ValueError("topic must be a non-empty string")
        handle = self._select(fmt, codec)

        try:
            self.stats.record_emitted(topic)
            if self._closed or handle.closed:
                logger.warning(
                    "producer_send_after_close",
                    extra={"topic": topic, "producer": handle.name},
                )
                self.stats.record_send_failure(topic)
                return False
            try:
                payload = self._serializer.encode(fmt, topic, value)
            except Exception as exc:  # noqa: BLE001
                logger.error(
                    "producer_serialization_failed",
                    extra={"topic": topic, "producer": handle.name, "error": str(exc)},
                )
                self.stats.record_send_failure(topic)
                return False
            return self._produce(handle, topic, encode_key(key), payload, headers)
        except Exception as exc:  # noqa: BLE001
            logger.exception(
                "producer_unexpected_error", extra={"topic": topic, "error": str(exc)}
            )
            self.stats.record_send_failure(topic)
            return False

    def _produce(
        self,
        handle: ProducerHandle,
        topic: str,
        key: Optional[bytes],
        payload: Optional[bytes],
        headers: Optional[Mapping[str, str]],
    ) -> bool:
        producer = handle.producer
        retries = max(1, self._cfg.producer_buffer_retries)
        wait = self._cfg.producer_buffer_retry_wait_seconds
        for attempt in range(retries):
            try:
                producer.produce(
                    topic=topic,
                    key=key,
                    value=payload,
                    headers=encode_headers(headers),
                    on_delivery=self._delivery_report(topic),
                )
                break
            except BufferError:
                producer.poll(wait)
                if attempt % 10 == 0:
                    logger.debug(
                        "producer_buffer_full",
                        extra={"topic": topic, "producer": handle.name, "attempt": attempt + 1},
                    )
            except KafkaException as e:
                err = e.args[0] if e.args else None
                logger.error(
                    "kafka_produce_error",
                    extra={
                        "topic": topic,
                        "producer": handle.name,
                        "error": str(e),
                        "error_code": err.code() if isinstance(err, KafkaError) else None,
                    },
                )
                self.stats.record_send_failure(topic)
                return False
        else:
            logger.warning(
                "producer_buffer_exhausted",
                extra={"topic": topic, "producer": handle.name, "attempts": retries},
            )
            self.stats.record_send_failure(topic)
            return False

        producer.poll(0)
        return True

    def poll(self, timeout: float = 0) -> None:
        """Serve pending delivery callbacks on every open handle."""
        for handle in self.handles():
            if not handle.closed:
                handle.producer.poll(timeout)

    def _flush_one(self, handle: ProducerHandle, timeout: float) -> int:
        remaining = handle.producer.flush(timeout)
        if remaining > 0:
            logger.warning(
                "producer_flush_remaining",
                extra={"producer": handle.name, "remaining_messages": remaining},
            )
        return remaining

    def _flush_handles(self, handles: Iterable[ProducerHandle], timeout: float) -> int:
        """Flush open handles within one shared ``timeout`` budget."""
        deadline = time.monotonic() + timeout
        total = 0
        for handle in handles:
            if handle.closed:
                continue
            total += self._flush_one(handle, max(0.0, deadline - time.monotonic()))
        return total

    def flush(self, fmt: MessageFormat, timeout: Optional[float] = None) -> int:
        if timeout is None:
            timeout = self._cfg.producer_flush_timeout_seconds
        return self._flush_handles(self.handles(fmt), timeout)

    def flush_all(self, timeout: Optional[float] = None) -> int:
        if timeout is None:
            timeout = self._cfg.producer_flush_timeout_seconds
        return self._flush_handles(self.handles(), timeout)

    def close(self, timeout: Optional[float] = None) -> None:
        """Flush, purge and retire every handle. Safe to call more than once.

        ``timeout`` bounds the whole close, not each handle: once it is spent
        the remaining handles get a zero-wait flush and are purged.
        """
        with self._close_lock:
            if self._closed:
                return
            self._closed = True
            self._close_handles(timeout)

    def _close_handles(self, timeout: Optional[float]) -> None:
        if timeout is None:
            timeout = self._cfg.producer_flush_timeout_seconds
        start = time.monotonic()
        deadline = start + timeout
        for handle in self.handles():
            try:
                if self._flush_one(handle, max(0.0, deadline - time.monotonic())) > 0:
                    handle.producer.purge()
            except Exception as exc:  # noqa: BLE001
                logger.error(
                    "producer_close_failed",
                    extra={"producer": handle.name, "error": str(exc)},
                )
            finally:
                handle.closed = True
        logger.info(
            "producer_pool_closed",
            extra={"duration_seconds": round(time.monotonic() - start, 3)},
        )
