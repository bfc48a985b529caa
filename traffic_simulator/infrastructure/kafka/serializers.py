from __future__ import annotations

import json
import threading
from typing import Any, Mapping, Optional

from confluent_kafka.schema_registry import SchemaRegistryClient
from confluent_kafka.schema_registry.avro import AvroSerializer
from confluent_kafka.serialization import MessageField, SerializationContext

from traffic_simulator.domain.models import MessageFormat
from traffic_simulator.schemas.avro import schema_for


def encode_text(value: Any) -> Optional[bytes]:
    if value is None or isinstance(value, bytes):
        return value
    if isinstance(value, str):
        return value.encode("utf-8")
    return json.dumps(value, separators=(",", ":")).encode("utf-8")


def encode_key(key: Optional[str]) -> Optional[bytes]:
    return None if key is None else key.encode("utf-8")


def encode_headers(headers: Optional[Mapping[str, str]]) -> Optional[list[tuple[str, bytes]]]:
    if not headers:
        return None
    return [(name, str(value).encode("utf-8")) for name, value in headers.items()]


class ValueSerializer:
    """Encodes message values for a producer handle's format.

    Avro serializers are built lazily per topic; the registry client is only
    created once a schema-encoded topic is first sent.
    """

    def __init__(
        self,
        schema_registry_url: str,
        registry_client: Optional[SchemaRegistryClient] = None,
    ) -> None:
        self._schema_registry_url = schema_registry_url
        self._registry = registry_client
        self._avro: dict[str, AvroSerializer] = {}
        self._lock = threading.Lock()

    def _registry_client(self) -> SchemaRegistryClient:
        if self._registry is None:
            self._registry = SchemaRegistryClient({"url": self._schema_registry_url})
        return self._registry

    def _avro_for(self, topic: str) -> AvroSerializer:
        with self._lock:
            serializer = self._avro.get(topic)
            if serializer is None:
                serializer = AvroSerializer(
                    self._registry_client(),
                    schema_for(topic),
                    conf={"auto.register.schemas": True},
                )
                self._avro[topic] = serializer
            return serializer

    def encode(self, fmt: MessageFormat, topic: str, value: Any) -> Optional[bytes]:
        if fmt is MessageFormat.TEXT:
            return encode_text(value)
        if value is None:
            return None
        return self._avro_for(topic)(value, SerializationContext(topic, MessageField.VALUE))
