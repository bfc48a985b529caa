from unittest.mock import MagicMock, patch

from traffic_simulator.domain.models import MessageFormat
from traffic_simulator.infrastructure.kafka.serializers import (
    ValueSerializer,
    encode_headers,
    encode_key,
    encode_text,
)


def test_encode_text():
    assert encode_text(None) is None
    assert encode_text(b"raw") == b"raw"
    assert encode_text("héllo") == "héllo".encode("utf-8")
    assert encode_text({"a": 1, "b": [1, 2]}) == b'{"a":1,"b":[1,2]}'


def test_encode_key_and_headers():
    assert encode_key(None) is None
    assert encode_key("k-1") == b"k-1"
    assert encode_headers(None) is None
    assert encode_headers({}) is None
    assert encode_headers({"frequency": "high"}) == [("frequency", b"high")]


def test_text_format_skips_registry():
    registry = MagicMock()
    serializer = ValueSerializer("http://registry:8081", registry_client=registry)

    assert serializer.encode(MessageFormat.TEXT, "logs.application", "line") == b"line"
    registry.assert_not_called()


@patch("traffic_simulator.infrastructure.kafka.serializers.AvroSerializer")
def test_schema_format_builds_one_avro_serializer_per_topic(avro_cls):
    avro_cls.return_value.return_value = b"\x00avro"
    serializer = ValueSerializer("http://registry:8081", registry_client=MagicMock())

    first = serializer.encode(MessageFormat.SCHEMA, "ecommerce.orders", {"orderId": "1"})
    serializer.encode(MessageFormat.SCHEMA, "ecommerce.orders", {"orderId": "2"})

    assert first == b"\x00avro"
    avro_cls.assert_called_once()
    assert avro_cls.call_args.kwargs["conf"] == {"auto.register.schemas": True}


def test_schema_format_passes_none_through():
    serializer = ValueSerializer("http://registry:8081", registry_client=MagicMock())

    assert serializer.encode(MessageFormat.SCHEMA, "ecommerce.orders", None) is None
