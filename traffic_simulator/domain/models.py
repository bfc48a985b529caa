from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, NamedTuple, Optional


class MessageFormat(str, Enum):
    """Value encoding of a producer handle."""

    TEXT = "text"  # UTF-8 strings / JSON documents
    SCHEMA = "schema"  # Avro, registered with the schema registry


class Codec(str, Enum):
    """Batch compression applied by a producer handle."""

    LZ4 = "lz4"
    SNAPPY = "snappy"
    GZIP = "gzip"
    ZSTD = "zstd"
    NONE = "none"


class GeneratedMessage(NamedTuple):
    """Output of a record generator.

    ``value`` is a ``str``/``bytes`` payload for text topics or a ``dict``
    matching the topic's Avro schema for schema-encoded topics.
    """

    value: Any
    key: Optional[str] = None
    headers: Optional[Dict[str, str]] = None


RecordGenerator = Callable[[], GeneratedMessage]


@dataclass(frozen=True)
class TopicBinding:
    """Catalog entry binding a topic to its generator and producer policy.

    Interval multipliers scale the configured base ``[min, max]`` interval so
    busy topics (page views, sensor readings) fire more often than slow ones.
    ``seed_factor`` scales the initial message count, or the large message
    count when ``large`` is set. ``seed_codec`` pins the seeding handle;
    without it each seeded message picks a random codec.
    """

    topic: str
    generator: RecordGenerator
    fmt: MessageFormat
    codec: Optional[Codec] = None
    min_factor: float = 1.0
    max_factor: float = 1.0
    seed_factor: float = 1.0
    seed_codec: Optional[Codec] = None
    large: bool = False
    high_frequency: bool = False
    continuous: bool = True
    description: str = field(default="", compare=False)

    def interval_bounds(self, min_ms: int, max_ms: int) -> tuple[int, int]:
        return int(min_ms * self.min_factor), int(max_ms * self.max_factor)
