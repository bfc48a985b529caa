"""Consumer behaviour variants.

A worker's behaviour is one of three frozen dataclasses; ``ConsumerWorker.run``
dispatches on the variant type. Durations are in seconds.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Union


class WorkerState(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    DRAINING = "draining"
    ONLINE = "online"
    OFFLINE = "offline"
    CLOSED = "closed"


@dataclass(frozen=True)
class Permanent:
    """Always subscribed until stopped."""

    kind = "permanent"


@dataclass(frozen=True)
class Temporary:
    """Bounded one-shot job; never restarts once its deadline passes."""

    duration_seconds: float

    kind = "temporary"

    def __post_init__(self) -> None:
        if self.duration_seconds < 0:
            raise ValueError("duration_seconds must be >= 0")


@dataclass(frozen=True)
class Intermittent:
    """Flapping consumer alternating between online and offline dwell times."""

    on_min: float
    on_max: float
    off_min: float
    off_max: float

    kind = "intermittent"

    def __post_init__(self) -> None:
        if not 0 <= self.on_min <= self.on_max:
            raise ValueError(f"invalid online dwell [{self.on_min}, {self.on_max}]")
        if not 0 <= self.off_min <= self.off_max:
            raise ValueError(f"invalid offline dwell [{self.off_min}, {self.off_max}]")

    @property
    def expected_online_ratio(self) -> float:
        on = self.on_min + self.on_max
        total = on + self.off_min + self.off_max
        return on / total if total else 0.0


Behavior = Union[Permanent, Temporary, Intermittent]


@dataclass(frozen=True)
class ConsumerSpec:
    worker_id: str
    group_id: str
    topics: tuple[str, ...]
    behavior: Behavior

    def __post_init__(self) -> None:
        if not self.topics:
            raise ValueError(f"consumer {self.worker_id} has no topics")
