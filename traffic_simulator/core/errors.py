"""Error types and broker error classification."""

from __future__ import annotations

from confluent_kafka import KafkaError, KafkaException


class SimulatorError(Exception):
    """Base class for errors raised by the simulator itself."""


class InvalidScheduleError(SimulatorError, ValueError):
    """Emission task rejected at registration time."""


class SubscriptionSetupError(SimulatorError):
    """A consumer subscription could not be opened."""


# Errors that mean "the broker is unreachable" rather than "this poll failed".
_CONNECTIVITY_CODES = frozenset(
    {
        KafkaError._TRANSPORT,
        KafkaError._ALL_BROKERS_DOWN,
        KafkaError._RESOLVE,
        KafkaError.BROKER_NOT_AVAILABLE,
        KafkaError.NETWORK_EXCEPTION,
    }
)


def _kafka_error(exc: BaseException) -> KafkaError | None:
    if isinstance(exc, KafkaException) and exc.args:
        err = exc.args[0]
        if isinstance(err, KafkaError):
            return err
    return None


def is_connectivity_error(exc: BaseException) -> bool:
    if isinstance(exc, ConnectionError):
        return True
    err = _kafka_error(exc)
    return err is not None and err.code() in _CONNECTIVITY_CODES


def is_retriable_poll_error(exc: BaseException) -> bool:
    """Transient poll failure worth retrying on the same subscription."""
    err = _kafka_error(exc)
    if err is None or is_connectivity_error(exc):
        return False
    return bool(err.retriable()) and not err.fatal()
