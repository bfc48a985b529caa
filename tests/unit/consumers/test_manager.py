import asyncio
import time

import pytest

from traffic_simulator.consumers.manager import ConsumerLifecycleManager
from traffic_simulator.domain.behaviors import (
    ConsumerSpec,
    Intermittent,
    Permanent,
    Temporary,
    WorkerState,
)

TOPICS = ("ecommerce.orders",)


def _roster():
    return [
        ConsumerSpec("perm-1", "grp-a", TOPICS, Permanent()),
        ConsumerSpec("perm-2", "grp-a", TOPICS, Permanent()),
        ConsumerSpec("perm-3", "grp-b", TOPICS, Permanent()),
        ConsumerSpec("job-1", "batch", TOPICS, Temporary(60)),
        ConsumerSpec("flap-1", "flaky", TOPICS, Intermittent(60, 60, 60, 60)),
    ]


class UninterruptibleSubscription:
    """Ignores ``wake``; poll always blocks for the full timeout."""

    def __init__(self):
        self.close_calls = 0

    def subscribe(self, topics):
        pass

    def poll(self, timeout):
        time.sleep(timeout)
        return 0

    def commit(self):
        pass

    def wake(self):
        pass

    def close(self):
        self.close_calls += 1


@pytest.mark.asyncio
async def test_concurrent_stop_all_closes_every_worker_once(test_settings, subscription_factory):
    manager = ConsumerLifecycleManager(_roster(), subscription_factory, cfg=test_settings)
    await manager.start_all()
    await asyncio.sleep(0.2)

    await asyncio.gather(manager.stop_all(), manager.stop_all())
    await manager.stop_all()

    assert set(manager.states().values()) == {WorkerState.CLOSED}
    assert len(subscription_factory.created) == 5
    assert all(s.close_calls == 1 for s in subscription_factory.created)


@pytest.mark.asyncio
async def test_setup_failure_is_isolated(test_settings, failing_subscription_factory):
    factory = failing_subscription_factory(fail_for={"perm-2"})
    manager = ConsumerLifecycleManager(_roster(), factory, cfg=test_settings)

    await manager.start_all()
    await asyncio.sleep(0.2)

    states = manager.states()
    assert states["perm-2"] == WorkerState.CLOSED
    assert states["perm-1"] == WorkerState.RUNNING
    assert states["job-1"] == WorkerState.RUNNING
    assert states["flap-1"] == WorkerState.ONLINE

    await manager.stop_all()
    assert set(manager.states().values()) == {WorkerState.CLOSED}


@pytest.mark.asyncio
async def test_stats_are_aggregated_per_worker(test_settings, failing_subscription_factory):
    factory = failing_subscription_factory(fail_for=(), poll_result=5)
    manager = ConsumerLifecycleManager(_roster()[:2], factory, cfg=test_settings)

    await manager.start_all()
    await asyncio.sleep(0.3)
    await manager.stop_all()

    stats = manager.stats()
    assert stats["perm-1"] > 0 and stats["perm-2"] > 0
    assert manager.stats_aggregator.consumed_by_worker() == stats


@pytest.mark.asyncio
async def test_stragglers_are_cancelled_after_grace(make_settings):
    cfg = make_settings(consumer_poll_timeout_seconds=1.0, shutdown_grace_seconds=0.1)
    subs = []

    def factory(spec, client_id, session_timeout_ms=None):
        sub = UninterruptibleSubscription()
        subs.append(sub)
        return sub

    manager = ConsumerLifecycleManager(_roster()[:1], factory, cfg=cfg)
    await manager.start_all()
    await asyncio.sleep(0.1)

    started = time.monotonic()
    await manager.stop_all()

    assert time.monotonic() - started < 0.1 + cfg.shutdown_cancel_timeout_seconds
    assert manager.worker("perm-1").state == WorkerState.CLOSED
    assert subs[0].close_calls == 1


@pytest.mark.asyncio
async def test_start_after_stop_is_ignored(test_settings, subscription_factory):
    manager = ConsumerLifecycleManager(_roster(), subscription_factory, cfg=test_settings)

    await manager.stop_all()
    await manager.start_all()

    assert subscription_factory.created == []
    assert set(manager.states().values()) == {WorkerState.CLOSED}


def test_unknown_worker_lookup(test_settings, subscription_factory):
    manager = ConsumerLifecycleManager(_roster(), subscription_factory, cfg=test_settings)

    with pytest.raises(KeyError):
        manager.worker("nope")
