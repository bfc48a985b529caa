import asyncio
import random
import time

import pytest

from traffic_simulator.core.errors import InvalidScheduleError
from traffic_simulator.domain.models import (
    Codec,
    GeneratedMessage,
    MessageFormat,
    TopicBinding,
)
from traffic_simulator.scheduler.traffic_scheduler import EmissionTask, TrafficScheduler


def _text(value="v"):
    return lambda: GeneratedMessage(value=value)


def _stamping(stamps):
    def generate():
        stamps.append(time.monotonic())
        return GeneratedMessage(value="v", key="k")

    return generate


class TestEmissionTask:
    def test_from_binding_scales_interval(self):
        binding = TopicBinding(
            "t", _text(), MessageFormat.TEXT, Codec.LZ4, min_factor=0.5, max_factor=2.0
        )

        task = EmissionTask.from_binding(binding, 500, 5000, 100)

        assert (task.min_interval_ms, task.max_interval_ms) == (250, 10000)
        assert task.codec is Codec.LZ4
        assert not task.high_frequency

    def test_from_binding_high_frequency(self):
        binding = TopicBinding("hf", _text(), MessageFormat.TEXT, high_frequency=True)

        task = EmissionTask.from_binding(binding, 500, 5000, 100)

        assert task.high_frequency
        assert task.period_ms == 100

    def test_period_and_jitter(self):
        task = EmissionTask("t", _text(), MessageFormat.TEXT, 100, 200)

        assert task.period_ms == 150
        assert task.jitter_bound_ms == 50
        assert EmissionTask("t", _text(), MessageFormat.TEXT, 100, 100).jitter_bound_ms == 1

    @pytest.mark.parametrize(
        "task",
        [
            EmissionTask("", _text(), MessageFormat.TEXT, 1, 2),
            EmissionTask("t", _text(), "avro", 1, 2),
            EmissionTask("t", "not callable", MessageFormat.TEXT, 1, 2),
            EmissionTask("t", _text(), MessageFormat.TEXT, 300, 100),
            EmissionTask("t", _text(), MessageFormat.TEXT, -1, 100),
            EmissionTask("t", _text(), MessageFormat.TEXT, 1.5, 100),
            EmissionTask("t", _text(), MessageFormat.TEXT, high_frequency=True, fixed_interval_ms=0),
        ],
    )
    def test_invalid_tasks_rejected(self, make_pool, task):
        scheduler = TrafficScheduler(make_pool(), startup_spread_ms=0)

        with pytest.raises(InvalidScheduleError):
            scheduler.register(task)


class TestRegistration:
    def test_duplicate_topic_rejected(self, make_pool):
        scheduler = TrafficScheduler(make_pool(), startup_spread_ms=0)
        scheduler.register(EmissionTask("t", _text(), MessageFormat.TEXT, 1, 2))

        with pytest.raises(InvalidScheduleError):
            scheduler.register(EmissionTask("t", _text(), MessageFormat.TEXT, 1, 2))

    @pytest.mark.asyncio
    async def test_register_after_start_rejected(self, make_pool):
        scheduler = TrafficScheduler(make_pool(), startup_spread_ms=0)
        await scheduler.start()

        with pytest.raises(InvalidScheduleError):
            scheduler.register(EmissionTask("t", _text(), MessageFormat.TEXT, 1, 2))

        await scheduler.stop()


class TestScheduling:
    @pytest.mark.asyncio
    async def test_emission_rate_within_interval_bounds(self, make_pool):
        pool = make_pool()
        scheduler = TrafficScheduler(pool, rng=random.Random(7), startup_spread_ms=0)
        scheduler.register(EmissionTask("t", _text(), MessageFormat.TEXT, 100, 200))

        await scheduler.start()
        await asyncio.sleep(2.0)
        await scheduler.stop()

        assert 10 <= pool.stats.emitted_by_topic()["t"] <= 20

    @pytest.mark.asyncio
    async def test_gaps_stay_near_jitter_window(self, make_pool):
        stamps = []
        scheduler = TrafficScheduler(make_pool(), rng=random.Random(3), startup_spread_ms=0)
        scheduler.register(EmissionTask("t", _stamping(stamps), MessageFormat.TEXT, 100, 200))

        await scheduler.start()
        await asyncio.sleep(1.6)
        await scheduler.stop()

        gaps = [b - a for a, b in zip(stamps, stamps[1:])]
        assert len(gaps) >= 6
        assert all(0.1 - 0.03 <= g <= 0.2 + 0.05 for g in gaps), gaps

    @pytest.mark.asyncio
    async def test_high_frequency_lane_fires_immediately_at_fixed_rate(self, make_pool):
        stamps = []
        scheduler = TrafficScheduler(make_pool(), startup_spread_ms=0)
        scheduler.register(
            EmissionTask(
                "hf",
                _stamping(stamps),
                MessageFormat.TEXT,
                high_frequency=True,
                fixed_interval_ms=50,
            )
        )

        started = time.monotonic()
        await scheduler.start()
        await asyncio.sleep(1.0)
        await scheduler.stop()

        assert stamps[0] - started < 0.05
        assert 15 <= len(stamps) <= 22

    @pytest.mark.asyncio
    async def test_generator_failure_does_not_stop_task(self, make_pool):
        calls = {"n": 0}

        def flaky():
            calls["n"] += 1
            if calls["n"] % 2:
                raise RuntimeError("generator broke")
            return GeneratedMessage(value="ok")

        pool = make_pool()
        scheduler = TrafficScheduler(pool, startup_spread_ms=0)
        scheduler.register(
            EmissionTask("t", flaky, MessageFormat.TEXT, high_frequency=True, fixed_interval_ms=20)
        )

        await scheduler.start()
        await asyncio.sleep(0.3)
        await scheduler.stop()

        assert calls["n"] >= 4
        assert pool.stats.emitted_total == scheduler.firings()["t"]
        assert scheduler.firings()["t"] == calls["n"] // 2

    @pytest.mark.asyncio
    async def test_messages_routed_through_binding_codec(self, make_pool, producer_factory):
        scheduler = TrafficScheduler(make_pool(), startup_spread_ms=0)
        scheduler.register(
            EmissionTask("t", _text(), MessageFormat.TEXT, 10, 20, codec=Codec.GZIP)
        )

        await scheduler.start()
        await asyncio.sleep(0.1)
        await scheduler.stop()

        used = {p.config["client.id"] for p in producer_factory.producers if p.produced}
        assert used == {"traffic-sim-text-gzip"}


class TestStop:
    @pytest.mark.asyncio
    async def test_stop_leaves_no_live_tasks(self, make_pool):
        scheduler = TrafficScheduler(make_pool(), startup_spread_ms=50)
        for i in range(10):
            scheduler.register(EmissionTask(f"t{i}", _text(), MessageFormat.TEXT, 100, 200))

        await scheduler.start()
        assert scheduler.live_tasks() == 10
        await asyncio.sleep(0.2)

        started = time.monotonic()
        live = await scheduler.stop(grace=2.0)

        assert live == 0
        assert scheduler.live_tasks() == 0
        assert time.monotonic() - started < 2.0

    @pytest.mark.asyncio
    async def test_stop_waits_for_in_flight_send(self, make_pool):
        finished = []

        def slow():
            time.sleep(0.2)
            finished.append(True)
            return GeneratedMessage(value="v")

        pool = make_pool()
        scheduler = TrafficScheduler(pool, startup_spread_ms=0)
        scheduler.register(
            EmissionTask("t", slow, MessageFormat.TEXT, high_frequency=True, fixed_interval_ms=1000)
        )

        await scheduler.start()
        await asyncio.sleep(0.05)
        live = await scheduler.stop(grace=2.0)

        assert live == 0
        assert finished == [True]
        assert pool.stats.emitted_total == 1

    @pytest.mark.asyncio
    async def test_stop_before_start(self, make_pool):
        scheduler = TrafficScheduler(make_pool())

        assert await scheduler.stop() == 0
