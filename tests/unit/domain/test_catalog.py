from collections import Counter

import pytest

from shared.constants import Topics
from traffic_simulator.core.config import ConsumerGroupConfig
from traffic_simulator.domain.behaviors import (
    ConsumerSpec,
    Intermittent,
    Permanent,
    Temporary,
)
from traffic_simulator.domain.catalog import (
    DEFAULT_CATALOG,
    build_roster,
    continuous_bindings,
    group_roster,
    seed_plan,
)
from traffic_simulator.domain.models import Codec, MessageFormat


class TestBehaviors:
    def test_intermittent_validates_bounds(self):
        with pytest.raises(ValueError):
            Intermittent(10, 5, 1, 2)
        with pytest.raises(ValueError):
            Intermittent(1, 2, -1, 2)

    def test_expected_online_ratio(self):
        assert Intermittent(10, 45, 15, 45).expected_online_ratio == pytest.approx(55 / 115)

    def test_temporary_rejects_negative_duration(self):
        with pytest.raises(ValueError):
            Temporary(-1)

    def test_consumer_requires_topics(self):
        with pytest.raises(ValueError):
            ConsumerSpec("w", "g", (), Permanent())

    def test_variants_are_frozen(self):
        behavior = Temporary(5)
        with pytest.raises(AttributeError):
            behavior.duration_seconds = 10  # type: ignore[misc]


class TestTopicCatalog:
    def test_continuous_topics_match_constants(self):
        topics = {b.topic for b in continuous_bindings()}

        assert topics == set(Topics.all_produced_topics())

    def test_high_frequency_lane(self):
        (hf,) = [b for b in DEFAULT_CATALOG if b.high_frequency]

        assert hf.topic == Topics.HIGH_FREQUENCY_TELEMETRY
        assert hf.fmt is MessageFormat.TEXT
        assert hf.codec is Codec.LZ4

    def test_text_topics(self):
        text = {b.topic for b in continuous_bindings() if b.fmt is MessageFormat.TEXT}

        assert text == {
            Topics.APPLICATION_LOGS,
            Topics.INFRASTRUCTURE_LOGS,
            Topics.HIGH_FREQUENCY_TELEMETRY,
        }

    def test_interval_multipliers(self):
        by_topic = {b.topic: b for b in DEFAULT_CATALOG}

        assert by_topic[Topics.ORDERS].interval_bounds(500, 5000) == (500, 5000)
        assert by_topic[Topics.PAGE_VIEWS].interval_bounds(500, 5000) == (250, 2500)
        assert by_topic[Topics.SENSOR_READINGS].interval_bounds(500, 5000) == (125, 2500)
        assert by_topic[Topics.DEVICE_STATUS].interval_bounds(500, 5000) == (1000, 10000)

    def test_seed_plan_scales_and_skips_zero(self):
        plan = {b.topic: n for b, n in seed_plan(10)}

        assert plan[Topics.ORDERS] == 10
        assert plan[Topics.SENSOR_READINGS] == 20
        assert plan[Topics.CART_EVENTS] == 5
        assert plan[Topics.ACCESS_LOGS] == 20
        assert Topics.HIGH_FREQUENCY_TELEMETRY not in plan

    def test_seed_only_topics_match_constants(self):
        seeded_once = {b.topic for b in DEFAULT_CATALOG if not b.continuous}

        assert seeded_once == set(Topics.seed_only_topics())

    def test_large_payloads_follow_large_message_count(self):
        plan = {b.topic: n for b, n in seed_plan(10, large_message_count=4)}

        assert plan[Topics.BULK_IMPORTS] == 4
        assert plan[Topics.XML_TRANSFORMS] == 4
        assert plan[Topics.CSV_BATCHES] == 4
        assert plan[Topics.BINARY_BLOBS] == 2
        assert plan[Topics.RAW_TELEMETRY] == 10
        assert plan[Topics.AUDIT_SYSTEM_EVENTS] == 5
        assert plan[Topics.LEGACY_MAINFRAME] == 2
        assert plan[Topics.SEARCH_QUERIES] == 10

    def test_large_payloads_skipped_without_large_count(self):
        plan = {b.topic for b, _ in seed_plan(10)}

        assert Topics.BULK_IMPORTS not in plan
        assert Topics.CSV_BATCHES not in plan
        assert Topics.RAW_TELEMETRY in plan

    def test_seed_codecs(self):
        by_topic = {b.topic: b for b in DEFAULT_CATALOG}

        for topic in (
            Topics.BULK_IMPORTS,
            Topics.EXPERIMENT_RESULTS,
            Topics.FHIR_RESOURCES,
            Topics.XML_TRANSFORMS,
        ):
            assert by_topic[topic].seed_codec is Codec.GZIP
        assert by_topic[Topics.BINARY_BLOBS].seed_codec is Codec.LZ4
        assert by_topic[Topics.RAW_TELEMETRY].seed_codec is Codec.LZ4
        assert by_topic[Topics.CSV_BATCHES].seed_codec is Codec.SNAPPY
        assert by_topic[Topics.ORDERS].seed_codec is None
        assert by_topic[Topics.AUDIT_SYSTEM_EVENTS].fmt is MessageFormat.SCHEMA

    def test_every_generator_produces_a_message(self):
        for binding in DEFAULT_CATALOG:
            msg = binding.generator()
            assert msg.value is not None, binding.topic


class TestRoster:
    def test_group_roster_names(self):
        roster = group_roster(
            [ConsumerGroupConfig(name="orders", topics=["ecommerce.orders"], consumers_count=3)]
        )

        assert [s.worker_id for s in roster] == [
            "orders-consumer-0",
            "orders-consumer-1",
            "orders-consumer-2",
        ]
        assert all(s.group_id == "orders" for s in roster)
        assert all(isinstance(s.behavior, Permanent) for s in roster)

    def test_builtin_population(self):
        roster = build_roster([])
        kinds = Counter(s.behavior.kind for s in roster)

        assert kinds == {"permanent": 6, "temporary": 5, "intermittent": 5}

    def test_builtin_schedules(self):
        by_id = {s.worker_id: s for s in build_roster([])}

        assert by_id["batch-etl-job-001"].behavior == Temporary(120)
        assert by_id["debug-consumer-001"].behavior == Temporary(45)
        assert by_id["auto-scaler-001"].behavior == Intermittent(30, 120, 20, 60)
        assert by_id["flaky-consumer-001"].behavior == Intermittent(10, 45, 15, 45)
        assert by_id["auto-scaler-001"].group_id == "auto-scaling-group"

    def test_builtins_can_be_disabled(self):
        groups = [ConsumerGroupConfig(name="g", topics=["t"])]

        assert [s.worker_id for s in build_roster(groups, include_builtins=False)] == [
            "g-consumer-0"
        ]

    def test_duplicate_worker_ids_rejected(self):
        groups = [
            ConsumerGroupConfig(name="g", topics=["t"]),
            ConsumerGroupConfig(name="g", topics=["u"]),
        ]

        with pytest.raises(ValueError, match="duplicate"):
            build_roster(groups, include_builtins=False)
