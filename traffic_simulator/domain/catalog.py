"""Topic catalog and consumer roster."""

from __future__ import annotations

from functools import partial
from typing import Iterable

from shared.constants import Topics
from traffic_simulator.core.config import ConsumerGroupConfig
from traffic_simulator.generators import records

from .behaviors import ConsumerSpec, Intermittent, Permanent, Temporary
from .models import Codec, MessageFormat, TopicBinding

TEXT = MessageFormat.TEXT
SCHEMA = MessageFormat.SCHEMA


DEFAULT_CATALOG: tuple[TopicBinding, ...] = (
    TopicBinding(
        Topics.ORDERS, records.order, SCHEMA, Codec.SNAPPY,
        description="order lifecycle events",
    ),
    TopicBinding(
        Topics.PAGE_VIEWS, records.page_view, SCHEMA, Codec.LZ4,
        min_factor=0.5, max_factor=0.5,
    ),
    TopicBinding(
        Topics.CART_EVENTS, records.cart_event, SCHEMA, Codec.NONE,
        max_factor=2.0, seed_factor=0.5,
    ),
    TopicBinding(Topics.TRANSACTIONS, records.transaction, SCHEMA, Codec.SNAPPY),
    TopicBinding(
        Topics.SENSOR_READINGS, records.sensor_reading, SCHEMA, Codec.LZ4,
        min_factor=0.25, max_factor=0.5, seed_factor=2.0,
    ),
    TopicBinding(
        Topics.DEVICE_STATUS, records.device_status, SCHEMA, Codec.NONE,
        min_factor=2.0, max_factor=2.0, seed_factor=0.5,
    ),
    TopicBinding(
        Topics.APPLICATION_LOGS, records.application_log, TEXT, Codec.SNAPPY,
        min_factor=0.5, max_factor=0.5, seed_factor=2.0,
    ),
    TopicBinding(
        Topics.INFRASTRUCTURE_LOGS, records.application_log, TEXT, Codec.GZIP,
    ),
    TopicBinding(
        Topics.EMAIL_OUTBOUND, records.email_notification, SCHEMA, Codec.NONE,
        min_factor=2.0, max_factor=2.0, seed_factor=0.5,
    ),
    TopicBinding(
        Topics.MARKET_DATA, records.market_data, SCHEMA, Codec.LZ4,
        min_factor=0.5, max_factor=0.5,
    ),
    TopicBinding(
        Topics.APPLICATION_METRICS, records.application_metric, SCHEMA, Codec.SNAPPY,
    ),
    TopicBinding(
        Topics.HIGH_FREQUENCY_TELEMETRY, records.high_frequency_telemetry, TEXT,
        Codec.LZ4, seed_factor=0.0, high_frequency=True,
        description="fixed-rate device telemetry",
    ),
    # Seeded once, never scheduled.
    TopicBinding(
        Topics.ACCESS_LOGS, records.access_log, TEXT, seed_factor=2.0,
        continuous=False,
    ),
    TopicBinding(
        Topics.AUDIT_SYSTEM_EVENTS, records.audit_event, SCHEMA, seed_factor=0.5,
        continuous=False,
    ),
    TopicBinding(Topics.SEARCH_QUERIES, records.search_query, TEXT, continuous=False),
    TopicBinding(
        Topics.WEBHOOK_INBOUND, records.webhook, TEXT, seed_factor=0.5, continuous=False,
    ),
    TopicBinding(
        Topics.CUSTOM_EVENTS, records.custom_event, TEXT, seed_factor=0.5, continuous=False,
    ),
    TopicBinding(
        Topics.LEGACY_MAINFRAME, records.mainframe_record, TEXT, seed_factor=0.25,
        continuous=False, description="fixed-width records",
    ),
    TopicBinding(
        Topics.HL7_MESSAGES, records.hl7_message, TEXT, seed_factor=0.25, continuous=False,
    ),
    TopicBinding(
        Topics.ERP_SYNC, records.erp_sync_xml, TEXT, seed_factor=0.5, continuous=False,
        description="SOAP XML",
    ),
    TopicBinding(
        Topics.CRM_EVENTS, records.crm_xml, TEXT, seed_factor=0.5, continuous=False,
    ),
    TopicBinding(
        Topics.BULK_IMPORTS, partial(records.large_json, 150), TEXT,
        seed_codec=Codec.GZIP, large=True, continuous=False,
        description="~150KB JSON batches",
    ),
    TopicBinding(
        Topics.EXPERIMENT_RESULTS, partial(records.large_json, 200), TEXT,
        seed_codec=Codec.GZIP, large=True, continuous=False,
    ),
    TopicBinding(
        Topics.FHIR_RESOURCES, partial(records.large_json, 100), TEXT,
        seed_codec=Codec.GZIP, large=True, continuous=False,
    ),
    TopicBinding(
        Topics.XML_TRANSFORMS, partial(records.large_xml, 150), TEXT,
        seed_codec=Codec.GZIP, large=True, continuous=False,
    ),
    TopicBinding(
        Topics.BINARY_BLOBS, records.binary_blob, TEXT, seed_factor=0.5,
        seed_codec=Codec.LZ4, large=True, continuous=False,
        description="base64 encoded random bytes",
    ),
    TopicBinding(
        Topics.RAW_TELEMETRY, records.binary_blob, TEXT, seed_codec=Codec.LZ4,
        continuous=False,
    ),
    TopicBinding(
        Topics.CSV_BATCHES, records.csv_batch, TEXT, seed_codec=Codec.SNAPPY,
        large=True, continuous=False,
    ),
)


def continuous_bindings(
    catalog: Iterable[TopicBinding] = DEFAULT_CATALOG,
) -> list[TopicBinding]:
    return [b for b in catalog if b.continuous]


def seed_plan(
    initial_message_count: int,
    catalog: Iterable[TopicBinding] = DEFAULT_CATALOG,
    large_message_count: int = 0,
) -> list[tuple[TopicBinding, int]]:
    """Messages to send per topic before continuous production starts.

    Large-payload bindings scale ``large_message_count`` instead of
    ``initial_message_count``.
    """
    plan = []
    for binding in catalog:
        base = large_message_count if binding.large else initial_message_count
        count = int(base * binding.seed_factor)
        if count > 0:
            plan.append((binding, count))
    return plan


# Built-in consumer archetypes.

STANDALONE_PERMANENT: tuple[ConsumerSpec, ...] = (
    ConsumerSpec(
        "realtime-dashboard-001",
        "realtime-dashboard",
        (Topics.ORDERS, Topics.TRANSACTIONS, Topics.MARKET_DATA),
        Permanent(),
    ),
    ConsumerSpec(
        "log-shipper-elasticsearch-001",
        "log-shipper-elasticsearch",
        (Topics.APPLICATION_LOGS, Topics.INFRASTRUCTURE_LOGS, Topics.SECURITY_LOGS),
        Permanent(),
    ),
    ConsumerSpec(
        "prometheus-metrics-collector-001",
        "prometheus-metrics-collector",
        (Topics.APPLICATION_METRICS, Topics.INFRASTRUCTURE_METRICS, Topics.BUSINESS_KPIS),
        Permanent(),
    ),
    ConsumerSpec(
        "compliance-audit-archiver-001",
        "compliance-audit-archiver",
        (Topics.AUDIT_SYSTEM_EVENTS, Topics.AUDIT_USER_ACTIONS, Topics.AUDIT_DATA_ACCESS),
        Permanent(),
    ),
    ConsumerSpec(
        "data-lake-ingestion-001",
        "data-lake-ingestion",
        (Topics.ORDERS, Topics.PAGE_VIEWS, Topics.TRANSACTIONS, Topics.CUSTOMER_PROFILES),
        Permanent(),
    ),
    ConsumerSpec(
        "cdc-processor-001",
        "cdc-processor",
        (Topics.PRODUCT_CATALOG, Topics.CUSTOMER_PROFILES, Topics.STOCK_UPDATES),
        Permanent(),
    ),
)

TEMPORARY_JOBS: tuple[ConsumerSpec, ...] = (
    ConsumerSpec(
        "batch-etl-job-001",
        "batch-etl-processor",
        (Topics.ORDERS, Topics.TRANSACTIONS),
        Temporary(120),
    ),
    ConsumerSpec(
        "data-migration-consumer-001",
        "data-migration",
        (Topics.PAGE_VIEWS, Topics.APPLICATION_LOGS),
        Temporary(180),
    ),
    ConsumerSpec(
        "backfill-job-001",
        "historical-backfill",
        (Topics.SENSOR_READINGS, Topics.APPLICATION_METRICS),
        Temporary(90),
    ),
    ConsumerSpec(
        "one-time-analysis-001",
        "adhoc-analysis",
        (Topics.MARKET_DATA, Topics.ORDERS),
        Temporary(60),
    ),
    ConsumerSpec(
        "debug-consumer-001",
        "debug-session",
        (Topics.APPLICATION_LOGS, Topics.INFRASTRUCTURE_LOGS),
        Temporary(45),
    ),
)

INTERMITTENT_WORKERS: tuple[ConsumerSpec, ...] = (
    ConsumerSpec(
        "auto-scaler-001",
        "auto-scaling-group",
        (Topics.ORDERS, Topics.TRANSACTIONS),
        Intermittent(30, 120, 20, 60),
    ),
    ConsumerSpec(
        "spot-instance-consumer-001",
        "spot-processing",
        (Topics.SENSOR_READINGS, Topics.DEVICE_STATUS),
        Intermittent(45, 180, 30, 90),
    ),
    ConsumerSpec(
        "dev-test-consumer-001",
        "dev-testing",
        (Topics.APPLICATION_LOGS, Topics.CART_EVENTS),
        Intermittent(15, 60, 45, 120),
    ),
    ConsumerSpec(
        "periodic-reporter-001",
        "periodic-reports",
        (Topics.APPLICATION_METRICS, Topics.MARKET_DATA),
        Intermittent(60, 90, 120, 180),
    ),
    ConsumerSpec(
        "flaky-consumer-001",
        "unstable-service",
        (Topics.PAGE_VIEWS, Topics.EMAIL_OUTBOUND),
        Intermittent(10, 45, 15, 45),
    ),
)


def group_roster(groups: Iterable[ConsumerGroupConfig]) -> list[ConsumerSpec]:
    """Expand configured groups into ``<name>-consumer-<i>`` permanent workers, i from 0."""
    roster = []
    for group in groups:
        for i in range(group.consumers_count):
            roster.append(
                ConsumerSpec(
                    worker_id=f"{group.name}-consumer-{i}",
                    group_id=group.name,
                    topics=tuple(group.topics),
                    behavior=Permanent(),
                )
            )
    return roster


def build_roster(
    groups: Iterable[ConsumerGroupConfig], include_builtins: bool = True
) -> list[ConsumerSpec]:
    roster = group_roster(groups)
    if include_builtins:
        roster.extend(STANDALONE_PERMANENT)
        roster.extend(TEMPORARY_JOBS)
        roster.extend(INTERMITTENT_WORKERS)
    seen: set[str] = set()
    for spec in roster:
        if spec.worker_id in seen:
            raise ValueError(f"duplicate worker id {spec.worker_id!r}")
        seen.add(spec.worker_id)
    return roster

