from shared.metrics import get_counter, get_gauge, get_histogram

_SERVICE = "traffic"

# Production
MESSAGES_EMITTED_TOTAL = get_counter(
    "messages_emitted_total",
    "Send calls accepted by the producer pool, including failed sends.",
    service=_SERVICE,
    labelnames=("topic",),
)
SEND_FAILURES_TOTAL = get_counter(
    "send_failures_total",
    "Messages lost to buffer exhaustion, serialization or broker errors.",
    service=_SERVICE,
    labelnames=("topic",),
)
DELIVERY_FAILURES_TOTAL = get_counter(
    "delivery_failures_total",
    "Asynchronous delivery reports carrying an error.",
    service=_SERVICE,
    labelnames=("topic",),
)

# Consumption
MESSAGES_CONSUMED_TOTAL = get_counter(
    "messages_consumed_total",
    "Records consumed by simulated consumer workers.",
    service=_SERVICE,
    labelnames=("group",),
)
POLL_BATCH_RECORDS = get_histogram(
    "poll_batch_records",
    "Records returned by non-empty consumer polls.",
    service=_SERVICE,
    labelnames=("group",),
    buckets=[1, 5, 10, 50, 100, 250, 500],
)
CONSUMER_WORKERS = get_gauge(
    "consumer_workers",
    "Simulated consumer workers per lifecycle state.",
    service=_SERVICE,
    labelnames=("state",),
)

# Scheduling
SCHEDULER_LIVE_TASKS = get_gauge(
    "scheduler_live_tasks",
    "Emission tasks currently running.",
    service=_SERVICE,
)
