from typing import Optional

from pydantic import BaseModel, Field, model_validator

from shared.config import BaseServiceConfig


class ConsumerGroupConfig(BaseModel):
    """One configured consumer group: ``consumers_count`` permanent workers."""

    name: str = Field(min_length=1)
    topics: list[str] = Field(min_length=1)
    consumers_count: int = Field(default=1, ge=1)


class Settings(BaseServiceConfig):
    # Producers
    producer_client_id_prefix: str = "traffic-sim"
    producer_acks: str = "all"
    producer_retries: int = 3
    producer_linger_ms: int = 20
    producer_max_message_bytes: int = 2_097_152  # 2MB for large payloads
    producer_buffer_retries: int = 20
    producer_buffer_retry_wait_seconds: float = 0.01
    producer_flush_timeout_seconds: float = 10.0

    # Reproducibility: seeds the engine RNG and the record generators
    random_seed: Optional[int] = None

    # Continuous production
    continuous_producer_enabled: bool = True
    min_interval_ms: int = Field(default=500, ge=0)
    max_interval_ms: int = Field(default=5000, ge=0)
    startup_spread_ms: int = Field(default=1000, ge=0)
    high_frequency_interval_ms: int = Field(default=100, gt=0)

    # Initial seeding
    seeding_enabled: bool = True
    initial_message_count: int = Field(default=50, ge=0)
    large_message_count: int = Field(default=10, ge=0)
    wait_for_topics: bool = True
    topic_wait_retries: int = 10

    # Consumers
    consumer_groups_enabled: bool = True
    builtin_consumers_enabled: bool = True
    consumer_groups: list[ConsumerGroupConfig] = [
        ConsumerGroupConfig(
            name="order-fulfillment",
            topics=["ecommerce.orders", "payments.transactions"],
            consumers_count=3,
        ),
        ConsumerGroupConfig(
            name="clickstream-analytics",
            topics=["ecommerce.page-views", "ecommerce.cart-events"],
            consumers_count=2,
        ),
        ConsumerGroupConfig(
            name="iot-telemetry-processor",
            topics=["iot.sensor-readings", "iot.high-frequency-telemetry"],
            consumers_count=4,
        ),
    ]
    consumer_poll_timeout_seconds: float = 1.0
    intermittent_poll_timeout_seconds: float = 0.5
    consumer_close_timeout_seconds: float = 5.0
    intermittent_close_timeout_seconds: float = 2.0
    intermittent_session_timeout_ms: int = 10_000
    consumer_error_backoff_seconds: float = 1.0
    consumer_commit_every: int = 100
    consumer_max_poll_records: int = 500

    # Shutdown
    shutdown_grace_seconds: float = 10.0
    shutdown_cancel_timeout_seconds: float = 5.0

    # Metrics / health
    metrics_port: int = 8001
    health_port: int = 8002

    otel_service_name: str = "traffic-simulator"

    @model_validator(mode="after")
    def _check_intervals(self) -> "Settings":
        if self.max_interval_ms < self.min_interval_ms:
            raise ValueError(
                f"max_interval_ms ({self.max_interval_ms}) must be >= "
                f"min_interval_ms ({self.min_interval_ms})"
            )
        return self


settings = Settings()
