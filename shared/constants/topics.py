class Topics:
    """Centralised topic names driven by the simulator"""

    # E-commerce
    ORDERS = "ecommerce.orders"
    PAGE_VIEWS = "ecommerce.page-views"
    CART_EVENTS = "ecommerce.cart-events"
    SEARCH_QUERIES = "ecommerce.search-queries"

    # Payments
    TRANSACTIONS = "payments.transactions"

    # IoT
    SENSOR_READINGS = "iot.sensor-readings"
    DEVICE_STATUS = "iot.device-status"
    HIGH_FREQUENCY_TELEMETRY = "iot.high-frequency-telemetry"
    RAW_TELEMETRY = "iot.raw-telemetry"

    # Logs
    APPLICATION_LOGS = "logs.application"
    INFRASTRUCTURE_LOGS = "logs.infrastructure"
    SECURITY_LOGS = "logs.security"
    ACCESS_LOGS = "logs.access"

    # Notifications / trading / metrics
    EMAIL_OUTBOUND = "notifications.email-outbound"
    MARKET_DATA = "trading.market-data"
    APPLICATION_METRICS = "metrics.application"
    INFRASTRUCTURE_METRICS = "metrics.infrastructure"
    BUSINESS_KPIS = "metrics.business-kpis"
    CUSTOM_EVENTS = "metrics.custom-events"

    # Audit
    AUDIT_SYSTEM_EVENTS = "audit.system-events"

    # Integration / healthcare (text and XML)
    ERP_SYNC = "integration.erp-sync"
    CRM_EVENTS = "integration.crm-events"
    WEBHOOK_INBOUND = "integration.webhook-inbound"
    LEGACY_MAINFRAME = "integration.legacy-mainframe"
    HL7_MESSAGES = "healthcare.hl7-messages"

    # Large payloads
    BULK_IMPORTS = "data.bulk-imports"
    EXPERIMENT_RESULTS = "ml.experiment-results"
    FHIR_RESOURCES = "healthcare.fhir-resources"
    XML_TRANSFORMS = "data.xml-transforms"
    BINARY_BLOBS = "data.binary-blobs"
    CSV_BATCHES = "data.csv-batches"

    # Consumed only (populated by other tooling)
    AUDIT_USER_ACTIONS = "audit.user-actions"
    AUDIT_DATA_ACCESS = "audit.data-access-log"
    CUSTOMER_PROFILES = "customers.profiles"
    PRODUCT_CATALOG = "ecommerce.product-catalog"
    STOCK_UPDATES = "inventory.stock-updates"

    @classmethod
    def continuous_topics(cls) -> list[str]:
        """Topics that receive jittered continuous traffic"""
        return [
            cls.ORDERS,
            cls.PAGE_VIEWS,
            cls.CART_EVENTS,
            cls.TRANSACTIONS,
            cls.SENSOR_READINGS,
            cls.DEVICE_STATUS,
            cls.APPLICATION_LOGS,
            cls.INFRASTRUCTURE_LOGS,
            cls.EMAIL_OUTBOUND,
            cls.MARKET_DATA,
            cls.APPLICATION_METRICS,
        ]

    @classmethod
    def all_produced_topics(cls) -> list[str]:
        return cls.continuous_topics() + [cls.HIGH_FREQUENCY_TELEMETRY]

    @classmethod
    def seed_only_topics(cls) -> list[str]:
        """Topics written once by the initial seeding and never scheduled"""
        return [
            cls.AUDIT_SYSTEM_EVENTS,
            cls.SEARCH_QUERIES,
            cls.WEBHOOK_INBOUND,
            cls.CUSTOM_EVENTS,
            cls.ACCESS_LOGS,
            cls.LEGACY_MAINFRAME,
            cls.HL7_MESSAGES,
            cls.ERP_SYNC,
            cls.CRM_EVENTS,
            cls.BULK_IMPORTS,
            cls.EXPERIMENT_RESULTS,
            cls.FHIR_RESOURCES,
            cls.XML_TRANSFORMS,
            cls.BINARY_BLOBS,
            cls.RAW_TELEMETRY,
            cls.CSV_BATCHES,
        ]
