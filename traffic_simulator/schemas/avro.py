"""Avro value schemas for schema-encoded topics.

Schemas are registered by the serializer on first use under the default
``<topic>-value`` subject.
"""

from __future__ import annotations

import json

from shared.constants import Topics


def _nullable(name: str, type_: str) -> dict:
    return {"name": name, "type": ["null", type_], "default": None}


def _record(name: str, namespace: str, fields: list[dict]) -> str:
    return json.dumps(
        {"type": "record", "name": name, "namespace": namespace, "fields": fields}
    )


ORDER = _record(
    "Order",
    "com.trafficsim.ecommerce",
    [
        {"name": "orderId", "type": "string"},
        {"name": "customerId", "type": "string"},
        _nullable("customerEmail", "string"),
        {"name": "totalAmount", "type": "double"},
        _nullable("taxAmount", "double"),
        _nullable("discountAmount", "double"),
        {"name": "currency", "type": "string", "default": "USD"},
        {"name": "status", "type": "string"},
        _nullable("paymentMethod", "string"),
        _nullable("notes", "string"),
        {"name": "createdAt", "type": "long"},
        _nullable("updatedAt", "long"),
    ],
)

PAGE_VIEW = _record(
    "PageView",
    "com.trafficsim.analytics",
    [
        {"name": "viewId", "type": "string"},
        {"name": "userId", "type": "string"},
        _nullable("sessionId", "string"),
        {"name": "pageUrl", "type": "string"},
        _nullable("pageTitle", "string"),
        _nullable("referrer", "string"),
        _nullable("userAgent", "string"),
        _nullable("ipAddress", "string"),
        _nullable("country", "string"),
        _nullable("region", "string"),
        _nullable("deviceType", "string"),
        _nullable("browser", "string"),
        {"name": "timestamp", "type": "long"},
        _nullable("durationMs", "long"),
    ],
)

CART_EVENT = _record(
    "CartEvent",
    "com.trafficsim.ecommerce",
    [
        {"name": "eventId", "type": "string"},
        {"name": "cartId", "type": "string"},
        {"name": "userId", "type": "string"},
        {"name": "eventType", "type": "string"},
        _nullable("productId", "string"),
        _nullable("quantity", "int"),
        {"name": "timestamp", "type": "long"},
    ],
)

TRANSACTION = _record(
    "Transaction",
    "com.trafficsim.payments",
    [
        {"name": "transactionId", "type": "string"},
        {"name": "orderId", "type": "string"},
        _nullable("customerId", "string"),
        {"name": "amount", "type": "double"},
        _nullable("fee", "double"),
        _nullable("netAmount", "double"),
        {"name": "currency", "type": "string", "default": "USD"},
        {"name": "paymentMethod", "type": "string"},
        _nullable("cardLast4", "string"),
        _nullable("cardBrand", "string"),
        {"name": "status", "type": "string"},
        _nullable("gatewayResponse", "string"),
        _nullable("riskScore", "double"),
        {"name": "timestamp", "type": "long"},
        _nullable("processedAt", "long"),
    ],
)

SENSOR_READING = _record(
    "SensorReading",
    "com.trafficsim.iot",
    [
        {"name": "readingId", "type": "string"},
        {"name": "deviceId", "type": "string"},
        _nullable("sensorId", "string"),
        {"name": "sensorType", "type": "string"},
        {"name": "value", "type": "double"},
        {"name": "unit", "type": "string"},
        _nullable("quality", "double"),
        {"name": "timestamp", "type": "long"},
        _nullable("receivedAt", "long"),
    ],
)

DEVICE_STATUS = _record(
    "DeviceStatus",
    "com.trafficsim.iot",
    [
        {"name": "deviceId", "type": "string"},
        {"name": "status", "type": "string"},
        _nullable("batteryLevel", "int"),
        _nullable("signalStrength", "int"),
        _nullable("firmwareVersion", "string"),
        {"name": "lastSeen", "type": "long"},
        _nullable("errorMessage", "string"),
    ],
)

EMAIL_NOTIFICATION = _record(
    "EmailNotification",
    "com.trafficsim.notifications",
    [
        {"name": "notificationId", "type": "string"},
        {"name": "recipientEmail", "type": "string"},
        _nullable("recipientName", "string"),
        {"name": "subject", "type": "string"},
        {"name": "templateId", "type": "string"},
        {"name": "priority", "type": "string"},
        _nullable("scheduledAt", "long"),
        {"name": "createdAt", "type": "long"},
    ],
)

MARKET_DATA = _record(
    "MarketData",
    "com.trafficsim.trading",
    [
        {"name": "symbol", "type": "string"},
        {"name": "exchange", "type": "string"},
        {"name": "price", "type": "double"},
        _nullable("bid", "double"),
        _nullable("ask", "double"),
        _nullable("bidSize", "long"),
        _nullable("askSize", "long"),
        {"name": "volume", "type": "long"},
        _nullable("vwap", "double"),
        _nullable("open", "double"),
        _nullable("high", "double"),
        _nullable("low", "double"),
        _nullable("previousClose", "double"),
        {"name": "timestamp", "type": "long"},
    ],
)

APPLICATION_METRIC = _record(
    "ApplicationMetric",
    "com.trafficsim.metrics",
    [
        {"name": "metricId", "type": "string"},
        {"name": "serviceName", "type": "string"},
        {"name": "instanceId", "type": "string"},
        {"name": "metricName", "type": "string"},
        {"name": "metricType", "type": "string"},
        {"name": "value", "type": "double"},
        {"name": "timestamp", "type": "long"},
    ],
)

AUDIT_EVENT = _record(
    "AuditEvent",
    "com.trafficsim.audit",
    [
        {"name": "eventId", "type": "string"},
        {"name": "eventType", "type": "string"},
        {"name": "entityType", "type": "string"},
        {"name": "entityId", "type": "string"},
        {"name": "action", "type": "string"},
        {"name": "actorId", "type": "string"},
        {"name": "actorType", "type": "string"},
        _nullable("previousState", "string"),
        _nullable("newState", "string"),
        {"name": "timestamp", "type": "long"},
    ],
)


VALUE_SCHEMAS: dict[str, str] = {
    Topics.ORDERS: ORDER,
    Topics.PAGE_VIEWS: PAGE_VIEW,
    Topics.CART_EVENTS: CART_EVENT,
    Topics.TRANSACTIONS: TRANSACTION,
    Topics.SENSOR_READINGS: SENSOR_READING,
    Topics.DEVICE_STATUS: DEVICE_STATUS,
    Topics.EMAIL_OUTBOUND: EMAIL_NOTIFICATION,
    Topics.MARKET_DATA: MARKET_DATA,
    Topics.APPLICATION_METRICS: APPLICATION_METRIC,
    Topics.AUDIT_SYSTEM_EVENTS: AUDIT_EVENT,
}


def schema_for(topic: str) -> str:
    try:
        return VALUE_SCHEMAS[topic]
    except KeyError:
        raise KeyError(f"no Avro schema registered for topic {topic!r}") from None
