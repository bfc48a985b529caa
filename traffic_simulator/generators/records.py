"""Synthetic record generators.

Each generator returns a ``GeneratedMessage``. Schema-encoded topics get a
``dict`` whose keys match the topic's Avro schema exactly; text topics get a
string (JSON, XML, CSV, HL7 or a fixed-width record). Reference-ID pools are
built once at import so keys repeat realistically across topics (orders and
transactions share customers, sensor readings and device status share
devices).
"""

from __future__ import annotations

import base64
import json
import random
import time
from datetime import datetime, timedelta, timezone
from xml.sax.saxutils import escape

from faker import Faker
from uuid6 import uuid7

from traffic_simulator.domain.models import GeneratedMessage

fake = Faker()
_rng = random.Random()

_POOL_SIZE = 1000

CUSTOMER_IDS = [f"CUST-{uuid7().hex[-8:]}" for _ in range(_POOL_SIZE)]
PRODUCT_IDS = [f"PROD-{uuid7().hex[-8:]}" for _ in range(_POOL_SIZE)]
DEVICE_IDS = [f"DEV-{fake.numerify('############')}" for _ in range(_POOL_SIZE)]

SYMBOLS = {
    "AAPL": 185.0,
    "GOOGL": 140.0,
    "MSFT": 375.0,
    "AMZN": 155.0,
    "META": 350.0,
    "TSLA": 245.0,
    "NVDA": 480.0,
    "JPM": 195.0,
    "V": 280.0,
    "JNJ": 155.0,
    "WMT": 165.0,
    "PG": 160.0,
    "UNH": 520.0,
    "HD": 350.0,
    "MA": 450.0,
}

SERVICES = [
    "order-service",
    "payment-service",
    "inventory-service",
    "user-service",
    "notification-service",
    "api-gateway",
]

_SENSOR_UNITS = {
    "TEMPERATURE": "celsius",
    "HUMIDITY": "percent",
    "PRESSURE": "hPa",
    "LIGHT": "lux",
    "MOTION": "boolean",
    "CO2": "ppm",
    "VOLTAGE": "volts",
}

_LOG_MESSAGES = [
    "Request processed successfully",
    "Cache miss for key",
    "Database connection pool exhausted",
    "Retrying upstream call",
    "User session expired",
    "Payment gateway timeout",
    "Inventory reservation released",
    "Rate limit exceeded for client",
]

_PAGES = ["/", "/products", "/cart", "/checkout", "/account", "/search", "/deals"]


def seed(value: int) -> None:
    """Make generator output reproducible (tests)."""
    _rng.seed(value)
    fake.seed_instance(value)


def _now_ms() -> int:
    return int(time.time() * 1000)


def _money(low: float, high: float) -> float:
    return round(_rng.uniform(low, high), 2)


def _short_id(prefix: str, length: int = 12) -> str:
    return f"{prefix}-{uuid7().hex[-length:]}"


def order() -> GeneratedMessage:
    order_id = _short_id("ORD")
    now = _now_ms()
    value = {
        "orderId": order_id,
        "customerId": _rng.choice(CUSTOMER_IDS),
        "customerEmail": fake.email(),
        "totalAmount": _money(10, 5000),
        "taxAmount": _money(1, 500),
        "discountAmount": _money(5, 100) if _rng.random() < 0.3 else None,
        "currency": "USD" if _rng.random() < 0.9 else _rng.choice(["EUR", "GBP", "CAD", "AUD"]),
        "status": _rng.choice(["PENDING", "CONFIRMED", "PROCESSING", "SHIPPED", "DELIVERED"]),
        "paymentMethod": _rng.choice(["CREDIT_CARD", "DEBIT_CARD", "PAYPAL", "APPLE_PAY", "GOOGLE_PAY"]),
        "notes": fake.sentence() if _rng.random() < 0.2 else None,
        "createdAt": now - _rng.randrange(86_400 * 30) * 1000,
        "updatedAt": now,
    }
    headers = {"event-type": "order.created", "correlation-id": str(uuid7())}
    return GeneratedMessage(value=value, key=order_id, headers=headers)


def page_view() -> GeneratedMessage:
    user_id = _rng.choice(CUSTOMER_IDS)
    value = {
        "viewId": str(uuid7()),
        "userId": user_id,
        "sessionId": _short_id("sess", 8),
        "pageUrl": _rng.choice(_PAGES),
        "pageTitle": fake.sentence(nb_words=3),
        "referrer": fake.url() if _rng.random() < 0.6 else None,
        "userAgent": fake.user_agent(),
        "ipAddress": fake.ipv4(),
        "country": fake.country_code(),
        "region": fake.state(),
        "deviceType": _rng.choice(["desktop", "mobile", "tablet"]),
        "browser": _rng.choice(["Chrome", "Firefox", "Safari", "Edge"]),
        "timestamp": _now_ms(),
        "durationMs": _rng.randrange(300_000),
    }
    return GeneratedMessage(value=value, key=user_id)


def cart_event() -> GeneratedMessage:
    user_id = _rng.choice(CUSTOMER_IDS)
    value = {
        "eventId": str(uuid7()),
        "cartId": _short_id("CART", 8),
        "userId": user_id,
        "eventType": _rng.choice(
            ["ITEM_ADDED", "ITEM_REMOVED", "ITEM_UPDATED", "CART_CLEARED", "CHECKOUT_STARTED"]
        ),
        "productId": _rng.choice(PRODUCT_IDS),
        "quantity": _rng.randint(1, 5),
        "timestamp": _now_ms(),
    }
    return GeneratedMessage(value=value, key=user_id)


def transaction() -> GeneratedMessage:
    txn_id = _short_id("TXN")
    amount = _money(10, 5000)
    fee = round(amount * 0.029 + 0.30, 2)
    now = _now_ms()
    value = {
        "transactionId": txn_id,
        "orderId": _short_id("ORD"),
        "customerId": _rng.choice(CUSTOMER_IDS),
        "amount": amount,
        "fee": fee,
        "netAmount": round(amount - fee, 2),
        "currency": "USD",
        "paymentMethod": _rng.choice(["CREDIT_CARD", "DEBIT_CARD", "ACH", "WIRE"]),
        "cardLast4": fake.numerify("####"),
        "cardBrand": _rng.choice(["VISA", "MASTERCARD", "AMEX", "DISCOVER"]),
        "status": _rng.choice(["PENDING", "AUTHORIZED", "CAPTURED", "DECLINED"]),
        "gatewayResponse": "APPROVED" if _rng.random() < 0.95 else "DECLINED",
        "riskScore": round(_rng.random() * 100, 2),
        "timestamp": now,
        "processedAt": now,
    }
    headers = {"event-type": "payment.processed", "idempotency-key": str(uuid7())}
    return GeneratedMessage(value=value, key=txn_id, headers=headers)


def _sensor_value(sensor_type: str) -> float:
    ranges = {
        "TEMPERATURE": (-10, 45),
        "HUMIDITY": (10, 95),
        "PRESSURE": (950, 1050),
        "LIGHT": (0, 10_000),
        "MOTION": (0, 1),
        "CO2": (350, 2000),
        "VOLTAGE": (200, 250),
    }
    low, high = ranges[sensor_type]
    if sensor_type == "MOTION":
        return float(_rng.randint(0, 1))
    return round(_rng.uniform(low, high), 2)


def sensor_reading() -> GeneratedMessage:
    device_id = _rng.choice(DEVICE_IDS)
    sensor_type = _rng.choice(list(_SENSOR_UNITS))
    now = _now_ms()
    value = {
        "readingId": str(uuid7()),
        "deviceId": device_id,
        "sensorId": f"SENSOR-{fake.numerify('######')}",
        "sensorType": sensor_type,
        "value": _sensor_value(sensor_type),
        "unit": _SENSOR_UNITS[sensor_type],
        "quality": round(0.9 + _rng.random() * 0.1, 2),
        "timestamp": now,
        "receivedAt": now + _rng.randrange(100),
    }
    headers = {"device-id": device_id, "sensor-type": sensor_type}
    return GeneratedMessage(value=value, key=device_id, headers=headers)


def device_status() -> GeneratedMessage:
    device_id = _rng.choice(DEVICE_IDS)
    status = _rng.choice(["ONLINE", "ONLINE", "ONLINE", "OFFLINE", "MAINTENANCE", "ERROR"])
    value = {
        "deviceId": device_id,
        "status": status,
        "batteryLevel": _rng.randint(0, 100),
        "signalStrength": -30 - _rng.randrange(70),
        "firmwareVersion": f"{_rng.randint(1, 5)}.{_rng.randint(0, 9)}.{_rng.randint(0, 20)}",
        "lastSeen": _now_ms(),
        "errorMessage": fake.sentence() if status == "ERROR" else None,
    }
    return GeneratedMessage(value=value, key=device_id)


def application_log() -> GeneratedMessage:
    """JSON log line; unkeyed like the log shippers that feed these topics."""
    line = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "level": _rng.choice(["DEBUG", "INFO", "INFO", "INFO", "WARN", "ERROR"]),
        "service": _rng.choice(SERVICES),
        "traceId": str(uuid7()),
        "spanId": uuid7().hex[:16],
        "message": _rng.choice(_LOG_MESSAGES),
        "host": f"{fake.domain_word()}-{_rng.randrange(10)}",
        "environment": _rng.choice(["production", "staging"]),
    }
    return GeneratedMessage(value=json.dumps(line))


def access_log() -> GeneratedMessage:
    method = _rng.choice(["GET", "GET", "GET", "POST", "PUT", "DELETE"])
    status = _rng.choice([200, 200, 200, 201, 204, 301, 400, 401, 403, 404, 500])
    referrer = f"https://example.com{_rng.choice(_PAGES)}" if _rng.random() < 0.7 else "-"
    line = (
        f'{fake.ipv4()} - - [{datetime.now(timezone.utc).isoformat()}] '
        f'"{method} /api/v1{_rng.choice(_PAGES)} HTTP/1.1" {status} '
        f'{_rng.randrange(50_000)} "{referrer}" "{fake.user_agent()}"'
    )
    return GeneratedMessage(value=line)


def email_notification() -> GeneratedMessage:
    notification_id = str(uuid7())
    template_id = _rng.choice(
        [
            "order_confirmation",
            "shipping_update",
            "password_reset",
            "welcome",
            "promotional",
            "abandoned_cart",
        ]
    )
    priority = _rng.choice(["LOW", "NORMAL", "HIGH"])
    now = _now_ms()
    value = {
        "notificationId": notification_id,
        "recipientEmail": fake.email(),
        "recipientName": fake.name(),
        "subject": fake.sentence(nb_words=5),
        "templateId": template_id,
        "priority": priority,
        "scheduledAt": now + 3_600_000 if _rng.random() < 0.2 else None,
        "createdAt": now,
    }
    headers = {"template-id": template_id, "priority": priority}
    return GeneratedMessage(value=value, key=notification_id, headers=headers)


def market_data() -> GeneratedMessage:
    symbol = _rng.choice(list(SYMBOLS))
    base = SYMBOLS[symbol]
    price = round(base + (_rng.random() - 0.5) * 0.02 * base, 2)
    value = {
        "symbol": symbol,
        "exchange": _rng.choice(["NYSE", "NASDAQ", "BATS"]),
        "price": price,
        "bid": round(price - 0.01, 2),
        "ask": round(price + 0.01, 2),
        "bidSize": _rng.randrange(1000) * 100,
        "askSize": _rng.randrange(1000) * 100,
        "volume": _rng.randrange(10_000_000),
        "vwap": round(price * (0.99 + _rng.random() * 0.02), 2),
        "open": base,
        "high": round(max(price, base) * 1.01, 2),
        "low": round(min(price, base) * 0.99, 2),
        "previousClose": base,
        "timestamp": _now_ms(),
    }
    return GeneratedMessage(value=value, key=symbol)


def application_metric() -> GeneratedMessage:
    metric_name = _rng.choice(
        [
            "request_count",
            "request_latency_ms",
            "error_count",
            "active_connections",
            "queue_depth",
            "memory_used_mb",
            "cpu_percent",
        ]
    )
    service = _rng.choice(SERVICES)
    instance_id = f"i-{fake.numerify('########')}"
    value = {
        "metricId": str(uuid7()),
        "serviceName": service,
        "instanceId": instance_id,
        "metricName": metric_name,
        "metricType": "COUNTER" if "count" in metric_name else "GAUGE",
        "value": round(_rng.uniform(0, 100 if metric_name == "cpu_percent" else 5000), 2),
        "timestamp": _now_ms(),
    }
    return GeneratedMessage(value=value, key=f"{service}-{instance_id}")


def high_frequency_telemetry() -> GeneratedMessage:
    key = f"device-hf-{_rng.randrange(100)}"
    value = {
        "deviceId": key,
        "temp": round(20 + _rng.random() * 10, 2),
        "humidity": round(40 + _rng.random() * 20, 2),
        "pressure": round(1000 + _rng.random() * 50, 2),
        "ts": _now_ms(),
    }
    return GeneratedMessage(value=json.dumps(value), key=key, headers={"frequency": "high"})


def audit_event() -> GeneratedMessage:
    event_id = str(uuid7())
    entity_type = _rng.choice(["Order", "User", "Product", "Payment", "Config"])
    action = _rng.choice(["CREATE", "READ", "UPDATE", "DELETE", "LOGIN", "EXPORT"])
    value = {
        "eventId": event_id,
        "eventType": _rng.choice(
            ["ORDER_CREATED", "USER_LOGIN", "PAYMENT_PROCESSED", "CONFIG_CHANGED", "DATA_EXPORTED"]
        ),
        "entityType": entity_type,
        "entityId": uuid7().hex[-12:],
        "action": action,
        "actorId": f"user-{fake.numerify('######')}",
        "actorType": _rng.choice(["USER", "SYSTEM", "API_CLIENT"]),
        "previousState": '{"status": "old"}' if _rng.random() < 0.5 else None,
        "newState": '{"status": "new"}',
        "timestamp": _now_ms(),
    }
    headers = {"entity-type": entity_type, "action": action}
    return GeneratedMessage(value=value, key=event_id, headers=headers)


# Schemaless JSON topics.

_JSON_HEADERS = {"content-type": "application/json", "source": "traffic-simulator"}


def search_query() -> GeneratedMessage:
    value = {
        "queryId": str(uuid7()),
        "userId": _rng.choice(CUSTOMER_IDS),
        "query": _rng.choice(
            ["laptop", "phone", "headphones", "camera", "watch", "tablet", "speaker", "keyboard"]
        ),
        "filters": {"category": _rng.choice(["Electronics", "Clothing", "Home", "Sports", "Books"])},
        "results": _rng.randrange(500),
        "timestamp": _now_ms(),
    }
    return GeneratedMessage(value=json.dumps(value))


def webhook() -> GeneratedMessage:
    value = {
        "webhookId": str(uuid7()),
        "source": _rng.choice(["stripe", "shopify", "sendgrid", "twilio", "github"]),
        "eventType": _rng.choice(
            ["payment.completed", "order.created", "email.delivered", "message.sent"]
        ),
        "payload": {"id": uuid7().hex[-8:]},
        "receivedAt": _now_ms(),
    }
    return GeneratedMessage(value=json.dumps(value), headers=dict(_JSON_HEADERS))


def custom_event() -> GeneratedMessage:
    value = {
        "eventId": str(uuid7()),
        "eventName": _rng.choice(
            ["button_click", "form_submit", "video_play", "scroll_depth", "feature_used"]
        ),
        "properties": {"element": f"button-{_rng.randrange(100)}", "value": _rng.randrange(1000)},
        "timestamp": _now_ms(),
    }
    return GeneratedMessage(value=json.dumps(value))


# Plain text.


def mainframe_record() -> GeneratedMessage:
    """Fixed-width record: 10/30/20 char text columns, then amount and date."""
    line = "{:<10}{:<30.30}{:<20.20}{:010d}{:015.2f}{:<8}\n".format(
        f"TXN{_rng.randrange(10_000_000):07d}",
        fake.name(),
        fake.city(),
        _rng.randrange(1_000_000_000),
        _rng.random() * 10_000,
        datetime.now(timezone.utc).strftime("%Y%m%d"),
    )
    return GeneratedMessage(value=line, key=str(uuid7()))


def hl7_message() -> GeneratedMessage:
    """HL7 v2.5 ADT^A01 admission message, one segment per line."""
    stamp = datetime.now(timezone.utc).strftime("%Y%m%d%H%M%S")
    birth = fake.date_of_birth(minimum_age=1, maximum_age=95).strftime("%Y%m%d")
    segments = [
        "MSH|^~\\&|SENDING_APP|SENDING_FACILITY|RECEIVING_APP|RECEIVING_FACILITY|"
        f"{stamp}||ADT^A01|MSG{uuid7().hex[-8:].upper()}|P|2.5",
        f"EVN|A01|{stamp}",
        f"PID|1||PAT{_rng.randrange(100_000_000):08d}^^^HOSPITAL||"
        f"{fake.last_name().upper()}^{fake.first_name().upper()}||{birth}|"
        f"{_rng.choice('MF')}|||{fake.street_address()}^^{fake.city()}^"
        f"{fake.state_abbr()}^{fake.zipcode()}",
        f"PV1|1|I|WARD^ROOM^BED|||||||ATT^{fake.last_name().upper()}^{fake.first_name().upper()}",
    ]
    return GeneratedMessage(value="\n".join(segments) + "\n", key=str(uuid7()))


# XML.

_XML_HEADERS = {"content-type": "application/xml"}


def erp_sync_xml() -> GeneratedMessage:
    """SOAP order sync request as sent by an ERP connector."""
    now = datetime.now(timezone.utc)
    body = f"""<?xml version="1.0" encoding="UTF-8"?>
<soap:Envelope xmlns:soap="http://schemas.xmlsoap.org/soap/envelope/">
  <soap:Header>
    <TransactionId>{uuid7()}</TransactionId>
    <Timestamp>{now.isoformat()}</Timestamp>
  </soap:Header>
  <soap:Body>
    <SyncOrderRequest xmlns="http://erp.example.com/orders">
      <Order>
        <OrderId>{_short_id("ORD")}</OrderId>
        <CustomerId>{_rng.choice(CUSTOMER_IDS)}</CustomerId>
        <OrderDate>{now.date().isoformat()}</OrderDate>
        <TotalAmount currency="USD">{_money(50, 2000):.2f}</TotalAmount>
        <Status>{_rng.choice(["NEW", "PROCESSING", "SHIPPED", "COMPLETED"])}</Status>
        <ShippingAddress>
          <Street>{escape(fake.street_address())}</Street>
          <City>{escape(fake.city())}</City>
          <State>{fake.state_abbr()}</State>
          <ZipCode>{fake.zipcode()}</ZipCode>
          <Country>US</Country>
        </ShippingAddress>
        <Items>
          <Item>
            <ProductId>{_rng.choice(PRODUCT_IDS)}</ProductId>
            <ProductName>{escape(fake.catch_phrase())}</ProductName>
            <Quantity>{_rng.randint(1, 5)}</Quantity>
            <UnitPrice>{_money(10, 500):.2f}</UnitPrice>
          </Item>
        </Items>
      </Order>
    </SyncOrderRequest>
  </soap:Body>
</soap:Envelope>
"""
    return GeneratedMessage(value=body, key=str(uuid7()), headers=dict(_XML_HEADERS))


def crm_xml() -> GeneratedMessage:
    now = datetime.now(timezone.utc)
    due = now + timedelta(days=_rng.randrange(30))
    body = f"""<?xml version="1.0" encoding="UTF-8"?>
<CRMEvent xmlns="http://crm.example.com/events">
  <EventId>{uuid7()}</EventId>
  <EventType>{_rng.choice(["LEAD_CREATED", "CONTACT_UPDATED", "OPPORTUNITY_WON", "TASK_COMPLETED"])}</EventType>
  <Timestamp>{now.isoformat()}</Timestamp>
  <Customer>
    <CustomerId>{_rng.choice(CUSTOMER_IDS)}</CustomerId>
    <Email>{fake.email()}</Email>
    <FirstName>{escape(fake.first_name())}</FirstName>
    <LastName>{escape(fake.last_name())}</LastName>
    <Phone>{escape(fake.phone_number())}</Phone>
    <Company>{escape(fake.company())}</Company>
    <LeadSource>{_rng.choice(["Website", "Referral", "Trade Show", "Cold Call", "Social Media"])}</LeadSource>
    <LeadScore>{_rng.randrange(100)}</LeadScore>
  </Customer>
  <Activity>
    <Type>{_rng.choice(["Call", "Email", "Meeting", "Demo"])}</Type>
    <Description>{escape(fake.sentence())}</Description>
    <AssignedTo>{escape(fake.name())}</AssignedTo>
    <DueDate>{due.date().isoformat()}</DueDate>
  </Activity>
</CRMEvent>
"""
    return GeneratedMessage(value=body, key=str(uuid7()), headers=dict(_XML_HEADERS))


# Large and binary payloads.

_DEPARTMENTS = ["Sales", "Engineering", "Finance", "Marketing", "Operations", "Support", "Legal"]


def large_json(size_kb: int) -> GeneratedMessage:
    """Bulk import batch of roughly ``size_kb`` KiB (about 500 bytes per record)."""
    count = size_kb * 1024 // 500
    batch = {
        "batchId": str(uuid7()),
        "timestamp": _now_ms(),
        "source": f"bulk-import-{fake.domain_word()}",
        "records": [
            {
                "id": str(uuid7()),
                "name": fake.name(),
                "email": fake.email(),
                "company": fake.company(),
                "department": _rng.choice(_DEPARTMENTS),
                "title": fake.job(),
                "phone": fake.phone_number(),
                "address": fake.address().replace("\n", ", "),
                "notes": fake.paragraph(),
            }
            for _ in range(count)
        ],
        "metadata": {"recordCount": count, "version": "1.0", "encoding": "UTF-8"},
    }
    value = json.dumps(batch)
    headers = {"content-type": "application/json", "size-kb": str(len(value) // 1024)}
    return GeneratedMessage(value=value, key=str(uuid7()), headers=headers)


def large_xml(size_kb: int) -> GeneratedMessage:
    """Data export document of roughly ``size_kb`` KiB (about 600 bytes per record)."""
    parts = [
        '<?xml version="1.0" encoding="UTF-8"?>',
        '<DataExport xmlns="http://example.com/export">',
        f"  <BatchId>{uuid7()}</BatchId>",
        f"  <Timestamp>{datetime.now(timezone.utc).isoformat()}</Timestamp>",
        "  <Records>",
    ]
    for _ in range(size_kb * 1024 // 600):
        parts.extend(
            [
                f'    <Record id="{uuid7()}">',
                f"      <Name>{escape(fake.name())}</Name>",
                f"      <Email>{fake.email()}</Email>",
                f"      <Company>{escape(fake.company())}</Company>",
                f"      <Address>{escape(fake.address())}</Address>",
                f"      <Description>{escape(fake.paragraph())}</Description>",
                "    </Record>",
            ]
        )
    parts.extend(["  </Records>", "</DataExport>"])
    value = "\n".join(parts)
    headers = {"content-type": "application/xml", "size-kb": str(len(value) // 1024)}
    return GeneratedMessage(value=value, key=str(uuid7()), headers=headers)


def binary_blob() -> GeneratedMessage:
    """1 to 50 KiB of random bytes, base64 encoded."""
    data = _rng.randbytes(1024 + _rng.randrange(50_000))
    return GeneratedMessage(
        value=base64.b64encode(data).decode("ascii"),
        key=str(uuid7()),
        headers={"content-type": "application/octet-stream"},
    )


def csv_batch(rows: int | None = None) -> GeneratedMessage:
    if rows is None:
        rows = 100 + _rng.randrange(400)
    now = datetime.now(timezone.utc)
    lines = ["id,name,email,company,amount,currency,status,created_at"]
    for _ in range(rows):
        created = now - timedelta(seconds=_rng.randrange(86_400 * 30))
        lines.append(
            ",".join(
                [
                    uuid7().hex[-8:],
                    fake.name().replace(",", ""),
                    fake.email(),
                    fake.company().replace(",", ""),
                    f"{_rng.random() * 10_000:.2f}",
                    "USD",
                    _rng.choice(["PENDING", "COMPLETED", "FAILED"]),
                    created.isoformat(),
                ]
            )
        )
    batch_id = str(uuid7())
    return GeneratedMessage(
        value="\n".join(lines) + "\n",
        key=batch_id,
        headers={"content-type": "text/csv", "batch-id": batch_id},
    )
