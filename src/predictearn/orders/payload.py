"""Tolerant parsing of WooCommerce order payloads.

Webhooks arrive with fields missing, null or of the wrong type. Everything
except the order id has a well-defined default; only a payload without a
usable id is rejected (``ExternalEventError``).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any

from predictearn.errors import ExternalEventError


@dataclass(frozen=True)
class OrderEvent:
    wordpress_order_id: int
    status: str = "pending"
    customer_email: str = ""
    customer_name: str = ""
    customer_phone: str = ""
    total: Decimal = Decimal("0")
    currency: str = ""
    payment_method: str = ""
    line_items: list[dict[str, Any]] = field(default_factory=list)
    date_created: datetime | None = None
    date_modified: datetime | None = None
    date_completed: datetime | None = None

    def as_row(self) -> dict[str, Any]:
        """Column values for ``ExternalOrder``."""
        return {
            "wordpress_order_id": self.wordpress_order_id,
            "status": self.status,
            "customer_email": self.customer_email,
            "customer_name": self.customer_name,
            "customer_phone": self.customer_phone,
            "total": self.total,
            "currency": self.currency,
            "payment_method": self.payment_method,
            "line_items": self.line_items,
            "date_created": self.date_created,
            "date_modified": self.date_modified,
            "date_completed": self.date_completed,
        }


def _text(value: Any, limit: int | None = None) -> str:
    if value is None:
        return ""
    text = str(value).strip()
    return text[:limit] if limit else text


def _order_id(value: Any) -> int:
    if isinstance(value, bool):
        raise ExternalEventError("Order id must be an integer")
    try:
        order_id = int(str(value).strip())
    except (TypeError, ValueError) as e:
        raise ExternalEventError("Order id missing or not an integer") from e
    if order_id <= 0:
        raise ExternalEventError("Order id must be positive")
    return order_id


def parse_total(value: Any) -> Decimal:
    """Order total as a non-negative two-place decimal; garbage becomes 0."""
    try:
        total = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return Decimal("0")
    if not total.is_finite() or total < 0:
        return Decimal("0")
    return total.quantize(Decimal("0.01"))


def parse_timestamp(value: Any) -> datetime | None:
    """ISO-8601 timestamp normalized to UTC. WooCommerce omits the offset; treat naive as UTC."""
    if not value or not isinstance(value, str):
        return None
    try:
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def parse_order(payload: Any) -> OrderEvent:
    """Build an ``OrderEvent`` from a raw webhook body.

    Raises:
        ExternalEventError: body is not an object or has no usable order id.
    """
    if not isinstance(payload, dict):
        raise ExternalEventError("Payload must be a JSON object")

    billing = payload.get("billing")
    if not isinstance(billing, dict):
        billing = {}
    line_items = payload.get("line_items")
    if not isinstance(line_items, list):
        line_items = []

    name = " ".join(p for p in (_text(billing.get("first_name")), _text(billing.get("last_name"))) if p)

    return OrderEvent(
        wordpress_order_id=_order_id(payload.get("id")),
        status=_text(payload.get("status"), 32).lower() or "pending",
        customer_email=_text(billing.get("email"), 320).lower(),
        customer_name=name[:256],
        customer_phone=_text(billing.get("phone"), 64),
        total=parse_total(payload.get("total")),
        currency=_text(payload.get("currency"), 8).upper(),
        payment_method=_text(payload.get("payment_method"), 64),
        line_items=[item for item in line_items if isinstance(item, dict)],
        date_created=parse_timestamp(payload.get("date_created")),
        date_modified=parse_timestamp(payload.get("date_modified")),
        date_completed=parse_timestamp(payload.get("date_completed")),
    )


def peek_order_id(payload: Any) -> int | None:
    """Best-effort order id for error bookkeeping on otherwise unusable payloads."""
    if not isinstance(payload, dict):
        return None
    try:
        return _order_id(payload.get("id"))
    except ExternalEventError:
        return None
