"""Order reconciliation: storefront webhooks into the order partition.

Delivery is at-least-once and unordered. ``wordpress_order_id`` is the
idempotency key: a duplicate *created* event inserts nothing. The points a
customer earns from orders are never applied as deltas; after every event the
customer's completed orders are summed again and the order partition is
overwritten with the result, so replays and reorderings converge.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any

import structlog
from sqlalchemy import Select, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from predictearn.auth.password import placeholder_password_hash
from predictearn.config import get_settings
from predictearn.db.dialect import dialect_insert
from predictearn.db.models import ExternalOrder, User, utcnow
from predictearn.ledger import service as ledger
from predictearn.orders.payload import OrderEvent
from predictearn.system_settings.service import get_point_settings

logger = structlog.get_logger()


@dataclass(frozen=True)
class OrderAck:
    """What happened to one webhook event."""

    action: str
    order_id: int
    status: str | None = None
    previous_status: str | None = None

    def as_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"action": self.action, "order_id": self.order_id}
        if self.status is not None:
            data["status"] = self.status
        if self.previous_status is not None:
            data["previous_status"] = self.previous_status
        return data


def order_points_for(total: Decimal, point_price: int) -> int:
    """Whole points bought by ``total`` currency units."""
    if point_price <= 0 or total <= 0:
        return 0
    return int(total // point_price)


async def _get_order(db: AsyncSession, wordpress_order_id: int) -> ExternalOrder | None:
    result = await db.execute(
        select(ExternalOrder)
        .where(ExternalOrder.wordpress_order_id == wordpress_order_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def _auto_create_customer(db: AsyncSession, email: str, name: str) -> User:
    """Create a verified placeholder account for a storefront customer, or return the existing one."""
    settings = get_settings()
    await db.execute(
        dialect_insert(db, User)
        .values(
            name=name or email.split("@", 1)[0],
            email=email,
            password_hash=placeholder_password_hash(settings.auto_created_password),
            role="user",
            is_email_verified=True,
            is_auto_created=True,
            points=0,
            order_points=0,
            total_order_value=Decimal("0"),
            consecutive_check_ins=0,
            skip_count=0,
            total_successful_referrals=0,
        )
        .on_conflict_do_nothing(index_elements=["email"])
    )
    user = (await db.execute(select(User).where(User.email == email))).scalar_one()
    logger.info("order_customer_auto_created", user_id=user.id)
    return user


def customer_lock_query(email: str) -> Select[tuple[User]]:
    """Load the customer row with a write lock held until commit."""
    return (
        select(User)
        .where(func.lower(User.email) == email)
        .with_for_update()
        .execution_options(populate_existing=True)
    )


async def _lock_customer(db: AsyncSession, email: str) -> User | None:
    result = await db.execute(customer_lock_query(email))
    return result.scalar_one_or_none()


async def _completed_total(db: AsyncSession, email: str, completed_status: str) -> Decimal:
    total = await db.scalar(
        select(func.coalesce(func.sum(ExternalOrder.total), 0)).where(
            func.lower(ExternalOrder.customer_email) == email,
            ExternalOrder.status == completed_status,
        )
    )
    return Decimal(str(total or 0))


async def reconcile_customer(db: AsyncSession, email: str, name: str = "") -> int | None:
    """Recompute one customer's order partition from their completed orders.

    Creates the customer if they have completed orders but no account.
    Returns the user id, or None when there is nobody to credit. Does not commit.
    """
    if not email:
        return None
    email = email.lower()
    completed_status = get_settings().order_completed_status

    # The customer row lock serializes recomputes, so each one sums the orders
    # committed by the one before it.
    user = await _lock_customer(db, email)
    completed_total = await _completed_total(db, email, completed_status)
    if user is None:
        if completed_total <= 0:
            return None
        await _auto_create_customer(db, email, name)
        user = await _lock_customer(db, email)
        completed_total = await _completed_total(db, email, completed_status)

    point_settings = await get_point_settings(db)
    order_points = order_points_for(completed_total, point_settings.point_price)
    await ledger.sync_order_partition(
        db,
        user.id,
        order_points,
        completed_total,
        notes=f"Completed orders total {completed_total}",
    )
    logger.info("order_reconciled", user_id=user.id, order_points=order_points)
    return user.id


async def handle_created(db: AsyncSession, event: OrderEvent) -> OrderAck:
    """Persist a new order once; duplicates are acknowledged without effect. Commits."""
    inserted = await db.execute(
        dialect_insert(db, ExternalOrder)
        .values(**event.as_row(), is_processed=True, processed_at=utcnow())
        .on_conflict_do_nothing(index_elements=["wordpress_order_id"])
        .returning(ExternalOrder.id)
    )
    if inserted.scalar_one_or_none() is None:
        await db.rollback()
        existing = await _get_order(db, event.wordpress_order_id)
        logger.info("order_duplicate_ignored", order_id=event.wordpress_order_id)
        return OrderAck("duplicate", event.wordpress_order_id, status=existing.status if existing else None)

    await reconcile_customer(db, event.customer_email, event.customer_name)
    await db.commit()
    logger.info("order_created", order_id=event.wordpress_order_id, status=event.status)
    return OrderAck("created", event.wordpress_order_id, status=event.status)


async def handle_updated(db: AsyncSession, event: OrderEvent) -> OrderAck:
    """Overwrite a stored order and recompute the affected customers. Commits.

    An unknown order is handled as a creation. An event whose ``date_modified``
    is older than the stored one is stale and ignored, as is any update to a
    deleted order.
    """
    existing = await _get_order(db, event.wordpress_order_id)
    if existing is None:
        ack = await handle_created(db, event)
        if ack.action == "created":
            return OrderAck("created", ack.order_id, status=ack.status)
        existing = await _get_order(db, event.wordpress_order_id)
        if existing is None:
            return ack

    deleted_status = get_settings().order_deleted_status
    previous_status = existing.status
    previous_email = existing.customer_email
    if previous_status == deleted_status:
        # Deletion is final; a redelivered update must not revive the order.
        logger.info("order_update_after_delete_ignored", order_id=event.wordpress_order_id)
        return OrderAck("stale", event.wordpress_order_id, status=deleted_status)

    stmt = (
        update(ExternalOrder)
        .where(
            ExternalOrder.wordpress_order_id == event.wordpress_order_id,
            ExternalOrder.status != deleted_status,
        )
        .values(**event.as_row(), is_processed=True, processed_at=utcnow(), processing_error=None)
        .execution_options(synchronize_session=False)
    )
    if event.date_modified is not None:
        stmt = stmt.where(
            or_(ExternalOrder.date_modified.is_(None), ExternalOrder.date_modified <= event.date_modified)
        )
    result = await db.execute(stmt)
    if not result.rowcount:
        await db.rollback()
        logger.info("order_update_stale", order_id=event.wordpress_order_id)
        return OrderAck("stale", event.wordpress_order_id, status=previous_status)

    await reconcile_customer(db, event.customer_email, event.customer_name)
    if previous_email and previous_email.lower() != event.customer_email:
        await reconcile_customer(db, previous_email)
    await db.commit()

    logger.info(
        "order_updated",
        order_id=event.wordpress_order_id,
        status=event.status,
        previous_status=previous_status,
    )
    return OrderAck("updated", event.wordpress_order_id, status=event.status, previous_status=previous_status)


async def handle_deleted(db: AsyncSession, wordpress_order_id: int) -> OrderAck:
    """Soft delete: the row stays, marked with the discard status. Commits."""
    existing = await _get_order(db, wordpress_order_id)
    if existing is None:
        logger.info("order_delete_not_found", order_id=wordpress_order_id)
        return OrderAck("not_found", wordpress_order_id)

    deleted_status = get_settings().order_deleted_status
    previous_status = existing.status
    email = existing.customer_email

    await db.execute(
        update(ExternalOrder)
        .where(ExternalOrder.wordpress_order_id == wordpress_order_id)
        .values(status=deleted_status, is_processed=True, processed_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    await reconcile_customer(db, email)
    await db.commit()

    logger.info("order_deleted", order_id=wordpress_order_id, previous_status=previous_status)
    return OrderAck("deleted", wordpress_order_id, status=deleted_status, previous_status=previous_status)


async def record_processing_error(db: AsyncSession, wordpress_order_id: int, message: str) -> None:
    """Note a failure on the order row for operators. Commits; no-op when the row is absent."""
    await db.execute(
        update(ExternalOrder)
        .where(ExternalOrder.wordpress_order_id == wordpress_order_id)
        .values(processing_error=message[:2000], is_processed=False)
        .execution_options(synchronize_session=False)
    )
    await db.commit()


async def webhook_status(db: AsyncSession, recent: int = 10) -> dict[str, Any]:
    total = await db.scalar(select(func.count()).select_from(ExternalOrder)) or 0
    processed = await db.scalar(
        select(func.count()).select_from(ExternalOrder).where(ExternalOrder.is_processed.is_(True))
    ) or 0
    errored = await db.scalar(
        select(func.count()).select_from(ExternalOrder).where(ExternalOrder.processing_error.is_not(None))
    ) or 0
    result = await db.execute(
        select(ExternalOrder).order_by(ExternalOrder.created_at.desc(), ExternalOrder.id.desc()).limit(recent)
    )
    return {
        "stats": {
            "total_orders": total,
            "processed_orders": processed,
            "error_orders": errored,
            "pending_orders": total - processed,
        },
        "recent_orders": list(result.scalars().all()),
    }
