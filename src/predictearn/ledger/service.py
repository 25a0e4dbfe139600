"""Points ledger: the single writer of user balances.

Every balance change appends a ``PointTransaction`` and applies the amount to
the user row in the same database transaction. Callers own the commit; nothing
here commits, so a failure later in the caller's unit of work rolls back both
the audit row and the balance change together.

Two partitions make up a balance:

- ``ledger``: incremental deltas (check-in, referral, feedback, prediction
  cost/win, admin grants, streak bonus), applied to ``users.points``.
- ``order``: a value recomputed from completed storefront orders, written to
  ``users.order_points``. Each change is audited as an ``order-sync`` row whose
  amount is the delta, so the ledger explains both partitions.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

import structlog
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from predictearn.db.models import PointTransaction, User
from predictearn.errors import InsufficientBalanceError, UserNotFound, ValidationError

logger = structlog.get_logger()

LEDGER_REASONS = frozenset({
    "check-in",
    "referral",
    "feedback",
    "prediction-cost",
    "prediction-win",
    "admin-grant",
    "streak-bonus",
})
ORDER_SYNC_REASON = "order-sync"


@dataclass(frozen=True)
class LedgerCheck:
    """Result of comparing stored balances against the audit trail."""

    user_id: int
    points: int
    ledger_sum: int
    order_points: int
    order_sum: int

    @property
    def drift(self) -> int:
        return (self.points - self.ledger_sum) + (self.order_points - self.order_sum)

    @property
    def consistent(self) -> bool:
        return self.points == self.ledger_sum and self.order_points == self.order_sum


async def record(
    db: AsyncSession,
    user_id: int,
    amount: int,
    reason: str,
    admin_id: int | None = None,
    notes: str | None = None,
    *,
    require_balance: bool = False,
) -> int:
    """Append a transaction and apply ``amount`` to the user's ledger partition.

    With ``require_balance`` a debit only applies if the spendable balance
    covers it; the check and the write are one conditional UPDATE.

    Returns the new transaction id.

    Raises:
        ValidationError: unknown reason.
        UserNotFound: no such user; nothing written.
        InsufficientBalanceError: ``require_balance`` and the balance is short; nothing written.
    """
    if reason not in LEDGER_REASONS:
        raise ValidationError(f"Unknown transaction reason '{reason}'")

    stmt = update(User).where(User.id == user_id).values(points=User.points + amount)
    if require_balance and amount < 0:
        stmt = stmt.where(User.points + User.order_points >= -amount)
    result = await db.execute(stmt.execution_options(synchronize_session=False))

    if not result.rowcount:
        exists = await db.scalar(select(User.id).where(User.id == user_id))
        if exists is None:
            raise UserNotFound
        raise InsufficientBalanceError

    entry = PointTransaction(
        user_id=user_id,
        admin_id=admin_id,
        amount=amount,
        reason=reason,
        partition="ledger",
        notes=notes,
    )
    db.add(entry)
    await db.flush()

    logger.info("ledger_recorded", user_id=user_id, amount=amount, reason=reason, transaction_id=entry.id)
    return entry.id


async def sync_order_partition(
    db: AsyncSession,
    user_id: int,
    order_points: int,
    total_order_value: Decimal,
    notes: str | None = None,
) -> int:
    """Overwrite the order partition with a recomputed value.

    Returns the delta applied (0 when nothing changed; no audit row then).
    """
    user = await db.get(User, user_id, populate_existing=True)
    if user is None:
        raise UserNotFound

    delta = order_points - user.order_points
    user.order_points = order_points
    user.total_order_value = total_order_value

    if delta:
        db.add(PointTransaction(
            user_id=user_id,
            amount=delta,
            reason=ORDER_SYNC_REASON,
            partition="order",
            notes=notes,
        ))
    await db.flush()

    if delta:
        logger.info("order_partition_synced", user_id=user_id, order_points=order_points, delta=delta)
    return delta


async def grant_points(
    db: AsyncSession,
    admin_id: int,
    user_id: int,
    amount: int,
    notes: str | None = None,
) -> int:
    """Admin grant (negative amounts deduct). Commits."""
    if amount == 0:
        raise ValidationError("Amount must be non-zero")
    transaction_id = await record(db, user_id, amount, "admin-grant", admin_id=admin_id, notes=notes)
    await db.commit()
    return transaction_id


async def get_balance(db: AsyncSession, user_id: int) -> User:
    user = await db.get(User, user_id, populate_existing=True)
    if user is None:
        raise UserNotFound
    return user


async def list_transactions(
    db: AsyncSession,
    user_id: int | None = None,
    limit: int = 100,
) -> list[PointTransaction]:
    """Newest first. ``user_id=None`` lists across all users."""
    stmt = select(PointTransaction).order_by(PointTransaction.created_at.desc(), PointTransaction.id.desc())
    if user_id is not None:
        stmt = stmt.where(PointTransaction.user_id == user_id)
    result = await db.execute(stmt.limit(limit))
    return list(result.scalars().all())


async def verify_balance(db: AsyncSession, user_id: int) -> LedgerCheck:
    """Compare ``points``/``order_points`` with the sums of the user's ledger rows."""
    user = await get_balance(db, user_id)

    sums = await db.execute(
        select(PointTransaction.partition, func.coalesce(func.sum(PointTransaction.amount), 0))
        .where(PointTransaction.user_id == user_id)
        .group_by(PointTransaction.partition)
    )
    by_partition = {partition: int(total) for partition, total in sums.all()}

    check = LedgerCheck(
        user_id=user_id,
        points=user.points,
        ledger_sum=by_partition.get("ledger", 0),
        order_points=user.order_points,
        order_sum=by_partition.get("order", 0),
    )
    if not check.consistent:
        logger.warning("ledger_drift_detected", user_id=user_id, drift=check.drift)
    return check
