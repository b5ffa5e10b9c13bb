"""
Maps Polar billing entities onto local records.

Used by both the webhook processor and the pull-based sync. Nothing here commits;
the caller owns the transaction so event bookkeeping and state changes land together.
"""
import logging
import uuid
from typing import Any, Dict, Optional

from sqlalchemy import func
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from app.models.product import Product
from app.models.subscription import Subscription, SubscriptionStatus
from app.models.user import User
from app.schemas.polar import PolarPayment, PolarSubscription
from app.services.subscription_states import can_transition
from app.utils.timestamps import to_naive_utc, utcnow

logger = logging.getLogger(__name__)

_DIALECT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def dialect_insert(db: Session):
    """INSERT construct supporting ON CONFLICT for the bound dialect, or None if unsupported"""
    return _DIALECT_INSERTS.get(db.get_bind().dialect.name)


def resolve_user(db: Session, polar_subscription: PolarSubscription) -> Optional[User]:
    """Find the local user by metadata.user_id (set by our checkout), else by customer email."""
    user_id = polar_subscription.metadata.get("user_id")
    if user_id:
        try:
            user = db.get(User, uuid.UUID(str(user_id)))
        except ValueError:
            logger.warning(f"[SYNC] Ignoring malformed metadata.user_id {user_id!r}")
            user = None
        if user:
            return user

    email = polar_subscription.resolved_customer_email()
    if not email:
        return None
    return db.query(User).filter(func.lower(User.email) == email.lower()).first()


def resolve_product(db: Session, polar_product_id: Optional[str]) -> Optional[Product]:
    if not polar_product_id:
        return None
    return db.query(Product).filter(Product.polar_product_id == polar_product_id).first()


def get_by_polar_id(db: Session, polar_subscription_id: str) -> Optional[Subscription]:
    return (
        db.query(Subscription)
        .populate_existing()
        .filter(Subscription.polar_subscription_id == polar_subscription_id)
        .first()
    )


def _subscription_columns(polar_subscription: PolarSubscription) -> Dict[str, Any]:
    """Provider-owned columns, keyed by table column name"""
    return {
        "status": polar_subscription.status,
        "current_period_start": to_naive_utc(polar_subscription.current_period_start),
        "current_period_end": to_naive_utc(polar_subscription.current_period_end),
        "trial_start": to_naive_utc(polar_subscription.trial_start),
        "trial_end": to_naive_utc(polar_subscription.trial_end),
        "cancel_at_period_end": polar_subscription.cancel_at_period_end,
        "canceled_at": to_naive_utc(polar_subscription.canceled_at),
        "metadata": dict(polar_subscription.metadata),
    }


def upsert_subscription(
    db: Session,
    user: User,
    product: Product,
    polar_subscription: PolarSubscription,
    overrides: Optional[Dict[str, Any]] = None,
) -> Subscription:
    """
    Insert or overwrite the subscription keyed by its Polar id.
    Uses INSERT ... ON CONFLICT on PostgreSQL and SQLite so concurrent deliveries
    of the same subscription never produce two rows.
    """
    columns = _subscription_columns(polar_subscription)
    if overrides:
        columns.update(overrides)

    existing = get_by_polar_id(db, polar_subscription.id)
    if existing is not None and not can_transition(existing.status, columns["status"]):
        logger.warning(
            f"[SYNC] Applying off-graph provider transition for {polar_subscription.id}: "
            f"{existing.status.value} -> {SubscriptionStatus(columns['status']).value}"
        )

    now = utcnow()
    update_columns = dict(columns, user_id=user.id, product_id=product.id, updated_at=now)

    insert = dialect_insert(db)
    if insert is not None:
        table = Subscription.__table__
        stmt = insert(table).values(
            id=uuid.uuid4(),
            polar_subscription_id=polar_subscription.id,
            created_at=now,
            **update_columns,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[table.c.polar_subscription_id],
            set_=update_columns,
        )
        db.execute(stmt)
        db.flush()
        return get_by_polar_id(db, polar_subscription.id)

    # Dialects without ON CONFLICT fall back to read-then-write
    if existing is None:
        existing = Subscription(polar_subscription_id=polar_subscription.id)
        db.add(existing)
    metadata = update_columns.pop("metadata")
    for key, value in update_columns.items():
        setattr(existing, key, value)
    existing.metadata_ = metadata
    db.flush()
    return existing


def handle_subscription_upsert(db: Session, polar_subscription: PolarSubscription) -> Optional[Subscription]:
    """subscription.created / subscription.updated"""
    user = resolve_user(db, polar_subscription)
    if user is None:
        logger.error(
            f"[WEBHOOK] No local user for subscription {polar_subscription.id} "
            f"(email={polar_subscription.resolved_customer_email()}), skipping"
        )
        return None

    product = resolve_product(db, polar_subscription.product_id)
    if product is None:
        logger.error(
            f"[WEBHOOK] No local product for Polar product {polar_subscription.product_id} "
            f"(subscription {polar_subscription.id}), skipping"
        )
        return None

    subscription = upsert_subscription(db, user, product, polar_subscription)
    logger.info(
        f"[WEBHOOK] Upserted subscription {polar_subscription.id} for user {user.id}: {subscription.status.value}"
    )
    return subscription


def handle_subscription_canceled(db: Session, polar_subscription: PolarSubscription) -> Optional[Subscription]:
    canceled_at = to_naive_utc(polar_subscription.canceled_at) or utcnow()
    subscription = get_by_polar_id(db, polar_subscription.id)

    if subscription is not None:
        if not can_transition(subscription.status, SubscriptionStatus.CANCELED):
            logger.warning(
                f"[WEBHOOK] Applying off-graph provider transition for {polar_subscription.id}: "
                f"{subscription.status.value} -> canceled"
            )
        subscription.status = SubscriptionStatus.CANCELED
        subscription.canceled_at = canceled_at
        subscription.cancel_at_period_end = False
        db.flush()
        logger.info(f"[WEBHOOK] Canceled subscription {polar_subscription.id}")
        return subscription

    # First we hear of it is the cancellation; record it like any other provider update
    user = resolve_user(db, polar_subscription)
    product = resolve_product(db, polar_subscription.product_id)
    if user is None or product is None:
        logger.error(
            f"[WEBHOOK] Cannot record canceled subscription {polar_subscription.id}: "
            f"user_found={user is not None}, product_found={product is not None}, skipping"
        )
        return None

    return upsert_subscription(
        db,
        user,
        product,
        polar_subscription,
        overrides={
            "status": SubscriptionStatus.CANCELED,
            "canceled_at": canceled_at,
            "cancel_at_period_end": False,
        },
    )


def _apply_payment_status(db: Session, payment: PolarPayment, target: SubscriptionStatus) -> Optional[Subscription]:
    if not payment.subscription_id:
        logger.info(f"[WEBHOOK] Payment {payment.id} has no subscription, nothing to update")
        return None

    subscription = get_by_polar_id(db, payment.subscription_id)
    if subscription is None:
        logger.error(f"[WEBHOOK] Payment {payment.id} references unknown subscription {payment.subscription_id}")
        return None

    if not can_transition(subscription.status, target):
        logger.warning(
            f"[WEBHOOK] Ignoring payment {payment.id}: {subscription.status.value} -> {target.value} "
            f"is not allowed for subscription {payment.subscription_id}"
        )
        return None

    subscription.status = target
    db.flush()
    logger.info(f"[WEBHOOK] Subscription {payment.subscription_id} is now {target.value} after payment {payment.id}")
    return subscription


def handle_payment_succeeded(db: Session, payment: PolarPayment) -> Optional[Subscription]:
    return _apply_payment_status(db, payment, SubscriptionStatus.ACTIVE)


def handle_payment_failed(db: Session, payment: PolarPayment) -> Optional[Subscription]:
    if payment.error_message:
        logger.warning(f"[WEBHOOK] Payment {payment.id} failed: {payment.error_message}")
    return _apply_payment_status(db, payment, SubscriptionStatus.PAST_DUE)
