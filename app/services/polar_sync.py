"""
Pull-based reconciliation of a user's subscription from Polar.
Used when a webhook was missed or delayed, e.g. right after checkout.
"""
import logging
from typing import Optional, Tuple

from sqlalchemy.orm import Session

from app.models.product import Product, ProductInterval
from app.models.subscription import SubscriptionStatus
from app.models.user import User
from app.schemas.billing import SyncResult
from app.schemas.polar import PolarPrice, PolarProduct
from app.services.polar_client import PolarClient
from app.services.subscription_reconciler import dialect_insert, resolve_product, upsert_subscription
from app.utils.timestamps import utcnow

logger = logging.getLogger(__name__)

SYNCABLE_STATUSES = (SubscriptionStatus.ACTIVE, SubscriptionStatus.TRIALING)


def _first_recurring_price(polar_product: PolarProduct, polar_client: PolarClient) -> Optional[PolarPrice]:
    prices = polar_product.prices or polar_client.get_prices_for_product(polar_product.id)
    for price in prices:
        if price.type == "recurring":
            return price
    return None


def _product_columns(polar_product: PolarProduct, price: Optional[PolarPrice]) -> dict:
    interval = ProductInterval.MONTH
    if price is not None and price.recurring_interval:
        interval = ProductInterval(price.recurring_interval)
    return {
        "polar_product_id": polar_product.id,
        "name": polar_product.name,
        "description": polar_product.description,
        "price_amount": price.price_amount if price is not None else 0,
        "interval": interval,
        "features": [
            {"name": benefit.description, "included": True}
            for benefit in polar_product.benefits
        ],
        "is_active": not polar_product.is_archived,
        "metadata": dict(polar_product.metadata),
    }


def ensure_product(db: Session, polar_client: PolarClient, polar_product_id: str) -> Tuple[Product, bool]:
    """
    Return the local product for a Polar product id, creating it from Polar if needed.
    The second element tells whether this call created the row.
    """
    product = resolve_product(db, polar_product_id)
    if product is not None:
        return product, False

    polar_product = polar_client.get_product(polar_product_id)
    price = _first_recurring_price(polar_product, polar_client)
    if price is None:
        logger.warning(f"[SYNC] Polar product {polar_product_id} has no recurring price, storing price 0")
    columns = _product_columns(polar_product, price)

    insert = dialect_insert(db)
    if insert is not None:
        now = utcnow()
        # A concurrent sync may create the same product; keep whichever row landed first
        stmt = insert(Product.__table__).values(created_at=now, updated_at=now, **columns)
        stmt = stmt.on_conflict_do_nothing(index_elements=[Product.__table__.c.polar_product_id])
        result = db.execute(stmt)
        db.flush()
        created = result.rowcount == 1
        product = resolve_product(db, polar_product_id)
    else:
        metadata = columns.pop("metadata")
        product = Product(**columns)
        product.metadata_ = metadata
        db.add(product)
        db.flush()
        created = True

    if created:
        logger.info(f"[SYNC] Created product {product.name} from Polar product {polar_product_id}")
    return product, created


def sync_user_subscription(db: Session, user: User, polar_client: PolarClient) -> SyncResult:
    """
    Fetch the user's subscriptions from Polar and reconcile the first active or trialing one.
    With none, local rows are left untouched. Does not commit.
    """
    polar_subscriptions = polar_client.get_customer_subscriptions(user.email)
    logger.info(f"[SYNC] Polar returned {len(polar_subscriptions)} subscription(s) for user {user.id}")

    polar_subscription = next(
        (s for s in polar_subscriptions if s.status in SYNCABLE_STATUSES),
        None,
    )
    if polar_subscription is None:
        return SyncResult(synced=False, message="No active subscription found")

    if not polar_subscription.product_id:
        logger.error(f"[SYNC] Polar subscription {polar_subscription.id} has no product id")
        return SyncResult(
            synced=False,
            polar_subscription_id=polar_subscription.id,
            message="Subscription has no product",
        )

    product, product_created = ensure_product(db, polar_client, polar_subscription.product_id)
    subscription = upsert_subscription(db, user, product, polar_subscription)
    logger.info(f"[SYNC] Synced subscription {polar_subscription.id} for user {user.id}: {subscription.status.value}")

    return SyncResult(
        synced=True,
        subscription_id=subscription.id,
        polar_subscription_id=polar_subscription.id,
        status=subscription.status.value,
        product_created=product_created,
        message="Subscription synced",
    )
