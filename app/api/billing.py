"""
Billing actions for the dashboard: checkout, cancel, reactivate, current subscription, sync.
Every action answers with an ActionResult envelope instead of an HTTP error.
"""
import logging
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.api.deps import get_current_user, get_polar_client
from app.core.config import settings
from app.core.errors import AppError, NotFoundError, PersistenceError, UpstreamError, ValidationError
from app.db.session import get_db
from app.models.product import Product
from app.models.subscription import Subscription, SubscriptionStatus
from app.models.user import User
from app.schemas.billing import ActionResult, CheckoutRequest, CheckoutResponse
from app.schemas.subscription import CurrentSubscription
from app.services.polar_client import PolarAPIError, PolarClient
from app.services.polar_sync import sync_user_subscription

logger = logging.getLogger(__name__)

router = APIRouter()


def _failed(error: AppError) -> ActionResult:
    return ActionResult(success=False, error=error.message)


def _commit(db: Session) -> None:
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"[BILLING] Commit failed: {str(e)}", exc_info=True)
        raise PersistenceError()


def _get_owned_subscription(db: Session, subscription_id: UUID, user: User) -> Subscription:
    subscription = db.query(Subscription).filter(
        Subscription.id == subscription_id,
        Subscription.user_id == user.id,
    ).first()
    if not subscription:
        raise NotFoundError("Subscription not found")
    if not subscription.polar_subscription_id:
        raise ValidationError("Subscription is not linked to a billing provider subscription")
    return subscription


@router.post("/checkout", response_model=ActionResult)
def create_checkout(
    checkout: CheckoutRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    polar_client: PolarClient = Depends(get_polar_client),
):
    """Create a Polar checkout session for a product and return its URL"""
    try:
        product = db.get(Product, checkout.product_id)
        if not product or not product.polar_product_id:
            raise NotFoundError("Product not found")

        try:
            session = polar_client.create_checkout_session(
                product_id=product.polar_product_id,
                price_id=checkout.price_id,
                customer_email=current_user.email,
                success_url=f"{settings.APP_URL.rstrip('/')}/dashboard/billing?success=true",
                metadata={"user_id": str(current_user.id)},
            )
        except PolarAPIError as e:
            logger.error(f"[BILLING] Checkout creation failed for user {current_user.id}: {str(e)}", exc_info=True)
            raise UpstreamError("Failed to create checkout")
    except AppError as e:
        return _failed(e)

    logger.info(f"[BILLING] Created checkout {session.id} for user {current_user.id}")
    return ActionResult(success=True, data=CheckoutResponse(url=session.url).model_dump())


@router.post("/subscriptions/{subscription_id}/cancel", response_model=ActionResult)
def cancel_subscription(
    subscription_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    polar_client: PolarClient = Depends(get_polar_client),
):
    """Cancel at the end of the current period"""
    try:
        subscription = _get_owned_subscription(db, subscription_id, current_user)
        try:
            polar_client.cancel_subscription(subscription.polar_subscription_id)
        except PolarAPIError as e:
            logger.error(f"[BILLING] Cancel failed for {subscription.polar_subscription_id}: {str(e)}", exc_info=True)
            raise UpstreamError("Failed to cancel subscription")

        subscription.cancel_at_period_end = True
        _commit(db)
    except AppError as e:
        return _failed(e)

    logger.info(f"[BILLING] Subscription {subscription_id} set to cancel at period end")
    return ActionResult(success=True)


@router.post("/subscriptions/{subscription_id}/reactivate", response_model=ActionResult)
def reactivate_subscription(
    subscription_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    polar_client: PolarClient = Depends(get_polar_client),
):
    """Undo a pending cancellation"""
    try:
        subscription = _get_owned_subscription(db, subscription_id, current_user)
        try:
            polar_client.update_subscription(
                subscription.polar_subscription_id,
                metadata={"cancel_at_period_end": "false"},
            )
        except PolarAPIError as e:
            logger.error(f"[BILLING] Reactivate failed for {subscription.polar_subscription_id}: {str(e)}", exc_info=True)
            raise UpstreamError("Failed to reactivate subscription")

        subscription.cancel_at_period_end = False
        _commit(db)
    except AppError as e:
        return _failed(e)

    logger.info(f"[BILLING] Subscription {subscription_id} reactivated")
    return ActionResult(success=True)


@router.get("/subscription", response_model=ActionResult)
def get_current_subscription(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Newest active or trialing subscription, or null"""
    subscription = (
        db.query(Subscription)
        .filter(
            Subscription.user_id == current_user.id,
            Subscription.status.in_([SubscriptionStatus.ACTIVE, SubscriptionStatus.TRIALING]),
        )
        .order_by(Subscription.created_at.desc())
        .first()
    )
    if subscription is None:
        return ActionResult(success=True, data=None)
    return ActionResult(
        success=True,
        data=CurrentSubscription.model_validate(subscription).model_dump(mode="json"),
    )


@router.post("/sync", response_model=ActionResult)
def sync_subscription(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    polar_client: PolarClient = Depends(get_polar_client),
):
    """Pull the caller's subscription state from Polar, for when a webhook is missed or late"""
    try:
        try:
            result = sync_user_subscription(db, current_user, polar_client)
        except PolarAPIError as e:
            db.rollback()
            logger.error(f"[SYNC] Sync failed for user {current_user.id}: {str(e)}", exc_info=True)
            raise UpstreamError("Failed to sync subscription")
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"[SYNC] Could not store synced state for user {current_user.id}: {str(e)}", exc_info=True)
            raise PersistenceError()
        _commit(db)
    except AppError as e:
        return _failed(e)

    return ActionResult(success=True, data=result.model_dump(mode="json"))
