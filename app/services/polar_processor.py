"""
Dispatches decoded Polar webhook events to their handlers.
Handlers update database records but do not commit.
"""
import logging
from typing import Optional, Tuple

from sqlalchemy.orm import Session

from app.models.webhook_event import WebhookEvent
from app.schemas.polar import (
    PaymentFailedEvent,
    PaymentSucceededEvent,
    PolarWebhookEvent,
    SubscriptionCanceledEvent,
    SubscriptionCreatedEvent,
    SubscriptionUpdatedEvent,
    UnrecognizedEvent,
    parse_webhook_event,
)
from app.services import subscription_reconciler as reconciler
from app.utils.timestamps import utcnow

logger = logging.getLogger(__name__)

_HANDLERS = {
    SubscriptionCreatedEvent: reconciler.handle_subscription_upsert,
    SubscriptionUpdatedEvent: reconciler.handle_subscription_upsert,
    SubscriptionCanceledEvent: reconciler.handle_subscription_canceled,
    PaymentSucceededEvent: reconciler.handle_payment_succeeded,
    PaymentFailedEvent: reconciler.handle_payment_failed,
}


def process_polar_event(db: Session, event: PolarWebhookEvent) -> None:
    """
    Process a Polar webhook event.

    Handles:
    - subscription.created / subscription.updated -> upsert local subscription
    - subscription.canceled -> mark canceled
    - payment.succeeded / payment.failed -> active / past_due when the state machine allows it
    Anything else is logged and acknowledged. Handler exceptions propagate so the
    receiver can record the failure.
    """
    logger.info(f"[WEBHOOK] Processing {event.type} ({event.id})")

    if isinstance(event, UnrecognizedEvent):
        logger.info(f"[WEBHOOK] Event type {event.type} not handled - skipping")
        return

    handler = _HANDLERS[type(event)]
    handler(db, event.data)


def process_stored_event(db: Session, webhook_event: WebhookEvent, event: Optional[PolarWebhookEvent] = None) -> bool:
    """
    Dispatch a stored webhook event and record the outcome on its row.

    Handler changes and the processed flag are committed together. On failure the
    handler changes are rolled back, the error is stored, the row stays unprocessed
    so a redelivery or the reprocess script can retry it, and False is returned.
    """
    try:
        if event is None:
            event = parse_webhook_event(webhook_event.payload)
        process_polar_event(db, event)
        webhook_event.processed = True
        webhook_event.processed_at = utcnow()
        webhook_event.error = None
        db.commit()
    except Exception as e:
        db.rollback()
        logger.error(f"[WEBHOOK] Failed to process event {webhook_event.event_id}: {str(e)}", exc_info=True)
        webhook_event.error = str(e) or e.__class__.__name__
        db.commit()
        return False

    logger.info(f"[WEBHOOK] Processed event {webhook_event.event_id} ({webhook_event.event_type})")
    return True


def reprocess_unprocessed_events(db: Session, limit: Optional[int] = None) -> Tuple[int, int]:
    """Retry stored events that never completed, oldest first. Returns (processed, failed)."""
    query = (
        db.query(WebhookEvent)
        .filter(WebhookEvent.processed.is_(False))
        .order_by(WebhookEvent.created_at.asc())
    )
    if limit:
        query = query.limit(limit)

    processed = failed = 0
    for webhook_event in query.all():
        if process_stored_event(db, webhook_event):
            processed += 1
        else:
            failed += 1
    return processed, failed
