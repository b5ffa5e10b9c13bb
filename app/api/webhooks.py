"""
Polar webhook handler.
Verifies the signature, stores the raw event once per event id, then dispatches it.
"""
import json
import logging

from fastapi import APIRouter, Request, Depends
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PayloadValidationError
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import AuthenticationError, ConfigurationError, ValidationError
from app.db.session import get_db
from app.models.webhook_event import WebhookEvent
from app.schemas.polar import parse_webhook_event
from app.services.polar_processor import process_stored_event
from app.services.polar_webhooks import extract_signature, verify_signature

logger = logging.getLogger(__name__)

router = APIRouter()

DUPLICATE_RESPONSE = {"received": True, "duplicate": True}


@router.post("/polar")
async def polar_webhook(request: Request, db: Session = Depends(get_db)):
    """
    Handle Polar webhook events.

    - Verifies the HMAC signature before looking at the body
    - Stores the raw event before dispatching it
    - Already processed event ids are acknowledged as duplicates
    - Stored but unprocessed event ids are dispatched again from the stored payload
    - Handler failures answer 500 so Polar redelivers
    """
    body = await request.body()

    signature = extract_signature(request.headers)
    if not signature:
        logger.warning("[WEBHOOK] Rejected delivery without signature")
        raise AuthenticationError("Missing webhook signature")

    if not settings.POLAR_WEBHOOK_SECRET:
        logger.error("[WEBHOOK] POLAR_WEBHOOK_SECRET is not configured")
        raise ConfigurationError()

    if not verify_signature(body, signature, settings.POLAR_WEBHOOK_SECRET):
        logger.warning("[WEBHOOK] Rejected delivery with invalid signature")
        raise AuthenticationError("Invalid webhook signature")

    try:
        payload = json.loads(body)
        event = parse_webhook_event(payload)
    except (ValueError, PayloadValidationError) as e:
        logger.warning(f"[WEBHOOK] Invalid payload: {str(e)}")
        raise ValidationError("Invalid webhook payload")

    stored = db.query(WebhookEvent).filter(WebhookEvent.event_id == event.id).first()

    if stored is not None and stored.processed:
        logger.info(f"[WEBHOOK] Event {event.id} already processed")
        return DUPLICATE_RESPONSE

    if stored is None:
        stored = WebhookEvent(
            event_id=event.id,
            event_type=event.type,
            payload=payload,
            processed=False,
        )
        db.add(stored)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            logger.info(f"[WEBHOOK] Event {event.id} is being stored by a concurrent delivery")
            return DUPLICATE_RESPONSE
        logger.info(f"[WEBHOOK] Stored event {event.id} ({event.type})")
        ok = process_stored_event(db, stored, event)
    else:
        # An earlier attempt failed; retry from what we stored the first time
        logger.info(f"[WEBHOOK] Retrying unprocessed event {event.id}")
        ok = process_stored_event(db, stored)

    if not ok:
        return JSONResponse(status_code=500, content={"error": "Internal server error"})
    return {"received": True}
