from sqlalchemy import Column, String, DateTime, JSON, Boolean, Text, Uuid
import uuid
from app.db.session import Base
from app.utils.timestamps import utcnow


class WebhookEvent(Base):
    """Append-only log of inbound Polar webhook deliveries."""
    __tablename__ = "webhook_events"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    event_id = Column(String, nullable=False, unique=True, index=True)  # Idempotency key
    event_type = Column(String, nullable=False, index=True)  # subscription.created, payment.failed, etc.
    payload = Column(JSON, nullable=False)  # Full event payload from Polar
    processed = Column(Boolean, default=False, nullable=False, index=True)
    processed_at = Column(DateTime, nullable=True)
    error = Column(Text, nullable=True)  # Last handler failure, cleared on success
    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)
