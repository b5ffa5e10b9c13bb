"""
Polar API entities and webhook events.

Webhook payloads are decoded once, at the receiver, into one of the known event
variants below. Any other event type becomes an UnrecognizedEvent so that new
provider event types are acknowledged instead of rejected.
"""
from pydantic import BaseModel, Field
from typing import Any, Dict, List, Literal, Optional, Union
from datetime import datetime

from app.models.subscription import SubscriptionStatus


class PolarCustomer(BaseModel):
    id: str
    email: str
    name: Optional[str] = None
    avatar_url: Optional[str] = None


class PolarPrice(BaseModel):
    id: str
    type: Literal["recurring", "one_time"] = "recurring"
    recurring_interval: Optional[Literal["month", "year"]] = None
    price_amount: int = Field(default=0, ge=0)  # Amount in cents
    price_currency: str = "usd"
    is_archived: bool = False


class PolarBenefit(BaseModel):
    id: str
    description: str
    type: str


class PolarProduct(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    is_archived: bool = False
    is_highlighted: bool = False
    prices: List[PolarPrice] = []
    benefits: List[PolarBenefit] = []
    metadata: Dict[str, Any] = {}


class PolarCheckoutSession(BaseModel):
    id: str
    url: str
    customer_email: Optional[str] = None
    customer_name: Optional[str] = None
    product_id: Optional[str] = None
    price_id: Optional[str] = None
    success_url: Optional[str] = None
    cancel_url: Optional[str] = None
    amount: Optional[int] = None
    currency: Optional[str] = None
    status: Literal["open", "expired", "completed", "confirmed", "succeeded", "failed"] = "open"
    metadata: Dict[str, Any] = {}


class PolarSubscription(BaseModel):
    id: str
    status: SubscriptionStatus
    customer_id: Optional[str] = None
    customer_email: Optional[str] = None
    customer: Optional[PolarCustomer] = None
    product_id: Optional[str] = None
    price_id: Optional[str] = None
    current_period_start: Optional[datetime] = None
    current_period_end: Optional[datetime] = None
    cancel_at_period_end: bool = False
    canceled_at: Optional[datetime] = None
    ended_at: Optional[datetime] = None
    trial_start: Optional[datetime] = None
    trial_end: Optional[datetime] = None
    metadata: Dict[str, Any] = {}

    def resolved_customer_email(self) -> Optional[str]:
        """Email from the flat field, falling back to the nested customer object."""
        if self.customer_email:
            return self.customer_email
        if self.customer is not None:
            return self.customer.email
        return None


class PolarOrder(BaseModel):
    id: str
    customer_id: Optional[str] = None
    product_id: Optional[str] = None
    price_id: Optional[str] = None
    subscription_id: Optional[str] = None
    amount: int = 0
    currency: str = "usd"
    status: str
    created_at: Optional[datetime] = None
    metadata: Dict[str, Any] = {}


class PolarPayment(BaseModel):
    id: str
    amount: int = 0
    currency: str = "usd"
    customer_id: Optional[str] = None
    subscription_id: Optional[str] = None
    error_message: Optional[str] = None


# Webhook events

class WebhookEventBase(BaseModel):
    id: str = Field(min_length=1)
    type: str = Field(min_length=1)
    created_at: Optional[datetime] = None


class SubscriptionCreatedEvent(WebhookEventBase):
    type: Literal["subscription.created"]
    data: PolarSubscription


class SubscriptionUpdatedEvent(WebhookEventBase):
    type: Literal["subscription.updated"]
    data: PolarSubscription


class SubscriptionCanceledEvent(WebhookEventBase):
    type: Literal["subscription.canceled"]
    data: PolarSubscription


class PaymentSucceededEvent(WebhookEventBase):
    type: Literal["payment.succeeded"]
    data: PolarPayment


class PaymentFailedEvent(WebhookEventBase):
    type: Literal["payment.failed"]
    data: PolarPayment


class UnrecognizedEvent(WebhookEventBase):
    data: Any = None


PolarWebhookEvent = Union[
    SubscriptionCreatedEvent,
    SubscriptionUpdatedEvent,
    SubscriptionCanceledEvent,
    PaymentSucceededEvent,
    PaymentFailedEvent,
    UnrecognizedEvent,
]

EVENT_MODELS = {
    "subscription.created": SubscriptionCreatedEvent,
    "subscription.updated": SubscriptionUpdatedEvent,
    "subscription.canceled": SubscriptionCanceledEvent,
    "payment.succeeded": PaymentSucceededEvent,
    "payment.failed": PaymentFailedEvent,
}


def parse_webhook_event(payload: Any) -> PolarWebhookEvent:
    """
    Decode a JSON-decoded webhook body into its event variant.
    Raises pydantic.ValidationError when the envelope or a known variant's data is malformed.
    """
    envelope = WebhookEventBase.model_validate(payload)
    model = EVENT_MODELS.get(envelope.type, UnrecognizedEvent)
    return model.model_validate(payload)
