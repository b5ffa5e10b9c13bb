from pydantic import BaseModel, AliasChoices, Field
from typing import Any, Dict, Optional
from datetime import datetime
from uuid import UUID

from app.models.subscription import SubscriptionStatus
from app.schemas.product import Product


class Subscription(BaseModel):
    id: UUID
    user_id: UUID
    product_id: Optional[UUID] = None
    polar_subscription_id: Optional[str] = None
    status: SubscriptionStatus
    cancel_at_period_end: bool
    current_period_start: Optional[datetime] = None
    current_period_end: Optional[datetime] = None
    trial_start: Optional[datetime] = None
    trial_end: Optional[datetime] = None
    canceled_at: Optional[datetime] = None
    metadata: Dict[str, Any] = Field(default_factory=dict, validation_alias=AliasChoices("metadata_", "metadata"))
    created_at: datetime
    updated_at: datetime
    product: Optional[Product] = None  # Joined product details

    class Config:
        from_attributes = True


class CurrentSubscription(BaseModel):
    """Compact view used by the billing page"""
    id: UUID
    product_id: Optional[UUID] = None
    status: SubscriptionStatus
    current_period_end: Optional[datetime] = None
    cancel_at_period_end: bool

    class Config:
        from_attributes = True
