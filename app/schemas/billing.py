from pydantic import BaseModel
from typing import Any, Optional
from uuid import UUID


class ActionResult(BaseModel):
    """Envelope returned by billing actions: {success, data?, error?}"""
    success: bool
    data: Optional[Any] = None
    error: Optional[str] = None


class CheckoutRequest(BaseModel):
    product_id: UUID  # Local product id
    price_id: str  # Polar price id


class CheckoutResponse(BaseModel):
    url: str


class SyncResult(BaseModel):
    synced: bool
    subscription_id: Optional[UUID] = None
    polar_subscription_id: Optional[str] = None
    status: Optional[str] = None
    product_created: bool = False
    message: Optional[str] = None
