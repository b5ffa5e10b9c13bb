from pydantic import BaseModel, AliasChoices, Field
from typing import Any, Dict, List, Optional
from datetime import datetime
from uuid import UUID

from app.models.product import ProductInterval


class Feature(BaseModel):
    name: str
    included: bool


class Product(BaseModel):
    id: UUID
    polar_product_id: Optional[str] = None
    name: str
    description: Optional[str] = None
    price_amount: int  # Amount in cents
    interval: ProductInterval
    features: List[Feature] = []
    is_active: bool
    metadata: Dict[str, Any] = Field(default_factory=dict, validation_alias=AliasChoices("metadata_", "metadata"))
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
