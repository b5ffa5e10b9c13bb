from pydantic import BaseModel
from typing import List, Optional

from app.models.product import ProductInterval


class PricingFeature(BaseModel):
    name: str
    included: bool


class PricingPlan(BaseModel):
    id: str
    name: str
    description: str
    price_monthly: int  # Cents
    price_yearly: int  # Cents
    interval: ProductInterval = ProductInterval.MONTH
    features: List[PricingFeature]
    popular: bool = False
    recommended: bool = False
    cta: str
    polar_product_id_monthly: Optional[str] = None
    polar_product_id_yearly: Optional[str] = None


class PlanWithSavings(PricingPlan):
    yearly_savings_percent: int
