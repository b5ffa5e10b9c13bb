from app.schemas.user import User, UserUpdate
from app.schemas.product import Product, Feature
from app.schemas.subscription import Subscription, CurrentSubscription
from app.schemas.billing import ActionResult, CheckoutRequest, CheckoutResponse, SyncResult
from app.schemas.plan import PricingFeature, PricingPlan, PlanWithSavings

__all__ = [
    "User", "UserUpdate",
    "Product", "Feature",
    "Subscription", "CurrentSubscription",
    "ActionResult", "CheckoutRequest", "CheckoutResponse", "SyncResult",
    "PricingFeature", "PricingPlan", "PlanWithSavings",
]
