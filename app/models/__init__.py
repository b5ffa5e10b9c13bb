from app.models.user import User
from app.models.product import Product, ProductInterval
from app.models.subscription import Subscription, SubscriptionStatus
from app.models.webhook_event import WebhookEvent

__all__ = [
    "User", "Product", "ProductInterval",
    "Subscription", "SubscriptionStatus", "WebhookEvent",
]
