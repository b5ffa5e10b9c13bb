"""
Seeds local Product rows from the pricing plan catalog.
Each plan yields a monthly and a yearly product keyed by its Polar product id.
"""
import logging
from typing import List

from sqlalchemy.orm import Session

from app.core.plans import PRICING_PLANS
from app.models.product import Product, ProductInterval
from app.schemas.plan import PricingPlan

logger = logging.getLogger(__name__)


def _catalog_products(plan: PricingPlan) -> List[Product]:
    features = [feature.model_dump() for feature in plan.features]
    variants = [
        (plan.polar_product_id_monthly, plan.name, plan.price_monthly, ProductInterval.MONTH),
        (plan.polar_product_id_yearly, f"{plan.name} (Yearly)", plan.price_yearly, ProductInterval.YEAR),
    ]
    products = []
    for polar_product_id, name, price_amount, interval in variants:
        if not polar_product_id:
            continue
        product = Product(
            polar_product_id=polar_product_id,
            name=name,
            description=plan.description,
            price_amount=price_amount,
            interval=interval,
            features=features,
            is_active=True,
        )
        product.metadata_ = {"plan_id": plan.id}
        products.append(product)
    return products


def seed_products_from_plans(db: Session) -> int:
    """Insert catalog products that are not present yet. Returns how many were created."""
    created = 0
    for plan in PRICING_PLANS:
        for product in _catalog_products(plan):
            exists = db.query(Product).filter(Product.polar_product_id == product.polar_product_id).first()
            if exists:
                logger.info(f"[SEED] Product {product.polar_product_id} already exists, skipping")
                continue
            db.add(product)
            created += 1
    db.commit()
    return created
