"""
Pricing plans.
Centralized catalog of pricing tiers and their features.
"""
import math
from typing import List, Optional

from app.schemas.plan import PricingFeature, PricingPlan


def _features(*rows) -> List[PricingFeature]:
    return [PricingFeature(name=name, included=included) for name, included in rows]


PRICING_PLANS: List[PricingPlan] = [
    PricingPlan(
        id="starter",
        name="Starter",
        description="Perfect for individuals and small projects",
        price_monthly=999,  # $9.99
        price_yearly=9588,  # $95.88
        features=_features(
            ("Basic Features", True),
            ("Up to 1,000 API calls/month", True),
            ("1 GB Storage", True),
            ("Email Support", True),
            ("Community Access", True),
            ("Advanced Analytics", False),
            ("Priority Support", False),
            ("Custom Integrations", False),
        ),
        cta="Get Started",
        polar_product_id_monthly="prod_starter_monthly",
        polar_product_id_yearly="prod_starter_yearly",
    ),
    PricingPlan(
        id="pro",
        name="Pro",
        description="Ideal for growing businesses and teams",
        price_monthly=2999,  # $29.99
        price_yearly=28788,  # $287.88
        features=_features(
            ("All Starter Features", True),
            ("Up to 10,000 API calls/month", True),
            ("10 GB Storage", True),
            ("Priority Email Support", True),
            ("Advanced Analytics", True),
            ("Custom Integrations", True),
            ("Team Collaboration (up to 5 users)", True),
            ("Unlimited Team Members", False),
        ),
        popular=True,
        recommended=True,
        cta="Start Free Trial",
        polar_product_id_monthly="prod_pro_monthly",
        polar_product_id_yearly="prod_pro_yearly",
    ),
    PricingPlan(
        id="enterprise",
        name="Enterprise",
        description="For large organizations with custom needs",
        price_monthly=9999,  # $99.99
        price_yearly=95988,  # $959.88
        features=_features(
            ("All Pro Features", True),
            ("Unlimited API calls", True),
            ("100 GB Storage", True),
            ("24/7 Phone & Email Support", True),
            ("Advanced Security & Compliance", True),
            ("Custom Integrations & Workflows", True),
            ("Unlimited Team Members", True),
            ("Dedicated Account Manager", True),
            ("SLA Guarantee (99.9% uptime)", True),
            ("Custom Onboarding & Training", True),
        ),
        cta="Contact Sales",
        polar_product_id_monthly="prod_enterprise_monthly",
        polar_product_id_yearly="prod_enterprise_yearly",
    ),
]


def calculate_yearly_savings(plan: PricingPlan) -> int:
    """Percent saved by paying yearly instead of twelve monthly payments, rounded half up"""
    monthly_annual = plan.price_monthly * 12
    if monthly_annual == 0:
        return 0
    savings = monthly_annual - plan.price_yearly
    return math.floor(savings * 100 / monthly_annual + 0.5)


def get_plan_by_id(plan_id: str) -> Optional[PricingPlan]:
    return next((plan for plan in PRICING_PLANS if plan.id == plan_id), None)


def get_plan_by_polar_product_id(polar_product_id: str) -> Optional[PricingPlan]:
    return next(
        (
            plan
            for plan in PRICING_PLANS
            if polar_product_id in (plan.polar_product_id_monthly, plan.polar_product_id_yearly)
        ),
        None,
    )
