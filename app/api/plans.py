from fastapi import APIRouter
from typing import List

from app.core.plans import PRICING_PLANS, calculate_yearly_savings
from app.schemas.plan import PlanWithSavings

router = APIRouter()


@router.get("", response_model=List[PlanWithSavings])
def list_plans():
    return [
        PlanWithSavings(**plan.model_dump(), yearly_savings_percent=calculate_yearly_savings(plan))
        for plan in PRICING_PLANS
    ]
