"""
Plan Routes

Read-only membership plan catalog for the membership and checkout screens.
"""

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from allcare.api.dependencies import get_plan_catalog
from allcare.domain.plans import PlanDescriptor
from allcare.services.plan_catalog import PlanCatalog


router = APIRouter()


class PlanResponse(BaseModel):
    """Plan as shown to users, with the tier it subscribes to."""
    id: str
    title: str
    subtitle: str
    price: float
    period: str
    original_price: Optional[float] = None
    savings: Optional[str] = None
    popular: bool
    trial: bool
    features: list[str]
    color_scheme: str
    tier: int


def _plan_to_response(plan: PlanDescriptor) -> PlanResponse:
    return PlanResponse(
        id=plan.id,
        title=plan.title,
        subtitle=plan.subtitle,
        price=plan.price,
        period=plan.period,
        original_price=plan.original_price,
        savings=plan.savings,
        popular=plan.popular,
        trial=plan.trial,
        features=plan.features,
        color_scheme=plan.color_scheme,
        tier=int(plan.tier),
    )


@router.get("/plans", response_model=list[PlanResponse])
async def list_plans(catalog: PlanCatalog = Depends(get_plan_catalog)):
    """List membership plans ordered by price."""
    return [_plan_to_response(plan) for plan in await catalog.list_plans()]
