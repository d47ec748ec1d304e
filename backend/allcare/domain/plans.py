"""
Membership Plan Domain Models

Plan descriptors shown on the membership and checkout screens, and the
mapping from a plan's title to the tier stored on a subscription.
"""

from typing import Optional
from pydantic import BaseModel, Field

from allcare.domain.subscription import SubscriptionPlan


MEMBERSHIP_PLANS_COLLECTION = "membershipPlans"


class PlanDescriptor(BaseModel):
    """Pricing information for a single membership plan."""
    id: str
    title: str
    subtitle: str = ""
    price: float = 0.0
    period: str = ""
    original_price: Optional[float] = Field(default=None, alias="originalPrice")
    savings: Optional[str] = None
    popular: bool = False
    trial: bool = False
    features: list[str] = Field(default_factory=list)
    color_scheme: str = Field(default="blue", alias="colorScheme")

    model_config = {"populate_by_name": True}

    @property
    def is_free(self) -> bool:
        return self.price == 0

    @property
    def tier(self) -> SubscriptionPlan:
        return plan_tier_for_title(self.title)


# Title fragments checked in order; first match wins
_TITLE_TIERS = (
    ("Free Trial", SubscriptionPlan.FREE_TRIAL),
    ("Monthly", SubscriptionPlan.MONTHLY),
    ("Annual", SubscriptionPlan.ANNUAL),
    ("3-Year", SubscriptionPlan.THREE_YEAR),
)


def plan_tier_for_title(title: str) -> SubscriptionPlan:
    """Resolve the subscription tier for a plan title (free trial if unknown)."""
    for fragment, tier in _TITLE_TIERS:
        if fragment in (title or ""):
            return tier
    return SubscriptionPlan.FREE_TRIAL


DEFAULT_PLANS: list[PlanDescriptor] = [
    PlanDescriptor(
        id="free-trial",
        title="Free Trial",
        subtitle="Try every feature for 15 days",
        price=0,
        period="15 days",
        trial=True,
        features=[
            "Medication and appointment reminders",
            "Link one caregiver",
            "Community activities",
        ],
        color_scheme="green",
    ),
    PlanDescriptor(
        id="monthly",
        title="Monthly Plan",
        subtitle="Flexible month-to-month care",
        price=90,
        period="month",
        features=[
            "Everything in Free Trial",
            "Unlimited caregivers",
            "Consultation booking",
        ],
        color_scheme="blue",
    ),
    PlanDescriptor(
        id="annual",
        title="Annual Plan",
        subtitle="Best value for ongoing care",
        price=1080,
        period="year",
        original_price=1200,
        savings="Save $120",
        popular=True,
        features=[
            "Everything in Monthly",
            "Custom care reports",
            "Priority support",
        ],
        color_scheme="purple",
    ),
    PlanDescriptor(
        id="three-year",
        title="3-Year Plan",
        subtitle="Long-term peace of mind",
        price=2880,
        period="3 years",
        original_price=3600,
        savings="Save $720",
        features=[
            "Everything in Annual",
            "Dedicated care coordinator",
        ],
        color_scheme="gold",
    ),
]
