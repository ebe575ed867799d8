"""Credit plan definitions.

Plan ids are referenced from Stripe checkout metadata (``planId``), so an id
must never be renamed or removed once sessions have been issued for it.
"""

from typing import Any, Dict, Optional, Tuple
from dataclasses import dataclass

PRICE_ID_PREFIX = "price_"


@dataclass(frozen=True)
class Plan:
    """A purchasable bundle of credits. Prices are in US cents."""
    id: str
    name: str
    credits: int
    bonus: int
    price_usd: int

    @property
    def total_credits(self) -> int:
        return self.credits + self.bonus

    @property
    def price_id(self) -> str:
        """Identifier posted by the checkout form for this plan."""
        return f"{PRICE_ID_PREFIX}{self.id}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "credits": self.credits,
            "bonus": self.bonus,
            "priceUsd": self.price_usd,
        }


# Display order; checkout pages render plans in this sequence
PRICING_PLANS: Tuple[Plan, ...] = (
    Plan(id="starter", name="Starter", credits=1000, bonus=0, price_usd=1000),
    Plan(id="growth", name="Growth", credits=5000, bonus=500, price_usd=4500),
    Plan(id="pro", name="Pro", credits=15000, bonus=2000, price_usd=12000),
    Plan(id="enterprise", name="Enterprise", credits=50000, bonus=10000, price_usd=35000),
)


def list_plans() -> Tuple[Plan, ...]:
    return PRICING_PLANS


def find_plan(plan_id: Optional[str]) -> Optional[Plan]:
    """Look up a plan by id.

    Args:
        plan_id: Plan id (starter, growth, pro, enterprise)

    Returns:
        Plan, or None if the id is unknown
    """
    if not plan_id:
        return None
    for plan in PRICING_PLANS:
        if plan.id == plan_id:
            return plan
    return None


def get_plan(plan_id: str) -> Plan:
    """Get a plan by id.

    Raises:
        KeyError: If plan id not found
    """
    plan = find_plan(plan_id)
    if plan is None:
        raise KeyError(f"Unknown plan '{plan_id}'")
    return plan


def plan_for_price_id(price_id: Optional[str]) -> Optional[Plan]:
    if not price_id or not price_id.startswith(PRICE_ID_PREFIX):
        return None
    return find_plan(price_id[len(PRICE_ID_PREFIX):])
