"""Credit plans and Stripe billing for CreditDesk."""

from .plans import Plan, PRICING_PLANS, find_plan, get_plan, list_plans, plan_for_price_id
from .stripe_client import StripeClientAccessor, get_accessor, get_stripe

__all__ = [
    "Plan",
    "PRICING_PLANS",
    "find_plan",
    "get_plan",
    "list_plans",
    "plan_for_price_id",
    "StripeClientAccessor",
    "get_accessor",
    "get_stripe",
]
