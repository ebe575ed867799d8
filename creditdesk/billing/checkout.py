"""Stripe Checkout for one-off credit purchases."""

import logging
from typing import Any, Dict, Optional
from urllib.parse import quote

import stripe

from ..errors import UpstreamServiceError
from ..monitoring.metrics import metrics
from ..persistence import Database
from .plans import Plan
from .stripe_client import StripeClientAccessor

logger = logging.getLogger(__name__)

CHECKOUT_SUCCESS_MESSAGE = "Payment successful! Credits added."


def describe_plan(plan: Plan) -> Dict[str, str]:
    """Product name and description shown on the Stripe checkout page."""
    description = f"{plan.credits} credits"
    if plan.bonus > 0:
        description += f" + {plan.bonus} bonus"
    return {
        "name": f"{plan.name} - {plan.total_credits} Credits",
        "description": description,
    }


def build_session_params(user: Dict[str, Any], plan: Plan, customer_id: str, base_url: str) -> Dict[str, Any]:
    return {
        "customer": customer_id,
        "payment_method_types": ["card"],
        "line_items": [
            {
                "price_data": {
                    "currency": "usd",
                    "product_data": describe_plan(plan),
                    "unit_amount": plan.price_usd,
                },
                "quantity": 1,
            }
        ],
        "mode": "payment",
        "success_url": f"{base_url}/dashboard/credits?success={quote(CHECKOUT_SUCCESS_MESSAGE)}",
        "cancel_url": f"{base_url}/dashboard/credits/buy",
        "metadata": {
            "userId": user["id"],
            "credits": str(plan.total_credits),
            "planId": plan.id,
        },
    }


class CheckoutService:
    """Creates Stripe customers and checkout sessions for credit plans."""

    def __init__(self, db: Database, accessor: StripeClientAccessor, base_url: str):
        self.db = db
        self.accessor = accessor
        self.base_url = base_url.rstrip("/")

    def ensure_customer(self, user: Dict[str, Any]) -> str:
        """Return the user's Stripe customer id, creating the customer if needed."""
        if user.get("stripe_customer_id"):
            return user["stripe_customer_id"]

        params: Dict[str, Any] = {
            "email": user["email"],
            "metadata": {"userId": user["id"]},
        }
        if user.get("name"):
            params["name"] = user["name"]

        client = self.accessor.get_client()
        try:
            customer = client.customers.create(params=params)
        except stripe.StripeError as e:
            logger.error("Stripe customer creation failed for user %s: %s", user["id"], e)
            raise UpstreamServiceError("Unable to create billing customer") from e

        self.db.set_stripe_customer_id(user["id"], customer.id)
        user["stripe_customer_id"] = customer.id
        return customer.id

    def create_checkout_session(self, user: Dict[str, Any], plan: Plan) -> Any:
        """Create a payment-mode checkout session for one plan.

        Returns:
            Stripe checkout session (has ``id`` and ``url``)

        Raises:
            ConfigurationError: If Stripe is not configured
            UpstreamServiceError: If Stripe rejects the request
        """
        customer_id = self.ensure_customer(user)
        params = build_session_params(user, plan, customer_id, self.base_url)

        client = self.accessor.get_client()
        try:
            session = client.checkout.sessions.create(params=params)
        except stripe.StripeError as e:
            logger.error("Stripe checkout session failed for user %s: %s", user["id"], e)
            raise UpstreamServiceError("Unable to create checkout session") from e

        metrics.checkout_sessions_created.labels(plan_id=plan.id).inc()
        logger.info(
            "Checkout session %s created",
            session.id,
            extra={"user_id": user["id"], "plan_id": plan.id},
        )
        return session

    def checkout_url(self, user: Dict[str, Any], plan: Plan) -> str:
        session = self.create_checkout_session(user, plan)
        url: Optional[str] = getattr(session, "url", None)
        if not url:
            raise UpstreamServiceError("Checkout session has no redirect URL")
        return url
