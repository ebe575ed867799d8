"""Stripe webhook processor."""

import logging
from typing import Any, Dict, Mapping, Optional

import stripe

from ..credits import add_credits
from ..errors import WebhookSignatureError
from ..monitoring.metrics import metrics
from ..persistence import Database, DuplicatePaymentError
from .stripe_client import StripeClientAccessor

logger = logging.getLogger(__name__)

CHECKOUT_COMPLETED = "checkout.session.completed"

# Outcomes reported by process_event
CREDITED = "credited"
DUPLICATE = "duplicate"
INVALID_AMOUNT = "invalid_amount"
MISSING_REFERENCE = "missing_reference"
UNKNOWN_USER = "unknown_user"
IGNORED = "ignored"


def _parse_credits(raw: Any) -> Optional[int]:
    try:
        return int(raw or "0")
    except (TypeError, ValueError):
        return None


class StripeWebhookProcessor:
    def __init__(
        self,
        db: Database,
        accessor: StripeClientAccessor,
        webhook_secret: Optional[str],
        max_credits: int = 100000,
    ):
        self.db = db
        self.accessor = accessor
        self.webhook_secret = webhook_secret
        self.max_credits = max_credits

    def construct_event(self, payload: bytes, signature: Optional[str]) -> Mapping[str, Any]:
        """Verify the Stripe signature and parse the event.

        Raises:
            WebhookSignatureError: If the signature or webhook secret is missing, or verification fails
            ConfigurationError: If the Stripe secret key is missing
        """
        if not signature or not self.webhook_secret:
            raise WebhookSignatureError("Missing signature")

        client = self.accessor.get_client()
        try:
            return client.construct_event(payload, signature, self.webhook_secret)
        except (ValueError, stripe.SignatureVerificationError) as e:
            logger.error("Webhook signature verification failed: %s", e)
            raise WebhookSignatureError("Invalid signature") from e

    def handle_request(self, payload: bytes, signature: Optional[str]) -> str:
        event = self.construct_event(payload, signature)
        return self.process_event(event)

    def process_event(self, event: Mapping[str, Any]) -> str:
        event_type = event.get("type", "unknown")
        if event_type == CHECKOUT_COMPLETED:
            outcome = self._handle_checkout_completed(event.get("data", {}).get("object", {}))
        else:
            outcome = IGNORED
        metrics.webhook_events.labels(event_type=event_type, outcome=outcome).inc()
        return outcome

    def _handle_checkout_completed(self, session: Mapping[str, Any]) -> str:
        metadata: Dict[str, Any] = dict(session.get("metadata") or {})
        user_id = metadata.get("userId")
        plan_id = metadata.get("planId")
        payment_intent_id = session.get("payment_intent")
        credits = _parse_credits(metadata.get("credits"))

        if credits is None or credits <= 0 or credits > self.max_credits:
            logger.error("[Stripe] Invalid credit amount: %s for user %s", metadata.get("credits"), user_id)
            return INVALID_AMOUNT

        if not user_id or not payment_intent_id:
            logger.warning("[Stripe] Checkout session %s missing user or payment reference", session.get("id"))
            return MISSING_REFERENCE

        if self.db.get_transaction_by_payment_id(payment_intent_id):
            logger.info("[Stripe] Duplicate webhook for payment %s, skipping", payment_intent_id)
            return DUPLICATE

        if not self.db.get_user(user_id):
            logger.error("[Stripe] Checkout completed for unknown user %s", user_id)
            return UNKNOWN_USER

        try:
            add_credits(
                self.db,
                user_id,
                credits,
                "PURCHASE",
                f"Purchased {credits} credits ({plan_id} plan)",
                stripe_payment_id=payment_intent_id,
            )
        except DuplicatePaymentError:
            # Concurrent delivery of the same event won the insert
            logger.info("[Stripe] Duplicate webhook for payment %s, skipping", payment_intent_id)
            return DUPLICATE

        metrics.credits_granted.inc(credits)
        logger.info(
            "[Stripe] Added %s credits to user %s",
            credits,
            user_id,
            extra={"user_id": user_id, "plan_id": plan_id, "payment_id": payment_intent_id},
        )
        return CREDITED


__all__ = ["StripeWebhookProcessor", "CHECKOUT_COMPLETED"]
