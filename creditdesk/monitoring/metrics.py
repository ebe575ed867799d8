"""Prometheus metrics for CreditDesk billing flows."""

from prometheus_client import CollectorRegistry, Counter, REGISTRY, generate_latest


class BillingMetrics:
    """Counters for checkout, webhook and Stripe client activity."""

    def __init__(self, registry: CollectorRegistry = REGISTRY):
        self.registry = registry
        self.stripe_clients_created = Counter(
            "creditdesk_stripe_clients_created_total",
            "Number of Stripe clients constructed by the accessor",
            registry=registry,
        )
        self.checkout_sessions_created = Counter(
            "creditdesk_checkout_sessions_created_total",
            "Checkout sessions created",
            ["plan_id"],
            registry=registry,
        )
        self.webhook_events = Counter(
            "creditdesk_webhook_events_total",
            "Stripe webhook events by type and outcome",
            ["event_type", "outcome"],
            registry=registry,
        )
        self.credits_granted = Counter(
            "creditdesk_credits_granted_total",
            "Credits granted from purchases",
            registry=registry,
        )

    def render(self) -> bytes:
        return generate_latest(self.registry)


# Global metrics instance
metrics = BillingMetrics()
