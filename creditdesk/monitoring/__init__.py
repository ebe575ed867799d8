"""Monitoring helpers."""

from .metrics import BillingMetrics, metrics

__all__ = ["BillingMetrics", "metrics"]
