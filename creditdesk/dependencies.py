"""FastAPI dependencies shared by the routers."""

from typing import Any, Dict, Optional

from fastapi import Depends, Request

from .auth import get_current_user
from .billing.checkout import CheckoutService
from .billing.stripe_client import StripeClientAccessor, get_accessor
from .billing.webhook import StripeWebhookProcessor
from .config import config
from .connectors.email_connector import EmailConnector, get_email_connector
from .persistence import Database, get_db


def get_database() -> Database:
    return get_db()


def get_stripe_accessor() -> StripeClientAccessor:
    return get_accessor()


def get_connector() -> EmailConnector:
    return get_email_connector()


def get_user(request: Request, db: Database = Depends(get_database)) -> Optional[Dict[str, Any]]:
    return get_current_user(request, db)


def get_checkout_service(
    db: Database = Depends(get_database),
    accessor: StripeClientAccessor = Depends(get_stripe_accessor),
) -> CheckoutService:
    return CheckoutService(db, accessor, config.APP_BASE_URL)


def get_webhook_processor(
    db: Database = Depends(get_database),
    accessor: StripeClientAccessor = Depends(get_stripe_accessor),
) -> StripeWebhookProcessor:
    return StripeWebhookProcessor(
        db,
        accessor,
        webhook_secret=config.STRIPE_WEBHOOK_SECRET,
        max_credits=config.MAX_CREDITS_PER_TRANSACTION,
    )
