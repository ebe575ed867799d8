"""Billing routes."""

from typing import Any, Dict, Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, Form, Request, status
from fastapi.responses import RedirectResponse

from ..dependencies import (
    get_checkout_service,
    get_database,
    get_user,
    get_webhook_processor,
)
from ..errors import AuthenticationRequiredError
from ..persistence import Database
from .checkout import CheckoutService
from .plans import list_plans, plan_for_price_id
from .webhook import StripeWebhookProcessor

router = APIRouter(prefix="/billing", tags=["billing"])
stripe_router = APIRouter(prefix="/stripe", tags=["stripe"])


def _redirect(request: Request, path: str) -> RedirectResponse:
    url = f"{str(request.base_url).rstrip('/')}{path}"
    return RedirectResponse(url=url, status_code=status.HTTP_303_SEE_OTHER)


@router.get("/plans")
async def get_plans():
    """
    Return the credit plans in display order.
    """
    return {"plans": [plan.to_dict() for plan in list_plans()]}


@router.get("/balance")
async def get_balance(
    user: Optional[Dict[str, Any]] = Depends(get_user),
    db: Database = Depends(get_database),
):
    if not user:
        raise AuthenticationRequiredError()
    return {
        "user_id": user["id"],
        "balance": db.get_balance(user["id"]),
        "transactions": db.list_transactions(user["id"], limit=20),
    }


@stripe_router.post("/checkout")
def create_checkout(
    request: Request,
    price_id: str = Form("", alias="priceId"),
    user: Optional[Dict[str, Any]] = Depends(get_user),
    service: CheckoutService = Depends(get_checkout_service),
):
    """
    Start a Stripe Checkout for the posted plan and redirect to it.
    """
    if not user:
        return _redirect(request, "/auth/signin")

    plan = plan_for_price_id(price_id)
    if not plan:
        return _redirect(request, f"/dashboard/credits/buy?error={quote('Invalid plan')}")

    url = service.checkout_url(user, plan)
    return RedirectResponse(url=url, status_code=status.HTTP_303_SEE_OTHER)


@stripe_router.post("/webhook")
async def stripe_webhook(
    request: Request,
    processor: StripeWebhookProcessor = Depends(get_webhook_processor),
):
    payload = await request.body()
    signature = request.headers.get("stripe-signature")
    processor.handle_request(payload, signature)
    return {"received": True}
