"""Credit balance and ledger operations."""

import logging
from typing import Dict, Optional

from .persistence import Database

logger = logging.getLogger(__name__)

TRANSACTION_TYPES = ("PURCHASE", "BONUS", "REFUND", "SUBSCRIPTION", "USAGE")
GRANT_TYPES = ("PURCHASE", "BONUS", "REFUND", "SUBSCRIPTION")

DEFAULT_ACTION_COSTS: Dict[str, int] = {
    "GENERATE_CONTENT": 5,
    "POST": 2,
    "REPLY": 3,
    "FAVOURITE": 1,
    "BOOST": 1,
    "SCAN_FEEDS": 2,
    "COLLECT_METRICS": 1,
    "GENERATE_IMAGE": 3,
    "GENERATE_VIDEO": 8,
    "SAFETY_BLOCK": 0,
    "BAN_DETECTED": 0,
}
FALLBACK_ACTION_COST = 1

WELCOME_BONUS_CREDITS = 100


def get_action_cost(db: Database, action_type: str) -> int:
    """Credits charged for an action; a stored override wins over the defaults."""
    custom = db.get_action_cost(action_type)
    if custom is not None:
        return custom
    return DEFAULT_ACTION_COSTS.get(action_type, FALLBACK_ACTION_COST)


def get_user_balance(db: Database, user_id: str) -> int:
    return db.get_balance(user_id)


def has_enough_credits(db: Database, user_id: str, amount: int) -> bool:
    return get_user_balance(db, user_id) >= amount


def add_credits(
    db: Database,
    user_id: str,
    amount: int,
    tx_type: str,
    description: str,
    stripe_payment_id: Optional[str] = None,
) -> int:
    """Grant credits to a user.

    Args:
        db: Database
        user_id: User receiving the credits
        amount: Positive number of credits
        tx_type: One of PURCHASE, BONUS, REFUND, SUBSCRIPTION
        description: Ledger description
        stripe_payment_id: Payment intent id for purchases (idempotency key)

    Returns:
        New balance

    Raises:
        ValueError: If amount is not positive or tx_type is unknown
        DuplicatePaymentError: If the payment id was already credited
    """
    if amount <= 0:
        raise ValueError(f"Credit amount must be positive, got {amount}")
    if tx_type not in GRANT_TYPES:
        raise ValueError(f"Unknown credit transaction type: {tx_type}")
    balance = db.add_credits(user_id, amount, tx_type, description, stripe_payment_id)
    logger.info("Added %s credits to user %s (%s)", amount, user_id, tx_type)
    return balance


def deduct_credits(
    db: Database,
    user_id: str,
    amount: int,
    description: str,
    bot_id: Optional[str] = None,
) -> bool:
    """Charge credits; returns False and leaves the balance alone when it is too low."""
    if amount < 0:
        raise ValueError(f"Deduction must not be negative, got {amount}")
    return db.deduct_credits(user_id, amount, description, bot_id)


def grant_welcome_bonus(db: Database, user_id: str) -> int:
    return add_credits(db, user_id, WELCOME_BONUS_CREDITS, "BONUS", "Welcome bonus")
