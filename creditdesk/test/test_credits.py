import pytest

from creditdesk import credits
from creditdesk.persistence import DuplicatePaymentError


def test_action_cost_defaults_and_override(db):
    assert credits.get_action_cost(db, "GENERATE_VIDEO") == 8
    assert credits.get_action_cost(db, "SAFETY_BLOCK") == 0
    assert credits.get_action_cost(db, "SOMETHING_NEW") == 1

    db.set_action_cost("GENERATE_VIDEO", 12)
    assert credits.get_action_cost(db, "GENERATE_VIDEO") == 12


def test_add_and_deduct(db, user):
    assert credits.get_user_balance(db, user["id"]) == 0

    assert credits.add_credits(db, user["id"], 1000, "PURCHASE", "Purchased 1000 credits") == 1000
    assert credits.deduct_credits(db, user["id"], 5, "Generated content", bot_id="bot_1") is True

    assert credits.get_user_balance(db, user["id"]) == 995
    latest = db.list_transactions(user["id"])[0]
    assert latest["type"] == "USAGE"
    assert latest["amount"] == -5
    assert latest["balance"] == 995
    assert latest["bot_id"] == "bot_1"


def test_deduct_refuses_when_balance_short(db, user):
    credits.add_credits(db, user["id"], 3, "BONUS", "Promo")

    assert credits.deduct_credits(db, user["id"], 5, "Too expensive") is False
    assert credits.get_user_balance(db, user["id"]) == 3
    assert not credits.has_enough_credits(db, user["id"], 5)
    assert credits.has_enough_credits(db, user["id"], 3)


def test_deduct_without_balance_row(db, user):
    assert credits.deduct_credits(db, user["id"], 1, "Nothing to spend") is False


def test_payment_id_is_unique(db, user):
    credits.add_credits(db, user["id"], 100, "PURCHASE", "First", stripe_payment_id="pi_1")

    with pytest.raises(DuplicatePaymentError):
        credits.add_credits(db, user["id"], 100, "PURCHASE", "Again", stripe_payment_id="pi_1")
    assert credits.get_user_balance(db, user["id"]) == 100


def test_rejects_invalid_grants(db, user):
    with pytest.raises(ValueError):
        credits.add_credits(db, user["id"], 0, "PURCHASE", "Nothing")
    with pytest.raises(ValueError):
        credits.add_credits(db, user["id"], 10, "USAGE", "Wrong direction")


def test_welcome_bonus(db, user):
    assert credits.grant_welcome_bonus(db, user["id"]) == credits.WELCOME_BONUS_CREDITS
