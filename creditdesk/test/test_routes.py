"""HTTP-level tests for billing, checkout, webhook and verification routes."""

import json

from creditdesk.auth import issue_session_token

from .fakes import VALID_SIGNATURE


def _auth(user_id="user_1"):
    return {"Authorization": f"Bearer {issue_session_token(user_id)}"}


def test_health(app_client):
    r = app_client.get("/health")

    assert r.status_code == 200
    body = r.json()
    assert body["ok"] is True
    assert body["status"] == "healthy"


def test_plans_endpoint(app_client):
    r = app_client.get("/billing/plans")

    assert r.status_code == 200
    plans = r.json()["plans"]
    assert [p["id"] for p in plans] == ["starter", "growth", "pro", "enterprise"]
    assert plans[1] == {"id": "growth", "name": "Growth", "credits": 5000, "bonus": 500, "priceUsd": 4500}


def test_balance_requires_auth(app_client):
    r = app_client.get("/billing/balance")

    assert r.status_code == 401
    assert r.json() == {"error": "Not authenticated"}


def test_checkout_redirects_anonymous_to_signin(app_client):
    r = app_client.post("/stripe/checkout", data={"priceId": "price_growth"}, follow_redirects=False)

    assert r.status_code == 303
    assert r.headers["location"].endswith("/auth/signin")


def test_checkout_rejects_unknown_plan(app_client, user):
    r = app_client.post(
        "/stripe/checkout", data={"priceId": "price_platinum"}, headers=_auth(), follow_redirects=False
    )

    assert r.status_code == 303
    assert r.headers["location"].endswith("/dashboard/credits/buy?error=Invalid%20plan")


def test_checkout_redirects_to_stripe(app_client, user, fake_stripe):
    r = app_client.post(
        "/stripe/checkout", data={"priceId": "price_pro"}, headers=_auth(), follow_redirects=False
    )

    assert r.status_code == 303
    assert r.headers["location"].startswith("https://checkout.stripe.test/cs_test_")
    assert fake_stripe.checkout.sessions.created[0]["metadata"]["planId"] == "pro"


def test_checkout_without_stripe_key_is_a_server_error(app_client, user, accessor, monkeypatch):
    monkeypatch.setattr(accessor, "_key_provider", lambda: None)

    r = app_client.post(
        "/stripe/checkout", data={"priceId": "price_pro"}, headers=_auth(), follow_redirects=False
    )

    assert r.status_code == 500
    assert "error" in r.json()


def test_webhook_credits_purchase(app_client, db, user):
    event = {
        "id": "evt_1",
        "type": "checkout.session.completed",
        "data": {
            "object": {
                "payment_intent": "pi_abc",
                "metadata": {"userId": user["id"], "credits": "1000", "planId": "starter"},
            }
        },
    }

    r = app_client.post(
        "/stripe/webhook", content=json.dumps(event), headers={"stripe-signature": VALID_SIGNATURE}
    )

    assert r.status_code == 200
    assert r.json() == {"received": True}
    assert db.get_balance(user["id"]) == 1000


def test_webhook_bad_signature(app_client):
    r = app_client.post("/stripe/webhook", content=b"{}", headers={"stripe-signature": "forged"})

    assert r.status_code == 400
    assert r.json() == {"error": "Invalid signature"}


def test_webhook_missing_signature(app_client):
    r = app_client.post("/stripe/webhook", content=b"{}")

    assert r.status_code == 400
    assert r.json() == {"error": "Missing signature"}


def test_resend_verification_requires_auth(app_client):
    r = app_client.post("/auth/resend-verification")

    assert r.status_code == 401
    assert r.json() == {"error": "Not authenticated"}


def test_resend_verification_rejects_verified_user(app_client, db):
    db.create_user("user_2", "grace@example.com", name="Grace", email_verified=True)

    r = app_client.post("/auth/resend-verification", headers=_auth("user_2"))

    assert r.status_code == 400
    assert r.json() == {"error": "Email already verified"}


def test_resend_verification_sends_email(app_client, db, user, connector):
    r = app_client.post("/auth/resend-verification", headers=_auth())

    assert r.status_code == 200
    assert r.json() == {"success": True}
    sent = list((connector.sandbox_dir / "sent").glob("*.json"))
    assert len(sent) == 1
    assert json.loads(sent[0].read_text())["recipients"] == ["ada@example.com"]
    assert len(db.list_verification_tokens(user["id"])) == 1


def test_resend_verification_reports_send_failure(app_client, user, connector, monkeypatch):
    def broken_send(*_args, **_kwargs):
        raise OSError("disk full")

    monkeypatch.setattr(connector, "send", broken_send)

    r = app_client.post("/auth/resend-verification", headers=_auth())

    assert r.status_code == 500
    assert r.json() == {"error": "Failed to send verification email"}


def test_verify_email_link(app_client, db, user):
    app_client.post("/auth/resend-verification", headers=_auth())
    token = db.list_verification_tokens(user["id"])[0]["token"]

    r = app_client.get("/auth/verify-email", params={"token": token})

    assert r.status_code == 200
    assert db.get_user(user["id"])["email_verified"] is True


def test_metrics_endpoint(app_client):
    r = app_client.get("/metrics")

    assert r.status_code == 200
    assert "creditdesk_stripe_clients_created_total" in r.text
