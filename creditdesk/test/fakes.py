"""In-memory stand-ins for the Stripe SDK client."""

import json
import uuid
from types import SimpleNamespace

import stripe

VALID_SIGNATURE = "t=1,v1=valid"
WEBHOOK_SECRET = "whsec_test"


class FakeCustomers:
    def __init__(self):
        self.created = []
        self.fail_with = None

    def create(self, params=None):
        if self.fail_with:
            raise self.fail_with
        self.created.append(params)
        return SimpleNamespace(id=f"cus_{uuid.uuid4().hex[:10]}")


class FakeSessions:
    def __init__(self):
        self.created = []
        self.fail_with = None

    def create(self, params=None):
        if self.fail_with:
            raise self.fail_with
        self.created.append(params)
        session_id = f"cs_test_{uuid.uuid4().hex[:10]}"
        return SimpleNamespace(id=session_id, url=f"https://checkout.stripe.test/{session_id}")


class FakeStripeClient:
    """Stands in for stripe.StripeClient; records calls instead of hitting the API."""

    def __init__(self, api_key, api_version):
        self.api_key = api_key
        self.api_version = api_version
        self.customers = FakeCustomers()
        self.checkout = SimpleNamespace(sessions=FakeSessions())

    def construct_event(self, payload, sig_header, secret):
        if secret != WEBHOOK_SECRET or sig_header != VALID_SIGNATURE:
            raise stripe.SignatureVerificationError("No signatures found matching the expected signature", sig_header)
        return json.loads(payload)

