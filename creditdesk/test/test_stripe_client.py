"""Tests for the lazily-initialized Stripe client accessor."""

import threading
import time

import pytest
import stripe

from creditdesk.billing import stripe_client as stripe_client_module
from creditdesk.billing.stripe_client import StripeClientAccessor
from creditdesk.errors import ConfigurationError

from .fakes import FakeStripeClient


class CountingFactory:
    def __init__(self, delay: float = 0.0):
        self.calls = []
        self.delay = delay
        self._lock = threading.Lock()

    def __call__(self, api_key, api_version):
        if self.delay:
            time.sleep(self.delay)
        with self._lock:
            self.calls.append((api_key, api_version))
        return FakeStripeClient(api_key, api_version)


def test_repeated_calls_construct_once_and_return_same_instance():
    factory = CountingFactory()
    accessor = StripeClientAccessor(key_provider=lambda: "sk_test_abc", factory=factory)

    clients = [accessor.get_client() for _ in range(25)]

    assert len(factory.calls) == 1
    assert all(c is clients[0] for c in clients)
    assert accessor.is_initialized


def test_client_bound_to_key_and_pinned_api_version():
    accessor = StripeClientAccessor(
        key_provider=lambda: "sk_test_abc", factory=FakeStripeClient, api_version="2024-06-20"
    )

    client = accessor.get_client()

    assert client.api_key == "sk_test_abc"
    assert client.api_version == "2024-06-20"


@pytest.mark.parametrize("missing", [None, ""])
def test_missing_key_raises_configuration_error_and_caches_nothing(missing):
    factory = CountingFactory()
    accessor = StripeClientAccessor(key_provider=lambda: missing, factory=factory)

    for _ in range(3):
        with pytest.raises(ConfigurationError) as exc_info:
            accessor.get_client()
        assert "STRIPE_SECRET_KEY" in exc_info.value.message

    assert factory.calls == []
    assert not accessor.is_initialized


def test_recovers_once_key_is_supplied():
    keys = {"value": None}
    factory = CountingFactory()
    accessor = StripeClientAccessor(key_provider=lambda: keys["value"], factory=factory)

    with pytest.raises(ConfigurationError):
        accessor.get_client()

    keys["value"] = "sk_test_abc"
    first = accessor.get_client()
    second = accessor.get_client()

    assert first is second
    assert len(factory.calls) == 1


def test_key_change_after_first_call_is_not_reread(monkeypatch):
    monkeypatch.setenv("STRIPE_SECRET_KEY", "sk_test_abc")
    accessor = StripeClientAccessor(factory=FakeStripeClient)

    first = accessor.get_client()
    monkeypatch.setenv("STRIPE_SECRET_KEY", "sk_test_xyz")
    second = accessor.get_client()

    assert second is first
    assert second.api_key == "sk_test_abc"


def test_default_key_provider_reads_environment_at_call_time(monkeypatch):
    monkeypatch.delenv("STRIPE_SECRET_KEY", raising=False)
    accessor = StripeClientAccessor(factory=FakeStripeClient)

    with pytest.raises(ConfigurationError):
        accessor.get_client()

    monkeypatch.setenv("STRIPE_SECRET_KEY", "sk_test_late")
    assert accessor.get_client().api_key == "sk_test_late"


def test_concurrent_first_calls_build_a_single_client():
    factory = CountingFactory(delay=0.05)
    accessor = StripeClientAccessor(key_provider=lambda: "sk_test_abc", factory=factory)
    barrier = threading.Barrier(8)
    results = []

    def worker():
        barrier.wait()
        results.append(accessor.get_client())

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(factory.calls) == 1
    assert len(results) == 8
    assert all(r is results[0] for r in results)


def test_reset_forces_reconstruction():
    factory = CountingFactory()
    accessor = StripeClientAccessor(key_provider=lambda: "sk_test_abc", factory=factory)

    first = accessor.get_client()
    accessor.reset()
    second = accessor.get_client()

    assert first is not second
    assert len(factory.calls) == 2


def test_default_factory_builds_stripe_client():
    accessor = StripeClientAccessor(key_provider=lambda: "sk_test_abc")

    assert isinstance(accessor.get_client(), stripe.StripeClient)


def test_get_stripe_uses_process_wide_accessor(monkeypatch):
    accessor = StripeClientAccessor(key_provider=lambda: "sk_test_abc", factory=FakeStripeClient)
    monkeypatch.setattr(stripe_client_module, "_default_accessor", accessor)

    assert stripe_client_module.get_stripe() is stripe_client_module.get_stripe()
    assert stripe_client_module.get_accessor() is accessor
