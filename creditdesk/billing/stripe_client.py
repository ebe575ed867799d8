"""Process-wide Stripe client accessor."""

import os
import logging
import threading
from typing import Any, Callable, Optional

import stripe

from ..config import DEFAULT_STRIPE_API_VERSION, config
from ..errors import ConfigurationError
from ..monitoring.metrics import metrics

logger = logging.getLogger(__name__)

KeyProvider = Callable[[], Optional[str]]
ClientFactory = Callable[[str, str], Any]


def _env_secret_key() -> Optional[str]:
    return os.getenv("STRIPE_SECRET_KEY")


def _build_stripe_client(api_key: str, api_version: str) -> stripe.StripeClient:
    return stripe.StripeClient(api_key, stripe_version=api_version)


class StripeClientAccessor:
    """Lazily builds and caches a single Stripe client.

    The secret key is read on the first successful call only. A missing key
    raises ConfigurationError and leaves nothing cached, so a later call can
    succeed once the key is supplied.
    """

    def __init__(
        self,
        key_provider: KeyProvider = _env_secret_key,
        factory: Optional[ClientFactory] = None,
        api_version: str = DEFAULT_STRIPE_API_VERSION,
    ):
        """Initialize the accessor.

        Args:
            key_provider: Returns the Stripe secret key, or None when unset
            factory: Builds a client from (api_key, api_version); defaults to stripe.StripeClient
            api_version: Stripe API version pinned on the client
        """
        self._key_provider = key_provider
        self._factory = factory or _build_stripe_client
        self._api_version = api_version
        self._client: Optional[Any] = None
        self._lock = threading.Lock()

    @property
    def api_version(self) -> str:
        return self._api_version

    @property
    def is_initialized(self) -> bool:
        return self._client is not None

    def get_client(self) -> Any:
        """Return the shared client, constructing it on first use.

        Raises:
            ConfigurationError: If the secret key is missing or empty
        """
        client = self._client
        if client is not None:
            return client

        with self._lock:
            if self._client is None:
                api_key = self._key_provider()
                if not api_key:
                    raise ConfigurationError("STRIPE_SECRET_KEY is not configured")
                self._client = self._factory(api_key, self._api_version)
                metrics.stripe_clients_created.inc()
                logger.info("Stripe client initialized (api_version=%s)", self._api_version)
            return self._client

    def reset(self) -> None:
        """Drop the cached client so the next call re-reads the key."""
        with self._lock:
            self._client = None


# Global accessor instance
_default_accessor = StripeClientAccessor(api_version=config.STRIPE_API_VERSION)


def get_accessor() -> StripeClientAccessor:
    return _default_accessor


def get_stripe() -> Any:
    """Get the process-wide Stripe client."""
    return _default_accessor.get_client()
