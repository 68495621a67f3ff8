"""
Shared base for components that talk to the Stripe API.

The Stripe SDK is synchronous; calls run in a worker thread so the event
loop only suspends on provider I/O.
"""

import asyncio
from collections.abc import Callable, Mapping
from typing import Any

import stripe
from stripe import StripeClient
from structlog import get_logger

from stripe_integration.exceptions import ConfigurationError, UpstreamError
from stripe_integration.observability.metrics import metrics, track_provider_call
from stripe_integration.observability.tracing import trace_operation

logger = get_logger(__name__)


def to_plain(obj: Any) -> Any:
    """
    Convert a Stripe SDK response into plain dicts and lists.

    StripeObject is not a dict subclass, so dict methods such as get() are
    unavailable on it. Responses are converted once, where they enter.
    """
    if isinstance(obj, stripe.StripeObject):
        return to_plain(obj.to_dict())
    if isinstance(obj, Mapping):
        return {key: to_plain(value) for key, value in obj.items()}
    if isinstance(obj, list):
        return [to_plain(item) for item in obj]
    return obj


class StripeComponent:
    """
    Holds a StripeClient bound to one secret key and API version.

    Subclasses override DEFAULT_API_VERSION.
    """

    DEFAULT_API_VERSION = "2024-06-20"

    def __init__(
        self,
        secret_key: str,
        api_version: str | None = None,
        *,
        client: StripeClient | None = None,
    ) -> None:
        """
        Args:
            secret_key: Stripe secret API key
            api_version: Stripe API version (None = component default)
            client: Pre-built client, mainly for tests

        Raises:
            ConfigurationError: If secret_key is empty
        """
        if not secret_key:
            raise ConfigurationError("Missing Stripe secret key")
        self.api_version = api_version or self.DEFAULT_API_VERSION
        self._client = client or StripeClient(secret_key, stripe_version=self.api_version)

    async def _call(
        self, operation: str, method: Callable[..., Any], params: dict[str, Any]
    ) -> Any:
        """
        Invoke a Stripe SDK method off the event loop.

        Raises:
            UpstreamError: On any failure, keeping the original message and
                the Stripe error code when there is one
        """
        try:
            with trace_operation(f"stripe.{operation}", operation=operation):
                with track_provider_call(operation):
                    result = await asyncio.to_thread(method, params=params)
            return to_plain(result)
        except stripe.StripeError as exc:
            code = getattr(exc, "code", None)
            message = exc.user_message or str(exc)
            logger.error(
                "stripe_call_failed",
                operation=operation,
                error=message,
                error_type=type(exc).__name__,
                code=code,
            )
            metrics.record_error("upstream", operation)
            raise UpstreamError(message, code=code) from exc
        except Exception as exc:
            logger.error(
                "stripe_call_failed",
                operation=operation,
                error=str(exc),
                error_type=type(exc).__name__,
            )
            metrics.record_error("upstream", operation)
            raise UpstreamError(str(exc) or type(exc).__name__) from exc
