"""
Webhook Handling - Signature verification and event dispatch.

Raw bytes are verified before any field of the event is trusted. Each
verified event is delivered to at most one handler.
"""

import inspect
from collections.abc import Awaitable, Callable, Iterator, Mapping
from dataclasses import dataclass
from typing import Any

import stripe
from stripe import StripeClient
from structlog import get_logger

from stripe_integration.exceptions import ConfigurationError, SignatureError
from stripe_integration.models.api import WebhookAck
from stripe_integration.models.domain import ProviderObject, VerifiedEvent
from stripe_integration.observability.logging import log_context
from stripe_integration.observability.metrics import metrics
from stripe_integration.services.stripe_client import StripeComponent, to_plain

logger = get_logger(__name__)

EventCallback = Callable[[ProviderObject], Awaitable[None] | None]


class HandlerRegistry(Mapping[str, EventCallback]):
    """
    Event type -> handler mapping.

    Registering a type twice replaces the earlier handler (last write wins)
    and logs webhook_handler_replaced.
    """

    def __init__(self, handlers: Mapping[str, EventCallback] | None = None) -> None:
        self._handlers: dict[str, EventCallback] = {}
        for event_type, handler in (handlers or {}).items():
            self.register(event_type, handler)

    def register(self, event_type: str, handler: EventCallback) -> None:
        if not event_type:
            raise ValueError("event_type cannot be empty")
        if event_type in self._handlers:
            logger.warning("webhook_handler_replaced", event_type=event_type)
        self._handlers[event_type] = handler

    def on(self, event_type: str) -> Callable[[EventCallback], EventCallback]:
        """
        Decorator form of register.

        Usage:
            @registry.on("checkout.session.completed")
            async def fulfil(session: ProviderObject) -> None: ...
        """

        def decorator(handler: EventCallback) -> EventCallback:
            self.register(event_type, handler)
            return handler

        return decorator

    def __getitem__(self, event_type: str) -> EventCallback:
        return self._handlers[event_type]

    def __iter__(self) -> Iterator[str]:
        return iter(self._handlers)

    def __len__(self) -> int:
        return len(self._handlers)


@dataclass(frozen=True)
class WebhookResponse:
    """Framework-neutral HTTP response for a webhook delivery."""

    status_code: int
    content: dict[str, Any] | str


class WebhookHandler(StripeComponent):
    """
    Verifies Stripe webhook payloads and dispatches them to handlers.

    Two modes share the same pipeline:
    - handle_raw: failures propagate to the caller
    - handle_request: failures become a 400 "Webhook Error" response
    """

    DEFAULT_API_VERSION = "2025-08-27.basil"

    def __init__(
        self,
        secret_key: str,
        endpoint_secret: str,
        api_version: str | None = None,
        *,
        client: StripeClient | None = None,
    ) -> None:
        """
        Args:
            secret_key: Stripe secret API key
            endpoint_secret: Webhook signing secret (whsec_...)
            api_version: Stripe API version (None = component default)
            client: Pre-built client, mainly for tests

        Raises:
            ConfigurationError: If either secret is empty
        """
        super().__init__(secret_key, api_version, client=client)
        if not endpoint_secret:
            raise ConfigurationError("Missing Stripe webhook signing secret")
        self.endpoint_secret = endpoint_secret

    def verify(self, payload: bytes, signature: str) -> VerifiedEvent:
        """
        Verify a webhook signature and parse the event.

        Args:
            payload: Raw request body, exactly as received
            signature: Stripe-Signature header value

        Returns:
            Verified event

        Raises:
            SignatureError: If the signature does not match or the body is not a valid event
        """
        try:
            event = to_plain(
                stripe.Webhook.construct_event(  # type: ignore[no-untyped-call]
                    payload, signature, self.endpoint_secret
                )
            )
            verified = VerifiedEvent(
                id=event["id"],
                type=event["type"],
                data_object=ProviderObject(event["data"]["object"]),
                raw=event,
            )
        except stripe.SignatureVerificationError as exc:
            logger.warning("stripe_webhook_signature_invalid", error=str(exc))
            metrics.webhook_signature_failures_total.inc()
            raise SignatureError(str(exc)) from exc
        except Exception as exc:
            logger.warning("stripe_webhook_parsing_failed", error=str(exc))
            metrics.webhook_signature_failures_total.inc()
            raise SignatureError(f"Failed to parse Stripe webhook: {exc}") from exc

        logger.info("stripe_webhook_verified", event_id=verified.id, event_type=verified.type)
        return verified

    async def dispatch(
        self, event: VerifiedEvent, handlers: Mapping[str, EventCallback]
    ) -> VerifiedEvent:
        """
        Deliver a verified event to its handler, if one is registered.

        Unmatched event types are accepted without error. Handler failures
        propagate unchanged.
        """
        handler = handlers.get(event.type)
        if handler is None:
            logger.info("stripe_webhook_ignored", event_id=event.id, event_type=event.type)
            metrics.record_webhook_event(event.type, "ignored")
            return event

        try:
            result = handler(event.data_object)
            if inspect.isawaitable(result):
                await result
        except Exception as exc:
            logger.error(
                "stripe_webhook_handler_failed",
                event_id=event.id,
                event_type=event.type,
                error=str(exc),
                error_type=type(exc).__name__,
            )
            metrics.record_webhook_event(event.type, "handler_failed")
            raise

        logger.info("stripe_webhook_dispatched", event_id=event.id, event_type=event.type)
        metrics.record_webhook_event(event.type, "dispatched")
        return event

    async def handle_raw(
        self, payload: bytes, signature: str, handlers: Mapping[str, EventCallback]
    ) -> VerifiedEvent:
        """Verify then dispatch. Every failure propagates to the caller."""
        event = self.verify(payload, signature)
        with log_context(event_id=event.id, event_type=event.type):
            return await self.dispatch(event, handlers)

    async def handle_request(
        self, payload: bytes, signature: str, handlers: Mapping[str, EventCallback]
    ) -> WebhookResponse:
        """
        HTTP-facing variant of handle_raw.

        Returns:
            200 with {"received": true} on success, 400 with
            "Webhook Error: <message>" on any failure
        """
        try:
            await self.handle_raw(payload, signature, handlers)
        except Exception as exc:
            logger.warning("stripe_webhook_rejected", error=str(exc), error_type=type(exc).__name__)
            return WebhookResponse(status_code=400, content=f"Webhook Error: {exc}")
        return WebhookResponse(status_code=200, content=WebhookAck(received=True).model_dump())
