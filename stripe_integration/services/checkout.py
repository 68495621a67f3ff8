"""
Checkout Sessions - Stripe-hosted payment and subscription flows.
"""

from typing import Any

from stripe import StripeClient
from structlog import get_logger

from stripe_integration.exceptions import UpstreamError, ValidationError
from stripe_integration.models.domain import (
    CheckoutDefaults,
    ProviderObject,
    SessionMode,
    SessionRequest,
    SessionResult,
)
from stripe_integration.observability.metrics import metrics
from stripe_integration.services import validation
from stripe_integration.services.stripe_client import StripeComponent

logger = get_logger(__name__)


class CheckoutHandler(StripeComponent):
    """
    Builds Stripe Checkout sessions.

    Payment mode creates a single ad-hoc line item from amount and currency;
    subscription mode references an existing Stripe price.
    """

    DEFAULT_API_VERSION = "2024-06-20"

    def __init__(
        self,
        secret_key: str,
        api_version: str | None = None,
        *,
        client: StripeClient | None = None,
        defaults: CheckoutDefaults | None = None,
    ) -> None:
        super().__init__(secret_key, api_version, client=client)
        self.defaults = defaults or CheckoutDefaults()

    async def create_session(self, request: SessionRequest) -> SessionResult:
        """
        Create a Checkout session.

        Args:
            request: Session parameters

        Returns:
            Session id, redirect URL and the wrapped Stripe object

        Raises:
            ValidationError: If the request is incomplete for its mode
            UpstreamError: If Stripe rejects the request or is unreachable
        """
        try:
            params = self._build_params(request)
        except ValidationError as exc:
            logger.warning("checkout_session_rejected", mode=str(request.mode), error=exc.message)
            metrics.record_checkout_session("unknown", "rejected")
            metrics.record_error("validation", "checkout.sessions.create")
            raise

        logger.info(
            "creating_stripe_checkout_session",
            mode=params["mode"],
            line_items=len(params["line_items"]),
        )

        try:
            session = await self._call(
                "checkout.sessions.create", self._client.checkout.sessions.create, params
            )
        except UpstreamError:
            metrics.record_checkout_session(params["mode"], "failed")
            raise

        result = SessionResult(
            id=session["id"],
            url=session.get("url"),
            raw=ProviderObject(session),
        )
        logger.info("stripe_checkout_session_created", session_id=result.id, mode=params["mode"])
        metrics.record_checkout_session(params["mode"], "created")
        return result

    def _build_params(self, request: SessionRequest) -> dict[str, Any]:
        """Validate the request and build Stripe session parameters."""
        validation.require_redirect_urls(request.success_url, request.cancel_url)
        mode = validation.resolve_mode(request.mode, self.defaults.mode)

        if mode is SessionMode.PAYMENT:
            amount = validation.require_positive_amount(request.amount)
            currency = validation.require_currency(request.currency)
            product_name = (
                request.product_name
                if request.product_name is not None
                else self.defaults.product_name
            )
            line_item: dict[str, Any] = {
                "price_data": {
                    "currency": currency,
                    "product_data": {"name": product_name},
                    "unit_amount": amount,
                },
                "quantity": 1,
            }
        else:
            price_id = validation.require_price_id(request.price_id)
            line_item = {"price": price_id, "quantity": 1}

        params: dict[str, Any] = {
            "payment_method_types": list(self.defaults.payment_method_types),
            "line_items": [line_item],
            "mode": mode.value,
            "success_url": request.success_url,
            "cancel_url": request.cancel_url,
        }
        if request.metadata:
            params["metadata"] = dict(request.metadata)
        return params
