"""
Webhook Routes - HTTP adapter around WebhookHandler.handle_request.

The body must reach the handler unparsed: signature verification is done
over the exact bytes Stripe sent.
"""

from collections.abc import Mapping

from fastapi import APIRouter, Request, Response
from fastapi.responses import JSONResponse, PlainTextResponse

from stripe_integration.models.api import WebhookAck
from stripe_integration.services.webhook import EventCallback, WebhookHandler

SIGNATURE_HEADER = "stripe-signature"


def create_webhook_router(
    handler: WebhookHandler,
    handlers: Mapping[str, EventCallback],
    path: str = "/v1/webhooks/stripe",
) -> APIRouter:
    """
    Build a router exposing one POST endpoint for Stripe webhooks.

    Responses:
        200 application/json {"received": true}
        400 text/plain "Webhook Error: <message>"
    """
    router = APIRouter(tags=["webhooks"])

    @router.post(
        path,
        response_model=WebhookAck,
        responses={400: {"description": "Signature verification or handler failure"}},
    )
    async def stripe_webhook(request: Request) -> Response:
        """Verify and dispatch a Stripe webhook event."""
        payload = await request.body()
        signature = request.headers.get(SIGNATURE_HEADER, "")

        outcome = await handler.handle_request(payload, signature, handlers)
        if isinstance(outcome.content, str):
            return PlainTextResponse(outcome.content, status_code=outcome.status_code)
        return JSONResponse(outcome.content, status_code=outcome.status_code)

    return router
