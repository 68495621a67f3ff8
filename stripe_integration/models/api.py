"""
API Models - Pydantic models for HTTP responses.
"""

from pydantic import BaseModel


class WebhookAck(BaseModel):
    """Acknowledgment returned to Stripe after a webhook is accepted."""

    received: bool = True
