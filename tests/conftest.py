"""
Pytest Configuration and Centralized Fixtures.

Provides reusable mocks and fixtures for testing:
- Stripe client with mocked resource methods
- Checkout, revenue and webhook handlers bound to the mock client
- Sample charges and webhook events
- Signed webhook payloads for real signature verification
"""

import hashlib
import hmac
import json
import os
import time
from typing import Any
from unittest.mock import MagicMock

import pytest
import stripe

# Set required environment variables BEFORE importing application modules
os.environ.setdefault("STRIPE_SECRET_KEY", "sk_test_fake_key")
os.environ.setdefault("STRIPE_WEBHOOK_SECRET", "whsec_test_fake_secret")
os.environ.setdefault("LOG_FORMAT", "console")

from stripe_integration.config import Settings
from stripe_integration.services.checkout import CheckoutHandler
from stripe_integration.services.revenue import RevenueHandler
from stripe_integration.services.webhook import WebhookHandler

TEST_SECRET_KEY = "sk_test_123"
TEST_WEBHOOK_SECRET = "whsec_test"


def stripe_object(values: dict[str, Any]) -> stripe.StripeObject:
    """Build the object type the SDK returns (not a dict subclass on current releases)."""
    return stripe.StripeObject.construct_from(values, TEST_SECRET_KEY)


def stripe_list(data: list[dict[str, Any]], has_more: bool = False) -> stripe.ListObject:
    """Build a list page the way the SDK returns one."""
    return stripe.ListObject.construct_from(
        {"object": "list", "data": data, "has_more": has_more}, TEST_SECRET_KEY
    )


# ============================================================================
# Stripe Client Fixtures
# ============================================================================


@pytest.fixture
def stripe_client() -> MagicMock:
    """Mock StripeClient exposing the resources the handlers use."""
    client = MagicMock()
    client.checkout.sessions.create = MagicMock(
        return_value=stripe_object(
            {"id": "cs_test_123", "url": "https://checkout.stripe.com/c/cs_test_123"}
        )
    )
    client.charges.list = MagicMock(return_value=stripe_list([]))
    client.refunds.create = MagicMock(
        return_value=stripe_object({"id": "re_1", "amount": 2000, "status": "succeeded"})
    )
    client.payment_intents.list = MagicMock(return_value=stripe_list([]))
    return client


@pytest.fixture
def checkout_handler(stripe_client: MagicMock) -> CheckoutHandler:
    return CheckoutHandler(TEST_SECRET_KEY, client=stripe_client)


@pytest.fixture
def revenue_handler(stripe_client: MagicMock) -> RevenueHandler:
    return RevenueHandler(TEST_SECRET_KEY, client=stripe_client)


@pytest.fixture
def webhook_handler(stripe_client: MagicMock) -> WebhookHandler:
    return WebhookHandler(TEST_SECRET_KEY, TEST_WEBHOOK_SECRET, client=stripe_client)


# ============================================================================
# Charge Fixtures
# ============================================================================


def make_charge(charge_id: str, amount: int, course_id: str | None, currency: str = "usd") -> dict:
    """Build a charge payload shaped like the Stripe API response."""
    return {
        "id": charge_id,
        "object": "charge",
        "amount": amount,
        "currency": currency,
        "created": 1704067200,
        "metadata": {"courseId": course_id} if course_id is not None else {},
    }


@pytest.fixture
def fake_charges() -> stripe.ListObject:
    """One page of three charges tagged c1, c2, c1."""
    return stripe_list(
        [
            make_charge("ch_1", 2000, "c1"),
            make_charge("ch_2", 3000, "c2"),
            make_charge("ch_3", 1500, "c1"),
        ]
    )


# ============================================================================
# Webhook Fixtures
# ============================================================================


@pytest.fixture
def checkout_completed_event() -> dict[str, Any]:
    """Sample checkout.session.completed webhook event."""
    return {
        "id": "evt_1",
        "object": "event",
        "type": "checkout.session.completed",
        "data": {
            "object": {
                "id": "sess_123",
                "object": "checkout.session",
                "amount_total": 2000,
                "currency": "usd",
                "payment_status": "paid",
                "metadata": {"courseId": "c1"},
            }
        },
        "created": 1704067200,
    }


def sign_payload(payload: bytes, secret: str = TEST_WEBHOOK_SECRET, timestamp: int | None = None) -> str:
    """Build a Stripe-Signature header value for payload."""
    timestamp = int(time.time()) if timestamp is None else timestamp
    signed = f"{timestamp}.".encode() + payload
    digest = hmac.new(secret.encode(), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={digest}"


@pytest.fixture
def signed_event(checkout_completed_event: dict[str, Any]) -> tuple[bytes, str]:
    """Raw payload and a valid signature header for checkout_completed_event."""
    payload = json.dumps(checkout_completed_event).encode()
    return payload, sign_payload(payload)


# ============================================================================
# Settings Fixtures
# ============================================================================


@pytest.fixture
def test_settings() -> Settings:
    """Settings with Stripe secrets populated and tracing off."""
    return Settings(
        stripe_secret_key=TEST_SECRET_KEY,
        stripe_webhook_secret=TEST_WEBHOOK_SECRET,
        log_format="console",
        tracing_enabled=False,
    )
