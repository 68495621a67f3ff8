"""
Tests for the webhook HTTP endpoint and application factory.

Requests carry real HMAC signatures so the full verify + dispatch path runs.
"""

import json
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient
from httpx import ASGITransport, AsyncClient

from conftest import sign_payload
from stripe_integration.config import Settings
from stripe_integration.exceptions import ConfigurationError
from stripe_integration.main import create_app
from stripe_integration.services.webhook import HandlerRegistry

WEBHOOK_PATH = "/v1/webhooks/stripe"


@pytest.fixture
def fulfil() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def client(test_settings, fulfil) -> TestClient:
    registry = HandlerRegistry({"checkout.session.completed": fulfil})
    return TestClient(create_app(registry, test_settings))


class TestWebhookEndpoint:
    """Tests for POST /v1/webhooks/stripe."""

    def test_valid_event_acknowledged(self, client, fulfil, signed_event):
        payload, signature = signed_event

        response = client.post(
            WEBHOOK_PATH, content=payload, headers={"stripe-signature": signature}
        )

        assert response.status_code == 200
        assert response.json() == {"received": True}
        fulfil.assert_awaited_once()
        assert fulfil.await_args.args[0].id == "sess_123"

    def test_unhandled_event_acknowledged(self, client, fulfil):
        payload = json.dumps(
            {"id": "evt_2", "type": "invoice.paid", "data": {"object": {"id": "in_1"}}}
        ).encode()

        response = client.post(
            WEBHOOK_PATH, content=payload, headers={"stripe-signature": sign_payload(payload)}
        )

        assert response.status_code == 200
        assert response.json() == {"received": True}
        fulfil.assert_not_awaited()

    def test_bad_signature_rejected(self, client, fulfil, signed_event):
        payload, _ = signed_event

        response = client.post(
            WEBHOOK_PATH, content=payload, headers={"stripe-signature": "t=1,v1=deadbeef"}
        )

        assert response.status_code == 400
        assert response.headers["content-type"].startswith("text/plain")
        assert response.text.startswith("Webhook Error: ")
        fulfil.assert_not_awaited()

    def test_missing_signature_header_rejected(self, client, signed_event):
        payload, _ = signed_event

        response = client.post(WEBHOOK_PATH, content=payload)

        assert response.status_code == 400
        assert "Webhook Error" in response.text

    def test_handler_failure_rejected(self, test_settings, signed_event):
        payload, signature = signed_event
        failing = MagicMock(side_effect=RuntimeError("inventory unavailable"))
        app = create_app({"checkout.session.completed": failing}, test_settings)

        response = TestClient(app).post(
            WEBHOOK_PATH, content=payload, headers={"stripe-signature": signature}
        )

        assert response.status_code == 400
        assert response.text == "Webhook Error: inventory unavailable"

    @pytest.mark.asyncio
    async def test_async_client(self, test_settings, fulfil, signed_event):
        payload, signature = signed_event
        app = create_app({"checkout.session.completed": fulfil}, test_settings)

        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
            response = await ac.post(
                WEBHOOK_PATH, content=payload, headers={"stripe-signature": signature}
            )

        assert response.status_code == 200
        fulfil.assert_awaited_once()


class TestCreateApp:
    """Tests for the application factory."""

    def test_missing_secret_key_fails_at_startup(self):
        config = Settings(_env_file=None, stripe_secret_key="", stripe_webhook_secret="whsec_x")
        with pytest.raises(ConfigurationError):
            create_app({}, config)

    def test_missing_signing_secret_fails_at_startup(self):
        config = Settings(_env_file=None, stripe_secret_key="sk_test_x", stripe_webhook_secret="")
        with pytest.raises(ConfigurationError):
            create_app({}, config)

    def test_custom_webhook_path(self, signed_event):
        payload, signature = signed_event
        config = Settings(
            _env_file=None,
            stripe_secret_key="sk_test_123",
            stripe_webhook_secret="whsec_test",
            webhook_path="/hooks/stripe",
        )

        response = TestClient(create_app({}, config)).post(
            "/hooks/stripe", content=payload, headers={"stripe-signature": signature}
        )

        assert response.status_code == 200

    def test_root(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert response.json()["status"] == "running"

    def test_metrics_endpoint(self, client, signed_event):
        payload, signature = signed_event
        client.post(WEBHOOK_PATH, content=payload, headers={"stripe-signature": signature})

        response = client.get("/metrics")

        assert response.status_code == 200
        assert "stripe_integration_webhook_events_total" in response.text

    def test_metrics_can_be_disabled(self, test_settings):
        config = test_settings.model_copy(update={"metrics_enabled": False})
        response = TestClient(create_app({}, config)).get("/metrics")
        assert response.status_code == 404
