"""
Main Application - FastAPI application factory.
"""

import time
from collections.abc import AsyncIterator, Awaitable, Callable, Mapping
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response
from fastapi.responses import PlainTextResponse

from stripe_integration.api.webhook_routes import create_webhook_router
from stripe_integration.config import Settings, get_settings
from stripe_integration.observability import get_logger, metrics, setup_logging, setup_tracing
from stripe_integration.observability.metrics import get_metrics_handler
from stripe_integration.observability.tracing import instrument_fastapi
from stripe_integration.services.webhook import EventCallback, HandlerRegistry, WebhookHandler

logger = get_logger(__name__)


def create_app(
    handlers: Mapping[str, EventCallback] | None = None,
    config: Settings | None = None,
) -> FastAPI:
    """
    Build the webhook-receiving application.

    Args:
        handlers: Event type -> handler mapping (a HandlerRegistry or plain dict)
        config: Settings to use instead of the environment-loaded ones

    Raises:
        ConfigurationError: If the Stripe secret key or signing secret is missing
    """
    config = config or get_settings()
    setup_logging(config)
    setup_tracing(config)

    webhook_handler = WebhookHandler(
        secret_key=config.stripe_secret_key,
        endpoint_secret=config.stripe_webhook_secret,
        api_version=config.stripe_api_version,
    )
    registry = handlers if handlers is not None else HandlerRegistry()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info(
            "application_starting",
            service=config.service_name,
            version=config.service_version,
            webhook_path=config.webhook_path,
            handled_event_types=sorted(registry),
        )
        yield
        logger.info("application_shutting_down")

    app = FastAPI(
        title=config.service_name,
        version=config.service_version,
        lifespan=lifespan,
    )
    app.state.webhook_handler = webhook_handler
    app.state.handlers = registry

    instrument_fastapi(app, config)

    @app.middleware("http")
    async def logging_middleware(
        request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        """Log all HTTP requests with timing."""
        start_time = time.time()
        endpoint = request.url.path
        method = request.method
        request_id = request.headers.get("X-Request-ID", "unknown")

        logger.info("request_started", method=method, path=endpoint, request_id=request_id)
        try:
            response = await call_next(request)
        except Exception as e:
            duration = time.time() - start_time
            metrics.record_http_request(endpoint, method, 500, duration)
            logger.error(
                "request_failed",
                method=method,
                path=endpoint,
                error=str(e),
                duration_seconds=duration,
                request_id=request_id,
                exc_info=True,
            )
            raise

        duration = time.time() - start_time
        metrics.record_http_request(endpoint, method, response.status_code, duration)
        logger.info(
            "request_completed",
            method=method,
            path=endpoint,
            status_code=response.status_code,
            duration_seconds=duration,
            request_id=request_id,
        )
        return response

    app.include_router(create_webhook_router(webhook_handler, registry, config.webhook_path))

    @app.get("/")
    async def root() -> dict[str, str]:
        """Root endpoint."""
        return {
            "service": config.service_name,
            "version": config.service_version,
            "status": "running",
        }

    if config.metrics_enabled:
        render_metrics = get_metrics_handler()

        @app.get("/metrics")
        async def metrics_endpoint() -> Response:
            """Prometheus metrics in text format."""
            return PlainTextResponse(render_metrics())

    return app


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "stripe_integration.main:create_app",
        factory=True,
        host=settings.api_host,
        port=settings.api_port,
        log_level=settings.log_level.lower(),
    )
