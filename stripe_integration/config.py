"""
Application Configuration - Pydantic Settings for type-safe config.

FAIL FAST - Invalid config is rejected at startup. Stripe secrets are
checked when the components that need them are constructed.
"""

import sys

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from stripe_integration.exceptions import ConfigurationError

VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
VALID_LOG_FORMATS = ("json", "console")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Payment Provider - Stripe
    stripe_secret_key: str = ""  # sk_test_... or sk_live_...
    stripe_webhook_secret: str = ""  # whsec_...
    stripe_api_version: str | None = None  # None = each component's default

    # API Configuration
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    webhook_path: str = "/v1/webhooks/stripe"

    # Service identity
    service_name: str = "stripe-integration"
    service_version: str = "0.1.0"

    # Logging
    log_level: str = "INFO"
    log_format: str = "json"  # json or console

    # Observability
    metrics_enabled: bool = True
    tracing_enabled: bool = False
    otlp_endpoint: str = "http://otel-collector:4317"
    otlp_insecure: bool = True

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @model_validator(mode="after")
    def validate_critical_config(self) -> "Settings":
        """
        FAIL FAST: Reject settings the service cannot run with.
        """
        errors: list[str] = []

        if self.log_level.upper() not in VALID_LOG_LEVELS:
            errors.append(f"LOG_LEVEL must be one of {', '.join(VALID_LOG_LEVELS)}")
        if self.log_format not in VALID_LOG_FORMATS:
            errors.append(f"LOG_FORMAT must be one of {', '.join(VALID_LOG_FORMATS)}")
        if not self.webhook_path.startswith("/"):
            errors.append(f"WEBHOOK_PATH must start with '/', got: {self.webhook_path}")

        if errors:
            error_msg = "\n".join(
                [
                    "",
                    "=" * 60,
                    "CRITICAL CONFIGURATION ERROR - SERVICE CANNOT START",
                    "=" * 60,
                    *[f"  ✗ {e}" for e in errors],
                    "=" * 60,
                    "",
                ]
            )
            print(error_msg, file=sys.stderr)
            raise ConfigurationError(error_msg)

        return self


# Global settings instance - validates at import time
settings = Settings()


def get_settings() -> Settings:
    """Get application settings instance."""
    return settings
