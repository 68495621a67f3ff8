"""
Validation rules for checkout, refund and listing parameters.

Pure functions: each returns the normalized value or raises ValidationError.
"""

import math
from datetime import UTC, datetime
from typing import Any

from stripe_integration.exceptions import ValidationError
from stripe_integration.models.domain import SessionMode, TimestampInput


def resolve_mode(mode: SessionMode | str | None, default: SessionMode) -> SessionMode:
    """Resolve the session mode, falling back to the default when unset."""
    if mode is None:
        return default
    try:
        return SessionMode(mode)
    except ValueError as exc:
        raise ValidationError("Unsupported session mode") from exc


def require_redirect_urls(success_url: str | None, cancel_url: str | None) -> None:
    if not success_url or not cancel_url:
        raise ValidationError("successUrl and cancelUrl are required")


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def require_positive_amount(amount: Any) -> int:
    if not _is_int(amount) or amount <= 0:
        raise ValidationError("Amount must be a positive number for one-time payments")
    return int(amount)


def require_currency(currency: str | None) -> str:
    if not currency:
        raise ValidationError("Currency is required for one-time payments")
    return currency


def require_price_id(price_id: str | None) -> str:
    if not price_id:
        raise ValidationError("priceId required for subscription mode")
    return price_id


def require_payment_reference(payment_intent_id: str | None) -> str:
    if not payment_intent_id:
        raise ValidationError("paymentIntentId is required to refund")
    return payment_intent_id


def require_refund_amount(amount_minor: Any) -> int | None:
    """None means a full refund."""
    if amount_minor is None:
        return None
    if not _is_int(amount_minor) or amount_minor <= 0:
        raise ValidationError("Refund amount must be a positive number")
    return int(amount_minor)


def require_positive_limit(limit: Any) -> int:
    if not _is_int(limit) or limit <= 0:
        raise ValidationError("limit must be greater than 0")
    return int(limit)


def to_unix_seconds(value: TimestampInput) -> int:
    """
    Convert a timestamp to whole Unix seconds, truncating sub-second precision.

    Accepts datetimes (naive values are taken as UTC), ISO-8601 strings and
    numeric Unix timestamps in seconds.
    """
    if isinstance(value, bool):
        raise ValidationError(f"Invalid timestamp: {value!r}")
    if isinstance(value, datetime):
        moment = value if value.tzinfo else value.replace(tzinfo=UTC)
        return math.floor(moment.timestamp())
    if isinstance(value, (int, float)):
        if not math.isfinite(value):
            raise ValidationError(f"Invalid timestamp: {value!r}")
        return math.floor(value)
    if isinstance(value, str):
        try:
            return to_unix_seconds(datetime.fromisoformat(value))
        except ValueError as exc:
            raise ValidationError(f"Invalid timestamp: {value!r}") from exc
    raise ValidationError(f"Invalid timestamp: {value!r}")


def require_ordered_window(start: int | None, end: int | None) -> None:
    if start is not None and end is not None and start > end:
        raise ValidationError("from must not be after to")
