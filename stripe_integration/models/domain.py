"""
Domain Models - Requests, results and provider payload capsules.

All structures are immutable dataclasses. Provider payloads are wrapped in
ProviderObject so only the fields actually used are exposed by name.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from stripe_integration.exceptions import ValidationError


class SessionMode(str, Enum):
    """Checkout session mode."""

    PAYMENT = "payment"
    SUBSCRIPTION = "subscription"


@dataclass(frozen=True)
class ProviderObject:
    """
    Opaque capsule around a Stripe payload.

    Wraps a plain mapping converted from the SDK response. Unknown fields
    stay reachable through get() and raw.
    """

    raw: Mapping[str, Any]

    def get(self, key: str, default: Any = None) -> Any:
        return self.raw.get(key, default)

    @property
    def id(self) -> str | None:
        return self.raw.get("id")

    @property
    def url(self) -> str | None:
        return self.raw.get("url")

    @property
    def amount(self) -> int:
        return self.raw.get("amount") or 0

    @property
    def currency(self) -> str | None:
        return self.raw.get("currency")

    @property
    def metadata(self) -> dict[str, str]:
        return dict(self.raw.get("metadata") or {})


@dataclass(frozen=True)
class CheckoutDefaults:
    """Defaults resolved once at the start of create_session."""

    mode: SessionMode = SessionMode.PAYMENT
    product_name: str = "Product"
    payment_method_types: tuple[str, ...] = ("card",)


@dataclass(frozen=True)
class SessionRequest:
    """
    Parameters for one checkout session.

    Payment mode needs amount (minor units) and currency; subscription mode
    needs price_id. Validation happens in CheckoutHandler.create_session so
    the URL check always runs before the mode-specific checks.
    """

    success_url: str | None
    cancel_url: str | None
    mode: SessionMode | str | None = None
    amount: int | None = None
    currency: str | None = None
    metadata: Mapping[str, str] | None = None
    price_id: str | None = None
    product_name: str | None = None


@dataclass(frozen=True)
class SessionResult:
    """Created checkout session."""

    id: str
    url: str | None
    raw: ProviderObject


@dataclass(frozen=True)
class VerifiedEvent:
    """
    Webhook event whose signature has been accepted.

    Only WebhookHandler.verify builds these from untrusted input.
    """

    id: str
    type: str
    data_object: ProviderObject
    raw: Mapping[str, Any] = field(repr=False)


@dataclass(frozen=True)
class ChargeRecord:
    """Read-only view of a Stripe charge."""

    id: str
    amount: int
    currency: str | None
    metadata: Mapping[str, str]
    created: int | None = None

    @classmethod
    def from_provider(cls, charge: Mapping[str, Any]) -> "ChargeRecord":
        return cls(
            id=charge.get("id", ""),
            amount=charge.get("amount") or 0,
            currency=charge.get("currency"),
            metadata=dict(charge.get("metadata") or {}),
            created=charge.get("created"),
        )

    def matches(self, key: str, value: str) -> bool:
        """Exact, case-sensitive metadata match. Missing keys never match."""
        return key in self.metadata and self.metadata[key] == value


TimestampInput = datetime | int | float | str


@dataclass(frozen=True)
class RevenueFilter:
    """
    Window and attribution filter for revenue queries.

    start and end are inclusive and compared in whole seconds. max_pages
    bounds cursor pagination; the default reads a single page.
    """

    start: TimestampInput | None = None
    end: TimestampInput | None = None
    metadata_key: str | None = None
    metadata_value: str | None = None
    max_pages: int = 1

    def __post_init__(self) -> None:
        if self.max_pages < 1:
            raise ValidationError("max_pages must be at least 1")
        if (self.metadata_key is None) != (self.metadata_value is None):
            raise ValidationError("metadata_key and metadata_value must be given together")


@dataclass(frozen=True)
class RevenueResult:
    """Aggregated revenue in minor units."""

    total: int
    currency: str
    count: int
    truncated: bool = False


@dataclass(frozen=True)
class RefundResult:
    """Created refund."""

    refund_id: str
    amount: int | None
    status: str | None
    raw: ProviderObject


@dataclass(frozen=True)
class PaymentIntentPage:
    """One page of payment intents."""

    payments: tuple[ProviderObject, ...]
    has_more: bool

    def __len__(self) -> int:
        return len(self.payments)
