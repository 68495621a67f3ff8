"""
Revenue Reporting - Charge aggregation, refunds and payment listing.

Revenue figures are computed from charge listings in minor currency units.
No currency conversion is applied: totals simply add up charge amounts.
"""

from typing import Any

from stripe import StripeClient
from structlog import get_logger

from stripe_integration.models.domain import (
    ChargeRecord,
    PaymentIntentPage,
    ProviderObject,
    RefundResult,
    RevenueFilter,
    RevenueResult,
)
from stripe_integration.services import validation
from stripe_integration.services.stripe_client import StripeComponent

logger = get_logger(__name__)

CHARGE_PAGE_SIZE = 100
DEFAULT_LIST_LIMIT = 50


class RevenueHandler(StripeComponent):
    """
    Aggregates Stripe charges into revenue totals.

    Each listing request reads at most CHARGE_PAGE_SIZE charges per page and
    RevenueFilter.max_pages pages (one by default). When Stripe reports more
    charges than were read, the result is flagged as truncated.
    """

    DEFAULT_API_VERSION = "2024-10-01"

    def __init__(
        self,
        secret_key: str,
        api_version: str | None = None,
        *,
        client: StripeClient | None = None,
        default_currency: str = "usd",
    ) -> None:
        super().__init__(secret_key, api_version, client=client)
        self.default_currency = default_currency

    async def total_revenue(self, revenue_filter: RevenueFilter | None = None) -> RevenueResult:
        """
        Sum charge amounts within the filter window.

        If the filter names a metadata key/value, only matching charges count.
        """
        revenue_filter = revenue_filter or RevenueFilter()
        charges, truncated = await self._list_charges(revenue_filter)

        if revenue_filter.metadata_key is not None:
            key = revenue_filter.metadata_key
            value = revenue_filter.metadata_value
            charges = [charge for charge in charges if charge.matches(key, value)]

        result = RevenueResult(
            total=sum(charge.amount for charge in charges),
            currency=(charges[0].currency if charges else None) or self.default_currency,
            count=len(charges),
            truncated=truncated,
        )
        logger.info(
            "revenue_computed",
            total=result.total,
            currency=result.currency,
            count=result.count,
            truncated=result.truncated,
            metadata_key=revenue_filter.metadata_key,
        )
        return result

    async def revenue_by_metadata(
        self, key: str, value: str, revenue_filter: RevenueFilter | None = None
    ) -> RevenueResult:
        """Sum charges whose metadata[key] equals value exactly."""
        revenue_filter = revenue_filter or RevenueFilter()
        return await self.total_revenue(
            RevenueFilter(
                start=revenue_filter.start,
                end=revenue_filter.end,
                metadata_key=key,
                metadata_value=value,
                max_pages=revenue_filter.max_pages,
            )
        )

    async def refund_payment(
        self, payment_intent_id: str, amount_minor: int | None = None
    ) -> RefundResult:
        """
        Refund a PaymentIntent.

        Args:
            payment_intent_id: Stripe PaymentIntent ID (pi_...)
            amount_minor: Amount to refund (None = full refund)

        Raises:
            ValidationError: If the id is empty or the amount is not positive
            UpstreamError: If Stripe rejects the refund
        """
        payment_intent_id = validation.require_payment_reference(payment_intent_id)
        amount_minor = validation.require_refund_amount(amount_minor)

        params: dict[str, Any] = {"payment_intent": payment_intent_id}
        if amount_minor is not None:
            params["amount"] = amount_minor

        logger.info(
            "creating_stripe_refund",
            payment_intent_id=payment_intent_id,
            amount_minor=amount_minor,
        )
        refund = await self._call("refunds.create", self._client.refunds.create, params)

        result = RefundResult(
            refund_id=refund["id"],
            amount=refund.get("amount"),
            status=refund.get("status"),
            raw=ProviderObject(refund),
        )
        logger.info(
            "stripe_refund_created",
            refund_id=result.refund_id,
            status=result.status,
            amount_minor=result.amount,
        )
        return result

    async def list_payments(self, limit: int = DEFAULT_LIST_LIMIT) -> PaymentIntentPage:
        """List the most recent PaymentIntents."""
        limit = validation.require_positive_limit(limit)
        page = await self._call(
            "payment_intents.list", self._client.payment_intents.list, {"limit": limit}
        )
        return PaymentIntentPage(
            payments=tuple(ProviderObject(item) for item in page.get("data") or []),
            has_more=bool(page.get("has_more")),
        )

    async def _list_charges(self, revenue_filter: RevenueFilter) -> tuple[list[ChargeRecord], bool]:
        """
        Read charges for the filter window.

        Returns:
            (charges, truncated) where truncated means Stripe has more charges
            than max_pages allowed reading
        """
        params = self._listing_params(revenue_filter)
        charges: list[ChargeRecord] = []
        has_more = False

        for _ in range(revenue_filter.max_pages):
            page = await self._call("charges.list", self._client.charges.list, params)
            batch = [ChargeRecord.from_provider(item) for item in page.get("data") or []]
            charges.extend(batch)
            has_more = bool(page.get("has_more"))
            if not has_more or not batch or not batch[-1].id:
                break
            params = {**params, "starting_after": batch[-1].id}

        if has_more:
            logger.warning(
                "charge_listing_truncated",
                charges_read=len(charges),
                max_pages=revenue_filter.max_pages,
            )
        return charges, has_more

    @staticmethod
    def _listing_params(revenue_filter: RevenueFilter) -> dict[str, Any]:
        params: dict[str, Any] = {"limit": CHARGE_PAGE_SIZE}
        start = (
            validation.to_unix_seconds(revenue_filter.start)
            if revenue_filter.start is not None
            else None
        )
        end = (
            validation.to_unix_seconds(revenue_filter.end)
            if revenue_filter.end is not None
            else None
        )
        validation.require_ordered_window(start, end)

        created: dict[str, int] = {}
        if start is not None:
            created["gte"] = start
        if end is not None:
            created["lte"] = end
        if created:
            params["created"] = created
        return params
