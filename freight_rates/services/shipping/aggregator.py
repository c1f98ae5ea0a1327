"""
Universal rate aggregation.

Queries every carrier enabled for a company at the same time, keeps each
carrier's outcome independent of the others, and merges whatever came back
into one price-sorted list plus a success/failure summary.
"""

import asyncio
import logging
from typing import Any, Callable, List, Optional, Tuple

from freight_rates.core.config import Settings, get_settings
from freight_rates.core.enums import CarrierKey
from freight_rates.core.exceptions import BusinessError, UnsupportedCarrierError, ValidationError
from freight_rates.core.utils import dig, parse_number, utc_now_iso
from freight_rates.schemas.rates import (
    AggregatedRateResult,
    CanonicalRateRequest,
    CanonicalRateResponse,
    CarrierError,
    CarrierResults,
    RateQuote,
    RequestInfo,
    SourceCarrier,
    UniversalRateRequest,
)
from freight_rates.services.shipping.config_provider import CarrierConfigProvider, EnabledCarrier
from freight_rates.services.shipping.factory import get_carrier, is_supported
from freight_rates.services.shipping.payload_builder import standardize_rate_request

logger = logging.getLogger(__name__)

DISPATCHABLE_CARRIERS = {key.value for key in CarrierKey}


def rate_price(rate: RateQuote) -> Optional[float]:
    """The price used for sorting: totalCharges, then pricing.total, then total."""
    if rate.total_charges is not None:
        return rate.total_charges
    extra = rate.model_extra or {}
    price = parse_number(dig(extra, "pricing", "total"))
    if price is None:
        price = parse_number(extra.get("total"))
    return price


def sort_rates(rates: List[RateQuote]) -> List[RateQuote]:
    """Ascending by price; unpriced rates go last, ties keep their order."""
    def key(rate: RateQuote) -> Tuple[bool, float]:
        price = rate_price(rate)
        return (price is None, price if price is not None else 0.0)

    return sorted(rates, key=key)


def _error_message(error: BaseException) -> str:
    return getattr(error, "message", None) or str(error) or type(error).__name__


class UniversalRateAggregator:
    """Fan a rate request out to all enabled carriers and merge the results."""

    def __init__(
        self,
        config_provider: CarrierConfigProvider,
        settings: Optional[Settings] = None,
        carrier_factory: Callable[..., Any] = get_carrier,
    ):
        self.config_provider = config_provider
        self.settings = settings or get_settings()
        self.carrier_factory = carrier_factory

    @staticmethod
    def validate_request(request: UniversalRateRequest) -> None:
        if not request.company_id:
            raise ValidationError("companyId is required")
        if not request.origin_address:
            raise ValidationError("originAddress is required")
        if not request.destination_address:
            raise ValidationError("destinationAddress is required")
        if not request.packages:
            raise ValidationError("packages array is required and must not be empty")

    async def get_rates(self, request: UniversalRateRequest) -> AggregatedRateResult:
        self.validate_request(request)
        logger.info(f"Getting universal rates for company {request.company_id}")

        carriers = await self.config_provider.get_enabled_carriers(request.company_id)
        if not carriers:
            raise BusinessError(
                "No carriers are enabled for this company. Please configure carriers first.",
                details={"companyId": request.company_id},
            )
        logger.info(f"Found {len(carriers)} enabled carriers: {[c.carrier_id for c in carriers]}")

        canonical = standardize_rate_request(
            company_id=request.company_id,
            origin_address=request.origin_address,
            destination_address=request.destination_address,
            packages=request.packages,
            shipment_info=request.shipment_info,
        )

        results = await asyncio.gather(
            *[self._fetch_carrier_rates(carrier, canonical) for carrier in carriers],
            return_exceptions=True,
        )

        all_rates: List[RateQuote] = []
        errors: List[CarrierError] = []
        for carrier, result in zip(carriers, results):
            if isinstance(result, BaseException):
                logger.warning(f"{carrier.carrier_id}: Failed to fetch rates - {_error_message(result)}")
                errors.append(CarrierError(carrier=carrier.carrier_id, error=_error_message(result)))
                continue

            source = SourceCarrier(
                system=carrier.carrier_id,
                name=carrier.name,
                key=carrier.carrier_key or carrier.carrier_id,
            )
            for rate in result.available_rates:
                all_rates.append(rate.model_copy(update={
                    "source_carrier_system": carrier.carrier_id,
                    "source_carrier": source,
                }))
            logger.info(f"{carrier.carrier_id}: {len(result.available_rates)} rates fetched")

        all_rates = sort_rates(all_rates)
        logger.info(f"Universal rates: {len(all_rates)} total rates from {len(carriers)} carriers")

        return AggregatedRateResult(
            available_rates=all_rates,
            carrier_results=CarrierResults(
                successful=len(carriers) - len(errors),
                failed=len(errors),
                errors=errors,
            ),
            request_info=RequestInfo(
                company_id=request.company_id,
                carriers_queried=[carrier.carrier_id for carrier in carriers],
                timestamp=utc_now_iso(),
            ),
        )

    async def _fetch_carrier_rates(self, carrier: EnabledCarrier, request: CanonicalRateRequest) -> CanonicalRateResponse:
        carrier_code = (carrier.carrier_id or "").upper()
        if carrier_code not in DISPATCHABLE_CARRIERS or not is_supported(carrier_code):
            raise UnsupportedCarrierError(f"Carrier {carrier.carrier_id} is not supported for rate fetching")

        logger.info(f"Fetching rates from {carrier_code}")
        adapter = self.carrier_factory(carrier_code, self.config_provider, self.settings)
        return await adapter.get_rates(request)
