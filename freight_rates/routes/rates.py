import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends

from freight_rates.core.config import Settings, get_settings
from freight_rates.core.security import ApiKeyValidator
from freight_rates.dependencies import get_aggregator, get_api_key_validator, get_config_provider
from freight_rates.schemas.rates import CanonicalRateRequest, UniversalRateRequest
from freight_rates.services.shipping.aggregator import UniversalRateAggregator
from freight_rates.services.shipping.config_provider import CarrierConfigProvider
from freight_rates.services.shipping.factory import get_carrier

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/rates",
    tags=["rates"],
)


@router.post("/universal")
async def get_universal_rates(
    request: UniversalRateRequest,
    validator: ApiKeyValidator = Depends(get_api_key_validator),
    aggregator: UniversalRateAggregator = Depends(get_aggregator),
) -> Dict[str, Any]:
    """Rates from every carrier enabled for the company, cheapest first."""
    await validator.validate(request.api_key)
    result = await aggregator.get_rates(request)
    return {"success": True, "data": result.to_wire()}


@router.post("/{carrier_code}")
async def get_carrier_rates(
    carrier_code: str,
    request: CanonicalRateRequest,
    validator: ApiKeyValidator = Depends(get_api_key_validator),
    config_provider: CarrierConfigProvider = Depends(get_config_provider),
    settings: Settings = Depends(get_settings),
) -> Dict[str, Any]:
    """Rates from a single carrier (canpar, eshipplus, polaristransportation)."""
    await validator.validate(request.api_key)
    carrier = get_carrier(carrier_code, config_provider, settings)
    logger.info(f"Single-carrier rate request for {carrier.carrier_code}")
    response = await carrier.get_rates(request)
    return {"success": True, "data": response.to_wire()}
