"""
Carrier registry: maps a carrier key to the adapter class that rates it.

Adding a carrier is a ``register_carrier`` call, not a new branch.
"""
from typing import Dict, Optional, Type

from freight_rates.core.config import Settings
from freight_rates.core.enums import CarrierKey
from freight_rates.core.exceptions import UnsupportedCarrierError
from freight_rates.services.shipping.base import BaseCarrier
from freight_rates.services.shipping.carriers import (
    CanparCarrier,
    EShipPlusCarrier,
    PolarisTransportationCarrier,
)
from freight_rates.services.shipping.config_provider import CarrierConfigProvider

SUPPORTED_CARRIERS: Dict[str, Type[BaseCarrier]] = {
    CarrierKey.ESHIPPLUS.value: EShipPlusCarrier,
    CarrierKey.CANPAR.value: CanparCarrier,
    CarrierKey.POLARISTRANSPORTATION.value: PolarisTransportationCarrier,
}


def register_carrier(carrier_code: str, carrier_class: Type[BaseCarrier]) -> None:
    SUPPORTED_CARRIERS[carrier_code.upper()] = carrier_class


def is_supported(carrier_code: Optional[str]) -> bool:
    return bool(carrier_code) and carrier_code.upper() in SUPPORTED_CARRIERS


def get_carrier(
    carrier_code: str,
    config_provider: CarrierConfigProvider,
    settings: Optional[Settings] = None,
) -> BaseCarrier:
    """
    Factory function to get the appropriate carrier by code

    Args:
        carrier_code: Carrier key, case-insensitive (e.g. "canpar")
        config_provider: Source of credentials and endpoints
        settings: Optional settings override

    Returns:
        An instance of the appropriate carrier class

    Raises:
        UnsupportedCarrierError: If the carrier code is not supported
    """
    if not is_supported(carrier_code):
        raise UnsupportedCarrierError(
            f"Carrier '{carrier_code}' is not supported",
            details={"carrier": carrier_code},
        )
    return SUPPORTED_CARRIERS[carrier_code.upper()](config_provider, settings)
