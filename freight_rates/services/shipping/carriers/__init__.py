from freight_rates.services.shipping.carriers.canpar import CanparCarrier
from freight_rates.services.shipping.carriers.eshipplus import EShipPlusCarrier
from freight_rates.services.shipping.carriers.polaris import PolarisTransportationCarrier

__all__ = ["CanparCarrier", "EShipPlusCarrier", "PolarisTransportationCarrier"]
