"""
Shared enums and constants used across the rate pipeline.
"""

from enum import Enum


class CarrierKey(str, Enum):
    """Carrier identifiers the aggregator is allowed to dispatch to."""
    ESHIPPLUS = "ESHIPPLUS"
    CANPAR = "CANPAR"
    POLARISTRANSPORTATION = "POLARISTRANSPORTATION"


class ServiceLevel(str, Enum):
    ECONOMY = "economy"
    EXPRESS = "express"
    PRIORITY = "priority"
    ANY = "any"


class ShipmentType(str, Enum):
    COURIER = "courier"
    FREIGHT = "freight"


class BillingType(str, Enum):
    """Categories used on billingDetails rows"""
    FREIGHT = "freight"
    FUEL = "fuel"
    ACCESSORIAL = "accessorial"
    SERVICE = "service"
    TAX = "tax"


class ApiOperation(str, Enum):
    RATE = "rate"
