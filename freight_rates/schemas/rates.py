"""
Canonical rate request/response shapes shared by every carrier adapter.

Attributes are snake_case in Python and camelCase on the wire. Numeric package
fields are kept as received (number or string) so each adapter can apply its
own defaults and report invalid values by item index.
"""
from typing import Any, Dict, List, Optional, Union

from pydantic import AliasChoices, ConfigDict, Field, model_validator

from freight_rates.schemas.base import BaseSchema

Number = Union[float, str]


class Address(BaseSchema):
    company: Optional[str] = None
    street: Optional[str] = None
    street2: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = Field(
        None, validation_alias=AliasChoices("state", "province", "stateProvince", "stateProv")
    )
    postal_code: Optional[str] = Field(
        None, validation_alias=AliasChoices("postalCode", "postal_code", "zip", "zipPostal")
    )
    country: Optional[str] = None
    contact: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    special_instructions: Optional[str] = None


class PackageItem(BaseSchema):
    description: Optional[str] = None
    weight: Optional[Number] = None
    length: Optional[Number] = None
    width: Optional[Number] = None
    height: Optional[Number] = None
    packaging_quantity: Optional[Number] = None
    declared_value: Optional[Number] = None
    freight_class: Optional[str] = None
    stackable: Optional[bool] = None


class TimeWindow(BaseSchema):
    earliest: Optional[str] = None
    latest: Optional[str] = None


def _pascal_address(data: Dict[str, Any]) -> Dict[str, Any]:
    country = data.get("Country")
    if isinstance(country, dict):
        country = country.get("Code")
    return {
        "company": data.get("Description"),
        "street": data.get("Street"),
        "street2": data.get("StreetExtra"),
        "city": data.get("City"),
        "state": data.get("State"),
        "postalCode": data.get("PostalCode"),
        "country": country,
        "contact": data.get("Contact"),
        "phone": data.get("Phone"),
        "email": data.get("Email"),
        "specialInstructions": data.get("SpecialInstructions"),
    }


def _pascal_item(data: Dict[str, Any]) -> Dict[str, Any]:
    freight_class = data.get("FreightClass")
    if isinstance(freight_class, dict):
        freight_class = freight_class.get("FreightClass")
    return {
        "description": data.get("Description"),
        "weight": data.get("Weight"),
        "length": data.get("Length"),
        "width": data.get("Width"),
        "height": data.get("Height"),
        "packagingQuantity": data.get("PackagingQuantity"),
        "declaredValue": data.get("DeclaredValue"),
        "freightClass": freight_class,
        "stackable": data.get("Stackable"),
    }


def _window_time(data: Dict[str, Any], key: str) -> Optional[str]:
    value = data.get(key)
    if isinstance(value, dict):
        return value.get("Time")
    return value


def from_eshipplus_style(data: Dict[str, Any]) -> Dict[str, Any]:
    """Translate an eShipPlus-style PascalCase request into canonical keys."""
    converted = {
        "bookingReferenceNumber": data.get("BookingReferenceNumber"),
        "bookingReferenceNumberType": data.get("BookingReferenceNumberType"),
        "shipmentBillType": data.get("ShipmentBillType"),
        "shipmentDate": data.get("ShipmentDate"),
        "pickupWindow": {
            "earliest": _window_time(data, "EarliestPickup"),
            "latest": _window_time(data, "LatestPickup"),
        },
        "deliveryWindow": {
            "earliest": _window_time(data, "EarliestDelivery"),
            "latest": _window_time(data, "LatestDelivery"),
        },
        "apiKey": data.get("apiKey"),
    }
    if isinstance(data.get("Origin"), dict):
        converted["origin"] = _pascal_address(data["Origin"])
    if isinstance(data.get("Destination"), dict):
        converted["destination"] = _pascal_address(data["Destination"])
    if isinstance(data.get("Items"), list):
        converted["items"] = [_pascal_item(item) if isinstance(item, dict) else item for item in data["Items"]]
    return {key: value for key, value in converted.items() if value is not None}


class CanonicalRateRequest(BaseSchema):
    """The single request shape every carrier adapter consumes"""

    model_config = ConfigDict(extra="ignore")

    origin: Optional[Address] = None
    destination: Optional[Address] = None
    items: List[PackageItem] = Field(default_factory=list)

    shipment_date: Optional[str] = None
    pickup_window: Optional[TimeWindow] = None
    delivery_window: Optional[TimeWindow] = None

    booking_reference_number: Optional[str] = None
    booking_reference_number_type: Optional[Union[int, str]] = None
    shipment_bill_type: Optional[Union[int, str]] = None

    # Canpar multi-service quoting
    service_levels: Optional[List[str]] = None
    shipment_type: Optional[str] = None
    signature_required: Optional[bool] = None

    company_id: Optional[str] = None

    # Internal caller authentication only, never forwarded to a carrier
    api_key: Optional[str] = Field(None, exclude=True)

    @model_validator(mode="before")
    @classmethod
    def _accept_pascal_case(cls, data: Any) -> Any:
        if isinstance(data, dict) and any(key in data for key in ("Origin", "Destination", "Items")):
            return from_eshipplus_style(data)
        return data


class BillingDetail(BaseSchema):
    name: str
    amount: float
    type: Optional[str] = None


class SourceCarrier(BaseSchema):
    system: str
    name: Optional[str] = None
    key: Optional[str] = None


class RateQuote(BaseSchema):
    """One priced service option"""

    model_config = ConfigDict(extra="allow")

    quote_id: Optional[str] = None
    carrier_name: Optional[str] = None
    carrier_scac: Optional[str] = None
    carrier_key: Optional[str] = None

    service_mode: Optional[str] = None
    service_type: Optional[str] = None
    transit_time: int = 0
    estimated_delivery_date: Optional[str] = None
    guaranteed_service: bool = False
    guarantee_charge: float = 0.0

    freight_charges: float = 0.0
    fuel_charges: float = 0.0
    service_charges: float = 0.0
    accessorial_charges: float = 0.0
    # Carrier-reported total, never recomputed from billing_details
    total_charges: Optional[float] = None
    currency: str = "USD"

    billing_details: List[BillingDetail] = Field(default_factory=list)
    billed_weight: Optional[float] = None
    rated_weight: Optional[float] = None

    carrier_metadata: Dict[str, Any] = Field(default_factory=dict)

    # Set by the aggregator
    source_carrier_system: Optional[str] = None
    source_carrier: Optional[SourceCarrier] = None


class NormalizedItem(BaseSchema):
    description: Optional[str] = None
    weight: Optional[float] = None
    length: Optional[float] = None
    width: Optional[float] = None
    height: Optional[float] = None
    packaging_quantity: Optional[int] = None
    freight_class: Optional[str] = None
    declared_value: Optional[float] = None
    stackable: Optional[bool] = None


class CanonicalRateResponse(BaseSchema):
    booking_reference: Optional[str] = None
    booking_reference_type: Optional[str] = None
    shipment_bill_type: Optional[str] = None
    shipment_date: Optional[str] = None

    pickup_window: TimeWindow = Field(default_factory=TimeWindow)
    delivery_window: TimeWindow = Field(default_factory=TimeWindow)

    origin: Address = Field(default_factory=Address)
    destination: Address = Field(default_factory=Address)
    items: List[NormalizedItem] = Field(default_factory=list)

    # Carrier-returned order; only the aggregator re-sorts
    available_rates: List[RateQuote] = Field(default_factory=list)


class CarrierError(BaseSchema):
    carrier: str
    error: str


class CarrierResults(BaseSchema):
    successful: int = 0
    failed: int = 0
    errors: List[CarrierError] = Field(default_factory=list)


class RequestInfo(BaseSchema):
    company_id: Optional[str] = None
    carriers_queried: List[str] = Field(default_factory=list)
    timestamp: str


class AggregatedRateResult(BaseSchema):
    available_rates: List[RateQuote] = Field(default_factory=list)
    carrier_results: CarrierResults = Field(default_factory=CarrierResults)
    request_info: RequestInfo


class UniversalRateRequest(BaseSchema):
    """Aggregator input; address and package spellings are normalized later"""

    model_config = ConfigDict(extra="ignore")

    company_id: Optional[str] = None
    origin_address: Optional[Dict[str, Any]] = None
    destination_address: Optional[Dict[str, Any]] = None
    packages: Optional[List[Dict[str, Any]]] = None
    shipment_info: Dict[str, Any] = Field(default_factory=dict)
    api_key: Optional[str] = Field(None, exclude=True)
