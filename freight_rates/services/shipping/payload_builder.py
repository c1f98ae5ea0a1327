# freight_rates/services/shipping/payload_builder.py
"""
Rate Request Builder

Callers of the universal endpoint spell address and package fields several
ways (``zipPostal``/``zip``/``postalCode``, ``address1``/``street``, ...). This
module folds them into one CanonicalRateRequest shared by every carrier, with
explicit defaults for anything left out.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import ValidationError as PydanticValidationError

from freight_rates.core.exceptions import ValidationError
from freight_rates.core.utils import now_ms, parse_number, to_int
from freight_rates.schemas.rates import Address, CanonicalRateRequest, PackageItem, TimeWindow

DEFAULT_PACKAGE = {
    "description": "Package",
    "weight": 1.0,
    "length": 12.0,
    "width": 12.0,
    "height": 12.0,
    "quantity": 1,
    "freight_class": "50",
    "value": 0.0,
}

DEFAULT_COUNTRY = "US"
DEFAULT_WINDOW_START = "09:00"
DEFAULT_WINDOW_END = "17:00"


def _first(data: Dict[str, Any], *keys: str, default: Any = "") -> Any:
    """First non-empty value among ``keys``"""
    for key in keys:
        value = data.get(key)
        if value not in (None, ""):
            return value
    return default


def _number_or_default(value: Any, default: float) -> float:
    number = parse_number(value)
    return number if number else default


def standardize_address(address: Dict[str, Any]) -> Address:
    return Address(
        company=_first(address, "company", "companyName"),
        street=_first(address, "street", "address1", "street1"),
        street2=_first(address, "street2", "address2"),
        city=_first(address, "city"),
        state=_first(address, "state", "stateProv", "stateProvince", "province"),
        postal_code=_first(address, "postalCode", "zipPostal", "zip"),
        country=_first(address, "country", "countryCode", default=DEFAULT_COUNTRY),
        contact=_first(address, "contactName", "name", "contact"),
        phone=_first(address, "contactPhone", "phone"),
        email=_first(address, "contactEmail", "email"),
        special_instructions=_first(address, "specialInstructions"),
    )


def standardize_package(package: Dict[str, Any]) -> PackageItem:
    return PackageItem(
        description=_first(package, "description", default=DEFAULT_PACKAGE["description"]),
        weight=_number_or_default(package.get("weight"), DEFAULT_PACKAGE["weight"]),
        length=_number_or_default(package.get("length"), DEFAULT_PACKAGE["length"]),
        width=_number_or_default(package.get("width"), DEFAULT_PACKAGE["width"]),
        height=_number_or_default(package.get("height"), DEFAULT_PACKAGE["height"]),
        packaging_quantity=to_int(_first(package, "quantity", "packagingQuantity", default=None), 0)
        or DEFAULT_PACKAGE["quantity"],
        freight_class=str(_first(package, "freightClass", default=DEFAULT_PACKAGE["freight_class"])),
        declared_value=_number_or_default(_first(package, "value", "declaredValue", default=None), DEFAULT_PACKAGE["value"]),
        stackable=bool(package.get("stackable", False)),
    )


def standardize_rate_request(
    company_id: Optional[str],
    origin_address: Dict[str, Any],
    destination_address: Dict[str, Any],
    packages: List[Dict[str, Any]],
    shipment_info: Optional[Dict[str, Any]] = None,
) -> CanonicalRateRequest:
    """Build the one canonical request every enabled carrier receives."""
    info = shipment_info or {}

    service_levels = info.get("serviceLevels")
    if not service_levels and info.get("serviceLevel"):
        service_levels = info["serviceLevel"]
    if isinstance(service_levels, str):
        service_levels = [service_levels]

    try:
        return _build_canonical_request(company_id, origin_address, destination_address, packages, info, service_levels)
    except PydanticValidationError as e:
        fields = [".".join(str(part) for part in error["loc"]) for error in e.errors()]
        problems = [f"{field}: {error['msg']}" for field, error in zip(fields, e.errors())]
        raise ValidationError(f"Invalid rate request: {'; '.join(problems)}", details={"fields": fields}) from e


def _build_canonical_request(
    company_id: Optional[str],
    origin_address: Dict[str, Any],
    destination_address: Dict[str, Any],
    packages: List[Dict[str, Any]],
    info: Dict[str, Any],
    service_levels: Optional[List[str]],
) -> CanonicalRateRequest:
    return CanonicalRateRequest(
        company_id=company_id,
        origin=standardize_address(origin_address),
        destination=standardize_address(destination_address),
        items=[standardize_package(package) for package in packages],
        shipment_date=info.get("shipmentDate") or datetime.now(timezone.utc).isoformat(),
        booking_reference_number=info.get("bookingRef") or f"AI-{now_ms()}",
        booking_reference_number_type="Shipment",
        shipment_bill_type="DefaultLogisticsPlus",
        pickup_window=TimeWindow(
            earliest=info.get("earliestPickup") or DEFAULT_WINDOW_START,
            latest=info.get("latestPickup") or DEFAULT_WINDOW_END,
        ),
        delivery_window=TimeWindow(
            earliest=info.get("earliestDelivery") or DEFAULT_WINDOW_START,
            latest=info.get("latestDelivery") or DEFAULT_WINDOW_END,
        ),
        service_levels=service_levels or None,
        shipment_type=info.get("shipmentType"),
        signature_required=info.get("signatureRequired"),
    )
