"""
eShipPlus Carrier Implementation

eShipPlus is a rating marketplace: one RateShipment call returns quotes from
many LTL carriers. The wire format is flat PascalCase JSON and authentication
is a base64-encoded JSON blob sent in the ``eShipPlusAuth`` header.
"""

import base64
import json
import logging
from typing import Any, Dict, List, Optional

from freight_rates.core.enums import BillingType, CarrierKey
from freight_rates.core.exceptions import BusinessError, CarrierResponseError, ConfigurationError, ValidationError
from freight_rates.core.logging_config import log_payload
from freight_rates.core.utils import MAX_CLIENT_BODY_CHARS, dig, generate_quote_id, parse_number, to_float, to_int
from freight_rates.schemas.rates import (
    Address,
    BillingDetail,
    CanonicalRateRequest,
    CanonicalRateResponse,
    NormalizedItem,
    RateQuote,
    TimeWindow,
)
from freight_rates.services.shipping.base import BaseCarrier
from freight_rates.services.shipping.config_provider import CarrierApiConfig

logger = logging.getLogger(__name__)

BOOKING_REFERENCE_TYPES = {"SHIPMENT": 2, "PRONUMBER": 1, "BILLOFLADING": 3}
DEFAULT_BOOKING_REFERENCE_TYPE = 2

SHIPMENT_BILL_TYPES = {"DEFAULTLOGISTICSPLUS": 0}

SERVICE_MODES = {
    0: "NotApplicable",
    1: "LessThanTruckload",
    2: "Truckload",
    3: "Air",
    4: "Rail",
    5: "SmallPackage",
}

BILLING_CATEGORIES = {
    0: BillingType.FREIGHT.value,
    1: BillingType.FUEL.value,
    2: BillingType.ACCESSORIAL.value,
    3: BillingType.SERVICE.value,
}


def booking_reference_type_code(value: Any) -> int:
    """Map a booking reference type (name or number) to eShipPlus' integer code."""
    if value is None or value == "":
        return DEFAULT_BOOKING_REFERENCE_TYPE
    if isinstance(value, int):
        return value
    text = str(value).strip()
    if text.isdigit():
        return int(text)
    code = BOOKING_REFERENCE_TYPES.get(text.upper())
    if code is None:
        logger.warning(f"Unrecognized BookingReferenceNumberType '{value}', using {DEFAULT_BOOKING_REFERENCE_TYPE}")
        return DEFAULT_BOOKING_REFERENCE_TYPE
    return code


def shipment_bill_type_code(value: Any) -> Any:
    if value is None or value == "":
        return 0
    if isinstance(value, int):
        return value
    text = str(value).strip()
    if text.isdigit():
        return int(text)
    return SHIPMENT_BILL_TYPES.get(text.upper(), text)


def _label_booking_reference_type(value: Any) -> Optional[str]:
    if value is None:
        return None
    return "Shipment" if value == 2 else str(value)


def _label_shipment_bill_type(value: Any) -> Optional[str]:
    if value is None:
        return None
    return "DefaultLogisticsPlus" if value == 0 else str(value)


def _service_mode(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, int):
        return SERVICE_MODES.get(value, str(value))
    return str(value)


def _charge(rate: Dict[str, Any], field: str) -> Optional[float]:
    """Top-level charge field, falling back to the same field under ``Costs``."""
    value = parse_number(rate.get(field))
    if value is None:
        value = parse_number(dig(rate, "Costs", field))
    return value


def _address(data: Any) -> Address:
    return Address(
        company=dig(data, "Description"),
        street=dig(data, "Street"),
        street2=dig(data, "StreetExtra"),
        postal_code=dig(data, "PostalCode"),
        city=dig(data, "City"),
        state=dig(data, "State"),
        country=dig(data, "Country", "Code"),
        contact=dig(data, "Contact"),
        phone=dig(data, "Phone"),
        email=dig(data, "Email"),
        special_instructions=dig(data, "SpecialInstructions"),
    )


def _billing_details(rate: Dict[str, Any], freight: float, fuel: float, service: float, accessorial: float) -> List[BillingDetail]:
    details: List[BillingDetail] = []
    carrier_details = rate.get("BillingDetails")
    if isinstance(carrier_details, list) and carrier_details:
        for entry in carrier_details:
            amount = to_float(dig(entry, "AmountDue"))
            if amount == 0:
                continue
            category = dig(entry, "Category")
            details.append(BillingDetail(
                name=dig(entry, "Description") or dig(entry, "BillingCode") or "Charge",
                amount=amount,
                type=BILLING_CATEGORIES.get(category, str(category) if category is not None else None),
            ))
        return details

    for name, amount, billing_type in (
        ("Freight Charges", freight, BillingType.FREIGHT.value),
        ("Fuel Charges", fuel, BillingType.FUEL.value),
        ("Service Charges", service, BillingType.SERVICE.value),
        ("Accessorial Charges", accessorial, BillingType.ACCESSORIAL.value),
    ):
        if amount:
            details.append(BillingDetail(name=name, amount=amount, type=billing_type))
    return details


def transform_rate(rate: Dict[str, Any]) -> RateQuote:
    freight = _charge(rate, "FreightCharges") or 0.0
    fuel = _charge(rate, "FuelCharges") or 0.0
    service = _charge(rate, "ServiceCharges") or 0.0
    accessorial = _charge(rate, "AccessorialCharges") or 0.0
    estimated = rate.get("EstimatedDeliveryDate")

    return RateQuote(
        quote_id=rate.get("QuoteId") or generate_quote_id(CarrierKey.ESHIPPLUS.value),
        carrier_name=rate.get("CarrierName"),
        carrier_scac=rate.get("CarrierScac"),
        carrier_key=CarrierKey.ESHIPPLUS.value,
        service_mode=_service_mode(rate.get("ServiceMode")),
        service_type=rate.get("CarrierName"),
        transit_time=to_int(rate.get("TransitTime")),
        estimated_delivery_date=str(estimated)[:10] if estimated else None,
        guaranteed_service=rate.get("GuaranteedService") is True,
        guarantee_charge=to_float(rate.get("GuaranteeCharge")),
        freight_charges=freight,
        fuel_charges=fuel,
        service_charges=service,
        accessorial_charges=accessorial,
        total_charges=_charge(rate, "TotalCharges"),
        currency=rate.get("Currency") or "USD",
        billing_details=_billing_details(rate, freight, fuel, service, accessorial),
        billed_weight=parse_number(rate.get("BilledWeight")),
        rated_weight=parse_number(rate.get("RatedWeight")),
        carrier_metadata={
            "serviceMode": rate.get("ServiceMode"),
            "mileage": rate.get("Mileage"),
        },
    )


def transform_eshipplus_response(data: Dict[str, Any]) -> CanonicalRateResponse:
    """Normalize a RateShipment JSON response; rates keep carrier order."""
    shipment_date = data.get("ShipmentDate")
    items = []
    for item in data.get("Items") or []:
        items.append(NormalizedItem(
            description=dig(item, "Description"),
            weight=to_float(dig(item, "Weight")),
            length=to_float(dig(item, "Length")),
            width=to_float(dig(item, "Width")),
            height=to_float(dig(item, "Height")),
            packaging_quantity=to_int(dig(item, "PackagingQuantity")),
            freight_class=dig(item, "FreightClass", "FreightClass"),
            declared_value=to_float(dig(item, "DeclaredValue")),
            stackable=dig(item, "Stackable") is True,
        ))

    return CanonicalRateResponse(
        booking_reference=data.get("BookingReferenceNumber"),
        booking_reference_type=_label_booking_reference_type(data.get("BookingReferenceNumberType")),
        shipment_bill_type=_label_shipment_bill_type(data.get("ShipmentBillType")),
        shipment_date=str(shipment_date)[:10] if shipment_date else None,
        pickup_window=TimeWindow(
            earliest=dig(data, "EarliestPickup", "Time"),
            latest=dig(data, "LatestPickup", "Time"),
        ),
        delivery_window=TimeWindow(
            earliest=dig(data, "EarliestDelivery", "Time"),
            latest=dig(data, "LatestDelivery", "Time"),
        ),
        origin=_address(data.get("Origin")),
        destination=_address(data.get("Destination")),
        items=items,
        available_rates=[transform_rate(rate) for rate in data.get("AvailableRates") or [] if isinstance(rate, dict)],
    )


def _messages_text(data: Dict[str, Any]) -> Optional[str]:
    messages = data.get("Messages")
    if isinstance(messages, list) and messages:
        return "; ".join(
            str(message.get("Text")) if isinstance(message, dict) and message.get("Text") else json.dumps(message)
            for message in messages
        )
    return None


class EShipPlusCarrier(BaseCarrier):
    """eShipPlus REST rating."""

    carrier_name = "eShipPlus"
    carrier_code = CarrierKey.ESHIPPLUS.value

    @property
    def timeout(self) -> float:
        return self.settings.ESHIPPLUS_TIMEOUT

    def prepare_request(self, request: CanonicalRateRequest) -> CanonicalRateRequest:
        if not request.booking_reference_number:
            raise ValidationError("Missing required field: bookingReferenceNumber")
        if not request.shipment_date:
            raise ValidationError("Missing required field: shipmentDate")
        for field_name in ("pickup_window", "delivery_window", "origin", "destination"):
            if getattr(request, field_name) is None:
                raise ValidationError(f"Missing required field: {self._camel(field_name)}")

        if not request.pickup_window.earliest or not request.pickup_window.latest:
            raise ValidationError("Pickup window times are required")
        if not request.delivery_window.earliest or not request.delivery_window.latest:
            raise ValidationError("Delivery window times are required")

        self._validate_address(request.origin, "Origin")
        self._validate_address(request.destination, "Destination")

        if not request.items:
            raise ValidationError("At least one item is required")
        for index, item in enumerate(request.items, start=1):
            for value, label in (
                (item.weight, "Weight"),
                (item.length, "Length"),
                (item.width, "Width"),
                (item.height, "Height"),
                (item.packaging_quantity, "Packaging Quantity"),
            ):
                if parse_number(value) is None:
                    raise ValidationError(f"Invalid {label} for item {index}")

        return request.model_copy(update={
            "booking_reference_number_type": booking_reference_type_code(request.booking_reference_number_type),
            "shipment_bill_type": shipment_bill_type_code(request.shipment_bill_type),
        })

    @staticmethod
    def _camel(name: str) -> str:
        head, *rest = name.split("_")
        return head + "".join(part.title() for part in rest)

    @staticmethod
    def _validate_address(address: Address, label: str) -> None:
        if not address.street:
            raise ValidationError(f"{label} street is required")
        if not address.city:
            raise ValidationError(f"{label} city is required")
        if not address.state:
            raise ValidationError(f"{label} state/province is required")
        if not address.postal_code:
            raise ValidationError(f"{label} postal code is required")
        if not address.country:
            raise ValidationError(f"{label} country code is required")
        if not address.contact:
            raise ValidationError(f"{label} contact name is required")

    def check_credentials(self, config: CarrierApiConfig) -> None:
        credentials = config.credentials
        missing = [key for key in ("username", "password", "secret", "accessCode") if not credentials.get(key)]
        if missing:
            raise ConfigurationError(
                "Server configuration error for eShipPlus credentials",
                details={"carrier": self.carrier_code, "missing": missing},
            )

    @staticmethod
    def build_auth_header(credentials: Dict[str, Any]) -> str:
        payload = {
            "UserName": credentials["username"],
            "Password": credentials["password"],
            "AccessKey": credentials["secret"],
            "AccessCode": credentials["accessCode"],
        }
        return base64.b64encode(json.dumps(payload, separators=(",", ":")).encode()).decode()

    @staticmethod
    def _wire_address(address: Address) -> Dict[str, Any]:
        return {
            "Description": address.company or "",
            "Street": address.street,
            "StreetExtra": address.street2 or "",
            "PostalCode": address.postal_code,
            "City": address.city,
            "State": address.state,
            "Country": {"Code": (address.country or "").upper()},
            "Contact": address.contact,
            "Phone": address.phone or "",
            "Email": address.email or "",
            "SpecialInstructions": address.special_instructions or "",
        }

    def build_payload(self, request: CanonicalRateRequest) -> Dict[str, Any]:
        return {
            "BookingReferenceNumber": request.booking_reference_number,
            "BookingReferenceNumberType": request.booking_reference_number_type,
            "ShipmentBillType": request.shipment_bill_type,
            "ShipmentDate": request.shipment_date,
            "EarliestPickup": {"Time": request.pickup_window.earliest},
            "LatestPickup": {"Time": request.pickup_window.latest},
            "EarliestDelivery": {"Time": request.delivery_window.earliest},
            "LatestDelivery": {"Time": request.delivery_window.latest},
            "Origin": self._wire_address(request.origin),
            "Destination": self._wire_address(request.destination),
            "Items": [
                {
                    "Weight": to_float(item.weight),
                    "Length": to_float(item.length),
                    "Width": to_float(item.width),
                    "Height": to_float(item.height),
                    "PackagingQuantity": to_int(item.packaging_quantity),
                    "FreightClass": {"FreightClass": to_float(item.freight_class, 50.0)},
                    "DeclaredValue": to_float(item.declared_value),
                    "Stackable": bool(item.stackable),
                    "Description": item.description or "",
                }
                for item in request.items
            ],
        }

    def extract_error_message(self, body_text: str) -> Optional[str]:
        try:
            data = json.loads(body_text)
        except ValueError:
            data = None

        if isinstance(data, dict):
            messages = _messages_text(data)
            if messages:
                return f"Messages: {messages}"
            for key, label in (("ErrorMessage", "ErrorMessage"), ("message", "Message"), ("error", "Error")):
                if data.get(key):
                    return f"{label}: {data[key]}"
            return None

        if body_text and len(body_text) < MAX_CLIENT_BODY_CHARS:
            return f"Response: {body_text}"
        return None

    async def fetch_rates(self, request: CanonicalRateRequest, config: CarrierApiConfig) -> CanonicalRateResponse:
        payload = self.build_payload(request)
        log_payload(logger, "eShipPlus request", json.dumps(payload), self.settings.PAYLOAD_LOG_CHUNK_SIZE)

        response = await self._post(
            config.api_url,
            json=payload,
            headers={
                "Content-Type": "application/json",
                "eShipPlusAuth": self.build_auth_header(config.credentials),
            },
        )
        logger.info(f"eShipPlus API response status: {response.status_code}")
        log_payload(logger, "eShipPlus response", response.text, self.settings.PAYLOAD_LOG_CHUNK_SIZE)
        self.classify_response(response)

        data = self.parse_json(response)
        if not isinstance(data, dict):
            raise CarrierResponseError(
                "Failed to process rates from eShipPlus API",
                details={"carrier": self.carrier_code},
            )

        if data.get("ContainsErrorMessage") is True:
            message = f"eShipPlus API indicated an error in the response despite HTTP {response.status_code} status."
            messages = _messages_text(data)
            if messages:
                message = f"{message} Messages: {messages}"
            logger.error(message)
            raise BusinessError(message, details={"carrier": self.carrier_code})

        return transform_eshipplus_response(data)
