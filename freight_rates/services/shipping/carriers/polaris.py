"""
Polaris Transportation Carrier Implementation

Polaris exposes a single LTL rating endpoint. The request is nested JSON under
``RATE_API``, the API key travels on the query string, and the answer is a flat
object (sometimes wrapped in ``Rate_API_Response``) describing at most one rate.
"""

import json
import logging
from typing import Any, Dict, List, Optional

from freight_rates.core.enums import BillingType, CarrierKey
from freight_rates.core.exceptions import (
    BusinessError,
    CarrierAuthenticationError,
    CarrierResponseError,
    ConfigurationError,
    ValidationError,
)
from freight_rates.core.logging_config import log_payload
from freight_rates.core.utils import MAX_CLIENT_BODY_CHARS, generate_quote_id, parse_number, to_float, to_int
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

DEFAULT_SKID_DIMENSIONS = {"length": 48, "width": 48, "height": 40}
DEFAULT_TRANSIT_DAYS = 5
INVALID_API_KEY = "INVALID API KEY"

SHIP_INSTRUCTION_FLAGS = [
    "Inside_Pickup",
    "Residential_Pickup",
    "Lifgate_Pickup",
    "Inside_Delivery",
    "Residential_Delivery",
    "Lifgate_Delivery",
    "Appointment_Delivery",
    "OverSizeFreight",
    "LimitedAccess",
    "Do_Not_Stack",
    "In_Bond",
    "Limited_Access_Pickup",
    "Limited_Access_Delivery",
]


def unwrap_response(data: Dict[str, Any]) -> Dict[str, Any]:
    """Polaris sometimes nests the payload under ``Rate_API_Response``."""
    wrapped = data.get("Rate_API_Response")
    return wrapped if isinstance(wrapped, dict) else data


def _additional_services(data: Dict[str, Any]) -> List[Dict[str, Any]]:
    services = data.get("Additional_Services")
    if isinstance(services, dict):
        return [services]
    if isinstance(services, list):
        return [service for service in services if isinstance(service, dict)]
    return []


def _format_number(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)


def transform_polaris_response(data: Dict[str, Any]) -> CanonicalRateResponse:
    """
    Normalize a Polaris rate response.

    A rate is built only when ``Error`` is "N" and ``Total_Charge`` is positive;
    otherwise ``available_rates`` is empty, which is not itself an error here.
    """
    payload = unwrap_response(data)
    total_charge = parse_number(payload.get("Total_Charge"))
    total_weight = to_float(payload.get("Total_Weight_lbs"))

    rates: List[RateQuote] = []
    if payload.get("Error") == "N" and total_charge is not None and total_charge > 0:
        base_charge = to_float(payload.get("Base_Charge"))
        fuel_charge = to_float(payload.get("Fuel_Charge"))
        border_charge = to_float(payload.get("Border_Charge"))
        arbitrary_charge = to_float(payload.get("Arbitrary_Charge_Total"))

        services = _additional_services(payload)
        services_total = to_float(payload.get("Additional_Services_Total"))
        if services_total == 0 and services:
            services_total = sum(to_float(service.get("Charge_Amount")) for service in services)

        transit_days = to_int(payload.get("ServiceDays"))
        if transit_days <= 0:
            transit_days = DEFAULT_TRANSIT_DAYS

        billing_details: List[BillingDetail] = []
        for name, amount, billing_type in (
            ("Base Charge", base_charge, BillingType.FREIGHT.value),
            ("Fuel Charge", fuel_charge, BillingType.FUEL.value),
            ("Border Charge", border_charge, BillingType.ACCESSORIAL.value),
            ("Arbitrary Charge", arbitrary_charge, BillingType.ACCESSORIAL.value),
        ):
            if amount:
                billing_details.append(BillingDetail(name=name, amount=amount, type=billing_type))
        for service in services:
            amount = to_float(service.get("Charge_Amount"))
            if amount:
                billing_details.append(BillingDetail(
                    name=service.get("Charge") or "Additional Service",
                    amount=amount,
                    type=BillingType.SERVICE.value,
                ))

        rates.append(RateQuote(
            quote_id=generate_quote_id(CarrierKey.POLARISTRANSPORTATION.value),
            carrier_name="Polaris Transportation",
            carrier_scac="POLT",
            carrier_key=CarrierKey.POLARISTRANSPORTATION.value,
            service_mode="LTL",
            service_type="Standard LTL",
            transit_time=transit_days,
            estimated_delivery_date=payload.get("Delivery_Date") or None,
            guaranteed_service=False,
            guarantee_charge=0.0,
            freight_charges=base_charge,
            fuel_charges=fuel_charge,
            service_charges=services_total,
            accessorial_charges=arbitrary_charge + border_charge,
            total_charges=total_charge,
            currency=payload.get("Currency") or "CAD",
            billing_details=billing_details,
            billed_weight=total_weight,
            rated_weight=total_weight,
            carrier_metadata={"transitDays": transit_days, "billNumber": payload.get("Bill_Number")},
        ))
    else:
        logger.warning(
            f"Polaris returned no quotable rate (Error={payload.get('Error')!r}, "
            f"Total_Charge={payload.get('Total_Charge')!r}, Message={payload.get('Message')!r})"
        )

    return CanonicalRateResponse(
        booking_reference=payload.get("Bill_Number") or "",
        booking_reference_type="Order",
        shipment_bill_type="Freight",
        shipment_date=payload.get("Pickup_Date"),
        pickup_window=TimeWindow(earliest=payload.get("Pickup_Date"), latest=payload.get("Pickup_Date")),
        delivery_window=TimeWindow(earliest=payload.get("Delivery_Date"), latest=payload.get("Delivery_Date")),
        origin=Address(postal_code=payload.get("From_PC_ZIP") or ""),
        destination=Address(postal_code=payload.get("To_PC_ZIP") or ""),
        items=[NormalizedItem(
            description=payload.get("Description") or "General Freight",
            weight=total_weight,
            packaging_quantity=to_int(payload.get("Pallets"), 1),
        )],
        available_rates=rates,
    )


class PolarisTransportationCarrier(BaseCarrier):
    """Polaris Transportation REST rating."""

    carrier_name = "Polaris Transportation"
    carrier_code = CarrierKey.POLARISTRANSPORTATION.value

    @property
    def timeout(self) -> float:
        return self.settings.POLARIS_TIMEOUT

    def prepare_request(self, request: CanonicalRateRequest) -> CanonicalRateRequest:
        for label, address in (("Origin", request.origin), ("Destination", request.destination)):
            if address is None:
                raise ValidationError(f"{label} address is required")
            if not address.postal_code:
                raise ValidationError(f"{label} postal code is required")

        if not request.items:
            raise ValidationError("At least one item is required")

        items = []
        for index, item in enumerate(request.items, start=1):
            weight = parse_number(item.weight)
            if weight is None or weight <= 0:
                raise ValidationError(f"Invalid Weight for item {index}")

            update = {"weight": weight}
            for field_name, label in (("length", "Length"), ("width", "Width"), ("height", "Height")):
                value = getattr(item, field_name)
                if value is None or value == "":
                    update[field_name] = float(DEFAULT_SKID_DIMENSIONS[field_name])
                    continue
                number = parse_number(value)
                if number is None:
                    raise ValidationError(f"Invalid {label} for item {index}")
                update[field_name] = number if number > 0 else float(DEFAULT_SKID_DIMENSIONS[field_name])

            quantity = item.packaging_quantity
            if quantity is None or quantity == "":
                update["packaging_quantity"] = 1
            else:
                number = parse_number(quantity)
                if number is None:
                    raise ValidationError(f"Invalid Packaging Quantity for item {index}")
                update["packaging_quantity"] = int(number) if number > 0 else 1

            items.append(item.model_copy(update=update))

        return request.model_copy(update={"items": items})

    def check_credentials(self, config: CarrierApiConfig) -> None:
        if not config.credentials.get("secret"):
            raise ConfigurationError(
                "Polaris Transportation is not properly configured: missing API key (secret) in carrier settings",
                details={"carrier": self.carrier_code},
            )

    def build_payload(self, request: CanonicalRateRequest) -> Dict[str, Any]:
        items = request.items
        total_weight = sum(float(item.weight) for item in items)
        total_pieces = sum(int(item.packaging_quantity) for item in items)
        description = next((item.description for item in items if item.description), None) or "General Freight"

        return {
            "RATE_API": {
                "From_PC_ZIP": request.origin.postal_code,
                "To_PC_ZIP": request.destination.postal_code,
                "Class": "",
                "Total_Weight_lbs": _format_number(total_weight),
                "Number_of_Pieces": str(total_pieces),
                "Description": description,
                "ShipInstructions": {flag: "N" for flag in SHIP_INSTRUCTION_FLAGS},
                "Number_of_Skids": str(len(items)),
                "SkidDimensions": [
                    {
                        "Skid": str(index),
                        "Length": _format_number(float(item.length)),
                        "Width": _format_number(float(item.width)),
                        "Height": _format_number(float(item.height)),
                    }
                    for index, item in enumerate(items, start=1)
                ],
            }
        }

    def extract_error_message(self, body_text: str) -> Optional[str]:
        try:
            data = json.loads(body_text)
        except ValueError:
            data = None

        if isinstance(data, dict):
            payload = unwrap_response(data)
            message = payload.get("ErrorMessage") or payload.get("Message") or payload.get("Error")
            return f"Error: {message}" if message else None
        if body_text and len(body_text) < MAX_CLIENT_BODY_CHARS:
            return f"Response: {body_text}"
        return None

    def check_business_flags(self, data: Dict[str, Any]) -> None:
        payload = unwrap_response(data)
        message = str(payload.get("Message") or "")

        if INVALID_API_KEY in message.upper():
            raise CarrierAuthenticationError(
                "Polaris Transportation authentication failed: invalid API credentials",
                details={"carrier": self.carrier_code},
            )

        if payload.get("Error") == "Y" or data.get("Success") is False or payload.get("Success") is False:
            detail = payload.get("ErrorMessage") or message or payload.get("Error")
            raise BusinessError(
                f"Polaris Transportation API Error: {detail}",
                details={"carrier": self.carrier_code},
            )

    async def fetch_rates(self, request: CanonicalRateRequest, config: CarrierApiConfig) -> CanonicalRateResponse:
        payload = self.build_payload(request)
        log_payload(logger, "Polaris request", json.dumps(payload), self.settings.PAYLOAD_LOG_CHUNK_SIZE)
        logger.info(f"Polaris rate URL: {config.api_url}?APIKey=****")

        response = await self._post(
            config.api_url,
            json=payload,
            params={"APIKey": config.credentials["secret"]},
            headers={"Content-Type": "application/json", "Accept": "application/json"},
        )
        log_payload(logger, "Polaris response", response.text, self.settings.PAYLOAD_LOG_CHUNK_SIZE)
        self.classify_response(response)

        data = self.parse_json(response)
        if not isinstance(data, dict):
            raise CarrierResponseError(
                "Failed to process rates from Polaris Transportation API",
                details={"carrier": self.carrier_code},
            )

        self.check_business_flags(data)
        return transform_polaris_response(data)
