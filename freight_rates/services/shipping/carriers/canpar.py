"""
Canpar Express Carrier Implementation

Rates are requested through Canpar's SOAP "rateShipment" operation. Each SOAP
call prices exactly one service type, so requests for several service levels
are issued concurrently and merged.

The response is parsed with every element forced into a list and attributes
kept, which is what lets us tell an ``xsi:nil="true"`` error element (no
error) apart from a real application error.
"""

import asyncio
import logging
from datetime import date
from typing import Any, Dict, List, Optional, Tuple
from xml.parsers.expat import ExpatError
from xml.sax.saxutils import escape

import xmltodict

from freight_rates.core.enums import BillingType, CarrierKey, ServiceLevel, ShipmentType
from freight_rates.core.exceptions import BusinessError, CarrierResponseError, ConfigurationError, ValidationError
from freight_rates.core.logging_config import log_payload
from freight_rates.core.utils import Tree, dig, generate_quote_id, now_ms, parse_number, to_float, to_int, truncate
from freight_rates.schemas.rates import (
    Address,
    BillingDetail,
    CanonicalRateRequest,
    CanonicalRateResponse,
    PackageItem,
    RateQuote,
    TimeWindow,
)
from freight_rates.services.shipping.base import BaseCarrier
from freight_rates.services.shipping.config_provider import CarrierApiConfig

logger = logging.getLogger(__name__)

SOAP_NAMESPACES = {
    "soapenv": "http://schemas.xmlsoap.org/soap/envelope/",
    "ws": "http://ws.onlinerating.canshipws.canpar.com",
    "xsd": "http://ws.dto.canshipws.canpar.com/xsd",
}

CANPAR_SERVICES = {
    1: {"name": "Canpar Ground", "level": "economy", "category": "domestic"},
    2: {"name": "Canpar Select", "level": "express", "category": "domestic"},
    3: {"name": "Canpar Overnight", "level": "priority", "category": "domestic"},
    4: {"name": "Canpar USA", "level": "economy", "category": "international"},
    5: {"name": "Canpar Ground", "level": "economy", "category": "domestic"},
    6: {"name": "Canpar International", "level": "economy", "category": "international"},
}

DOMESTIC_SERVICE_TYPES = {
    ServiceLevel.ECONOMY.value: [1],
    ServiceLevel.EXPRESS.value: [2],
    ServiceLevel.PRIORITY.value: [3],
}

# (response field, billing label)
ACCESSORIAL_FIELDS: List[Tuple[str, str]] = [
    ("carbon_surcharge", "Carbon Surcharge"),
    ("cod_charge", "COD Charge"),
    ("cos_charge", "Chain of Signature"),
    ("dg_charge", "Dangerous Goods"),
    ("dv_charge", "Declared Value"),
    ("ea_charge", "Extended Area"),
    ("handling", "Handling"),
    ("lg_charge", "Liftgate"),
    ("over_length_charge", "Over Length"),
    ("over_size_charge", "Over Size"),
    ("over_weight_charge", "Over Weight"),
    ("premium_charge", "Premium Service"),
    ("ra_charge", "Residential Area"),
    ("rural_charge", "Rural Charge"),
    ("sa_charge", "Signature Required"),
    ("sr_charge", "SR Charge"),
    ("xc_charge", "XC Charge"),
]

DEFAULT_DIMENSION = 10.0
DEFAULT_WEIGHT = 1.0
DEFAULT_WINDOW = ("09:00", "17:00")


def service_info(service_type: int) -> Dict[str, str]:
    return CANPAR_SERVICES.get(
        service_type,
        {"name": f"Service {service_type}", "level": "economy", "category": "domestic"},
    )


def service_types_for_levels(levels: List[str], international: bool, destination_country: str) -> List[int]:
    """Map requested service levels to Canpar service type codes (deduplicated, in order)."""
    service_types: List[int] = []
    for level in levels:
        if international:
            # Only economy is sold cross-border
            codes = [4 if destination_country == "US" else 6] if level == ServiceLevel.ECONOMY.value else []
        else:
            codes = DOMESTIC_SERVICE_TYPES.get(level, [])
        for code in codes:
            if code not in service_types:
                service_types.append(code)
    return service_types


def sanitize_postal_code(postal_code: Optional[str]) -> str:
    if not postal_code:
        return ""
    return "".join(postal_code.split()).upper()


def _strip_namespace(path, key, value):
    # Attribute keys ("@xsi:nil") are kept verbatim
    if not key.startswith("@") and ":" in key:
        key = key.split(":", 1)[1]
    return key, value


def parse_soap(text: str) -> Tree:
    """Parse a SOAP document: prefixes dropped, every element a list, attributes kept."""
    return xmltodict.parse(text, force_list=True, postprocessor=_strip_namespace)


def _element_text(element: Dict[str, Any]) -> Optional[str]:
    # force_list wraps character data too
    text = element.get("#text")
    if isinstance(text, list):
        text = text[0] if text else None
    return text


def _leaf(node: Tree, name: str, default: Any = None) -> Any:
    value = dig(node, name, 0)
    if isinstance(value, dict):
        if value.get("@xsi:nil") == "true":
            return default
        value = _element_text(value)
    return default if value is None else value


def _soap_body(tree: Tree) -> Tree:
    return dig(tree, "Envelope", 0, "Body", 0, default={})


def _rate_return(tree: Tree) -> Tree:
    return dig(_soap_body(tree), "rateShipmentResponse", 0, "return", 0)


def soap_fault_message(tree: Tree) -> Optional[str]:
    fault = dig(_soap_body(tree), "Fault", 0)
    if fault is None:
        return None
    return str(_leaf(fault, "faultstring", "Unknown SOAP fault"))


def application_error(tree: Tree) -> Optional[str]:
    """
    The ``error`` element of a rate response, or None when there is no error.

    Canpar always sends the element; ``xsi:nil="true"`` is its way of saying
    the field is null, which means success.
    """
    error = dig(_rate_return(tree), "error", 0)
    if error is None:
        return None
    if isinstance(error, dict):
        if error.get("@xsi:nil") == "true":
            return None
        text = _element_text(error)
        if text is None:
            text = str({k: v for k, v in error.items() if not k.startswith("@")})
        return text
    text = str(error).strip()
    return text or None


def _address(node: Tree) -> Address:
    return Address(
        company=_leaf(node, "name"),
        street=_leaf(node, "address_line_1"),
        street2=_leaf(node, "address_line_2"),
        postal_code=_leaf(node, "postal_code"),
        city=_leaf(node, "city"),
        state=_leaf(node, "province"),
        country=_leaf(node, "country"),
        contact=_leaf(node, "name"),
        phone=_leaf(node, "phone"),
        email="",
        special_instructions="none",
    )


def _iso_date(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    return str(value)[:10]


def transform_canpar_response(tree: Tree) -> CanonicalRateResponse:
    """
    Normalize a parsed rateShipment response.

    Returns a response with one RateQuote, or with none when the SOAP body
    carries no shipment result.
    """
    shipment = dig(_rate_return(tree), "processShipmentResult", 0, "shipment", 0)
    if not isinstance(shipment, dict):
        logger.error("No shipment data found in Canpar response")
        return CanonicalRateResponse(
            booking_reference=f"{CarrierKey.CANPAR.value}_{now_ms()}",
            booking_reference_type="Shipment",
            shipment_bill_type="Prepaid",
        )

    def charge(name: str) -> float:
        return to_float(_leaf(shipment, name))

    freight_charge = charge("freight_charge")
    fuel_surcharge = charge("fuel_surcharge")
    tax_charge_1 = charge("tax_charge_1")
    tax_charge_2 = charge("tax_charge_2")
    tax_code_1 = _leaf(shipment, "tax_code_1", "")
    tax_code_2 = _leaf(shipment, "tax_code_2", "")

    billing_details: List[BillingDetail] = []
    if freight_charge > 0:
        billing_details.append(BillingDetail(name="Freight Charge", amount=freight_charge, type=BillingType.FREIGHT.value))
    if fuel_surcharge > 0:
        billing_details.append(BillingDetail(name="Fuel Surcharge", amount=fuel_surcharge, type=BillingType.FUEL.value))

    accessorial_total = 0.0
    for field_name, label in ACCESSORIAL_FIELDS:
        amount = charge(field_name)
        accessorial_total += amount
        if amount > 0:
            billing_details.append(BillingDetail(name=label, amount=amount, type=BillingType.ACCESSORIAL.value))

    if tax_charge_1 > 0:
        billing_details.append(BillingDetail(name=f"Tax ({tax_code_1 or 'Tax 1'})", amount=tax_charge_1, type=BillingType.TAX.value))
    if tax_charge_2 > 0:
        billing_details.append(BillingDetail(name=f"Tax ({tax_code_2 or 'Tax 2'})", amount=tax_charge_2, type=BillingType.TAX.value))

    service_type = to_int(_leaf(shipment, "service_type"), 1)
    info = service_info(service_type)
    billed_weight = charge("billed_weight")
    total = parse_number(_leaf(shipment, "total"))

    rate = RateQuote(
        quote_id=generate_quote_id(CarrierKey.CANPAR.value),
        carrier_name="Canpar Express",
        carrier_scac="CANP",
        carrier_key=CarrierKey.CANPAR.value,
        service_mode=info["name"],
        service_type=info["name"],
        transit_time=to_int(_leaf(shipment, "transit_time")),
        estimated_delivery_date=_iso_date(_leaf(shipment, "estimated_delivery_date")),
        guaranteed_service=_leaf(shipment, "transit_time_guaranteed") == "true",
        guarantee_charge=0.0,
        freight_charges=freight_charge,
        fuel_charges=fuel_surcharge,
        service_charges=0.0,
        accessorial_charges=round(accessorial_total, 2),
        total_charges=total,
        currency="CAD",
        billing_details=billing_details,
        billed_weight=billed_weight,
        # Canpar reports a single weight
        rated_weight=billed_weight,
        carrier_metadata={
            "serviceType": service_type,
            "serviceLevel": info["level"],
            "serviceCategory": info["category"],
            "zone": _leaf(shipment, "zone"),
            "subtotal": charge("subtotal"),
            "taxCode1": tax_code_1 or None,
            "taxCode2": tax_code_2 or None,
            "taxCharge1": tax_charge_1,
            "taxCharge2": tax_charge_2,
        },
    )

    earliest, latest = DEFAULT_WINDOW
    return CanonicalRateResponse(
        booking_reference=f"{CarrierKey.CANPAR.value}_{now_ms()}",
        booking_reference_type="Shipment",
        shipment_bill_type="Prepaid",
        shipment_date=_iso_date(_leaf(shipment, "shipping_date")),
        pickup_window=TimeWindow(earliest=earliest, latest=latest),
        delivery_window=TimeWindow(earliest=earliest, latest=latest),
        origin=_address(dig(shipment, "pickup_address", 0, default={})),
        destination=_address(dig(shipment, "delivery_address", 0, default={})),
        items=[],
        available_rates=[rate],
    )


class CanparCarrier(BaseCarrier):
    """Canpar Express SOAP rating."""

    carrier_name = "Canpar Express"
    carrier_code = CarrierKey.CANPAR.value

    def prepare_request(self, request: CanonicalRateRequest) -> CanonicalRateRequest:
        for side, address in (("origin", request.origin), ("destination", request.destination)):
            if address is None or not address.postal_code:
                raise ValidationError(f"Missing required field: {side}.postalCode")

        items = []
        source_items = request.items or [PackageItem()]
        for index, item in enumerate(source_items, start=1):
            items.append(item.model_copy(update={
                "weight": self._positive_or_default(item.weight, DEFAULT_WEIGHT, "Weight", index),
                "length": self._positive_or_default(item.length, DEFAULT_DIMENSION, "Length", index),
                "width": self._positive_or_default(item.width, DEFAULT_DIMENSION, "Width", index),
                "height": self._positive_or_default(item.height, DEFAULT_DIMENSION, "Height", index),
                "declared_value": self._positive_or_default(item.declared_value, 0.0, "Declared Value", index),
            }))

        return request.model_copy(update={
            "items": items,
            "shipment_date": request.shipment_date or date.today().isoformat(),
        })

    @staticmethod
    def _positive_or_default(value: Any, default: float, label: str, index: int) -> float:
        if value is None or value == "":
            return default
        number = parse_number(value)
        if number is None:
            raise ValidationError(f"Invalid {label} for item {index}")
        return number if number > 0 else default

    def check_credentials(self, config: CarrierApiConfig) -> None:
        credentials = config.credentials
        missing = [key for key in ("username", "password", "accountNumber") if not credentials.get(key)]
        if missing:
            raise ConfigurationError(
                f"Canpar credentials are missing: {', '.join(missing)}",
                details={"carrier": self.carrier_code},
            )

    def resolve_service_types(self, request: CanonicalRateRequest) -> List[int]:
        origin_country = (request.origin.country or "CA").upper()
        destination_country = (request.destination.country or "CA").upper()
        international = origin_country != destination_country

        levels = [level.lower() for level in (request.service_levels or [ServiceLevel.ECONOMY.value])]
        if ServiceLevel.ANY.value in levels:
            if (request.shipment_type or "").lower() == ShipmentType.COURIER.value:
                levels = [ServiceLevel.ECONOMY.value, ServiceLevel.EXPRESS.value, ServiceLevel.PRIORITY.value]
            else:
                levels = [ServiceLevel.ECONOMY.value]

        return service_types_for_levels(levels, international, destination_country)

    def build_soap_envelope(self, request: CanonicalRateRequest, credentials: Dict[str, Any], service_type: int) -> str:
        signature_required = True if request.signature_required is None else request.signature_required
        nsr = "false" if signature_required else "true"
        shipping_date = f"{request.shipment_date[:10]}T00:00:00"

        reference = ""
        if request.booking_reference_number:
            reference = f"<xsd:reference>{escape(request.booking_reference_number)}</xsd:reference>"

        packages_xml = "".join(
            f"""
          <xsd:packages>
            <xsd:reported_weight>{float(item.weight):.1f}</xsd:reported_weight>
            <xsd:length>{float(item.length):.1f}</xsd:length>
            <xsd:width>{float(item.width):.1f}</xsd:width>
            <xsd:height>{float(item.height):.1f}</xsd:height>
            <xsd:declared_value>{float(item.declared_value):.2f}</xsd:declared_value>
          </xsd:packages>"""
            for item in request.items
        )

        return f"""<?xml version="1.0" encoding="UTF-8"?>
<soapenv:Envelope xmlns:soapenv="{SOAP_NAMESPACES['soapenv']}"
                  xmlns:ws="{SOAP_NAMESPACES['ws']}"
                  xmlns:xsd="{SOAP_NAMESPACES['xsd']}">
  <soapenv:Header/>
  <soapenv:Body>
    <ws:rateShipment>
      <ws:request>
        <xsd:user_id>{escape(str(credentials['username']))}</xsd:user_id>
        <xsd:password>{escape(str(credentials['password']))}</xsd:password>
        <xsd:apply_association_discount>false</xsd:apply_association_discount>
        <xsd:apply_individual_discount>false</xsd:apply_individual_discount>
        <xsd:apply_invoice_discount>false</xsd:apply_invoice_discount>
        <xsd:shipment>
          <xsd:shipper_num>{escape(str(credentials['accountNumber']))}</xsd:shipper_num>
          <xsd:shipping_date>{shipping_date}</xsd:shipping_date>
          <xsd:service_type>{service_type}</xsd:service_type>
          <xsd:shipment_status>R</xsd:shipment_status>
          <xsd:reported_weight_unit>L</xsd:reported_weight_unit>
          <xsd:nsr>{nsr}</xsd:nsr>
          <xsd:dimention_unit>I</xsd:dimention_unit>
          {reference}{packages_xml}
          {self._address_xml("pickup_address", request.origin)}
          {self._address_xml("delivery_address", request.destination)}
        </xsd:shipment>
      </ws:request>
    </ws:rateShipment>
  </soapenv:Body>
</soapenv:Envelope>"""

    @staticmethod
    def _address_xml(tag: str, address: Address) -> str:
        street2 = ""
        if address.street2:
            street2 = f"<xsd:address_line_2>{escape(address.street2)}</xsd:address_line_2>"
        return f"""<xsd:{tag}>
            <xsd:name>{escape(address.company or address.contact or '')}</xsd:name>
            <xsd:address_line_1>{escape(address.street or '')}</xsd:address_line_1>
            {street2}
            <xsd:city>{escape(address.city or '')}</xsd:city>
            <xsd:province>{escape(address.state or '')}</xsd:province>
            <xsd:country>{escape((address.country or 'CA').upper())}</xsd:country>
            <xsd:postal_code>{escape(sanitize_postal_code(address.postal_code))}</xsd:postal_code>
            <xsd:phone>{escape(address.phone or '')}</xsd:phone>
            <xsd:residential>false</xsd:residential>
          </xsd:{tag}>"""

    def extract_error_message(self, body_text: str) -> Optional[str]:
        try:
            return soap_fault_message(parse_soap(body_text))
        except ExpatError:
            return None

    async def fetch_rates(self, request: CanonicalRateRequest, config: CarrierApiConfig) -> CanonicalRateResponse:
        service_types = self.resolve_service_types(request)
        if not service_types:
            logger.warning("No Canpar service types apply to the requested service levels")
            return CanonicalRateResponse()

        logger.info(f"Requesting Canpar service types {service_types}")
        results = await asyncio.gather(
            *[self._fetch_service_rate(request, config, service_type) for service_type in service_types],
            return_exceptions=True,
        )

        merged: Optional[CanonicalRateResponse] = None
        rates: List[RateQuote] = []
        failures: List[BaseException] = []
        for service_type, result in zip(service_types, results):
            if isinstance(result, BaseException):
                logger.warning(f"Canpar service type {service_type} failed: {result}")
                failures.append(result)
                continue
            merged = merged or result
            rates.extend(result.available_rates)

        if not rates and failures:
            raise failures[0]

        unique_rates: List[RateQuote] = []
        seen = set()
        for rate in rates:
            key = (rate.carrier_metadata.get("serviceType"), rate.total_charges)
            if key in seen:
                logger.info(f"Dropping duplicate Canpar rate {rate.service_mode} {rate.total_charges}")
                continue
            seen.add(key)
            unique_rates.append(rate)

        merged = merged or CanonicalRateResponse()
        return merged.model_copy(update={"available_rates": unique_rates})

    async def _fetch_service_rate(
        self, request: CanonicalRateRequest, config: CarrierApiConfig, service_type: int
    ) -> CanonicalRateResponse:
        envelope = self.build_soap_envelope(request, config.credentials, service_type)
        log_payload(logger, f"Canpar request (service {service_type})", envelope, self.settings.PAYLOAD_LOG_CHUNK_SIZE)

        response = await self._post(
            config.api_url,
            content=envelope,
            headers={
                "Content-Type": "text/xml; charset=utf-8",
                "SOAPAction": "rateShipment",
            },
        )
        log_payload(logger, f"Canpar response (service {service_type})", response.text, self.settings.PAYLOAD_LOG_CHUNK_SIZE)
        self.classify_response(response)

        try:
            tree = parse_soap(response.text)
        except ExpatError as e:
            raise CarrierResponseError(
                f"Canpar returned invalid XML for service {service_type}",
                details={"carrier": self.carrier_code, "body": truncate(response.text)},
            ) from e

        fault = soap_fault_message(tree)
        if fault:
            raise BusinessError(
                f"Canpar SOAP Fault for service {service_type}: {fault}",
                details={"carrier": self.carrier_code, "serviceType": service_type},
            )

        error = application_error(tree)
        if error:
            raise BusinessError(
                f"Canpar application error for service {service_type}: {truncate(error)}",
                details={"carrier": self.carrier_code, "serviceType": service_type},
            )

        if _rate_return(tree) is None:
            raise CarrierResponseError(
                f"Invalid response structure from Canpar API for service {service_type}",
                details={"carrier": self.carrier_code},
            )

        return transform_canpar_response(tree)
