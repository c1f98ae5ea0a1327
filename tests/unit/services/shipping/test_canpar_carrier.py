# Canpar SOAP adapter unit tests
import httpx
import pytest

from freight_rates.core.exceptions import (
    BusinessError,
    ConfigurationError,
    NoRatesError,
    TransportError,
    UnavailableError,
    ValidationError,
)
from freight_rates.schemas.rates import CanonicalRateRequest
from freight_rates.services.shipping.carriers.canpar import (
    ACCESSORIAL_FIELDS,
    CanparCarrier,
    application_error,
    parse_soap,
    sanitize_postal_code,
    service_types_for_levels,
    soap_fault_message,
    transform_canpar_response,
)
from tests.fixtures.carrier_responses import (
    CANPAR_APPLICATION_ERROR,
    CANPAR_EMPTY_RETURN,
    CANPAR_SOAP_FAULT,
    canpar_rate_response,
)
from tests.mocks.mock_carrier import FakeConfigProvider, mock_http_post


@pytest.fixture
def carrier(settings):
    return CanparCarrier(FakeConfigProvider(), settings)


"""
1. Response parsing
"""

def test_nil_error_element_is_not_an_error():
    tree = parse_soap(canpar_rate_response())
    assert application_error(tree) is None
    assert soap_fault_message(tree) is None


def test_application_error_text_is_returned():
    tree = parse_soap(CANPAR_APPLICATION_ERROR)
    assert application_error(tree) == "Invalid postal code for delivery address"


def test_soap_fault_message():
    tree = parse_soap(CANPAR_SOAP_FAULT)
    assert soap_fault_message(tree) == "Authentication failed for user canpar_user"


def test_transform_canpar_response_normalizes_charges():
    response = transform_canpar_response(parse_soap(canpar_rate_response()))

    assert len(response.available_rates) == 1
    rate = response.available_rates[0]
    assert rate.carrier_scac == "CANP"
    assert rate.carrier_key == "CANPAR"
    assert rate.currency == "CAD"
    assert rate.service_mode == "Canpar Ground"
    assert rate.total_charges == 66.48
    assert rate.freight_charges == 42.10
    assert rate.fuel_charges == 8.35
    assert rate.accessorial_charges == 7.75
    assert rate.billed_weight == 50.0
    assert rate.rated_weight == 50.0
    assert rate.transit_time == 2
    assert rate.estimated_delivery_date == "2026-10-22"
    assert rate.guaranteed_service is False
    assert rate.quote_id.startswith("CANPAR_")

    names = [detail.name for detail in rate.billing_details]
    assert names == [
        "Freight Charge",
        "Fuel Surcharge",
        "Declared Value",
        "Residential Area",
        "XC Charge",
        "Tax (HST)",
    ]
    assert rate.carrier_metadata["serviceLevel"] == "economy"
    assert rate.carrier_metadata["zone"] == "3"
    assert rate.carrier_metadata["taxCode2"] is None

    assert response.booking_reference.startswith("CANPAR_")
    assert response.shipment_bill_type == "Prepaid"
    assert response.shipment_date == "2026-10-20"
    assert response.pickup_window.earliest == "09:00"
    assert response.origin.city == "Toronto"
    assert response.destination.postal_code == "H3B2B6"


def test_every_accessorial_field_is_summed_and_listed_once():
    accessorials = {name: f"{index + 1}.00" for index, (name, _) in enumerate(ACCESSORIAL_FIELDS)}
    response = transform_canpar_response(parse_soap(canpar_rate_response(accessorials=accessorials)))
    rate = response.available_rates[0]

    assert rate.accessorial_charges == sum(range(1, len(ACCESSORIAL_FIELDS) + 1))
    accessorial_rows = [detail for detail in rate.billing_details if detail.type == "accessorial"]
    assert [row.name for row in accessorial_rows] == [label for _, label in ACCESSORIAL_FIELDS]


def test_transform_without_shipment_returns_no_rates():
    response = transform_canpar_response(parse_soap(CANPAR_EMPTY_RETURN))
    assert response.available_rates == []


"""
2. Request preparation
"""

def test_service_types_for_levels():
    assert service_types_for_levels(["economy", "express", "priority"], False, "CA") == [1, 2, 3]
    assert service_types_for_levels(["economy"], True, "US") == [4]
    assert service_types_for_levels(["economy"], True, "GB") == [6]
    assert service_types_for_levels(["express"], True, "US") == []
    assert service_types_for_levels(["economy", "economy"], False, "CA") == [1]


def test_any_level_for_courier_prices_every_domestic_service(carrier, canpar_request_data):
    canpar_request_data.update(serviceLevels=["any"], shipmentType="courier")
    request = CanonicalRateRequest.model_validate(canpar_request_data)
    assert carrier.resolve_service_types(request) == [1, 2, 3]


def test_any_level_for_freight_prices_economy_only(carrier, canpar_request_data):
    canpar_request_data.update(serviceLevels=["any"], shipmentType="freight")
    request = CanonicalRateRequest.model_validate(canpar_request_data)
    assert carrier.resolve_service_types(request) == [1]


def test_sanitize_postal_code():
    assert sanitize_postal_code(" m5x 1a9 ") == "M5X1A9"
    assert sanitize_postal_code(None) == ""


def test_prepare_request_fills_defaults(carrier, canpar_request_data):
    canpar_request_data["items"] = []
    canpar_request_data.pop("shipmentDate")
    request = CanonicalRateRequest.model_validate(canpar_request_data)

    prepared = carrier.prepare_request(request)

    assert len(prepared.items) == 1
    assert prepared.items[0].weight == 1.0
    assert prepared.items[0].length == 10.0
    assert prepared.shipment_date
    assert request.items == []


def test_prepare_request_rejects_non_numeric_weight(carrier, canpar_request_data):
    canpar_request_data["items"] = [{"weight": "heavy"}]
    request = CanonicalRateRequest.model_validate(canpar_request_data)

    with pytest.raises(ValidationError) as exc_info:
        carrier.prepare_request(request)
    assert str(exc_info.value) == "Invalid Weight for item 1"


def test_build_soap_envelope(carrier, canpar_request_data):
    canpar_request_data["origin"]["company"] = "A&B Freight"
    canpar_request_data["signatureRequired"] = False
    canpar_request_data["bookingReferenceNumber"] = "PO-77"
    request = carrier.prepare_request(CanonicalRateRequest.model_validate(canpar_request_data))

    envelope = carrier.build_soap_envelope(request, {"username": "u", "password": "p", "accountNumber": "42"}, 2)

    assert "<xsd:service_type>2</xsd:service_type>" in envelope
    assert "<xsd:reported_weight>50.0</xsd:reported_weight>" in envelope
    assert "<xsd:shipping_date>2026-10-20T00:00:00</xsd:shipping_date>" in envelope
    assert "<xsd:nsr>true</xsd:nsr>" in envelope
    assert "<xsd:postal_code>M5X1A9</xsd:postal_code>" in envelope
    assert "<xsd:name>A&amp;B Freight</xsd:name>" in envelope
    assert "<xsd:reference>PO-77</xsd:reference>" in envelope
    assert "<xsd:shipper_num>42</xsd:shipper_num>" in envelope


"""
3. Full rate flow
"""

@pytest.mark.asyncio
async def test_get_rates_for_fifty_pound_box(mocker, carrier, canpar_request_data):
    post = mock_http_post(mocker, httpx.Response(200, text=canpar_rate_response()))
    request = CanonicalRateRequest.model_validate(canpar_request_data)

    response = await carrier.get_rates(request)

    assert len(response.available_rates) == 1
    rate = response.available_rates[0]
    assert rate.carrier_scac == "CANP"
    assert rate.currency == "CAD"
    assert rate.billed_weight == 50.0

    post.assert_called_once()
    args, kwargs = post.call_args
    assert args[0] == "https://canpar.test/ws/services/CanparRatingService"
    assert kwargs["headers"]["SOAPAction"] == "rateShipment"
    assert "<xsd:service_type>1</xsd:service_type>" in kwargs["content"]


@pytest.mark.asyncio
async def test_missing_postal_code_fails_before_network(mocker, carrier, canpar_request_data):
    post = mock_http_post(mocker)
    canpar_request_data["origin"].pop("postalCode")

    with pytest.raises(ValidationError) as exc_info:
        await carrier.get_rates(CanonicalRateRequest.model_validate(canpar_request_data))

    assert str(exc_info.value) == "Missing required field: origin.postalCode"
    post.assert_not_called()


@pytest.mark.asyncio
async def test_missing_credentials(mocker, settings, canpar_request_data):
    post = mock_http_post(mocker)
    provider = FakeConfigProvider()
    provider.credentials["CANPAR"]["password"] = ""
    carrier = CanparCarrier(provider, settings)

    with pytest.raises(ConfigurationError) as exc_info:
        await carrier.get_rates(CanonicalRateRequest.model_validate(canpar_request_data))

    assert "password" in str(exc_info.value)
    post.assert_not_called()


@pytest.mark.asyncio
async def test_http_500_is_transport_error(mocker, carrier, canpar_request_data):
    mock_http_post(mocker, httpx.Response(500, text=CANPAR_SOAP_FAULT))

    with pytest.raises(TransportError) as exc_info:
        await carrier.get_rates(CanonicalRateRequest.model_validate(canpar_request_data))

    assert "500" in exc_info.value.message
    assert "Authentication failed" in exc_info.value.message
    assert exc_info.value.code == "internal"
    assert exc_info.value.status_code == 500


@pytest.mark.asyncio
async def test_http_503_is_unavailable(mocker, carrier, canpar_request_data):
    mock_http_post(mocker, httpx.Response(503, text="Service Unavailable"))

    with pytest.raises(UnavailableError) as exc_info:
        await carrier.get_rates(CanonicalRateRequest.model_validate(canpar_request_data))

    assert exc_info.value.code == "unavailable"


@pytest.mark.asyncio
async def test_network_error_is_transport_error(mocker, carrier, canpar_request_data):
    mock_http_post(mocker, httpx.ConnectError("Connection refused"))

    with pytest.raises(TransportError) as exc_info:
        await carrier.get_rates(CanonicalRateRequest.model_validate(canpar_request_data))

    assert "Connection refused" in exc_info.value.message


@pytest.mark.asyncio
async def test_soap_fault_with_http_200_is_business_error(mocker, carrier, canpar_request_data):
    mock_http_post(mocker, httpx.Response(200, text=CANPAR_SOAP_FAULT))

    with pytest.raises(BusinessError) as exc_info:
        await carrier.get_rates(CanonicalRateRequest.model_validate(canpar_request_data))

    assert "Authentication failed" in exc_info.value.message
    assert exc_info.value.code == "failed-precondition"


@pytest.mark.asyncio
async def test_application_error_is_business_error(mocker, carrier, canpar_request_data):
    mock_http_post(mocker, httpx.Response(200, text=CANPAR_APPLICATION_ERROR))

    with pytest.raises(BusinessError) as exc_info:
        await carrier.get_rates(CanonicalRateRequest.model_validate(canpar_request_data))

    assert "Invalid postal code" in exc_info.value.message


@pytest.mark.asyncio
async def test_international_express_has_no_service_and_no_rates(mocker, carrier, canpar_request_data):
    post = mock_http_post(mocker)
    canpar_request_data["destination"].update(country="US", postalCode="10001")
    canpar_request_data["serviceLevels"] = ["express"]

    with pytest.raises(NoRatesError):
        await carrier.get_rates(CanonicalRateRequest.model_validate(canpar_request_data))

    post.assert_not_called()


def _respond_by_service_type(responses):
    def respond(url, content=None, **kwargs):
        for service_type, response in responses.items():
            if f"<xsd:service_type>{service_type}</xsd:service_type>" in content:
                if isinstance(response, Exception):
                    raise response
                return response
        raise AssertionError("unexpected service type")
    return respond


@pytest.mark.asyncio
async def test_multiple_service_levels_are_merged(mocker, carrier, canpar_request_data):
    post = mock_http_post(mocker)
    post.side_effect = _respond_by_service_type({
        1: httpx.Response(200, text=canpar_rate_response(service_type=1, total="66.48")),
        2: httpx.Response(200, text=canpar_rate_response(service_type=2, total="81.20")),
    })
    canpar_request_data["serviceLevels"] = ["economy", "express"]

    response = await carrier.get_rates(CanonicalRateRequest.model_validate(canpar_request_data))

    assert post.call_count == 2
    assert sorted(rate.service_mode for rate in response.available_rates) == ["Canpar Ground", "Canpar Select"]


@pytest.mark.asyncio
async def test_one_failing_service_level_does_not_hide_the_others(mocker, carrier, canpar_request_data):
    post = mock_http_post(mocker)
    post.side_effect = _respond_by_service_type({
        1: httpx.Response(200, text=canpar_rate_response(service_type=1)),
        2: httpx.Response(500, text="Internal Server Error"),
    })
    canpar_request_data["serviceLevels"] = ["economy", "express"]

    response = await carrier.get_rates(CanonicalRateRequest.model_validate(canpar_request_data))

    assert [rate.service_mode for rate in response.available_rates] == ["Canpar Ground"]


@pytest.mark.asyncio
async def test_all_service_levels_failing_raises_first_error(mocker, carrier, canpar_request_data):
    post = mock_http_post(mocker)
    post.side_effect = _respond_by_service_type({
        1: httpx.Response(500, text="Internal Server Error"),
        2: httpx.Response(200, text=CANPAR_APPLICATION_ERROR),
    })
    canpar_request_data["serviceLevels"] = ["economy", "express"]

    with pytest.raises(TransportError):
        await carrier.get_rates(CanonicalRateRequest.model_validate(canpar_request_data))


@pytest.mark.asyncio
async def test_duplicate_rates_are_dropped(mocker, carrier, canpar_request_data):
    post = mock_http_post(mocker)
    same = canpar_rate_response(service_type=1, total="66.48")
    post.side_effect = _respond_by_service_type({
        1: httpx.Response(200, text=same),
        2: httpx.Response(200, text=same),
    })
    canpar_request_data["serviceLevels"] = ["economy", "express"]

    response = await carrier.get_rates(CanonicalRateRequest.model_validate(canpar_request_data))

    assert len(response.available_rates) == 1


@pytest.mark.asyncio
async def test_same_total_on_different_service_types_is_kept(mocker, carrier, canpar_request_data):
    post = mock_http_post(mocker)
    post.side_effect = _respond_by_service_type({
        1: httpx.Response(200, text=canpar_rate_response(service_type=1, total="66.48")),
        2: httpx.Response(200, text=canpar_rate_response(service_type=2, total="66.48")),
    })
    canpar_request_data["serviceLevels"] = ["economy", "express"]

    response = await carrier.get_rates(CanonicalRateRequest.model_validate(canpar_request_data))

    assert [rate.carrier_metadata["serviceType"] for rate in response.available_rates] == [1, 2]
