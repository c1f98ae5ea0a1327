# tests/conftest.py
import pytest
from fastapi.testclient import TestClient

from freight_rates.core.config import Settings, get_settings
from freight_rates.dependencies import get_config_provider
from freight_rates.main import app
from tests.mocks.mock_carrier import FakeConfigProvider


@pytest.fixture
def settings():
    """Provide test settings with every carrier configured"""
    return Settings(
        ENVIRONMENT="test",
        RATES_API_KEY="test-rates-key",
        CANPAR_API_URL="https://canpar.test/ws/services/CanparRatingService",
        CANPAR_USERNAME="canpar_user",
        CANPAR_PASSWORD="canpar_pass",
        CANPAR_ACCOUNT_NUMBER="42",
        ESHIPPLUS_API_URL="https://eshipplus.test/services/rest/RateShipment.aspx",
        ESHIPPLUS_USERNAME="esp_user",
        ESHIPPLUS_PASSWORD="esp_pass",
        ESHIPPLUS_ACCESS_KEY="esp-access-key",
        ESHIPPLUS_ACCESS_CODE="ESPCODE",
        POLARIS_API_URL="https://polaris.test/api/rate",
        POLARIS_API_KEY="polaris-secret",
    )


@pytest.fixture
def config_provider():
    """In-memory carrier configuration with all three carriers enabled"""
    return FakeConfigProvider()


@pytest.fixture
def test_client(settings, config_provider):
    """Provide a test client with overridden settings and carrier config"""
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_config_provider] = lambda: config_provider
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture
def canpar_request_data():
    """A domestic Canpar request: one 50 lb box, Toronto to Montreal"""
    return {
        "origin": {
            "company": "Acme Widgets",
            "street": "100 King St W",
            "city": "Toronto",
            "state": "ON",
            "postalCode": "m5x 1a9",
            "country": "CA",
            "contact": "Jane Shipper",
            "phone": "4165550100",
        },
        "destination": {
            "company": "Maple Retail",
            "street": "1 Place Ville Marie",
            "city": "Montreal",
            "state": "QC",
            "postalCode": "H3B 2B6",
            "country": "CA",
            "contact": "Marc Receiver",
        },
        "items": [{"weight": 50, "length": 12, "width": 12, "height": 12}],
        "shipmentDate": "2026-10-20",
        "serviceLevels": ["economy"],
    }


@pytest.fixture
def eshipplus_request_data():
    """A complete eShipPlus LTL request"""
    address = {
        "company": "Acme Widgets",
        "street": "200 Main St",
        "city": "Chicago",
        "state": "IL",
        "postalCode": "60601",
        "country": "US",
        "contact": "Jane Shipper",
        "phone": "3125550100",
    }
    return {
        "bookingReferenceNumber": "PO-1001",
        "bookingReferenceNumberType": "Shipment",
        "shipmentBillType": "DefaultLogisticsPlus",
        "shipmentDate": "2026-10-20",
        "pickupWindow": {"earliest": "09:00", "latest": "17:00"},
        "deliveryWindow": {"earliest": "09:00", "latest": "17:00"},
        "origin": address,
        "destination": dict(address, city="Dallas", state="TX", postalCode="75201", contact="Marc Receiver"),
        "items": [
            {
                "description": "Widgets",
                "weight": 500,
                "length": 48,
                "width": 40,
                "height": 48,
                "packagingQuantity": 1,
                "freightClass": "70",
            }
        ],
    }


@pytest.fixture
def polaris_request_data():
    """A Polaris LTL request with one skid"""
    return {
        "origin": {"postalCode": "L4T 1A1", "country": "CA"},
        "destination": {"postalCode": "48226", "country": "US"},
        "items": [{"description": "Auto parts", "weight": 800, "packagingQuantity": 2}],
    }


@pytest.fixture
def universal_request_data():
    """A universal rate request in the loosely-spelled caller format"""
    return {
        "companyId": "company-1",
        "originAddress": {
            "companyName": "Acme Widgets",
            "address1": "100 King St W",
            "city": "Toronto",
            "stateProv": "ON",
            "zipPostal": "M5X 1A9",
            "country": "CA",
            "contactName": "Jane Shipper",
        },
        "destinationAddress": {
            "companyName": "Maple Retail",
            "address1": "1 Place Ville Marie",
            "city": "Montreal",
            "stateProv": "QC",
            "zipPostal": "H3B 2B6",
            "country": "CA",
            "contactName": "Marc Receiver",
        },
        "packages": [{"weight": 50, "length": 12, "width": 12, "height": 12, "quantity": 1}],
        "shipmentInfo": {"shipmentDate": "2026-10-20", "bookingRef": "PO-2002"},
    }
