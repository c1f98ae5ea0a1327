"""
Base Carrier Interface

Every carrier adapter turns a CanonicalRateRequest into the carrier's wire
format, calls the carrier and normalizes the reply. The steps always run in
the same order:

    prepare_request -> resolve config -> check_credentials -> fetch_rates
    (build wire request, POST, classify, normalize) -> non-empty check

Subclasses implement the carrier-specific pieces; HTTP execution and status
classification live here so every adapter reports failures the same way.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import httpx

from freight_rates.core.config import Settings, get_settings
from freight_rates.core.enums import ApiOperation
from freight_rates.core.exceptions import (
    CarrierResponseError,
    NoRatesError,
    TransportError,
    UnavailableError,
)
from freight_rates.core.logging_config import log_payload
from freight_rates.core.utils import truncate
from freight_rates.schemas.rates import CanonicalRateRequest, CanonicalRateResponse
from freight_rates.services.shipping.config_provider import CarrierApiConfig, CarrierConfigProvider

logger = logging.getLogger(__name__)


class BaseCarrier(ABC):
    """Base class for all rate carriers"""

    carrier_name = "Generic Carrier"
    carrier_code = "GENERIC"

    def __init__(self, config_provider: CarrierConfigProvider, settings: Optional[Settings] = None):
        """Initialize the carrier

        Args:
            config_provider: Source of credentials and endpoints
            settings: Application settings (defaults to the cached settings)
        """
        self.config_provider = config_provider
        self.settings = settings or get_settings()

    async def get_rates(self, request: CanonicalRateRequest) -> CanonicalRateResponse:
        """Get rates for a canonical request

        Raises:
            ValidationError: before any network call when the request is unusable
            ConfigurationError: when credentials or endpoint are missing
            TransportError / UnavailableError: network failure or HTTP >= 400
            BusinessError: carrier flagged the request as failed
            NoRatesError: the carrier answered but returned nothing quotable
        """
        prepared = self.prepare_request(request)

        config = await self.config_provider.get_carrier_api_config(self.carrier_code, ApiOperation.RATE.value)
        self.check_credentials(config)

        response = await self.fetch_rates(prepared, config)

        if not response.available_rates:
            raise NoRatesError(
                f"{self.carrier_name}: no rates available",
                details={"carrier": self.carrier_code},
            )

        logger.info(f"{self.carrier_name} returned {len(response.available_rates)} rate(s)")
        return response

    @abstractmethod
    def prepare_request(self, request: CanonicalRateRequest) -> CanonicalRateRequest:
        """Validate and fill defaults; return a copy, never mutate ``request``."""
        pass

    @abstractmethod
    def check_credentials(self, config: CarrierApiConfig) -> None:
        """Raise ConfigurationError unless ``config`` holds what the carrier needs."""
        pass

    @abstractmethod
    async def fetch_rates(self, request: CanonicalRateRequest, config: CarrierApiConfig) -> CanonicalRateResponse:
        """Build the wire request, call the carrier, classify and normalize."""
        pass

    @property
    def timeout(self) -> float:
        return self.settings.CARRIER_HTTP_TIMEOUT

    async def _post(
        self,
        url: str,
        *,
        content: Optional[str] = None,
        json: Optional[Any] = None,
        headers: Optional[Dict[str, str]] = None,
        params: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> httpx.Response:
        """POST to the carrier, accepting every status code.

        Only network failures raise here; status interpretation happens in
        ``classify_response`` so error bodies can be inspected.
        """
        timeout = timeout or self.timeout
        try:
            async with httpx.AsyncClient(timeout=timeout) as client:
                return await client.post(url, content=content, json=json, headers=headers, params=params)
        except httpx.TimeoutException as e:
            logger.error(f"{self.carrier_name} request timed out after {timeout}s: {e}")
            raise TransportError(
                f"{self.carrier_name} request timed out after {timeout}s",
                details={"carrier": self.carrier_code},
            ) from e
        except httpx.RequestError as e:
            logger.error(f"{self.carrier_name} request failed: {e}")
            raise TransportError(
                f"{self.carrier_name} request failed: {e}",
                details={"carrier": self.carrier_code},
            ) from e

    def extract_error_message(self, body_text: str) -> Optional[str]:
        """Carrier-supplied message in an error body, if any"""
        return None

    def classify_response(self, response: httpx.Response) -> None:
        """Raise TransportError (or UnavailableError for 503) when status >= 400."""
        status_code = response.status_code
        if status_code < 400:
            return

        body_text = response.text or ""
        log_payload(
            logger,
            f"{self.carrier_name} error response (HTTP {status_code})",
            body_text,
            chunk_size=self.settings.PAYLOAD_LOG_CHUNK_SIZE,
            level=logging.ERROR,
        )

        carrier_message = self.extract_error_message(body_text)
        message = f"{self.carrier_name} API error: HTTP {status_code}"
        if carrier_message:
            message = f"{message}: {carrier_message}"

        details = {"carrier": self.carrier_code, "statusCode": status_code, "body": truncate(body_text)}
        error_class = UnavailableError if status_code == 503 else TransportError
        raise error_class(message, status_code=status_code, details=details)

    def parse_json(self, response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            log_payload(logger, f"{self.carrier_name} unparseable response", response.text, level=logging.ERROR)
            raise CarrierResponseError(
                f"{self.carrier_name} returned a response that is not valid JSON",
                details={"carrier": self.carrier_code, "body": truncate(response.text)},
            ) from e
