"""
Carrier configuration providers.

Adapters and the aggregator never read credentials from a global; they are
handed a provider that answers two questions: which carriers are enabled for a
company, and what URL/credentials to use for a carrier operation.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import async_sessionmaker

from freight_rates.core.config import Settings
from freight_rates.core.enums import CarrierKey
from freight_rates.core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

CARRIER_DISPLAY_NAMES = {
    CarrierKey.CANPAR.value: "Canpar Express",
    CarrierKey.ESHIPPLUS.value: "eShipPlus",
    CarrierKey.POLARISTRANSPORTATION.value: "Polaris Transportation",
}


@dataclass
class CarrierApiConfig:
    carrier_id: str
    operation: str
    api_url: str
    credentials: Dict[str, Any] = field(default_factory=dict)


@dataclass
class EnabledCarrier:
    carrier_id: str
    name: str
    carrier_key: Optional[str] = None
    company_id: Optional[str] = None
    enabled: bool = True


def resolve_endpoint(carrier_id: str, operation: str, credentials: Dict[str, Any]) -> str:
    """
    Build the URL for ``operation`` from stored credentials.

    ``endpoints[operation]`` may be absolute or relative to ``hostURL``.
    """
    endpoint = (credentials.get("endpoints") or {}).get(operation)
    if not endpoint:
        raise ConfigurationError(
            f"{carrier_id} carrier missing required {operation} endpoint configuration",
            details={"carrier": carrier_id, "operation": operation},
        )
    if endpoint.startswith(("http://", "https://")):
        return endpoint

    host = credentials.get("hostURL") or ""
    if not host:
        raise ConfigurationError(
            f"{carrier_id} carrier missing required hostURL configuration",
            details={"carrier": carrier_id, "operation": operation},
        )
    return f"{host.rstrip('/')}/{endpoint.lstrip('/')}"


class CarrierConfigProvider(ABC):
    """Source of carrier credentials, endpoints and enablement"""

    @abstractmethod
    async def get_carrier_api_config(self, carrier_id: str, operation: str) -> CarrierApiConfig:
        pass

    @abstractmethod
    async def get_enabled_carriers(self, company_id: Optional[str]) -> List[EnabledCarrier]:
        pass


class SettingsCarrierConfigProvider(CarrierConfigProvider):
    """Reads carrier credentials from application settings (environment / .env)."""

    def __init__(self, settings: Settings):
        self.settings = settings

    def _credentials(self, carrier_id: str) -> Dict[str, Any]:
        s = self.settings
        if carrier_id == CarrierKey.CANPAR.value:
            return {
                "username": s.CANPAR_USERNAME,
                "password": s.CANPAR_PASSWORD,
                "accountNumber": s.CANPAR_ACCOUNT_NUMBER,
                "endpoints": {"rate": s.CANPAR_API_URL},
            }
        if carrier_id == CarrierKey.ESHIPPLUS.value:
            return {
                "username": s.ESHIPPLUS_USERNAME,
                "password": s.ESHIPPLUS_PASSWORD,
                "secret": s.ESHIPPLUS_ACCESS_KEY,
                "accessCode": s.ESHIPPLUS_ACCESS_CODE,
                "endpoints": {"rate": s.ESHIPPLUS_API_URL},
            }
        if carrier_id == CarrierKey.POLARISTRANSPORTATION.value:
            return {
                "secret": s.POLARIS_API_KEY,
                "endpoints": {"rate": s.POLARIS_API_URL},
            }
        raise ConfigurationError(
            f"No configuration available for carrier {carrier_id}",
            details={"carrier": carrier_id},
        )

    async def get_carrier_api_config(self, carrier_id: str, operation: str) -> CarrierApiConfig:
        carrier_id = carrier_id.upper()
        credentials = self._credentials(carrier_id)
        api_url = resolve_endpoint(carrier_id, operation, credentials)
        return CarrierApiConfig(carrier_id=carrier_id, operation=operation, api_url=api_url, credentials=credentials)

    async def get_enabled_carriers(self, company_id: Optional[str]) -> List[EnabledCarrier]:
        return [
            EnabledCarrier(
                carrier_id=code,
                name=CARRIER_DISPLAY_NAMES.get(code, code),
                carrier_key=code,
            )
            for code in self.settings.ENABLED_CARRIERS
        ]


class DatabaseCarrierConfigProvider(CarrierConfigProvider):
    """Reads the ``carrier_configs`` table."""

    def __init__(self, session_factory: async_sessionmaker):
        self.session_factory = session_factory

    async def get_carrier_api_config(self, carrier_id: str, operation: str) -> CarrierApiConfig:
        from freight_rates.models.carrier import CarrierConfig

        carrier_id = carrier_id.upper()
        async with self.session_factory() as session:
            result = await session.execute(
                select(CarrierConfig)
                .where(CarrierConfig.carrier_id == carrier_id, CarrierConfig.enabled.is_(True))
                .order_by(CarrierConfig.company_id.is_(None), CarrierConfig.id)
                .limit(1)
            )
            row = result.scalars().first()

        if row is None:
            raise ConfigurationError(
                f"No configuration found for carrier {carrier_id}",
                details={"carrier": carrier_id},
            )

        credentials = dict(row.api_credentials or {})
        api_url = resolve_endpoint(carrier_id, operation, credentials)
        return CarrierApiConfig(carrier_id=carrier_id, operation=operation, api_url=api_url, credentials=credentials)

    async def get_enabled_carriers(self, company_id: Optional[str]) -> List[EnabledCarrier]:
        from freight_rates.models.carrier import CarrierConfig

        async with self.session_factory() as session:
            rows = []
            if company_id:
                result = await session.execute(
                    select(CarrierConfig)
                    .where(CarrierConfig.company_id == company_id, CarrierConfig.enabled.is_(True))
                    .order_by(CarrierConfig.id)
                )
                rows = list(result.scalars().all())

            if not rows:
                logger.info(f"No company-specific carriers for {company_id}, using global carriers")
                result = await session.execute(
                    select(CarrierConfig)
                    .where(CarrierConfig.company_id.is_(None), CarrierConfig.enabled.is_(True))
                    .order_by(CarrierConfig.id)
                )
                rows = list(result.scalars().all())

        return [
            EnabledCarrier(
                carrier_id=row.carrier_id,
                name=row.name,
                carrier_key=row.carrier_key,
                company_id=row.company_id,
                enabled=row.enabled,
            )
            for row in rows
        ]
