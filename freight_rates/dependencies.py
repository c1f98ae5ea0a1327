from typing import Optional

from fastapi import Depends
from sqlalchemy.ext.asyncio import async_sessionmaker

from freight_rates.core.config import Settings, get_settings
from freight_rates.core.security import ApiKeyValidator
from freight_rates.services.shipping.aggregator import UniversalRateAggregator
from freight_rates.services.shipping.config_provider import (
    CarrierConfigProvider,
    DatabaseCarrierConfigProvider,
    SettingsCarrierConfigProvider,
)


def get_session_factory_if_configured(settings: Settings = Depends(get_settings)) -> Optional[async_sessionmaker]:
    """Session factory when a database is configured, else None."""
    if not settings.DATABASE_URL:
        return None
    from freight_rates.database import get_session_factory
    return get_session_factory()


def get_config_provider(
    settings: Settings = Depends(get_settings),
    session_factory: Optional[async_sessionmaker] = Depends(get_session_factory_if_configured),
) -> CarrierConfigProvider:
    """Dependency for the carrier configuration source."""
    if settings.CARRIER_CONFIG_SOURCE.lower() == "database" and session_factory is not None:
        return DatabaseCarrierConfigProvider(session_factory)
    return SettingsCarrierConfigProvider(settings)


def get_api_key_validator(
    settings: Settings = Depends(get_settings),
    session_factory: Optional[async_sessionmaker] = Depends(get_session_factory_if_configured),
) -> ApiKeyValidator:
    return ApiKeyValidator(settings, session_factory)


def get_aggregator(
    settings: Settings = Depends(get_settings),
    config_provider: CarrierConfigProvider = Depends(get_config_provider),
) -> UniversalRateAggregator:
    return UniversalRateAggregator(config_provider, settings)
