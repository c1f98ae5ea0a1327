# freight_rates/core/config.py

import os
from functools import lru_cache
from typing import Annotated, List

from pydantic import BeforeValidator, ConfigDict
from pydantic_settings import BaseSettings, NoDecode


def _parse_carrier_list(value):
    if value in (None, "", []):
        return []
    if isinstance(value, str):
        return [code.strip().upper() for code in value.split(",") if code.strip()]
    if isinstance(value, (list, tuple, set)):
        return [str(code).strip().upper() for code in value if str(code).strip()]
    return []


class Settings(BaseSettings):
    """
    Application settings.
    Loads values from environment variables (.env file)
    """
    # Database settings
    DATABASE_URL: str = ""

    # Environment
    ENVIRONMENT: str = "development"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Internal caller authentication
    SKIP_API_KEY_VALIDATION: bool = False
    RATES_API_KEY: str = ""

    # Where carrier credentials/endpoints come from: "settings" or "database"
    CARRIER_CONFIG_SOURCE: str = "settings"
    ENABLED_CARRIERS: Annotated[List[str], NoDecode, BeforeValidator(lambda v: _parse_carrier_list(v))] = [
        "ESHIPPLUS", "CANPAR", "POLARISTRANSPORTATION"
    ]

    # Outbound timeouts (seconds)
    CARRIER_HTTP_TIMEOUT: float = 60.0  # platform default, Canpar relies on it
    ESHIPPLUS_TIMEOUT: float = 30.0
    POLARIS_TIMEOUT: float = 30.0

    # Canpar (SOAP)
    CANPAR_API_URL: str = ""
    CANPAR_USERNAME: str = ""
    CANPAR_PASSWORD: str = ""
    CANPAR_ACCOUNT_NUMBER: str = ""

    # eShipPlus (REST)
    ESHIPPLUS_API_URL: str = "https://cloudstaging.eshipplus.com/services/rest/RateShipment.aspx"
    ESHIPPLUS_USERNAME: str = ""
    ESHIPPLUS_PASSWORD: str = ""
    ESHIPPLUS_ACCESS_KEY: str = ""
    ESHIPPLUS_ACCESS_CODE: str = ""

    # Polaris Transportation (REST)
    POLARIS_API_URL: str = ""
    POLARIS_API_KEY: str = ""

    # Forensic payload dumps
    PAYLOAD_LOG_CHUNK_SIZE: int = 4000

    model_config = ConfigDict(
        env_file=os.environ.get('ENV_FILE', '.env') if os.path.exists('.env') else None,
        case_sensitive=True,
        extra="ignore",
    )


@lru_cache()
def get_settings():
    """Cached settings to avoid loading .env file for every request"""
    return Settings()
