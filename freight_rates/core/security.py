"""
API key validation for internal callers of the rate endpoints
"""

import logging
import secrets
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker

from freight_rates.core.config import Settings
from freight_rates.core.exceptions import AuthenticationError

logger = logging.getLogger(__name__)


class ApiKeyValidator:
    """
    Checks the optional ``apiKey`` carried on rate requests.

    Validation is skipped only when SKIP_API_KEY_VALIDATION is set, whatever
    the ENVIRONMENT. Otherwise a key is accepted when it matches RATES_API_KEY
    or an active row in ``api_keys``.
    """

    def __init__(self, settings: Settings, session_factory: Optional[async_sessionmaker] = None):
        self.settings = settings
        self.session_factory = session_factory

    def should_skip(self) -> bool:
        return self.settings.SKIP_API_KEY_VALIDATION

    async def validate(self, api_key: Optional[str]) -> None:
        if self.should_skip():
            logger.debug("Skipping API key validation (SKIP_API_KEY_VALIDATION is set)")
            return

        if not api_key:
            raise AuthenticationError("API key is required")

        if self.settings.RATES_API_KEY and secrets.compare_digest(
            api_key.encode("utf8"), self.settings.RATES_API_KEY.encode("utf8")
        ):
            return

        if await self._lookup(api_key):
            return

        logger.warning("Rejected rate request with an unknown API key")
        raise AuthenticationError("Invalid API key")

    async def _lookup(self, api_key: str) -> bool:
        if self.session_factory is None:
            return False

        from freight_rates.models.carrier import ApiKey

        try:
            async with self.session_factory() as session:
                result = await session.execute(
                    select(ApiKey.id).where(ApiKey.key == api_key, ApiKey.active.is_(True))
                )
                return result.scalar_one_or_none() is not None
        except (SQLAlchemyError, OSError) as e:
            logger.error(f"API key lookup failed: {e}", exc_info=True)
            return False
