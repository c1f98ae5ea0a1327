"""
Carrier configuration and caller API key tables read by the rate pipeline.
"""

from sqlalchemy import Boolean, Column, Integer, String, TIMESTAMP, Text, text
from sqlalchemy.dialects.postgresql import JSONB

from freight_rates.database import Base


class CarrierConfig(Base):
    """
    One carrier enabled either for a single company or globally.

    Rows with ``company_id`` NULL are the global fallback used when a company
    has no carriers of its own.
    """
    __tablename__ = "carrier_configs"

    id = Column(Integer, primary_key=True, index=True)

    carrier_id = Column(String, nullable=False, index=True)  # e.g. "CANPAR"
    name = Column(String, nullable=False)
    carrier_key = Column(String, nullable=True)
    company_id = Column(String, nullable=True, index=True)
    enabled = Column(Boolean, nullable=False, server_default=text("true"))

    # {"username", "password", "accountNumber", "secret", "accessCode", "hostURL", "endpoints": {"rate": ...}}
    api_credentials = Column(JSONB, nullable=False, server_default=text("'{}'::jsonb"))

    created_at = Column(
        TIMESTAMP(timezone=False),
        server_default=text("timezone('utc', now())"),
        nullable=False
    )
    updated_at = Column(
        TIMESTAMP(timezone=False),
        server_default=text("timezone('utc', now())"),
        onupdate=text("timezone('utc', now())"),
        nullable=False
    )

    def __repr__(self):
        return f"<CarrierConfig {self.carrier_id} company={self.company_id} enabled={self.enabled}>"


class ApiKey(Base):
    """Keys internal callers present on rate requests"""
    __tablename__ = "api_keys"

    id = Column(Integer, primary_key=True, index=True)
    key = Column(String, nullable=False, unique=True, index=True)
    active = Column(Boolean, nullable=False, server_default=text("true"))
    description = Column(Text, nullable=True)

    created_at = Column(
        TIMESTAMP(timezone=False),
        server_default=text("timezone('utc', now())"),
        nullable=False
    )
