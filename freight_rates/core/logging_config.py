# freight_rates/core/logging_config.py
"""
Centralized logging configuration for the application.

Keeps the rate pipeline's own loggers at the configured level while holding
the HTTP and database libraries at WARNING. Also provides ``log_payload`` for
dumping long carrier request/response bodies in numbered chunks.
"""

import logging
import os
import re
from typing import Any, Optional

_SECRET_PATTERNS = [
    # SOAP password element
    (re.compile(r"(<xsd:password>)(.*?)(</xsd:password>)", re.DOTALL), r"\1****\3"),
    # API key passed on the query string
    (re.compile(r"(APIKey=)[^&\s\"']+", re.IGNORECASE), r"\1****"),
]


def configure_logging(level: Optional[str] = None):
    """
    Configure logging for the application.

    - App code: INFO (or LOG_LEVEL)
    - HTTP clients (httpx, httpcore): WARNING only
    - Database: WARNING only
    """
    log_level = (level or os.environ.get("LOG_LEVEL", "INFO")).upper()

    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[logging.StreamHandler()]
    )

    # Quiet noisy HTTP client loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    # Quiet database loggers
    logging.getLogger("sqlalchemy").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("asyncpg").setLevel(logging.WARNING)

    logging.getLogger("freight_rates").setLevel(getattr(logging, log_level, logging.INFO))

    logger = logging.getLogger(__name__)
    logger.info(f"Logging configured at level: {log_level}")


def mask_secrets(text: str) -> str:
    """Blank out passwords and API keys before a payload reaches the log."""
    for pattern, replacement in _SECRET_PATTERNS:
        text = pattern.sub(replacement, text)
    return text


def log_payload(logger: logging.Logger, label: str, payload: Any, chunk_size: int = 4000, level: int = logging.DEBUG):
    """Log a (possibly very long) payload in numbered chunks."""
    if not logger.isEnabledFor(level):
        return
    text = payload if isinstance(payload, str) else repr(payload)
    text = mask_secrets(text)
    if len(text) <= chunk_size:
        logger.log(level, f"{label}: {text}")
        return
    total = (len(text) + chunk_size - 1) // chunk_size
    for index in range(total):
        chunk = text[index * chunk_size:(index + 1) * chunk_size]
        logger.log(level, f"{label} [{index + 1}/{total}]: {chunk}")
