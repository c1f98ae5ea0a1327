# freight_rates/main.py

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from freight_rates.core.config import get_settings
from freight_rates.core.exceptions import RateServiceError
from freight_rates.core.logging_config import configure_logging
from freight_rates.routes import health, rates

configure_logging(get_settings().LOG_LEVEL)
logger = logging.getLogger(__name__)

ERROR_STATUS_CODES = {
    "invalid-argument": 400,
    "unauthenticated": 401,
    "failed-precondition": 412,
    "unavailable": 503,
    "internal": 500,
}

app = FastAPI(
    title="Freight Rates",
    description="Multi-carrier freight rate aggregation",
    debug=get_settings().DEBUG,
)


@app.exception_handler(RateServiceError)
async def rate_service_error_handler(request: Request, exc: RateServiceError):
    status_code = ERROR_STATUS_CODES.get(exc.code, 500)
    if status_code >= 500:
        logger.error(f"{request.url.path} failed ({exc.code}): {exc.message}")
    else:
        logger.warning(f"{request.url.path} rejected ({exc.code}): {exc.message}")
    return JSONResponse(status_code=status_code, content={"success": False, "error": exc.to_dict()})


app.include_router(health.router)
app.include_router(rates.router)
