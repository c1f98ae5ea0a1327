from fastapi import APIRouter

from freight_rates.services.shipping.factory import SUPPORTED_CARRIERS

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check():
    """Basic health check"""
    return {
        "status": "healthy",
        "service": "Freight Rates",
        "carriers": sorted(SUPPORTED_CARRIERS),
    }
