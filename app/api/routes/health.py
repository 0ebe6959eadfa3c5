"""
Health and readiness check API endpoints
"""

from fastapi import APIRouter, HTTPException
from app.services.health_service import health_service, SERVICE_NAME

router = APIRouter()


@router.get("/health")
async def health_check():
    """Simple health check endpoint"""
    return {"status": "healthy", "service": SERVICE_NAME}


@router.get("/healthz")
async def liveness_check():
    """
    Liveness check endpoint

    Returns:
        Basic health status indicating if the service is running
    """
    return health_service.liveness_check()


@router.get("/readyz")
async def readiness_check():
    """
    Readiness check endpoint

    Returns:
        Readiness status with database and configuration checks
    """
    result = health_service.readiness_check()
    if result["status"] != "ready":
        raise HTTPException(status_code=503, detail=result)
    return result
