"""
Health and readiness check service
"""

import logging
import time
from typing import Dict, Any
from sqlalchemy import text
from app.core.database import get_db
from app.core.config import settings

logger = logging.getLogger(__name__)

SERVICE_NAME = "boxing-locker-api"
SERVICE_VERSION = "1.0.0"


class HealthService:
    """
    Service for health and readiness checks
    """

    def _get_timestamp(self) -> float:
        return time.time()

    def liveness_check(self) -> Dict[str, Any]:
        """
        Liveness check - basic process health
        """
        return {
            "status": "healthy",
            "timestamp": self._get_timestamp(),
            "service": SERVICE_NAME,
            "version": SERVICE_VERSION
        }

    def _check_database(self) -> Dict[str, Any]:
        start = time.time()
        db = next(get_db())
        try:
            db.execute(text("SELECT 1"))
            return {"status": "healthy", "latency_ms": round((time.time() - start) * 1000, 2)}
        except Exception as e:
            logger.error(f"Database health check failed: {str(e)}")
            return {"status": "unhealthy", "error": str(e)}
        finally:
            db.close()

    def _check_configuration(self) -> Dict[str, Any]:
        """Provider keys are reported but do not block readiness"""
        return {
            "status": "healthy",
            "openrouter_api_key": bool(settings.openrouter_api_key),
            "google_api_key": bool(settings.google_api_key),
        }

    def readiness_check(self) -> Dict[str, Any]:
        """
        Readiness check - the database must answer
        """
        checks = {
            "database": self._check_database(),
            "configuration": self._check_configuration(),
        }
        ready = checks["database"]["status"] == "healthy"
        return {
            "status": "ready" if ready else "not_ready",
            "timestamp": self._get_timestamp(),
            "service": SERVICE_NAME,
            "checks": checks
        }


health_service = HealthService()
