"""
Health API - Liveness of a service and of what it depends on
"""

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.orm import Session
from datetime import datetime
from typing import Callable, Dict, Optional, Tuple
import logging

import httpx

from taskhub.clients.base import check_service_health
from taskhub.core.config import settings
from taskhub.database import get_db

logger = logging.getLogger(__name__)

# name -> (settings attribute holding the base URL, whether an outage makes this service unhealthy)
SiblingChecks = Dict[str, Tuple[str, bool]]


def get_health_transport() -> Optional[httpx.BaseTransport]:
    """Transport used for sibling probes; None means real network"""
    return None


def check_database(db: Session) -> dict:
    try:
        db.execute(text("SELECT 1"))
        return {"status": "healthy"}
    except Exception as e:
        logger.error(f"❌ Database health check failed: {e}")
        return {"status": "unhealthy", "error": str(e)}


def create_health_router(service_name: str, siblings: Optional[SiblingChecks] = None) -> APIRouter:
    """
    Build /up and /api/v1/health for one service.

    The database is always checked and always fatal. Siblings marked
    non-fatal are reported but leave the overall status healthy.
    """
    router = APIRouter(tags=["Health"])
    siblings = siblings or {}

    def health(
        db: Session = Depends(get_db),
        transport: Optional[httpx.BaseTransport] = Depends(get_health_transport)
    ):
        dependencies = {"database": check_database(db)}
        healthy = dependencies["database"]["status"] == "healthy"

        for name, (url_setting, fatal) in siblings.items():
            outcome = check_service_health(name, getattr(settings, url_setting), transport=transport)
            if not fatal:
                outcome["critical"] = False
            dependencies[name] = outcome
            if fatal and outcome["status"] != "healthy":
                healthy = False

        if not healthy:
            logger.warning(f"⚠️  {service_name} unhealthy: {dependencies}")

        return JSONResponse(
            status_code=status.HTTP_200_OK if healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "service": service_name,
                "status": "healthy" if healthy else "unhealthy",
                "timestamp": datetime.utcnow().isoformat(),
                "version": settings.APP_VERSION,
                "dependencies": dependencies,
            },
        )

    router.add_api_route("/up", health, methods=["GET"])
    router.add_api_route("/api/v1/health", health, methods=["GET"])
    return router
