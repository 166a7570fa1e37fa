"""
FastAPI application exposing the Claude Pulse operations to a front end.
"""
import logging
from typing import Optional

from fastapi import FastAPI

from .endpoints import auth_router, health_router, usage_router
from .service import PulseService

logger = logging.getLogger(__name__)


def create_app(service: Optional[PulseService] = None) -> FastAPI:
    """Build the bridge app around a PulseService"""
    app = FastAPI(title="Claude Pulse Bridge", version="1.0.0")
    app.state.service = service or PulseService()

    app.include_router(health_router)
    app.include_router(usage_router)
    app.include_router(auth_router)

    logger.debug("FastAPI bridge initialized with all routers")
    return app
