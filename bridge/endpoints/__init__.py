"""
Endpoint handlers for the local bridge server.
"""
from .auth import router as auth_router
from .health import router as health_router
from .usage import router as usage_router

__all__ = [
    'auth_router',
    'health_router',
    'usage_router',
]
