"""
Bridge liveness endpoint.
"""
from fastapi import APIRouter, Request

router = APIRouter()


@router.get("/health")
async def health_check(request: Request):
    """Report bridge mode and whether a poll result is available yet"""
    service = request.app.state.service
    return {
        "status": "ok",
        "mock": service.mock,
        "loginInProgress": service.login_in_progress,
        "hasSnapshot": service.last_data is not None,
    }
