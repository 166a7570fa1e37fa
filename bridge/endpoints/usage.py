"""
Usage snapshot endpoints.
"""
from fastapi import APIRouter, Request, Response

router = APIRouter(prefix="/api")


@router.get("/usage")
async def fetch_usage(request: Request):
    """Fetch a fresh usage snapshot (never fails; errors are in the body)"""
    return await request.app.state.service.refresh()


@router.get("/usage/last")
async def last_usage(request: Request):
    """Most recent snapshot without hitting the API"""
    data = request.app.state.service.last_data
    if data is None:
        return Response(status_code=204)
    return data


@router.get("/settings")
async def get_settings(request: Request):
    """Polling interval and debug flag for the front end"""
    return request.app.state.service.get_settings()
