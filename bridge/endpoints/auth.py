"""
Login and logout endpoints.
"""
from fastapi import APIRouter, Request

router = APIRouter(prefix="/api")


@router.post("/login")
async def login(request: Request):
    """Run the interactive login flow"""
    return await request.app.state.service.login()


@router.post("/logout")
async def logout(request: Request):
    """Clear stored credentials"""
    return request.app.state.service.logout()


@router.get("/auth/status")
async def auth_status(request: Request):
    """Get credential status without exposing secrets"""
    return request.app.state.service.storage.get_status()
