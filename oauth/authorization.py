"""OAuth authorization URL construction"""

from urllib.parse import urlencode

from settings import AUTHORIZE_URL, CLIENT_ID, REDIRECT_URI, SCOPES
from .models import PKCESession


def build_authorize_url(
    session: PKCESession,
    authorize_url: str = AUTHORIZE_URL,
    redirect_uri: str = REDIRECT_URI,
) -> str:
    """Construct OAuth authorize URL with PKCE

    Args:
        session: PKCE session for this login attempt
        authorize_url: Authorization endpoint
        redirect_uri: Redirect URI registered for the client

    Returns:
        Full authorization URL
    """
    params = {
        "code": "true",  # Ask the server to display the code after redirect
        "client_id": CLIENT_ID,
        "response_type": "code",
        "redirect_uri": redirect_uri,
        "scope": SCOPES,
        "code_challenge": session.challenge,
        "code_challenge_method": "S256",
        "state": session.state,
    }

    return f"{authorize_url}?{urlencode(params)}"
