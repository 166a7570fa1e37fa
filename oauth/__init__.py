"""OAuth authentication package for Claude Pulse"""

from .authorization import build_authorize_url
from .browser import BrowserSurface, SystemBrowserSurface, redirect_url_from_input
from .errors import LoginError
from .flow import AuthorizationFlow, FlowState
from .models import PKCESession, RefreshResult, TokenSet
from .pkce import compute_challenge, generate_pkce_session
from .token_exchange import exchange_code
from .token_refresh import TokenRefresher

__all__ = [
    "AuthorizationFlow",
    "BrowserSurface",
    "FlowState",
    "LoginError",
    "PKCESession",
    "RefreshResult",
    "SystemBrowserSurface",
    "TokenRefresher",
    "TokenSet",
    "build_authorize_url",
    "compute_challenge",
    "exchange_code",
    "generate_pkce_session",
    "redirect_url_from_input",
]
