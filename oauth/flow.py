"""Interactive Authorization Code + PKCE login

State machine: IDLE -> AWAITING_REDIRECT -> EXCHANGING_CODE -> SUCCEEDED | FAILED

Settlement is guarded by PKCESession.settled. Every observer checks and
sets it before acting, so the first of redirect capture, window close or
timeout wins and the rest are no-ops. The surface is closed exactly once on
every exit path.
"""

import asyncio
import logging
import time
from enum import Enum
from typing import Callable, Optional
from urllib.parse import parse_qs, urlparse

import httpx

from settings import DEFAULT_TOKEN_LIFETIME, LOGIN_TIMEOUT, REDIRECT_URI, SCOPES, TOKEN_URL
from utils.storage import CredentialRecord, CredentialStore
from .authorization import build_authorize_url
from .browser import BrowserSurface
from .errors import LoginError
from .models import PKCESession, TokenSet
from .pkce import generate_pkce_session
from .token_exchange import exchange_code

logger = logging.getLogger(__name__)


class FlowState(str, Enum):
    IDLE = "idle"
    AWAITING_REDIRECT = "awaiting_redirect"
    EXCHANGING_CODE = "exchanging_code"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class AuthorizationFlow:
    """One interactive login attempt"""

    def __init__(
        self,
        storage: CredentialStore,
        surface_factory: Callable[[], BrowserSurface],
        timeout: float = LOGIN_TIMEOUT,
        redirect_uri: str = REDIRECT_URI,
        token_url: str = TOKEN_URL,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.storage = storage
        self.surface_factory = surface_factory
        self.timeout = timeout
        self.redirect_uri = redirect_uri
        self.token_url = token_url
        self.transport = transport
        self.clock = clock

        self.state = FlowState.IDLE
        self.session: Optional[PKCESession] = None
        self.surface: Optional[BrowserSurface] = None
        self._future: Optional[asyncio.Future] = None
        self._timer: Optional[asyncio.TimerHandle] = None
        self._callback_task: Optional[asyncio.Task] = None
        self._cleaned_up = False

    async def run(self) -> TokenSet:
        """Run the login to completion

        Returns:
            TokenSet that was stored

        Raises:
            LoginError: on denial, missing code, window close, timeout or exchange failure
            RuntimeError: if this flow instance was already started
        """
        if self.state != FlowState.IDLE:
            raise RuntimeError("AuthorizationFlow instances can only be run once")

        loop = asyncio.get_running_loop()
        self._future = loop.create_future()
        self.session = generate_pkce_session()
        auth_url = build_authorize_url(self.session, redirect_uri=self.redirect_uri)

        self.surface = self.surface_factory()
        self.surface.on_will_navigate(self._intercept)
        self.surface.on_will_redirect(self._intercept)
        self.surface.on_before_request(self.redirect_uri, self._intercept)
        self.surface.on_closed(self._on_surface_closed)

        self.state = FlowState.AWAITING_REDIRECT
        self._timer = loop.call_later(self.timeout, self._on_timeout)
        logger.info("Login started, waiting for authorization redirect")

        try:
            await self.surface.load_url(auth_url)
            return await self._future
        finally:
            # Covers cancellation of run() and load_url failures
            if self.session is not None:
                self.session.settled = True
            if self._callback_task is not None and not self._callback_task.done():
                self._callback_task.cancel()
            self._cleanup()

    def _try_settle(self) -> bool:
        """Check-and-set on the session; True only for the first caller"""
        if self.session is None or self.session.settled:
            return False
        self.session.settled = True
        return True

    def _intercept(self, url: str) -> bool:
        if not url.startswith(self.redirect_uri):
            return False
        if not self._try_settle():
            # Still swallow the navigation so the redirect page never loads
            return True
        self._callback_task = asyncio.create_task(self._handle_callback(url))
        return True

    def _on_surface_closed(self):
        if self._try_settle():
            logger.info("Login window was closed before completion")
            self._fail(LoginError("window_closed", "Login window was closed"))

    def _on_timeout(self):
        if self._try_settle():
            logger.warning(f"Login timed out after {self.timeout} seconds")
            self._fail(LoginError("timeout", "Login timed out"))

    async def _handle_callback(self, url: str):
        query = parse_qs(urlparse(url).query)
        error = query.get("error", [None])[0]
        code = query.get("code", [None])[0]

        if error:
            self._fail(LoginError("authorization_denied", f"Authorization failed: {error}"))
            return
        if not code:
            self._fail(LoginError("no_code", "No authorization code received"))
            return

        # The callback page appends #state to the displayed code
        code = code.split("#")[0]

        self.state = FlowState.EXCHANGING_CODE
        try:
            tokens = await exchange_code(
                code,
                self.session,
                token_url=self.token_url,
                redirect_uri=self.redirect_uri,
                transport=self.transport,
            )
            self._save_tokens(tokens)
        except LoginError as e:
            self._fail(e)
            return
        except Exception as e:
            logger.exception("Unexpected error while completing login")
            self._fail(LoginError("unexpected", str(e)))
            return

        self._succeed(tokens)

    def _save_tokens(self, tokens: TokenSet):
        lifetime = tokens.expires_in or DEFAULT_TOKEN_LIFETIME
        record = CredentialRecord(
            access_token=tokens.access_token,
            refresh_token=tokens.refresh_token,
            expires_at=int(self.clock() * 1000) + int(lifetime) * 1000,
            scopes=(tokens.scope or SCOPES).split(),
        )
        self.storage.write(record)
        logger.info("Authentication complete, credentials stored")

    def _succeed(self, tokens: TokenSet):
        self.state = FlowState.SUCCEEDED
        self._cleanup()
        if not self._future.done():
            self._future.set_result(tokens)

    def _fail(self, error: LoginError):
        self.state = FlowState.FAILED
        self._cleanup()
        if not self._future.done():
            self._future.set_exception(error)

    def _cleanup(self):
        if self._cleaned_up:
            return
        self._cleaned_up = True
        if self._timer is not None:
            self._timer.cancel()
        if self.surface is not None:
            self.surface.close()
