"""Browser surfaces that host the authorization page

A surface exposes three navigation observers (will-navigate, will-redirect
and a URL-prefix request filter) plus a closed notification. The login flow
registers on all of them because different navigation types reach
different hooks first.
"""

import asyncio
import logging
import threading
import webbrowser
from abc import ABC, abstractmethod
from typing import Callable, List, Optional, Tuple
from urllib.parse import urlencode

from rich.console import Console

from settings import REDIRECT_URI

logger = logging.getLogger(__name__)

# Returns True when the handler consumed the navigation
NavigationHandler = Callable[[str], bool]
ClosedHandler = Callable[[], None]


class BrowserSurface(ABC):
    """Base class for a browser-capable surface"""

    def __init__(self):
        self._will_navigate_handlers: List[NavigationHandler] = []
        self._will_redirect_handlers: List[NavigationHandler] = []
        self._request_filters: List[Tuple[str, NavigationHandler]] = []
        self._closed_handlers: List[ClosedHandler] = []
        self._closed = False

    def on_will_navigate(self, handler: NavigationHandler):
        self._will_navigate_handlers.append(handler)

    def on_will_redirect(self, handler: NavigationHandler):
        self._will_redirect_handlers.append(handler)

    def on_before_request(self, url_prefix: str, handler: NavigationHandler):
        self._request_filters.append((url_prefix, handler))

    def on_closed(self, handler: ClosedHandler):
        self._closed_handlers.append(handler)

    @property
    def is_closed(self) -> bool:
        return self._closed

    def emit_will_navigate(self, url: str) -> bool:
        return self._dispatch(self._will_navigate_handlers, url)

    def emit_will_redirect(self, url: str) -> bool:
        return self._dispatch(self._will_redirect_handlers, url)

    def emit_request(self, url: str) -> bool:
        handlers = [handler for prefix, handler in self._request_filters if url.startswith(prefix)]
        return self._dispatch(handlers, url)

    def _dispatch(self, handlers: List[NavigationHandler], url: str) -> bool:
        if self._closed:
            return False
        consumed = False
        for handler in list(handlers):
            if handler(url):
                consumed = True
        return consumed

    @abstractmethod
    async def load_url(self, url: str):
        """Show the given URL"""

    def _teardown(self):
        """Release surface resources; called once from close()"""

    def close(self):
        """Close the surface; notifies closed handlers exactly once"""
        if self._closed:
            return
        self._closed = True
        self._teardown()
        for handler in list(self._closed_handlers):
            handler()


def redirect_url_from_input(value: str, redirect_uri: str = REDIRECT_URI) -> str:
    """Turn pasted input into a redirect URL

    Accepts either the full redirect URL from the address bar or the
    CODE#STATE value displayed by the callback page.
    """
    value = value.strip()
    if value.startswith(("http://", "https://")):
        return value
    return f"{redirect_uri}?{urlencode({'code': value})}"


class SystemBrowserSurface(BrowserSurface):
    """Opens the system browser and reads the redirect back from the terminal

    The system browser cannot be observed directly, so the user pastes the
    final redirect URL (or the displayed code). An empty line or EOF counts
    as closing the login window.
    """

    def __init__(
        self,
        console: Optional[Console] = None,
        input_fn: Callable[[str], str] = input,
        redirect_uri: str = REDIRECT_URI,
    ):
        super().__init__()
        self.console = console or Console()
        self.input_fn = input_fn
        self.redirect_uri = redirect_uri
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._reader: Optional[threading.Thread] = None

    async def load_url(self, url: str):
        self._loop = asyncio.get_running_loop()

        self.console.print("\n[bold]Step 1:[/bold] Opening browser for authentication...")
        if webbrowser.open(url):
            self.console.print("[green][OK][/green] Browser opened successfully")
        else:
            self.console.print("[yellow]Could not open browser automatically[/yellow]")
            self.console.print(f"Please open this URL manually:\n{url}")

        self.console.print("\n[bold]Step 2:[/bold] Complete the login process in your browser")
        self.console.print("\n[bold]Step 3:[/bold] Paste the authorization code or the final URL below")
        self.console.print("[dim]The code should look like: CODE#STATE (empty line cancels)[/dim]\n")
        self._start_reader()

    def _start_reader(self):
        # Daemon thread: a pending input() must not keep the process alive
        self._reader = threading.Thread(target=self._read_input, name="login-input", daemon=True)
        self._reader.start()

    def _read_input(self):
        try:
            value = self.input_fn("Authorization code: ")
        except (EOFError, KeyboardInterrupt):
            value = ""
        if self._loop is not None and not self._loop.is_closed():
            self._loop.call_soon_threadsafe(self._deliver, value)

    def _deliver(self, value: str):
        if self._closed:
            return
        if not value or not value.strip():
            logger.debug("Empty authorization input, treating as window close")
            self.close()
            return

        url = redirect_url_from_input(value, self.redirect_uri)
        if self.emit_will_navigate(url) or self.emit_request(url):
            return

        self.console.print(f"[yellow]That does not look like a redirect to {self.redirect_uri}, try again[/yellow]")
        self._start_reader()
