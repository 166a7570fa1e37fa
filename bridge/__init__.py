"""
Claude Pulse bridge - the operations the tray front end invokes, plus a
local HTTP server exposing them.
"""
from .app import create_app
from .server import BridgeServer
from .service import PulseService

__version__ = "1.0.0"

__all__ = [
    'BridgeServer',
    'PulseService',
    'create_app',
]
