"""
BridgeServer class for CLI control of the FastAPI application.
"""
import logging
from typing import Optional

import uvicorn

from settings import BIND_ADDRESS, LOG_LEVEL, PORT
from .app import create_app
from .service import PulseService

logger = logging.getLogger(__name__)


class BridgeServer:
    """Local bridge server wrapper for CLI control"""

    def __init__(self, service: PulseService, bind_address: Optional[str] = None, port: Optional[int] = None):
        self.server = None
        self.config = None
        self.service = service
        self.bind_address = bind_address or BIND_ADDRESS
        self.port = port or PORT

    def run(self):
        """Run the bridge server (blocking)"""
        logger.info(f"Starting Claude Pulse bridge on http://{self.bind_address}:{self.port}")
        self.config = uvicorn.Config(
            create_app(self.service),
            host=self.bind_address,
            port=self.port,
            log_level=LOG_LEVEL,
            access_log=False  # Reduce noise in CLI
        )
        self.server = uvicorn.Server(self.config)
        self.server.run()

    def stop(self):
        """Stop the bridge server"""
        if self.server:
            self.server.should_exit = True
