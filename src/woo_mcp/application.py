"""Woo Application - orchestrator for all server components."""

import asyncio
import signal
import time

import structlog
from aiohttp import web

from .bridge.gateway import BridgeGateway
from .config import ServerConfig
from .health import SERVER_NAME, ServerStatus
from .mcp.registry import SessionRegistry
from .mcp.session import McpSession
from .tools import ToolRegistry, build_tool_registry

logger = structlog.get_logger(__name__)


class WooApplication:
    """
    Woo Application orchestrator.

    Wires the bridge gateway, the tool registry and the session registry
    together and serves them over HTTP.
    """

    def __init__(self, config: ServerConfig, version: str = "0.0.0.dev0"):
        """Initialize application.

        Args:
            config: Validated server configuration
            version: Version reported to clients
        """
        self.config = config
        self.version = version
        self.started_at = time.time()

        self.gateway = BridgeGateway(default_timeout_ms=config.bridge_timeout_ms)
        self.tools: ToolRegistry = build_tool_registry(
            self.gateway,
            started_at=self.started_at,
            exec_timeout_ms=config.exec_timeout_ms,
            blocked_commands=config.blocked_commands,
        )
        self.sessions = SessionRegistry(self._create_session)
        self._shutdown_complete = False

    def _create_session(self, session_id: str) -> McpSession:
        return McpSession(
            session_id,
            tools=self.tools,
            server_info={"name": SERVER_NAME, "version": self.version},
        )

    def status(self) -> ServerStatus:
        """Snapshot of the server state."""
        return ServerStatus(
            version=self.version,
            bridge_connected=self.gateway.is_connected,
            agent=dict(self.gateway.agent_info),
            tools=self.tools.names(),
            sessions=len(self.sessions),
            pending_requests=len(self.gateway.registry),
            start_time=self.started_at,
        )

    def create_web_app(self) -> web.Application:
        """Build the aiohttp application."""
        from .server import create_app

        return create_app(self)

    async def run(self) -> None:
        """Serve until SIGINT/SIGTERM."""
        if not self.config.bridge_key:
            logger.warning("No bridge key configured: local bridge connections will be rejected")
        if not self.config.auth_token:
            logger.warning("No auth token configured: /mcp is open to anyone who can reach it")

        runner = web.AppRunner(self.create_web_app())
        await runner.setup()
        site = web.TCPSite(runner, self.config.host, self.config.port)
        await site.start()
        logger.info(f"{SERVER_NAME} on port {self.config.port}")

        shutdown_event = asyncio.Event()

        def signal_handler() -> None:
            logger.info("Received shutdown signal")
            shutdown_event.set()

        loop = asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(sig, signal_handler)

        try:
            await shutdown_event.wait()
        finally:
            await runner.cleanup()

    async def shutdown(self) -> None:
        """Close sessions and the bridge link."""
        if self._shutdown_complete:
            return
        self._shutdown_complete = True
        logger.info("Shutting down...")
        await self.sessions.close_all()
        await self.gateway.close()
        logger.info("Shutdown complete")
