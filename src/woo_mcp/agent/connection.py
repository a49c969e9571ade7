"""AgentConnection - the local PC side of the bridge.

Connects to the server's /bridge websocket, announces itself and answers
action requests until the connection drops, then reconnects with
exponential backoff. Requests are handled concurrently; replies carry
the request id so their order on the wire does not matter.
"""

import asyncio
import json
import platform
import socket
from typing import Any

import aiohttp
import structlog

from ..shared.auth import bridge_headers
from .executor import ActionExecutor

logger = structlog.get_logger(__name__)

# Close code the server uses for a wrong bridge key
AUTH_REJECTED_CLOSE_CODE = 4001

DEFAULT_RECONNECT_DELAY = 1.0
DEFAULT_MAX_RECONNECT_DELAY = 30.0
DEFAULT_HEARTBEAT = 30.0


class AgentAuthError(Exception):
    """The server rejected the bridge key."""


class AgentConnection:
    """Persistent bridge connection to the server."""

    def __init__(
        self,
        url: str,
        bridge_key: str,
        executor: ActionExecutor | None = None,
        reconnect_delay: float = DEFAULT_RECONNECT_DELAY,
        max_reconnect_delay: float = DEFAULT_MAX_RECONNECT_DELAY,
        max_attempts: int | None = None,
    ):
        """Initialize AgentConnection.

        Args:
            url: Bridge websocket URL (e.g., wss://host/bridge)
            bridge_key: Pre-shared key sent in the x-bridge-key header
            executor: Executor for incoming actions
            reconnect_delay: Initial delay between reconnects in seconds
            max_reconnect_delay: Upper bound for the backoff delay
            max_attempts: Consecutive failed attempts before giving up (None = forever)
        """
        self.url = url
        self.bridge_key = bridge_key
        self.executor = executor or ActionExecutor()
        self.reconnect_delay = reconnect_delay
        self.max_reconnect_delay = max_reconnect_delay
        self.max_attempts = max_attempts

        self.connected = asyncio.Event()
        self._stopping = False
        self._ws: aiohttp.ClientWebSocketResponse | None = None
        self._tasks: set[asyncio.Task] = set()

    def registration(self) -> dict[str, Any]:
        """Handshake frame announcing this machine."""
        return {
            "type": "register",
            "hostname": socket.gethostname(),
            "platform": platform.system().lower(),
        }

    async def run(self) -> None:
        """Connect and serve until stop() is called.

        Raises:
            AgentAuthError: The server rejected the bridge key
            aiohttp.ClientError: max_attempts consecutive connects failed
        """
        attempts = 0
        async with aiohttp.ClientSession() as session:
            while not self._stopping:
                try:
                    await self._serve(session)
                    attempts = 0
                except (aiohttp.ClientError, OSError) as e:
                    attempts += 1
                    logger.warning(f"Bridge connection failed (attempt {attempts}): {e}")
                    if self.max_attempts is not None and attempts >= self.max_attempts:
                        raise

                if self._stopping:
                    break

                delay = min(
                    self.reconnect_delay * (2 ** max(attempts - 1, 0)),
                    self.max_reconnect_delay,
                )
                logger.info(f"Reconnecting in {delay}s...")
                await asyncio.sleep(delay)

    async def _serve(self, session: aiohttp.ClientSession) -> None:
        async with session.ws_connect(
            self.url,
            headers=bridge_headers(self.bridge_key),
            heartbeat=DEFAULT_HEARTBEAT,
        ) as ws:
            self._ws = ws
            await ws.send_str(json.dumps(self.registration()))
            logger.info(f"Bridge connected to {self.url}")
            self.connected.set()
            try:
                async for msg in ws:
                    if msg.type in (aiohttp.WSMsgType.TEXT, aiohttp.WSMsgType.BINARY):
                        self._spawn(ws, msg.data)
                    elif msg.type == aiohttp.WSMsgType.ERROR:
                        logger.warning(f"Bridge connection error: {ws.exception()}")
            finally:
                self.connected.clear()
                self._ws = None

            if ws.close_code == AUTH_REJECTED_CLOSE_CODE:
                raise AgentAuthError("Server rejected the bridge key")
            logger.info(f"Bridge disconnected (code {ws.close_code})")

    def _spawn(self, ws: aiohttp.ClientWebSocketResponse, data: str | bytes) -> None:
        task = asyncio.create_task(self._handle(ws, data))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _handle(self, ws: aiohttp.ClientWebSocketResponse, data: str | bytes) -> None:
        try:
            message = json.loads(data)
        except (json.JSONDecodeError, UnicodeDecodeError):
            logger.warning("Ignoring malformed request frame")
            return
        if not isinstance(message, dict) or "id" not in message:
            logger.debug(f"Ignoring frame without id: {message!r:.200}")
            return

        reply = await self.executor.handle(message)
        try:
            await ws.send_str(json.dumps(reply))
        except ConnectionResetError:
            logger.warning(f"Dropping reply for {message['id']}: connection closed")

    async def stop(self) -> None:
        """Stop reconnecting and close the current connection."""
        self._stopping = True
        if self._ws is not None and not self._ws.closed:
            await self._ws.close()
        for task in list(self._tasks):
            task.cancel()
