"""McpSession - per-client MCP protocol state.

One session exists per `mcp-session-id`. It answers JSON-RPC requests
from its client, tracks whether the initialize handshake has happened and
queues server-initiated notifications for the client's event stream.
`publish` is the hook for such notifications; nothing in the server emits
them yet, so a stream currently just ends when the session closes.
"""

import asyncio
import logging
import time
from enum import Enum
from typing import Any, Callable

from ..bridge.errors import (
    JSONRPC_INTERNAL_ERROR,
    JSONRPC_INVALID_PARAMS,
    JSONRPC_INVALID_REQUEST,
    JSONRPC_METHOD_NOT_FOUND,
)
from ..tools.registry import ToolRegistry, UnknownToolError

logger = logging.getLogger(__name__)

LATEST_PROTOCOL_VERSION = "2025-03-26"
SUPPORTED_PROTOCOL_VERSIONS = ("2024-11-05", "2025-03-26", "2025-06-18")


class SessionState(str, Enum):
    """Lifecycle of a session."""

    CREATED = "created"
    ACTIVE = "active"
    CLOSED = "closed"


class McpSession:
    """MCP server state for one client session."""

    def __init__(
        self,
        session_id: str,
        tools: ToolRegistry,
        server_info: dict[str, Any],
        on_close: Callable[["McpSession"], None] | None = None,
    ):
        """Initialize McpSession.

        Args:
            session_id: Identifier assigned by the session registry
            tools: Tool registry served by tools/list and tools/call
            server_info: serverInfo returned from initialize
            on_close: Called once when the session closes
        """
        self.session_id = session_id
        self.tools = tools
        self.server_info = server_info
        self.on_close = on_close
        self.state = SessionState.CREATED
        self.protocol_version: str | None = None
        self.client_info: dict[str, Any] = {}
        self.created_at = time.time()
        self.last_seen = self.created_at
        self._notifications: asyncio.Queue[dict[str, Any] | None] = asyncio.Queue()

    @property
    def is_closed(self) -> bool:
        return self.state is SessionState.CLOSED

    async def handle_message(self, message: Any) -> dict[str, Any] | list[dict[str, Any]] | None:
        """Handle a JSON-RPC message or batch.

        Returns:
            Response, list of responses for a batch, or None when nothing
            needs answering (notifications only)
        """
        if isinstance(message, list):
            if not message:
                return self._make_error_response(None, JSONRPC_INVALID_REQUEST, "Empty batch")
            responses = [await self.handle_request(item) for item in message]
            return [r for r in responses if r is not None] or None
        return await self.handle_request(message)

    async def handle_request(self, request: Any) -> dict[str, Any] | None:
        """Handle one JSON-RPC request from the client.

        Args:
            request: JSON-RPC request object

        Returns:
            JSON-RPC response object, or None for notifications (no id)
        """
        if not isinstance(request, dict) or not isinstance(request.get("method"), str):
            request_id = request.get("id") if isinstance(request, dict) else None
            return self._make_error_response(request_id, JSONRPC_INVALID_REQUEST, "Invalid Request")

        method = request["method"]
        request_id = request.get("id")
        params = request.get("params")
        if params is None:
            params = {}

        # JSON-RPC notifications have no id and never receive a response
        is_notification = "id" not in request
        self.last_seen = time.time()

        logger.debug(
            f"Session {self.session_id}: method={method} id={request_id} notification={is_notification}"
        )

        if self.is_closed:
            if is_notification:
                return None
            return self._make_error_response(request_id, JSONRPC_INVALID_REQUEST, "Session closed")

        if is_notification:
            if method == "notifications/initialized":
                logger.debug(f"Session {self.session_id} client initialized")
            return None

        if not isinstance(params, dict):
            return self._make_error_response(request_id, JSONRPC_INVALID_PARAMS, "params must be an object")

        if method == "initialize":
            return self._handle_initialize(request_id, params)
        if method == "ping":
            return {"jsonrpc": "2.0", "id": request_id, "result": {}}

        if self.state is not SessionState.ACTIVE:
            return self._make_error_response(
                request_id, JSONRPC_INVALID_REQUEST, "Bad Request: Server not initialized"
            )

        try:
            if method == "tools/list":
                return {"jsonrpc": "2.0", "id": request_id, "result": {"tools": self.tools.list_tools()}}
            if method == "tools/call":
                return await self._handle_tools_call(request_id, params)
        except Exception as e:
            logger.exception(f"Error handling {method} in session {self.session_id}: {e}")
            return self._make_error_response(request_id, JSONRPC_INTERNAL_ERROR, f"Internal error: {e}")

        return self._make_error_response(request_id, JSONRPC_METHOD_NOT_FOUND, f"Method not found: {method}")

    def _handle_initialize(self, request_id: Any, params: dict[str, Any]) -> dict[str, Any]:
        requested = params.get("protocolVersion")
        self.protocol_version = (
            requested if requested in SUPPORTED_PROTOCOL_VERSIONS else LATEST_PROTOCOL_VERSION
        )
        client_info = params.get("clientInfo")
        self.client_info = client_info if isinstance(client_info, dict) else {}

        if self.state is SessionState.CREATED:
            self.state = SessionState.ACTIVE
            logger.info(
                f"Session {self.session_id} initialized "
                f"(client={self.client_info.get('name', 'unknown')} protocol={self.protocol_version})"
            )

        result = {
            "protocolVersion": self.protocol_version,
            "capabilities": {"tools": {"listChanged": False}},
            "serverInfo": self.server_info,
        }
        return {"jsonrpc": "2.0", "id": request_id, "result": result}

    async def _handle_tools_call(self, request_id: Any, params: dict[str, Any]) -> dict[str, Any]:
        name = params.get("name")
        arguments = params.get("arguments") or {}
        if not isinstance(name, str) or not isinstance(arguments, dict):
            return self._make_error_response(
                request_id, JSONRPC_INVALID_PARAMS, "tools/call requires a name and an arguments object"
            )
        try:
            result = await self.tools.call(name, arguments)
        except UnknownToolError as e:
            return self._make_error_response(request_id, JSONRPC_INVALID_PARAMS, str(e))
        return {"jsonrpc": "2.0", "id": request_id, "result": result.to_dict()}

    def publish(self, notification: dict[str, Any]) -> None:
        """Queue a server-initiated notification for the event stream."""
        if not self.is_closed:
            self._notifications.put_nowait(notification)

    async def next_notification(self) -> dict[str, Any] | None:
        """Wait for the next notification; None once the session closed."""
        if self.is_closed and self._notifications.empty():
            return None
        notification = await self._notifications.get()
        if notification is None:
            # Leave the close marker for any other reader of this session
            self._notifications.put_nowait(None)
        return notification

    async def close(self) -> None:
        """Close the session and release its event stream.

        Safe to call more than once; on_close fires only the first time.
        """
        if self.is_closed:
            return
        self.state = SessionState.CLOSED
        self._notifications.put_nowait(None)
        logger.info(f"Session {self.session_id} closed")
        if self.on_close is not None:
            self.on_close(self)

    def _make_error_response(self, request_id: Any, code: int, message: str) -> dict[str, Any]:
        """Create JSON-RPC error response."""
        return {
            "jsonrpc": "2.0",
            "id": request_id,
            "error": {"code": code, "message": message},
        }
