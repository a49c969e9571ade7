"""HTTP surface: MCP endpoint, status page and the bridge websocket.

Routes:
- POST /mcp    JSON-RPC requests, one session per mcp-session-id
- GET /mcp     event stream of server notifications for a session
- DELETE /mcp  explicit session termination
- GET /        status document
- GET /bridge  websocket for the local PC agent
"""

import json
from typing import TYPE_CHECKING

import structlog
from aiohttp import WSMsgType, web

from .bridge.errors import JSONRPC_PARSE_ERROR
from .mcp.registry import SessionNotFoundError
from .mcp.session import SessionState
from .shared.auth import BRIDGE_KEY_HEADER, check_bearer, check_bridge_key

if TYPE_CHECKING:
    from .application import WooApplication

logger = structlog.get_logger(__name__)

SESSION_HEADER = "mcp-session-id"
BRIDGE_AUTH_CLOSE_CODE = 4001
BRIDGE_HEARTBEAT = 30.0

APPLICATION_KEY = web.AppKey("application", object)


def _application(request: web.Request) -> "WooApplication":
    return request.app[APPLICATION_KEY]  # type: ignore[return-value]


@web.middleware
async def cors_middleware(request: web.Request, handler) -> web.StreamResponse:
    """Allow any origin; answer preflight requests directly."""
    if request.method == "OPTIONS":
        response: web.StreamResponse = web.Response(
            status=204,
            headers={
                "Access-Control-Allow-Methods": "GET, POST, DELETE, OPTIONS",
                "Access-Control-Allow-Headers": request.headers.get(
                    "Access-Control-Request-Headers", "*"
                ),
            },
        )
    else:
        try:
            response = await handler(request)
        except web.HTTPException as e:
            _add_cors_headers(e)
            raise
    if not response.prepared:
        _add_cors_headers(response)
    return response


def _add_cors_headers(response: web.StreamResponse | web.HTTPException) -> None:
    response.headers["Access-Control-Allow-Origin"] = "*"
    response.headers["Access-Control-Expose-Headers"] = SESSION_HEADER


@web.middleware
async def auth_middleware(request: web.Request, handler) -> web.StreamResponse:
    """Require the bearer token on /mcp when one is configured."""
    if request.path == "/mcp":
        token = _application(request).config.auth_token
        if not check_bearer(request.headers.get("Authorization"), token):
            logger.warning(f"Rejected {request.method} /mcp from {request.remote}: unauthorized")
            return web.json_response({"error": "Unauthorized"}, status=401)
    return await handler(request)


async def handle_mcp_post(request: web.Request) -> web.Response:
    """Dispatch a JSON-RPC message to the caller's session."""
    application = _application(request)
    try:
        body = json.loads(await request.text())
    except (json.JSONDecodeError, UnicodeDecodeError):
        return web.json_response(
            {"jsonrpc": "2.0", "id": None, "error": {"code": JSONRPC_PARSE_ERROR, "message": "Parse error"}},
            status=400,
        )

    session = application.sessions.get_or_create(request.headers.get(SESSION_HEADER))
    discarded = False
    try:
        result = await session.handle_message(body)
    finally:
        if session.state is SessionState.CREATED:
            # First contact that did not initialize: nothing to keep
            discarded = True
            await application.sessions.remove(session.session_id)

    headers: dict[str, str] = {}
    status = 200
    if discarded:
        if isinstance(result, dict) and "error" in result:
            status = 400
    else:
        headers[SESSION_HEADER] = session.session_id

    if result is None:
        return web.Response(status=202, headers=headers)
    return web.json_response(result, status=status, headers=headers)


async def handle_mcp_stream(request: web.Request) -> web.StreamResponse:
    """Stream server-initiated notifications until the session closes."""
    application = _application(request)
    try:
        session = application.sessions.get(request.headers.get(SESSION_HEADER))
    except SessionNotFoundError:
        return web.json_response({"error": "no session"}, status=400)

    response = web.StreamResponse(
        headers={
            "Content-Type": "text/event-stream",
            "Cache-Control": "no-cache",
            "Access-Control-Allow-Origin": "*",
            SESSION_HEADER: session.session_id,
        }
    )
    await response.prepare(request)

    try:
        while True:
            notification = await session.next_notification()
            if notification is None:
                break
            await response.write(f"event: message\ndata: {json.dumps(notification)}\n\n".encode())
    except ConnectionResetError:
        logger.debug(f"Event stream for session {session.session_id} dropped by client")
        return response

    await response.write_eof()
    return response


async def handle_mcp_delete(request: web.Request) -> web.Response:
    """Terminate a session explicitly."""
    application = _application(request)
    await application.sessions.remove(request.headers.get(SESSION_HEADER))
    return web.json_response({"ok": True})


async def handle_status(request: web.Request) -> web.Response:
    """Server status document."""
    return web.json_response(_application(request).status().to_dict())


async def handle_bridge(request: web.Request) -> web.WebSocketResponse:
    """Accept the local agent's websocket and feed its frames to the gateway."""
    application = _application(request)
    gateway = application.gateway

    ws = web.WebSocketResponse(heartbeat=BRIDGE_HEARTBEAT)
    await ws.prepare(request)

    if not check_bridge_key(request.headers.get(BRIDGE_KEY_HEADER), application.config.bridge_key):
        logger.warning(f"Rejected bridge connection from {request.remote}: invalid key")
        await ws.close(code=BRIDGE_AUTH_CLOSE_CODE, message=b"invalid bridge key")
        return ws

    logger.info(f"Bridge connected from {request.remote}")
    gateway.attach(ws)
    try:
        async for msg in ws:
            if msg.type in (WSMsgType.TEXT, WSMsgType.BINARY):
                gateway.handle_message(msg.data)
            elif msg.type == WSMsgType.ERROR:
                logger.warning(f"Bridge connection error: {ws.exception()}")
    finally:
        gateway.detach(ws)
        logger.info(f"Bridge connection from {request.remote} closed")

    return ws


def create_app(application: "WooApplication") -> web.Application:
    """Build the aiohttp application for a WooApplication."""
    app = web.Application(middlewares=[cors_middleware, auth_middleware])
    app[APPLICATION_KEY] = application

    app.router.add_get("/", handle_status)
    app.router.add_post("/mcp", handle_mcp_post)
    app.router.add_get("/mcp", handle_mcp_stream)
    app.router.add_delete("/mcp", handle_mcp_delete)
    app.router.add_get("/bridge", handle_bridge)

    async def on_shutdown(app: web.Application) -> None:
        await application.shutdown()

    app.on_shutdown.append(on_shutdown)
    return app
