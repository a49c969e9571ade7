"""Outbound HTTP tool."""

import json
import logging

import httpx

from .registry import ToolResult, ToolSpec

logger = logging.getLogger(__name__)

DEFAULT_HTTP_TIMEOUT = 30.0
BODY_LIMIT = 8000


def http_tools(timeout: float = DEFAULT_HTTP_TIMEOUT, transport: httpx.AsyncBaseTransport | None = None) -> list[ToolSpec]:
    """Build the http_request tool.

    Args:
        timeout: Request timeout in seconds
        transport: Optional httpx transport (tests inject a MockTransport)
    """

    async def http_request(
        url: str,
        method: str | None = None,
        headers: str | None = None,
        body: str | None = None,
    ) -> ToolResult:
        method = (method or "GET").upper()
        try:
            parsed_headers = json.loads(headers) if headers else {}
        except json.JSONDecodeError as e:
            return ToolResult.error(f"headers must be a JSON object: {e}")
        if not isinstance(parsed_headers, dict):
            return ToolResult.error("headers must be a JSON object")

        content = body if body and method != "GET" else None
        try:
            async with httpx.AsyncClient(timeout=httpx.Timeout(timeout), transport=transport) as client:
                response = await client.request(method, url, headers=parsed_headers, content=content)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.debug(f"http_request {method} {url} failed: {type(e).__name__}: {e}")
            return ToolResult.error(str(e) or type(e).__name__)

        return ToolResult.ok({"status": response.status_code, "body": response.text[:BODY_LIMIT]})

    return [
        ToolSpec(
            name="http_request",
            description="HTTP request",
            handler=http_request,
            input_schema={
                "type": "object",
                "properties": {
                    "url": {"type": "string"},
                    "method": {"type": "string"},
                    "headers": {"type": "string", "description": "JSON object of request headers"},
                    "body": {"type": "string"},
                },
                "required": ["url"],
            },
        )
    ]
