"""Tool dispatch surface exposed to MCP clients."""

from typing import TYPE_CHECKING

from .bridge import bridge_tools
from .http import http_tools
from .local import BLOCKED_COMMANDS, DEFAULT_EXEC_TIMEOUT_MS, local_tools
from .registry import ToolRegistry, ToolResult, ToolSpec, UnknownToolError

if TYPE_CHECKING:
    from ..bridge.gateway import BridgeGateway


def build_tool_registry(
    gateway: "BridgeGateway",
    started_at: float | None = None,
    exec_timeout_ms: int = DEFAULT_EXEC_TIMEOUT_MS,
    blocked_commands: tuple[str, ...] | list[str] = BLOCKED_COMMANDS,
) -> ToolRegistry:
    """Registry with every built-in tool, in the order clients see them."""
    registry = ToolRegistry()
    specs = [
        *local_tools(
            gateway,
            started_at=started_at,
            exec_timeout_ms=exec_timeout_ms,
            blocked_commands=blocked_commands,
        ),
        *http_tools(),
        *bridge_tools(gateway),
    ]
    for spec in specs:
        registry.register(spec)
    return registry


__all__ = [
    "ToolRegistry",
    "ToolResult",
    "ToolSpec",
    "UnknownToolError",
    "build_tool_registry",
]
