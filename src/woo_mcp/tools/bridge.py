"""local_bridge tool - relays an action to the local PC agent."""

import json
from typing import TYPE_CHECKING

from ..bridge.errors import BridgeError
from ..bridge.gateway import BRIDGE_ACTIONS
from .registry import ToolResult, ToolSpec

if TYPE_CHECKING:
    from ..bridge.gateway import BridgeGateway


def bridge_tools(gateway: "BridgeGateway") -> list[ToolSpec]:
    """Build the local_bridge tool bound to gateway."""

    async def local_bridge(
        action: str,
        command: str | None = None,
        path: str | None = None,
        content: str | None = None,
        cwd: str | None = None,
        timeout: int | float | None = None,
    ) -> ToolResult:
        payload = {
            key: value
            for key, value in (("command", command), ("path", path), ("content", content), ("cwd", cwd))
            if value is not None
        }
        try:
            reply = await gateway.invoke(action, payload, int(timeout) if timeout else None)
        except BridgeError as e:
            return ToolResult.error(f"local bridge: {e.message}")

        text = json.dumps(reply.value, indent=2, ensure_ascii=False)
        return ToolResult(text=text, is_error=reply.is_error)

    return [
        ToolSpec(
            name="local_bridge",
            description="execute on local PC via bridge",
            handler=local_bridge,
            input_schema={
                "type": "object",
                "properties": {
                    "action": {"type": "string", "enum": list(BRIDGE_ACTIONS)},
                    "command": {"type": "string"},
                    "path": {"type": "string"},
                    "content": {"type": "string"},
                    "cwd": {"type": "string"},
                    "timeout": {"type": "number", "description": "Timeout in milliseconds"},
                },
                "required": ["action"],
            },
        )
    ]
