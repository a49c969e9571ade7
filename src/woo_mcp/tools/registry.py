"""ToolRegistry - named tool handlers exposed over MCP.

Handlers are async functions taking keyword arguments and returning a
ToolResult. The registry checks arguments against the declared input
schema before calling the handler, so handlers can trust their inputs.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

logger = logging.getLogger(__name__)

ToolHandler = Callable[..., Awaitable["ToolResult"]]

# JSON schema type -> accepted Python types
_SCHEMA_TYPES: dict[str, tuple[type, ...]] = {
    "string": (str,),
    "number": (int, float),
    "integer": (int,),
    "boolean": (bool,),
    "object": (dict,),
    "array": (list,),
}


class UnknownToolError(KeyError):
    """No tool registered under the requested name."""

    def __init__(self, name: str):
        super().__init__(name)
        self.name = name

    def __str__(self) -> str:
        return f"Unknown tool: {self.name}"


@dataclass
class ToolResult:
    """Text result of one tool call."""

    text: str
    is_error: bool = False

    @classmethod
    def ok(cls, payload: Any, indent: int | None = None) -> "ToolResult":
        """Successful result; non-string payloads are JSON encoded."""
        if isinstance(payload, str):
            return cls(text=payload)
        return cls(text=json.dumps(payload, indent=indent, ensure_ascii=False))

    @classmethod
    def error(cls, message: str) -> "ToolResult":
        """Failed result carrying a human readable message."""
        return cls(text=message, is_error=True)

    def to_dict(self) -> dict[str, Any]:
        """MCP CallToolResult shape."""
        result: dict[str, Any] = {"content": [{"type": "text", "text": self.text}]}
        if self.is_error:
            result["isError"] = True
        return result


@dataclass
class ToolSpec:
    """A tool definition: metadata plus handler."""

    name: str
    description: str
    handler: ToolHandler
    input_schema: dict[str, Any] = field(
        default_factory=lambda: {"type": "object", "properties": {}}
    )

    def to_dict(self) -> dict[str, Any]:
        """MCP tools/list entry."""
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.input_schema,
        }

    def check_arguments(self, arguments: dict[str, Any]) -> dict[str, Any]:
        """Validate arguments against the input schema.

        Unknown keys are dropped, required keys must be present and every
        value must match its declared type.

        Returns:
            Arguments restricted to declared properties

        Raises:
            ValueError: On a missing or mistyped argument
        """
        properties = self.input_schema.get("properties", {})
        for name in self.input_schema.get("required", []):
            if arguments.get(name) is None:
                raise ValueError(f"missing required argument: {name}")

        checked: dict[str, Any] = {}
        for name, value in arguments.items():
            prop = properties.get(name)
            if prop is None or value is None:
                continue
            expected = _SCHEMA_TYPES.get(prop.get("type", ""))
            # bool is an int subclass; reject it for numeric fields
            if expected and (
                not isinstance(value, expected)
                or (isinstance(value, bool) and bool not in expected)
            ):
                raise ValueError(f"argument '{name}' must be of type {prop['type']}")
            if "enum" in prop and value not in prop["enum"]:
                raise ValueError(f"argument '{name}' must be one of: {', '.join(prop['enum'])}")
            checked[name] = value
        return checked


class ToolRegistry:
    """Registry of ToolSpecs keyed by name."""

    def __init__(self) -> None:
        self._tools: dict[str, ToolSpec] = {}

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    def register(self, spec: ToolSpec) -> None:
        """Register a tool.

        Raises:
            ValueError: If a tool with the same name is already registered
        """
        if spec.name in self._tools:
            raise ValueError(f"Tool already registered: {spec.name}")
        self._tools[spec.name] = spec

    def names(self) -> list[str]:
        """Registered tool names in registration order."""
        return list(self._tools)

    def list_tools(self) -> list[dict[str, Any]]:
        """MCP tools/list payload."""
        return [spec.to_dict() for spec in self._tools.values()]

    async def call(self, name: str, arguments: dict[str, Any] | None = None) -> ToolResult:
        """Validate arguments and run a tool.

        Raises:
            UnknownToolError: If no tool is registered under name
        """
        spec = self._tools.get(name)
        if spec is None:
            raise UnknownToolError(name)

        try:
            checked = spec.check_arguments(arguments or {})
        except ValueError as e:
            return ToolResult.error(f"Invalid arguments for {name}: {e}")

        logger.debug(f"Calling tool {name} with {sorted(checked)}")
        return await spec.handler(**checked)
