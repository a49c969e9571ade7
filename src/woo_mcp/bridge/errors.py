"""Error taxonomy for the local bridge.

Every failure the correlation layer can produce maps to one of these
classes. They carry a JSON-RPC compatible code so the MCP surface can
report them without another translation table.
"""

from dataclasses import dataclass, field
from typing import Any

# JSON-RPC error codes
JSONRPC_PARSE_ERROR = -32700
JSONRPC_INVALID_REQUEST = -32600
JSONRPC_METHOD_NOT_FOUND = -32601
JSONRPC_INVALID_PARAMS = -32602
JSONRPC_INTERNAL_ERROR = -32603
JSONRPC_SERVER_ERROR = -32000  # -32000 to -32099 reserved for implementation-defined server errors

# Custom error codes for bridge
BRIDGE_UNAVAILABLE_ERROR = -32002
BRIDGE_TIMEOUT_ERROR = -32003
BRIDGE_DUPLICATE_ID_ERROR = -32004


@dataclass
class BridgeError(Exception):
    """Base error class for bridge errors."""

    code: int
    message: str
    retryable: bool = False
    data: dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        return self.message

    def to_jsonrpc(self) -> dict[str, Any]:
        """Convert to JSON-RPC error object."""
        error = {"code": self.code, "message": self.message}
        if self.data:
            error["data"] = self.data
        return error


@dataclass
class BridgeUnavailableError(BridgeError):
    """No authoritative remote agent is connected."""

    code: int = BRIDGE_UNAVAILABLE_ERROR
    message: str = "bridge not connected"
    retryable: bool = False


@dataclass
class LinkAbsentError(BridgeUnavailableError):
    """A write was attempted on an empty or closed link."""

    message: str = "bridge link absent"


@dataclass
class BridgeTimeoutError(BridgeError):
    """Deadline elapsed with no matching reply."""

    code: int = BRIDGE_TIMEOUT_ERROR
    message: str = "bridge request timed out"
    retryable: bool = False


@dataclass
class DuplicateIdError(BridgeError):
    """A correlation id was registered twice while still pending."""

    code: int = BRIDGE_DUPLICATE_ID_ERROR
    message: str = "duplicate correlation id"
    retryable: bool = False
