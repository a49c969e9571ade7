"""MCP module - per-client protocol sessions and their registry."""

from .registry import SessionNotFoundError, SessionRegistry
from .session import LATEST_PROTOCOL_VERSION, McpSession, SessionState

__all__ = [
    "LATEST_PROTOCOL_VERSION",
    "McpSession",
    "SessionNotFoundError",
    "SessionRegistry",
    "SessionState",
]
