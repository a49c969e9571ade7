"""Server status snapshot served on GET /."""

import time
from dataclasses import dataclass, field
from typing import Any

SERVER_NAME = "woo-mcp-server"


@dataclass
class ServerStatus:
    """Status data for the server."""

    version: str
    name: str = SERVER_NAME
    bridge_connected: bool = False
    agent: dict[str, Any] = field(default_factory=dict)
    tools: list[str] = field(default_factory=list)
    sessions: int = 0
    pending_requests: int = 0
    start_time: float = field(default_factory=time.time)

    @property
    def bridge(self) -> str:
        return "connected" if self.bridge_connected else "disconnected"

    @property
    def uptime_seconds(self) -> int:
        """Get uptime in seconds."""
        return int(time.time() - self.start_time)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON response."""
        return {
            "name": self.name,
            "version": self.version,
            "status": "running",
            "bridge": self.bridge,
            "agent": self.agent or None,
            "tools": self.tools,
            "sessions": self.sessions,
            "pending_requests": self.pending_requests,
            "uptime_seconds": self.uptime_seconds,
        }
