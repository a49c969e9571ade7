"""Shared modules for woo-mcp-server.

Used by both CLI modes:
- Server (MCP endpoint plus bridge)
- Agent (local PC side of the bridge)
"""

from .auth import auth_headers, bridge_headers, check_bearer, check_bridge_key
from .logging import configure_logging
from .paths import CONFIG_FILE, LOG_DIR, WOO_DIR, get_log_file

__all__ = [
    # Paths
    "WOO_DIR",
    "CONFIG_FILE",
    "LOG_DIR",
    "get_log_file",
    # Auth
    "auth_headers",
    "bridge_headers",
    "check_bearer",
    "check_bridge_key",
    # Logging
    "configure_logging",
]
