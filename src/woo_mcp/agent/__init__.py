"""Agent module - the local PC end of the bridge.

Connects to the server's /bridge websocket and executes the actions the
server relays (ping, exec, read_file, write_file, list_dir).
"""

from .connection import AgentAuthError, AgentConnection
from .executor import ActionError, ActionExecutor

__all__ = [
    "ActionError",
    "ActionExecutor",
    "AgentAuthError",
    "AgentConnection",
]
