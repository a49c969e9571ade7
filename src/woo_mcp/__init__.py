"""woo-mcp-server - MCP tool server with a websocket bridge to a local PC."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("woo-mcp-server")
except PackageNotFoundError:
    __version__ = "0.0.0.dev0"  # Fallback for editable installs without metadata

from .main import main

__all__ = ["main", "__version__"]
