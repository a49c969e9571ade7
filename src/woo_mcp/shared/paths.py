"""Path management for woo-mcp-server.

Everything the server and agent persist lives under ~/.woo-mcp/.
"""

from pathlib import Path

# Base directory for all woo-mcp data
WOO_DIR = Path.home() / ".woo-mcp"

# Server configuration file
CONFIG_FILE = WOO_DIR / "config.yaml"

# Log directory (same as base for simplicity)
LOG_DIR = WOO_DIR


def get_log_file(name: str = "server") -> Path:
    """Get path to a log file.

    Args:
        name: Log file name (without extension), e.g. "server" or "agent"
    """
    return LOG_DIR / f"{name}.log"
