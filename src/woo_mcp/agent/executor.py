"""Action executor for bridge requests.

Handles:
- Receiving action requests relayed by the server
- Running them on this machine
- Building `{id, result}` / `{id, error}` replies
"""

import logging
import platform
import socket
from datetime import datetime, timezone
from typing import Any

from ..tools.local import (
    BLOCKED_COMMANDS,
    DEFAULT_EXEC_TIMEOUT_MS,
    is_blocked,
    list_entries,
    read_text,
    run_shell,
    write_text,
)

logger = logging.getLogger(__name__)

AGENT_READ_LIMIT = 100_000


class ActionError(Exception):
    """Structured failure reported back to the server."""

    def __init__(self, code: str, message: str):
        super().__init__(message)
        self.code = code
        self.message = message

    def to_dict(self) -> dict[str, str]:
        return {"code": self.code, "message": self.message}


class ActionExecutor:
    """Executes bridge actions on the local machine."""

    def __init__(
        self,
        exec_timeout_ms: int = DEFAULT_EXEC_TIMEOUT_MS,
        blocked_commands: tuple[str, ...] | list[str] = BLOCKED_COMMANDS,
    ):
        """Initialize action executor.

        Args:
            exec_timeout_ms: Deadline for exec actions
            blocked_commands: Substrings that make exec refuse a command
        """
        self.exec_timeout_ms = exec_timeout_ms
        self.blocked_commands = blocked_commands
        self._handlers = {
            "ping": self._ping,
            "exec": self._exec,
            "read_file": self._read_file,
            "write_file": self._write_file,
            "list_dir": self._list_dir,
        }

    @property
    def actions(self) -> list[str]:
        return list(self._handlers)

    async def handle(self, message: dict[str, Any]) -> dict[str, Any]:
        """Handle one request frame from the server.

        Args:
            message: Decoded `{id, action, ...}` frame

        Returns:
            Reply frame carrying the same id
        """
        request_id = message.get("id")
        action = message.get("action")

        logger.info(f"Received action request: {action} id={request_id}")

        handler = self._handlers.get(action) if isinstance(action, str) else None
        if handler is None:
            return {
                "id": request_id,
                "error": {"code": "UNKNOWN_ACTION", "message": f"Unknown action: {action}"},
            }

        try:
            result = await handler(message)
        except ActionError as e:
            logger.debug(f"Action {action} id={request_id} rejected: {e.code} {e.message}")
            return {"id": request_id, "error": e.to_dict()}
        except (OSError, UnicodeDecodeError) as e:
            logger.error(f"Action {action} id={request_id} failed: {e}")
            return {"id": request_id, "error": {"code": "ACTION_FAILED", "message": str(e)}}

        return {"id": request_id, "result": result}

    @staticmethod
    def _require(message: dict[str, Any], key: str) -> str:
        value = message.get(key)
        if not isinstance(value, str) or not value:
            raise ActionError("INVALID_PARAMS", f"Missing {key}")
        return value

    async def _ping(self, message: dict[str, Any]) -> dict[str, Any]:
        return {
            "pong": True,
            "hostname": socket.gethostname(),
            "platform": platform.system().lower(),
            "time": datetime.now(timezone.utc).isoformat(),
        }

    async def _exec(self, message: dict[str, Any]) -> dict[str, Any]:
        command = self._require(message, "command")
        if is_blocked(command, self.blocked_commands):
            raise ActionError("BLOCKED", "blocked")

        output = await run_shell(command, self.exec_timeout_ms, cwd=message.get("cwd") or None)
        if output.timed_out:
            raise ActionError("TIMEOUT", f"Command timed out after {self.exec_timeout_ms}ms")
        return {"stdout": output.stdout, "stderr": output.stderr, "exit_code": output.exit_code}

    async def _read_file(self, message: dict[str, Any]) -> dict[str, Any]:
        path = self._require(message, "path")
        return {"path": path, "content": await read_text(path, limit=AGENT_READ_LIMIT)}

    async def _write_file(self, message: dict[str, Any]) -> dict[str, Any]:
        path = self._require(message, "path")
        content = message.get("content")
        if not isinstance(content, str):
            raise ActionError("INVALID_PARAMS", "Missing content")
        await write_text(path, content)
        return {"saved": path, "bytes": len(content.encode("utf-8"))}

    async def _list_dir(self, message: dict[str, Any]) -> list[dict[str, str]]:
        return await list_entries(self._require(message, "path"))
