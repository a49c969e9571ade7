"""Local tools - shell, filesystem and environment operations on this host.

The primitives (run_shell, read_text, write_text, list_entries) are
shared with the local agent, which performs the same operations on the
far side of the bridge.
"""

import asyncio
import os
import platform
import signal
import sys
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable

from .registry import ToolResult, ToolSpec

if TYPE_CHECKING:
    from ..bridge.gateway import BridgeGateway

DEFAULT_EXEC_TIMEOUT_MS = 10000
MAX_OUTPUT_BYTES = 1024 * 1024
STDOUT_LIMIT = 5000
STDERR_LIMIT = 2000
READ_LIMIT = 10000

BLOCKED_COMMANDS = ("rm -rf /", "mkfs", "dd if=", ":(){ :", "shutdown", "reboot")


@dataclass
class ShellOutput:
    """Captured output of one shell command."""

    stdout: str
    stderr: str
    exit_code: int | None
    timed_out: bool = False

    @property
    def ok(self) -> bool:
        return not self.timed_out and self.exit_code == 0


def is_blocked(command: str, blocklist: tuple[str, ...] | list[str] = BLOCKED_COMMANDS) -> bool:
    """Substring match against the command blocklist."""
    return any(blocked in command for blocked in blocklist)


def _kill_process_group(process: asyncio.subprocess.Process) -> None:
    try:
        if hasattr(os, "killpg"):
            os.killpg(process.pid, signal.SIGKILL)
        else:
            process.kill()
    except ProcessLookupError:
        pass  # Already exited


async def run_shell(command: str, timeout_ms: int, cwd: str | None = None) -> ShellOutput:
    """Run a shell command, killing its process group on timeout.

    Args:
        command: Command line passed to the system shell
        timeout_ms: Deadline in milliseconds
        cwd: Working directory (current directory if None)

    Returns:
        Decoded stdout/stderr (capped at MAX_OUTPUT_BYTES each) and exit code
    """
    process = await asyncio.create_subprocess_shell(
        command,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
        cwd=cwd,
        start_new_session=True,
    )
    timed_out = False
    try:
        stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout_ms / 1000)
    except asyncio.TimeoutError:
        timed_out = True
        _kill_process_group(process)
        stdout, stderr = await process.communicate()

    return ShellOutput(
        stdout=stdout[:MAX_OUTPUT_BYTES].decode("utf-8", errors="replace"),
        stderr=stderr[:MAX_OUTPUT_BYTES].decode("utf-8", errors="replace"),
        exit_code=process.returncode,
        timed_out=timed_out,
    )


async def read_text(path: str, limit: int = READ_LIMIT) -> str:
    """Read a UTF-8 file, truncated to limit characters."""
    content = await asyncio.to_thread(Path(path).read_text, encoding="utf-8")
    return content[:limit]


def _write(path: str, content: str) -> None:
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(content, encoding="utf-8")


async def write_text(path: str, content: str) -> None:
    """Write a UTF-8 file, creating parent directories."""
    await asyncio.to_thread(_write, path, content)


def _scan(path: str) -> list[dict[str, str]]:
    with os.scandir(path) as entries:
        return [
            {"name": entry.name, "type": "dir" if entry.is_dir() else "file"}
            for entry in sorted(entries, key=lambda e: e.name)
        ]


async def list_entries(path: str) -> list[dict[str, str]]:
    """List a directory as [{name, type}] with type 'dir' or 'file'."""
    return await asyncio.to_thread(_scan, path)


def _memory_mb() -> str:
    if sys.platform == "win32":
        return "unknown"
    import resource

    peak = resource.getrusage(resource.RUSAGE_SELF).ru_maxrss
    # ru_maxrss is bytes on macOS, kilobytes elsewhere
    divisor = 1024 * 1024 if sys.platform == "darwin" else 1024
    return f"{round(peak / divisor)}MB"


def local_tools(
    gateway: "BridgeGateway",
    started_at: float | None = None,
    exec_timeout_ms: int = DEFAULT_EXEC_TIMEOUT_MS,
    blocked_commands: tuple[str, ...] | list[str] = BLOCKED_COMMANDS,
    clock: Callable[[], float] = time.time,
) -> list[ToolSpec]:
    """Build the local tool specs.

    Args:
        gateway: Bridge gateway (ping reports its connection state)
        started_at: Server start timestamp for uptime reporting
        exec_timeout_ms: Default exec deadline
        blocked_commands: Substrings that make exec refuse a command
        clock: Time source
    """
    started = started_at if started_at is not None else clock()

    def uptime() -> int:
        return int(clock() - started)

    async def ping() -> ToolResult:
        return ToolResult.ok(
            {
                "status": "ok",
                "time": datetime.now(timezone.utc).isoformat(),
                "uptime": f"{uptime()}s",
                "bridge": "connected" if gateway.is_connected else "disconnected",
            }
        )

    async def exec_command(command: str, timeout: int | float | None = None) -> ToolResult:
        if is_blocked(command, blocked_commands):
            return ToolResult.error("blocked")
        timeout_ms = int(timeout) if timeout else exec_timeout_ms
        try:
            output = await run_shell(command, timeout_ms)
        except OSError as e:
            return ToolResult.error(str(e))
        if output.timed_out:
            return ToolResult.error(f"Command timed out after {timeout_ms}ms: {command}")
        if output.exit_code != 0:
            return ToolResult.error(
                f"Command failed (exit {output.exit_code}): {command}\n{output.stderr[:STDERR_LIMIT]}"
            )
        return ToolResult.ok(
            {"stdout": output.stdout[:STDOUT_LIMIT], "stderr": output.stderr[:STDERR_LIMIT]}
        )

    async def read_file(path: str) -> ToolResult:
        try:
            return ToolResult.ok(await read_text(path))
        except (OSError, UnicodeDecodeError) as e:
            return ToolResult.error(str(e))

    async def write_file(path: str, content: str) -> ToolResult:
        try:
            await write_text(path, content)
        except OSError as e:
            return ToolResult.error(str(e))
        return ToolResult.ok(f"saved: {path}")

    async def list_dir(path: str) -> ToolResult:
        try:
            return ToolResult.ok(await list_entries(path), indent=2)
        except OSError as e:
            return ToolResult.error(str(e))

    async def env_info() -> ToolResult:
        info: dict[str, Any] = {
            "python": platform.python_version(),
            "platform": sys.platform,
            "cwd": os.getcwd(),
            "memory": _memory_mb(),
            "uptime": f"{uptime()}s",
        }
        return ToolResult.ok(info)

    path_schema = {"type": "object", "properties": {"path": {"type": "string"}}, "required": ["path"]}

    return [
        ToolSpec(name="ping", description="server status", handler=ping),
        ToolSpec(
            name="exec",
            description="run shell command",
            handler=exec_command,
            input_schema={
                "type": "object",
                "properties": {
                    "command": {"type": "string"},
                    "timeout": {"type": "number", "description": "Timeout in milliseconds"},
                },
                "required": ["command"],
            },
        ),
        ToolSpec(name="read_file", description="read file", handler=read_file, input_schema=path_schema),
        ToolSpec(
            name="write_file",
            description="write file",
            handler=write_file,
            input_schema={
                "type": "object",
                "properties": {"path": {"type": "string"}, "content": {"type": "string"}},
                "required": ["path", "content"],
            },
        ),
        ToolSpec(name="list_dir", description="list directory", handler=list_dir, input_schema=path_schema),
        ToolSpec(name="env_info", description="environment info", handler=env_info),
    ]
