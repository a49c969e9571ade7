"""Unit tests for the local tools (ping, exec, files, env_info)."""

import json
import sys

import pytest

from woo_mcp.tools.local import is_blocked, list_entries, read_text, run_shell, write_text

pytestmark = pytest.mark.tools

posix_only = pytest.mark.skipif(sys.platform == "win32", reason="uses POSIX shell commands")


class TestPing:
    """ping tool."""

    @pytest.mark.asyncio
    async def test_ping_reports_bridge_state(self, tool_registry):
        result = await tool_registry.call("ping")
        payload = json.loads(result.text)

        assert payload["status"] == "ok"
        assert payload["bridge"] == "disconnected"
        assert payload["uptime"].endswith("s")
        assert "time" in payload

    @pytest.mark.asyncio
    async def test_ping_with_bridge_connected(self, tool_registry, gateway, handle):
        gateway.attach(handle)

        result = await tool_registry.call("ping")

        assert json.loads(result.text)["bridge"] == "connected"


@posix_only
class TestExec:
    """exec tool."""

    @pytest.mark.asyncio
    async def test_exec_success(self, tool_registry):
        result = await tool_registry.call("exec", {"command": "echo hello"})

        assert result.is_error is False
        assert json.loads(result.text) == {"stdout": "hello\n", "stderr": ""}

    @pytest.mark.asyncio
    async def test_exec_nonzero_exit(self, tool_registry):
        result = await tool_registry.call("exec", {"command": "echo oops >&2; exit 3"})

        assert result.is_error is True
        assert result.text.startswith("Command failed (exit 3)")
        assert "oops" in result.text

    @pytest.mark.asyncio
    async def test_exec_blocked(self, tool_registry):
        result = await tool_registry.call("exec", {"command": "sudo shutdown -h now"})

        assert result.is_error is True
        assert result.text == "blocked"

    @pytest.mark.asyncio
    async def test_exec_timeout(self, tool_registry):
        result = await tool_registry.call("exec", {"command": "sleep 5", "timeout": 100})

        assert result.is_error is True
        assert "timed out after 100ms" in result.text

    @pytest.mark.asyncio
    async def test_exec_truncates_stdout(self, tool_registry):
        result = await tool_registry.call("exec", {"command": "head -c 20000 /dev/zero | tr '\\0' a"})

        assert len(json.loads(result.text)["stdout"]) == 5000


class TestFiles:
    """read_file, write_file and list_dir tools."""

    @pytest.mark.asyncio
    async def test_write_then_read(self, tool_registry, tmp_path):
        target = tmp_path / "nested" / "note.txt"

        written = await tool_registry.call("write_file", {"path": str(target), "content": "hi there"})
        read = await tool_registry.call("read_file", {"path": str(target)})

        assert written.text == f"saved: {target}"
        assert read.text == "hi there"

    @pytest.mark.asyncio
    async def test_read_truncates(self, tool_registry, tmp_path):
        target = tmp_path / "big.txt"
        target.write_text("x" * 20000)

        result = await tool_registry.call("read_file", {"path": str(target)})

        assert len(result.text) == 10000

    @pytest.mark.asyncio
    async def test_read_missing_file(self, tool_registry, tmp_path):
        result = await tool_registry.call("read_file", {"path": str(tmp_path / "absent")})

        assert result.is_error is True

    @pytest.mark.asyncio
    async def test_list_dir(self, tool_registry, tmp_path):
        (tmp_path / "b.txt").write_text("")
        (tmp_path / "a_dir").mkdir()

        result = await tool_registry.call("list_dir", {"path": str(tmp_path)})

        assert json.loads(result.text) == [
            {"name": "a_dir", "type": "dir"},
            {"name": "b.txt", "type": "file"},
        ]

    @pytest.mark.asyncio
    async def test_list_missing_dir(self, tool_registry, tmp_path):
        result = await tool_registry.call("list_dir", {"path": str(tmp_path / "absent")})

        assert result.is_error is True


class TestEnvInfo:
    """env_info tool."""

    @pytest.mark.asyncio
    async def test_env_info_fields(self, tool_registry):
        result = await tool_registry.call("env_info")

        assert set(json.loads(result.text)) == {"python", "platform", "cwd", "memory", "uptime"}


class TestPrimitives:
    """Helpers shared with the local agent."""

    def test_is_blocked(self):
        assert is_blocked("rm -rf / --no-preserve-root") is True
        assert is_blocked("ls -la") is False
        assert is_blocked("make", ["make"]) is True

    @posix_only
    @pytest.mark.asyncio
    async def test_run_shell_with_cwd(self, tmp_path):
        output = await run_shell("pwd", 5000, cwd=str(tmp_path))

        assert output.ok is True
        assert output.stdout.strip() == str(tmp_path.resolve())

    @posix_only
    @pytest.mark.asyncio
    async def test_run_shell_timeout_kills_process(self):
        output = await run_shell("sleep 5", 50)

        assert output.timed_out is True
        assert output.ok is False

    @pytest.mark.asyncio
    async def test_file_helpers(self, tmp_path):
        path = str(tmp_path / "f.txt")

        await write_text(path, "abcdef")

        assert await read_text(path, limit=3) == "abc"
        assert await list_entries(str(tmp_path)) == [{"name": "f.txt", "type": "file"}]
