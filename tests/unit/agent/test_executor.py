"""Unit tests for ActionExecutor - bridge actions on the local PC."""

import sys

import pytest

from woo_mcp.agent import ActionExecutor

pytestmark = pytest.mark.agent

posix_only = pytest.mark.skipif(sys.platform == "win32", reason="uses POSIX shell commands")


@pytest.fixture
def executor():
    return ActionExecutor(exec_timeout_ms=2000)


class TestDispatch:
    """Routing and reply shape."""

    @pytest.mark.asyncio
    async def test_ping(self, executor):
        reply = await executor.handle({"id": "1-1", "action": "ping"})

        assert reply["id"] == "1-1"
        assert reply["result"]["pong"] is True
        assert {"hostname", "platform", "time"} <= set(reply["result"])

    @pytest.mark.asyncio
    async def test_unknown_action(self, executor):
        reply = await executor.handle({"id": "1-2", "action": "format_disk"})

        assert reply == {
            "id": "1-2",
            "error": {"code": "UNKNOWN_ACTION", "message": "Unknown action: format_disk"},
        }

    @pytest.mark.asyncio
    async def test_missing_action(self, executor):
        reply = await executor.handle({"id": "1-3"})

        assert reply["error"]["code"] == "UNKNOWN_ACTION"

    def test_actions(self, executor):
        assert executor.actions == ["ping", "exec", "read_file", "write_file", "list_dir"]


@posix_only
class TestExec:
    """exec action."""

    @pytest.mark.asyncio
    async def test_exec(self, executor, tmp_path):
        reply = await executor.handle(
            {"id": "2-1", "action": "exec", "command": "pwd", "cwd": str(tmp_path)}
        )

        assert reply["result"]["exit_code"] == 0
        assert reply["result"]["stdout"].strip() == str(tmp_path.resolve())

    @pytest.mark.asyncio
    async def test_exec_nonzero_exit_is_a_result(self, executor):
        reply = await executor.handle({"id": "2-2", "action": "exec", "command": "exit 4"})

        assert reply["result"]["exit_code"] == 4

    @pytest.mark.asyncio
    async def test_exec_blocked(self, executor):
        reply = await executor.handle({"id": "2-3", "action": "exec", "command": "mkfs.ext4 /dev/sda"})

        assert reply["error"] == {"code": "BLOCKED", "message": "blocked"}

    @pytest.mark.asyncio
    async def test_exec_timeout(self):
        executor = ActionExecutor(exec_timeout_ms=50)

        reply = await executor.handle({"id": "2-4", "action": "exec", "command": "sleep 5"})

        assert reply["error"]["code"] == "TIMEOUT"

    @pytest.mark.asyncio
    async def test_exec_missing_command(self, executor):
        reply = await executor.handle({"id": "2-5", "action": "exec"})

        assert reply["error"] == {"code": "INVALID_PARAMS", "message": "Missing command"}

    @pytest.mark.asyncio
    async def test_exec_bad_cwd(self, executor, tmp_path):
        reply = await executor.handle(
            {"id": "2-6", "action": "exec", "command": "ls", "cwd": str(tmp_path / "absent")}
        )

        assert reply["error"]["code"] == "ACTION_FAILED"


class TestFiles:
    """File actions."""

    @pytest.mark.asyncio
    async def test_write_and_read(self, executor, tmp_path):
        path = str(tmp_path / "sub" / "hello.txt")

        written = await executor.handle(
            {"id": "3-1", "action": "write_file", "path": path, "content": "héllo"}
        )
        read = await executor.handle({"id": "3-2", "action": "read_file", "path": path})

        assert written["result"] == {"saved": path, "bytes": 6}
        assert read["result"] == {"path": path, "content": "héllo"}

    @pytest.mark.asyncio
    async def test_write_requires_content(self, executor, tmp_path):
        reply = await executor.handle(
            {"id": "3-3", "action": "write_file", "path": str(tmp_path / "x")}
        )

        assert reply["error"]["code"] == "INVALID_PARAMS"

    @pytest.mark.asyncio
    async def test_read_missing(self, executor, tmp_path):
        reply = await executor.handle(
            {"id": "3-4", "action": "read_file", "path": str(tmp_path / "absent")}
        )

        assert reply["error"]["code"] == "ACTION_FAILED"

    @pytest.mark.asyncio
    async def test_list_dir(self, executor, tmp_path):
        (tmp_path / "a.txt").write_text("")

        reply = await executor.handle({"id": "3-5", "action": "list_dir", "path": str(tmp_path)})

        assert reply["result"] == [{"name": "a.txt", "type": "file"}]
