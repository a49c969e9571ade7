"""Unit tests for SessionRegistry - session id to session mapping."""

import itertools

import pytest

from woo_mcp.mcp import McpSession, SessionNotFoundError, SessionRegistry
from woo_mcp.tools import ToolRegistry

pytestmark = pytest.mark.mcp


@pytest.fixture
def registry():
    counter = itertools.count(1)

    def factory(session_id: str) -> McpSession:
        return McpSession(session_id, tools=ToolRegistry(), server_info={"name": "test"})

    return SessionRegistry(factory, id_factory=lambda: f"sid-{next(counter)}")


class TestGetOrCreate:
    """Session allocation."""

    def test_creates_session_without_id(self, registry):
        session = registry.get_or_create(None)

        assert session.session_id == "sid-1"
        assert "sid-1" in registry
        assert len(registry) == 1

    def test_returns_existing_session(self, registry):
        session = registry.get_or_create()

        assert registry.get_or_create(session.session_id) is session
        assert len(registry) == 1

    def test_unknown_client_id_is_not_adopted(self, registry):
        session = registry.get_or_create("client-chosen-id")

        assert session.session_id == "sid-1"
        assert "client-chosen-id" not in registry

    def test_allocated_ids_skip_live_ones(self):
        ids = iter(["taken", "taken", "fresh"])

        def factory(session_id: str) -> McpSession:
            return McpSession(session_id, tools=ToolRegistry(), server_info={})

        registry = SessionRegistry(factory, id_factory=lambda: next(ids))
        registry.get_or_create()

        assert registry.get_or_create().session_id == "fresh"

    def test_default_ids_are_uuids(self):
        registry = SessionRegistry(
            lambda sid: McpSession(sid, tools=ToolRegistry(), server_info={})
        )

        first = registry.get_or_create()
        second = registry.get_or_create()

        assert first.session_id != second.session_id
        assert len(first.session_id) == 36


class TestGet:
    """Lookups."""

    def test_get_existing(self, registry):
        session = registry.get_or_create()

        assert registry.get(session.session_id) is session

    def test_get_unknown_raises(self, registry):
        with pytest.raises(SessionNotFoundError) as exc_info:
            registry.get("missing")

        assert exc_info.value.session_id == "missing"
        assert str(exc_info.value) == "Session not found: missing"

    def test_get_none_raises(self, registry):
        with pytest.raises(SessionNotFoundError):
            registry.get(None)


class TestRemove:
    """Session termination."""

    @pytest.mark.asyncio
    async def test_remove_closes_session(self, registry):
        session = registry.get_or_create()

        assert await registry.remove(session.session_id) is True

        assert session.is_closed is True
        assert len(registry) == 0
        with pytest.raises(SessionNotFoundError):
            registry.get(session.session_id)

    @pytest.mark.asyncio
    async def test_remove_unknown(self, registry):
        assert await registry.remove("missing") is False
        assert await registry.remove(None) is False

    @pytest.mark.asyncio
    async def test_session_close_deregisters(self, registry):
        session = registry.get_or_create()

        await session.close()

        assert session.session_id not in registry

    @pytest.mark.asyncio
    async def test_close_callback_only_removes_itself(self, registry):
        """A stale session object must not evict the live entry under its id."""
        live = registry.get_or_create()
        impostor = McpSession(live.session_id, tools=ToolRegistry(), server_info={})
        impostor.on_close = registry._on_session_closed

        await impostor.close()

        assert registry.get(live.session_id) is live

    @pytest.mark.asyncio
    async def test_close_all(self, registry):
        sessions = [registry.get_or_create() for _ in range(3)]

        await registry.close_all()

        assert len(registry) == 0
        assert all(s.is_closed for s in sessions)

    def test_iteration_is_a_snapshot(self, registry):
        registry.get_or_create()
        registry.get_or_create()

        assert [s.session_id for s in registry] == ["sid-1", "sid-2"]
