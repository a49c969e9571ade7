"""Unit tests for WooApplication wiring."""

import pytest

from woo_mcp.application import WooApplication
from woo_mcp.mcp import SessionState


@pytest.fixture
def application(server_config):
    return WooApplication(server_config, version="9.9.9")


@pytest.mark.cli_unit
class TestWooApplication:
    """Component wiring and shutdown."""

    def test_gateway_uses_configured_timeout(self, application, server_config):
        assert application.gateway.default_timeout_ms == server_config.bridge_timeout_ms

    def test_status_snapshot(self, application, handle):
        application.gateway.attach(handle)
        application.sessions.get_or_create()

        status = application.status()

        assert status.version == "9.9.9"
        assert status.bridge_connected is True
        assert status.sessions == 1
        assert "local_bridge" in status.tools

    @pytest.mark.asyncio
    async def test_sessions_serve_registered_tools(self, application):
        session = application.sessions.get_or_create()

        response = await session.handle_request(
            {"jsonrpc": "2.0", "id": 1, "method": "initialize", "params": {}}
        )

        assert response["result"]["serverInfo"] == {"name": "woo-mcp-server", "version": "9.9.9"}
        assert session.state is SessionState.ACTIVE

    @pytest.mark.asyncio
    async def test_shutdown_closes_sessions_and_bridge(self, application, handle):
        application.gateway.attach(handle)
        session = application.sessions.get_or_create()

        await application.shutdown()
        await application.shutdown()

        assert session.is_closed is True
        assert len(application.sessions) == 0
        assert handle.closed is True
        assert handle.close_code == 1001

    def test_web_app_routes(self, application):
        app = application.create_web_app()

        routes = {(r.method, r.resource.canonical) for r in app.router.routes()}

        assert ("POST", "/mcp") in routes
        assert ("GET", "/mcp") in routes
        assert ("DELETE", "/mcp") in routes
        assert ("GET", "/bridge") in routes
        assert ("GET", "/") in routes
