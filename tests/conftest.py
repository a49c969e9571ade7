"""Shared test fixtures for woo-mcp-server tests.

This module provides:
- FakeHandle: in-memory stand-in for the bridge websocket
- gateway / tool_registry fixtures wired like the real application
- server_config: configuration with test secrets and no file lookup
"""

import json
from dataclasses import dataclass, field
from typing import Any

import pytest

from woo_mcp.bridge import BridgeGateway
from woo_mcp.config import ServerConfig
from woo_mcp.tools import build_tool_registry

TEST_AUTH_TOKEN = "test-token"
TEST_BRIDGE_KEY = "test-bridge-key"


# =============================================================================
# Fake bridge handle
# =============================================================================


@dataclass
class FakeHandle:
    """Records frames written to the bridge; never talks to a network."""

    closed: bool = False
    fail_sends: bool = False
    sent: list[str] = field(default_factory=list)
    close_code: int | None = None

    async def send_str(self, data: str) -> None:
        if self.fail_sends or self.closed:
            raise ConnectionResetError("Cannot write to closing transport")
        self.sent.append(data)

    async def close(self, *, code: int = 1000, message: bytes = b"") -> bool:
        self.closed = True
        self.close_code = code
        return True

    @property
    def frames(self) -> list[dict[str, Any]]:
        """Sent frames, decoded."""
        return [json.loads(raw) for raw in self.sent]


@pytest.fixture
def handle() -> FakeHandle:
    return FakeHandle()


@pytest.fixture
def gateway() -> BridgeGateway:
    return BridgeGateway(default_timeout_ms=1000)


@pytest.fixture
def connected_gateway(gateway: BridgeGateway, handle: FakeHandle) -> BridgeGateway:
    """Gateway with a FakeHandle attached."""
    gateway.attach(handle)
    return gateway


@pytest.fixture
def tool_registry(gateway: BridgeGateway):
    return build_tool_registry(gateway, started_at=0.0)


@pytest.fixture
def server_config() -> ServerConfig:
    return ServerConfig(
        host="127.0.0.1",
        port=0,
        auth_token=TEST_AUTH_TOKEN,
        bridge_key=TEST_BRIDGE_KEY,
        bridge_timeout_ms=2000,
    )


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    """Keep tests away from the real ~/.woo-mcp and server env vars."""
    from woo_mcp.config import ENV_VARS

    for env_var in ENV_VARS.values():
        monkeypatch.delenv(env_var, raising=False)
    monkeypatch.delenv("WOO_BRIDGE_URL", raising=False)
    monkeypatch.setattr("woo_mcp.config.get_config_path", lambda: tmp_path / "missing.yaml")


@pytest.fixture
def make_handle():
    """Factory for extra FakeHandles within one test."""
    return FakeHandle
