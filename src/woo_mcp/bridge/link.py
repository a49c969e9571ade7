"""BridgeLink - the single authoritative connection to the local agent.

The link is a slot: attaching a new handle evicts the old one without
telling it, and only the current holder may clear the slot again. A late
close event from a superseded connection therefore cannot tear down the
connection that replaced it.
"""

import logging
from typing import Any, Protocol

from .errors import LinkAbsentError

logger = logging.getLogger(__name__)


class LinkHandle(Protocol):
    """Duplex connection as seen by the bridge (aiohttp WebSocketResponse fits)."""

    @property
    def closed(self) -> bool: ...

    async def send_str(self, data: str) -> None: ...

    async def close(self, *, code: int = ..., message: bytes = ...) -> Any: ...


class BridgeLink:
    """Ownership slot holding at most one live handle."""

    def __init__(self) -> None:
        self._handle: LinkHandle | None = None
        self.agent_info: dict[str, Any] = {}

    @property
    def handle(self) -> LinkHandle | None:
        """Currently installed handle, if any."""
        return self._handle

    def attach(self, handle: LinkHandle) -> LinkHandle | None:
        """Install handle as the current link.

        Args:
            handle: Newly accepted connection

        Returns:
            The evicted handle, or None if the slot was empty
        """
        previous = self._handle
        self._handle = handle
        self.agent_info = {}
        if previous is not None and previous is not handle:
            logger.info("Bridge link superseded by a new connection")
        return previous

    def detach(self, handle: LinkHandle) -> bool:
        """Clear the slot if handle is still the current holder.

        Returns:
            True if the slot was cleared, False for a stale handle
        """
        if self._handle is not handle:
            return False
        self._handle = None
        self.agent_info = {}
        return True

    def is_live(self) -> bool:
        """Whether a handle is installed and reports itself open."""
        return self._handle is not None and not self._handle.closed

    async def send(self, data: str) -> None:
        """Write one frame to the current handle.

        Raises:
            LinkAbsentError: No handle installed, or the handle refused the write
        """
        handle = self._handle
        if handle is None:
            raise LinkAbsentError()
        try:
            await handle.send_str(data)
        except ConnectionError as e:
            raise LinkAbsentError(message=f"bridge link closed: {e}") from e
