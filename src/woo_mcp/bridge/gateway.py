"""BridgeGateway - request/response calls to the local agent.

Tool handlers call invoke(); the websocket endpoint feeds every inbound
frame to handle_message(). The gateway owns the link slot and the
correlation registry and is the only place the two meet.
"""

import itertools
import json
import logging
import time
from dataclasses import dataclass
from typing import Any

from .errors import BridgeUnavailableError, LinkAbsentError
from .link import BridgeLink, LinkHandle
from .registry import CorrelationRegistry

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_MS = 15000

# Actions the local agent understands
BRIDGE_ACTIONS = ("ping", "exec", "read_file", "write_file", "list_dir")


@dataclass
class BridgeReply:
    """Reply from the local agent, passed through verbatim."""

    id: str
    result: Any = None
    error: Any = None
    is_error: bool = False

    @property
    def value(self) -> Any:
        """The error payload for failed replies, the result otherwise."""
        return self.error if self.is_error else self.result

    @classmethod
    def from_message(cls, message: dict[str, Any]) -> "BridgeReply":
        """Build a reply from a decoded `{id, result}` / `{id, error}` frame."""
        is_error = message.get("error") is not None
        return cls(
            id=str(message.get("id")),
            result=message.get("result"),
            error=message.get("error"),
            is_error=is_error,
        )


class BridgeGateway:
    """Correlates requests sent over the bridge link with their replies."""

    def __init__(
        self,
        link: BridgeLink | None = None,
        registry: CorrelationRegistry | None = None,
        default_timeout_ms: int = DEFAULT_TIMEOUT_MS,
    ):
        """Initialize BridgeGateway.

        Args:
            link: Link slot (a fresh one if omitted)
            registry: Correlation registry (a fresh one if omitted)
            default_timeout_ms: Deadline for invoke() calls without one
        """
        self.link = link or BridgeLink()
        self.registry = registry or CorrelationRegistry()
        self.default_timeout_ms = default_timeout_ms
        self._sequence = itertools.count(1)

    @property
    def is_connected(self) -> bool:
        """Whether an authoritative agent is attached and open."""
        return self.link.is_live()

    @property
    def agent_info(self) -> dict[str, Any]:
        """Registration info announced by the attached agent."""
        return self.link.agent_info

    def next_request_id(self) -> str:
        """Millisecond timestamp plus a process-wide sequence number."""
        return f"{time.time_ns() // 1_000_000}-{next(self._sequence)}"

    async def invoke(
        self,
        action: str,
        payload: dict[str, Any] | None = None,
        timeout_ms: int | None = None,
    ) -> BridgeReply:
        """Send an action to the local agent and wait for its reply.

        Args:
            action: Wire action (see BRIDGE_ACTIONS)
            payload: Extra wire fields merged into the request frame
            timeout_ms: Deadline in milliseconds (default_timeout_ms if None)

        Returns:
            The matched reply, result or remote-reported error

        Raises:
            BridgeUnavailableError: No live link, or the write failed
            BridgeTimeoutError: No reply before the deadline
        """
        if not self.link.is_live():
            raise BridgeUnavailableError()

        timeout_ms = timeout_ms or self.default_timeout_ms
        request_id = self.next_request_id()
        future = self.registry.register(request_id, timeout_ms)
        frame = json.dumps({**(payload or {}), "id": request_id, "action": action})

        logger.debug(f"Bridge request {request_id}: action={action} timeout={timeout_ms}ms")

        try:
            await self.link.send(frame)
        except LinkAbsentError as e:
            self.registry.discard(request_id)
            raise BridgeUnavailableError(message=e.message) from e

        try:
            return await future
        finally:
            # no-op unless the caller was cancelled before settlement
            self.registry.discard(request_id)

    def attach(self, handle: LinkHandle) -> None:
        """Make handle the authoritative link."""
        self.link.attach(handle)
        logger.info("Bridge connected")

    def detach(self, handle: LinkHandle) -> bool:
        """Release handle; fails in-flight requests if it was authoritative.

        Returns:
            True if handle was the current link
        """
        if not self.link.detach(handle):
            logger.debug("Ignoring disconnect from superseded bridge connection")
            return False
        rejected = self.registry.reject_all(BridgeUnavailableError(message="bridge disconnected"))
        logger.info(f"Bridge disconnected ({rejected} in-flight requests failed)")
        return True

    def handle_message(self, raw: str | bytes) -> None:
        """Route one inbound frame from the link.

        Registration handshakes update agent info; everything else is a
        reply settled by id. Malformed frames and unknown ids are dropped.
        """
        try:
            message = json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError):
            logger.warning(f"Dropping malformed bridge frame: {raw!r:.200}")
            return

        if not isinstance(message, dict):
            logger.warning("Dropping non-object bridge frame")
            return

        if message.get("type") == "register":
            self.link.agent_info = {
                "hostname": message.get("hostname"),
                "platform": message.get("platform"),
            }
            logger.info(f"PC: {message.get('hostname')} ({message.get('platform')})")
            return

        if message.get("id") is None:
            logger.debug(f"Dropping bridge frame without id: {message!r:.200}")
            return

        reply = BridgeReply.from_message(message)
        if not self.registry.settle(reply.id, reply):
            logger.debug(f"Dropping reply for unknown request {reply.id}")

    async def close(self) -> None:
        """Close the current link (server shutdown)."""
        handle = self.link.handle
        if handle is None:
            return
        self.detach(handle)
        await handle.close(code=1001, message=b"server shutdown")
