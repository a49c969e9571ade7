"""Bridge module - correlated calls to the local PC agent.

A single remote agent connects over a websocket; tool handlers send it
actions through BridgeGateway and wait for the reply with the same id.
"""

from .errors import (
    BridgeError,
    BridgeTimeoutError,
    BridgeUnavailableError,
    DuplicateIdError,
    LinkAbsentError,
)
from .gateway import BRIDGE_ACTIONS, DEFAULT_TIMEOUT_MS, BridgeGateway, BridgeReply
from .link import BridgeLink, LinkHandle
from .registry import CorrelationRegistry, PendingRequest

__all__ = [
    "BRIDGE_ACTIONS",
    "DEFAULT_TIMEOUT_MS",
    "BridgeError",
    "BridgeGateway",
    "BridgeLink",
    "BridgeReply",
    "BridgeTimeoutError",
    "BridgeUnavailableError",
    "CorrelationRegistry",
    "DuplicateIdError",
    "LinkAbsentError",
    "LinkHandle",
    "PendingRequest",
]
