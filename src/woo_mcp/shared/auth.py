"""Authentication helpers.

Two secrets guard the server: the bearer token MCP clients present on
/mcp, and the pre-shared key the local agent presents on /bridge. Both
are opaque strings compared in constant time.
"""

import secrets

BRIDGE_KEY_HEADER = "x-bridge-key"


def auth_headers(token: str | None) -> dict[str, str]:
    """Build Authorization header dict.

    Args:
        token: Bearer token string

    Returns:
        Dict with Authorization header, or empty dict if no token
    """
    if token:
        return {"Authorization": f"Bearer {token}"}
    return {}


def bridge_headers(bridge_key: str) -> dict[str, str]:
    """Headers the local agent sends when opening the bridge."""
    return {BRIDGE_KEY_HEADER: bridge_key}


def check_bearer(authorization: str | None, token: str) -> bool:
    """Check an Authorization header against the configured token.

    An empty token disables authentication.
    """
    if not token:
        return True
    if not authorization:
        return False
    return secrets.compare_digest(authorization.encode(), f"Bearer {token}".encode())


def check_bridge_key(presented: str | None, bridge_key: str) -> bool:
    """Check the key presented by a connecting agent.

    An empty configured key rejects every agent.
    """
    if not bridge_key or not presented:
        return False
    return secrets.compare_digest(presented.encode(), bridge_key.encode())
