"""
Neptune Cache Agent identity.

Each registration attempt announces a fresh random agent id so the hub never
mistakes a reconnecting agent for the session it just dropped.
"""

from Crypto.Random import get_random_bytes

AGENT_ID_BYTES = 8


def new_agent_id() -> str:
    """Return a random agent identifier as lowercase hex (16 chars)."""
    return get_random_bytes(AGENT_ID_BYTES).hex()
