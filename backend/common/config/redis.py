"""Redis configuration and helpers."""
from __future__ import annotations

import os

from redis import Redis

REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")
REDIS_EVENTS_CHANNEL_PREFIX = os.getenv("REDIS_EVENTS_CHANNEL_PREFIX", "actionshot")
DEFAULT_SESSION_ID = os.getenv("DEFAULT_SESSION_ID", "default")


def events_channel(session_id: str) -> str:
    """Build pub/sub channel name for a session's pipeline events."""
    return f"{REDIS_EVENTS_CHANNEL_PREFIX}:{session_id}"


def create_redis_client() -> Redis:
    """Create a sync Redis client for event publishing."""
    return Redis.from_url(REDIS_URL, decode_responses=True)
