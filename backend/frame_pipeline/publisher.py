"""Redis pub/sub publisher for pipeline events."""
from __future__ import annotations

import json
import logging
from typing import Optional

import numpy as np
from redis.exceptions import RedisError

from common.config import DEFAULT_SESSION_ID, create_redis_client, events_channel
from frame_pipeline.events import composition_payload, frame_processed_payload
from frame_pipeline.types import CompositionStatus, FrameStatus

logger = logging.getLogger(__name__)


class EventPublisher:
    """Observer that publishes every pipeline event as JSON on a Redis channel."""

    def __init__(self, session_id: str = DEFAULT_SESSION_ID):
        self.session_id = session_id
        self._redis = create_redis_client()

    def publish(self, session_id: str, payload: dict) -> bool:
        try:
            self._redis.publish(events_channel(session_id), json.dumps(payload))
            return True
        except RedisError as exc:
            logger.warning("Failed to publish event for session '%s': %s", session_id, exc)
            return False

    def on_frame_processed(self, status: FrameStatus, processed_count: int, remaining_count: int) -> None:
        self.publish(self.session_id, frame_processed_payload(status, processed_count, remaining_count))

    def on_composition_finished(self, status: CompositionStatus, image: Optional[np.ndarray]) -> None:
        self.publish(self.session_id, composition_payload(status, image))

    def close(self) -> None:
        try:
            self._redis.close()
        except Exception:
            pass
