"""Frame pipeline configuration."""
from __future__ import annotations

import os

from pydantic import BaseModel, Field

# Capture throttling (frames per second delivered to the pipeline)
CAPTURE_FPS = float(os.getenv("ACTIONSHOT_CAPTURE_FPS", "15"))
CAPTURE_SUBSCRIBER_QUEUE_SIZE = int(os.getenv("ACTIONSHOT_CAPTURE_QUEUE_SIZE", "5"))

# Observer event fan-out for websocket clients
EVENT_SUBSCRIBER_QUEUE_SIZE = int(os.getenv("ACTIONSHOT_EVENT_QUEUE_SIZE", "100"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").strip().upper()


class PipelineSettings(BaseModel):
    """Runtime settings for one frame pipeline instance."""

    target_size: int = Field(
        default_factory=lambda: int(os.getenv("ACTIONSHOT_TARGET_SIZE", "448")),
        gt=0,
    )
    segmenter: str = Field(default_factory=lambda: os.getenv("ACTIONSHOT_SEGMENTER", "yolo").strip().lower())
    model_path: str | None = Field(default_factory=lambda: os.getenv("ACTIONSHOT_MODEL_PATH") or None)
    composite_mode: str = Field(
        default_factory=lambda: os.getenv("ACTIONSHOT_COMPOSITE_MODE", "last").strip().lower(),
        pattern=r"^(last|overlay)$",
    )
    publish_events: bool = Field(
        default_factory=lambda: os.getenv("ACTIONSHOT_PUBLISH_EVENTS", "0").strip().lower() in {"1", "true", "yes"},
    )


pipeline_settings = PipelineSettings()
