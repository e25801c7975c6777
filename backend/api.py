"""FastAPI backend for action shot capture and composition."""
from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Query, UploadFile, WebSocket
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response
from starlette.websockets import WebSocketDisconnect

from common.config import (
    DEFAULT_SESSION_ID,
    EVENT_SUBSCRIBER_QUEUE_SIZE,
    LOG_LEVEL,
    pipeline_settings,
)
from cv.compositor import CompositeMode
from cv.imaging import decode_image, encode_png
from cv.segmenters import get_segmenter
from frame_pipeline import CompositionStatus, FrameProcessor, InvalidFrameError, ModelLoadError
from frame_pipeline.events import EventBroadcaster
from schemas import FrameUploadResponse, ProcessResponse, SessionStatus

logging.basicConfig(level=LOG_LEVEL)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="ActionShot Backend API",
    description="API for frame segmentation and action shot composition",
    version="0.1.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type"],
)

processor: FrameProcessor | None = None
broadcaster: EventBroadcaster | None = None


def _build_observers() -> list:
    observers: list = [broadcaster]
    if pipeline_settings.publish_events:
        from frame_pipeline.publisher import EventPublisher

        observers.append(EventPublisher(DEFAULT_SESSION_ID))
    return observers


@asynccontextmanager
async def lifespan(_: FastAPI):
    global processor, broadcaster

    broadcaster = EventBroadcaster()
    try:
        segmenter = get_segmenter(pipeline_settings.segmenter, pipeline_settings.model_path)
    except ModelLoadError:
        logger.exception("Segmenter unavailable; frame endpoints will return 503")
        segmenter = None

    if segmenter is not None:
        processor = FrameProcessor(
            segmenter,
            observers=_build_observers(),
            target_size=pipeline_settings.target_size,
            composite_mode=pipeline_settings.composite_mode,
        )

    yield

    if processor:
        processor.shutdown()
        processor = None
    broadcaster = None


app.router.lifespan_context = lifespan


def _require_processor() -> FrameProcessor:
    if not processor:
        raise HTTPException(status_code=503, detail="Frame processor not initialized")
    return processor


@app.get("/")
def read_root():
    return {
        "status": "ok",
        "message": "ActionShot Backend API is running",
        "endpoints": {
            "session": "/api/session",
            "reset": "/api/session/reset",
            "frames": "/api/frames",
            "process": "/api/process",
            "composite": "/api/composite",
            "events_ws": "/api/events",
            "health": "/health",
        },
    }


@app.get("/health")
def health_check():
    if not processor:
        return {"status": "degraded", "processor": False}
    return {"status": "ok", "processor": True, **processor.counts().to_dict()}


@app.get("/api/session", response_model=SessionStatus)
async def session_status():
    return _require_processor().counts().to_dict()


@app.post("/api/session/reset", response_model=SessionStatus)
async def reset_session():
    proc = _require_processor()
    proc.reset()
    return proc.counts().to_dict()


@app.post("/api/frames", status_code=201, response_model=FrameUploadResponse)
async def upload_frame(file: UploadFile, process: bool = True):
    """Queue one uploaded image and (by default) kick off processing."""
    proc = _require_processor()
    data = await file.read()
    frame = await asyncio.to_thread(decode_image, data)
    if frame is None:
        raise HTTPException(status_code=400, detail="File is not a decodable image")

    try:
        queued = proc.submit_frame(frame)
    except InvalidFrameError as exc:
        raise HTTPException(status_code=400, detail=str(exc))

    started = proc.process_frames() if process else False
    return {"queued": queued, "started": started, **proc.counts().to_dict()}


@app.post("/api/process", response_model=ProcessResponse)
async def process_frames():
    proc = _require_processor()
    return {"started": proc.process_frames(), **proc.counts().to_dict()}


@app.post("/api/composite")
async def composite(mode: CompositeMode | None = Query(default=None)):
    proc = _require_processor()
    result = await asyncio.to_thread(proc.composite_frames, mode)
    if result.image is None:
        raise HTTPException(status_code=404, detail="No processed frames to compose")

    png = await asyncio.to_thread(encode_png, result.image)
    status = "success" if result.status == CompositionStatus.SUCCESS else "degraded"
    return Response(
        content=png,
        media_type="image/png",
        headers={
            "X-Composition-Status": status,
            "X-Selected-Frames": ",".join(str(i) for i in result.indices),
            "X-Direction": f"{result.direction.x:.4f},{result.direction.y:.4f}",
        },
    )


@app.websocket("/api/events")
async def websocket_events(websocket: WebSocket):
    await websocket.accept()

    if not processor or not broadcaster:
        await websocket.send_json({"type": "error", "message": "Frame processor unavailable"})
        await websocket.close(code=1011)
        return

    events = broadcaster
    queue = events.subscribe_async(asyncio.get_running_loop(), maxsize=EVENT_SUBSCRIBER_QUEUE_SIZE)
    try:
        await websocket.send_json({"type": "ready", **processor.counts().to_dict()})
        while True:
            payload = await queue.get()
            await websocket.send_json(payload)
    except WebSocketDisconnect:
        pass
    except Exception:
        logger.exception("Events websocket failed")
    finally:
        events.unsubscribe_async(queue)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000, workers=1, loop="asyncio")
