"""
Compose an action shot from a video file or camera.

Frames are read at a throttled rate, segmented one at a time, and the best
spaced frames along the subject's direction of motion are composed into a
single PNG.
"""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

import cv2

from common.config import CAPTURE_FPS, DEFAULT_COMPOSITE_PATH, LOG_LEVEL, pipeline_settings
from cv.compositor import CompositeMode
from cv.segmenters import get_segmenter
from frame_pipeline import CompositionStatus, FrameProcessor, FrameStatus, PipelineError
from streaming.frame_source import FramePacket, FrameSource

logger = logging.getLogger("compose_action_shot")


class ProgressLogger:
    def on_frame_processed(self, status: FrameStatus, processed_count: int, remaining_count: int) -> None:
        if status == FrameStatus.SUCCESS:
            logger.info("Segmented frame %d (%d queued)", processed_count, remaining_count)
        else:
            logger.warning("Segmentation failed after %d frames (%d queued)", processed_count, remaining_count)

    def on_composition_finished(self, status: CompositionStatus, image) -> None:
        if status == CompositionStatus.DEGRADED:
            logger.warning("No frame passed selection; falling back to the last frame")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__.strip().splitlines()[0])
    parser.add_argument("source", help="Video path, stream URL or camera index")
    parser.add_argument("--fps", type=float, default=CAPTURE_FPS, help="Max frames per second fed to the pipeline")
    parser.add_argument("--out", type=Path, default=DEFAULT_COMPOSITE_PATH, help="Output PNG path")
    parser.add_argument(
        "--mode",
        choices=[m.value for m in CompositeMode],
        default=pipeline_settings.composite_mode,
        help="'last' returns the hero frame, 'overlay' paints earlier subjects onto it",
    )
    parser.add_argument("--model", default=pipeline_settings.model_path, help="Segmentation weights")
    parser.add_argument("--size", type=int, default=pipeline_settings.target_size, help="Processing resolution")
    parser.add_argument(
        "--stop-on-failure",
        action="store_true",
        help="Do not resume processing after a segmentation failure",
    )
    return parser.parse_args(argv)


def _source_arg(source: str) -> str | int:
    return int(source) if source.isdigit() else source


def run(args: argparse.Namespace) -> int:
    segmenter = get_segmenter(pipeline_settings.segmenter, args.model)
    processor = FrameProcessor(
        segmenter,
        observers=[ProgressLogger()],
        target_size=args.size,
        composite_mode=args.mode,
    )

    def _on_frame(packet: FramePacket) -> None:
        processor.submit_frame(packet.frame)
        processor.process_frames()

    source = FrameSource(_source_arg(args.source), max_fps=args.fps)
    source.add_listener(_on_frame)
    source.start()
    source.join()

    while True:
        processor.wait_until_idle()
        counts = processor.counts()
        if counts.remaining == 0 or args.stop_on_failure:
            break
        processor.process_frames()

    result = processor.composite_frames()
    processor.shutdown()

    if result.image is None:
        logger.error("No frames were processed from %s", args.source)
        return 1

    args.out.parent.mkdir(parents=True, exist_ok=True)
    if not cv2.imwrite(str(args.out), result.image):
        logger.error("Failed to write %s", args.out)
        return 1

    logger.info("Wrote %s (frames %s, status=%s)", args.out, result.indices, result.status.name.lower())
    return 0 if result.status == CompositionStatus.SUCCESS else 2


def main(argv: list[str] | None = None) -> int:
    logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    args = parse_args(argv)
    try:
        return run(args)
    except PipelineError as exc:
        logger.error("%s", exc)
        return 1


if __name__ == "__main__":
    sys.exit(main())
