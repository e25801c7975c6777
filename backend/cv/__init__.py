"""Segmentation, frame selection and action shot composition."""

import os

# Quiet OpenCV's FFmpeg backend while capture sources are decoded.
os.environ.setdefault("OPENCV_FFMPEG_LOGLEVEL", "error")
