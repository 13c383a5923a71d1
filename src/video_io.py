from pathlib import Path
from typing import Iterator, Tuple, Union

import cv2
import numpy as np

# Codec per container; anything unknown goes out as mp4v
FOURCC_BY_SUFFIX = {".mp4": "mp4v", ".avi": "MJPG", ".mkv": "XVID"}

def open_video(source: Union[str, int]) -> cv2.VideoCapture:
    # An int (or a digit string like "0") selects a camera device
    if isinstance(source, str) and source.isdigit():
        source = int(source)
    cap = cv2.VideoCapture(source)
    if not cap.isOpened():
        raise RuntimeError(f"Could not open video source: {source}")
    return cap

def get_fps(cap: cv2.VideoCapture, fps_fallback: float = 30.0) -> float:
    # Cameras and some containers report 0
    fps = cap.get(cv2.CAP_PROP_FPS)
    if not fps or fps <= 1e-3:
        return fps_fallback
    return fps

def get_frame_size(cap: cv2.VideoCapture) -> Tuple[int, int]:
    """(width, height) as the capture reports it."""
    return int(cap.get(cv2.CAP_PROP_FRAME_WIDTH)), int(cap.get(cv2.CAP_PROP_FRAME_HEIGHT))

def make_writer(path: str, fps: float, frame_size: Tuple[int, int], codec: str = "") -> cv2.VideoWriter:
    codec = codec or FOURCC_BY_SUFFIX.get(Path(path).suffix.lower(), "mp4v")
    writer = cv2.VideoWriter(path, cv2.VideoWriter_fourcc(*codec), fps, frame_size)
    if not writer.isOpened():
        raise RuntimeError(f"Could not open {codec} video writer: {path}")
    return writer

def as_bgr(frame: np.ndarray) -> np.ndarray:
    if frame.ndim == 2 or frame.shape[2] == 1:
        return cv2.cvtColor(frame, cv2.COLOR_GRAY2BGR)
    if frame.shape[2] == 4:
        return cv2.cvtColor(frame, cv2.COLOR_BGRA2BGR)
    return frame

def iter_frames(cap: cv2.VideoCapture) -> Iterator[np.ndarray]:
    """Yield BGR frames until the capture runs dry."""
    while True:
        ok, frame = cap.read()
        if not ok or frame is None:
            break
        yield as_bgr(frame)
