from __future__ import annotations

from typing import Dict, List, Optional

import cv2
import numpy as np

from config import ColorRange, DetectionConfig


class InvalidInput(ValueError):
    """Frame is missing, empty or not an 8-bit 3-channel writable image."""


def validate_frame(frame: Optional[np.ndarray]) -> None:
    if frame is None:
        raise InvalidInput("frame is None")
    if not isinstance(frame, np.ndarray):
        raise InvalidInput(f"frame must be a numpy array, got {type(frame).__name__}")
    if frame.size == 0:
        raise InvalidInput(f"frame is empty: shape={frame.shape}")
    if frame.ndim != 3 or frame.shape[2] != 3:
        raise InvalidInput(f"frame must be HxWx3 BGR, got shape={frame.shape}")
    if frame.dtype != np.uint8:
        raise InvalidInput(f"frame must be uint8, got {frame.dtype}")
    if not frame.flags.writeable:
        raise InvalidInput("frame is read-only; annotation happens in place")
    # cv::Mat can stride over rows only; pixels and channels must be packed
    if frame.strides[2] != frame.itemsize or frame.strides[1] != 3 * frame.itemsize:
        raise InvalidInput(f"frame layout cannot be drawn on in place: strides={frame.strides}")


def build_mask(hsv: np.ndarray, color: ColorRange) -> np.ndarray:
    mask = None
    for r in color.sub_ranges:
        part = cv2.inRange(hsv, np.array(r.lower, np.uint8), np.array(r.upper, np.uint8))
        mask = part if mask is None else cv2.bitwise_or(mask, part)
    return mask


def find_external_contours(mask: np.ndarray) -> List[np.ndarray]:
    contours, _ = cv2.findContours(mask, cv2.RETR_EXTERNAL, cv2.CHAIN_APPROX_SIMPLE)
    return list(contours)


class FrameAnnotator:
    """
    Outline green and red regions of a BGR frame, in place.

    Stateless between calls: one instance can serve every frame of a stream.
    The caller owns the buffer and must not mutate it concurrently.
    """

    def __init__(self, config: Optional[DetectionConfig] = None) -> None:
        self.config = config or DetectionConfig()

    def detect(self, frame: np.ndarray) -> Dict[str, List[np.ndarray]]:
        """Contours per color name, keyed in draw order. Does not touch the frame."""
        validate_frame(frame)
        hsv = cv2.cvtColor(frame, cv2.COLOR_BGR2HSV)

        found: Dict[str, List[np.ndarray]] = {}
        for color in self.config.ranges():
            found[color.name] = find_external_contours(build_mask(hsv, color))
        return found

    def draw(self, frame: np.ndarray, found: Dict[str, List[np.ndarray]]) -> None:
        """Outline every contour in its color; colors follow draw_order, never filled."""
        for color in self.config.ranges():
            contours = found.get(color.name)
            if not contours:
                continue
            cv2.drawContours(frame, contours, -1, color.outline_bgr, self.config.outline_thickness_px)

    def process(self, frame: np.ndarray) -> None:
        # Everything is computed before the first draw, so a failure
        # never leaves a half-annotated frame behind.
        self.draw(frame, self.detect(frame))
