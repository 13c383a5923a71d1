# src/shape_filter.py
from __future__ import annotations

import math

import cv2
import numpy as np

from config import ShapeFilterConfig


def smooth_contour(contour: np.ndarray, epsilon: float, double_pass: bool = True) -> np.ndarray:
    """
    Polygonal smoothing in two passes.
    First pass removes pixel noise, second (half epsilon) keeps corners crisp.
    """
    c = contour.astype(np.float32)
    out = cv2.approxPolyDP(c, epsilon * cv2.arcLength(c, True), True)

    if double_pass and len(out) > 4:
        out = cv2.approxPolyDP(out, 0.5 * epsilon * cv2.arcLength(out, True), True)

    return out.astype(np.int32)


def _hull_area(contour: np.ndarray) -> float:
    return float(cv2.contourArea(cv2.convexHull(contour)))


def is_regular_shape(contour: np.ndarray, area: float, cfg: ShapeFilterConfig) -> bool:
    hull_area = _hull_area(contour)
    solidity = area / hull_area if hull_area > 0 else 0.0
    if solidity < cfg.min_solidity:
        return False

    x, y, w, h = cv2.boundingRect(contour)
    if h == 0 or w == 0:
        return False

    aspect = w / float(h)
    if aspect < cfg.min_aspect_ratio or aspect > cfg.max_aspect_ratio:
        return False

    extent = area / float(w * h)
    if extent < cfg.min_extent:
        return False

    # Compactness: a square is 16, a circle ~12.6; ragged blobs go far higher
    perimeter = cv2.arcLength(contour, True)
    if area <= 0 or (perimeter * perimeter) / area > cfg.max_perimeter_area_ratio:
        return False

    return True


def has_sharp_angles(contour: np.ndarray, max_angle_deg: float = 45.0, max_sharp: int = 2, max_points: int = 20) -> bool:
    pts = contour.reshape(-1, 2).astype(np.float64)
    n = len(pts)
    if n < 3:
        return False

    sharp = 0
    for i in range(min(n, max_points)):
        p1, p2, p3 = pts[i], pts[(i + 1) % n], pts[(i + 2) % n]
        v1 = p1 - p2
        v2 = p3 - p2
        m1 = float(np.hypot(*v1))
        m2 = float(np.hypot(*v2))
        if m1 <= 0 or m2 <= 0:
            continue

        cos_a = max(-1.0, min(1.0, float(np.dot(v1, v2)) / (m1 * m2)))
        if math.degrees(math.acos(cos_a)) < max_angle_deg:
            sharp += 1
            if sharp > max_sharp:
                return True

    return False


def _count_convexity_defects(contour: np.ndarray) -> int:
    if len(contour) < 4:
        return 0
    hull_idx = cv2.convexHull(contour, returnPoints=False)
    if hull_idx is None or len(hull_idx) < 3:
        return 0
    try:
        defects = cv2.convexityDefects(contour, hull_idx)
    except cv2.error:
        # self-intersecting or non-monotonic hull after smoothing
        return 0
    return 0 if defects is None else len(defects)


def is_rectangular_shape(contour: np.ndarray, area: float, cfg: ShapeFilterConfig) -> bool:
    """Reject organic shapes (leaves, bushes) that still pass is_regular_shape."""
    x, y, w, h = cv2.boundingRect(contour)
    if w * h == 0:
        return False

    if area / float(w * h) < cfg.min_rectangularity:
        return False

    hull_area = _hull_area(contour)
    convexity = area / hull_area if hull_area > 0 else 0.0
    if convexity < cfg.min_convexity:
        return False

    if _count_convexity_defects(contour) > cfg.max_convexity_defects:
        return False

    if cfg.detect_spikes and has_sharp_angles(contour, cfg.max_spike_angle_deg):
        return False

    c = contour.astype(np.float32)
    approx = cv2.approxPolyDP(c, 0.02 * cv2.arcLength(c, True), True)
    if not (cfg.min_vertices <= len(approx) <= cfg.max_vertices):
        return False

    return True
