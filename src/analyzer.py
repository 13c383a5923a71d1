from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Tuple

import cv2
import numpy as np

from annotator import build_mask, find_external_contours, validate_frame
from config import AnalyzerConfig, ColorRange
from shape_filter import is_rectangular_shape, is_regular_shape, smooth_contour

ROI = Tuple[int, int, int, int]   # (x, y, w, h)
BBOX = Tuple[int, int, int, int]  # (x, y, w, h) GLOBAL coords


@dataclass(frozen=True)
class ObjectDetection:
    color: str
    area: float
    cx: float   # centroid, ROI coords
    cy: float
    rel_x: float  # centroid / ROI size, 0..1
    rel_y: float
    bbox: BBOX
    roi_width: int
    roi_height: int


def centered_roi(w: int, h: int, fraction: float) -> ROI:
    rw = max(1, int(w * fraction))
    rh = max(1, int(h * fraction))
    return ((w - rw) // 2, (h - rh) // 2, rw, rh)


def _clean_mask(mask: np.ndarray, k: int) -> np.ndarray:
    kernel = cv2.getStructuringElement(cv2.MORPH_RECT, (k, k))
    mask = cv2.morphologyEx(mask, cv2.MORPH_OPEN, kernel)
    mask = cv2.morphologyEx(mask, cv2.MORPH_CLOSE, kernel)
    return mask


class ColorAnalyzer:
    """
    Find the single dominant colored object in the central ROI of a frame.

    Pipeline: ROI crop -> HSV -> V equalisation -> masks -> open/close
    -> external contours -> smoothing -> area + shape filters
    -> largest contour per color -> biggest color wins.

    The winning contour is drawn onto the frame (in place).
    """

    def __init__(self, config: Optional[AnalyzerConfig] = None) -> None:
        self.config = config or AnalyzerConfig()
        cfg = self.config
        self._clahe = None
        if cfg.equalize_value and cfg.enable_clahe:
            self._clahe = cv2.createCLAHE(clipLimit=cfg.clahe_clip_limit, tileGridSize=tuple(cfg.clahe_tile_grid))

    def equalize_value(self, hsv: np.ndarray) -> np.ndarray:
        """Equalise the V (brightness) channel, keep H and S untouched."""
        h, s, v = cv2.split(hsv)
        if self._clahe is not None:
            v = self._clahe.apply(v)
        else:
            v = cv2.equalizeHist(v)
        return cv2.merge([h, s, v])

    def _valid_contours(self, contours: List[np.ndarray]) -> List[Tuple[float, np.ndarray]]:
        cfg = self.config
        out = []
        for c in contours:
            if cfg.enable_smoothing:
                c = smooth_contour(c, cfg.smoothing_epsilon, cfg.double_smoothing)

            area = float(cv2.contourArea(c))
            if area <= cfg.min_contour_area:
                continue

            if cfg.enable_shape_filter:
                if not is_regular_shape(c, area, cfg.shape):
                    continue
                if cfg.enable_advanced_filter and not is_rectangular_shape(c, area, cfg.shape):
                    continue

            out.append((area, c))
        return out

    def largest_per_color(self, hsv: np.ndarray) -> List[Tuple[ColorRange, float, Optional[np.ndarray]]]:
        results = []
        for color in self.config.colors:
            mask = _clean_mask(build_mask(hsv, color), self.config.morph_kernel)
            valid = self._valid_contours(find_external_contours(mask))
            if valid:
                area, best = max(valid, key=lambda t: t[0])
                results.append((color, area, best))
            else:
                results.append((color, 0.0, None))
        return results

    def analyze(self, frame: np.ndarray) -> Optional[ObjectDetection]:
        validate_frame(frame)
        cfg = self.config

        fh, fw = frame.shape[:2]
        x0, y0, rw, rh = centered_roi(fw, fh, cfg.roi_fraction)
        roi_img = frame[y0:y0 + rh, x0:x0 + rw]

        hsv = cv2.cvtColor(roi_img, cv2.COLOR_BGR2HSV)
        if cfg.equalize_value:
            hsv = self.equalize_value(hsv)

        candidates = self.largest_per_color(hsv)

        # max() keeps the first of equal areas, i.e. the higher-priority color
        color, area, contour = max(candidates, key=lambda t: t[1])
        if contour is None or area <= 0:
            return None

        m = cv2.moments(contour)
        if m["m00"] == 0:
            return None
        cx = m["m10"] / m["m00"]
        cy = m["m01"] / m["m00"]

        bx, by, bw, bh = cv2.boundingRect(contour)
        bbox_global = (x0 + bx, y0 + by, bw, bh)

        # Draw in frame coords; avoids relying on writes through a view
        shifted = contour + np.array([x0, y0], dtype=np.int32)
        cv2.drawContours(frame, [shifted], -1, cfg.outline_bgr, cfg.outline_thickness_px)
        if cfg.debug:
            cv2.circle(frame, (int(x0 + cx), int(y0 + cy)), 10, color.outline_bgr, -1)
            gx, gy, gw, gh = bbox_global
            cv2.rectangle(frame, (gx, gy), (gx + gw, gy + gh), (0, 255, 255), 2)

        return ObjectDetection(
            color=color.name,
            area=area,
            cx=cx,
            cy=cy,
            rel_x=cx / rw,
            rel_y=cy / rh,
            bbox=bbox_global,
            roi_width=rw,
            roi_height=rh,
        )
