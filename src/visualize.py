from typing import Tuple

import cv2
import numpy as np

def draw_object_marker(frame: np.ndarray, bbox: Tuple[int, int, int, int], label: str, color: Tuple[int, int, int] = (0, 255, 255)) -> None:
    x, y, w, h = bbox
    cv2.rectangle(frame, (x, y), (x+w, y+h), color, 2)
    cv2.putText(frame, label, (x, max(12, y-8)), cv2.FONT_HERSHEY_SIMPLEX, 0.6, color, 2)

def draw_status(frame: np.ndarray, text: str, color: Tuple[int, int, int] = (255, 255, 255)) -> None:
    # Top-left banner, dark backing so it stays readable on bright frames
    (tw, th), base = cv2.getTextSize(text, cv2.FONT_HERSHEY_SIMPLEX, 0.6, 2)
    cv2.rectangle(frame, (0, 0), (tw + 12, th + base + 12), (0, 0, 0), -1)
    cv2.putText(frame, text, (6, th + 6), cv2.FONT_HERSHEY_SIMPLEX, 0.6, color, 2)
