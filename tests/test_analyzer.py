import numpy as np
import pytest

from analyzer import ColorAnalyzer, centered_roi
from annotator import InvalidInput
from config import AnalyzerConfig

PURE_GREEN = (0, 255, 0)
PURE_RED = (0, 0, 255)
MAGENTA = (200, 0, 200)


def black(h=200, w=200):
    return np.zeros((h, w, 3), dtype=np.uint8)


def test_centered_roi():
    assert centered_roi(200, 100, 0.8) == (20, 10, 160, 80)
    assert centered_roi(200, 100, 1.0) == (0, 0, 200, 100)


def test_single_red_square_is_found():
    frame = black()
    frame[70:130, 70:130] = PURE_RED

    det = ColorAnalyzer().analyze(frame)

    assert det is not None
    assert det.color == "RED"
    assert det.bbox == (70, 70, 60, 60)
    assert det.roi_width == 160 and det.roi_height == 160
    # centroid in ROI coords (ROI starts at 20, 20)
    assert det.cx == pytest.approx(79.5, abs=0.5)
    assert det.cy == pytest.approx(79.5, abs=0.5)
    assert det.rel_x == pytest.approx(0.5, abs=0.01)
    assert det.area == pytest.approx(59 * 59, rel=0.05)


def test_winning_contour_is_outlined_on_frame():
    frame = black()
    frame[70:130, 70:130] = PURE_RED

    ColorAnalyzer().analyze(frame)

    # left edge of the square now carries the outline color
    assert tuple(frame[100, 70]) == PURE_GREEN
    assert tuple(frame[5, 5]) == (0, 0, 0)


def test_biggest_color_wins():
    frame = black()
    frame[40:80, 40:80] = PURE_RED
    frame[100:160, 100:160] = PURE_GREEN

    det = ColorAnalyzer().analyze(frame)

    assert det is not None
    assert det.color == "GREEN"
    assert det.bbox == (100, 100, 60, 60)


def test_equal_areas_resolve_by_priority():
    frame = black()
    frame[40:80, 40:80] = PURE_GREEN
    frame[110:150, 110:150] = PURE_RED

    det = ColorAnalyzer().analyze(frame)

    assert det is not None
    assert det.color == "RED"


def test_magenta_is_detected():
    frame = black()
    frame[70:130, 70:130] = MAGENTA

    det = ColorAnalyzer().analyze(frame)

    assert det is not None
    assert det.color == "MAGENTA"


def test_small_object_is_ignored():
    frame = black()
    frame[90:110, 90:110] = PURE_RED

    assert ColorAnalyzer().analyze(frame) is None


def test_object_outside_roi_is_ignored():
    frame = black()
    frame[0:15, 0:15] = PURE_RED

    assert ColorAnalyzer().analyze(frame) is None


def test_min_area_is_configurable():
    frame = black()
    frame[90:110, 90:110] = PURE_RED
    cfg = AnalyzerConfig(min_contour_area=100.0)

    det = ColorAnalyzer(cfg).analyze(frame)

    assert det is not None and det.color == "RED"


def test_elongated_object_rejected_by_shape_filter():
    frame = black()
    frame[95:105, 30:170] = PURE_RED  # 140x10 strip, aspect 14

    assert ColorAnalyzer().analyze(frame.copy()) is None

    det = ColorAnalyzer(AnalyzerConfig(enable_shape_filter=False)).analyze(frame)
    assert det is not None and det.color == "RED"


def test_debug_draws_bbox():
    frame = black()
    frame[70:130, 70:130] = PURE_RED

    ColorAnalyzer(AnalyzerConfig(debug=True)).analyze(frame)

    assert tuple(frame[130, 100]) == (0, 255, 255)


@pytest.mark.parametrize("clahe", [True, False])
def test_equalize_value_keeps_hue_and_saturation(clahe):
    hsv = np.zeros((32, 32, 3), dtype=np.uint8)
    hsv[..., 0] = 60
    hsv[..., 1] = 200
    hsv[..., 2] = np.tile(np.arange(32, dtype=np.uint8) * 4, (32, 1))

    out = ColorAnalyzer(AnalyzerConfig(enable_clahe=clahe)).equalize_value(hsv)

    assert out.shape == hsv.shape
    assert np.array_equal(out[..., 0], hsv[..., 0])
    assert np.array_equal(out[..., 1], hsv[..., 1])


def test_invalid_frame():
    with pytest.raises(InvalidInput):
        ColorAnalyzer().analyze(np.zeros((0, 0, 3), dtype=np.uint8))


def test_unmappable_view_is_rejected():
    big = np.zeros((200, 400, 3), dtype=np.uint8)
    big[70:130, 140:260] = PURE_RED

    with pytest.raises(InvalidInput):
        ColorAnalyzer().analyze(big[:, ::2])
