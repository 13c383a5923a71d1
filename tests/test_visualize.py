import numpy as np

from visualize import draw_object_marker, draw_status


def test_object_marker_draws_box_edges():
    frame = np.zeros((100, 100, 3), dtype=np.uint8)

    draw_object_marker(frame, (20, 30, 40, 20), "RED")

    assert tuple(frame[30, 40]) == (0, 255, 255)   # top edge
    assert tuple(frame[50, 40]) == (0, 255, 255)   # bottom edge
    assert tuple(frame[40, 40]) == (0, 0, 0)       # inside stays empty


def test_object_marker_custom_color():
    frame = np.zeros((100, 100, 3), dtype=np.uint8)

    draw_object_marker(frame, (20, 30, 40, 20), "X", color=(255, 0, 0))

    assert tuple(frame[40, 20]) == (255, 0, 0)


def test_status_banner_has_dark_backing():
    frame = np.full((60, 200, 3), 255, dtype=np.uint8)

    draw_status(frame, "GREEN x=0.50 y=0.50")

    assert tuple(frame[1, 1]) == (0, 0, 0)
    assert tuple(frame[55, 195]) == (255, 255, 255)
