from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Tuple

HSV = Tuple[int, int, int]
BGR = Tuple[int, int, int]

# OpenCV 8-bit HSV: hue is halved to fit a byte
HUE_MAX = 180
SV_MAX = 255


@dataclass(frozen=True)
class HsvRange:
    lower: HSV
    upper: HSV

    def __post_init__(self) -> None:
        if len(self.lower) != 3 or len(self.upper) != 3:
            raise ValueError(f"HSV bounds need 3 values: {self.lower} / {self.upper}")
        limits = (HUE_MAX, SV_MAX, SV_MAX)
        for lo, hi, top in zip(self.lower, self.upper, limits):
            if not (0 <= lo <= hi <= top):
                raise ValueError(f"Bad HSV range: {self.lower} .. {self.upper}")


@dataclass(frozen=True)
class ColorRange:
    """A logical color: one or more HSV sub-ranges matched by OR."""
    name: str
    sub_ranges: Tuple[HsvRange, ...]
    outline_bgr: BGR

    def __post_init__(self) -> None:
        if not self.sub_ranges:
            raise ValueError(f"Color {self.name} has no HSV sub-ranges")


GREEN = ColorRange(
    name="GREEN",
    sub_ranges=(HsvRange((35, 100, 100), (85, 255, 255)),),
    outline_bgr=(0, 255, 0),
)

# Red straddles hue 0/180, hence two bands
RED = ColorRange(
    name="RED",
    sub_ranges=(
        HsvRange((0, 120, 70), (10, 255, 255)),
        HsvRange((170, 120, 70), (180, 255, 255)),
    ),
    outline_bgr=(0, 0, 255),
)


@dataclass(frozen=True)
class DetectionConfig:
    green_range: ColorRange = GREEN
    red_range: ColorRange = RED
    outline_thickness_px: int = 3
    draw_order: Tuple[str, ...] = ("GREEN", "RED")

    def __post_init__(self) -> None:
        if self.outline_thickness_px < 1:
            # cv2 treats negative thickness as "fill"
            raise ValueError(f"outline_thickness_px must be >= 1, got {self.outline_thickness_px}")
        names = sorted([self.green_range.name, self.red_range.name])
        if sorted(self.draw_order) != names:
            raise ValueError(f"draw_order {self.draw_order} must list each of {names} once")

    def ranges(self) -> List[ColorRange]:
        by_name = {self.green_range.name: self.green_range, self.red_range.name: self.red_range}
        return [by_name[n] for n in self.draw_order]


@dataclass(frozen=True)
class ShapeFilterConfig:
    min_solidity: float = 0.5
    min_aspect_ratio: float = 0.25
    max_aspect_ratio: float = 4.0
    min_extent: float = 0.4
    max_perimeter_area_ratio: float = 20.0

    min_rectangularity: float = 0.6
    min_convexity: float = 0.85
    max_convexity_defects: int = 3
    min_vertices: int = 4
    max_vertices: int = 12

    detect_spikes: bool = True
    max_spike_angle_deg: float = 45.0


ANALYZER_COLORS: Tuple[ColorRange, ...] = (
    ColorRange(
        name="RED",
        sub_ranges=(
            HsvRange((0, 100, 80), (10, 255, 255)),
            HsvRange((172, 100, 80), (180, 255, 255)),
        ),
        outline_bgr=(0, 0, 255),
    ),
    # wide on purpose: dark greens under poor light
    ColorRange(
        name="GREEN",
        sub_ranges=(HsvRange((30, 40, 25), (90, 255, 255)),),
        outline_bgr=(0, 255, 0),
    ),
    ColorRange(
        name="MAGENTA",
        sub_ranges=(HsvRange((145, 90, 60), (170, 255, 255)),),
        outline_bgr=(255, 0, 255),
    ),
)


@dataclass(frozen=True)
class AnalyzerConfig:
    # Colors in priority order (earlier wins an area tie)
    colors: Tuple[ColorRange, ...] = ANALYZER_COLORS

    # Centered ROI as a fraction of width/height
    roi_fraction: float = 0.8

    # Lighting normalisation on the V channel
    equalize_value: bool = True
    enable_clahe: bool = True
    clahe_clip_limit: float = 2.0
    clahe_tile_grid: Tuple[int, int] = (8, 8)

    morph_kernel: int = 5
    min_contour_area: float = 800.0

    enable_smoothing: bool = True
    smoothing_epsilon: float = 0.008
    double_smoothing: bool = True

    enable_shape_filter: bool = True
    enable_advanced_filter: bool = True
    shape: ShapeFilterConfig = field(default_factory=ShapeFilterConfig)

    outline_bgr: BGR = (0, 255, 0)
    outline_thickness_px: int = 2
    debug: bool = False

    def __post_init__(self) -> None:
        if not (0.0 < self.roi_fraction <= 1.0):
            raise ValueError(f"roi_fraction must be in (0, 1], got {self.roi_fraction}")
        if not self.colors:
            raise ValueError("AnalyzerConfig needs at least one color")


@dataclass(frozen=True)
class RunConfig:
    video_path: str
    output_path: str

    fps_assumed: float = 30.0
    analyze: bool = False

    detection: DetectionConfig = field(default_factory=DetectionConfig)
    analyzer: AnalyzerConfig = field(default_factory=AnalyzerConfig)


def _ranges_from_json(items: List[Dict[str, Any]]) -> Tuple[HsvRange, ...]:
    return tuple(HsvRange(tuple(int(v) for v in it["lower"]), tuple(int(v) for v in it["upper"])) for it in items)


def _from_dict(data: Dict[str, Any], video_path: str, output_path: str) -> RunConfig:
    det = DetectionConfig()
    green = det.green_range
    red = det.red_range
    if "green" in data:
        green = ColorRange(green.name, _ranges_from_json(data["green"]), green.outline_bgr)
    if "red" in data:
        red = ColorRange(red.name, _ranges_from_json(data["red"]), red.outline_bgr)

    det = DetectionConfig(
        green_range=green,
        red_range=red,
        outline_thickness_px=int(data.get("outline_thickness_px", det.outline_thickness_px)),
        draw_order=tuple(data.get("draw_order", det.draw_order)),
    )

    an = AnalyzerConfig()
    an = AnalyzerConfig(
        roi_fraction=float(data.get("roi_fraction", an.roi_fraction)),
        enable_clahe=bool(data.get("enable_clahe", an.enable_clahe)),
        min_contour_area=float(data.get("min_contour_area", an.min_contour_area)),
        debug=bool(data.get("debug", an.debug)),
    )

    # Input/output paths come from the command line only
    return RunConfig(
        video_path=video_path,
        output_path=output_path,
        fps_assumed=float(data.get("fps_assumed", 30.0)),
        analyze=bool(data.get("analyze", False)),
        detection=det,
        analyzer=an,
    )


def load_config(config_path: Path, video_path: str = "", output_path: str = "") -> RunConfig:
    """Build a RunConfig from an optional JSON file.

    A missing file gives the defaults. Anything else that is wrong with the
    file (bad JSON, wrong shape, bad values) raises ValueError naming it.
    """
    if not config_path.exists():
        return RunConfig(video_path=video_path, output_path=output_path)

    try:
        data = json.loads(config_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid config JSON in {config_path}: {e}") from e

    if not isinstance(data, dict):
        raise ValueError(f"Invalid config in {config_path}: expected a JSON object, got {type(data).__name__}")

    try:
        return _from_dict(data, video_path, output_path)
    except (KeyError, TypeError, ValueError) as e:
        raise ValueError(f"Invalid config in {config_path}: {e!r}") from e
