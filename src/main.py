# src/main.py
from __future__ import annotations

import argparse
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Dict, List, Optional

from analyzer import ColorAnalyzer
from annotator import FrameAnnotator
from config import RunConfig, load_config
from video_io import open_video, get_fps, get_frame_size, make_writer, iter_frames
from visualize import draw_object_marker, draw_status


@dataclass
class RunStats:
    frames: int = 0
    frames_with_contours: Dict[str, int] = field(default_factory=dict)
    analyzer_hits: int = 0
    analyzer_colors: Dict[str, int] = field(default_factory=dict)


def run(cfg: RunConfig) -> RunStats:
    cap = open_video(cfg.video_path)
    fps = get_fps(cap, cfg.fps_assumed)
    frame_size = get_frame_size(cap)  # (w, h)
    writer = make_writer(cfg.output_path, fps, frame_size)

    annotator = FrameAnnotator(cfg.detection)
    analyzer: Optional[ColorAnalyzer] = ColorAnalyzer(cfg.analyzer) if cfg.analyze else None

    stats = RunStats()
    print("Input:", cfg.video_path, "| fps:", fps, "| size:", frame_size)

    try:
        for frame in iter_frames(cap):
            stats.frames += 1

            # Analyzer sees the frame before any outline is drawn on it
            raw = frame.copy() if analyzer is not None else None

            # detect + draw == process(), split to count contours on the way
            found = annotator.detect(frame)
            for name, contours in found.items():
                if contours:
                    stats.frames_with_contours[name] = stats.frames_with_contours.get(name, 0) + 1
            annotator.draw(frame, found)

            if analyzer is not None:
                det = analyzer.analyze(raw)
                if det is not None:
                    stats.analyzer_hits += 1
                    stats.analyzer_colors[det.color] = stats.analyzer_colors.get(det.color, 0) + 1
                    draw_object_marker(frame, det.bbox, label=f"{det.color} {det.area:.0f}px")
                    draw_status(frame, f"{det.color} x={det.rel_x:.2f} y={det.rel_y:.2f}")
                else:
                    draw_status(frame, "NO OBJECT")

            writer.write(frame)
    finally:
        cap.release()
        writer.release()

    print("Frames:", stats.frames)
    for color in cfg.detection.draw_order:
        n = stats.frames_with_contours.get(color, 0)
        rate = (n / stats.frames) if stats.frames else 0.0
        print(f"Frames with {color} contours:", n, f"({rate:.2%})")

    if analyzer is not None:
        hit_rate = (stats.analyzer_hits / stats.frames) if stats.frames else 0.0
        print("Analyzer hits:", stats.analyzer_hits, f"({hit_rate:.2%})")
        print("Dominant colors:", stats.analyzer_colors)

    print("Output:", cfg.output_path)
    return stats


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Outline green/red regions of a video, frame by frame.")
    p.add_argument("--video", required=True, help="Input video path or camera index (e.g. 0).")
    p.add_argument("--output", default="outputs/annotated.mp4", help="Annotated output video (mp4).")
    p.add_argument("--config", default="configs/runtime.json",
                   help="Optional JSON config; defaults are used when the file is missing.")
    p.add_argument("--analyze", action="store_true", help="Also locate the dominant colored object.")
    p.add_argument("--debug", action="store_true", help="Draw analyzer centroid and bounding box.")
    return p.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    cfg = load_config(Path(args.config), video_path=args.video, output_path=args.output)

    if args.analyze:
        cfg = replace(cfg, analyze=True)
    if args.debug:
        cfg = replace(cfg, analyzer=replace(cfg.analyzer, debug=True))

    Path(cfg.output_path).parent.mkdir(parents=True, exist_ok=True)
    run(cfg)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
