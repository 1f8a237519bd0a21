#!/usr/bin/env python3
"""
Signature Replay - Orchestrator

Replay a recorded stroke through the 2D and 3D pipelines and write the
resulting artifacts.

Usage:
    python src/replay.py --samples data/signature.csv --capture-width 400 --capture-height 200
    python src/replay.py --samples data/signature.json -W 400 -H 200 --target-size 800x400 --frames
    python src/replay.py --samples data/signature.csv -W 400 -H 200 --gif
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Optional, Tuple
from datetime import datetime

# Add src to path
sys.path.insert(0, str(Path(__file__).parent))

from common.config import Config, Background
from common.coords import InvalidDimension
from common.io import load_samples, save_raster, save_animation
from common.recording import StrokeRecording, recording_summary
from curve_2d import CurveView2D
from ribbon_3d import RibbonView3D

logger = logging.getLogger(__name__)


def parse_size(value: str) -> Tuple[int, int]:
    """Parse 'WxH' into a (width, height) tuple."""
    try:
        w, h = value.lower().split("x")
        return int(w), int(h)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Expected WIDTHxHEIGHT, got {value!r}")


def run_2d(
    recording: StrokeRecording,
    config: Config,
    output_dir: Path,
    target_size: Tuple[int, int],
    save_frames: bool = False,
    save_gif: bool = False
) -> dict:
    """Play the index reveal to completion and write preview + export rasters."""
    view = CurveView2D(config)
    view.attach(*target_size)
    try:
        view.set_recording(recording)

        n_frames = 0
        gif_frames = []
        while view.tick():
            n_frames += 1
            if save_frames:
                save_raster(view.snapshot(), output_dir / "frames" / f"frame_{n_frames:05d}.png")
            if save_gif:
                gif_frames.append(view.snapshot().convert("RGB"))

        animation_path = None
        if gif_frames:
            animation_path = save_animation(gif_frames, output_dir / "reveal.gif", config.gif_frame_ms)

        preview_path = save_raster(view.snapshot(), output_dir / "preview.png")
        export_path = view.save(
            output_dir / "export.png",
            transparent=config.export_background is Background.TRANSPARENT
        )

        return {
            "frames": n_frames,
            "segments": len(view.last_segments),
            "preview": str(preview_path),
            "export": str(export_path) if export_path else None,
            "animation": str(animation_path) if animation_path else None
        }
    finally:
        view.detach()


def run_3d(
    recording: StrokeRecording,
    config: Config,
    output_dir: Path,
    target_size: Tuple[int, int]
) -> dict:
    """Play the arc-length reveal to completion and write the ribbon GLB."""
    view = RibbonView3D(config)
    view.attach(*target_size)
    try:
        if not view.set_recording(recording):
            logger.warning("Not enough valid points for a 3D ribbon")
            return {"frames": 0, "ribbon": None}

        n_frames = view.play()
        mesh_path = view.export(output_dir / "ribbon.glb")

        return {
            "frames": n_frames,
            "ribbon": str(mesh_path) if mesh_path else None,
            "stats": view.stats()
        }
    finally:
        view.detach()


def replay(
    samples_path: Path,
    capture_size: Tuple[float, float],
    config: Config,
    output_dir: Path,
    target_size: Optional[Tuple[int, int]] = None,
    save_frames: bool = False,
    save_gif: bool = False
) -> dict:
    """
    Load samples and run both pipelines.

    Args:
        samples_path: CSV/JSON/parquet sample file
        capture_size: (width, height) of the capture surface
        config: Configuration
        output_dir: Output directory
        target_size: 2D surface size (defaults to capture size)
        save_frames: Also write every intermediate 2D frame
        save_gif: Also write the 2D reveal as an animated GIF

    Returns:
        Summary dictionary
    """
    samples = load_samples(samples_path)
    recording = StrokeRecording.from_samples(
        samples, *capture_size, default_pressure=config.default_pressure
    )

    target_size = target_size or (int(capture_size[0]), int(capture_size[1]))

    summary = {
        "timestamp": datetime.now().isoformat(),
        "config": config.to_dict(),
        "samples": str(samples_path),
        "recording": recording_summary(recording),
        "target_size": list(target_size),
        "errors": []
    }

    if recording.is_empty:
        summary["errors"].append("No usable points in recording")
        return summary

    for name, runner in (
        ("2d", lambda: run_2d(recording, config, output_dir, target_size, save_frames, save_gif)),
        ("3d", lambda: run_3d(recording, config, output_dir, target_size)),
    ):
        logger.info(f"\n--- {name.upper()} replay ---")
        try:
            summary[name] = runner()
        except Exception as e:
            logger.error(f"{name.upper()} replay failed: {e}")
            summary["errors"].append({"stage": name, "error": str(e)})

    return summary


def main():
    parser = argparse.ArgumentParser(
        description="Signature Replay - Re-render a recorded stroke in 2D and 3D"
    )
    parser.add_argument(
        "--samples", "-s",
        type=Path,
        required=True,
        help="Sample file (x, y, timestamp, pressure[, stroke])"
    )
    parser.add_argument(
        "--capture-width", "-W",
        type=float,
        required=True,
        help="Width of the capture surface, in sample coordinates"
    )
    parser.add_argument(
        "--capture-height", "-H",
        type=float,
        required=True,
        help="Height of the capture surface, in sample coordinates"
    )
    parser.add_argument(
        "--target-size", "-t",
        type=parse_size,
        default=None,
        help="2D output size as WIDTHxHEIGHT (default: capture size)"
    )
    parser.add_argument(
        "--config", "-c",
        type=Path,
        default=None,
        help="JSON config file"
    )
    parser.add_argument(
        "--output", "-o",
        type=Path,
        default=None,
        help="Output directory"
    )
    parser.add_argument(
        "--frames",
        action="store_true",
        help="Write every intermediate 2D frame"
    )
    parser.add_argument(
        "--gif",
        action="store_true",
        help="Write the 2D reveal as an animated GIF"
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Verbose logging"
    )

    args = parser.parse_args()

    # Setup logging
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s'
    )

    config = Config.from_json(args.config) if args.config else Config()
    output_dir = args.output or config.output_dir

    try:
        summary = replay(
            samples_path=args.samples,
            capture_size=(args.capture_width, args.capture_height),
            config=config,
            output_dir=output_dir,
            target_size=args.target_size,
            save_frames=args.frames,
            save_gif=args.gif
        )
    except InvalidDimension as e:
        logger.error(f"Invalid capture size: {e}")
        sys.exit(2)

    summary_path = output_dir / "replay_summary.json"
    summary_path.parent.mkdir(parents=True, exist_ok=True)
    with open(summary_path, 'w') as f:
        json.dump(summary, f, indent=2)

    logger.info(f"\nSummary saved to: {summary_path}")

    n_errors = len(summary["errors"])
    logger.info(f"\n{'='*60}")
    logger.info(f"COMPLETE: {summary['recording']['n_points']} points, {n_errors} errors")
    logger.info(f"{'='*60}")

    if n_errors > 0:
        sys.exit(1)


if __name__ == "__main__":
    main()
