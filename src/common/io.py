"""
Data I/O utilities.

Handles loading recorded samples and saving rasters, reveal animations
and ribbon meshes with proper metadata. Sample files are in canonical format:
x, y, timestamp, pressure (+ optional stroke id)
"""

import logging
from pathlib import Path
from typing import List, Optional, Dict, Any, Union

import pandas as pd
import trimesh
from PIL import Image

from .config import RibbonMetadata

logger = logging.getLogger(__name__)


class SurfaceError(RuntimeError):
    """Raised when a rendering surface is missing or cannot be allocated."""


def _find_col(df: pd.DataFrame, candidates: List[str]) -> Optional[str]:
    """Find first matching column name from candidates."""
    for c in candidates:
        if c in df.columns:
            return c
    return None


def load_samples(path: Union[str, Path]) -> List[Dict[str, Any]]:
    """
    Load raw capture samples from CSV, JSON or parquet file.

    Expected columns:
    - x
    - y
    - timestamp or time or t
    - pressure or p (optional)
    - stroke or stroke_id (optional; strokes are flattened in order)

    Args:
        path: Path to data file

    Returns:
        List of sample dicts ready for StrokeRecording.from_samples
    """
    path = Path(path)

    if path.suffix == '.parquet':
        df = pd.read_parquet(path)
    elif path.suffix == '.json':
        df = pd.read_json(path, convert_dates=False)
    else:
        df = pd.read_csv(path)

    logger.info(f"Loaded {len(df)} samples from {path}")

    x_col = _find_col(df, ['x'])
    y_col = _find_col(df, ['y'])
    time_col = _find_col(df, ['timestamp', 'time', 't'])
    pressure_col = _find_col(df, ['pressure', 'p'])
    stroke_col = _find_col(df, ['stroke', 'stroke_id'])

    if not x_col or not y_col or not time_col:
        raise ValueError(f"Could not find x/y/time columns in {df.columns.tolist()}")

    # Stable sort keeps capture order within each stroke
    if stroke_col:
        df = df.sort_values(stroke_col, kind='stable')

    # Coerce so malformed cells become NaN and are tagged downstream
    xs = pd.to_numeric(df[x_col], errors='coerce')
    ys = pd.to_numeric(df[y_col], errors='coerce')
    ts = pd.to_numeric(df[time_col], errors='coerce')
    ps = pd.to_numeric(df[pressure_col], errors='coerce') if pressure_col else None

    samples = []
    for i in range(len(df)):
        sample = {
            "x": float(xs.iloc[i]),
            "y": float(ys.iloc[i]),
            "timestamp": float(ts.iloc[i])
        }
        if ps is not None:
            sample["pressure"] = float(ps.iloc[i])
        samples.append(sample)

    if stroke_col:
        logger.info(f"Flattened {df[stroke_col].nunique()} strokes")

    return samples


def save_raster(image: Image.Image, path: Union[str, Path]) -> Path:
    """
    Save a rendered surface as PNG.

    Args:
        image: Pillow image (RGBA keeps transparency)
        path: Output path (should end in .png)

    Returns:
        Path written
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    image.save(path, format="PNG")
    logger.info(f"Saved raster: {path} ({image.width}x{image.height})")
    return path


def save_animation(
    frames: List[Image.Image],
    path: Union[str, Path],
    frame_ms: int = 20
) -> Path:
    """
    Save reveal frames as a looping animated GIF.

    Args:
        frames: Rendered frames in playback order (converted to RGB)
        path: Output path (should end in .gif)
        frame_ms: Delay per frame in milliseconds

    Returns:
        Path written

    Raises:
        ValueError: if there are no frames
    """
    if not frames:
        raise ValueError("No frames to animate")

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    first, *rest = [frame.convert("RGB") for frame in frames]
    first.save(
        path,
        format="GIF",
        save_all=True,
        append_images=rest,
        duration=frame_ms,
        loop=0
    )
    logger.info(f"Saved animation: {path} ({len(frames)} frames, {frame_ms} ms each)")
    return path


def save_mesh(
    mesh: trimesh.Trimesh,
    path: Union[str, Path],
    metadata: RibbonMetadata
) -> Path:
    """
    Save mesh to GLB file with metadata sidecar.

    Args:
        mesh: Trimesh mesh object
        path: Output path (should end in .glb)
        metadata: RibbonMetadata object (will be saved as .json sidecar)

    Returns:
        Path written
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    mesh.export(str(path))
    logger.info(f"Saved mesh: {path} ({metadata.n_vertices} verts, {metadata.n_triangles} tris)")

    meta_path = path.with_suffix('.json')
    metadata.save(meta_path)
    logger.info(f"Saved metadata: {meta_path}")

    return path
