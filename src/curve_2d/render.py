"""
2D Curve Renderer: Recording prefix → smoothed, pressure-weighted raster path

Algorithm (midpoint chaining):
2D.1 - Take the revealed prefix of the recording
2D.2 - Scale every point to the target surface through CoordinateNormalizer
2D.3 - For each consecutive pair (P_i, P_i+1) emit a quadratic segment with
       control P_i ending at the midpoint M_i; the first segment starts at P_0,
       later ones continue from M_i-1
2D.4 - Width per segment = scaled_width(base, capture_w, target_w, P_i.pressure)
2D.5 - Clear the surface, then stroke each segment

The path passes near, not through, the samples. Raw pointer samples are
noisy, so the smoothing is worth the positional error.

Segments touching a point tagged invalid are skipped; the segment after a
gap restarts at its own P_i.
"""

import logging
import math
from dataclasses import dataclass
from typing import List, Optional, Tuple

import numpy as np
from PIL import Image, ImageDraw

from common.config import Config, Background, parse_color
from common.coords import CoordinateNormalizer, NORMALIZER, check_dimensions
from common.recording import StrokeRecording

logger = logging.getLogger(__name__)

Vec2 = Tuple[float, float]


@dataclass
class CurveStyle:
    """Pen settings for the 2D renderer."""
    pen_color: str = "rgb(37, 99, 235)"
    base_line_width: float = 2.0

    @classmethod
    def from_config(cls, config: Config) -> "CurveStyle":
        return cls(pen_color=config.pen_color, base_line_width=config.base_line_width)


@dataclass(frozen=True)
class PathSegment:
    """One quadratic piece of the stroke path, in target pixels."""
    index: int  # i of the (P_i, P_i+1) pair
    start: Vec2
    control: Vec2
    end: Vec2
    width: float


def plan_segments(
    recording: StrokeRecording,
    revealed_count: int,
    target_width: float,
    target_height: float,
    base_line_width: float,
    normalizer: CoordinateNormalizer = NORMALIZER
) -> List[PathSegment]:
    """
    Compute the path segments for the first revealed_count points.

    Args:
        recording: Source recording
        revealed_count: Length of the visible prefix (clamped to n_points)
        target_width: Surface width in pixels
        target_height: Surface height in pixels
        base_line_width: Pen width at capture scale
        normalizer: Scale transform (shared by all renderers)

    Returns:
        List of PathSegment, at most revealed_count - 1 entries
    """
    check_dimensions(target_width, target_height)
    prefix = recording.points[:max(0, min(revealed_count, recording.n_points))]
    if len(prefix) < 2:
        return []

    scaled = []
    for p in prefix:
        if p.valid:
            n = normalizer.to_normalized(p, recording.capture_width, recording.capture_height)
            scaled.append(normalizer.to_target(n, target_width, target_height))
        else:
            scaled.append(None)

    segments = []
    previous_end: Optional[Vec2] = None
    for i in range(len(prefix) - 1):
        current = scaled[i]
        nxt = scaled[i + 1]
        if current is None or nxt is None:
            previous_end = None
            continue

        mid = ((current[0] + nxt[0]) / 2.0, (current[1] + nxt[1]) / 2.0)
        start = current if previous_end is None else previous_end
        width = normalizer.scaled_width(
            base_line_width,
            recording.capture_width,
            target_width,
            prefix[i].pressure
        )

        segments.append(PathSegment(index=i, start=start, control=current, end=mid, width=width))
        previous_end = mid

    return segments


def flatten_quadratic(start: Vec2, control: Vec2, end: Vec2, n_samples: int = 8) -> np.ndarray:
    """
    Sample a quadratic Bezier curve.

    Returns:
        (n_samples + 1, 2) array from start to end inclusive
    """
    t = np.linspace(0.0, 1.0, max(1, n_samples) + 1)[:, None]
    s = np.asarray(start, dtype=np.float64)
    c = np.asarray(control, dtype=np.float64)
    e = np.asarray(end, dtype=np.float64)
    return (1 - t) ** 2 * s + 2 * (1 - t) * t * c + t ** 2 * e


def stroke_pixel_width(width: float) -> int:
    """Integer pen width shared by a segment body and its round caps (half rounds up)."""
    return max(1, int(math.floor(width + 0.5)))


def clear_surface(surface: Image.Image, background: Background) -> None:
    """Overwrite every pixel with the background fill (no compositing)."""
    surface.paste(background.rgba, (0, 0, surface.width, surface.height))


class CurveRenderer2D:
    """
    Draws a (possibly partial) recording onto a Pillow RGBA surface.

    Stateless apart from its flattening resolution; one instance can serve
    the live preview and any number of exports.
    """

    def __init__(self, flatness: int = 8, normalizer: CoordinateNormalizer = NORMALIZER):
        self.flatness = flatness
        self.normalizer = normalizer

    def render(
        self,
        surface: Image.Image,
        recording: StrokeRecording,
        revealed_count: int,
        style: CurveStyle,
        background: Background = Background.WHITE
    ) -> List[PathSegment]:
        """
        Clear the surface and draw the revealed prefix.

        An empty recording leaves the surface untouched.

        Returns:
            The segments drawn
        """
        if recording.is_empty:
            return []

        clear_surface(surface, background)

        segments = plan_segments(
            recording,
            revealed_count,
            surface.width,
            surface.height,
            style.base_line_width,
            self.normalizer
        )
        if not segments:
            return segments

        fill = parse_color(style.pen_color) + (255,)
        draw = ImageDraw.Draw(surface)

        for seg in segments:
            pts = flatten_quadratic(seg.start, seg.control, seg.end, self.flatness)
            width = stroke_pixel_width(seg.width)
            draw.line([tuple(p) for p in pts], fill=fill, width=width, joint="curve")

            # Round caps
            r = width / 2.0
            for x, y in (pts[0], pts[-1]):
                draw.ellipse([x - r, y - r, x + r, y + r], fill=fill)

        logger.debug(f"Rendered {len(segments)} segments on {surface.width}x{surface.height}")
        return segments

    def render_export(
        self,
        recording: StrokeRecording,
        width: int,
        height: int,
        style: CurveStyle,
        revealed_count: Optional[int] = None,
        background: Background = Background.TRANSPARENT
    ) -> Image.Image:
        """
        Render into a fresh off-surface buffer at an arbitrary size.

        Uses the same normalized geometry as the live preview, so the export
        keeps the preview's proportions whatever its size.

        Args:
            recording: Source recording
            width: Output width in pixels
            height: Output height in pixels
            style: Pen settings
            revealed_count: Prefix length (default: whole recording)
            background: Fill; transparent by default

        Returns:
            RGBA Pillow image
        """
        width, height = (int(v) for v in check_dimensions(width, height))
        buffer = Image.new("RGBA", (width, height), background.rgba)
        count = recording.n_points if revealed_count is None else revealed_count
        self.render(buffer, recording, count, style, background)
        return buffer
