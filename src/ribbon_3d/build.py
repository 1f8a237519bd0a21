"""
3D Ribbon Builder: Recording → smooth centerline → dash-revealable ribbon

Algorithm:
R.1 - Map valid points to 3D: normalized (u, v) scaled by model_scale with
      the capture aspect, y flipped, z = pressure * depth; center the result
      on its bounding-box midpoint
R.2 - Fit an interpolating spline (centripetal Catmull-Rom by default) and
      sample k points per input segment → (N-1)*k + 1 centerline samples
R.3 - Cumulative arc length along the centerline; total_length = last entry
R.4 - Flat triangle strip of constant width along the centerline; each
      vertex carries its arc length so a renderer can draw only the length
      prefix [0, total_length - dash_offset]

Pressure goes into depth here and into line width in 2D. The two media
differ on purpose.

Fewer than 2 valid points yields no geometry (None), not an error.
"""

import logging
import math
from dataclasses import dataclass
from typing import Optional, Dict, Any, Tuple

import numpy as np
import trimesh
from scipy.interpolate import CubicSpline

from common.config import Config, SplineMethod, RibbonMetadata, DEFAULT_CONFIG, parse_color
from common.coords import CoordinateNormalizer, NORMALIZER
from common.mesh_ops import cumulative_arc_length, ribbon_rails, strip_mesh, clip_rails
from common.normalize import center_on_bounds
from common.recording import StrokeRecording

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SampledCurve3D:
    """
    Resampled centerline with its arc-length parameterisation.

    Arrays are read-only; a changed recording gets a new curve.
    """
    centerline: np.ndarray       # (M, 3)
    cumulative_length: np.ndarray  # (M,)
    total_length: float
    n_points: int                # valid input points
    multiplier: int

    @property
    def n_samples(self) -> int:
        return len(self.centerline)


def map_points_3d(
    recording: StrokeRecording,
    model_scale: float = 150.0,
    depth: float = 50.0,
    normalizer: CoordinateNormalizer = NORMALIZER
) -> np.ndarray:
    """
    Place valid recording points in model space, centered on the origin.

    Args:
        recording: Source recording
        model_scale: Model units spanned by the capture height
        depth: z offset at pressure 1.0
        normalizer: Scale transform (shared by all renderers)

    Returns:
        (N, 3) array
    """
    data = recording.as_array(valid_only=True)
    if len(data) == 0:
        return np.empty((0, 3))

    uv = normalizer.normalize_array(data[:, :2], recording.capture_width, recording.capture_height)
    # The model is a target surface model_scale units tall at the capture aspect
    xy = normalizer.target_array(uv, model_scale * recording.aspect, model_scale)

    positions = np.column_stack([
        xy[:, 0],
        -xy[:, 1],
        data[:, 2] * depth
    ])

    centered, _ = center_on_bounds(positions)
    return centered


def _catmull_rom_segment(
    p0: np.ndarray,
    p1: np.ndarray,
    p2: np.ndarray,
    p3: np.ndarray,
    s: np.ndarray,
    alpha: float
) -> np.ndarray:
    """
    Evaluate one non-uniform Catmull-Rom span between p1 and p2.

    Knot intervals are |p_j+1 - p_j|^alpha; coincident points fall back to
    a unit (or neighbouring) interval.
    """
    dt0 = np.linalg.norm(p1 - p0) ** alpha
    dt1 = np.linalg.norm(p2 - p1) ** alpha
    dt2 = np.linalg.norm(p3 - p2) ** alpha

    if dt1 < 1e-4:
        dt1 = 1.0
    if dt0 < 1e-4:
        dt0 = dt1
    if dt2 < 1e-4:
        dt2 = dt1

    t1 = (p1 - p0) / dt0 - (p2 - p0) / (dt0 + dt1) + (p2 - p1) / dt1
    t2 = (p2 - p1) / dt1 - (p3 - p1) / (dt1 + dt2) + (p3 - p2) / dt2
    t1 = t1 * dt1
    t2 = t2 * dt1

    s = s[:, None]
    s2 = s * s
    s3 = s2 * s
    h00 = 2 * s3 - 3 * s2 + 1
    h10 = s3 - 2 * s2 + s
    h01 = -2 * s3 + 3 * s2
    h11 = s3 - s2

    return h00 * p1 + h10 * t1 + h01 * p2 + h11 * t2


def catmull_rom_resample(points: np.ndarray, multiplier: int, alpha: float = 0.5) -> np.ndarray:
    """
    Resample a polyline through an interpolating Catmull-Rom spline.

    End tangents use reflected phantom points. alpha=0.5 is centripetal.

    Args:
        points: (N, 3) array, N >= 2
        multiplier: Samples per input segment

    Returns:
        ((N-1)*multiplier + 1, 3) array passing through every input point
    """
    n = len(points)
    padded = np.vstack([
        2 * points[0] - points[1],
        points,
        2 * points[-1] - points[-2]
    ])

    s = np.arange(multiplier) / multiplier
    spans = [
        _catmull_rom_segment(padded[i], padded[i + 1], padded[i + 2], padded[i + 3], s, alpha)
        for i in range(n - 1)
    ]
    spans.append(points[-1:])
    return np.vstack(spans)


def cubic_resample(points: np.ndarray, multiplier: int) -> np.ndarray:
    """
    Resample through a natural cubic spline over the point index.

    Returns:
        ((N-1)*multiplier + 1, 3) array
    """
    n = len(points)
    index = np.arange(n, dtype=np.float64)
    spline = CubicSpline(index, points, axis=0, bc_type='natural')
    return spline(np.linspace(0.0, n - 1, (n - 1) * multiplier + 1))


class Ribbon:
    """
    Disposable ribbon mesh plus its per-frame reveal parameter.

    revealed_fraction is the dash offset as a fraction of total length:
    1.0 draws nothing, 0.0 draws the whole ribbon.
    """

    def __init__(
        self,
        mesh: trimesh.Trimesh,
        left: np.ndarray,
        right: np.ndarray,
        cumulative_length: np.ndarray,
        total_length: float,
        color: str,
        revealed_fraction: float = 1.0
    ):
        self.mesh: Optional[trimesh.Trimesh] = mesh
        self.left = left
        self.right = right
        self.cumulative_length = cumulative_length
        # Vertex 2i and 2i+1 sit at centerline sample i
        self.vertex_arc_length = np.repeat(cumulative_length, 2)
        self.total_length = float(total_length)
        self.color = color
        self.revealed_fraction = 1.0
        self.set_revealed_fraction(revealed_fraction)

    @property
    def is_disposed(self) -> bool:
        return self.mesh is None

    @property
    def dash_array(self) -> float:
        return self.total_length

    @property
    def dash_offset(self) -> float:
        return self.revealed_fraction * self.total_length

    @property
    def visible_length(self) -> float:
        return self.total_length - self.dash_offset

    def set_revealed_fraction(self, fraction: float) -> None:
        fraction = float(fraction)
        if not math.isfinite(fraction):
            raise ValueError(f"revealed_fraction must be finite, got {fraction}")
        self.revealed_fraction = min(max(fraction, 0.0), 1.0)

    def visible_mesh(self) -> trimesh.Trimesh:
        """Strip clipped to the currently visible length prefix."""
        if self.is_disposed:
            return trimesh.Trimesh()
        left, right = clip_rails(self.left, self.right, self.cumulative_length, self.visible_length)
        mesh = strip_mesh(left, right)
        if len(mesh.vertices):
            mesh.visual.vertex_colors = _rgba(self.color, len(mesh.vertices))
        return mesh

    def dispose(self) -> None:
        """Release the mesh; the ribbon must not be used afterwards."""
        self.mesh = None
        self.left = self.left[:0]
        self.right = self.right[:0]

    def metadata(self, curve: SampledCurve3D, params: Optional[Dict[str, Any]] = None) -> RibbonMetadata:
        n_vertices = 0 if self.mesh is None else len(self.mesh.vertices)
        n_triangles = 0 if self.mesh is None else len(self.mesh.faces)
        return RibbonMetadata(
            n_points=curve.n_points,
            n_samples=curve.n_samples,
            n_vertices=n_vertices,
            n_triangles=n_triangles,
            total_length=self.total_length,
            dash_offset=self.dash_offset,
            revealed_fraction=self.revealed_fraction,
            color=self.color,
            generation_params=params or {}
        )


def _rgba(color: str, n: int) -> np.ndarray:
    rgb = parse_color(color)
    return np.tile(np.array(rgb + (255,), dtype=np.uint8), (n, 1))


class RibbonGeometryBuilder3D:
    """Builds SampledCurve3D and Ribbon objects from recordings."""

    def __init__(self, config: Config = DEFAULT_CONFIG, normalizer: CoordinateNormalizer = NORMALIZER):
        if config.resample_multiplier < 1:
            raise ValueError(f"resample_multiplier must be >= 1, got {config.resample_multiplier}")
        self.config = config
        self.normalizer = normalizer

    def build(self, recording: StrokeRecording) -> Optional[SampledCurve3D]:
        """
        Resample a recording into a smooth 3D centerline.

        Returns:
            SampledCurve3D, or None when fewer than 2 valid points exist
        """
        points = map_points_3d(
            recording,
            model_scale=self.config.model_scale,
            depth=self.config.depth,
            normalizer=self.normalizer
        )
        if len(points) < 2:
            logger.debug(f"No ribbon geometry for {len(points)} valid points")
            return None

        k = self.config.resample_multiplier
        if self.config.spline_method is SplineMethod.CUBIC:
            centerline = cubic_resample(points, k)
        else:
            centerline = catmull_rom_resample(points, k)

        cumulative = cumulative_arc_length(centerline)
        centerline.setflags(write=False)
        cumulative.setflags(write=False)

        curve = SampledCurve3D(
            centerline=centerline,
            cumulative_length=cumulative,
            total_length=float(cumulative[-1]),
            n_points=len(points),
            multiplier=k
        )
        logger.info(
            f"Built centerline: {curve.n_points} points -> {curve.n_samples} samples, "
            f"length {curve.total_length:.2f}"
        )
        return curve

    def to_ribbon(
        self,
        curve: Optional[SampledCurve3D],
        revealed_fraction: float = 1.0,
        color: Optional[str] = None
    ) -> Optional[Ribbon]:
        """
        Build the ribbon mesh for a centerline.

        Returns:
            Ribbon, or None when curve is None
        """
        if curve is None:
            return None

        color = color or self.config.ribbon_color
        left, right = ribbon_rails(curve.centerline, self.config.ribbon_width)
        mesh = strip_mesh(left, right)
        mesh.visual.vertex_colors = _rgba(color, len(mesh.vertices))

        logger.debug(f"Ribbon mesh: {len(mesh.vertices)} verts, {len(mesh.faces)} tris")
        return Ribbon(
            mesh=mesh,
            left=left,
            right=right,
            cumulative_length=np.asarray(curve.cumulative_length),
            total_length=curve.total_length,
            color=color,
            revealed_fraction=revealed_fraction
        )

    def generation_params(self) -> Dict[str, Any]:
        return {
            "algorithm": "ribbon_3d",
            "spline_method": self.config.spline_method.value,
            "resample_multiplier": self.config.resample_multiplier,
            "model_scale": self.config.model_scale,
            "depth": self.config.depth,
            "ribbon_width": self.config.ribbon_width
        }
