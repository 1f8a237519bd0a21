"""
Common modules shared by the 2D and 3D replay paths.

Scale Model (NON-NEGOTIABLE):
- Capture pixels → normalized [0,1] → target pixels / model units
- All scaling goes through CoordinateNormalizer
- Recordings are immutable; replace them wholesale, never mutate
"""

from .config import Config, SplineMethod, Background, RibbonMetadata, parse_color
from .coords import (
    CoordinateNormalizer, NormalizedPoint, InvalidDimension, NORMALIZER,
    to_normalized, to_target, scaled_width,
)
from .recording import Point, StrokeRecording, point_from_sample
from .io import load_samples, save_raster, save_animation, save_mesh, SurfaceError
from .normalize import center_on_bounds, CenteringResult
from .mesh_ops import cumulative_arc_length, ribbon_rails, strip_mesh, compute_mesh_stats

__all__ = [
    'Config', 'SplineMethod', 'Background', 'RibbonMetadata', 'parse_color',
    'CoordinateNormalizer', 'NormalizedPoint', 'InvalidDimension', 'NORMALIZER',
    'to_normalized', 'to_target', 'scaled_width',
    'Point', 'StrokeRecording', 'point_from_sample',
    'load_samples', 'save_raster', 'save_animation', 'save_mesh', 'SurfaceError',
    'center_on_bounds', 'CenteringResult',
    'cumulative_arc_length', 'ribbon_rails', 'strip_mesh', 'compute_mesh_stats',
]
