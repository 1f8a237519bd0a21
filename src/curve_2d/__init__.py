"""2D curve replay: midpoint-chained quadratic path with pressure-weighted width."""

from .render import (
    CurveRenderer2D,
    CurveStyle,
    PathSegment,
    plan_segments,
    flatten_quadratic,
    stroke_pixel_width,
    clear_surface,
)
from .view import CurveView2D

__all__ = [
    "CurveRenderer2D",
    "CurveStyle",
    "PathSegment",
    "plan_segments",
    "flatten_quadratic",
    "stroke_pixel_width",
    "clear_surface",
    "CurveView2D",
]
