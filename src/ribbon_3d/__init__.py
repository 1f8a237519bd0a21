"""
3D ribbon replay: Recording → spline centerline → dash-revealed ribbon

Reveal is by arc length, not by point index, so playback speed does not
depend on how densely the stroke was sampled.
"""

from .build import (
    RibbonGeometryBuilder3D,
    SampledCurve3D,
    Ribbon,
    map_points_3d,
    catmull_rom_resample,
    cubic_resample,
)
from .view import RibbonView3D

__all__ = [
    "RibbonGeometryBuilder3D",
    "SampledCurve3D",
    "Ribbon",
    "map_points_3d",
    "catmull_rom_resample",
    "cubic_resample",
    "RibbonView3D",
]
