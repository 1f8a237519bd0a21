"""
Coordinate normalization utilities.

Scale Flow (NON-NEGOTIABLE):
Capture pixels (x, y) → normalized (u, v) in [0,1] → target (x, y)

This is the ONLY place where scaling between surfaces should happen.
The 2D preview, the raster export and the 3D ribbon all go through it,
so relative stroke geometry agrees regardless of each surface's size.
"""

import math
import numpy as np
from typing import Tuple
from dataclasses import dataclass
import logging

logger = logging.getLogger(__name__)


class InvalidDimension(ValueError):
    """Raised when a capture or target dimension is not a positive finite number."""


def check_dimensions(width: float, height: float) -> Tuple[float, float]:
    """
    Validate a (width, height) pair.

    Raises:
        InvalidDimension: if either value is <= 0, non-finite or non-numeric
    """
    for name, value in (("width", width), ("height", height)):
        try:
            value = float(value)
        except (TypeError, ValueError):
            raise InvalidDimension(f"{name} must be numeric, got {value!r}")
        if not math.isfinite(value) or value <= 0:
            raise InvalidDimension(f"{name} must be > 0, got {value}")
    return float(width), float(height)


@dataclass(frozen=True)
class NormalizedPoint:
    """Point in capture-relative [0,1] space."""
    u: float
    v: float
    pressure: float


class CoordinateNormalizer:
    """
    Canonical scale transform between capture, normalized and target space.

    Stateless; a module-level instance is exported as NORMALIZER.
    """

    def to_normalized(self, point, capture_width: float, capture_height: float) -> NormalizedPoint:
        """
        Divide a point's coordinates by the capture dimensions.

        Args:
            point: Any object with x, y and pressure attributes
            capture_width: Width of the capture surface
            capture_height: Height of the capture surface

        Returns:
            NormalizedPoint

        Raises:
            InvalidDimension: if either capture dimension is <= 0
        """
        w, h = check_dimensions(capture_width, capture_height)
        return NormalizedPoint(u=point.x / w, v=point.y / h, pressure=point.pressure)

    def to_target(self, n: NormalizedPoint, target_width: float, target_height: float) -> Tuple[float, float]:
        """Multiply a normalized point back out to a target surface."""
        w, h = check_dimensions(target_width, target_height)
        return (n.u * w, n.v * h)

    def normalize_array(
        self,
        xy: np.ndarray,
        capture_width: float,
        capture_height: float
    ) -> np.ndarray:
        """
        Vectorised to_normalized for an (N, 2) array of capture coordinates.

        Non-finite inputs stay non-finite; callers filter on validity.
        """
        w, h = check_dimensions(capture_width, capture_height)
        xy = np.asarray(xy, dtype=np.float64).reshape(-1, 2)
        return xy / np.array([w, h])

    def target_array(
        self,
        uv: np.ndarray,
        target_width: float,
        target_height: float
    ) -> np.ndarray:
        """Vectorised to_target for an (N, 2) array of normalized coordinates."""
        w, h = check_dimensions(target_width, target_height)
        uv = np.asarray(uv, dtype=np.float64).reshape(-1, 2)
        return uv * np.array([w, h])

    def scaled_width(
        self,
        base_width: float,
        reference_dim: float,
        target_dim: float,
        pressure: float
    ) -> float:
        """
        Pressure-weighted stroke width on a target surface.

        width = base_width * (target_dim / reference_dim) * (1 + pressure)
        """
        reference_dim, target_dim = check_dimensions(reference_dim, target_dim)
        return base_width * (target_dim / reference_dim) * (1.0 + pressure)


NORMALIZER = CoordinateNormalizer()


def to_normalized(point, capture_width: float, capture_height: float) -> NormalizedPoint:
    """Convenience wrapper around NORMALIZER.to_normalized."""
    return NORMALIZER.to_normalized(point, capture_width, capture_height)


def to_target(n: NormalizedPoint, target_width: float, target_height: float) -> Tuple[float, float]:
    """Convenience wrapper around NORMALIZER.to_target."""
    return NORMALIZER.to_target(n, target_width, target_height)


def scaled_width(base_width: float, reference_dim: float, target_dim: float, pressure: float) -> float:
    """Convenience wrapper around NORMALIZER.scaled_width."""
    return NORMALIZER.scaled_width(base_width, reference_dim, target_dim, pressure)
