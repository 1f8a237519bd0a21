"""
Bounding-box utilities for 3D centerlines and meshes.

Centering uses the bounding-box midpoint (not the centroid) so a
recording's extent is symmetric about the origin regardless of how
densely each region was sampled.
"""

import numpy as np
from typing import Tuple, Dict
from dataclasses import dataclass
import logging

logger = logging.getLogger(__name__)


@dataclass
class CenteringResult:
    """Result of bounding-box centering."""
    translation: np.ndarray
    bbox_before: Dict[str, Tuple[float, float]]
    max_dim: float


def get_bounds(vertices: np.ndarray) -> Dict[str, Tuple[float, float]]:
    """Get bounding box of vertices."""
    return {
        'x': (float(vertices[:, 0].min()), float(vertices[:, 0].max())),
        'y': (float(vertices[:, 1].min()), float(vertices[:, 1].max())),
        'z': (float(vertices[:, 2].min()), float(vertices[:, 2].max()))
    }


def get_max_dimension(bounds: Dict[str, Tuple[float, float]]) -> float:
    """Get maximum dimension from bounds."""
    extents = [b[1] - b[0] for b in bounds.values()]
    return max(extents) if extents else 0.0


def center_on_bounds(vertices: np.ndarray) -> Tuple[np.ndarray, CenteringResult]:
    """
    Translate vertices so their bounding box is centered on the origin.

    Args:
        vertices: Nx3 array of vertices

    Returns:
        Tuple of (centered_vertices, CenteringResult)
    """
    if len(vertices) == 0:
        return vertices.copy(), CenteringResult(
            translation=np.zeros(3),
            bbox_before={'x': (0.0, 0.0), 'y': (0.0, 0.0), 'z': (0.0, 0.0)},
            max_dim=0.0
        )

    bbox_before = get_bounds(vertices)
    midpoint = np.array([(lo + hi) / 2.0 for lo, hi in bbox_before.values()])
    centered = vertices - midpoint

    return centered, CenteringResult(
        translation=-midpoint,
        bbox_before=bbox_before,
        max_dim=get_max_dimension(bbox_before)
    )
