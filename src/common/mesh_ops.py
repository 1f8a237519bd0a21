"""
Mesh operation utilities.

Common ribbon operations: arc length, strip construction, length clipping,
statistics.
"""

import numpy as np
from typing import Dict, Any, Tuple
import logging

import trimesh

logger = logging.getLogger(__name__)


def cumulative_arc_length(points: np.ndarray) -> np.ndarray:
    """
    Cumulative Euclidean distance along a polyline.

    Args:
        points: Nx3 array of points

    Returns:
        (N,) non-decreasing array starting at 0
    """
    if len(points) == 0:
        return np.zeros(0)
    segment_lengths = np.linalg.norm(np.diff(points, axis=0), axis=1)
    return np.concatenate([[0.0], np.cumsum(segment_lengths)])


def compute_tangents(centerline: np.ndarray) -> np.ndarray:
    """
    Unit tangents along a centerline.

    Central differences in the interior, one-sided at the ends. Zero-length
    tangents (coincident samples) inherit the previous usable tangent.
    """
    n_points = len(centerline)
    tangents = np.zeros_like(centerline)
    last = np.array([1.0, 0.0, 0.0])

    for i in range(n_points):
        if i == 0:
            tangent = centerline[1] - centerline[0]
        elif i == n_points - 1:
            tangent = centerline[-1] - centerline[-2]
        else:
            tangent = centerline[i + 1] - centerline[i - 1]

        norm = np.linalg.norm(tangent)
        if norm < 1e-10:
            tangent = last
        else:
            tangent = tangent / norm
            last = tangent
        tangents[i] = tangent

    return tangents


def ribbon_rails(
    centerline: np.ndarray,
    width: float,
    normal: Tuple[float, float, float] = (0.0, 0.0, 1.0)
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Left and right edges of a flat ribbon facing `normal`.

    Args:
        centerline: Nx3 array of points (N >= 2)
        width: Full ribbon width
        normal: Preferred facing direction (the viewing axis)

    Returns:
        Tuple of (left, right) Nx3 arrays
    """
    normal = np.asarray(normal, dtype=np.float64)
    tangents = compute_tangents(centerline)

    sides = np.cross(normal, tangents)
    norms = np.linalg.norm(sides, axis=1)

    # Tangent parallel to the facing axis: fall back to the x axis
    degenerate = norms < 1e-10
    if np.any(degenerate):
        sides[degenerate] = np.cross(tangents[degenerate], [1.0, 0.0, 0.0])
        norms[degenerate] = np.linalg.norm(sides[degenerate], axis=1)

    sides = sides / (norms[:, None] + 1e-12)
    half = 0.5 * width
    return centerline + half * sides, centerline - half * sides


def strip_mesh(left: np.ndarray, right: np.ndarray) -> trimesh.Trimesh:
    """
    Triangle strip between two rails.

    Vertex 2i is left[i], vertex 2i+1 is right[i]; two faces per segment.
    """
    n_points = len(left)
    if n_points < 2:
        return trimesh.Trimesh()

    vertices = np.empty((2 * n_points, 3))
    vertices[0::2] = left
    vertices[1::2] = right

    faces = []
    for i in range(n_points - 1):
        v0 = 2 * i
        v1 = 2 * i + 1
        v2 = 2 * (i + 1)
        v3 = 2 * (i + 1) + 1

        faces.append([v0, v1, v2])
        faces.append([v1, v3, v2])

    # process=False keeps vertex order aligned with the arc-length array
    return trimesh.Trimesh(vertices=vertices, faces=np.array(faces), process=False)


def clip_rails(
    left: np.ndarray,
    right: np.ndarray,
    cumulative: np.ndarray,
    visible_length: float
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Cut a pair of rails at an arc length.

    The sample straddling visible_length is interpolated so the clipped
    strip ends exactly at the requested length.

    Returns:
        (left, right) rails covering [0, visible_length]; empty when
        visible_length <= 0
    """
    if visible_length <= 0 or len(cumulative) < 2:
        return left[:0], right[:0]
    if visible_length >= cumulative[-1]:
        return left, right

    end = int(np.searchsorted(cumulative, visible_length, side='right'))
    seg_start = cumulative[end - 1]
    seg_len = cumulative[end] - seg_start
    t = (visible_length - seg_start) / seg_len if seg_len > 0 else 0.0

    cut_left = left[end - 1] + t * (left[end] - left[end - 1])
    cut_right = right[end - 1] + t * (right[end] - right[end - 1])

    return (
        np.vstack([left[:end], cut_left]),
        np.vstack([right[:end], cut_right])
    )


def compute_mesh_stats(mesh: trimesh.Trimesh) -> Dict[str, Any]:
    """
    Compute ribbon mesh statistics.

    Args:
        mesh: Trimesh mesh object

    Returns:
        Dictionary of mesh statistics
    """
    if len(mesh.vertices) == 0:
        return {
            "n_vertices": 0,
            "n_faces": 0,
            "bounds": None,
            "extents": [0.0, 0.0, 0.0],
            "max_extent": 0.0,
            "surface_area": 0.0
        }

    bounds = mesh.bounds
    extents = mesh.extents

    return {
        "n_vertices": len(mesh.vertices),
        "n_faces": len(mesh.faces),
        "bounds": {
            "min": bounds[0].tolist(),
            "max": bounds[1].tolist()
        },
        "extents": extents.tolist(),
        "max_extent": float(max(extents)),
        "surface_area": float(mesh.area)
    }
