"""
Signature Replay - Stroke-to-geometry pipeline.

One recorded stroke, three derived artifacts:
- 2D: progressively revealed midpoint-smoothed re-rendering (curve_2d)
- Raster: standalone export at any size, transparent by default (curve_2d)
- 3D: spline ribbon with arc-length "drawing-in" reveal (ribbon_3d)

Usage:
    python src/replay.py --samples data/signature.csv -W 400 -H 200
"""

__version__ = "1.0.0"
