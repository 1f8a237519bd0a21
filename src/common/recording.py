"""
Stroke recording data model.

A recording is the immutable result of one capture session: every pen-down
stroke flattened into a single time-ordered sequence of points, plus the
capture surface size the coordinates were measured in.

Validity is decided once, here. Points with non-finite coordinates are
kept (so the 2D renderer can skip the segments touching them) but tagged
invalid; samples without a numeric timestamp cannot be ordered and are
dropped.
"""

import math
import numbers
import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Tuple

import numpy as np

from .coords import check_dimensions, NormalizedPoint, NORMALIZER

logger = logging.getLogger(__name__)

DEFAULT_PRESSURE = 0.5

_X_KEYS = ("x",)
_Y_KEYS = ("y",)
_TIME_KEYS = ("timestamp", "time", "t")
_PRESSURE_KEYS = ("pressure", "p")


@dataclass(frozen=True)
class Point:
    """
    Single pressure-weighted sample in capture space.

    timestamp is monotonic milliseconds; pressure is in [0, 1].
    """
    x: float
    y: float
    timestamp: int
    pressure: float = DEFAULT_PRESSURE
    valid: bool = True


def _is_number(value: Any) -> bool:
    return isinstance(value, numbers.Real) and not isinstance(value, bool)


def _lookup(sample: Any, keys: Tuple[str, ...]) -> Any:
    """Fetch the first present key from a mapping or attribute from an object."""
    for key in keys:
        if isinstance(sample, dict):
            if key in sample:
                return sample[key]
        elif hasattr(sample, key):
            return getattr(sample, key)
    return None


def _coerce_pressure(value: Any, default: float) -> float:
    if not _is_number(value) or math.isnan(value):
        return default
    return min(max(float(value), 0.0), 1.0)


def point_from_sample(sample: Any, default_pressure: float = DEFAULT_PRESSURE) -> Optional[Point]:
    """
    Convert one raw capture sample into a Point.

    Accepts a mapping (x, y, timestamp|time|t, pressure|p), an object with
    those attributes, or an (x, y, time[, pressure]) sequence or numpy row.

    Returns:
        Point (possibly tagged invalid), or None when the timestamp is unusable
    """
    if isinstance(sample, np.ndarray):
        sample = sample.ravel()
    if isinstance(sample, (list, tuple, np.ndarray)):
        if len(sample) < 3:
            return None
        x, y, t = sample[0], sample[1], sample[2]
        p = sample[3] if len(sample) > 3 else None
    else:
        x = _lookup(sample, _X_KEYS)
        y = _lookup(sample, _Y_KEYS)
        t = _lookup(sample, _TIME_KEYS)
        p = _lookup(sample, _PRESSURE_KEYS)

    if not _is_number(t) or not math.isfinite(t):
        return None

    valid = _is_number(x) and _is_number(y) and math.isfinite(x) and math.isfinite(y)
    return Point(
        x=float(x) if _is_number(x) else float("nan"),
        y=float(y) if _is_number(y) else float("nan"),
        timestamp=int(t),
        pressure=_coerce_pressure(p, default_pressure),
        valid=valid
    )


@dataclass(frozen=True)
class StrokeRecording:
    """
    Immutable, flattened recording of one capture session.

    Stroke boundaries are intentionally discarded: consecutive points that
    straddle a pen-lift are bridged by the renderers.
    """
    points: Tuple[Point, ...]
    capture_width: float
    capture_height: float

    def __post_init__(self):
        check_dimensions(self.capture_width, self.capture_height)

    @property
    def n_points(self) -> int:
        return len(self.points)

    @property
    def is_empty(self) -> bool:
        return len(self.points) == 0

    @property
    def valid_points(self) -> List[Point]:
        """Points whose coordinates are finite."""
        return [p for p in self.points if p.valid]

    @property
    def n_invalid(self) -> int:
        return sum(1 for p in self.points if not p.valid)

    @property
    def duration_ms(self) -> int:
        if len(self.points) < 2:
            return 0
        return self.points[-1].timestamp - self.points[0].timestamp

    @property
    def capture_size(self) -> Tuple[float, float]:
        return (self.capture_width, self.capture_height)

    @property
    def aspect(self) -> float:
        return self.capture_width / self.capture_height

    def normalized(self, valid_only: bool = False) -> List[NormalizedPoint]:
        """Return every (or every valid) point in normalized space."""
        points = self.valid_points if valid_only else self.points
        return [
            NORMALIZER.to_normalized(p, self.capture_width, self.capture_height)
            for p in points
        ]

    def as_array(self, valid_only: bool = False) -> np.ndarray:
        """Return an (N, 3) array of (x, y, pressure) in capture space."""
        points = self.valid_points if valid_only else self.points
        if not points:
            return np.empty((0, 3))
        return np.array([[p.x, p.y, p.pressure] for p in points], dtype=np.float64)

    def validity_mask(self) -> np.ndarray:
        return np.array([p.valid for p in self.points], dtype=bool)

    @classmethod
    def empty(cls, capture_width: float, capture_height: float) -> "StrokeRecording":
        return cls(points=(), capture_width=capture_width, capture_height=capture_height)

    @classmethod
    def from_samples(
        cls,
        samples: Iterable[Any],
        capture_width: float,
        capture_height: float,
        default_pressure: float = DEFAULT_PRESSURE
    ) -> "StrokeRecording":
        """
        Build a recording from an ordered sequence of raw samples.

        Args:
            samples: Raw capture samples (see point_from_sample)
            capture_width: Capture viewport width, same space as the samples
            capture_height: Capture viewport height
            default_pressure: Pressure for samples that carry none

        Returns:
            StrokeRecording

        Raises:
            InvalidDimension: if the capture size is not positive
        """
        check_dimensions(capture_width, capture_height)

        points = []
        n_dropped = 0
        for sample in samples:
            point = point_from_sample(sample, default_pressure)
            if point is None:
                n_dropped += 1
                continue
            points.append(point)

        if n_dropped:
            logger.debug(f"Dropped {n_dropped} samples without a usable timestamp")

        timestamps = [p.timestamp for p in points]
        if any(b < a for a, b in zip(timestamps, timestamps[1:])):
            logger.warning("Sample timestamps go backwards; re-sorting recording by time")
            points = sorted(points, key=lambda p: p.timestamp)

        recording = cls(
            points=tuple(points),
            capture_width=float(capture_width),
            capture_height=float(capture_height)
        )
        logger.info(
            f"Recorded {recording.n_points} points ({recording.n_invalid} invalid) "
            f"on {capture_width:g}x{capture_height:g} capture surface"
        )
        return recording

    @classmethod
    def from_strokes(
        cls,
        strokes: Iterable[Any],
        capture_width: float,
        capture_height: float,
        default_pressure: float = DEFAULT_PRESSURE
    ) -> "StrokeRecording":
        """
        Flatten a list of strokes into one recording.

        Each stroke is either a list of samples or a mapping with a 'points' key.
        Empty or malformed strokes are skipped.
        """
        flat: List[Any] = []
        for stroke in strokes:
            if isinstance(stroke, dict):
                stroke = stroke.get("points")
            if not stroke:
                continue
            flat.extend(stroke)
        return cls.from_samples(flat, capture_width, capture_height, default_pressure)


def recording_summary(recording: StrokeRecording) -> Dict[str, Any]:
    """Compact description of a recording for logs and run summaries."""
    return {
        "n_points": recording.n_points,
        "n_invalid": recording.n_invalid,
        "duration_ms": recording.duration_ms,
        "capture_width": recording.capture_width,
        "capture_height": recording.capture_height
    }
