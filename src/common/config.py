"""
Configuration and constants for stroke replay.

Scale Model (NON-NEGOTIABLE):
- Capture pixels → normalized [0,1] → target surface pixels / model units
- Every consumer scales through common.coords, never on its own
- Line widths scale with target width relative to capture width
"""

from enum import Enum
from dataclasses import dataclass, field
from typing import Dict, Any, Tuple
import json
from pathlib import Path

from PIL import ImageColor


class SplineMethod(Enum):
    """
    Centerline interpolation used by the 3D ribbon builder.

    CATMULL_ROM (default): centripetal Catmull-Rom, local and overshoot-free
    CUBIC: natural cubic spline over the point index (scipy)
    """
    CATMULL_ROM = "catmull_rom"
    CUBIC = "cubic"


class Background(Enum):
    """
    Fill applied before every 2D render.

    WHITE: opaque white, used by the live preview
    TRANSPARENT: fully transparent, used by raster export
    """
    WHITE = "white"
    TRANSPARENT = "transparent"

    @property
    def rgba(self) -> Tuple[int, int, int, int]:
        if self is Background.WHITE:
            return (255, 255, 255, 255)
        return (0, 0, 0, 0)


def parse_color(value: str) -> Tuple[int, int, int]:
    """
    Parse a CSS-like colour string into an RGB tuple.

    Accepts '#rrggbb', 'rgb(r, g, b)' and named colours.

    Raises:
        ValueError: if the string is not a recognised colour
    """
    rgb = ImageColor.getrgb(value)
    return tuple(rgb[:3])


@dataclass
class RibbonMetadata:
    """
    Metadata sidecar written next to every exported ribbon.

    dash_offset and total_length are in model units; a renderer draws
    the length prefix [0, total_length - dash_offset].
    """
    n_points: int
    n_samples: int
    n_vertices: int
    n_triangles: int
    total_length: float
    dash_offset: float
    revealed_fraction: float
    color: str
    generation_params: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "n_points": self.n_points,
            "n_samples": self.n_samples,
            "n_vertices": self.n_vertices,
            "n_triangles": self.n_triangles,
            "total_length": self.total_length,
            "dash_offset": self.dash_offset,
            "revealed_fraction": self.revealed_fraction,
            "color": self.color,
            "generation_params": self.generation_params
        }

    def save(self, path: Path) -> None:
        """Save metadata to JSON file."""
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RibbonMetadata":
        return cls(**data)


@dataclass
class Config:
    """
    Global configuration for stroke replay.

    Defaults reproduce the reference behaviour: 0.003 dash step per frame,
    10 centerline samples per input segment, 50 units of pressure depth.
    """

    # Reveal
    reveal_step: float = 0.003

    # 3D ribbon
    resample_multiplier: int = 10
    depth: float = 50.0
    model_scale: float = 150.0
    ribbon_width: float = 1.2
    ribbon_color: str = "#2563eb"
    spline_method: SplineMethod = SplineMethod.CATMULL_ROM

    # 2D curve
    pen_color: str = "rgb(37, 99, 235)"
    base_line_width: float = 2.0
    curve_flatness: int = 8  # samples per quadratic segment on the raster
    export_background: Background = Background.TRANSPARENT
    gif_frame_ms: int = 20  # per-frame delay of the animated reveal

    # Ingestion
    default_pressure: float = 0.5

    output_dir: Path = field(default_factory=lambda: Path("outputs"))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "reveal_step": self.reveal_step,
            "resample_multiplier": self.resample_multiplier,
            "depth": self.depth,
            "model_scale": self.model_scale,
            "ribbon_width": self.ribbon_width,
            "ribbon_color": self.ribbon_color,
            "spline_method": self.spline_method.value,
            "pen_color": self.pen_color,
            "base_line_width": self.base_line_width,
            "curve_flatness": self.curve_flatness,
            "export_background": self.export_background.value,
            "gif_frame_ms": self.gif_frame_ms,
            "default_pressure": self.default_pressure
        }

    @classmethod
    def from_json(cls, path: Path) -> "Config":
        """Load config from JSON file."""
        with open(path) as f:
            data = json.load(f)
        data["spline_method"] = SplineMethod(data.get("spline_method", "catmull_rom"))
        data["export_background"] = Background(data.get("export_background", "transparent"))
        data["output_dir"] = Path(data.get("output_dir", "outputs"))
        return cls(**data)

    def save(self, path: Path) -> None:
        """Save config to JSON file."""
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)


# Global default config
DEFAULT_CONFIG = Config()
