"""
Owned 2D display surface.

A CurveView2D owns exactly one raster surface and one index-policy reveal.
Resources are acquired by attach() and released by detach(); nothing is
held in module-level state.

Per frame the host calls tick(), which performs advance → render.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Union

from PIL import Image

from common.config import Config, Background, DEFAULT_CONFIG
from common.coords import check_dimensions
from common.io import SurfaceError, save_raster
from common.recording import StrokeRecording
from reveal import IndexRevealPolicy, RevealScheduler

from .render import CurveRenderer2D, CurveStyle, PathSegment, clear_surface

logger = logging.getLogger(__name__)


@dataclass
class SurfaceResources:
    """Backend handles owned by one attached view."""
    surface: Image.Image
    width: int
    height: int


class CurveView2D:
    """Live 2D preview with progressive index-based reveal."""

    def __init__(self, config: Config = DEFAULT_CONFIG, style: Optional[CurveStyle] = None):
        self.config = config
        self.style = style or CurveStyle.from_config(config)
        self.renderer = CurveRenderer2D(flatness=config.curve_flatness)
        self.scheduler = RevealScheduler(IndexRevealPolicy())
        self._resources: Optional[SurfaceResources] = None
        self._recording: Optional[StrokeRecording] = None
        self.last_segments: List[PathSegment] = []

    # ----- lifecycle -----

    @property
    def is_attached(self) -> bool:
        return self._resources is not None

    def attach(self, width: int, height: int) -> None:
        """Allocate the preview surface (opaque white)."""
        if self._resources is not None:
            self._release()
        w, h = (int(v) for v in check_dimensions(width, height))
        try:
            surface = Image.new("RGBA", (w, h), Background.WHITE.rgba)
        except (ValueError, MemoryError) as e:
            raise SurfaceError(f"Could not allocate {w}x{h} surface: {e}") from e
        self._resources = SurfaceResources(surface=surface, width=w, height=h)
        logger.debug(f"Attached 2D surface {w}x{h}")

    def detach(self) -> None:
        """Cancel in-flight reveal work and release the surface."""
        self.scheduler.cancel()
        self._release()
        logger.debug("Detached 2D surface")

    def resize(self, width: int, height: int) -> None:
        """Recreate the surface at a new size and redraw the current prefix."""
        self._require_attached()
        self.attach(width, height)
        self._render()

    def _release(self) -> None:
        if self._resources is not None:
            self._resources.surface.close()
            self._resources = None

    def _require_attached(self) -> SurfaceResources:
        if self._resources is None:
            raise SurfaceError("2D view is not attached to a surface")
        return self._resources

    # ----- playback -----

    @property
    def recording(self) -> Optional[StrokeRecording]:
        return self._recording

    @property
    def revealed_count(self) -> int:
        return self.scheduler.policy.revealed_count

    def set_recording(self, recording: StrokeRecording) -> bool:
        """
        Replace the displayed recording and restart the reveal.

        Returns:
            True if a reveal task was scheduled
        """
        resources = self._require_attached()
        self.scheduler.cancel()
        self._recording = recording
        self.last_segments = []
        clear_surface(resources.surface, Background.WHITE)
        return self.scheduler.start(recording)

    def tick(self) -> bool:
        """
        One frame: advance the reveal, then redraw.

        Returns:
            True if a new frame was drawn
        """
        self._require_attached()
        if not self.scheduler.advance():
            return False
        self._render()
        return True

    def play(self, max_frames: Optional[int] = None) -> int:
        """Tick until the reveal completes; returns frames drawn."""
        n = 0
        while self.scheduler.is_active:
            if max_frames is not None and n >= max_frames:
                break
            self.tick()
            n += 1
        return n

    def _render(self) -> None:
        resources = self._require_attached()
        if self._recording is None:
            return
        self.last_segments = self.renderer.render(
            resources.surface,
            self._recording,
            self.revealed_count,
            self.style,
            Background.WHITE
        )

    # ----- output -----

    def snapshot(self) -> Image.Image:
        """Copy of the live surface."""
        return self._require_attached().surface.copy()

    def export(
        self,
        width: Optional[int] = None,
        height: Optional[int] = None,
        transparent: bool = True
    ) -> Optional[Image.Image]:
        """
        Render the revealed prefix into a standalone raster.

        Defaults to the live surface size. Failures are logged and reported
        as None; the view stays usable.
        """
        try:
            resources = self._require_attached()
            if self._recording is None or self._recording.is_empty:
                raise SurfaceError("Nothing to export")
            background = Background.TRANSPARENT if transparent else Background.WHITE
            return self.renderer.render_export(
                self._recording,
                resources.width if width is None else width,
                resources.height if height is None else height,
                self.style,
                revealed_count=self.revealed_count,
                background=background
            )
        except (SurfaceError, ValueError, MemoryError, OSError) as e:
            logger.error(f"2D export failed: {e}")
            return None

    def save(self, path: Union[str, Path], **kwargs) -> Optional[Path]:
        """Export and write a PNG; returns None if anything failed."""
        image = self.export(**kwargs)
        if image is None:
            return None
        try:
            return save_raster(image, path)
        except (OSError, ValueError) as e:
            logger.error(f"Could not write raster {path}: {e}")
            return None
