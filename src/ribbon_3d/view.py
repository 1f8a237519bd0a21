"""
Owned 3D display surface.

A RibbonView3D owns one trimesh.Scene (the 3D scene consumer), the ribbon
node inside it and one arc-length reveal. attach() acquires, detach()
releases; nothing lives in module-level references.

Order on a new recording (NON-NEGOTIABLE):
1. cancel the in-flight reveal
2. remove and dispose the previous ribbon
3. build the new curve and ribbon
4. start the new reveal
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union, Dict, Any

import trimesh

from common.config import Config, DEFAULT_CONFIG
from common.coords import check_dimensions
from common.io import SurfaceError, save_mesh
from common.mesh_ops import compute_mesh_stats
from common.recording import StrokeRecording
from reveal import ArcLengthRevealPolicy, RevealScheduler

from .build import RibbonGeometryBuilder3D, SampledCurve3D, Ribbon

logger = logging.getLogger(__name__)

RIBBON_NODE = "ribbon"


@dataclass
class SceneResources:
    """Backend handles owned by one attached view."""
    scene: trimesh.Scene
    width: int
    height: int
    node_name: Optional[str] = None


class RibbonView3D:
    """3D ribbon display with length-based "drawing-in" reveal."""

    def __init__(self, config: Config = DEFAULT_CONFIG):
        self.config = config
        self.builder = RibbonGeometryBuilder3D(config)
        self.scheduler = RevealScheduler(ArcLengthRevealPolicy(config.reveal_step))
        self._resources: Optional[SceneResources] = None
        self._recording: Optional[StrokeRecording] = None
        self.curve: Optional[SampledCurve3D] = None
        self.ribbon: Optional[Ribbon] = None

    # ----- lifecycle -----

    @property
    def is_attached(self) -> bool:
        return self._resources is not None

    @property
    def scene(self) -> trimesh.Scene:
        return self._require_attached().scene

    def attach(self, width: int, height: int) -> None:
        """Create the scene for a viewport of the given size."""
        if self._resources is not None:
            self._release_scene()
        w, h = (int(v) for v in check_dimensions(width, height))
        self._resources = SceneResources(scene=trimesh.Scene(), width=w, height=h)
        if self.ribbon is not None:
            self._add_ribbon_node()
        logger.debug(f"Attached 3D scene {w}x{h}")

    def detach(self) -> None:
        """Cancel the reveal and release scene, geometry and materials."""
        self.scheduler.cancel()
        self._dispose_ribbon()
        self._release_scene()
        self.curve = None
        logger.debug("Detached 3D scene")

    def resize(self, width: int, height: int) -> None:
        """Release and re-acquire the scene at a new viewport size."""
        self._require_attached()
        self.attach(width, height)

    def _release_scene(self) -> None:
        if self._resources is None:
            return
        if self._resources.node_name is not None:
            self._resources.scene.delete_geometry(self._resources.node_name)
        self._resources = None

    def _require_attached(self) -> SceneResources:
        if self._resources is None:
            raise SurfaceError("3D view is not attached to a scene")
        return self._resources

    def _add_ribbon_node(self) -> None:
        resources = self._require_attached()
        resources.node_name = resources.scene.add_geometry(
            self.ribbon.mesh, geom_name=RIBBON_NODE, node_name=RIBBON_NODE
        )

    def _dispose_ribbon(self) -> None:
        if self._resources is not None and self._resources.node_name is not None:
            self._resources.scene.delete_geometry(self._resources.node_name)
            self._resources.node_name = None
        if self.ribbon is not None:
            self.ribbon.dispose()
            self.ribbon = None

    # ----- playback -----

    @property
    def recording(self) -> Optional[StrokeRecording]:
        return self._recording

    @property
    def revealed_fraction(self) -> float:
        return self.scheduler.policy.revealed_fraction

    def set_recording(self, recording: StrokeRecording) -> bool:
        """
        Replace the displayed recording and restart the reveal.

        Returns:
            True if a ribbon was built and a reveal task scheduled
        """
        self._require_attached()
        self.scheduler.cancel()
        self._dispose_ribbon()

        self._recording = recording
        self.curve = self.builder.build(recording)
        if self.curve is not None:
            self.ribbon = self.builder.to_ribbon(self.curve, revealed_fraction=1.0)
            self._add_ribbon_node()

        # Resets the fraction to 1.0; schedules nothing without geometry
        return self.scheduler.start(recording)

    def tick(self) -> bool:
        """
        One frame: advance the reveal and push the new dash offset.

        Returns:
            True if the reveal parameter changed
        """
        self._require_attached()
        if not self.scheduler.advance():
            return False
        if self.ribbon is not None:
            self.ribbon.set_revealed_fraction(self.revealed_fraction)
        return True

    def play(self, max_frames: Optional[int] = None) -> int:
        """Tick until the reveal completes; returns frames advanced."""
        n = 0
        while self.scheduler.is_active:
            if max_frames is not None and n >= max_frames:
                break
            self.tick()
            n += 1
        return n

    # ----- output -----

    def stats(self) -> Dict[str, Any]:
        if self.ribbon is None or self.ribbon.mesh is None:
            return compute_mesh_stats(trimesh.Trimesh())
        stats = compute_mesh_stats(self.ribbon.mesh)
        stats["total_length"] = self.ribbon.total_length
        stats["dash_offset"] = self.ribbon.dash_offset
        return stats

    def export(self, path: Union[str, Path], visible_only: bool = False) -> Optional[Path]:
        """
        Write the ribbon as GLB with a JSON metadata sidecar.

        Failures are logged and reported as None; the view stays usable.
        """
        try:
            self._require_attached()
            if self.ribbon is None or self.curve is None:
                raise SurfaceError("No ribbon to export")
            mesh = self.ribbon.visible_mesh() if visible_only else self.ribbon.mesh
            if len(mesh.faces) == 0:
                raise SurfaceError("Ribbon has no visible geometry")
            metadata = self.ribbon.metadata(self.curve, self.builder.generation_params())
            return save_mesh(mesh, path, metadata)
        except (SurfaceError, ValueError, OSError, MemoryError) as e:
            logger.error(f"3D export failed: {e}")
            return None
