"""
Tests for the 3D ribbon builder and its owned scene view.

Tests cover:
- Point mapping: aspect, y flip, pressure depth, bounding-box centering
- Spline resampling: sample count, interpolation, arc length
- Ribbon mesh: strip topology, width, dash offset, length clipping
- View lifecycle: ribbon replacement, reveal ticks, export, detach
"""

import json
import logging
import math
import pytest
import numpy as np
from pathlib import Path
import sys

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from common.config import Config, SplineMethod, RibbonMetadata
from common.coords import CoordinateNormalizer
from common.io import SurfaceError
from common.mesh_ops import cumulative_arc_length
from common.recording import StrokeRecording
from ribbon_3d import (
    RibbonGeometryBuilder3D,
    RibbonView3D,
    map_points_3d,
    catmull_rom_resample,
    cubic_resample,
)
from ribbon_3d.view import RIBBON_NODE


# ============== Fixtures ==============

@pytest.fixture
def loop_recording():
    """Six points on a 400x200 surface with full pressure range."""
    return StrokeRecording.from_samples(
        [
            (0, 100, 0, 0.0),
            (80, 20, 16, 0.2),
            (200, 0, 32, 0.4),
            (300, 120, 48, 0.6),
            (360, 200, 64, 0.8),
            (400, 150, 80, 1.0),
        ],
        400, 200
    )


@pytest.fixture
def builder():
    return RibbonGeometryBuilder3D(Config())


@pytest.fixture
def curve(builder, loop_recording):
    return builder.build(loop_recording)


# ============== Point Mapping Tests ==============

class TestMapPoints:
    """Normalized coordinates → model space."""

    def test_centered_on_bounds(self, loop_recording):
        points = map_points_3d(loop_recording)
        midpoint = (points.min(axis=0) + points.max(axis=0)) / 2
        np.testing.assert_allclose(midpoint, 0.0, atol=1e-9)

    def test_extents(self, loop_recording):
        points = map_points_3d(loop_recording, model_scale=150.0, depth=50.0)
        extents = points.max(axis=0) - points.min(axis=0)
        # x spans the full width at aspect 2, y the full height, z the pressure range
        np.testing.assert_allclose(extents, [300.0, 150.0, 50.0])

    def test_y_flipped(self, loop_recording):
        points = map_points_3d(loop_recording)
        # Capture y=0 is the top of the surface, so it maps to the highest model y
        assert points[2, 1] == pytest.approx(points[:, 1].max())

    def test_scales_through_shared_normalizer(self, loop_recording):
        class CountingNormalizer(CoordinateNormalizer):
            def __init__(self):
                self.target_calls = []

            def target_array(self, uv, target_width, target_height):
                self.target_calls.append((target_width, target_height))
                return super().target_array(uv, target_width, target_height)

        normalizer = CountingNormalizer()
        points = map_points_3d(loop_recording, model_scale=150.0, normalizer=normalizer)

        # Model space is a 300x150 target at the capture aspect of 2
        assert normalizer.target_calls == [(300.0, 150.0)]
        np.testing.assert_allclose(points, map_points_3d(loop_recording, model_scale=150.0))

    def test_builder_uses_its_normalizer(self, loop_recording):
        class CountingNormalizer(CoordinateNormalizer):
            calls = 0

            def target_array(self, uv, target_width, target_height):
                CountingNormalizer.calls += 1
                return super().target_array(uv, target_width, target_height)

        RibbonGeometryBuilder3D(Config(), normalizer=CountingNormalizer()).build(loop_recording)
        assert CountingNormalizer.calls == 1

    def test_invalid_points_skipped(self):
        rec = StrokeRecording.from_samples(
            [(0, 0, 0), (math.nan, 5, 1), (10, 10, 2)], 10, 10
        )
        assert len(map_points_3d(rec)) == 2

    def test_empty(self):
        assert map_points_3d(StrokeRecording.empty(10, 10)).shape == (0, 3)


# ============== Resampling Tests ==============

class TestResample:
    """Interpolating splines through the mapped points."""

    @pytest.mark.parametrize("k", [1, 3, 10])
    def test_sample_count(self, loop_recording, k):
        builder = RibbonGeometryBuilder3D(Config(resample_multiplier=k))
        curve = builder.build(loop_recording)
        assert curve.n_samples == (loop_recording.n_points - 1) * k + 1
        assert curve.n_points == loop_recording.n_points
        assert curve.multiplier == k

    def test_catmull_rom_passes_through_points(self, loop_recording):
        points = map_points_3d(loop_recording)
        centerline = catmull_rom_resample(points, 10)
        np.testing.assert_allclose(centerline[::10], points, atol=1e-9)

    def test_cubic_passes_through_points(self, loop_recording):
        points = map_points_3d(loop_recording)
        centerline = cubic_resample(points, 4)
        assert len(centerline) == (len(points) - 1) * 4 + 1
        np.testing.assert_allclose(centerline[::4], points, atol=1e-6)

    def test_cubic_method_selected(self, loop_recording):
        builder = RibbonGeometryBuilder3D(Config(spline_method=SplineMethod.CUBIC))
        curve = builder.build(loop_recording)
        assert curve.n_samples == 51
        assert builder.generation_params()["spline_method"] == "cubic"

    def test_coincident_points(self):
        rec = StrokeRecording.from_samples(
            [(5, 5, 0), (5, 5, 1), (5, 5, 2), (6, 5, 3)], 10, 10
        )
        curve = RibbonGeometryBuilder3D(Config(resample_multiplier=4)).build(rec)
        assert np.all(np.isfinite(curve.centerline))

    def test_two_points(self):
        rec = StrokeRecording.from_samples([(0, 0, 0), (10, 10, 1)], 10, 10)
        curve = RibbonGeometryBuilder3D(Config(resample_multiplier=5)).build(rec)
        assert curve.n_samples == 6

    def test_arc_length(self, curve):
        cum = curve.cumulative_length
        assert cum[0] == 0.0
        assert np.all(np.diff(cum) >= 0)
        assert curve.total_length == pytest.approx(cum[-1])
        np.testing.assert_allclose(cum, cumulative_arc_length(curve.centerline))

    def test_read_only(self, curve):
        with pytest.raises(ValueError):
            curve.centerline[0, 0] = 1.0
        with pytest.raises(ValueError):
            curve.cumulative_length[0] = 1.0

    @pytest.mark.parametrize("n", [0, 1])
    def test_too_few_points(self, builder, n):
        rec = StrokeRecording.from_samples([(1, 1, i) for i in range(n)], 10, 10)
        assert builder.build(rec) is None
        assert builder.to_ribbon(None) is None

    def test_only_one_valid_point(self, builder):
        rec = StrokeRecording.from_samples([(1, 1, 0), (math.inf, 2, 1)], 10, 10)
        assert builder.build(rec) is None

    def test_invalid_multiplier(self):
        with pytest.raises(ValueError):
            RibbonGeometryBuilder3D(Config(resample_multiplier=0))


# ============== Ribbon Mesh Tests ==============

class TestRibbon:
    """Flat strip with length-based reveal."""

    def test_topology(self, builder, curve):
        ribbon = builder.to_ribbon(curve)
        m = curve.n_samples
        assert len(ribbon.mesh.vertices) == 2 * m
        assert len(ribbon.mesh.faces) == 2 * (m - 1)
        assert len(ribbon.vertex_arc_length) == 2 * m
        assert ribbon.vertex_arc_length[-1] == pytest.approx(curve.total_length)

    def test_vertex_colors(self, builder, curve):
        ribbon = builder.to_ribbon(curve, color="#ff0000")
        colors = ribbon.mesh.visual.vertex_colors
        assert tuple(colors[0]) == (255, 0, 0, 255)

    def test_constant_width(self, builder, curve):
        ribbon = builder.to_ribbon(curve)
        widths = np.linalg.norm(ribbon.left - ribbon.right, axis=1)
        np.testing.assert_allclose(widths, Config().ribbon_width, rtol=1e-6)

    def test_dash_parameters(self, builder, curve):
        ribbon = builder.to_ribbon(curve)
        assert ribbon.revealed_fraction == 1.0
        assert ribbon.dash_array == pytest.approx(curve.total_length)
        assert ribbon.dash_offset == pytest.approx(curve.total_length)
        assert ribbon.visible_length == pytest.approx(0.0)

        ribbon.set_revealed_fraction(0.25)
        assert ribbon.visible_length == pytest.approx(0.75 * curve.total_length)

    @pytest.mark.parametrize("fraction,expected", [(-0.5, 0.0), (1.5, 1.0)])
    def test_fraction_clamped(self, builder, curve, fraction, expected):
        ribbon = builder.to_ribbon(curve)
        ribbon.set_revealed_fraction(fraction)
        assert ribbon.revealed_fraction == expected

    @pytest.mark.parametrize("fraction", [math.nan, math.inf, -math.inf])
    def test_non_finite_fraction_rejected(self, builder, curve, fraction):
        ribbon = builder.to_ribbon(curve, revealed_fraction=0.5)
        with pytest.raises(ValueError):
            ribbon.set_revealed_fraction(fraction)
        assert ribbon.revealed_fraction == 0.5
        assert len(ribbon.visible_mesh().faces) > 0

    def test_non_finite_initial_fraction_rejected(self, builder, curve):
        with pytest.raises(ValueError):
            builder.to_ribbon(curve, revealed_fraction=math.nan)

    def test_visible_mesh_hidden(self, builder, curve):
        ribbon = builder.to_ribbon(curve, revealed_fraction=1.0)
        assert len(ribbon.visible_mesh().vertices) == 0

    def test_visible_mesh_full(self, builder, curve):
        ribbon = builder.to_ribbon(curve, revealed_fraction=0.0)
        assert len(ribbon.visible_mesh().faces) == len(ribbon.mesh.faces)

    def test_visible_mesh_half(self, builder, curve):
        ribbon = builder.to_ribbon(curve, revealed_fraction=0.5)
        visible = ribbon.visible_mesh()
        centerline = (visible.vertices[0::2] + visible.vertices[1::2]) / 2
        assert cumulative_arc_length(centerline)[-1] == pytest.approx(
            0.5 * curve.total_length, rel=1e-6
        )

    def test_dispose(self, builder, curve):
        ribbon = builder.to_ribbon(curve)
        ribbon.dispose()
        assert ribbon.is_disposed
        assert len(ribbon.visible_mesh().vertices) == 0

    def test_metadata(self, builder, curve):
        ribbon = builder.to_ribbon(curve, revealed_fraction=0.5)
        meta = ribbon.metadata(curve, builder.generation_params())
        assert meta.n_samples == curve.n_samples
        assert meta.n_triangles == 2 * (curve.n_samples - 1)
        assert meta.dash_offset == pytest.approx(0.5 * curve.total_length)
        assert meta.generation_params["resample_multiplier"] == 10
        assert RibbonMetadata.from_dict(meta.to_dict()) == meta


# ============== View Tests ==============

class TestRibbonView3D:
    """Owned scene + arc-length reveal."""

    @pytest.fixture
    def view(self):
        v = RibbonView3D(Config(reveal_step=0.1))
        v.attach(320, 240)
        yield v
        v.detach()

    def test_ribbon_added_to_scene(self, view, loop_recording):
        assert view.set_recording(loop_recording) is True
        assert list(view.scene.geometry.keys()) == [RIBBON_NODE]
        assert view.revealed_fraction == 1.0

    def test_tick_reveals(self, view, loop_recording):
        view.set_recording(loop_recording)
        assert view.tick() is True
        assert view.revealed_fraction == pytest.approx(0.9)
        assert view.ribbon.revealed_fraction == pytest.approx(0.9)

    def test_play_to_completion(self, view, loop_recording):
        view.set_recording(loop_recording)
        assert view.play() == 10
        assert view.revealed_fraction == 0.0
        assert view.ribbon.visible_length == pytest.approx(view.ribbon.total_length)
        assert view.tick() is False

    def test_default_step_frames(self, loop_recording):
        view = RibbonView3D()
        view.attach(100, 100)
        view.set_recording(loop_recording)
        assert view.play() == 334
        view.detach()

    def test_new_recording_replaces_ribbon(self, view, loop_recording):
        view.set_recording(loop_recording)
        view.play(max_frames=4)
        old = view.ribbon

        other = StrokeRecording.from_samples([(0, 0, 0), (50, 50, 1), (100, 0, 2)], 100, 100)
        assert view.set_recording(other) is True
        assert old.is_disposed
        assert view.ribbon is not old
        assert view.revealed_fraction == 1.0
        assert len(view.scene.geometry) == 1

    def test_single_point_builds_nothing(self, view, loop_recording):
        view.set_recording(loop_recording)
        view.play(max_frames=3)

        assert view.set_recording(StrokeRecording.from_samples([(1, 1, 0)], 10, 10)) is False
        assert view.ribbon is None
        assert view.curve is None
        assert len(view.scene.geometry) == 0
        assert view.revealed_fraction == 1.0
        assert view.tick() is False

    def test_resize_keeps_ribbon(self, view, loop_recording):
        view.set_recording(loop_recording)
        view.play(max_frames=2)
        view.resize(640, 480)
        assert RIBBON_NODE in view.scene.geometry
        assert view.revealed_fraction == pytest.approx(0.8)

    def test_detach_releases(self, loop_recording):
        view = RibbonView3D()
        view.attach(100, 100)
        view.set_recording(loop_recording)
        ribbon = view.ribbon
        view.detach()

        assert not view.is_attached
        assert ribbon.is_disposed
        assert view.ribbon is None
        assert not view.scheduler.is_active
        with pytest.raises(SurfaceError):
            view.scene
        with pytest.raises(SurfaceError):
            view.tick()

    def test_stats(self, view, loop_recording):
        assert view.stats()["n_vertices"] == 0
        view.set_recording(loop_recording)
        stats = view.stats()
        assert stats["n_faces"] == 2 * (view.curve.n_samples - 1)
        assert stats["dash_offset"] == pytest.approx(stats["total_length"])

    def test_export(self, view, loop_recording, tmp_path):
        view.set_recording(loop_recording)
        view.play()
        path = view.export(tmp_path / "ribbon.glb")

        assert path.exists()
        with open(tmp_path / "ribbon.json") as f:
            meta = json.load(f)
        assert meta["n_samples"] == view.curve.n_samples
        assert meta["revealed_fraction"] == 0.0

    def test_export_visible_only_hidden(self, view, loop_recording, tmp_path, caplog):
        view.set_recording(loop_recording)
        with caplog.at_level(logging.ERROR):
            assert view.export(tmp_path / "hidden.glb", visible_only=True) is None
        assert not (tmp_path / "hidden.glb").exists()

    def test_export_without_ribbon(self, view, tmp_path, caplog):
        with caplog.at_level(logging.ERROR):
            assert view.export(tmp_path / "none.glb") is None
        assert "export failed" in caplog.text

    def test_set_recording_detached(self, loop_recording):
        with pytest.raises(SurfaceError):
            RibbonView3D().set_recording(loop_recording)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
