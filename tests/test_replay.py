"""
Tests for the replay orchestrator.

Tests cover:
- End-to-end run from a sample file to raster and mesh artifacts
- Animated GIF of the 2D reveal
- Empty and degenerate recordings
- Command-line size parsing
"""

import argparse
import json
import pytest
import numpy as np
import pandas as pd
from pathlib import Path
from PIL import Image
import sys

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from common.config import Config, Background, SplineMethod, parse_color
from common.coords import InvalidDimension
from replay import replay, parse_size


# ============== Fixtures ==============

@pytest.fixture
def samples_csv(tmp_path):
    n = 12
    t = np.linspace(0, 2 * np.pi, n)
    df = pd.DataFrame({
        "stroke": [0] * 6 + [1] * 6,
        "x": 200 + 150 * np.cos(t),
        "y": 100 + 80 * np.sin(t),
        "time": np.arange(n) * 16,
        "pressure": np.linspace(0.1, 0.9, n),
    })
    path = tmp_path / "signature.csv"
    df.to_csv(path, index=False)
    return path


@pytest.fixture
def fast_config():
    return Config(reveal_step=0.25, resample_multiplier=4)


# ============== Replay Tests ==============

class TestReplay:
    """Full pipeline on a small recording."""

    def test_writes_artifacts(self, samples_csv, fast_config, tmp_path):
        out = tmp_path / "out"
        summary = replay(samples_csv, (400, 200), fast_config, out, target_size=(200, 100))

        assert summary["errors"] == []
        assert summary["recording"]["n_points"] == 12
        assert summary["2d"]["frames"] == 12
        assert summary["2d"]["segments"] == 11
        assert summary["3d"]["frames"] == 4

        with Image.open(out / "preview.png") as img:
            assert img.size == (200, 100)
        with Image.open(out / "export.png") as img:
            assert img.getpixel((0, 0))[3] == 0
        assert (out / "ribbon.glb").exists()
        assert (out / "ribbon.json").exists()
        # Summary must be serialisable as written by the CLI
        json.dumps(summary)

    def test_frames_written(self, samples_csv, fast_config, tmp_path):
        out = tmp_path / "out"
        replay(samples_csv, (400, 200), fast_config, out, save_frames=True)
        assert len(list((out / "frames").glob("frame_*.png"))) == 12

    def test_animated_reveal(self, samples_csv, fast_config, tmp_path):
        out = tmp_path / "out"
        summary = replay(samples_csv, (400, 200), fast_config, out, save_gif=True)

        assert summary["2d"]["animation"] == str(out / "reveal.gif")
        with Image.open(out / "reveal.gif") as img:
            assert img.format == "GIF"
            assert img.is_animated
            assert img.size == (400, 200)
            assert img.info["duration"] == fast_config.gif_frame_ms

    def test_no_animation_by_default(self, samples_csv, fast_config, tmp_path):
        out = tmp_path / "out"
        summary = replay(samples_csv, (400, 200), fast_config, out)
        assert summary["2d"]["animation"] is None
        assert not (out / "reveal.gif").exists()

    def test_white_export(self, samples_csv, tmp_path):
        config = Config(reveal_step=0.5, export_background=Background.WHITE)
        out = tmp_path / "out"
        replay(samples_csv, (400, 200), config, out)
        with Image.open(out / "export.png") as img:
            assert img.getpixel((0, 0)) == (255, 255, 255, 255)

    def test_no_usable_points(self, tmp_path, fast_config):
        path = tmp_path / "bad.csv"
        path.write_text("x,y,time\n1,2,never\n3,4,\n")
        summary = replay(path, (10, 10), fast_config, tmp_path / "out")
        assert summary["recording"]["n_points"] == 0
        assert summary["errors"]
        assert "2d" not in summary

    def test_single_point_skips_ribbon(self, tmp_path, fast_config):
        path = tmp_path / "dot.csv"
        path.write_text("x,y,time\n5,5,0\n")
        out = tmp_path / "out"
        summary = replay(path, (10, 10), fast_config, out)
        assert summary["errors"] == []
        assert summary["3d"]["ribbon"] is None
        assert not (out / "ribbon.glb").exists()

    def test_invalid_capture_size(self, samples_csv, fast_config, tmp_path):
        with pytest.raises(InvalidDimension):
            replay(samples_csv, (0, 200), fast_config, tmp_path / "out")


# ============== Config Tests ==============

class TestConfig:

    def test_json_round_trip(self, tmp_path):
        config = Config(reveal_step=0.01, spline_method=SplineMethod.CUBIC, export_background=Background.WHITE)
        path = tmp_path / "config.json"
        config.save(path)

        loaded = Config.from_json(path)
        assert loaded.to_dict() == config.to_dict()
        assert loaded.spline_method is SplineMethod.CUBIC

    def test_bad_colour_fails_fast(self):
        with pytest.raises(ValueError):
            parse_color("not-a-colour")


# ============== CLI Helper Tests ==============

class TestParseSize:

    def test_valid(self):
        assert parse_size("800x400") == (800, 400)
        assert parse_size("640X480") == (640, 480)

    @pytest.mark.parametrize("value", ["800", "axb", "1x2x3"])
    def test_invalid(self, value):
        with pytest.raises(argparse.ArgumentTypeError):
            parse_size(value)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
