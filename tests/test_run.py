"""
End-to-end tests for the command-line interface and plotting.
"""

import json

import matplotlib
matplotlib.use('Agg')

import numpy as np
import pytest

from orrery.bodies import Body
from orrery.run import main, create_parser, apply_overrides
from orrery.io_cfg import create_example_config, load_config
from orrery.viz import plot_orbit_trails, plot_render_frame


@pytest.fixture
def example_config(tmp_path):
    path = tmp_path / "example.yaml"
    create_example_config(path)
    return path


class TestMain:

    def test_validate_only(self, example_config):
        assert main([str(example_config), '--validate-only']) == 0

    def test_missing_config(self, tmp_path):
        assert main([str(tmp_path / "missing.yaml")]) == 1

    def test_no_config(self):
        assert main([]) == 1

    def test_create_example_and_data(self, tmp_path):
        cfg = tmp_path / "ex.yaml"
        data = tmp_path / "data"
        assert main(['--create-example', str(cfg), '--create-data', str(data)]) == 0
        assert cfg.exists()
        assert (data / "planets" / "Earth.json").exists()
        assert (data / "crafts" / "Probe.json").exists()

    def test_full_run(self, example_config, tmp_path):
        out = tmp_path / "results"
        code = main([
            str(example_config), '--output-dir', str(out),
            '--frames', '16', '--frame-dt', '0.125', '--plot',
        ])
        assert code == 0

        for name in ("trajectory.csv", "trails.json", "diagnostics.json",
                     "trails.png", "frame.png"):
            assert (out / name).exists(), name

        trails = json.loads((out / "trails.json").read_text())
        assert trails['reference'] == 'Earth'
        # 16 frames of 0.125 s sampled every 0.5 s
        assert len(trails['trails']['Probe']) == 4
        earth = np.array(trails['trails']['Earth'])
        assert np.all(earth == earth[-1])

        diag = json.loads((out / "diagnostics.json").read_text())
        assert diag['summary']['integration']['frames'] == 16
        assert diag['summary']['history']['passes'] == 4


class TestOverrides:

    def test_apply(self, example_config):
        config = load_config(example_config)
        args = create_parser().parse_args([
            str(example_config), '--frames', '7', '--time-scale', '3',
            '--step-scale', '2', '--reference', 'none',
        ])
        apply_overrides(config, args)
        assert config['run']['frames'] == 7
        assert config['settings'].time_scale == 3
        assert config['settings'].step_scale == 2
        assert config['settings'].selected_reference is None

    def test_out_of_range_override(self, example_config):
        assert main([str(example_config), '--time-scale', '70000', '--validate-only']) == 1


class TestViz:

    def test_trail_plot(self, tmp_path):
        polylines = {
            'A': np.float32([[0, 0, 0], [1, 0, 0], [1, 1, 0]]),
            'B': np.zeros((0, 3), dtype=np.float32),
        }
        path = plot_orbit_trails(polylines, str(tmp_path / "trails.png"), reference='A')
        assert path.exists()

    def test_render_frame_plot(self, tmp_path):
        cam = Body.camera([0.0, 0.0, 0.0])
        probe = Body.craft("Probe", position=[1.0, 2.0, 0.0], velocity=[0, 0, 0])
        probe.render_transform = np.float32([1.0, 2.0, 0.0])
        path = plot_render_frame([cam, probe], str(tmp_path / "frame.png"))
        assert path.exists()
