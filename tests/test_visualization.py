"""
Tests for the timing plots and the command line entry point.
"""

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt
import numpy as np
import pytest

from engine_animator.__main__ import main
from engine_animator.engine_config import EngineSettings, create_inline_4, create_v6
from engine_animator.simulator import analyze_firing
from engine_animator.visualization import TimingPlotter


class TestTimingPlotter:
    def setup_method(self):
        self.plotter = TimingPlotter()
        self.topology = create_v6()
        self.analysis = analyze_firing(self.topology, EngineSettings(throttle=100.0))

    def teardown_method(self):
        plt.close("all")

    def test_firing_pulses(self):
        fig = self.plotter.plot_firing_pulses(self.analysis)
        ax = fig.axes[0]
        assert ax.get_xlim() == (0.0, 360.0)
        assert len(ax.get_legend().get_texts()) == 6

    def test_valve_lift(self):
        fig = self.plotter.plot_valve_lift(self.topology)
        intake, exhaust = fig.axes[0].get_lines()[:2]
        assert max(intake.get_ydata()) == pytest.approx(self.topology.max_valve_lift, rel=1e-3)
        assert min(exhaust.get_ydata()) == 0.0

    def test_piston_travel(self):
        fig = self.plotter.plot_piston_travel(create_inline_4())
        lines = fig.axes[0].get_lines()
        assert len(lines) == 4
        # cylinder 1 reaches BDC at 180°, cylinder 3 (second to fire) is at TDC at 90°
        assert lines[0].get_xdata()[np.argmin(lines[0].get_ydata())] == 180.0
        assert lines[2].get_xdata()[np.argmax(lines[2].get_ydata())] == 90.0

    def test_summary_saved(self, tmp_path):
        path = tmp_path / "summary.png"
        fig = self.plotter.create_summary(self.topology, self.analysis, save_path=str(path))
        assert path.exists()
        assert len(fig.axes) == 3


class TestCommandLine:
    def teardown_method(self):
        plt.close("all")

    def test_default_run(self, capsys):
        main(["--frames", "30", "--seed", "1"])
        out = capsys.readouterr().out
        assert "SESSION: INLINE4" in out
        assert "Firing Sequence: 1-3-4-2" in out
        assert "Firing Offsets: 1@0°  3@180°  4@360°  2@540°" in out
        assert "Bank 0:        cylinders 1, 2, 3, 4" in out
        assert "Overlapping Burns: no" in out

    def test_v6_with_turbo(self, capsys):
        main(["--engine", "v6", "--rpm", "6000", "--throttle", "80", "--turbo", "--frames", "60"])
        out = capsys.readouterr().out
        assert "Turbo:         on" in out
        assert "Cyl 6" in out
        assert "Bank 1:        cylinders 4, 5, 6" in out
        assert "Firing Sequence: 1-4-2-5-3-6" in out
        assert "°C)" in out

    def test_plot_written(self, tmp_path, capsys):
        path = tmp_path / "timing.png"
        main(["--frames", "5", "--plot", str(path)])
        assert path.exists()

    def test_unknown_engine_rejected(self):
        with pytest.raises(SystemExit):
            main(["--engine", "v8"])

    def test_zero_frames(self, capsys):
        main(["--frames", "0"])
        assert "No frames run" in capsys.readouterr().out
