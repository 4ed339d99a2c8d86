"""
Visualization Module
Timing diagrams for engine configurations: firing pulses, valve events
and piston travel over the four-stroke cycle.

These are analysis plots, not the live renderers.
"""

from typing import Optional

import matplotlib.pyplot as plt
from matplotlib.gridspec import GridSpec
import numpy as np

from .engine_config import EngineTopology
from .kinematics import SliderCrank, ValveTiming, ValveType
from .simulator import FiringAnalysis
from .topology import cylinder_crank_angle


class TimingPlotter:
    """
    Creates timing diagrams for an engine topology.

    Supports:
    - Combustion pulses per cylinder against crank angle
    - Intake/exhaust lift against camshaft angle
    - Piston offset of every cylinder over one revolution
    - A combined summary sheet

    Every method returns the figure; ``show`` is off by default so the
    plots can be produced headless.
    """

    def __init__(self, style: str = "default"):
        """
        Initialize plotter with specified style.

        Args:
            style: Matplotlib style ('default', 'ggplot', ...)
        """
        if style != "default":
            plt.style.use(style)

        self.fig_size = (12, 8)
        self.dpi = 100

    def _finish(self, fig, save_path: Optional[str], show: bool, label: str):
        fig.tight_layout()
        if save_path:
            fig.savefig(save_path, dpi=self.dpi, bbox_inches="tight")
            print(f"{label} saved to {save_path}")
        if show:
            plt.show()
        return fig

    def _draw_firing(self, ax, analysis: FiringAnalysis) -> None:
        colors = plt.cm.tab10(np.linspace(0, 1, 10))
        for row, (cyl, trace) in enumerate(
            zip(sorted(analysis.peak_angles), analysis.intensities)
        ):
            ax.fill_between(
                analysis.crank_angles_deg,
                trace,
                alpha=0.4,
                color=colors[row % 10],
                label=f"Cyl {cyl}",
            )
            peak = analysis.peak_angles[cyl]
            if np.isfinite(peak):
                ax.axvline(peak, color=colors[row % 10], linestyle="--", alpha=0.6)

        ax.set_xlim(0, 360)
        ax.set_ylim(0, 1.05)
        ax.set_xlabel("Crank Angle (degrees)", fontsize=12, fontweight="bold")
        ax.set_ylabel("Combustion Intensity", fontsize=12, fontweight="bold")
        ax.set_title("Combustion Pulses", fontsize=14, fontweight="bold")
        ax.grid(True, alpha=0.3)
        ax.legend(fontsize=9, loc="upper right", ncol=2)

    def plot_firing_pulses(
        self,
        analysis: FiringAnalysis,
        save_path: Optional[str] = None,
        show: bool = False,
    ):
        """
        Plot each cylinder's combustion pulse over one crank revolution.

        Args:
            analysis: Result of analyze_firing()
            save_path: Optional path to save figure
            show: Display the figure interactively
        """
        fig, ax = plt.subplots(figsize=(12, 6))
        self._draw_firing(ax, analysis)

        sequence = "-".join(str(c) for c in analysis.firing_sequence())
        ax.text(
            0.02,
            0.95,
            f"Sequence {sequence}\nInterval {analysis.firing_interval:.1f}°",
            transform=ax.transAxes,
            fontsize=10,
            verticalalignment="top",
            bbox=dict(boxstyle="round", facecolor="wheat", alpha=0.5),
        )
        return self._finish(fig, save_path, show, "Firing diagram")

    def _draw_valves(self, ax, max_lift: float) -> None:
        valves = ValveTiming()
        cam = np.linspace(0.0, 360.0, 721)
        intake = [valves.lift(ValveType.INTAKE, a, max_lift) for a in cam]
        exhaust = [valves.lift(ValveType.EXHAUST, a, max_lift) for a in cam]

        ax.plot(cam, intake, "b-", linewidth=2, label="Intake")
        ax.plot(cam, exhaust, "r-", linewidth=2, label="Exhaust")
        for angle in (ValveTiming.INTAKE_OPEN, ValveTiming.INTAKE_CLOSE):
            ax.axvline(angle, color="blue", linestyle=":", alpha=0.5)
        for angle in (ValveTiming.EXHAUST_OPEN, ValveTiming.EXHAUST_CLOSE):
            ax.axvline(angle, color="red", linestyle=":", alpha=0.5)

        ax.set_xlim(0, 360)
        ax.set_xlabel("Camshaft Angle (degrees)", fontsize=12, fontweight="bold")
        ax.set_ylabel("Valve Lift", fontsize=12, fontweight="bold")
        ax.set_title("Valve Lift Profiles", fontsize=14, fontweight="bold")
        ax.grid(True, alpha=0.3)
        ax.legend(fontsize=10)

    def plot_valve_lift(
        self,
        topology: EngineTopology,
        save_path: Optional[str] = None,
        show: bool = False,
    ):
        """
        Plot intake and exhaust lift against camshaft angle.

        Args:
            topology: Supplies the maximum valve lift
            save_path: Optional path to save figure
            show: Display the figure interactively
        """
        fig, ax = plt.subplots(figsize=(12, 6))
        self._draw_valves(ax, topology.max_valve_lift)
        return self._finish(fig, save_path, show, "Valve lift plot")

    def _draw_pistons(self, ax, topology: EngineTopology) -> None:
        crank = SliderCrank(topology.crank_radius, topology.rod_length)
        angles = np.linspace(0.0, 360.0, 361)
        for c in topology.cylinders:
            offsets = [
                crank.offset_from_mid_stroke(
                    cylinder_crank_angle(topology, c.number, a), topology.stroke_scale
                )
                for a in angles
            ]
            ax.plot(angles, offsets, linewidth=1.5, label=f"Cyl {c.number}")

        ax.set_xlim(0, 360)
        ax.set_xlabel("Crank Angle (degrees)", fontsize=12, fontweight="bold")
        ax.set_ylabel("Piston Offset", fontsize=12, fontweight="bold")
        ax.set_title("Piston Travel", fontsize=14, fontweight="bold")
        ax.grid(True, alpha=0.3)
        ax.legend(fontsize=9, loc="upper right", ncol=2)

    def plot_piston_travel(
        self,
        topology: EngineTopology,
        save_path: Optional[str] = None,
        show: bool = False,
    ):
        """
        Plot the renderer offset of every piston over one crank revolution.

        Args:
            topology: Engine topology
            save_path: Optional path to save figure
            show: Display the figure interactively
        """
        fig, ax = plt.subplots(figsize=(12, 6))
        self._draw_pistons(ax, topology)
        return self._finish(fig, save_path, show, "Piston travel plot")

    def create_summary(
        self,
        topology: EngineTopology,
        analysis: FiringAnalysis,
        save_path: Optional[str] = None,
        show: bool = False,
    ):
        """
        Combined sheet: firing pulses, valve lift and piston travel.

        Args:
            topology: Engine topology
            analysis: Result of analyze_firing() for the same topology
            save_path: Optional path to save figure
            show: Display the figure interactively
        """
        fig = plt.figure(figsize=(14, 10), dpi=self.dpi)
        gs = GridSpec(2, 2, figure=fig)

        self._draw_firing(fig.add_subplot(gs[0, :]), analysis)
        self._draw_valves(fig.add_subplot(gs[1, 0]), topology.max_valve_lift)
        self._draw_pistons(fig.add_subplot(gs[1, 1]), topology)

        fig.suptitle(
            f"Timing Summary: {topology.name} ({topology.cylinder_count} cylinders)",
            fontsize=16,
            fontweight="bold",
        )
        return self._finish(fig, save_path, show, "Timing summary")
