"""
Basic Engine Animation Example
Demonstrates driving an engine session headless and plotting its timing.
"""

import numpy as np
import matplotlib.pyplot as plt
import os

# Headless environment check for plot exports
if "DISPLAY" not in os.environ and os.name != "nt":
    import matplotlib
    matplotlib.use("Agg")
    print("Physical display not detected. Using 'Agg' backend for plot exports.")

from engine_animator.engine_config import EngineSettings
from engine_animator.simulator import EngineSession, SessionParameters, analyze_firing
from engine_animator.visualization import TimingPlotter


def example_1_inline_4_frames():
    """Example 1: Step an inline-4 through one second of frames"""

    print("=" * 70)
    print("EXAMPLE 1: Inline-4 Session")
    print("=" * 70)
    print()

    session = EngineSession("inline4", SessionParameters(seed=0))
    settings = EngineSettings(rpm=3000.0, throttle=60.0)

    for _ in range(60):
        frame = session.tick(1.0 / 60.0, settings)

    print(f"  Crank Angle: {frame.crank_angle:.1f}°   Cam Angle: {frame.cam_angle:.1f}°")
    for cyl in frame.cylinders:
        print(
            f"  Cylinder {cyl.number}: offset {cyl.piston_offset:+.3f}  "
            f"intake {cyl.intake_lift:.3f}  exhaust {cyl.exhaust_lift:.3f}  "
            f"burn {cyl.combustion_intensity:.2f}"
        )
    print(f"  Exhaust particles: {frame.particle_count_3d}")

    summary = session.camshaft_summary()
    print(f"  Open valves: {summary.open_intake} intake, {summary.open_exhaust} exhaust")

    plotter = TimingPlotter()
    analysis = analyze_firing(session.topology, settings)
    plotter.plot_firing_pulses(analysis, save_path="./example1_firing.png")


def example_2_turbo_spool():
    """Example 2: Turbocharger spool-up and decay"""

    print("=" * 70)
    print("EXAMPLE 2: Turbo Spool")
    print("=" * 70)
    print()

    session = EngineSession("v6", SessionParameters(seed=0))
    on = EngineSettings(rpm=6000.0, throttle=80.0, turbo_enabled=True)
    off = EngineSettings(rpm=6000.0, throttle=80.0, turbo_enabled=False)

    t = np.arange(240) / 60.0
    boost = []
    for i in range(len(t)):
        frame = session.tick(1.0 / 60.0, on if i < 120 else off)
        boost.append(frame.turbo.boost_pressure)

    print(f"  Peak boost: {max(boost):.2f} psi")
    print(f"  Boost 2 s after switch-off: {boost[-1]:.4f} psi")

    fig, ax = plt.subplots(figsize=(10, 5))
    ax.plot(t, boost, "b-", linewidth=2)
    ax.axvline(2.0, color="red", linestyle="--", alpha=0.5, label="Turbo off")
    ax.set_xlabel("Time (s)", fontsize=12, fontweight="bold")
    ax.set_ylabel("Boost (psi)", fontsize=12, fontweight="bold")
    ax.set_title("Turbo Spool-up and Decay", fontsize=14, fontweight="bold")
    ax.grid(True, alpha=0.3)
    ax.legend()
    plt.tight_layout()
    plt.savefig("./example2_turbo.png", dpi=300)
    plt.show()


def example_3_v6_timing():
    """Example 3: V6 timing summary"""

    print("=" * 70)
    print("EXAMPLE 3: V6 Timing Summary")
    print("=" * 70)
    print()

    session = EngineSession("v6")
    settings = EngineSettings(throttle=100.0, ignition_timing=20.0)
    analysis = analyze_firing(session.topology, settings)

    print(f"  Firing sequence: {'-'.join(str(c) for c in analysis.firing_sequence())}")
    print(f"  Firing interval: {analysis.firing_interval:.1f}° crank")
    print(f"  Overlapping burns: {analysis.overlapping}")

    TimingPlotter().create_summary(
        session.topology, analysis, save_path="./example3_summary.png"
    )


def main():
    """Run all examples"""

    print("\n")
    print("╔" + "═" * 68 + "╗")
    print("║" + " " * 16 + "ENGINE ANIMATION EXAMPLES" + " " * 27 + "║")
    print("╚" + "═" * 68 + "╝")
    print("\n")

    example_1_inline_4_frames()
    print("\n" + "─" * 70 + "\n")

    example_2_turbo_spool()
    print("\n" + "─" * 70 + "\n")

    example_3_v6_timing()

    print("\n" + "═" * 70)
    print("All examples completed successfully!")
    print("═" * 70 + "\n")


if __name__ == "__main__":
    main()
