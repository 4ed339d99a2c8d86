"""
CLI entry point for engine_animator.
"""
import argparse
import logging
import math

from .engine_config import EngineSettings, available_engine_types, check_settings
from .simulator import EngineSession, SessionParameters, analyze_firing
from .topology import cylinders_on_bank, firing_sequence_offsets
from .utilities import calculate_statistics


def run_session(args):
    settings = EngineSettings(
        rpm=args.rpm,
        throttle=args.throttle,
        air_fuel_ratio=args.afr,
        ignition_timing=args.ignition,
        turbo_enabled=args.turbo,
    )
    check_settings(settings)

    session = EngineSession(args.engine, SessionParameters(seed=args.seed))
    dt = 1.0 / args.fps

    print("\n" + "═" * 50)
    print(f"  SESSION: {args.engine.upper()} at {settings.rpm:.0f} RPM")
    print("═" * 50)

    topology = session.topology
    for bank in range(topology.bank_count):
        members = ", ".join(str(c) for c in cylinders_on_bank(topology, bank))
        print(f"Bank {bank}:        cylinders {members}")
    offsets = "  ".join(f"{cyl}@{offset:.0f}°" for cyl, offset in firing_sequence_offsets(topology))
    print(f"Firing Offsets: {offsets}")

    boost_trace = []
    frame = None
    for _ in range(args.frames):
        frame = session.tick(dt, settings)
        boost_trace.append(frame.turbo.boost_pressure)

    if frame is None:
        print("No frames run")
        return

    print(f"Frames:        {args.frames} at {args.fps:.0f} fps")
    print(f"Crank Angle:   {frame.crank_angle:.1f}°")
    print(f"Cam Angle:     {frame.cam_angle:.1f}°")
    print("─" * 50)
    for cyl in frame.cylinders:
        print(
            f"Cyl {cyl.number}: offset {cyl.piston_offset:+.3f}  "
            f"intake {cyl.intake_lift:.3f}  exhaust {cyl.exhaust_lift:.3f}  "
            f"burn {cyl.combustion_intensity:.2f}"
        )
    print("─" * 50)

    turbo = frame.turbo
    print(f"Turbo:         {'on' if turbo.enabled else 'off'}")
    print(f"Turbine Speed: {turbo.turbine_speed:.0f} RPM")
    print(f"Boost:         {turbo.boost_pressure:.2f} psi ({turbo.boost_bar:.3f} bar)")
    print(f"Temperature:   {turbo.temperature:.0f} °F ({turbo.temperature_c:.0f} °C)")
    stats = calculate_statistics(boost_trace)
    print(f"Boost Range:   {stats['min']:.2f} – {stats['max']:.2f} psi")
    print(f"Particles:     {frame.particle_count_3d} (3D), {frame.particle_count_2d} (2D)")
    print("─" * 50)

    analysis = analyze_firing(topology, settings)
    sequence = "-".join(str(c) for c in analysis.firing_sequence())
    print(f"Firing Sequence: {sequence}")
    print(f"Firing Interval: {analysis.firing_interval:.1f}° crank")
    for cyl, angle in sorted(analysis.peak_angles.items()):
        peak = "none" if math.isnan(angle) else f"{angle:.2f}°"
        print(f"  Cyl {cyl} peak at {peak}")
    print(f"Overlapping Burns: {'yes' if analysis.overlapping else 'no'}")

    if args.plot:
        from .visualization import TimingPlotter

        TimingPlotter().create_summary(topology, analysis, save_path=args.plot)
    print("═" * 50 + "\n")


def main(argv=None):
    parser = argparse.ArgumentParser(description="Engine Animator CLI (headless session)")
    parser.add_argument("--engine", choices=available_engine_types(), default="inline4", help="Engine type (default: inline4)")
    parser.add_argument("--rpm", type=float, default=800.0, help="Engine speed in RPM (default: 800)")
    parser.add_argument("--throttle", type=float, default=25.0, help="Throttle opening in %% (default: 25)")
    parser.add_argument("--ignition", type=float, default=15.0, help="Ignition advance in degrees (default: 15)")
    parser.add_argument("--afr", type=float, default=14.7, help="Air-fuel ratio (default: 14.7)")
    parser.add_argument("--turbo", action="store_true", help="Enable the turbocharger")
    parser.add_argument("--frames", type=int, default=120, help="Frames to run (default: 120)")
    parser.add_argument("--fps", type=float, default=60.0, help="Frame rate (default: 60)")
    parser.add_argument("--seed", type=int, default=None, help="Seed for the exhaust particles")
    parser.add_argument("--plot", metavar="PATH", default=None, help="Save a timing summary figure to PATH")
    parser.add_argument("--verbose", action="store_true", help="Log session events")

    args = parser.parse_args(argv)
    if args.fps <= 0:
        parser.error("--fps must be positive")
    if args.frames < 0:
        parser.error("--frames must not be negative")
    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    if args.plot:
        import matplotlib

        matplotlib.use("Agg")

    run_session(args)


if __name__ == "__main__":
    main()
