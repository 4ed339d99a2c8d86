"""
Engine Session
Frame-driven coordinator for one engine: crank phase, per-cylinder state,
turbocharger and exhaust emitters.

Each call to :meth:`EngineSession.tick` runs, in order:

    1. snapshot the host's settings and sanitise the frame time
    2. advance the crank phase
    3. update the turbocharger and feed its boost back into the settings
    4. update (or clear) the exhaust emitters
    5. evaluate every cylinder at the new phase

Cylinder state is recomputed from the phase alone; nothing about a
cylinder is remembered between frames.
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional, Tuple

import numpy as np
import numpy.typing as npt
from scipy.integrate import trapezoid

from .combustion import CombustionTimingModel
from .engine_config import (
    EngineSettings,
    EngineTopology,
    ValvetrainLayout,
    create_topology,
)
from .exhaust import ExhaustEmitter, Particle, create_emitter_2d, create_emitter_3d
from .kinematics import (
    CrankAngleIntegrator,
    SliderCrank,
    ValveTiming,
    ValveType,
    cam_angle,
)
from .topology import (
    bank_local_to_world,
    bank_rotation,
    cycle_angle,
    cylinder_crank_angle,
    cylinder_geometry,
)
from .turbocharger import TurbochargerModel, TurboParameters, TurboState

logger = logging.getLogger(__name__)


@dataclass
class SessionParameters:
    """Session-level knobs.

    Attributes
    ----------
    max_frame_dt      : longest frame accepted  [s]; longer frames are discarded
    turbo             : turbocharger constants
    valvetrain        : camshaft layout reported by the detail view
    seed              : seed for the exhaust emitters (None = OS entropy)
    open_lift_fraction: lift above this fraction of max lift counts as open
    """

    max_frame_dt: float = 0.1
    turbo: TurboParameters = field(default_factory=TurboParameters)
    valvetrain: ValvetrainLayout = ValvetrainLayout.DOHC
    seed: Optional[int] = None
    open_lift_fraction: float = 1.0 / 12.0

    def __post_init__(self) -> None:
        if self.max_frame_dt <= 0.0:
            raise ValueError(f"max_frame_dt must be > 0 s, got {self.max_frame_dt}")
        if not (0.0 <= self.open_lift_fraction < 1.0):
            raise ValueError(
                f"open_lift_fraction must be in [0, 1), got {self.open_lift_fraction}"
            )


@dataclass(frozen=True)
class CylinderState:
    """Derived state of one cylinder for one frame.

    Attributes
    ----------
    number               : 1-indexed cylinder
    bank                 : bank index
    bank_rotation        : bank rotation about the crank axis  [rad]
    cycle_angle          : four-stroke angle  [deg] ∈ [0, 720)
    crank_angle          : crank angle of this cylinder's throw  [deg] ∈ [0, 360)
    cam_angle            : camshaft angle driving this cylinder's lobes  [deg]
    piston_displacement  : slider-crank pin height
    piston_offset        : renderer offset along the bore  (x − r) · stroke_scale
    piston_world         : (x, y, z) of the piston crown in the renderer frame
    rod_angle            : connecting-rod tilt  [rad]
    intake_lift          : [0, max_valve_lift]
    exhaust_lift         : [0, max_valve_lift]
    combustion_intensity : [0, 1]
    """

    number: int
    bank: int
    bank_rotation: float
    cycle_angle: float
    crank_angle: float
    cam_angle: float
    piston_displacement: float
    piston_offset: float
    piston_world: Tuple[float, float, float]
    rod_angle: float
    intake_lift: float
    exhaust_lift: float
    combustion_intensity: float


def _empty_points() -> npt.NDArray[np.float64]:
    return np.zeros((0, 3))


def _empty_values() -> npt.NDArray[np.float64]:
    return np.zeros(0)


@dataclass(frozen=True, eq=False)
class FrameState:
    """Everything a renderer needs for one frame.

    Particle data are copies of the live emitter slots, shape (n, 3) for
    positions and (n,) for opacities; later frames do not touch them.
    Per-particle records are available from :meth:`EngineSession.particles`.
    """

    engine: str
    crank_angle: float
    cam_angle: float
    delta_time: float
    discarded: bool
    cylinders: Tuple[CylinderState, ...]
    turbo: TurboState
    settings: EngineSettings
    positions_3d: npt.NDArray[np.float64] = field(default_factory=_empty_points)
    opacities_3d: npt.NDArray[np.float64] = field(default_factory=_empty_values)
    positions_2d: npt.NDArray[np.float64] = field(default_factory=_empty_points)
    opacities_2d: npt.NDArray[np.float64] = field(default_factory=_empty_values)

    @property
    def particle_count_3d(self) -> int:
        return len(self.positions_3d)

    @property
    def particle_count_2d(self) -> int:
        return len(self.positions_2d)

    def cylinder(self, number: int) -> CylinderState:
        for state in self.cylinders:
            if state.number == number:
                return state
        raise ValueError(f"no cylinder {number} in {self.engine}")


@dataclass(frozen=True)
class CamshaftSummary:
    """Camshaft detail view data.

    Attributes
    ----------
    cam_angle          : global camshaft angle  [deg], the angle of cylinder 1's lobes
    layout             : "dohc" or "sohc"
    intake_lobes       : intake lift per cylinder, cylinder order
    exhaust_lobes      : exhaust lift per cylinder, cylinder order
    open_intake        : intake valves above the open threshold
    open_exhaust       : exhaust valves above the open threshold
    max_intake_lift    : largest current intake lift
    max_exhaust_lift   : largest current exhaust lift
    """

    cam_angle: float
    layout: str
    intake_lobes: Tuple[float, ...]
    exhaust_lobes: Tuple[float, ...]
    open_intake: int
    open_exhaust: int
    max_intake_lift: float
    max_exhaust_lift: float


class EngineSession:
    """Owns the per-engine state and advances it one frame at a time.

    Single-threaded: the host calls :meth:`tick` from its frame loop.
    """

    def __init__(
        self,
        engine_type: str = "inline4",
        params: Optional[SessionParameters] = None,
    ) -> None:
        self.params = params or SessionParameters()
        self.topology: EngineTopology = create_topology(engine_type)
        self.slider_crank = self._build_slider_crank(self.topology)

        self.integrator = CrankAngleIntegrator()
        self.valves = ValveTiming()
        self.combustion = CombustionTimingModel()
        self.turbo = TurbochargerModel(self.params.turbo)

        seed = self.params.seed
        self.emitter_3d: ExhaustEmitter = create_emitter_3d(seed)
        self.emitter_2d: ExhaustEmitter = create_emitter_2d(
            None if seed is None else seed + 1
        )
        self._exhaust_active = True
        self.frame_count = 0

    @staticmethod
    def _build_slider_crank(topology: EngineTopology) -> SliderCrank:
        return SliderCrank(topology.crank_radius, topology.rod_length)

    # ── Accessors ─────────────────────────────────────────────────────────

    @property
    def crank_angle(self) -> float:
        return self.integrator.phase

    @property
    def engine_type(self) -> str:
        return self.topology.name

    # ── Topology ──────────────────────────────────────────────────────────

    def set_engine_type(self, engine_type: str) -> None:
        """Swap topology and firing order together.

        Raises
        ------
        ValueError
            If ``engine_type`` is unknown.  The session is left unchanged.
        """
        topology = create_topology(engine_type)
        slider_crank = self._build_slider_crank(topology)
        previous = self.topology.name
        self.topology, self.slider_crank = topology, slider_crank
        logger.info("Engine type changed: %s -> %s", previous, topology.name)

    # ── Frame ─────────────────────────────────────────────────────────────

    def _frame_time(self, delta_time: float) -> Tuple[float, bool]:
        if delta_time < 0.0 or delta_time > self.params.max_frame_dt:
            logger.debug(
                "Discarding frame with dt=%.4f s (limit %.3f s)",
                delta_time,
                self.params.max_frame_dt,
            )
            return 0.0, True
        return delta_time, False

    def _sync_turbo(self, enabled: bool) -> None:
        if enabled != self.turbo.enabled:
            self.turbo.set_enabled(enabled)
            logger.info("Turbocharger %s", "enabled" if enabled else "disabled")

    def _update_exhaust(self, dt: float, settings: EngineSettings) -> None:
        if not settings.exhaust_visible:
            if self._exhaust_active:
                self.emitter_3d.clear()
                self.emitter_2d.clear()
                self._exhaust_active = False
            return
        self._exhaust_active = True
        self.emitter_3d.update(dt, settings)
        self.emitter_2d.update(dt, settings)

    def tick(self, delta_time: float, settings: EngineSettings) -> FrameState:
        """Advance one frame.

        Parameters
        ----------
        delta_time : float  Frame duration  [s]
        settings   : EngineSettings  Host settings; never mutated

        Returns
        -------
        FrameState
        """
        snapshot = settings.snapshot()
        dt, discarded = self._frame_time(delta_time)

        self.integrator.advance(dt, snapshot.rpm)

        self._sync_turbo(snapshot.turbo_enabled)
        turbo_state = self.turbo.update(dt, snapshot)
        if self.turbo.enabled:
            snapshot = replace(snapshot, boost=self.turbo.boost_pressure)

        self._update_exhaust(dt, snapshot)
        self.frame_count += 1

        return FrameState(
            engine=self.topology.name,
            crank_angle=self.integrator.phase,
            cam_angle=cam_angle(self.integrator.phase),
            delta_time=dt,
            discarded=discarded,
            cylinders=self.evaluate(snapshot),
            turbo=turbo_state,
            settings=snapshot,
            positions_3d=self.emitter_3d.live_positions(),
            opacities_3d=self.emitter_3d.live_opacities(),
            positions_2d=self.emitter_2d.live_positions(),
            opacities_2d=self.emitter_2d.live_opacities(),
        )

    def particles(self, view: str = "3d") -> List[Particle]:
        """Per-particle snapshot of one view's emitter ("3d" or "2d")."""
        if view == "3d":
            return self.emitter_3d.particles()
        if view == "2d":
            return self.emitter_2d.particles()
        raise ValueError(f"view must be '3d' or '2d', got {view!r}")

    # ── Cylinder evaluation ───────────────────────────────────────────────

    def evaluate_cylinder(self, number: int, settings: EngineSettings) -> CylinderState:
        """State of one cylinder at the current crank phase."""
        topology = self.topology
        geometry = cylinder_geometry(topology, number)
        crank = self.integrator.phase
        throw = cylinder_crank_angle(topology, number, crank)

        displacement = self.slider_crank.position(throw)
        offset = self.slider_crank.offset_from_mid_stroke(throw, topology.stroke_scale)
        cam = cam_angle(throw)

        return CylinderState(
            number=number,
            bank=geometry.bank,
            bank_rotation=bank_rotation(topology, number),
            cycle_angle=cycle_angle(topology, number, crank),
            crank_angle=throw,
            cam_angle=cam,
            piston_displacement=displacement,
            piston_offset=offset,
            piston_world=bank_local_to_world(
                geometry, geometry.lateral, geometry.deck_height + offset
            ),
            rod_angle=self.slider_crank.connecting_rod_angle(throw),
            intake_lift=self.valves.lift(ValveType.INTAKE, cam, topology.max_valve_lift),
            exhaust_lift=self.valves.lift(ValveType.EXHAUST, cam, topology.max_valve_lift),
            combustion_intensity=self.combustion.intensity(
                number,
                crank,
                topology.firing_order,
                settings.ignition_timing,
                settings.throttle,
            ),
        )

    def evaluate(self, settings: EngineSettings) -> Tuple[CylinderState, ...]:
        """All cylinder states at the current phase, without advancing it."""
        snapshot = settings.snapshot()
        return tuple(
            self.evaluate_cylinder(c.number, snapshot) for c in self.topology.cylinders
        )

    def camshaft_summary(self) -> CamshaftSummary:
        """Lobe lifts and open-valve counts for the camshaft detail view."""
        max_lift = self.topology.max_valve_lift
        crank = self.integrator.phase
        intake, exhaust = [], []
        for c in self.topology.cylinders:
            cam = cam_angle(cylinder_crank_angle(self.topology, c.number, crank))
            intake.append(self.valves.lift(ValveType.INTAKE, cam, max_lift))
            exhaust.append(self.valves.lift(ValveType.EXHAUST, cam, max_lift))

        threshold = max_lift * self.params.open_lift_fraction
        return CamshaftSummary(
            cam_angle=cam_angle(self.integrator.phase),
            layout=self.params.valvetrain.value,
            intake_lobes=tuple(intake),
            exhaust_lobes=tuple(exhaust),
            open_intake=sum(1 for v in intake if v > threshold),
            open_exhaust=sum(1 for v in exhaust if v > threshold),
            max_intake_lift=max(intake),
            max_exhaust_lift=max(exhaust),
        )

    def reset(self) -> None:
        """Return to TDC with the turbo at rest and no smoke."""
        self.integrator.reset()
        self.turbo.reset()
        self.emitter_3d.clear()
        self.emitter_2d.clear()
        self.frame_count = 0


# ── Firing analysis ───────────────────────────────────────────────────────────


@dataclass
class FiringAnalysis:
    """Combustion pulses swept over one crank revolution."""

    crank_angles_deg: npt.NDArray[np.float64]  # [deg]
    intensities: npt.NDArray[np.float64]  # shape (N, samples), cylinder order
    peak_angles: Dict[int, float]  # cylinder → crank angle of peak  [deg]
    pulse_areas: Dict[int, float]  # cylinder → ∫ I dθ  [deg]
    firing_interval: float  # crank degrees between peaks
    overlapping: bool  # two cylinders burning at one sampled angle

    def firing_sequence(self) -> List[int]:
        """Cylinders sorted by the crank angle of their peak."""
        return sorted(self.peak_angles, key=self.peak_angles.__getitem__)


def analyze_firing(
    topology: EngineTopology,
    settings: EngineSettings,
    resolution: int = 1440,
) -> FiringAnalysis:
    """Sample every cylinder's combustion pulse over one crank revolution.

    Parameters
    ----------
    topology   : EngineTopology
    settings   : EngineSettings  ignition timing and throttle are used
    resolution : int             samples per revolution

    Returns
    -------
    FiringAnalysis
    """
    if resolution < 8:
        raise ValueError(f"resolution must be ≥ 8, got {resolution}")

    snapshot = settings.snapshot()
    model = CombustionTimingModel()
    crank = np.linspace(0.0, 360.0, resolution, endpoint=False)

    intensities = np.zeros((topology.cylinder_count, resolution))
    for row, c in enumerate(topology.cylinders):
        intensities[row] = [
            model.intensity(
                c.number,
                angle,
                topology.firing_order,
                snapshot.ignition_timing,
                snapshot.throttle,
            )
            for angle in crank
        ]

    # Traces are periodic; closing them at 360° counts pulses that wrap 0°
    peak_angles: Dict[int, float] = {}
    pulse_areas: Dict[int, float] = {}
    for row, c in enumerate(topology.cylinders):
        trace = intensities[row]
        peak_angles[c.number] = float(crank[np.argmax(trace)]) if trace.any() else float("nan")
        closed = np.append(trace, trace[0])
        pulse_areas[c.number] = float(
            trapezoid(closed, np.append(crank, 360.0))
        )

    burning = np.count_nonzero(intensities > 0.0, axis=0)

    return FiringAnalysis(
        crank_angles_deg=crank,
        intensities=intensities,
        peak_angles=peak_angles,
        pulse_areas=pulse_areas,
        firing_interval=topology.firing_interval / 2.0,
        overlapping=bool(np.any(burning > 1)),
    )
