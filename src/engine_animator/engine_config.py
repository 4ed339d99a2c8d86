"""
Engine Configuration Module
Defines operating settings and engine topologies (inline and V-bank).

A topology is a single frozen data record: cylinder count, firing order,
bank angle and per-cylinder geometry.  Every timing formula is written
once against this record (see ``topology.py``); there is no class per
engine layout.
"""

import math
import warnings
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Dict, Tuple

# ── Enumerations ──────────────────────────────────────────────────────────────


class EngineType(Enum):
    """Supported engine configurations."""

    INLINE = "inline"
    V_ENGINE = "v_engine"


class ValvetrainLayout(Enum):
    """Camshaft arrangement shown by the camshaft detail view."""

    SOHC = "sohc"
    DOHC = "dohc"


# ── Operating settings ────────────────────────────────────────────────────────


@dataclass
class EngineSettings:
    """User-adjustable operating parameters.

    Owned by the host/UI layer and mutated whenever a control changes.
    The simulation core only ever reads a :meth:`snapshot` of it.

    Attributes
    ----------
    rpm             : crankshaft speed                  [rev/min]
    throttle        : throttle opening                  [%]  0–100
    air_fuel_ratio  : mixture ratio                     [-]
    ignition_timing : spark advance before TDC          [deg]
    boost           : manifold boost                    [psi]
    turbo_enabled   : turbocharger model active
    exhaust_visible : exhaust particle emitters active
    """

    rpm: float = 800.0
    throttle: float = 25.0
    air_fuel_ratio: float = 14.7
    ignition_timing: float = 15.0
    boost: float = 0.0
    turbo_enabled: bool = False
    exhaust_visible: bool = True

    def snapshot(self) -> "EngineSettings":
        """Return a detached copy with numeric edge cases normalised.

        Throttle is clamped to [0, 100] and negative rpm to 0.  Bad values
        from a UI slider are absorbed here rather than raised.
        """
        rpm = self.rpm if math.isfinite(self.rpm) else 0.0
        throttle = self.throttle if math.isfinite(self.throttle) else 0.0
        return replace(
            self,
            rpm=max(0.0, float(rpm)),
            throttle=min(100.0, max(0.0, float(throttle))),
        )

    def to_dict(self) -> Dict:
        """Serialise settings to a plain dictionary."""
        return {
            "rpm": self.rpm,
            "throttle": self.throttle,
            "air_fuel_ratio": self.air_fuel_ratio,
            "ignition_timing": self.ignition_timing,
            "boost": self.boost,
            "turbo_enabled": self.turbo_enabled,
            "exhaust_visible": self.exhaust_visible,
        }


# ── Geometry ──────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class CylinderGeometry:
    """Placement of one cylinder in renderer units.

    Attributes
    ----------
    number        : int    1-indexed cylinder identifier
    bank          : int    0 for inline / left bank, 1 for right bank
    bank_angle    : float  rotation of the bank about the crank axis  [deg]
    lateral       : float  position along the crankshaft axis
    deck_height   : float  piston rest height, bank-local
    valve_height  : float  closed-valve height, bank-local
    valve_spacing : float  intake/exhaust valve offset from bore centre
    """

    number: int
    bank: int
    bank_angle: float
    lateral: float
    deck_height: float
    valve_height: float
    valve_spacing: float


@dataclass(frozen=True)
class EngineTopology:
    """Complete, immutable description of one engine layout.

    Attributes
    ----------
    name            : str    selector used by the UI ("inline4", "v6")
    engine_type     : EngineType
    cylinder_count  : int
    firing_order    : Tuple[int, ...]  permutation of 1..cylinder_count
    bank_angle      : float  included V angle  [deg]  (0 for inline)
    crank_radius    : float  renderer units
    rod_length      : float  renderer units
    stroke_scale    : float  multiplier from slider-crank output to offset
    max_valve_lift  : float  renderer units
    cylinders       : Tuple[CylinderGeometry, ...]
    """

    name: str
    engine_type: EngineType
    cylinder_count: int
    firing_order: Tuple[int, ...]
    bank_angle: float
    crank_radius: float
    rod_length: float
    stroke_scale: float
    max_valve_lift: float
    cylinders: Tuple[CylinderGeometry, ...] = field(default_factory=tuple)

    # Four-stroke cycle: two crank revolutions
    CYCLE_DEGREES = 720.0

    def __post_init__(self) -> None:
        if self.cylinder_count < 1:
            raise ValueError(
                f"cylinder_count must be ≥ 1, got {self.cylinder_count}"
            )
        if sorted(self.firing_order) != list(range(1, self.cylinder_count + 1)):
            raise ValueError(
                f"firing_order {list(self.firing_order)} must be a permutation "
                f"of 1..{self.cylinder_count}"
            )
        if len(self.cylinders) != self.cylinder_count:
            raise ValueError(
                f"cylinders length {len(self.cylinders)} must equal "
                f"cylinder_count {self.cylinder_count}"
            )
        if [c.number for c in self.cylinders] != list(
            range(1, self.cylinder_count + 1)
        ):
            raise ValueError("cylinders must be numbered 1..cylinder_count in order")
        if self.crank_radius <= 0.0:
            raise ValueError(f"crank_radius must be > 0, got {self.crank_radius}")
        if self.rod_length <= 0.0:
            raise ValueError(f"rod_length must be > 0, got {self.rod_length}")
        if self.crank_radius > self.rod_length:
            raise ValueError(
                f"crank_radius ({self.crank_radius}) must be ≤ rod_length "
                f"({self.rod_length}); otherwise slider-crank mechanism locks up."
            )
        if not (0.0 <= self.bank_angle < 180.0):
            raise ValueError(f"bank_angle must be in [0, 180)°, got {self.bank_angle}")
        if self.engine_type == EngineType.INLINE and self.bank_angle != 0.0:
            raise ValueError("inline engines must have bank_angle = 0")
        if self.max_valve_lift < 0.0:
            raise ValueError(
                f"max_valve_lift must be ≥ 0, got {self.max_valve_lift}"
            )

    # ── Derived properties ────────────────────────────────────────────────

    @property
    def firing_interval(self) -> float:
        """Crank-cycle degrees between successive ignitions  720 / N."""
        return self.CYCLE_DEGREES / self.cylinder_count

    @property
    def bank_count(self) -> int:
        return len({c.bank for c in self.cylinders})

    @property
    def is_v_engine(self) -> bool:
        return self.engine_type == EngineType.V_ENGINE


# ── Factory functions ─────────────────────────────────────────────────────────


def create_inline_4() -> EngineTopology:
    """Inline-4, single bank, firing order 1-3-4-2.

    Geometry in scene units:
        Cylinder spacing : 2.5
        Crank radius     : 1.5
        Rod length       : 5.0
    """
    spacing = 2.5
    cylinders = tuple(
        CylinderGeometry(
            number=i + 1,
            bank=0,
            bank_angle=0.0,
            lateral=(i - 1.5) * spacing,
            deck_height=2.0,
            valve_height=5.5,
            valve_spacing=0.4,
        )
        for i in range(4)
    )
    return EngineTopology(
        name="inline4",
        engine_type=EngineType.INLINE,
        cylinder_count=4,
        firing_order=(1, 3, 4, 2),
        bank_angle=0.0,
        crank_radius=1.5,
        rod_length=5.0,
        stroke_scale=0.8,
        max_valve_lift=0.4,
        cylinders=cylinders,
    )


def create_v6(v_angle: float = 60.0) -> EngineTopology:
    """60° V6, cylinders 1–3 on the left bank and 4–6 on the right.

    Firing order 1-4-2-5-3-6 alternates banks.
    """
    spacing = 2.0
    half = v_angle / 2.0
    cylinders = []
    for bank, rotation in ((0, half), (1, -half)):
        for i in range(3):
            cylinders.append(
                CylinderGeometry(
                    number=bank * 3 + i + 1,
                    bank=bank,
                    bank_angle=rotation,
                    lateral=(i - 1) * spacing,
                    deck_height=2.0,
                    valve_height=5.0,
                    valve_spacing=0.3,
                )
            )
    return EngineTopology(
        name="v6",
        engine_type=EngineType.V_ENGINE,
        cylinder_count=6,
        firing_order=(1, 4, 2, 5, 3, 6),
        bank_angle=v_angle,
        crank_radius=1.6,
        rod_length=5.2,
        stroke_scale=0.7,
        max_valve_lift=0.35,
        cylinders=tuple(cylinders),
    )


_TOPOLOGY_FACTORIES = {
    "inline4": create_inline_4,
    "v6": create_v6,
}


def available_engine_types() -> Tuple[str, ...]:
    """Selectors accepted by :func:`create_topology`."""
    return tuple(_TOPOLOGY_FACTORIES)


def create_topology(name: str) -> EngineTopology:
    """Build the topology for a UI engine-type selector.

    Raises
    ------
    ValueError
        If ``name`` is not a known engine type.
    """
    try:
        factory = _TOPOLOGY_FACTORIES[name]
    except KeyError:
        raise ValueError(
            f"Unknown engine type '{name}'; expected one of "
            f"{', '.join(available_engine_types())}"
        ) from None
    return factory()


def check_settings(settings: EngineSettings) -> None:
    """Emit warnings for settings outside the range the model was tuned for."""
    notices = []
    if not (0.0 <= settings.ignition_timing <= 60.0):
        notices.append(
            f"Ignition timing {settings.ignition_timing:.1f}° outside typical "
            "range [0, 60]; burn window may fall outside TDC"
        )
    if not (8.0 <= settings.air_fuel_ratio <= 22.0):
        notices.append(
            f"Air-fuel ratio {settings.air_fuel_ratio:.1f} outside typical range [8, 22]"
        )
    for msg in notices:
        warnings.warn(msg, stacklevel=2)
