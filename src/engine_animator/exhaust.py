"""
Exhaust Particle Module
Fixed-capacity particle arena and the emitter that drives it.

Both the 3D view (GPU point buffer) and the 2D view (canvas list) use an
:class:`ExhaustEmitter`; only the :class:`EmitterParameters` differ, so the
two views age, emit and retire particles by identical rules.

Per update
----------
1. age live particles, integrate position, apply drag and vertical bias,
   grow size, recompute opacity = max(0, 1 − age / max_age)
2. emission rate = (rpm / 1000) · (throttle / 100) · rate_constant
3. when the emission timer elapses spawn ceil(rate) particles, capped by
   the free slots of the pool
4. retire particles with age ≥ max_age or opacity ≤ epsilon

Storage is a set of numpy arrays indexed by slot, an alive mask and a
per-slot generation counter.  Nothing is allocated per particle.
"""

import math
from dataclasses import dataclass, field
from typing import List, NamedTuple, Optional, Tuple

import numpy as np
import numpy.typing as npt

from .engine_config import EngineSettings


# ── Parameters ────────────────────────────────────────────────────────────────


def _triple(values) -> Tuple[float, float, float]:
    x, y, z = (float(v) for v in values)
    return (x, y, z)


@dataclass
class EmitterParameters:
    """Emitter and particle constants.

    Attributes
    ----------
    capacity          : pool size
    rate_constant     : particles per emission at 1000 rpm, full throttle
    emission_interval : seconds between emissions
    anchors           : exhaust-port positions, one (x, y, z) per port
    anchor_velocity   : base velocity added to every new particle
    position_jitter   : half-width of the uniform position jitter per axis
    velocity_low      : lower bound of the random velocity per axis
    velocity_high     : upper bound of the random velocity per axis
    size_range        : (min, max) initial size
    max_age_range     : (min, max) lifetime  [s]
    size_growth       : size change per second
    velocity_scale    : multiplier from velocity to position change
    drag              : per-update velocity factor per axis  (< 1)
    vertical_bias     : vertical acceleration  [units/s²]
    opacity_epsilon   : particles at or below this opacity are retired
    """

    capacity: int = 1000
    rate_constant: float = 20.0
    emission_interval: float = 1.0 / 60.0
    anchors: Tuple[Tuple[float, float, float], ...] = (
        (-3.75, 1.0, -2.0),
        (-1.25, 1.0, -2.0),
        (1.25, 1.0, -2.0),
        (3.75, 1.0, -2.0),
    )
    anchor_velocity: Tuple[float, float, float] = (0.0, 0.0, 0.0)
    position_jitter: Tuple[float, float, float] = (0.1, 0.1, 0.1)
    velocity_low: Tuple[float, float, float] = (-1.0, 2.0, -4.0)
    velocity_high: Tuple[float, float, float] = (1.0, 5.0, -2.0)
    size_range: Tuple[float, float] = (8.0, 8.0)
    max_age_range: Tuple[float, float] = (3.0, 3.0)
    size_growth: float = -2.0
    velocity_scale: float = 1.0
    drag: Tuple[float, float, float] = (0.98, 0.95, 0.98)
    vertical_bias: float = -0.5
    opacity_epsilon: float = 0.01

    def __post_init__(self) -> None:
        if self.capacity < 1:
            raise ValueError(f"capacity must be ≥ 1, got {self.capacity}")
        if self.rate_constant < 0.0:
            raise ValueError(f"rate_constant must be ≥ 0, got {self.rate_constant}")
        if self.emission_interval <= 0.0:
            raise ValueError(
                f"emission_interval must be > 0 s, got {self.emission_interval}"
            )
        if len(self.anchors) == 0:
            raise ValueError("at least one exhaust anchor is required")
        self.anchors = tuple(_triple(a) for a in self.anchors)
        self.anchor_velocity = _triple(self.anchor_velocity)
        self.position_jitter = _triple(self.position_jitter)
        self.velocity_low = _triple(self.velocity_low)
        self.velocity_high = _triple(self.velocity_high)
        self.drag = _triple(self.drag)
        if any(lo > hi for lo, hi in zip(self.velocity_low, self.velocity_high)):
            raise ValueError("velocity_low must not exceed velocity_high")
        if not all(0.0 < d < 1.0 for d in self.drag):
            raise ValueError(f"drag factors must be in (0, 1), got {self.drag}")
        lo, hi = self.max_age_range
        if lo <= 0.0 or hi < lo:
            raise ValueError(
                f"max_age_range must satisfy 0 < min ≤ max, got {self.max_age_range}"
            )
        if self.size_range[0] < 0.0 or self.size_range[1] < self.size_range[0]:
            raise ValueError(f"invalid size_range {self.size_range}")
        if not (0.0 <= self.opacity_epsilon < 1.0):
            raise ValueError(
                f"opacity_epsilon must be in [0, 1), got {self.opacity_epsilon}"
            )


def create_emitter_3d(seed: Optional[int] = None) -> "ExhaustEmitter":
    """Emitter tuned for the 3D scene (point-sprite buffer of 1000)."""
    return ExhaustEmitter(EmitterParameters(), seed=seed)


def create_emitter_2d(seed: Optional[int] = None) -> "ExhaustEmitter":
    """Emitter tuned for the 2D canvas views (pixel units, 200 particles)."""
    params = EmitterParameters(
        capacity=200,
        rate_constant=10.0,
        emission_interval=1.0 / 30.0,
        anchors=(
            (-120.0, -50.0, 0.0),
            (-40.0, -50.0, 0.0),
            (40.0, -50.0, 0.0),
            (120.0, -50.0, 0.0),
        ),
        anchor_velocity=(-2.0, -1.0, 0.0),
        position_jitter=(10.0, 5.0, 0.0),
        velocity_low=(-1.0, 0.0, 0.0),
        velocity_high=(1.0, 2.0, 0.0),
        size_range=(3.0, 11.0),
        max_age_range=(2.0, 5.0),
        size_growth=15.0,
        velocity_scale=60.0,
    )
    return ExhaustEmitter(params, seed=seed)


# ── Particles ─────────────────────────────────────────────────────────────────


class ParticleHandle(NamedTuple):
    """Stable reference to one particle: slot plus the generation it was born in."""

    slot: int
    generation: int


@dataclass(frozen=True)
class Particle:
    """Read-only snapshot of a live particle."""

    handle: ParticleHandle
    position: Tuple[float, float, float]
    velocity: Tuple[float, float, float]
    age: float
    max_age: float
    size: float
    opacity: float


class ParticlePool:
    """Fixed slot arena with an alive mask and a generation per slot.

    A slot's generation is bumped every time a particle is born in it, so
    a :class:`ParticleHandle` taken earlier stops resolving once its
    particle is retired and the slot is reused.
    """

    def __init__(self, capacity: int) -> None:
        if capacity < 1:
            raise ValueError(f"capacity must be ≥ 1, got {capacity}")
        self.capacity = capacity
        self.position: npt.NDArray[np.float64] = np.zeros((capacity, 3))
        self.velocity: npt.NDArray[np.float64] = np.zeros((capacity, 3))
        self.age: npt.NDArray[np.float64] = np.zeros(capacity)
        self.max_age: npt.NDArray[np.float64] = np.ones(capacity)
        self.size: npt.NDArray[np.float64] = np.zeros(capacity)
        self.opacity: npt.NDArray[np.float64] = np.zeros(capacity)
        self.alive: npt.NDArray[np.bool_] = np.zeros(capacity, dtype=bool)
        self.generation: npt.NDArray[np.int64] = np.zeros(capacity, dtype=np.int64)

    @property
    def live_count(self) -> int:
        return int(np.count_nonzero(self.alive))

    @property
    def free_count(self) -> int:
        return self.capacity - self.live_count

    def allocate(self, count: int) -> npt.NDArray[np.intp]:
        """Claim up to ``count`` free slots and return their indices.

        Fewer slots (possibly none) are returned when the pool is full.
        """
        if count <= 0:
            return np.empty(0, dtype=np.intp)
        free = np.flatnonzero(~self.alive)[:count]
        self.alive[free] = True
        self.generation[free] += 1
        return free

    def release(self, slots: npt.NDArray[np.intp]) -> None:
        self.alive[slots] = False

    def clear(self) -> None:
        self.alive[:] = False

    def is_alive(self, handle: ParticleHandle) -> bool:
        if not (0 <= handle.slot < self.capacity):
            return False
        return bool(
            self.alive[handle.slot]
            and self.generation[handle.slot] == handle.generation
        )

    def live_slots(self) -> npt.NDArray[np.intp]:
        return np.flatnonzero(self.alive)


# ── Emitter ───────────────────────────────────────────────────────────────────


@dataclass
class EmitterStats:
    """Running counters, mostly for tests and the CLI summary."""

    emitted: int = 0
    dropped: int = 0
    retired: int = 0
    retired_handles: List[ParticleHandle] = field(default_factory=list)


class ExhaustEmitter:
    """Exhaust smoke driven by engine speed and throttle."""

    def __init__(
        self, params: Optional[EmitterParameters] = None, seed: Optional[int] = None
    ) -> None:
        self.params = params or EmitterParameters()
        self.pool = ParticlePool(self.params.capacity)
        self.rng = np.random.default_rng(seed)
        self.next_emission = 0.0
        self.stats = EmitterStats()

        self._anchors = np.array(self.params.anchors, dtype=float)
        self._anchor_velocity = np.array(self.params.anchor_velocity)
        self._jitter = np.array(self.params.position_jitter)
        self._v_low = np.array(self.params.velocity_low)
        self._v_high = np.array(self.params.velocity_high)
        self._drag = np.array(self.params.drag)

    # ── Rules ─────────────────────────────────────────────────────────────

    def emission_rate(self, settings: EngineSettings) -> float:
        """Particles per emission  (rpm/1000) · (throttle/100) · constant."""
        rpm = max(0.0, settings.rpm)
        throttle = min(100.0, max(0.0, settings.throttle))
        return rpm / 1000.0 * throttle / 100.0 * self.params.rate_constant

    def update(self, delta_time: float, settings: EngineSettings) -> int:
        """Run one frame of the lifecycle.

        Returns
        -------
        int  number of particles spawned this frame
        """
        dt = max(0.0, delta_time)

        self._integrate(dt)

        rate = self.emission_rate(settings)
        spawned = 0
        self.next_emission -= dt
        if self.next_emission <= 0.0:
            spawned = self._emit(math.ceil(rate))
            self.next_emission = self.params.emission_interval

        self._retire()
        return spawned

    def _integrate(self, dt: float) -> None:
        live = self.pool.live_slots()
        if live.size == 0:
            return
        pool = self.pool
        pool.age[live] += dt
        pool.position[live] += pool.velocity[live] * (self.params.velocity_scale * dt)
        pool.velocity[live] *= self._drag
        pool.velocity[live, 1] += self.params.vertical_bias * dt
        pool.size[live] = np.maximum(0.0, pool.size[live] + self.params.size_growth * dt)
        pool.opacity[live] = np.maximum(0.0, 1.0 - pool.age[live] / pool.max_age[live])

    def _emit(self, count: int) -> int:
        slots = self.pool.allocate(count)
        n = slots.size
        self.stats.dropped += max(0, count - n)
        if n == 0:
            return 0

        p = self.params
        pool = self.pool
        rng = self.rng
        ports = rng.integers(0, len(self._anchors), size=n)

        pool.position[slots] = self._anchors[ports] + rng.uniform(-1.0, 1.0, (n, 3)) * self._jitter
        pool.velocity[slots] = self._anchor_velocity + rng.uniform(self._v_low, self._v_high, (n, 3))
        pool.size[slots] = rng.uniform(p.size_range[0], p.size_range[1], n)
        pool.max_age[slots] = rng.uniform(p.max_age_range[0], p.max_age_range[1], n)
        pool.age[slots] = 0.0
        pool.opacity[slots] = 1.0

        self.stats.emitted += n
        return n

    def _retire(self) -> None:
        pool = self.pool
        live = pool.live_slots()
        if live.size == 0:
            return
        expired = live[
            (pool.age[live] >= pool.max_age[live])
            | (pool.opacity[live] <= self.params.opacity_epsilon)
        ]
        if expired.size:
            pool.release(expired)
            self.stats.retired += int(expired.size)
            self.stats.retired_handles.extend(
                ParticleHandle(int(s), int(pool.generation[s])) for s in expired
            )
            # keep the log bounded
            del self.stats.retired_handles[: -self.params.capacity]

    # ── Views ─────────────────────────────────────────────────────────────

    @property
    def live_count(self) -> int:
        return self.pool.live_count

    def clear(self) -> None:
        """Drop every particle and restart the emission timer."""
        self.pool.clear()
        self.next_emission = 0.0

    def handles(self) -> List[ParticleHandle]:
        pool = self.pool
        return [ParticleHandle(int(s), int(pool.generation[s])) for s in pool.live_slots()]

    def particles(self) -> List[Particle]:
        """Snapshot of every live particle; later updates do not affect it."""
        pool = self.pool
        out = []
        for s in pool.live_slots():
            out.append(
                Particle(
                    handle=ParticleHandle(int(s), int(pool.generation[s])),
                    position=_triple(pool.position[s]),
                    velocity=_triple(pool.velocity[s]),
                    age=float(pool.age[s]),
                    max_age=float(pool.max_age[s]),
                    size=float(pool.size[s]),
                    opacity=float(pool.opacity[s]),
                )
            )
        return out

    def live_positions(self) -> npt.NDArray[np.float64]:
        """Copy of live positions, shape (n, 3), for a vertex buffer upload."""
        return self.pool.position[self.pool.live_slots()].copy()

    def live_opacities(self) -> npt.NDArray[np.float64]:
        return self.pool.opacity[self.pool.live_slots()].copy()
