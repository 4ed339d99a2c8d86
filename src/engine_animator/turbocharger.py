"""
Turbocharger Module
First-order lag model of turbine spool-up, compressor speed and boost.

Model
-----
Exhaust energy is taken as proportional to engine speed times throttle:

    target = (rpm / rated_rpm) · (throttle / 100) · max_turbine_speed

While enabled the turbine relaxes toward the target each frame

    speed ← speed + (target − speed) · min(Δt · gain, 1)

which is an exponential approach: the step factor never exceeds one, so
the speed cannot pass its target.  The compressor follows the turbine at
a fixed efficiency and boost is a clamped function of compressor speed
and throttle.

While disabled everything decays by a fixed factor per frame, so
switching the turbo off never snaps the gauges to zero.
"""

from dataclasses import dataclass, replace
from typing import Optional

from .engine_config import EngineSettings
from .utilities import UnitConverter


@dataclass
class TurboParameters:
    """Turbocharger constants.

    Attributes
    ----------
    rated_rpm             : engine speed giving full exhaust flow   [rev/min]
    max_turbine_speed     : turbine speed at full flow              [rev/min]
    spool_gain            : lag gain                                [1/s]
    compressor_efficiency : compressor / turbine speed ratio        (< 1)
    boost_per_speed       : psi per 100 000 rpm at full throttle
    max_boost             : boost clamp                             [psi]
    ambient_temperature   : housing temperature at rest             [°F]
    speed_decay           : per-frame speed factor while disabled
    boost_decay           : per-frame boost factor while disabled
    temperature_decay     : per-frame factor on the excess over ambient
    """

    rated_rpm: float = 8000.0
    max_turbine_speed: float = 200_000.0
    spool_gain: float = 5.0
    compressor_efficiency: float = 0.98
    boost_per_speed: float = 15.0
    max_boost: float = 30.0
    ambient_temperature: float = 70.0
    speed_decay: float = 0.95
    boost_decay: float = 0.9
    temperature_decay: float = 0.95

    def __post_init__(self) -> None:
        if self.rated_rpm <= 0.0:
            raise ValueError(f"rated_rpm must be > 0, got {self.rated_rpm}")
        if self.max_turbine_speed <= 0.0:
            raise ValueError(
                f"max_turbine_speed must be > 0, got {self.max_turbine_speed}"
            )
        if self.spool_gain <= 0.0:
            raise ValueError(f"spool_gain must be > 0, got {self.spool_gain}")
        if not (0.0 < self.compressor_efficiency < 1.0):
            raise ValueError(
                "compressor_efficiency must be in (0, 1), "
                f"got {self.compressor_efficiency}"
            )
        if self.max_boost <= 0.0:
            raise ValueError(f"max_boost must be > 0 psi, got {self.max_boost}")
        for name in ("speed_decay", "boost_decay", "temperature_decay"):
            value = getattr(self, name)
            if not (0.0 < value < 1.0):
                raise ValueError(f"{name} must be in (0, 1), got {value}")


@dataclass(frozen=True)
class TurboState:
    """Turbocharger output for one frame.

    Attributes
    ----------
    turbine_speed    : [rev/min]
    compressor_speed : [rev/min]
    boost_pressure   : [psi]
    temperature      : [°F]
    enabled          : model active this frame
    """

    turbine_speed: float = 0.0
    compressor_speed: float = 0.0
    boost_pressure: float = 0.0
    temperature: float = 70.0
    enabled: bool = False

    @property
    def boost_bar(self) -> float:
        return UnitConverter.psi_to_bar(self.boost_pressure)

    @property
    def temperature_c(self) -> float:
        return UnitConverter.fahrenheit_to_celsius(self.temperature)


class TurbochargerModel:
    """Turbocharger spool dynamics.

    The only cross-frame state is the current :class:`TurboState`.
    """

    def __init__(self, params: Optional[TurboParameters] = None) -> None:
        self.params = params or TurboParameters()
        self._state = TurboState(temperature=self.params.ambient_temperature)

    # ── Accessors ─────────────────────────────────────────────────────────

    @property
    def state(self) -> TurboState:
        """Immutable copy of the current state."""
        return self._state

    @property
    def enabled(self) -> bool:
        return self._state.enabled

    @property
    def boost_pressure(self) -> float:
        """Boost fed back into the engine settings (0 when disabled)."""
        return self._state.boost_pressure if self._state.enabled else 0.0

    def set_enabled(self, enabled: bool) -> None:
        """Toggle the model.  State is kept; it decays or spools from here."""
        self._state = replace(self._state, enabled=bool(enabled))

    def reset(self) -> None:
        self._state = TurboState(
            temperature=self.params.ambient_temperature,
            enabled=self._state.enabled,
        )

    # ── Model ─────────────────────────────────────────────────────────────

    def target_turbine_speed(self, rpm: float, throttle: float) -> float:
        """Steady-state turbine speed for an operating point  [rev/min]."""
        exhaust_flow = max(0.0, rpm) / self.params.rated_rpm * (
            min(100.0, max(0.0, throttle)) / 100.0
        )
        return exhaust_flow * self.params.max_turbine_speed

    def boost_for(self, compressor_speed: float, throttle: float) -> float:
        """Boost for a compressor speed, clamped to max_boost  [psi]."""
        boost = (
            compressor_speed
            / 100_000.0
            * min(100.0, max(0.0, throttle))
            / 100.0
            * self.params.boost_per_speed
        )
        return min(self.params.max_boost, boost)

    def update(self, delta_time: float, settings: EngineSettings) -> TurboState:
        """Advance one frame.

        Parameters
        ----------
        delta_time : float  Frame duration  [s]
        settings   : EngineSettings  (read only)

        Returns
        -------
        TurboState  new state
        """
        p = self.params
        s = self._state

        if not s.enabled:
            ambient = p.ambient_temperature
            self._state = replace(
                s,
                turbine_speed=s.turbine_speed * p.speed_decay,
                compressor_speed=s.compressor_speed * p.speed_decay,
                boost_pressure=s.boost_pressure * p.boost_decay,
                temperature=ambient + (s.temperature - ambient) * p.temperature_decay,
            )
            return self._state

        target = self.target_turbine_speed(settings.rpm, settings.throttle)
        step = min(max(0.0, delta_time) * p.spool_gain, 1.0)
        turbine = s.turbine_speed + (target - s.turbine_speed) * step
        compressor = turbine * p.compressor_efficiency

        self._state = replace(
            s,
            turbine_speed=turbine,
            compressor_speed=compressor,
            boost_pressure=self.boost_for(compressor, settings.throttle),
            temperature=p.ambient_temperature
            + turbine / 1000.0
            + min(100.0, max(0.0, settings.throttle)) * 2.0,
        )
        return self._state
