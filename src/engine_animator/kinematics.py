"""
Kinematics Module
Crank phase integration, slider-crank piston motion and cam-driven valve lift.

Mathematical Basis
------------------
Slider-crank notation
    r  = crank radius                           [scene units]
    l  = connecting rod length                  [scene units]
    θ  = crank angle from TDC                   [deg]
    β  = connecting rod angle from bore axis    [rad]

Piston pin height above the crank centre
    β(θ)  = arcsin(r sin θ / l)
    x(θ)  = r cos θ + l cos β

x is largest at TDC (θ = 0, x = r + l) and smallest at BDC (θ = 180°,
x = l − r).  It is even and 360°-periodic in θ.

Valve events are expressed on the camshaft, which turns at half crank
speed:  cam = (crank / 2) mod 360.
"""

import math
from enum import Enum
from typing import Tuple, Union


# ── Crank phase ───────────────────────────────────────────────────────────────


class CrankAngleIntegrator:
    """Advances a single crank phase from engine speed.

    The phase is kept in [0, 360) degrees at all times.  Zero or negative
    time steps and non-positive rpm advance nothing.
    """

    def __init__(self, phase: float = 0.0) -> None:
        self._phase = 0.0
        self.reset(phase)

    @property
    def phase(self) -> float:
        """Current crank angle  [deg]  ∈ [0, 360)."""
        return self._phase

    @staticmethod
    def angular_rate(rpm: float) -> float:
        """Crank angular rate  (rpm / 60) · 360  [deg/s]."""
        if rpm <= 0.0:
            return 0.0
        return rpm / 60.0 * 360.0

    def advance(self, delta_time: float, rpm: float) -> float:
        """Advance the phase by one frame and return the new angle.

        Parameters
        ----------
        delta_time : float  Frame duration  [s]
        rpm        : float  Engine speed    [rev/min]

        Returns
        -------
        float  Crank angle  [deg]  ∈ [0, 360)
        """
        if delta_time > 0.0:
            self._phase = _wrap_360(
                self._phase + self.angular_rate(rpm) * delta_time
            )
        return self._phase

    def reset(self, phase: float = 0.0) -> None:
        self._phase = _wrap_360(phase)


def _wrap_360(angle: float) -> float:
    wrapped = angle % 360.0
    # -1e-17 % 360.0 == 360.0 in floating point
    return 0.0 if wrapped >= 360.0 else wrapped


def cam_angle(crank_angle_deg: float) -> float:
    """Camshaft angle for a crank angle  (crank / 2) mod 360  [deg]."""
    return _wrap_360(crank_angle_deg / 2.0)


# ── Slider-crank ──────────────────────────────────────────────────────────────


class SliderCrank:
    """Slider-crank piston kinematics.

    Attributes
    ----------
    r            : float  Crank radius
    l            : float  Connecting rod length
    lambda_ratio : float  r / l
    """

    # Typical automotive r/l range; outside it a notice is issued
    _LAMBDA_WARN_LOW = 0.2
    _LAMBDA_WARN_HIGH = 0.45

    def __init__(self, crank_radius: float, connecting_rod_length: float) -> None:
        """
        Parameters
        ----------
        crank_radius           : float  r  (must be > 0)
        connecting_rod_length  : float  l  (must be ≥ r)

        Raises
        ------
        ValueError
            If crank_radius ≤ 0, connecting_rod_length ≤ 0,
            or crank_radius > connecting_rod_length.

        Warns
        -----
        UserWarning
            If r / l is outside the typical range.
        """
        if crank_radius <= 0.0:
            raise ValueError(f"crank_radius must be > 0, got {crank_radius}")
        if connecting_rod_length <= 0.0:
            raise ValueError(
                f"connecting_rod_length must be > 0, got {connecting_rod_length}"
            )
        if crank_radius > connecting_rod_length:
            raise ValueError(
                f"crank_radius ({crank_radius}) must be ≤ connecting_rod_length "
                f"({connecting_rod_length}); otherwise mechanism locks up."
            )

        self.r = crank_radius
        self.l = connecting_rod_length
        self.lambda_ratio = crank_radius / connecting_rod_length

        if not (self._LAMBDA_WARN_LOW <= self.lambda_ratio <= self._LAMBDA_WARN_HIGH):
            import warnings

            warnings.warn(
                f"Rod ratio λ = {self.lambda_ratio:.4f} is outside the typical "
                f"range [{self._LAMBDA_WARN_LOW}, {self._LAMBDA_WARN_HIGH}]. "
                "Verify mechanism geometry.",
                stacklevel=2,
            )

    @property
    def top_dead_centre(self) -> float:
        """Pin height at TDC  r + l."""
        return self.r + self.l

    @property
    def bottom_dead_centre(self) -> float:
        """Pin height at BDC  l − r."""
        return self.l - self.r

    def _rod_sine(self, sin_theta: float) -> float:
        """sin β = r sin θ / l, clamped to [-1, 1].

        Only r ≈ l can push this past ±1, and then only by round-off.
        """
        return max(-1.0, min(1.0, self.r * sin_theta / self.l))

    def position(self, crank_angle_deg: float) -> float:
        """Piston pin height above crank centre  x(θ) = r cos θ + l cos β.

        Parameters
        ----------
        crank_angle_deg : float  [deg],  0 = TDC

        Returns
        -------
        float  ∈ [l − r, l + r]
        """
        theta = math.radians(crank_angle_deg)
        beta = math.asin(self._rod_sine(math.sin(theta)))
        return self.r * math.cos(theta) + self.l * math.cos(beta)

    def offset_from_mid_stroke(self, crank_angle_deg: float, scale: float = 1.0) -> float:
        """Linear offset along the bore used by renderers  (x − r) · scale."""
        return (self.position(crank_angle_deg) - self.r) * scale

    def connecting_rod_angle(self, crank_angle_deg: float) -> float:
        """Rod tilt as drawn by the renderers  atan2(r sin θ, l)  [rad]."""
        theta = math.radians(crank_angle_deg)
        return math.atan2(self.r * math.sin(theta), self.l)


def piston_position(
    crank_angle_deg: float, rod_length: float, crank_radius: float
) -> float:
    """Functional form of :meth:`SliderCrank.position`.

    The asin ratio is clamped rather than validated, so near-limit
    geometries never raise mid-animation.
    """
    theta = math.radians(crank_angle_deg)
    ratio = max(-1.0, min(1.0, crank_radius * math.sin(theta) / rod_length))
    return crank_radius * math.cos(theta) + rod_length * math.cos(math.asin(ratio))


# ── Valve timing ──────────────────────────────────────────────────────────────


class ValveType(Enum):
    INTAKE = "intake"
    EXHAUST = "exhaust"


class ValveTiming:
    """Half-sine valve lift profiles on the camshaft.

    All angles are camshaft degrees in [0, 360).

    Event table
    ─────────────────────────────────────────────
    Valve     Opens   Closes   Notes
    ─────────────────────────────────────────────
    Intake    350°    110°     window wraps through 0°
    Exhaust   130°    350°
    ─────────────────────────────────────────────

    Lift  L = max_lift · sin(π · ξ),  ξ = elapsed / duration ∈ [0, 1].
    """

    INTAKE_OPEN: float = 350.0
    INTAKE_CLOSE: float = 110.0
    EXHAUST_OPEN: float = 130.0
    EXHAUST_CLOSE: float = 350.0

    @staticmethod
    def _valve_type(valve_type: Union[ValveType, str]) -> ValveType:
        try:
            return ValveType(valve_type)
        except ValueError:
            raise ValueError(
                f"valve_type must be 'intake' or 'exhaust', got {valve_type!r}"
            ) from None

    def window(self, valve_type: Union[ValveType, str]) -> Tuple[float, float]:
        """(open, close) cam angles for a valve  [deg]."""
        if self._valve_type(valve_type) == ValveType.INTAKE:
            return self.INTAKE_OPEN, self.INTAKE_CLOSE
        return self.EXHAUST_OPEN, self.EXHAUST_CLOSE

    def progress(self, valve_type: Union[ValveType, str], cam_angle_deg: float) -> float:
        """Fraction of the open event elapsed, or -1.0 when the valve is shut."""
        vt = self._valve_type(valve_type)
        angle = _wrap_360(cam_angle_deg)

        if vt == ValveType.INTAKE:
            if not (angle >= self.INTAKE_OPEN or angle <= self.INTAKE_CLOSE):
                return -1.0
            # Unwrap onto a continuous axis running from -10° to 110°
            open_unwrapped = self.INTAKE_OPEN - 360.0
            if angle >= self.INTAKE_OPEN:
                angle -= 360.0
            duration = self.INTAKE_CLOSE - open_unwrapped
            return (angle - open_unwrapped) / duration

        if not (self.EXHAUST_OPEN <= angle <= self.EXHAUST_CLOSE):
            return -1.0
        duration = self.EXHAUST_CLOSE - self.EXHAUST_OPEN
        return (angle - self.EXHAUST_OPEN) / duration

    def is_open(self, valve_type: Union[ValveType, str], cam_angle_deg: float) -> bool:
        """True if the valve is inside its open window (boundaries included)."""
        return self.progress(valve_type, cam_angle_deg) >= 0.0

    def lift(
        self,
        valve_type: Union[ValveType, str],
        cam_angle_deg: float,
        max_lift: float,
    ) -> float:
        """Valve lift at a camshaft angle.

        Parameters
        ----------
        valve_type    : "intake" or "exhaust"
        cam_angle_deg : float  [deg], any value (normalised internally)
        max_lift      : float  peak lift

        Returns
        -------
        float  Lift ∈ [0, max_lift]; exactly 0 at the open/close events.

        Raises
        ------
        ValueError
            If valve_type is not intake or exhaust.
        """
        xi = self.progress(valve_type, cam_angle_deg)
        if xi < 0.0 or xi > 1.0:
            return 0.0
        # sin(π) is 1.2e-16, not 0
        if xi == 0.0 or xi == 1.0:
            return 0.0
        return max(0.0, max_lift * math.sin(math.pi * xi))
