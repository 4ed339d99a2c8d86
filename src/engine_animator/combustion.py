"""
Combustion Timing Module
Stylised per-cylinder burn pulse driven by firing order and spark advance.

Model
-----
Each cylinder is delayed in a common 720° four-stroke frame by its
position in the firing order:

    offset(i)  = indexOf(firing_order, i) · 720 / N
    adjusted   = (2 · crank − offset) mod 720

The burn window opens at spark, ``720 − ignition_timing``, and lasts 60°.
Within it the intensity follows a throttle-scaled half sine:

    I = max(0, sin(π · ξ) · throttle / 100),   ξ = (adjusted − start) / 60

The window is measured modulo 720, so with 15° of advance it spans
705° → 720° and continues 0° → 45°.  This yields one pulse per cylinder
per cycle, in firing order and separated by the firing interval 720 / N.
"""

import math
from typing import List, Sequence


class CombustionTimingModel:
    """Burn-window intensity shared by every renderer.

    Stateless: identical inputs always give identical output.
    """

    CYCLE_DEGREES: float = 720.0
    BURN_DURATION: float = 60.0

    @staticmethod
    def firing_offset(cylinder: int, firing_order: Sequence[int]) -> float:
        """Cylinder phase offset in the 720° frame  [deg].

        Raises
        ------
        ValueError
            If ``cylinder`` does not appear in ``firing_order``.
        """
        try:
            position = list(firing_order).index(cylinder)
        except ValueError:
            raise ValueError(
                f"cylinder {cylinder} is not in firing order {list(firing_order)}"
            ) from None
        return position * (CombustionTimingModel.CYCLE_DEGREES / len(firing_order))

    @classmethod
    def adjusted_angle(
        cls, cylinder: int, crank_angle_deg: float, firing_order: Sequence[int]
    ) -> float:
        """Cylinder angle in the four-stroke frame  ∈ [0, 720)  [deg]."""
        offset = cls.firing_offset(cylinder, firing_order)
        adjusted = (crank_angle_deg * 2.0 - offset) % cls.CYCLE_DEGREES
        return 0.0 if adjusted >= cls.CYCLE_DEGREES else adjusted

    @classmethod
    def window_start(cls, ignition_timing_deg: float) -> float:
        """Spark angle in the four-stroke frame  720 − advance  [deg]."""
        return cls.CYCLE_DEGREES - ignition_timing_deg

    @classmethod
    def burn_progress(cls, adjusted_deg: float, ignition_timing_deg: float) -> float:
        """Fraction of the burn window elapsed, or -1.0 outside it."""
        elapsed = (adjusted_deg - cls.window_start(ignition_timing_deg)) % cls.CYCLE_DEGREES
        if elapsed > cls.BURN_DURATION:
            return -1.0
        return elapsed / cls.BURN_DURATION

    def intensity(
        self,
        cylinder: int,
        crank_angle_deg: float,
        firing_order: Sequence[int],
        ignition_timing_deg: float,
        throttle_percent: float,
    ) -> float:
        """Combustion intensity of one cylinder.

        Parameters
        ----------
        cylinder            : int    1-indexed cylinder number
        crank_angle_deg     : float  global crank phase  [deg]
        firing_order        : sequence of cylinder numbers
        ignition_timing_deg : float  spark advance  [deg]
        throttle_percent    : float  0–100

        Returns
        -------
        float  ∈ [0, 1]
        """
        adjusted = self.adjusted_angle(cylinder, crank_angle_deg, firing_order)
        xi = self.burn_progress(adjusted, ignition_timing_deg)
        if xi <= 0.0 or xi >= 1.0:
            return 0.0
        throttle = min(100.0, max(0.0, throttle_percent))
        return max(0.0, math.sin(xi * math.pi) * throttle / 100.0)

    def is_burning(
        self,
        cylinder: int,
        crank_angle_deg: float,
        firing_order: Sequence[int],
        ignition_timing_deg: float,
    ) -> bool:
        """True while the cylinder is strictly inside its burn window."""
        adjusted = self.adjusted_angle(cylinder, crank_angle_deg, firing_order)
        xi = self.burn_progress(adjusted, ignition_timing_deg)
        return 0.0 < xi < 1.0

    def peak_crank_angles(
        self, firing_order: Sequence[int], ignition_timing_deg: float
    ) -> List[float]:
        """Global crank angle of each cylinder's peak, in firing-order listing.

        The peak sits at the window midpoint, adjusted = start + 30°.
        Returned angles are in [0, 360) since the crank phase wraps there.
        """
        peak_adjusted = self.window_start(ignition_timing_deg) + self.BURN_DURATION / 2.0
        angles = []
        for cylinder in firing_order:
            offset = self.firing_offset(cylinder, firing_order)
            crank = ((peak_adjusted + offset) % self.CYCLE_DEGREES) / 2.0
            angles.append(crank % 360.0)
        return angles
