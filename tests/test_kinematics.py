"""
Unit Tests for Kinematics Module
Tests crank phase integration, slider-crank position and valve lift.
"""

import pytest
import math
import numpy as np
from engine_animator.kinematics import (
    CrankAngleIntegrator,
    SliderCrank,
    ValveTiming,
    ValveType,
    cam_angle,
    piston_position,
)


class TestCrankAngleIntegrator:
    """Test cases for CrankAngleIntegrator class."""

    def setup_method(self):
        self.integrator = CrankAngleIntegrator()

    def test_starts_at_tdc(self):
        assert self.integrator.phase == 0.0

    def test_angular_rate(self):
        assert CrankAngleIntegrator.angular_rate(60.0) == pytest.approx(360.0)
        assert CrankAngleIntegrator.angular_rate(800.0) == pytest.approx(4800.0)

    def test_advance_quarter_turn(self):
        """60 rpm is one revolution per second."""
        assert self.integrator.advance(0.25, 60.0) == pytest.approx(90.0)

    def test_advance_wraps(self):
        angle = self.integrator.advance(1.0 / 60.0, 6000.0)  # 600°
        assert angle == pytest.approx(240.0)

    def test_zero_dt_advances_nothing(self):
        self.integrator.advance(0.1, 600.0)
        before = self.integrator.phase
        assert self.integrator.advance(0.0, 600.0) == before

    def test_negative_dt_advances_nothing(self):
        self.integrator.advance(0.1, 600.0)
        before = self.integrator.phase
        assert self.integrator.advance(-0.5, 600.0) == before

    def test_nonpositive_rpm_advances_nothing(self):
        assert self.integrator.advance(0.05, 0.0) == 0.0
        assert self.integrator.advance(0.05, -1000.0) == 0.0

    def test_reset_wraps_negative_phase(self):
        self.integrator.reset(-90.0)
        assert self.integrator.phase == pytest.approx(270.0)

    def test_float_round_off_never_reaches_360(self):
        """-1e-17 % 360.0 evaluates to 360.0 in floating point."""
        self.integrator.reset(-1e-17)
        assert self.integrator.phase == 0.0

    def test_phase_in_range_over_many_frames(self):
        for _ in range(5000):
            angle = self.integrator.advance(1.0 / 60.0, 7250.0)
            assert 0.0 <= angle < 360.0


class TestCamAngle:
    def test_half_crank_speed(self):
        assert cam_angle(180.0) == pytest.approx(90.0)
        assert cam_angle(540.0) == pytest.approx(270.0)

    def test_wraps_at_720(self):
        assert cam_angle(720.0) == 0.0
        assert cam_angle(900.0) == pytest.approx(90.0)


class TestSliderCrank:
    """Test cases for SliderCrank class."""

    def setup_method(self):
        """Inline-4 scene geometry."""
        self.crank_radius = 1.5
        self.rod_length = 5.0
        self.sc = SliderCrank(self.crank_radius, self.rod_length)

    # ── Construction guards ───────────────────────────────────────────────

    def test_initialization(self):
        assert self.sc.r == self.crank_radius
        assert self.sc.l == self.rod_length
        assert self.sc.lambda_ratio == pytest.approx(0.3, rel=1e-12)

    def test_invalid_zero_crank_radius(self):
        with pytest.raises(ValueError):
            SliderCrank(0.0, 5.0)

    def test_invalid_zero_rod_length(self):
        with pytest.raises(ValueError):
            SliderCrank(1.0, 0.0)

    def test_invalid_rod_shorter_than_crank(self):
        """Connecting rod shorter than crank radius causes lockup."""
        with pytest.raises(ValueError):
            SliderCrank(2.0, 1.0)

    def test_unusual_rod_ratio_warns(self):
        with pytest.warns(UserWarning, match="Rod ratio"):
            SliderCrank(0.9, 1.0)

    # ── Position ──────────────────────────────────────────────────────────

    def test_position_at_tdc(self):
        assert self.sc.position(0.0) == pytest.approx(self.sc.top_dead_centre)
        assert self.sc.top_dead_centre == pytest.approx(6.5)

    def test_position_at_bdc(self):
        assert self.sc.position(180.0) == pytest.approx(self.sc.bottom_dead_centre)
        assert self.sc.bottom_dead_centre == pytest.approx(3.5)

    def test_position_at_90_degrees(self):
        expected = self.rod_length * math.sqrt(1.0 - 0.3**2)
        assert self.sc.position(90.0) == pytest.approx(expected, abs=1e-12)

    def test_position_range(self):
        for deg in range(0, 361):
            x = self.sc.position(float(deg))
            assert 3.5 - 1e-12 <= x <= 6.5 + 1e-12, f"x={x} out of range at {deg} deg"

    def test_position_symmetry(self):
        """x(θ) = x(−θ): position is an even function."""
        for deg in [30, 60, 90, 120, 150]:
            assert self.sc.position(deg) == pytest.approx(self.sc.position(-deg), abs=1e-12)

    def test_position_periodicity(self):
        for deg in [0, 45, 90, 180, 270]:
            assert self.sc.position(deg) == pytest.approx(
                self.sc.position(deg + 360.0), abs=1e-10
            )

    def test_equal_radius_and_rod_does_not_raise(self):
        """r = l reaches the asin limit at 90°; the ratio is clamped."""
        with pytest.warns(UserWarning):
            sc = SliderCrank(1.0, 1.0)
        for deg in np.linspace(0.0, 360.0, 73):
            assert math.isfinite(sc.position(float(deg)))

    def test_functional_form_matches_class(self):
        for deg in [0, 33, 90, 147, 180, 301]:
            assert piston_position(deg, 5.0, 1.5) == pytest.approx(self.sc.position(deg))

    def test_functional_form_clamps(self):
        assert math.isfinite(piston_position(90.0, 1.0, 1.0 + 1e-15))

    # ── Renderer helpers ──────────────────────────────────────────────────

    def test_offset_from_mid_stroke(self):
        assert self.sc.offset_from_mid_stroke(0.0, 0.8) == pytest.approx(5.0 * 0.8)
        assert self.sc.offset_from_mid_stroke(180.0, 0.8) == pytest.approx(2.0 * 0.8)

    def test_connecting_rod_angle_at_tdc(self):
        assert abs(self.sc.connecting_rod_angle(0.0)) < 1e-12

    def test_connecting_rod_angle_at_90_degrees(self):
        assert self.sc.connecting_rod_angle(90.0) == pytest.approx(math.atan2(1.5, 5.0))

    def test_connecting_rod_angle_odd(self):
        assert self.sc.connecting_rod_angle(-60.0) == pytest.approx(
            -self.sc.connecting_rod_angle(60.0)
        )


class TestValveTiming:
    """Test cases for ValveTiming class."""

    def setup_method(self):
        self.vt = ValveTiming()
        self.max_lift = 0.4

    def test_event_constants(self):
        assert self.vt.window("intake") == (350.0, 110.0)
        assert self.vt.window(ValveType.EXHAUST) == (130.0, 350.0)

    def test_unknown_valve_type(self):
        with pytest.raises(ValueError, match="valve_type"):
            self.vt.lift("spark", 10.0, self.max_lift)

    # ── Intake (wraps through 0°) ─────────────────────────────────────────

    def test_intake_peak_at_window_midpoint(self):
        """Unwrapped window −10° → 110°, midpoint 50°."""
        assert self.vt.lift("intake", 50.0, self.max_lift) == pytest.approx(self.max_lift)

    def test_intake_zero_at_open_and_close(self):
        assert self.vt.lift("intake", 350.0, self.max_lift) == 0.0
        assert self.vt.lift("intake", 110.0, self.max_lift) == 0.0

    def test_intake_open_either_side_of_zero(self):
        assert self.vt.lift("intake", 355.0, self.max_lift) > 0.0
        assert self.vt.lift("intake", 0.0, self.max_lift) > 0.0
        assert self.vt.lift("intake", 5.0, self.max_lift) > 0.0

    def test_intake_unwrap_value(self):
        """355° unwraps to −5°: progress 5/120."""
        expected = self.max_lift * math.sin(math.pi * 5.0 / 120.0)
        assert self.vt.lift("intake", 355.0, self.max_lift) == pytest.approx(expected)

    def test_intake_continuous_across_360(self):
        before = self.vt.lift("intake", 359.999, self.max_lift)
        after = self.vt.lift("intake", 0.0, self.max_lift)
        assert before == pytest.approx(after, abs=1e-4)

    def test_intake_closed_mid_cycle(self):
        for cam in [111.0, 180.0, 240.0, 349.0]:
            assert self.vt.lift("intake", cam, self.max_lift) == 0.0
            assert not self.vt.is_open("intake", cam)

    # ── Exhaust ───────────────────────────────────────────────────────────

    def test_exhaust_peak_at_window_midpoint(self):
        assert self.vt.lift("exhaust", 240.0, self.max_lift) == pytest.approx(self.max_lift)

    def test_exhaust_zero_at_open_and_close(self):
        assert self.vt.lift("exhaust", 130.0, self.max_lift) == 0.0
        assert self.vt.lift("exhaust", 350.0, self.max_lift) == 0.0

    def test_exhaust_closed_outside_window(self):
        for cam in [0.0, 60.0, 129.0, 351.0]:
            assert self.vt.lift("exhaust", cam, self.max_lift) == 0.0

    def test_lift_bounds(self):
        for cam in np.arange(0.0, 720.0, 0.5):
            for valve in ("intake", "exhaust"):
                lift = self.vt.lift(valve, float(cam), self.max_lift)
                assert 0.0 <= lift <= self.max_lift, f"{valve} lift {lift} at {cam}"

    def test_no_overlap_outside_shared_event(self):
        """The windows meet only at 350°, where both lifts are zero."""
        for cam in np.arange(0.0, 360.0, 0.5):
            i = self.vt.lift("intake", float(cam), self.max_lift)
            e = self.vt.lift("exhaust", float(cam), self.max_lift)
            assert i == 0.0 or e == 0.0


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
