"""
Unit Tests for Engine Configuration and Topology
Tests settings snapshots, topology validation and the bank transform.
"""

import pytest
import math
import warnings
from dataclasses import replace
from engine_animator.engine_config import (
    CylinderGeometry,
    EngineSettings,
    EngineTopology,
    EngineType,
    available_engine_types,
    check_settings,
    create_inline_4,
    create_topology,
    create_v6,
)
from engine_animator.topology import (
    bank_local_to_world,
    bank_rotation,
    cycle_angle,
    cylinder_crank_angle,
    cylinder_geometry,
    cylinders_on_bank,
    firing_offset,
    firing_sequence_offsets,
)


class TestEngineSettings:
    def test_defaults(self):
        s = EngineSettings()
        assert s.rpm == 800.0
        assert s.throttle == 25.0
        assert s.air_fuel_ratio == 14.7
        assert s.ignition_timing == 15.0
        assert s.boost == 0.0

    def test_snapshot_is_detached(self):
        s = EngineSettings(rpm=3000.0)
        snap = s.snapshot()
        s.rpm = 5000.0
        assert snap.rpm == 3000.0

    def test_snapshot_clamps(self):
        snap = EngineSettings(rpm=-100.0, throttle=140.0).snapshot()
        assert snap.rpm == 0.0
        assert snap.throttle == 100.0
        assert EngineSettings(throttle=-5.0).snapshot().throttle == 0.0

    def test_snapshot_handles_nan(self):
        snap = EngineSettings(rpm=float("nan"), throttle=float("inf")).snapshot()
        assert snap.rpm == 0.0
        assert snap.throttle == 0.0

    def test_to_dict(self):
        d = EngineSettings(turbo_enabled=True).to_dict()
        assert d["turbo_enabled"] is True
        assert set(d) == {
            "rpm",
            "throttle",
            "air_fuel_ratio",
            "ignition_timing",
            "boost",
            "turbo_enabled",
            "exhaust_visible",
        }

    def test_check_settings_warns(self):
        with pytest.warns(UserWarning, match="Ignition timing"):
            check_settings(EngineSettings(ignition_timing=75.0))
        with pytest.warns(UserWarning, match="Air-fuel ratio"):
            check_settings(EngineSettings(air_fuel_ratio=30.0))

    def test_check_settings_quiet_for_defaults(self):
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            check_settings(EngineSettings())


class TestEngineTopology:
    """Test cases for EngineTopology validation."""

    def setup_method(self):
        self.inline = create_inline_4()

    def test_inline_4(self):
        assert self.inline.cylinder_count == 4
        assert self.inline.firing_order == (1, 3, 4, 2)
        assert self.inline.bank_angle == 0.0
        assert self.inline.firing_interval == pytest.approx(180.0)
        assert self.inline.bank_count == 1
        assert not self.inline.is_v_engine

    def test_v6(self):
        v6 = create_v6()
        assert v6.cylinder_count == 6
        assert v6.firing_order == (1, 4, 2, 5, 3, 6)
        assert v6.bank_angle == 60.0
        assert v6.firing_interval == pytest.approx(120.0)
        assert v6.bank_count == 2
        assert v6.is_v_engine

    def test_v6_firing_alternates_banks(self):
        v6 = create_v6()
        banks = [cylinder_geometry(v6, c).bank for c in v6.firing_order]
        assert banks == [0, 1, 0, 1, 0, 1]

    def test_frozen(self):
        with pytest.raises(Exception):
            self.inline.cylinder_count = 6

    def test_firing_order_must_be_permutation(self):
        with pytest.raises(ValueError, match="permutation"):
            replace(self.inline, firing_order=(1, 3, 3, 2))

    def test_crank_longer_than_rod(self):
        with pytest.raises(ValueError, match="rod_length"):
            replace(self.inline, crank_radius=6.0)

    def test_nonpositive_crank_radius(self):
        with pytest.raises(ValueError, match="crank_radius"):
            replace(self.inline, crank_radius=0.0)

    def test_bank_angle_range(self):
        with pytest.raises(ValueError, match="bank_angle"):
            replace(create_v6(), bank_angle=180.0)

    def test_inline_with_bank_angle(self):
        with pytest.raises(ValueError, match="inline"):
            replace(self.inline, bank_angle=30.0)

    def test_cylinder_count_mismatch(self):
        with pytest.raises(ValueError, match="cylinders length"):
            replace(self.inline, cylinders=self.inline.cylinders[:3])

    def test_zero_cylinders(self):
        with pytest.raises(ValueError, match="cylinder_count"):
            EngineTopology(
                name="none",
                engine_type=EngineType.INLINE,
                cylinder_count=0,
                firing_order=(),
                bank_angle=0.0,
                crank_radius=1.0,
                rod_length=3.0,
                stroke_scale=1.0,
                max_valve_lift=0.3,
            )

    def test_single_cylinder(self):
        topo = EngineTopology(
            name="single",
            engine_type=EngineType.INLINE,
            cylinder_count=1,
            firing_order=(1,),
            bank_angle=0.0,
            crank_radius=1.0,
            rod_length=3.0,
            stroke_scale=1.0,
            max_valve_lift=0.3,
            cylinders=(CylinderGeometry(1, 0, 0.0, 0.0, 2.0, 5.0, 0.3),),
        )
        assert topo.firing_interval == 720.0
        assert firing_offset(topo, 1) == 0.0


class TestCreateTopology:
    def test_selectors(self):
        assert available_engine_types() == ("inline4", "v6")
        assert create_topology("inline4") == create_inline_4()
        assert create_topology("v6").name == "v6"

    def test_unknown_selector(self):
        with pytest.raises(ValueError, match="Unknown engine type 'v8'"):
            create_topology("v8")


class TestTopologyFunctions:
    def setup_method(self):
        self.inline = create_inline_4()
        self.v6 = create_v6()

    def test_cylinder_geometry_range(self):
        with pytest.raises(ValueError):
            cylinder_geometry(self.inline, 0)
        with pytest.raises(ValueError):
            cylinder_geometry(self.inline, 5)

    def test_inline_cylinder_spacing(self):
        laterals = [c.lateral for c in self.inline.cylinders]
        assert laterals == pytest.approx([-3.75, -1.25, 1.25, 3.75])

    def test_firing_sequence_offsets(self):
        assert firing_sequence_offsets(self.inline) == [
            (1, 0.0),
            (3, 180.0),
            (4, 360.0),
            (2, 540.0),
        ]

    def test_cycle_angle(self):
        assert cycle_angle(self.inline, 1, 90.0) == pytest.approx(180.0)
        assert cycle_angle(self.inline, 2, 90.0) == pytest.approx(360.0)
        assert cycle_angle(self.v6, 4, 300.0) == pytest.approx(480.0)

    def test_cylinder_crank_angle(self):
        assert cylinder_crank_angle(self.inline, 1, 123.0) == pytest.approx(123.0)
        assert cylinder_crank_angle(self.inline, 3, 90.0) == pytest.approx(0.0)
        assert cylinder_crank_angle(self.inline, 2, 0.0) == pytest.approx(90.0)
        assert cylinder_crank_angle(self.v6, 4, 300.0) == pytest.approx(240.0)

    def test_inline_has_no_rotation(self):
        for c in self.inline.cylinders:
            assert bank_rotation(self.inline, c.number) == 0.0
            assert bank_local_to_world(c, c.lateral, 3.0) == pytest.approx(
                (c.lateral, 3.0, 0.0)
            )

    def test_v6_banks_mirror(self):
        left = cylinder_geometry(self.v6, 1)
        right = cylinder_geometry(self.v6, 4)
        assert bank_rotation(self.v6, 1) == pytest.approx(math.radians(30.0))
        assert bank_rotation(self.v6, 4) == pytest.approx(-math.radians(30.0))

        x1, y1, z1 = bank_local_to_world(left, 0.0, 4.0)
        x2, y2, z2 = bank_local_to_world(right, 0.0, 4.0)
        assert y1 == pytest.approx(y2)
        assert y1 == pytest.approx(4.0 * math.cos(math.radians(30.0)))
        assert z1 == pytest.approx(-z2)

    def test_bank_transform_preserves_length(self):
        geometry = cylinder_geometry(self.v6, 2)
        x, y, z = bank_local_to_world(geometry, 1.0, 5.0)
        assert math.hypot(y, z) == pytest.approx(5.0)
        assert x == 1.0

    def test_cylinders_on_bank(self):
        assert cylinders_on_bank(self.v6, 0) == [1, 2, 3]
        assert cylinders_on_bank(self.v6, 1) == [4, 5, 6]
        assert cylinders_on_bank(self.inline, 1) == []


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
