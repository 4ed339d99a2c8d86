"""
Topology Functions
Stateless helpers that parameterise the timing and kinematics modules by an
``EngineTopology`` record.

Coordinate frame handed to renderers
    x : along the crankshaft axis
    y : vertical
    z : across the engine

A bank is rotated about the x axis by its bank angle; bank-local
(lateral, axial) pairs become world (x, y, z) as

    x = lateral
    y = axial · cos(bank_angle)
    z = axial · sin(bank_angle)
"""

import math
from typing import List, Tuple

from .combustion import CombustionTimingModel
from .engine_config import CylinderGeometry, EngineTopology


def cylinder_geometry(topology: EngineTopology, cylinder: int) -> CylinderGeometry:
    """Geometry record of a 1-indexed cylinder.

    Raises
    ------
    ValueError
        If the cylinder number is out of range for the topology.
    """
    if not (1 <= cylinder <= topology.cylinder_count):
        raise ValueError(
            f"cylinder must be in 1..{topology.cylinder_count}, got {cylinder}"
        )
    return topology.cylinders[cylinder - 1]


def firing_offset(topology: EngineTopology, cylinder: int) -> float:
    """indexOf(firing_order, cylinder) · 720 / N  [deg]."""
    return CombustionTimingModel.firing_offset(cylinder, topology.firing_order)


def cycle_angle(topology: EngineTopology, cylinder: int, crank_angle_deg: float) -> float:
    """Cylinder's four-stroke angle  (2 · crank − offset) mod 720  [deg].

    Drives the burn pulse.  A later place in the firing order delays the
    cylinder by its offset.
    """
    return CombustionTimingModel.adjusted_angle(
        cylinder, crank_angle_deg, topology.firing_order
    )


def cylinder_crank_angle(
    topology: EngineTopology, cylinder: int, crank_angle_deg: float
) -> float:
    """Crank angle seen by one cylinder's throw  (cycle_angle / 2) mod 360  [deg].

    Piston, connecting rod and cam of the cylinder are evaluated here.
    Cylinder 1 reads the global crank angle.
    """
    return (cycle_angle(topology, cylinder, crank_angle_deg) / 2.0) % 360.0


def bank_rotation(topology: EngineTopology, cylinder: int) -> float:
    """Bank rotation of a cylinder about the crank axis  [rad]."""
    return math.radians(cylinder_geometry(topology, cylinder).bank_angle)


def bank_local_to_world(
    geometry: CylinderGeometry, lateral: float, axial: float
) -> Tuple[float, float, float]:
    """Rotate a bank-local point into the renderer frame.

    Parameters
    ----------
    geometry : CylinderGeometry  supplies the bank angle
    lateral  : float             position along the crank axis
    axial    : float             position along the bore (up = positive)

    Returns
    -------
    Tuple[float, float, float]  (x, y, z)
    """
    angle = math.radians(geometry.bank_angle)
    return (lateral, axial * math.cos(angle), axial * math.sin(angle))


def cylinders_on_bank(topology: EngineTopology, bank: int) -> List[int]:
    """Cylinder numbers on a bank, front to back."""
    return [c.number for c in topology.cylinders if c.bank == bank]


def firing_sequence_offsets(topology: EngineTopology) -> List[Tuple[int, float]]:
    """(cylinder, offset) pairs in firing order."""
    return [(cyl, firing_offset(topology, cyl)) for cyl in topology.firing_order]
