"""
Geometry of a single homogeneous pipe loop.

Units: SI (m, m^2, m^3). Form inputs arrive in mm and are converted here.
"""

import math

from .errors import InvalidGeometry


BORE_FLOOR = 1e-4  # m, smallest inner diameter used for volume


def mm(x: float) -> float:
    return x / 1000.0


def total_length(length_m: float, loops: float) -> float:
    """Total pipe length; a loop count below one counts as a single loop."""
    return length_m * max(1, loops)


def inner_diameter(od: float, wall: float, floor: float = BORE_FLOOR) -> float:
    """Inner diameter [m] from outer diameter and wall thickness [m].

    The bore never drops below ``floor`` so a wall thicker than half the OD
    still yields a small positive volume. Non-finite or negative inputs are
    rejected before flooring.
    """
    for label, value in (("outer diameter", od), ("wall thickness", wall)):
        if not math.isfinite(value) or value < 0.0:
            raise InvalidGeometry(f"{label} must be a finite non-negative value, got {value!r}")
    raw = od - 2.0 * wall
    if not math.isfinite(raw):
        raise InvalidGeometry(f"inner diameter is not finite (od={od!r}, wall={wall!r})")
    return max(raw, floor)


def outer_surface_area(od: float, length: float) -> float:
    """Outer wall area pi * D_o * L, the permeation surface of a barrier pipe."""
    return math.pi * od * length


def bore_volume(inner_d: float, length: float) -> float:
    """Water volume contained in the bore, pi * D_i^2 / 4 * L."""
    return math.pi * (inner_d ** 2) / 4.0 * length


def effective_volume(volume_geom: float, use_manual: bool, manual_volume) -> float:
    """System volume used for the volume regime and for the normalized rate."""
    if use_manual and manual_volume is not None and manual_volume > 0:
        return float(manual_volume)
    return volume_geom
