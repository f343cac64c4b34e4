"""
Oxygen permeation through polymer pipe walls of closed hydronic loops.

Units: SI (m, m^2, m^3, g, day). CLI accepts mm inputs and converts.
"""

__all__ = []
