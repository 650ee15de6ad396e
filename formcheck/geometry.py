"""
Stateless 2D angle helpers. Image coordinates: Y grows downward.
Degenerate input (zero-length rays, coincident points) yields None, never 0.
"""
from __future__ import annotations

import math
from typing import Optional

Coord = tuple[float, float]

# Rays shorter than this are treated as zero-length.
_EPS = 1e-6


def distance(a: Coord, b: Coord) -> float:
    return math.hypot(a[0] - b[0], a[1] - b[1])


def interior_angle(a: Coord, vertex: Coord, c: Coord) -> Optional[float]:
    """Angle at vertex for triangle a-vertex-c, in degrees [0, 180]."""
    ba = (a[0] - vertex[0], a[1] - vertex[1])
    bc = (c[0] - vertex[0], c[1] - vertex[1])
    norm_ba = math.hypot(ba[0], ba[1])
    norm_bc = math.hypot(bc[0], bc[1])
    if norm_ba < _EPS or norm_bc < _EPS:
        return None
    cos_val = (ba[0] * bc[0] + ba[1] * bc[1]) / (norm_ba * norm_bc)
    cos_val = max(-1.0, min(1.0, cos_val))
    return math.degrees(math.acos(cos_val))


def angle_from_vertical(p1: Coord, p2: Coord) -> Optional[float]:
    """
    Lean of segment p1->p2 from vertical, in degrees [0, 90].
    0 = perfectly vertical, 90 = horizontal. Direction of lean is discarded.
    """
    dx = abs(p2[0] - p1[0])
    dy = abs(p2[1] - p1[1])
    if dx + dy < _EPS:
        return None
    return math.degrees(math.atan2(dx, dy))


def in_range(value: float, lo: float, hi: float) -> bool:
    return lo <= value <= hi
