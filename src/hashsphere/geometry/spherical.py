"""Cartesian <-> hyperspherical conversion.

Conventions:
    r = ||(x, y, z)||
    phi = asin(z / r), the elevation, in [-pi/2, pi/2]
    theta = atan2(y, x), the azimuth, in [-pi, pi]

The origin is the one degenerate point: r = 0 leaves phi and theta
undefined, and both are reported as 0.
"""

from __future__ import annotations

import math
from dataclasses import dataclass


def cartesian_to_spherical(x: float, y: float, z: float) -> tuple[float, float, float]:
    """Return (r, phi, theta) for a Cartesian point."""
    r = math.sqrt(x * x + y * y + z * z)
    if r == 0.0:
        return 0.0, 0.0, 0.0
    # Rounding can push z/r a hair outside [-1, 1].
    ratio = max(-1.0, min(1.0, z / r))
    return r, math.asin(ratio), math.atan2(y, x)


def spherical_to_cartesian(r: float, phi: float, theta: float) -> tuple[float, float, float]:
    """Return (x, y, z) for hyperspherical coordinates."""
    cos_phi = math.cos(phi)
    return (
        r * cos_phi * math.cos(theta),
        r * cos_phi * math.sin(theta),
        r * math.sin(phi),
    )


@dataclass(frozen=True)
class Geometry:
    """A projected position in both representations."""

    x: float
    y: float
    z: float

    @property
    def cartesian(self) -> tuple[float, float, float]:
        return (self.x, self.y, self.z)

    @property
    def spherical(self) -> tuple[float, float, float]:
        return cartesian_to_spherical(self.x, self.y, self.z)

    @property
    def r(self) -> float:
        return self.spherical[0]

    @property
    def phi(self) -> float:
        return self.spherical[1]

    @property
    def theta(self) -> float:
        return self.spherical[2]

    @classmethod
    def from_spherical(cls, r: float, phi: float, theta: float) -> Geometry:
        return cls(*spherical_to_cartesian(r, phi, theta))
