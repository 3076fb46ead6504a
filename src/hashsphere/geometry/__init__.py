"""Geometry of the hash sphere: projection, coordinates and resonance."""

from .projection import CoordinateProjector, ProjectionMatrix, fit_pca_projection
from .resonance import ResonanceScorer, sigmoid
from .spherical import Geometry, cartesian_to_spherical, spherical_to_cartesian

__all__ = [
    "CoordinateProjector",
    "Geometry",
    "ProjectionMatrix",
    "ResonanceScorer",
    "cartesian_to_spherical",
    "fit_pca_projection",
    "sigmoid",
    "spherical_to_cartesian",
]
