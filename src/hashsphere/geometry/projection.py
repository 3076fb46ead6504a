"""Projection of full embeddings into the 3D hash sphere.

The projection matrix P (D x 3) is fit offline, versioned, and loaded as
immutable configuration. The engine never refits it online: a moving
coordinate space under existing records would invalidate every stored
position.

Example:
    ```python
    import numpy as np
    from hashsphere.geometry.projection import (
        CoordinateProjector,
        ProjectionMatrix,
        fit_pca_projection,
    )

    # Offline, once
    matrix = fit_pca_projection(reference_embeddings, version="pca-2024-06")
    matrix.save("projection.npy")

    # At startup
    projector = CoordinateProjector(ProjectionMatrix.load("projection.npy"))
    geometry = projector.project(embedding)
    ```
"""

from __future__ import annotations

import json
import logging
import math
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Literal

import numpy as np

from hashsphere.exceptions import ConfigurationError, DimensionMismatchError

from .spherical import Geometry

if TYPE_CHECKING:
    from hashsphere.config import Settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProjectionMatrix:
    """An immutable D x 3 projection with a version tag.

    Attributes:
        matrix: Read-only float64 array of shape (D, 3).
        version: Identifies which offline fit produced the matrix.
        mean: Optional centering vector of length D subtracted before projecting.
    """

    matrix: np.ndarray
    version: str
    mean: np.ndarray | None = None

    def __post_init__(self) -> None:
        m = np.array(self.matrix, dtype=np.float64)
        if m.ndim != 2 or m.shape[1] != 3:
            raise ConfigurationError(f"projection matrix must have shape (D, 3), got {m.shape}")
        m.setflags(write=False)
        object.__setattr__(self, "matrix", m)
        if self.mean is not None:
            mean = np.array(self.mean, dtype=np.float64).reshape(-1)
            if mean.shape[0] != m.shape[0]:
                raise ConfigurationError(
                    f"projection mean has length {mean.shape[0]}, expected {m.shape[0]}"
                )
            mean.setflags(write=False)
            object.__setattr__(self, "mean", mean)

    @property
    def dim(self) -> int:
        return int(self.matrix.shape[0])

    @classmethod
    def random(cls, dim: int, seed: int = 7) -> ProjectionMatrix:
        """Deterministic Gaussian random projection, used when no fit is configured."""
        rng = np.random.default_rng(seed)
        matrix = rng.standard_normal((dim, 3)) / math.sqrt(dim)
        return cls(matrix=matrix, version=f"random-{dim}-{seed}")

    @classmethod
    def load(cls, path: str | Path) -> ProjectionMatrix:
        """Load a matrix from .npy, or from .json with "matrix", "version" and optional "mean"."""
        path = Path(path)
        if not path.exists():
            raise ConfigurationError(f"projection file not found: {path}")
        if path.suffix == ".npy":
            return cls(matrix=np.load(path), version=path.stem)
        if path.suffix == ".json":
            data = json.loads(path.read_text(encoding="utf-8"))
            if "matrix" not in data:
                raise ConfigurationError(f"projection file {path} has no 'matrix' key")
            return cls(
                matrix=np.asarray(data["matrix"], dtype=np.float64),
                version=str(data.get("version", path.stem)),
                mean=data.get("mean"),
            )
        raise ConfigurationError(f"unsupported projection file type: {path.suffix}")

    def save(self, path: str | Path) -> None:
        path = Path(path)
        if path.suffix == ".npy":
            np.save(path, self.matrix)
            return
        payload: dict[str, object] = {"version": self.version, "matrix": self.matrix.tolist()}
        if self.mean is not None:
            payload["mean"] = self.mean.tolist()
        path.write_text(json.dumps(payload), encoding="utf-8")


def fit_pca_projection(
    embeddings: Sequence[Sequence[float]] | np.ndarray,
    version: str = "pca",
) -> ProjectionMatrix:
    """Fit a 3-component PCA projection over a reference corpus.

    Offline tool: run it in a batch job and ship the result as configuration.
    Uses an SVD of the centered data; the top three right singular vectors
    become the columns of P.
    """
    data = np.asarray(embeddings, dtype=np.float64)
    if data.ndim != 2 or data.shape[0] < 2:
        raise ValueError("need a 2D array with at least two embeddings to fit PCA")
    mean = data.mean(axis=0)
    centered = data - mean
    _, _, vt = np.linalg.svd(centered, full_matrices=False)
    components = vt[:3].T
    if components.shape[1] < 3:
        components = np.pad(components, ((0, 0), (0, 3 - components.shape[1])))
    logger.info("Fitted PCA projection %s over %d embeddings", version, data.shape[0])
    return ProjectionMatrix(matrix=components, version=version, mean=mean)


class CoordinateProjector:
    """Maps an embedding to a position in the hash sphere.

    Cartesian = (embedding - mean) @ P, then scaled onto a sphere of
    ``target_radius`` when ``normalize == "sphere"``. A projection that
    lands exactly on the origin stays there (the degenerate point).
    """

    def __init__(
        self,
        projection: ProjectionMatrix,
        normalize: Literal["sphere", "none"] = "sphere",
        target_radius: float = 1.0,
    ) -> None:
        if target_radius <= 0:
            raise ValueError(f"target_radius must be positive, got {target_radius}")
        self.projection = projection
        self.normalize = normalize
        self.target_radius = target_radius

    @classmethod
    def from_settings(cls, settings: Settings) -> CoordinateProjector:
        if settings.projection_path:
            projection = ProjectionMatrix.load(settings.projection_path)
        else:
            projection = ProjectionMatrix.random(settings.embedding_dim, settings.projection_seed)
        if projection.dim != settings.embedding_dim:
            raise ConfigurationError(
                f"projection {projection.version} expects dimension {projection.dim}, "
                f"but embedding_dim is {settings.embedding_dim}"
            )
        logger.info("Loaded projection %s (dim=%d)", projection.version, projection.dim)
        return cls(
            projection,
            normalize=settings.projection_normalize,
            target_radius=settings.target_radius,
        )

    @property
    def dim(self) -> int:
        return self.projection.dim

    @property
    def version(self) -> str:
        return self.projection.version

    def project(self, embedding: Sequence[float] | np.ndarray) -> Geometry:
        """Project one embedding.

        Raises:
            DimensionMismatchError: If the embedding length differs from D.
        """
        vec = np.asarray(embedding, dtype=np.float64).reshape(-1)
        if vec.shape[0] != self.dim:
            raise DimensionMismatchError(self.dim, int(vec.shape[0]))
        if self.projection.mean is not None:
            vec = vec - self.projection.mean
        point = vec @ self.projection.matrix
        if not np.all(np.isfinite(point)):
            logger.debug("Non-finite projection; placing point at the origin")
            return Geometry(0.0, 0.0, 0.0)
        if self.normalize == "sphere":
            norm = float(np.linalg.norm(point))
            if norm == 0.0:
                return Geometry(0.0, 0.0, 0.0)
            point = point * (self.target_radius / norm)
        return Geometry(float(point[0]), float(point[1]), float(point[2]))
