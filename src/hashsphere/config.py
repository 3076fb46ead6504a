"""Configuration management for Hash Sphere."""

import logging
import math
import warnings
from typing import Literal

from pydantic import BaseModel, Field, model_validator
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)

GOLDEN_RATIO = (1.0 + math.sqrt(5.0)) / 2.0


class HybridWeights(BaseModel):
    """Weights for the hybrid ranking formula.

    The hybrid score combines five independent signals:
        hybrid_score = (
            rag * rag_weight +
            resonance * resonance_weight +
            proximity * proximity_weight +
            recency * recency_weight +
            anchor_energy * anchor_energy_weight
        )

    Weights should sum to 1.0 so that hybrid scores stay in [0, 1].

    Attributes:
        rag: Weight for exact cosine similarity (0.35 default).
        resonance: Weight for normalized resonance (0.15 default).
        proximity: Weight for projected-space proximity (0.20 default).
        recency: Weight for recency decay (0.15 default).
        anchor_energy: Weight for energy toward the nearest anchor (0.15 default).
    """

    rag: float = Field(default=0.35, ge=0.0, le=1.0, description="Weight for vector similarity")
    resonance: float = Field(
        default=0.15, ge=0.0, le=1.0, description="Weight for normalized resonance"
    )
    proximity: float = Field(
        default=0.20, ge=0.0, le=1.0, description="Weight for hash sphere proximity"
    )
    recency: float = Field(default=0.15, ge=0.0, le=1.0, description="Weight for recency decay")
    anchor_energy: float = Field(
        default=0.15, ge=0.0, le=1.0, description="Weight for anchor energy"
    )

    @property
    def total(self) -> float:
        """Sum of all five weights."""
        return self.rag + self.resonance + self.proximity + self.recency + self.anchor_energy

    def validate_weights_sum(self, tolerance: float = 0.01) -> bool:
        """Return True if the weights sum to 1.0 within tolerance."""
        return abs(self.total - 1.0) <= tolerance

    @model_validator(mode="after")
    def _warn_if_weights_not_normalized(self) -> "HybridWeights":
        """Warn if weights don't sum to approximately 1.0."""
        if not self.validate_weights_sum():
            warnings.warn(
                f"HybridWeights sum to {self.total:.3f}, expected ~1.0. "
                f"Hybrid scores may fall outside [0, 1].",
                UserWarning,
                stacklevel=2,
            )
            logger.warning(
                "HybridWeights sum to %.3f (expected ~1.0): "
                "rag=%.2f, resonance=%.2f, proximity=%.2f, recency=%.2f, anchor_energy=%.2f",
                self.total,
                self.rag,
                self.resonance,
                self.proximity,
                self.recency,
                self.anchor_energy,
            )
        return self


class ResonanceCoefficients(BaseModel):
    """Coefficients of R = sin(a*x) + cos(b*y) + tan(c*z).

    Global constants, injected at startup so alternate coefficient sets can
    be tested without code changes.
    """

    a: float = Field(default=math.pi / 4.0, description="Frequency of the x term")
    b: float = Field(default=math.e / 3.0, description="Frequency of the y term")
    c: float = Field(default=GOLDEN_RATIO / 2.0, description="Frequency of the z term")


class Settings(BaseSettings):
    """Hash Sphere configuration loaded from environment variables.

    All settings can be overridden via environment variables with the
    HASHSPHERE_ prefix. Nested groups use a double underscore:
        HASHSPHERE_EMBEDDING_DIM=384
        HASHSPHERE_HYBRID_WEIGHTS__RAG=0.5
    """

    env: Literal["development", "production", "test"] = Field(
        default="development",
        description="Environment: development, production, or test",
    )

    # Embeddings
    embedding_dim: int = Field(
        default=1536,
        ge=1,
        description="Length of every stored and queried embedding vector",
    )
    embedding_provider: Literal["openai", "fastembed", "hashing"] = Field(
        default="openai",
        description="Embedding provider used by the service facade",
    )
    embedding_model: str = Field(
        default="text-embedding-3-small",
        description="Embedding model name",
    )
    openai_api_key: str | None = Field(default=None, description="OpenAI API key")
    embedding_cache_size: int = Field(
        default=1000,
        ge=0,
        le=100000,
        description="Maximum number of embeddings to cache (0 disables the cache)",
    )

    # Projection
    projection_path: str | None = Field(
        default=None,
        description="Path to an offline-fit D x 3 projection matrix (.npy or .json)",
    )
    projection_seed: int = Field(
        default=7,
        description="Seed for the deterministic random projection used when no path is set",
    )
    projection_normalize: Literal["sphere", "none"] = Field(
        default="sphere",
        description="Scale projected points onto a sphere of target_radius, or leave raw",
    )
    target_radius: float = Field(
        default=1.0,
        gt=0.0,
        description="Radius of the sphere projected points are scaled onto",
    )

    # Resonance
    resonance: ResonanceCoefficients = Field(
        default_factory=ResonanceCoefficients,
        description="Coefficients of the resonance function",
    )
    anchor_beta: float = Field(
        default=1.0,
        gt=0.0,
        description="Sharpness of anchor energy exp(-beta * distance^2)",
    )
    tan_clamp: float = Field(
        default=1e6,
        gt=0.0,
        description="Magnitude bound for the tangent term near its poles",
    )
    resonance_threshold: float = Field(
        default=0.5,
        gt=0.0,
        lt=1.0,
        description="Default normalized resonance floor for resonance retrieval",
    )

    # Retrieval
    hybrid_weights: HybridWeights = Field(
        default_factory=HybridWeights,
        description="Weights for hybrid ranking signals",
    )
    default_top_k: int = Field(default=10, ge=1, le=1000, description="Default result size")
    max_top_k: int = Field(default=200, ge=1, le=10000, description="Hard cap on result size")
    ann_shortlist_size: int = Field(
        default=64,
        ge=1,
        description="Candidates fetched from the vector index before exact cosine",
    )
    spatial_shortlist_size: int = Field(
        default=64,
        ge=1,
        description="Nearest neighbours fetched from the spatial index per query",
    )
    resonance_shortlist_size: int = Field(
        default=64,
        ge=1,
        description="Highest anchor-energy candidates surfaced by resonance filtering",
    )
    recency_half_life_hours: float = Field(
        default=24.0 * 7,
        ge=0.1,
        description="Hours for the recency score to halve",
    )
    min_hash_similarity: float = Field(
        default=0.0,
        ge=0.0,
        le=1.0,
        description="Coarse hash-similarity floor applied before exact cosine (0 disables)",
    )

    # Drift
    drift_gamma: float = Field(
        default=0.05,
        ge=0.0,
        le=1.0,
        description="Fraction of the distance to the nearest anchor covered per drift step",
    )
    drift_batch_size: int = Field(
        default=256,
        ge=1,
        description="Records updated per write-locked drift batch",
    )
    drift_interval_seconds: float = Field(
        default=3600.0,
        gt=0.0,
        description="Interval between background drift scans",
    )
    drift_on_access: bool = Field(
        default=False,
        description="Drift retrieved records toward their anchors after each query",
    )

    # Evidence
    evidence_renormalize: bool = Field(
        default=True,
        description="Renormalize hybrid scores to sum to 1 before aggregating evidence",
    )

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: Literal["json", "text"] = Field(default="json", description="Log output format")

    model_config = {
        "env_prefix": "HASHSPHERE_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "env_nested_delimiter": "__",
    }

    @model_validator(mode="after")
    def validate_retrieval_limits(self) -> "Settings":
        """Validate that the default result size fits under the hard cap."""
        if self.default_top_k > self.max_top_k:
            raise ValueError(
                f"default_top_k ({self.default_top_k}) must not exceed "
                f"max_top_k ({self.max_top_k})"
            )
        return self

    @property
    def recency_half_life_ns(self) -> float:
        """Recency half-life expressed in nanoseconds."""
        return self.recency_half_life_hours * 3600.0 * 1e9


# Global settings instance
settings = Settings()
