"""Embedding providers.

The engine only needs vectors of the configured dimension D; these
adapters produce them from text for the async service API.

Example:
    ```python
    from hashsphere.config import Settings
    from hashsphere.embeddings import get_embedder

    embedder = get_embedder(Settings(embedding_provider="hashing", embedding_dim=256))
    vector = await embedder.embed("hello world")
    ```
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from hashsphere.exceptions import ConfigurationError

from .base import Embedder
from .cached import CacheStats, CachedEmbedder
from .hashing import HashingEmbedder

if TYPE_CHECKING:
    from hashsphere.config import Settings


def get_embedder(settings: Settings | None = None) -> Embedder:
    """Build the configured embedder, wrapped in an LRU cache when enabled.

    Provider modules are imported on demand so the hashing provider works
    without loading the OpenAI or FastEmbed clients.

    Raises:
        ConfigurationError: If the provider's dimension disagrees with embedding_dim.
    """
    if settings is None:
        from hashsphere.config import Settings

        settings = Settings()

    provider = settings.embedding_provider
    embedder: Embedder
    if provider == "openai":
        from .openai import OpenAIEmbedder

        embedder = OpenAIEmbedder(
            model=settings.embedding_model,
            api_key=settings.openai_api_key,
            dimensions=settings.embedding_dim,
        )
    elif provider == "fastembed":
        from .fastembed import FastEmbedEmbedder

        embedder = FastEmbedEmbedder(model=settings.embedding_model)
    elif provider == "hashing":
        embedder = HashingEmbedder(dimensions=settings.embedding_dim)
    else:
        raise ConfigurationError(f"Unknown embedding provider: {provider}")

    if embedder.dimensions != settings.embedding_dim:
        raise ConfigurationError(
            f"{provider} embedder produces {embedder.dimensions}-dimensional vectors, "
            f"but embedding_dim is {settings.embedding_dim}"
        )

    if settings.embedding_cache_size > 0:
        return CachedEmbedder(embedder, cache_size=settings.embedding_cache_size)
    return embedder


__all__ = [
    "CacheStats",
    "CachedEmbedder",
    "Embedder",
    "HashingEmbedder",
    "get_embedder",
]
