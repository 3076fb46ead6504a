"""OpenAI embedding adapter."""

from __future__ import annotations

import logging

from openai import AsyncOpenAI

from hashsphere.exceptions import EmbeddingError

from .base import Embedder

logger = logging.getLogger(__name__)

# Native output size per model
MODEL_DIMENSIONS = {
    "text-embedding-3-small": 1536,
    "text-embedding-3-large": 3072,
    "text-embedding-ada-002": 1536,
}

# Models that accept a reduced ``dimensions`` request parameter
SHORTENABLE_MODELS = frozenset({"text-embedding-3-small", "text-embedding-3-large"})


class OpenAIEmbedder(Embedder):
    """Embeds text with the OpenAI embeddings API.

    The store needs a fixed D, so a response of the wrong length is an
    error rather than something to adapt to. For text-embedding-3 models a
    smaller ``dimensions`` is requested from the API directly.

    Args:
        model: Embedding model name.
        api_key: API key; the client falls back to OPENAI_API_KEY when None.
        dimensions: Output size. Defaults to the model's native size.
    """

    def __init__(
        self,
        model: str = "text-embedding-3-small",
        api_key: str | None = None,
        dimensions: int | None = None,
    ) -> None:
        native = MODEL_DIMENSIONS.get(model)
        if dimensions is not None and dimensions != native and model not in SHORTENABLE_MODELS:
            raise EmbeddingError(f"model {model} cannot produce {dimensions}-dimensional embeddings")
        self.model = model
        self._dimensions = dimensions or native or 1536
        self._shorten = dimensions is not None and dimensions != native
        self._client = AsyncOpenAI(api_key=api_key)

    async def _create(self, payload: str | list[str]) -> list[list[float]]:
        kwargs: dict[str, object] = {"model": self.model, "input": payload}
        if self._shorten:
            kwargs["dimensions"] = self._dimensions
        try:
            response = await self._client.embeddings.create(**kwargs)  # type: ignore[arg-type]
        except Exception as e:
            raise EmbeddingError(f"OpenAI embedding request failed: {e}") from e
        if not response.data:
            raise EmbeddingError("OpenAI returned no embedding data")
        ordered = sorted(response.data, key=lambda d: d.index)
        return [self.check(d.embedding) for d in ordered]

    async def embed(self, text: str) -> list[float]:
        return (await self._create(text))[0]

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        if not texts:
            return []
        vectors = await self._create(texts)
        if len(vectors) != len(texts):
            raise EmbeddingError(f"OpenAI returned {len(vectors)} embeddings for {len(texts)} inputs")
        logger.debug("Embedded batch of %d texts with %s", len(texts), self.model)
        return vectors

    @property
    def dimensions(self) -> int:
        return self._dimensions
