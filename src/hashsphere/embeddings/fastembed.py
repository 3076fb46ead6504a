"""FastEmbed local embedding adapter.

Runs ONNX models in-process; no API key or network after the first model
download.
"""

from __future__ import annotations

import asyncio
import threading

from fastembed import TextEmbedding

from hashsphere.exceptions import EmbeddingError

from .base import Embedder

MODEL_DIMENSIONS = {
    "BAAI/bge-small-en-v1.5": 384,
    "BAAI/bge-base-en-v1.5": 768,
    "BAAI/bge-large-en-v1.5": 1024,
    "sentence-transformers/all-MiniLM-L6-v2": 384,
}


class FastEmbedEmbedder(Embedder):
    """Embeds text with a local FastEmbed model.

    The model loads lazily on first use. Inference is synchronous, so it
    runs in a worker thread to keep the event loop free.

    Args:
        model: FastEmbed model name.
    """

    def __init__(self, model: str = "BAAI/bge-small-en-v1.5") -> None:
        if model not in MODEL_DIMENSIONS:
            raise EmbeddingError(f"unknown FastEmbed model {model!r}")
        self._model_name = model
        self._model: TextEmbedding | None = None
        self._load_lock = threading.Lock()

    def _get_model(self) -> TextEmbedding:
        with self._load_lock:
            if self._model is None:
                self._model = TextEmbedding(self._model_name)
            return self._model

    def _embed_sync(self, texts: list[str]) -> list[list[float]]:
        model = self._get_model()
        return [self.check(vec.tolist()) for vec in model.embed(texts)]

    async def embed(self, text: str) -> list[float]:
        return (await asyncio.to_thread(self._embed_sync, [text]))[0]

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        if not texts:
            return []
        return await asyncio.to_thread(self._embed_sync, texts)

    @property
    def dimensions(self) -> int:
        return MODEL_DIMENSIONS[self._model_name]
