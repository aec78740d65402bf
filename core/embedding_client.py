# core/embedding_client.py
import asyncio
from functools import lru_cache
from typing import List, Optional, Protocol
import httpx
import numpy as np
from sentence_transformers import SentenceTransformer
from config.settings import settings
from util.constants import ExternalURIs
from util.enums import EmbeddingBackend
from util.errors import EmbeddingUnavailable
from util.timing import timed
import logging

logger = logging.getLogger(__name__)

TITLE_PREFIX = "Title: "
DOCUMENT_PREFIX = "Document: "


class EmbeddingProvider(Protocol):
    model_name: str

    async def embed(self, text: str) -> List[float]: ...


class HttpEmbeddingProvider:
    """
    Ollama-style embeddings endpoint: POST {"model", "prompt"} -> {"embedding": [...]}.
    Every call is bounded by EMBEDDING_TIMEOUT_SECONDS.
    """

    def __init__(
        self,
        base_url: str = settings.EMBEDDING_API_URL,
        model: str = settings.EMBEDDING_MODEL,
        timeout: float = settings.EMBEDDING_TIMEOUT_SECONDS,
    ) -> None:
        self._url = base_url.rstrip("/") + ExternalURIs.OLLAMA_EMBEDDINGS
        self._timeout = float(timeout)
        self.model_name = model

    async def _post(self, text: str) -> dict:
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            r = await client.post(self._url, json={"model": self.model_name, "prompt": text})
            r.raise_for_status()
            return r.json()

    async def embed(self, text: str) -> List[float]:
        try:
            with timed(logger, "embed.http", model=self.model_name, chars=len(text)):
                data = await asyncio.wait_for(self._post(text), timeout=self._timeout)
        except (httpx.HTTPError, asyncio.TimeoutError, ValueError) as e:
            logger.warning("embed.http.unavailable err=%s", type(e).__name__)
            raise EmbeddingUnavailable(str(e) or type(e).__name__) from e

        vec = data.get("embedding") if isinstance(data, dict) else None
        if not vec:
            logger.warning("embed.http.empty model=%s", self.model_name)
            raise EmbeddingUnavailable("embedding response carried no vector")
        return [float(x) for x in vec]


@lru_cache(maxsize=1)
def _load_model(name: str) -> SentenceTransformer:
    """
    Lazy-load the sentence embedding model.

    Model is kept CPU-friendly; adjust in settings if you want a larger model.
    """
    with timed(logger, "embed.model.load", model=name):
        model = SentenceTransformer(name, device="cpu")
    return model


class LocalEmbeddingProvider:
    """In-process sentence-transformers model, run off the event loop."""

    def __init__(
        self,
        model: str = settings.EMBEDDING_MODEL_NAME,
        timeout: float = settings.EMBEDDING_TIMEOUT_SECONDS,
    ) -> None:
        self.model_name = model
        self._timeout = float(timeout)

    def _encode(self, text: str) -> List[float]:
        vec = _load_model(self.model_name).encode(
            [text], convert_to_numpy=True, normalize_embeddings=True
        )[0]
        return np.asarray(vec, dtype=np.float32).astype(float).tolist()

    async def embed(self, text: str) -> List[float]:
        try:
            with timed(logger, "embed.local", model=self.model_name, chars=len(text)):
                return await asyncio.wait_for(
                    asyncio.to_thread(self._encode, text), timeout=self._timeout
                )
        except asyncio.TimeoutError as e:
            logger.warning("embed.local.timeout model=%s", self.model_name)
            raise EmbeddingUnavailable("local embedding timed out") from e
        except (OSError, RuntimeError) as e:
            logger.warning("embed.local.unavailable err=%s", type(e).__name__)
            raise EmbeddingUnavailable(str(e)) from e


async def embed_title(provider: EmbeddingProvider, title: str) -> List[float]:
    return await provider.embed(TITLE_PREFIX + title)


async def embed_document(
    provider: EmbeddingProvider,
    text: str,
    max_chars: Optional[int] = None,
) -> List[float]:
    limit = max_chars or settings.EMBEDDING_MAX_DOCUMENT_CHARS
    return await provider.embed(DOCUMENT_PREFIX + text[:limit])


def build_embedding_provider() -> EmbeddingProvider:
    if settings.EMBEDDING_BACKEND == EmbeddingBackend.LOCAL:
        logger.info("embed.provider backend=local model=%s", settings.EMBEDDING_MODEL_NAME)
        return LocalEmbeddingProvider()
    logger.info("embed.provider backend=http model=%s", settings.EMBEDDING_MODEL)
    return HttpEmbeddingProvider()
