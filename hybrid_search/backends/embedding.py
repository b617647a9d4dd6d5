"""Gemini embedding provider over HTTP.

Calls the ``models/{model}:embedContent`` endpoint with an explicit
``outputDimensionality`` so stored and query vectors share one dimension.
"""

import time
from typing import List, Optional

import httpx
import numpy as np
import structlog
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from ..common.errors import ResponseShapeError, UpstreamError
from .base import EmbeddingProvider

logger = structlog.get_logger("hybrid_search.backends.embedding")

PROVIDER = "embedding"


class _EmbeddingValues(BaseModel):
    values: List[float]


class EmbedContentResponse(BaseModel):
    """Subset of the embedContent response we rely on."""
    embedding: _EmbeddingValues


class GeminiEmbeddingProvider(EmbeddingProvider):
    """Embeds query text with a Gemini embedding model.

    Parameters
    - client: an ``httpx.AsyncClient`` owned by the caller
    - api_key: sent as ``x-goog-api-key``
    - model: embedding model name
    - dimension: requested and verified output dimension
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        api_key: Optional[str],
        model: str = "gemini-embedding-001",
        base_url: str = "https://generativelanguage.googleapis.com/v1beta",
        dimension: int = 1536,
    ):
        self.client = client
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.dimension = dimension

    async def embed(self, text: str) -> np.ndarray:
        """Embed ``text`` into a ``dimension``-length vector."""
        start_time = time.time()
        headers = {"x-goog-api-key": self.api_key} if self.api_key else {}
        payload = {
            "model": f"models/{self.model}",
            "content": {"parts": [{"text": text}]},
            "outputDimensionality": self.dimension,
        }

        try:
            response = await self.client.post(
                f"{self.base_url}/models/{self.model}:embedContent",
                json=payload,
                headers=headers,
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(
                "Embedding request failed",
                model=self.model,
                status_code=e.response.status_code,
                body=e.response.text[:500]
            )
            raise UpstreamError(
                PROVIDER,
                f"{e.response.status_code} {e.response.reason_phrase}",
                status_code=e.response.status_code,
                stage="retrieval",
            ) from e
        except httpx.HTTPError as e:
            logger.error("Embedding request failed", model=self.model, error=str(e))
            raise UpstreamError(PROVIDER, str(e) or type(e).__name__, stage="retrieval") from e

        try:
            data = EmbedContentResponse.model_validate(response.json())
        except (ValueError, PydanticValidationError) as e:
            raise ResponseShapeError(PROVIDER, f"unexpected response: {e}", stage="retrieval") from e

        values = data.embedding.values
        if len(values) != self.dimension:
            raise ResponseShapeError(
                PROVIDER,
                f"expected {self.dimension} dimensions, got {len(values)}",
                stage="retrieval",
            )

        logger.debug(
            "Query embedded",
            model=self.model,
            dimension=len(values),
            latency_ms=(time.time() - start_time) * 1000
        )
        return np.array(values, dtype=float)
