"""Voyage rerank provider over HTTP."""

from typing import List, Optional, Sequence

import httpx
import structlog
from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from ..common.errors import ResponseShapeError, UpstreamError
from .base import RerankProvider, RerankScore

logger = structlog.get_logger("hybrid_search.backends.rerank")

PROVIDER = "rerank"


class _RerankItem(BaseModel):
    index: int
    relevance_score: float


class RerankResponse(BaseModel):
    """Subset of the ``/rerank`` response we rely on."""
    data: List[_RerankItem]
    model: Optional[str] = None
    usage: dict = Field(default_factory=dict)


class VoyageRerankProvider(RerankProvider):
    """Scores documents with a Voyage cross-encoder.

    The returned indices refer to the submitted ``documents`` order.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        api_key: Optional[str],
        model: str = "rerank-2.5-lite",
        base_url: str = "https://api.voyageai.com/v1",
    ):
        self.client = client
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")

    async def score(
        self,
        query: str,
        documents: Sequence[str],
        model: Optional[str] = None,
        top_k: Optional[int] = None,
    ) -> List[RerankScore]:
        """POST the batch to ``/rerank`` and return ``(index, score)`` pairs."""
        payload = {
            "query": query,
            "documents": list(documents),
            "model": model or self.model,
        }
        if top_k is not None:
            payload["top_k"] = top_k
        headers = {"Authorization": f"Bearer {self.api_key}"} if self.api_key else {}

        try:
            response = await self.client.post(
                f"{self.base_url}/rerank",
                json=payload,
                headers=headers,
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(
                "Rerank request failed",
                model=payload["model"],
                status_code=e.response.status_code,
                body=e.response.text[:500]
            )
            raise UpstreamError(
                PROVIDER,
                f"{e.response.status_code} {e.response.reason_phrase}",
                status_code=e.response.status_code,
                stage="rerank",
            ) from e
        except httpx.HTTPError as e:
            logger.error("Rerank request failed", model=payload["model"], error=str(e))
            raise UpstreamError(PROVIDER, str(e) or type(e).__name__, stage="rerank") from e

        try:
            data = RerankResponse.model_validate(response.json())
        except (ValueError, PydanticValidationError) as e:
            raise ResponseShapeError(PROVIDER, f"unexpected response: {e}", stage="rerank") from e

        logger.debug(
            "Rerank scored",
            model=data.model or payload["model"],
            documents=len(documents),
            results=len(data.data),
            total_tokens=data.usage.get("total_tokens")
        )
        return [RerankScore(index=item.index, relevance_score=item.relevance_score) for item in data.data]
