# app/domain/category/generator.py
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from app.domain.common.errors import Invalid, TransientIO

logger = logging.getLogger(__name__)


class HttpCategoryGenerator:
    """
    POSTs {"prompt": ...} to a generation endpoint and returns its JSON body
    ({"category": str, "words": [str]}). Validation is the provider's job.
    """

    def __init__(
        self,
        url: str,
        *,
        client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
    ) -> None:
        self._url = url
        self._client = client
        self._owns_client = client is None
        self._timeout = timeout

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self._timeout),
                limits=httpx.Limits(max_keepalive_connections=5, max_connections=10),
            )
            self._owns_client = True
        return self._client

    async def aclose(self) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __call__(self, prompt: Optional[str] = None) -> Dict[str, Any]:
        client = self._get_client()
        try:
            res = await client.post(self._url, json={"prompt": prompt})
            res.raise_for_status()
        except httpx.HTTPStatusError as e:
            detail = _error_detail(e.response)
            logger.warning("Category generation failed with HTTP %s: %s", e.response.status_code, detail)
            raise TransientIO(
                f"Category generation failed ({e.response.status_code}): {detail}",
                code="CATEGORY_UNAVAILABLE",
            ) from e
        except httpx.RequestError as e:
            logger.warning("Category generation request error: %s", e)
            raise TransientIO(f"Category generation unreachable: {e}", code="CATEGORY_UNAVAILABLE") from e

        try:
            data = res.json()
        except ValueError as e:
            raise Invalid("Category generation returned non-JSON content", code="CATEGORY_INVALID") from e
        if not isinstance(data, dict):
            raise Invalid("Category generation returned a non-object body", code="CATEGORY_INVALID")
        return data


def _error_detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text[:200]
    if isinstance(body, dict) and isinstance(body.get("error"), str):
        return body["error"]
    return str(body)[:200]
