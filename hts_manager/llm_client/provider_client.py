# hts_manager/llm_client/provider_client.py
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from hts_manager.config import LLMApiConfig, config
from hts_manager.data_models import ClassificationRequest
from hts_manager.errors import (
    ApiKeyInvalid,
    ApiKeyMissing,
    LLMError,
    NetworkError,
    QuotaExceeded,
    RateLimited,
    ServerError,
)
from hts_manager.llm_client.base import LLMClient


logger = logging.getLogger(__name__)

SERVER_ERROR_STATUSES = (500, 502, 503, 504)


class AnthropicLLMClient(LLMClient):
    """
    Реализация LLMClient через Anthropic Messages API.
    """

    def __init__(self, llm_config: Optional[LLMApiConfig] = None) -> None:
        self._config = llm_config or config.llm
        self._url = self._config.url
        self._timeout = self._config.timeout_seconds

    def build_request(self, prompt: str) -> ClassificationRequest:
        return ClassificationRequest(
            prompt=prompt,
            model=self._config.model,
            max_tokens=self._config.max_tokens,
            temperature=self._config.temperature,
            timeout_seconds=self._timeout,
        )

    def _build_headers(self, api_key: str) -> Dict[str, str]:
        return {
            "content-type": "application/json",
            "x-api-key": api_key,
            "anthropic-version": self._config.api_version,
        }

    @staticmethod
    def _build_payload(request: ClassificationRequest) -> Dict[str, Any]:
        return {
            "model": request.model,
            "max_tokens": request.max_tokens,
            "temperature": request.temperature,
            "messages": [{"role": "user", "content": request.prompt}],
        }

    async def _post(self, request: ClassificationRequest, api_key: str) -> httpx.Response:
        """
        Один POST без ретраев. Транспортные сбои (DNS, отказ соединения, таймаут) -> NetworkError.
        """
        try:
            async with httpx.AsyncClient(timeout=request.timeout_seconds) as client:
                return await client.post(
                    self._url,
                    json=self._build_payload(request),
                    headers=self._build_headers(api_key),
                )
        except httpx.TimeoutException as exc:
            logger.warning("Request to %s timed out after %.0fs", self._url, request.timeout_seconds)
            raise NetworkError(
                f"Request to the classification provider timed out after {request.timeout_seconds:.0f}s",
                context={"url": self._url, "error": repr(exc)},
            ) from exc
        except httpx.TransportError as exc:
            logger.warning("Request to %s failed: %s", self._url, exc)
            raise NetworkError(
                f"Could not reach the classification provider: {exc}",
                context={"url": self._url, "error": repr(exc)},
            ) from exc

    @staticmethod
    def _raise_for_status(response: httpx.Response) -> None:
        status = response.status_code
        if status == 200:
            return

        context = {"status_code": status, "body": response.text[:500]}
        if status == 401:
            raise ApiKeyInvalid(context=context)
        if status == 402:
            raise QuotaExceeded(context=context)
        if status == 429:
            raise RateLimited(context=context)
        if status in SERVER_ERROR_STATUSES:
            raise ServerError(f"Classification provider returned HTTP {status}", context=context)

        # Любой другой не-200 — это провал классификации, а не транспорт
        raise LLMError(f"Classification provider returned HTTP {status}", context=context)

    async def classify(self, prompt: str, api_key: str) -> str:
        if not api_key or not api_key.strip():
            raise ApiKeyMissing(
                context={"env_var": self._config.api_key_env_var},
            )

        request = self.build_request(prompt)
        response = await self._post(request, api_key.strip())

        if response.status_code != 200:
            logger.warning("Classification provider returned HTTP %s", response.status_code)
        self._raise_for_status(response)

        return response.text
