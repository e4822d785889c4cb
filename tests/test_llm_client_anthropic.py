# tests/test_llm_client_anthropic.py
import json

import pytest
from pytest_httpx import HTTPXMock

from hts_manager.config import LLMApiConfig
from hts_manager.llm_client.provider_client import AnthropicLLMClient


@pytest.mark.asyncio
async def test_classify_posts_messages_request(httpx_mock: HTTPXMock, envelope):
    llm_config = LLMApiConfig(timeout_seconds=30.0)
    reply = envelope('{"hts_code": "6117.10.2000", "confidence": 0.92, "reasoning": "Knit wool accessory"}')

    httpx_mock.add_response(method="POST", url=llm_config.url, text=reply)

    client = AnthropicLLMClient(llm_config)
    raw = await client.classify("Classify this product", "test-key")

    # Клиент не интерпретирует содержимое — отдаёт тело как есть
    assert raw == reply

    request = httpx_mock.get_request()
    assert request.headers["content-type"] == "application/json"
    assert request.headers["x-api-key"] == "test-key"
    assert request.headers["anthropic-version"] == "2023-06-01"

    body = json.loads(request.content)
    assert body == {
        "model": llm_config.model,
        "max_tokens": 500,
        "temperature": 0.2,
        "messages": [{"role": "user", "content": "Classify this product"}],
    }


def test_build_request_carries_model_parameters():
    client = AnthropicLLMClient(LLMApiConfig(timeout_seconds=40.0))

    request = client.build_request("prompt")

    assert request.prompt == "prompt"
    assert request.max_tokens == 500
    assert request.temperature == 0.2
    assert request.timeout_seconds == 40.0


def test_timeout_is_kept_within_window(monkeypatch):
    monkeypatch.setenv("HTS_API_TIMEOUT", "120")
    assert LLMApiConfig().timeout_seconds == 45.0

    monkeypatch.setenv("HTS_API_TIMEOUT", "5")
    assert LLMApiConfig().timeout_seconds == 30.0
