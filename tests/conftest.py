# tests/conftest.py
import json
from typing import List, Optional, Union

import pytest

from hts_manager.classifier.classifier_service import ClassifierService
from hts_manager.classifier.notifications import LowConfidenceNotifier
from hts_manager.classifier.quota_tracker import QuotaTracker
from hts_manager.config import ClassifierConfig, LLMApiConfig, PlanConfig
from hts_manager.data_models import ClassificationResult, ProductSnapshot
from hts_manager.io.memory_store import InMemoryProductCatalog, InMemoryUsageStore
from hts_manager.llm_client.base import LLMClient


def make_envelope(text: str) -> str:
    """Тело ответа Messages API с текстом модели внутри."""
    return json.dumps(
        {
            "id": "msg_123",
            "type": "message",
            "role": "assistant",
            "content": [{"type": "text", "text": text}],
            "stop_reason": "end_turn",
        }
    )


class FakeLLMClient(LLMClient):
    """
    Детерминированный провайдер: отдаёт ответы по очереди (последний повторяется).
    Исключение в списке ответов — выбрасывается.
    """

    def __init__(self, replies: List[Union[str, Exception]]) -> None:
        self._replies = list(replies)
        self.calls: List[tuple] = []

    async def classify(self, prompt: str, api_key: str) -> str:
        self.calls.append((prompt, api_key))
        reply = self._replies.pop(0) if len(self._replies) > 1 else self._replies[0]
        if isinstance(reply, Exception):
            raise reply
        return reply


class RecordingNotifier(LowConfidenceNotifier):
    def __init__(self) -> None:
        self.notifications: List[tuple] = []

    def notify(self, snapshot: ProductSnapshot, result: ClassificationResult) -> None:
        self.notifications.append((snapshot, result))


@pytest.fixture
def envelope():
    return make_envelope


@pytest.fixture
def fake_llm():
    return FakeLLMClient


@pytest.fixture
def scarf() -> ProductSnapshot:
    return ProductSnapshot(
        product_id=1,
        name="Wool Scarf",
        description="100% wool scarf",
        sku="SCARF-01",
        categories=("Accessories",),
    )


@pytest.fixture
def catalog(scarf) -> InMemoryProductCatalog:
    return InMemoryProductCatalog([scarf])


@pytest.fixture
def usage_store() -> InMemoryUsageStore:
    return InMemoryUsageStore()


@pytest.fixture
def metered_plan() -> PlanConfig:
    return PlanConfig(metered=True, limit=25, bulk_limit=5)


@pytest.fixture
def quota(usage_store, metered_plan) -> QuotaTracker:
    return QuotaTracker(usage_store, metered_plan)


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def classifier_config() -> ClassifierConfig:
    return ClassifierConfig(
        confidence_threshold=0.60,
        auto_classify_enabled=True,
        default_country="CA",
    )


@pytest.fixture
def llm_config() -> LLMApiConfig:
    return LLMApiConfig(timeout_seconds=30.0)


@pytest.fixture
def make_service(catalog, quota, notifier, classifier_config, llm_config):
    def _make(llm_client: LLMClient, api_key: Optional[str] = "test-key", **overrides) -> ClassifierService:
        kwargs = dict(
            llm_client=llm_client,
            catalog=catalog,
            quota=quota,
            notifier=notifier,
            classifier_config=classifier_config,
            llm_config=llm_config,
            api_key=api_key,
        )
        kwargs.update(overrides)
        return ClassifierService(**kwargs)

    return _make
