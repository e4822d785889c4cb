# tests/test_auto_classify.py
from dataclasses import replace
from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest

from hts_manager.classifier.auto_classify import AutoClassifier
from hts_manager.data_models import ProductSnapshot, StoredClassification, Success


SCARF_REPLY = '{"hts_code": "6117.10.2000", "confidence": 0.92, "reasoning": "Knit wool accessory"}'


def stored(code):
    return StoredClassification(
        hts_code=code,
        confidence=0.9,
        rationale="",
        updated_at=datetime.now(timezone.utc),
        country="CA",
    )


@pytest.mark.asyncio
async def test_published_product_without_code_is_classified(make_service, catalog, classifier_config, envelope, fake_llm):
    auto = AutoClassifier(make_service(fake_llm([envelope(SCARF_REPLY)])), catalog, classifier_config)

    outcome = await auto.handle_product_event(1)

    assert isinstance(outcome, Success)
    assert catalog.read_classification(1).hts_code == "6117.10.2000"


@pytest.mark.asyncio
async def test_placeholder_code_is_reclassified(make_service, catalog, classifier_config, envelope, fake_llm):
    catalog.write_classification(1, stored("9999.99.9999"))
    auto = AutoClassifier(make_service(fake_llm([envelope(SCARF_REPLY)])), catalog, classifier_config)

    outcome = await auto.handle_product_event(1)

    assert isinstance(outcome, Success)


@pytest.mark.asyncio
async def test_existing_code_is_kept(make_service, catalog, classifier_config):
    catalog.write_classification(1, stored("6117.10.1000"))
    service = make_service(AsyncMock())
    service.classify_product = AsyncMock()
    auto = AutoClassifier(service, catalog, classifier_config)

    assert await auto.handle_product_event(1) is None
    service.classify_product.assert_not_awaited()


@pytest.mark.asyncio
async def test_unpublished_product_is_ignored(make_service, catalog, classifier_config):
    catalog.add_product(ProductSnapshot(product_id=5, name="Draft Lamp"), published=False)
    service = make_service(AsyncMock())
    service.classify_product = AsyncMock()
    auto = AutoClassifier(service, catalog, classifier_config)

    assert await auto.handle_product_event(5) is None
    service.classify_product.assert_not_awaited()


@pytest.mark.asyncio
async def test_disabled_auto_classify(make_service, catalog, classifier_config):
    service = make_service(AsyncMock())
    service.classify_product = AsyncMock()
    auto = AutoClassifier(service, catalog, replace(classifier_config, auto_classify_enabled=False))

    assert await auto.handle_product_event(1) is None
    service.classify_product.assert_not_awaited()
