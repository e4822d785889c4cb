# hts_manager/classifier/auto_classify.py
from __future__ import annotations

import logging
from typing import Optional

from hts_manager.classifier.classifier_service import ClassifierService
from hts_manager.config import ClassifierConfig, config
from hts_manager.data_models import ClassificationOutcome
from hts_manager.io.base import ProductCatalog


logger = logging.getLogger(__name__)


class AutoClassifier:
    """
    Реакция на события каталога (публикация/сохранение товара).

    Классифицирует, только если:
    - автоклассификация включена;
    - товар опубликован;
    - у товара ещё нет кода (или стоит заглушка 9999.99.9999).
    Когда именно вызывать handle_product_event — решает внешний планировщик.
    """

    def __init__(
        self,
        service: ClassifierService,
        catalog: ProductCatalog,
        classifier_config: Optional[ClassifierConfig] = None,
    ) -> None:
        self._service = service
        self._catalog = catalog
        self._config = classifier_config or config.classifier

    def needs_classification(self, product_id: int) -> bool:
        stored = self._catalog.read_classification(product_id)
        if stored is None or not stored.hts_code:
            return True
        return stored.hts_code == self._config.placeholder_code

    def should_classify(self, product_id: int) -> bool:
        if not self._config.auto_classify_enabled:
            return False
        if not self._catalog.is_published(product_id):
            return False
        return self.needs_classification(product_id)

    async def handle_product_event(self, product_id: int) -> Optional[ClassificationOutcome]:
        """None — событие проигнорировано."""
        if not self.should_classify(product_id):
            logger.debug("Auto-classification skipped for product %s", product_id)
            return None
        return await self._service.classify_product(product_id)
