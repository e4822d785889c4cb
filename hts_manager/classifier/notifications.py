# hts_manager/classifier/notifications.py
from __future__ import annotations

import logging
from abc import ABC, abstractmethod

from hts_manager.data_models import ClassificationResult, ProductSnapshot


logger = logging.getLogger(__name__)


class LowConfidenceNotifier(ABC):
    """Куда сообщать о результатах ниже порога уверенности."""

    @abstractmethod
    def notify(self, snapshot: ProductSnapshot, result: ClassificationResult) -> None:
        raise NotImplementedError


def format_low_confidence_message(snapshot: ProductSnapshot, result: ClassificationResult) -> str:
    return (
        "A product was automatically classified with low confidence:\n\n"
        f"Product: {snapshot.name}\n"
        f"SKU: {snapshot.sku}\n"
        f"HTS Code: {result.hts_code}\n"
        f"Confidence: {result.confidence * 100:.0f}%\n"
        f"Reasoning: {result.rationale}\n"
    )


class LoggingNotifier(LowConfidenceNotifier):
    """Пишет административное предупреждение в лог."""

    def notify(self, snapshot: ProductSnapshot, result: ClassificationResult) -> None:
        logger.warning(
            "HTS classification needs review (product_id=%s)\n%s",
            snapshot.product_id,
            format_low_confidence_message(snapshot, result),
        )
