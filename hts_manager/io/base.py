# hts_manager/io/base.py
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from hts_manager.data_models import (
    ErrorRecord,
    ProductSnapshot,
    StoredClassification,
    UsageCounter,
)


class ProductCatalog(ABC):
    """
    Внешний каталог товаров: источник снимков и хранилище метаданных классификации.
    """

    @abstractmethod
    def get_product_snapshot(self, product_id: int) -> Optional[ProductSnapshot]:
        raise NotImplementedError

    @abstractmethod
    def write_classification(self, product_id: int, stored: StoredClassification) -> None:
        raise NotImplementedError

    @abstractmethod
    def read_classification(self, product_id: int) -> Optional[StoredClassification]:
        raise NotImplementedError

    @abstractmethod
    def clear_classification(self, product_id: int, country_of_origin: Optional[str] = None) -> None:
        """Снимает код; страна происхождения становится country_of_origin."""
        raise NotImplementedError

    @abstractmethod
    def read_country_of_origin(self, product_id: int) -> Optional[str]:
        raise NotImplementedError

    @abstractmethod
    def write_error(self, product_id: int, record: ErrorRecord) -> None:
        raise NotImplementedError

    @abstractmethod
    def read_error(self, product_id: int) -> Optional[ErrorRecord]:
        raise NotImplementedError

    @abstractmethod
    def clear_error(self, product_id: int) -> None:
        raise NotImplementedError

    @abstractmethod
    def is_published(self, product_id: int) -> bool:
        raise NotImplementedError


class UsageStore(ABC):
    """
    Хранилище счётчика использования (один на процесс/тенанта).
    """

    @abstractmethod
    def get_usage(self) -> UsageCounter:
        raise NotImplementedError

    @abstractmethod
    def set_usage(self, counter: UsageCounter) -> None:
        raise NotImplementedError

    @abstractmethod
    def reset_usage(self) -> None:
        """Обнуляет used_count и last_used_at. Только для администратора."""
        raise NotImplementedError

    @abstractmethod
    def increment(self, limit: Optional[int]) -> Optional[int]:
        """
        Атомарный compare-and-increment.

        Возвращает новое значение счётчика, либо None, если limit уже достигнут.
        limit=None — увеличиваем без проверки.
        """
        raise NotImplementedError
