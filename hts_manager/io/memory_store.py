# hts_manager/io/memory_store.py
from __future__ import annotations

import threading
from dataclasses import replace
from datetime import datetime, timezone
from typing import Dict, Iterable, Optional, Set

from hts_manager.data_models import (
    ErrorRecord,
    ProductSnapshot,
    StoredClassification,
    UsageCounter,
)
from hts_manager.io.base import ProductCatalog, UsageStore


class InMemoryProductCatalog(ProductCatalog):
    """Каталог в памяти: для тестов и прогонов без БД."""

    def __init__(
        self,
        products: Iterable[ProductSnapshot] = (),
        unpublished: Iterable[int] = (),
    ) -> None:
        self._lock = threading.Lock()
        self._products: Dict[int, ProductSnapshot] = {p.product_id: p for p in products}
        self._unpublished: Set[int] = set(unpublished)
        self.classifications: Dict[int, StoredClassification] = {}
        self.errors: Dict[int, ErrorRecord] = {}
        self.countries: Dict[int, str] = {}

    def add_product(self, snapshot: ProductSnapshot, published: bool = True) -> None:
        with self._lock:
            self._products[snapshot.product_id] = snapshot
            if published:
                self._unpublished.discard(snapshot.product_id)
            else:
                self._unpublished.add(snapshot.product_id)

    def get_product_snapshot(self, product_id: int) -> Optional[ProductSnapshot]:
        return self._products.get(product_id)

    def write_classification(self, product_id: int, stored: StoredClassification) -> None:
        with self._lock:
            self.classifications[product_id] = stored
            if stored.country:
                self.countries[product_id] = stored.country
            else:
                self.countries.pop(product_id, None)

    def read_classification(self, product_id: int) -> Optional[StoredClassification]:
        return self.classifications.get(product_id)

    def clear_classification(self, product_id: int, country_of_origin: Optional[str] = None) -> None:
        with self._lock:
            self.classifications.pop(product_id, None)
            if country_of_origin:
                self.countries[product_id] = country_of_origin
            else:
                self.countries.pop(product_id, None)

    def read_country_of_origin(self, product_id: int) -> Optional[str]:
        return self.countries.get(product_id)

    def write_error(self, product_id: int, record: ErrorRecord) -> None:
        with self._lock:
            self.errors[product_id] = record

    def read_error(self, product_id: int) -> Optional[ErrorRecord]:
        return self.errors.get(product_id)

    def clear_error(self, product_id: int) -> None:
        with self._lock:
            self.errors.pop(product_id, None)

    def is_published(self, product_id: int) -> bool:
        return product_id in self._products and product_id not in self._unpublished


class InMemoryUsageStore(UsageStore):
    def __init__(self, used_count: int = 0, limit: Optional[int] = None) -> None:
        self._lock = threading.Lock()
        self._counter = UsageCounter(used_count=used_count, limit=limit)

    def get_usage(self) -> UsageCounter:
        with self._lock:
            return replace(self._counter)

    def set_usage(self, counter: UsageCounter) -> None:
        with self._lock:
            self._counter = replace(counter)

    def reset_usage(self) -> None:
        with self._lock:
            self._counter = replace(self._counter, used_count=0, last_used_at=None)

    def increment(self, limit: Optional[int]) -> Optional[int]:
        with self._lock:
            if limit is not None and self._counter.used_count >= limit:
                return None
            self._counter = replace(
                self._counter,
                used_count=self._counter.used_count + 1,
                last_used_at=datetime.now(timezone.utc),
            )
            return self._counter.used_count
