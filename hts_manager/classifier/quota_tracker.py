# hts_manager/classifier/quota_tracker.py
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from hts_manager.config import PlanConfig, config
from hts_manager.data_models import Allowed, Denied, QuotaDecision, UsageCounter
from hts_manager.io.base import UsageStore


logger = logging.getLogger(__name__)


class QuotaTracker:
    """
    Учёт использования классификаций относительно лимита плана.

    Отвечает за:
    - решение «можно ли классифицировать» (can_classify);
    - увеличение счётчика после успешной классификации на metered-плане;
    - административный сброс счётчика.

    Проверка и инкремент не атомарны между собой: при параллельном bulk-прогоне
    возможен небольшой перебор лимита. Сам инкремент атомарен на стороне хранилища.
    """

    def __init__(self, store: UsageStore, plan: Optional[PlanConfig] = None) -> None:
        self._store = store
        self._plan = plan or config.plan

    @property
    def metered(self) -> bool:
        return self._plan.metered

    @property
    def limit(self) -> Optional[int]:
        return self._plan.effective_limit()

    def usage(self) -> UsageCounter:
        counter = self._store.get_usage()
        counter.limit = self.limit
        return counter

    def can_classify(self) -> QuotaDecision:
        limit = self.limit
        if limit is None:
            return Allowed()

        used = self._store.get_usage().used_count
        if used >= limit:
            logger.info("Classification denied: usage limit reached (%s/%s)", used, limit)
            return Denied(used=used, limit=limit)
        return Allowed()

    def increment(self) -> int:
        """
        Вызывается ровно один раз на успешную классификацию и только на metered-плане.
        Возвращает новое значение счётчика.
        """
        if not self.metered:
            raise RuntimeError("Usage is not counted on an unmetered plan")

        # Лимит здесь не передаём: решение уже принято в can_classify,
        # допускается небольшой перебор при гонке.
        new_count = self._store.increment(None)
        return int(new_count)

    def reset(self) -> None:
        self._store.reset_usage()
        logger.info("Classification usage counter has been reset")

    def remaining(self) -> Optional[int]:
        """None — безлимитно."""
        limit = self.limit
        if limit is None:
            return None
        return max(0, limit - self._store.get_usage().used_count)

    def usage_stats(self) -> Dict[str, Any]:
        counter = self.usage()
        limit = counter.limit
        return {
            "used": counter.used_count,
            "limit": limit,
            "remaining": self.remaining(),
            "percentage_used": round(counter.used_count / limit * 100, 1) if limit else 0,
            "metered": self.metered,
            "last_used_at": counter.last_used_at,
            "can_classify": isinstance(self.can_classify(), Allowed),
        }
