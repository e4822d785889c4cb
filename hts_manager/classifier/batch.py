# hts_manager/classifier/batch.py
from __future__ import annotations

import asyncio
import logging
from typing import Iterable, Optional

from hts_manager.classifier.classifier_service import ClassifierService
from hts_manager.data_models import BatchSummary, Denied, Failure, Success


logger = logging.getLogger(__name__)


async def classify_batch(
    service: ClassifierService,
    product_ids: Iterable[int],
    concurrency: int = 1,
    bulk_limit: Optional[int] = None,
) -> BatchSummary:
    """
    Bulk-классификация: та же одиночная попытка для каждого товара.

    - без общей транзакции: падение одного товара не откатывает остальные;
    - не больше `concurrency` запросов одновременно;
    - при bulk_limit лишние товары отрезаются (skipped).
    """
    ids = list(dict.fromkeys(product_ids))
    summary = BatchSummary()

    if bulk_limit is not None and len(ids) > bulk_limit:
        summary.skipped = len(ids) - bulk_limit
        logger.info("Bulk classification limited to %s products (%s skipped)", bulk_limit, summary.skipped)
        ids = ids[:bulk_limit]

    semaphore = asyncio.Semaphore(max(1, concurrency))

    async def _run_one(product_id: int) -> None:
        async with semaphore:
            outcome = await service.classify_product(product_id)
        summary.outcomes[product_id] = outcome
        summary.processed += 1
        if isinstance(outcome, Success):
            summary.succeeded += 1
        elif isinstance(outcome, Denied):
            summary.denied += 1
        elif isinstance(outcome, Failure):
            summary.failed += 1

    logger.info("Starting batch classification: %s items", len(ids))
    await asyncio.gather(*(_run_one(pid) for pid in ids))

    logger.info(
        "Batch classification finished: processed=%s succeeded=%s failed=%s denied=%s skipped=%s",
        summary.processed,
        summary.succeeded,
        summary.failed,
        summary.denied,
        summary.skipped,
    )
    return summary
