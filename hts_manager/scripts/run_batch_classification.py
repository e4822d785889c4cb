# hts_manager/scripts/run_batch_classification.py
from __future__ import annotations

import argparse
import asyncio
import logging
from typing import List, Optional

from hts_manager.classifier.batch import classify_batch
from hts_manager.classifier.classifier_service import ClassifierService
from hts_manager.classifier.quota_tracker import QuotaTracker
from hts_manager.config import config
from hts_manager.data_models import BatchSummary
from hts_manager.io.db_io import (
    SqlProductCatalog,
    SqlUsageStore,
    get_coverage_stats,
    get_session,
    get_unclassified_product_ids,
    init_db,
)
from hts_manager.llm_client.provider_client import AnthropicLLMClient


logger = logging.getLogger(__name__)


def build_service() -> ClassifierService:
    return ClassifierService(
        llm_client=AnthropicLLMClient(),
        catalog=SqlProductCatalog(),
        quota=QuotaTracker(SqlUsageStore()),
    )


async def run(product_ids: Optional[List[int]] = None, limit: int = 20, concurrency: int = 1) -> BatchSummary:
    """
    Batch-классификация товаров из БД.

    Делает:
    - выбор товаров (явно переданные id или опубликованные без кода);
    - прогон через ClassifierService с ограничением параллельности;
    - краткий итоговый отчёт в лог.
    """
    init_db()

    if not product_ids:
        with get_session() as session:
            product_ids = get_unclassified_product_ids(session, limit=limit)

    service = build_service()
    summary = await classify_batch(
        service,
        product_ids,
        concurrency=concurrency,
        bulk_limit=config.plan.effective_bulk_limit(),
    )

    for product_id in summary.failed_ids():
        outcome = summary.outcomes[product_id]
        logger.error("Product %s: %s - %s", product_id, outcome.kind.value, outcome.message)

    with get_session() as session:
        stats = get_coverage_stats(session)
    logger.info("Coverage: %s%% (%s/%s products, %s low confidence)",
                stats["coverage_percentage"], stats["with_codes"],
                stats["total_published"], stats["low_confidence"])

    return summary


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Classify products with HTS codes")
    parser.add_argument("product_ids", nargs="*", type=int, help="product ids (default: unclassified products)")
    parser.add_argument("--limit", type=int, default=20)
    parser.add_argument("--concurrency", type=int, default=1)
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO)

    summary = asyncio.run(run(args.product_ids, limit=args.limit, concurrency=args.concurrency))
    return 0 if summary.failed == 0 else 1


if __name__ == "__main__":
    raise SystemExit(main())
