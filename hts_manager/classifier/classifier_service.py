# hts_manager/classifier/classifier_service.py
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional

from hts_manager.classifier.notifications import LoggingNotifier, LowConfidenceNotifier
from hts_manager.classifier.prompt_builder import PromptBuilder
from hts_manager.classifier.quota_tracker import QuotaTracker
from hts_manager.classifier.response_validator import ResponseValidator, is_valid_manual_code
from hts_manager.config import ClassifierConfig, LLMApiConfig, config
from hts_manager.data_models import (
    ClassificationOutcome,
    ClassificationResult,
    Denied,
    ErrorRecord,
    Failure,
    ProductSnapshot,
    StoredClassification,
    Success,
)
from hts_manager.errors import (
    ClassificationError,
    ClassificationFailed,
    ProductDataInvalid,
    ProductNotFound,
)
from hts_manager.io.base import ProductCatalog
from hts_manager.llm_client.base import LLMClient


logger = logging.getLogger(__name__)


class ClassifierService:
    """
    Сервис классификации товара по HTS.

    Отвечает за:
    - последовательность: снимок товара -> квота -> промпт -> LLM -> валидация;
    - сохранение результата и инкремент квоты как одну операцию;
    - уведомление при уверенности ниже порога.

    Наружу отдаёт только типизированные исходы (Success / Denied / Failure),
    никаких исключений.
    """

    def __init__(
        self,
        llm_client: LLMClient,
        catalog: ProductCatalog,
        quota: QuotaTracker,
        prompt_builder: Optional[PromptBuilder] = None,
        validator: Optional[ResponseValidator] = None,
        notifier: Optional[LowConfidenceNotifier] = None,
        classifier_config: Optional[ClassifierConfig] = None,
        llm_config: Optional[LLMApiConfig] = None,
        api_key: Optional[str] = None,
    ) -> None:
        self._llm_client = llm_client
        self._catalog = catalog
        self._quota = quota
        self._prompt_builder = prompt_builder or PromptBuilder()
        self._validator = validator or ResponseValidator()
        self._notifier = notifier or LoggingNotifier()

        classifier_config = classifier_config or config.classifier
        self._conf_threshold = classifier_config.confidence_threshold
        self._default_country = classifier_config.default_country
        self._llm_config = llm_config or config.llm
        self._api_key = api_key

    def _get_api_key(self) -> str:
        if self._api_key is not None:
            return self._api_key
        return self._llm_config.get_api_key()

    async def classify_product(self, product_id: int) -> ClassificationOutcome:
        """
        Одна попытка классификации. Ретраев нет: повтор — это новый вызов.
        """
        snapshot: Optional[ProductSnapshot] = None
        try:
            snapshot = self._catalog.get_product_snapshot(product_id)
            if snapshot is None:
                raise ProductNotFound(context={"product_id": product_id})

            # Отказ по квоте — без сетевого вызова и без побочных эффектов
            decision = self._quota.can_classify()
            if isinstance(decision, Denied):
                logger.warning(
                    "Skipping classification for product %s - usage limit reached (%s/%s)",
                    product_id,
                    decision.used,
                    decision.limit,
                )
                return decision

            prompt = self._prompt_builder.build_prompt(snapshot)
            raw_reply = await self._llm_client.classify(prompt, self._get_api_key())
            result = self._validator.parse(raw_reply)

            # Уверенность модели не проверяем, но жёстко ограничиваем [0.0, 1.0]
            result.confidence = max(0.0, min(result.confidence, 1.0))

            self._persist(snapshot, result)

        except ClassificationError as exc:
            return self._fail(product_id, exc, product_exists=snapshot is not None)

        except Exception as exc:
            logger.exception("Unexpected error while classifying product %s", product_id)
            error = ClassificationFailed(
                context={"product_id": product_id, "exception": f"{type(exc).__name__}: {exc}"},
            )
            return self._fail(product_id, error, product_exists=snapshot is not None)

        logger.info(
            "Classified product %s as %s (confidence=%.2f)",
            product_id,
            result.hts_code,
            result.confidence,
        )

        if result.confidence < self._conf_threshold:
            self._notify_low_confidence(snapshot, result)

        return Success(product_id=product_id, result=result)

    def _persist(self, snapshot: ProductSnapshot, result: ClassificationResult) -> None:
        """
        Запись метаданных и инкремент квоты — единое целое:
        если инкремент упал, возвращаем метаданные (и страну происхождения)
        к прежнему состоянию. Старую ошибку снимаем до записи: сбой здесь
        не оставит ни метаданных, ни списанной квоты.
        """
        product_id = snapshot.product_id
        previous = self._catalog.read_classification(product_id)
        previous_country = self._catalog.read_country_of_origin(product_id)

        self._catalog.clear_error(product_id)

        self._catalog.write_classification(
            product_id,
            StoredClassification(
                hts_code=result.hts_code,
                confidence=result.confidence,
                rationale=result.rationale,
                updated_at=datetime.now(timezone.utc),
                country=self._default_country,
            ),
        )

        if self._quota.metered:
            try:
                self._quota.increment()
            except Exception:
                if previous is not None:
                    self._catalog.write_classification(product_id, previous)
                else:
                    self._catalog.clear_classification(product_id, country_of_origin=previous_country)
                raise

    def _fail(self, product_id: int, exc: ClassificationError, product_exists: bool) -> Failure:
        failure = Failure.from_error(exc)
        log = logger.warning if failure.retryable else logger.error
        log(
            "Classification failed for product %s: %s (%s)",
            product_id,
            failure.kind.value,
            failure.message,
        )

        if product_exists:
            try:
                self._catalog.write_error(product_id, ErrorRecord.from_error(exc))
            except Exception:
                logger.exception("Could not store error record for product %s", product_id)

        return failure

    def _notify_low_confidence(self, snapshot: ProductSnapshot, result: ClassificationResult) -> None:
        # Уведомление не меняет результат: это всё ещё Success
        try:
            self._notifier.notify(snapshot, result)
        except Exception:
            logger.exception("Low-confidence notification failed for product %s", snapshot.product_id)

    def set_manual_code(self, product_id: int, hts_code: str, country: Optional[str] = None) -> StoredClassification:
        """
        Ручной ввод кода оператором. Формат мягче, чем у модели: 4-2-2, 4-2-2-2 или 4-2-4.
        Квоту не расходует.
        """
        code = (hts_code or "").strip()
        if not is_valid_manual_code(code):
            raise ProductDataInvalid(
                f"Invalid HTS code format: {hts_code!r}. Expected ####.##.## or ####.##.##.##",
                context={"product_id": product_id, "hts_code": hts_code},
            )
        if self._catalog.get_product_snapshot(product_id) is None:
            raise ProductNotFound(context={"product_id": product_id})

        stored = StoredClassification(
            hts_code=code,
            confidence=None,
            rationale="",
            updated_at=datetime.now(timezone.utc),
            country=(country or self._default_country).strip(),
        )
        self._catalog.write_classification(product_id, stored)
        self._catalog.clear_error(product_id)
        return stored
