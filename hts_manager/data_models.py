# hts_manager/data_models.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from hts_manager.errors import ClassificationError, ErrorKind


@dataclass(frozen=True)
class ProductSnapshot:
    """
    Срез атрибутов товара на момент классификации.

    Только для чтения: владелец данных — внешний каталог товаров.
    """
    product_id: int
    name: str
    description: str = ""
    short_description: str = ""
    sku: str = ""
    categories: tuple[str, ...] = ()
    price: Optional[str] = None
    weight: Optional[str] = None


@dataclass(frozen=True)
class ClassificationRequest:
    """Один промпт + параметры модели. Живёт ровно один вызов."""
    prompt: str
    model: str
    max_tokens: int
    temperature: float
    timeout_seconds: float


@dataclass
class ClassificationResult:
    """
    Результат классификации одного товара.

    hts_code всегда в формате DDDD.DD.DDDD — иначе это не успех.
    """
    hts_code: str
    confidence: float  # Оценка уверенности 0..1 (как вернула модель)
    rationale: str = ""


@dataclass
class StoredClassification:
    """То, что записывается в метаданные товара при успехе."""
    hts_code: str
    confidence: Optional[float]
    rationale: str
    updated_at: datetime
    country: str


@dataclass
class UsageCounter:
    used_count: int = 0
    limit: Optional[int] = None  # None = безлимитный план
    last_used_at: Optional[datetime] = None


@dataclass
class ErrorRecord:
    """Ошибка автоклассификации, которую показываем оператору."""
    kind: str
    message: str
    context: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_error(cls, exc: ClassificationError) -> "ErrorRecord":
        return cls(kind=exc.kind.value, message=exc.message, context=dict(exc.context))


# ---------- Исходы одной попытки классификации ----------


@dataclass(frozen=True)
class Allowed:
    """Квота разрешает запрос."""


@dataclass(frozen=True)
class Denied:
    """Локальная политика квоты отклонила попытку ещё до сетевого вызова."""
    used: int
    limit: int
    message: str = ""

    def __post_init__(self) -> None:
        if not self.message:
            object.__setattr__(
                self,
                "message",
                f"You have reached the limit of {self.limit} classifications for your plan.",
            )


@dataclass(frozen=True)
class Success:
    product_id: int
    result: ClassificationResult

    @property
    def hts_code(self) -> str:
        return self.result.hts_code

    @property
    def confidence(self) -> float:
        return self.result.confidence

    @property
    def rationale(self) -> str:
        return self.result.rationale


@dataclass(frozen=True)
class Failure:
    kind: ErrorKind
    message: str
    context: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_error(cls, exc: ClassificationError) -> "Failure":
        return cls(kind=exc.kind, message=exc.message, context=dict(exc.context))

    @property
    def suggested_action(self) -> Optional[str]:
        return self.kind.suggested_action

    @property
    def retryable(self) -> bool:
        return self.kind.retryable

    def to_record(self) -> ErrorRecord:
        return ErrorRecord(kind=self.kind.value, message=self.message, context=dict(self.context))


QuotaDecision = Union[Allowed, Denied]
ClassificationOutcome = Union[Success, Denied, Failure]


@dataclass
class BatchSummary:
    processed: int = 0
    succeeded: int = 0
    failed: int = 0
    denied: int = 0
    skipped: int = 0  # отрезано лимитом bulk-операции
    outcomes: Dict[int, ClassificationOutcome] = field(default_factory=dict)

    def failed_ids(self) -> List[int]:
        return [pid for pid, outcome in self.outcomes.items() if isinstance(outcome, Failure)]
