# hts_manager/config.py
from dataclasses import dataclass, field
import os
from typing import Optional

from dotenv import load_dotenv

# Загружаем .env
load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, default))
    except (TypeError, ValueError):
        return default


def _env_limit(name: str, default: Optional[int]) -> Optional[int]:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        limit = int(value)
    except ValueError:
        return default
    # -1 (как в настройках плагина) означает «без лимита»
    return None if limit < 0 else limit


@dataclass
class LLMApiConfig:
    """
    Конфиг LLM-провайдера (Anthropic Messages API).
    """
    base_url: str = "https://api.anthropic.com/v1"
    endpoint: str = "/messages"
    api_key_env_var: str = "ANTHROPIC_API_KEY"
    api_version: str = "2023-06-01"
    model: str = "claude-3-5-sonnet-20241022"
    max_tokens: int = 500
    temperature: float = 0.2
    # Запрос обязан упасть, а не повиснуть: окно 30–45 секунд
    timeout_seconds: float = field(
        default_factory=lambda: min(max(_env_float("HTS_API_TIMEOUT", 30.0), 30.0), 45.0)
    )

    @property
    def url(self) -> str:
        return f"{self.base_url.rstrip('/')}/{self.endpoint.lstrip('/')}"

    def get_api_key(self) -> str:
        """Ключ читается из окружения в момент использования, а не при импорте."""
        return os.getenv(self.api_key_env_var, "").strip()


@dataclass
class ClassifierConfig:
    # Порог уверенности, ниже — уведомляем администратора
    confidence_threshold: float = field(
        default_factory=lambda: _env_float("HTS_CONFIDENCE_THRESHOLD", 0.60)
    )
    auto_classify_enabled: bool = field(
        default_factory=lambda: _env_bool("HTS_AUTO_CLASSIFY_ENABLED", True)
    )
    default_country: str = field(
        default_factory=lambda: os.getenv("HTS_DEFAULT_COUNTRY", "CA")
    )
    # Код-заглушка, который считается «кода нет»
    placeholder_code: str = "9999.99.9999"


@dataclass
class PlanConfig:
    """
    Тарифный план: metered — с лимитом классификаций, unmetered — без лимита.
    """
    metered: bool = field(
        default_factory=lambda: os.getenv("HTS_PLAN", "metered").strip().lower() != "unmetered"
    )
    limit: Optional[int] = field(default_factory=lambda: _env_limit("HTS_PLAN_LIMIT", 25))
    bulk_limit: Optional[int] = 5

    def effective_limit(self) -> Optional[int]:
        return self.limit if self.metered else None

    def effective_bulk_limit(self) -> Optional[int]:
        return self.bulk_limit if self.metered else None


@dataclass
class DatabaseConfig:
    url: str = field(
        default_factory=lambda: os.getenv("HTS_DATABASE_URL", "sqlite:///data/hts_manager.db")
    )


@dataclass
class AppConfig:
    llm: LLMApiConfig = field(default_factory=LLMApiConfig)
    classifier: ClassifierConfig = field(default_factory=ClassifierConfig)
    plan: PlanConfig = field(default_factory=PlanConfig)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)


# Глобальный объект конфига, который можно импортировать как `from hts_manager.config import config`
config = AppConfig()
