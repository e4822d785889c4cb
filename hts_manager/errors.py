# hts_manager/errors.py
from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional


class ErrorKind(str, Enum):
    PRODUCT_NOT_FOUND = "ProductNotFound"
    PRODUCT_DATA_INVALID = "ProductDataInvalid"
    API_KEY_MISSING = "ApiKeyMissing"
    API_KEY_INVALID = "ApiKeyInvalid"
    NETWORK_ERROR = "NetworkError"
    RATE_LIMITED = "RateLimited"
    SERVER_ERROR = "ServerError"
    QUOTA_EXCEEDED = "QuotaExceeded"
    CLASSIFICATION_FAILED = "ClassificationFailed"

    @property
    def user_message(self) -> str:
        return _USER_MESSAGES[self]

    @property
    def suggested_action(self) -> Optional[str]:
        return _SUGGESTED_ACTIONS.get(self)

    @property
    def retryable(self) -> bool:
        return self in (ErrorKind.NETWORK_ERROR, ErrorKind.RATE_LIMITED, ErrorKind.SERVER_ERROR)


_USER_MESSAGES: Dict[ErrorKind, str] = {
    ErrorKind.PRODUCT_NOT_FOUND: "Product not found.",
    ErrorKind.PRODUCT_DATA_INVALID: "Not enough product data to classify this product.",
    ErrorKind.API_KEY_MISSING: "API key not configured.",
    ErrorKind.API_KEY_INVALID: "The API key was rejected by the classification provider.",
    ErrorKind.NETWORK_ERROR: "Could not reach the classification provider.",
    ErrorKind.RATE_LIMITED: "The classification provider is rate limiting requests.",
    ErrorKind.SERVER_ERROR: "The classification provider returned a server error.",
    ErrorKind.QUOTA_EXCEEDED: "The classification provider account is out of credit.",
    ErrorKind.CLASSIFICATION_FAILED: "Failed to generate HTS code.",
}

_SUGGESTED_ACTIONS: Dict[ErrorKind, str] = {
    ErrorKind.PRODUCT_DATA_INVALID: "Give the product a name of at least 3 characters.",
    ErrorKind.API_KEY_MISSING: "Configure the API key in the HTS Manager settings.",
    ErrorKind.API_KEY_INVALID: "Check your API key.",
    ErrorKind.NETWORK_ERROR: "Try again later.",
    ErrorKind.RATE_LIMITED: "Wait a moment before retrying.",
    ErrorKind.SERVER_ERROR: "Try again later.",
    ErrorKind.QUOTA_EXCEEDED: "Check the billing settings of your provider account.",
    ErrorKind.CLASSIFICATION_FAILED: "Please try again or enter the code manually.",
}


class ClassificationError(Exception):
    """Базовая ошибка конвейера классификации."""

    kind: ErrorKind = ErrorKind.CLASSIFICATION_FAILED

    def __init__(self, message: str = "", context: Optional[Dict[str, Any]] = None) -> None:
        self.message = message or self.kind.user_message
        self.context: Dict[str, Any] = dict(context or {})
        super().__init__(self.message)


class ProductNotFound(ClassificationError):
    kind = ErrorKind.PRODUCT_NOT_FOUND


class ProductDataInvalid(ClassificationError):
    kind = ErrorKind.PRODUCT_DATA_INVALID


class ApiKeyMissing(ClassificationError):
    kind = ErrorKind.API_KEY_MISSING


class ClassificationFailed(ClassificationError):
    """Ответ не удалось превратить в валидный результат (контент, а не транспорт)."""

    kind = ErrorKind.CLASSIFICATION_FAILED


class LLMError(ClassificationError):
    """Базовая ошибка LLM-клиента (HTTP-статус, не 200)."""


class ApiKeyInvalid(LLMError):
    kind = ErrorKind.API_KEY_INVALID


class QuotaExceeded(LLMError):
    """Лимит/биллинг провайдера. Не путать с локальным Denied."""

    kind = ErrorKind.QUOTA_EXCEEDED


class LLMRetryableError(LLMError):
    """Ошибки, при которых можно безопасно повторить запрос позже (5xx, 429, timeout)."""


class NetworkError(LLMRetryableError):
    kind = ErrorKind.NETWORK_ERROR


class RateLimited(LLMRetryableError):
    kind = ErrorKind.RATE_LIMITED


class ServerError(LLMRetryableError):
    kind = ErrorKind.SERVER_ERROR
