# hts_manager/llm_client/base.py
from __future__ import annotations

from abc import ABC, abstractmethod


class LLMClient(ABC):
    """
    Абстракция LLM-клиента.

    Задачи:
    - принять готовый промпт и API-ключ;
    - один раз сходить к провайдеру;
    - вернуть «сырое» тело ответа (str), не интерпретируя содержимое.
    """

    @abstractmethod
    async def classify(self, prompt: str, api_key: str) -> str:
        """
        Здесь должны обрабатываться:
        - таймауты;
        - маппинг HTTP/сетевых ошибок в типизированные ошибки из hts_manager.errors.

        Ретраев нет: одна попытка на вызов.
        """
        raise NotImplementedError
