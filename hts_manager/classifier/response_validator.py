# hts_manager/classifier/response_validator.py
from __future__ import annotations

import json
import logging
import math
import re
from typing import Any, Dict

from hts_manager.data_models import ClassificationResult
from hts_manager.errors import ClassificationFailed


logger = logging.getLogger(__name__)

# Коды от модели — только полные 10 цифр, и только ASCII
HTS_CODE_PATTERN = re.compile(r"^\d{4}\.\d{2}\.\d{4}$", re.ASCII)

# Ручной ввод допускает укороченные коды (4-2-2 или 4-2-2-2)
MANUAL_HTS_CODE_PATTERN = re.compile(r"^\d{4}\.\d{2}\.\d{2}(\.\d{2})?$", re.ASCII)

# Жадно: от первой «{» до последней «}» во всём тексте
_EMBEDDED_JSON_RE = re.compile(r"\{.*\}", re.DOTALL)


def is_valid_hts_code(code: Any) -> bool:
    return isinstance(code, str) and HTS_CODE_PATTERN.fullmatch(code) is not None


def is_valid_manual_code(code: Any) -> bool:
    if not isinstance(code, str):
        return False
    return bool(MANUAL_HTS_CODE_PATTERN.fullmatch(code) or HTS_CODE_PATTERN.fullmatch(code))


class ResponseValidator:
    """
    Достаёт и проверяет результат (код, уверенность, обоснование) из ответа провайдера.
    """

    def extract_text(self, raw_reply: str) -> str:
        try:
            data = json.loads(raw_reply)
        except (TypeError, json.JSONDecodeError) as exc:
            raise ClassificationFailed(
                f"Failed to parse provider response as JSON: {exc}",
                context={"raw_reply": str(raw_reply)[:500]},
            ) from exc

        try:
            text = data["content"][0]["text"]
        except (KeyError, IndexError, TypeError) as exc:
            raise ClassificationFailed(
                "Provider response has no text content",
                context={"raw_reply": str(raw_reply)[:500]},
            ) from exc

        if not isinstance(text, str):
            raise ClassificationFailed("Provider response text is not a string")
        return text

    def extract_payload(self, text: str) -> Dict[str, Any]:
        # Модель может обернуть JSON прозой
        match = _EMBEDDED_JSON_RE.search(text)
        if match is None:
            raise ClassificationFailed(
                "No JSON object found in model reply",
                context={"text": text[:500]},
            )

        try:
            payload = json.loads(match.group(0))
        except json.JSONDecodeError as exc:
            raise ClassificationFailed(
                f"Failed to parse JSON embedded in model reply: {exc}",
                context={"text": text[:500]},
            ) from exc

        if not isinstance(payload, dict):
            raise ClassificationFailed("Embedded JSON is not an object", context={"text": text[:500]})
        return payload

    def parse(self, raw_reply: str) -> ClassificationResult:
        text = self.extract_text(raw_reply)
        payload = self.extract_payload(text)

        hts_code = payload.get("hts_code")
        if not is_valid_hts_code(hts_code):
            # 4-2-2 и прочие варианты не «чиним», а отвергаем
            raise ClassificationFailed(
                f"Invalid HTS code format: {hts_code!r}",
                context={"hts_code": hts_code},
            )

        raw_confidence = payload.get("confidence")
        if isinstance(raw_confidence, bool):
            raw_confidence = None
        try:
            confidence = float(raw_confidence)
        except (TypeError, ValueError) as exc:
            raise ClassificationFailed(
                f"Invalid confidence value: {raw_confidence!r}",
                context={"hts_code": hts_code, "confidence": raw_confidence},
            ) from exc
        if not math.isfinite(confidence):
            raise ClassificationFailed(
                f"Invalid confidence value: {raw_confidence!r}",
                context={"hts_code": hts_code},
            )

        reasoning = payload.get("reasoning") or ""
        if not isinstance(reasoning, str):
            reasoning = str(reasoning)

        logger.debug("Parsed classification %s (confidence=%s)", hts_code, confidence)
        return ClassificationResult(hts_code=hts_code, confidence=confidence, rationale=reasoning)
