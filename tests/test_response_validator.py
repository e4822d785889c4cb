# tests/test_response_validator.py
import json

import pytest

from hts_manager.classifier.response_validator import (
    ResponseValidator,
    is_valid_hts_code,
    is_valid_manual_code,
)
from hts_manager.errors import ClassificationFailed


def test_parse_json_wrapped_in_prose(envelope):
    text = (
        "Here is my classification:\n"
        '{"hts_code": "6117.10.2000", "confidence": 0.92, "reasoning": "Knit wool accessory"}\n'
        "Let me know if you need anything else."
    )

    result = ResponseValidator().parse(envelope(text))

    assert result.hts_code == "6117.10.2000"
    assert result.confidence == 0.92
    assert result.rationale == "Knit wool accessory"


def test_confidence_is_passed_through_unclamped(envelope):
    text = '{"hts_code": "6117.10.2000", "confidence": 1.7, "reasoning": ""}'

    result = ResponseValidator().parse(envelope(text))

    assert result.confidence == 1.7


def test_missing_reasoning_is_empty_string(envelope):
    result = ResponseValidator().parse(envelope('{"hts_code": "6117.10.2000", "confidence": "0.5"}'))

    assert result.rationale == ""
    assert result.confidence == 0.5


@pytest.mark.parametrize(
    "code",
    ["1234.56.78", "1234.56.78.90", "abcd.12.3456", "6117102000", "6117.10.20001", " 6117.10.2000", None, 61171020, "٦١١٧.١٠.٢٠٠٠"],
)
def test_bad_code_shape_is_rejected(envelope, code):
    text = json.dumps({"hts_code": code, "confidence": 0.9, "reasoning": "x"})

    with pytest.raises(ClassificationFailed):
        ResponseValidator().parse(envelope(text))


@pytest.mark.parametrize(
    "raw",
    [
        "not json at all",
        json.dumps({"content": []}),
        json.dumps({"error": {"type": "overloaded_error"}}),
        json.dumps({"content": [{"type": "text"}]}),
    ],
)
def test_bad_envelope_is_rejected(raw):
    with pytest.raises(ClassificationFailed):
        ResponseValidator().parse(raw)


@pytest.mark.parametrize(
    "text",
    [
        "Sorry, I cannot classify this.",
        "{not valid json}",
        '{"hts_code": "6117.10.2000", "confidence": "high"}',
        '{"hts_code": "6117.10.2000"}',
        '{"hts_code": "6117.10.2000", "confidence": NaN}',
    ],
)
def test_bad_inner_payload_is_rejected(envelope, text):
    with pytest.raises(ClassificationFailed):
        ResponseValidator().parse(envelope(text))


def test_code_patterns():
    assert is_valid_hts_code("6117.10.2000")
    assert not is_valid_hts_code("6117.10.20")

    # ручной ввод мягче
    assert is_valid_manual_code("6117.10.20")
    assert is_valid_manual_code("6117.10.20.00")
    assert is_valid_manual_code("6117.10.2000")
    assert not is_valid_manual_code("6117.10")
    assert not is_valid_manual_code("6117-10-20")


def test_non_ascii_digits_are_rejected():
    # арабско-индийские и полноширинные цифры
    assert not is_valid_hts_code("٦١١٧.١٠.٢٠٠٠")
    assert not is_valid_hts_code("６１１７.１０.２０００")
    assert not is_valid_manual_code("٦١١٧.١٠.٢٠")
    assert not is_valid_manual_code("６１１７.１０.２０.００")
