# tests/test_config.py
import pytest

from hts_manager.config import PlanConfig


@pytest.mark.parametrize("raw", ["abc", "12.5", "ten"])
def test_bad_plan_limit_falls_back_to_default(monkeypatch, raw):
    monkeypatch.setenv("HTS_PLAN_LIMIT", raw)

    assert PlanConfig().limit == 25


def test_negative_plan_limit_means_unlimited(monkeypatch):
    monkeypatch.setenv("HTS_PLAN_LIMIT", "-1")

    assert PlanConfig().limit is None


def test_plan_limit_from_env(monkeypatch):
    monkeypatch.setenv("HTS_PLAN_LIMIT", " 40 ")

    assert PlanConfig().limit == 40
