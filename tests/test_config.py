from datetime import timedelta

import pytest
from pydantic import ValidationError

from swipematch.config import Settings, get_settings, settings


def test_defaults():
    s = Settings(_env_file=None)
    assert s.DAILY_CREDIT_ALLOWANCE == 10
    assert s.SCORE_INITIAL == 100.0
    assert s.SCORE_FLOOR == 10.0
    assert s.STORAGE_BACKEND == "memory"
    assert s.credit_reset_interval == timedelta(hours=24)


def test_allowance_is_configurable_from_environment(monkeypatch):
    monkeypatch.setenv("DAILY_CREDIT_ALLOWANCE", "50")
    monkeypatch.setenv("STORAGE_BACKEND", "sql")

    s = Settings(_env_file=None)

    assert s.DAILY_CREDIT_ALLOWANCE == 50
    assert s.STORAGE_BACKEND == "sql"


def test_negative_allowance_rejected():
    with pytest.raises(ValidationError):
        Settings(_env_file=None, DAILY_CREDIT_ALLOWANCE=-1)


def test_floor_above_initial_score_rejected():
    with pytest.raises(ValidationError):
        Settings(_env_file=None, SCORE_INITIAL=5.0, SCORE_FLOOR=10.0)


def test_non_positive_reset_interval_rejected():
    with pytest.raises(ValidationError):
        Settings(_env_file=None, CREDIT_RESET_HOURS=0)


def test_unknown_backend_rejected():
    with pytest.raises(ValidationError):
        Settings(_env_file=None, STORAGE_BACKEND="redis")


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("true", True), ("False", False), ("1", True), ("off", False)],
)
def test_debug_parsed_from_string(monkeypatch, raw, expected):
    monkeypatch.setenv("DEBUG", raw)
    assert Settings(_env_file=None).DEBUG is expected


def test_get_settings_returns_global_instance():
    assert get_settings() is settings
