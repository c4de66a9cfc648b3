"""Tests for settings loading."""

import pytest
from pydantic import ValidationError

from marketcore.infrastructure.config import DEFAULT_CONFIG_PATH, Settings, get_config_path, load_settings


def test_missing_file_means_defaults(tmp_path):
    settings = load_settings(tmp_path / "absent.yaml", environ={})
    assert settings == Settings()
    assert settings.base_currency == "USD"
    assert settings.payout_methods == ["bank_transfer", "wallet"]


def test_shipped_config_is_valid():
    settings = load_settings(DEFAULT_CONFIG_PATH, environ={})
    assert "cash_on_delivery" in settings.payment_methods
    assert settings.default_payout_method == "bank_transfer"


def test_yaml_values_and_env_overrides(tmp_path):
    path = tmp_path / "marketcore.yaml"
    path.write_text("base_currency: sar\nlog_level: debug\npayment_methods: [mada]\n", encoding="utf-8")

    settings = load_settings(
        path,
        environ={"MARKETCORE_DATABASE_URL": "sqlite://", "MARKETCORE_LOG_JSON": "true"},
    )

    assert settings.base_currency == "SAR"
    assert settings.log_level == "DEBUG"
    assert settings.payment_methods == ["mada"]
    assert settings.database_url == "sqlite://"
    assert settings.log_json is True


def test_config_path_from_environment(monkeypatch, tmp_path):
    monkeypatch.setenv("MARKETCORE_CONFIG", str(tmp_path / "x.yaml"))
    assert get_config_path() == tmp_path / "x.yaml"
    monkeypatch.delenv("MARKETCORE_CONFIG")
    assert get_config_path() == DEFAULT_CONFIG_PATH


@pytest.mark.parametrize(
    "data",
    [
        {"base_currency": "dollars"},
        {"log_level": "LOUD"},
        {"default_payout_method": "cheque"},
        {"lock_timeout_seconds": "soon"},
    ],
)
def test_invalid_settings(data):
    with pytest.raises(ValidationError):
        Settings.model_validate(data)
