"""Typed settings, loaded from YAML and validated with pydantic.

Lookup order: ``$MARKETCORE_CONFIG`` if set, else ``config/marketcore.yaml``
under the project root.  A missing file means "all defaults".  A few values
can be overridden from the environment:

    MARKETCORE_DATABASE_URL, MARKETCORE_LOG_LEVEL, MARKETCORE_LOG_JSON
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

PROJECT_ROOT = Path(__file__).resolve().parents[3]
DEFAULT_CONFIG_PATH = PROJECT_ROOT / "config" / "marketcore.yaml"

ENV_OVERRIDES = {
    "MARKETCORE_DATABASE_URL": "database_url",
    "MARKETCORE_LOG_LEVEL": "log_level",
    "MARKETCORE_LOG_JSON": "log_json",
}


class Settings(BaseModel):
    database_url: str = f"sqlite:///{PROJECT_ROOT / 'data' / 'marketcore.db'}"
    base_currency: str = "USD"
    payment_methods: list[str] = Field(
        default_factory=lambda: [
            "credit_card",
            "mada",
            "apple_pay",
            "stcpay",
            "cash_on_delivery",
            "bank_transfer",
            "wallet",
        ]
    )
    payout_methods: list[str] = Field(default_factory=lambda: ["bank_transfer", "wallet"])
    default_payout_method: str = "bank_transfer"
    lock_timeout_seconds: float = 5.0
    log_level: str = "INFO"
    log_json: bool = False

    @field_validator("base_currency")
    @classmethod
    def _currency_code(cls, value: str) -> str:
        value = value.strip().upper()
        if len(value) != 3 or not value.isalpha():
            raise ValueError("base_currency must be a 3-letter code")
        return value

    @field_validator("log_level")
    @classmethod
    def _level_name(cls, value: str) -> str:
        value = value.strip().upper()
        if value not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"unknown log level {value!r}")
        return value

    @model_validator(mode="after")
    def _default_payout_method_is_known(self) -> Settings:
        if self.default_payout_method not in self.payout_methods:
            raise ValueError("default_payout_method must be one of payout_methods")
        return self


def get_config_path() -> Path:
    env_path = os.getenv("MARKETCORE_CONFIG")
    if env_path:
        return Path(env_path)
    return DEFAULT_CONFIG_PATH


def load_settings(path: Path | None = None, environ: dict[str, str] | None = None) -> Settings:
    """Read the YAML file (if any), apply env overrides and validate."""
    config_path = path or get_config_path()
    data: dict[str, Any] = {}
    if config_path.exists():
        with open(config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

    env = os.environ if environ is None else environ
    for var, key in ENV_OVERRIDES.items():
        if env.get(var):
            data[key] = env[var]
    return Settings.model_validate(data)
