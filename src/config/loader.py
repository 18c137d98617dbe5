"""
Config loader: YAML file -> schema validation -> frozen dataclass tree.

IG secrets resolved from environment variables (IG_API_KEY, IG_USERNAME, IG_PASSWORD).
Config file holds only non-secret values.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path
from typing import Any

import jsonschema
import yaml

logger = logging.getLogger("dedup.config")

DEFAULT_SCHEMA_PATH = Path(__file__).resolve().parent / "app_config.schema.json"


class ConfigError(Exception):
    """Raised when config loading or validation fails."""


@dataclass(frozen=True)
class BrokerConfig:
    demo: bool = True
    market_check_epic: str = "IX.D.NASDAQ.CASH.IP"
    timeout_seconds: float = 10.0
    api_key: str = ""
    username: str = ""
    password: str = ""

    @property
    def has_credentials(self) -> bool:
        return bool(self.api_key and self.username and self.password)


@dataclass(frozen=True)
class DedupConfig:
    window_hours: float = 24.0
    require_created_after: bool = True
    closed_trade_lookback_days: int = 1
    excluded_instruments: frozenset[str] = field(default_factory=frozenset)

    @property
    def window(self) -> timedelta:
        return timedelta(hours=self.window_hours)


@dataclass(frozen=True)
class JournalConfig:
    enabled: bool = True
    path: str = "data/dedup_journal.jsonl"
    echo_stdout: bool = False


@dataclass(frozen=True)
class AlertingConfig:
    structured_logs: bool = True
    webhook_url: str = ""


@dataclass(frozen=True)
class AppConfig:
    broker: BrokerConfig = BrokerConfig()
    dedup: DedupConfig = DedupConfig()
    journal: JournalConfig = JournalConfig()
    alerting: AlertingConfig = AlertingConfig()


def _validate_schema(data: dict[str, Any], schema_path: Path) -> None:
    """Validate *data* against the JSON Schema at *schema_path*."""
    if not schema_path.exists():
        raise ConfigError(f"Schema file not found: {schema_path}")
    with open(schema_path) as f:
        schema = json.load(f)
    try:
        jsonschema.validate(instance=data, schema=schema)
    except jsonschema.ValidationError as exc:
        location = ".".join(str(p) for p in exc.absolute_path) or "<root>"
        raise ConfigError(f"Config validation failed at {location}: {exc.message}") from exc


def _build_config(raw: dict[str, Any]) -> AppConfig:
    b_raw = raw.get("broker", {})
    broker_cfg = BrokerConfig(
        demo=bool(b_raw.get("demo", True)),
        market_check_epic=b_raw.get("market_check_epic", "IX.D.NASDAQ.CASH.IP"),
        timeout_seconds=float(b_raw.get("timeout_seconds", 10.0)),
        api_key=os.environ.get("IG_API_KEY", ""),
        username=os.environ.get("IG_USERNAME", ""),
        password=os.environ.get("IG_PASSWORD", ""),
    )

    d_raw = raw.get("dedup", {})
    dedup_cfg = DedupConfig(
        window_hours=float(d_raw.get("window_hours", 24.0)),
        require_created_after=bool(d_raw.get("require_created_after", True)),
        closed_trade_lookback_days=int(d_raw.get("closed_trade_lookback_days", 1)),
        excluded_instruments=frozenset(d_raw.get("excluded_instruments", [])),
    )

    j_raw = raw.get("journal", {})
    journal_cfg = JournalConfig(
        enabled=bool(j_raw.get("enabled", True)),
        path=j_raw.get("path", "data/dedup_journal.jsonl"),
        echo_stdout=bool(j_raw.get("echo_stdout", False)),
    )

    a_raw = raw.get("alerting", {})
    alerting_cfg = AlertingConfig(
        structured_logs=bool(a_raw.get("structured_logs", True)),
        webhook_url=str(a_raw.get("webhook_url", "")),
    )

    return AppConfig(broker=broker_cfg, dedup=dedup_cfg, journal=journal_cfg, alerting=alerting_cfg)


def load_config(path: str | Path = "config.yaml", schema_path: str | Path | None = None) -> AppConfig:
    """
    Load configuration from a YAML file.

    IG credentials are resolved from environment variables:
      - IG_API_KEY
      - IG_USERNAME
      - IG_PASSWORD

    An empty file yields all defaults.

    Raises
    ------
    ConfigError
        If the file is missing, not a YAML mapping, or fails schema validation.
    """
    config_path = Path(path)
    if not config_path.exists():
        raise ConfigError(f"Config file not found: {config_path}")

    try:
        with open(config_path) as f:
            raw = yaml.safe_load(f)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Config file is not valid YAML: {exc}") from exc

    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ConfigError(f"Config file must be a YAML mapping, got {type(raw).__name__}")

    _validate_schema(raw, Path(schema_path) if schema_path else DEFAULT_SCHEMA_PATH)
    cfg = _build_config(raw)
    logger.debug("Loaded config from %s (demo=%s)", config_path, cfg.broker.demo)
    return cfg
