"""Tests for config loader: YAML parsing, schema validation, env var resolution, error cases."""

from datetime import timedelta
from pathlib import Path

import pytest

from config import AppConfig, ConfigError, load_config


def _write_yaml(path: Path, content: str) -> Path:
    path.write_text(content)
    return path


def test_load_config_basic(tmp_path: Path) -> None:
    path = _write_yaml(
        tmp_path / "config.yaml",
        """
broker:
  demo: false
  market_check_epic: "IX.D.FTSE.DAILY.IP"
  timeout_seconds: 5
dedup:
  window_hours: 12
  require_created_after: false
  closed_trade_lookback_days: 2
  excluded_instruments: ["EUR/USD", "EU Stocks 50"]
journal:
  enabled: false
  path: test_journal.jsonl
alerting:
  structured_logs: false
  webhook_url: "https://hooks.example/x"
""",
    )
    cfg = load_config(path)
    assert cfg.broker.demo is False
    assert cfg.broker.market_check_epic == "IX.D.FTSE.DAILY.IP"
    assert cfg.broker.timeout_seconds == 5.0
    assert cfg.dedup.window == timedelta(hours=12)
    assert cfg.dedup.require_created_after is False
    assert cfg.dedup.closed_trade_lookback_days == 2
    assert cfg.dedup.excluded_instruments == frozenset({"EUR/USD", "EU Stocks 50"})
    assert cfg.journal.enabled is False
    assert cfg.journal.path == "test_journal.jsonl"
    assert cfg.alerting.structured_logs is False
    assert cfg.alerting.webhook_url == "https://hooks.example/x"


def test_load_config_defaults(tmp_path: Path) -> None:
    cfg = load_config(_write_yaml(tmp_path / "config.yaml", ""))
    assert cfg.broker.demo is True
    assert cfg.broker.market_check_epic == "IX.D.NASDAQ.CASH.IP"
    assert cfg.dedup.window == timedelta(hours=24)
    assert cfg.dedup.require_created_after is True
    assert cfg.dedup.closed_trade_lookback_days == 1
    assert cfg.dedup.excluded_instruments == frozenset()
    assert cfg.journal.enabled is True
    assert cfg.journal.echo_stdout is False
    assert cfg.alerting.structured_logs is True


def test_dataclass_defaults_match_loader() -> None:
    assert AppConfig().dedup.window == timedelta(hours=24)
    assert AppConfig().broker.has_credentials is False


def test_load_config_env_vars(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("IG_API_KEY", "test_key_123")
    monkeypatch.setenv("IG_USERNAME", "trader")
    monkeypatch.setenv("IG_PASSWORD", "secret")
    cfg = load_config(_write_yaml(tmp_path / "config.yaml", "broker:\n  demo: true\n"))
    assert cfg.broker.api_key == "test_key_123"
    assert cfg.broker.username == "trader"
    assert cfg.broker.password == "secret"
    assert cfg.broker.has_credentials is True


def test_load_config_missing_file() -> None:
    with pytest.raises(ConfigError, match="not found"):
        load_config("/nonexistent/path.yaml")


def test_load_config_not_a_mapping(tmp_path: Path) -> None:
    with pytest.raises(ConfigError, match="mapping"):
        load_config(_write_yaml(tmp_path / "config.yaml", "- a\n- b\n"))


def test_load_config_invalid_yaml(tmp_path: Path) -> None:
    with pytest.raises(ConfigError, match="YAML"):
        load_config(_write_yaml(tmp_path / "config.yaml", "dedup: [unclosed\n"))


@pytest.mark.parametrize(
    "content, location",
    [
        ("dedup:\n  window_hours: -1\n", "dedup.window_hours"),
        ("dedup:\n  closed_trade_lookback_days: 0\n", "dedup.closed_trade_lookback_days"),
        ("dedup:\n  excluded_instruments: EUR/USD\n", "dedup.excluded_instruments"),
        ("broker:\n  demo: 'yes'\n", "broker.demo"),
        ("unknown_section: {}\n", "<root>"),
    ],
)
def test_schema_violations(tmp_path: Path, content: str, location: str) -> None:
    with pytest.raises(ConfigError, match="validation failed") as excinfo:
        load_config(_write_yaml(tmp_path / "config.yaml", content))
    assert location in str(excinfo.value)


def test_example_config_is_valid() -> None:
    example = Path(__file__).resolve().parent.parent / "config.example.yaml"
    cfg = load_config(example)
    assert cfg.broker.demo is True
