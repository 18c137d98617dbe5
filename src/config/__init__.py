"""
Configuration loader.

Reads config.yaml, validates it against app_config.schema.json, resolves
IG credentials from env vars.
"""

from config.loader import (
    AlertingConfig,
    AppConfig,
    BrokerConfig,
    ConfigError,
    DedupConfig,
    JournalConfig,
    load_config,
)

__all__ = [
    "AlertingConfig",
    "AppConfig",
    "BrokerConfig",
    "ConfigError",
    "DedupConfig",
    "JournalConfig",
    "load_config",
]
