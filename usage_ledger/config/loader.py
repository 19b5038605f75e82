"""
Configuration management and loading.

Handles storage location, analytics windows and log level settings.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict

import yaml

from usage_ledger.core.ledger import DEFAULT_STORAGE_KEY

VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class StorageConfig:
    """Where the event log is persisted."""
    path: str = "usage_ledger.db"
    key: str = DEFAULT_STORAGE_KEY
    
    def __post_init__(self):
        """Validate storage values are non-empty."""
        if not self.path or not self.path.strip():
            raise ValueError("storage path cannot be empty")
        if not self.key or not self.key.strip():
            raise ValueError("storage key cannot be empty")


@dataclass(frozen=True)
class AnalyticsConfig:
    """Default windows for daily views."""
    daily_window: int = 7
    export_window: int = 30
    
    def __post_init__(self):
        """Validate windows are positive."""
        if self.daily_window <= 0:
            raise ValueError("daily_window must be > 0")
        if self.export_window <= 0:
            raise ValueError("export_window must be > 0")


@dataclass(frozen=True)
class LedgerConfig:
    """Complete ledger configuration."""
    storage: StorageConfig = field(default_factory=StorageConfig)
    analytics: AnalyticsConfig = field(default_factory=AnalyticsConfig)
    log_level: str = "WARNING"
    
    @property
    def logging_level(self) -> int:
        """Numeric level for logging.basicConfig."""
        return getattr(logging, self.log_level)


def default_config() -> LedgerConfig:
    """Configuration used when no file is given."""
    return LedgerConfig()


def load_ledger_config(path: str) -> LedgerConfig:
    """Load and validate ledger configuration from YAML file.
    
    Every section is optional, but unknown keys and wrong types are
    rejected so a typo never silently falls back to a default.
    
    Args:
        path: Path to YAML configuration file
        
    Returns:
        Validated LedgerConfig object
        
    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If YAML is invalid
        ValueError: If configuration is invalid
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Ledger config file not found: {path}")
    
    with open(config_path, 'r', encoding='utf-8') as f:
        try:
            raw_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise yaml.YAMLError(f"Invalid YAML in config file {path}: {e}")
    
    if raw_config is None:
        return default_config()
    if not isinstance(raw_config, dict):
        raise ValueError("Configuration must be a mapping")
    
    allowed_top_keys = {'storage', 'analytics', 'logging'}
    unknown_keys = set(raw_config.keys()) - allowed_top_keys
    if unknown_keys:
        raise ValueError(f"Unknown configuration keys: {unknown_keys}")
    
    storage_data = _section(raw_config, 'storage', {'path', 'key'})
    for name in ('path', 'key'):
        if name in storage_data and not isinstance(storage_data[name], str):
            raise ValueError(f"'storage.{name}' must be a string")
    storage = StorageConfig(**storage_data)
    
    analytics_data = _section(raw_config, 'analytics', {'daily_window', 'export_window'})
    for name, value in analytics_data.items():
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValueError(f"'analytics.{name}' must be an integer")
    analytics = AnalyticsConfig(**analytics_data)
    
    logging_data = _section(raw_config, 'logging', {'level'})
    log_level = logging_data.get('level', "WARNING")
    if not isinstance(log_level, str) or log_level.upper() not in VALID_LOG_LEVELS:
        raise ValueError(f"'logging.level' must be one of: {list(VALID_LOG_LEVELS)}")
    
    return LedgerConfig(
        storage=storage,
        analytics=analytics,
        log_level=log_level.upper()
    )


def _section(raw_config: Dict, name: str, allowed_keys: set) -> Dict[str, Any]:
    """Extract an optional section and reject unknown keys in it.
    
    Raises:
        ValueError: If the section is not a mapping or has unknown keys
    """
    data = raw_config.get(name)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"'{name}' must be a dictionary")
    
    unknown_keys = set(data.keys()) - allowed_keys
    if unknown_keys:
        raise ValueError(f"Unknown {name} keys: {unknown_keys}")
    return data
