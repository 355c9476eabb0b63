import os
from dataclasses import dataclass, fields, replace
from typing import Any, Dict, Mapping, Optional

import yaml

from ..core.exceptions import BlackjackError


class ConfigError(BlackjackError, ValueError):
    """Raised when a configuration value is missing or invalid."""
    pass


@dataclass(frozen=True)
class ServerConfig:
    """Resolved server settings."""
    host: str = "0.0.0.0"
    port: int = 9999
    records_file: str = "records.json"
    read_timeout: float = 60.0     # seconds of read inactivity before disconnect
    result_delay: float = 0.5      # pause between final state and result
    deck_reset_threshold: int = 15
    max_records: int = 100
    top_records: int = 10
    log_level: str = "INFO"

    def __post_init__(self):
        """Validate every field."""
        if not 0 <= self.port <= 65535:
            raise ConfigError(f"port must be in 0..65535, got {self.port}")
        if self.read_timeout <= 0:
            raise ConfigError("read_timeout must be positive")
        if self.result_delay < 0:
            raise ConfigError("result_delay must not be negative")
        if self.deck_reset_threshold < 0 or self.deck_reset_threshold > 52:
            raise ConfigError("deck_reset_threshold must be in 0..52")
        if self.max_records < 1 or self.top_records < 1:
            raise ConfigError("max_records and top_records must be at least 1")

    def with_overrides(self, overrides: Mapping[str, Any]) -> "ServerConfig":
        """Return a copy with the non-None overrides applied and coerced."""
        return replace(self, **_coerce(overrides))


ENV_OVERRIDES = {
    "SERVER_PORT": "port",
    "RECORDS_FILE": "records_file",
    "LOG_LEVEL": "log_level",
}


def _coerce(values: Mapping[str, Any]) -> Dict[str, Any]:
    """Convert raw values to the field types, dropping unknown keys and None."""
    types = {f.name: f.type for f in fields(ServerConfig)}
    result: Dict[str, Any] = {}
    for key, value in values.items():
        if key not in types or value is None:
            continue
        target = types[key]
        try:
            result[key] = target(value)
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid value for {key}: {value!r}") from e
    return result


def load_yaml(config_path: str) -> Dict[str, Any]:
    """Load the `server` section of a YAML file. A missing file is empty."""
    if not os.path.exists(config_path):
        return {}
    try:
        with open(config_path, 'r') as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {config_path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"{config_path} must contain a mapping")
    section = data.get("server", {}) or {}
    if not isinstance(section, dict):
        raise ConfigError(f"'server' in {config_path} must be a mapping")
    return section


def load_config(config_path: Optional[str] = None,
                env: Optional[Mapping[str, str]] = None,
                overrides: Optional[Mapping[str, Any]] = None) -> ServerConfig:
    """
    Resolve settings. Later sources win:
    defaults, YAML file, environment variables, explicit overrides.
    """
    env = os.environ if env is None else env
    config = ServerConfig()
    if config_path:
        config = config.with_overrides(load_yaml(config_path))
    env_values = {field_name: env[var] for var, field_name in ENV_OVERRIDES.items() if env.get(var)}
    config = config.with_overrides(env_values)
    if overrides:
        config = config.with_overrides(overrides)
    return config
