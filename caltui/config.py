"""
Configuration

Settings live in a YAML file (default ~/.config/caltui/config.yaml):

    timezone: America/New_York
    columns: 3
    window_height: 15
    core_start_hour: 9
    core_end_hour: 17
    server_path: /usr/local/bin/gcal-mcp-server
    debug: false

Missing keys take defaults; out-of-range values fall back to the default
with a debug log line. Command line flags override file values.
"""

from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .debug import debug_log
from .timeutil import get_system_timezone, get_zone

CONFIG_DEFAULT_PATH = Path.home() / ".config" / "caltui" / "config.yaml"

ALLOWED_COLUMNS = (1, 3, 5)
DEFAULT_WINDOW_HEIGHT = 15


class ConfigError(Exception):
    pass


@dataclass
class Config:
    timezone: str = field(default_factory=get_system_timezone)
    columns: int = 1
    window_height: int = DEFAULT_WINDOW_HEIGHT
    core_start_hour: int = 9
    core_end_hour: int = 17
    server_path: Optional[str] = None
    debug: bool = False

    def with_overrides(self, **overrides: Any) -> 'Config':
        """Copy with every non-None override applied, then re-validated"""
        values = {k: v for k, v in overrides.items() if v is not None}
        return validate_config(replace(self, **values))


def _as_int(value: Any, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _is_valid_zone(name: str) -> bool:
    try:
        get_zone(name)
    except ValueError:
        return False
    return True


def validate_config(config: Config) -> Config:
    config.timezone = str(config.timezone)
    defaults = Config(timezone=config.timezone)

    if not _is_valid_zone(config.timezone):
        debug_log(f"Unknown timezone {config.timezone!r} in config, using system timezone")
        config.timezone = get_system_timezone()
        if not _is_valid_zone(config.timezone):
            config.timezone = 'UTC'

    config.columns = _as_int(config.columns, defaults.columns)
    if config.columns not in ALLOWED_COLUMNS:
        debug_log(f"columns must be one of {ALLOWED_COLUMNS}, got {config.columns}; using 1")
        config.columns = defaults.columns

    config.window_height = _as_int(config.window_height, defaults.window_height)
    if config.window_height < 1:
        config.window_height = defaults.window_height

    config.core_start_hour = _as_int(config.core_start_hour, defaults.core_start_hour)
    config.core_end_hour = _as_int(config.core_end_hour, defaults.core_end_hour)
    if not 0 <= config.core_start_hour < config.core_end_hour <= 24:
        debug_log(f"Invalid core hours {config.core_start_hour}-{config.core_end_hour}, using 9-17")
        config.core_start_hour = defaults.core_start_hour
        config.core_end_hour = defaults.core_end_hour

    config.debug = bool(config.debug)
    return config


def config_from_dict(data: Dict[str, Any]) -> Config:
    config = Config()
    for key in ('timezone', 'columns', 'window_height', 'core_start_hour',
                'core_end_hour', 'server_path', 'debug'):
        if data.get(key) is not None:
            setattr(config, key, data[key])
    return validate_config(config)


def load_config(path: Optional[Path] = None) -> Config:
    """Load config from YAML; a missing file yields defaults"""
    path = Path(path) if path else CONFIG_DEFAULT_PATH
    if not path.exists():
        debug_log(f"No config at {path}, using defaults")
        return validate_config(Config())

    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigError(f"Could not read config {path}: {exc}") from exc

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config {path} must be a mapping, got {type(data).__name__}")

    debug_log(f"Loaded config from {path}")
    return config_from_dict(data)
