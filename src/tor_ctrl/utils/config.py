"""Configuration file management.

Config is stored in TOML format at:
- macOS/Linux: ~/.config/tor-ctrl/config.toml
- Windows: %APPDATA%\\tor-ctrl\\config.toml

Usage:
    config = load_config()
    control = ControlConfig.from_dict(get_value(config, "control", {}))
"""

import platform
import tomllib
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

import tomli_w

from ..constants import APP_NAME, DEFAULT_HOST, DEFAULT_PORT
from ..exceptions import ConfigError


def get_config_dir() -> Path:
    """Get platform-appropriate config directory."""
    if platform.system() == "Windows":
        base = Path.home() / "AppData" / "Roaming"
    else:
        base = Path.home() / ".config"
    return base / APP_NAME


def get_config_path() -> Path:
    """Get path to config file."""
    return get_config_dir() / "config.toml"


DEFAULT_CONFIG = {
    "control": {
        "host": DEFAULT_HOST,
        "port": DEFAULT_PORT,
    },
}


@dataclass
class ControlConfig:
    """Connection settings for one control session.

    A socket path, when set, takes precedence over host and port. A password
    takes precedence over a cookie path.
    """

    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    socket_path: str | None = None
    password: str | None = field(default=None, repr=False)
    cookie_path: str | None = None

    @property
    def address(self) -> str:
        """Human-readable transport address."""
        if self.socket_path:
            return str(self.socket_path)
        return f"{self.host}:{self.port}"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ControlConfig":
        """Build from a ``[control]`` table, ignoring unknown keys.

        Raises:
            ConfigError: If the port is not an integer in 1-65535
        """
        known = {f.name for f in fields(cls)}
        values = {k: v for k, v in data.items() if k in known}

        if "port" in values:
            try:
                values["port"] = int(values["port"])
            except (TypeError, ValueError):
                raise ConfigError(f"Invalid control port: {values['port']!r}")
            if not 1 <= values["port"] <= 65535:
                raise ConfigError(f"Control port out of range: {values['port']}")

        return cls(**values)


def load_config() -> dict:
    """Load configuration from file.

    Creates default config if file doesn't exist.

    Returns:
        Dict with configuration values

    Raises:
        ConfigError: If config file is malformed
    """
    config_path = get_config_path()

    if not config_path.exists():
        save_config(DEFAULT_CONFIG)
        return {section: dict(values) for section, values in DEFAULT_CONFIG.items()}

    try:
        with open(config_path, "rb") as f:
            return tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        raise ConfigError(f"Failed to load config: {e}")


def save_config(config: dict) -> None:
    """Save configuration to file.

    Args:
        config: Dict with configuration values
    """
    config_path = get_config_path()
    config_path.parent.mkdir(parents=True, exist_ok=True)

    with open(config_path, "wb") as f:
        tomli_w.dump(config, f)


def get_value(config: dict, key: str, default: Any = None) -> Any:
    """Get a nested config value using dot notation.

    Args:
        config: Config dict
        key: Dot-separated key (e.g., "control.port")
        default: Default value if key not found

    Returns:
        Config value or default

    Example:
        >>> config = {"control": {"port": 9151}}
        >>> get_value(config, "control.port")
        9151
    """
    parts = key.split(".")
    current = config

    for part in parts:
        if isinstance(current, dict) and part in current:
            current = current[part]
        else:
            return default

    return current


def set_value(config: dict, key: str, value: Any) -> None:
    """Set a nested config value using dot notation.

    Args:
        config: Config dict (modified in place)
        key: Dot-separated key
        value: Value to set

    Example:
        >>> config = {}
        >>> set_value(config, "control.socket_path", "/run/tor/control")
        >>> config
        {'control': {'socket_path': '/run/tor/control'}}
    """
    parts = key.split(".")
    current = config

    for part in parts[:-1]:
        if part not in current:
            current[part] = {}
        current = current[part]

    current[parts[-1]] = value
