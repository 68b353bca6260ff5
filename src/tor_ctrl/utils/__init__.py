"""Utility modules for tor-ctrl."""

from .config import ControlConfig, get_config_path, get_value, load_config, save_config, set_value

__all__ = [
    "ControlConfig",
    "get_config_path",
    "get_value",
    "load_config",
    "save_config",
    "set_value",
]
