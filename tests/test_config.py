"""Tests for configuration utilities."""

import tempfile
from pathlib import Path
from unittest.mock import patch

import pytest

from tor_ctrl.exceptions import ConfigError
from tor_ctrl.utils.config import (
    DEFAULT_CONFIG,
    ControlConfig,
    get_config_path,
    get_value,
    load_config,
    save_config,
    set_value,
)


class TestConfigPath:
    """Tests for config path resolution."""

    def test_get_config_path_default(self):
        """Test default config path is in user config directory."""
        path = get_config_path()
        assert "tor-ctrl" in str(path)
        assert path.name == "config.toml"


class TestDefaultConfig:
    """Tests for default configuration."""

    def test_default_config_structure(self):
        assert "control" in DEFAULT_CONFIG

    def test_default_control_values(self):
        assert DEFAULT_CONFIG["control"]["host"] == "localhost"
        assert DEFAULT_CONFIG["control"]["port"] == 9051


class TestLoadConfig:
    """Tests for loading configuration."""

    def test_load_config_missing_file(self):
        """Test loading config when file doesn't exist returns defaults."""
        with tempfile.TemporaryDirectory() as tmpdir:
            config_path = Path(tmpdir) / "nonexistent.toml"

            with patch("tor_ctrl.utils.config.get_config_path", return_value=config_path):
                config = load_config()

            assert config["control"]["port"] == 9051
            assert config_path.exists()

    def test_load_config_default_copy_is_independent(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            config_path = Path(tmpdir) / "nonexistent.toml"

            with patch("tor_ctrl.utils.config.get_config_path", return_value=config_path):
                config = load_config()

            config["control"]["port"] = 1
            assert DEFAULT_CONFIG["control"]["port"] == 9051

    def test_load_config_existing_file(self):
        """Test loading config from existing file."""
        with tempfile.TemporaryDirectory() as tmpdir:
            config_path = Path(tmpdir) / "config.toml"
            config_path.write_text(
                """
[control]
socket_path = "/run/tor/control"
cookie_path = "/run/tor/control.authcookie"
"""
            )

            with patch("tor_ctrl.utils.config.get_config_path", return_value=config_path):
                config = load_config()

            assert config["control"]["socket_path"] == "/run/tor/control"
            assert config["control"]["cookie_path"] == "/run/tor/control.authcookie"

    def test_load_config_malformed(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            config_path = Path(tmpdir) / "config.toml"
            config_path.write_text("[control\nport = ")

            with patch("tor_ctrl.utils.config.get_config_path", return_value=config_path):
                with pytest.raises(ConfigError):
                    load_config()


class TestSaveConfig:
    """Tests for saving configuration."""

    def test_save_config_creates_file(self):
        """Test saving config creates file."""
        with tempfile.TemporaryDirectory() as tmpdir:
            config_path = Path(tmpdir) / "subdir" / "config.toml"

            with patch("tor_ctrl.utils.config.get_config_path", return_value=config_path):
                save_config({"control": {"port": 9151}})

            assert config_path.exists()
            assert "9151" in config_path.read_text()

    def test_config_round_trip(self):
        """Test saving and loading config preserves values."""
        with tempfile.TemporaryDirectory() as tmpdir:
            config_path = Path(tmpdir) / "config.toml"
            original = {"control": {"host": "10.0.0.5", "port": 9151, "password": "pw"}}

            with patch("tor_ctrl.utils.config.get_config_path", return_value=config_path):
                save_config(original)
                loaded = load_config()

            assert loaded == original


class TestGetValue:
    """Tests for getting nested config values."""

    def test_get_value_nested_key(self):
        config = {"control": {"port": 9151}}
        assert get_value(config, "control.port") == 9151

    def test_get_value_missing_key(self):
        config = {"control": {"port": 9151}}
        assert get_value(config, "control.missing") is None

    def test_get_value_missing_nested(self):
        assert get_value({"control": {}}, "missing.path.key") is None

    def test_get_value_with_default(self):
        assert get_value({}, "control", default={}) == {}


class TestSetValue:
    """Tests for setting nested config values."""

    def test_set_value_nested_key(self):
        config = {}
        set_value(config, "control.socket_path", "/run/tor/control")
        assert config["control"]["socket_path"] == "/run/tor/control"

    def test_set_value_preserves_siblings(self):
        config = {"control": {"host": "localhost", "port": 9051}}
        set_value(config, "control.port", 9151)
        assert config["control"] == {"host": "localhost", "port": 9151}


class TestControlConfig:
    """Tests for the session configuration dataclass."""

    def test_defaults(self):
        cfg = ControlConfig()
        assert cfg.host == "localhost"
        assert cfg.port == 9051
        assert cfg.socket_path is None
        assert cfg.password is None
        assert cfg.cookie_path is None

    def test_address_tcp(self):
        assert ControlConfig(host="10.0.0.5", port=9151).address == "10.0.0.5:9151"

    def test_address_socket_wins(self):
        cfg = ControlConfig(port=9151, socket_path="/run/tor/control")
        assert cfg.address == "/run/tor/control"

    def test_from_dict(self):
        cfg = ControlConfig.from_dict({"host": "tor", "port": "9151", "password": "pw"})
        assert cfg.host == "tor"
        assert cfg.port == 9151
        assert cfg.password == "pw"

    def test_from_dict_ignores_unknown_keys(self):
        cfg = ControlConfig.from_dict({"colour": "blue"})
        assert cfg == ControlConfig()

    def test_from_dict_invalid_port(self):
        with pytest.raises(ConfigError):
            ControlConfig.from_dict({"port": "ninety"})

    def test_from_dict_port_out_of_range(self):
        with pytest.raises(ConfigError):
            ControlConfig.from_dict({"port": 70000})
