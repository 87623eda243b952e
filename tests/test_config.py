"""
Tests for configuration loading.
"""

import json
import os

import pytest
import toml
import yaml

from mpv_session.utils.config import ConfigLoader, PlayerConfig, SessionConfig, load_config
from mpv_session.utils.errors import ConfigurationError


@pytest.fixture
def isolated(temp_dir, monkeypatch):
    """No home or working-directory config files, no MPV_SESSION_* variables."""
    monkeypatch.setenv("HOME", str(temp_dir))
    monkeypatch.chdir(temp_dir)
    for key in list(os.environ):
        if key.startswith("MPV_SESSION_"):
            monkeypatch.delenv(key)
    return temp_dir


class TestPlayerConfig:
    """Test the player settings model."""

    def test_defaults(self):
        config = PlayerConfig()
        assert config.path is None
        assert config.args == []
        assert config.connect_timeout == 5.0
        assert config.command_timeout is None
        assert config.resend_pending is False
        assert config.auto_restart is True

    def test_args_from_string(self):
        assert PlayerConfig(args="--no-video  --volume=50").args == ["--no-video", "--volume=50"]

    @pytest.mark.parametrize("field", ["connect_timeout", "connect_retry_interval", "terminate_timeout"])
    def test_positive_timeouts(self, field):
        with pytest.raises(ValueError):
            PlayerConfig(**{field: 0})

    def test_command_timeout_must_be_positive(self):
        with pytest.raises(ValueError):
            PlayerConfig(command_timeout=-1)


class TestConfigLoader:
    """Test source merging and validation."""

    def test_file_formats(self, isolated):
        (isolated / "a.json").write_text(json.dumps({"player": {"connect_timeout": 1.5}}))
        (isolated / "b.yaml").write_text(yaml.safe_dump({"player": {"args": ["--no-video"]}}))
        (isolated / "c.toml").write_text(toml.dumps({"logging": {"level": "debug"}}))

        loader = ConfigLoader()
        loader.add_source(isolated / "a.json")
        loader.add_source(isolated / "b.yaml")
        loader.add_source(isolated / "c.toml")
        config = loader.load()

        assert config.player.connect_timeout == 1.5
        assert config.player.args == ["--no-video"]
        assert config.logging.level == "DEBUG"
        assert loader.get_config() is config

    def test_priority_order(self, isolated):
        loader = ConfigLoader()
        loader.add_source({"player": {"connect_timeout": 9.0, "auto_restart": False}}, priority=50)
        loader.add_source({"player": {"connect_timeout": 1.0}}, priority=10)

        config = loader.load()

        assert config.player.connect_timeout == 9.0
        assert config.player.auto_restart is False

    def test_environment_overrides(self, isolated, monkeypatch):
        monkeypatch.setenv("MPV_SESSION_PLAYER__CONNECT_TIMEOUT", "2.5")
        monkeypatch.setenv("MPV_SESSION_PLAYER__RESEND_PENDING", "yes")
        monkeypatch.setenv("MPV_SESSION_LOGGING__FORMAT", "json")

        loader = ConfigLoader()
        loader.add_source({"player": {"connect_timeout": 1.0}}, priority=100)
        config = loader.load()

        assert config.player.connect_timeout == 2.5
        assert config.player.resend_pending is True
        assert config.logging.format == "json"

    def test_validation_error(self, isolated):
        loader = ConfigLoader()
        loader.add_source({"player": {"connect_timeout": -1}})

        with pytest.raises(ConfigurationError, match="player.connect_timeout"):
            loader.load()

    def test_unknown_file_type(self, isolated):
        with pytest.raises(ConfigurationError, match="Unknown config file type"):
            ConfigLoader().add_source(isolated / "config.ini")

    def test_invalid_file_contents(self, isolated):
        (isolated / "broken.json").write_text("{nope")
        loader = ConfigLoader()
        loader.add_source(isolated / "broken.json")

        with pytest.raises(ConfigurationError, match="Failed to parse"):
            loader.load()

    def test_root_must_be_mapping(self, isolated):
        (isolated / "list.yaml").write_text("- a\n- b\n")
        loader = ConfigLoader()
        loader.add_source(isolated / "list.yaml")

        with pytest.raises(ConfigurationError, match="must be a mapping"):
            loader.load()

    def test_missing_file_skipped(self, isolated):
        loader = ConfigLoader()
        loader.add_source(isolated / "absent.toml")
        assert loader.load() == SessionConfig()

    def test_get_config_before_load(self):
        with pytest.raises(ConfigurationError):
            ConfigLoader().get_config()


class TestLoadConfig:
    """Test the standard-location loader."""

    def test_working_directory_file(self, isolated):
        (isolated / "mpv-session.toml").write_text('[player]\npath = "/opt/mpv"\n')

        config = load_config()

        assert config.player.path == "/opt/mpv"

    def test_extra_config_wins(self, isolated):
        (isolated / "mpv-session.toml").write_text('[player]\npath = "/opt/mpv"\n')
        (isolated / "override.yaml").write_text("player:\n  path: /usr/local/bin/mpv\n")

        config = load_config(
            config_paths=[isolated / "override.yaml"],
            extra_config={"player": {"auto_restart": False}},
        )

        assert config.player.path == "/usr/local/bin/mpv"
        assert config.player.auto_restart is False
