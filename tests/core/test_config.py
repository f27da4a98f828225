#!/usr/bin/env python3
"""Tests for the ConfigManager module."""

import os
import time

import pytest
import yaml

from fstrigger.core.config import (
    ConfigError,
    ConfigManager,
    ConfigSource,
    ConfigValue,
)
from fstrigger.core.constants import ConfigKey, ErrorCode


@pytest.fixture
def clean_env(monkeypatch):
    """Remove FSTRIGGER_* variables from the environment."""
    for key in list(os.environ):
        if key.startswith("FSTRIGGER_"):
            monkeypatch.delenv(key)
    return monkeypatch


@pytest.fixture
def config_file(temp_dir):
    path = temp_dir / "fstrigger.yaml"
    path.write_text(
        yaml.safe_dump(
            {"fstrigger": {"rules": {"paths": ["rules/"], "reload_interval": 2.5}, "logging": {"level": "DEBUG"}}}
        )
    )
    return path


class TestConfigSource:
    """Tests for ConfigSource enum."""

    def test_precedence_order(self):
        """Test config source precedence ordering."""
        values = [s.value for s in ConfigSource]
        assert values == sorted(values)
        assert ConfigSource.RUNTIME.value > ConfigSource.CLI_ARGS.value > ConfigSource.ENVIRONMENT.value


class TestConfigManager:
    """Tests for ConfigManager."""

    def test_defaults(self, clean_env):
        """Test compiled defaults are available."""
        config = ConfigManager()

        assert config.get(ConfigKey.RULE_PATHS) == []
        assert config.get(ConfigKey.RELOAD_INTERVAL) == 1.0
        assert config.get(ConfigKey.CASE_SENSITIVE) is True
        assert config.get(ConfigKey.DISPATCH_THREADED) is False
        assert config.get(ConfigKey.WATCH_ROOT) == "."
        assert config.get(ConfigKey.LOG_LEVEL) == "INFO"
        assert config.get("fstrigger.missing", default="x") == "x"

    def test_defaults_not_shared(self, clean_env):
        """Test instances do not share the default dictionaries."""
        first = ConfigManager()
        first.get(ConfigKey.RULE_PATHS).append("leak")
        assert ConfigManager().get(ConfigKey.RULE_PATHS) == []

    def test_load_file(self, clean_env, config_file):
        """Test file values override defaults."""
        config = ConfigManager(str(config_file))

        assert config.get(ConfigKey.RULE_PATHS) == ["rules/"]
        assert config.get(ConfigKey.RELOAD_INTERVAL) == 2.5
        assert config.get(ConfigKey.WATCH_RECURSIVE) is True
        assert config.get_value(ConfigKey.LOG_LEVEL).source is ConfigSource.USER_CONFIG

    def test_bare_sections(self, clean_env, temp_dir):
        """Test files without the top-level fstrigger key."""
        path = temp_dir / "bare.yaml"
        path.write_text("dispatch:\n  threaded: true\n")

        config = ConfigManager(str(path))
        assert config.get(ConfigKey.DISPATCH_THREADED) is True

    def test_empty_file(self, clean_env, temp_dir):
        path = temp_dir / "empty.yaml"
        path.write_text("")
        config = ConfigManager(str(path))
        assert config.get(ConfigKey.LOG_LEVEL) == "INFO"

    def test_missing_file(self, clean_env, temp_dir):
        with pytest.raises(ConfigError) as exc_info:
            ConfigManager(str(temp_dir / "nope.yaml"))
        assert exc_info.value.error_code == ErrorCode.NOT_FOUND

    @pytest.mark.parametrize("content", ["rules: [unclosed", "- a\n- b\n"])
    def test_invalid_file(self, clean_env, temp_dir, content):
        path = temp_dir / "bad.yaml"
        path.write_text(content)
        with pytest.raises(ConfigError) as exc_info:
            ConfigManager(str(path))
        assert exc_info.value.error_code == ErrorCode.INVALID_INPUT

    def test_environment(self, clean_env):
        """Test FSTRIGGER_<SECTION>_<KEY> variables."""
        clean_env.setenv("FSTRIGGER_RULES_RELOAD_INTERVAL", "3")
        clean_env.setenv("FSTRIGGER_DISPATCH_THREADED", "yes")
        clean_env.setenv("FSTRIGGER_LOGGING_LEVEL", "warning")
        clean_env.setenv("FSTRIGGER_RULES_PATHS", os.pathsep.join(["a", "b"]))

        config = ConfigManager()

        assert config.get(ConfigKey.RELOAD_INTERVAL) == 3
        assert config.get(ConfigKey.DISPATCH_THREADED) is True
        assert config.get(ConfigKey.LOG_LEVEL) == "warning"
        assert config.get(ConfigKey.RULE_PATHS) == ["a", "b"]
        assert config.get_value(ConfigKey.RELOAD_INTERVAL).source is ConfigSource.ENVIRONMENT

    def test_environment_disabled(self, clean_env):
        clean_env.setenv("FSTRIGGER_LOGGING_LEVEL", "DEBUG")
        assert ConfigManager(load_environment=False).get(ConfigKey.LOG_LEVEL) == "INFO"

    def test_malformed_environment_ignored(self, clean_env):
        """Test variables without a section are skipped."""
        clean_env.setenv("FSTRIGGER_VERBOSE", "1")
        config = ConfigManager()
        assert "verbose" not in config.get_all()["fstrigger"]

    @pytest.mark.parametrize(
        "raw,expected",
        [("on", True), ("OFF", False), ("7", 7), ("0.5", 0.5), ("text", "text")],
    )
    def test_parse_env_value(self, raw, expected):
        assert ConfigManager._parse_env_value(raw) == expected

    def test_precedence(self, clean_env, config_file):
        """Test runtime beats CLI beats environment beats file."""
        clean_env.setenv("FSTRIGGER_RULES_RELOAD_INTERVAL", "4")
        config = ConfigManager(str(config_file))
        assert config.get(ConfigKey.RELOAD_INTERVAL) == 4

        config.load_dict({"fstrigger": {"rules": {"reload_interval": 5}}}, ConfigSource.CLI_ARGS)
        assert config.get(ConfigKey.RELOAD_INTERVAL) == 5

        config.set(ConfigKey.RELOAD_INTERVAL, 6)
        value = config.get_value(ConfigKey.RELOAD_INTERVAL)
        assert isinstance(value, ConfigValue)
        assert (value.value, value.source) == (6, ConfigSource.RUNTIME)

    def test_get_all_deep_merge(self, clean_env, config_file):
        """Test merged config keeps keys from every level."""
        config = ConfigManager(str(config_file))
        config.set("fstrigger.watch.root", "/srv/app")

        merged = config.get_all()["fstrigger"]
        assert merged["rules"]["paths"] == ["rules/"]
        assert merged["rules"]["case_sensitive"] is True
        assert merged["watch"] == {"root": "/srv/app", "recursive": True}

    def test_load_dict_copies(self, clean_env):
        data = {"fstrigger": {"watch": {"root": "a"}}}
        config = ConfigManager()
        config.load_dict(data)
        data["fstrigger"]["watch"]["root"] = "b"
        assert config.get(ConfigKey.WATCH_ROOT) == "a"

    def test_watchers(self, clean_env):
        """Test watchers get the merged config and failures are contained."""
        config = ConfigManager()
        received = []

        def broken(merged):
            raise RuntimeError("bug")

        config.add_watcher(broken)
        config.add_watcher(received.append)
        config.set(ConfigKey.LOG_LEVEL, "DEBUG")

        assert received[0]["fstrigger"]["logging"]["level"] == "DEBUG"

        config.remove_watcher(received.append)
        config.set(ConfigKey.LOG_LEVEL, "INFO")
        assert len(received) == 1

    def test_reload(self, clean_env, config_file):
        config = ConfigManager(str(config_file))
        config_file.write_text("rules:\n  reload_interval: 9\n")
        config.reload()
        assert config.get(ConfigKey.RELOAD_INTERVAL) == 9

    def test_clear(self, clean_env, config_file):
        """Test clearing keeps compiled defaults."""
        config = ConfigManager(str(config_file))
        config.set(ConfigKey.WATCH_ROOT, "x")

        config.clear(ConfigSource.RUNTIME)
        assert config.get(ConfigKey.WATCH_ROOT) == "."
        assert config.get(ConfigKey.RELOAD_INTERVAL) == 2.5

        config.clear()
        assert config.get(ConfigKey.RELOAD_INTERVAL) == 1.0

    def test_watch_file(self, clean_env, config_file):
        """Test changes to a watched file are picked up."""
        config = ConfigManager(str(config_file))
        changed = []
        config.add_watcher(changed.append)

        config.watch_file(str(config_file), interval=0.1)
        try:
            config_file.write_text("rules:\n  reload_interval: 7\n")
            stamp = time.time() + 5
            os.utime(config_file, (stamp, stamp))

            deadline = time.time() + 5
            while not changed and time.time() < deadline:
                time.sleep(0.05)
        finally:
            config.stop_watching()

        assert config.get(ConfigKey.RELOAD_INTERVAL) == 7


    def test_poll_unchanged_file(self, clean_env, config_file):
        """Test polling an untouched file reloads nothing."""
        config = ConfigManager(str(config_file))
        config.watch_file(str(config_file), interval=60)
        try:
            assert config._poll_files() is False
        finally:
            config.stop_watching()

    def test_poll_broken_file_keeps_values(self, clean_env, config_file):
        """Test a broken edit keeps the last good values until fixed."""
        config = ConfigManager(str(config_file))
        config.watch_file(str(config_file), interval=60)
        try:
            config_file.write_text("rules: [unclosed")
            stamp = time.time() + 5
            os.utime(config_file, (stamp, stamp))

            assert config._poll_files() is False
            assert config.get(ConfigKey.RELOAD_INTERVAL) == 2.5
            assert config._poll_files() is False

            config_file.write_text("rules:\n  reload_interval: 4\n")
            os.utime(config_file, (stamp + 5, stamp + 5))

            assert config._poll_files() is True
            assert config.get(ConfigKey.RELOAD_INTERVAL) == 4
        finally:
            config.stop_watching()

    def test_poll_missing_file(self, clean_env, config_file):
        """Test a removed file is skipped."""
        config = ConfigManager(str(config_file))
        config.watch_file(str(config_file), interval=60)
        try:
            config_file.unlink()
            assert config._poll_files() is False
            assert config.get(ConfigKey.RELOAD_INTERVAL) == 2.5
        finally:
            config.stop_watching()
