#!/usr/bin/env python3
"""Hierarchical configuration manager with hot-reload for fstrigger.

This module provides configuration management with:
- 6-level precedence hierarchy
- YAML configuration files
- Environment variable overrides (FSTRIGGER_*)
- File watching for changes
- Thread-safe operations
- Deep merge of nested sections

Example:
    >>> config = ConfigManager()
    >>> config.load_file("fstrigger.yaml")
    >>> config.get("fstrigger.rules.reload_interval", default=1.0)
    >>> config.add_watcher(on_config_change)
    >>> config.watch_file("fstrigger.yaml")
"""

import copy
import os
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Set

import yaml

from fstrigger.core.constants import ErrorCode, Limits
from fstrigger.core.logging import get_logger

ENV_PREFIX = "FSTRIGGER_"


class ConfigSource(Enum):
    """Configuration source precedence levels."""

    COMPILED_DEFAULTS = 1  # Lowest precedence
    SYSTEM_CONFIG = 2
    USER_CONFIG = 3
    ENVIRONMENT = 4
    CLI_ARGS = 5
    RUNTIME = 6  # Highest precedence


@dataclass
class ConfigValue:
    """Configuration value with the source it came from."""

    value: Any
    source: ConfigSource
    timestamp: float = field(default_factory=time.time)


class ConfigError(Exception):
    """Configuration error."""

    def __init__(self, message: str, error_code: ErrorCode = ErrorCode.INVALID_INPUT):
        self.message = message
        self.error_code = error_code
        super().__init__(message)


class ConfigManager:
    """Thread-safe hierarchical configuration manager.

    Manages configuration from multiple sources with precedence:
    1. Compiled defaults (lowest)
    2. System config (/etc/fstrigger/config.yaml)
    3. User config (~/.config/fstrigger/config.yaml or --config)
    4. Environment variables (FSTRIGGER_*)
    5. CLI arguments
    6. Runtime updates (highest)
    """

    SYSTEM_CONFIG_DIR = "/etc/fstrigger"

    DEFAULT_CONFIG = {
        "fstrigger": {
            "rules": {
                "paths": [],
                "reload_interval": Limits.DEFAULT_RELOAD_INTERVAL,
                "case_sensitive": True,
            },
            "dispatch": {
                "threaded": False,
                "max_workers": Limits.DEFAULT_DISPATCH_WORKERS,
            },
            "watch": {
                "root": ".",
                "recursive": True,
            },
            "logging": {
                "level": "INFO",
                "file": None,
            },
        }
    }

    def __init__(self, config_file: Optional[str] = None, load_environment: bool = True):
        """Initialize configuration manager.

        Args:
            config_file: Optional config file to load as USER_CONFIG
            load_environment: Whether to read FSTRIGGER_* variables
        """
        self._config: Dict[ConfigSource, Dict[str, Any]] = {}
        self._lock = threading.RLock()
        self._watchers: List[Callable[[Dict[str, Any]], None]] = []
        self._watch_thread: Optional[threading.Thread] = None
        self._watch_files: Set[str] = set()
        self._file_mtimes: Dict[str, int] = {}
        self._stop_watching = threading.Event()
        self._logger = get_logger("fstrigger.config")

        self._config[ConfigSource.COMPILED_DEFAULTS] = copy.deepcopy(self.DEFAULT_CONFIG)

        if config_file:
            self.load_file(config_file)

        if load_environment:
            self._load_environment()

    def _source_for(self, file_path: str) -> ConfigSource:
        if file_path.startswith(self.SYSTEM_CONFIG_DIR):
            return ConfigSource.SYSTEM_CONFIG
        return ConfigSource.USER_CONFIG

    def load_file(self, file_path: str, source: Optional[ConfigSource] = None) -> None:
        """Load configuration from a YAML file.

        Args:
            file_path: Path to YAML config file
            source: Source level; derived from the path when omitted

        Raises:
            ConfigError: If file cannot be loaded or parsed
        """
        path = Path(file_path).expanduser().resolve()

        if not path.exists():
            raise ConfigError(f"Config file not found: {file_path}", ErrorCode.NOT_FOUND)

        try:
            with open(path, "r", encoding="utf-8") as f:
                config_data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"YAML parse error in {file_path}: {e}", ErrorCode.INVALID_INPUT)
        except OSError as e:
            raise ConfigError(f"Error reading config {file_path}: {e}", ErrorCode.PERMISSION_DENIED)

        if config_data is None:
            config_data = {}
        if not isinstance(config_data, dict):
            raise ConfigError(f"Invalid config format in {file_path}", ErrorCode.INVALID_INPUT)

        # Bare sections are accepted and nested under the fstrigger key
        if "fstrigger" not in config_data:
            config_data = {"fstrigger": config_data}

        with self._lock:
            self._config[source or self._source_for(str(path))] = config_data
            self._file_mtimes[str(path)] = path.stat().st_mtime_ns

        self._logger.debug("Loaded config file", path=str(path))

    def load_dict(self, config_data: Dict[str, Any], source: ConfigSource = ConfigSource.RUNTIME) -> None:
        """Load configuration from a dictionary.

        Args:
            config_data: Configuration dictionary
            source: Configuration source level
        """
        with self._lock:
            self._config[source] = copy.deepcopy(config_data)

    def _load_environment(self) -> None:
        """Load configuration from environment variables.

        ``FSTRIGGER_<SECTION>_<KEY>=value`` sets ``fstrigger.<section>.<key>``;
        the section is the first segment, the rest is the key, so
        ``FSTRIGGER_RULES_RELOAD_INTERVAL=2`` sets
        ``fstrigger.rules.reload_interval``.
        """
        env_config: Dict[str, Any] = {}

        for key, value in os.environ.items():
            if not key.startswith(ENV_PREFIX):
                continue

            parts = key[len(ENV_PREFIX):].lower().split("_", 1)
            if len(parts) != 2 or not all(parts):
                continue

            section, option = parts
            env_config.setdefault(section, {})[option] = self._parse_env_value(value)

        if env_config:
            with self._lock:
                self._config[ConfigSource.ENVIRONMENT] = {"fstrigger": env_config}

    @staticmethod
    def _parse_env_value(value: str) -> Any:
        """Parse an environment variable into bool, int, float, list or str."""
        lowered = value.lower()
        if lowered in ("true", "yes", "on"):
            return True
        if lowered in ("false", "no", "off"):
            return False

        try:
            return int(value)
        except ValueError:
            pass

        try:
            return float(value)
        except ValueError:
            pass

        if os.pathsep in value:
            return [part for part in value.split(os.pathsep) if part]

        return value

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value by dotted key.

        Args:
            key: Dot-separated key path (e.g., "fstrigger.rules.paths")
            default: Default value if key not found

        Returns:
            Value from the highest-precedence source defining it, or default
        """
        with self._lock:
            for source in sorted(self._config.keys(), key=lambda s: s.value, reverse=True):
                value = self._get_nested(self._config[source], key)
                if value is not None:
                    return value

            return default

    def get_value(self, key: str) -> Optional[ConfigValue]:
        """Get a value together with the source that provided it."""
        with self._lock:
            for source in sorted(self._config.keys(), key=lambda s: s.value, reverse=True):
                value = self._get_nested(self._config[source], key)
                if value is not None:
                    return ConfigValue(value=value, source=source)
            return None

    @staticmethod
    def _get_nested(config: Dict[str, Any], key: str) -> Optional[Any]:
        current: Any = config
        for part in key.split("."):
            if not isinstance(current, dict) or part not in current:
                return None
            current = current[part]
        return current

    def set(self, key: str, value: Any, source: ConfigSource = ConfigSource.RUNTIME) -> None:
        """Set configuration value and notify watchers.

        Args:
            key: Dot-separated key path
            value: Value to set
            source: Configuration source level
        """
        with self._lock:
            current = self._config.setdefault(source, {})
            parts = key.split(".")
            for part in parts[:-1]:
                current = current.setdefault(part, {})
            current[parts[-1]] = value

        self._notify_watchers()

    def get_all(self) -> Dict[str, Any]:
        """Get merged configuration from all sources."""
        with self._lock:
            merged: Dict[str, Any] = {}
            for source in sorted(self._config.keys(), key=lambda s: s.value):
                merged = self._deep_merge(merged, self._config[source])
            return merged

    def _deep_merge(self, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        result = base.copy()

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value

        return result

    def reload(self) -> None:
        """Reload all file-based configurations."""
        with self._lock:
            files_to_reload = list(self._file_mtimes.keys())

        for file_path in files_to_reload:
            try:
                self.load_file(file_path)
            except ConfigError as e:
                self._logger.warning("Config reload failed", path=file_path, error=e.message)

        self._notify_watchers()

    def watch_file(self, file_path: str, interval: float = Limits.DEFAULT_RELOAD_INTERVAL) -> None:
        """Watch a configuration file for changes.

        Args:
            file_path: Path to file to watch
            interval: Check interval in seconds
        """
        file_str = str(Path(file_path).expanduser().resolve())

        with self._lock:
            self._watch_files.add(file_str)

            if self._watch_thread is None or not self._watch_thread.is_alive():
                self._stop_watching.clear()
                self._watch_thread = threading.Thread(
                    target=self._watch_loop,
                    args=(max(interval, Limits.MIN_RELOAD_INTERVAL),),
                    name="fstrigger-config-watch",
                    daemon=True,
                )
                self._watch_thread.start()

    def _poll_files(self) -> bool:
        """Reload watched files whose mtime moved.

        Returns:
            True if any file was reloaded
        """
        with self._lock:
            files = list(self._watch_files)

        changed = False
        for file_path in files:
            try:
                mtime = Path(file_path).stat().st_mtime_ns
            except FileNotFoundError:
                continue
            except OSError as e:
                self._logger.warning("Config watch failed", path=file_path, error=str(e))
                continue

            if mtime == self._file_mtimes.get(file_path):
                continue

            try:
                self.load_file(file_path)
            except ConfigError as e:
                # Keep the last good values until the file changes again
                self._logger.warning("Config reload failed", path=file_path, error=e.message)
                with self._lock:
                    self._file_mtimes[file_path] = mtime
                continue

            self._logger.info("Configuration file changed", path=file_path)
            changed = True

        return changed

    def _watch_loop(self, interval: float) -> None:
        while not self._stop_watching.wait(interval):
            if self._poll_files():
                self._notify_watchers()

    def stop_watching(self) -> None:
        """Stop file watching."""
        self._stop_watching.set()
        if self._watch_thread and self._watch_thread is not threading.current_thread():
            self._watch_thread.join(timeout=2.0)

    def add_watcher(self, callback: Callable[[Dict[str, Any]], None]) -> None:
        """Add a callback called with the merged config on every change."""
        with self._lock:
            self._watchers.append(callback)

    def remove_watcher(self, callback: Callable[[Dict[str, Any]], None]) -> None:
        with self._lock:
            if callback in self._watchers:
                self._watchers.remove(callback)

    def _notify_watchers(self) -> None:
        merged = self.get_all()
        with self._lock:
            watchers = list(self._watchers)

        for watcher in watchers:
            try:
                watcher(merged)
            except Exception as e:
                self._logger.exception("Config watcher failed", e)

    def clear(self, source: Optional[ConfigSource] = None) -> None:
        """Clear configuration.

        Args:
            source: Specific source to clear, or None for all except defaults
        """
        with self._lock:
            if source:
                if source in self._config and source != ConfigSource.COMPILED_DEFAULTS:
                    del self._config[source]
            else:
                for s in [s for s in self._config if s != ConfigSource.COMPILED_DEFAULTS]:
                    del self._config[s]
