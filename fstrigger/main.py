#!/usr/bin/env python3
"""Watch mode for fstrigger.

This module handles:
- Component initialization (notifier, RuleEngine, reloader, watchdog handler)
- Observer start/stop
- Signal handling for graceful shutdown
- Cleanup on exit

Example:
    >>> from fstrigger.main import run_watch
    >>> run_watch(args, config, logger)
"""

import argparse
import signal
import sys
import threading
from typing import Any, Dict, List, Optional

from fstrigger.core.config import ConfigManager
from fstrigger.core.constants import ConfigKey, Limits
from fstrigger.core.logging import Logger
from fstrigger.core.validators import ValidationError, validate_reload_interval
from fstrigger.rules.actions import ConsoleNotifier, Notifier, ThreadedNotifier
from fstrigger.rules.engine import RuleEngine
from fstrigger.rules.errors import RuleSourceError
from fstrigger.rules.models import RuleSet
from fstrigger.watch.handler import EventHandler, start_observer
from fstrigger.watch.reloader import RuleFileReloader


def as_path_list(value: Any) -> List[str]:
    """Coerce a configured rule path setting to a list of strings.

    A single path (a str, or a scalar such as a numeric directory name parsed
    from the environment) becomes a one-element list.
    """
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return [str(item) for item in value]
    return [str(value)]


class TriggerMain:
    """
    Controller for ``fstrigger watch``.

    Handles component lifecycle, the watchdog observer, and shutdown.
    """

    def __init__(self, args: argparse.Namespace, config: ConfigManager, logger: Logger):
        """
        Initialize the watch controller.

        Args:
            args: Parsed command-line arguments
            config: Configuration manager with CLI arguments applied
            logger: Logger instance
        """
        self.args = args
        self.config = config
        self.logger = logger
        self.shutdown_event = threading.Event()

        # Components
        self.notifier: Optional[Notifier] = None
        self.rule_engine: Optional[RuleEngine] = None
        self.reloader: Optional[RuleFileReloader] = None
        self.handler: Optional[EventHandler] = None
        self.observer = None

    def initialize_components(self) -> None:
        """
        Create the notifier, engine, reloader and event handler.

        Raises:
            RuleSourceError: If the rule files cannot be read
            ValidationError: If the configuration holds invalid values
        """
        self.logger.info("Initializing components...")

        rule_paths = as_path_list(self.config.get(ConfigKey.RULE_PATHS))
        if not rule_paths:
            raise ValidationError("No rule paths given (pass RULES or set fstrigger.rules.paths)")

        interval = self.config.get(ConfigKey.RELOAD_INTERVAL, Limits.DEFAULT_RELOAD_INTERVAL)
        validate_reload_interval(interval)

        # 1. Notifier
        notifier: Notifier = ConsoleNotifier(sys.stdout)
        if self.config.get(ConfigKey.DISPATCH_THREADED, False):
            self.logger.debug("Using threaded delivery")
            notifier = ThreadedNotifier(
                notifier,
                max_workers=self.config.get(ConfigKey.DISPATCH_WORKERS, Limits.DEFAULT_DISPATCH_WORKERS),
                logger=self.logger,
            )
        self.notifier = notifier

        # 2. Rule Engine
        self.logger.debug("Creating RuleEngine")
        self.rule_engine = RuleEngine(
            notifier=self.notifier,
            case_sensitive=self.config.get(ConfigKey.CASE_SENSITIVE, True),
            logger=self.logger,
        )
        result = self.rule_engine.load_paths(rule_paths)
        for error in result.errors:
            self.logger.warning("Rule not loaded", error=str(error))

        # 3. Reloader
        self.logger.debug("Creating RuleFileReloader", interval=interval)
        self.reloader = RuleFileReloader(self.rule_engine, rule_paths, interval=interval, logger=self.logger)

        # 4. Event handler
        root = self.config.get(ConfigKey.WATCH_ROOT, ".")
        self.handler = EventHandler(self.rule_engine, root=root, logger=self.logger)

        # 5. Listeners
        self.rule_engine.add_reload_listener(self._on_rules_published)
        config_file = getattr(self.args, "config", None)
        if config_file:
            self.logger.debug("Watching configuration file", path=config_file)
            self.config.add_watcher(self.apply_config)
            self.config.watch_file(config_file, interval=interval)

        self.logger.info("All components initialized successfully", rules=len(self.rule_engine))

    def _on_rules_published(self, rule_set: RuleSet) -> None:
        self.logger.info("Active rules updated", rules=len(rule_set), names=",".join(rule_set.names))

    def apply_config(self, merged: Dict[str, Any]) -> None:
        """
        Apply a changed configuration to the running components.

        The log level, reload interval and rule paths take effect at once;
        the watch root, recursion and delivery mode need a restart.

        Args:
            merged: Merged configuration from all sources
        """
        section = merged.get("fstrigger", {})
        logging_section = section.get("logging") or {}
        rules_section = section.get("rules") or {}

        level = logging_section.get("level")
        if level is not None:
            try:
                self.logger.set_level(level)
            except (KeyError, ValueError):
                self.logger.warning("Ignoring unknown log level", level=level)

        interval = rules_section.get("reload_interval", Limits.DEFAULT_RELOAD_INTERVAL)
        try:
            validate_reload_interval(interval)
        except ValidationError as e:
            self.logger.warning("Ignoring reload interval", error=str(e))
        else:
            self.reloader.interval = interval

        rule_paths = as_path_list(rules_section.get("paths"))
        if rule_paths and tuple(rule_paths) != self.reloader.paths:
            self.logger.info("Rule paths changed", paths=",".join(rule_paths))
            self.reloader.paths = tuple(rule_paths)
            self.reloader.check()

    def setup_signal_handlers(self) -> None:
        """
        Setup signal handlers for graceful shutdown.

        Handles:
        - SIGTERM: Graceful shutdown
        - SIGINT: Graceful shutdown (Ctrl+C)
        - SIGHUP: Reload the configuration file and the rule files
        """

        def shutdown_handler(signum, frame):
            sig_name = signal.Signals(signum).name
            self.logger.info(f"Received signal {sig_name}, shutting down...")
            self.shutdown_event.set()

        def reload_handler(signum, frame):
            self.logger.info("Received SIGHUP, reloading configuration and rules")
            self.config.reload()
            try:
                self.rule_engine.reload()
            except RuleSourceError as e:
                self.logger.warning("Reload failed", source=e.source, error=e.message)

        signal.signal(signal.SIGTERM, shutdown_handler)
        signal.signal(signal.SIGINT, shutdown_handler)
        if hasattr(signal, "SIGHUP"):
            signal.signal(signal.SIGHUP, reload_handler)

        self.logger.debug("Signal handlers registered")

    def watch(self) -> int:
        """
        Start the observer and block until shutdown.

        Returns:
            Exit code (0 for success)
        """
        root = self.config.get(ConfigKey.WATCH_ROOT, ".")
        recursive = self.config.get(ConfigKey.WATCH_RECURSIVE, True)

        self.logger.info(f"Watching {root}", recursive=recursive)
        self.observer = start_observer(self.handler, root, recursive=recursive)
        self.reloader.start()

        while not self.shutdown_event.wait(0.5):
            if not self.observer.is_alive():
                self.logger.error("Observer stopped unexpectedly")
                return 1

        return 0

    def cleanup(self) -> None:
        """
        Stop the observer, the reloader and pending deliveries.
        """
        self.logger.info("Cleaning up...")

        self.config.remove_watcher(self.apply_config)
        self.config.stop_watching()

        if self.observer is not None:
            self.observer.stop()
            self.observer.join(timeout=Limits.DISPATCH_SHUTDOWN_TIMEOUT)

        if self.reloader is not None:
            self.reloader.stop()

        if isinstance(self.notifier, ThreadedNotifier):
            self.notifier.close()
            if self.notifier.failed:
                self.logger.warning("Some suggestions were not delivered", failed=self.notifier.failed)

        self.logger.info("Cleanup complete")

    def run(self) -> int:
        """
        Run watch mode.

        Returns:
            Exit code (0 for success, non-zero for failure)
        """
        try:
            self.initialize_components()
            self.setup_signal_handlers()
            return self.watch()

        except (RuleSourceError, ValidationError) as e:
            self.logger.error(f"Cannot start: {e}")
            return 1

        except KeyboardInterrupt:
            self.logger.info("Interrupted by user")
            return 130

        finally:
            self.cleanup()


def run_watch(args: argparse.Namespace, config: ConfigManager, logger: Logger) -> int:
    """
    Entry point for ``fstrigger watch``.

    Returns:
        Exit code (0 for success, non-zero for failure)
    """
    return TriggerMain(args, config, logger).run()


def main():
    """
    Entry point when run as standalone script.
    """
    from fstrigger.cli import main as cli_main

    return cli_main()


if __name__ == "__main__":
    sys.exit(main())
