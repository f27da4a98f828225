#!/usr/bin/env python3
"""Hot reload of rule files.

Polls the modification times of the engine's rule files (and the file
listing of rule directories) on a daemon thread. When anything changes,
the engine reloads and atomically publishes the new rule set.

Example:
    >>> reloader = RuleFileReloader(engine, ["rules/"], interval=1.0)
    >>> reloader.start()
    >>> ...
    >>> reloader.stop()
"""

import threading
from typing import Dict, Optional, Sequence

from fstrigger.core.constants import Limits
from fstrigger.core.logging import Logger, get_logger
from fstrigger.rules.engine import RuleEngine
from fstrigger.rules.errors import RuleSourceError
from fstrigger.rules.loader import PathLike, discover_rule_files

Signature = Optional[Dict[str, int]]


class RuleFileReloader:
    """Reloads a RuleEngine when its rule files change."""

    def __init__(
        self,
        engine: RuleEngine,
        paths: Sequence[PathLike],
        interval: float = Limits.DEFAULT_RELOAD_INTERVAL,
        logger: Optional[Logger] = None,
    ):
        """Initialize reloader.

        Args:
            engine: Engine to reload
            paths: Rule files and directories to watch
            interval: Poll interval in seconds
            logger: Logger instance
        """
        self.engine = engine
        self.paths = tuple(paths)
        self.interval = max(interval, Limits.MIN_RELOAD_INTERVAL)
        self._logger = logger or get_logger("fstrigger.reload")
        self._signature: Signature = self._scan()
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def _scan(self) -> Signature:
        """Map each rule file to its mtime; None when a path is missing."""
        try:
            files = discover_rule_files(self.paths)
            return {str(f): f.stat().st_mtime_ns for f in files}
        except (RuleSourceError, OSError):
            return None

    def check(self) -> bool:
        """Poll once and reload if anything changed.

        Returns:
            True if a reload was attempted
        """
        signature = self._scan()
        if signature == self._signature:
            return False

        self._signature = signature
        self._logger.info("Rule files changed, reloading")
        try:
            result = self.engine.load_paths(self.paths)
        except RuleSourceError as e:
            self._logger.warning("Reload failed", source=e.source, error=e.message)
        else:
            self._logger.info("Reloaded rules", active=len(result.rule_set), rejected=len(result.errors))
        return True

    def _run(self) -> None:
        while not self._stop.wait(self.interval):
            self.check()

    def start(self) -> None:
        """Start polling on a daemon thread."""
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="fstrigger-reload", daemon=True)
        self._thread.start()

    def stop(self, timeout: float = 2.0) -> None:
        """Stop polling."""
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def __enter__(self) -> "RuleFileReloader":
        self.start()
        return self

    def __exit__(self, *exc_info) -> None:
        self.stop()
