#!/usr/bin/env python3
"""Action dispatch and the notification boundary.

The engine hands messages to a ``Notifier``, which the host implements.
A notifier signals failure by raising or by returning ``False``; any other
return value counts as delivered. This module provides:
- ``dispatch_actions``: run one rule's actions in order, isolating failures
- Ready-made notifiers (logging, callback, collecting, console)
- ``ThreadedNotifier``: hands delivery to a thread pool so a slow host
  cannot stall evaluation

Example:
    >>> notifier = CollectingNotifier()
    >>> records = dispatch_actions(rule, notifier)
    >>> notifier.notifications[0].message == rule.actions[0].message
    True
"""

import sys
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, List, Optional, Protocol, TextIO

from fstrigger.core.constants import Limits
from fstrigger.core.logging import Logger, get_logger
from fstrigger.rules.errors import ActionDispatchError
from fstrigger.rules.models import Action, Rule, SuggestAction


class Notifier(Protocol):
    """Host-side notification surface."""

    def notify(self, rule_name: str, message: str) -> Optional[bool]:
        ...


@dataclass(frozen=True)
class Notification:
    """One message handed to a notifier."""

    rule_name: str
    message: str


@dataclass(frozen=True)
class DispatchRecord:
    """Outcome of running one action for one matched rule."""

    rule_name: str
    action: Action
    action_index: int
    delivered: bool
    error: Optional[ActionDispatchError] = None

    @property
    def message(self) -> str:
        return self.action.message


def dispatch_actions(
    rule: Rule, notifier: Notifier, logger: Optional[Logger] = None
) -> List[DispatchRecord]:
    """Run a matched rule's actions in declared order.

    A failing action is logged and recorded; the remaining actions still run.

    Args:
        rule: The rule that matched
        notifier: Delivery target
        logger: Logger for dispatch failures

    Returns:
        One record per action
    """
    log = logger or get_logger("fstrigger.dispatch")
    records: List[DispatchRecord] = []

    for index, action in enumerate(rule.actions):
        error: Optional[ActionDispatchError] = None

        if isinstance(action, SuggestAction):
            try:
                result = notifier.notify(rule.name, action.message)
            except Exception as e:
                error = ActionDispatchError(
                    f"Notifier raised {type(e).__name__}: {e}",
                    rule_name=rule.name,
                    action_index=index,
                    cause=e,
                )
            else:
                if result is False:
                    error = ActionDispatchError(
                        "Notifier reported delivery failure",
                        rule_name=rule.name,
                        action_index=index,
                    )
        else:
            error = ActionDispatchError(
                f"Unsupported action {type(action).__name__}",
                rule_name=rule.name,
                action_index=index,
            )

        if error is None:
            log.debug("Dispatched action", rule=rule.name, action=index, kind=action.kind.value)
        else:
            log.error("Action dispatch failed", rule=rule.name, action=index, error=error.message)

        records.append(
            DispatchRecord(
                rule_name=rule.name,
                action=action,
                action_index=index,
                delivered=error is None,
                error=error,
            )
        )

    return records


class LoggingNotifier:
    """Writes suggestions to the fstrigger log."""

    def __init__(self, logger: Optional[Logger] = None):
        self._logger = logger or get_logger("fstrigger.suggest")

    def notify(self, rule_name: str, message: str) -> None:
        self._logger.info(message, rule=rule_name)


class CallbackNotifier:
    """Adapts a plain ``callback(rule_name, message)`` to the Notifier protocol."""

    def __init__(self, callback: Callable[[str, str], Optional[bool]]):
        self._callback = callback

    def notify(self, rule_name: str, message: str) -> Optional[bool]:
        return self._callback(rule_name, message)


class CollectingNotifier:
    """Keeps every notification in memory, in delivery order."""

    def __init__(self) -> None:
        self._notifications: List[Notification] = []
        self._lock = threading.Lock()

    def notify(self, rule_name: str, message: str) -> None:
        with self._lock:
            self._notifications.append(Notification(rule_name, message))

    @property
    def notifications(self) -> List[Notification]:
        with self._lock:
            return list(self._notifications)

    def clear(self) -> None:
        with self._lock:
            self._notifications.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._notifications)


class ConsoleNotifier:
    """Prints suggestions to a text stream."""

    def __init__(self, stream: Optional[TextIO] = None):
        self._stream = stream
        self._lock = threading.Lock()

    def notify(self, rule_name: str, message: str) -> None:
        stream = self._stream or sys.stdout
        with self._lock:
            stream.write(f"[{rule_name}]\n{message}")
            if not message.endswith("\n"):
                stream.write("\n")
            stream.flush()


class ThreadedNotifier:
    """Delivers through a thread pool.

    ``notify`` returns as soon as the delivery is queued; the wrapped
    notifier's failures are logged when the delivery completes.
    """

    def __init__(
        self,
        inner: Notifier,
        max_workers: int = Limits.DEFAULT_DISPATCH_WORKERS,
        logger: Optional[Logger] = None,
    ):
        self._inner = inner
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="fstrigger-notify"
        )
        self._logger = logger or get_logger("fstrigger.dispatch")
        self._lock = threading.Lock()
        self._pending: List[Future] = []
        self.failed = 0

    def notify(self, rule_name: str, message: str) -> None:
        future = self._executor.submit(self._inner.notify, rule_name, message)
        with self._lock:
            self._pending.append(future)
        future.add_done_callback(lambda f: self._on_done(f, rule_name))

    def _on_done(self, future: Future, rule_name: str) -> None:
        with self._lock:
            if future in self._pending:
                self._pending.remove(future)

        error = future.exception()
        if error is None and future.result() is not False:
            return

        with self._lock:
            self.failed += 1
        reason = f"{type(error).__name__}: {error}" if error else "delivery failure"
        self._logger.error("Threaded delivery failed", rule=rule_name, error=reason)

    def flush(self, timeout: Optional[float] = None) -> None:
        """Wait for queued deliveries to finish."""
        with self._lock:
            pending = list(self._pending)
        for future in pending:
            try:
                future.exception(timeout=timeout)
            except TimeoutError:
                self._logger.warning("Timed out waiting for delivery")

    def close(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)

    def __enter__(self) -> "ThreadedNotifier":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
