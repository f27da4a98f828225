#!/usr/bin/env python3
"""Rule evaluation and dispatch.

This module matches filesystem events against a rule set:
- Filters AND together; a rule without filters matches every event
- Event-kind filters run before path regexes, first miss short-circuits
- Rules are evaluated independently, in load order
- Each matching rule's actions run once per event, in declared order
- A failing action never stops the remaining actions or rules

``RuleEngine`` holds the active ``RuleSet`` snapshot. Reloading builds a new
snapshot and swaps the reference, so evaluations already running keep the
snapshot they started with and readers never take a lock.

Example:
    >>> engine = RuleEngine(notifier=CollectingNotifier())
    >>> engine.load_paths(["rules/"])
    >>> engine.evaluate(Event("src/Controller/UserController.php", "file_create"))
    [DispatchRecord(rule_name='symfony-controller', ...)]
"""

import threading
from typing import Any, Callable, Iterable, List, Optional, Sequence, Tuple

from fstrigger.core.constants import EngineState
from fstrigger.core.logging import Logger, get_logger
from fstrigger.rules.actions import DispatchRecord, LoggingNotifier, Notifier, dispatch_actions
from fstrigger.rules.errors import RuleLoadError, RuleSourceError
from fstrigger.rules.loader import LoadResult, PathLike, load_rule_paths, load_rules
from fstrigger.rules.models import DirectoryFilter, Event, EventFilter, ExtensionFilter, Filter, Rule, RuleSet


def evaluate_filter(rule_filter: Filter, event: Event) -> bool:
    """Evaluate one filter against an event.

    Raises:
        TypeError: If ``rule_filter`` is not one of the known variants
    """
    if isinstance(rule_filter, EventFilter):
        return rule_filter.matcher.matches(event.kind)
    elif isinstance(rule_filter, (ExtensionFilter, DirectoryFilter)):
        return rule_filter.matcher.matches(event.path)

    raise TypeError(f"Unsupported filter variant: {type(rule_filter).__name__}")


def rule_matches(rule: Rule, event: Event) -> bool:
    """Check if every filter of an enabled rule matches the event."""
    if not rule.enabled:
        return False

    for rule_filter in rule.evaluation_order:
        if not evaluate_filter(rule_filter, event):
            return False

    return True


def matching_rules(rule_set: Iterable[Rule], event: Event) -> List[Rule]:
    """Get all rules that match the event, in load order."""
    return [rule for rule in rule_set if rule_matches(rule, event)]


def evaluate(
    rule_set: Iterable[Rule],
    event: Event,
    notifier: Notifier,
    logger: Optional[Logger] = None,
) -> List[DispatchRecord]:
    """Match an event against a rule set and dispatch the matching rules.

    Args:
        rule_set: Rules in load order
        event: Event to evaluate
        notifier: Delivery target for actions
        logger: Logger for dispatch output

    Returns:
        One record per dispatched action, in dispatch order
    """
    log = logger or get_logger("fstrigger.engine")
    records: List[DispatchRecord] = []

    for rule in rule_set:
        if rule_matches(rule, event):
            log.debug("Rule matched", rule=rule.name, path=event.path, event=event.kind)
            records.extend(dispatch_actions(rule, notifier, log))

    return records


class RuleEngine:
    """Holds the active rule snapshot and evaluates events against it.

    States:
    - UNLOADED: nothing published yet
    - LOADED: a snapshot is active (possibly with rejected rules)
    - FAILED: the last load could not read its sources; an empty snapshot
      is active until a load succeeds
    """

    def __init__(
        self,
        notifier: Optional[Notifier] = None,
        case_sensitive: bool = True,
        logger: Optional[Logger] = None,
    ):
        """Initialize rule engine.

        Args:
            notifier: Default delivery target for ``evaluate``
            case_sensitive: Default case sensitivity for rule patterns
            logger: Logger instance
        """
        self._notifier: Notifier = notifier if notifier is not None else LoggingNotifier()
        self._case_sensitive = case_sensitive
        self._logger = logger or get_logger("fstrigger.engine")

        self._snapshot = RuleSet()
        self._state = EngineState.UNLOADED
        self._last_errors: Tuple[RuleLoadError, ...] = ()
        self._last_failure: Optional[RuleSourceError] = None

        # Remembered so reload() can repeat the last load
        self._paths: Optional[Tuple[PathLike, ...]] = None
        self._documents: Optional[Tuple[Any, ...]] = None

        # Serialises writers only; evaluate() never takes it
        self._reload_lock = threading.Lock()
        self._listeners: List[Callable[[RuleSet], None]] = []

    @property
    def snapshot(self) -> RuleSet:
        return self._snapshot

    @property
    def state(self) -> EngineState:
        return self._state

    @property
    def last_errors(self) -> Tuple[RuleLoadError, ...]:
        return self._last_errors

    @property
    def last_failure(self) -> Optional[RuleSourceError]:
        return self._last_failure

    def load(self, documents: Iterable[Any]) -> LoadResult:
        """Compile parsed rule documents and publish them."""
        with self._reload_lock:
            documents = tuple(documents)
            result = load_rules(documents, case_sensitive=self._case_sensitive, logger=self._logger)
            self._documents, self._paths = documents, None
            self._publish(result)
        self._notify_listeners(result.rule_set)
        return result

    def load_paths(self, paths: Sequence[PathLike]) -> LoadResult:
        """Load rule files/directories and publish them.

        Raises:
            RuleSourceError: If a source cannot be read; the engine is then FAILED
        """
        with self._reload_lock:
            paths = tuple(paths)
            self._paths, self._documents = paths, None
            try:
                result = load_rule_paths(paths, case_sensitive=self._case_sensitive, logger=self._logger)
            except RuleSourceError as e:
                self._fail(e)
                raise
            self._publish(result)
        self._notify_listeners(result.rule_set)
        return result

    def reload(self) -> LoadResult:
        """Repeat the last load.

        Raises:
            RuleSourceError: If reloading from paths fails
            RuntimeError: If nothing was loaded before
        """
        if self._paths is not None:
            return self.load_paths(self._paths)
        if self._documents is not None:
            return self.load(self._documents)
        raise RuntimeError("Nothing to reload: call load() or load_paths() first")

    def _publish(self, result: LoadResult) -> None:
        # A single reference assignment; readers see the old or the new set
        self._snapshot = result.rule_set
        self._last_errors = result.errors
        self._last_failure = None
        self._state = EngineState.LOADED

    def _fail(self, error: RuleSourceError) -> None:
        self._snapshot = RuleSet()
        self._last_errors = ()
        self._last_failure = error
        self._state = EngineState.FAILED
        self._logger.error("Rule load failed", source=error.source, error=error.message)

    def add_reload_listener(self, callback: Callable[[RuleSet], None]) -> None:
        """Register a callback run with each newly published snapshot."""
        self._listeners.append(callback)

    def remove_reload_listener(self, callback: Callable[[RuleSet], None]) -> None:
        if callback in self._listeners:
            self._listeners.remove(callback)

    def _notify_listeners(self, rule_set: RuleSet) -> None:
        for listener in list(self._listeners):
            try:
                listener(rule_set)
            except Exception as e:
                self._logger.exception("Reload listener failed", e)

    def evaluate(self, event: Event, notifier: Optional[Notifier] = None) -> List[DispatchRecord]:
        """Evaluate one event against the active snapshot.

        Args:
            event: Event to evaluate
            notifier: Overrides the engine's default notifier for this call

        Returns:
            Dispatch records; empty when the engine is not LOADED
        """
        snapshot = self._snapshot
        if self._state is not EngineState.LOADED:
            self._logger.warning("No rules loaded, event ignored", state=self._state.value, path=event.path)
            return []

        if notifier is None:
            notifier = self._notifier
        return evaluate(snapshot, event, notifier, self._logger)

    def matching_rules(self, event: Event) -> List[Rule]:
        """Get the rules of the active snapshot that match the event."""
        return matching_rules(self._snapshot, event)

    def __len__(self) -> int:
        """Return number of rules in the active snapshot."""
        return len(self._snapshot)
