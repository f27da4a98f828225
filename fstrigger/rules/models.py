#!/usr/bin/env python3
"""Value types for rules, filters, actions and events.

Everything here is immutable once built. Filters form a closed tagged union
(``ExtensionFilter | DirectoryFilter | EventFilter``) and actions an open
one that currently holds ``SuggestAction`` only.

Example:
    >>> event = Event("src/Controller/UserController.php", EventKind.FILE_CREATE)
    >>> event.kind
    'file_create'
"""

import os
import time
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, ClassVar, Iterator, Mapping, Optional, Tuple, Union

from fstrigger.core.constants import FILTER_EVALUATION_ORDER, ActionKind, EventKind, FilterKind
from fstrigger.core.validators import validate_event_kind, validate_path
from fstrigger.rules.patterns import CompiledPattern


@dataclass(frozen=True)
class Event:
    """A filesystem change reported by the watcher."""

    path: str
    kind: str

    def __post_init__(self) -> None:
        path = self.path
        if isinstance(path, os.PathLike):
            path = os.fspath(path)
        kind = self.kind.value if isinstance(self.kind, EventKind) else self.kind

        validate_path(path)
        validate_event_kind(kind)

        object.__setattr__(self, "path", path)
        object.__setattr__(self, "kind", kind)


@dataclass(frozen=True)
class _PatternFilter:
    matcher: CompiledPattern

    kind: ClassVar[FilterKind]

    @property
    def pattern(self) -> str:
        return self.matcher.pattern


@dataclass(frozen=True)
class ExtensionFilter(_PatternFilter):
    """Matches the event path against an extension regex."""

    kind: ClassVar[FilterKind] = FilterKind.FILE_EXTENSION


@dataclass(frozen=True)
class DirectoryFilter(_PatternFilter):
    """Matches the event path against a directory regex."""

    kind: ClassVar[FilterKind] = FilterKind.DIRECTORY


@dataclass(frozen=True)
class EventFilter(_PatternFilter):
    """Matches the event kind token."""

    kind: ClassVar[FilterKind] = FilterKind.EVENT


Filter = Union[ExtensionFilter, DirectoryFilter, EventFilter]

_FILTER_TYPES = {
    FilterKind.FILE_EXTENSION: ExtensionFilter,
    FilterKind.DIRECTORY: DirectoryFilter,
    FilterKind.EVENT: EventFilter,
}


def make_filter(matcher: CompiledPattern) -> Filter:
    """Wrap a compiled pattern in the filter variant for its kind."""
    return _FILTER_TYPES[matcher.kind](matcher)


@dataclass(frozen=True)
class SuggestAction:
    """Deliver a static message to the host. The message is never altered."""

    message: str

    kind: ClassVar[ActionKind] = ActionKind.SUGGEST


Action = Union[SuggestAction]


def freeze(value: Any) -> Any:
    """Recursively turn dicts into read-only mappings and lists into tuples."""
    if isinstance(value, Mapping):
        return MappingProxyType({k: freeze(v) for k, v in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(freeze(v) for v in value)
    return value


def _evaluation_order(filters: Tuple[Filter, ...]) -> Tuple[Filter, ...]:
    rank = {kind: i for i, kind in enumerate(FILTER_EVALUATION_ORDER)}
    # sorted() is stable, so declared order is kept within a kind
    return tuple(sorted(filters, key=lambda f: rank[f.kind]))


@dataclass(frozen=True)
class Rule:
    """A named conjunction of filters plus the actions to run on a match.

    A rule with no filters matches every event.
    """

    name: str
    filters: Tuple[Filter, ...] = ()
    actions: Tuple[Action, ...] = ()
    enabled: bool = True
    description: Optional[str] = None
    tags: Tuple[str, ...] = ()
    metadata: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))
    examples: Tuple[Any, ...] = ()
    source: Optional[str] = None

    evaluation_order: Tuple[Filter, ...] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "filters", tuple(self.filters))
        object.__setattr__(self, "actions", tuple(self.actions))
        object.__setattr__(self, "tags", tuple(self.tags))
        object.__setattr__(self, "metadata", freeze(self.metadata))
        object.__setattr__(self, "examples", freeze(self.examples))
        object.__setattr__(self, "evaluation_order", _evaluation_order(self.filters))

    @property
    def matches_all(self) -> bool:
        return not self.filters

    @property
    def priority(self) -> Any:
        return self.metadata.get("priority")

    @property
    def version(self) -> Any:
        return self.metadata.get("version")


@dataclass(frozen=True)
class RuleSet:
    """An immutable snapshot of loaded rules, in load order."""

    rules: Tuple[Rule, ...] = ()
    sources: Tuple[str, ...] = ()
    loaded_at: float = field(default_factory=time.time)

    def __post_init__(self) -> None:
        object.__setattr__(self, "rules", tuple(self.rules))
        object.__setattr__(self, "sources", tuple(self.sources))

    def __len__(self) -> int:
        return len(self.rules)

    def __iter__(self) -> Iterator[Rule]:
        return iter(self.rules)

    def get(self, name: str) -> Optional[Rule]:
        """Return the rule called ``name``, if loaded."""
        for rule in self.rules:
            if rule.name == name:
                return rule
        return None

    @property
    def names(self) -> Tuple[str, ...]:
        return tuple(rule.name for rule in self.rules)
