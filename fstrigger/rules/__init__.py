"""fstrigger Rules System.

This package provides trigger-rule matching and dispatch:
- PatternCompiler: regex compilation for filters
- Rule, Filter variants, SuggestAction, Event: immutable value types
- load_rules / load_rule_paths: rule documents to a compiled RuleSet
- evaluate / RuleEngine: event matching and action dispatch

Rules pair filters (file extension, directory, event kind) with actions
(suggestion messages) that are delivered through a host-supplied Notifier.
"""

from .actions import (
    CallbackNotifier,
    CollectingNotifier,
    ConsoleNotifier,
    DispatchRecord,
    LoggingNotifier,
    Notification,
    Notifier,
    ThreadedNotifier,
    dispatch_actions,
)
from .engine import RuleEngine, evaluate, evaluate_filter, matching_rules, rule_matches
from .errors import (
    ActionDispatchError,
    DuplicateRuleError,
    InvalidPatternError,
    RuleDocumentError,
    RuleLoadError,
    RuleSourceError,
    TriggerError,
    UnknownActionKindError,
    UnknownFilterKindError,
)
from .loader import LoadResult, compile_rule, load_rule_paths, load_rules, parse_documents
from .models import (
    Action,
    DirectoryFilter,
    Event,
    EventFilter,
    ExtensionFilter,
    Filter,
    Rule,
    RuleSet,
    SuggestAction,
)
from .patterns import CompiledPattern, PatternCompiler, compile_pattern

__all__ = [
    # Pattern compilation
    "CompiledPattern",
    "PatternCompiler",
    "compile_pattern",
    # Model
    "Event",
    "Filter",
    "ExtensionFilter",
    "DirectoryFilter",
    "EventFilter",
    "Action",
    "SuggestAction",
    "Rule",
    "RuleSet",
    # Loading
    "LoadResult",
    "compile_rule",
    "load_rules",
    "load_rule_paths",
    "parse_documents",
    # Evaluation and dispatch
    "RuleEngine",
    "evaluate",
    "evaluate_filter",
    "matching_rules",
    "rule_matches",
    "dispatch_actions",
    "DispatchRecord",
    "Notification",
    "Notifier",
    "LoggingNotifier",
    "CallbackNotifier",
    "CollectingNotifier",
    "ConsoleNotifier",
    "ThreadedNotifier",
    # Errors
    "TriggerError",
    "RuleLoadError",
    "InvalidPatternError",
    "UnknownFilterKindError",
    "UnknownActionKindError",
    "RuleDocumentError",
    "DuplicateRuleError",
    "RuleSourceError",
    "ActionDispatchError",
]
