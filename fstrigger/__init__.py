"""fstrigger - trigger rules for filesystem events.

Matches filesystem events (path + kind) against declarative rules and
delivers each matching rule's suggestion messages to a host notifier.
"""

from fstrigger.core.constants import FSTRIGGER_VERSION as __version__
from fstrigger.rules import Event, RuleEngine, RuleSet, evaluate, load_rule_paths, load_rules

__all__ = [
    "__version__",
    "Event",
    "RuleEngine",
    "RuleSet",
    "evaluate",
    "load_rules",
    "load_rule_paths",
]
