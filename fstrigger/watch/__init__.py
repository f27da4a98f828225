"""Adapters between the filesystem and the rule engine.

- EventHandler: watchdog events to engine Events
- RuleFileReloader: hot reload of rule files
"""

from .handler import EventHandler, start_observer
from .reloader import RuleFileReloader

__all__ = [
    "EventHandler",
    "RuleFileReloader",
    "start_observer",
]
