"""
fstrigger Core: Constants

This module provides system-wide constants, error codes, the closed sets of
filter, action and event kinds, and the keys used in rule documents.
"""
from enum import Enum, IntEnum

# Version information
FSTRIGGER_VERSION = "0.4.0"


# Error codes (0-6 range)
class ErrorCode(IntEnum):
    """Standardized error codes for fstrigger operations."""

    SUCCESS = 0  # Operation completed successfully
    INVALID_INPUT = 1  # Bad pattern, malformed rule document
    NOT_FOUND = 2  # Rule file or directory doesn't exist
    PERMISSION_DENIED = 3  # Rule file not readable
    CONFLICT = 4  # Duplicate rule name
    DEPENDENCY_ERROR = 5  # Notifier unavailable
    INTERNAL_ERROR = 6  # Bug in fstrigger


class FilterKind(Enum):
    """Filter kinds understood by the pattern compiler."""

    FILE_EXTENSION = "file_extension"  # Regex over the event path
    DIRECTORY = "directory"  # Regex over the event path
    EVENT = "event"  # Regex over the event kind token

    @property
    def targets_path(self) -> bool:
        """True if this kind tests the event path rather than its kind."""
        return self is not FilterKind.EVENT


class ActionKind(Enum):
    """Action kinds that can run when a rule matches."""

    SUGGEST = "suggest"  # Deliver a static message to the host


class EventKind(Enum):
    """Filesystem event kinds produced by the watcher.

    Events are not limited to these values; any non-empty token is accepted
    so that watchers can introduce new kinds without a release.
    """

    FILE_CREATE = "file_create"
    FILE_UPDATE = "file_update"
    DIRECTORY_CREATE = "directory_create"
    FILE_DELETE = "file_delete"
    DIRECTORY_DELETE = "directory_delete"
    FILE_MOVE = "file_move"


# Cheapest filters first; event kinds are short tokens, paths are not
FILTER_EVALUATION_ORDER = (
    FilterKind.EVENT,
    FilterKind.FILE_EXTENSION,
    FilterKind.DIRECTORY,
)


class EngineState(Enum):
    """Externally visible engine states."""

    UNLOADED = "unloaded"  # No rules published yet
    LOADED = "loaded"  # Snapshot compiled and ready
    FAILED = "failed"  # Last load failed at the source level


# Resource limits and defaults
class Limits:
    """Limits and default values."""

    MAX_PATTERN_LENGTH = 4096
    MAX_RULE_NAME_LENGTH = 255
    MAX_PATH_LENGTH = 4096

    # Rule file reload polling
    DEFAULT_RELOAD_INTERVAL = 1.0  # seconds
    MIN_RELOAD_INTERVAL = 0.1  # seconds

    # Threaded notification delivery
    DEFAULT_DISPATCH_WORKERS = 4
    DISPATCH_SHUTDOWN_TIMEOUT = 5.0  # seconds


# Rule document keys
class DocumentKey:
    """Keys used in rule documents."""

    RULES = "rules"  # Top-level list in a multi-rule file

    NAME = "name"
    DESCRIPTION = "description"
    ENABLED = "enabled"
    CASE_SENSITIVE = "case_sensitive"
    FILTERS = "filters"
    ACTIONS = "actions"
    TAGS = "tags"
    METADATA = "metadata"
    EXAMPLES = "examples"

    # Filter and action entries
    TYPE = "type"
    PATTERN = "pattern"
    MESSAGE = "message"


# Configuration keys
class ConfigKey:
    """Configuration key paths for ConfigManager.get()."""

    RULE_PATHS = "fstrigger.rules.paths"
    RELOAD_INTERVAL = "fstrigger.rules.reload_interval"
    CASE_SENSITIVE = "fstrigger.rules.case_sensitive"
    DISPATCH_THREADED = "fstrigger.dispatch.threaded"
    DISPATCH_WORKERS = "fstrigger.dispatch.max_workers"
    WATCH_ROOT = "fstrigger.watch.root"
    WATCH_RECURSIVE = "fstrigger.watch.recursive"
    LOG_LEVEL = "fstrigger.logging.level"
    LOG_FILE = "fstrigger.logging.file"


# Rule file suffixes picked up when loading a directory
RULE_FILE_SUFFIXES = (".yaml", ".yml")
