"""
fstrigger Core: Input Validators.

Structural validation for rule documents, filter and action entries, event
values and patterns. Validators raise ``ValidationError``; the rule loader
turns those into rule-scoped load errors.
"""
import re
from typing import Any, Dict

from fstrigger.core.constants import DocumentKey, ErrorCode, Limits


class ValidationError(Exception):
    """Base exception for validation errors."""

    def __init__(self, message: str, error_code: ErrorCode = ErrorCode.INVALID_INPUT):
        """Initialize ValidationError.

        Args:
            message: Error message
            error_code: Associated error code
        """
        super().__init__(message)
        self.error_code = error_code


_RULE_NAME_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.:/ -]*$")
_EVENT_KIND_RE = re.compile(r"[^\s\0]+")


def validate_rule_document(document: Dict[str, Any]) -> bool:
    """Validate the structure of one rule document.

    Pattern syntax and filter/action kinds are not checked here; the loader
    does that while compiling so it can report the precise error class.

    Args:
        document: Parsed rule document

    Returns:
        True if valid

    Raises:
        ValidationError: If the document is malformed
    """
    if not isinstance(document, dict):
        raise ValidationError(f"Rule document must be a mapping, got {type(document).__name__}")

    if DocumentKey.NAME not in document:
        raise ValidationError("Rule must have 'name' field")
    validate_rule_name(document[DocumentKey.NAME])

    # An empty filter list is a catch-all and has to be spelled out
    if DocumentKey.FILTERS not in document:
        raise ValidationError("Rule must have 'filters' field (use 'filters: []' to match every event)")

    filters = document[DocumentKey.FILTERS]
    if not isinstance(filters, list):
        raise ValidationError("Filters must be a list")

    for i, entry in enumerate(filters):
        try:
            validate_filter_config(entry)
        except ValidationError as e:
            raise ValidationError(f"Invalid filter at index {i}: {e}")

    if DocumentKey.ACTIONS not in document:
        raise ValidationError("Rule must have 'actions' field")

    actions = document[DocumentKey.ACTIONS]
    if not isinstance(actions, list):
        raise ValidationError("Actions must be a list")

    for i, entry in enumerate(actions):
        try:
            validate_action_config(entry)
        except ValidationError as e:
            raise ValidationError(f"Invalid action at index {i}: {e}")

    for key in (DocumentKey.ENABLED, DocumentKey.CASE_SENSITIVE):
        if key in document and not isinstance(document[key], bool):
            raise ValidationError(f"Rule {key} must be boolean: {document[key]!r}")

    if DocumentKey.DESCRIPTION in document:
        description = document[DocumentKey.DESCRIPTION]
        if description is not None and not isinstance(description, str):
            raise ValidationError("Rule description must be a string")

    if DocumentKey.TAGS in document:
        validate_tags(document[DocumentKey.TAGS])

    if DocumentKey.METADATA in document:
        metadata = document[DocumentKey.METADATA]
        if metadata is not None and not isinstance(metadata, dict):
            raise ValidationError("Rule metadata must be a mapping")

    if DocumentKey.EXAMPLES in document:
        examples = document[DocumentKey.EXAMPLES]
        if examples is not None and not isinstance(examples, list):
            raise ValidationError("Rule examples must be a list")

    return True


def validate_filter_config(entry: Dict[str, Any]) -> bool:
    """Validate one ``{type, pattern}`` filter entry.

    Raises:
        ValidationError: If the entry is malformed
    """
    if not isinstance(entry, dict):
        raise ValidationError("Filter must be a mapping")

    if DocumentKey.TYPE not in entry:
        raise ValidationError("Filter must have 'type' field")
    if not isinstance(entry[DocumentKey.TYPE], str) or not entry[DocumentKey.TYPE]:
        raise ValidationError(f"Filter type must be a non-empty string: {entry[DocumentKey.TYPE]!r}")

    if DocumentKey.PATTERN not in entry:
        raise ValidationError("Filter must have 'pattern' field")

    return True


def validate_action_config(entry: Dict[str, Any]) -> bool:
    """Validate one ``{type, message}`` action entry.

    Raises:
        ValidationError: If the entry is malformed
    """
    if not isinstance(entry, dict):
        raise ValidationError("Action must be a mapping")

    if DocumentKey.TYPE not in entry:
        raise ValidationError("Action must have 'type' field")
    if not isinstance(entry[DocumentKey.TYPE], str) or not entry[DocumentKey.TYPE]:
        raise ValidationError(f"Action type must be a non-empty string: {entry[DocumentKey.TYPE]!r}")

    if DocumentKey.MESSAGE in entry and not isinstance(entry[DocumentKey.MESSAGE], str):
        raise ValidationError("Action message must be a string")

    return True


def validate_rule_name(name: Any) -> bool:
    """Validate a rule name.

    Raises:
        ValidationError: If name is invalid
    """
    if not isinstance(name, str):
        raise ValidationError(f"Rule name must be string, got {type(name).__name__}")

    if not name:
        raise ValidationError("Rule name cannot be empty")

    if len(name) > Limits.MAX_RULE_NAME_LENGTH:
        raise ValidationError(f"Rule name exceeds maximum length ({Limits.MAX_RULE_NAME_LENGTH})")

    if not _RULE_NAME_RE.match(name):
        raise ValidationError(f"Invalid rule name: {name!r}")

    return True


def validate_tags(tags: Any) -> bool:
    if tags is None:
        return True
    if not isinstance(tags, list) or not all(isinstance(t, str) for t in tags):
        raise ValidationError("Rule tags must be a list of strings")
    return True


def validate_pattern(pattern: Any) -> bool:
    """Validate a regex pattern string before compilation.

    Args:
        pattern: Pattern to validate

    Returns:
        True if valid

    Raises:
        ValidationError: If pattern is not a usable string
    """
    if not isinstance(pattern, str):
        raise ValidationError(f"Pattern must be string, got {type(pattern).__name__}")

    if not pattern:
        raise ValidationError("Pattern cannot be empty")

    if len(pattern) > Limits.MAX_PATTERN_LENGTH:
        raise ValidationError(f"Pattern exceeds maximum length ({Limits.MAX_PATTERN_LENGTH})")

    if "\0" in pattern:
        raise ValidationError("Invalid pattern: contains null bytes")

    return True


def validate_event_kind(kind: Any) -> bool:
    """Validate an event kind token such as ``file_create``.

    Kinds are compared exactly, so any casing or separator is kept as given.

    Raises:
        ValidationError: If kind is empty or holds whitespace or null bytes
    """
    if not isinstance(kind, str):
        raise ValidationError(f"Event kind must be string, got {type(kind).__name__}")

    if not _EVENT_KIND_RE.fullmatch(kind):
        raise ValidationError(f"Invalid event kind: {kind!r}")

    return True


def validate_path(path: Any) -> bool:
    """Validate an event path.

    Raises:
        ValidationError: If path is invalid
    """
    if not isinstance(path, str):
        raise ValidationError(f"Path must be string, got {type(path).__name__}")

    if not path:
        raise ValidationError("Path cannot be empty")

    if len(path) > Limits.MAX_PATH_LENGTH:
        raise ValidationError(f"Path exceeds maximum length ({Limits.MAX_PATH_LENGTH})")

    if "\0" in path:
        raise ValidationError("Path contains null bytes")

    return True


def validate_reload_interval(interval: Any) -> bool:
    if isinstance(interval, bool) or not isinstance(interval, (int, float)):
        raise ValidationError(f"Reload interval must be a number: {interval!r}")
    if interval < Limits.MIN_RELOAD_INTERVAL:
        raise ValidationError(
            f"Reload interval must be at least {Limits.MIN_RELOAD_INTERVAL}s: {interval}"
        )
    return True
