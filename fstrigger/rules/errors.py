"""Error types raised while loading rules and dispatching actions.

Load errors are scoped to a single rule: the loader records them, drops
the offending rule and keeps going. Source errors are scoped to a file or
directory. Dispatch errors are scoped to one action of one rule for one
event and never leave the evaluator.
"""

from typing import Optional

from fstrigger.core.constants import ErrorCode


class TriggerError(Exception):
    """Base class for fstrigger errors."""

    def __init__(self, message: str, error_code: ErrorCode = ErrorCode.INTERNAL_ERROR):
        self.message = message
        self.error_code = error_code
        super().__init__(message)


class RuleLoadError(TriggerError):
    """A rule could not be loaded and was excluded from the active set."""

    def __init__(
        self,
        message: str,
        rule_name: Optional[str] = None,
        index: Optional[int] = None,
        source: Optional[str] = None,
        error_code: ErrorCode = ErrorCode.INVALID_INPUT,
    ):
        self.rule_name = rule_name
        self.index = index
        self.source = source
        super().__init__(message, error_code)

    def __str__(self) -> str:
        where = []
        if self.source:
            where.append(self.source)
        if self.rule_name:
            where.append(f"rule '{self.rule_name}'")
        elif self.index is not None:
            where.append(f"document #{self.index}")
        if where:
            return f"{', '.join(where)}: {self.message}"
        return self.message


class InvalidPatternError(RuleLoadError):
    """A filter pattern is not a valid regular expression."""

    def __init__(
        self,
        message: str,
        pattern: Optional[str] = None,
        filter_index: Optional[int] = None,
        **kwargs,
    ):
        self.pattern = pattern
        self.filter_index = filter_index
        super().__init__(message, **kwargs)


class UnknownFilterKindError(RuleLoadError):
    """A filter declares a type the compiler does not know."""


class UnknownActionKindError(RuleLoadError):
    """An action declares a type the dispatcher does not know."""


class RuleDocumentError(RuleLoadError):
    """A rule document is structurally malformed."""


class DuplicateRuleError(RuleLoadError):
    """A rule name was already taken by an earlier rule in the same load."""

    def __init__(self, message: str, **kwargs):
        kwargs.setdefault("error_code", ErrorCode.CONFLICT)
        super().__init__(message, **kwargs)


class RuleSourceError(TriggerError):
    """A rule file or directory could not be read or parsed."""

    def __init__(self, message: str, source: str, error_code: ErrorCode = ErrorCode.INVALID_INPUT):
        self.source = source
        super().__init__(message, error_code)


class ActionDispatchError(TriggerError):
    """The notifier failed to deliver an action's message."""

    def __init__(
        self,
        message: str,
        rule_name: str,
        action_index: int,
        cause: Optional[BaseException] = None,
    ):
        self.rule_name = rule_name
        self.action_index = action_index
        self.cause = cause
        super().__init__(message, ErrorCode.DEPENDENCY_ERROR)
