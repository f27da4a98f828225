#!/usr/bin/env python3
r"""Pattern compilation for rule filters.

This module turns the regex strings found in rule documents into matchers:
- One compiled regex per distinct (pattern, flags), shared across rules
- Path filters (file_extension, directory) search the event path
- Event filters fully match the event kind token
- Case-sensitive by default, no locale normalisation
- Invalid patterns fail at compile time, never at match time

Example:
    >>> compiler = PatternCompiler()
    >>> ext = compiler.compile(r"\.php$", FilterKind.FILE_EXTENSION)
    >>> ext.matches("src/Controller/UserController.php")
    True
    >>> kinds = compiler.compile("file_create|file_update", FilterKind.EVENT)
    >>> kinds.matches("file_create_extra")
    False
"""

import os
import re
import threading
from dataclasses import dataclass
from typing import Dict, Optional, Pattern, Tuple, Union

from fstrigger.core.constants import FilterKind
from fstrigger.core.validators import ValidationError, validate_pattern
from fstrigger.rules.errors import InvalidPatternError, UnknownFilterKindError


def normalize_path(path: Union[str, "os.PathLike[str]"]) -> str:
    """Normalize a path for matching.

    Only the separator is normalised; case and leading slashes are kept so
    that anchored patterns such as ``^src/`` behave predictably.
    """
    return os.fspath(path).replace("\\", "/")


def parse_filter_kind(kind: Union[FilterKind, str]) -> FilterKind:
    """Resolve a filter kind from its document spelling.

    Raises:
        UnknownFilterKindError: If the kind is not supported
    """
    if isinstance(kind, FilterKind):
        return kind
    try:
        return FilterKind(kind)
    except ValueError:
        valid = ", ".join(k.value for k in FilterKind)
        raise UnknownFilterKindError(f"Unknown filter type {kind!r} (expected one of: {valid})")


@dataclass(frozen=True)
class CompiledPattern:
    """A compiled filter pattern bound to the event field it tests."""

    pattern: str
    kind: FilterKind
    regex: Pattern[str]
    case_sensitive: bool = True

    def matches(self, value: Union[str, "os.PathLike[str]"]) -> bool:
        """Test a path (path kinds) or an event kind token (event kind)."""
        if self.kind.targets_path:
            return self.regex.search(normalize_path(value)) is not None
        return self.regex.fullmatch(value) is not None


class PatternCompiler:
    """Compiles filter patterns, caching regexes by pattern and flags.

    The cache lives as long as the compiler; the loader creates one per load
    so a reload never keeps regexes from a previous rule set alive.
    """

    def __init__(self, case_sensitive: bool = True):
        """Initialize pattern compiler.

        Args:
            case_sensitive: Default case sensitivity for compiled patterns
        """
        self._case_sensitive = case_sensitive
        self._cache: Dict[Tuple[str, int], Pattern[str]] = {}
        self._lock = threading.Lock()

    def compile(
        self,
        pattern: str,
        kind: Union[FilterKind, str],
        case_sensitive: Optional[bool] = None,
    ) -> CompiledPattern:
        """Compile one filter pattern.

        Args:
            pattern: Regular expression source
            kind: Filter kind, as an enum member or its document spelling
            case_sensitive: Override the compiler's default

        Returns:
            Compiled pattern

        Raises:
            InvalidPatternError: If the pattern is not a usable regex
            UnknownFilterKindError: If the kind is not supported
        """
        filter_kind = parse_filter_kind(kind)
        is_case_sensitive = self._case_sensitive if case_sensitive is None else case_sensitive

        try:
            validate_pattern(pattern)
        except ValidationError as e:
            raise InvalidPatternError(str(e), pattern=pattern if isinstance(pattern, str) else None)

        flags = 0 if is_case_sensitive else re.IGNORECASE
        key = (pattern, flags)

        with self._lock:
            regex = self._cache.get(key)
            if regex is None:
                try:
                    regex = re.compile(pattern, flags)
                except re.error as e:
                    raise InvalidPatternError(f"Invalid regex {pattern!r}: {e}", pattern=pattern)
                self._cache[key] = regex

        return CompiledPattern(
            pattern=pattern,
            kind=filter_kind,
            regex=regex,
            case_sensitive=is_case_sensitive,
        )

    def clear(self) -> None:
        """Drop all cached regexes."""
        with self._lock:
            self._cache.clear()

    def __len__(self) -> int:
        """Return number of distinct compiled regexes."""
        return len(self._cache)


def compile_pattern(
    pattern: str, kind: Union[FilterKind, str], case_sensitive: bool = True
) -> CompiledPattern:
    """Compile a single pattern without a shared cache."""
    return PatternCompiler(case_sensitive=case_sensitive).compile(pattern, kind)
