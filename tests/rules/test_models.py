#!/usr/bin/env python3
"""Tests for rule, filter, action and event value types."""

import dataclasses
from pathlib import Path
from types import MappingProxyType

import pytest

from fstrigger.core.constants import ActionKind, EventKind, FilterKind
from fstrigger.core.validators import ValidationError
from fstrigger.rules.models import (
    DirectoryFilter,
    Event,
    EventFilter,
    ExtensionFilter,
    Rule,
    RuleSet,
    SuggestAction,
    freeze,
    make_filter,
)
from fstrigger.rules.patterns import compile_pattern


class TestEvent:
    """Tests for Event."""

    def test_creation(self):
        """Test creating an event from strings."""
        event = Event("src/a.php", "file_create")
        assert event.path == "src/a.php"
        assert event.kind == "file_create"

    def test_enum_kind(self):
        """Test EventKind members are stored as their token."""
        event = Event("src/a.php", EventKind.DIRECTORY_CREATE)
        assert event.kind == "directory_create"

    def test_path_object(self):
        """Test PathLike paths are stored as strings."""
        event = Event(Path("src") / "a.php", "file_update")
        assert event.path == str(Path("src") / "a.php")

    def test_custom_kind_accepted(self):
        """Test kinds outside EventKind are accepted."""
        assert Event("a.txt", "file_chmod").kind == "file_chmod"

    @pytest.mark.parametrize("kind", ["FILE_CREATE", "file-create", "FileCreated"])
    def test_host_vocabulary_kept(self, kind):
        """Test kinds in a watcher's own vocabulary are stored verbatim."""
        assert Event("src/a.php", kind).kind == kind

    @pytest.mark.parametrize("kind", ["", "File Create", "\tfile_create", None])
    def test_invalid_kind(self, kind):
        """Test malformed kinds are rejected."""
        with pytest.raises(ValidationError):
            Event("a.txt", kind)

    @pytest.mark.parametrize("path", ["", "a\0b", None])
    def test_invalid_path(self, path):
        """Test malformed paths are rejected."""
        with pytest.raises(ValidationError):
            Event(path, "file_create")

    def test_immutable(self):
        """Test events cannot be mutated."""
        event = Event("a.txt", "file_create")
        with pytest.raises(dataclasses.FrozenInstanceError):
            event.path = "b.txt"

    def test_equality(self):
        """Test events are value objects."""
        assert Event("a.txt", "file_create") == Event("a.txt", EventKind.FILE_CREATE)
        assert hash(Event("a.txt", "file_create")) == hash(Event("a.txt", "file_create"))


class TestFilters:
    """Tests for filter variants."""

    def test_make_filter_variants(self):
        """Test make_filter picks the variant for the pattern's kind."""
        assert isinstance(make_filter(compile_pattern("x", "file_extension")), ExtensionFilter)
        assert isinstance(make_filter(compile_pattern("x", "directory")), DirectoryFilter)
        assert isinstance(make_filter(compile_pattern("x", "event")), EventFilter)

    def test_kind_and_pattern(self):
        """Test filters expose their kind and pattern."""
        rule_filter = make_filter(compile_pattern("src/", "directory"))
        assert rule_filter.kind is FilterKind.DIRECTORY
        assert rule_filter.pattern == "src/"


class TestSuggestAction:
    """Tests for SuggestAction."""

    def test_kind(self):
        """Test suggest actions report their kind."""
        assert SuggestAction("hi").kind is ActionKind.SUGGEST

    def test_message_untouched(self):
        """Test the message is stored exactly as given."""
        message = "  {{ not a template }}\n\t$var\n"
        assert SuggestAction(message).message == message


class TestFreeze:
    """Tests for freeze."""

    def test_nested(self):
        """Test nested dicts and lists become read-only."""
        frozen = freeze({"a": [1, {"b": [2]}]})

        assert isinstance(frozen, MappingProxyType)
        assert frozen["a"][0] == 1
        assert isinstance(frozen["a"], tuple)
        assert frozen["a"][1]["b"] == (2,)
        with pytest.raises(TypeError):
            frozen["c"] = 1


class TestRule:
    """Tests for Rule."""

    def test_defaults(self):
        """Test a minimal rule."""
        rule = Rule(name="r")

        assert rule.filters == ()
        assert rule.actions == ()
        assert rule.enabled is True
        assert rule.matches_all is True
        assert rule.priority is None

    def test_evaluation_order(self):
        """Test event filters sort first, declared order kept within a kind."""
        directory = make_filter(compile_pattern("src/", "directory"))
        ext_a = make_filter(compile_pattern(r"\.php$", "file_extension"))
        ext_b = make_filter(compile_pattern(r"Controller", "file_extension"))
        event = make_filter(compile_pattern("file_create", "event"))

        rule = Rule(name="r", filters=[directory, ext_a, event, ext_b])

        assert rule.filters == (directory, ext_a, event, ext_b)
        assert rule.evaluation_order == (event, ext_a, ext_b, directory)

    def test_metadata_read_only(self):
        """Test metadata is frozen."""
        rule = Rule(name="r", metadata={"priority": "high", "changelog": [{"v": 1}]})

        assert rule.priority == "high"
        assert rule.metadata["changelog"][0]["v"] == 1
        with pytest.raises(TypeError):
            rule.metadata["priority"] = "low"

    def test_replace_recomputes_order(self):
        """Test dataclasses.replace keeps derived fields valid."""
        event = make_filter(compile_pattern("file_create", "event"))
        rule = Rule(name="r", filters=[event])

        disabled = dataclasses.replace(rule, enabled=False)

        assert disabled.enabled is False
        assert disabled.evaluation_order == (event,)


class TestRuleSet:
    """Tests for RuleSet."""

    def test_iteration_and_lookup(self):
        """Test rule sets iterate in order and look up by name."""
        first, second = Rule(name="a"), Rule(name="b")
        rule_set = RuleSet(rules=[first, second], sources=["x.yaml"])

        assert list(rule_set) == [first, second]
        assert len(rule_set) == 2
        assert rule_set.names == ("a", "b")
        assert rule_set.get("b") is second
        assert rule_set.get("missing") is None
        assert rule_set.sources == ("x.yaml",)
        assert rule_set.loaded_at > 0

    def test_immutable(self):
        """Test the snapshot cannot be mutated."""
        rule_set = RuleSet(rules=[Rule(name="a")])
        with pytest.raises(dataclasses.FrozenInstanceError):
            rule_set.rules = ()
        assert isinstance(rule_set.rules, tuple)
