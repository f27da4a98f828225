"""Tests for input validators."""
import pytest

from fstrigger.core.constants import ErrorCode, Limits
from fstrigger.core.validators import (
    ValidationError,
    validate_action_config,
    validate_event_kind,
    validate_filter_config,
    validate_path,
    validate_pattern,
    validate_reload_interval,
    validate_rule_document,
    validate_rule_name,
    validate_tags,
)


def _document(**overrides):
    document = {
        "name": "php-hint",
        "filters": [{"type": "file_extension", "pattern": r"\.php$"}],
        "actions": [{"type": "suggest", "message": "hi"}],
    }
    document.update(overrides)
    return document


class TestValidateRuleDocument:
    """Tests for validate_rule_document."""

    def test_valid(self):
        assert validate_rule_document(_document()) is True

    def test_optional_fields(self):
        """Test all optional fields are accepted."""
        document = _document(
            description="d",
            enabled=False,
            case_sensitive=False,
            tags=["php"],
            metadata={"priority": "high"},
            examples=[{"input": "a"}],
        )
        assert validate_rule_document(document) is True

    def test_not_mapping(self):
        with pytest.raises(ValidationError):
            validate_rule_document("name: x")

    @pytest.mark.parametrize("key", ["name", "filters", "actions"])
    def test_required_keys(self, key):
        """Test name, filters and actions must be present."""
        document = _document()
        del document[key]
        with pytest.raises(ValidationError, match=key):
            validate_rule_document(document)

    def test_empty_lists_allowed(self):
        """Test empty filter and action lists are valid."""
        assert validate_rule_document(_document(filters=[], actions=[])) is True

    @pytest.mark.parametrize(
        "overrides",
        [
            {"filters": {"type": "directory"}},
            {"actions": "suggest"},
            {"enabled": "yes"},
            {"case_sensitive": 1},
            {"description": 42},
            {"tags": "php"},
            {"tags": [1, 2]},
            {"metadata": ["a"]},
            {"examples": {"a": 1}},
        ],
    )
    def test_bad_field_types(self, overrides):
        with pytest.raises(ValidationError):
            validate_rule_document(_document(**overrides))

    def test_filter_index_in_message(self):
        """Test nested errors name the offending entry."""
        document = _document(filters=[{"type": "directory", "pattern": "a"}, {"type": "directory"}])
        with pytest.raises(ValidationError, match="index 1"):
            validate_rule_document(document)

    def test_unknown_kinds_pass_structure_check(self):
        """Test kinds are left for the loader to judge."""
        document = _document(
            filters=[{"type": "mime", "pattern": "x"}],
            actions=[{"type": "auto_fix"}],
        )
        assert validate_rule_document(document) is True


class TestEntryValidators:
    """Tests for filter and action entry validation."""

    @pytest.mark.parametrize("entry", ["x", {}, {"type": ""}, {"type": 3, "pattern": "a"}, {"type": "event"}])
    def test_bad_filter(self, entry):
        with pytest.raises(ValidationError):
            validate_filter_config(entry)

    @pytest.mark.parametrize("entry", [None, {}, {"type": None}, {"type": "suggest", "message": ["a"]}])
    def test_bad_action(self, entry):
        with pytest.raises(ValidationError):
            validate_action_config(entry)

    def test_action_message_optional(self):
        assert validate_action_config({"type": "suggest"}) is True


class TestScalarValidators:
    """Tests for names, tags, patterns, paths and kinds."""

    @pytest.mark.parametrize("name", ["php-hint", "Symfony Controller", "team/rule:1", "a_b.c"])
    def test_valid_names(self, name):
        assert validate_rule_name(name) is True

    @pytest.mark.parametrize("name", ["", None, "-leading", "bad\nname", "x" * (Limits.MAX_RULE_NAME_LENGTH + 1)])
    def test_invalid_names(self, name):
        with pytest.raises(ValidationError):
            validate_rule_name(name)

    def test_tags(self):
        assert validate_tags(None) is True
        assert validate_tags(["a", "b"]) is True

    def test_pattern(self):
        assert validate_pattern(r"\.php$") is True
        with pytest.raises(ValidationError) as exc_info:
            validate_pattern("")
        assert exc_info.value.error_code == ErrorCode.INVALID_INPUT

    @pytest.mark.parametrize("kind", ["file_create", "file_chmod", "x1", "FILE_CREATE", "file-create", "FileCreated"])
    def test_event_kinds(self, kind):
        assert validate_event_kind(kind) is True

    @pytest.mark.parametrize("kind", ["", "file create", "file_create\n", "a\0b", 3])
    def test_invalid_event_kinds(self, kind):
        with pytest.raises(ValidationError):
            validate_event_kind(kind)

    def test_path(self):
        assert validate_path("src/a.php") is True
        with pytest.raises(ValidationError):
            validate_path("x" * (Limits.MAX_PATH_LENGTH + 1))

    @pytest.mark.parametrize("interval", [0.1, 1, 30.0])
    def test_reload_interval(self, interval):
        assert validate_reload_interval(interval) is True

    @pytest.mark.parametrize("interval", [0, 0.01, -1, "1", True])
    def test_invalid_reload_interval(self, interval):
        with pytest.raises(ValidationError):
            validate_reload_interval(interval)
