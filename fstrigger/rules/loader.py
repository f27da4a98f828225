#!/usr/bin/env python3
"""Rule document loading.

Turns parsed rule documents, YAML files or directories of YAML files into
a compiled ``RuleSet``:
- Structural validation of every document
- Pattern compilation through one shared ``PatternCompiler``
- Per-rule error isolation: a broken rule is reported and skipped
- Duplicate names rejected, first definition wins
- Inert payload (description, tags, metadata, examples) kept read-only

A YAML file may hold one rule, several ``---``-separated rules, or a
top-level ``rules:`` list.

Example:
    >>> result = load_rules([{"name": "php", "filters": [], "actions": []}])
    >>> len(result.rule_set), result.errors
    (1, ())
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Union

import yaml

from fstrigger.core.constants import RULE_FILE_SUFFIXES, ActionKind, DocumentKey, ErrorCode
from fstrigger.core.logging import Logger, get_logger
from fstrigger.core.validators import ValidationError, validate_rule_document
from fstrigger.rules.errors import (
    DuplicateRuleError,
    InvalidPatternError,
    RuleDocumentError,
    RuleLoadError,
    RuleSourceError,
    UnknownActionKindError,
    UnknownFilterKindError,
)
from fstrigger.rules.models import Action, Filter, Rule, RuleSet, SuggestAction, make_filter
from fstrigger.rules.patterns import PatternCompiler

PathLike = Union[str, Path]


@dataclass(frozen=True)
class LoadResult:
    """A compiled rule set plus the rule-level errors met while building it."""

    rule_set: RuleSet
    errors: Tuple[RuleLoadError, ...] = ()

    @property
    def ok(self) -> bool:
        return not self.errors


def parse_documents(text: str, source: str = "<string>") -> List[Dict[str, Any]]:
    """Parse YAML text into rule documents.

    Raises:
        RuleSourceError: If the text is not valid YAML or has an unexpected shape
    """
    try:
        raw_documents = list(yaml.safe_load_all(text))
    except yaml.YAMLError as e:
        raise RuleSourceError(f"YAML parse error: {e}", source=source)

    documents: List[Dict[str, Any]] = []
    for raw in raw_documents:
        if raw is None:
            continue
        if isinstance(raw, dict) and DocumentKey.RULES in raw and DocumentKey.NAME not in raw:
            rules = raw[DocumentKey.RULES]
            if not isinstance(rules, list):
                raise RuleSourceError("'rules' must be a list", source=source)
            documents.extend(rules)
        elif isinstance(raw, list):
            documents.extend(raw)
        elif isinstance(raw, dict):
            documents.append(raw)
        else:
            raise RuleSourceError(
                f"Expected a rule mapping or list, got {type(raw).__name__}", source=source
            )

    return documents


def read_rule_file(path: PathLike) -> List[Dict[str, Any]]:
    """Read and parse one YAML rule file.

    Raises:
        RuleSourceError: If the file is missing, unreadable or not valid YAML
    """
    file_path = Path(path).expanduser()
    if not file_path.is_file():
        raise RuleSourceError("Rule file not found", source=str(file_path), error_code=ErrorCode.NOT_FOUND)

    try:
        text = file_path.read_text(encoding="utf-8")
    except OSError as e:
        raise RuleSourceError(
            f"Cannot read rule file: {e}", source=str(file_path), error_code=ErrorCode.PERMISSION_DENIED
        )

    return parse_documents(text, source=str(file_path))


def discover_rule_files(paths: Iterable[PathLike]) -> List[Path]:
    """Expand files and directories into the list of rule files to load.

    Directories are searched recursively for ``.yaml``/``.yml`` files, in
    sorted order so load order is stable across runs.

    Raises:
        RuleSourceError: If a path does not exist
    """
    files: List[Path] = []
    for raw in paths:
        path = Path(raw).expanduser()
        if path.is_dir():
            files.extend(
                sorted(p for p in path.rglob("*") if p.is_file() and p.suffix in RULE_FILE_SUFFIXES)
            )
        elif path.is_file():
            files.append(path)
        else:
            raise RuleSourceError("Rule path not found", source=str(path), error_code=ErrorCode.NOT_FOUND)
    return files


def _compile_filters(
    document: Dict[str, Any], compiler: PatternCompiler, case_sensitive: bool, name: str, source: Optional[str]
) -> List[Filter]:
    filters: List[Filter] = []
    seen = set()

    for i, entry in enumerate(document[DocumentKey.FILTERS]):
        try:
            matcher = compiler.compile(entry[DocumentKey.PATTERN], entry[DocumentKey.TYPE], case_sensitive)
        except InvalidPatternError as e:
            raise InvalidPatternError(
                f"filter #{i}: {e.message}",
                pattern=e.pattern,
                filter_index=i,
                rule_name=name,
                source=source,
            )
        except UnknownFilterKindError as e:
            raise UnknownFilterKindError(f"filter #{i}: {e.message}", rule_name=name, source=source)

        # Overlapping duplicates add nothing to a conjunction
        key = (matcher.kind, matcher.pattern)
        if key in seen:
            continue
        seen.add(key)
        filters.append(make_filter(matcher))

    return filters


def _compile_actions(document: Dict[str, Any], name: str, source: Optional[str]) -> List[Action]:
    actions: List[Action] = []

    for i, entry in enumerate(document[DocumentKey.ACTIONS]):
        try:
            kind = ActionKind(entry[DocumentKey.TYPE])
        except ValueError:
            valid = ", ".join(k.value for k in ActionKind)
            raise UnknownActionKindError(
                f"action #{i}: unknown action type {entry[DocumentKey.TYPE]!r} (expected one of: {valid})",
                rule_name=name,
                source=source,
            )

        if kind is ActionKind.SUGGEST:
            if DocumentKey.MESSAGE not in entry:
                raise RuleDocumentError(
                    f"action #{i}: suggest action must have 'message' field",
                    rule_name=name,
                    source=source,
                )
            actions.append(SuggestAction(message=entry[DocumentKey.MESSAGE]))

    return actions


def compile_rule(
    document: Dict[str, Any],
    compiler: Optional[PatternCompiler] = None,
    case_sensitive: bool = True,
    index: Optional[int] = None,
    source: Optional[str] = None,
) -> Rule:
    """Compile one rule document.

    Args:
        document: Parsed rule document
        compiler: Shared compiler; a private one is used when omitted
        case_sensitive: Default when the document has no ``case_sensitive``
        index: Position of the document in its load, for error messages
        source: File the document came from, for error messages

    Returns:
        Compiled rule

    Raises:
        RuleLoadError: Any of its subclasses, scoped to this rule
    """
    name = document.get(DocumentKey.NAME) if isinstance(document, dict) else None
    name = name if isinstance(name, str) else None

    try:
        validate_rule_document(document)
    except ValidationError as e:
        raise RuleDocumentError(str(e), rule_name=name, index=index, source=source)

    if compiler is None:
        compiler = PatternCompiler(case_sensitive=case_sensitive)
    rule_case_sensitive = document.get(DocumentKey.CASE_SENSITIVE, case_sensitive)

    filters = _compile_filters(document, compiler, rule_case_sensitive, name, source)
    actions = _compile_actions(document, name, source)

    return Rule(
        name=name,
        filters=tuple(filters),
        actions=tuple(actions),
        enabled=document.get(DocumentKey.ENABLED, True),
        description=document.get(DocumentKey.DESCRIPTION),
        tags=tuple(document.get(DocumentKey.TAGS) or ()),
        metadata=document.get(DocumentKey.METADATA) or {},
        examples=tuple(document.get(DocumentKey.EXAMPLES) or ()),
        source=source,
    )


def _build(
    entries: Sequence[Tuple[Optional[str], Any]],
    sources: Sequence[str],
    case_sensitive: bool,
    logger: Logger,
) -> LoadResult:
    compiler = PatternCompiler(case_sensitive=case_sensitive)
    rules: List[Rule] = []
    errors: List[RuleLoadError] = []
    names = set()

    for index, (source, document) in enumerate(entries):
        try:
            rule = compile_rule(document, compiler, case_sensitive, index=index, source=source)
        except RuleLoadError as e:
            errors.append(e)
            logger.warning("Rule rejected", error=str(e), error_code=e.error_code.name)
            continue

        if rule.name in names:
            error = DuplicateRuleError(
                "duplicate rule name, keeping the first definition",
                rule_name=rule.name,
                index=index,
                source=source,
            )
            errors.append(error)
            logger.warning("Rule rejected", error=str(error), error_code=error.error_code.name)
            continue

        names.add(rule.name)
        rules.append(rule)
        logger.debug(
            "Loaded rule",
            rule=rule.name,
            filters=len(rule.filters),
            actions=len(rule.actions),
            enabled=rule.enabled,
        )

    logger.info("Rules loaded", active=len(rules), rejected=len(errors), patterns=len(compiler))
    return LoadResult(rule_set=RuleSet(rules=tuple(rules), sources=tuple(sources)), errors=tuple(errors))


def load_rules(
    documents: Iterable[Any],
    case_sensitive: bool = True,
    logger: Optional[Logger] = None,
) -> LoadResult:
    """Compile already-parsed rule documents.

    Never raises for a bad rule; see ``LoadResult.errors``.
    """
    entries = [(None, document) for document in documents]
    return _build(entries, (), case_sensitive, logger or get_logger("fstrigger.loader"))


def load_rule_paths(
    paths: Iterable[PathLike],
    case_sensitive: bool = True,
    logger: Optional[Logger] = None,
) -> LoadResult:
    """Load rule files and directories.

    Raises:
        RuleSourceError: If any path is missing or any file cannot be parsed
    """
    files = discover_rule_files(paths)
    entries: List[Tuple[Optional[str], Any]] = []
    for file_path in files:
        for document in read_rule_file(file_path):
            entries.append((str(file_path), document))

    return _build(
        entries,
        tuple(str(f) for f in files),
        case_sensitive,
        logger or get_logger("fstrigger.loader"),
    )
