#!/usr/bin/env python3
"""Command-line interface for fstrigger.

This module provides a thin local host for rule files:
- validate: load rule files and report rejected rules
- check: evaluate one synthetic event and print the suggestions
- watch: watch a directory tree and print suggestions as files change

Example:
    >>> from fstrigger.cli import parse_arguments
    >>> args = parse_arguments(["check", "rules/", "--path", "src/App.php", "--kind", "file_create"])
"""

import argparse
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from fstrigger.core.config import ConfigError, ConfigManager, ConfigSource
from fstrigger.core.constants import FSTRIGGER_VERSION, ConfigKey, EventKind
from fstrigger.core.logging import Logger, configure_logging
from fstrigger.core.validators import ValidationError
from fstrigger.rules.actions import ConsoleNotifier
from fstrigger.rules.engine import RuleEngine
from fstrigger.rules.errors import RuleSourceError
from fstrigger.rules.models import Event

DESCRIPTION = "fstrigger - trigger rules for filesystem events"


class CLIError(Exception):
    """Exception raised for CLI-related errors."""

    pass


def parse_arguments(args: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    Args:
        args: Argument list to parse (defaults to sys.argv[1:])

    Returns:
        Parsed arguments namespace

    Raises:
        SystemExit: On invalid arguments or --help/--version
        CLIError: If a referenced path does not exist
    """
    parser = argparse.ArgumentParser(
        prog="fstrigger",
        description=DESCRIPTION,
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Report invalid rules
  fstrigger validate rules/

  # Which rules fire when a controller is created?
  fstrigger check rules/ --path src/Controller/UserController.php --kind file_create

  # Print suggestions while editing a project
  fstrigger watch rules/ --root ~/projects/shop
        """,
    )

    parser.add_argument(
        "-v",
        "--version",
        action="version",
        version=f"%(prog)s {FSTRIGGER_VERSION}",
    )

    parser.add_argument(
        "-c",
        "--config",
        metavar="FILE",
        type=str,
        help="Configuration file path (YAML format)",
    )

    log_group = parser.add_argument_group("logging options")

    log_group.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )

    log_group.add_argument(
        "--log-file",
        metavar="FILE",
        type=str,
        help="Also write logs to this file",
    )

    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")
    subparsers.required = True

    validate_parser = subparsers.add_parser("validate", help="Load rule files and report errors")
    validate_parser.add_argument("rules", metavar="RULES", nargs="+", help="Rule files or directories")

    check_parser = subparsers.add_parser("check", help="Evaluate one event against the rules")
    check_parser.add_argument("rules", metavar="RULES", nargs="+", help="Rule files or directories")
    check_parser.add_argument("--path", required=True, help="Path of the changed file")
    check_parser.add_argument(
        "--kind",
        default=EventKind.FILE_UPDATE.value,
        help="Event kind (default: file_update; e.g. " + ", ".join(k.value for k in EventKind) + ")",
    )

    watch_parser = subparsers.add_parser("watch", help="Watch a directory and print suggestions")
    watch_parser.add_argument(
        "rules", metavar="RULES", nargs="*", help="Rule files or directories (default: from config)"
    )
    watch_parser.add_argument("--root", metavar="DIR", help="Directory to watch (default: from config)")
    watch_parser.add_argument(
        "--no-recursive",
        dest="recursive",
        action="store_false",
        default=None,
        help="Only watch the top-level directory",
    )
    watch_parser.add_argument(
        "--threaded",
        action="store_true",
        default=None,
        help="Deliver suggestions from a thread pool",
    )
    watch_parser.add_argument(
        "--reload-interval",
        metavar="SECONDS",
        type=float,
        help="Rule file poll interval",
    )

    parsed = parser.parse_args(args)

    _validate_arguments(parsed)

    return parsed


def _validate_arguments(args: argparse.Namespace) -> None:
    """
    Validate parsed arguments.

    Raises:
        CLIError: If validation fails
    """
    for rule_path in getattr(args, "rules", None) or []:
        if not Path(rule_path).exists():
            raise CLIError(f"Rule path does not exist: {rule_path}")

    root = getattr(args, "root", None)
    if root is not None:
        root_path = Path(root)
        if not root_path.exists():
            raise CLIError(f"Watch root does not exist: {root}")
        if not root_path.is_dir():
            raise CLIError(f"Watch root is not a directory: {root}")

    if args.config:
        config_path = Path(args.config)
        if not config_path.is_file():
            raise CLIError(f"Configuration file does not exist: {args.config}")

    interval = getattr(args, "reload_interval", None)
    if interval is not None and interval <= 0:
        raise CLIError(f"Reload interval must be positive: {interval}")


def build_config_from_args(args: argparse.Namespace) -> Dict[str, Any]:
    """
    Build the CLI_ARGS configuration layer from parsed arguments.

    Only options the user actually gave are included, so lower layers
    (config file, environment) still apply to everything else.
    """
    section: Dict[str, Dict[str, Any]] = {}

    if args.debug:
        section.setdefault("logging", {})["level"] = "DEBUG"
    if args.log_file:
        section.setdefault("logging", {})["file"] = args.log_file

    if getattr(args, "rules", None):
        section.setdefault("rules", {})["paths"] = list(args.rules)
    if getattr(args, "reload_interval", None) is not None:
        section.setdefault("rules", {})["reload_interval"] = args.reload_interval

    if getattr(args, "root", None) is not None:
        section.setdefault("watch", {})["root"] = args.root
    if getattr(args, "recursive", None) is not None:
        section.setdefault("watch", {})["recursive"] = args.recursive

    if getattr(args, "threaded", None):
        section.setdefault("dispatch", {})["threaded"] = True

    return {"fstrigger": section}


def load_configuration(args: argparse.Namespace) -> ConfigManager:
    """
    Create the configuration manager for a CLI run.

    Raises:
        CLIError: If the config file cannot be loaded
    """
    try:
        config = ConfigManager(args.config)
    except ConfigError as e:
        raise CLIError(f"Failed to load configuration: {e.message}")

    config.load_dict(build_config_from_args(args), ConfigSource.CLI_ARGS)
    return config


def setup_logging(config: ConfigManager) -> Logger:
    """
    Setup logging from the merged configuration.

    Returns:
        Configured root logger
    """
    return configure_logging(
        level=config.get(ConfigKey.LOG_LEVEL, "INFO"),
        log_file=config.get(ConfigKey.LOG_FILE),
    )


def run_validate(args: argparse.Namespace, config: ConfigManager, logger: Logger) -> int:
    """Load the rules and print every rejected rule. Exit 1 if any."""
    engine = RuleEngine(case_sensitive=config.get(ConfigKey.CASE_SENSITIVE, True), logger=logger)
    try:
        result = engine.load_paths(args.rules)
    except RuleSourceError as e:
        print(f"{e.source}: {e.message}", file=sys.stderr)
        return 1

    for error in result.errors:
        print(f"error: {error}", file=sys.stderr)

    print(f"{len(result.rule_set)} rule(s) loaded, {len(result.errors)} rejected")
    return 0 if result.ok else 1


def run_check(args: argparse.Namespace, config: ConfigManager, logger: Logger) -> int:
    """Evaluate one event and print the suggestions it triggers."""
    try:
        event = Event(args.path, args.kind)
    except ValidationError as e:
        raise CLIError(f"Invalid event: {e}")

    engine = RuleEngine(
        notifier=ConsoleNotifier(sys.stdout),
        case_sensitive=config.get(ConfigKey.CASE_SENSITIVE, True),
        logger=logger,
    )
    try:
        engine.load_paths(args.rules)
    except RuleSourceError as e:
        raise CLIError(f"{e.source}: {e.message}")

    records = engine.evaluate(event)
    if not records and not engine.matching_rules(event):
        print("No rules matched")

    return 0 if all(record.delivered for record in records) else 1


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main CLI entry point.

    Parses arguments, builds the configuration and logging, then runs the
    requested command.
    """
    try:
        args = parse_arguments(argv)
        config = load_configuration(args)
        logger = setup_logging(config)

        if args.command == "validate":
            return run_validate(args, config, logger)
        if args.command == "check":
            return run_check(args, config, logger)

        from fstrigger.main import run_watch

        return run_watch(args, config, logger)

    except CLIError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    except KeyboardInterrupt:
        print("\nInterrupted by user", file=sys.stderr)
        return 130


if __name__ == "__main__":
    sys.exit(main())
