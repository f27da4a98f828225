"""Shared pytest fixtures for fstrigger tests."""
import tempfile
from pathlib import Path
from typing import Any, Dict, Generator, List

import pytest
import yaml

from fstrigger.core import logging as logging_module
from fstrigger.rules.actions import CollectingNotifier

CONTROLLER_MESSAGE = """Controllers should extend AbstractController.

Example:
    #[Route('/users/{id}')]
    public function show(User $user): Response
    {
        return $this->render('user/show.html.twig', ['user' => $user]);
    }
"""

TWIG_MESSAGE = "Keep logic out of templates; use {{ path('route') }} for links."


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def controller_rule() -> Dict[str, Any]:
    """PHP controller rule: extension, directory and event filters."""
    return {
        "name": "symfony-controller",
        "description": "Controller conventions",
        "filters": [
            {"type": "file_extension", "pattern": r"\.php$"},
            {"type": "directory", "pattern": "src/"},
            {"type": "event", "pattern": "file_create|file_update"},
        ],
        "actions": [{"type": "suggest", "message": CONTROLLER_MESSAGE}],
        "tags": ["symfony", "php"],
        "metadata": {
            "priority": "high",
            "version": "1.0.0",
            "changelog": [{"version": "1.0.0", "changes": ["Initial rule"]}],
        },
        "examples": [{"input": "new controller", "output": "suggestion"}],
    }


@pytest.fixture
def twig_rule() -> Dict[str, Any]:
    """Template rule with only an extension filter."""
    return {
        "name": "twig-templates",
        "filters": [{"type": "file_extension", "pattern": r"\.(twig|html\.twig)$"}],
        "actions": [{"type": "suggest", "message": TWIG_MESSAGE}],
    }


@pytest.fixture
def catch_all_rule() -> Dict[str, Any]:
    """Rule with an explicit empty filter list."""
    return {
        "name": "catch-all",
        "filters": [],
        "actions": [{"type": "suggest", "message": "Something changed"}],
    }


@pytest.fixture
def rule_documents(controller_rule, twig_rule, catch_all_rule) -> List[Dict[str, Any]]:
    return [controller_rule, twig_rule, catch_all_rule]


@pytest.fixture
def rules_dir(temp_dir: Path, controller_rule, twig_rule) -> Path:
    """Directory with one rule per YAML file."""
    directory = temp_dir / "rules"
    directory.mkdir()
    (directory / "10-controller.yaml").write_text(yaml.safe_dump(controller_rule))
    (directory / "20-twig.yml").write_text(yaml.safe_dump(twig_rule))
    (directory / "notes.txt").write_text("not a rule file")
    return directory


@pytest.fixture
def rule_file(temp_dir: Path, controller_rule, twig_rule) -> Path:
    """Single YAML file holding two rules as separate documents."""
    path = temp_dir / "rules.yaml"
    path.write_text(yaml.safe_dump_all([controller_rule, twig_rule]))
    return path


@pytest.fixture
def notifier() -> CollectingNotifier:
    return CollectingNotifier()


@pytest.fixture(autouse=True)
def restore_global_logger():
    """Restore the global logger between tests."""
    previous_logger = logging_module._global_logger
    yield
    logging_module.set_global_logger(previous_logger)
