import pytest
from click.testing import CliRunner
from unittest.mock import MagicMock
from pathlib import Path

from kaiban_board.core.session_registry import SessionRegistry
from kaiban_board.core.task_parser import TaskParser


TASK_TEMPLATE = """## Task: {label}

**ID:** {task_id}
**Label:** {label}
**Description:** {description}
**Type:** {task_type}
**Status:** {status}
**Priority:** {priority}
**Created:** 2024-01-01T00:00:00.000Z
**Updated:** 2024-01-01T00:00:00.000Z
**PRD:** [PRD](../PRDS/{task_id}.md)

---

## Additional Notes

Keep this text untouched.
"""


def write_task(tasks_dir: Path, task_id: str, label: str = "Sample task", status: str = "Backlog",
               priority: str = "Medium", task_type: str = "Feature", description: str = "Do the thing",
               extra: str = "") -> Path:
    """Write a task file and return its path."""
    tasks_dir.mkdir(parents=True, exist_ok=True)
    content = TASK_TEMPLATE.format(
        task_id=task_id, label=label, description=description,
        task_type=task_type, status=status, priority=priority,
    )
    if extra:
        content = content.replace("\n---\n", f"{extra}\n\n---\n", 1)
    path = tasks_dir / f"{task_id}.md"
    path.write_text(content, encoding="utf-8")
    return path


@pytest.fixture
def cli_runner():
    """Provides a Click CLI runner for testing commands."""
    return CliRunner()


@pytest.fixture
def workspace(tmp_path):
    """Creates a workspace with the default task and PRD directories."""
    (tmp_path / ".agent" / "TASKS").mkdir(parents=True)
    (tmp_path / ".agent" / "PRDS").mkdir(parents=True)
    return tmp_path


@pytest.fixture
def tasks_dir(workspace):
    return workspace / ".agent" / "TASKS"


@pytest.fixture
def parser(workspace):
    return TaskParser.for_workspace(workspace)


@pytest.fixture
def registry():
    registry = SessionRegistry()
    yield registry
    registry.dispose_all()


@pytest.fixture
def sample_task(tasks_dir):
    """A Backlog feature task with ID task-1."""
    return write_task(tasks_dir, "task-1", label="Add login page")


@pytest.fixture
def mock_process():
    """A Popen stand-in that reports as running."""
    process = MagicMock()
    process.pid = 4242
    process.poll.return_value = None
    return process


@pytest.fixture
def make_task(tasks_dir):
    """Factory writing task files into the workspace task directory."""
    def _make(task_id, **kwargs):
        return write_task(tasks_dir, task_id, **kwargs)
    return _make
