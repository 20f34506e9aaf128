"""CLI Helper Functions for Kaiban Board.

This module provides reusable helper functions for CLI commands to reduce
code duplication and standardize behavior across all commands.

The helpers provide:
- Workspace context and configuration loading
- Wiring of the board services for one workspace
- Task ID resolution with prefix support
- Consistent table formatting for output
"""

import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, List, Optional

import click
from tabulate import tabulate

from kaiban_board.core.changelog import ChangelogService
from kaiban_board.core.constants import DATA_DIR_NAME
from kaiban_board.core.executor import TaskExecutor
from kaiban_board.core.ai_merge import AIMergeService
from kaiban_board.core.pipeline import PipelineOrchestrator
from kaiban_board.core.prd import PrdService
from kaiban_board.core.review import ReviewService
from kaiban_board.core.session_registry import SessionRegistry
from kaiban_board.core.task_parser import TaskParser
from kaiban_board.models.config import BoardConfig
from kaiban_board.models.task import TaskPriority, TaskRecord, TaskStatus
from kaiban_board.services.cli_detection import CLIDetectionService
from kaiban_board.services.exceptions import GitServiceError
from kaiban_board.services.git_service import GitService
from kaiban_board.services.worktree_service import WorktreeManager
from kaiban_board.utils.config_manager import ConfigManager

logger = logging.getLogger(__name__)

STATUS_COLORS = {
    TaskStatus.BACKLOG: 'white',
    TaskStatus.PLANNING: 'blue',
    TaskStatus.IN_PROGRESS: 'yellow',
    TaskStatus.AI_REVIEW: 'magenta',
    TaskStatus.HUMAN_REVIEW: 'cyan',
    TaskStatus.DONE: 'green',
    TaskStatus.ARCHIVED: 'bright_black',
    TaskStatus.BLOCKED: 'red',
}

PRIORITY_COLORS = {
    TaskPriority.HIGH: 'red',
    TaskPriority.MEDIUM: 'yellow',
    TaskPriority.LOW: 'green',
}


@dataclass
class Board:
    """Services wired for one workspace."""
    workspace: Path
    data_dir: Path
    config: BoardConfig
    parser: TaskParser
    registry: SessionRegistry
    prd: PrdService
    cli_detection: CLIDetectionService
    git: Optional[GitService] = None
    worktrees: Optional[WorktreeManager] = None

    def executor(self) -> TaskExecutor:
        return TaskExecutor(self.workspace, self.parser, self.registry, self.config,
                            self.cli_detection, self.worktrees)

    def orchestrator(self, notifier=None) -> PipelineOrchestrator:
        return PipelineOrchestrator(
            self.parser,
            self.registry,
            self.config,
            executor=self.executor(),
            reviewer=ReviewService(self.workspace, self.cli_detection),
            prd=self.prd,
            worktrees=self.worktrees,
            merger=AIMergeService(self.workspace, self.cli_detection),
            notifier=notifier,
        )

    def changelog(self) -> ChangelogService:
        return ChangelogService(self.workspace, self.parser, self.git)


def get_project_context(workspace: Optional[Path] = None) -> tuple[Path, Path]:
    """Get workspace root and data directory.

    Returns:
        Tuple of (workspace, data_dir)

    Note:
        Does not check if data_dir exists - callers should validate as needed.
    """
    project_root = Path(workspace).resolve() if workspace else Path.cwd()
    data_dir = project_root / DATA_DIR_NAME
    return project_root, data_dir


def load_board(workspace: Optional[Path] = None) -> Board:
    """Load configuration and wire the board services for a workspace.

    Git-backed services are left unset when the workspace is not a git repository.
    """
    project_root, data_dir = get_project_context(workspace)
    config = ConfigManager(data_dir).load()

    try:
        git = GitService(project_root)
        worktrees = WorktreeManager(project_root, config.worktree, git)
    except GitServiceError as e:
        logger.debug(f"Git features disabled: {e}")
        git, worktrees = None, None

    return Board(
        workspace=project_root,
        data_dir=data_dir,
        config=config,
        parser=TaskParser.for_workspace(project_root, config.tasks_dir),
        registry=SessionRegistry(),
        prd=PrdService(project_root, config.prd_base_path),
        cli_detection=CLIDetectionService(),
        git=git,
        worktrees=worktrees,
    )


def require_worktrees(board: Board) -> WorktreeManager:
    """Return the worktree manager, exiting when the workspace has no git repository."""
    if board.worktrees is None:
        click.echo(f"Error: {board.workspace} is not a git repository", err=True)
        sys.exit(1)
    return board.worktrees


def resolve_task(parser: TaskParser, task_id: str) -> TaskRecord:
    """Resolve a task ID, accepting a unique prefix.

    Note:
        Exits with error if task not found or multiple matches.
    """
    task = parser.get_task(task_id)
    if task:
        return task

    matching_tasks = [t for t in parser.parse_all() if t.id.startswith(task_id)]
    if len(matching_tasks) == 1:
        return matching_tasks[0]
    if len(matching_tasks) > 1:
        click.echo(f"Error: Multiple tasks found starting with '{task_id}':", err=True)
        for task in matching_tasks:
            click.echo(f"  - {task.id}: {task.label}", err=True)
    else:
        click.echo(f"Error: No task found with ID: {task_id}", err=True)
    sys.exit(1)


def format_status(status: TaskStatus) -> str:
    return click.style(status.value, fg=STATUS_COLORS.get(status, 'white'))


def format_task_table(tasks: List[TaskRecord],
                      headers: Optional[List[str]] = None,
                      max_label_length: int = 50) -> str:
    """Format tasks as a table with consistent styling.

    Args:
        tasks: List of tasks to display
        headers: Optional custom headers (defaults to standard headers)
        max_label_length: Maximum label length before truncation

    Returns:
        Formatted table string
    """
    if headers is None:
        headers = ["ID", "STATUS", "PRIORITY", "TYPE", "LABEL", "ORDER"]

    table_data = []
    for task in tasks:
        label = task.label
        if len(label) > max_label_length:
            label = label[:max_label_length - 3] + "..."
        if task.rejection_count:
            label += click.style(f" (rejected: {task.rejection_count})", fg='yellow')

        table_data.append([
            task.id,
            format_status(task.status),
            click.style(task.priority.value, fg=PRIORITY_COLORS[task.priority]),
            task.type,
            label,
            "" if task.order is None else task.order,
        ])

    return tabulate(table_data, headers=headers, tablefmt="simple")


def print_table(headers: List[str], rows: List[List[Any]],
                tablefmt: str = "simple") -> None:
    """Print a table with project-wide defaults."""
    click.echo(tabulate(rows, headers=headers, tablefmt=tablefmt))


def echo_notification(level: str, message: str) -> None:
    """Pipeline notifier that prints to the terminal."""
    colors = {'error': 'red', 'warning': 'yellow', 'info': 'green'}
    click.echo(click.style(message, fg=colors.get(level, 'white')), err=level == 'error')


__all__ = [
    'Board',
    'get_project_context',
    'load_board',
    'require_worktrees',
    'resolve_task',
    'format_status',
    'format_task_table',
    'print_table',
    'echo_notification',
]
