"""Launching AI CLI sessions for tasks."""

import logging
import subprocess
from pathlib import Path
from typing import Optional, Sequence

from ..models.config import BoardConfig
from ..models.task import TaskRecord, TaskStatus
from ..services.cli_detection import CLIDetectionService
from ..services.exceptions import (
    AIResponseError,
    GitServiceError,
    TaskAlreadyRunningError,
    TaskNotFoundError,
)
from ..services.worktree_service import WorktreeManager
from .constants import DATA_DIR_NAME, RALPH_LOOP_PROVIDERS, REVIEW_FEEDBACK_HEADER
from .session_registry import SessionRegistry
from .task_parser import TaskParser

logger = logging.getLogger(__name__)


class TaskExecutor:
    """Starts an AI CLI on a task and tracks the process in the session registry."""

    def __init__(self, workspace: Path, parser: TaskParser, registry: SessionRegistry,
                 config: Optional[BoardConfig] = None,
                 cli_detection: Optional[CLIDetectionService] = None,
                 worktrees: Optional[WorktreeManager] = None):
        self.workspace = Path(workspace)
        self.parser = parser
        self.registry = registry
        self.config = config or BoardConfig()
        self.cli_detection = cli_detection or CLIDetectionService()
        self.worktrees = worktrees
        self.log_dir = self.workspace / DATA_DIR_NAME / "logs"

    def build_prompt(self, task: TaskRecord, review_feedback: Optional[Sequence[str]] = None) -> str:
        """Instruction handed to the AI CLI, with review feedback appended when given."""
        prompt = self.config.prompt_template.replace("{taskFile}", task.file_path)
        if review_feedback:
            numbered = "\n".join(f"{i}. {item}" for i, item in enumerate(review_feedback, start=1))
            prompt += f"\n\n{REVIEW_FEEDBACK_HEADER}\n{numbered}"
        return prompt

    def build_command(self, provider: str, prompt: str) -> list[str]:
        """Command line for a provider; Claude runs the prompt inside the ralph loop."""
        executable = self.cli_detection.executable_for(provider)
        if provider in RALPH_LOOP_PROVIDERS:
            ralph = self.config.ralph
            escaped = prompt.replace('"', '\\"')
            prompt = (
                f'{ralph.command} "{escaped}" '
                f'--completion-promise "{ralph.completion_promise}" '
                f'--max-iterations {ralph.max_iterations}'
            )
        return [executable, prompt]

    def _working_dir(self, task: TaskRecord) -> Path:
        if not (self.config.worktree.enabled and self.worktrees):
            return self.workspace
        if task.worktree and task.worktree.enabled and task.worktree.path and Path(task.worktree.path).exists():
            return Path(task.worktree.path)

        result = self.worktrees.create_worktree(task.id)
        if not result.success:
            raise GitServiceError(f"Could not create worktree for {task.id}: {result.error}")
        self.parser.update_worktree(task.id, self.worktrees.create_metadata(task.id))
        return Path(result.path)

    def execute(self, task_id: str, review_feedback: Optional[Sequence[str]] = None,
                provider: Optional[str] = None) -> subprocess.Popen:
        """Start an AI session for a task and move it to In Progress.

        Args:
            task_id: Task to work on
            review_feedback: Review findings to address, one per item
            provider: CLI to use (defaults to the configured selection mode)

        Returns:
            The running process

        Raises:
            TaskNotFoundError: If the task does not exist
            TaskAlreadyRunningError: If the task already has a live session
            CLIUnavailableError: If no AI CLI is installed
            AIResponseError: If the CLI process could not be started
        """
        if self.registry.is_running(task_id):
            raise TaskAlreadyRunningError(f"Task {task_id} is already running")

        task = self.parser.get_task(task_id)
        if task is None:
            raise TaskNotFoundError(f"Task not found: {task_id}")

        chosen = self.cli_detection.require_provider(provider or self.config.cli_provider)
        command = self.build_command(chosen, self.build_prompt(task, review_feedback))
        cwd = self._working_dir(task)

        self.log_dir.mkdir(parents=True, exist_ok=True)
        log_path = self.log_dir / f"{task_id}.log"
        try:
            with open(log_path, "a", encoding="utf-8") as log_file:
                process = subprocess.Popen(
                    command,
                    cwd=cwd,
                    stdout=log_file,
                    stderr=subprocess.STDOUT,
                    stdin=subprocess.DEVNULL,
                    text=True,
                )
        except OSError as e:
            raise AIResponseError(f"Could not run {chosen}: {e}") from e
        self.registry.register_process(task_id, process)
        self.parser.update_status(task_id, TaskStatus.IN_PROGRESS)
        logger.info(f"Started {chosen} for task {task_id} (pid {process.pid}, log {log_path})")
        return process

    def stop(self, task_id: str) -> bool:
        """Stop a task's AI session and release its pollers."""
        was_running = self.registry.is_running(task_id)
        self.registry.dispose(task_id)
        return was_running
