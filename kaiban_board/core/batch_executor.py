"""Running a queue of tasks one after another."""

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence

from ..models.config import BatchConfig
from ..models.task import TaskStatus
from ..services.exceptions import BatchAlreadyRunningError, ServiceError
from .executor import TaskExecutor
from .session_registry import SessionRegistry
from .task_parser import TaskParser

logger = logging.getLogger(__name__)

# Statuses that end a task's turn in the batch
COMPLETED_STATUSES = {TaskStatus.DONE, TaskStatus.HUMAN_REVIEW}


@dataclass
class BatchProgress:
    total: int = 0
    current_index: int = 0
    current_task: Optional[str] = None
    completed: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    cancelled: bool = False
    cancelled_task: Optional[str] = None
    finished: bool = False

    @property
    def remaining(self) -> int:
        """Tasks that neither completed nor were skipped."""
        return self.total - len(self.completed) - len(self.skipped)


class BatchExecutor:
    """Executes tasks sequentially in a background thread.

    A task's turn ends when its status reaches Done or Human Review, when it
    times out, or when it cannot be started. Only one batch runs at a time.
    """

    def __init__(self, parser: TaskParser, executor: TaskExecutor, registry: SessionRegistry,
                 config: Optional[BatchConfig] = None,
                 notifier: Optional[Callable[[str, str], None]] = None):
        self.parser = parser
        self.executor = executor
        self.registry = registry
        self.config = config or BatchConfig()
        self.notify = notifier
        self.progress = BatchProgress()
        self._cancel = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start_batch(self, task_ids: Sequence[str]) -> BatchProgress:
        """Start executing ``task_ids`` in order.

        Raises:
            BatchAlreadyRunningError: If another batch is still running
            ValueError: If no task ids were given
        """
        with self._lock:
            if self.is_running:
                raise BatchAlreadyRunningError("A batch is already running")
            if not task_ids:
                raise ValueError("No tasks to execute")

            self._cancel.clear()
            self.progress = BatchProgress(total=len(task_ids))
            self._thread = threading.Thread(
                target=self._run, args=(list(task_ids),), name="kaiban-batch", daemon=True
            )
            self._thread.start()
        logger.info(f"Started batch of {len(task_ids)} task(s)")
        return self.progress

    def cancel_batch(self) -> bool:
        """Stop the batch and the task currently running. Returns False if idle."""
        if not self.is_running:
            return False
        self._cancel.set()
        current = self.progress.current_task
        if current:
            self.registry.dispose(current)
        logger.info("Batch cancellation requested")
        return True

    def join(self, timeout: Optional[float] = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout)

    def _report(self, level: str, message: str) -> None:
        logger.log(logging.getLevelName(level.upper()), message)
        if self.notify:
            self.notify(level, message)

    def _run(self, task_ids: List[str]) -> None:
        progress = self.progress
        try:
            for index, task_id in enumerate(task_ids):
                if self._cancel.is_set():
                    progress.cancelled = True
                    break
                progress.current_index = index
                progress.current_task = task_id
                try:
                    if self._run_one(task_id):
                        progress.completed.append(task_id)
                    elif self._cancel.is_set():
                        progress.cancelled_task = task_id
                    else:
                        progress.skipped.append(task_id)
                finally:
                    self.registry.dispose(task_id)
            if self._cancel.is_set():
                progress.cancelled = True
        finally:
            progress.current_task = None
            progress.finished = True
            self._report(
                "info",
                f"Batch finished: {len(progress.completed)} completed, "
                f"{len(progress.skipped)} skipped of {progress.total}"
                + (f" (cancelled, {progress.remaining} not run)" if progress.cancelled else ""),
            )

    def _run_one(self, task_id: str) -> bool:
        if self.registry.is_running(task_id):
            self._report("warning", f"Skipping task {task_id}: already running")
            return False

        try:
            self.executor.execute(task_id)
        except ServiceError as e:
            self._report("error", f"Skipping task {task_id}: {e}")
            return False

        return self._wait_for_completion(task_id)

    def _wait_for_completion(self, task_id: str) -> bool:
        poller = self.registry.register_poller(task_id)
        deadline = time.monotonic() + self.config.execution_timeout_minutes * 60
        while True:
            task = self.parser.get_task(task_id)
            if task is not None and task.status in COMPLETED_STATUSES:
                logger.info(f"Task {task_id} reached {task.status.value}")
                return True
            if self._cancel.is_set():
                return False
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                self._report(
                    "warning",
                    f"Task {task_id} timed out after {self.config.execution_timeout_minutes} minutes",
                )
                return False
            # Set when the task is disposed or the batch is cancelled
            if poller.wait(min(self.config.poll_interval_seconds, remaining)):
                if self._cancel.is_set():
                    return False
                poller = self.registry.register_poller(task_id)
