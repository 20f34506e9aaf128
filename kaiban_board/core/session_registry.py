"""Per-task runtime resources owned by one board session."""

import logging
import subprocess
import threading
from typing import Dict, Optional

from ..models.merge import PipelineState

logger = logging.getLogger(__name__)

TERMINATE_GRACE_SECONDS = 5


class SessionRegistry:
    """Tracks AI processes, pollers and pipeline state per task.

    One registry belongs to one orchestrator and workspace. Everything a task
    holds is released through ``dispose`` so a stopped task can start again
    cleanly.
    """

    def __init__(self):
        self._processes: Dict[str, subprocess.Popen] = {}
        self._pollers: Dict[str, threading.Event] = {}
        self._states: Dict[str, PipelineState] = {}
        self._locks: Dict[str, threading.RLock] = {}
        self._guard = threading.Lock()

    def lock_for(self, task_id: str) -> threading.RLock:
        """Lock serializing pipeline decisions for one task."""
        with self._guard:
            return self._locks.setdefault(task_id, threading.RLock())

    def register_process(self, task_id: str, process: subprocess.Popen) -> None:
        with self._guard:
            self._processes[task_id] = process
        logger.debug(f"Registered process {process.pid} for task {task_id}")

    def get_process(self, task_id: str) -> Optional[subprocess.Popen]:
        with self._guard:
            return self._processes.get(task_id)

    def is_running(self, task_id: str) -> bool:
        process = self.get_process(task_id)
        return process is not None and process.poll() is None

    def register_poller(self, task_id: str) -> threading.Event:
        """Create the cancel event a completion poller for the task waits on."""
        event = threading.Event()
        with self._guard:
            previous = self._pollers.get(task_id)
            self._pollers[task_id] = event
        if previous is not None:
            previous.set()
        return event

    def get_state(self, task_id: str) -> PipelineState:
        with self._guard:
            return self._states.setdefault(task_id, PipelineState(task_id=task_id))

    def has_state(self, task_id: str) -> bool:
        with self._guard:
            return task_id in self._states

    def clear_state(self, task_id: str) -> None:
        with self._guard:
            self._states.pop(task_id, None)

    def stop_process(self, task_id: str) -> bool:
        """Terminate a task's AI process. Returns True if one was running."""
        with self._guard:
            process = self._processes.pop(task_id, None)
        if process is None:
            return False
        if process.poll() is not None:
            return False

        process.terminate()
        try:
            process.wait(timeout=TERMINATE_GRACE_SECONDS)
        except subprocess.TimeoutExpired:
            logger.warning(f"Process for task {task_id} ignored terminate, killing")
            process.kill()
            process.wait()
        logger.info(f"Stopped process for task {task_id}")
        return True

    def dispose(self, task_id: str) -> None:
        """Release the process and pollers of a task."""
        self.stop_process(task_id)
        with self._guard:
            poller = self._pollers.pop(task_id, None)
        if poller is not None:
            poller.set()

    def dispose_all(self) -> None:
        with self._guard:
            task_ids = set(self._processes) | set(self._pollers)
        for task_id in task_ids:
            self.dispose(task_id)
        with self._guard:
            self._states.clear()
