"""PRD (product requirements document) lookup and status sync."""

import logging
import re
from pathlib import Path
from typing import Optional

from ..models.task import TaskRecord, TaskStatus

logger = logging.getLogger(__name__)

PRD_STATUS_PATTERN = re.compile(r"^\*\*Status:\*\*", re.IGNORECASE)


class PrdService:
    """Resolves the PRD linked from a task and keeps its status line in sync."""

    def __init__(self, workspace: Path, prd_base_path: str = ".agent/PRDS"):
        self.workspace = Path(workspace)
        self.prd_base_path = prd_base_path

    def resolve_path(self, task: TaskRecord) -> Optional[Path]:
        """Resolve a task's PRD link to a filesystem path.

        ``./`` and ``../`` links are relative to the task file, absolute links
        are used as-is, anything else lives under the PRD base directory.
        """
        prd_path = task.prd_path
        if not prd_path:
            return None
        if prd_path.startswith("./") or prd_path.startswith("../"):
            return (Path(task.file_path).parent / prd_path).resolve()
        if Path(prd_path).is_absolute():
            return Path(prd_path)
        return (self.workspace / self.prd_base_path / prd_path).resolve()

    def load_content(self, task: TaskRecord) -> Optional[str]:
        """Return the PRD text, or None if the task has no readable PRD."""
        path = self.resolve_path(task)
        if path is None or not path.is_file():
            return None
        try:
            return path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            logger.warning(f"Could not read PRD {path}: {e}")
            return None

    def sync_status(self, task: TaskRecord, status: TaskStatus) -> bool:
        """Write the task status into its PRD.

        Replaces every ``**Status:**`` line, or inserts one below the first
        heading when the PRD has none.

        Returns:
            True if the PRD was written, False if there was nothing to update
        """
        path = self.resolve_path(task)
        if path is None or not path.is_file():
            return False

        try:
            lines = path.read_text(encoding="utf-8").split("\n")
            status_line = f"**Status:** {status.value}"
            if any(PRD_STATUS_PATTERN.match(line) for line in lines):
                lines = [status_line if PRD_STATUS_PATTERN.match(line) else line for line in lines]
            else:
                insert_at = 1
                for index, line in enumerate(lines):
                    if line.startswith("#"):
                        insert_at = index + 1
                        break
                lines[insert_at:insert_at] = ["", status_line]
            path.write_text("\n".join(lines), encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            logger.warning(f"Failed to update PRD status for {task.id}: {e}")
            return False

        logger.debug(f"Synced PRD {path} to status {status.value}")
        return True
