"""Markdown task file parsing and in-place field updates.

A task file starts with a ``## Task: <title>`` line followed by bolded
``**Field:** value`` lines and an optional ``---`` separator. Everything after
the separator is free text and is never touched. Updates patch individual
field lines instead of re-rendering the file, so content the parser does not
understand survives every write.
"""

import logging
import re
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional

from ..models.task import (
    PRIORITY_RANK,
    GitHubMetadata,
    TaskPriority,
    TaskRecord,
    TaskStatus,
    WorktreeMetadata,
    WorktreeStatus,
)
from ..services.exceptions import TaskNotFoundError
from ..utils.timestamps import utc_now_iso
from .constants import EXCLUDED_TASK_FILES, TASK_FILE_EXTENSION

logger = logging.getLogger(__name__)

TITLE_PATTERN = re.compile(r"^## Task:\s*(.+)$")
FIELD_PATTERN = re.compile(r"^\*\*([A-Za-z][A-Za-z-]*):\*\*\s*(.*)$")
LINK_PATTERN = re.compile(r"^\[([^\]]*)\]\((.+)\)$")
DIGITS_PATTERN = re.compile(r"^\d+$")
ISSUE_NUMBER_PATTERN = re.compile(r"/issues/(\d+)")
PR_NUMBER_PATTERN = re.compile(r"/pull/(\d+)")
REPOSITORY_PATTERN = re.compile(r"github\.com/([^/]+/[^/]+)/")

NOTES_LABEL = "Agent-Notes"

# TaskRecord attribute -> label used in the file
FIELD_LABELS = {
    "label": "Label",
    "description": "Description",
    "type": "Type",
    "status": "Status",
    "priority": "Priority",
    "order": "Order",
    "created": "Created",
    "updated": "Updated",
    "prd_path": "PRD",
    "claimed_by": "Claimed-By",
    "claimed_at": "Claimed-At",
    "completed_at": "Completed-At",
    "rejection_count": "Rejection-Count",
    "agent_notes": NOTES_LABEL,
    "assigned_agent": "Assigned-Agent",
}

WORKTREE_LABELS = [
    "Worktree-Enabled",
    "Worktree-Path",
    "Worktree-Branch",
    "Worktree-Base-Branch",
    "Worktree-Created-At",
    "Worktree-Status",
]

# Where a missing field line is inserted. Labels not listed here go to the
# end of the metadata block, just above the separator.
INSERT_AFTER = {
    "Label": ["Priority"],
    "Description": ["Priority"],
    "Type": ["Priority"],
    "Status": ["Priority"],
    "Order": ["Priority"],
    "Created": ["Priority"],
    "Updated": ["Created", "Priority"],
    "PRD": ["Updated", "Created", "Priority"],
}


def _field_label(line: str) -> Optional[str]:
    match = FIELD_PATTERN.match(line.strip())
    return match.group(1) if match else None


def _is_block_end(line: str) -> bool:
    stripped = line.strip()
    return stripped.startswith("**") or stripped.startswith("---")


def _escape_note_line(line: str) -> str:
    # A leading backslash keeps note text from reading as a field or separator
    return f"\\{line.strip()}" if _is_block_end(line) else line


def _unescape_note_line(line: str) -> str:
    if line.startswith("\\") and _is_block_end(line[1:]):
        return line[1:]
    return line


def _link_target(value: str) -> str:
    match = LINK_PATTERN.match(value)
    return match.group(2).strip() if match else value


def parse_task_content(content: str, file_path: str, project: str = "") -> Optional[TaskRecord]:
    """Parse the text of one task file.

    Args:
        content: Full file text
        file_path: Path recorded on the resulting task
        project: Workspace name recorded on the resulting task

    Returns:
        The parsed task, or None if the first line is not a ``## Task:`` title
    """
    lines = content.split("\n")
    title_match = TITLE_PATTERN.match(lines[0].strip()) if lines else None
    if not title_match:
        return None

    fields: Dict[str, str] = {}
    notes: List[str] = []
    in_metadata = False
    in_notes = False

    for line in lines[1:]:
        stripped = line.strip()
        if in_notes:
            if not _is_block_end(line):
                if stripped:
                    notes.append(_unescape_note_line(stripped))
                continue
            in_notes = False

        if stripped.startswith("---") and in_metadata:
            break

        match = FIELD_PATTERN.match(stripped)
        if not match:
            continue
        label, value = match.group(1), match.group(2).strip()
        if label == "ID":
            in_metadata = True
        if label == NOTES_LABEL:
            notes = [value] if value else []
            in_notes = True
            continue
        if value:
            fields[label] = value

    record = TaskRecord(
        id=fields.get("ID", ""),
        file_path=file_path,
        label=fields.get("Label", title_match.group(1).strip()),
        description=fields.get("Description", ""),
        type=fields.get("Type", "Task"),
        status=TaskStatus.from_value(fields["Status"]) if "Status" in fields else TaskStatus.BACKLOG,
        priority=TaskPriority.from_value(fields.get("Priority", "Medium")),
        created=fields.get("Created", ""),
        updated=fields.get("Updated", ""),
        prd_path=_link_target(fields["PRD"]) if "PRD" in fields else "",
        project=project,
        claimed_by=fields.get("Claimed-By", ""),
        claimed_at=fields.get("Claimed-At", ""),
        completed_at=fields.get("Completed-At", ""),
        agent_notes="\n".join(notes),
        assigned_agent=fields.get("Assigned-Agent", ""),
    )

    order = fields.get("Order", "")
    if DIGITS_PATTERN.match(order):
        record.order = int(order)
    rejections = fields.get("Rejection-Count", "")
    if DIGITS_PATTERN.match(rejections):
        record.rejection_count = int(rejections)

    if "Worktree-Enabled" in fields:
        status_value = fields.get("Worktree-Status", "").lower()
        record.worktree = WorktreeMetadata(
            enabled=fields["Worktree-Enabled"].lower() == "true",
            path=fields.get("Worktree-Path", ""),
            branch=fields.get("Worktree-Branch", ""),
            base_branch=fields.get("Worktree-Base-Branch", ""),
            created_at=fields.get("Worktree-Created-At", ""),
            status=WorktreeStatus(status_value)
            if status_value in {s.value for s in WorktreeStatus}
            else WorktreeStatus.PENDING,
        )

    issue_url = _link_target(fields["GitHub"]) if "GitHub" in fields else ""
    pr_url = _link_target(fields["GitHub-PR"]) if "GitHub-PR" in fields else ""
    if issue_url or pr_url:
        github = GitHubMetadata(issue_url=issue_url, last_synced=fields.get("GitHub-Synced", ""))
        issue_match = ISSUE_NUMBER_PATTERN.search(issue_url)
        if issue_match:
            github.issue_number = int(issue_match.group(1))
        repo_match = REPOSITORY_PATTERN.search(issue_url or pr_url)
        if repo_match:
            github.repository = repo_match.group(1)
        if pr_url:
            github.pr_url = pr_url
            pr_match = PR_NUMBER_PATTERN.search(pr_url)
            if pr_match:
                github.pr_number = int(pr_match.group(1))
        record.github = github

    return record


def render_field(label: str, value: str) -> List[str]:
    """Render a field as one or more file lines."""
    if label == NOTES_LABEL and "\n" in value:
        return [f"**{label}:**"] + [_escape_note_line(line) for line in value.split("\n")]
    return [f"**{label}:** {value}" if value else f"**{label}:**"]


def _metadata_end(lines: List[str]) -> int:
    """Index of the separator that closes the metadata block, or len(lines)."""
    seen_id = False
    for index, line in enumerate(lines):
        if _field_label(line) == "ID":
            seen_id = True
        elif seen_id and line.strip().startswith("---"):
            return index
    return len(lines)


def _find_field(lines: List[str], label: str, stop: int) -> Optional[int]:
    for index in range(1, stop):
        if _field_label(lines[index]) == label:
            return index
    return None


def _notes_end(lines: List[str], start: int, stop: int) -> int:
    """Index just past the last non-blank continuation line of a notes field."""
    end = start + 1
    index = start + 1
    while index < stop and not _is_block_end(lines[index]):
        if lines[index].strip():
            end = index + 1
        index += 1
    return end


def _field_end(lines: List[str], index: int, stop: int) -> int:
    if _field_label(lines[index]) == NOTES_LABEL:
        return _notes_end(lines, index, stop)
    return index + 1


def _insert_position(lines: List[str], label: str, stop: int) -> int:
    for anchor in INSERT_AFTER.get(label, []):
        found = _find_field(lines, anchor, stop)
        if found is not None:
            return _field_end(lines, found, stop)

    last_field = None
    for index in range(1, stop):
        if _field_label(lines[index]) is not None:
            last_field = index
    if last_field is None:
        return min(1, len(lines))
    return _field_end(lines, last_field, stop)


def apply_field_updates(
    content: str, updates: Mapping[str, Optional[str]], title: Optional[str] = None
) -> str:
    """Patch field lines of a task file.

    Args:
        content: Current file text
        updates: Field label -> rendered value. None removes the line; an empty
            string clears an existing line and is not inserted when missing.
        title: New text for the ``## Task:`` line

    Returns:
        The updated file text. Lines that are not updated are kept verbatim.
    """
    lines = content.split("\n")
    if title is not None and lines and TITLE_PATTERN.match(lines[0].strip()):
        lines[0] = f"## Task: {title}"

    for label, value in updates.items():
        stop = _metadata_end(lines)
        index = _find_field(lines, label, stop)
        if index is not None:
            end = _field_end(lines, index, stop)
            lines[index:end] = [] if value is None else render_field(label, value)
        elif value:
            position = _insert_position(lines, label, stop)
            lines[position:position] = render_field(label, value)

    return "\n".join(lines)


def _render_value(attribute: str, value: Any) -> str:
    if value is None:
        return ""
    if attribute == "status":
        status = value if isinstance(value, TaskStatus) else TaskStatus(value)
        return status.value
    if attribute == "priority":
        priority = value if isinstance(value, TaskPriority) else TaskPriority(value)
        return priority.value
    if attribute == "prd_path":
        return f"[PRD]({value})" if value else ""
    if attribute in ("order", "rejection_count"):
        return str(int(value))
    return str(value)


def sort_tasks(tasks: Iterable[TaskRecord]) -> List[TaskRecord]:
    """Sort tasks with an explicit order first (ascending), then by priority."""
    return sorted(
        tasks,
        key=lambda t: (
            0 if t.order is not None else 1,
            t.order if t.order is not None else 0,
            PRIORITY_RANK[t.priority],
        ),
    )


def group_by_status(tasks: Iterable[TaskRecord]) -> Dict[TaskStatus, List[TaskRecord]]:
    """Group tasks into board columns. Every status gets a (possibly empty) list."""
    groups: Dict[TaskStatus, List[TaskRecord]] = {status: [] for status in TaskStatus}
    for task in tasks:
        groups[task.status].append(task)
    return {status: sort_tasks(items) for status, items in groups.items()}


class TaskParser:
    """Reads task files from disk and writes field updates back."""

    def __init__(self, task_dirs: Iterable[Path], project_name: Optional[str] = None):
        """Initialize task parser.

        Args:
            task_dirs: Directories scanned recursively for task files
            project_name: Name recorded on parsed tasks (defaults to the directory name)
        """
        self.task_dirs = [Path(d) for d in task_dirs]
        self.project_name = project_name

    @classmethod
    def for_workspace(cls, workspace: Path, tasks_dir: str = ".agent/TASKS") -> "TaskParser":
        """Create a parser for the task directory of a workspace."""
        workspace = Path(workspace)
        return cls([workspace / tasks_dir], project_name=workspace.name)

    def _task_files(self, directory: Path) -> List[Path]:
        if not directory.is_dir():
            logger.debug(f"Task directory does not exist: {directory}")
            return []
        return sorted(
            path for path in directory.rglob(f"*{TASK_FILE_EXTENSION}")
            if path.is_file() and path.name not in EXCLUDED_TASK_FILES
        )

    def parse_all(self, directories: Optional[Iterable[Path]] = None) -> List[TaskRecord]:
        """Parse every task file below the given directories.

        Files that cannot be read are logged and skipped; files without a
        ``## Task:`` title are skipped silently.
        """
        tasks = []
        for directory in (directories if directories is not None else self.task_dirs):
            directory = Path(directory)
            project = self.project_name or directory.name
            for path in self._task_files(directory):
                try:
                    content = path.read_text(encoding="utf-8")
                except (OSError, UnicodeDecodeError) as e:
                    logger.warning(f"Skipping unreadable task file {path}: {e}")
                    continue
                task = parse_task_content(content, str(path), project)
                if task is not None:
                    tasks.append(task)
        return tasks

    def get_task(self, task_id: str) -> Optional[TaskRecord]:
        """Find a task by ID, reading from disk."""
        for task in self.parse_all():
            if task.id == task_id:
                return task
        return None

    def _require_task(self, task_id: str) -> TaskRecord:
        task = self.get_task(task_id)
        if task is None:
            raise TaskNotFoundError(f"Task not found: {task_id}")
        return task

    def _write_updates(
        self, task: TaskRecord, updates: Dict[str, Optional[str]], title: Optional[str] = None
    ) -> None:
        path = Path(task.file_path)
        content = path.read_text(encoding="utf-8")
        updates["Updated"] = utc_now_iso()
        path.write_text(apply_field_updates(content, updates, title=title), encoding="utf-8")
        logger.debug(f"Updated task {task.id}: {', '.join(updates)}")

    def update_field(self, task_id: str, field_updates: Mapping[str, Any]) -> None:
        """Update one or more fields of a task file in place.

        Args:
            task_id: ID of the task to update
            field_updates: TaskRecord attribute name -> new value

        Raises:
            TaskNotFoundError: If no task file carries the ID
            ValueError: If a field name or status/priority value is unknown
        """
        unknown = [name for name in field_updates if name not in FIELD_LABELS]
        if unknown:
            raise ValueError(f"Unknown task field(s): {', '.join(unknown)}")

        task = self._require_task(task_id)
        updates = {
            FIELD_LABELS[name]: _render_value(name, value)
            for name, value in field_updates.items()
            if name != "updated"
        }
        title = field_updates["label"] if field_updates.get("label") else None
        self._write_updates(task, updates, title=title)

    def update_status(self, task_id: str, status: TaskStatus, order: Optional[int] = None) -> None:
        """Move a task to another column, optionally setting its order."""
        updates: Dict[str, Any] = {"status": status}
        if order is not None:
            updates["order"] = order
        if status == TaskStatus.DONE:
            updates["completed_at"] = utc_now_iso()
        self.update_field(task_id, updates)

    def reject_task(self, task_id: str, note: Optional[str] = None) -> None:
        """Send a task back to the backlog after a rejected attempt."""
        task = self._require_task(task_id)
        updates: Dict[str, Any] = {
            "status": TaskStatus.BACKLOG,
            "rejection_count": task.rejection_count + 1,
            "claimed_by": "",
            "claimed_at": "",
            "completed_at": "",
        }
        if note:
            updates["agent_notes"] = f"{task.agent_notes}\n{note}" if task.agent_notes else note
        self.update_field(task_id, updates)

    def update_worktree(self, task_id: str, worktree: WorktreeMetadata) -> None:
        """Write worktree metadata lines for a task."""
        task = self._require_task(task_id)
        updates: Dict[str, Optional[str]] = {
            "Worktree-Enabled": "true" if worktree.enabled else "false",
            "Worktree-Path": worktree.path,
            "Worktree-Branch": worktree.branch,
            "Worktree-Base-Branch": worktree.base_branch,
            "Worktree-Created-At": worktree.created_at,
            "Worktree-Status": worktree.status.value,
        }
        self._write_updates(task, updates)

    def clear_worktree(self, task_id: str) -> None:
        """Remove all worktree metadata lines from a task."""
        task = self._require_task(task_id)
        self._write_updates(task, {label: None for label in WORKTREE_LABELS})

    def update_github(self, task_id: str, github: GitHubMetadata) -> None:
        """Write GitHub issue/PR link lines for a task."""
        task = self._require_task(task_id)
        updates: Dict[str, Optional[str]] = {}
        if github.issue_url:
            updates["GitHub"] = f"[Issue #{github.issue_number}]({github.issue_url})"
        if github.pr_url:
            updates["GitHub-PR"] = f"[PR #{github.pr_number}]({github.pr_url})"
        updates["GitHub-Synced"] = github.last_synced or utc_now_iso()
        self._write_updates(task, updates)

    def create_task(
        self,
        task_id: str,
        label: str,
        description: str = "",
        task_type: str = "Task",
        priority: TaskPriority = TaskPriority.MEDIUM,
        status: TaskStatus = TaskStatus.BACKLOG,
        prd_path: str = "",
        github: Optional[GitHubMetadata] = None,
        body: str = "",
        directory: Optional[Path] = None,
    ) -> Path:
        """Write a new task file and return its path.

        Raises:
            FileExistsError: If a file for the ID already exists
        """
        target_dir = Path(directory) if directory else self.task_dirs[0]
        target_dir.mkdir(parents=True, exist_ok=True)
        path = target_dir / f"{task_id}{TASK_FILE_EXTENSION}"
        if path.exists():
            raise FileExistsError(f"Task file already exists: {path}")

        now = utc_now_iso()
        lines = [
            f"## Task: {label}",
            "",
            f"**ID:** {task_id}",
            f"**Label:** {label}",
            f"**Description:** {description}",
            f"**Type:** {task_type}",
            f"**Status:** {status.value}",
            f"**Priority:** {priority.value}",
            f"**Created:** {now}",
            f"**Updated:** {now}",
        ]
        if prd_path:
            lines.append(f"**PRD:** [PRD]({prd_path})")
        if github and github.issue_url:
            lines.append(f"**GitHub:** [Issue #{github.issue_number}]({github.issue_url})")
            lines.append(f"**GitHub-Synced:** {github.last_synced or now}")
        lines += ["", "---", "", "## Additional Notes", ""]
        if body:
            lines += [body.rstrip("\n"), ""]

        path.write_text("\n".join(lines), encoding="utf-8")
        logger.info(f"Created task file {path}")
        return path
