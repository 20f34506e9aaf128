"""Task board data models."""
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional


class TaskStatus(Enum):
    """Task status enumeration, in board column order."""
    BACKLOG = "Backlog"
    PLANNING = "Planning"
    IN_PROGRESS = "In Progress"
    AI_REVIEW = "AI Review"
    HUMAN_REVIEW = "Human Review"
    DONE = "Done"
    ARCHIVED = "Archived"
    BLOCKED = "Blocked"

    @classmethod
    def from_value(cls, value: str) -> "TaskStatus":
        """Map a status string from a task file onto the canonical enum.

        Legacy values from the older six-column board are folded into their
        closest column; anything unrecognized lands in Backlog.
        """
        cleaned = value.strip()
        for status in cls:
            if status.value.lower() == cleaned.lower():
                return status
        return LEGACY_STATUS_ALIASES.get(cleaned.lower(), cls.BACKLOG)


LEGACY_STATUS_ALIASES: Dict[str, TaskStatus] = {
    "to do": TaskStatus.BACKLOG,
    "todo": TaskStatus.BACKLOG,
    "doing": TaskStatus.IN_PROGRESS,
    "testing": TaskStatus.AI_REVIEW,
}


class TaskPriority(Enum):
    """Task priority enumeration."""
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"

    @classmethod
    def from_value(cls, value: str) -> "TaskPriority":
        cleaned = value.strip().lower()
        for priority in cls:
            if priority.value.lower() == cleaned:
                return priority
        return cls.MEDIUM


PRIORITY_RANK = {
    TaskPriority.HIGH: 0,
    TaskPriority.MEDIUM: 1,
    TaskPriority.LOW: 2,
}


class AgentType(Enum):
    """AI agents that can be attached to a board column."""
    CLAUDE = "claude"
    CODEX = "codex"


COLUMN_DEFAULT_AGENTS: Dict[TaskStatus, Optional[AgentType]] = {
    TaskStatus.BACKLOG: None,
    TaskStatus.PLANNING: AgentType.CLAUDE,
    TaskStatus.IN_PROGRESS: AgentType.CLAUDE,
    TaskStatus.AI_REVIEW: AgentType.CODEX,
    TaskStatus.HUMAN_REVIEW: None,
    TaskStatus.DONE: None,
    TaskStatus.ARCHIVED: None,
    TaskStatus.BLOCKED: None,
}


class WorktreeStatus(Enum):
    """Lifecycle of a task worktree."""
    PENDING = "pending"
    ACTIVE = "active"
    COMPLETED = "completed"
    MERGED = "merged"
    REMOVED = "removed"


@dataclass
class WorktreeMetadata:
    """Worktree isolation details stored in a task file."""
    enabled: bool
    path: str = ""
    branch: str = ""
    base_branch: str = ""
    created_at: str = ""
    status: WorktreeStatus = WorktreeStatus.PENDING


@dataclass
class GitHubMetadata:
    """GitHub issue and pull request links stored in a task file."""
    issue_url: str = ""
    issue_number: int = 0
    repository: str = ""
    pr_url: Optional[str] = None
    pr_number: Optional[int] = None
    last_synced: str = ""


@dataclass
class TaskRecord:
    """A development task parsed from a markdown file."""
    id: str  # Stable identifier from the **ID:** line
    file_path: str  # Owning markdown file
    label: str
    description: str = ""
    type: str = "Task"
    status: TaskStatus = TaskStatus.BACKLOG
    priority: TaskPriority = TaskPriority.MEDIUM
    created: str = ""
    updated: str = ""
    prd_path: str = ""
    project: str = ""  # Name of the workspace the file was found in
    order: Optional[int] = None
    claimed_by: str = ""
    claimed_at: str = ""
    completed_at: str = ""
    rejection_count: int = 0
    agent_notes: str = ""
    assigned_agent: str = ""
    worktree: Optional[WorktreeMetadata] = None
    github: Optional[GitHubMetadata] = None

    @property
    def completed(self) -> bool:
        """Whether the task sits in the Done column."""
        return self.status == TaskStatus.DONE
