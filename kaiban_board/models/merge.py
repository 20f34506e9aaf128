"""Merge conflict and pipeline state models."""
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from .review import ReviewResult


@dataclass
class MergeConflict:
    """A single conflict region inside a file.

    Line numbers are 1-based and cover the marker lines themselves.
    """
    file_path: str
    ours: str
    theirs: str
    start_line: int
    end_line: int


@dataclass
class ParsedConflictFile:
    """All conflict regions of one file plus the text needed to rebuild it."""
    file_path: str
    conflicts: List[MergeConflict]
    raw_content: str


class ResolutionConfidence(Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


@dataclass
class ConflictResolution:
    """AI-proposed replacement text for every conflict in one file."""
    file_path: str
    resolved_blocks: List[str]  # One entry per conflict, in document order
    confidence: ResolutionConfidence = ResolutionConfidence.MEDIUM
    explanation: str = ""
    needs_review: bool = True


@dataclass
class AIMergeResult:
    """Outcome of asking an AI CLI to resolve merge conflicts."""
    success: bool
    resolutions: List[ConflictResolution] = field(default_factory=list)
    summary: str = ""
    total_conflicts: int = 0
    high_confidence_count: int = 0
    provider: Optional[str] = None
    error: Optional[str] = None
    raw_output: str = ""


class PipelineStatus(Enum):
    """In-memory status of a task moving through review and merge."""
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    CONFLICTS = "conflicts"
    AI_RESOLVING = "ai_resolving"
    REVIEW = "review"
    COMPLETED = "completed"
    ABORTED = "aborted"


@dataclass
class PipelineState:
    """Per-task orchestration state. Never persisted."""
    task_id: str
    status: PipelineStatus = PipelineStatus.PENDING
    retry_count: int = 0
    review_result: Optional[ReviewResult] = None
    source_branch: str = ""
    target_branch: str = ""
    conflict_files: List[ParsedConflictFile] = field(default_factory=list)
    ai_result: Optional[AIMergeResult] = None
    last_error: Optional[str] = None
    started_at: str = ""
    completed_at: str = ""
