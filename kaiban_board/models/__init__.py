"""Models for Kaiban Board."""

from .changelog import ChangelogEntry, ChangelogFormat, ChangelogOptions, ChangelogResult
from .config import BatchConfig, BoardConfig, PipelineConfig, RalphConfig, WorktreeConfig
from .github import GitHubIssue, GitHubPR, GitHubStatus
from .merge import (
    AIMergeResult,
    ConflictResolution,
    MergeConflict,
    ParsedConflictFile,
    PipelineState,
    PipelineStatus,
)
from .review import ReviewContext, ReviewFinding, ReviewRating, ReviewResult, ReviewSeverity
from .task import (
    COLUMN_DEFAULT_AGENTS,
    AgentType,
    GitHubMetadata,
    TaskPriority,
    TaskRecord,
    TaskStatus,
    WorktreeMetadata,
    WorktreeStatus,
)

__all__ = [
    'AIMergeResult',
    'AgentType',
    'BatchConfig',
    'BoardConfig',
    'COLUMN_DEFAULT_AGENTS',
    'ChangelogEntry',
    'ChangelogFormat',
    'ChangelogOptions',
    'ChangelogResult',
    'ConflictResolution',
    'GitHubIssue',
    'GitHubMetadata',
    'GitHubPR',
    'GitHubStatus',
    'MergeConflict',
    'ParsedConflictFile',
    'PipelineConfig',
    'PipelineState',
    'PipelineStatus',
    'RalphConfig',
    'ReviewContext',
    'ReviewFinding',
    'ReviewRating',
    'ReviewResult',
    'ReviewSeverity',
    'TaskPriority',
    'TaskRecord',
    'TaskStatus',
    'WorktreeConfig',
    'WorktreeMetadata',
    'WorktreeStatus',
]
