"""Service layer for git, GitHub and AI CLI operations."""

from .exceptions import (
    ServiceError,
    TaskNotFoundError,
    ResolutionCountMismatchError,
    CommandTimeoutError,
    GitServiceError,
    BranchNotFoundError,
    WorktreeNotFoundError,
    ConflictFileNotFoundError,
    GitHubServiceError,
    GitHubUnavailableError,
    CLIUnavailableError,
    AIResponseError,
    TaskAlreadyRunningError,
    BatchAlreadyRunningError,
)
from .git_service import GitService
from .worktree_service import WorktreeManager
from .github_service import GitHubService
from .cli_detection import CLIDetectionService

__all__ = [
    "GitService",
    "WorktreeManager",
    "GitHubService",
    "CLIDetectionService",
    "ServiceError",
    "TaskNotFoundError",
    "ResolutionCountMismatchError",
    "CommandTimeoutError",
    "GitServiceError",
    "BranchNotFoundError",
    "WorktreeNotFoundError",
    "ConflictFileNotFoundError",
    "GitHubServiceError",
    "GitHubUnavailableError",
    "CLIUnavailableError",
    "AIResponseError",
    "TaskAlreadyRunningError",
    "BatchAlreadyRunningError",
]
