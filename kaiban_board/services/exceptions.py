"""Custom exceptions for service layer."""


class ServiceError(Exception):
    """Base exception for all service-related errors."""

    pass


class TaskNotFoundError(ServiceError):
    """Exception raised when no task file carries the requested ID."""

    pass


class ResolutionCountMismatchError(ServiceError, ValueError):
    """Exception raised when resolutions do not line up one-to-one with conflicts."""

    pass


class CommandTimeoutError(ServiceError):
    """Exception raised when an external command exceeds its timeout."""

    pass


class GitServiceError(ServiceError):
    """Exception raised for Git service operations."""

    pass


class BranchNotFoundError(GitServiceError):
    """Exception raised when a Git branch is not found."""

    pass


class WorktreeNotFoundError(GitServiceError):
    """Exception raised when a task has no worktree."""

    pass


class ConflictFileNotFoundError(GitServiceError):
    """Exception raised when a file reported as conflicting cannot be read."""

    pass


class GitHubServiceError(ServiceError):
    """Exception raised for GitHub CLI operations."""

    pass


class GitHubUnavailableError(GitHubServiceError):
    """Exception raised when gh is missing or not authenticated."""

    pass


class CLIUnavailableError(ServiceError):
    """Exception raised when no usable AI CLI is installed."""

    pass


class AIResponseError(ServiceError):
    """Exception raised when an AI CLI invocation fails."""

    pass


class TaskAlreadyRunningError(ServiceError):
    """Exception raised when a task already has a live AI session."""

    pass


class BatchAlreadyRunningError(ServiceError):
    """Exception raised when a batch is started while another is in flight."""

    pass
