"""Git worktree isolation for tasks."""

import logging
import re
from pathlib import Path
from typing import Optional

from ..models.config import WorktreeConfig
from ..models.task import WorktreeMetadata, WorktreeStatus
from ..models.worktree import (
    MergeOptions,
    MergeResult,
    WorktreeCreateResult,
    WorktreeListItem,
    WorktreeRemoveResult,
)
from ..utils.timestamps import utc_now_iso
from .exceptions import BranchNotFoundError, GitServiceError
from .git_service import GitService

logger = logging.getLogger(__name__)

UNSAFE_CHARS = re.compile(r"[^a-z0-9\-_]")

# Allowed forward moves; REMOVED is reachable from any non-terminal state
WORKTREE_TRANSITIONS = {
    WorktreeStatus.PENDING: {WorktreeStatus.ACTIVE},
    WorktreeStatus.ACTIVE: {WorktreeStatus.COMPLETED, WorktreeStatus.MERGED},
    WorktreeStatus.COMPLETED: {WorktreeStatus.MERGED},
    WorktreeStatus.MERGED: set(),
    WorktreeStatus.REMOVED: set(),
}


def sanitize_task_id(task_id: str) -> str:
    """Lowercase a task ID and replace everything outside [a-z0-9-_] with '-'."""
    return UNSAFE_CHARS.sub("-", task_id.lower())


def transition_status(current: WorktreeStatus, target: WorktreeStatus) -> WorktreeStatus:
    """Validate a worktree lifecycle move.

    Raises:
        ValueError: If the move is not allowed
    """
    if target == current:
        return target
    if target == WorktreeStatus.REMOVED and current != WorktreeStatus.REMOVED:
        return target
    if target not in WORKTREE_TRANSITIONS[current]:
        raise ValueError(f"Invalid worktree transition: {current.value} -> {target.value}")
    return target


def parse_worktree_list(output: str) -> list[WorktreeListItem]:
    """Parse `git worktree list --porcelain` output."""
    worktrees = []
    current: Optional[WorktreeListItem] = None
    for line in output.split("\n"):
        if line.startswith("worktree "):
            if current:
                worktrees.append(current)
            current = WorktreeListItem(path=line[len("worktree "):])
        elif current is None:
            continue
        elif line.startswith("HEAD "):
            current.head = line[len("HEAD "):]
        elif line.startswith("branch "):
            current.branch = line[len("branch "):].replace("refs/heads/", "")
        elif line == "bare":
            current.is_bare = True
        elif line.startswith("prunable"):
            current.is_prunable = True
        elif line == "":
            worktrees.append(current)
            current = None
    if current:
        worktrees.append(current)
    return worktrees


class WorktreeManager:
    """Maps tasks to dedicated branches and worktrees and merges them back."""

    def __init__(self, repo_path: Path, config: Optional[WorktreeConfig] = None,
                 git_service: Optional[GitService] = None):
        """Initialize worktree manager.

        Args:
            repo_path: Root of the main repository checkout
            config: Worktree settings (defaults apply when omitted)
            git_service: Git service bound to repo_path

        Raises:
            GitServiceError: If repo_path is not a git repository
        """
        self.repo_path = Path(repo_path)
        self.config = config or WorktreeConfig()
        self.git = git_service or GitService(self.repo_path)

    def branch_name_for(self, task_id: str) -> str:
        return f"{self.config.branch_prefix}{sanitize_task_id(task_id)}"

    def worktree_path_for(self, task_id: str) -> Path:
        return self.repo_path / self.config.base_path / sanitize_task_id(task_id)

    def get_default_base_branch(self) -> str:
        return self.git.get_default_base_branch(self.config.default_base_branch)

    def worktree_exists(self, task_id: str) -> bool:
        return self.worktree_path_for(task_id).exists()

    def create_worktree(self, task_id: str, base_branch: Optional[str] = None) -> WorktreeCreateResult:
        """Create the worktree for a task.

        Calling this again for the same task is a no-op. If the task branch
        survived an earlier removal, the new worktree is attached to it.
        """
        path = self.worktree_path_for(task_id)
        branch = self.branch_name_for(task_id)

        if path.exists():
            logger.info(f"Worktree for {task_id} already exists at {path}")
            return WorktreeCreateResult(success=True, path=str(path), branch=branch)

        path.parent.mkdir(parents=True, exist_ok=True)
        try:
            if self.git.branch_exists_local(branch):
                self.git.add_worktree(path, branch)
            else:
                self.git.add_worktree(path, branch, base_branch or self.get_default_base_branch())
        except GitServiceError as e:
            logger.error(f"Failed to create worktree for {task_id}: {e}")
            return WorktreeCreateResult(success=False, path=str(path), branch=branch, error=str(e))

        return WorktreeCreateResult(success=True, path=str(path), branch=branch)

    def remove_worktree(self, task_id: str, force: bool = False,
                        delete_branch: bool = False) -> WorktreeRemoveResult:
        """Remove a task's worktree. Succeeds without doing anything if it is already gone."""
        path = self.worktree_path_for(task_id)
        if not path.exists():
            return WorktreeRemoveResult(success=True)

        try:
            self.git.remove_worktree(path, force=force)
        except GitServiceError as e:
            logger.error(f"Failed to remove worktree for {task_id}: {e}")
            return WorktreeRemoveResult(success=False, error=str(e))

        branch_deleted = False
        if delete_branch:
            branch_deleted = self.delete_branch(self.branch_name_for(task_id), force=force)
        return WorktreeRemoveResult(success=True, branch_deleted=branch_deleted)

    def delete_branch(self, branch_name: str, force: bool = False) -> bool:
        try:
            self.git.delete_branch(branch_name, force=force)
            return True
        except GitServiceError as e:
            logger.warning(f"Could not delete branch {branch_name}: {e}")
            return False

    def list_worktrees(self) -> list[WorktreeListItem]:
        return parse_worktree_list(self.git.list_worktrees_porcelain())

    def get_worktree_for_task(self, task_id: str) -> Optional[WorktreeListItem]:
        branch = self.branch_name_for(task_id)
        for item in self.list_worktrees():
            if item.branch == branch:
                return item
        return None

    def prune_worktrees(self) -> int:
        """Prune stale worktree entries and return how many were removed."""
        return self.git.prune_worktrees().count("Removing")

    def create_metadata(self, task_id: str, base_branch: Optional[str] = None) -> WorktreeMetadata:
        """Metadata to record on a task right after its worktree was created."""
        return WorktreeMetadata(
            enabled=True,
            path=str(self.worktree_path_for(task_id)),
            branch=self.branch_name_for(task_id),
            base_branch=base_branch or self.get_default_base_branch(),
            created_at=utc_now_iso(),
            status=WorktreeStatus.ACTIVE,
        )

    def merge_options(self, **overrides) -> MergeOptions:
        """Merge options with worktree removal following the auto_cleanup setting."""
        overrides.setdefault("remove_worktree_after_merge", self.config.auto_cleanup)
        return MergeOptions(**overrides)

    def start_merge(self, task_id: str, options: Optional[MergeOptions] = None) -> MergeResult:
        """Merge a task branch into its base branch.

        A clean merge is committed and cleaned up according to the options. If
        the merge stops on conflicts, the conflicting files are reported and
        the merge is left in progress for resolution.

        Raises:
            BranchNotFoundError: If the task branch does not exist
            GitServiceError: If the merge failed for a reason other than conflicts
        """
        options = options or self.merge_options()
        branch = self.branch_name_for(task_id)
        base = options.target_branch or self.get_default_base_branch()

        if not self.git.branch_exists_local(branch):
            raise BranchNotFoundError(f"Branch '{branch}' not found locally")

        self.git.checkout_branch(base)
        try:
            self.git.start_merge(branch)
        except GitServiceError:
            conflict_files = self.git.get_conflicting_files()
            if not conflict_files:
                raise
            logger.info(f"Merge of {branch} into {base} stopped on {len(conflict_files)} conflicting file(s)")
            return MergeResult(success=False, has_conflicts=True, conflict_files=conflict_files)

        self.complete_merge(task_id, options)
        return MergeResult(success=True)

    def complete_merge(self, task_id: str, options: Optional[MergeOptions] = None) -> None:
        """Commit an in-progress merge of a task branch and clean up."""
        options = options or self.merge_options()
        self.git.stage_all()
        self.git.commit_merge(options.commit_message or f"Merge task {task_id}")
        if options.remove_worktree_after_merge:
            self.remove_worktree(task_id, force=True)
        if options.delete_branch_after_merge:
            self.delete_branch(self.branch_name_for(task_id), force=True)

    def abort_merge(self) -> None:
        self.git.abort_merge()

    def get_worktree_diff(self, task_id: str, base_branch: Optional[str] = None) -> str:
        return self.git.get_diff(base_branch or self.get_default_base_branch(), self.branch_name_for(task_id))

    def get_changed_files(self, task_id: str, base_branch: Optional[str] = None) -> list[str]:
        return self.git.get_changed_files(base_branch or self.get_default_base_branch(),
                                          self.branch_name_for(task_id))
