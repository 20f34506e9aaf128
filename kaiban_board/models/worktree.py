"""Worktree operation results."""
from dataclasses import dataclass, field
from typing import List, Optional


@dataclass
class WorktreeCreateResult:
    success: bool
    path: str
    branch: str
    error: Optional[str] = None


@dataclass
class WorktreeRemoveResult:
    success: bool
    branch_deleted: bool = False
    error: Optional[str] = None


@dataclass
class WorktreeListItem:
    """One entry of `git worktree list --porcelain`."""
    path: str
    head: str = ""
    branch: str = ""
    is_bare: bool = False
    is_prunable: bool = False


@dataclass
class MergeOptions:
    """How a task branch is merged back into its base."""
    target_branch: Optional[str] = None
    delete_branch_after_merge: bool = True
    remove_worktree_after_merge: bool = True
    commit_message: Optional[str] = None


@dataclass
class MergeResult:
    success: bool
    has_conflicts: bool = False
    conflict_files: List[str] = field(default_factory=list)
    error: Optional[str] = None
