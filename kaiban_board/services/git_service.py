"""Git command wrapper used by worktrees, merges, reviews and the changelog."""

import logging
import subprocess
from pathlib import Path
from typing import Optional

from ..core.conflicts import parse_conflicts
from ..core.constants import GIT_TIMEOUT, PROBE_TIMEOUT, WORKTREE_TIMEOUT
from ..models.merge import ParsedConflictFile
from .exceptions import (
    BranchNotFoundError,
    CommandTimeoutError,
    ConflictFileNotFoundError,
    GitServiceError,
)

logger = logging.getLogger(__name__)


class GitService:
    """Runs git in one repository and maps failures onto service exceptions."""

    def __init__(self, repo_path: Optional[Path] = None):
        """Bind to a repository.

        Args:
            repo_path: Repository root or any directory inside it (defaults to cwd)

        Raises:
            GitServiceError: If the path is not inside a git work tree
        """
        self.repo_path = repo_path or Path.cwd()
        if not self._is_git_repo():
            raise GitServiceError(f"{self.repo_path} is not a git repository")

    def _is_git_repo(self) -> bool:
        """Whether repo_path lies inside a git work tree."""
        try:
            self._run_git_command(["rev-parse", "--git-dir"], timeout=PROBE_TIMEOUT)
            return True
        except (GitServiceError, CommandTimeoutError):
            return False

    def _run_git_command(
        self, args: list[str], check: bool = True, timeout: float = GIT_TIMEOUT
    ) -> subprocess.CompletedProcess:
        """Run a git command with proper error handling.

        Args:
            args: Git command arguments
            check: Check return code
            timeout: Seconds before the command is abandoned

        Returns:
            Completed process result

        Raises:
            CommandTimeoutError: If the command exceeds the timeout
            GitServiceError: If command fails
        """
        cmd = ["git"] + args
        try:
            result = subprocess.run(
                cmd,
                cwd=self.repo_path,
                check=check,
                capture_output=True,
                text=True,
                timeout=timeout,
            )
            return result
        except subprocess.TimeoutExpired as e:
            raise CommandTimeoutError(f"Git command timed out after {timeout}s: {' '.join(cmd)}") from e
        except subprocess.CalledProcessError as e:
            error_msg = e.stderr if e.stderr else str(e)
            raise GitServiceError(f"Git command failed: {error_msg}") from e
        except OSError as e:
            raise GitServiceError(f"Unexpected error running git command: {e}") from e

    def checkout_branch(self, branch_name: str) -> None:
        """Checkout an existing git branch.

        Raises:
            BranchNotFoundError: If branch doesn't exist
            GitServiceError: If checkout fails
        """
        if not self.branch_exists_local(branch_name):
            raise BranchNotFoundError(f"Branch '{branch_name}' not found locally")
        self._run_git_command(["checkout", branch_name])
        logger.info(f"Checked out branch: {branch_name}")

    def branch_exists_local(self, branch_name: str) -> bool:
        """Check if a branch exists locally.

        Args:
            branch_name: Name of the branch

        Returns:
            True if branch exists locally
        """
        try:
            result = self._run_git_command(
                ["show-ref", "--verify", "--quiet", f"refs/heads/{branch_name}"], check=False
            )
            return result.returncode == 0
        except GitServiceError:
            return False

    def get_default_base_branch(self, fallback: str = "main") -> str:
        """Branch that origin/HEAD points to, or the fallback."""
        try:
            result = self._run_git_command(
                ["symbolic-ref", "refs/remotes/origin/HEAD"], timeout=PROBE_TIMEOUT
            )
        except (GitServiceError, CommandTimeoutError):
            return fallback
        ref = result.stdout.strip()
        return ref.replace("refs/remotes/origin/", "") if ref else fallback

    def delete_branch(self, branch_name: str, force: bool = False) -> None:
        """Delete a local branch.

        Raises:
            BranchNotFoundError: If branch doesn't exist
            GitServiceError: If deletion fails
        """
        if not self.branch_exists_local(branch_name):
            raise BranchNotFoundError(f"Branch '{branch_name}' not found locally")

        args = ["branch", "-d" if not force else "-D", branch_name]
        self._run_git_command(args)
        logger.info(f"Deleted branch: {branch_name}")

    def get_uncommitted_changes(self) -> list[str]:
        """Get list of files with uncommitted changes."""
        result = self._run_git_command(["status", "--porcelain"])
        if not result.stdout.strip():
            return []

        files = []
        for line in result.stdout.rstrip().split('\n'):
            if line:
                # "XY filename": two status characters, a space, then the path
                files.append(line[3:])
        return files

    def has_uncommitted_changes(self) -> bool:
        return bool(self.get_uncommitted_changes())

    def start_merge(self, branch_name: str) -> None:
        """Merge a branch into the current one without committing.

        Raises:
            GitServiceError: If the merge stops, including on conflicts
        """
        self._run_git_command(["merge", "--no-commit", "--no-ff", branch_name], timeout=WORKTREE_TIMEOUT)
        logger.info(f"Started merge of {branch_name}")

    def commit_merge(self, message: str) -> None:
        self._run_git_command(["commit", "-m", message])
        logger.info(f"Committed merge: {message}")

    def abort_merge(self) -> None:
        self._run_git_command(["merge", "--abort"])
        logger.info("Aborted merge")

    def stage_all(self) -> None:
        self._run_git_command(["add", "-A"])

    def is_merge_in_progress(self) -> bool:
        """Check for a MERGE_HEAD left behind by an unfinished merge."""
        result = self._run_git_command(["rev-parse", "-q", "--verify", "MERGE_HEAD"], check=False)
        return result.returncode == 0

    def get_conflicting_files(self) -> list[str]:
        """Paths with unresolved conflicts, relative to the repository root."""
        result = self._run_git_command(["diff", "--name-only", "--diff-filter=U"])
        return [line.strip() for line in result.stdout.split("\n") if line.strip()]

    def get_all_conflicts(self) -> list[ParsedConflictFile]:
        """Parse the conflict markers of every conflicting file.

        Raises:
            ConflictFileNotFoundError: If a conflicting file cannot be read
        """
        parsed = []
        for file_path in self.get_conflicting_files():
            path = Path(self.repo_path) / file_path
            try:
                content = path.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as e:
                raise ConflictFileNotFoundError(f"Cannot read conflicting file {file_path}: {e}") from e
            parsed.append(ParsedConflictFile(
                file_path=file_path,
                conflicts=parse_conflicts(content, file_path),
                raw_content=content,
            ))
        return parsed

    def get_working_diff(self) -> str:
        """Diff of the working tree, staged and unstaged, against HEAD."""
        return self._run_git_command(["diff", "HEAD"], timeout=WORKTREE_TIMEOUT).stdout

    def get_diff(self, base_branch: str, branch_name: str) -> str:
        """Diff of a branch against the point where it left its base."""
        result = self._run_git_command(["diff", f"{base_branch}...{branch_name}"], timeout=WORKTREE_TIMEOUT)
        return result.stdout

    def get_changed_files(self, base_branch: str, branch_name: str) -> list[str]:
        result = self._run_git_command(["diff", "--name-only", f"{base_branch}...{branch_name}"])
        return [line.strip() for line in result.stdout.split("\n") if line.strip()]

    def add_worktree(self, path: Path, branch_name: str, base_branch: Optional[str] = None) -> None:
        """Add a worktree, creating the branch from base_branch when given."""
        if base_branch:
            args = ["worktree", "add", "-b", branch_name, str(path), base_branch]
        else:
            args = ["worktree", "add", str(path), branch_name]
        self._run_git_command(args, timeout=WORKTREE_TIMEOUT)
        logger.info(f"Added worktree {path} on branch {branch_name}")

    def remove_worktree(self, path: Path, force: bool = False) -> None:
        args = ["worktree", "remove", str(path)]
        if force:
            args.append("--force")
        self._run_git_command(args, timeout=WORKTREE_TIMEOUT)
        logger.info(f"Removed worktree {path}")

    def list_worktrees_porcelain(self) -> str:
        return self._run_git_command(["worktree", "list", "--porcelain"]).stdout

    def prune_worktrees(self) -> str:
        """Prune stale worktree entries and return git's verbose report."""
        result = self._run_git_command(["worktree", "prune", "-v"], timeout=WORKTREE_TIMEOUT)
        return (result.stdout or "") + (result.stderr or "")

    def get_tag_date(self, tag: str) -> str:
        """ISO-8601 author date of the commit a tag points to.

        Raises:
            GitServiceError: If the tag does not exist
        """
        result = self._run_git_command(["log", "-1", "--format=%aI", tag])
        date = result.stdout.strip()
        if not date:
            raise GitServiceError(f"No commit found for tag {tag}")
        return date
