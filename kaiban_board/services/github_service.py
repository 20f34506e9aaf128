"""GitHub integration through the gh CLI."""

import json
import logging
import re
import subprocess
import time
from pathlib import Path
from typing import Optional

from ..core.constants import GITHUB_STATUS_CACHE_SECONDS, GITHUB_TIMEOUT, PROBE_TIMEOUT
from ..models.github import GitHubIssue, GitHubPR, GitHubStatus
from ..models.task import GitHubMetadata, TaskPriority
from ..utils.timestamps import utc_now_iso
from .exceptions import CommandTimeoutError, GitHubServiceError, GitHubUnavailableError

logger = logging.getLogger(__name__)

VERSION_PATTERN = re.compile(r"gh version (\d+\.\d+\.\d+)")
ISSUE_URL_PATTERN = re.compile(r"github\.com/([^/]+/[^/]+)/issues/(\d+)")
PR_URL_PATTERN = re.compile(r"github\.com/([^/]+/[^/]+)/pull/(\d+)")
OVERVIEW_PATTERN = re.compile(r"## Overview\s*\n([\s\S]*?)(?=\n##|$)")

ISSUE_FIELDS = "number,title,body,state,url,labels,assignees,createdAt,updatedAt"
PR_FIELDS = "number,title,body,state,url,headRefName,baseRefName,isDraft"

INSTALL_HINT = "GitHub CLI (gh) is not installed. Install from: https://cli.github.com/"
AUTH_HINT = "GitHub CLI (gh) is not authenticated. Run: gh auth login"


def _issue_from_json(data: dict) -> GitHubIssue:
    return GitHubIssue(
        number=data["number"],
        title=data.get("title", ""),
        body=data.get("body") or "",
        state=str(data.get("state", "open")).lower(),
        url=data.get("url", ""),
        labels=[label["name"] for label in data.get("labels", [])],
        assignees=[user["login"] for user in data.get("assignees", [])],
        created_at=data.get("createdAt", ""),
        updated_at=data.get("updatedAt", ""),
    )


def _pr_from_json(data: dict) -> GitHubPR:
    return GitHubPR(
        number=data["number"],
        title=data.get("title", ""),
        url=data.get("url", ""),
        body=data.get("body") or "",
        state=str(data.get("state", "open")).lower(),
        head_branch=data.get("headRefName", ""),
        base_branch=data.get("baseRefName", ""),
        is_draft=bool(data.get("isDraft", False)),
    )


class GitHubService:
    """Handle GitHub operations for board tasks."""

    def __init__(self, project_dir: Path):
        self.project_dir = Path(project_dir).resolve()
        self._status: Optional[GitHubStatus] = None
        self._status_checked_at = 0.0

    def _run_gh_command(self, args: list[str], timeout: float = GITHUB_TIMEOUT) -> str:
        """Run a gh command in the project directory and return stdout.

        Raises:
            GitHubUnavailableError: If gh is not installed
            CommandTimeoutError: If the command exceeds the timeout
            GitHubServiceError: If the command fails
        """
        cmd = ["gh"] + args
        try:
            result = subprocess.run(
                cmd,
                cwd=self.project_dir,
                check=True,
                capture_output=True,
                text=True,
                timeout=timeout,
            )
        except FileNotFoundError as e:
            raise GitHubUnavailableError(INSTALL_HINT) from e
        except subprocess.TimeoutExpired as e:
            raise CommandTimeoutError(f"gh command timed out after {timeout}s: {' '.join(cmd)}") from e
        except subprocess.CalledProcessError as e:
            error_msg = e.stderr if e.stderr else str(e)
            raise GitHubServiceError(f"gh command failed: {error_msg}") from e
        return result.stdout

    def get_status(self, force_refresh: bool = False) -> GitHubStatus:
        """Probe gh installation, authentication and the current repository.

        Results are cached for a few minutes.
        """
        now = time.monotonic()
        if (not force_refresh and self._status is not None
                and now - self._status_checked_at < GITHUB_STATUS_CACHE_SECONDS):
            return self._status

        status = GitHubStatus(available=False)
        try:
            version_output = self._run_gh_command(["--version"], timeout=PROBE_TIMEOUT)
            status.available = True
            match = VERSION_PATTERN.search(version_output)
            if match:
                status.version = match.group(1)
            self._run_gh_command(["auth", "status"], timeout=PROBE_TIMEOUT)
            status.authenticated = True
            status.repository = self._run_gh_command(
                ["repo", "view", "--json", "nameWithOwner", "-q", ".nameWithOwner"],
                timeout=PROBE_TIMEOUT,
            ).strip() or None
        except GitHubUnavailableError as e:
            status.error = str(e)
        except (GitHubServiceError, CommandTimeoutError) as e:
            status.error = AUTH_HINT if status.available and not status.authenticated else str(e)

        if status.error:
            logger.warning(status.error)
        self._status = status
        self._status_checked_at = now
        return status

    def ensure_available(self) -> GitHubStatus:
        """Raise with install/auth guidance unless gh is usable."""
        status = self.get_status()
        if not status.available:
            raise GitHubUnavailableError(INSTALL_HINT)
        if not status.authenticated:
            raise GitHubUnavailableError(AUTH_HINT)
        return status

    def list_issues(self, state: str = "open", labels: Optional[list[str]] = None,
                    limit: int = 30) -> list[GitHubIssue]:
        self.ensure_available()
        args = ["issue", "list", "--json", ISSUE_FIELDS, "--limit", str(limit), "--state", state]
        if labels:
            args += ["--label", ",".join(labels)]
        return [_issue_from_json(item) for item in json.loads(self._run_gh_command(args) or "[]")]

    def get_issue(self, issue_number: int) -> GitHubIssue:
        self.ensure_available()
        output = self._run_gh_command(["issue", "view", str(issue_number), "--json", ISSUE_FIELDS])
        return _issue_from_json(json.loads(output))

    def create_pr(self, branch_name: str, title: str, body: str = "",
                  base_branch: str = "main", draft: bool = False) -> GitHubPR:
        """Create a pull request for a branch and return it."""
        self.ensure_available()
        args = ["pr", "create", "--head", branch_name, "--base", base_branch,
                "--title", title, "--body", body]
        if draft:
            args.append("--draft")
        pr_url = self._run_gh_command(args).strip().split("\n")[-1]
        logger.info(f"Created pull request {pr_url}")
        return _pr_from_json(json.loads(self._run_gh_command(["pr", "view", pr_url, "--json", PR_FIELDS])))

    def get_pr_for_branch(self, branch_name: str) -> Optional[GitHubPR]:
        self.ensure_available()
        try:
            output = self._run_gh_command(["pr", "view", branch_name, "--json", PR_FIELDS])
        except GitHubServiceError:
            return None
        return _pr_from_json(json.loads(output))

    def close_issue(self, issue_number: int, comment: Optional[str] = None) -> None:
        self.ensure_available()
        if comment:
            self._run_gh_command(["issue", "comment", str(issue_number), "--body", comment])
        self._run_gh_command(["issue", "close", str(issue_number)])

    def link_pr_to_issue(self, pr_number: int, issue_number: int) -> None:
        """Add a closing keyword for the issue to the PR body, once."""
        self.ensure_available()
        body = self._run_gh_command(["pr", "view", str(pr_number), "--json", "body", "-q", ".body"]).strip()
        closes_line = f"Closes #{issue_number}"
        if closes_line in body:
            return
        self._run_gh_command(["pr", "edit", str(pr_number), "--body", f"{body}\n\n{closes_line}"])

    @staticmethod
    def parse_issue_url(url: str) -> Optional[tuple[str, int]]:
        """Extract (repository, issue number) from an issue URL."""
        match = ISSUE_URL_PATTERN.search(url)
        if match:
            return match.group(1), int(match.group(2))
        return None

    @staticmethod
    def parse_pr_url(url: str) -> Optional[tuple[str, int]]:
        match = PR_URL_PATTERN.search(url)
        if match:
            return match.group(1), int(match.group(2))
        return None

    @staticmethod
    def priority_from_labels(labels: list[str]) -> TaskPriority:
        lowered = [label.lower() for label in labels]
        if any("urgent" in label or "critical" in label for label in lowered):
            return TaskPriority.HIGH
        if any("low" in label for label in lowered):
            return TaskPriority.LOW
        return TaskPriority.MEDIUM

    @staticmethod
    def type_from_labels(labels: list[str]) -> str:
        lowered = [label.lower() for label in labels]
        for keyword, task_type in (("bug", "Bug"), ("feature", "Feature"), ("enhancement", "Enhancement")):
            if any(keyword in label for label in lowered):
                return task_type
        return "Task"

    def generate_task_from_issue(self, issue: GitHubIssue) -> dict:
        """Task fields for importing an issue onto the board."""
        parsed = self.parse_issue_url(issue.url)
        body_lines = [
            "## Issue Details",
            "",
            issue.body or "No description provided.",
            "",
            "---",
            "",
            "## Metadata",
            "",
            f"- **Labels:** {', '.join(issue.labels) or 'None'}",
            f"- **Assignees:** {', '.join(issue.assignees) or 'Unassigned'}",
            f"- **Created:** {issue.created_at}",
        ]
        return {
            "task_id": f"gh-{issue.number}",
            "label": issue.title,
            "description": issue.body.split("\n")[0] if issue.body else "Imported from GitHub issue",
            "task_type": self.type_from_labels(issue.labels),
            "priority": self.priority_from_labels(issue.labels),
            "github": GitHubMetadata(
                issue_url=issue.url,
                issue_number=issue.number,
                repository=parsed[0] if parsed else "",
                last_synced=utc_now_iso(),
            ),
            "body": "\n".join(body_lines),
        }

    @staticmethod
    def generate_pr_body(task_label: str, task_description: str,
                         prd_content: Optional[str] = None,
                         issue_number: Optional[int] = None) -> str:
        """Pull request description for a task."""
        body = f"## Summary\n\n{task_description or task_label}\n\n"
        if prd_content:
            overview = OVERVIEW_PATTERN.search(prd_content)
            if overview:
                body += f"### Context\n\n{overview.group(1).strip()[:500]}\n\n"
        body += f"## Changes\n\n- Implemented {task_label}\n- See commit messages for details\n\n"
        body += "## Test Plan\n\n- [ ] Verify functionality works as expected\n- [ ] Run existing tests\n\n"
        if issue_number:
            body += f"Closes #{issue_number}\n\n"
        body += "---\n*Generated by Kaiban Board*"
        return body
