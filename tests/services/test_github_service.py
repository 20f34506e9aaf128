"""Tests for GitHub service."""

import json
import subprocess
from pathlib import Path
from unittest.mock import Mock, patch

import pytest

from kaiban_board.models.github import GitHubIssue, GitHubStatus
from kaiban_board.models.task import TaskPriority
from kaiban_board.services.exceptions import (
    CommandTimeoutError,
    GitHubServiceError,
    GitHubUnavailableError,
)
from kaiban_board.services.github_service import AUTH_HINT, INSTALL_HINT, GitHubService


@pytest.fixture
def service(tmp_path):
    return GitHubService(tmp_path)


@pytest.fixture
def ready(service):
    """Mark gh as installed and authenticated."""
    service._status = GitHubStatus(available=True, authenticated=True, repository="octo/repo")
    service._status_checked_at = float("inf")
    return service


class TestRunGhCommand:
    """Test cases for gh invocation and error mapping."""

    @patch('subprocess.run')
    def test_success(self, mock_run, service):
        mock_run.return_value = Mock(stdout="ok\n")
        assert service._run_gh_command(["auth", "status"]) == "ok\n"
        args, kwargs = mock_run.call_args
        assert args[0] == ["gh", "auth", "status"]
        assert kwargs['timeout'] == 30

    @patch('subprocess.run', side_effect=FileNotFoundError("gh"))
    def test_not_installed(self, mock_run, service):
        with pytest.raises(GitHubUnavailableError, match="not installed"):
            service._run_gh_command(["--version"])

    @patch('subprocess.run', side_effect=subprocess.TimeoutExpired(["gh"], 30))
    def test_timeout(self, mock_run, service):
        with pytest.raises(CommandTimeoutError):
            service._run_gh_command(["issue", "list"])

    @patch('subprocess.run', side_effect=subprocess.CalledProcessError(1, ["gh"], stderr="HTTP 404"))
    def test_failure(self, mock_run, service):
        with pytest.raises(GitHubServiceError, match="HTTP 404"):
            service._run_gh_command(["issue", "view", "9"])


class TestGetStatus:
    """Test cases for the gh availability probe."""

    def test_fully_available(self, service):
        outputs = ["gh version 2.40.1 (2023-12-13)\n", "Logged in\n", "octo/repo\n"]
        with patch.object(service, '_run_gh_command', side_effect=outputs):
            status = service.get_status()

        assert status.available and status.authenticated
        assert status.version == "2.40.1"
        assert status.repository == "octo/repo"

    def test_not_installed(self, service):
        with patch.object(service, '_run_gh_command', side_effect=GitHubUnavailableError(INSTALL_HINT)):
            status = service.get_status()
        assert not status.available
        assert status.error == INSTALL_HINT

    def test_not_authenticated(self, service):
        side_effect = ["gh version 2.40.1\n", GitHubServiceError("not logged in")]
        with patch.object(service, '_run_gh_command', side_effect=side_effect):
            status = service.get_status()
        assert status.available
        assert not status.authenticated
        assert status.error == AUTH_HINT

    def test_status_is_cached(self, service):
        outputs = ["gh version 2.40.1\n", "", "octo/repo\n"]
        with patch.object(service, '_run_gh_command', side_effect=outputs) as mock_cmd:
            service.get_status()
            service.get_status()
        assert mock_cmd.call_count == 3

    def test_ensure_available_raises_auth_hint(self, service):
        service._status = GitHubStatus(available=True, authenticated=False)
        service._status_checked_at = float("inf")
        with pytest.raises(GitHubUnavailableError, match="gh auth login"):
            service.ensure_available()


class TestIssuesAndPullRequests:
    """Test cases for issue and PR operations."""

    def test_get_issue(self, ready):
        payload = {
            "number": 12, "title": "Crash on start", "body": "Stack trace",
            "state": "OPEN", "url": "https://github.com/octo/repo/issues/12",
            "labels": [{"name": "bug"}], "assignees": [{"login": "sam"}],
            "createdAt": "2024-01-01T00:00:00Z", "updatedAt": "2024-01-02T00:00:00Z",
        }
        with patch.object(ready, '_run_gh_command', return_value=json.dumps(payload)):
            issue = ready.get_issue(12)

        assert issue.state == "open"
        assert issue.labels == ["bug"]
        assert issue.assignees == ["sam"]

    def test_get_pr_for_branch_missing(self, ready):
        with patch.object(ready, '_run_gh_command', side_effect=GitHubServiceError("no pull requests found")):
            assert ready.get_pr_for_branch("task/t1") is None

    def test_link_pr_to_issue_once(self, ready):
        with patch.object(ready, '_run_gh_command', return_value="Body\n\nCloses #5\n") as mock_cmd:
            ready.link_pr_to_issue(3, 5)
        assert mock_cmd.call_count == 1


class TestConversions:
    """Test cases for issue-to-task conversion helpers."""

    def test_parse_urls(self):
        assert GitHubService.parse_issue_url("https://github.com/octo/repo/issues/42") == ("octo/repo", 42)
        assert GitHubService.parse_pr_url("https://github.com/octo/repo/pull/7") == ("octo/repo", 7)
        assert GitHubService.parse_issue_url("https://example.com/nothing") is None

    @pytest.mark.parametrize("labels,expected", [
        (["Critical"], TaskPriority.HIGH),
        (["priority: urgent"], TaskPriority.HIGH),
        (["low-priority"], TaskPriority.LOW),
        (["docs"], TaskPriority.MEDIUM),
    ])
    def test_priority_from_labels(self, labels, expected):
        assert GitHubService.priority_from_labels(labels) == expected

    @pytest.mark.parametrize("labels,expected", [
        (["bug"], "Bug"),
        (["new feature"], "Feature"),
        (["enhancement"], "Enhancement"),
        ([], "Task"),
    ])
    def test_type_from_labels(self, labels, expected):
        assert GitHubService.type_from_labels(labels) == expected

    def test_generate_task_from_issue(self, service):
        issue = GitHubIssue(
            number=42, title="Crash on start", body="First line\nMore detail",
            url="https://github.com/octo/repo/issues/42", labels=["bug", "urgent"],
        )
        fields = service.generate_task_from_issue(issue)

        assert fields["task_id"] == "gh-42"
        assert fields["description"] == "First line"
        assert fields["task_type"] == "Bug"
        assert fields["priority"] == TaskPriority.HIGH
        assert fields["github"].repository == "octo/repo"
        assert "## Issue Details" in fields["body"]

    def test_generate_pr_body(self):
        prd = "# PRD\n\n## Overview\nAdds login.\n\n## Scope\nStuff"
        body = GitHubService.generate_pr_body("Login", "Add login page", prd, issue_number=4)
        assert "### Context\n\nAdds login." in body
        assert "Closes #4" in body
