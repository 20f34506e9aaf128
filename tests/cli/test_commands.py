"""Tests for the board CLI commands."""

from unittest.mock import MagicMock, patch

import pytest

from kaiban_board.cli.main import cli
from kaiban_board.core.task_parser import TaskParser
from kaiban_board.models.github import GitHubIssue
from kaiban_board.models.task import TaskStatus
from kaiban_board.services.exceptions import GitServiceError


@pytest.fixture(autouse=True)
def no_git():
    """Run every command as if the workspace were not a git repository."""
    with patch('kaiban_board.cli.helpers.GitService', side_effect=GitServiceError("not a git repository")):
        yield


def invoke(cli_runner, workspace, *args):
    return cli_runner.invoke(cli, ['--workspace', str(workspace), *args])


class TestListAndShow:
    """Test cases for read-only commands."""

    def test_list_tasks(self, cli_runner, workspace, make_task):
        make_task("task-1", label="Add login page", priority="High")
        make_task("task-2", label="Fix crash", status="Done", task_type="Bug")

        result = invoke(cli_runner, workspace, 'list')

        assert result.exit_code == 0
        assert "task-1" in result.output
        assert "Fix crash" in result.output

    def test_list_filtered_by_status(self, cli_runner, workspace, make_task):
        make_task("task-1", label="Add login page")
        make_task("task-2", label="Fix crash", status="Done")

        result = invoke(cli_runner, workspace, 'list', '--status', 'done')

        assert result.exit_code == 0
        assert "Fix crash" in result.output
        assert "Add login page" not in result.output

    def test_list_empty(self, cli_runner, workspace):
        result = invoke(cli_runner, workspace, 'list')
        assert result.exit_code == 0
        assert "No tasks found" in result.output

    def test_board(self, cli_runner, workspace, make_task):
        make_task("task-1", label="Plan it", status="Planning")
        result = invoke(cli_runner, workspace, 'board')
        assert result.exit_code == 0
        assert "Planning (1)" in result.output
        assert "claude" in result.output

    def test_show_by_prefix(self, cli_runner, workspace, sample_task):
        result = invoke(cli_runner, workspace, 'show', 'task')
        assert result.exit_code == 0
        assert "Task: Add login page" in result.output
        assert "ID: task-1" in result.output

    def test_show_ambiguous_prefix(self, cli_runner, workspace, make_task):
        make_task("task-1")
        make_task("task-2")
        result = invoke(cli_runner, workspace, 'show', 'task')
        assert result.exit_code == 1
        assert "Multiple tasks found" in result.output

    def test_show_unknown(self, cli_runner, workspace):
        result = invoke(cli_runner, workspace, 'show', 'nope')
        assert result.exit_code == 1
        assert "No task found with ID: nope" in result.output


class TestMutatingCommands:
    """Test cases for commands that rewrite task files."""

    def test_move_without_hooks(self, cli_runner, workspace, sample_task):
        result = invoke(cli_runner, workspace, 'move', 'task-1', 'In Progress', '--order', '3', '--no-hooks')

        assert result.exit_code == 0
        task = TaskParser.for_workspace(workspace).get_task("task-1")
        assert task.status == TaskStatus.IN_PROGRESS
        assert task.order == 3
        assert "Keep this text untouched." in sample_task.read_text()

    def test_move_to_done_syncs_prd(self, cli_runner, workspace, sample_task):
        prd = workspace / ".agent" / "PRDS" / "task-1.md"
        prd.write_text("# Login PRD\n\n**Status:** Backlog\n")

        result = invoke(cli_runner, workspace, 'move', 'task-1', 'done')

        assert result.exit_code == 0
        assert "**Status:** Done" in prd.read_text()

    def test_move_rejects_unknown_status(self, cli_runner, workspace, sample_task):
        result = invoke(cli_runner, workspace, 'move', 'task-1', 'Later')
        assert result.exit_code == 2

    def test_reject(self, cli_runner, workspace, make_task):
        make_task("task-1", status="AI Review")

        result = invoke(cli_runner, workspace, 'reject', 'task-1', '--note', 'Tests fail')

        assert result.exit_code == 0
        task = TaskParser.for_workspace(workspace).get_task("task-1")
        assert task.status == TaskStatus.BACKLOG
        assert task.rejection_count == 1
        assert "Tests fail" in task.agent_notes


class TestChangelogCommand:
    """Test cases for the changelog command."""

    def test_dry_run_prints_without_writing(self, cli_runner, workspace, make_task):
        make_task("task-1", label="Add login page", status="Done")

        result = invoke(cli_runner, workspace, 'changelog', '--dry-run', '--version', '1.0.0')

        assert result.exit_code == 0
        assert "## [1.0.0]" in result.output
        assert "- Add login page" in result.output
        assert not (workspace / "CHANGELOG.md").exists()

    def test_writes_file(self, cli_runner, workspace, make_task):
        make_task("task-1", label="Fix crash", status="Done", task_type="Bug")

        result = invoke(cli_runner, workspace, 'changelog')

        assert result.exit_code == 0
        assert "### Fixed" in (workspace / "CHANGELOG.md").read_text()

    def test_nothing_to_report(self, cli_runner, workspace, sample_task):
        result = invoke(cli_runner, workspace, 'changelog')
        assert result.exit_code == 0
        assert "No completed tasks found" in result.output


class TestGitCommands:
    """Test cases for commands that need a git repository."""

    def test_worktree_list_outside_git(self, cli_runner, workspace):
        result = invoke(cli_runner, workspace, 'worktree', 'list')
        assert result.exit_code == 1
        assert "is not a git repository" in result.output

    def test_worktree_list(self, cli_runner, workspace):
        manager = MagicMock()
        manager.list_worktrees.return_value = []
        with patch('kaiban_board.cli.helpers.GitService'), \
                patch('kaiban_board.cli.helpers.WorktreeManager', return_value=manager):
            result = invoke(cli_runner, workspace, 'worktree', 'list')
        assert result.exit_code == 0
        assert "PATH" in result.output

    def test_merge_abort_without_merge(self, cli_runner, workspace, sample_task):
        manager = MagicMock()
        manager.git.is_merge_in_progress.return_value = False
        with patch('kaiban_board.cli.helpers.GitService'), \
                patch('kaiban_board.cli.helpers.WorktreeManager', return_value=manager):
            result = invoke(cli_runner, workspace, 'merge', 'task-1', '--abort')
        assert result.exit_code == 1
        assert "No merge in progress" in result.output
        manager.abort_merge.assert_not_called()

    def test_github_issues_marks_imported(self, cli_runner, workspace, make_task):
        make_task("gh-7", extra="**GitHub:** [Issue #7](https://github.com/octo/repo/issues/7)")
        issues = [GitHubIssue(number=7, title="Crash"), GitHubIssue(number=8, title="Docs")]
        with patch('kaiban_board.cli.commands.github.list_issues.GitHubService') as service_cls:
            service_cls.return_value.list_issues.return_value = issues
            result = invoke(cli_runner, workspace, 'github', 'issues')
        assert result.exit_code == 0
        assert "#7" in result.output and "#8" in result.output
        assert result.output.count("imported") == 1
