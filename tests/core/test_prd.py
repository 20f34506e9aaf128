"""Tests for PRD resolution and status sync."""

from pathlib import Path

from kaiban_board.core.prd import PrdService
from kaiban_board.models.task import TaskRecord, TaskStatus


def _task(file_path, prd_path):
    return TaskRecord(id="task-1", file_path=str(file_path), label="Task", prd_path=prd_path)


class TestPrdService:
    """Test cases for PrdService."""

    def test_resolve_relative_to_task_file(self, workspace, tasks_dir):
        """Test ./ and ../ links resolve from the task's directory."""
        service = PrdService(workspace)
        task = _task(tasks_dir / "task-1.md", "../PRDS/feature.md")
        assert service.resolve_path(task) == (workspace / ".agent" / "PRDS" / "feature.md").resolve()

    def test_resolve_bare_name_under_base_path(self, workspace, tasks_dir):
        """Test plain names live under the PRD base directory."""
        service = PrdService(workspace, "docs/prds")
        task = _task(tasks_dir / "task-1.md", "feature.md")
        assert service.resolve_path(task) == (workspace / "docs" / "prds" / "feature.md").resolve()

    def test_resolve_absolute(self, workspace, tmp_path):
        prd = tmp_path / "abs.md"
        assert PrdService(workspace).resolve_path(_task("t.md", str(prd))) == prd

    def test_no_prd(self, workspace):
        service = PrdService(workspace)
        task = _task("t.md", "")
        assert service.resolve_path(task) is None
        assert service.load_content(task) is None
        assert service.sync_status(task, TaskStatus.DONE) is False

    def test_load_content(self, workspace, tasks_dir):
        prd = workspace / ".agent" / "PRDS" / "feature.md"
        prd.write_text("# Feature\n\nBody")
        task = _task(tasks_dir / "task-1.md", "../PRDS/feature.md")
        assert PrdService(workspace).load_content(task) == "# Feature\n\nBody"

    def test_sync_replaces_status_line(self, workspace, tasks_dir):
        """Test an existing status line is replaced in place."""
        prd = workspace / ".agent" / "PRDS" / "feature.md"
        prd.write_text("# Feature\n\n**status:** Backlog\n\nBody")
        task = _task(tasks_dir / "task-1.md", "../PRDS/feature.md")

        assert PrdService(workspace).sync_status(task, TaskStatus.IN_PROGRESS) is True
        assert prd.read_text() == "# Feature\n\n**Status:** In Progress\n\nBody"

    def test_sync_inserts_below_heading(self, workspace, tasks_dir):
        """Test a status line is added under the first heading when missing."""
        prd = workspace / ".agent" / "PRDS" / "feature.md"
        prd.write_text("# Feature\nBody")
        task = _task(tasks_dir / "task-1.md", "../PRDS/feature.md")

        PrdService(workspace).sync_status(task, TaskStatus.DONE)
        assert prd.read_text().split("\n") == ["# Feature", "", "**Status:** Done", "Body"]

    def test_sync_missing_file(self, workspace, tasks_dir):
        task = _task(tasks_dir / "task-1.md", "../PRDS/missing.md")
        assert PrdService(workspace).sync_status(task, TaskStatus.DONE) is False
