"""Tests for changelog generation."""

import json
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from kaiban_board.core.changelog import NO_ENTRIES_MESSAGE, ChangelogService, section_for
from kaiban_board.models.changelog import ChangelogEntry, ChangelogFormat, ChangelogOptions
from kaiban_board.services.exceptions import GitServiceError


@pytest.fixture
def service(workspace, parser):
    return ChangelogService(workspace, parser)


def done(make_task, task_id, label, task_type="Feature", completed_at="2024-02-01T10:00:00.000Z"):
    extra = f"**Completed-At:** {completed_at}" if completed_at else ""
    return make_task(task_id, label=label, status="Done", task_type=task_type, extra=extra)


@pytest.mark.parametrize("task_type,section", [
    ("Feature", "Added"),
    ("enhancement", "Changed"),
    ("Refactor", "Changed"),
    ("Bug", "Fixed"),
    ("Research", "Other"),
    ("Chore", "Other"),
    ("", "Other"),
])
def test_section_for(task_type, section):
    assert section_for(task_type) == section


class TestGenerate:
    """Test cases for ChangelogService.generate."""

    def test_only_done_tasks_are_included(self, service, make_task, workspace):
        done(make_task, "t1", "Add login page")
        make_task("t2", label="Fix crash", status="In Progress", task_type="Bug")

        result = service.generate()

        assert result.entry_count == 1
        assert "Add login page" in result.content
        assert "Fix crash" not in result.content
        assert result.written_to == str(workspace / "CHANGELOG.md")

    def test_no_entries(self, service, make_task, workspace):
        make_task("t1", status="Backlog")
        result = service.generate()
        assert result.entry_count == 0
        assert result.message == NO_ENTRIES_MESSAGE
        assert not (workspace / "CHANGELOG.md").exists()

    def test_dry_run_does_not_write(self, service, make_task, workspace):
        done(make_task, "t1", "Add login page")
        result = service.generate(ChangelogOptions(dry_run=True))
        assert result.entry_count == 1
        assert result.written_to is None
        assert not (workspace / "CHANGELOG.md").exists()

    def test_since_date_filters_and_requires_completion_date(self, service, make_task):
        done(make_task, "old", "Old feature", completed_at="2023-12-01T00:00:00.000Z")
        done(make_task, "new", "New feature", completed_at="2024-03-01T00:00:00.000Z")
        done(make_task, "undated", "Undated feature", completed_at="")

        result = service.generate(ChangelogOptions(since="2024-01-01", dry_run=True))

        assert [e.task_id for e in result.entries] == ["new"]

    def test_since_tag_uses_git(self, workspace, parser, make_task):
        git = MagicMock()
        git.get_tag_date.return_value = "2024-02-15T00:00:00+00:00"
        service = ChangelogService(workspace, parser, git)
        done(make_task, "t1", "Before tag", completed_at="2024-02-01T00:00:00.000Z")
        done(make_task, "t2", "After tag", completed_at="2024-03-01T00:00:00.000Z")

        result = service.generate(ChangelogOptions(since="v1.0.0", dry_run=True))

        git.get_tag_date.assert_called_once_with("v1.0.0")
        assert [e.title for e in result.entries] == ["After tag"]

    def test_unknown_tag_is_ignored(self, workspace, parser):
        git = MagicMock()
        git.get_tag_date.side_effect = GitServiceError("No commit found for tag v9")
        service = ChangelogService(workspace, parser, git)
        assert service.resolve_since("v9") is None

    def test_entries_are_newest_first(self, service, make_task):
        done(make_task, "a", "First", completed_at="2024-01-01T00:00:00.000Z")
        done(make_task, "b", "Second", completed_at="2024-03-01T00:00:00.000Z")
        done(make_task, "c", "Undated", completed_at="")

        result = service.generate(ChangelogOptions(dry_run=True))

        assert [e.task_id for e in result.entries] == ["b", "a", "c"]


class TestFormats:
    """Test cases for the output formats."""

    @pytest.fixture
    def entries(self):
        return [
            ChangelogEntry("t1", "Add login", "Added", "Feature", "2024-02-01T10:00:00.000Z", "Login form"),
            ChangelogEntry("t2", "Fix crash", "Fixed", "Bug"),
        ]

    def test_keepachangelog(self, service, entries):
        text = service.format_keepachangelog(entries, version="1.2.0", date="2024-02-02")
        assert text.startswith("## [1.2.0] - 2024-02-02\n")
        assert "### Added\n\n- Add login\n" in text
        assert "### Fixed\n\n- Fix crash\n" in text
        assert "### Changed" not in text
        assert text.index("### Added") < text.index("### Fixed")

    def test_unreleased_heading(self, service, entries):
        assert service.format_keepachangelog(entries).startswith("## [Unreleased] - ")

    def test_markdown(self, service, entries):
        text = service.format_markdown(entries, "2.0.0")
        assert text.startswith("# Changelog - 2.0.0")
        assert "## Add login" in text
        assert "- **Completed:** 2024-02-01" in text
        assert "Login form" in text

    def test_json(self, service, entries):
        data = json.loads(service.format_json(entries))
        assert data["version"] == "unreleased"
        assert data["entries"][0]["task_id"] == "t1"
        assert data["generatedAt"]


class TestMergeIntoExisting:
    """Test cases for placing a new block into an existing changelog."""

    BLOCK = "## [1.1.0] - 2024-03-01\n\n### Added\n\n- New thing\n"

    def test_new_file_gets_header(self):
        text = ChangelogService.merge_into_existing(self.BLOCK, None, ChangelogFormat.KEEPACHANGELOG)
        assert text.startswith("# Changelog\n")
        assert text.endswith(self.BLOCK)

    def test_inserted_before_latest_version(self):
        existing = "# Changelog\n\nIntro.\n\n## [1.0.0] - 2024-01-01\n\n- Old thing\n"
        text = ChangelogService.merge_into_existing(self.BLOCK, existing, ChangelogFormat.KEEPACHANGELOG)
        assert text.index("## [1.1.0]") < text.index("## [1.0.0]")
        assert text.startswith("# Changelog\n\nIntro.\n\n")
        assert text.endswith("- Old thing\n")

    def test_appended_after_preamble(self):
        existing = "# Changelog\nIntro."
        text = ChangelogService.merge_into_existing(self.BLOCK, existing, ChangelogFormat.KEEPACHANGELOG)
        assert text == "# Changelog\nIntro.\n\n" + self.BLOCK

    def test_json_overwrites(self):
        assert ChangelogService.merge_into_existing("{}", '{"old": 1}', ChangelogFormat.JSON) == "{}"

    def test_write_merges_with_file_on_disk(self, service, workspace):
        path = workspace / "docs" / "CHANGES.md"
        path.parent.mkdir()
        path.write_text("# Changelog\n\n## [1.0.0] - 2024-01-01\n")

        written = service.write("docs/CHANGES.md", self.BLOCK, ChangelogFormat.KEEPACHANGELOG)

        assert written == path
        content = path.read_text()
        assert content.index("## [1.1.0]") < content.index("## [1.0.0]")
