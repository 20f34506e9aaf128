"""Changelog generation from completed tasks."""

import json
import logging
from dataclasses import asdict
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from ..models.changelog import (
    CHANGELOG_SECTIONS,
    TASK_TYPE_TO_SECTION,
    ChangelogEntry,
    ChangelogFormat,
    ChangelogOptions,
    ChangelogResult,
)
from ..models.task import TaskRecord, TaskStatus
from ..services.exceptions import GitServiceError
from ..services.git_service import GitService
from ..utils.timestamps import parse_iso, utc_now_iso
from .constants import KEEP_A_CHANGELOG_HEADER
from .task_parser import TaskParser

logger = logging.getLogger(__name__)

NO_ENTRIES_MESSAGE = "No completed tasks found since the specified date/tag"
VERSION_HEADINGS = ("## [", "## Unreleased")


def section_for(task_type: str) -> str:
    return TASK_TYPE_TO_SECTION.get((task_type or "").strip().lower(), "Other")


def _sort_key(entry: ChangelogEntry) -> float:
    completed = parse_iso(entry.completed_at)
    # Newest first, undated entries last
    return -completed.timestamp() if completed else float("inf")


class ChangelogService:
    """Builds changelog sections from Done tasks and writes them into a changelog file."""

    def __init__(self, workspace: Path, parser: TaskParser, git: Optional[GitService] = None):
        self.workspace = Path(workspace)
        self.parser = parser
        self.git = git

    def resolve_since(self, since: Optional[str]) -> Optional[datetime]:
        """Turn a tag (``v1.2.0``) or ISO date into a cutoff datetime."""
        if not since:
            return None
        value = since
        if since.startswith("v") and self.git is not None:
            try:
                value = self.git.get_tag_date(since) or since
            except GitServiceError as e:
                logger.warning(f"Could not resolve tag {since}: {e}")
        cutoff = parse_iso(value)
        if cutoff is None:
            logger.warning(f"Ignoring unparseable --since value: {since}")
        return cutoff

    def completed_tasks(self, tasks: Iterable[TaskRecord],
                        since: Optional[datetime] = None) -> List[TaskRecord]:
        done = [task for task in tasks if task.status == TaskStatus.DONE]
        if since is None:
            return done
        selected = []
        for task in done:
            completed = parse_iso(task.completed_at or "")
            if completed is not None and completed >= since:
                selected.append(task)
        return selected

    @staticmethod
    def to_entry(task: TaskRecord) -> ChangelogEntry:
        return ChangelogEntry(
            task_id=task.id,
            title=task.label,
            section=section_for(task.type),
            task_type=task.type,
            completed_at=task.completed_at or "",
            description=task.description,
        )

    @staticmethod
    def group_by_section(entries: Iterable[ChangelogEntry]) -> Dict[str, List[ChangelogEntry]]:
        grouped: Dict[str, List[ChangelogEntry]] = {section: [] for section in CHANGELOG_SECTIONS}
        for entry in entries:
            grouped.setdefault(entry.section, []).append(entry)
        return grouped

    def format_keepachangelog(self, entries: List[ChangelogEntry], version: Optional[str] = None,
                              date: Optional[str] = None) -> str:
        today = date or datetime.now(timezone.utc).strftime("%Y-%m-%d")
        lines = [f"## [{version or 'Unreleased'}] - {today}", ""]
        for section, section_entries in self.group_by_section(entries).items():
            if not section_entries:
                continue
            lines += [f"### {section}", ""]
            lines += [f"- {entry.title}" for entry in section_entries]
            lines.append("")
        return "\n".join(lines)

    @staticmethod
    def format_markdown(entries: List[ChangelogEntry], version: Optional[str] = None) -> str:
        today = datetime.now(timezone.utc).strftime("%Y-%m-%d")
        lines = [f"# Changelog - {version or 'Unreleased'}", "", f"_Generated on {today}_", ""]
        for entry in entries:
            lines += [f"## {entry.title}", "", f"- **Type:** {entry.section}"]
            if entry.completed_at:
                lines.append(f"- **Completed:** {entry.completed_at.split('T')[0]}")
            if entry.description:
                lines += ["", entry.description]
            lines.append("")
        return "\n".join(lines)

    @staticmethod
    def format_json(entries: List[ChangelogEntry], version: Optional[str] = None) -> str:
        data = {
            "version": version or "unreleased",
            "generatedAt": utc_now_iso(),
            "entries": [asdict(entry) for entry in entries],
        }
        return json.dumps(data, indent=2)

    def format(self, entries: List[ChangelogEntry], fmt: ChangelogFormat,
               version: Optional[str] = None) -> str:
        if fmt == ChangelogFormat.KEEPACHANGELOG:
            return self.format_keepachangelog(entries, version)
        if fmt == ChangelogFormat.JSON:
            return self.format_json(entries, version)
        return self.format_markdown(entries, version)

    @staticmethod
    def merge_into_existing(new_content: str, existing: Optional[str], fmt: ChangelogFormat) -> str:
        """Place a new version block into an existing changelog.

        The block goes immediately before the first version heading, or after
        the preamble when the file has none. Everything else is kept as is.
        """
        if existing is None:
            if fmt == ChangelogFormat.KEEPACHANGELOG:
                return f"{KEEP_A_CHANGELOG_HEADER}\n{new_content}"
            return new_content
        if fmt == ChangelogFormat.JSON:
            return new_content

        lines = existing.split("\n")
        insert_at = next(
            (i for i, line in enumerate(lines) if line.startswith(VERSION_HEADINGS)),
            None,
        )
        if insert_at is None:
            insert_at = next((i for i, line in enumerate(lines) if line.startswith("## ")), len(lines))
            # Keep a blank line between the preamble and the new block
            if insert_at == len(lines) and lines and lines[-1].strip():
                lines.append("")
                insert_at = len(lines)
        return "\n".join(lines[:insert_at] + [new_content] + lines[insert_at:])

    def generate(self, options: Optional[ChangelogOptions] = None,
                 tasks: Optional[Iterable[TaskRecord]] = None) -> ChangelogResult:
        """Render the changelog for completed tasks and write it unless this is a dry run."""
        options = options or ChangelogOptions()
        cutoff = self.resolve_since(options.since)
        selected = self.completed_tasks(self.parser.parse_all() if tasks is None else tasks, cutoff)
        if not selected:
            return ChangelogResult(content="", entry_count=0, message=NO_ENTRIES_MESSAGE)

        entries = sorted((self.to_entry(task) for task in selected), key=_sort_key)
        content = self.format(entries, options.format, options.version)
        result = ChangelogResult(content=content, entry_count=len(entries), entries=entries)
        if options.dry_run:
            return result

        result.written_to = str(self.write(options.output, content, options.format))
        logger.info(f"Wrote {len(entries)} changelog entries to {result.written_to}")
        return result

    def write(self, output: str, content: str, fmt: ChangelogFormat) -> Path:
        path = Path(output)
        if not path.is_absolute():
            path = self.workspace / path
        existing = path.read_text(encoding="utf-8") if path.exists() else None
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.merge_into_existing(content, existing, fmt), encoding="utf-8")
        return path
