"""Changelog generation models."""
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional


class ChangelogFormat(Enum):
    KEEPACHANGELOG = "keepachangelog"
    MARKDOWN = "markdown"
    JSON = "json"


# Section headings in the order they are rendered
CHANGELOG_SECTIONS = ["Added", "Changed", "Fixed", "Breaking Changes", "Other"]

TASK_TYPE_TO_SECTION: Dict[str, str] = {
    "feature": "Added",
    "enhancement": "Changed",
    "refactor": "Changed",
    "bug": "Fixed",
    "research": "Other",
}


@dataclass
class ChangelogEntry:
    """A completed task rendered as one changelog bullet."""
    task_id: str
    title: str
    section: str
    task_type: str
    completed_at: str = ""
    description: str = ""


@dataclass
class ChangelogOptions:
    since: Optional[str] = None  # Tag (e.g. v1.2.0) or date
    format: ChangelogFormat = ChangelogFormat.KEEPACHANGELOG
    output: str = "CHANGELOG.md"
    version: Optional[str] = None
    dry_run: bool = False


@dataclass
class ChangelogResult:
    content: str
    entry_count: int
    entries: List[ChangelogEntry] = field(default_factory=list)
    written_to: Optional[str] = None
    message: str = ""
