"""GitHub CLI data models."""
from dataclasses import dataclass, field
from typing import List, Optional


@dataclass
class GitHubStatus:
    """Result of probing the gh CLI."""
    available: bool
    authenticated: bool = False
    version: Optional[str] = None
    repository: Optional[str] = None
    error: Optional[str] = None


@dataclass
class GitHubIssue:
    number: int
    title: str
    body: str = ""
    state: str = "open"
    url: str = ""
    labels: List[str] = field(default_factory=list)
    assignees: List[str] = field(default_factory=list)
    created_at: str = ""
    updated_at: str = ""


@dataclass
class GitHubPR:
    number: int
    title: str
    url: str
    body: str = ""
    state: str = "open"
    head_branch: str = ""
    base_branch: str = ""
    is_draft: bool = False
