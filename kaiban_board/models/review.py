"""AI code review models."""
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class ReviewFindingType(Enum):
    BUG = "bug"
    SECURITY = "security"
    PERFORMANCE = "performance"
    STYLE = "style"
    MAINTAINABILITY = "maintainability"
    BEST_PRACTICE = "best_practice"
    DOCUMENTATION = "documentation"
    TEST_COVERAGE = "test_coverage"
    OTHER = "other"


class ReviewSeverity(Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    INFO = "info"


SEVERITY_RANK = {
    ReviewSeverity.CRITICAL: 0,
    ReviewSeverity.HIGH: 1,
    ReviewSeverity.MEDIUM: 2,
    ReviewSeverity.LOW: 3,
    ReviewSeverity.INFO: 4,
}


class ReviewRating(Enum):
    """Overall verdict of a review."""
    PASS = "pass"
    NEEDS_WORK = "needs_work"
    CRITICAL_ISSUES = "critical_issues"


@dataclass
class ReviewFinding:
    """One issue reported by the reviewer."""
    type: ReviewFindingType
    severity: ReviewSeverity
    file_path: str
    description: str
    line_number: Optional[int] = None
    suggestion: Optional[str] = None
    code_snippet: Optional[str] = None


@dataclass
class ReviewResult:
    """Structured review verdict for a task's changes."""
    summary: str
    overall_rating: ReviewRating
    findings: List[ReviewFinding] = field(default_factory=list)
    suggested_actions: List[str] = field(default_factory=list)
    files_reviewed: List[str] = field(default_factory=list)
    lines_reviewed: int = 0
    review_duration: float = 0.0
    reviewed_at: str = ""
    provider: Optional[str] = None
    raw_output: Optional[str] = None  # Kept when the response could not be parsed
    requires_manual_review: bool = False


@dataclass
class ReviewContext:
    """Everything the reviewer needs to judge a task."""
    task_id: str
    task_label: str
    task_description: str
    diff: str
    files_changed: List[str] = field(default_factory=list)
    prd_content: Optional[str] = None
    focus_areas: List[ReviewFindingType] = field(default_factory=lambda: [
        ReviewFindingType.BUG,
        ReviewFindingType.SECURITY,
        ReviewFindingType.PERFORMANCE,
        ReviewFindingType.BEST_PRACTICE,
    ])
