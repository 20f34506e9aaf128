"""AI code review of task changes."""

import logging
import subprocess
import time
from enum import Enum
from pathlib import Path
from typing import Any, Optional, Type, TypeVar

from ..models.review import (
    SEVERITY_RANK,
    ReviewContext,
    ReviewFinding,
    ReviewFindingType,
    ReviewRating,
    ReviewResult,
    ReviewSeverity,
)
from ..services.cli_detection import CLIDetectionService
from ..services.exceptions import AIResponseError, CommandTimeoutError
from ..utils.timestamps import utc_now_iso
from .ai_output_parser import extract_json_block
from .constants import (
    FALLBACK_SUMMARY_LIMIT,
    REVIEW_DIFF_LIMIT,
    REVIEW_PRD_LIMIT,
    REVIEW_TIMEOUT,
)

logger = logging.getLogger(__name__)

E = TypeVar("E", bound=Enum)

REVIEW_PROVIDERS = ["codex", "claude"]

FOCUS_AREA_DESCRIPTIONS = {
    ReviewFindingType.BUG: "Logic errors, incorrect behavior, edge cases",
    ReviewFindingType.SECURITY: "Vulnerabilities, injection attacks, auth issues",
    ReviewFindingType.PERFORMANCE: "Inefficient algorithms, memory leaks, slow queries",
    ReviewFindingType.STYLE: "Code style, formatting, naming conventions",
    ReviewFindingType.MAINTAINABILITY: "Code complexity, coupling, readability",
    ReviewFindingType.BEST_PRACTICE: "Design patterns, idiomatic code, conventions",
    ReviewFindingType.DOCUMENTATION: "Missing comments, incorrect docs, API docs",
    ReviewFindingType.TEST_COVERAGE: "Missing tests, edge cases not tested",
    ReviewFindingType.OTHER: "Other concerns",
}

RESPONSE_FORMAT = """Respond with JSON in this format:
{
  "summary": "Brief summary of the review",
  "overallRating": "pass|needs_work|critical_issues",
  "findings": [
    {
      "type": "bug|security|performance|style|maintainability|best_practice|documentation|test_coverage|other",
      "severity": "critical|high|medium|low|info",
      "filePath": "path/to/file",
      "lineNumber": 42,
      "description": "What the issue is",
      "suggestion": "How to fix it",
      "codeSnippet": "relevant code"
    }
  ],
  "suggestedActions": ["Specific action to take"]
}"""

RATING_ICONS = {
    ReviewRating.PASS: "✅",
    ReviewRating.NEEDS_WORK: "⚠️",
    ReviewRating.CRITICAL_ISSUES: "❌",
}


def _normalize(enum_cls: Type[E], value: Any, default: E) -> E:
    try:
        return enum_cls(str(value).lower())
    except ValueError:
        return default


def _truncate(text: str, limit: int, marker: str) -> str:
    return text[:limit] + marker if len(text) > limit else text


class ReviewService:
    """Runs a reviewer CLI over a task diff and turns its answer into a ReviewResult."""

    def __init__(self, workspace: Path, cli_detection: Optional[CLIDetectionService] = None,
                 timeout: float = REVIEW_TIMEOUT):
        self.workspace = Path(workspace)
        self.cli_detection = cli_detection or CLIDetectionService()
        self.timeout = timeout

    def build_prompt(self, context: ReviewContext) -> str:
        focus = "\n".join(f"- {FOCUS_AREA_DESCRIPTIONS[area]}" for area in context.focus_areas)
        sections = [
            "You are a senior code reviewer. Review the following changes for a task.",
            "",
            "## Task Information",
            f"- **Task:** {context.task_label}",
            f"- **Description:** {context.task_description}",
            "",
            "## Focus Areas",
            focus,
        ]
        if context.prd_content:
            sections += ["", "## PRD Context (abbreviated)",
                         _truncate(context.prd_content, REVIEW_PRD_LIMIT, "...")]
        sections += [
            "",
            "## Files Changed",
            "\n".join(f"- {f}" for f in context.files_changed),
            "",
            "## Diff to Review",
            "```diff",
            _truncate(context.diff, REVIEW_DIFF_LIMIT, "\n... (truncated)"),
            "```",
            "",
            "## Instructions",
            "",
            "Review the code changes and provide a brief summary, an overall rating, "
            "specific findings with severity and suggestions, and actionable recommendations.",
            "",
            RESPONSE_FORMAT,
            "",
            "Be constructive and specific. Focus on real issues, not style preferences.",
        ]
        return "\n".join(sections)

    def parse_response(self, output: str, context: ReviewContext, duration: float = 0.0,
                       provider: Optional[str] = None) -> ReviewResult:
        """Turn reviewer output into a ReviewResult.

        Output without a usable JSON object yields a result flagged for manual
        review that keeps the raw text.
        """
        data = extract_json_block(output)
        if data is None:
            return self.fallback_result(output, context, duration, provider)

        findings = []
        for item in data.get("findings") or []:
            if not isinstance(item, dict):
                continue
            line_number = item.get("lineNumber")
            findings.append(ReviewFinding(
                type=_normalize(ReviewFindingType, item.get("type"), ReviewFindingType.OTHER),
                severity=_normalize(ReviewSeverity, item.get("severity"), ReviewSeverity.MEDIUM),
                file_path=item.get("filePath") or "unknown",
                description=item.get("description") or "No description",
                line_number=line_number if isinstance(line_number, int) else None,
                suggestion=item.get("suggestion"),
                code_snippet=item.get("codeSnippet"),
            ))

        return ReviewResult(
            summary=data.get("summary") or "Review completed",
            overall_rating=_normalize(ReviewRating, data.get("overallRating"), ReviewRating.NEEDS_WORK),
            findings=findings,
            suggested_actions=[str(a) for a in data.get("suggestedActions") or []],
            files_reviewed=list(context.files_changed),
            lines_reviewed=len(context.diff.split("\n")),
            review_duration=duration,
            reviewed_at=utc_now_iso(),
            provider=provider,
        )

    def fallback_result(self, output: str, context: ReviewContext, duration: float = 0.0,
                        provider: Optional[str] = None) -> ReviewResult:
        logger.warning(f"Review output for task {context.task_id} could not be parsed")
        return ReviewResult(
            summary=output[:FALLBACK_SUMMARY_LIMIT] or "Review completed but response format was unexpected",
            overall_rating=ReviewRating.NEEDS_WORK,
            findings=[ReviewFinding(
                type=ReviewFindingType.OTHER,
                severity=ReviewSeverity.INFO,
                file_path="general",
                description="AI response could not be parsed. Please review manually.",
            )],
            files_reviewed=list(context.files_changed),
            lines_reviewed=len(context.diff.split("\n")),
            review_duration=duration,
            reviewed_at=utc_now_iso(),
            provider=provider,
            raw_output=output,
            requires_manual_review=True,
        )

    def _command(self, provider: str) -> list[str]:
        executable = self.cli_detection.executable_for(provider)
        if provider == "claude":
            return [executable, "--print"]
        return [executable]

    def run_review(self, context: ReviewContext, provider: Optional[str] = None) -> ReviewResult:
        """Review a task's changes, preferring Codex and falling back to Claude.

        Raises:
            CLIUnavailableError: If neither reviewer CLI is installed
            CommandTimeoutError: If the reviewer does not answer in time
            AIResponseError: If the reviewer exits with an error
        """
        chosen = self.cli_detection.require_provider(provider or "auto", allowed=REVIEW_PROVIDERS)
        prompt = self.build_prompt(context)
        started = time.monotonic()
        logger.info(f"Running {chosen} review for task {context.task_id}")
        try:
            result = subprocess.run(
                self._command(chosen),
                input=prompt,
                cwd=self.workspace,
                check=True,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired as e:
            raise CommandTimeoutError(f"{chosen} review timed out after {self.timeout}s") from e
        except subprocess.CalledProcessError as e:
            raise AIResponseError(f"{chosen} review failed: {e.stderr or e}") from e
        except OSError as e:
            raise AIResponseError(f"Could not run {chosen}: {e}") from e

        return self.parse_response(result.stdout, context, time.monotonic() - started, chosen)

    @staticmethod
    def format_for_display(result: ReviewResult) -> str:
        """Markdown summary of a review, findings ordered by severity."""
        lines = [
            "## Code Review",
            "",
            f"**Rating:** {RATING_ICONS[result.overall_rating]} {result.overall_rating.value}",
            "",
            f"**Summary:** {result.summary}",
            "",
        ]
        if result.findings:
            lines += [f"### Findings ({len(result.findings)})", ""]
            for finding in sorted(result.findings, key=lambda f: SEVERITY_RANK[f.severity]):
                location = finding.file_path
                if finding.line_number:
                    location += f":{finding.line_number}"
                lines.append(f"- **[{finding.severity.value.upper()}]** {location}")
                lines.append(f"  {finding.description}")
                if finding.suggestion:
                    lines.append(f"  *Suggestion:* {finding.suggestion}")
                lines.append("")
        if result.suggested_actions:
            lines += ["### Suggested Actions", ""]
            lines += [f"- [ ] {action}" for action in result.suggested_actions]
        lines += ["", "---",
                  f"*Reviewed {len(result.files_reviewed)} files in {result.review_duration:.1f}s*"]
        return "\n".join(lines)
