"""Tests for AI code review."""

import json
import subprocess
from unittest.mock import MagicMock, Mock, patch

import pytest

from kaiban_board.core.review import REVIEW_PROVIDERS, ReviewService
from kaiban_board.models.review import (
    ReviewContext,
    ReviewFinding,
    ReviewFindingType,
    ReviewRating,
    ReviewResult,
    ReviewSeverity,
)
from kaiban_board.services.exceptions import AIResponseError, CommandTimeoutError


@pytest.fixture
def context():
    return ReviewContext(
        task_id="task-1",
        task_label="Add login page",
        task_description="Build the login form",
        diff="diff --git a/app.py b/app.py\n+print('hi')\n",
        files_changed=["app.py"],
        prd_content="# PRD\n" + "x" * 2000,
    )


@pytest.fixture
def detection():
    detection = MagicMock()
    detection.require_provider.return_value = "codex"
    detection.executable_for.side_effect = lambda name: f"/usr/bin/{name}"
    return detection


@pytest.fixture
def service(tmp_path, detection):
    return ReviewService(tmp_path, detection)


class TestBuildPrompt:
    """Test cases for the review prompt."""

    def test_prompt_sections(self, service, context):
        prompt = service.build_prompt(context)
        assert "- **Task:** Add login page" in prompt
        assert "- app.py" in prompt
        assert "Logic errors, incorrect behavior, edge cases" in prompt
        assert '"overallRating": "pass|needs_work|critical_issues"' in prompt

    def test_prd_is_abbreviated(self, service, context):
        prompt = service.build_prompt(context)
        assert "x" * 2000 not in prompt
        assert "..." in prompt


class TestParseResponse:
    """Test cases for reading reviewer output."""

    def test_structured_response(self, service, context):
        output = "Here is my review:\n```json\n" + json.dumps({
            "summary": "Mostly fine",
            "overallRating": "NEEDS_WORK",
            "findings": [
                {"type": "bug", "severity": "high", "filePath": "app.py", "lineNumber": 3,
                 "description": "Crashes on empty input", "suggestion": "Guard it"},
                {"type": "weird", "severity": "bogus", "lineNumber": "7"},
                "not a finding",
            ],
            "suggestedActions": ["Add a test"],
        }) + "\n```"

        result = service.parse_response(output, context, duration=1.5, provider="codex")

        assert result.overall_rating == ReviewRating.NEEDS_WORK
        assert len(result.findings) == 2
        first, second = result.findings
        assert first.severity == ReviewSeverity.HIGH
        assert first.line_number == 3
        assert second.type == ReviewFindingType.OTHER
        assert second.severity == ReviewSeverity.MEDIUM
        assert second.file_path == "unknown"
        assert second.line_number is None
        assert result.suggested_actions == ["Add a test"]
        assert result.files_reviewed == ["app.py"]
        assert not result.requires_manual_review

    def test_unknown_rating_defaults_to_needs_work(self, service, context):
        result = service.parse_response('{"overallRating": "great"}', context)
        assert result.overall_rating == ReviewRating.NEEDS_WORK
        assert result.summary == "Review completed"

    def test_unparseable_output_requires_manual_review(self, service, context):
        result = service.parse_response("I could not review this.", context)

        assert result.requires_manual_review
        assert result.raw_output == "I could not review this."
        assert result.summary == "I could not review this."
        assert result.findings[0].severity == ReviewSeverity.INFO


class TestRunReview:
    """Test cases for invoking the reviewer CLI."""

    @patch('subprocess.run')
    def test_prompt_goes_over_stdin(self, mock_run, service, context, detection):
        mock_run.return_value = Mock(stdout='{"overallRating": "pass", "summary": "LGTM"}')

        result = service.run_review(context)

        assert result.overall_rating == ReviewRating.PASS
        assert result.provider == "codex"
        detection.require_provider.assert_called_once_with("auto", allowed=REVIEW_PROVIDERS)
        args, kwargs = mock_run.call_args
        assert args[0] == ["/usr/bin/codex"]
        assert "Add login page" in kwargs['input']
        assert kwargs['timeout'] == 180

    @patch('subprocess.run')
    def test_claude_runs_in_print_mode(self, mock_run, service, context, detection):
        detection.require_provider.return_value = "claude"
        mock_run.return_value = Mock(stdout="{}")
        service.run_review(context)
        assert mock_run.call_args[0][0] == ["/usr/bin/claude", "--print"]

    @patch('subprocess.run', side_effect=subprocess.TimeoutExpired(["codex"], 180))
    def test_timeout(self, mock_run, service, context):
        with pytest.raises(CommandTimeoutError, match="timed out"):
            service.run_review(context)

    @patch('subprocess.run', side_effect=subprocess.CalledProcessError(2, ["codex"], stderr="rate limited"))
    def test_cli_failure(self, mock_run, service, context):
        with pytest.raises(AIResponseError, match="rate limited"):
            service.run_review(context)


def test_format_for_display_orders_by_severity():
    result = ReviewResult(
        summary="Two issues",
        overall_rating=ReviewRating.CRITICAL_ISSUES,
        findings=[
            ReviewFinding(ReviewFindingType.STYLE, ReviewSeverity.LOW, "a.py", "Naming"),
            ReviewFinding(ReviewFindingType.SECURITY, ReviewSeverity.CRITICAL, "b.py", "SQL injection",
                          line_number=10, suggestion="Use parameters"),
        ],
        suggested_actions=["Patch query"],
        files_reviewed=["a.py", "b.py"],
    )
    text = ReviewService.format_for_display(result)

    assert "critical_issues" in text
    assert text.index("[CRITICAL]") < text.index("[LOW]")
    assert "b.py:10" in text
    assert "*Suggestion:* Use parameters" in text
    assert "- [ ] Patch query" in text
