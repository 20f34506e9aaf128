"""Tests for task model enums."""

import pytest

from kaiban_board.models.task import (
    COLUMN_DEFAULT_AGENTS,
    AgentType,
    TaskPriority,
    TaskRecord,
    TaskStatus,
)


class TestTaskStatus:
    """Test cases for TaskStatus."""

    @pytest.mark.parametrize("value,expected", [
        ("In Progress", TaskStatus.IN_PROGRESS),
        ("  human review ", TaskStatus.HUMAN_REVIEW),
        ("AI REVIEW", TaskStatus.AI_REVIEW),
        ("To Do", TaskStatus.BACKLOG),
        ("Doing", TaskStatus.IN_PROGRESS),
        ("Testing", TaskStatus.AI_REVIEW),
        ("Someday", TaskStatus.BACKLOG),
    ])
    def test_from_value(self, value, expected):
        assert TaskStatus.from_value(value) == expected

    def test_every_column_has_agent_default(self):
        assert set(COLUMN_DEFAULT_AGENTS) == set(TaskStatus)
        assert COLUMN_DEFAULT_AGENTS[TaskStatus.AI_REVIEW] == AgentType.CODEX
        assert COLUMN_DEFAULT_AGENTS[TaskStatus.DONE] is None


class TestTaskPriority:
    """Test cases for TaskPriority."""

    def test_from_value(self):
        assert TaskPriority.from_value("high") == TaskPriority.HIGH
        assert TaskPriority.from_value("whenever") == TaskPriority.MEDIUM


def test_completed_property():
    task = TaskRecord(id="t1", file_path="t1.md", label="Thing", status=TaskStatus.DONE)
    assert task.completed
    task.status = TaskStatus.HUMAN_REVIEW
    assert not task.completed
