"""Core board logic: task files, pipeline, batch execution and changelogs."""

from .task_parser import TaskParser
from .session_registry import SessionRegistry
from .executor import TaskExecutor
from .pipeline import PipelineDecision, PipelineOrchestrator
from .batch_executor import BatchExecutor, BatchProgress
from .changelog import ChangelogService

__all__ = [
    'TaskParser',
    'SessionRegistry',
    'TaskExecutor',
    'PipelineDecision',
    'PipelineOrchestrator',
    'BatchExecutor',
    'BatchProgress',
    'ChangelogService',
]
