"""Status-driven review, retry and merge pipeline for tasks."""

import logging
from enum import Enum
from typing import Callable, List, Optional

from ..models.config import BoardConfig
from ..models.merge import AIMergeResult, PipelineState, PipelineStatus
from ..models.review import ReviewContext, ReviewFinding, ReviewRating, ReviewResult, ReviewSeverity
from ..models.task import TaskRecord, TaskStatus, WorktreeStatus
from ..models.worktree import MergeOptions
from ..services.exceptions import ServiceError, TaskNotFoundError
from ..services.worktree_service import WorktreeManager, transition_status
from ..utils.timestamps import utc_now_iso
from .ai_merge import AIMergeService, MergePromptContext
from .executor import TaskExecutor
from .prd import PrdService
from .review import ReviewService
from .session_registry import SessionRegistry
from .task_parser import TaskParser

logger = logging.getLogger(__name__)

# level, message
Notifier = Callable[[str, str], None]

NOISE_SEVERITIES = {ReviewSeverity.INFO, ReviewSeverity.LOW}


class PipelineDecision(Enum):
    """What the pipeline did with a review verdict."""
    FINAL_EXECUTION = "final_execution"
    RETRY = "retry"
    HUMAN_REVIEW = "human_review"
    SKIPPED = "skipped"
    FAILED = "failed"


def _log_notifier(level: str, message: str) -> None:
    logger.log(logging.getLevelName(level.upper()), message)


def format_findings(findings: List[ReviewFinding], label: str) -> List[str]:
    """Render findings as prompt feedback lines."""
    lines = []
    for finding in findings:
        line = f"[{finding.severity.value}] {finding.description}"
        if finding.suggestion:
            line += f" - {label}: {finding.suggestion}"
        lines.append(line)
    return lines


class PipelineOrchestrator:
    """Decides what happens to a task after status changes and review verdicts.

    Decisions for one task are serialized through the session registry lock.
    Review verdicts drive retries; failures to reach a collaborator are
    reported and leave the task eligible for another attempt without using
    up its retry budget.
    """

    def __init__(self, parser: TaskParser, registry: SessionRegistry,
                 config: Optional[BoardConfig] = None,
                 executor: Optional[TaskExecutor] = None,
                 reviewer: Optional[ReviewService] = None,
                 prd: Optional[PrdService] = None,
                 worktrees: Optional[WorktreeManager] = None,
                 merger: Optional[AIMergeService] = None,
                 notifier: Optional[Notifier] = None):
        self.parser = parser
        self.registry = registry
        self.config = config or BoardConfig()
        self.executor = executor
        self.reviewer = reviewer
        self.prd = prd
        self.worktrees = worktrees
        self.merger = merger
        self.notify = notifier or _log_notifier

    def _require_task(self, task_id: str) -> TaskRecord:
        task = self.parser.get_task(task_id)
        if task is None:
            raise TaskNotFoundError(f"Task not found: {task_id}")
        return task

    def retry_count(self, task_id: str) -> int:
        if not self.registry.has_state(task_id):
            return 0
        return self.registry.get_state(task_id).retry_count

    def reset(self, task_id: str) -> None:
        """Forget retry and merge state for a task."""
        self.registry.clear_state(task_id)

    # Status changes

    def update_task_status(self, task_id: str, status: TaskStatus,
                           order: Optional[int] = None) -> Optional[PipelineDecision]:
        """Move a task, sync its PRD and run the hooks for the new column."""
        self.parser.update_status(task_id, status, order)
        self.sync_prd(task_id, status)
        return self.handle_status_change(task_id, status)

    def sync_prd(self, task_id: str, status: TaskStatus) -> bool:
        if not (self.config.sync_prd_status and self.prd):
            return False
        task = self.parser.get_task(task_id)
        return bool(task and self.prd.sync_status(task, status))

    def handle_status_change(self, task_id: str, status: TaskStatus) -> Optional[PipelineDecision]:
        if status == TaskStatus.AI_REVIEW:
            pipeline = self.config.pipeline
            if pipeline.enabled and pipeline.auto_review_on_ai_review and self.reviewer:
                return self.run_review(task_id)
        elif status in (TaskStatus.DONE, TaskStatus.HUMAN_REVIEW):
            self.registry.clear_state(task_id)
            logger.debug(f"Cleared pipeline state for task {task_id}")
        return None

    # Review

    def build_review_context(self, task: TaskRecord) -> ReviewContext:
        """Collect the changes to review: the task branch if it has one, else the working tree."""
        diff, files = "", []
        if self.worktrees and task.worktree and task.worktree.branch:
            base = task.worktree.base_branch or None
            diff = self.worktrees.get_worktree_diff(task.id, base)
            files = self.worktrees.get_changed_files(task.id, base)
        elif self.worktrees:
            diff = self.worktrees.git.get_working_diff()
            files = self.worktrees.git.get_uncommitted_changes()
        return ReviewContext(
            task_id=task.id,
            task_label=task.label,
            task_description=task.description,
            diff=diff,
            files_changed=files,
            prd_content=self.prd.load_content(task) if self.prd else None,
        )

    def run_review(self, task_id: str) -> Optional[PipelineDecision]:
        """Review a task's changes and act on the verdict.

        Returns:
            The decision taken, FAILED if the reviewer could not be reached,
            or None when there was nothing to review

        Raises:
            TaskNotFoundError: If the task does not exist
        """
        if self.reviewer is None:
            raise ValueError("No reviewer configured")

        with self.registry.lock_for(task_id):
            task = self._require_task(task_id)
            try:
                context = self.build_review_context(task)
            except ServiceError as e:
                self.notify("error", f"Review failed for task {task_id}: {e}")
                return PipelineDecision.FAILED
            if not context.diff.strip():
                self.notify("warning", f"No changes to review for task {task_id}")
                return None

            state = self.registry.get_state(task_id)
            try:
                state.status = PipelineStatus.REVIEW
                result = self.reviewer.run_review(context)
            except ServiceError as e:
                state.status = PipelineStatus.PENDING
                state.last_error = str(e)
                self.notify("error", f"Review failed for task {task_id}: {e}")
                return PipelineDecision.FAILED

            return self.handle_review_result(task_id, result)

    def handle_review_result(self, task_id: str, result: ReviewResult) -> PipelineDecision:
        """Apply the retry policy to a review verdict."""
        with self.registry.lock_for(task_id):
            state = self.registry.get_state(task_id)
            state.review_result = result
            pipeline = self.config.pipeline

            if not pipeline.enabled:
                return PipelineDecision.SKIPPED

            if result.requires_manual_review:
                return self._escalate(task_id, "Review requires human attention")

            if result.overall_rating == ReviewRating.PASS:
                state.retry_count = 0
                feedback = format_findings(result.findings, "Suggestion")
                logger.info(f"Review passed for task {task_id}, running final execution")
                return self._execute(task_id, state, feedback, PipelineDecision.FINAL_EXECUTION)

            if pipeline.on_review_fail == "auto-retry" and state.retry_count < pipeline.max_retry_iterations:
                attempt = state.retry_count + 1
                actionable = [f for f in result.findings if f.severity not in NOISE_SEVERITIES]
                logger.info(
                    f"Review {result.overall_rating.value} for task {task_id}, "
                    f"retry {attempt}/{pipeline.max_retry_iterations}"
                )
                decision = self._execute(task_id, state, format_findings(actionable, "Fix"), PipelineDecision.RETRY)
                # Only a retry that actually started counts against the limit
                if decision == PipelineDecision.RETRY:
                    state.retry_count = attempt
                return decision

            if pipeline.on_review_fail == "auto-retry":
                reason = f"Max retries ({pipeline.max_retry_iterations}) exceeded"
            else:
                reason = "Review requires human attention"
            return self._escalate(task_id, reason)

    def _execute(self, task_id: str, state: PipelineState, feedback: List[str],
                 decision: PipelineDecision) -> PipelineDecision:
        if self.executor is None:
            self.notify("error", f"No executor configured to continue task {task_id}")
            state.status = PipelineStatus.PENDING
            return PipelineDecision.FAILED
        self.registry.stop_process(task_id)
        try:
            self.executor.execute(task_id, review_feedback=feedback)
        except ServiceError as e:
            state.status = PipelineStatus.PENDING
            state.last_error = str(e)
            self.notify("error", f"Could not start AI execution for task {task_id}: {e}")
            return PipelineDecision.FAILED
        state.status = PipelineStatus.IN_PROGRESS
        return decision

    def _escalate(self, task_id: str, reason: str) -> PipelineDecision:
        self.registry.get_state(task_id).retry_count = 0
        self.parser.update_status(task_id, TaskStatus.HUMAN_REVIEW)
        self.sync_prd(task_id, TaskStatus.HUMAN_REVIEW)
        self.handle_status_change(task_id, TaskStatus.HUMAN_REVIEW)
        self.notify("warning", f"Task {task_id} moved to Human Review: {reason}")
        return PipelineDecision.HUMAN_REVIEW

    def execute_task(self, task_id: str, provider: Optional[str] = None):
        """Start an AI session for a task. Raises TaskAlreadyRunningError if one is live."""
        if self.executor is None:
            raise ValueError("No executor configured")
        return self.executor.execute(task_id, provider=provider)

    # Merge

    def _require_worktrees(self) -> WorktreeManager:
        if self.worktrees is None:
            raise ValueError("No worktree manager configured")
        return self.worktrees

    def _require_merge_state(self, task_id: str, expected: PipelineStatus) -> PipelineState:
        state = self.registry.get_state(task_id)
        if state.status != expected:
            raise ValueError(f"Task {task_id} merge is {state.status.value}, expected {expected.value}")
        return state

    def start_merge(self, task_id: str, options: Optional[MergeOptions] = None) -> PipelineState:
        """Merge a task branch into its base, recording conflicts when the merge stops.

        Raises:
            TaskNotFoundError: If the task does not exist
            GitServiceError: If the merge failed for a non-conflict reason
        """
        worktrees = self._require_worktrees()
        options = options or worktrees.merge_options()
        with self.registry.lock_for(task_id):
            task = self._require_task(task_id)
            state = self.registry.get_state(task_id)
            state.source_branch = worktrees.branch_name_for(task_id)
            state.target_branch = options.target_branch or worktrees.get_default_base_branch()
            state.started_at = utc_now_iso()
            state.status = PipelineStatus.IN_PROGRESS
            try:
                result = worktrees.start_merge(task_id, options)
                if result.has_conflicts:
                    state.conflict_files = worktrees.git.get_all_conflicts()
                    state.status = PipelineStatus.CONFLICTS
                    self.notify("warning", f"Merge of {task_id} has conflicts in "
                                           f"{', '.join(result.conflict_files)}")
                    return state
            except ServiceError as e:
                state.status = PipelineStatus.ABORTED
                state.last_error = str(e)
                self.notify("error", f"Merge failed for task {task_id}: {e}")
                raise

            self._finish_merge(task, state)
            return state

    def resolve_merge_with_ai(self, task_id: str) -> AIMergeResult:
        """Ask the AI for resolutions of the recorded conflicts."""
        if self.merger is None:
            raise ValueError("No AI merge service configured")
        with self.registry.lock_for(task_id):
            task = self._require_task(task_id)
            state = self._require_merge_state(task_id, PipelineStatus.CONFLICTS)
            state.status = PipelineStatus.AI_RESOLVING
            context = MergePromptContext(
                task_id=task.id,
                task_label=task.label,
                task_description=task.description,
                conflicts=state.conflict_files,
                prd_content=self.prd.load_content(task) if self.prd else None,
            )
            try:
                result = self.merger.resolve(context)
            except ServiceError as e:
                state.status = PipelineStatus.CONFLICTS
                state.last_error = str(e)
                self.notify("error", f"AI merge failed for task {task_id}: {e}")
                raise

            state.ai_result = result
            state.status = PipelineStatus.REVIEW if result.success else PipelineStatus.CONFLICTS
            if not result.success:
                state.last_error = result.error
            return result

    def accept_merge(self, task_id: str, options: Optional[MergeOptions] = None) -> PipelineState:
        """Write the AI resolutions, commit the merge and clean up.

        Raises:
            ResolutionCountMismatchError: If a file's resolutions do not match its conflicts
            AIResponseError: If a conflicting file has no resolution
        """
        worktrees = self._require_worktrees()
        with self.registry.lock_for(task_id):
            task = self._require_task(task_id)
            state = self._require_merge_state(task_id, PipelineStatus.REVIEW)
            try:
                self.merger.apply(state.conflict_files, state.ai_result, worktrees.repo_path)
                worktrees.complete_merge(task_id, options)
            except (ServiceError, ValueError) as e:
                state.status = PipelineStatus.CONFLICTS
                state.last_error = str(e)
                self.notify("error", f"Could not apply resolutions for task {task_id}: {e}")
                raise
            self._finish_merge(task, state)
            return state

    def abort_merge(self, task_id: str) -> PipelineState:
        worktrees = self._require_worktrees()
        with self.registry.lock_for(task_id):
            state = self.registry.get_state(task_id)
            worktrees.abort_merge()
            state.status = PipelineStatus.ABORTED
            state.completed_at = utc_now_iso()
            self.notify("info", f"Merge aborted for task {task_id}")
            return state

    def _finish_merge(self, task: TaskRecord, state: PipelineState) -> None:
        state.status = PipelineStatus.COMPLETED
        state.completed_at = utc_now_iso()
        if task.worktree:
            worktree = task.worktree
            try:
                worktree.status = transition_status(worktree.status, WorktreeStatus.MERGED)
            except ValueError as e:
                logger.warning(f"Not marking worktree of {task.id} as merged: {e}")
            else:
                self.parser.update_worktree(task.id, worktree)
        self.notify("info", f"Merged task {task.id} into {state.target_branch}")
