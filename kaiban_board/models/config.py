"""Board configuration models."""

from typing import Literal
from pydantic import BaseModel, Field

DEFAULT_PROMPT_TEMPLATE = (
    "Read the task file at {taskFile} and implement it. The task contains a link "
    "to the PRD with full requirements. Update the task status to Done when complete."
)


class WorktreeConfig(BaseModel):
    """Git worktree isolation settings."""
    enabled: bool = False
    base_path: str = ".worktrees"
    branch_prefix: str = "task/"
    default_base_branch: str = "main"
    auto_cleanup: bool = True


class PipelineConfig(BaseModel):
    """Review/retry pipeline settings."""
    enabled: bool = True
    auto_review_on_ai_review: bool = True
    on_review_fail: Literal["auto-retry", "human-review"] = "auto-retry"
    max_retry_iterations: int = Field(default=2, ge=0)


class BatchConfig(BaseModel):
    """Batch execution settings."""
    execution_timeout_minutes: float = Field(default=30, gt=0)
    poll_interval_seconds: float = Field(default=10, gt=0)


class RalphConfig(BaseModel):
    """Iterative execution loop wrapped around the Claude CLI."""
    command: str = "/ralph-loop:ralph-loop"
    max_iterations: int = Field(default=5, ge=1)
    completion_promise: str = "TASK COMPLETE"


class BoardConfig(BaseModel):
    """Configuration for a workspace board."""
    tasks_dir: str = ".agent/TASKS"
    prd_base_path: str = ".agent/PRDS"
    cli_provider: Literal["auto", "claude", "codex", "cursor"] = "auto"
    prompt_template: str = DEFAULT_PROMPT_TEMPLATE
    sync_prd_status: bool = True
    worktree: WorktreeConfig = Field(default_factory=WorktreeConfig)
    pipeline: PipelineConfig = Field(default_factory=PipelineConfig)
    batch: BatchConfig = Field(default_factory=BatchConfig)
    ralph: RalphConfig = Field(default_factory=RalphConfig)
