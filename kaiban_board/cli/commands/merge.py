"""Merge task branch command."""

import sys

import click
import questionary
from rich.console import Console
from rich.table import Table

from kaiban_board.cli.helpers import echo_notification, load_board, require_worktrees, resolve_task
from ...models.merge import PipelineStatus
from ...models.worktree import MergeOptions
from ...services.exceptions import ServiceError
from ...services.github_service import GitHubService


@click.command()
@click.argument('task_id')
@click.option('--target', help='Branch to merge into (defaults to the repository default)')
@click.option('--ai', 'use_ai', is_flag=True, help='Ask an AI CLI to resolve conflicts')
@click.option('--yes', '-y', is_flag=True, help='Accept AI resolutions without confirmation')
@click.option('--keep-worktree', is_flag=True, help='Keep the worktree after merging')
@click.option('--keep-branch', is_flag=True, help='Keep the task branch after merging')
@click.option('--abort', is_flag=True, help='Abort a merge left in progress')
@click.option('--close-issue', is_flag=True, help='Close the linked GitHub issue after merging')
@click.pass_context
def merge(ctx, task_id, target, use_ai, yes, keep_worktree, keep_branch, abort, close_issue):
    """Merge a task's branch back into its base branch"""
    console = Console()
    kaiban = load_board(ctx.obj.get('workspace'))
    worktrees = require_worktrees(kaiban)
    task = resolve_task(kaiban.parser, task_id)
    orchestrator = kaiban.orchestrator(echo_notification)

    if abort:
        if not worktrees.git.is_merge_in_progress():
            click.echo("Error: No merge in progress", err=True)
            sys.exit(1)
        try:
            orchestrator.abort_merge(task.id)
        except ServiceError as e:
            click.echo(f"Error: {e}", err=True)
            sys.exit(1)
        return

    options = MergeOptions(
        target_branch=target,
        delete_branch_after_merge=not keep_branch,
        remove_worktree_after_merge=not keep_worktree and kaiban.config.worktree.auto_cleanup,
    )
    try:
        state = orchestrator.start_merge(task.id, options)
    except ServiceError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if state.status == PipelineStatus.COMPLETED:
        console.print(f"[green]✅ Merged {state.source_branch} into {state.target_branch}[/green]")
        if close_issue:
            _close_linked_issue(kaiban.workspace, task, state.target_branch)
        return

    console.print(f"[yellow]Conflicts in {len(state.conflict_files)} file(s):[/yellow]")
    for conflict_file in state.conflict_files:
        console.print(f"  - {conflict_file.file_path} ({len(conflict_file.conflicts)} conflict(s))")

    if not use_ai:
        console.print("Resolve the conflicts and commit, or run with --abort to cancel the merge.")
        sys.exit(1)

    try:
        result = orchestrator.resolve_merge_with_ai(task.id)
    except ServiceError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if not result.success:
        click.echo(f"Error: AI could not resolve conflicts: {result.error}", err=True)
        sys.exit(1)

    table = Table(title=f"AI resolutions ({result.provider})")
    table.add_column("File", style="cyan", no_wrap=True)
    table.add_column("Confidence")
    table.add_column("Explanation", style="white")
    for resolution in result.resolutions:
        table.add_row(resolution.file_path, resolution.confidence.value, resolution.explanation)
    console.print(table)
    if result.summary:
        console.print(result.summary)

    if not yes and not questionary.confirm("Apply these resolutions and commit the merge?").ask():
        orchestrator.abort_merge(task.id)
        console.print("[yellow]Merge aborted[/yellow]")
        return

    try:
        orchestrator.accept_merge(task.id, options)
    except (ServiceError, ValueError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    console.print(f"[green]✅ Merged {state.source_branch} with AI resolutions[/green]")
    if close_issue:
        _close_linked_issue(kaiban.workspace, task, state.target_branch)


def _close_linked_issue(workspace, task, target_branch):
    if not (task.github and task.github.issue_number):
        click.echo(f"   {task.id} has no linked GitHub issue")
        return
    try:
        GitHubService(workspace).close_issue(
            task.github.issue_number, comment=f"Merged into {target_branch} ({task.id})")
    except ServiceError as e:
        click.echo(f"Warning: could not close issue #{task.github.issue_number}: {e}", err=True)
        return
    click.echo(f"   Closed issue #{task.github.issue_number}")
