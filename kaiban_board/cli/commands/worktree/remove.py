"""Remove worktree command."""

import sys

import click

from kaiban_board.cli.helpers import load_board, require_worktrees, resolve_task
from ....models.task import WorktreeStatus
from ....services.exceptions import GitServiceError
from ....services.git_service import GitService
from ....services.worktree_service import transition_status


@click.command()
@click.argument('task_id')
@click.option('--force', '-f', is_flag=True, help='Remove even with uncommitted changes')
@click.option('--keep-branch', is_flag=True, help='Keep the task branch')
@click.pass_context
def remove(ctx, task_id, force, keep_branch):
    """Remove a task's worktree"""
    kaiban = load_board(ctx.obj.get('workspace'))
    worktrees = require_worktrees(kaiban)
    task = resolve_task(kaiban.parser, task_id)

    if not worktrees.worktree_exists(task.id):
        click.echo(f"No worktree found for {task.id}")
    elif not force:
        try:
            dirty = GitService(worktrees.worktree_path_for(task.id)).has_uncommitted_changes()
        except GitServiceError as e:
            click.echo(f"Error: {e}", err=True)
            sys.exit(1)
        if dirty:
            click.echo(f"Error: Worktree for {task.id} has uncommitted changes (use --force to discard them)",
                       err=True)
            sys.exit(1)

    result = worktrees.remove_worktree(task.id, force=force, delete_branch=not keep_branch)
    if not result.success:
        click.echo(f"Error: {result.error}", err=True)
        sys.exit(1)

    if task.worktree and task.worktree.status != WorktreeStatus.REMOVED:
        task.worktree.status = transition_status(task.worktree.status, WorktreeStatus.REMOVED)
        kaiban.parser.update_worktree(task.id, task.worktree)
    click.echo(f"🗑️  Worktree for {task.id} removed")
    if result.branch_deleted:
        click.echo(f"   Branch {worktrees.branch_name_for(task.id)} deleted")
