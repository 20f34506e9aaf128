"""Create worktree command."""

import sys

import click

from kaiban_board.cli.helpers import load_board, require_worktrees, resolve_task


@click.command()
@click.argument('task_id')
@click.option('--base', help='Branch to start from (defaults to the repository default)')
@click.pass_context
def create(ctx, task_id, base):
    """Create an isolated worktree for a task"""
    kaiban = load_board(ctx.obj.get('workspace'))
    worktrees = require_worktrees(kaiban)
    task = resolve_task(kaiban.parser, task_id)

    result = worktrees.create_worktree(task.id, base)
    if not result.success:
        click.echo(f"Error: {result.error}", err=True)
        sys.exit(1)

    kaiban.parser.update_worktree(task.id, worktrees.create_metadata(task.id, base))
    click.echo(f"🌳 Worktree ready for {task.id}")
    click.echo(f"   Path: {result.path}")
    click.echo(f"   Branch: {result.branch}")
