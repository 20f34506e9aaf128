"""Prune worktrees command."""

import sys

import click

from kaiban_board.cli.helpers import load_board, require_worktrees
from ....services.exceptions import GitServiceError


@click.command()
@click.pass_context
def prune(ctx):
    """Clean up stale worktree records"""
    kaiban = load_board(ctx.obj.get('workspace'))
    worktrees = require_worktrees(kaiban)

    try:
        pruned = worktrees.prune_worktrees()
    except GitServiceError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    click.echo(f"🧹 Pruned {pruned} stale worktree(s)")
