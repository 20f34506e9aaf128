"""Worktree command group."""

import click

from .create import create
from .remove import remove
from .list_worktrees import list_worktrees
from .prune import prune


@click.group()
def worktree():
    """Manage per-task git worktrees."""
    pass


# Add subcommands
worktree.add_command(create)
worktree.add_command(remove)
worktree.add_command(list_worktrees, name='list')
worktree.add_command(prune)
