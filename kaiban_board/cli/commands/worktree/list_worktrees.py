"""List worktrees command."""

import sys

import click

from kaiban_board.cli.helpers import load_board, print_table, require_worktrees
from ....services.exceptions import GitServiceError


@click.command()
@click.pass_context
def list_worktrees(ctx):
    """List git worktrees of the repository"""
    kaiban = load_board(ctx.obj.get('workspace'))
    worktrees = require_worktrees(kaiban)

    try:
        items = worktrees.list_worktrees()
    except GitServiceError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    rows = []
    for item in items:
        flags = []
        if item.is_bare:
            flags.append("bare")
        if item.is_prunable:
            flags.append(click.style("prunable", fg='yellow'))
        rows.append([item.path, item.branch or "(detached)", item.head[:8], " ".join(flags)])
    print_table(["PATH", "BRANCH", "HEAD", ""], rows)
