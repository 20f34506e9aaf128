"""Main CLI entry point for Kaiban Board."""

import logging
from pathlib import Path

import click

from .commands.board import board, list_tasks
from .commands.show import show
from .commands.move import move
from .commands.reject import reject
from .commands.run import run
from .commands.review import review
from .commands.batch import batch
from .commands.merge import merge
from .commands.worktree import worktree
from .commands.changelog import changelog
from .commands.github import github


@click.group()
@click.option('--workspace', '-w', type=click.Path(file_okay=False, path_type=Path),
              envvar='KAIBAN_WORKSPACE', help='Workspace root (defaults to the current directory)')
@click.option('--verbose', '-v', is_flag=True, help='Enable debug logging')
@click.pass_context
def cli(ctx, workspace, verbose):
    """Kaiban Board - Markdown task board driving AI coding CLIs"""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format='%(levelname)s %(name)s: %(message)s',
    )
    ctx.ensure_object(dict)
    ctx.obj['workspace'] = workspace


# Register commands
cli.add_command(board)
cli.add_command(list_tasks)
cli.add_command(show)
cli.add_command(move)
cli.add_command(reject)
cli.add_command(run)
cli.add_command(review)
cli.add_command(batch)
cli.add_command(merge)
cli.add_command(worktree)
cli.add_command(changelog)
cli.add_command(github)


if __name__ == '__main__':
    cli()
