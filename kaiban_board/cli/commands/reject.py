"""Reject task command."""

import sys

import click

from kaiban_board.cli.helpers import load_board, resolve_task
from ...services.exceptions import ServiceError


@click.command()
@click.argument('task_id')
@click.option('--note', '-n', help='Why the work was rejected')
@click.pass_context
def reject(ctx, task_id, note):
    """Send a task back to Backlog with a rejection note"""
    kaiban = load_board(ctx.obj.get('workspace'))
    task = resolve_task(kaiban.parser, task_id)

    try:
        kaiban.parser.reject_task(task.id, note)
    except ServiceError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    click.echo(f"↩️  Task {task.id} rejected (rejections: {task.rejection_count + 1})")
