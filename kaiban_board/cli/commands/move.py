"""Move task command."""

import sys

import click

from kaiban_board.cli.helpers import echo_notification, format_status, load_board, resolve_task
from .board import STATUS_CHOICES
from ...models.task import TaskStatus
from ...services.exceptions import ServiceError


@click.command()
@click.argument('task_id')
@click.argument('status', type=STATUS_CHOICES)
@click.option('--order', type=click.IntRange(min=0), help='Position within the column')
@click.option('--no-hooks', is_flag=True, help='Only rewrite the task file, skip review and PRD sync')
@click.pass_context
def move(ctx, task_id, status, order, no_hooks):
    """Move a task to another column"""
    kaiban = load_board(ctx.obj.get('workspace'))
    task = resolve_task(kaiban.parser, task_id)
    new_status = TaskStatus.from_value(status)

    try:
        if no_hooks:
            kaiban.parser.update_status(task.id, new_status, order)
            decision = None
        else:
            decision = kaiban.orchestrator(echo_notification).update_task_status(task.id, new_status, order)
    except (ServiceError, ValueError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    click.echo(f"✅ {task.id}: {format_status(task.status)} → {format_status(new_status)}")
    if decision is not None:
        click.echo(f"   Pipeline: {decision.value}")
