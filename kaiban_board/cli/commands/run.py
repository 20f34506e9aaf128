"""Run task command."""

import sys

import click

from kaiban_board.cli.helpers import echo_notification, load_board, resolve_task
from ...models.task import TaskStatus
from ...services.exceptions import ServiceError


@click.command()
@click.argument('task_id')
@click.option('--provider', type=click.Choice(['auto', 'claude', 'codex', 'cursor']),
              help='AI CLI to use (defaults to the configured provider)')
@click.option('--wait/--no-wait', default=False,
              help='Wait for the session and run the review pipeline afterwards')
@click.pass_context
def run(ctx, task_id, provider, wait):
    """Start an AI session working on a task"""
    kaiban = load_board(ctx.obj.get('workspace'))
    task = resolve_task(kaiban.parser, task_id)
    orchestrator = kaiban.orchestrator(echo_notification)

    try:
        process = orchestrator.execute_task(task.id, provider=None if provider == 'auto' else provider)
    except ServiceError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    log_path = kaiban.executor().log_dir / f"{task.id}.log"
    click.echo(f"🚀 Started AI session for {task.id} (pid {process.pid})")
    click.echo(f"   Log: {log_path}")
    if not wait:
        return

    try:
        returncode = process.wait()
    except KeyboardInterrupt:
        click.echo("\nStopping AI session...")
        kaiban.registry.dispose(task.id)
        sys.exit(130)

    refreshed = kaiban.parser.get_task(task.id)
    status = refreshed.status if refreshed else task.status
    click.echo(f"Session exited with code {returncode}; task is {status.value}")
    if status == TaskStatus.AI_REVIEW:
        decision = orchestrator.handle_status_change(task.id, status)
        if decision is not None:
            click.echo(f"   Pipeline: {decision.value}")
