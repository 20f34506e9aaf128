"""Batch execution command."""

import sys

import click
import questionary
from rich.console import Console

from kaiban_board.cli.helpers import echo_notification, load_board, resolve_task
from .board import STATUS_CHOICES
from ...core.batch_executor import BatchExecutor
from ...core.task_parser import sort_tasks
from ...models.task import TaskStatus


@click.command()
@click.argument('task_ids', nargs=-1)
@click.option('--column', '-c', type=STATUS_CHOICES, default=TaskStatus.PLANNING.value,
              show_default=True, help='Column to pick tasks from when no IDs are given')
@click.option('--all', 'select_all', is_flag=True, help='Run every task in the column without prompting')
@click.pass_context
def batch(ctx, task_ids, column, select_all):
    """Run several tasks one after another"""
    console = Console()
    kaiban = load_board(ctx.obj.get('workspace'))

    if task_ids:
        selected = [resolve_task(kaiban.parser, task_id).id for task_id in task_ids]
    else:
        status = TaskStatus.from_value(column)
        candidates = sort_tasks(t for t in kaiban.parser.parse_all() if t.status == status)
        if not candidates:
            console.print(f"[yellow]No tasks in {status.value}[/yellow]")
            return

        if select_all or not sys.stdin.isatty():
            selected = [t.id for t in candidates]
        else:
            console.print(f"\n[cyan]Select tasks from {status.value} to run:[/cyan]")
            selected = questionary.checkbox(
                "Tasks:",
                choices=[questionary.Choice(f"{t.id}: {t.label}", value=t.id) for t in candidates]
            ).ask()

    if not selected:
        console.print("[yellow]No tasks selected[/yellow]")
        return

    executor = BatchExecutor(kaiban.parser, kaiban.executor(), kaiban.registry,
                             kaiban.config.batch, notifier=echo_notification)
    console.print(f"[green]Running {len(selected)} task(s): {', '.join(selected)}[/green]")
    executor.start_batch(selected)
    try:
        executor.join()
    except KeyboardInterrupt:
        console.print("\n[yellow]Cancelling batch...[/yellow]")
        executor.cancel_batch()
        executor.join()

    progress = executor.progress
    if progress.skipped:
        console.print(f"[yellow]Skipped: {', '.join(progress.skipped)}[/yellow]")
    if progress.cancelled:
        if progress.cancelled_task:
            console.print(f"[yellow]Cancelled: {progress.cancelled_task}[/yellow]")
        console.print(f"[yellow]{progress.remaining} task(s) not run[/yellow]")
        sys.exit(130)
