"""Board and list commands."""

import click
from rich.console import Console
from rich.table import Table

from kaiban_board.cli.helpers import format_task_table, load_board
from ...core.task_parser import group_by_status, sort_tasks
from ...models.task import COLUMN_DEFAULT_AGENTS, TaskStatus

STATUS_CHOICES = click.Choice([s.value for s in TaskStatus], case_sensitive=False)

COLUMN_STYLES = {
    TaskStatus.BACKLOG: "white",
    TaskStatus.PLANNING: "blue",
    TaskStatus.IN_PROGRESS: "yellow",
    TaskStatus.AI_REVIEW: "magenta",
    TaskStatus.HUMAN_REVIEW: "cyan",
    TaskStatus.DONE: "green",
    TaskStatus.ARCHIVED: "bright_black",
    TaskStatus.BLOCKED: "red",
}

# Shown unless requested explicitly
HIDDEN_COLUMNS = {TaskStatus.ARCHIVED}


@click.command()
@click.option('--column', '-c', 'columns', multiple=True, type=STATUS_CHOICES,
              help='Only show these columns (repeatable)')
@click.pass_context
def board(ctx, columns):
    """Show tasks grouped by status column"""
    console = Console()
    kaiban = load_board(ctx.obj.get('workspace'))
    tasks = kaiban.parser.parse_all()

    if not tasks:
        console.print(f"[yellow]No tasks found in {kaiban.config.tasks_dir}[/yellow]")
        return

    selected = [TaskStatus.from_value(c) for c in columns] or [
        s for s in TaskStatus if s not in HIDDEN_COLUMNS
    ]
    grouped = group_by_status(tasks)
    for status in selected:
        column_tasks = grouped[status]
        default_agent = COLUMN_DEFAULT_AGENTS[status]
        if not column_tasks and not columns:
            continue
        table = Table(title=f"{status.value} ({len(column_tasks)})", title_style=COLUMN_STYLES[status])
        table.add_column("ID", style="cyan", no_wrap=True)
        table.add_column("Priority")
        table.add_column("Type")
        table.add_column("Label", style="white")
        table.add_column("Agent", style="green")
        for task in column_tasks:
            agent = task.assigned_agent or (default_agent.value if default_agent else "")
            table.add_row(task.id, task.priority.value, task.type, task.label, agent)
        console.print(table)


@click.command(name='list')
@click.option('--status', type=STATUS_CHOICES, help='Filter by task status')
@click.pass_context
def list_tasks(ctx, status):
    """List tasks as a table"""
    kaiban = load_board(ctx.obj.get('workspace'))
    tasks = kaiban.parser.parse_all()
    if status:
        wanted = TaskStatus.from_value(status)
        tasks = [t for t in tasks if t.status == wanted]

    if not tasks:
        click.echo("No tasks found")
        return
    click.echo(format_task_table(sort_tasks(tasks)))
