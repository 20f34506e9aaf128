"""Show task command."""

import click

from kaiban_board.cli.helpers import format_status, load_board, resolve_task
from ...services.exceptions import GitServiceError


@click.command()
@click.argument('task_id')
@click.option('--prd', 'show_prd', is_flag=True, help='Also print the linked PRD')
@click.pass_context
def show(ctx, task_id, show_prd):
    """Show detailed information about a task"""
    kaiban = load_board(ctx.obj.get('workspace'))
    task = resolve_task(kaiban.parser, task_id)

    click.echo("\n" + "=" * 80)
    click.echo(f"Task: {task.label}")
    click.echo("=" * 80)

    click.echo("\n📋 Basic Information:")
    click.echo(f"   ID: {task.id}")
    click.echo(f"   Status: {format_status(task.status)}")
    click.echo(f"   Priority: {task.priority.value}")
    click.echo(f"   Type: {task.type}")
    if task.order is not None:
        click.echo(f"   Order: {task.order}")
    if task.project:
        click.echo(f"   Project: {task.project}")
    click.echo(f"   File: {task.file_path}")
    if task.created:
        click.echo(f"   Created: {task.created}")
    if task.updated:
        click.echo(f"   Updated: {task.updated}")
    if task.completed_at:
        click.echo(f"   Completed: {task.completed_at}")
    if task.claimed_by:
        click.echo(f"   Claimed by: {task.claimed_by} ({task.claimed_at})")
    if task.assigned_agent:
        click.echo(f"   Agent: {task.assigned_agent}")
    if task.rejection_count:
        click.echo(f"   Rejections: {click.style(str(task.rejection_count), fg='yellow')}")

    if task.worktree:
        click.echo("\n🌳 Worktree:")
        click.echo(f"   Branch: {task.worktree.branch}")
        click.echo(f"   Path: {task.worktree.path}")
        click.echo(f"   Status: {task.worktree.status.value}")
        if kaiban.worktrees:
            try:
                checkout = kaiban.worktrees.get_worktree_for_task(task.id)
            except GitServiceError as e:
                click.echo(f"   Checkout: unknown ({e})")
            else:
                click.echo(f"   Checkout: {checkout.head[:8] if checkout else 'not checked out'}")

    if task.github:
        click.echo("\n🔗 GitHub:")
        if task.github.issue_url:
            click.echo(f"   Issue: {task.github.issue_url}")
        if task.github.pr_url:
            click.echo(f"   PR: {task.github.pr_url}")

    click.echo("\n📄 Description:")
    for line in task.description.split('\n'):
        click.echo(f"   {line}")

    if task.agent_notes:
        click.echo("\n📝 Agent Notes:")
        for line in task.agent_notes.split('\n'):
            click.echo(f"   {line}")

    if show_prd:
        content = kaiban.prd.load_content(task)
        click.echo("\n📘 PRD:")
        click.echo(content if content else "   (no PRD found)")
