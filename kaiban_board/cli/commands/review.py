"""Review task command."""

import sys

import click

from kaiban_board.cli.helpers import echo_notification, load_board, resolve_task
from ...core.review import ReviewService
from ...services.exceptions import ServiceError


@click.command()
@click.argument('task_id')
@click.option('--provider', type=click.Choice(['auto', 'codex', 'claude']), default='auto',
              help='Reviewer CLI to use')
@click.option('--apply', 'apply_result', is_flag=True,
              help='Hand the verdict to the pipeline (retry or escalate)')
@click.pass_context
def review(ctx, task_id, provider, apply_result):
    """Run an AI code review of a task's changes"""
    kaiban = load_board(ctx.obj.get('workspace'))
    task = resolve_task(kaiban.parser, task_id)
    orchestrator = kaiban.orchestrator(echo_notification)
    reviewer = ReviewService(kaiban.workspace, kaiban.cli_detection)

    try:
        context = orchestrator.build_review_context(task)
        if not context.diff.strip():
            click.echo(f"No changes to review for task {task.id}")
            return
        click.echo(f"🔍 Reviewing {len(context.files_changed)} changed file(s)...")
        result = reviewer.run_review(context, provider)
    except ServiceError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    click.echo(ReviewService.format_for_display(result))

    if apply_result:
        decision = orchestrator.handle_review_result(task.id, result)
        click.echo(f"\nPipeline: {decision.value}")
