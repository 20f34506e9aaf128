"""List GitHub issues command."""

import sys

import click

from kaiban_board.cli.helpers import load_board, print_table
from ....services.exceptions import ServiceError
from ....services.github_service import GitHubService


@click.command()
@click.option('--state', type=click.Choice(['open', 'closed', 'all']), default='open', show_default=True)
@click.option('--label', '-l', 'labels', multiple=True, help='Only issues with this label (repeatable)')
@click.option('--limit', type=click.IntRange(min=1), default=30, show_default=True)
@click.pass_context
def list_issues(ctx, state, labels, limit):
    """List repository issues that can be imported"""
    kaiban = load_board(ctx.obj.get('workspace'))
    service = GitHubService(kaiban.workspace)

    try:
        issues = service.list_issues(state=state, labels=list(labels), limit=limit)
    except ServiceError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if not issues:
        click.echo("No issues found")
        return

    imported = {t.github.issue_number for t in kaiban.parser.parse_all() if t.github}
    rows = [
        [f"#{issue.number}", issue.title, ", ".join(issue.labels),
         click.style("imported", fg='green') if issue.number in imported else ""]
        for issue in issues
    ]
    print_table(["ISSUE", "TITLE", "LABELS", ""], rows)
