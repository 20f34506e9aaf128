"""Import GitHub issue command."""

import sys

import click

from kaiban_board.cli.helpers import load_board
from ....services.exceptions import ServiceError
from ....services.github_service import GitHubService


@click.command()
@click.argument('issue_number', type=int)
@click.pass_context
def import_issue(ctx, issue_number):
    """Create a Backlog task from a GitHub issue"""
    kaiban = load_board(ctx.obj.get('workspace'))
    service = GitHubService(kaiban.workspace)

    try:
        issue = service.get_issue(issue_number)
        fields = service.generate_task_from_issue(issue)
        path = kaiban.parser.create_task(**fields)
    except ServiceError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    except FileExistsError:
        click.echo(f"Error: Issue #{issue_number} was already imported", err=True)
        sys.exit(1)

    click.echo(f"✅ Imported #{issue.number} as {fields['task_id']}")
    click.echo(f"   File: {path}")
