"""GitHub command group."""

import click

from .status import status
from .import_issue import import_issue
from .create_pr import create_pr
from .list_issues import list_issues


@click.group()
def github():
    """Work with GitHub issues and pull requests through the gh CLI."""
    pass


# Add subcommands
github.add_command(status)
github.add_command(import_issue, name='import')
github.add_command(create_pr, name='pr')
github.add_command(list_issues, name='issues')
