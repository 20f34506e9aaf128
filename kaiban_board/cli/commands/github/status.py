"""GitHub status command."""

import click
from rich.console import Console

from kaiban_board.cli.helpers import get_project_context
from ....services.github_service import GitHubService


@click.command()
@click.pass_context
def status(ctx):
    """Show gh CLI availability and authentication"""
    console = Console()
    project_root, _ = get_project_context(ctx.obj.get('workspace'))
    gh_status = GitHubService(project_root).get_status(force_refresh=True)

    if not gh_status.available:
        console.print(f"[red]gh CLI not available: {gh_status.error}[/red]")
        ctx.exit(1)

    console.print(f"[green]gh CLI {gh_status.version or ''}[/green]")
    if gh_status.authenticated:
        console.print("[green]Authenticated[/green]")
    else:
        console.print("[yellow]Not authenticated. Run 'gh auth login'.[/yellow]")
    if gh_status.repository:
        console.print(f"Repository: {gh_status.repository}")
