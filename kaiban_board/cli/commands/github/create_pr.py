"""Create pull request command."""

import sys

import click

from kaiban_board.cli.helpers import load_board, resolve_task
from ....models.task import GitHubMetadata
from ....services.exceptions import ServiceError
from ....services.github_service import GitHubService
from ....utils.timestamps import utc_now_iso


@click.command()
@click.argument('task_id')
@click.option('--base', help='Base branch (defaults to the task worktree base)')
@click.option('--draft', is_flag=True, help='Open the pull request as a draft')
@click.pass_context
def create_pr(ctx, task_id, base, draft):
    """Open a pull request for a task branch"""
    kaiban = load_board(ctx.obj.get('workspace'))
    task = resolve_task(kaiban.parser, task_id)
    service = GitHubService(kaiban.workspace)

    if task.worktree and task.worktree.branch:
        branch = task.worktree.branch
    elif kaiban.worktrees:
        branch = kaiban.worktrees.branch_name_for(task.id)
    else:
        click.echo(f"Error: No branch known for task {task.id}", err=True)
        sys.exit(1)
    base_branch = (base or (task.worktree.base_branch if task.worktree else None)
                   or kaiban.config.worktree.default_base_branch)

    issue_number = task.github.issue_number if task.github and task.github.issue_number else None
    body = GitHubService.generate_pr_body(task.label, task.description,
                                          kaiban.prd.load_content(task), issue_number)
    try:
        existing = service.get_pr_for_branch(branch)
        pr = existing or service.create_pr(branch, task.label, body, base_branch, draft)
    except ServiceError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    github = task.github or GitHubMetadata()
    github.pr_url = pr.url
    github.pr_number = pr.number
    github.last_synced = utc_now_iso()
    kaiban.parser.update_github(task.id, github)

    verb = "Found existing" if existing else "Created"
    click.echo(f"🔗 {verb} PR #{pr.number}: {pr.url}")
