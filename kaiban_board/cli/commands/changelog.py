"""Changelog generation command."""

import sys

import click

from kaiban_board.cli.helpers import load_board
from ...models.changelog import ChangelogFormat, ChangelogOptions
from ...services.exceptions import ServiceError


@click.command()
@click.option('--since', help='Only include tasks completed after this tag (v1.2.0) or date')
@click.option('--format', 'fmt', type=click.Choice([f.value for f in ChangelogFormat]),
              default=ChangelogFormat.KEEPACHANGELOG.value, show_default=True,
              help='Output format')
@click.option('--output', '-o', default='CHANGELOG.md', show_default=True,
              help='File to write, relative to the workspace')
@click.option('--version', 'version', help='Version heading for the new section')
@click.option('--dry-run', is_flag=True, help='Print the changelog without writing it')
@click.pass_context
def changelog(ctx, since, fmt, output, version, dry_run):
    """Generate a changelog from completed tasks"""
    kaiban = load_board(ctx.obj.get('workspace'))
    options = ChangelogOptions(
        since=since,
        format=ChangelogFormat(fmt),
        output=output,
        version=version,
        dry_run=dry_run,
    )

    try:
        result = kaiban.changelog().generate(options)
    except (ServiceError, OSError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if result.entry_count == 0:
        click.echo(result.message)
        return

    if dry_run:
        click.echo(result.content)
        click.echo(f"\n({result.entry_count} entries, not written)", err=True)
    else:
        click.echo(f"📝 Wrote {result.entry_count} entries to {result.written_to}")
