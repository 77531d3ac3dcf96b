"""
Rank operation log commands.
"""

import click
from tabulate import tabulate
from ranking.logging import recent_operations


@click.group()
def logs():
    """Inspect rank operation logs."""
    pass


@logs.command('list')
@click.option('--limit', '-l', type=int, default=20, help='Number of entries to show (default: 20)')
@click.option('--operation', '-o', default=None, help='Filter by operation (populate, cleanup, quick_value)')
def list_logs(limit, operation):
    """
    List recent rank operations.

    Example:
        rankings logs list
        rankings logs list --operation cleanup
    """
    entries = recent_operations(limit=limit, operation=operation)

    if not entries:
        click.echo(click.style("No operations logged.", fg='yellow'))
        return

    table_data = []
    for entry in entries:
        status = click.style('✓', fg='green') if entry['success'] else click.style('✗', fg='red')
        duration = f"{entry['duration_ms']}ms" if entry['duration_ms'] is not None else 'N/A'
        context = ', '.join(f"{k}={v}" for k, v in (entry['context_data'] or {}).items())

        table_data.append([
            entry['id'],
            status,
            entry['operation'],
            context or '-',
            duration,
            entry['started_at'].strftime('%Y-%m-%d %H:%M:%S'),
            entry['error_message'] or ''
        ])

    click.echo(tabulate(
        table_data,
        headers=['ID', '✓', 'Operation', 'Context', 'Duration', 'Started', 'Error'],
        tablefmt='simple'
    ))
    click.echo()
    click.echo(click.style(f"Showing {len(entries)} most recent operation(s)", fg='cyan'))
