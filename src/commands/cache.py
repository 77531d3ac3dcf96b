"""
Rank data cache commands.
"""

import click
from tabulate import tabulate
from db import Database
from ranking import RankDataBuilder, RankError


@click.group()
def cache():
    """Manage the rank_data cache."""
    pass


@cache.command()
@click.pass_context
def rebuild(ctx):
    """
    Rebuild the rank_data cache from the rank tables.

    Example:
        rankings cache rebuild
    """
    db = Database(ctx.obj.get('db_path') if ctx.obj else None)
    session = db.get_session()

    try:
        click.echo("Rebuilding rank data cache...")
        summary = RankDataBuilder(session).populate()

        click.echo(click.style(
            f"✓ Cached {summary.entries_written} of {summary.ranks_read} rank(s) in {summary.duration_ms}ms", fg="green"
        ))
        if summary.by_type:
            click.echo(tabulate(sorted(summary.by_type.items()), headers=['Type', 'Entries'], tablefmt='simple'))
        if summary.skipped_rank_ids:
            skipped = ', '.join(str(i) for i in summary.skipped_rank_ids)
            click.echo(click.style(f"! Skipped ranks without valid criteria: {skipped}", fg="yellow"))

    except RankError as e:
        click.echo(click.style(f"✗ Error: {e}", fg="red"))
        raise click.Abort()
    finally:
        session.close()


@cache.command()
@click.pass_context
def stats(ctx):
    """
    Show cache statistics.

    Example:
        rankings cache stats
    """
    db = Database(ctx.obj.get('db_path') if ctx.obj else None)
    session = db.get_session()

    try:
        stats_data = RankDataBuilder(session).stats()

        click.echo("Rank data cache statistics\n")
        click.echo(f"Cached entries: {click.style(str(stats_data['total_entries']), fg='green')}")
        click.echo(f"Ranks: {click.style(str(stats_data['total_ranks']), fg='green')}")

        if stats_data['last_built_at']:
            click.echo(f"Last built: {stats_data['last_built_at'].strftime('%Y-%m-%d %H:%M')}")

        if stats_data['by_type']:
            click.echo()
            click.echo(tabulate(sorted(stats_data['by_type'].items()), headers=['Type', 'Entries'], tablefmt='simple'))

        click.echo()
        if stats_data['is_current']:
            click.echo(click.style("Cache is current", fg="green"))
        else:
            click.echo(click.style(
                f"Cache is stale: {stats_data['missing']} missing, "
                f"{stats_data['orphaned']} orphaned, {stats_data['changed']} changed",
                fg="yellow"
            ))
            click.echo("  Use 'rankings cache rebuild' to refresh it")

    finally:
        session.close()
