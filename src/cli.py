#!/usr/bin/env python3
"""
CLI for resource rankings.
"""

import click
from importlib.metadata import version
from commands import rank, cache, catalog, logs


@click.group()
@click.version_option(version=version("rankings"))
@click.option('--db', 'db_path', default=None, help='Rank database path (overrides RANK_DB_PATH)')
@click.pass_context
def cli(ctx, db_path):
    """Resource Rankings CLI - Rank resources by facet and term, and query ranked lists."""
    ctx.ensure_object(dict)
    ctx.obj['db_path'] = db_path


# Register command groups
cli.add_command(rank.rank)
cli.add_command(cache.cache)
cli.add_command(catalog.catalog)
cli.add_command(logs.logs)


if __name__ == "__main__":
    cli()
