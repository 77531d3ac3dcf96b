"""
Rank management commands.
"""

import click
from tabulate import tabulate
from db import Database, RankType
from ranking import (
    RankRepository, RankQueries, CleanupCoordinator, CleanupKind, CleanupStatus,
    CommitOutcome, CriteriaOutcome, DeleteOutcome, RankError
)


RANK_TYPES = [t.value for t in RankType]


def _database(ctx) -> Database:
    return Database(ctx.obj.get('db_path') if ctx.obj else None)


def _fail(message: str):
    click.echo(click.style(f"✗ {message}", fg="red"))
    raise click.Abort()


@click.group()
def rank():
    """Create, inspect and query resource ranks."""
    pass


@rank.command()
@click.argument('resource_id', type=int)
@click.argument('value', type=int)
@click.option('--type', '-t', 'rank_type', type=click.Choice(RANK_TYPES), required=True, help='Rank type')
@click.option('--criteria', '-c', 'criteria', type=int, multiple=True, required=True,
              help='Facet id (facet) or term id (single_term, combined_term); repeat for combined_term')
@click.option('--ignore-duplicate', is_flag=True, help='Skip duplicate detection')
@click.pass_context
def add(ctx, resource_id, value, rank_type, criteria, ignore_duplicate):
    """
    Rank a resource under a facet or term context.

    Example:
        rankings rank add 101 3 --type single_term -c 5
        rankings rank add 101 1 --type combined_term -c 5 -c 9
    """
    db = _database(ctx)
    session = db.get_session()

    try:
        repo = RankRepository(session)
        new_rank = repo.new(rank_type, resource_id=resource_id, value=value)

        single = len(criteria) == 1 and rank_type != RankType.COMBINED_TERM.value
        ids = criteria[0] if single else list(criteria)
        outcome = new_rank.add_criteria(ids)
        if outcome != CriteriaOutcome.SUCCESS:
            click.echo(click.style(f"! Criteria: {outcome.value}", fg="yellow"))

        result = repo.commit(new_rank, ignore_duplicate=ignore_duplicate)
        if result.outcome == CommitOutcome.DUPLICATE:
            report = result.duplicate
            kinds = ', '.join(k.value for k in report.kinds)
            conflicts = report.resource_conflicts + report.value_conflicts
            _fail(f"Duplicate rank ({kinds}) under key '{report.canonical_key}': conflicts with rank(s) {conflicts}")

        click.echo(click.style(f"✓ Added rank {result.rank_id} ({new_rank.canonical_key()})", fg="green"))

    except RankError as e:
        _fail(str(e))
    finally:
        session.close()


@rank.command()
@click.argument('rank_id', type=int)
@click.pass_context
def show(ctx, rank_id):
    """
    Show a rank and its criteria.

    Example:
        rankings rank show 12
    """
    db = _database(ctx)
    session = db.get_session()

    try:
        loaded = RankRepository(session).load(rank_id)
        if loaded is None:
            _fail(f"Rank {rank_id} not found")

        click.echo(click.style(f"\n=== Rank {loaded.rank_id} ===\n", fg="cyan", bold=True))
        click.echo(tabulate([
            ['Type', loaded.rank_type.value],
            ['Resource', loaded.resource_id],
            ['Value', loaded.value],
            ['Key', loaded.canonical_key()],
        ], tablefmt='plain'))
        click.echo()
        click.echo(tabulate(
            [[c.facet_id, c.term_id or '-'] for c in loaded.list_criteria()],
            headers=['Facet', 'Term'],
            tablefmt='simple'
        ))

    except RankError as e:
        _fail(str(e))
    finally:
        session.close()


@rank.command('list')
@click.argument('rank_type', type=click.Choice(RANK_TYPES))
@click.argument('ids', type=int, nargs=-1, required=True)
@click.option('--current', is_flag=True, help='Match criteria directly instead of reading the cache')
@click.pass_context
def list_ranks(ctx, rank_type, ids, current):
    """
    List resources ranked under a facet, a term or a term combination.

    Reads the rank_data cache unless --current is given; run
    'rankings cache rebuild' to refresh it.

    Example:
        rankings rank list single_term 5
        rankings rank list combined_term 9 5 --current
    """
    db = _database(ctx)
    session = db.get_session()

    try:
        queries = RankQueries(session)
        request = list(ids)
        if current:
            ranked = queries.ranked_list_current(rank_type, request)
        else:
            ranked = queries.ranked_list(rank_type, request)

        if not ranked.found:
            click.echo(click.style("No ranks found", fg="yellow"))
            return

        click.echo(f"Ranked resources for {rank_type} '{ranked.canonical_key}':\n")
        click.echo(tabulate(
            [[e.value, e.resource_id, e.rank_id] for e in ranked.entries],
            headers=['Value', 'Resource', 'Rank'],
            tablefmt='simple'
        ))

    except RankError as e:
        _fail(str(e))
    finally:
        session.close()


@rank.command()
@click.argument('resource_id', type=int)
@click.pass_context
def resource(ctx, resource_id):
    """
    List the ranks of a resource, grouped by type.

    Example:
        rankings rank resource 101
    """
    db = _database(ctx)
    session = db.get_session()

    try:
        grouped = RankQueries(session).rank_by_resource(resource_id)
        if not grouped:
            click.echo(click.style(f"No ranks for resource {resource_id}", fg="yellow"))
            return

        click.echo(tabulate(
            [[rank_type.value, ', '.join(str(i) for i in rank_ids)] for rank_type, rank_ids in grouped.items()],
            headers=['Type', 'Ranks'],
            tablefmt='simple'
        ))

    except RankError as e:
        _fail(str(e))
    finally:
        session.close()


@rank.command('set-value')
@click.argument('rank_id', type=int)
@click.argument('value', type=int)
@click.option('--quick', is_flag=True, help='Write the value only, without duplicate detection')
@click.pass_context
def set_value(ctx, rank_id, value, quick):
    """
    Change the value of a rank.

    Example:
        rankings rank set-value 12 4
        rankings rank set-value 12 4 --quick
    """
    db = _database(ctx)
    session = db.get_session()

    try:
        repo = RankRepository(session)
        loaded = repo.load(rank_id)
        if loaded is None:
            _fail(f"Rank {rank_id} not found")

        previous = loaded.value
        if quick:
            repo.quick_value(loaded, value)
        else:
            loaded.value = value
            result = repo.commit(loaded)
            if not result.ok:
                _fail(f"Value {value} is already taken under key '{result.duplicate.canonical_key}'")

        click.echo(click.style(f"✓ Rank {rank_id} value {previous} → {value}", fg="green"))

    except RankError as e:
        _fail(str(e))
    finally:
        session.close()


@rank.command()
@click.argument('rank_id', type=int)
@click.pass_context
def delete(ctx, rank_id):
    """
    Delete a rank, its criteria and its cache entry.

    Example:
        rankings rank delete 12
    """
    db = _database(ctx)
    session = db.get_session()

    try:
        repo = RankRepository(session)
        loaded = repo.load(rank_id)
        if loaded is None:
            _fail(f"Rank {rank_id} not found")

        if repo.delete(loaded) == DeleteOutcome.DELETED:
            click.echo(click.style(f"✓ Deleted rank {rank_id}", fg="green"))

    except RankError as e:
        _fail(str(e))
    finally:
        session.close()


@rank.command()
@click.argument('kind', type=click.Choice([k.value for k in CleanupKind]))
@click.argument('target_id', type=int)
@click.option('--term-id', type=int, default=None, help='Term the resource lost (resource_term_change)')
@click.option('--dry-run', is_flag=True, help='Only list the affected ranks')
@click.pass_context
def cleanup(ctx, kind, target_id, term_id, dry_run):
    """
    Delete the ranks invalidated by a catalog change.

    Example:
        rankings rank cleanup term_delete 5
        rankings rank cleanup resource_term_change 101 --term-id 9
    """
    db = _database(ctx)
    session = db.get_session()

    try:
        coordinator = CleanupCoordinator(RankRepository(session))

        if dry_run:
            affected = coordinator.affected_rank_ids(kind, target_id, term_id)
            click.echo(f"{len(affected)} rank(s) affected: {', '.join(str(i) for i in affected) or '-'}")
            return

        result = coordinator.cleanup(kind, target_id, term_id)

        click.echo(f"Affected: {len(result.affected)}  |  Deleted: {len(result.deleted)}")
        if result.status == CleanupStatus.PARTIAL_FAILURE:
            click.echo(tabulate(
                [[rank_id, message] for rank_id, message in result.failed.items()],
                headers=['Rank', 'Error'],
                tablefmt='simple'
            ))
            _fail(f"Cleanup finished with {len(result.failed)} failure(s)")

        click.echo(click.style("✓ Cleanup completed", fg="green"))

    except RankError as e:
        _fail(str(e))
    finally:
        session.close()
