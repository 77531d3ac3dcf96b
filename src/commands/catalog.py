"""
Catalog maintenance commands.

Changes that invalidate existing ranks (a resource losing a term, a term
moving to another facet) clean those ranks up in the same command.
"""

import click
from db import Database, Facet, Term, Resource
from ranking import CleanupCoordinator, CleanupKind, RankRepository, RankError


@click.group()
def catalog():
    """Manage facets, terms and resources."""
    pass


def _get(session, model, entity_id):
    entity = session.get(model, entity_id)
    if entity is None:
        click.echo(click.style(f"✗ {model.__name__} {entity_id} not found", fg="red"))
        raise click.Abort()
    return entity


def _report_cleanup(result):
    click.echo(f"Ranks removed: {len(result.deleted)} of {len(result.affected)} affected")
    for rank_id, message in result.failed.items():
        click.echo(click.style(f"  ✗ Rank {rank_id}: {message}", fg="red"))


@catalog.command('add-facet')
@click.argument('name')
@click.pass_context
def add_facet(ctx, name):
    """
    Add a facet.

    Example:
        rankings catalog add-facet genre
    """
    db = Database(ctx.obj.get('db_path') if ctx.obj else None)
    session = db.get_session()

    try:
        facet = db.get_or_create_facet(session, name)
        session.commit()
        click.echo(click.style(f"✓ Facet '{facet.name}' (ID: {facet.id})", fg="green"))
    finally:
        session.close()


@catalog.command('add-term')
@click.argument('name')
@click.option('--facet', '-f', 'facet_name', required=True, help='Facet the term is filed under (created if missing)')
@click.pass_context
def add_term(ctx, name, facet_name):
    """
    Add a term under a facet.

    Example:
        rankings catalog add-term jazz --facet genre
    """
    db = Database(ctx.obj.get('db_path') if ctx.obj else None)
    session = db.get_session()

    try:
        facet = db.get_or_create_facet(session, facet_name)
        term = db.get_or_create_term(session, name, facet)
        session.commit()

        if term.facet_id != facet.id:
            click.echo(click.style(
                f"! Term '{term.name}' already exists under facet {term.facet_id}; use move-term to refile it",
                fg="yellow"
            ))
        click.echo(click.style(f"✓ Term '{term.name}' (ID: {term.id}, facet {term.facet_id})", fg="green"))
    finally:
        session.close()


@catalog.command('add-resource')
@click.argument('name')
@click.pass_context
def add_resource(ctx, name):
    """
    Add a resource.

    Example:
        rankings catalog add-resource "Kind of Blue"
    """
    db = Database(ctx.obj.get('db_path') if ctx.obj else None)
    session = db.get_session()

    try:
        resource = db.get_or_create_resource(session, name)
        session.commit()
        click.echo(click.style(f"✓ Resource '{resource.name}' (ID: {resource.id})", fg="green"))
    finally:
        session.close()


@catalog.command()
@click.argument('resource_id', type=int)
@click.argument('term_id', type=int)
@click.pass_context
def relate(ctx, resource_id, term_id):
    """
    Affiliate a resource with a term.

    Example:
        rankings catalog relate 101 5
    """
    db = Database(ctx.obj.get('db_path') if ctx.obj else None)
    session = db.get_session()

    try:
        resource = _get(session, Resource, resource_id)
        term = _get(session, Term, term_id)

        if db.relate_resource_term(session, resource, term):
            session.commit()
            click.echo(click.style(f"✓ Resource {resource_id} related to term {term_id}", fg="green"))
        else:
            click.echo(click.style(f"Resource {resource_id} is already related to term {term_id}", fg="yellow"))
    finally:
        session.close()


@catalog.command()
@click.argument('resource_id', type=int)
@click.argument('term_id', type=int)
@click.pass_context
def unrelate(ctx, resource_id, term_id):
    """
    Remove a resource/term affiliation and the ranks that depended on it.

    Example:
        rankings catalog unrelate 101 5
    """
    db = Database(ctx.obj.get('db_path') if ctx.obj else None)
    session = db.get_session()

    try:
        resource = _get(session, Resource, resource_id)
        term = _get(session, Term, term_id)

        if not db.unrelate_resource_term(session, resource, term):
            click.echo(click.style(f"Resource {resource_id} is not related to term {term_id}", fg="yellow"))
            return
        session.commit()
        click.echo(click.style(f"✓ Resource {resource_id} no longer related to term {term_id}", fg="green"))

        result = CleanupCoordinator(RankRepository(session)).cleanup(
            CleanupKind.RESOURCE_TERM_CHANGE, resource_id, term_id
        )
        _report_cleanup(result)

    except RankError as e:
        click.echo(click.style(f"✗ Error: {e}", fg="red"))
        raise click.Abort()
    finally:
        session.close()


@catalog.command('move-term')
@click.argument('term_id', type=int)
@click.argument('facet_id', type=int)
@click.pass_context
def move_term(ctx, term_id, facet_id):
    """
    File a term under another facet and remove the ranks that used it.

    Example:
        rankings catalog move-term 5 4
    """
    db = Database(ctx.obj.get('db_path') if ctx.obj else None)
    session = db.get_session()

    try:
        term = _get(session, Term, term_id)
        facet = _get(session, Facet, facet_id)

        if term.facet_id == facet.id:
            click.echo(click.style(f"Term {term_id} is already filed under facet {facet_id}", fg="yellow"))
            return
        db.move_term(session, term, facet)
        session.commit()
        click.echo(click.style(f"✓ Term {term_id} moved to facet {facet_id}", fg="green"))

        result = CleanupCoordinator(RankRepository(session)).cleanup(CleanupKind.TERM_FACET_CHANGE, term_id)
        _report_cleanup(result)

    except RankError as e:
        click.echo(click.style(f"✗ Error: {e}", fg="red"))
        raise click.Abort()
    finally:
        session.close()
