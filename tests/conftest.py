"""
Shared fixtures: a file-backed rank database with a small seeded catalog.

Catalog layout:

    facet 2 "genre"   terms 5 "jazz", 7 "blues"
    facet 3 "era"     term  9 "1960s"
    facet 4 "region"  term  11 "europe"

    resource 101 "kind of blue"     -> terms 5, 7, 9
    resource 202 "a love supreme"   -> terms 5, 9
    resource 303 "field recordings" -> no terms
"""

import pytest

import settings
from db import Database, Facet, Term, Resource
from ranking import RankRepository


FACETS = {2: 'genre', 3: 'era', 4: 'region'}
TERMS = {5: ('jazz', 2), 7: ('blues', 2), 9: ('1960s', 3), 11: ('europe', 4)}
RESOURCES = {101: ('kind of blue', [5, 7, 9]), 202: ('a love supreme', [5, 9]), 303: ('field recordings', [])}


def seed_catalog(session):
    for facet_id, name in FACETS.items():
        session.add(Facet(id=facet_id, name=name))
    terms = {}
    for term_id, (name, facet_id) in TERMS.items():
        terms[term_id] = Term(id=term_id, name=name, facet_id=facet_id)
        session.add(terms[term_id])
    for resource_id, (name, term_ids) in RESOURCES.items():
        session.add(Resource(id=resource_id, name=name, terms=[terms[t] for t in term_ids]))
    session.commit()


@pytest.fixture(autouse=True)
def logs_db(tmp_path, monkeypatch):
    """Keep operation logs out of the working directory."""
    path = tmp_path / 'rank_logs.db'
    monkeypatch.setattr(settings, 'LOGS_DB_PATH', str(path))
    monkeypatch.setattr(settings, 'RANK_OPERATION_LOGGING', True)
    return path


@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / 'rankings.db')


@pytest.fixture
def database(db_path):
    db = Database(db_path, echo=False)
    session = db.get_session()
    try:
        seed_catalog(session)
    finally:
        session.close()
    yield db
    db.dispose()


@pytest.fixture
def session(database):
    session = database.get_session()
    yield session
    session.close()


@pytest.fixture
def repo(session):
    return RankRepository(session)


@pytest.fixture
def add_rank(repo):
    """Commit a rank in one call and return it."""
    def _add(rank_type, resource_id, value, ids):
        rank = repo.new(rank_type, resource_id=resource_id, value=value)
        rank.add_criteria(ids)
        result = repo.commit(rank)
        assert result.ok, result.duplicate
        return rank
    return _add
