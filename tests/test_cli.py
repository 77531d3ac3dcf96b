import pytest
from click.testing import CliRunner

from cli import cli


@pytest.fixture
def run(database, db_path):
    runner = CliRunner()

    def _run(*args):
        return runner.invoke(cli, ['--db', db_path, *args])
    return _run


def test_add_and_show(run):
    result = run('rank', 'add', '101', '3', '--type', 'single_term', '-c', '5')
    assert result.exit_code == 0, result.output
    assert "Added rank 1 (5)" in result.output

    result = run('rank', 'show', '1')
    assert result.exit_code == 0
    assert "single_term" in result.output
    assert "101" in result.output


def test_add_combined(run):
    result = run('rank', 'add', '101', '1', '--type', 'combined_term', '-c', '5', '-c', '9')
    assert result.exit_code == 0, result.output
    assert "(9,5)" in result.output


def test_add_duplicate_fails(run):
    run('rank', 'add', '101', '1', '--type', 'single_term', '-c', '5')
    result = run('rank', 'add', '202', '1', '--type', 'single_term', '-c', '5')

    assert result.exit_code != 0
    assert "Duplicate rank (same_value)" in result.output


def test_add_unrelated_term_fails(run):
    result = run('rank', 'add', '202', '1', '--type', 'single_term', '-c', '7')

    assert result.exit_code != 0
    assert "term_not_related" in result.output


def test_add_unknown_resource_fails(run):
    result = run('rank', 'add', '999', '1', '--type', 'facet', '-c', '2')

    assert result.exit_code != 0
    assert "Resource 999 not found" in result.output


def test_list_reads_cache_until_rebuilt(run):
    run('rank', 'add', '101', '2', '--type', 'single_term', '-c', '5')
    run('rank', 'add', '202', '1', '--type', 'single_term', '-c', '5')

    assert "No ranks found" in run('rank', 'list', 'single_term', '5').output

    current = run('rank', 'list', 'single_term', '5', '--current')
    assert current.exit_code == 0
    assert "202" in current.output

    rebuilt = run('cache', 'rebuild')
    assert rebuilt.exit_code == 0, rebuilt.output
    assert "Cached 2 of 2 rank(s)" in rebuilt.output

    cached = run('rank', 'list', 'single_term', '5')
    assert cached.output.index("202") < cached.output.index("101")


def test_resource(run):
    run('rank', 'add', '101', '1', '--type', 'facet', '-c', '2')

    assert "facet" in run('rank', 'resource', '101').output
    assert "No ranks for resource 202" in run('rank', 'resource', '202').output
    assert run('rank', 'resource', '999').exit_code != 0


def test_set_value(run):
    run('rank', 'add', '101', '1', '--type', 'single_term', '-c', '5')
    run('rank', 'add', '202', '2', '--type', 'single_term', '-c', '5')

    taken = run('rank', 'set-value', '2', '1')
    assert taken.exit_code != 0

    quick = run('rank', 'set-value', '2', '1', '--quick')
    assert quick.exit_code == 0, quick.output
    assert "value 2 → 1" in quick.output


def test_delete(run):
    run('rank', 'add', '101', '1', '--type', 'single_term', '-c', '5')

    assert run('rank', 'delete', '1').exit_code == 0
    assert run('rank', 'show', '1').exit_code != 0


def test_cleanup(run):
    run('rank', 'add', '101', '1', '--type', 'single_term', '-c', '5')
    run('rank', 'add', '202', '2', '--type', 'single_term', '-c', '5')
    run('rank', 'add', '101', '1', '--type', 'single_term', '-c', '9')

    dry = run('rank', 'cleanup', 'term_delete', '5', '--dry-run')
    assert "2 rank(s) affected: 1, 2" in dry.output

    result = run('rank', 'cleanup', 'term_delete', '5')
    assert result.exit_code == 0, result.output
    assert "Deleted: 2" in result.output
    assert run('rank', 'show', '3').exit_code == 0


def test_cache_stats_reports_staleness(run):
    run('rank', 'add', '101', '1', '--type', 'single_term', '-c', '5')

    assert "Cache is stale: 1 missing" in run('cache', 'stats').output

    run('cache', 'rebuild')
    assert "Cache is current" in run('cache', 'stats').output


def test_logs_list(run):
    assert "No operations logged." in run('logs', 'list').output

    run('rank', 'add', '101', '1', '--type', 'single_term', '-c', '5')
    run('cache', 'rebuild')

    result = run('logs', 'list', '--operation', 'populate')
    assert result.exit_code == 0
    assert "populate" in result.output


def test_catalog_add_and_relate(run):
    assert "Facet 'mood' (ID: 5)" in run('catalog', 'add-facet', 'mood').output

    added = run('catalog', 'add-term', 'melancholy', '--facet', 'mood')
    assert added.exit_code == 0, added.output
    assert "(ID: 12, facet 5)" in added.output

    resource = run('catalog', 'add-resource', 'blue in green')
    assert "(ID: 304)" in resource.output

    assert run('catalog', 'relate', '304', '12').exit_code == 0
    assert "already related" in run('catalog', 'relate', '304', '12').output

    ranked = run('rank', 'add', '304', '1', '--type', 'facet', '-c', '5')
    assert ranked.exit_code == 0, ranked.output


def test_catalog_existing_term_keeps_its_facet(run):
    result = run('catalog', 'add-term', 'jazz', '--facet', 'era')
    assert "already exists under facet 2" in result.output


def test_catalog_relate_unknown_ids(run):
    assert run('catalog', 'relate', '999', '5').exit_code != 0
    assert run('catalog', 'relate', '101', '999').exit_code != 0


def test_catalog_unrelate_cleans_up_ranks(run):
    run('rank', 'add', '202', '1', '--type', 'single_term', '-c', '5')
    run('rank', 'add', '202', '1', '--type', 'single_term', '-c', '9')

    result = run('catalog', 'unrelate', '202', '5')
    assert result.exit_code == 0, result.output
    assert "Ranks removed: 1 of 1 affected" in result.output
    assert run('rank', 'show', '1').exit_code != 0
    assert run('rank', 'show', '2').exit_code == 0

    assert "is not related" in run('catalog', 'unrelate', '202', '5').output


def test_catalog_move_term_cleans_up_ranks(run):
    run('rank', 'add', '101', '1', '--type', 'single_term', '-c', '5')
    run('rank', 'add', '101', '1', '--type', 'combined_term', '-c', '5', '-c', '9')
    run('rank', 'add', '101', '1', '--type', 'single_term', '-c', '9')

    result = run('catalog', 'move-term', '5', '4')
    assert result.exit_code == 0, result.output
    assert "Ranks removed: 2 of 2 affected" in result.output

    assert "already filed" in run('catalog', 'move-term', '5', '4').output
