import pytest

from db import RankType
from ranking import (
    Criterion, CriteriaOutcome, RemoveOutcome, RankState,
    RankValidationError, RankReferenceError
)


def test_new_rank_is_transient(repo):
    rank = repo.new()
    assert rank.state == RankState.TRANSIENT
    assert rank.id is None
    with pytest.raises(RankValidationError, match="commit"):
        rank.rank_id


def test_constructor_sets_attributes(repo):
    rank = repo.new('single_term', resource_id=101, value=3)
    assert rank.rank_type == RankType.SINGLE_TERM
    assert rank.resource_id == 101
    assert rank.value == 3


@pytest.mark.parametrize('value', [0, -1, True, '3', 2.5])
def test_value_must_be_positive_integer(repo, value):
    rank = repo.new()
    with pytest.raises(RankValidationError):
        rank.value = value


def test_unknown_resource_is_rejected(repo):
    rank = repo.new()
    with pytest.raises(RankReferenceError):
        rank.resource_id = 999


def test_add_criteria_requires_resource_and_type(repo):
    rank = repo.new('single_term')
    with pytest.raises(RankValidationError):
        rank.add_criteria(5)

    rank = repo.new(resource_id=101)
    with pytest.raises(RankValidationError):
        rank.add_criteria(5)


def test_single_term_criteria_outcomes(repo):
    rank = repo.new('single_term', resource_id=101, value=1)

    assert rank.add_criteria(5) == CriteriaOutcome.SUCCESS
    assert rank.add_criteria(5) == CriteriaOutcome.DUPLICATE_IGNORED
    assert rank.add_criteria(9) == CriteriaOutcome.OTHER_CRITERIA_EXISTS
    assert rank.list_criteria() == [Criterion(facet_id=2, term_id=5)]


def test_other_criteria_wins_over_not_related(repo):
    rank = repo.new('single_term', resource_id=101, value=1)
    rank.add_criteria(5)
    assert rank.add_criteria(11) == CriteriaOutcome.OTHER_CRITERIA_EXISTS


def test_unrelated_term_is_not_staged(repo):
    rank = repo.new('single_term', resource_id=202, value=1)
    assert rank.add_criteria(7) == CriteriaOutcome.TERM_NOT_RELATED
    assert rank.list_criteria() == []


def test_single_term_rejects_lists(repo):
    rank = repo.new('single_term', resource_id=101, value=1)
    with pytest.raises(RankValidationError):
        rank.add_criteria([5, 9])


def test_unknown_term_is_a_reference_error(repo):
    rank = repo.new('single_term', resource_id=101, value=1)
    with pytest.raises(RankReferenceError):
        rank.add_criteria(999)


def test_facet_criteria(repo):
    rank = repo.new('facet', resource_id=101, value=1)
    assert rank.add_criteria(2) == CriteriaOutcome.SUCCESS
    assert rank.list_criteria() == [Criterion(facet_id=2, term_id=0)]
    assert rank.canonical_key() == "2"


def test_facet_not_reachable_from_resource(repo):
    rank = repo.new('facet', resource_id=101, value=1)
    assert rank.add_criteria(4) == CriteriaOutcome.FACET_NOT_RELATED
    assert rank.list_criteria() == []

    with pytest.raises(RankReferenceError):
        rank.add_criteria(99)


def test_combined_term_batch_outcomes(repo):
    rank = repo.new('combined_term', resource_id=101, value=1)

    assert rank.add_criteria([5, 9]) == CriteriaOutcome.SUCCESS
    assert rank.add_criteria([5]) == CriteriaOutcome.DUPLICATE_IGNORED
    assert rank.add_criteria([7, 11]) == CriteriaOutcome.TERM_NOT_RELATED
    assert rank.add_criteria([5, 11]) == CriteriaOutcome.DUPLICATE_AND_NOT_RELATED

    assert [c.term_id for c in rank.list_criteria()] == [5, 9, 7]
    assert rank.canonical_key() == "9,7,5"


def test_combined_term_collapses_repeated_ids(repo):
    rank = repo.new('combined_term', resource_id=101, value=1)
    assert rank.add_criteria([5, 9, 5]) == CriteriaOutcome.SUCCESS
    assert rank.list_criteria() == [Criterion(facet_id=2, term_id=5), Criterion(facet_id=3, term_id=9)]


def test_combined_term_accepts_single_id(repo):
    rank = repo.new('combined_term', resource_id=101, value=1)
    assert rank.add_criteria(5) == CriteriaOutcome.SUCCESS


def test_combined_term_unknown_id_stages_nothing(repo):
    rank = repo.new('combined_term', resource_id=101, value=1)
    with pytest.raises(RankReferenceError):
        rank.add_criteria([5, 999])
    assert rank.list_criteria() == []


def test_remove_criteria(repo):
    rank = repo.new('combined_term', resource_id=101, value=1)
    rank.add_criteria([5, 9])

    assert rank.remove_criteria(5) == RemoveOutcome.SUCCESS
    assert rank.remove_criteria(5) == RemoveOutcome.NOT_FOUND
    assert [c.term_id for c in rank.list_criteria()] == [9]

    facet_rank = repo.new('facet', resource_id=101, value=1)
    facet_rank.add_criteria(3)
    assert facet_rank.remove_criteria(3) == RemoveOutcome.SUCCESS
    assert facet_rank.list_criteria() == []


def test_remove_then_replace_single_criterion(repo):
    rank = repo.new('single_term', resource_id=101, value=1)
    rank.add_criteria(5)
    rank.remove_criteria(5)
    assert rank.add_criteria(9) == CriteriaOutcome.SUCCESS
    assert rank.canonical_key() == "9"


def test_context_cannot_change_under_staged_criteria(repo):
    rank = repo.new('single_term', resource_id=101, value=1)
    rank.add_criteria(5)

    with pytest.raises(RankValidationError):
        rank.rank_type = 'facet'
    with pytest.raises(RankValidationError):
        rank.resource_id = 202


def test_validate_for_commit_requires_all_attributes(repo):
    rank = repo.new('single_term', resource_id=101)
    rank.add_criteria(5)
    with pytest.raises(RankValidationError):
        rank.validate_for_commit()

    rank.value = 1
    rank.validate_for_commit()


def test_validate_for_commit_requires_criteria(repo):
    rank = repo.new('facet', resource_id=101, value=1)
    with pytest.raises(RankValidationError):
        rank.validate_for_commit()
