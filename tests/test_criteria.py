import pytest

from db import RankType
from ranking import Criterion, RankValidationError, canonical_key, encode_key, policy_for
from ranking.criteria import coerce_rank_type, require_id


def test_encode_key_is_order_independent():
    assert encode_key([5, 9]) == encode_key([9, 5]) == "9,5"
    assert encode_key([12, 3, 100]) == "100,12,3"


def test_encode_key_single_id():
    assert encode_key([7]) == "7"


def test_facet_key_uses_facet_id():
    assert canonical_key(RankType.FACET, [Criterion(facet_id=2)]) == "2"


def test_term_keys_use_term_ids():
    assert canonical_key(RankType.SINGLE_TERM, [Criterion(facet_id=2, term_id=5)]) == "5"
    assert canonical_key('combined_term', [
        Criterion(facet_id=2, term_id=5),
        Criterion(facet_id=3, term_id=9),
    ]) == "9,5"


def test_combined_key_matches_single_key_text_for_one_term():
    # Keys only collide together with the rank type, which differs here
    combined = canonical_key(RankType.COMBINED_TERM, [Criterion(facet_id=2, term_id=5)])
    single = canonical_key(RankType.SINGLE_TERM, [Criterion(facet_id=2, term_id=5)])
    assert combined == single == "5"


def test_single_term_key_rejects_two_criteria():
    with pytest.raises(RankValidationError):
        canonical_key(RankType.SINGLE_TERM, [
            Criterion(facet_id=2, term_id=5),
            Criterion(facet_id=3, term_id=9),
        ])


def test_key_rejects_empty_criteria():
    for rank_type in RankType:
        with pytest.raises(RankValidationError):
            canonical_key(rank_type, [])


def test_facet_key_rejects_term_criteria():
    with pytest.raises(RankValidationError):
        canonical_key(RankType.FACET, [Criterion(facet_id=2, term_id=5)])


def test_combined_key_rejects_repeated_terms():
    with pytest.raises(RankValidationError):
        canonical_key(RankType.COMBINED_TERM, [
            Criterion(facet_id=2, term_id=5),
            Criterion(facet_id=2, term_id=5),
        ])


def test_criterion_defaults_to_facet_only():
    criterion = Criterion(facet_id=2)
    assert criterion.term_id == 0
    assert criterion.is_facet_only
    assert Criterion(facet_id=2) == criterion
    assert len({criterion, Criterion(facet_id=2, term_id=0)}) == 1


def test_coerce_rank_type():
    assert coerce_rank_type('facet') == RankType.FACET
    assert coerce_rank_type(RankType.COMBINED_TERM) == RankType.COMBINED_TERM
    with pytest.raises(RankValidationError):
        coerce_rank_type('tag')
    with pytest.raises(ValueError):
        coerce_rank_type('tag')


@pytest.mark.parametrize('value', [0, -3, True, '5', 2.0, None])
def test_require_id_rejects_non_positive_integers(value):
    with pytest.raises(RankValidationError):
        require_id(value)


def test_request_ids_per_type():
    assert policy_for('single_term').request_ids([5]) == [5]
    assert policy_for('facet').request_ids(2) == [2]
    assert policy_for('combined_term').request_ids(5) == [5]
    with pytest.raises(RankValidationError):
        policy_for('combined_term').request_ids([])
    with pytest.raises(RankValidationError):
        policy_for('single_term').request_ids([5, 9])
