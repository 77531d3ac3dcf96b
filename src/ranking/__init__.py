"""
Ranking engine.

Attaches ordinal ranks to catalog resources under a classification context
(a facet, a single term, or a combination of terms), keeps contexts free of
duplicate resources and duplicate values, and serves ranked lists either from
the rank_data cache or directly from the normalized tables.

Usage:
    >>> from db import Database
    >>> from ranking import RankRepository, RankQueries, RankDataBuilder
    >>> session = Database().get_session()
    >>> repo = RankRepository(session)
    >>> rank = repo.new('single_term', resource_id=101, value=3)
    >>> rank.add_criteria(5)
    >>> repo.commit(rank)
    >>> RankDataBuilder(session).populate()
    >>> RankQueries(session).ranked_list('single_term', 5)
"""

from .errors import RankError, RankValidationError, RankReferenceError, RankStorageError
from .catalog import Catalog, CatalogKind, DatabaseCatalog
from .criteria import Criterion, CriteriaOutcome, RemoveOutcome, canonical_key, encode_key, policy_for
from .rank import Rank, RankState
from .duplicates import DuplicateDetector, DuplicateKind, DuplicateReport
from .repository import RankRepository, CommitOutcome, CommitResult, DeleteOutcome
from .cache import RankDataBuilder, PopulateSummary
from .queries import RankQueries, RankedList, RankedEntry, QueryStatus
from .cleanup import CleanupCoordinator, CleanupKind, CleanupResult, CleanupStatus

__all__ = [
    'RankError', 'RankValidationError', 'RankReferenceError', 'RankStorageError',
    'Catalog', 'CatalogKind', 'DatabaseCatalog',
    'Criterion', 'CriteriaOutcome', 'RemoveOutcome', 'canonical_key', 'encode_key', 'policy_for',
    'Rank', 'RankState',
    'DuplicateDetector', 'DuplicateKind', 'DuplicateReport',
    'RankRepository', 'CommitOutcome', 'CommitResult', 'DeleteOutcome',
    'RankDataBuilder', 'PopulateSummary',
    'RankQueries', 'RankedList', 'RankedEntry', 'QueryStatus',
    'CleanupCoordinator', 'CleanupKind', 'CleanupResult', 'CleanupStatus',
]
