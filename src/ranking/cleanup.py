"""
Rank cleanup after catalog changes.

When facets, terms and resources change their affiliations there is no clean
way to migrate rank information, so the affected ranks are deleted. Cleanup is
best-effort: every affected rank is deleted in its own transaction, failures
are collected, and the remaining ranks are still processed.
"""

import enum
import sys
from typing import Dict, List, Optional, Union
from pydantic import BaseModel, Field

from db.models import RankRecord, RankCriterion
from ranking.criteria import require_id
from ranking.errors import RankError, RankValidationError
from ranking.logging import log_rank_operation
from ranking.repository import RankRepository, DeleteOutcome


class CleanupKind(enum.Enum):
    """Catalog change that triggered the cleanup."""
    RESOURCE_DELETE = "resource_delete"            # id = resource id
    RESOURCE_TERM_CHANGE = "resource_term_change"  # id = resource id, term_id = term it lost
    TERM_FACET_CHANGE = "term_facet_change"        # id = term id
    TERM_DELETE = "term_delete"                    # id = term id
    FACET_DELETE = "facet_delete"                  # id = facet id


class CleanupStatus(enum.Enum):
    SUCCESS = "success"
    PARTIAL_FAILURE = "partial_failure"  # At least one rank could not be deleted


class CleanupResult(BaseModel):
    kind: CleanupKind
    target_id: int
    term_id: Optional[int] = None
    affected: List[int] = Field(default_factory=list, description="Rank ids matched by the change")
    deleted: List[int] = Field(default_factory=list)
    failed: Dict[int, str] = Field(default_factory=dict, description="Rank id -> error message")

    @property
    def status(self) -> CleanupStatus:
        return CleanupStatus.PARTIAL_FAILURE if self.failed else CleanupStatus.SUCCESS


def coerce_cleanup_kind(value: Union[CleanupKind, str]) -> CleanupKind:
    if isinstance(value, CleanupKind):
        return value
    try:
        return CleanupKind(value)
    except ValueError:
        valid = ', '.join(k.value for k in CleanupKind)
        raise RankValidationError(f"Invalid cleanup type {value!r}. Valid types: {valid}") from None


class CleanupCoordinator:
    """Deletes the ranks invalidated by a catalog change."""

    def __init__(self, repository: RankRepository):
        self.repository = repository
        self.session = repository.session

    def affected_rank_ids(
        self,
        kind: Union[CleanupKind, str],
        target_id: int,
        term_id: Optional[int] = None
    ) -> List[int]:
        """Rank ids touched by a catalog change, ascending."""
        kind = coerce_cleanup_kind(kind)
        target_id = require_id(target_id)

        if kind == CleanupKind.RESOURCE_DELETE:
            query = self.session.query(RankRecord.id).filter(RankRecord.resource_id == target_id)

        elif kind == CleanupKind.RESOURCE_TERM_CHANGE:
            if term_id is None:
                raise RankValidationError("A term_id is required for resource_term_change cleanup")
            term_id = require_id(term_id, 'term_id')
            query = self.session.query(RankRecord.id).join(
                RankCriterion, RankCriterion.rank_id == RankRecord.id
            ).filter(
                RankRecord.resource_id == target_id,
                RankCriterion.term_id == term_id
            )

        elif kind in (CleanupKind.TERM_FACET_CHANGE, CleanupKind.TERM_DELETE):
            query = self.session.query(RankCriterion.rank_id).filter(RankCriterion.term_id == target_id)

        else:
            query = self.session.query(RankCriterion.rank_id).filter(RankCriterion.facet_id == target_id)

        return sorted(rank_id for (rank_id,) in query.distinct().all())

    def cleanup(
        self,
        kind: Union[CleanupKind, str],
        target_id: int,
        term_id: Optional[int] = None
    ) -> CleanupResult:
        """
        Delete every rank affected by a catalog change.

        Args:
            kind: Kind of change (CleanupKind or its string value)
            target_id: Resource, term or facet id, depending on kind
            term_id: Term the resource lost (resource_term_change only)

        Returns:
            CleanupResult; status is PARTIAL_FAILURE if any deletion failed
        """
        kind = coerce_cleanup_kind(kind)
        context = {'kind': kind.value, 'id': target_id, 'term_id': term_id}

        with log_rank_operation('cleanup', context) as logger:
            affected = self.affected_rank_ids(kind, target_id, term_id)
            result = CleanupResult(kind=kind, target_id=target_id, term_id=term_id, affected=affected)

            for rank_id in affected:
                rank = self.repository.load(rank_id)
                if rank is None:
                    continue  # Removed since the affected ranks were listed
                try:
                    if self.repository.delete(rank) == DeleteOutcome.DELETED:
                        result.deleted.append(rank_id)
                except RankError as e:
                    result.failed[rank_id] = str(e)
                    print(f"Warning: Failed to delete rank {rank_id} during {kind.value} cleanup: {e}", file=sys.stderr)

            logger.set_result(result.model_dump(mode='json'))

        return result
