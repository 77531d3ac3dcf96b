"""
In-memory rank aggregate.

A Rank is built empty (or loaded through RankRepository.load), mutated through
its attribute setters and add_criteria()/remove_criteria(), and written only by
RankRepository.commit(). The staged criteria list is flushed as a whole on
every commit.
"""

import enum
from typing import List, Optional, Union

from db.models import RankType, RankRecord
from ranking.catalog import Catalog, CatalogKind
from ranking.criteria import (
    Criterion, CriteriaOutcome, RemoveOutcome, coerce_rank_type, policy_for, require_id
)
from ranking.errors import RankValidationError, RankReferenceError


def require_rank_value(value) -> int:
    """Validate a rank value: a positive integer (booleans rejected)."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise RankValidationError(f"Only integers can be submitted for a rank value, got {value!r}")
    if value < 1:
        raise RankValidationError(f"Rank value must be a positive integer, got {value}")
    return value


class RankState(enum.Enum):
    """Lifecycle of a rank."""
    TRANSIENT = "transient"   # Not persisted, no id yet
    PERSISTED = "persisted"   # Row exists, id assigned
    DELETED = "deleted"       # Terminal


class Rank:
    """One ranking assertion: a value for a resource under a classification context."""

    def __init__(
        self,
        catalog: Catalog,
        rank_type: Union[RankType, str, None] = None,
        resource_id: Optional[int] = None,
        value: Optional[int] = None
    ):
        """
        Create a transient rank.

        Args:
            catalog: Catalog used to validate resource and criteria ids
            rank_type: Optional rank type (RankType or its string value)
            resource_id: Optional resource id, must exist in the catalog
            value: Optional rank value, a positive integer
        """
        self.catalog = catalog
        self.state = RankState.TRANSIENT
        self._rank_id: Optional[int] = None
        self._rank_type: Optional[RankType] = None
        self._resource_id: Optional[int] = None
        self._value: Optional[int] = None
        self._criteria: List[Criterion] = []

        if rank_type is not None:
            self.rank_type = rank_type
        if resource_id is not None:
            self.resource_id = resource_id
        if value is not None:
            self.value = value

    @classmethod
    def from_record(cls, record: RankRecord, catalog: Catalog) -> 'Rank':
        """
        Rebuild a persisted rank from its row.

        No catalog validation happens here: cleanup loads ranks whose
        resource or terms are already gone.
        """
        rank = cls(catalog)
        rank._rank_id = record.id
        rank._rank_type = record.rank_type
        rank._resource_id = record.resource_id
        rank._value = record.value
        rank._criteria = [
            Criterion(facet_id=c.facet_id, term_id=c.term_id) for c in record.criteria
        ]
        rank.state = RankState.PERSISTED
        return rank

    # ====================
    # Attributes
    # ====================

    @property
    def rank_id(self) -> int:
        """Rank id; only available once the rank has been committed."""
        if self._rank_id is None:
            raise RankValidationError("Rank id not found. Perhaps commit() needs to be called first.")
        return self._rank_id

    @property
    def id(self) -> Optional[int]:
        return self._rank_id

    @property
    def value(self) -> Optional[int]:
        return self._value

    @value.setter
    def value(self, value: int):
        self._value = require_rank_value(value)

    @property
    def rank_type(self) -> Optional[RankType]:
        return self._rank_type

    @rank_type.setter
    def rank_type(self, rank_type: Union[RankType, str]):
        rank_type = coerce_rank_type(rank_type)
        if self._rank_type is not None and rank_type != self._rank_type:
            if self.state != RankState.TRANSIENT:
                raise RankValidationError("The type of a committed rank cannot be changed")
            if self._criteria:
                raise RankValidationError("Remove staged criteria before changing the rank type")
        self._rank_type = rank_type

    @property
    def resource_id(self) -> Optional[int]:
        return self._resource_id

    @resource_id.setter
    def resource_id(self, resource_id: int):
        resource_id = require_id(resource_id, 'resource_id')
        if not self.catalog.exists(CatalogKind.RESOURCE, resource_id):
            raise RankReferenceError(f"Resource {resource_id} not found")
        if self._criteria and resource_id != self._resource_id:
            raise RankValidationError("Remove staged criteria before changing the ranked resource")
        self._resource_id = resource_id

    # ====================
    # State
    # ====================

    @property
    def is_transient(self) -> bool:
        return self.state == RankState.TRANSIENT

    @property
    def is_persisted(self) -> bool:
        return self.state == RankState.PERSISTED

    @property
    def is_deleted(self) -> bool:
        return self.state == RankState.DELETED

    def mark_persisted(self, rank_id: int):
        self._rank_id = rank_id
        self.state = RankState.PERSISTED

    def mark_deleted(self):
        self.state = RankState.DELETED

    # ====================
    # Criteria
    # ====================

    def _require_context(self):
        if self._resource_id is None:
            raise RankValidationError("Cannot add criteria for a rank not associated with a valid resource id")
        if self._rank_type is None:
            raise RankValidationError("No rank type found. Please assign one before changing criteria")

    def add_criteria(self, ids) -> CriteriaOutcome:
        """
        Stage criteria for this rank.

        Args:
            ids: A single facet or term id for facet/single_term ranks, a list
                of term ids for combined_term ranks

        Returns:
            CriteriaOutcome describing what happened
        """
        self._require_context()
        outcome, self._criteria = policy_for(self._rank_type).add(
            self._criteria, ids, self._resource_id, self.catalog
        )
        return outcome

    def remove_criteria(self, entity_id: int) -> RemoveOutcome:
        """Remove one staged criterion by facet id (facet ranks) or term id."""
        if self._rank_type is None:
            raise RankValidationError("No rank type found. Please assign one before changing criteria")
        outcome, self._criteria = policy_for(self._rank_type).remove(self._criteria, entity_id)
        return outcome

    def list_criteria(self) -> List[Criterion]:
        return list(self._criteria)

    def canonical_key(self) -> str:
        if self._rank_type is None:
            raise RankValidationError("No rank type found")
        return policy_for(self._rank_type).canonical_key(self._criteria)

    def validate_for_commit(self):
        """Check that every attribute needed by commit() is set."""
        if self.state == RankState.DELETED:
            raise RankValidationError("A deleted rank cannot be committed")
        if self._value is None or self._rank_type is None or self._resource_id is None:
            raise RankValidationError("One or more attributes (value, rank_type, resource_id) not set for rank")
        policy_for(self._rank_type).validate_arity(self._criteria)

    def __repr__(self):
        rank_type = self._rank_type.value if self._rank_type else None
        return (
            f"<Rank(id={self._rank_id}, type={rank_type}, resource_id={self._resource_id}, "
            f"value={self._value}, criteria={len(self._criteria)}, state={self.state.value})>"
        )
