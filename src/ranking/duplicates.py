"""
Duplicate detection for rank commits.

Two ranks of the same type with the same canonical key describe the same
classification context. Within one context:

- a resource can be ranked only once (resource collision)
- a value can be held by only one resource (value collision)
"""

import enum
from typing import List, Optional
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from db.models import RankType, RankRecord


class DuplicateKind(enum.Enum):
    SAME_RESOURCE = "same_resource"  # Resource already ranked under this context
    SAME_VALUE = "same_value"        # Value already taken under this context


class DuplicateReport(BaseModel):
    """Outcome of a duplicate check."""
    rank_type: RankType
    canonical_key: str
    resource_conflicts: List[int] = Field(default_factory=list, description="Rank ids ranking the same resource")
    value_conflicts: List[int] = Field(default_factory=list, description="Rank ids holding the same value for another resource")

    @property
    def is_duplicate(self) -> bool:
        return bool(self.resource_conflicts or self.value_conflicts)

    @property
    def kinds(self) -> List[DuplicateKind]:
        kinds = []
        if self.resource_conflicts:
            kinds.append(DuplicateKind.SAME_RESOURCE)
        if self.value_conflicts:
            kinds.append(DuplicateKind.SAME_VALUE)
        return kinds


class DuplicateDetector:
    """Checks a candidate rank against the committed ranks in the store."""

    def __init__(self, session: Session):
        self.session = session

    def check(
        self,
        rank_type: RankType,
        canonical_key: str,
        resource_id: int,
        value: int,
        exclude_rank_id: Optional[int] = None
    ) -> DuplicateReport:
        """
        Find committed ranks that would collide with the candidate.

        Args:
            rank_type: Candidate rank type
            canonical_key: Canonical key of the candidate's criteria
            resource_id: Candidate resource
            value: Candidate rank value
            exclude_rank_id: Id of the candidate itself when updating

        Returns:
            DuplicateReport listing the conflicting rank ids by kind
        """
        query = self.session.query(
            RankRecord.id, RankRecord.resource_id, RankRecord.value
        ).filter(
            RankRecord.rank_type == rank_type,
            RankRecord.canonical_key == canonical_key
        )
        if exclude_rank_id is not None:
            query = query.filter(RankRecord.id != exclude_rank_id)

        report = DuplicateReport(rank_type=rank_type, canonical_key=canonical_key)
        for other_id, other_resource_id, other_value in query.order_by(RankRecord.id).all():
            if other_resource_id == resource_id:
                report.resource_conflicts.append(other_id)
            elif other_value == value:
                report.value_conflicts.append(other_id)
        return report
