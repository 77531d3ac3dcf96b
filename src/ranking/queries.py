"""
Read side of the ranking engine.

ranked_list() reads the rank_data cache (fast, possibly stale);
ranked_list_current() matches criteria sets directly against the normalized
tables (slower, always current). Both return entries ordered best-first
(ascending value).
"""

import enum
from typing import Dict, List, Optional, Union
from pydantic import BaseModel, Field
from sqlalchemy import and_, func, select
from sqlalchemy.orm import Session

from db.models import RankType, RankRecord, RankCriterion, RankData, FACET_ONLY_TERM_ID
from ranking.catalog import Catalog, CatalogKind, DatabaseCatalog
from ranking.criteria import coerce_rank_type, encode_key, policy_for, require_id
from ranking.errors import RankReferenceError


class QueryStatus(enum.Enum):
    FOUND = "found"
    NOT_FOUND = "not_found"  # No ranks for the criteria (or the cache is stale)


class RankedEntry(BaseModel):
    rank_id: int
    resource_id: int
    value: int


class RankedList(BaseModel):
    """Resources ranked under one classification context, best first."""
    rank_type: RankType
    canonical_key: Optional[str] = None
    entries: List[RankedEntry] = Field(default_factory=list)

    @property
    def status(self) -> QueryStatus:
        return QueryStatus.FOUND if self.entries else QueryStatus.NOT_FOUND

    @property
    def found(self) -> bool:
        return bool(self.entries)

    def resource_ids(self) -> List[int]:
        return [e.resource_id for e in self.entries]


class RankQueries:
    """Ranked lookups by classification context and by resource."""

    def __init__(self, session: Session, catalog: Optional[Catalog] = None):
        self.session = session
        self.catalog = catalog or DatabaseCatalog(session)

    def _request_ids(self, rank_type: RankType, ids) -> Optional[List[int]]:
        """
        Validate lookup ids.

        Unknown facet or term ids for single-id types raise; an unknown term in
        a combined request returns None (nothing can be ranked under it).
        """
        policy = policy_for(rank_type)
        request_ids = sorted(set(policy.request_ids(ids)))

        if rank_type == RankType.COMBINED_TERM:
            if not all(self.catalog.exists(CatalogKind.TERM, t) for t in request_ids):
                return None
            return request_ids

        kind = policy.catalog_kind
        if not self.catalog.exists(kind, request_ids[0]):
            raise RankReferenceError(f"{kind.value.capitalize()} {request_ids[0]} not found")
        return request_ids

    def ranked_list(self, rank_type: Union[RankType, str], ids) -> RankedList:
        """
        Ranked resources for a context, read from the rank_data cache.

        Args:
            rank_type: Rank type of the context
            ids: Facet id, term id, or list of term ids (combined_term)

        Returns:
            RankedList; status NOT_FOUND when the cache has no entry for the key
        """
        rank_type = coerce_rank_type(rank_type)
        request_ids = self._request_ids(rank_type, ids)
        if request_ids is None:
            return RankedList(rank_type=rank_type)

        key = encode_key(request_ids)
        rows = self.session.query(RankData.rank_id, RankData.resource_id, RankData.value).filter(
            RankData.rank_type == rank_type,
            RankData.canonical_key == key
        ).order_by(RankData.value, RankData.rank_id).all()

        return RankedList(
            rank_type=rank_type,
            canonical_key=key,
            entries=[RankedEntry(rank_id=r, resource_id=res, value=v) for r, res, v in rows]
        )

    def ranked_list_current(self, rank_type: Union[RankType, str], ids) -> RankedList:
        """
        Ranked resources for a context, matched against rank_criteria.

        A rank matches when its criteria set equals the requested set exactly:
        the number of its criteria among the requested ids equals both the
        request size and its own criteria count.
        """
        rank_type = coerce_rank_type(rank_type)
        request_ids = self._request_ids(rank_type, ids)
        if request_ids is None:
            return RankedList(rank_type=rank_type)

        if rank_type == RankType.FACET:
            member = and_(
                RankCriterion.facet_id.in_(request_ids),
                RankCriterion.term_id == FACET_ONLY_TERM_ID
            )
        else:
            member = RankCriterion.term_id.in_(request_ids)
        size = len(request_ids)

        # Ranks containing every requested criterion
        containing = select(RankCriterion.rank_id).join(
            RankRecord, RankRecord.id == RankCriterion.rank_id
        ).where(
            RankRecord.rank_type == rank_type,
            member
        ).group_by(RankCriterion.rank_id).having(func.count(RankCriterion.id) == size)

        # ... and nothing else
        rows = self.session.query(
            RankRecord.id, RankRecord.resource_id, RankRecord.value
        ).join(
            RankCriterion, RankCriterion.rank_id == RankRecord.id
        ).filter(
            RankRecord.id.in_(containing)
        ).group_by(
            RankRecord.id, RankRecord.resource_id, RankRecord.value
        ).having(
            func.count(RankCriterion.id) == size
        ).order_by(RankRecord.value, RankRecord.id).all()

        return RankedList(
            rank_type=rank_type,
            canonical_key=encode_key(request_ids),
            entries=[RankedEntry(rank_id=r, resource_id=res, value=v) for r, res, v in rows]
        )

    def rank_by_resource(self, resource_id: int) -> Dict[RankType, List[int]]:
        """
        Rank ids for a resource, grouped by rank type.

        Returns:
            Dict mapping RankType -> list of rank ids (empty dict if the
            resource has no ranks)

        Raises:
            RankReferenceError: The resource does not exist
        """
        resource_id = require_id(resource_id, 'resource_id')
        if not self.catalog.exists(CatalogKind.RESOURCE, resource_id):
            raise RankReferenceError(f"Resource {resource_id} not found")

        rows = self.session.query(RankRecord.rank_type, RankRecord.id).filter(
            RankRecord.resource_id == resource_id
        ).order_by(RankRecord.id).all()

        grouped: Dict[RankType, List[int]] = {}
        for rank_type, rank_id in rows:
            grouped.setdefault(rank_type, []).append(rank_id)
        return grouped
