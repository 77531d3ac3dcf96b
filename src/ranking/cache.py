"""
Rank data cache builder.

The rank_data table holds one row per rank with its canonical key so that
ranked_list() is a single indexed equality lookup. It is derived entirely from
the rank and rank_criteria tables and is only ever rebuilt as a whole: the
old generation is cleared and the new one inserted inside one transaction, so
a failed rebuild leaves the previous generation in place.

populate() must run at least once before ranked_list() returns anything, and
again whenever committed changes should become visible on the fast path.
"""

from collections import defaultdict
from datetime import datetime
from typing import Dict, List, Optional
from pydantic import BaseModel, Field
from sqlalchemy import func, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from db.models import RankRecord, RankCriterion, RankData
from ranking.criteria import Criterion, canonical_key
from ranking.errors import RankValidationError, RankStorageError
from ranking.logging import log_rank_operation


class PopulateSummary(BaseModel):
    """Result of a cache rebuild."""
    ranks_read: int
    entries_written: int
    by_type: Dict[str, int] = Field(default_factory=dict, description="Entries written per rank type")
    skipped_rank_ids: List[int] = Field(default_factory=list, description="Ranks whose criteria could not be keyed")
    built_at: datetime
    duration_ms: int = 0


class RankDataBuilder:
    """Rebuilds and inspects the rank_data cache."""

    def __init__(self, session: Session):
        self.session = session

    def _load_criteria(self) -> Dict[int, List[Criterion]]:
        rows = self.session.query(
            RankCriterion.rank_id, RankCriterion.facet_id, RankCriterion.term_id
        ).order_by(RankCriterion.id).all()

        criteria = defaultdict(list)
        for rank_id, facet_id, term_id in rows:
            criteria[rank_id].append(Criterion(facet_id=facet_id, term_id=term_id))
        return criteria

    def populate(self) -> PopulateSummary:
        """
        Recompute the whole rank_data table from the normalized tables.

        Ranks without valid criteria are left out of the cache and reported
        in skipped_rank_ids.

        Raises:
            RankStorageError: The rebuild failed; the previous cache is intact
        """
        with log_rank_operation('populate') as logger:
            built_at = datetime.utcnow()
            try:
                records = self.session.query(RankRecord).order_by(RankRecord.id).all()
                criteria = self._load_criteria()

                entries = []
                skipped = []
                by_type = defaultdict(int)
                for record in records:
                    try:
                        key = canonical_key(record.rank_type, criteria.get(record.id, []))
                    except RankValidationError:
                        skipped.append(record.id)
                        continue
                    entries.append(RankData(
                        rank_id=record.id,
                        resource_id=record.resource_id,
                        value=record.value,
                        rank_type=record.rank_type,
                        canonical_key=key,
                        built_at=built_at
                    ))
                    by_type[record.rank_type.value] += 1

                self.session.query(RankData).delete()
                self.session.add_all(entries)
                self.session.commit()
            except SQLAlchemyError as e:
                self.session.rollback()
                raise RankStorageError(f"Rank data rebuild failed and was rolled back: {e}") from e

            summary = PopulateSummary(
                ranks_read=len(records),
                entries_written=len(entries),
                by_type=dict(by_type),
                skipped_rank_ids=skipped,
                built_at=built_at,
                duration_ms=int((datetime.utcnow() - built_at).total_seconds() * 1000)
            )
            logger.set_result(summary.model_dump(mode='json'))

        return summary

    def stats(self) -> Dict:
        """
        Get cache statistics.

        Returns:
            Dictionary with keys: total_entries, total_ranks, by_type,
            last_built_at, missing (ranks without a cache row), orphaned
            (cache rows without a rank), changed (cache rows whose rank has a
            different value, resource or key) and is_current
        """
        total_entries = self.session.query(func.count(RankData.rank_id)).scalar()
        total_ranks = self.session.query(func.count(RankRecord.id)).scalar()
        last_built_at: Optional[datetime] = self.session.query(func.max(RankData.built_at)).scalar()

        by_type = {
            rank_type.value: count
            for rank_type, count in self.session.query(
                RankData.rank_type, func.count(RankData.rank_id)
            ).group_by(RankData.rank_type).all()
        }

        missing = self.session.query(func.count(RankRecord.id)).select_from(RankRecord).outerjoin(
            RankData, RankData.rank_id == RankRecord.id
        ).filter(RankData.rank_id.is_(None)).scalar()

        orphaned = self.session.query(func.count(RankData.rank_id)).select_from(RankData).outerjoin(
            RankRecord, RankRecord.id == RankData.rank_id
        ).filter(RankRecord.id.is_(None)).scalar()

        changed = self.session.query(func.count(RankData.rank_id)).select_from(RankData).join(
            RankRecord, RankRecord.id == RankData.rank_id
        ).filter(or_(
            RankRecord.value != RankData.value,
            RankRecord.resource_id != RankData.resource_id,
            RankRecord.canonical_key != RankData.canonical_key
        )).scalar()

        return {
            'total_entries': total_entries,
            'total_ranks': total_ranks,
            'by_type': by_type,
            'last_built_at': last_built_at,
            'missing': missing,
            'orphaned': orphaned,
            'changed': changed,
            'is_current': missing == 0 and orphaned == 0 and changed == 0
        }
