"""
Rank repository: the only writer of the normalized rank tables.

Every write (commit, quick value, delete) runs as a single transaction on the
repository's session. A failed write is rolled back before a
RankStorageError is raised, so no half-written rank survives.
"""

import enum
from typing import Optional, Union
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from db.models import RankType, RankRecord, RankCriterion, RankData
from ranking.catalog import Catalog, CatalogKind, DatabaseCatalog
from ranking.duplicates import DuplicateDetector, DuplicateReport
from ranking.errors import RankValidationError, RankReferenceError, RankStorageError
from ranking.logging import log_rank_operation
from ranking.rank import Rank, require_rank_value


class CommitOutcome(enum.Enum):
    SUCCESS = "success"
    DUPLICATE = "duplicate"  # Rank collides with another rank, nothing written


class DeleteOutcome(enum.Enum):
    DELETED = "deleted"
    NOOP = "noop"  # Rank was never committed


class CommitResult(BaseModel):
    """Result of RankRepository.commit()."""
    outcome: CommitOutcome
    rank_id: Optional[int] = None
    duplicate: Optional[DuplicateReport] = None

    @property
    def ok(self) -> bool:
        return self.outcome == CommitOutcome.SUCCESS


class RankRepository:
    """Create, load, update and delete ranks in the normalized store."""

    def __init__(self, session: Session, catalog: Optional[Catalog] = None):
        """
        Args:
            session: Database session; the repository commits and rolls it back
            catalog: Catalog for validation (defaults to DatabaseCatalog on the same session)
        """
        self.session = session
        self.catalog = catalog or DatabaseCatalog(session)
        self.detector = DuplicateDetector(session)

    def new(
        self,
        rank_type: Union[RankType, str, None] = None,
        resource_id: Optional[int] = None,
        value: Optional[int] = None
    ) -> Rank:
        """Create a transient rank bound to this repository's catalog."""
        return Rank(self.catalog, rank_type=rank_type, resource_id=resource_id, value=value)

    def load(self, rank_id: int) -> Optional[Rank]:
        """Load a persisted rank with its criteria, or None if it does not exist."""
        record = self.session.get(RankRecord, rank_id)
        if record is None:
            return None
        return Rank.from_record(record, self.catalog)

    def commit(self, rank: Rank, ignore_duplicate: bool = False) -> CommitResult:
        """
        Write a rank and its staged criteria.

        A transient rank is inserted and gets its id; a persisted rank has its
        row updated and its criteria rows replaced by the staged set.

        Args:
            rank: Rank to write
            ignore_duplicate: Skip duplicate detection (administrative renumbering)

        Returns:
            CommitResult with outcome SUCCESS, or DUPLICATE and the collision
            report when nothing was written

        Raises:
            RankValidationError: Missing attributes, bad criteria or deleted rank
            RankReferenceError: Resource or rank row no longer exists
            RankStorageError: The transaction failed and was rolled back
        """
        rank.validate_for_commit()
        if not self.catalog.exists(CatalogKind.RESOURCE, rank.resource_id):
            raise RankReferenceError(f"Resource {rank.resource_id} not found")

        key = rank.canonical_key()

        if not ignore_duplicate:
            report = self.detector.check(
                rank.rank_type, key, rank.resource_id, rank.value, exclude_rank_id=rank.id
            )
            if report.is_duplicate:
                return CommitResult(outcome=CommitOutcome.DUPLICATE, rank_id=rank.id, duplicate=report)

        record = None
        if rank.is_persisted:
            record = self.session.get(RankRecord, rank.rank_id)
            if record is None:
                raise RankReferenceError(f"Rank {rank.rank_id} no longer exists")

        try:
            if record is None:
                record = RankRecord(
                    value=rank.value,
                    rank_type=rank.rank_type,
                    resource_id=rank.resource_id,
                    canonical_key=key
                )
                self.session.add(record)
                self.session.flush()  # Assign the id
            else:
                record.value = rank.value
                record.resource_id = rank.resource_id
                record.canonical_key = key
                self.session.query(RankCriterion).filter(
                    RankCriterion.rank_id == record.id
                ).delete()

            rank_id = record.id
            self.session.add_all([
                RankCriterion(rank_id=rank_id, facet_id=c.facet_id, term_id=c.term_id)
                for c in rank.list_criteria()
            ])
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise RankStorageError(f"Rank commit failed and was rolled back: {e}") from e

        rank.mark_persisted(rank_id)
        return CommitResult(outcome=CommitOutcome.SUCCESS, rank_id=rank_id)

    def quick_value(self, rank: Rank, value: int):
        """
        Change only the value of a persisted rank.

        Bypasses duplicate detection and the criteria rewrite, so it can put
        two resources on the same value. Meant for bulk renumbering.
        """
        if not rank.is_persisted:
            raise RankValidationError("A valid rank id was not found for rank")
        value = require_rank_value(value)

        context = {'rank_id': rank.rank_id, 'value': value, 'previous_value': rank.value}
        with log_rank_operation('quick_value', context):
            try:
                updated = self.session.query(RankRecord).filter(
                    RankRecord.id == rank.rank_id
                ).update({RankRecord.value: value}, synchronize_session=False)
                if updated != 1:
                    self.session.rollback()
                    raise RankStorageError(f"Rank value update failed. {updated} records were updated.")
                self.session.commit()
            except SQLAlchemyError as e:
                self.session.rollback()
                raise RankStorageError(f"Rank value update failed and was rolled back: {e}") from e

        rank.value = value

    def delete(self, rank: Rank) -> DeleteOutcome:
        """
        Delete a rank: its criteria rows, its cache row, then the rank row.

        Returns:
            DELETED, or NOOP for a rank that was never committed
        """
        if rank.is_deleted:
            raise RankValidationError("Rank has already been deleted")
        if rank.is_transient:
            return DeleteOutcome.NOOP

        rank_id = rank.rank_id
        try:
            self.session.query(RankCriterion).filter(
                RankCriterion.rank_id == rank_id
            ).delete()
            self.session.query(RankData).filter(
                RankData.rank_id == rank_id
            ).delete()
            deleted = self.session.query(RankRecord).filter(
                RankRecord.id == rank_id
            ).delete()
            if deleted != 1:
                self.session.rollback()
                raise RankStorageError(f"Error deleting rank record. Deleted {deleted} records.")
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise RankStorageError(f"Rank delete failed and was rolled back: {e}") from e

        rank.mark_deleted()
        return DeleteOutcome.DELETED
