"""
SQLAlchemy models for resource rankings.
"""

from datetime import datetime
from sqlalchemy import Column, Integer, String, Text, DateTime, Table, ForeignKey, Index, Enum, JSON, UniqueConstraint
from sqlalchemy.orm import relationship, declarative_base
import enum

Base = declarative_base()


class RankType(enum.Enum):
    """Classification context shapes a rank can be attached to."""
    FACET = "facet"                  # One facet, no term (term_id sentinel 0)
    SINGLE_TERM = "single_term"      # Exactly one term
    COMBINED_TERM = "combined_term"  # A set of one or more distinct terms


# Sentinel term id for facet-only criteria
FACET_ONLY_TERM_ID = 0


# Association table for the catalog's many-to-many resource/term relation
resource_terms = Table(
    'resource_terms',
    Base.metadata,
    Column('resource_id', Integer, ForeignKey('resources.id', ondelete='CASCADE'), primary_key=True),
    Column('term_id', Integer, ForeignKey('terms.id', ondelete='CASCADE'), primary_key=True),
    Index('idx_resource_terms_resource', 'resource_id'),
    Index('idx_resource_terms_term', 'term_id')
)


class Facet(Base):
    """Top level of the classification taxonomy."""
    __tablename__ = 'facets'

    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False, unique=True, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    terms = relationship('Term', back_populates='facet')

    def __repr__(self):
        return f"<Facet(id={self.id}, name='{self.name}')>"


class Term(Base):
    """Classification term, always filed under exactly one facet."""
    __tablename__ = 'terms'

    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False, unique=True, index=True)
    facet_id = Column(Integer, ForeignKey('facets.id', ondelete='RESTRICT'), nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    facet = relationship('Facet', back_populates='terms')
    resources = relationship('Resource', secondary=resource_terms, back_populates='terms')

    def __repr__(self):
        return f"<Term(id={self.id}, name='{self.name}', facet_id={self.facet_id})>"


class Resource(Base):
    """Catalog resource that can be ranked."""
    __tablename__ = 'resources'

    id = Column(Integer, primary_key=True)
    name = Column(String(500), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    terms = relationship('Term', secondary=resource_terms, back_populates='resources')

    def __repr__(self):
        return f"<Resource(id={self.id}, name='{self.name[:50]}')>"


class RankRecord(Base):
    """Normalized rank row: one ranking assertion for a resource."""
    __tablename__ = 'rank'

    id = Column(Integer, primary_key=True, autoincrement=True)
    value = Column(Integer, nullable=False)  # Ordinal position, lower = higher priority
    rank_type = Column(Enum(RankType), nullable=False, index=True)
    resource_id = Column(Integer, nullable=False, index=True)  # External catalog id, no FK (cleanup handles removals)
    canonical_key = Column(String(255), nullable=False)  # Written together with the criteria rows
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # Relationships
    criteria = relationship(
        'RankCriterion',
        order_by='RankCriterion.id',
        viewonly=True  # Criteria rows are replaced explicitly by the repository
    )

    __table_args__ = (
        # A resource can be ranked only once per classification context
        UniqueConstraint('rank_type', 'canonical_key', 'resource_id', name='uq_rank_context_resource'),
        Index('idx_rank_context_value', 'rank_type', 'canonical_key', 'value'),
    )

    def __repr__(self):
        return f"<RankRecord(id={self.id}, type={self.rank_type.value}, resource_id={self.resource_id}, value={self.value})>"


class RankCriterion(Base):
    """One (facet, term) classification pair attached to a rank."""
    __tablename__ = 'rank_criteria'

    id = Column(Integer, primary_key=True, autoincrement=True)
    rank_id = Column(Integer, ForeignKey('rank.id', ondelete='CASCADE'), nullable=False)
    facet_id = Column(Integer, nullable=False)
    term_id = Column(Integer, nullable=False, default=FACET_ONLY_TERM_ID)

    __table_args__ = (
        UniqueConstraint('rank_id', 'facet_id', 'term_id', name='uq_rank_criteria_pair'),
        Index('idx_rank_criteria_rank', 'rank_id'),
        Index('idx_rank_criteria_term', 'term_id'),
        Index('idx_rank_criteria_facet', 'facet_id'),
    )

    def __repr__(self):
        return f"<RankCriterion(rank_id={self.rank_id}, facet_id={self.facet_id}, term_id={self.term_id})>"


class RankData(Base):
    """
    Materialized lookup row, one per rank.

    Rebuilt in bulk by the cache builder and never patched incrementally,
    so it may be stale between rebuilds.
    """
    __tablename__ = 'rank_data'

    rank_id = Column(Integer, primary_key=True, autoincrement=False)
    resource_id = Column(Integer, nullable=False, index=True)
    value = Column(Integer, nullable=False)
    rank_type = Column(Enum(RankType), nullable=False)
    canonical_key = Column(String(255), nullable=False)
    built_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        Index('idx_rank_data_lookup', 'rank_type', 'canonical_key', 'value'),
    )

    def __repr__(self):
        return f"<RankData(rank_id={self.rank_id}, type={self.rank_type.value}, key='{self.canonical_key}', value={self.value})>"


class RankOperationLog(Base):
    """Log of rank maintenance operations (cache rebuilds, cleanup runs, quick value updates)."""
    __tablename__ = 'rank_operation_logs'

    id = Column(Integer, primary_key=True)

    operation = Column(String(50), nullable=False, index=True)  # 'populate', 'cleanup', 'quick_value'

    # Timing
    started_at = Column(DateTime, nullable=False, index=True)
    completed_at = Column(DateTime, nullable=True)
    duration_ms = Column(Integer, nullable=True)

    # Payloads
    context_data = Column(JSON, nullable=True)  # Input parameters (cleanup kind, target id, ...)
    result_data = Column(JSON, nullable=True)   # Summary of the outcome (counts, status, ...)

    # Status
    success = Column(Integer, nullable=False, default=1, index=True)  # 1=success, 0=error
    error_message = Column(Text, nullable=True)

    __table_args__ = (
        Index('idx_rank_operation_logs_operation_started', 'operation', 'started_at'),
    )

    def __repr__(self):
        status = 'success' if self.success else 'error'
        duration = f"{self.duration_ms}ms" if self.duration_ms is not None else 'N/A'
        return f"<RankOperationLog(id={self.id}, operation={self.operation}, status={status}, duration={duration})>"
