"""
Database package for resource rankings.
"""

from .models import Base, RankType, Facet, Term, Resource, RankRecord, RankCriterion, RankData, RankOperationLog, resource_terms, FACET_ONLY_TERM_ID
from .database import Database

__all__ = ['Base', 'RankType', 'Facet', 'Term', 'Resource', 'RankRecord', 'RankCriterion', 'RankData', 'RankOperationLog', 'resource_terms', 'FACET_ONLY_TERM_ID', 'Database']
