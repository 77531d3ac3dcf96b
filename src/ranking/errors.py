"""
Exceptions raised by the ranking engine.

Duplicate ranks are not errors: commit() reports them through
CommitOutcome.DUPLICATE so callers can retry with another value.
"""


class RankError(Exception):
    """Base class for ranking engine errors."""


class RankValidationError(RankError, ValueError):
    """Missing or malformed rank attributes, or an illegal state transition."""


class RankReferenceError(RankError, LookupError):
    """Unknown resource, term, facet or rank id."""


class RankStorageError(RankError, RuntimeError):
    """A store transaction failed and was rolled back."""
