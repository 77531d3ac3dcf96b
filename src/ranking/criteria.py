"""
Rank criteria model and canonical key encoding.

Each rank type is a variant with its own criteria policy:

    facet          exactly one (facet, 0) criterion, keyed by the facet id
    single_term    exactly one (facet, term) criterion, keyed by the term id
    combined_term  one or more distinct (facet, term) criteria, keyed by the
                   term ids sorted descending and joined with KEY_SEPARATOR

A canonical key is only ever compared for equality (together with the rank
type) and is never parsed back into ids.
"""

import enum
from typing import Iterable, List, Optional, Sequence, Tuple, Union
from pydantic import BaseModel, ConfigDict, Field

from db.models import RankType, FACET_ONLY_TERM_ID
from ranking.catalog import Catalog, CatalogKind
from ranking.errors import RankValidationError, RankReferenceError

KEY_SEPARATOR = ','


class Criterion(BaseModel):
    """One (facet, term) classification pair."""
    model_config = ConfigDict(frozen=True)

    facet_id: int = Field(ge=1, description="Facet the criterion belongs to")
    term_id: int = Field(default=FACET_ONLY_TERM_ID, ge=0, description="Term id, 0 for facet-only criteria")

    @property
    def is_facet_only(self) -> bool:
        return self.term_id == FACET_ONLY_TERM_ID


class CriteriaOutcome(enum.Enum):
    """Result of add_criteria()."""
    SUCCESS = "success"
    DUPLICATE_IGNORED = "duplicate_ignored"
    OTHER_CRITERIA_EXISTS = "other_criteria_exists"
    FACET_NOT_RELATED = "facet_not_related"
    TERM_NOT_RELATED = "term_not_related"
    DUPLICATE_AND_NOT_RELATED = "duplicate_and_not_related"


class RemoveOutcome(enum.Enum):
    """Result of remove_criteria()."""
    SUCCESS = "success"
    NOT_FOUND = "not_found"


def coerce_rank_type(value: Union[RankType, str]) -> RankType:
    """Accept a RankType or its string value ('facet', 'single_term', 'combined_term')."""
    if isinstance(value, RankType):
        return value
    try:
        return RankType(value)
    except ValueError:
        valid = ', '.join(t.value for t in RankType)
        raise RankValidationError(f"Invalid rank type {value!r}. Valid types: {valid}") from None


def require_id(value, name: str = 'id') -> int:
    """Validate a catalog id: a positive integer (booleans rejected)."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise RankValidationError(f"{name} must be an integer, got {value!r}")
    if value < 1:
        raise RankValidationError(f"{name} must be positive, got {value}")
    return value


def require_id_list(values, name: str = 'ids') -> List[int]:
    if isinstance(values, (str, bytes)) or not isinstance(values, (list, tuple)):
        raise RankValidationError(f"{name} must be a list of integers, got {values!r}")
    if not values:
        raise RankValidationError(f"At least one id must be submitted in {name}")
    return [require_id(v, name) for v in values]


def encode_key(ids: Iterable[int]) -> str:
    """Canonical key for a set of ids: sorted descending, joined with KEY_SEPARATOR."""
    return KEY_SEPARATOR.join(str(i) for i in sorted(set(ids), reverse=True))


class CriteriaPolicy:
    """Criteria rules shared by all rank types."""

    rank_type: RankType
    catalog_kind: CatalogKind = CatalogKind.TERM
    max_criteria: Optional[int] = 1

    def key_ids(self, criteria: Iterable[Criterion]) -> List[int]:
        return [c.term_id for c in criteria]

    def canonical_key(self, criteria: Sequence[Criterion]) -> str:
        self.validate_arity(criteria)
        return encode_key(self.key_ids(criteria))

    def request_ids(self, ids) -> List[int]:
        if isinstance(ids, (list, tuple)) and len(ids) == 1:
            ids = ids[0]
        return [require_id(ids)]

    def validate_arity(self, criteria: Sequence[Criterion]):
        if not criteria:
            raise RankValidationError("No criteria assigned to rank")
        if self.max_criteria is not None and len(criteria) > self.max_criteria:
            raise RankValidationError(
                f"{self.rank_type.value} ranks carry exactly {self.max_criteria} criterion "
                f"(has {len(criteria)})"
            )
        if len(set(criteria)) != len(criteria):
            raise RankValidationError("Rank criteria must be distinct")

    def criterion_for(self, entity_id: int, catalog: Catalog) -> Optional[Criterion]:
        raise NotImplementedError

    def matches(self, criterion: Criterion, entity_id: int) -> bool:
        """Whether a staged criterion is the one named by entity_id."""
        return criterion.term_id == entity_id

    def is_related(self, entity_id: int, resource_id: int, catalog: Catalog) -> bool:
        raise NotImplementedError

    not_related_outcome = CriteriaOutcome.TERM_NOT_RELATED

    def add(
        self,
        staged: List[Criterion],
        ids,
        resource_id: int,
        catalog: Catalog
    ) -> Tuple[CriteriaOutcome, List[Criterion]]:
        """
        Stage a single criterion.

        Single-criterion ranks are replace-not-append: a different criterion
        already staged must be removed first.

        Returns:
            Tuple of (outcome, new staged list). The staged list is unchanged
            unless the outcome is SUCCESS.
        """
        if isinstance(ids, (list, tuple)):
            raise RankValidationError(
                f"{self.rank_type.value} ranks take a single id, not a list"
            )
        entity_id = require_id(ids)
        if not catalog.exists(self.catalog_kind, entity_id):
            raise RankReferenceError(f"{self.catalog_kind.value.capitalize()} {entity_id} not found")

        candidate = self.criterion_for(entity_id, catalog)
        if candidate in staged:
            return CriteriaOutcome.DUPLICATE_IGNORED, staged
        if staged:
            return CriteriaOutcome.OTHER_CRITERIA_EXISTS, staged
        if not self.is_related(entity_id, resource_id, catalog):
            return self.not_related_outcome, staged
        return CriteriaOutcome.SUCCESS, staged + [candidate]

    def remove(
        self,
        staged: List[Criterion],
        entity_id: int,
    ) -> Tuple[RemoveOutcome, List[Criterion]]:
        """
        Unstage the criterion named by a facet id (facet ranks) or term id.

        Term criteria match on the term id alone, so a term refiled under
        another facet can still be removed from ranks staged before the move.
        """
        entity_id = require_id(entity_id)
        remaining = [c for c in staged if not self.matches(c, entity_id)]
        if len(remaining) == len(staged):
            return RemoveOutcome.NOT_FOUND, staged
        return RemoveOutcome.SUCCESS, remaining


class FacetCriteria(CriteriaPolicy):
    rank_type = RankType.FACET
    catalog_kind = CatalogKind.FACET
    not_related_outcome = CriteriaOutcome.FACET_NOT_RELATED

    def key_ids(self, criteria):
        return [c.facet_id for c in criteria]

    def validate_arity(self, criteria):
        super().validate_arity(criteria)
        if not all(c.is_facet_only for c in criteria):
            raise RankValidationError("facet ranks only carry facet-only criteria")

    def criterion_for(self, entity_id, catalog):
        return Criterion(facet_id=entity_id, term_id=FACET_ONLY_TERM_ID)

    def matches(self, criterion, entity_id):
        return criterion.is_facet_only and criterion.facet_id == entity_id

    def is_related(self, entity_id, resource_id, catalog):
        return entity_id in catalog.related_facets(resource_id)


class SingleTermCriteria(CriteriaPolicy):
    rank_type = RankType.SINGLE_TERM

    def criterion_for(self, entity_id, catalog):
        facet_id = catalog.facet_of(entity_id)
        if facet_id is None:
            return None
        return Criterion(facet_id=facet_id, term_id=entity_id)

    def is_related(self, entity_id, resource_id, catalog):
        return entity_id in catalog.related_terms(resource_id)


class CombinedTermCriteria(SingleTermCriteria):
    rank_type = RankType.COMBINED_TERM
    max_criteria = None

    def validate_arity(self, criteria):
        super().validate_arity(criteria)
        if any(c.is_facet_only for c in criteria):
            raise RankValidationError("combined_term criteria must all name a term")
        if len({c.term_id for c in criteria}) != len(criteria):
            raise RankValidationError("combined_term criteria must name distinct terms")

    def request_ids(self, ids):
        if isinstance(ids, int) and not isinstance(ids, bool):
            ids = [ids]
        return require_id_list(ids)

    def add(self, staged, ids, resource_id, catalog):
        """
        Stage a batch of terms.

        Every id is checked before anything is staged; afterwards each id is
        handled on its own so the caller learns about every problem in the
        batch. Ids repeated within the request are collapsed to their first
        occurrence.
        """
        term_ids = list(dict.fromkeys(self.request_ids(ids)))
        missing = [t for t in term_ids if not catalog.exists(CatalogKind.TERM, t)]
        if missing:
            raise RankReferenceError(f"Term ids not found: {missing}")

        related = catalog.related_terms(resource_id)
        staged_terms = {c.term_id for c in staged}
        updated = list(staged)
        duplicate_found = False
        not_related_found = False

        for term_id in term_ids:
            if term_id not in related:
                not_related_found = True
                continue
            if term_id in staged_terms:
                duplicate_found = True
                continue
            updated.append(self.criterion_for(term_id, catalog))
            staged_terms.add(term_id)

        if duplicate_found and not_related_found:
            outcome = CriteriaOutcome.DUPLICATE_AND_NOT_RELATED
        elif not_related_found:
            outcome = CriteriaOutcome.TERM_NOT_RELATED
        elif duplicate_found:
            outcome = CriteriaOutcome.DUPLICATE_IGNORED
        else:
            outcome = CriteriaOutcome.SUCCESS
        return outcome, updated


POLICIES = {
    RankType.FACET: FacetCriteria(),
    RankType.SINGLE_TERM: SingleTermCriteria(),
    RankType.COMBINED_TERM: CombinedTermCriteria(),
}


def policy_for(rank_type: Union[RankType, str]) -> CriteriaPolicy:
    return POLICIES[coerce_rank_type(rank_type)]


def canonical_key(rank_type: Union[RankType, str], criteria: Sequence[Criterion]) -> str:
    """Canonical key of a criteria set for the given rank type."""
    return policy_for(rank_type).canonical_key(criteria)
