"""
Catalog access for rank validation.

The resource/term/facet catalog is owned by another part of the system; the
ranking engine only needs existence checks and the resource -> term -> facet
relation. Everything goes through the Catalog interface so the engine can be
exercised against any backing store.
"""

import enum
from typing import Optional, Set
from sqlalchemy.orm import Session

from db.models import Facet, Term, Resource, resource_terms


class CatalogKind(enum.Enum):
    """Kinds of catalog entities a rank refers to."""
    RESOURCE = "resource"
    TERM = "term"
    FACET = "facet"


class Catalog:
    """Interface to the external resource/term/facet catalog."""

    def exists(self, kind: CatalogKind, entity_id: int) -> bool:
        raise NotImplementedError

    def related_terms(self, resource_id: int) -> Set[int]:
        """Ids of the terms the resource is affiliated with."""
        raise NotImplementedError

    def facet_of(self, term_id: int) -> Optional[int]:
        """Facet id of a term, or None if the term is unknown."""
        raise NotImplementedError

    def related_facets(self, resource_id: int) -> Set[int]:
        """Facets reachable from the resource through its terms."""
        facets = set()
        for term_id in self.related_terms(resource_id):
            facet_id = self.facet_of(term_id)
            if facet_id is not None:
                facets.add(facet_id)
        return facets


class DatabaseCatalog(Catalog):
    """Catalog backed by the resources/terms/facets tables."""

    _MODELS = {
        CatalogKind.RESOURCE: Resource,
        CatalogKind.TERM: Term,
        CatalogKind.FACET: Facet,
    }

    def __init__(self, session: Session):
        self.session = session

    def exists(self, kind: CatalogKind, entity_id: int) -> bool:
        model = self._MODELS[kind]
        return self.session.query(model.id).filter(model.id == entity_id).first() is not None

    def related_terms(self, resource_id: int) -> Set[int]:
        rows = self.session.query(resource_terms.c.term_id).filter(
            resource_terms.c.resource_id == resource_id
        ).all()
        return {term_id for (term_id,) in rows}

    def facet_of(self, term_id: int) -> Optional[int]:
        return self.session.query(Term.facet_id).filter(Term.id == term_id).scalar()

    def related_facets(self, resource_id: int) -> Set[int]:
        rows = self.session.query(Term.facet_id).join(
            resource_terms, resource_terms.c.term_id == Term.id
        ).filter(
            resource_terms.c.resource_id == resource_id
        ).distinct().all()
        return {facet_id for (facet_id,) in rows}
