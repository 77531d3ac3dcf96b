"""
Database connection and catalog operations.
"""

from pathlib import Path
from typing import Optional
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from .models import Base, Facet, Term, Resource

from settings import get_setting, DEBUG


class Database:
    """Database manager for resource rankings."""

    def __init__(self, db_path: Optional[str] = None, echo: bool = DEBUG):
        """
        Initialize database connection.

        Args:
            db_path: Path to SQLite database file. If None, uses RANK_DB_PATH from settings.
            echo: Echo SQL statements (defaults to the DEBUG setting)
        """
        if db_path is None:
            db_path = get_setting('RANK_DB_PATH', 'data/rankings.db')

        # Ensure data directory exists
        db_file = Path(db_path)
        db_file.parent.mkdir(parents=True, exist_ok=True)

        self.db_path = db_path
        self.engine = create_engine(f'sqlite:///{db_path}', echo=echo)
        self.SessionLocal = sessionmaker(bind=self.engine)

        # Create tables if they don't exist
        Base.metadata.create_all(self.engine)

    def get_session(self) -> Session:
        """Get a new database session."""
        return self.SessionLocal()

    def dispose(self):
        """Release pooled connections."""
        self.engine.dispose()

    def get_or_create_facet(self, session: Session, name: str) -> Facet:
        """
        Get existing facet or create new one.

        Args:
            session: Database session
            name: Facet name

        Returns:
            Facet object
        """
        facet = session.query(Facet).filter_by(name=name).first()
        if not facet:
            facet = Facet(name=name)
            session.add(facet)
            session.flush()  # Get the ID without committing
        return facet

    def get_or_create_term(self, session: Session, name: str, facet: Facet) -> Term:
        """
        Get existing term or create new one under the given facet.

        An existing term keeps its current facet; use move_term() to refile it.
        """
        term = session.query(Term).filter_by(name=name).first()
        if not term:
            term = Term(name=name, facet_id=facet.id)
            session.add(term)
            session.flush()
        return term

    def get_or_create_resource(self, session: Session, name: str) -> Resource:
        """Get existing resource by name or create new one."""
        resource = session.query(Resource).filter_by(name=name).first()
        if not resource:
            resource = Resource(name=name)
            session.add(resource)
            session.flush()
        return resource

    def relate_resource_term(self, session: Session, resource: Resource, term: Term) -> bool:
        """
        Affiliate a resource with a term.

        Returns:
            True if the affiliation was created, False if it already existed
        """
        if term in resource.terms:
            return False
        resource.terms.append(term)
        session.flush()
        return True

    def unrelate_resource_term(self, session: Session, resource: Resource, term: Term) -> bool:
        """Remove a resource/term affiliation. Returns False if it did not exist."""
        if term not in resource.terms:
            return False
        resource.terms.remove(term)
        session.flush()
        return True

    def move_term(self, session: Session, term: Term, facet: Facet):
        """File a term under a different facet."""
        term.facet_id = facet.id
        session.flush()
