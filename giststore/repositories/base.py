"""Base repository with shared get-by-ID patterns.

Subclasses specify model_class and id_column; the base provides the
common lookups.
"""

from typing import TypeVar, Generic, Optional, Type
from sqlalchemy.orm import Session, Query

from ..database import Base

ModelT = TypeVar("ModelT", bound=Base)


class BaseRepository(Generic[ModelT]):
    """Shared repository logic for SQLAlchemy models.

    Class variables to set in subclasses:
        model_class:     The SQLAlchemy model (e.g., Diagram)
        id_column:       Name of the primary-key column (default "id")
    """

    model_class: Type[ModelT]
    id_column: str = "id"

    def __init__(self, db: Session):
        self.db = db

    def _base_query(self) -> Query:
        """Base query for get_by_id_optional.

        Override in subclasses to apply default filters.
        """
        return self.db.query(self.model_class)

    def get_by_id_optional(self, entity_id: str) -> Optional[ModelT]:
        """Get entity by primary key, or None if not found."""
        col = getattr(self.model_class, self.id_column)
        return self._base_query().filter(col == entity_id).first()

    def exists(self, entity_id: str) -> bool:
        col = getattr(self.model_class, self.id_column)
        return self.db.query(self._base_query().filter(col == entity_id).exists()).scalar()
