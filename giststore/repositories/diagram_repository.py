"""Diagram repository for database operations."""

from datetime import datetime
from typing import Optional

from ..models import Diagram
from .base import BaseRepository


class DiagramRepository(BaseRepository[Diagram]):
    """Repository for the diagram registry."""

    model_class = Diagram

    def create(
        self,
        diagram_id: str,
        public: bool,
        description: Optional[str],
        created_at: datetime,
    ) -> Diagram:
        """Insert a diagram row. The caller inserts its first version in the same transaction."""
        db_diagram = Diagram(
            id=diagram_id,
            public_access=public,
            description=description,
            created_at=created_at,
            updated_at=created_at,
        )
        self.db.add(db_diagram)
        self.db.flush()
        return db_diagram

    def touch(self, diagram_id: str, updated_at: datetime) -> int:
        """Bump updated_at. Returns the number of rows changed."""
        return self.db.query(Diagram).filter(
            Diagram.id == diagram_id
        ).update({Diagram.updated_at: updated_at}, synchronize_session=False)

    def delete(self, diagram_id: str) -> int:
        """Delete the diagram row. Returns the number of rows deleted."""
        return self.db.query(Diagram).filter(
            Diagram.id == diagram_id
        ).delete(synchronize_session=False)

    def count(self) -> int:
        return self.db.query(Diagram).count()
