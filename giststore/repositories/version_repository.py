"""Version repository for database operations.

All history queries order newest first by ``created_at`` with the version
id as a deterministic tie-break, and paginate by offset.
"""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import aliased

from ..models import Version
from ..models.content import Content, to_column
from .base import BaseRepository


class VersionRepository(BaseRepository[Version]):
    """Repository for the append-only version ledger."""

    model_class = Version

    _NEWEST_FIRST = (Version.created_at.desc(), Version.id.desc())

    def create(
        self,
        version_id: str,
        diagram_id: str,
        filename: str,
        content: Content,
        created_at: datetime,
    ) -> Version:
        """Append a version row."""
        db_version = Version(
            id=version_id,
            diagram_id=diagram_id,
            filename=filename,
            content=to_column(content),
            created_at=created_at,
        )
        self.db.add(db_version)
        self.db.flush()
        return db_version

    def get_for_diagram(self, diagram_id: str, version_id: str) -> Optional[Version]:
        """Get a version, scoped to its diagram."""
        return self.db.query(Version).filter(
            Version.id == version_id,
            Version.diagram_id == diagram_id,
        ).first()

    def get_for_file(self, diagram_id: str, filename: str, version_id: str) -> Optional[Version]:
        """Get a version, scoped to its diagram and filename."""
        return self.db.query(Version).filter(
            Version.id == version_id,
            Version.diagram_id == diagram_id,
            Version.filename == filename,
        ).first()

    def get_latest_per_filename(self, diagram_id: str) -> List[Version]:
        """Newest version of every filename ever written under the diagram.

        Tombstones are included; the caller decides what a removed file means.
        Ordered by filename.
        """
        ranked = self.db.query(
            Version,
            func.row_number().over(
                partition_by=Version.filename,
                order_by=self._NEWEST_FIRST,
            ).label("rank"),
        ).filter(Version.diagram_id == diagram_id).subquery()

        latest = aliased(Version, ranked)
        return self.db.query(latest).filter(
            ranked.c.rank == 1
        ).order_by(latest.filename).all()

    def get_by_diagram(self, diagram_id: str, skip: int = 0, limit: int = 30) -> List[Version]:
        """Versions across all filenames of a diagram, newest first."""
        return self.db.query(Version).filter(
            Version.diagram_id == diagram_id
        ).order_by(*self._NEWEST_FIRST).offset(skip).limit(limit).all()

    def get_by_file(self, diagram_id: str, filename: str, skip: int = 0, limit: int = 10) -> List[Version]:
        """Versions of one filename, newest first."""
        return self.db.query(Version).filter(
            Version.diagram_id == diagram_id,
            Version.filename == filename,
        ).order_by(*self._NEWEST_FIRST).offset(skip).limit(limit).all()

    def count_by_file(self, diagram_id: str, filename: str) -> int:
        return self.db.query(func.count(Version.id)).filter(
            Version.diagram_id == diagram_id,
            Version.filename == filename,
        ).scalar()

    def delete_by_diagram(self, diagram_id: str) -> int:
        """Delete every version of a diagram. Returns the number of rows deleted."""
        return self.db.query(Version).filter(
            Version.diagram_id == diagram_id
        ).delete(synchronize_session=False)
