"""Version model."""

from sqlalchemy import Column, Index, String, Text, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from ..database import Base
from .content import Content, from_column


class Version(Base):
    """Version ledger: append-only, never updated in place."""

    __tablename__ = "versions"
    __table_args__ = (
        # Latest-per-filename lookup and per-file history.
        Index("ix_versions_diagram_file_created", "diagram_id", "filename", "created_at"),
        # Whole-diagram commit history.
        Index("ix_versions_diagram_created", "diagram_id", "created_at"),
    )

    # Primary key ("sha" in gist vocabulary; random uuid4, not a content hash)
    id = Column(String(36), primary_key=True)

    # Foreign key to diagram
    diagram_id = Column(String(36), ForeignKey("diagrams.id", ondelete="CASCADE"), nullable=False)

    filename = Column(String(255), nullable=False)

    # NULL = tombstone
    content = Column(Text, nullable=True)

    # Sole ordering key
    created_at = Column(DateTime(timezone=True), nullable=False)

    # Relationship
    diagram = relationship("Diagram", back_populates="versions")

    @property
    def body(self) -> Content:
        return from_column(self.content)

    @property
    def is_tombstone(self) -> bool:
        return self.content is None
