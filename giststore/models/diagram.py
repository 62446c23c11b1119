"""Diagram model."""

from sqlalchemy import Boolean, Column, DateTime, Index, String, Text
from sqlalchemy.orm import relationship
from ..database import Base


class Diagram(Base):
    """Diagram registry: one row per diagram."""

    __tablename__ = "diagrams"
    __table_args__ = (
        Index("ix_diagrams_updated_at", "updated_at"),
    )

    # Primary key
    id = Column(String(36), primary_key=True)  # uuid4

    # Gist metadata
    public_access = Column(Boolean, nullable=False, default=False)
    description = Column(Text, nullable=True)

    # Timestamps (stamped by the store clock, not the database server)
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)

    # Relationships
    versions = relationship(
        "Version",
        back_populates="diagram",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
