"""Version history schemas."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .diagram import GistOwner


class ChangeStatus(BaseModel):
    """Change magnitude. Always zero: the store does not compute diffs."""
    total: int = 0
    additions: int = 0
    deletions: int = 0


class CommitSummary(BaseModel):
    """One entry of the whole-diagram commit history."""
    url: str = ""
    version: str
    user: GistOwner = Field(default_factory=GistOwner)
    change_status: ChangeStatus = Field(default_factory=ChangeStatus)
    committed_at: datetime


class FileVersionSummary(BaseModel):
    """One entry of a single file's version history."""
    version: str
    committed_at: datetime


class Pagination(BaseModel):
    """``cursor`` is the offset of the next page, or None when there is none."""
    model_config = ConfigDict(populate_by_name=True)

    has_more: bool = Field(alias="hasMore")
    cursor: Optional[int] = None


class FileVersionPage(BaseModel):
    data: List[FileVersionSummary]
    pagination: Pagination


class CompareResult(BaseModel):
    """Raw content of two versions of one file; None where a side is absent."""
    model_config = ConfigDict(populate_by_name=True)

    content_a: Optional[str] = Field(default=None, alias="contentA")
    content_b: Optional[str] = Field(default=None, alias="contentB")
