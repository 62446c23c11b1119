"""Diagram schemas.

Response shapes mirror the GitHub Gist API closely enough for the editor
client; fields outside the store's own data are constant placeholders.
"""

from datetime import datetime
from typing import Dict, Optional

from pydantic import BaseModel, Field


class DiagramCreate(BaseModel):
    """Schema for creating a diagram with its first file."""
    public: bool = False
    description: Optional[str] = None
    filename: str = Field(..., min_length=1, max_length=255)
    content: str


class DiagramUpdate(BaseModel):
    """Schema for writing one file. ``content: null`` removes the file."""
    filename: str = Field(..., min_length=1, max_length=255)
    content: Optional[str] = None


class DiagramCreated(BaseModel):
    id: str


class UpdateResult(BaseModel):
    deleted: bool = False


class GistOwner(BaseModel):
    login: str = "local-user"
    id: int = 1


class GistFile(BaseModel):
    """One live file of a diagram."""
    filename: str
    type: str = "application/json"
    language: str = "JSON"
    raw_url: str = ""
    size: int
    truncated: bool = False
    content: str


class DiagramView(BaseModel):
    """A diagram with its files, as of now or as of one version."""
    url: str = ""
    forks_url: str = ""
    commits_url: str = ""
    id: str
    node_id: str
    git_pull_url: str = ""
    git_push_url: str = ""
    html_url: str = ""
    files: Dict[str, GistFile]
    public: bool
    created_at: datetime
    updated_at: datetime
    description: Optional[str] = None
    comments: int = 0
    user: Optional[dict] = None
    comments_url: str = ""
    owner: GistOwner = Field(default_factory=GistOwner)
    truncated: bool = False
