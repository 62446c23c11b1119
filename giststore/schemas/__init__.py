"""Pydantic schemas for API validation."""

from typing import Generic, TypeVar

from pydantic import BaseModel

from .diagram import (
    DiagramCreate,
    DiagramUpdate,
    DiagramCreated,
    UpdateResult,
    GistFile,
    GistOwner,
    DiagramView,
)
from .version import (
    ChangeStatus,
    CommitSummary,
    FileVersionSummary,
    Pagination,
    FileVersionPage,
    CompareResult,
)

DataT = TypeVar("DataT")


class DataEnvelope(BaseModel, Generic[DataT]):
    """``{"data": ...}`` wrapper used by every gist response."""
    data: DataT


__all__ = [
    "DataEnvelope",
    "DiagramCreate",
    "DiagramUpdate",
    "DiagramCreated",
    "UpdateResult",
    "GistFile",
    "GistOwner",
    "DiagramView",
    "ChangeStatus",
    "CommitSummary",
    "FileVersionSummary",
    "Pagination",
    "FileVersionPage",
    "CompareResult",
]
