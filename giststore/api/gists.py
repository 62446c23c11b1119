"""Gist-compatible API endpoints.

Endpoints are thin. DiagramService handles versioning, state
reconstruction, history and comparison. ``None`` from the service means
"not found" and becomes a 404 here.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response

from ..database import Database, get_database
from ..exceptions import DiagramNotFoundError, VersionNotFoundError
from ..schemas import (
    CommitSummary,
    CompareResult,
    DataEnvelope,
    DiagramCreate,
    DiagramCreated,
    DiagramUpdate,
    DiagramView,
    FileVersionPage,
    UpdateResult,
)
from ..services import DiagramService

router = APIRouter(prefix="/gists", tags=["gists"])


@router.post("", response_model=DataEnvelope[DiagramCreated], status_code=201)
def create_diagram(
    diagram: DiagramCreate,
    database: Database = Depends(get_database),
):
    """Create a diagram with its first file."""
    service = DiagramService(database)
    diagram_id = service.create_diagram(
        filename=diagram.filename,
        content=diagram.content,
        public=diagram.public,
        description=diagram.description,
    )
    return {"data": {"id": diagram_id}}


@router.patch("/{diagram_id}", response_model=UpdateResult)
def update_diagram(
    diagram_id: str,
    update: DiagramUpdate,
    database: Database = Depends(get_database),
):
    """Write a new version of one file (``content: null`` removes it)."""
    DiagramService(database).update_diagram(diagram_id, update.filename, update.content)
    return UpdateResult(deleted=False)


@router.delete("/{diagram_id}", status_code=204)
def delete_diagram(
    diagram_id: str,
    database: Database = Depends(get_database),
):
    """Delete a diagram and all its versions. Deleting an absent diagram succeeds."""
    DiagramService(database).delete_diagram(diagram_id)
    return Response(status_code=204)


@router.get("/{diagram_id}", response_model=DataEnvelope[DiagramView])
def get_diagram(
    diagram_id: str,
    database: Database = Depends(get_database),
):
    """Current state of a diagram (latest version of each live file)."""
    view = DiagramService(database).get_diagram(diagram_id)
    if view is None:
        raise DiagramNotFoundError(diagram_id)
    return {"data": view}


# --- Fixed-segment endpoints (must be before /{diagram_id}/{version_id}) ---


@router.get("/{diagram_id}/commits", response_model=DataEnvelope[List[CommitSummary]])
def list_commits(
    diagram_id: str,
    page: int = Query(1),
    per_page: Optional[int] = Query(None),
    database: Database = Depends(get_database),
):
    """Commit history across all files, newest first."""
    if per_page is None:
        per_page = database.settings.default_per_page
    commits = DiagramService(database).get_commits(diagram_id, page, per_page)
    return {"data": commits}


@router.get("/{diagram_id}/file-versions/{filename}", response_model=FileVersionPage)
def list_file_versions(
    diagram_id: str,
    filename: str,
    limit: Optional[int] = Query(None),
    cursor: Optional[str] = Query(None),
    database: Database = Depends(get_database),
):
    """Version history of one file with cursor pagination."""
    if limit is None:
        limit = database.settings.default_file_versions_limit
    return DiagramService(database).get_file_versions(diagram_id, filename, limit, cursor)


@router.get(
    "/{diagram_id}/file/{filename}/compare/{version_a}/{version_b}",
    response_model=DataEnvelope[CompareResult],
)
def compare_versions(
    diagram_id: str,
    filename: str,
    version_a: str,
    version_b: str,
    database: Database = Depends(get_database),
):
    """Raw content of two versions of a file. Use ``null`` as version_b for "no prior version"."""
    result = DiagramService(database).compare(diagram_id, filename, version_a, version_b)
    return {"data": result}


@router.get("/{diagram_id}/{version_id}", response_model=DataEnvelope[DiagramView])
def get_version(
    diagram_id: str,
    version_id: str,
    database: Database = Depends(get_database),
):
    """The diagram as recorded by one version."""
    view = DiagramService(database).get_version(diagram_id, version_id)
    if view is None:
        raise VersionNotFoundError(diagram_id, version_id)
    return {"data": view}
