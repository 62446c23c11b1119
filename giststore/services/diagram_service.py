"""Diagram service: deep module for the versioned document store.

Owns the full lifecycle of diagrams: writes append immutable versions, reads
reconstruct the live file set from the ledger, and history is paginated two
ways (page/per_page for the whole diagram, cursor/limit for one file).
Callers never touch repositories or transactions directly.

"Not found" is a normal outcome: read operations return ``None`` and leave
the decision to respond 404 to the caller.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Iterable, List, Optional, Union

from ..database import Database
from ..exceptions import DiagramNotFoundError, ValidationError
from ..models import Diagram, Version
from ..models.content import TOMBSTONE, Present
from ..repositories import DiagramRepository, VersionRepository
from ..schemas import (
    CommitSummary,
    CompareResult,
    DiagramView,
    FileVersionPage,
    FileVersionSummary,
    GistFile,
    Pagination,
)

# Passed as versionB when there is no earlier version to compare against.
NO_VERSION = "null"

logger = logging.getLogger(__name__)


def _as_utc(value: datetime) -> datetime:
    """SQLite hands timestamps back without tzinfo; they were stored as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def build_file(version: Version) -> GistFile:
    body = version.body
    return GistFile(filename=version.filename, size=body.size, content=body.text)


def build_diagram_view(
    diagram: Diagram,
    versions: Iterable[Version],
    updated_at: Optional[datetime] = None,
) -> DiagramView:
    """Map a registry row plus live version rows to the public view."""
    return DiagramView(
        id=diagram.id,
        node_id=diagram.id,
        files={v.filename: build_file(v) for v in versions},
        public=bool(diagram.public_access),
        created_at=_as_utc(diagram.created_at),
        updated_at=_as_utc(updated_at or diagram.updated_at),
        description=diagram.description,
    )


def build_commit(version: Version) -> CommitSummary:
    return CommitSummary(version=version.id, committed_at=_as_utc(version.created_at))


def build_file_version(version: Version) -> FileVersionSummary:
    return FileVersionSummary(version=version.id, committed_at=_as_utc(version.created_at))


class DiagramService:
    """Deep module for diagram operations.

    Each public method is one complete operation: writes run in a single
    store transaction (atomic and durable), reads in a single session.
    """

    def __init__(self, database: Database):
        self.database = database
        self.max_page_size = database.settings.max_page_size

    @staticmethod
    def generate_id() -> str:
        """Random identifier for diagrams and versions."""
        return str(uuid.uuid4())

    # ------------------------------------------------------------------
    # Write path
    # ------------------------------------------------------------------

    def create_diagram(
        self,
        filename: str,
        content: str,
        public: bool = False,
        description: Optional[str] = None,
    ) -> str:
        """Create a diagram together with its first version. Returns the diagram id."""
        self._require_filename(filename)
        diagram_id = self.generate_id()
        version_id = self.generate_id()

        with self.database.transaction() as db:
            now = self.database.clock.now()
            DiagramRepository(db).create(diagram_id, public, description, now)
            VersionRepository(db).create(version_id, diagram_id, filename, Present(content), now)

        logger.info(
            "Created diagram",
            extra={"diagram_id": diagram_id, "version_id": version_id, "file": filename},
        )
        return diagram_id

    def update_diagram(self, diagram_id: str, filename: str, content: Optional[str]) -> str:
        """Append a version of one file. ``content=None`` removes the file.

        Returns the new version id.

        Raises:
            DiagramNotFoundError: If the diagram does not exist. Nothing is written.
        """
        self._require_filename(filename)
        version_id = self.generate_id()
        body = TOMBSTONE if content is None else Present(content)

        with self.database.transaction() as db:
            diagram_repo = DiagramRepository(db)
            if not diagram_repo.exists(diagram_id):
                raise DiagramNotFoundError(diagram_id)
            now = self.database.clock.now()
            VersionRepository(db).create(version_id, diagram_id, filename, body, now)
            diagram_repo.touch(diagram_id, now)

        logger.info(
            "Updated diagram",
            extra={
                "diagram_id": diagram_id,
                "version_id": version_id,
                "file": filename,
                "tombstone": content is None,
            },
        )
        return version_id

    def delete_diagram(self, diagram_id: str) -> bool:
        """Delete a diagram and all its versions. Idempotent.

        Returns True when something was deleted, False when the diagram was
        already absent (still a success).
        """
        with self.database.transaction() as db:
            versions = VersionRepository(db).delete_by_diagram(diagram_id)
            diagrams = DiagramRepository(db).delete(diagram_id)

        if diagrams:
            logger.info("Deleted diagram", extra={"diagram_id": diagram_id, "versions": versions})
        else:
            logger.debug("Delete of absent diagram", extra={"diagram_id": diagram_id})
        return bool(diagrams)

    # ------------------------------------------------------------------
    # Read path: state
    # ------------------------------------------------------------------

    def get_diagram(self, diagram_id: str) -> Optional[DiagramView]:
        """Current state: newest version per filename, tombstoned files removed.

        Returns None if the diagram is absent or every file has been removed.
        """
        with self.database.session() as db:
            diagram = DiagramRepository(db).get_by_id_optional(diagram_id)
            if diagram is None:
                return None

            latest = VersionRepository(db).get_latest_per_filename(diagram_id)
            live = [v for v in latest if not v.is_tombstone]
            if not live:
                return None

            return build_diagram_view(diagram, live)

    def get_version(self, diagram_id: str, version_id: str) -> Optional[DiagramView]:
        """The diagram as recorded by one version (that version's file only).

        Returns None if the diagram or the version (scoped to the diagram) is
        absent, or if the version is a tombstone.
        """
        with self.database.session() as db:
            diagram = DiagramRepository(db).get_by_id_optional(diagram_id)
            if diagram is None:
                return None

            version = VersionRepository(db).get_for_diagram(diagram_id, version_id)
            if version is None or version.is_tombstone:
                return None

            return build_diagram_view(diagram, [version], updated_at=version.created_at)

    # ------------------------------------------------------------------
    # Read path: history
    # ------------------------------------------------------------------

    def get_commits(self, diagram_id: str, page: int = 1, per_page: int = 30) -> List[CommitSummary]:
        """Commit history across every file of the diagram, newest first.

        A short or empty page means there is nothing further.
        """
        if page < 1:
            raise ValidationError("page must be >= 1", field="page")
        self._require_page_size(per_page, "per_page")

        skip = (page - 1) * per_page
        with self.database.session() as db:
            versions = VersionRepository(db).get_by_diagram(diagram_id, skip, per_page)
            return [build_commit(v) for v in versions]

    def get_file_versions(
        self,
        diagram_id: str,
        filename: str,
        limit: int = 10,
        cursor: Union[int, str, None] = 0,
    ) -> FileVersionPage:
        """Version history of one file, newest first, with an offset cursor.

        ``cursor`` is the offset returned as ``pagination.cursor`` by the
        previous page (None or 0 for the first page).
        """
        self._require_page_size(limit, "limit")
        offset = self._parse_cursor(cursor)

        with self.database.session() as db:
            version_repo = VersionRepository(db)
            versions = version_repo.get_by_file(diagram_id, filename, offset, limit)
            total = version_repo.count_by_file(diagram_id, filename)

        has_more = offset + limit < total
        return FileVersionPage(
            data=[build_file_version(v) for v in versions],
            pagination=Pagination(has_more=has_more, cursor=offset + limit if has_more else None),
        )

    # ------------------------------------------------------------------
    # Read path: comparison
    # ------------------------------------------------------------------

    def compare(self, diagram_id: str, filename: str, version_a: str, version_b: str) -> CompareResult:
        """Raw content of two versions of one file for client-side diffing.

        Missing versions and tombstones come back as None; ``version_b`` equal
        to ``NO_VERSION`` skips the second lookup.
        """
        with self.database.session() as db:
            version_repo = VersionRepository(db)
            content_a = self._content_of(version_repo.get_for_file(diagram_id, filename, version_a))
            content_b = None
            if version_b != NO_VERSION:
                content_b = self._content_of(version_repo.get_for_file(diagram_id, filename, version_b))

        return CompareResult(content_a=content_a, content_b=content_b)

    def count_diagrams(self) -> int:
        with self.database.session() as db:
            return DiagramRepository(db).count()

    @staticmethod
    def _content_of(version: Optional[Version]) -> Optional[str]:
        return version.content if version is not None else None

    # ------------------------------------------------------------------
    # Input validation
    # ------------------------------------------------------------------

    @staticmethod
    def _require_filename(filename: str) -> None:
        if not filename:
            raise ValidationError("filename is required", field="filename")

    def _require_page_size(self, size: int, field: str) -> None:
        if size < 1:
            raise ValidationError(f"{field} must be >= 1", field=field)
        if size > self.max_page_size:
            raise ValidationError(f"{field} must be <= {self.max_page_size}", field=field)

    @staticmethod
    def _parse_cursor(cursor: Union[int, str, None]) -> int:
        if cursor is None or cursor == "":
            return 0
        try:
            offset = int(cursor)
        except (TypeError, ValueError):
            raise ValidationError("cursor must be a non-negative integer", field="cursor")
        if offset < 0:
            raise ValidationError("cursor must be a non-negative integer", field="cursor")
        return offset
