"""Unit tests for DiagramService, the deep module owning the versioned store.

Tests the service layer directly against a per-test SQLite store, bypassing
the HTTP stack. Covers writes, latest-state reconstruction with tombstones,
historical versions, and cascade/idempotent delete.
"""

import pytest

from giststore.exceptions import DiagramNotFoundError, ValidationError
from giststore.models import Diagram, Version


def _create(service, filename="diagram.json", content='{"v": 1}', **kwargs):
    return service.create_diagram(filename=filename, content=content, **kwargs)


def _version_ids(service, diagram_id):
    """All version ids of a diagram, newest first."""
    return [c.version for c in service.get_commits(diagram_id, 1, 100)]


class TestCreateDiagram:
    """Creating a diagram writes the registry row and its first version together."""

    def test_round_trip(self, service):
        content = '{"tables": [{"name": "users"}]}'
        diagram_id = _create(service, content=content)

        view = service.get_diagram(diagram_id)
        assert view is not None
        assert view.id == diagram_id
        assert view.files["diagram.json"].content == content
        assert view.files["diagram.json"].size == len(content)
        assert view.files["diagram.json"].type == "application/json"

    def test_metadata_stored(self, service):
        diagram_id = _create(service, public=True, description="ER model")
        view = service.get_diagram(diagram_id)
        assert view.public is True
        assert view.description == "ER model"
        assert view.created_at == view.updated_at

    def test_private_by_default(self, service):
        view = service.get_diagram(_create(service))
        assert view.public is False
        assert view.description is None

    def test_ids_are_unique(self, service):
        ids = {_create(service) for _ in range(5)}
        assert len(ids) == 5

    def test_creates_exactly_one_version(self, service):
        diagram_id = _create(service)
        assert len(_version_ids(service, diagram_id)) == 1

    def test_version_id_differs_from_diagram_id(self, service):
        diagram_id = _create(service)
        assert _version_ids(service, diagram_id)[0] != diagram_id

    def test_empty_content_is_not_a_tombstone(self, service):
        diagram_id = _create(service, content="")
        view = service.get_diagram(diagram_id)
        assert view.files["diagram.json"].content == ""
        assert view.files["diagram.json"].size == 0

    def test_write_path_logs_at_info(self, service, caplog):
        diagram_id = _create(service, filename="f1.json")
        service.update_diagram(diagram_id, "f1.json", None)

        records = {r.getMessage(): r for r in caplog.records if r.name.startswith("giststore")}
        assert records["Created diagram"].file == "f1.json"
        assert records["Updated diagram"].tombstone is True

    def test_empty_filename_rejected(self, service, database):
        with pytest.raises(ValidationError):
            _create(service, filename="")
        with database.session() as db:
            assert db.query(Diagram).count() == 0


class TestUpdateDiagram:
    """Updates append versions; nothing is overwritten."""

    def test_update_replaces_current_content(self, service):
        diagram_id = _create(service, content="v1")
        service.update_diagram(diagram_id, "diagram.json", "v2")
        assert service.get_diagram(diagram_id).files["diagram.json"].content == "v2"

    def test_update_appends_version(self, service):
        diagram_id = _create(service, content="v1")
        new_version = service.update_diagram(diagram_id, "diagram.json", "v2")
        ids = _version_ids(service, diagram_id)
        assert len(ids) == 2
        assert ids[0] == new_version

    def test_earlier_version_still_readable(self, service):
        diagram_id = _create(service, content="v1")
        first = _version_ids(service, diagram_id)[0]
        service.update_diagram(diagram_id, "diagram.json", "v2")

        view = service.get_version(diagram_id, first)
        assert view.files["diagram.json"].content == "v1"

    def test_update_bumps_updated_at(self, service):
        diagram_id = _create(service)
        before = service.get_diagram(diagram_id)
        service.update_diagram(diagram_id, "diagram.json", "v2")
        after = service.get_diagram(diagram_id)
        assert after.updated_at > before.updated_at
        assert after.created_at == before.created_at

    def test_updated_at_matches_newest_version(self, service):
        diagram_id = _create(service)
        service.update_diagram(diagram_id, "other.json", "x")
        newest = service.get_commits(diagram_id, 1, 1)[0]
        assert service.get_diagram(diagram_id).updated_at == newest.committed_at

    def test_update_unknown_diagram_rejected(self, service, database):
        with pytest.raises(DiagramNotFoundError):
            service.update_diagram("does-not-exist", "diagram.json", "x")
        with database.session() as db:
            assert db.query(Version).count() == 0


class TestLatestState:
    """State reconstruction: newest version per filename, tombstones excluded."""

    def test_multi_file_latest_state(self, service):
        diagram_id = _create(service, filename="f1.json", content="f1@t1")
        service.update_diagram(diagram_id, "f2.json", "f2@t2")
        service.update_diagram(diagram_id, "f1.json", "f1@t3")

        files = service.get_diagram(diagram_id).files
        assert set(files) == {"f1.json", "f2.json"}
        assert files["f1.json"].content == "f1@t3"
        assert files["f2.json"].content == "f2@t2"

    def test_tombstone_removes_file(self, service):
        diagram_id = _create(service, filename="f1.json")
        service.update_diagram(diagram_id, "f2.json", "keep")
        service.update_diagram(diagram_id, "f1.json", None)

        files = service.get_diagram(diagram_id).files
        assert "f1.json" not in files
        assert files["f2.json"].content == "keep"

    def test_tombstone_keeps_history(self, service):
        diagram_id = _create(service, filename="f1.json")
        service.update_diagram(diagram_id, "f2.json", "keep")
        service.update_diagram(diagram_id, "f1.json", None)
        page = service.get_file_versions(diagram_id, "f1.json", limit=10)
        assert len(page.data) == 2

    def test_file_restored_after_tombstone(self, service):
        diagram_id = _create(service, filename="f1.json", content="old")
        service.update_diagram(diagram_id, "f2.json", "keep")
        service.update_diagram(diagram_id, "f1.json", None)
        service.update_diagram(diagram_id, "f1.json", "back")
        assert service.get_diagram(diagram_id).files["f1.json"].content == "back"

    def test_all_files_tombstoned_is_not_found(self, service):
        diagram_id = _create(service)
        service.update_diagram(diagram_id, "diagram.json", None)
        assert service.get_diagram(diagram_id) is None

    def test_unknown_diagram_is_not_found(self, service):
        assert service.get_diagram("does-not-exist") is None


class TestGetVersion:
    """One historical version, scoped to its diagram."""

    def test_returns_that_version_only(self, service):
        diagram_id = _create(service, filename="f1.json", content="one")
        second = service.update_diagram(diagram_id, "f2.json", "two")

        view = service.get_version(diagram_id, second)
        assert list(view.files) == ["f2.json"]
        assert view.files["f2.json"].content == "two"

    def test_updated_at_is_version_timestamp(self, service):
        diagram_id = _create(service)
        first = _version_ids(service, diagram_id)[0]
        service.update_diagram(diagram_id, "diagram.json", "v2")

        view = service.get_version(diagram_id, first)
        assert view.updated_at == view.created_at

    def test_version_of_other_diagram_not_found(self, service):
        a = _create(service)
        b = _create(service)
        version_of_b = _version_ids(service, b)[0]
        assert service.get_version(a, version_of_b) is None

    def test_unknown_version_not_found(self, service):
        diagram_id = _create(service)
        assert service.get_version(diagram_id, "no-such-sha") is None

    def test_tombstone_version_not_found(self, service):
        diagram_id = _create(service)
        tombstone = service.update_diagram(diagram_id, "diagram.json", None)
        assert service.get_version(diagram_id, tombstone) is None


class TestDeleteDiagram:
    """Delete cascades to versions and is idempotent."""

    def test_cascade_delete(self, service, database):
        diagram_id = _create(service)
        service.update_diagram(diagram_id, "diagram.json", "v2")
        some_sha = _version_ids(service, diagram_id)[-1]

        assert service.delete_diagram(diagram_id) is True
        assert service.get_diagram(diagram_id) is None
        assert service.get_version(diagram_id, some_sha) is None
        with database.session() as db:
            assert db.query(Version).filter(Version.diagram_id == diagram_id).count() == 0

    def test_delete_is_idempotent(self, service):
        diagram_id = _create(service)
        assert service.delete_diagram(diagram_id) is True
        assert service.delete_diagram(diagram_id) is False  # second call doesn't fail

    def test_delete_unknown_succeeds(self, service):
        assert service.delete_diagram("never-existed") is False

    def test_delete_leaves_other_diagrams(self, service):
        keep = _create(service, content="keep")
        drop = _create(service, content="drop")
        service.delete_diagram(drop)
        assert service.get_diagram(keep).files["diagram.json"].content == "keep"
