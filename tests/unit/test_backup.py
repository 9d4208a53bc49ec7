"""Unit tests for backup export and import."""
import json

import pytest

from messagelab.core.models import TemplatePayload
from messagelab.exceptions import BackupImportError
from messagelab.storage import TemplateRepository, export_backup, import_backup, write_backup
from messagelab.storage.backup import BACKUP_VERSION


@pytest.fixture
def repository(store):
    repo = TemplateRepository(store)
    repo.save(TemplatePayload(id="t1", name="Order", source_text="<a>1</a>", project="Shop", category="Orders"))
    return repo


class TestBackup:
    """Test store snapshots."""

    def test_export_contents(self, repository):
        data = export_backup(repository)
        assert data["version"] == BACKUP_VERSION
        assert data["exportedAt"].endswith("Z")
        assert [t["id"] for t in data["templates"]] == ["t1"]
        assert data["projects"] == ["Shop"]
        assert "Orders" in data["categories"]["Shop"]

    def test_round_trip_replaces_store(self, repository, tmp_path):
        path = write_backup(repository, tmp_path / "out" / "backup.json")
        repository.save(TemplatePayload(id="t2", name="Extra", source_text="<b/>"))

        assert import_backup(repository, path) == 1
        assert [t.id for t in repository.list()] == ["t1"]
        assert repository.projects() == ["Shop"]
        assert repository.last_id() is None

    def test_missing_category_defaults(self, repository, tmp_path):
        path = tmp_path / "backup.json"
        path.write_text(json.dumps({"templates": [{"id": "x", "name": "X", "category": ""}]}))
        import_backup(repository, path)
        assert repository.get("x").category == "General"
        assert repository.projects() == []

    @pytest.mark.parametrize("content", ["{broken", "[1, 2]", '{"templates": [{"name": "no id"}]}'])
    def test_invalid_backups_raise(self, repository, tmp_path, content):
        path = tmp_path / "backup.json"
        path.write_text(content)
        with pytest.raises(BackupImportError):
            import_backup(repository, path)
        assert [t.id for t in repository.list()] == ["t1"]

    def test_missing_file_raises(self, repository, tmp_path):
        with pytest.raises(BackupImportError):
            import_backup(repository, tmp_path / "missing.json")
