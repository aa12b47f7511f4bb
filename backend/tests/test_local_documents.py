"""
Tests for the file-backed local document collection.

Run with: cd backend && pytest tests/test_local_documents.py -v
"""

import errno
import json

import pytest

from certtrack.errors import ValidationError
from certtrack.schemas.documents import LocalDocumentUpdate, format_size
from certtrack.stores import local_documents
from certtrack.stores.local_documents import LocalDocumentStore


@pytest.fixture
def store(local_documents_path) -> LocalDocumentStore:
    return LocalDocumentStore(local_documents_path)


def fail_writes(monkeypatch) -> None:
    def refuse(src, dst):
        raise OSError(errno.ENOSPC, "No space left on device")

    monkeypatch.setattr(local_documents.os, "replace", refuse)


class TestFormatSize:
    def test_kilobytes_with_one_decimal(self):
        assert format_size("x" * 2048) == "2.0 KB"
        assert format_size("") == "0.0 KB"
        assert format_size("x" * 100) == "0.1 KB"


class TestAddAndRead:
    def test_add_prepends_and_persists(self, store, local_documents_path):
        first = store.add_document("Notes", "x" * 2048, "Study")
        second = store.add_document("Plan", "Week one", "Study")

        assert first.size == "2.0 KB"
        assert [doc.id for doc in store.get_documents()] == [second.id, first.id]
        assert store.get_document(first.id) == first
        assert store.get_document("missing") is None

        stored = json.loads(local_documents_path.read_text(encoding="utf-8"))
        assert [doc["name"] for doc in stored["documents"]] == ["Plan", "Notes"]

    def test_new_instance_restores_collection(self, store, local_documents_path):
        created = store.add_document("Notes", "Body", "Study")

        reopened = LocalDocumentStore(local_documents_path)

        assert reopened.get_documents() == [created]
        assert reopened.state.error is None

    def test_ids_are_unique(self, store):
        ids = {store.add_document(f"Doc {i}", "Body", "Misc").id for i in range(5)}

        assert len(ids) == 5

    def test_empty_name_is_rejected(self, store, local_documents_path):
        with pytest.raises(ValidationError):
            store.add_document("", "Body", "Study")

        assert store.get_documents() == []
        assert not local_documents_path.exists()

    def test_write_failure_leaves_state_unchanged(self, store, local_documents_path, monkeypatch):
        store.add_document("Kept", "Body", "Study")
        fail_writes(monkeypatch)

        assert store.add_document("Lost", "Body", "Study") is None

        assert [doc.name for doc in store.get_documents()] == ["Kept"]
        assert store.state.error == "Could not save local documents: No space left on device"
        assert [path.name for path in local_documents_path.parent.iterdir()] == [local_documents_path.name]

    def test_corrupt_file_starts_empty_with_error(self, local_documents_path):
        local_documents_path.write_text("{not json", encoding="utf-8")

        store = LocalDocumentStore(local_documents_path)

        assert store.get_documents() == []
        assert store.state.error.startswith("Could not read local documents")


class TestUpdate:
    def test_size_follows_content(self, store):
        created = store.add_document("Notes", "x" * 1024, "Study")

        updated = store.update_document(created.id, LocalDocumentUpdate(content="x" * 3072))

        assert updated.size == "3.0 KB"
        assert updated.created_at == created.created_at
        assert store.get_document(created.id).content == "x" * 3072

    def test_size_untouched_without_content(self, store):
        created = store.add_document("Notes", "x" * 1024, "Study")

        updated = store.update_document(created.id, LocalDocumentUpdate(name="Renamed", category="Work"))

        assert updated.size == "1.0 KB"
        assert updated.name == "Renamed"
        assert updated.category == "Work"

    def test_unknown_id_returns_none(self, store):
        assert store.update_document("missing", LocalDocumentUpdate(name="x")) is None

    def test_null_content_is_rejected(self, store):
        created = store.add_document("Notes", "Body", "Study")

        with pytest.raises(ValidationError):
            store.update_document(created.id, LocalDocumentUpdate(content=None))

        assert store.get_document(created.id).content == "Body"

    def test_write_failure_keeps_previous_version(self, store, monkeypatch):
        created = store.add_document("Notes", "Body", "Study")
        fail_writes(monkeypatch)

        assert store.update_document(created.id, LocalDocumentUpdate(name="Renamed")) is None

        assert store.get_document(created.id).name == "Notes"


class TestDelete:
    def test_delete_reports_whether_removed(self, store, local_documents_path):
        created = store.add_document("Notes", "Body", "Study")

        assert store.delete_document(created.id) is True
        assert store.delete_document(created.id) is False
        assert LocalDocumentStore(local_documents_path).get_documents() == []

    def test_delete_write_failure_returns_false(self, store, monkeypatch):
        created = store.add_document("Notes", "Body", "Study")
        fail_writes(monkeypatch)

        assert store.delete_document(created.id) is False
        assert store.get_document(created.id) == created
