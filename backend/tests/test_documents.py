"""
Tests for the document store and its blob storage handling.

Run with: cd backend && pytest tests/test_documents.py -v
"""

import asyncio

import pytest

from certtrack.errors import AuthError, RemoteError, StorageError
from certtrack.schemas.documents import BlobPayload, DocumentCreate, DocumentStatus, DocumentUpdate
from certtrack.stores.documents import DocumentStore

from conftest import OTHER_USER_ID, FakeIdentity


@pytest.fixture
def store(identity, remote, blobs) -> DocumentStore:
    return DocumentStore(identity, remote, blobs, timeout=1.0, signed_url_ttl_seconds=60)


@pytest.fixture
def report() -> DocumentCreate:
    return DocumentCreate(title="Site report", category="Reports", description="Bridge deck survey")


@pytest.fixture
def pdf() -> BlobPayload:
    return BlobPayload(filename="survey.pdf", content_type="application/pdf", data=b"%PDF-1.7 fake")


class TestAdd:
    async def test_uploads_then_inserts(self, store, remote, blobs, user, report, pdf):
        created = await store.add(report, pdf)

        [(path, data)] = blobs.objects.items()
        assert path.startswith(f"{user.id}/")
        assert path.endswith(".pdf")
        assert data == pdf.data
        assert created.file_url == f"{blobs.base_url}/{path}"
        assert created.file_type == "application/pdf"
        assert created.file_size == len(pdf.data)
        assert created.status == DocumentStatus.DRAFT
        assert remote.tables["documents"][0]["user_id"] == user.id
        assert remote.tables["documents"][0]["status"] == "draft"
        assert store.state.documents == [created]
        assert store.state.error is None

    async def test_without_file_touches_no_blobs(self, store, remote, blobs, report):
        created = await store.add(report)

        assert blobs.objects == {}
        assert created.file_url is None
        assert created.file_size is None

    async def test_prepends_to_existing_list(self, store, remote, user, report):
        remote.seed("documents", user_id=user.id, title="Older", category="Reports", status="draft")
        await store.load()

        created = await store.add(report)

        assert [doc.title for doc in store.state.documents] == [created.title, "Older"]

    async def test_upload_failure_writes_no_row(self, store, remote, blobs, report, pdf):
        blobs.fail_upload = True

        with pytest.raises(StorageError):
            await store.add(report, pdf)

        assert remote.tables["documents"] == []
        assert remote.count("insert", "documents") == 0
        assert store.state.error == "File upload failed: bucket unavailable"
        assert store.state.loading is False

    async def test_insert_failure_removes_uploaded_file(self, store, remote, blobs, report, pdf):
        remote.fail("insert", "documents")

        with pytest.raises(RemoteError):
            await store.add(report, pdf)

        assert blobs.objects == {}
        assert len(blobs.removed) == 1
        assert store.state.documents == []
        assert store.state.error == "insert on documents failed"

    async def test_requires_a_user(self, remote, blobs, report, pdf):
        store = DocumentStore(FakeIdentity(None), remote, blobs, timeout=1.0)

        with pytest.raises(AuthError):
            await store.add(report, pdf)

        assert blobs.objects == {}
        assert store.state.error == "No authenticated user found"


class TestDelete:
    async def test_removes_blob_then_row(self, store, remote, blobs, user, report, pdf):
        created = await store.add(report, pdf)
        [path] = blobs.objects

        await store.delete(created.id)

        assert blobs.removed == [path]
        assert remote.tables["documents"] == []
        assert store.state.documents == []

    async def test_no_blob_call_without_file(self, store, remote, blobs, report):
        created = await store.add(report)

        await store.delete(created.id)

        assert blobs.removed == []
        assert remote.tables["documents"] == []

    async def test_blob_failure_does_not_block_row_deletion(self, store, remote, blobs, report, pdf):
        created = await store.add(report, pdf)
        blobs.fail_remove = True

        await store.delete(created.id)

        assert len(blobs.removed) == 1
        assert remote.tables["documents"] == []
        assert store.state.error is None

    async def test_blob_timeout_does_not_block_row_deletion(self, identity, remote, blobs, report, pdf, monkeypatch):
        store = DocumentStore(identity, remote, blobs, timeout=0.05)
        created = await store.add(report, pdf)

        async def hang(paths):
            await asyncio.Event().wait()

        monkeypatch.setattr(blobs, "remove", hang)

        await store.delete(created.id)

        assert remote.tables["documents"] == []
        assert store.state.documents == []
        assert store.state.error is None

    async def test_finds_document_not_yet_loaded(self, store, remote, blobs, user):
        row = remote.seed(
            "documents",
            user_id=user.id,
            title="Loaded elsewhere",
            category="Reports",
            status="draft",
            file_url=f"{blobs.base_url}/{user.id}/abc123.pdf",
        )

        await store.delete(row["id"])

        assert blobs.removed == [f"{user.id}/abc123.pdf"]
        assert remote.tables["documents"] == []

    async def test_other_users_document_is_left_alone(self, store, remote, blobs):
        row = remote.seed(
            "documents",
            user_id=OTHER_USER_ID,
            title="Theirs",
            category="Reports",
            status="draft",
            file_url=f"{blobs.base_url}/{OTHER_USER_ID}/theirs.pdf",
        )

        await store.delete(row["id"])

        assert blobs.removed == []
        assert len(remote.tables["documents"]) == 1


class TestLoadAndUpdate:
    async def test_load_is_user_scoped_and_newest_first(self, store, remote, user):
        remote.seed("documents", user_id=user.id, title="First", category="A", status="draft")
        remote.seed("documents", user_id=OTHER_USER_ID, title="Theirs", category="A", status="draft")
        remote.seed("documents", user_id=user.id, title="Second", category="A", status="submitted")

        await store.load()

        assert [doc.title for doc in store.state.documents] == ["Second", "First"]
        assert store.state.documents[0].status == DocumentStatus.SUBMITTED

    async def test_update_patches_in_place(self, store, remote, report):
        created = await store.add(report)

        await store.update(created.id, DocumentUpdate(status=DocumentStatus.APPROVED))

        assert store.state.documents[0].status == DocumentStatus.APPROVED
        assert store.state.documents[0].title == "Site report"
        assert remote.tables["documents"][0]["status"] == "approved"

    async def test_update_without_fields_is_rejected(self, store, remote, report):
        created = await store.add(report)

        await store.update(created.id, DocumentUpdate())

        assert store.state.error == "No document fields to update"
        assert remote.count("update") == 0

    async def test_update_failure_sets_error_without_raising(self, store, remote, report):
        created = await store.add(report)
        remote.fail("update", "documents")

        await store.update(created.id, DocumentUpdate(title="Renamed"))

        assert store.state.error == "update on documents failed"
        assert store.state.documents[0].title == "Site report"


class TestDownloadUrl:
    async def test_signed_url_with_configured_ttl(self, store, blobs, report, pdf, user):
        created = await store.add(report, pdf)
        [path] = blobs.objects

        url = await store.download_url(created)

        assert url == f"{blobs.base_url}/{path}?token=signed&expires_in=60"

    async def test_falls_back_to_public_url(self, store, blobs, report, pdf):
        created = await store.add(report, pdf)
        blobs.fail_sign = True

        assert await store.download_url(created) == created.file_url

    async def test_none_without_file(self, store, report):
        created = await store.add(report)

        assert await store.download_url(created) is None
