"""
Document store: supporting-document metadata rows plus their files in blob storage.

Upload order for a new document:
1. File goes to blob storage under '<user_id>/<random>.<ext>'
2. Its public URL is resolved
3. The metadata row is inserted; if that fails the uploaded file is removed again
"""

import logging
from uuid import UUID

from pydantic import Field

from certtrack.config import get_settings
from certtrack.errors import RemoteError, StorageError, ValidationError
from certtrack.schemas.auth import SessionUser
from certtrack.schemas.base import StoreState
from certtrack.schemas.documents import BlobPayload, Document, DocumentCreate, DocumentUpdate
from certtrack.services.identity import IdentityProvider
from certtrack.services.remote import Order, RemoteStore, Where
from certtrack.services.storage import BlobStorage, blob_path_for, blob_path_from_url
from certtrack.stores.base import RemoteBackedStore, row_values, validate_rows

logger = logging.getLogger(__name__)


class DocumentState(StoreState):
    documents: list[Document] = Field(default_factory=list)


class DocumentStore(RemoteBackedStore[DocumentState]):
    """The user's documents, newest first."""

    def __init__(
        self,
        identity: IdentityProvider,
        remote: RemoteStore,
        blobs: BlobStorage,
        *,
        timeout: float | None = None,
        signed_url_ttl_seconds: int | None = None,
    ):
        super().__init__(identity, remote, timeout=timeout)
        self._blobs = blobs
        self._signed_url_ttl = signed_url_ttl_seconds or get_settings().signed_url_ttl_seconds

    def baseline(self) -> DocumentState:
        return DocumentState()

    async def load(self) -> None:
        async with self._operation("Failed to fetch documents"):
            user = await self._require_user()
            rows = await self._call(
                self._remote.select(
                    "documents",
                    Where.by(user_id=user.id),
                    order=Order("created_at", descending=True),
                )
            )
            self.set_state(documents=validate_rows(Document, rows, "documents"))

    async def add(self, document: DocumentCreate, file: BlobPayload | None = None) -> Document:
        """
        Store a document, uploading its file first when one is given.

        Unlike the other operations this re-raises after recording the error,
        so the caller can keep its form open.

        Raises:
            AuthError: If no user is signed in
            StorageError: If the upload fails; no row is written
            RemoteError: If the metadata insert fails
        """
        async with self._operation("Failed to add document", reraise=True):
            user = await self._require_user()

            path = None
            file_url = None
            if file is not None:
                path = blob_path_for(user.id, file.filename)
                logger.info("Uploading %s (%d bytes) to %s", file.filename, file.size, path)
                await self._call(self._blobs.upload(path, file.data, file.content_type))
                file_url = self._blobs.get_public_url(path)

            row = {
                **row_values(document),
                "user_id": user.id,
                "file_url": file_url,
                "file_type": file.content_type if file else None,
                "file_size": file.size if file else None,
            }
            try:
                rows = await self._call(self._remote.insert("documents", [row]))
                if not rows:
                    raise RemoteError("Document was created but no data was returned")
            except RemoteError:
                if path is not None:
                    await self._discard_blob(path)
                raise

            created = validate_rows(Document, rows, "documents")[0]
            logger.info("Created document %s", created.id)
            self.set_state(documents=[created, *self.state.documents])
            return created

    async def _discard_blob(self, path: str) -> None:
        try:
            await self._call(self._blobs.remove([path]))
        except RemoteError as e:
            logger.error("Failed to remove orphaned upload %s: %s", path, e)

    async def update(self, document_id: UUID, updates: DocumentUpdate) -> None:
        async with self._operation("Failed to update document"):
            values = row_values(updates, exclude_unset=True)
            if not values:
                raise ValidationError("No document fields to update")
            user = await self._require_user()
            rows = await self._call(
                self._remote.update("documents", values, Where.by(id=document_id, user_id=user.id))
            )
            if not rows:
                raise RemoteError("Document not found")
            updated = validate_rows(Document, rows, "documents")[0]
            self.set_state(
                documents=[updated if doc.id == document_id else doc for doc in self.state.documents]
            )

    async def _find(self, user: SessionUser, document_id: UUID) -> Document | None:
        for doc in self.state.documents:
            if doc.id == document_id:
                return doc
        rows = await self._call(self._remote.select("documents", Where.by(id=document_id, user_id=user.id)))
        documents = validate_rows(Document, rows, "documents")
        return documents[0] if documents else None

    async def delete(self, document_id: UUID) -> None:
        """
        Delete a document and its file.

        The file is removed first when the document has one. A file that
        cannot be removed is logged and does not block deleting the row.
        """
        async with self._operation("Failed to delete document"):
            user = await self._require_user()
            document = await self._find(user, document_id)

            if document is not None and document.file_url:
                path = blob_path_from_url(document.file_url, user.id)
                try:
                    await self._call(self._blobs.remove([path]))
                except RemoteError as e:
                    logger.warning("Could not remove file %s of document %s: %s", path, document_id, e)

            await self._call(self._remote.delete("documents", Where.by(id=document_id, user_id=user.id)))
            self.set_state(documents=[doc for doc in self.state.documents if doc.id != document_id])

    async def download_url(self, document: Document) -> str | None:
        """
        Short-lived signed URL for a document's file.

        Falls back to the stored public URL when signing fails. None when the
        document has no file.
        """
        if not document.file_url:
            return None
        user = await self._require_user()
        path = blob_path_from_url(document.file_url, user.id)
        try:
            return await self._call(self._blobs.create_signed_url(path, self._signed_url_ttl))
        except StorageError as e:
            logger.warning("Signing %s failed, using public URL: %s", path, e)
            return document.file_url
