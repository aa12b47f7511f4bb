"""
Local document collection.

Text documents written on this device. They live in one JSON file and are
never sent to the remote store. Every mutation is written through to the
file before the new state is published; a failed write leaves both the
file and the in-memory state as they were.
"""

import logging
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from uuid import uuid4

from pydantic import BaseModel, Field
from pydantic import ValidationError as SchemaError

from certtrack.config import get_settings
from certtrack.errors import ValidationError
from certtrack.schemas.base import StoreState
from certtrack.schemas.documents import LocalDocument, LocalDocumentUpdate, format_size
from certtrack.stores.base import Store

logger = logging.getLogger(__name__)

STORAGE_SLOT = "local-documents-storage"


class LocalDocumentFile(BaseModel):
    """On-disk shape of the collection."""

    documents: list[LocalDocument] = Field(default_factory=list)


class LocalDocumentState(StoreState):
    documents: list[LocalDocument] = Field(default_factory=list)


def write_atomically(path: Path, text: str) -> None:
    """Replace path with text; readers see either the old or the new file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(text)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


class LocalDocumentStore(Store[LocalDocumentState]):
    """Newest-first list of local documents, persisted on every change."""

    def __init__(self, path: Path | None = None):
        self.path = Path(path) if path is not None else get_settings().local_documents_path
        super().__init__()
        self._restore()

    def baseline(self) -> LocalDocumentState:
        return LocalDocumentState()

    def _restore(self) -> None:
        if not self.path.exists():
            return
        try:
            stored = LocalDocumentFile.model_validate_json(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.error("Could not read %s from %s: %s", STORAGE_SLOT, self.path, e)
            self.set_state(error=f"Could not read local documents: {e.__class__.__name__}")
            return
        logger.info("Loaded %d local document(s) from %s", len(stored.documents), self.path)
        self.set_state(documents=stored.documents)

    def _commit(self, documents: list[LocalDocument]) -> bool:
        try:
            write_atomically(self.path, LocalDocumentFile(documents=documents).model_dump_json(indent=2))
        except OSError as e:
            logger.error("Could not write %s to %s: %s", STORAGE_SLOT, self.path, e, exc_info=True)
            self.set_state(error=f"Could not save local documents: {e.strerror or e}")
            return False
        self.set_state(documents=documents, error=None)
        return True

    def add_document(self, name: str, content: str, category: str) -> LocalDocument | None:
        """
        Create a document at the front of the list.

        Returns None if it could not be saved.

        Raises:
            ValidationError: If name is empty
        """
        try:
            document = LocalDocument(
                id=uuid4().hex,
                name=name,
                content=content,
                category=category,
                size=format_size(content),
                created_at=datetime.now(timezone.utc),
            )
        except SchemaError as e:
            raise ValidationError(f"Invalid local document: {e.errors()[0]['msg']}") from e

        if not self._commit([document, *self.state.documents]):
            return None
        return document

    def get_documents(self) -> list[LocalDocument]:
        return list(self.state.documents)

    def get_document(self, document_id: str) -> LocalDocument | None:
        return next((doc for doc in self.state.documents if doc.id == document_id), None)

    def update_document(self, document_id: str, updates: LocalDocumentUpdate) -> LocalDocument | None:
        """Apply the fields set in updates; size follows content only when content was set."""
        current = self.get_document(document_id)
        if current is None:
            logger.warning("Local document %s not found", document_id)
            return None

        changes = updates.model_dump(exclude_unset=True)
        if "content" in changes:
            if changes["content"] is None:
                raise ValidationError("Local document content cannot be null")
            changes["size"] = format_size(changes["content"])
        if "name" in changes and not changes["name"]:
            raise ValidationError("Local document name cannot be empty")
        if "category" in changes and changes["category"] is None:
            raise ValidationError("Local document category cannot be null")
        updated = current.model_copy(update=changes)

        documents = [updated if doc.id == document_id else doc for doc in self.state.documents]
        if not self._commit(documents):
            return None
        return updated

    def delete_document(self, document_id: str) -> bool:
        """True when a document was removed and the change saved."""
        documents = [doc for doc in self.state.documents if doc.id != document_id]
        if len(documents) == len(self.state.documents):
            return False
        return self._commit(documents)
