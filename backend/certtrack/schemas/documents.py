"""Remote document and local document schemas."""

from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from certtrack.schemas.base import BaseSchema, RowSchema


class DocumentStatus(str, Enum):
    """Review status of a supporting document."""

    DRAFT = "draft"
    SUBMITTED = "submitted"
    APPROVED = "approved"


class DocumentBase(BaseSchema):
    """Base document schema."""

    title: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    category: str = Field(..., min_length=1, max_length=255)
    status: DocumentStatus = DocumentStatus.DRAFT
    related_skill_id: int | None = None
    related_experience_id: UUID | None = None


class DocumentCreate(DocumentBase):
    """Schema for creating a document; file fields are filled from the upload."""


class DocumentUpdate(BaseSchema):
    """Schema for updating a document. All fields optional."""

    title: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    category: str | None = Field(None, min_length=1, max_length=255)
    status: DocumentStatus | None = None
    related_skill_id: int | None = None
    related_experience_id: UUID | None = None


class Document(DocumentBase, RowSchema):
    """Row of the documents table."""

    id: UUID
    user_id: UUID | None = None
    file_url: str | None = None
    file_type: str | None = None
    file_size: int | None = None
    created_at: datetime


class BlobPayload(BaseModel):
    """Binary file handed to DocumentStore.add."""

    filename: str = Field(..., min_length=1)
    content_type: str | None = None
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


def format_size(content: str) -> str:
    """Human-readable size of a text body, e.g. '2.0 KB'."""
    return f"{len(content) / 1024:.1f} KB"


class LocalDocument(BaseModel):
    """Locally authored text document; never synchronized remotely."""

    model_config = ConfigDict(validate_assignment=True)

    id: str
    name: str = Field(..., min_length=1)
    content: str
    category: str
    size: str
    created_at: datetime


class LocalDocumentUpdate(BaseModel):
    """Partial update for a local document. Unset fields are left alone."""

    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(None, min_length=1)
    content: str | None = None
    category: str | None = None
