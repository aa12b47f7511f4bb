"""Deadline schemas."""

import datetime as dt
from enum import Enum
from uuid import UUID

from pydantic import Field

from certtrack.schemas.base import BaseSchema, RowSchema


class DeadlinePriority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class DeadlineType(str, Enum):
    SKILL = "skill"
    EXPERIENCE = "experience"
    APPROVAL = "approval"
    DOCUMENT = "document"
    OTHER = "other"


class DeadlineBase(BaseSchema):
    """Base deadline schema."""

    title: str = Field(..., min_length=1, max_length=255)
    date: dt.date
    priority: DeadlinePriority = DeadlinePriority.MEDIUM
    type: DeadlineType = DeadlineType.OTHER
    related_id: str | None = None


class DeadlineCreate(DeadlineBase):
    """Schema for creating a deadline."""


class DeadlineUpdate(BaseSchema):
    """Schema for updating a deadline. All fields optional."""

    title: str | None = Field(None, min_length=1, max_length=255)
    date: dt.date | None = None
    priority: DeadlinePriority | None = None
    type: DeadlineType | None = None
    related_id: str | None = None


class Deadline(DeadlineBase, RowSchema):
    """Row of the deadlines table."""

    id: UUID
    user_id: UUID
    created_at: dt.datetime
    updated_at: dt.datetime

    def days_until(self, today: dt.date) -> int:
        """Whole days left until the deadline; negative once it has passed."""
        return (self.date - today).days
