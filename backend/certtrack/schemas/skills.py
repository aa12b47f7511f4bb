"""Skill, category and per-user skill record schemas."""

from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import Field

from certtrack.schemas.base import BaseSchema, RowSchema


class SkillStatus(str, Enum):
    """Progress status of a skill. IN_PROGRESS is never produced by any operation."""

    COMPLETED = "completed"
    IN_PROGRESS = "in-progress"
    NOT_STARTED = "not-started"

    @classmethod
    def for_rank(cls, rank: int | None) -> "SkillStatus":
        """Derived status: completed whenever a rank is present."""
        return cls.COMPLETED if rank else cls.NOT_STARTED

    @classmethod
    def reconcile(cls, rank: int | None, status: "SkillStatus | str | None") -> "SkillStatus":
        """
        Keep a stored status unless it contradicts the rank.

        A ranked skill is always completed; an unranked skill can never be.
        """
        if rank:
            return cls.COMPLETED
        if status is None or cls(status) is cls.COMPLETED:
            return cls.NOT_STARTED
        return cls(status)


class Skill(BaseSchema):
    """A catalog skill with the current user's rank and status."""

    id: int
    name: str
    status: SkillStatus = SkillStatus.NOT_STARTED
    rank: int | None = None
    category_name: str | None = None


class Category(BaseSchema):
    """Catalog category with skills in display order."""

    name: str
    skills: list[Skill] = Field(default_factory=list)


class UserSkillRecord(RowSchema):
    """Row of the remote user_skills table."""

    id: UUID | None = None
    user_id: UUID | None = None
    skill_id: int
    category_name: str
    skill_name: str
    rank: int | None = None
    status: SkillStatus = SkillStatus.NOT_STARTED
    updated_at: datetime | None = None

    def to_skill(self) -> Skill:
        rank = self.rank or None
        return Skill(
            id=self.skill_id,
            name=self.skill_name,
            rank=rank,
            status=SkillStatus.reconcile(rank, self.status),
            category_name=self.category_name,
        )
