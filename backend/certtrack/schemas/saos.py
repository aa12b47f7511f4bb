"""SAO (Situation-Action-Outcome) schemas and their join-row shapes."""

from datetime import datetime
from uuid import UUID

from pydantic import Field

from certtrack.schemas.base import BaseSchema, RowSchema
from certtrack.schemas.skills import Skill, SkillStatus


class SAOSkillLinkRow(RowSchema):
    """
    Row of the sao_skills link table.

    category_name and skill_name are snapshots taken when the skill was
    linked; later catalog renames never rewrite them.
    """

    sao_id: UUID | None = None
    skill_id: int
    category_name: str
    skill_name: str

    def to_skill(self) -> Skill:
        # Linked to an SAO means evidenced, so the skill reads as completed
        return Skill(
            id=self.skill_id,
            name=self.skill_name,
            category_name=self.category_name,
            status=SkillStatus.COMPLETED,
        )


class SAORow(RowSchema):
    """Row of the saos table with its sao_skills rows embedded."""

    id: UUID
    user_id: UUID | None = None
    title: str
    content: str = ""
    created_at: datetime
    updated_at: datetime
    sao_skills: list[SAOSkillLinkRow] = Field(default_factory=list)

    def to_sao(self) -> "SAO":
        return SAO(
            id=self.id,
            title=self.title,
            content=self.content,
            created_at=self.created_at,
            updated_at=self.updated_at,
            skills=[link.to_skill() for link in self.sao_skills],
        )


class SAO(BaseSchema):
    """SAO view model with its linked skills reconstructed."""

    id: UUID
    title: str
    content: str
    created_at: datetime
    updated_at: datetime
    skills: list[Skill] = Field(default_factory=list)


class SAOWrite(BaseSchema):
    """Validated input for creating or re-saving an SAO."""

    title: str = Field(..., min_length=1, max_length=255)
    content: str = Field(..., min_length=1)
    skills: list[Skill] = Field(default_factory=list)

    def unique_skills(self) -> list[Skill]:
        """Skills with duplicate ids dropped, first occurrence kept."""
        seen: set[int] = set()
        unique = []
        for skill in self.skills:
            if skill.id not in seen:
                seen.add(skill.id)
                unique.append(skill)
        return unique
