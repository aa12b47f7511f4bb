"""Search result variants."""

from typing import Annotated, Literal, Union
from uuid import UUID

from pydantic import BaseModel, Field

from certtrack.schemas.saos import SAO
from certtrack.schemas.skills import Skill


class SearchResultBase(BaseModel):
    """Fields shared by every search result."""

    id: UUID
    title: str
    description: str
    link: str


class SkillSearchResult(SearchResultBase):
    type: Literal["skill"] = "skill"
    data: Skill


class SAOSearchResult(SearchResultBase):
    """Carries the full SAO so an edit view can open without a second fetch."""

    type: Literal["sao"] = "sao"
    data: SAO


SearchResult = Annotated[Union[SkillSearchResult, SAOSearchResult], Field(discriminator="type")]
