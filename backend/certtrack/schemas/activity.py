"""Recent activity feed entries."""

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel


class Activity(BaseModel):
    id: UUID
    type: Literal["sao", "document", "completed", "skill_rank"]
    title: str
    timestamp: datetime
    link: str
