"""Derived progress snapshot."""

import math
from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict

from certtrack.catalog import REQUIRED_APPROVALS, REQUIRED_EXPERIENCES, REQUIRED_SKILLS


def overall_progress(completed_skills: int, documented_experiences: int, supervisor_approvals: int) -> int:
    """
    Overall completion percentage, the mean of the three requirement ratios.

    Halves round up (41.5 -> 42), unlike round() which rounds them to even.
    """
    ratio = (
        completed_skills / REQUIRED_SKILLS
        + documented_experiences / REQUIRED_EXPERIENCES
        + supervisor_approvals / REQUIRED_APPROVALS
    ) / 3
    return math.floor(ratio * 100 + 0.5)


class ProgressSnapshot(BaseModel):
    """Derived, never persisted. All fields are None until the first successful computation."""

    model_config = ConfigDict(frozen=True)

    overall_progress: int | None = None
    completed_skills: int | None = None
    documented_experiences: int | None = None
    supervisor_approvals: int | None = None
    last_updated: datetime | None = None

    @classmethod
    def compute(
        cls,
        completed_skills: int,
        documented_experiences: int,
        supervisor_approvals: int,
    ) -> "ProgressSnapshot":
        return cls(
            overall_progress=overall_progress(completed_skills, documented_experiences, supervisor_approvals),
            completed_skills=completed_skills,
            documented_experiences=documented_experiences,
            supervisor_approvals=supervisor_approvals,
            last_updated=datetime.now(timezone.utc),
        )
