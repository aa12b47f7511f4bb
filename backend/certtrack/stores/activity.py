"""Recent activity feed for the dashboard."""

import asyncio
import logging

from pydantic import Field

from certtrack.schemas.activity import Activity
from certtrack.schemas.base import StoreState
from certtrack.schemas.documents import Document
from certtrack.schemas.saos import SAORow
from certtrack.schemas.skills import SkillStatus, UserSkillRecord
from certtrack.services.remote import Order, Where
from certtrack.stores.base import RemoteBackedStore, validate_rows

logger = logging.getLogger(__name__)

FEED_SIZE = 5
RECENT_SAOS = 3
RECENT_DOCUMENTS = 3
RECENT_SKILLS = 5


class ActivityState(StoreState):
    activities: list[Activity] = Field(default_factory=list)


def skill_activity(record: UserSkillRecord) -> Activity | None:
    """Completed skills and rank changes make the feed; untouched skills do not."""
    if record.id is None or record.updated_at is None:
        return None
    if record.status == SkillStatus.COMPLETED:
        activity_type, title = "completed", f"Completed skill: {record.skill_name}"
    elif record.rank is not None:
        activity_type, title = "skill_rank", f"Updated rank for {record.skill_name} to {record.rank}"
    else:
        return None
    return Activity(
        id=record.id,
        type=activity_type,
        title=title,
        timestamp=record.updated_at,
        link=f"/skills/{record.skill_id}",
    )


class ActivityStore(RemoteBackedStore[ActivityState]):
    def baseline(self) -> ActivityState:
        return ActivityState()

    async def load(self) -> None:
        """Merge the latest SAOs, documents and skill changes, newest first."""
        async with self._operation("Failed to load recent activity"):
            user = await self._require_user()
            where = Where.by(user_id=user.id)
            sao_rows, document_rows, skill_rows = await asyncio.gather(
                self._call(
                    self._remote.select("saos", where, order=Order("created_at", descending=True), limit=RECENT_SAOS)
                ),
                self._call(
                    self._remote.select(
                        "documents", where, order=Order("created_at", descending=True), limit=RECENT_DOCUMENTS
                    )
                ),
                self._call(
                    self._remote.select(
                        "user_skills", where, order=Order("updated_at", descending=True), limit=RECENT_SKILLS
                    )
                ),
            )

            activities = [
                Activity(
                    id=sao.id,
                    type="sao",
                    title=f"Created SAO: {sao.title}",
                    timestamp=sao.created_at,
                    link=f"/saos/{sao.id}",
                )
                for sao in validate_rows(SAORow, sao_rows, "saos")
            ]
            activities += [
                Activity(
                    id=doc.id,
                    type="document",
                    title=f"Uploaded document: {doc.title}",
                    timestamp=doc.created_at,
                    link=f"/documents/{doc.id}",
                )
                for doc in validate_rows(Document, document_rows, "documents")
            ]
            for record in validate_rows(UserSkillRecord, skill_rows, "user_skills"):
                activity = skill_activity(record)
                if activity is not None:
                    activities.append(activity)

            activities.sort(key=lambda activity: activity.timestamp, reverse=True)
            self.set_state(activities=activities[:FEED_SIZE])
