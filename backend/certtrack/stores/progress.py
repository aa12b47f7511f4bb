"""Overall certification progress, derived from skills and two experience counts."""

import asyncio
import logging

from pydantic import BaseModel

from certtrack.errors import RemoteError
from certtrack.schemas.auth import SessionUser
from certtrack.schemas.progress import ProgressSnapshot
from certtrack.services.identity import IdentityProvider
from certtrack.services.remote import RemoteStore, Where
from certtrack.stores.base import RemoteBackedStore
from certtrack.stores.skills import SkillsStore

logger = logging.getLogger(__name__)


class ProgressState(BaseModel):
    """No error field: a failed refresh keeps the previous snapshot."""

    loading: bool = False
    snapshot: ProgressSnapshot = ProgressSnapshot()


class ProgressStore(RemoteBackedStore[ProgressState]):
    def __init__(
        self,
        identity: IdentityProvider,
        remote: RemoteStore,
        skills: SkillsStore,
        *,
        timeout: float | None = None,
    ):
        super().__init__(identity, remote, timeout=timeout)
        self._skills = skills

    def baseline(self) -> ProgressState:
        return ProgressState()

    async def _count_experiences(self, user: SessionUser, **flags: bool) -> int:
        rows = await self._call(self._remote.select("experiences", Where.by(user_id=user.id, **flags)))
        return len(rows)

    async def update_progress(self) -> None:
        """
        Recompute the snapshot.

        Skills are reloaded first so the completed count is current. The new
        snapshot is published in a single transition; on any failure the old
        one stays and the error is only logged. A refresh that a reset overtakes
        publishes nothing.
        """
        with self._bound():
            self.set_state(loading=True)
            try:
                user = await self._require_user()

                await self._skills.load_user_skills()
                if self._skills.state.error:
                    raise RemoteError(self._skills.state.error)
                completed_skills = sum(
                    1
                    for category in self._skills.state.skill_categories
                    for skill in category.skills
                    if skill.rank is not None
                )

                documented, approved = await asyncio.gather(
                    self._count_experiences(user, is_documented=True),
                    self._count_experiences(user, supervisor_approved=True),
                )
                snapshot = ProgressSnapshot.compute(completed_skills, documented, approved)
                logger.info(
                    "Progress for %s: %d%% (%d skills, %d documented, %d approved)",
                    user.id,
                    snapshot.overall_progress,
                    completed_skills,
                    documented,
                    approved,
                )
                self.set_state(snapshot=snapshot)
            except Exception as e:
                logger.error("Error updating progress: %s", e, exc_info=True)
            finally:
                self.set_state(loading=False)
