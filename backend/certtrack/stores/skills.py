"""
Skills progress store.

Holds the fixed competency catalog merged with the signed-in user's ranks.
Rank changes are applied locally first and written to the remote store in a
background task; a failed write is repaired by a full reload.
"""

import asyncio
import logging
from collections import defaultdict

from pydantic import Field

from certtrack.catalog import SKILL_CATALOG, iter_catalog
from certtrack.errors import describe_error
from certtrack.schemas.base import StoreState
from certtrack.schemas.skills import Category, Skill, SkillStatus, UserSkillRecord
from certtrack.services.identity import IdentityProvider
from certtrack.services.remote import RemoteStore, Where
from certtrack.stores.base import RemoteBackedStore, validate_rows

logger = logging.getLogger(__name__)

RANK_CONFLICT_KEY = ("user_id", "skill_id")


class SkillsState(StoreState):
    skill_categories: list[Category] = Field(default_factory=list)
    # Skills with a rank write still in flight
    pending_skill_ids: frozenset[int] = frozenset()


def catalog_categories() -> list[Category]:
    """The static catalog with every skill unranked."""
    return [
        Category(
            name=category_name,
            skills=[Skill(id=skill_id, name=skill_name, category_name=category_name) for skill_id, skill_name in skills],
        )
        for category_name, skills in SKILL_CATALOG
    ]


def _with_rank(categories: list[Category], category_index: int, skill_id: int, rank: int | None) -> list[Category]:
    status = SkillStatus.for_rank(rank)
    return [
        category
        if index != category_index
        else category.model_copy(
            update={
                "skills": [
                    skill.model_copy(update={"rank": rank, "status": status}) if skill.id == skill_id else skill
                    for skill in category.skills
                ]
            }
        )
        for index, category in enumerate(categories)
    ]


def _is_valid_rank(rank) -> bool:
    return rank is None or (isinstance(rank, int) and not isinstance(rank, bool) and rank >= 0)


class SkillsStore(RemoteBackedStore[SkillsState]):
    """Catalog skills with the user's ranks and derived completion status."""

    def __init__(self, identity: IdentityProvider, remote: RemoteStore, *, timeout: float | None = None):
        super().__init__(
            identity,
            remote,
            timeout=timeout,
            initial_state=SkillsState(skill_categories=catalog_categories()),
        )
        self._generations: dict[int, int] = {}
        self._optimistic: dict[int, int | None] = {}
        self._locks: defaultdict[int, asyncio.Lock] = defaultdict(asyncio.Lock)

    def baseline(self) -> SkillsState:
        return SkillsState()

    def reset(self) -> None:
        # Writes still in flight belong to the previous session
        self._optimistic.clear()
        super().reset()

    # =========================================================================
    # LOAD
    # =========================================================================

    async def load_user_skills(self) -> None:
        """
        Fetch the user's rank rows and merge them onto the catalog.

        A user without rows gets one unranked row per catalog skill first.
        Catalog order and names always win; rank and status come from the
        remote rows. Skills with a rank write in flight keep their local value.
        """
        async with self._operation("Unknown error", prefix="Failed to load skills: "):
            user = await self._require_user()
            where = Where.by(user_id=user.id)
            rows = await self._call(self._remote.select("user_skills", where))

            if not rows:
                logger.info("Initializing skills for user %s", user.id)
                await self._call(
                    self._remote.insert(
                        "user_skills",
                        [
                            {
                                "user_id": user.id,
                                "skill_id": skill_id,
                                "category_name": category_name,
                                "skill_name": skill_name,
                                "rank": None,
                                "status": SkillStatus.NOT_STARTED.value,
                            }
                            for category_name, skill_id, skill_name in iter_catalog()
                        ],
                    )
                )
                rows = await self._call(self._remote.select("user_skills", where))

            records = validate_rows(UserSkillRecord, rows, "user_skills")
            self.set_state(skill_categories=self._merge(records))

    def _merge(self, records: list[UserSkillRecord]) -> list[Category]:
        by_key = {(record.skill_id, record.category_name): record for record in records}
        categories = []
        for category in catalog_categories():
            skills = []
            for skill in category.skills:
                if skill.id in self._optimistic:
                    rank = self._optimistic[skill.id]
                    status = SkillStatus.for_rank(rank)
                else:
                    record = by_key.get((skill.id, category.name))
                    rank = (record.rank or None) if record else None
                    status = SkillStatus.reconcile(rank, record.status if record else None)
                skills.append(skill.model_copy(update={"rank": rank, "status": status}))
            categories.append(category.model_copy(update={"skills": skills}))
        return categories

    # =========================================================================
    # RANK UPDATES
    # =========================================================================

    def update_skill_rank(self, category_index: int, skill_id: int, rank: int | None) -> asyncio.Task | None:
        """
        Set a skill's rank locally and start syncing it.

        Must be called from a running event loop. The new rank and its derived
        status are visible as soon as this returns. The returned task performs
        the remote write; awaiting it is optional. Returns None when the skill
        or rank is invalid, with the reason in `error`.

        Writes for the same skill are sent one at a time in call order; a write
        overtaken by a newer one before it is sent is dropped, and a failure of
        an overtaken write is ignored.
        """
        categories = self.state.skill_categories
        category = categories[category_index] if 0 <= category_index < len(categories) else None
        skill = next((s for s in category.skills if s.id == skill_id), None) if category else None
        if skill is None:
            logger.error("Skill not found: category %s, skill %s", category_index, skill_id)
            self.set_state(error="Failed to update skill rank: Skill not found")
            return None
        if not _is_valid_rank(rank):
            logger.error("Invalid rank %r for skill %s", rank, skill_id)
            self.set_state(error=f"Failed to update skill rank: Invalid rank {rank!r}")
            return None

        rank = rank or None
        generation = self._generations.get(skill_id, 0) + 1
        self._generations[skill_id] = generation
        self._optimistic[skill_id] = rank
        self.set_state(
            skill_categories=_with_rank(categories, category_index, skill_id, rank),
            pending_skill_ids=self.state.pending_skill_ids | {skill_id},
            error=None,
        )
        return asyncio.create_task(
            self._sync_rank(self._epoch, generation, category_index, category.name, skill, rank),
            name=f"sync-skill-rank-{skill_id}",
        )

    def _is_current(self, epoch: int, skill_id: int, generation: int) -> bool:
        return epoch == self._epoch and self._generations.get(skill_id) == generation

    def _settle(self, skill_id: int) -> None:
        self._optimistic.pop(skill_id, None)
        self.set_state(pending_skill_ids=self.state.pending_skill_ids - {skill_id})

    async def _sync_rank(
        self,
        epoch: int,
        generation: int,
        category_index: int,
        category_name: str,
        previous: Skill,
        rank: int | None,
    ) -> None:
        with self._bound(epoch):
            skill_id = previous.id
            failure: Exception | None = None

            async with self._locks[skill_id]:
                if not self._is_current(epoch, skill_id, generation):
                    logger.debug("Dropping superseded rank write for skill %s", skill_id)
                    return
                try:
                    user = await self._require_user()
                    await self._call(
                        self._remote.upsert(
                            "user_skills",
                            {
                                "user_id": user.id,
                                "skill_id": skill_id,
                                "category_name": category_name,
                                "skill_name": previous.name,
                                "rank": rank,
                                "status": SkillStatus.for_rank(rank).value,
                            },
                            conflict_key=RANK_CONFLICT_KEY,
                        )
                    )
                except Exception as e:
                    failure = e

            if not self._is_current(epoch, skill_id, generation):
                if failure is not None:
                    logger.warning("Ignoring failed rank write for skill %s, a newer one replaced it: %s", skill_id, failure)
                return

            self._settle(skill_id)
            if failure is None:
                return

            logger.error("Error updating skill rank for skill %s: %s", skill_id, failure, exc_info=failure)
            # Roll back locally, then let the reload restore the remote truth
            self.set_state(
                skill_categories=_with_rank(self.state.skill_categories, category_index, skill_id, previous.rank)
            )
            await self.load_user_skills()
            self.set_state(error=f"Failed to update skill rank: {describe_error(failure, 'Unknown error')}")
