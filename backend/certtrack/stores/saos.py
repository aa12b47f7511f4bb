"""SAO store: write-ups with their linked skills rebuilt from the sao_skills join table."""

import logging
from collections.abc import Iterable
from uuid import UUID

from pydantic import Field
from pydantic import ValidationError as SchemaError

from certtrack.catalog import category_of
from certtrack.errors import RemoteError, ValidationError
from certtrack.schemas.auth import SessionUser
from certtrack.schemas.base import StoreState
from certtrack.schemas.saos import SAO, SAORow, SAOWrite
from certtrack.schemas.skills import Skill
from certtrack.services.remote import Order, Row, Where
from certtrack.stores.base import RemoteBackedStore, validate_rows

logger = logging.getLogger(__name__)


class SAOState(StoreState):
    saos: list[SAO] = Field(default_factory=list)


def parse_sao_write(title: str, content: str, skills: Iterable[Skill]) -> SAOWrite:
    """
    Validate SAO input before anything is sent.

    Raises:
        ValidationError: If title or content is empty or a skill is not in the catalog
    """
    try:
        write = SAOWrite(title=title, content=content, skills=list(skills))
    except SchemaError as e:
        error = e.errors()[0]
        field = ".".join(str(part) for part in error["loc"])
        raise ValidationError(f"Invalid SAO {field}: {error['msg']}") from e

    for skill in write.skills:
        if not skill.category_name and category_of(skill.id) is None:
            raise ValidationError(f"Unknown skill: {skill.id}")
    return write


def link_rows(sao_id: UUID, write: SAOWrite) -> list[Row]:
    """One sao_skills row per distinct skill, with the labels as they are now."""
    return [
        {
            "sao_id": sao_id,
            "skill_id": skill.id,
            "category_name": skill.category_name or category_of(skill.id),
            "skill_name": skill.name,
        }
        for skill in write.unique_skills()
    ]


class SAOStore(RemoteBackedStore[SAOState]):
    """The user's SAOs, newest first."""

    def baseline(self) -> SAOState:
        return SAOState()

    async def _reload(self, user: SessionUser) -> None:
        rows = await self._call(
            self._remote.select(
                "saos",
                Where.by(user_id=user.id),
                order=Order("created_at", descending=True),
                embed=("sao_skills",),
            )
        )
        saos = [row.to_sao() for row in validate_rows(SAORow, rows, "saos")]
        saos.sort(key=lambda sao: sao.created_at, reverse=True)
        self.set_state(saos=saos)

    async def load(self) -> None:
        async with self._operation("Failed to load SAOs"):
            user = await self._require_user()
            await self._reload(user)

    async def create(self, title: str, content: str, skills: Iterable[Skill] = ()) -> None:
        """Insert an SAO and its skill links, then reload."""
        async with self._operation("Failed to create SAO"):
            write = parse_sao_write(title, content, skills)
            user = await self._require_user()

            rows = await self._call(
                self._remote.insert(
                    "saos",
                    [{"user_id": user.id, "title": write.title, "content": write.content}],
                )
            )
            if not rows:
                raise RemoteError("SAO was created but no data was returned")
            sao_id = rows[0]["id"]

            links = link_rows(sao_id, write)
            if links:
                await self._call(self._remote.insert("sao_skills", links))
            logger.info("Created SAO %s with %d skill(s)", sao_id, len(links))
            await self._reload(user)

    async def update(self, sao_id: UUID, title: str, content: str, skills: Iterable[Skill] = ()) -> None:
        """
        Re-save an SAO.

        The link set is replaced wholesale: every existing sao_skills row of
        the SAO is deleted and the new set inserted.
        """
        async with self._operation("Failed to update SAO"):
            write = parse_sao_write(title, content, skills)
            user = await self._require_user()

            updated = await self._call(
                self._remote.update(
                    "saos",
                    {"title": write.title, "content": write.content},
                    Where.by(id=sao_id, user_id=user.id),
                )
            )
            if not updated:
                raise RemoteError("SAO not found")

            await self._call(self._remote.delete("sao_skills", Where.by(sao_id=sao_id)))
            links = link_rows(sao_id, write)
            if links:
                await self._call(self._remote.insert("sao_skills", links))
            logger.info("Updated SAO %s with %d skill(s)", sao_id, len(links))
            await self._reload(user)

    async def delete(self, sao_id: UUID) -> None:
        async with self._operation("Failed to delete SAO"):
            user = await self._require_user()
            deleted = await self._call(self._remote.delete("saos", Where.by(id=sao_id, user_id=user.id)))
            if not deleted:
                raise RemoteError("SAO not found")
            await self._call(self._remote.delete("sao_skills", Where.by(sao_id=sao_id)))
            self.set_state(saos=[sao for sao in self.state.saos if sao.id != sao_id])
