"""Deadline store. Every mutation reloads the full list, soonest first."""

import datetime as dt
import logging
from uuid import UUID

from pydantic import Field

from certtrack.errors import ValidationError
from certtrack.schemas.auth import SessionUser
from certtrack.schemas.base import StoreState
from certtrack.schemas.deadlines import Deadline, DeadlineCreate, DeadlineUpdate
from certtrack.stores.base import RemoteBackedStore, row_values, validate_rows
from certtrack.services.remote import Order, Where

logger = logging.getLogger(__name__)


class DeadlineState(StoreState):
    deadlines: list[Deadline] = Field(default_factory=list)


class DeadlineStore(RemoteBackedStore[DeadlineState]):
    def baseline(self) -> DeadlineState:
        return DeadlineState()

    async def _reload(self, user: SessionUser) -> None:
        rows = await self._call(
            self._remote.select("deadlines", Where.by(user_id=user.id), order=Order("date"))
        )
        self.set_state(deadlines=validate_rows(Deadline, rows, "deadlines"))

    async def load(self) -> None:
        async with self._operation("Failed to load deadlines"):
            user = await self._require_user()
            await self._reload(user)

    async def add(self, deadline: DeadlineCreate) -> None:
        async with self._operation("Failed to add deadline"):
            user = await self._require_user()
            await self._call(self._remote.insert("deadlines", [{**row_values(deadline), "user_id": user.id}]))
            await self._reload(user)

    async def update(self, deadline_id: UUID, updates: DeadlineUpdate) -> None:
        async with self._operation("Failed to update deadline"):
            values = row_values(updates, exclude_unset=True)
            if not values:
                raise ValidationError("No deadline fields to update")
            user = await self._require_user()
            await self._call(
                self._remote.update("deadlines", values, Where.by(id=deadline_id, user_id=user.id))
            )
            await self._reload(user)

    async def delete(self, deadline_id: UUID) -> None:
        async with self._operation("Failed to delete deadline"):
            user = await self._require_user()
            await self._call(self._remote.delete("deadlines", Where.by(id=deadline_id, user_id=user.id)))
            await self._reload(user)

    def upcoming(self, today: dt.date, limit: int = 5) -> list[Deadline]:
        """Deadlines from today on, soonest first."""
        return [deadline for deadline in self.state.deadlines if deadline.days_until(today) >= 0][:limit]
