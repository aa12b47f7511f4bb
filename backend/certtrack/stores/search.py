"""
Search across skills and SAOs.

One query fans out to two user-scoped substring searches that run
concurrently: skill names in user_skills, and SAO titles or contents with
their linked skills. Results list skills first, then SAOs.
"""

import asyncio
import logging

from pydantic import Field

from certtrack.schemas.base import StoreState
from certtrack.schemas.saos import SAORow
from certtrack.schemas.search import SAOSearchResult, SearchResult, SkillSearchResult
from certtrack.schemas.skills import UserSkillRecord
from certtrack.services.remote import Row, Where
from certtrack.stores.base import RemoteBackedStore, validate_rows

logger = logging.getLogger(__name__)

SNIPPET_LENGTH = 100


class SearchState(StoreState):
    query: str = ""
    results: list[SearchResult] = Field(default_factory=list)


def skill_result(record: UserSkillRecord) -> SkillSearchResult:
    description = f"Category: {record.category_name}"
    if record.rank:
        description += f" | Rank: {record.rank}"
    return SkillSearchResult(
        id=record.id,
        title=record.skill_name,
        description=description,
        link=f"/skills#skill-{record.skill_id}",
        data=record.to_skill(),
    )


def sao_result(row: SAORow) -> SAOSearchResult:
    return SAOSearchResult(
        id=row.id,
        title=row.title,
        description=row.content[:SNIPPET_LENGTH] + "...",
        link="/saos",
        data=row.to_sao(),
    )


class SearchStore(RemoteBackedStore[SearchState]):
    """Holds the results of the latest search only."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._latest = 0

    def baseline(self) -> SearchState:
        return SearchState()

    def reset(self) -> None:
        self._latest += 1
        super().reset()

    async def search(self, query: str) -> None:
        """
        Run a search and publish its results.

        A blank query clears the results without touching the remote store.
        If either sub-search fails the whole search fails: results are
        cleared and the error recorded. A search overtaken by a newer one
        publishes nothing.
        """
        self._latest += 1
        token = self._latest
        term = query.strip()
        if not term:
            self.set_state(query="", results=[], loading=False, error=None)
            return

        async with self._operation("Search failed"):
            try:
                user = await self._require_user()
                outcomes = await asyncio.gather(
                    self._call(
                        self._remote.select("user_skills", Where.by(user_id=user.id).matching(skill_name=term))
                    ),
                    self._call(
                        self._remote.select(
                            "saos",
                            Where.by(user_id=user.id).matching(title=term, content=term),
                            embed=("sao_skills",),
                        )
                    ),
                    return_exceptions=True,
                )
                for outcome in outcomes:
                    if isinstance(outcome, BaseException):
                        raise outcome
                skill_rows: list[Row]
                sao_rows: list[Row]
                skill_rows, sao_rows = outcomes

                results: list[SearchResult] = [
                    *(skill_result(record) for record in validate_rows(UserSkillRecord, skill_rows, "user_skills")),
                    *(sao_result(row) for row in validate_rows(SAORow, sao_rows, "saos")),
                ]
            except Exception:
                if token == self._latest:
                    self.set_state(query=term, results=[])
                    raise
                logger.debug("Discarding failure of superseded search %r", term)
                return

            if token != self._latest:
                logger.debug("Discarding results of superseded search %r", term)
                return
            logger.info("Search %r matched %d result(s)", term, len(results))
            self.set_state(query=term, results=results)
