"""
Tests for the deadline store.

Run with: cd backend && pytest tests/test_deadlines.py -v
"""

import datetime as dt

import pytest

from certtrack.schemas.deadlines import DeadlineCreate, DeadlinePriority, DeadlineType, DeadlineUpdate
from certtrack.stores.deadlines import DeadlineStore

from conftest import OTHER_USER_ID


@pytest.fixture
def store(identity, remote) -> DeadlineStore:
    return DeadlineStore(identity, remote, timeout=1.0)


class TestDeadlineStore:
    async def test_add_reloads_sorted_by_date(self, store, remote, user):
        await store.add(DeadlineCreate(title="Submit SAOs", date=dt.date(2026, 6, 1), priority=DeadlinePriority.HIGH))
        await store.add(DeadlineCreate(title="Supervisor sign-off", date=dt.date(2026, 3, 15)))

        assert [d.title for d in store.state.deadlines] == ["Supervisor sign-off", "Submit SAOs"]
        assert store.state.deadlines[1].priority == DeadlinePriority.HIGH
        assert store.state.deadlines[0].type == DeadlineType.OTHER
        assert remote.tables["deadlines"][0]["user_id"] == user.id
        assert remote.tables["deadlines"][0]["priority"] == "high"
        assert remote.count("select", "deadlines") == 2

    async def test_load_is_user_scoped(self, store, remote, user):
        remote.seed("deadlines", user_id=user.id, title="Mine", date=dt.date(2026, 1, 10), priority="low", type="skill")
        remote.seed("deadlines", user_id=OTHER_USER_ID, title="Theirs", date=dt.date(2026, 1, 5), priority="low", type="skill")

        await store.load()

        assert [d.title for d in store.state.deadlines] == ["Mine"]

    async def test_update_and_delete(self, store, remote):
        await store.add(DeadlineCreate(title="Exam", date=dt.date(2026, 9, 1)))
        deadline_id = store.state.deadlines[0].id

        await store.update(deadline_id, DeadlineUpdate(date=dt.date(2026, 10, 1), priority=DeadlinePriority.LOW))

        assert store.state.deadlines[0].date == dt.date(2026, 10, 1)
        assert store.state.deadlines[0].priority == DeadlinePriority.LOW
        assert store.state.deadlines[0].title == "Exam"

        await store.delete(deadline_id)

        assert store.state.deadlines == []
        assert remote.tables["deadlines"] == []

    async def test_failure_sets_error(self, store, remote):
        remote.fail("insert", "deadlines")

        await store.add(DeadlineCreate(title="Exam", date=dt.date(2026, 9, 1)))

        assert store.state.error == "insert on deadlines failed"
        assert store.state.loading is False
        assert store.state.deadlines == []

    async def test_upcoming_skips_past_deadlines(self, store, remote, user):
        for day in (1, 10, 20):
            remote.seed(
                "deadlines", user_id=user.id, title=f"Day {day}", date=dt.date(2026, 5, day), priority="medium", type="other"
            )
        await store.load()

        upcoming = store.upcoming(dt.date(2026, 5, 10))

        assert [d.title for d in upcoming] == ["Day 10", "Day 20"]
        assert upcoming[1].days_until(dt.date(2026, 5, 10)) == 10
        assert store.state.deadlines[0].days_until(dt.date(2026, 5, 10)) == -9
