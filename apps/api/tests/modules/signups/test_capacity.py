"""
Concurrency tests for the capacity rule.

The repositories are replaced by an in-memory store whose opportunity row
lock is an ``asyncio.Lock``: ``get_for_update`` acquires it and the
transaction's commit or rollback releases it, as a row lock would behave.
Every repository call yields to the event loop so concurrent signups
interleave between the count and the write.
"""

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

import pytest

from app.modules.sessions.models import ServiceSession, SessionStatus
from app.modules.signups.models import Signup, SignupStatus
from app.modules.signups.service import cancel_signup, sign_up
from app.modules.users.models import UserRole
from tests.factories import make_actor, make_opportunity, new_id

SERVICE = "app.modules.signups.service"


class InMemoryStore:
    def __init__(self, opportunity):
        self.opportunity = opportunity
        self.row_lock = asyncio.Lock()
        self.signups: list[Signup] = []
        self.sessions: list[ServiceSession] = []

    # Opportunity repository

    async def get_for_update(self, db, opportunity_id):
        await db.lock(self.row_lock)
        return self.opportunity

    # Signup repository

    async def get_signup(self, db, signup_id, *, for_update=False):
        await asyncio.sleep(0)
        return next((s for s in self.signups if s.id == signup_id), None)

    async def get_signup_for(self, db, user_id, opportunity_id, *, for_update=False):
        await asyncio.sleep(0)
        return next((s for s in self.signups if s.user_id == user_id), None)

    async def count_confirmed(self, db, opportunity_id):
        await asyncio.sleep(0)
        return sum(1 for s in self.signups if s.status == SignupStatus.CONFIRMED)

    async def create_signup(self, db, *, user_id, opportunity_id, status):
        await asyncio.sleep(0)
        signup = Signup(id=new_id(), user_id=user_id, opportunity_id=opportunity_id, status=status)
        self.signups.append(signup)
        return signup

    async def first_waitlisted(self, db, opportunity_id):
        await asyncio.sleep(0)
        return next((s for s in self.signups if s.status == SignupStatus.WAITLISTED), None)

    # Session repository

    async def get_session_for(self, db, user_id, opportunity_id, *, for_update=False):
        await asyncio.sleep(0)
        return next((s for s in self.sessions if s.user_id == user_id), None)

    async def create_session(self, db, *, user_id, opportunity_id, total_hours):
        await asyncio.sleep(0)
        session = ServiceSession(
            id=new_id(),
            user_id=user_id,
            opportunity_id=opportunity_id,
            status=SessionStatus.COMMITTED,
            total_hours=total_hours,
        )
        self.sessions.append(session)
        return session

    def confirmed_user_ids(self) -> set[str]:
        return {s.user_id for s in self.signups if s.status == SignupStatus.CONFIRMED}


class FakeTransaction:
    """One request's database session."""

    def __init__(self):
        self._held: asyncio.Lock | None = None

    async def lock(self, row_lock: asyncio.Lock) -> None:
        if self._held is None:
            await row_lock.acquire()
            self._held = row_lock

    def _release(self) -> None:
        if self._held is not None:
            self._held.release()
            self._held = None

    async def commit(self):
        self._release()

    async def rollback(self):
        self._release()

    async def flush(self):
        await asyncio.sleep(0)

    async def refresh(self, obj):
        await asyncio.sleep(0)


@pytest.fixture
def store():
    return InMemoryStore(make_opportunity(capacity=3))


@pytest.fixture
def patched_store(store):
    with (
        patch(
            f"{SERVICE}.opportunity_repository",
            SimpleNamespace(get_for_update=store.get_for_update),
        ),
        patch(
            f"{SERVICE}.repository",
            SimpleNamespace(
                get_by_id=store.get_signup,
                get_by_user_and_opportunity=store.get_signup_for,
                count_confirmed=store.count_confirmed,
                create=store.create_signup,
                first_waitlisted=store.first_waitlisted,
            ),
        ),
        patch(
            f"{SERVICE}.session_repository",
            SimpleNamespace(
                get_by_user_and_opportunity=store.get_session_for,
                create=store.create_session,
            ),
        ),
        patch(f"{SERVICE}.notify", new_callable=AsyncMock),
    ):
        yield store


async def _sign_up(actor, opportunity_id):
    db = FakeTransaction()
    try:
        return await sign_up(db, actor, opportunity_id)
    except Exception:
        await db.rollback()
        raise


class TestConcurrentSignups:
    @pytest.mark.asyncio
    async def test_last_spots_never_overbooked(self, patched_store):
        store = patched_store
        students = [make_actor(UserRole.STUDENT) for _ in range(10)]

        results = await asyncio.gather(
            *(_sign_up(student, store.opportunity.id) for student in students)
        )

        statuses = [signup.status for signup in results]
        assert statuses.count(SignupStatus.CONFIRMED) == 3
        assert statuses.count(SignupStatus.WAITLISTED) == 7
        assert len(store.sessions) == 10
        assert not store.row_lock.locked()

    @pytest.mark.asyncio
    async def test_cancellations_promote_in_signup_order(self, patched_store):
        store = patched_store
        store.opportunity.capacity = 2
        students = [make_actor(UserRole.STUDENT) for _ in range(6)]

        # Sequential signups fix the queue: 0 and 1 confirmed, 2-4 waitlisted
        signups = [await _sign_up(student, store.opportunity.id) for student in students[:5]]

        await asyncio.gather(
            cancel_signup(FakeTransaction(), students[0], signups[0].id),
            cancel_signup(FakeTransaction(), students[1], signups[1].id),
            _sign_up(students[5], store.opportunity.id),
        )

        assert store.confirmed_user_ids() == {students[2].id, students[3].id}
        waitlisted = [s.user_id for s in store.signups if s.status == SignupStatus.WAITLISTED]
        assert waitlisted == [students[4].id, students[5].id]
        assert not store.row_lock.locked()
