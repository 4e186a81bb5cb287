"""
Evanescent Backend: Writeup Service Tests
===========================================

What:  The claim state machine, like counters, deletion and the feeds,
       against a real SQLite database.

What we test:
    ✅ claim / unclaim transitions and their failure outcomes
    ✅ Concurrent claims on one bottle produce exactly one winner
    ✅ Likes never go below zero, and concurrent likes are never lost
    ✅ Only the owner can delete
    ✅ Feed visibility (public + own private) and newest-first order
    ✅ Store failures (including a failed commit) surface as StoreError
"""

import asyncio
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest
import pytest_asyncio
from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from evanescent.exceptions import (
    AlreadyClaimedError,
    ForbiddenError,
    NotFoundError,
    StoreError,
)
from evanescent.models.user import User
from evanescent.models.writeup import Writeup


async def _make_user(session, name: str) -> int:
    user = User(name=name, email=f"{name.lower()}@example.com", password_hash="x")
    session.add(user)
    await session.flush()
    return user.id


async def _claimed_by(database, writeup_id: int):
    async with database.session() as s:
        return (await s.execute(select(Writeup.claimed_by).where(Writeup.id == writeup_id))).scalar_one()


@pytest_asyncio.fixture
async def world(database, writeup_service):
    """Three users and one public writeup owned by the first."""
    async with database.session() as s:
        owner = await _make_user(s, "Owner")
        alice = await _make_user(s, "Alice")
        bob = await _make_user(s, "Bob")
        writeup = await writeup_service.create_writeup(
            s, requester_id=owner, title="Message", content="in a bottle", is_public=True
        )
        await s.commit()
    return {"owner": owner, "alice": alice, "bob": bob, "writeup": writeup.id}


class TestCreate:
    @pytest.mark.asyncio
    async def test_new_writeup_is_unclaimed_with_no_likes(self, world, database):
        async with database.session() as s:
            row = (await s.execute(select(Writeup).where(Writeup.id == world["writeup"]))).scalar_one()
        assert row.user_id == world["owner"]
        assert row.likes == 0
        assert row.claimed_by is None
        assert row.is_public is True
        assert row.created_at is not None


class TestClaim:
    @pytest.mark.asyncio
    async def test_claim_then_unclaim(self, world, database, writeup_service):
        async with database.session() as s:
            await writeup_service.claim(s, world["writeup"], world["alice"])
            await s.commit()
        assert await _claimed_by(database, world["writeup"]) == world["alice"]

        async with database.session() as s:
            await writeup_service.unclaim(s, world["writeup"], world["alice"])
            await s.commit()
        assert await _claimed_by(database, world["writeup"]) is None

    @pytest.mark.asyncio
    async def test_claim_taken_bottle(self, world, database, writeup_service):
        async with database.session() as s:
            await writeup_service.claim(s, world["writeup"], world["alice"])
            await s.commit()

        async with database.session() as s:
            with pytest.raises(AlreadyClaimedError):
                await writeup_service.claim(s, world["writeup"], world["bob"])
        assert await _claimed_by(database, world["writeup"]) == world["alice"]

    @pytest.mark.asyncio
    async def test_reclaim_by_holder_is_already_claimed(self, world, database, writeup_service):
        async with database.session() as s:
            await writeup_service.claim(s, world["writeup"], world["alice"])
            await s.commit()

        async with database.session() as s:
            with pytest.raises(AlreadyClaimedError):
                await writeup_service.claim(s, world["writeup"], world["alice"])

    @pytest.mark.asyncio
    async def test_claim_missing_bottle(self, world, db_session, writeup_service):
        with pytest.raises(NotFoundError) as exc_info:
            await writeup_service.claim(db_session, 9999, world["alice"])
        assert exc_info.value.message == "Bottle Empty"

    @pytest.mark.asyncio
    async def test_concurrent_claims_have_one_winner(self, world, database, writeup_service):
        async def attempt(user_id):
            async with database.session() as s:
                try:
                    await writeup_service.claim(s, world["writeup"], user_id)
                    await s.commit()
                    return user_id
                except AlreadyClaimedError:
                    await s.rollback()
                    return None

        results = await asyncio.gather(attempt(world["alice"]), attempt(world["bob"]))

        winners = [r for r in results if r is not None]
        assert len(winners) == 1
        assert await _claimed_by(database, world["writeup"]) == winners[0]


class TestUnclaim:
    @pytest.mark.asyncio
    async def test_unclaim_unclaimed_bottle_forbidden(self, world, db_session, writeup_service):
        with pytest.raises(ForbiddenError):
            await writeup_service.unclaim(db_session, world["writeup"], world["alice"])

    @pytest.mark.asyncio
    async def test_unclaim_someone_elses_bottle_forbidden(self, world, database, writeup_service):
        async with database.session() as s:
            await writeup_service.claim(s, world["writeup"], world["alice"])
            await s.commit()

        async with database.session() as s:
            with pytest.raises(ForbiddenError) as exc_info:
                await writeup_service.unclaim(s, world["writeup"], world["bob"])
        assert exc_info.value.message == "You can only unclaim your own claimed bottles"
        assert await _claimed_by(database, world["writeup"]) == world["alice"]

    @pytest.mark.asyncio
    async def test_unclaim_missing_bottle(self, world, db_session, writeup_service):
        with pytest.raises(NotFoundError):
            await writeup_service.unclaim(db_session, 9999, world["alice"])


class TestLikes:
    @pytest.mark.asyncio
    async def test_like_increments(self, world, db_session, writeup_service):
        assert await writeup_service.like(db_session, world["writeup"]) == 1
        assert await writeup_service.like(db_session, world["writeup"]) == 2

    @pytest.mark.asyncio
    async def test_unlike_floors_at_zero(self, world, db_session, writeup_service):
        await writeup_service.like(db_session, world["writeup"])

        assert await writeup_service.unlike(db_session, world["writeup"]) == 0
        assert await writeup_service.unlike(db_session, world["writeup"]) == 0
        assert await writeup_service.unlike(db_session, world["writeup"]) == 0

    @pytest.mark.asyncio
    async def test_like_missing_bottle(self, world, db_session, writeup_service):
        with pytest.raises(NotFoundError):
            await writeup_service.like(db_session, 9999)
        with pytest.raises(NotFoundError):
            await writeup_service.unlike(db_session, 9999)

    @pytest.mark.asyncio
    async def test_concurrent_likes_are_all_counted(self, world, database, writeup_service):
        async def like_once():
            async with database.session() as s:
                return await writeup_service.like(s, world["writeup"])

        results = await asyncio.gather(*(like_once() for _ in range(10)))

        assert sorted(results) == list(range(1, 11))
        async with database.session() as s:
            likes = (await s.execute(select(Writeup.likes).where(Writeup.id == world["writeup"]))).scalar_one()
        assert likes == 10

    @pytest.mark.asyncio
    async def test_concurrent_likes_and_unlikes_never_negative(self, world, database, writeup_service):
        async def run(op):
            async with database.session() as s:
                return await op(s, world["writeup"])

        ops = [writeup_service.unlike] * 6 + [writeup_service.like] * 3 + [writeup_service.unlike] * 6
        results = await asyncio.gather(*(run(op) for op in ops))

        assert all(count >= 0 for count in results)
        async with database.session() as s:
            likes = (await s.execute(select(Writeup.likes).where(Writeup.id == world["writeup"]))).scalar_one()
        assert 0 <= likes <= 3


class TestDelete:
    @pytest.mark.asyncio
    async def test_owner_deletes(self, world, database, writeup_service):
        async with database.session() as s:
            await writeup_service.delete_writeup(s, world["writeup"], world["owner"])
            await s.commit()

        async with database.session() as s:
            assert (await s.execute(select(Writeup).where(Writeup.id == world["writeup"]))).first() is None

    @pytest.mark.asyncio
    async def test_non_owner_forbidden(self, world, database, writeup_service):
        async with database.session() as s:
            with pytest.raises(ForbiddenError):
                await writeup_service.delete_writeup(s, world["writeup"], world["alice"])

        async with database.session() as s:
            assert (await s.execute(select(Writeup).where(Writeup.id == world["writeup"]))).first() is not None

    @pytest.mark.asyncio
    async def test_missing_writeup(self, world, db_session, writeup_service):
        with pytest.raises(NotFoundError) as exc_info:
            await writeup_service.delete_writeup(db_session, 9999, world["owner"])
        assert exc_info.value.message == "Writeup not found"


class TestFeeds:
    @pytest.mark.asyncio
    async def test_feed_shows_public_and_own_private(self, world, database, writeup_service):
        async with database.session() as s:
            await writeup_service.create_writeup(
                s, requester_id=world["alice"], title="alice private", content="", is_public=False
            )
            await writeup_service.create_writeup(
                s, requester_id=world["bob"], title="bob private", content="", is_public=False
            )
            await s.commit()

        async with database.session() as s:
            alice_feed = await writeup_service.list_writeups(s, world["alice"])

        titles = {item.title for item in alice_feed}
        assert titles == {"Message", "alice private"}
        assert next(i for i in alice_feed if i.title == "Message").author_name == "Owner"

    @pytest.mark.asyncio
    async def test_feed_newest_first(self, world, database, writeup_service):
        base = datetime(2024, 1, 1, tzinfo=timezone.utc)
        async with database.session() as s:
            s.add_all([
                Writeup(user_id=world["owner"], title="older", content="", created_at=base),
                Writeup(user_id=world["owner"], title="newer", content="", created_at=base + timedelta(days=1)),
            ])
            await s.commit()

        async with database.session() as s:
            feed = await writeup_service.list_writeups(s, world["alice"])

        titles = [item.title for item in feed]
        assert titles.index("newer") < titles.index("older")

    @pytest.mark.asyncio
    async def test_my_claims(self, world, database, writeup_service):
        async with database.session() as s:
            await writeup_service.claim(s, world["writeup"], world["bob"])
            await s.commit()

        async with database.session() as s:
            bob_claims = await writeup_service.list_my_claims(s, world["bob"])
            alice_claims = await writeup_service.list_my_claims(s, world["alice"])

        assert [w.id for w in bob_claims] == [world["writeup"]]
        assert alice_claims == []


class TestStoreFailure:
    @pytest.mark.asyncio
    async def test_claim_store_failure(self, mock_db_session, writeup_service):
        mock_db_session.execute.side_effect = OperationalError("UPDATE", {}, Exception("db down"))

        with pytest.raises(StoreError) as exc_info:
            await writeup_service.claim(mock_db_session, 1, 2)
        assert exc_info.value.context["operation"] == "claim"
        assert exc_info.value.message == "Server error."

    @pytest.mark.asyncio
    async def test_claim_commit_failure(self, mock_db_session, writeup_service):
        mock_db_session.execute.return_value = MagicMock(rowcount=1)
        mock_db_session.commit.side_effect = OperationalError("COMMIT", {}, Exception("commit failed"))

        with pytest.raises(StoreError) as exc_info:
            await writeup_service.claim(mock_db_session, 1, 2)
        assert exc_info.value.context["operation"] == "claim"

    @pytest.mark.asyncio
    async def test_like_commit_failure(self, mock_db_session, writeup_service):
        result = MagicMock()
        result.scalar_one_or_none.return_value = 1
        mock_db_session.execute.return_value = result
        mock_db_session.commit.side_effect = OperationalError("COMMIT", {}, Exception("commit failed"))

        with pytest.raises(StoreError):
            await writeup_service.like(mock_db_session, 1)
