"""Points ledger: grants, guarded deductions and atomic transfers."""

import pytest
from conftest import make_user, points_of
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from qaforum.db.models import PointsLedger, User
from qaforum.errors import InsufficientFunds, NotFound, ValidationError
from qaforum.rewards import service


class TestGrantAndDeduct:
    async def test_deduct_refuses_to_overdraw(self, db_session: AsyncSession, alice: User):
        """grant 5, grant 5, deduct 12 is refused, deduct 10 empties the account."""
        await service.grant(db_session, alice.id, 5)
        await service.grant(db_session, alice.id, 5)
        assert await service.deduct(db_session, alice.id, 12) is False
        assert await service.deduct(db_session, alice.id, 10) is True
        await db_session.commit()

        reward = await service.get_account(db_session, alice.id)
        assert reward is not None
        assert reward.points == 0
        assert reward.total_points_earned == 10
        assert reward.total_points_spent == 10

    async def test_deduct_without_account(self, db_session: AsyncSession, alice: User):
        assert await service.deduct(db_session, alice.id, 1) is False
        assert await service.get_account(db_session, alice.id) is None

    async def test_badge_only_grant_leaves_balance(self, db_session: AsyncSession, alice: User):
        badge = service.make_badge("First Answer", "Posted a first answer")
        reward = await service.grant(db_session, alice.id, None, badge)
        assert reward.points == 0
        assert reward.badges[0]["name"] == "First Answer"

    async def test_every_change_is_journaled(self, db_session: AsyncSession, alice: User):
        await service.grant(db_session, alice.id, 5, reason="answer_posted")
        await service.deduct(db_session, alice.id, 2, reason="downvoted")
        await service.credit(db_session, alice.id, 1, reason="downvote_removed")
        await db_session.commit()

        entries = await service.history(db_session, alice.id)
        assert sorted(e.amount for e in entries) == [-2, 1, 5]
        assert {e.kind for e in entries} == {"earn", "spend", "refund"}


class TestTransfer:
    async def test_moves_points_both_ways(self, db_session: AsyncSession, alice: User, bob: User):
        await service.grant(db_session, alice.id, 20)
        await db_session.commit()

        sender = await service.transfer(db_session, alice.id, bob.id, 15)
        assert sender.points == 5
        assert await points_of(alice.id) == 5
        assert await points_of(bob.id) == 15

    async def test_requires_minimum_balance(self, db_session: AsyncSession, alice: User, bob: User):
        await service.grant(db_session, alice.id, 9)
        await db_session.commit()
        with pytest.raises(InsufficientFunds, match="at least 10"):
            await service.transfer(db_session, alice.id, bob.id, 5)
        assert await points_of(alice.id) == 9

    async def test_cannot_send_more_than_balance(self, db_session: AsyncSession, alice: User, bob: User):
        await service.grant(db_session, alice.id, 10)
        await db_session.commit()
        with pytest.raises(InsufficientFunds):
            await service.transfer(db_session, alice.id, bob.id, 11)

    async def test_rejects_self_and_non_positive(self, db_session: AsyncSession, alice: User, bob: User):
        with pytest.raises(ValidationError):
            await service.transfer(db_session, alice.id, alice.id, 5)
        with pytest.raises(ValidationError):
            await service.transfer(db_session, alice.id, bob.id, 0)

    async def test_unknown_recipient(self, db_session: AsyncSession, alice: User):
        await service.grant(db_session, alice.id, 50)
        await db_session.commit()
        with pytest.raises(NotFound):
            await service.transfer(db_session, alice.id, 999_999, 5)
        assert await points_of(alice.id) == 50

    async def test_failure_midway_rolls_back_both_sides(
        self, db_session: AsyncSession, alice: User, bob: User, monkeypatch: pytest.MonkeyPatch
    ):
        """The recipient is credited first; a failure on the sender's side undoes it."""
        await service.grant(db_session, alice.id, 30)
        await db_session.commit()

        original = service._record

        def failing_record(db, user_id, amount, kind, reason, counterparty_id=None):  # type: ignore[no-untyped-def]
            if kind == "transfer_out":
                raise RuntimeError("ledger unavailable")
            return original(db, user_id, amount, kind, reason, counterparty_id)

        monkeypatch.setattr(service, "_record", failing_record)
        with pytest.raises(RuntimeError):
            await service.transfer(db_session, alice.id, bob.id, 20)

        assert await points_of(alice.id) == 30
        assert await points_of(bob.id) is None
        count = await db_session.execute(
            select(func.count()).select_from(PointsLedger).where(PointsLedger.kind.like("transfer%"))
        )
        assert count.scalar_one() == 0


class TestLeaderboard:
    async def test_ordered_by_lifetime_earnings(self, db_session: AsyncSession, alice: User, bob: User):
        carol = await make_user(name="Carol", email="carol@example.com")
        await service.grant(db_session, alice.id, 10)
        await service.grant(db_session, bob.id, 30)
        await service.grant(db_session, carol.id, 20)
        await service.deduct(db_session, bob.id, 25)
        await db_session.commit()

        rows = await service.leaderboard(db_session)
        assert [r.user_id for r in rows] == [bob.id, carol.id, alice.id]
        assert rows[0].user.name == "Bob"

    async def test_search_excludes_caller(self, db_session: AsyncSession, alice: User, bob: User):
        users = await service.search_users(db_session, alice.id, "example.com")
        assert [u.id for u in users] == [bob.id]
