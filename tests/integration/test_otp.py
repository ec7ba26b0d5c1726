"""One-time codes: expiry boundary, attempt cap, single live challenge."""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from qaforum.db.models import User
from qaforum.errors import RateLimited, ValidationError
from qaforum.security import otp

ISSUED = datetime(2026, 3, 2, 5, 0, tzinfo=timezone.utc)


class TestExpiry:
    async def test_valid_just_before_ten_minutes(self, db_session: AsyncSession, alice: User):
        _, code = await otp.issue_challenge(db_session, alice.id, "login", now=ISSUED)
        challenge = await otp.verify_challenge(
            db_session, alice.id, "login", code, now=ISSUED + timedelta(minutes=9, seconds=59)
        )
        assert challenge.used_at is not None

    async def test_expired_just_after_ten_minutes(self, db_session: AsyncSession, alice: User):
        _, code = await otp.issue_challenge(db_session, alice.id, "login", now=ISSUED)
        with pytest.raises(ValidationError, match="expired"):
            await otp.verify_challenge(
                db_session, alice.id, "login", code, now=ISSUED + timedelta(minutes=10, seconds=1)
            )


class TestChallenges:
    async def test_code_is_single_use(self, db_session: AsyncSession, alice: User):
        _, code = await otp.issue_challenge(db_session, alice.id, "login", now=ISSUED)
        await otp.verify_challenge(db_session, alice.id, "login", code, now=ISSUED)
        with pytest.raises(ValidationError):
            await otp.verify_challenge(db_session, alice.id, "login", code, now=ISSUED)

    async def test_new_challenge_retires_old(self, db_session: AsyncSession, alice: User):
        _, first = await otp.issue_challenge(db_session, alice.id, "login", now=ISSUED)
        _, second = await otp.issue_challenge(db_session, alice.id, "login", now=ISSUED + timedelta(seconds=1))
        if first != second:
            with pytest.raises(ValidationError):
                await otp.verify_challenge(db_session, alice.id, "login", first, now=ISSUED)
        await otp.verify_challenge(db_session, alice.id, "login", second, now=ISSUED)

    async def test_purposes_are_separate(self, db_session: AsyncSession, alice: User):
        _, code = await otp.issue_challenge(db_session, alice.id, "language", {"language": "fr"}, now=ISSUED)
        with pytest.raises(ValidationError):
            await otp.verify_challenge(db_session, alice.id, "login", code, now=ISSUED)

    async def test_locked_after_three_wrong_guesses(self, db_session: AsyncSession, alice: User):
        _, code = await otp.issue_challenge(db_session, alice.id, "login", now=ISSUED)
        wrong = "000000" if code != "000000" else "111111"
        for _ in range(2):
            with pytest.raises(ValidationError):
                await otp.verify_challenge(db_session, alice.id, "login", wrong, now=ISSUED)
        with pytest.raises(RateLimited):
            await otp.verify_challenge(db_session, alice.id, "login", wrong, now=ISSUED)
        with pytest.raises(RateLimited):
            await otp.verify_challenge(db_session, alice.id, "login", code, now=ISSUED)

    async def test_code_shape(self):
        code = otp.generate_code()
        assert len(code) == 6
        assert code.isdigit()
