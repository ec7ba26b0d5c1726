"""Answer and question votes and the points they move."""

import pytest
from conftest import make_user, points_of
from sqlalchemy.ext.asyncio import AsyncSession

from qaforum.config import get_settings
from qaforum.db.models import QuestionVote, User
from qaforum.qa import answers, questions
from qaforum.qa.voting import tally, vote_question
from qaforum.rewards import service as rewards


async def _answer(db: AsyncSession, asker: User, author: User) -> int:
    """Question by ``asker`` answered by ``author``; returns the answer id."""
    question = await questions.ask_question(db, await db.get(User, asker.id), "Why?", "Because.")
    answer = await answers.post_answer(db, await db.get(User, author.id), question.id, "An answer")
    await db.commit()
    return answer.id


async def _voters(n: int) -> list[User]:
    return [await make_user(name=f"Voter {i}", email=f"voter{i}@example.com") for i in range(n)]


class TestQuestionVotes:
    async def test_toggle_and_switch(self, db_session: AsyncSession, alice: User, bob: User):
        question = await questions.ask_question(db_session, await db_session.get(User, alice.id), "Q", "Body")

        outcome = await vote_question(db_session, question.id, bob.id, "upvote")
        assert (outcome.upvotes, outcome.downvotes, outcome.state) == (1, 0, "up")

        outcome = await vote_question(db_session, question.id, bob.id, "upvote")
        assert (outcome.upvotes, outcome.downvotes, outcome.state) == (0, 0, None)

        await vote_question(db_session, question.id, bob.id, "upvote")
        outcome = await vote_question(db_session, question.id, bob.id, "downvote")
        assert (outcome.upvotes, outcome.downvotes, outcome.state) == (0, 1, "down")

    async def test_one_row_per_voter(self, db_session: AsyncSession, alice: User, bob: User):
        question = await questions.ask_question(db_session, await db_session.get(User, alice.id), "Q", "Body")
        for value in ("upvote", "downvote", "upvote", "downvote"):
            await vote_question(db_session, question.id, bob.id, value)
        assert await tally(db_session, QuestionVote, question.id) == (0, 1)


class TestAnswerPoints:
    async def test_answer_reward(self, db_session: AsyncSession, alice: User, bob: User):
        await _answer(db_session, alice, bob)
        assert await points_of(bob.id) == 5

    async def test_downvote_costs_one_and_removal_refunds(self, db_session: AsyncSession, alice: User, bob: User):
        answer_id = await _answer(db_session, alice, bob)

        await answers.vote(db_session, alice, answer_id, "downvote")
        await db_session.commit()
        assert await points_of(bob.id) == 4

        await answers.vote(db_session, alice, answer_id, "downvote")
        await db_session.commit()
        assert await points_of(bob.id) == 5

    async def test_switching_downvote_to_upvote_refunds(self, db_session: AsyncSession, alice: User, bob: User):
        answer_id = await _answer(db_session, alice, bob)
        await answers.vote(db_session, alice, answer_id, "downvote")
        _, outcome = await answers.vote(db_session, alice, answer_id, "upvote")
        await db_session.commit()
        assert (outcome.upvotes, outcome.downvotes) == (1, 0)
        assert await points_of(bob.id) == 5

    async def test_downvote_with_empty_balance_takes_nothing(self, db_session: AsyncSession, alice: User, bob: User):
        answer_id = await _answer(db_session, alice, bob)
        assert await rewards.deduct(db_session, bob.id, 5)
        await answers.vote(db_session, alice, answer_id, "downvote")
        await db_session.commit()
        assert await points_of(bob.id) == 0

    async def test_milestone_bonus_rearms_after_dropping_below(self, db_session: AsyncSession, alice: User, bob: User):
        """5 upvotes pay the bonus; 5 -> 4 -> 5 pays it again."""
        answer_id = await _answer(db_session, alice, bob)
        voters = await _voters(5)

        awarded = []
        for voter in voters:
            _, outcome = await answers.vote(db_session, voter, answer_id, "upvote")
            awarded.append(outcome.points_awarded)
        await db_session.commit()
        assert awarded == [0, 0, 0, 0, 5]
        assert await points_of(bob.id) == 10

        _, outcome = await answers.vote(db_session, voters[-1], answer_id, "upvote")
        assert outcome.upvotes == 4
        _, outcome = await answers.vote(db_session, voters[-1], answer_id, "upvote")
        await db_session.commit()
        assert outcome.upvotes == 5
        assert outcome.points_awarded == 5
        assert await points_of(bob.id) == 15

    async def test_milestone_paid_once_without_rearm(
        self, db_session: AsyncSession, alice: User, bob: User, monkeypatch: pytest.MonkeyPatch
    ):
        monkeypatch.setattr(get_settings(), "answer_milestone_rearm", False)
        answer_id = await _answer(db_session, alice, bob)
        voters = await _voters(5)
        for voter in voters:
            await answers.vote(db_session, voter, answer_id, "upvote")
        await answers.vote(db_session, voters[0], answer_id, "upvote")
        _, outcome = await answers.vote(db_session, voters[0], answer_id, "upvote")
        await db_session.commit()
        assert outcome.upvotes == 5
        assert outcome.points_awarded == 0
        assert await points_of(bob.id) == 10

    async def test_sixth_upvote_pays_nothing(self, db_session: AsyncSession, alice: User, bob: User):
        answer_id = await _answer(db_session, alice, bob)
        voters = await _voters(6)
        outcomes = [(await answers.vote(db_session, v, answer_id, "upvote"))[1] for v in voters]
        await db_session.commit()
        assert [o.points_awarded for o in outcomes] == [0, 0, 0, 0, 5, 0]


class TestAnswerDeletion:
    async def test_reclaims_answer_reward(self, db_session: AsyncSession, alice: User, bob: User):
        answer_id = await _answer(db_session, alice, bob)
        question_id = (await answers.get_answer(db_session, answer_id)).question_id

        removal = await answers.delete_answer(db_session, await db_session.get(User, bob.id), question_id, answer_id)
        await db_session.commit()
        assert removal.points_deducted == 5
        assert removal.answer_count == 0
        assert await points_of(bob.id) == 0

    async def test_reclaims_bonus_too_at_milestone(self, db_session: AsyncSession, alice: User, bob: User):
        answer_id = await _answer(db_session, alice, bob)
        for voter in await _voters(5):
            await answers.vote(db_session, voter, answer_id, "upvote")
        await db_session.commit()
        question_id = (await answers.get_answer(db_session, answer_id)).question_id

        removal = await answers.delete_answer(db_session, await db_session.get(User, bob.id), question_id, answer_id)
        await db_session.commit()
        assert removal.points_deducted == 10
        assert await points_of(bob.id) == 0

    async def test_skipped_when_balance_too_low(self, db_session: AsyncSession, alice: User, bob: User):
        answer_id = await _answer(db_session, alice, bob)
        await rewards.deduct(db_session, bob.id, 3)
        await db_session.commit()
        question_id = (await answers.get_answer(db_session, answer_id)).question_id

        removal = await answers.delete_answer(db_session, await db_session.get(User, bob.id), question_id, answer_id)
        await db_session.commit()
        assert removal.points_deducted == 0
        assert await points_of(bob.id) == 2
